import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from pixhub.models.base import DomainModel, new_id, utcnow
from pixhub.models.enums import ChargeStatus

logger = logging.getLogger(__name__)

# Gateway status strings (Portuguese names from the bank API, plus our own).
_GATEWAY_STATUS_MAP: dict[str, ChargeStatus] = {
    "ATIVA": ChargeStatus.ACTIVE,
    "CONCLUIDA": ChargeStatus.COMPLETED,
    "REMOVIDA_PELO_USUARIO_RECEBEDOR": ChargeStatus.REMOVED_BY_PAYEE,
    "REMOVIDA_PELO_PSP": ChargeStatus.REMOVED_BY_PSP,
    "EXPIRADA": ChargeStatus.EXPIRED,
    **{s.value: s for s in ChargeStatus},
}

_STATUS_TO_GATEWAY: dict[ChargeStatus, str] = {
    ChargeStatus.ACTIVE: "ATIVA",
    ChargeStatus.COMPLETED: "CONCLUIDA",
    ChargeStatus.REMOVED_BY_PAYEE: "REMOVIDA_PELO_USUARIO_RECEBEDOR",
    ChargeStatus.REMOVED_BY_PSP: "REMOVIDA_PELO_PSP",
    ChargeStatus.EXPIRED: "EXPIRADA",
}


def map_charge_status(raw: Optional[str]) -> ChargeStatus:
    """Map a gateway status string onto ChargeStatus. Unknown values map to ACTIVE."""
    status = _GATEWAY_STATUS_MAP.get((raw or "").upper())
    if status is None:
        logger.warning(f"Unrecognized charge status {raw!r}, treating as ACTIVE")
        return ChargeStatus.ACTIVE
    return status


def gateway_status_name(status: ChargeStatus) -> str:
    """Bank API name for a status, used as a list filter."""
    return _STATUS_TO_GATEWAY[status]


class ChargeRequest(DomainModel):
    """Validated, normalized input handed to the payment gateway."""

    amount: Decimal
    payer_name: str
    payer_id: str  # digits only
    payer_email: str
    description: str
    expiration_minutes: int
    expires_at: datetime


class Charge(DomainModel):
    id: str = Field(default_factory=new_id)
    external_tx_id: str
    location_ref: str
    status: ChargeStatus = ChargeStatus.ACTIVE
    amount: Decimal
    payer_name: str
    payer_id: str
    payer_email: str = ""
    description: str = ""
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ChargeCreateRequest(BaseModel):
    amount: Decimal = Field(..., decimal_places=2)
    payer_name: str
    payer_id: str
    payer_email: str
    description: str
    expiration_minutes: Optional[int] = None
