import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from pixhub.config import Settings
from pixhub.errors import NotFoundError, ValidationError
from pixhub.gateway.base import AbstractPaymentGateway
from pixhub.models.base import utcnow
from pixhub.models.charge import Charge, ChargeRequest
from pixhub.models.enums import ChargeStatus
from pixhub.validation import key_validator

logger = logging.getLogger(__name__)

MAX_AMOUNT = Decimal("1000000")
DEFAULT_EXPIRATION_MINUTES = 60
MAX_EXPIRATION_MINUTES = 43_200  # 30 days
PAYER_NAME_MIN, PAYER_NAME_MAX = 2, 100
DESCRIPTION_MAX = 200


def build_charge_request(
    amount: Decimal,
    payer_name: str,
    payer_id: str,
    payer_email: str,
    description: str,
    expiration_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
    max_amount: Decimal = MAX_AMOUNT,
    default_expiration_minutes: int = DEFAULT_EXPIRATION_MINUTES,
    max_expiration_minutes: int = MAX_EXPIRATION_MINUTES,
) -> ChargeRequest:
    """
    Validate and normalize a charge creation request.

    Rules, first failure wins:
      - 0 < amount <= 1,000,000
      - payer name 2..100 characters after trimming
      - payer id is a valid CPF
      - payer email is well-formed
      - description present and at most 200 characters
      - expiration, when given, between 1 minute and 30 days (default 60)
    """
    if amount is None or amount <= 0:
        raise ValidationError("amount must be greater than zero")
    if amount > max_amount:
        raise ValidationError(f"amount must not exceed {max_amount}")

    name = (payer_name or "").strip()
    if len(name) < PAYER_NAME_MIN:
        raise ValidationError(f"payer name must have at least {PAYER_NAME_MIN} characters")
    if len(name) > PAYER_NAME_MAX:
        raise ValidationError(f"payer name must have at most {PAYER_NAME_MAX} characters")

    if not payer_id or not key_validator.is_valid_national_id(payer_id):
        raise ValidationError("payer CPF invalid")
    if not payer_email or not key_validator.is_valid_email(payer_email):
        raise ValidationError("payer email invalid")

    if not description or not description.strip():
        raise ValidationError("description is required")
    if len(description) > DESCRIPTION_MAX:
        raise ValidationError(f"description must have at most {DESCRIPTION_MAX} characters")

    if expiration_minutes is None:
        expiration_minutes = default_expiration_minutes
    elif not 1 <= expiration_minutes <= max_expiration_minutes:
        raise ValidationError(
            f"expiration must be between 1 and {max_expiration_minutes} minutes"
        )

    now = now or utcnow()
    return ChargeRequest(
        amount=amount,
        payer_name=name,
        payer_id=key_validator.digits_only(payer_id),
        payer_email=payer_email.strip(),
        description=description.strip(),
        expiration_minutes=expiration_minutes,
        expires_at=now + timedelta(minutes=expiration_minutes),
    )


class ChargeService:
    """Builds charge requests and hands them to the payment gateway."""

    def __init__(self, gateway: AbstractPaymentGateway, settings: Settings):
        self._gateway = gateway
        self._settings = settings

    async def create(
        self,
        amount: Decimal,
        payer_name: str,
        payer_id: str,
        payer_email: str,
        description: str,
        expiration_minutes: Optional[int] = None,
    ) -> Charge:
        request = build_charge_request(
            amount,
            payer_name,
            payer_id,
            payer_email,
            description,
            expiration_minutes,
            max_amount=Decimal(self._settings.CHARGE_MAX_AMOUNT),
            default_expiration_minutes=self._settings.CHARGE_DEFAULT_EXPIRATION_MINUTES,
            max_expiration_minutes=self._settings.CHARGE_MAX_EXPIRATION_MINUTES,
        )
        # The gateway's creation time and expiry win over the local ones.
        charge = await self._gateway.create_charge(request)
        logger.info(
            f"[CHARGE {charge.external_tx_id}] Created via {self._gateway.name} "
            f"amount={charge.amount} expires_at={charge.expires_at}"
        )
        return charge

    async def get(self, external_tx_id: str) -> Charge:
        charge = await self._gateway.get_charge(external_tx_id)
        if charge is None:
            raise NotFoundError(f"charge {external_tx_id} not found")
        return charge

    async def list_by_status(self, status: ChargeStatus) -> list[Charge]:
        return await self._gateway.list_charges(status)

    async def cancel(self, external_tx_id: str) -> None:
        await self.get(external_tx_id)
        await self._gateway.cancel_charge(external_tx_id)
        logger.info(f"[CHARGE {external_tx_id}] Cancelled")
