"""
InMemoryGateway: a local stand-in for the bank API.

Charges live in a dict guarded by a Lock. The gateway stamps its own
creation time and expiry, exactly as the bank does, so callers exercise the
same "gateway is authoritative" path in development and tests.
"""

import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from pixhub.errors import NotFoundError
from pixhub.gateway.base import AbstractPaymentGateway
from pixhub.models.base import utcnow
from pixhub.models.charge import Charge, ChargeRequest
from pixhub.models.enums import ChargeStatus


class InMemoryGateway(AbstractPaymentGateway):
    name = "InMemory"

    def __init__(
        self,
        location_base: str = "pix.example.local/qr/v2",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._location_base = location_base
        self._clock = clock
        self._lock = threading.Lock()
        self._charges: dict[str, Charge] = {}

    async def create_charge(self, request: ChargeRequest) -> Charge:
        now = self._clock()
        txid = uuid.uuid4().hex  # 32 chars, within the 26-35 txid range
        charge = Charge(
            id=txid,
            external_tx_id=txid,
            location_ref=f"{self._location_base}/{txid}",
            status=ChargeStatus.ACTIVE,
            amount=request.amount,
            payer_name=request.payer_name,
            payer_id=request.payer_id,
            payer_email=request.payer_email,
            description=request.description,
            expires_at=now + timedelta(minutes=request.expiration_minutes),
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._charges[txid] = charge
        return charge

    def _refresh(self, charge: Charge) -> Charge:
        # ACTIVE charges past their expiry are reported as EXPIRED
        now = self._clock()
        if charge.status == ChargeStatus.ACTIVE and charge.expires_at <= now:
            charge = charge.model_copy(update={"status": ChargeStatus.EXPIRED, "updated_at": now})
            self._charges[charge.external_tx_id] = charge
        return charge

    async def get_charge(self, external_tx_id: str) -> Optional[Charge]:
        with self._lock:
            charge = self._charges.get(external_tx_id)
            return self._refresh(charge) if charge is not None else None

    async def list_charges(self, status: ChargeStatus) -> list[Charge]:
        with self._lock:
            charges = [self._refresh(c) for c in list(self._charges.values())]
        return sorted((c for c in charges if c.status == status), key=lambda c: c.created_at)

    async def cancel_charge(self, external_tx_id: str) -> None:
        with self._lock:
            charge = self._charges.get(external_tx_id)
            if charge is None:
                raise NotFoundError(f"charge {external_tx_id} not found")
            self._charges[external_tx_id] = charge.model_copy(
                update={"status": ChargeStatus.REMOVED_BY_PAYEE, "updated_at": self._clock()}
            )

    def complete(self, external_tx_id: str) -> Charge:
        """Simulate the payer settling a charge."""
        with self._lock:
            charge = self._charges[external_tx_id]
            charge = charge.model_copy(
                update={"status": ChargeStatus.COMPLETED, "updated_at": self._clock()}
            )
            self._charges[external_tx_id] = charge
            return charge
