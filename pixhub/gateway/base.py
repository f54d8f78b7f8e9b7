from abc import ABC, abstractmethod
from typing import Optional

from pixhub.models.charge import Charge, ChargeRequest
from pixhub.models.enums import ChargeStatus


class AbstractPaymentGateway(ABC):
    """
    External PIX charge provider.

    Authentication, request signing and transport belong entirely to the
    implementation. Transport or auth failures raise UpstreamError.
    """

    name: str

    @abstractmethod
    async def create_charge(self, request: ChargeRequest) -> Charge:
        """Create a charge; the returned timestamps and expiry are authoritative."""

    @abstractmethod
    async def get_charge(self, external_tx_id: str) -> Optional[Charge]:
        """Return None when the gateway does not know the id."""

    @abstractmethod
    async def list_charges(self, status: ChargeStatus) -> list[Charge]:
        ...

    @abstractmethod
    async def cancel_charge(self, external_tx_id: str) -> None:
        ...

    async def aclose(self) -> None:
        return None
