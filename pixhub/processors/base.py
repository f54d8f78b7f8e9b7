from abc import ABC, abstractmethod

from pixhub.models.transaction import Transaction
from pixhub.processors.result import TransferResult


class TransferProcessor(ABC):
    name: str

    @abstractmethod
    async def send(self, transaction: Transaction) -> TransferResult:
        """
        Move the money for a due transaction.
        Never raises for business outcomes; they are encoded in TransferResult.status.
        """
