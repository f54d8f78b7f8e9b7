import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pixhub.errors import NotFoundError, ValidationError
from pixhub.models.base import as_utc, utcnow
from pixhub.models.enums import KeyType, TransactionKind, TransactionStatus
from pixhub.models.transaction import Transaction
from pixhub.stores.base import OwnerDirectory, TransactionStore
from pixhub.validation import key_validator

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 3


class TransactionEngine:
    """
    Creates transactions and drives them through their lifecycle.

    Creation checks, first failure wins:
      1. request fields present and in range       -> ValidationError
      2. owner exists                              -> NotFoundError
      3. target key well-formed for its type       -> ValidationError
      4. scheduling rules for the kind             -> ValidationError
    A created transaction always starts PENDING, whatever its kind.

    Scheduling rules:
      IMMEDIATE -> scheduled_at must be absent
      SCHEDULED -> scheduled_at required and strictly in the future
      AUTOMATIC -> scheduled_at required (past or future)
    """

    def __init__(self, owners: OwnerDirectory, transactions: TransactionStore):
        self._owners = owners
        self._transactions = transactions

    async def create(
        self,
        owner_id: str,
        amount: Decimal,
        description: str,
        target_key: str,
        target_key_type: Optional[KeyType],
        kind: Optional[TransactionKind],
        scheduled_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Transaction:
        now = now or utcnow()
        if scheduled_at is not None:
            scheduled_at = as_utc(scheduled_at)

        self._check_request(owner_id, amount, description, target_key, target_key_type, kind)

        owner = await self._owners.find_by_id(owner_id)
        if owner is None:
            raise NotFoundError(f"owner {owner_id} not found")

        if not key_validator.validate(target_key, target_key_type):
            raise ValidationError(key_validator.invalid_key_message(target_key_type))

        self._check_schedule(kind, scheduled_at, now)

        transaction = Transaction(
            owner_id=owner_id,
            amount=amount,
            description=description.strip(),
            target_key=target_key,
            target_key_type=target_key_type,
            status=TransactionStatus.PENDING,
            kind=kind,
            scheduled_at=scheduled_at,
            created_at=now,
            updated_at=now,
        )
        created = await self._transactions.create(transaction)
        logger.info(
            f"[TXN {created.id}] Created {created.kind.value} transaction "
            f"amount={created.amount} owner={created.owner_id} "
            f"scheduled_at={created.scheduled_at}"
        )
        return created

    @staticmethod
    def _check_request(owner_id, amount, description, target_key, target_key_type, kind) -> None:
        if not owner_id:
            raise ValidationError("owner id is required")
        if amount is None or amount <= 0:
            raise ValidationError("amount must be greater than zero")
        if not description or len(description.strip()) < MIN_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"description must have at least {MIN_DESCRIPTION_LENGTH} characters"
            )
        if not target_key:
            raise ValidationError("PIX key is required")
        if target_key_type is None:
            raise ValidationError("PIX key type is required")
        if kind is None:
            raise ValidationError("transaction kind is required")

    @staticmethod
    def _check_schedule(
        kind: TransactionKind, scheduled_at: Optional[datetime], now: datetime
    ) -> None:
        if kind == TransactionKind.IMMEDIATE:
            if scheduled_at is not None:
                raise ValidationError("an immediate transaction cannot have a scheduled date")
        elif kind == TransactionKind.SCHEDULED:
            if scheduled_at is None:
                raise ValidationError("a scheduled transaction requires a scheduled date")
            if scheduled_at <= now:
                raise ValidationError("scheduled date must be in the future")
        elif kind == TransactionKind.AUTOMATIC:
            if scheduled_at is None:
                raise ValidationError("an automatic transaction requires a scheduled date")
        else:
            raise ValidationError("invalid transaction kind")

    # --- Queries ---

    async def get(self, transaction_id: str) -> Transaction:
        transaction = await self._transactions.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"transaction {transaction_id} not found")
        return transaction

    async def list_by_owner(self, owner_id: str) -> list[Transaction]:
        return await self._transactions.find_by_owner(owner_id)

    async def list_by_status(self, status: TransactionStatus) -> list[Transaction]:
        return await self._transactions.find_by_status(status)

    async def due_for_execution(self, now: Optional[datetime] = None) -> list[Transaction]:
        """Scheduled and automatic candidates, oldest scheduled_at first."""
        now = now or utcnow()
        scheduled = await self._transactions.find_scheduled_for_execution(now)
        automatic = await self._transactions.find_automatic_for_execution(now)
        return sorted(scheduled + automatic, key=lambda t: t.scheduled_at)

    # --- Transitions ---

    async def execute(self, transaction_id: str, now: Optional[datetime] = None) -> Transaction:
        await self.get(transaction_id)
        updated = await self._transactions.mark_executed(transaction_id, now or utcnow())
        logger.info(f"[TXN {transaction_id}] EXECUTED at {updated.executed_at}")
        return updated

    async def fail(self, transaction_id: str, now: Optional[datetime] = None) -> Transaction:
        current = await self.get(transaction_id)
        if current.is_terminal:
            # Failure marking is unguarded; a terminal status is overwritten.
            logger.warning(
                f"[TXN {transaction_id}] Marking FAILED from terminal status "
                f"{current.status.value}"
            )
        updated = await self._transactions.mark_failed(transaction_id, now or utcnow())
        logger.warning(f"[TXN {transaction_id}] FAILED")
        return updated

    async def cancel(self, transaction_id: str, now: Optional[datetime] = None) -> Transaction:
        await self.get(transaction_id)
        updated = await self._transactions.mark_cancelled(transaction_id, now or utcnow())
        logger.info(f"[TXN {transaction_id}] CANCELLED")
        return updated
