from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from pixhub.errors import StateConflictError
from pixhub.models.base import DomainModel, new_id, utcnow
from pixhub.models.enums import (
    TERMINAL_STATUSES,
    KeyType,
    TransactionKind,
    TransactionStatus,
)


class Transaction(DomainModel):
    """
    A money-movement record.

    Transitions never mutate: mark_executed / mark_failed / mark_cancelled
    each return a new Transaction.

    State machine:
      PENDING   -> EXECUTED   (when due: scheduled_at absent or <= now)
      PENDING   -> CANCELLED
      SCHEDULED -> CANCELLED
      any       -> FAILED     (unguarded)
    """

    id: str = Field(default_factory=new_id)
    owner_id: str
    amount: Decimal
    description: str
    target_key: str
    target_key_type: KeyType
    status: TransactionStatus = TransactionStatus.PENDING
    kind: TransactionKind
    scheduled_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_scheduled(self) -> bool:
        return self.kind == TransactionKind.SCHEDULED

    def is_automatic(self) -> bool:
        return self.kind == TransactionKind.AUTOMATIC

    def can_be_executed(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.status == TransactionStatus.PENDING and (
            self.scheduled_at is None or self.scheduled_at <= now
        )

    def can_be_cancelled(self) -> bool:
        return self.status in (TransactionStatus.PENDING, TransactionStatus.SCHEDULED)

    def is_scheduled_candidate(self, now: Optional[datetime] = None) -> bool:
        return self.is_scheduled() and self._is_due(now)

    def is_automatic_candidate(self, now: Optional[datetime] = None) -> bool:
        return self.is_automatic() and self._is_due(now)

    def _is_due(self, now: Optional[datetime]) -> bool:
        now = now or utcnow()
        return (
            self.status == TransactionStatus.PENDING
            and self.scheduled_at is not None
            and self.scheduled_at <= now
        )

    def mark_executed(self, now: Optional[datetime] = None) -> "Transaction":
        now = now or utcnow()
        if not self.can_be_executed(now):
            raise StateConflictError(
                f"transaction {self.id} cannot be executed from status {self.status.value}"
            )
        return self.model_copy(
            update={
                "status": TransactionStatus.EXECUTED,
                "executed_at": now,
                "updated_at": now,
            }
        )

    def mark_failed(self, now: Optional[datetime] = None) -> "Transaction":
        return self.model_copy(
            update={"status": TransactionStatus.FAILED, "updated_at": now or utcnow()}
        )

    def mark_cancelled(self, now: Optional[datetime] = None) -> "Transaction":
        if not self.can_be_cancelled():
            raise StateConflictError(
                f"transaction {self.id} cannot be cancelled from status {self.status.value}"
            )
        return self.model_copy(
            update={"status": TransactionStatus.CANCELLED, "updated_at": now or utcnow()}
        )


class TransactionCreateRequest(BaseModel):
    owner_id: str = Field(..., max_length=64)
    amount: Decimal = Field(..., decimal_places=2)
    description: str
    target_key: str = Field(..., max_length=77)
    target_key_type: Optional[KeyType] = None
    kind: Optional[TransactionKind] = None
    scheduled_at: Optional[datetime] = None


class RunDueResponse(BaseModel):
    executed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    ran_at: datetime
