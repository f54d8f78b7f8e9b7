from enum import Enum


class KeyType(str, Enum):
    NATIONAL_ID = "NATIONAL_ID"  # CPF
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    RANDOM = "RANDOM"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SCHEDULED = "SCHEDULED"
    EXECUTED = "EXECUTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset(
    {TransactionStatus.EXECUTED, TransactionStatus.FAILED, TransactionStatus.CANCELLED}
)


class TransactionKind(str, Enum):
    IMMEDIATE = "IMMEDIATE"
    SCHEDULED = "SCHEDULED"
    AUTOMATIC = "AUTOMATIC"  # recurring trigger, scheduled_at may be in the past


class ChargeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REMOVED_BY_PAYEE = "REMOVED_BY_PAYEE"
    REMOVED_BY_PSP = "REMOVED_BY_PSP"
    EXPIRED = "EXPIRED"
