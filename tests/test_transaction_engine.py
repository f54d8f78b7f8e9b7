"""Unit tests for the transaction lifecycle and the execution runner.

No HTTP server is needed: the engine runs against the in-memory stores and
transfers go through MockTransferProcessor or small test doubles.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from pixhub.config import Settings
from pixhub.engine.execution_runner import ExecutionRunner
from pixhub.engine.owner_service import OwnerService
from pixhub.engine.transaction_engine import TransactionEngine
from pixhub.errors import NotFoundError, StateConflictError, ValidationError
from pixhub.models.enums import KeyType, TransactionKind, TransactionStatus
from pixhub.models.transaction import Transaction
from pixhub.processors.base import TransferProcessor
from pixhub.processors.mock_processor import MockTransferProcessor
from pixhub.processors.result import TransferResult, TransferResultStatus
from pixhub.stores.memory import InMemoryOwnerDirectory, InMemoryTransactionStore

VALID_CPF = "52998224725"
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _engine() -> tuple[TransactionEngine, str]:
    owners = InMemoryOwnerDirectory()
    owner = await OwnerService(owners).create("Alice", "alice@example.com", VALID_CPF)
    return TransactionEngine(owners, InMemoryTransactionStore()), owner.id


async def _create(engine: TransactionEngine, owner_id: str, **overrides) -> Transaction:
    params = dict(
        owner_id=owner_id,
        amount=Decimal("10.00"),
        description="rent share",
        target_key="bob@example.com",
        target_key_type=KeyType.EMAIL,
        kind=TransactionKind.IMMEDIATE,
        scheduled_at=None,
        now=NOW,
    )
    params.update(overrides)
    return await engine.create(**params)


def _transaction(**overrides) -> Transaction:
    fields = dict(
        owner_id="o-1",
        amount=Decimal("10.00"),
        description="rent share",
        target_key="bob@example.com",
        target_key_type=KeyType.EMAIL,
        kind=TransactionKind.IMMEDIATE,
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return Transaction(**fields)


class SlowProcessor(TransferProcessor):
    """Test double that never answers within the transfer timeout."""

    name = "Slow"

    async def send(self, transaction: Transaction) -> TransferResult:
        await asyncio.sleep(60)
        raise AssertionError("unreachable")


class CancellingProcessor(TransferProcessor):
    """Test double whose transfer races with a cancellation of the same record."""

    name = "Cancelling"

    def __init__(self, engine: TransactionEngine, outcome: TransferResultStatus):
        self._engine = engine
        self._outcome = outcome

    async def send(self, transaction: Transaction) -> TransferResult:
        await self._engine.cancel(transaction.id, NOW)
        return TransferResult(processor_name=self.name, status=self._outcome)


def _runner(engine: TransactionEngine, processor: TransferProcessor | None = None) -> ExecutionRunner:
    return ExecutionRunner(
        engine,
        processor or MockTransferProcessor(),
        Settings(TRANSFER_TIMEOUT_SECONDS=0.01),
    )


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def test_create_immediate_starts_pending():
    engine, owner_id = await _engine()
    txn = await _create(engine, owner_id)

    assert txn.status == TransactionStatus.PENDING
    assert txn.kind == TransactionKind.IMMEDIATE
    assert txn.scheduled_at is None
    assert txn.executed_at is None
    assert (await engine.get(txn.id)) == txn


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"owner_id": ""}, "owner id"),
        ({"amount": Decimal("0")}, "greater than zero"),
        ({"amount": Decimal("-1.00")}, "greater than zero"),
        ({"description": "  ab  "}, "at least 3"),
        ({"target_key": ""}, "PIX key is required"),
        ({"target_key_type": None}, "key type is required"),
        ({"kind": None}, "kind is required"),
    ],
)
async def test_create_rejects_bad_fields(overrides, message):
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match=message):
        await _create(engine, **{"owner_id": owner_id, **overrides})


async def test_create_for_unknown_owner():
    engine, _ = await _engine()
    with pytest.raises(NotFoundError):
        await _create(engine, "no-such-owner")


async def test_create_rejects_invalid_target_key_with_type_message():
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match="CPF invalid"):
        await _create(
            engine, owner_id, target_key="11111111111", target_key_type=KeyType.NATIONAL_ID
        )


async def test_immediate_with_scheduled_at_is_rejected():
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match="immediate"):
        await _create(engine, owner_id, scheduled_at=NOW + timedelta(days=1))


async def test_scheduled_in_the_past_is_rejected():
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match="future"):
        await _create(
            engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=NOW - timedelta(seconds=1)
        )


async def test_scheduled_at_exactly_now_is_rejected():
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match="future"):
        await _create(engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=NOW)


async def test_scheduled_one_second_ahead_is_accepted_and_pending():
    engine, owner_id = await _engine()
    txn = await _create(
        engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=NOW + timedelta(seconds=1)
    )
    assert txn.status == TransactionStatus.PENDING
    assert txn.is_scheduled()


async def test_scheduled_without_date_is_rejected():
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match="requires a scheduled date"):
        await _create(engine, owner_id, kind=TransactionKind.SCHEDULED)


async def test_automatic_requires_date_but_accepts_past():
    engine, owner_id = await _engine()
    with pytest.raises(ValidationError, match="requires a scheduled date"):
        await _create(engine, owner_id, kind=TransactionKind.AUTOMATIC)

    txn = await _create(
        engine, owner_id, kind=TransactionKind.AUTOMATIC, scheduled_at=NOW - timedelta(days=30)
    )
    assert txn.is_automatic()
    assert txn.status == TransactionStatus.PENDING


async def test_naive_scheduled_at_is_read_as_utc():
    engine, owner_id = await _engine()
    naive = (NOW + timedelta(hours=1)).replace(tzinfo=None)
    txn = await _create(engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=naive)
    assert txn.scheduled_at == NOW + timedelta(hours=1)


# ---------------------------------------------------------------------------
# Value transitions
# ---------------------------------------------------------------------------

def test_mark_executed_from_pending():
    txn = _transaction()
    executed = txn.mark_executed(NOW)

    assert executed.status == TransactionStatus.EXECUTED
    assert executed.executed_at == NOW
    assert executed.updated_at == NOW
    assert txn.status == TransactionStatus.PENDING  # source instance untouched
    assert executed.can_be_executed(NOW) is False


def test_mark_executed_before_schedule_is_a_conflict():
    txn = _transaction(kind=TransactionKind.SCHEDULED, scheduled_at=NOW + timedelta(hours=1))
    assert txn.can_be_executed(NOW) is False
    with pytest.raises(StateConflictError):
        txn.mark_executed(NOW)
    assert txn.can_be_executed(NOW + timedelta(hours=1)) is True


def test_mark_failed_keeps_executed_at_and_is_unguarded():
    executed = _transaction().mark_executed(NOW)
    later = NOW + timedelta(minutes=5)
    failed = executed.mark_failed(later)

    assert failed.status == TransactionStatus.FAILED
    assert failed.executed_at == NOW
    assert failed.updated_at == later


def test_cancel_rules():
    txn = _transaction()
    assert txn.can_be_cancelled()
    assert txn.mark_cancelled(NOW).status == TransactionStatus.CANCELLED

    status_scheduled = _transaction(status=TransactionStatus.SCHEDULED)
    assert status_scheduled.can_be_cancelled()

    executed = txn.mark_executed(NOW)
    assert not executed.can_be_cancelled()
    with pytest.raises(StateConflictError):
        executed.mark_cancelled(NOW)


def test_terminal_states_are_not_executable():
    for status in (TransactionStatus.EXECUTED, TransactionStatus.FAILED, TransactionStatus.CANCELLED):
        txn = _transaction(status=status)
        assert txn.is_terminal
        assert not txn.can_be_executed(NOW)


def test_transaction_is_immutable():
    txn = _transaction()
    with pytest.raises(Exception):
        txn.status = TransactionStatus.EXECUTED


def test_candidate_predicates():
    due_scheduled = _transaction(kind=TransactionKind.SCHEDULED, scheduled_at=NOW - timedelta(minutes=1))
    due_automatic = _transaction(kind=TransactionKind.AUTOMATIC, scheduled_at=NOW)
    future = _transaction(kind=TransactionKind.SCHEDULED, scheduled_at=NOW + timedelta(minutes=1))

    assert due_scheduled.is_scheduled_candidate(NOW)
    assert not due_scheduled.is_automatic_candidate(NOW)
    assert due_automatic.is_automatic_candidate(NOW)
    assert not future.is_scheduled_candidate(NOW)
    assert not due_scheduled.mark_cancelled(NOW).is_scheduled_candidate(NOW)
    assert not _transaction().is_scheduled_candidate(NOW)


# ---------------------------------------------------------------------------
# Persisted transitions
# ---------------------------------------------------------------------------

async def test_engine_execute_cancel_fail():
    engine, owner_id = await _engine()
    a = await _create(engine, owner_id)
    b = await _create(engine, owner_id)

    executed = await engine.execute(a.id, NOW)
    assert executed.status == TransactionStatus.EXECUTED
    assert (await engine.get(a.id)).executed_at == NOW

    cancelled = await engine.cancel(b.id, NOW)
    assert cancelled.status == TransactionStatus.CANCELLED

    with pytest.raises(StateConflictError):
        await engine.cancel(a.id, NOW)

    failed = await engine.fail(a.id, NOW)
    assert failed.status == TransactionStatus.FAILED

    assert [t.id for t in await engine.list_by_status(TransactionStatus.FAILED)] == [a.id]
    assert {t.id for t in await engine.list_by_owner(owner_id)} == {a.id, b.id}


async def test_transitions_on_unknown_transaction():
    engine, _ = await _engine()
    for op in (engine.execute, engine.fail, engine.cancel, engine.get):
        with pytest.raises(NotFoundError):
            await op("missing")


async def test_due_for_execution_is_ordered_by_scheduled_at():
    engine, owner_id = await _engine()
    auto_old = await _create(
        engine, owner_id, kind=TransactionKind.AUTOMATIC, scheduled_at=NOW - timedelta(days=2)
    )
    sched = await _create(
        engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=NOW + timedelta(hours=1)
    )
    auto_recent = await _create(
        engine, owner_id, kind=TransactionKind.AUTOMATIC, scheduled_at=NOW - timedelta(hours=1)
    )
    await _create(engine, owner_id)  # immediate, never a batch candidate

    later = NOW + timedelta(hours=2)
    due = await engine.due_for_execution(later)
    assert [t.id for t in due] == [auto_old.id, auto_recent.id, sched.id]

    assert [t.id for t in await engine.due_for_execution(NOW)] == [auto_old.id, auto_recent.id]


# ---------------------------------------------------------------------------
# Execution runner
# ---------------------------------------------------------------------------

async def test_execute_now_success():
    engine, owner_id = await _engine()
    txn = await _create(engine, owner_id)
    processor = MockTransferProcessor()

    executed = await _runner(engine, processor).execute_now(txn.id, NOW)

    assert executed.status == TransactionStatus.EXECUTED
    assert executed.executed_at == NOW
    assert list(processor.sent) == [txn.id]


async def test_execute_now_declined_marks_failed():
    engine, owner_id = await _engine()
    txn = await _create(engine, owner_id)
    processor = MockTransferProcessor(declined_keys={"bob@example.com": "account_closed"})

    failed = await _runner(engine, processor).execute_now(txn.id, NOW)

    assert failed.status == TransactionStatus.FAILED
    assert failed.executed_at is None


async def test_execute_now_timeout_marks_failed():
    engine, owner_id = await _engine()
    txn = await _create(engine, owner_id)

    failed = await _runner(engine, SlowProcessor()).execute_now(txn.id, NOW)
    assert failed.status == TransactionStatus.FAILED


async def test_execute_now_not_due_is_a_conflict():
    engine, owner_id = await _engine()
    txn = await _create(
        engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=NOW + timedelta(days=1)
    )
    processor = MockTransferProcessor()
    with pytest.raises(StateConflictError):
        await _runner(engine, processor).execute_now(txn.id, NOW)
    assert list(processor.sent) == []


async def test_run_due_executes_candidates_and_records_failures():
    engine, owner_id = await _engine()
    ok = await _create(
        engine, owner_id, kind=TransactionKind.AUTOMATIC, scheduled_at=NOW - timedelta(hours=2)
    )
    declined = await _create(
        engine,
        owner_id,
        kind=TransactionKind.AUTOMATIC,
        scheduled_at=NOW - timedelta(hours=1),
        target_key="11987654321",
        target_key_type=KeyType.PHONE,
    )
    not_due = await _create(
        engine, owner_id, kind=TransactionKind.SCHEDULED, scheduled_at=NOW + timedelta(days=1)
    )
    processor = MockTransferProcessor(declined_keys={"11987654321": "limit_exceeded"})

    summary = await _runner(engine, processor).run_due(NOW)

    assert summary.executed == [ok.id]
    assert summary.failed == [declined.id]
    assert summary.skipped == []
    assert list(processor.sent) == [ok.id, declined.id]
    assert (await engine.get(not_due.id)).status == TransactionStatus.PENDING

    # a second run finds nothing left to do
    again = await _runner(engine, processor).run_due(NOW)
    assert again.executed == [] and again.failed == []


@pytest.mark.parametrize(
    "outcome", [TransferResultStatus.DECLINED, TransferResultStatus.SUCCESS]
)
async def test_cancel_during_transfer_is_not_overwritten(outcome):
    engine, owner_id = await _engine()
    txn = await _create(engine, owner_id)

    with pytest.raises(StateConflictError, match="in flight"):
        await _runner(engine, CancellingProcessor(engine, outcome)).execute_now(txn.id, NOW)

    assert (await engine.get(txn.id)).status == TransactionStatus.CANCELLED


async def test_run_due_skips_transaction_cancelled_during_transfer():
    engine, owner_id = await _engine()
    txn = await _create(
        engine, owner_id, kind=TransactionKind.AUTOMATIC, scheduled_at=NOW - timedelta(hours=1)
    )
    processor = CancellingProcessor(engine, TransferResultStatus.DECLINED)

    summary = await _runner(engine, processor).run_due(NOW)

    assert summary.skipped == [txn.id]
    assert summary.failed == []
    assert (await engine.get(txn.id)).status == TransactionStatus.CANCELLED


async def test_mock_processor_history_is_bounded():
    engine, owner_id = await _engine()
    processor = MockTransferProcessor(history_size=2)
    runner = _runner(engine, processor)

    ids = []
    for _ in range(3):
        txn = await _create(engine, owner_id)
        await runner.execute_now(txn.id, NOW)
        ids.append(txn.id)

    assert list(processor.sent) == ids[1:]
