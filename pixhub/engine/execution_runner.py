import asyncio
import logging
from datetime import datetime
from typing import Optional

from pixhub.config import Settings
from pixhub.engine.transaction_engine import TransactionEngine
from pixhub.errors import StateConflictError
from pixhub.models.base import utcnow
from pixhub.models.enums import TransactionStatus
from pixhub.models.transaction import RunDueResponse, Transaction
from pixhub.processors.base import TransferProcessor
from pixhub.processors.result import TransferResult, TransferResultStatus

logger = logging.getLogger(__name__)


class ExecutionRunner:
    """
    Sends executable transactions through the transfer processor and records
    the outcome.

    Outcome routing:
      SUCCESS          -> mark EXECUTED
      DECLINED/TIMEOUT -> mark FAILED
    A transaction that is no longer executable when its turn comes (for
    example cancelled in the meantime) is skipped, not failed. A status change
    that lands while the transfer is in flight is never overwritten: the
    outcome is logged and a StateConflictError is raised.
    """

    def __init__(self, engine: TransactionEngine, processor: TransferProcessor, settings: Settings):
        self._engine = engine
        self._processor = processor
        self._settings = settings

    async def execute_now(self, transaction_id: str, now: Optional[datetime] = None) -> Transaction:
        now = now or utcnow()
        transaction = await self._engine.get(transaction_id)
        if not transaction.can_be_executed(now):
            raise StateConflictError(
                f"transaction {transaction_id} cannot be executed "
                f"(status={transaction.status.value}, scheduled_at={transaction.scheduled_at})"
            )
        return await self._dispatch(transaction, now)

    async def run_due(self, now: Optional[datetime] = None) -> RunDueResponse:
        now = now or utcnow()
        candidates = await self._engine.due_for_execution(now)
        logger.info(f"Execution run at {now.isoformat()}: {len(candidates)} due transaction(s)")

        summary = RunDueResponse(ran_at=now)
        for candidate in candidates:
            try:
                current = await self._engine.get(candidate.id)
                if not current.can_be_executed(now):
                    summary.skipped.append(candidate.id)
                    continue
                result = await self._dispatch(current, now)
            except StateConflictError as exc:
                logger.warning(f"[TXN {candidate.id}] Skipped: {exc.message}")
                summary.skipped.append(candidate.id)
                continue

            if result.status == TransactionStatus.EXECUTED:
                summary.executed.append(result.id)
            else:
                summary.failed.append(result.id)

        logger.info(
            f"Execution run finished: executed={len(summary.executed)} "
            f"failed={len(summary.failed)} skipped={len(summary.skipped)}"
        )
        return summary

    async def _send(self, transaction: Transaction) -> TransferResult:
        try:
            return await asyncio.wait_for(
                self._processor.send(transaction),
                timeout=self._settings.TRANSFER_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"[TXN {transaction.id}] [{self._processor.name}] "
                f"Timed out after {self._settings.TRANSFER_TIMEOUT_SECONDS}s"
            )
            return TransferResult(
                processor_name=self._processor.name,
                status=TransferResultStatus.TIMEOUT,
                latency_ms=self._settings.TRANSFER_TIMEOUT_SECONDS * 1000,
            )

    async def _dispatch(self, transaction: Transaction, now: datetime) -> Transaction:
        logger.info(
            f"[TXN {transaction.id}] Sending {transaction.amount} to "
            f"{transaction.target_key_type.value} key via {self._processor.name}"
        )
        result = await self._send(transaction)
        logger.info(
            f"[TXN {transaction.id}] [{self._processor.name}] status={result.status.value} "
            f"decline_code={result.decline_code} latency={result.latency_ms:.1f}ms"
        )

        # the record may have moved on while the transfer was in flight
        current = await self._engine.get(transaction.id)
        if current.status != TransactionStatus.PENDING:
            if result.status == TransferResultStatus.SUCCESS:
                logger.error(
                    f"[TXN {transaction.id}] Transfer {result.end_to_end_id} settled but "
                    f"status is now {current.status.value}; status left unchanged"
                )
            else:
                logger.warning(
                    f"[TXN {transaction.id}] Transfer {result.status.value} after status "
                    f"became {current.status.value}; status left unchanged"
                )
            raise StateConflictError(
                f"transaction {transaction.id} changed to {current.status.value} "
                f"while its transfer was in flight"
            )

        if result.status == TransferResultStatus.SUCCESS:
            return await self._engine.execute(transaction.id, now)
        return await self._engine.fail(transaction.id, now)
