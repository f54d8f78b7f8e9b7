"""
MockTransferProcessor: a local stand-in for the payment rail.

Every transfer succeeds unless the target key is listed in
``declined_keys``, which lets tests force a decline deterministically.
"""

import asyncio
import random
import time
import uuid
from collections import deque

from pixhub.models.transaction import Transaction
from pixhub.processors.base import TransferProcessor
from pixhub.processors.result import TransferResult, TransferResultStatus


class MockTransferProcessor(TransferProcessor):
    def __init__(
        self,
        name: str = "MockPix",
        latency_range: tuple[float, float] = (0.0, 0.0),
        declined_keys: dict[str, str] | None = None,
        history_size: int = 100,
    ) -> None:
        self.name = name
        self._latency_range = latency_range
        # target_key -> decline_code
        self._declined_keys: dict[str, str] = declined_keys or {}
        # most recent transaction ids, oldest dropped first
        self.sent: deque[str] = deque(maxlen=history_size)

    async def send(self, transaction: Transaction) -> TransferResult:
        start = time.monotonic()
        await asyncio.sleep(random.uniform(*self._latency_range))
        elapsed_ms = (time.monotonic() - start) * 1000
        self.sent.append(transaction.id)

        code = self._declined_keys.get(transaction.target_key)
        if code is not None:
            return TransferResult(
                processor_name=self.name,
                status=TransferResultStatus.DECLINED,
                decline_code=code,
                raw_response={"code": "05", "message": code.replace("_", " ").title()},
                latency_ms=elapsed_ms,
            )

        return TransferResult(
            processor_name=self.name,
            status=TransferResultStatus.SUCCESS,
            end_to_end_id=f"E{uuid.uuid4().hex[:31].upper()}",
            raw_response={"code": "00", "message": "Settled"},
            latency_ms=elapsed_ms,
        )
