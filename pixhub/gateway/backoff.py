import asyncio
import random


def backoff_delay(attempt: int, base: float = 0.5, cap: float = 10.0, jitter: bool = True) -> float:
    """
    Full jitter exponential backoff.
    delay = random(0, min(cap, base * 2^attempt))
    """
    delay = min(cap, base * (2 ** attempt))
    if jitter:
        delay = random.uniform(0, delay)
    return delay


async def sleep_with_backoff(attempt: int, base: float = 0.5, cap: float = 10.0) -> float:
    """Sleep for the backoff delay of *attempt* and return the delay in seconds."""
    delay = backoff_delay(attempt, base=base, cap=cap)
    await asyncio.sleep(delay)
    return delay
