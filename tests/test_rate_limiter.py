"""Unit tests for the per-client fixed-window rate limiter."""

from pixhub.middleware.rate_limiter import RateLimiter


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_the_limit_then_blocks():
    limiter = RateLimiter(max_requests=3, window_seconds=60, clock=Clock())

    assert [limiter.hit("10.0.0.1")[0] for _ in range(4)] == [True, True, True, False]


def test_clients_are_counted_separately():
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=Clock())

    assert limiter.hit("10.0.0.1")[0] is True
    assert limiter.hit("10.0.0.2")[0] is True
    assert limiter.hit("10.0.0.1")[0] is False


def test_window_resets_after_it_elapses():
    clock = Clock()
    limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
    limiter.hit("10.0.0.1")

    clock.now += 20
    allowed, retry_after = limiter.hit("10.0.0.1")
    assert allowed is False
    assert retry_after == 40

    clock.now += 40
    assert limiter.hit("10.0.0.1")[0] is True
