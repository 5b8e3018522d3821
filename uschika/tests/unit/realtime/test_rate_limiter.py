"""
Tests for the per-connection message rate limiter.
"""

from uschika.realtime.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = RateLimiter(max_messages=3, window_seconds=60, clock=FakeClock())

        assert [limiter.check_message_rate_limit("c") for _ in range(4)] == [True, True, True, False]

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(max_messages=2, window_seconds=10, clock=clock)
        limiter.check_message_rate_limit("c")
        limiter.check_message_rate_limit("c")
        assert limiter.check_message_rate_limit("c") is False

        clock.now += 10
        assert limiter.check_message_rate_limit("c") is True

    def test_limits_are_per_connection(self):
        limiter = RateLimiter(max_messages=1, window_seconds=60, clock=FakeClock())

        assert limiter.check_message_rate_limit("a") is True
        assert limiter.check_message_rate_limit("b") is True
        assert limiter.check_message_rate_limit("a") is False

    def test_info_and_removal(self):
        limiter = RateLimiter(max_messages=5, window_seconds=60, clock=FakeClock())
        limiter.check_message_rate_limit("c")
        limiter.check_message_rate_limit("c")

        info = limiter.get_message_rate_limit_info("c")
        assert info["attempts"] == 2
        assert info["attempts_remaining"] == 3
        assert info["reset_time"] == 1060.0

        limiter.remove_connection_message_data("c")
        assert limiter.get_message_rate_limit_info("c")["attempts"] == 0
        assert "c" not in limiter.message_attempts
