from __future__ import annotations

from types import SimpleNamespace

from quizmatch.ratelimit import InMemoryRateLimiter, get_client_ip, submission_key


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _request(headers=None, host="10.0.0.1"):
    client = SimpleNamespace(host=host) if host else None
    return SimpleNamespace(headers=headers or {}, client=client)


def test_allows_up_to_max_then_blocks():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60, clock=clock)

    assert [limiter.allow("k") for _ in range(4)] == [True, True, True, False]
    assert limiter.remaining("k") == 0


def test_window_resets_after_expiry():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=clock)
    assert limiter.allow("k")
    assert not limiter.allow("k")

    clock.advance(30)
    assert not limiter.allow("k")
    assert limiter.retry_after("k") == 30

    clock.advance(31)
    assert limiter.allow("k")


def test_keys_are_independent():
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())

    assert limiter.allow(submission_key("quiz-1", "1.1.1.1"))
    assert limiter.allow(submission_key("quiz-1", "2.2.2.2"))
    assert limiter.allow(submission_key("quiz-2", "1.1.1.1"))
    assert not limiter.allow(submission_key("quiz-1", "1.1.1.1"))


def test_expired_windows_are_cleaned_up():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60, clock=clock)
    limiter.allow("old")

    clock.advance(400)
    limiter.allow("new")

    assert "old" not in limiter._windows
    assert "new" in limiter._windows


def test_headers():
    limiter = InMemoryRateLimiter(max_requests=10, window_seconds=60, clock=FakeClock())
    limiter.allow("k")

    assert limiter.headers("k") == {"X-RateLimit-Limit": "10", "X-RateLimit-Remaining": "9"}
    assert limiter.remaining("unseen") == 10
    assert limiter.retry_after("unseen") == 0


def test_client_ip_header_precedence():
    assert get_client_ip(_request({"cf-connecting-ip": "1.1.1.1", "x-real-ip": "2.2.2.2"})) == "1.1.1.1"
    assert get_client_ip(_request({"x-forwarded-for": "3.3.3.3, 10.0.0.2"})) == "3.3.3.3"
    assert get_client_ip(_request({"x-client-ip": "4.4.4.4"})) == "4.4.4.4"


def test_client_ip_falls_back_to_peer():
    assert get_client_ip(_request()) == "10.0.0.1"
    assert get_client_ip(_request({"x-forwarded-for": " "})) == "10.0.0.1"
    assert get_client_ip(_request(host=None)) == "unknown"
