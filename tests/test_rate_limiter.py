from print_analytics.core.rate_limiter import RateLimiter


def test_allows_up_to_max_calls_per_window():
    limiter = RateLimiter("auth", max_calls=3, window_seconds=900)

    assert all(limiter.is_allowed("10.0.0.1", now=1000 + i) for i in range(3))
    assert not limiter.is_allowed("10.0.0.1", now=1010)
    assert limiter.get_remaining_calls("10.0.0.1", now=1010) == 0


def test_keys_are_independent():
    limiter = RateLimiter("api", max_calls=1, window_seconds=60)

    assert limiter.is_allowed("a", now=0)
    assert limiter.is_allowed("b", now=0)
    assert not limiter.is_allowed("a", now=1)


def test_window_slides():
    limiter = RateLimiter("api", max_calls=2, window_seconds=60)
    limiter.is_allowed("ip", now=0)
    limiter.is_allowed("ip", now=30)

    assert not limiter.is_allowed("ip", now=59)
    assert limiter.retry_after("ip", now=59) == 1
    assert limiter.is_allowed("ip", now=61)


def test_reset_limit():
    limiter = RateLimiter("api", max_calls=1, window_seconds=60)
    limiter.is_allowed("ip", now=0)

    limiter.reset_limit("ip")
    assert limiter.is_allowed("ip", now=1)

    limiter.reset_limit()
    assert limiter.limits == {}


def test_idle_clients_are_forgotten():
    limiter = RateLimiter("api", max_calls=5, window_seconds=60)
    for index in range(100):
        limiter.is_allowed(f"10.0.0.{index}", now=0)
    assert len(limiter.limits) == 100

    assert limiter.get_remaining_calls("10.0.0.1", now=61) == 5
    assert "10.0.0.1" not in limiter.limits

    # A new client sweeps out everyone whose window has passed
    limiter.is_allowed("10.0.0.200", now=120)
    assert list(limiter.limits) == ["10.0.0.200"]


def test_checking_unknown_client_stores_nothing():
    limiter = RateLimiter("api", max_calls=1, window_seconds=60)

    assert limiter.get_remaining_calls("ip", now=0) == 1
    assert limiter.retry_after("ip", now=0) == 0
    assert limiter.limits == {}
