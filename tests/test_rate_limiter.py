import asyncio

from danmu_gateway.rate_limiter import WINDOW_MS, Admission, RateLimiter

NOW = 1_700_000_000_000


async def test_nth_call_admitted_and_next_rejected():
    limiter = RateLimiter(3)
    results = [await limiter.admit("1.1.1.1", NOW + i) for i in range(4)]
    assert results == [Admission.ADMITTED] * 3 + [Admission.REJECTED]


async def test_rejected_call_is_not_recorded():
    limiter = RateLimiter(1)
    assert await limiter.admit("c", NOW) is Admission.ADMITTED
    assert await limiter.admit("c", NOW + 10) is Admission.REJECTED
    assert limiter.history_for("c") == [NOW]


async def test_admitted_again_after_window():
    limiter = RateLimiter(2)
    assert await limiter.admit("c", NOW) is Admission.ADMITTED
    assert await limiter.admit("c", NOW + 1) is Admission.ADMITTED
    assert await limiter.admit("c", NOW + 2) is Admission.REJECTED
    assert await limiter.admit("c", NOW + 60_001) is Admission.ADMITTED


async def test_request_exactly_one_window_ago_no_longer_counts():
    limiter = RateLimiter(1)
    assert await limiter.admit("c", NOW) is Admission.ADMITTED
    assert await limiter.admit("c", NOW + WINDOW_MS - 1) is Admission.REJECTED
    assert await limiter.admit("c", NOW + WINDOW_MS) is Admission.ADMITTED


async def test_sliding_window_counts_trailing_requests_only():
    limiter = RateLimiter(2)
    assert await limiter.admit("c", NOW) is Admission.ADMITTED
    assert await limiter.admit("c", NOW + 30_000) is Admission.ADMITTED
    # 第一个请求过期，第二个仍在窗口内
    assert await limiter.admit("c", NOW + 60_000) is Admission.ADMITTED
    assert await limiter.admit("c", NOW + 60_500) is Admission.REJECTED
    assert limiter.history_for("c") == [NOW + 30_000, NOW + 60_000]


async def test_clients_are_limited_independently():
    limiter = RateLimiter(1)
    assert await limiter.admit("a", NOW) is Admission.ADMITTED
    assert await limiter.admit("a", NOW) is Admission.REJECTED
    assert await limiter.admit("b", NOW) is Admission.ADMITTED
    assert await limiter.admit("unknown", NOW) is Admission.ADMITTED
    assert await limiter.admit("unknown", NOW) is Admission.REJECTED


async def test_disabled_limiter_always_admits_without_recording():
    for capacity in (0, -5):
        limiter = RateLimiter(capacity)
        assert not limiter.enabled
        for i in range(100):
            assert await limiter.admit("c", NOW) is Admission.ADMITTED
        assert limiter.history_for("c") == []
        assert limiter.get_status()["trackedClients"] == 0


async def test_concurrent_admits_never_exceed_capacity():
    limiter = RateLimiter(5)
    results = await asyncio.gather(*(limiter.admit("c", NOW) for _ in range(50)))
    assert results.count(Admission.ADMITTED) == 5
    assert len(limiter.history_for("c")) == 5


async def test_sweep_forgets_idle_clients():
    limiter = RateLimiter(3)
    await limiter.admit("old", NOW)
    await limiter.admit("fresh", NOW + 50_000)

    removed = limiter.sweep(NOW + 70_000)

    assert removed == 1
    assert limiter.history_for("old") == []
    assert limiter.history_for("fresh") == [NOW + 50_000]
    assert limiter.get_status() == {"enabled": True, "maxRequests": 3, "windowSeconds": 60, "trackedClients": 1}
