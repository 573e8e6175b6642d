from danmu_gateway.cache import FIRST_EPISODE_ID, MemoryCommentCache, MemoryUrlIndex


class ManualClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def test_memory_cache_expires_after_ttl():
    clock = ManualClock()
    cache = MemoryCommentCache(ttl_minutes=1, clock=clock)
    await cache.store("u", [{"p": "1,1,1", "m": "a"}])

    clock.now += 59
    assert await cache.lookup("u") == [{"p": "1,1,1", "m": "a"}]
    clock.now += 1
    assert await cache.lookup("u") is None


async def test_memory_cache_disabled_with_zero_ttl():
    cache = MemoryCommentCache(ttl_minutes=0)
    await cache.store("u", [])
    assert await cache.lookup("u") is None


async def test_clear_expired_removes_only_stale_entries():
    clock = ManualClock()
    cache = MemoryCommentCache(ttl_minutes=1, clock=clock)
    await cache.store("old", [])
    clock.now += 30
    await cache.store("new", [])
    clock.now += 40

    assert await cache.clear_expired() == 1
    assert await cache.lookup("new") == []


def test_url_index_assigns_sequential_ids_and_reuses_existing():
    index = MemoryUrlIndex()
    first = index.register("https://a")
    second = index.register("https://b")

    assert first == FIRST_EPISODE_ID
    assert second == FIRST_EPISODE_ID + 1
    assert index.register("https://a") == first
    assert index.resolve(second) == "https://b"
    assert index.resolve(1) is None


def test_url_index_evicts_oldest_entries():
    index = MemoryUrlIndex(max_entries=2)
    ids = [index.register(f"https://{i}") for i in range(3)]

    assert index.resolve(ids[0]) is None
    assert index.resolve(ids[2]) == "https://2"
    # 被淘汰的 URL 再次登记时分配新的 ID
    assert index.register("https://0") not in ids
