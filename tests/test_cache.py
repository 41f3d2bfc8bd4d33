from tradecraft.infrastructure.cache import InMemoryCache


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_returns_stored_object_within_ttl():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=60, clock=clock)
    value = {"price": 1.0}
    cache.set("k", value)
    clock.now += 59.9
    assert cache.get("k") is value


def test_entry_expires_at_ttl_boundary():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=60, clock=clock)
    cache.set("k", "v")
    clock.now += 60
    assert cache.get("k") is None
    assert len(cache) == 0


def test_per_item_ttl_overrides_default():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=60, clock=clock)
    cache.set("short", "v", ttl_seconds=5)
    cache.set("long", "v")
    clock.now += 10
    assert cache.get("short") is None
    assert cache.get("long") == "v"


def test_set_overwrites_and_restarts_ttl():
    clock = FakeClock()
    cache = InMemoryCache(ttl_seconds=60, clock=clock)
    cache.set("k", "old")
    clock.now += 50
    cache.set("k", "new")
    clock.now += 50
    assert cache.get("k") == "new"


def test_instances_do_not_share_storage():
    a = InMemoryCache()
    b = InMemoryCache()
    a.set("k", "v")
    assert b.get("k") is None


def test_missing_key_returns_none():
    assert InMemoryCache().get("nope") is None
