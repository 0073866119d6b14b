from wifimap.schemas.network import GeoBounds
from wifimap.services.viewport_cache import ViewportCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def bounds(shift=0.0):
    return GeoBounds(north=56.0 + shift, south=55.0, east=38.0, west=37.0)


def test_key_rounds_bounds_to_four_decimals():
    a = ViewportCache.make_key(GeoBounds(north=56.000001, south=55.0, east=38.0, west=37.0), 100, 0)
    b = ViewportCache.make_key(GeoBounds(north=56.000004, south=55.0, east=38.0, west=37.0), 100, 0)
    assert a == b
    assert ViewportCache.make_key(bounds(), 100, 0) != ViewportCache.make_key(bounds(), 100, 100)


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = ViewportCache(ttl=5.0, clock=clock)
    key = cache.make_key(bounds(), 1000, 0)
    cache.put(key, ["a"])

    clock.now += 4.9
    assert cache.get(key) == ["a"]
    clock.now += 0.1
    assert cache.get(key) is None
    assert len(cache) == 0


def test_oldest_entry_evicted_over_capacity():
    cache = ViewportCache(max_entries=3, clock=FakeClock())
    keys = [cache.make_key(bounds(i), 10, 0) for i in range(4)]
    for i, key in enumerate(keys):
        cache.put(key, [i])

    assert len(cache) == 3
    assert cache.get(keys[0]) is None
    assert cache.get(keys[3]) == [3]


def test_clear():
    cache = ViewportCache(clock=FakeClock())
    cache.put(cache.make_key(bounds(), 10, 0), [])
    cache.clear()
    assert len(cache) == 0
