from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.schemas.location_schemas import Location, LocationSource
from app.services.weather_cache import WeatherCache, make_cache_key


def loc(lat: float, lon: float) -> Location:
    return Location(latitude=lat, longitude=lon, source=LocationSource.MANUAL)


def payload(name: str) -> dict:
    return {"name": name, "source": "api"}


def test_cache_key_rounds_to_four_decimals():
    assert make_cache_key(37.774912345, -122.419412345) == "37.7749,-122.4194"
    assert make_cache_key(37.77491, -122.41941) == "37.7749,-122.4194"


def test_cache_key_normalises_negative_zero():
    assert make_cache_key(-0.00001, 0.00001) == "0.0000,0.0000"


def test_cache_key_rejects_non_finite():
    assert make_cache_key(float("nan"), 1.0) is None
    assert make_cache_key(1.0, float("inf")) is None
    assert make_cache_key(None, 1.0) is None


def test_rounded_coordinates_share_an_entry(clock):
    cache = WeatherCache(clock=clock)
    cache.set(loc(37.774912345, -122.419412345), payload("sf"))

    hit = cache.get(loc(37.77491, -122.41941))

    assert hit is not None
    assert hit["name"] == "sf"


def test_get_marks_copy_as_cache_and_keeps_stored_original(clock):
    cache = WeatherCache(clock=clock)
    original = payload("sf")
    cache.set(loc(1, 1), original)

    first = cache.get(loc(1, 1))
    second = cache.get(loc(1, 1))

    assert first["source"] == "cache"
    assert second["source"] == "cache"
    assert first is not original
    assert original["source"] == "api"


def test_opaque_payload_is_returned_as_is(clock):
    cache = WeatherCache(clock=clock)
    stored = SimpleNamespace()  # 既不是 dict 也不是 BaseModel
    cache.set(loc(2, 2), stored)
    assert cache.get(loc(2, 2)) is stored


def test_lru_evicts_least_recently_touched_key(clock):
    cache = WeatherCache(max_entries=3, clock=clock)
    cache.set(loc(1, 1), payload("a"))
    cache.set(loc(2, 2), payload("b"))
    cache.set(loc(3, 3), payload("c"))

    cache.set(loc(4, 4), payload("d"))

    assert cache.size == 3
    assert cache.get(loc(1, 1)) is None
    for p in (loc(2, 2), loc(3, 3), loc(4, 4)):
        assert cache.get(p) is not None


def test_get_protects_entry_from_eviction(clock):
    cache = WeatherCache(max_entries=3, clock=clock)
    cache.set(loc(1, 1), payload("a"))
    cache.set(loc(2, 2), payload("b"))
    cache.set(loc(3, 3), payload("c"))

    assert cache.get(loc(1, 1)) is not None
    cache.set(loc(4, 4), payload("d"))

    assert cache.has(loc(1, 1))
    assert not cache.has(loc(2, 2))


def test_overwrite_refreshes_recency_without_eviction(clock):
    cache = WeatherCache(max_entries=2, clock=clock)
    cache.set(loc(1, 1), payload("a"))
    cache.set(loc(2, 2), payload("b"))

    cache.set(loc(1, 1), payload("a2"))
    assert cache.size == 2

    cache.set(loc(3, 3), payload("c"))
    assert cache.get(loc(1, 1))["name"] == "a2"
    assert cache.get(loc(2, 2)) is None


def test_has_does_not_promote(clock):
    cache = WeatherCache(max_entries=2, clock=clock)
    cache.set(loc(1, 1), payload("a"))
    cache.set(loc(2, 2), payload("b"))

    assert cache.has(loc(1, 1))
    cache.set(loc(3, 3), payload("c"))

    assert not cache.has(loc(1, 1))
    assert cache.has(loc(2, 2))


def test_expired_entry_is_absent_and_removed_by_get(clock):
    cache = WeatherCache(ttl=600, clock=clock)
    cache.set(loc(1, 1), payload("a"))

    clock.advance(600)  # expires_at == now 视为过期

    assert cache.size == 1
    assert cache.get(loc(1, 1)) is None
    assert cache.size == 0


def test_expired_entry_is_absent_and_removed_by_has(clock):
    cache = WeatherCache(ttl=60, clock=clock)
    cache.set(loc(1, 1), payload("a"))

    clock.advance(59.9)
    assert cache.has(loc(1, 1))

    clock.advance(1)
    assert not cache.has(loc(1, 1))
    assert cache.size == 0


def test_expired_entries_stay_until_touched(clock):
    cache = WeatherCache(max_entries=5, ttl=60, clock=clock)
    cache.set(loc(1, 1), payload("a"))
    cache.set(loc(2, 2), payload("b"))
    clock.advance(120)

    assert cache.get_stats()["size"] == 2


def test_disabled_cache_bypasses_storage(clock):
    cache = WeatherCache(enabled=False, clock=clock)
    cache.set(loc(1, 1), payload("a"))

    assert cache.get(loc(1, 1)) is None
    assert not cache.has(loc(1, 1))
    assert cache.get_stats()["size"] == 0

    # 之后再打开也看不到禁用期间的写入
    cache.enabled = True
    assert cache.get(loc(1, 1)) is None


def test_clear_ignores_enabled_flag(clock):
    cache = WeatherCache(clock=clock)
    cache.set(loc(1, 1), payload("a"))
    cache.enabled = False

    cache.clear()

    assert cache.size == 0


def test_malformed_coordinates_degrade_to_miss(clock):
    cache = WeatherCache(clock=clock)
    bad = SimpleNamespace(latitude=float("nan"), longitude=1.0)

    cache.set(bad, payload("a"))

    assert cache.get(bad) is None
    assert not cache.has(bad)
    assert cache.size == 0


def test_stats_are_read_only(clock):
    cache = WeatherCache(max_entries=7, ttl=120, clock=clock)
    cache.set(loc(1, 1), payload("a"))

    assert cache.get_stats() == {"size": 1, "maxEntries": 7, "ttl": 120, "enabled": True}
    assert cache.get_stats() == cache.get_stats()


@pytest.mark.parametrize("kwargs", [{"max_entries": 0}, {"ttl": 0}])
def test_invalid_construction(kwargs):
    with pytest.raises(ValueError):
        WeatherCache(**kwargs)
