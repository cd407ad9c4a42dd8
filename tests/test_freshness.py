"""Reading store and freshness cache"""
import pytest

from surgecast.core.config import FreshnessSettings
from surgecast.core.exceptions import ImmutableRecordError, ProviderError
from surgecast.data.freshness import FreshnessCache, estimate_aqi
from surgecast.data.locations import resolve_location
from surgecast.data.stores import ReadingStore
from surgecast.domain import SignalType, WeatherReading


@pytest.fixture
def store(database, clock):
    return ReadingStore(database, clock=clock)


@pytest.fixture
def cache(store, weather_provider, air_provider, clock):
    providers = {SignalType.WEATHER: weather_provider, SignalType.AIR_QUALITY: air_provider}
    return FreshnessCache(store, providers, FreshnessSettings(threshold_hours=6), clock=clock)


async def test_fresh_reading_served_without_network_call(cache, weather_provider, clock):
    delhi = resolve_location("Delhi")
    first = await cache.get_or_refresh(delhi, SignalType.WEATHER)

    clock.advance(hours=5, minutes=59)
    second = await cache.get_or_refresh(delhi, SignalType.WEATHER)

    assert second.id == first.id
    assert weather_provider.calls == ["Delhi"]


async def test_stale_reading_triggers_fetch(cache, store, weather_provider, clock):
    delhi = resolve_location("Delhi")
    await cache.get_or_refresh(delhi, SignalType.WEATHER)

    clock.advance(hours=6)
    weather_provider.values["temperature"] = 30.0
    reading = await cache.get_or_refresh(delhi, SignalType.WEATHER)

    assert reading.temperature == 30.0
    assert len(weather_provider.calls) == 2
    assert len(await store.history("Delhi", SignalType.WEATHER)) == 2


async def test_force_always_fetches(cache, weather_provider):
    delhi = resolve_location("Delhi")
    await cache.get_or_refresh(delhi, SignalType.WEATHER)
    await cache.get_or_refresh(delhi, SignalType.WEATHER, force=True)

    assert len(weather_provider.calls) == 2


async def test_latest_after_refresh_is_fresh(cache, store, clock):
    delhi = resolve_location("Delhi")
    await cache.get_or_refresh(delhi, SignalType.AIR_QUALITY)

    latest = await store.latest("Delhi", SignalType.AIR_QUALITY)
    assert latest is not None
    assert cache.is_fresh(latest)
    assert latest.aqi == 180.0
    assert latest.source == "airvisual"


async def test_provider_failure_stores_nothing(cache, store, weather_provider):
    weather_provider.error = ProviderError("down", status_code=503)

    with pytest.raises(ProviderError):
        await cache.get_or_refresh(resolve_location("Delhi"), SignalType.WEATHER)

    assert await store.latest("Delhi", SignalType.WEATHER) is None


async def test_history_is_ascending_and_windowed(cache, store, clock):
    delhi = resolve_location("Delhi")
    for _ in range(3):
        await cache.get_or_refresh(delhi, SignalType.WEATHER, force=True)
        clock.advance(days=3)

    recent = await store.history("Delhi", SignalType.WEATHER, since_days=7)
    captured = [r.captured_at for r in recent]

    assert captured == sorted(captured)
    assert len(recent) == 2
    assert await store.history("Pune", SignalType.WEATHER) == []


@pytest.mark.parametrize("temperature, aqi", [(36, 80), (35, 60), (26, 60), (25, 50), (None, 50)])
def test_estimate_aqi(temperature, aqi):
    assert estimate_aqi(temperature) == aqi


async def test_estimated_air_quality_is_persisted(cache, store, clock):
    weather = WeatherReading(
        location="Delhi", captured_at=clock(), source="openweathermap",
        temperature=37.0, humidity=30.0,
    )
    reading = await cache.estimate_air_quality(resolve_location("Delhi"), weather)

    assert reading.is_estimated
    assert (reading.aqi, reading.pm25, reading.pm10) == (80.0, 48.0, 64.0)
    assert (await store.latest("Delhi", SignalType.AIR_QUALITY)).source == "estimated"


async def test_readings_are_append_only(cache, database):
    reading = await cache.get_or_refresh(resolve_location("Delhi"), SignalType.WEATHER)

    with pytest.raises(ImmutableRecordError):
        async with database.session() as session:
            stored = await session.get(WeatherReading, reading.id)
            stored.temperature = 99.0
            await session.flush()
