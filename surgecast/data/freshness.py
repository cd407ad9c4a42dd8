"""
SurgeCast Freshness Cache

Serve a stored reading while it is fresh, otherwise fetch and append a new one
"""
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from surgecast.core.config import FreshnessSettings
from surgecast.core.logging import get_logger
from surgecast.domain import (
    ESTIMATED_SOURCE,
    READING_MODELS,
    AirQualityReading,
    Reading,
    SignalType,
    WeatherReading,
    utcnow,
)

from .locations import Location
from .providers import BaseProvider, ProviderReading
from .stores import ReadingStore

logger = get_logger(__name__)


def estimate_aqi(temperature: Optional[float]) -> float:
    """Heuristic AQI used when no provider reading is available"""
    if temperature is not None and temperature > 35:
        return 80.0
    if temperature is not None and temperature > 25:
        return 60.0
    return 50.0


class FreshnessCache:
    """
    Read-through cache over the reading store

    A reading younger than the threshold is served without a network call.
    """

    def __init__(
        self,
        store: ReadingStore,
        providers: Dict[SignalType, BaseProvider],
        settings: FreshnessSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.providers = providers
        self.threshold = timedelta(hours=settings.threshold_hours)
        self._clock = clock

    def is_fresh(self, reading: Reading) -> bool:
        return self._clock() - reading.captured_at < self.threshold

    async def get_or_refresh(
        self,
        location: Location,
        signal_type: SignalType,
        force: bool = False,
    ) -> Reading:
        """
        Latest reading, fetching a new one when stale, absent or forced

        Raises:
            whatever the provider raises; nothing is stored in that case
        """
        if not force:
            cached = await self.store.latest(location.name, signal_type)
            if cached is not None and self.is_fresh(cached):
                logger.debug(f"Fresh {signal_type.value} reading for {location.name} served from store")
                return cached

        provider = self.providers[signal_type]
        result = await provider.fetch(location)
        reading = self._to_reading(location, result)
        await self.store.append(reading)

        logger.info(
            f"Stored {signal_type.value} reading for {location.name} from {result.source}"
            + (" (forced)" if force else "")
        )
        return reading

    async def latest_stored(self, location: Location, signal_type: SignalType) -> Optional[Reading]:
        """Latest stored reading regardless of age"""
        return await self.store.latest(location.name, signal_type)

    async def estimate_air_quality(
        self,
        location: Location,
        weather: Optional[WeatherReading],
    ) -> AirQualityReading:
        """Persist and return a temperature-based air-quality estimate"""
        temperature = weather.temperature if weather is not None else None
        aqi = estimate_aqi(temperature)
        reading = AirQualityReading(
            location=location.name,
            captured_at=self._clock(),
            source=ESTIMATED_SOURCE,
            raw={"estimated_from_temperature": temperature},
            aqi=aqi,
            pm25=round(aqi * 0.6, 1),
            pm10=round(aqi * 0.8, 1),
        )
        await self.store.append(reading)
        logger.warning(f"Using estimated air quality for {location.name}: AQI {aqi}")
        return reading

    def _to_reading(self, location: Location, result: ProviderReading) -> Reading:
        model = READING_MODELS[result.signal_type]
        return model(
            location=location.name,
            captured_at=self._clock(),
            source=result.source,
            raw=result.raw,
            **result.values,
        )
