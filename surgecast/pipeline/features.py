"""
SurgeCast Feature Builder

Assembles the normalised feature record a prediction is computed from
"""
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import pandas as pd

from surgecast.core.config import CalendarSettings, PredictionSettings
from surgecast.core.exceptions import FETCH_ERRORS, MissingMandatorySignalError
from surgecast.core.logging import get_logger
from surgecast.data.freshness import FreshnessCache
from surgecast.data.locations import Location
from surgecast.data.stores import OperationalStatsStore
from surgecast.domain import AirQualityReading, SignalType, WeatherReading, utcnow

logger = get_logger(__name__)


@dataclass(frozen=True)
class FeatureRecord:
    """Inputs of one prediction"""

    location: str
    timestamp: datetime
    target_date: date

    aqi: float
    pm25: float
    pm10: float
    air_quality_source: str

    temperature: float
    humidity: float
    wind_speed: float
    precipitation: float
    weather_stale: bool

    admissions_avg: float
    baseline_admissions: float

    event_flag: bool = False
    event_name: Optional[str] = None
    event_multiplier: float = 0.0

    @property
    def air_quality_estimated(self) -> bool:
        return self.air_quality_source == "estimated"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        data["target_date"] = self.target_date.isoformat()
        return data


def rolling_admission_average(
    rows: Iterable[Tuple[date, int]],
    window_days: int,
    default: float,
) -> float:
    """
    Mean daily admissions over the most recent `window_days` days

    Rows from several hospitals on the same day are summed first.
    """
    df = pd.DataFrame(list(rows), columns=["day", "admissions"])
    if df.empty:
        return float(default)

    daily = df.groupby("day")["admissions"].sum().sort_index()
    return round(float(daily.tail(window_days).mean()), 2)


class EventCalendar:
    """Configured festival and event windows"""

    def __init__(self, settings: CalendarSettings):
        self.events = settings.events

    def lookup(self, location: str, day: date) -> Tuple[Optional[str], float]:
        """(name, multiplier) of the strongest event active on `day`"""
        best_name, best_multiplier = None, 0.0
        for event in self.events:
            if not event.start <= day <= event.end:
                continue
            if event.locations and location not in event.locations:
                continue
            if best_name is None or event.multiplier > best_multiplier:
                best_name, best_multiplier = event.name, event.multiplier
        return best_name, best_multiplier


class FeatureBuilder:
    """Gathers readings, admissions and calendar context"""

    def __init__(
        self,
        cache: FreshnessCache,
        stats: OperationalStatsStore,
        calendar: EventCalendar,
        settings: PredictionSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self.stats = stats
        self.calendar = calendar
        self.settings = settings
        self._clock = clock

    async def build(
        self,
        location: Location,
        target_date: Optional[date] = None,
        force: bool = False,
    ) -> FeatureRecord:
        """
        Build the feature record for a location

        Raises:
            MissingMandatorySignalError: no weather reading, fresh or stored
        """
        now = self._clock()
        target_date = target_date or now.date()

        weather, weather_stale = await self._weather(location, force)
        air = await self._air_quality(location, weather, force)

        rows = await self.stats.recent_admissions(
            location.name, self.settings.admissions_window_days, now.date()
        )
        admissions_avg = rolling_admission_average(
            rows, self.settings.admissions_window_days, self.settings.baseline_admissions
        )

        event_name, multiplier = self.calendar.lookup(location.name, target_date)

        return FeatureRecord(
            location=location.name,
            timestamp=now,
            target_date=target_date,
            aqi=air.aqi,
            pm25=air.pm25,
            pm10=air.pm10,
            air_quality_source=air.source,
            temperature=weather.temperature,
            humidity=weather.humidity,
            wind_speed=weather.wind_speed,
            precipitation=weather.precipitation,
            weather_stale=weather_stale,
            admissions_avg=admissions_avg,
            baseline_admissions=self.settings.baseline_admissions,
            event_flag=event_name is not None,
            event_name=event_name,
            event_multiplier=multiplier,
        )

    async def _weather(self, location: Location, force: bool) -> Tuple[WeatherReading, bool]:
        try:
            return await self.cache.get_or_refresh(location, SignalType.WEATHER, force=force), False
        except FETCH_ERRORS as e:
            stored = await self.cache.latest_stored(location, SignalType.WEATHER)
            if stored is None:
                raise MissingMandatorySignalError(
                    f"No weather data available for {location.name}: {e}"
                ) from e
            logger.warning(f"Weather refresh failed for {location.name} ({e}), using stale reading")
            return stored, True

    async def _air_quality(
        self,
        location: Location,
        weather: WeatherReading,
        force: bool,
    ) -> AirQualityReading:
        try:
            return await self.cache.get_or_refresh(location, SignalType.AIR_QUALITY, force=force)
        except FETCH_ERRORS as e:
            stored = await self.cache.latest_stored(location, SignalType.AIR_QUALITY)
            if stored is not None:
                logger.warning(f"Air-quality refresh failed for {location.name} ({e}), using stale reading")
                return stored
            logger.warning(f"Air-quality refresh failed for {location.name} ({e}), estimating")
            return await self.cache.estimate_air_quality(location, weather)
