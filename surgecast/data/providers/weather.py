"""
SurgeCast Weather Provider

OpenWeatherMap current conditions
"""
from typing import Any, Dict

from surgecast.core.exceptions import ProviderError
from surgecast.core.logging import get_logger
from surgecast.data.locations import Location
from surgecast.domain import SignalType

from .base import BaseProvider, ProviderReading

logger = get_logger(__name__)

MS_TO_KMH = 3.6


class OpenWeatherMapProvider(BaseProvider):
    """Weather by city name, metric units"""

    name = "openweathermap"
    signal_type = SignalType.WEATHER

    async def fetch(self, location: Location) -> ProviderReading:
        api_key = self.require_credentials()
        url = f"{self.settings.base_url.rstrip('/')}/weather"
        params = {"q": location.name, "appid": api_key, "units": "metric"}

        logger.info(f"Fetching weather for {location.name}")
        payload = await self.get_json(url, params)
        return self.parse(payload)

    def parse(self, payload: Dict[str, Any]) -> ProviderReading:
        try:
            main = payload.get("main") or {}
            temperature = main.get("temp")
            humidity = main.get("humidity")
            if temperature is None or humidity is None:
                raise ProviderError(f"{self.name}: incomplete weather payload", details=payload)

            wind = payload.get("wind") or {}
            rain = payload.get("rain") or {}
            precipitation = rain.get("1h", rain.get("3h", 0)) or 0

            values = {
                "temperature": round(float(temperature), 1),
                "humidity": float(round(float(humidity))),
                "wind_speed": round(float(wind.get("speed") or 0) * MS_TO_KMH, 1),
                "precipitation": float(precipitation),
            }
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderError(f"{self.name}: malformed weather payload ({e})", details=payload) from e
        return ProviderReading(self.signal_type, values, self.name, payload)
