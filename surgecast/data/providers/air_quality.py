"""
SurgeCast Air-Quality Provider

IQAir AirVisual city and nearest-station endpoints
"""
from typing import Any, Dict

from surgecast.core.exceptions import ProviderError
from surgecast.core.logging import get_logger
from surgecast.data.locations import Location
from surgecast.domain import SignalType

from .base import BaseProvider, ProviderReading

logger = get_logger(__name__)

DEFAULT_AQI = 50.0
PM25_RATIO = 0.6
PM10_RATIO = 0.8


class AirVisualProvider(BaseProvider):
    """Air quality by city, falling back to the nearest station"""

    name = "airvisual"
    signal_type = SignalType.AIR_QUALITY

    async def fetch(self, location: Location) -> ProviderReading:
        api_key = self.require_credentials()
        base = self.settings.base_url.rstrip("/")

        try:
            payload = await self.get_json(
                f"{base}/city",
                {
                    "city": location.name,
                    "state": location.state or location.name,
                    "country": location.country,
                    "key": api_key,
                },
            )
            return self.parse(payload)
        except ProviderError as e:
            if not location.has_coordinates:
                raise
            logger.warning(
                f"City lookup failed for {location.name} ({e}), trying nearest station"
            )

        payload = await self.get_json(
            f"{base}/nearest_station",
            {"lat": location.lat, "lon": location.lon, "key": api_key},
        )
        return self.parse(payload)

    def parse(self, payload: Dict[str, Any]) -> ProviderReading:
        try:
            if payload.get("status") != "success":
                raise ProviderError(f"{self.name}: status {payload.get('status')!r}", details=payload)

            current = (payload.get("data") or {}).get("current") or {}
            pollution = current.get("pollution") or {}

            aqi = pollution.get("aqius")
            if aqi is None:
                aqi = pollution.get("aqicn")
            aqi = float(aqi) if aqi is not None else DEFAULT_AQI

            pm25 = (pollution.get("p2") or {}).get("conc")
            pm10 = (pollution.get("p1") or {}).get("conc")

            values = {
                "aqi": aqi,
                "pm25": float(pm25) if pm25 is not None else round(aqi * PM25_RATIO, 1),
                "pm10": float(pm10) if pm10 is not None else round(aqi * PM10_RATIO, 1),
            }
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderError(f"{self.name}: malformed air-quality payload ({e})", details=payload) from e
        return ProviderReading(self.signal_type, values, self.name, payload)
