"""External signal providers"""

from .base import BaseProvider, ProviderReading
from .weather import OpenWeatherMapProvider
from .air_quality import AirVisualProvider

__all__ = [
    "BaseProvider",
    "ProviderReading",
    "OpenWeatherMapProvider",
    "AirVisualProvider",
]
