"""Data access: locations, stores, providers and the freshness cache"""

from .locations import KNOWN_CITIES, Location, normalize_location, resolve_location
from .stores import OperationalStatsStore, OutbreakStore, PredictionStore, ReadingStore
from .freshness import FreshnessCache, estimate_aqi

__all__ = [
    "KNOWN_CITIES",
    "Location",
    "normalize_location",
    "resolve_location",
    "OperationalStatsStore",
    "OutbreakStore",
    "PredictionStore",
    "ReadingStore",
    "FreshnessCache",
    "estimate_aqi",
]
