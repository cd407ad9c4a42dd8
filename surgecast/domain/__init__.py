"""
SurgeCast Domain Models
"""
from .base import BaseModel, IDMixin, TimestampMixin, append_only, utcnow
from .reading import (
    ESTIMATED_SOURCE,
    READING_MODELS,
    AirQualityReading,
    Reading,
    SignalType,
    WeatherReading,
)
from .operational import OperationalStat
from .outbreak import OutbreakRecord, OutbreakSeverity, OutbreakSource, SIGNIFICANT_SEVERITIES
from .prediction import Prediction

__all__ = [
    # Base classes
    "BaseModel",
    "IDMixin",
    "TimestampMixin",
    "append_only",
    "utcnow",
    # Models
    "AirQualityReading",
    "WeatherReading",
    "Reading",
    "OperationalStat",
    "OutbreakRecord",
    "Prediction",
    # Enums and constants
    "SignalType",
    "OutbreakSeverity",
    "OutbreakSource",
    "SIGNIFICANT_SEVERITIES",
    "READING_MODELS",
    "ESTIMATED_SOURCE",
]
