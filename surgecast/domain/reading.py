"""
SurgeCast Reading Models

Immutable, timestamped environmental observations per location
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Dict, Type, Union

from sqlalchemy import JSON, Column, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, append_only, utcnow

ESTIMATED_SOURCE = "estimated"


class SignalType(str, PyEnum):
    """External signal types"""
    AIR_QUALITY = "air_quality"
    WEATHER = "weather"


class ReadingMixin:
    """Fields shared by every reading"""

    location: Mapped[str] = mapped_column(String(100), nullable=False, comment="Location name")
    captured_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, comment="Capture time (UTC)"
    )
    source: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="Provider name or 'estimated'"
    )
    raw = Column(JSON, nullable=False, default=dict, comment="Raw payload snapshot for audit")

    @property
    def is_estimated(self) -> bool:
        return self.source == ESTIMATED_SOURCE


@append_only
class AirQualityReading(ReadingMixin, BaseModel):
    """Air-quality reading"""
    __tablename__ = "air_quality_readings"

    signal_type = SignalType.AIR_QUALITY

    aqi: Mapped[float] = mapped_column(Float, nullable=False, comment="Air quality index (US)")
    pm25: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, comment="PM2.5 (ug/m3)")
    pm10: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, comment="PM10 (ug/m3)")

    __table_args__ = (
        Index("idx_aq_location_captured", "location", "captured_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AirQualityReading(location='{self.location}', captured_at={self.captured_at}, "
            f"aqi={self.aqi}, source='{self.source}')>"
        )


@append_only
class WeatherReading(ReadingMixin, BaseModel):
    """Weather reading"""
    __tablename__ = "weather_readings"

    signal_type = SignalType.WEATHER

    temperature: Mapped[float] = mapped_column(Float, nullable=False, comment="Temperature (C)")
    humidity: Mapped[float] = mapped_column(Float, nullable=False, comment="Relative humidity (%)")
    wind_speed: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, comment="Wind speed (km/h)")
    precipitation: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, comment="Precipitation (mm)")

    __table_args__ = (
        Index("idx_weather_location_captured", "location", "captured_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<WeatherReading(location='{self.location}', captured_at={self.captured_at}, "
            f"temperature={self.temperature}, humidity={self.humidity})>"
        )


Reading = Union[AirQualityReading, WeatherReading]

READING_MODELS: Dict[SignalType, Type[BaseModel]] = {
    SignalType.AIR_QUALITY: AirQualityReading,
    SignalType.WEATHER: WeatherReading,
}
