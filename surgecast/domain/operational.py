"""
SurgeCast Operational Statistics Model

Per-location daily admission counts, maintained by an external system
"""
from datetime import date
from typing import Optional

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class OperationalStat(BaseModel):
    """Daily hospital statistics; read-only for this service"""
    __tablename__ = "operational_stats"

    location: Mapped[str] = mapped_column(String(100), nullable=False, comment="Location name")
    day: Mapped[date] = mapped_column(Date, nullable=False, comment="Statistics day")
    hospital_id: Mapped[Optional[str]] = mapped_column(String(100), comment="Reporting hospital")
    admissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Admissions")
    icu_beds_used: Mapped[Optional[int]] = mapped_column(Integer, comment="ICU beds in use")
    icu_beds_available: Mapped[Optional[int]] = mapped_column(Integer, comment="ICU beds free")

    __table_args__ = (
        Index("idx_opstat_location_day", "location", "day"),
    )
