"""
SurgeCast Outbreak Record Model

Mergeable disease observations per location, disease and day
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, Enum, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, utcnow


class OutbreakSeverity(str, PyEnum):
    """Outbreak severity"""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class OutbreakSource(str, PyEnum):
    """Provenance of an outbreak record"""
    REASONING = "reasoning-service"  # detected by the reasoning service
    SYSTEM = "system"  # supplied by an operator or upstream feed
    FALLBACK = "basic-analysis"  # heuristic, non-authoritative

    @property
    def authoritative(self) -> bool:
        return self is not OutbreakSource.FALLBACK


# Severities reported as active outbreaks
SIGNIFICANT_SEVERITIES = (
    OutbreakSeverity.MODERATE,
    OutbreakSeverity.HIGH,
    OutbreakSeverity.CRITICAL,
)


class OutbreakRecord(BaseModel):
    """
    Outbreak record

    At most one record per (location, disease) is current inside the
    dedup window; later observations merge into it.
    """
    __tablename__ = "outbreak_records"

    location: Mapped[str] = mapped_column(String(100), nullable=False, comment="Location name")
    disease_name: Mapped[str] = mapped_column(String(200), nullable=False, comment="Disease name")
    observed_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, comment="First observation time (UTC)"
    )

    # Counts
    active_cases: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Active cases")
    new_cases: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="New cases (24h)")
    recovered: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Recovered")
    deaths: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Deaths")

    severity: Mapped[OutbreakSeverity] = mapped_column(
        Enum(OutbreakSeverity, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OutbreakSeverity.LOW,
        comment="Severity",
    )
    transmission_rate: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="Estimated R0 (0-10)"
    )

    affected_groups = Column(JSON, nullable=False, default=list, comment="Affected age groups")
    symptoms = Column(JSON, nullable=False, default=list, comment="Symptoms")
    required_medicines = Column(JSON, nullable=False, default=list, comment="Required medicines")
    notes: Mapped[Optional[str]] = mapped_column(Text, comment="Rationale")
    source: Mapped[OutbreakSource] = mapped_column(
        Enum(OutbreakSource, native_enum=False, length=30, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OutbreakSource.REASONING,
        comment="Provenance",
    )

    __table_args__ = (
        Index("idx_outbreak_location_observed", "location", "observed_at"),
        Index("idx_outbreak_location_disease_observed", "location", "disease_name", "observed_at"),
    )

    def snapshot(self) -> dict:
        """Denormalised summary embedded in predictions"""
        return {
            "disease_name": self.disease_name,
            "active_cases": self.active_cases,
            "new_cases": self.new_cases,
            "severity": self.severity.value,
            "transmission_rate": self.transmission_rate,
            "observed_at": self.observed_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"<OutbreakRecord(location='{self.location}', disease='{self.disease_name}', "
            f"active={self.active_cases}, severity={self.severity})>"
        )
