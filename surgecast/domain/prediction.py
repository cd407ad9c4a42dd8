"""
SurgeCast Prediction Model

Immutable output of one synthesis run
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, append_only, utcnow


@append_only
class Prediction(BaseModel):
    """
    Surge prediction

    Identified by (location, generated_at); "latest" means the greatest
    generated_at. Never updated after insert.
    """
    __tablename__ = "predictions"

    location: Mapped[str] = mapped_column(String(100), nullable=False, comment="Location name")
    generated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, comment="Generation time (UTC)"
    )
    target_date: Mapped[date] = mapped_column(Date, nullable=False, comment="Day the prediction is for")

    risk_score: Mapped[float] = mapped_column(Float, nullable=False, comment="Surge risk (0-100)")
    estimated_affected: Mapped[int] = mapped_column(Integer, nullable=False, comment="Estimated patient count")
    model_version: Mapped[str] = mapped_column(String(200), nullable=False, comment="Engine/model tag")

    input_snapshot = Column(JSON, nullable=False, default=dict, comment="Feature record")
    staff_advice = Column(JSON, nullable=False, default=dict, comment="Staffing advice")
    supply_advice = Column(JSON, nullable=False, default=dict, comment="Supply advice")
    top_factors = Column(JSON, nullable=False, default=list, comment="Ranked contributing factors")

    summary: Mapped[Optional[str]] = mapped_column(Text, comment="Advisory summary")
    suggested_actions = Column(JSON, nullable=False, default=list, comment="Suggested actions")
    confidence: Mapped[str] = mapped_column(String(10), nullable=False, default="low", comment="Advisory confidence")
    advisory_degraded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, comment="Advisory fell back")
    weather_impact: Mapped[Optional[str]] = mapped_column(Text, comment="Weather impact narrative")
    aqi_impact: Mapped[Optional[str]] = mapped_column(Text, comment="Air-quality impact narrative")

    suggested_diseases = Column(JSON, nullable=False, default=list, comment="Diseases likely to rise")
    suggested_medicines = Column(JSON, nullable=False, default=list, comment="Medicines to stock")
    active_outbreaks = Column(JSON, nullable=False, default=list, comment="Active outbreak snapshot")

    __table_args__ = (
        Index("idx_prediction_location_generated", "location", "generated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Prediction(location='{self.location}', generated_at={self.generated_at}, "
            f"risk_score={self.risk_score})>"
        )
