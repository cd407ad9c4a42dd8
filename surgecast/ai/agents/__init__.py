"""Reasoning-service agents"""

from .base import BaseAgent, parse_json_object, strip_fences
from .advisory import (
    AdvisoryAgent,
    AdvisoryPayload,
    AdvisoryResult,
    DegradedAdvisory,
    StructuredAdvisory,
    interpret_advisory,
)
from .outbreak import DetectionReport, OutbreakDetectorAgent, OutbreakObservation, interpret_detections
from .operations import OperationsAgent, aqi_status
from .medicine import DiseaseMedicineAgent

__all__ = [
    "BaseAgent",
    "parse_json_object",
    "strip_fences",
    "AdvisoryAgent",
    "AdvisoryPayload",
    "AdvisoryResult",
    "DegradedAdvisory",
    "StructuredAdvisory",
    "interpret_advisory",
    "DetectionReport",
    "OutbreakDetectorAgent",
    "OutbreakObservation",
    "interpret_detections",
    "OperationsAgent",
    "aqi_status",
    "DiseaseMedicineAgent",
]
