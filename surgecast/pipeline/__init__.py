"""Prediction pipeline stages"""

from .features import EventCalendar, FeatureBuilder, FeatureRecord, rolling_admission_average
from .risk import risk_tier, score_breakdown, score_risk, top_factors
from .outbreak import OutbreakReconciler, ReconcileOutcome, ReconcileState, merge_observation
from .prediction import PredictionAssembler, estimate_affected

__all__ = [
    "EventCalendar",
    "FeatureBuilder",
    "FeatureRecord",
    "rolling_admission_average",
    "risk_tier",
    "score_breakdown",
    "score_risk",
    "top_factors",
    "OutbreakReconciler",
    "ReconcileOutcome",
    "ReconcileState",
    "merge_observation",
    "PredictionAssembler",
    "estimate_affected",
]
