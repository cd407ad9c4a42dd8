"""
SurgeCast Risk Scorer

Deterministic rule-based surge risk
"""
import math
from typing import Dict, List

from .features import FeatureRecord

BASE_SCORE = 20.0

FACTOR_LABELS = {
    "aqi": "Air quality",
    "temperature": "Heat",
    "humidity": "Humidity",
    "precipitation": "Precipitation",
    "admissions": "Admission trend",
    "event": "Festival or event",
}


def score_breakdown(features: FeatureRecord) -> Dict[str, float]:
    """Points contributed by each factor on top of the base score"""
    contributions = dict.fromkeys(FACTOR_LABELS, 0.0)

    if features.aqi > 150:
        contributions["aqi"] = 25.0
    elif features.aqi > 100:
        contributions["aqi"] = 15.0
    elif features.aqi > 50:
        contributions["aqi"] = 5.0

    if features.temperature > 35:
        contributions["temperature"] = 15.0
    if features.humidity > 80:
        contributions["humidity"] = 10.0
    if features.precipitation > 5:
        contributions["precipitation"] = 5.0

    if features.admissions_avg > features.baseline_admissions * 1.2:
        contributions["admissions"] = 20.0

    if features.event_flag:
        contributions["event"] = features.event_multiplier * 10.0

    return contributions


def score_risk(features: FeatureRecord) -> float:
    """Risk score clamped to [0, 100]"""
    total = BASE_SCORE + sum(score_breakdown(features).values())
    return float(min(max(total, 0.0), 100.0))


def top_factors(features: FeatureRecord, limit: int = 3) -> List[Dict[str, object]]:
    """Non-zero contributions ranked by points, impact = points / 100"""
    ranked = sorted(
        ((key, points) for key, points in score_breakdown(features).items() if points > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    return [
        {"name": FACTOR_LABELS[key], "factor": key, "impact": round(points / 100, 2)}
        for key, points in ranked[:limit]
    ]


def half_up(value: float) -> int:
    """Round half away from zero for non-negative values"""
    return int(math.floor(value + 0.5))


def risk_tier(score: float) -> str:
    if score < 40:
        return "low"
    if score < 70:
        return "moderate"
    return "high"
