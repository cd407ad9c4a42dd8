"""
SurgeCast Prediction Assembler

Features, risk, advisory and outbreaks combined into one persisted prediction
"""
import math
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from surgecast.ai.agents.advisory import (
    AdvisoryAgent,
    AdvisoryPayload,
    AdvisoryResult,
    DegradedAdvisory,
    StructuredAdvisory,
)
from surgecast.ai.defaults import default_diseases, default_medicines
from surgecast.core.config import PredictionSettings
from surgecast.core.exceptions import MissingCredentialsError, SynthesisFailureError
from surgecast.core.logging import get_logger
from surgecast.data.locations import Location
from surgecast.data.stores import PredictionStore
from surgecast.domain import OutbreakRecord, Prediction, utcnow

from .features import FeatureBuilder, FeatureRecord
from .outbreak import OutbreakReconciler, required_medicines, total_active_cases, union_names
from .risk import half_up, risk_tier, score_risk, top_factors

logger = get_logger(__name__)

STAFF_BASELINE = {"doctors": 10, "nurses": 20, "support_staff": 5}
SUPPLY_BASELINE = {"oxygen": 1000, "ppe": 500}


def scale(base: int, score: float) -> int:
    # base * (1 + score/100), kept exact for integer scores
    return math.ceil(base * (100 + score) / 100)


def estimate_affected(baseline: int, score: float, total_active: int) -> int:
    """Surge-scaled baseline plus 30% of active outbreak cases, never below baseline"""
    estimate = half_up(baseline * (200 + score) / 200) + half_up(0.3 * total_active)
    return max(baseline, estimate)


def staffing_advice(score: float, notes: str) -> Dict[str, Any]:
    advice: Dict[str, Any] = {role: scale(base, score) for role, base in STAFF_BASELINE.items()}
    advice["notes"] = notes
    return advice


def supply_advice(score: float, medicines: List[str], notes: str) -> Dict[str, Any]:
    advice: Dict[str, Any] = {item: scale(base, score) for item, base in SUPPLY_BASELINE.items()}
    advice["medicines"] = medicines
    advice["notes"] = notes
    return advice


def advisory_payload(result: AdvisoryResult) -> AdvisoryPayload:
    if isinstance(result, StructuredAdvisory):
        return result.payload
    if isinstance(result, DegradedAdvisory):
        return result.as_payload()
    raise TypeError(f"Unexpected advisory result: {type(result).__name__}")


class PredictionAssembler:
    """Runs one prediction pipeline per call; stages are strictly sequential"""

    def __init__(
        self,
        features: FeatureBuilder,
        advisory: AdvisoryAgent,
        reconciler: OutbreakReconciler,
        store: PredictionStore,
        settings: PredictionSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.features = features
        self.advisory = advisory
        self.reconciler = reconciler
        self.store = store
        self.settings = settings
        self._clock = clock

    async def predict(
        self,
        location: Location,
        target_date: Optional[date] = None,
        force: bool = False,
    ) -> Prediction:
        """
        Build and persist a prediction

        Raises:
            MissingMandatorySignalError: no weather data
            SynthesisFailureError: no reasoning-service key, or the store failed
        """
        features = await self.features.build(location, target_date, force=force)
        score = score_risk(features)
        factors = top_factors(features)
        logger.info(f"Risk for {location.name}: {score} ({risk_tier(score)})")

        try:
            result = await self.advisory.process(
                location=location.name,
                target_date=features.target_date.isoformat(),
                score=score,
                factors=factors,
                context=features.to_dict(),
            )
        except MissingCredentialsError as e:
            raise SynthesisFailureError(f"Cannot synthesise advisory for {location.name}: {e.message}") from e

        try:
            await self.reconciler.reconcile(features, score)
            active = await self.reconciler.active_outbreaks(location.name)
            prediction = self._assemble(features, score, factors, result, active)
            await self.store.add(prediction)
        except SQLAlchemyError as e:
            raise SynthesisFailureError(f"Failed to store prediction for {location.name}: {e}") from e

        logger.info(
            f"Prediction stored for {location.name}: score {score}, "
            f"{prediction.estimated_affected} estimated patients"
            + (" (degraded advisory)" if result.degraded else "")
        )
        return prediction

    def _assemble(
        self,
        features: FeatureRecord,
        score: float,
        factors: List[Dict[str, Any]],
        result: AdvisoryResult,
        active: List[OutbreakRecord],
    ) -> Prediction:
        payload = advisory_payload(result)

        diseases = payload.suggested_diseases
        if result.degraded or not diseases:
            diseases = default_diseases(
                features.aqi, features.temperature, features.humidity, features.precipitation
            )

        medicines = payload.suggested_medicines
        if result.degraded or not medicines:
            medicines = default_medicines(features.aqi, features.temperature, features.humidity)
        medicines = union_names(medicines, required_medicines(active))

        return Prediction(
            location=features.location,
            generated_at=self._clock(),
            target_date=features.target_date,
            risk_score=score,
            estimated_affected=estimate_affected(
                self.settings.baseline_patients, score, total_active_cases(active)
            ),
            model_version=f"{self.settings.engine_version}+{self.advisory.model}",
            input_snapshot=features.to_dict(),
            staff_advice=staffing_advice(score, payload.staffing_plan),
            supply_advice=supply_advice(score, medicines, payload.supply_plan),
            top_factors=factors,
            summary=payload.summary,
            suggested_actions=payload.suggested_actions,
            confidence=payload.confidence,
            advisory_degraded=result.degraded,
            weather_impact=payload.weather_impact,
            aqi_impact=payload.aqi_impact,
            suggested_diseases=diseases,
            suggested_medicines=medicines,
            active_outbreaks=[r.snapshot() for r in active],
        )
