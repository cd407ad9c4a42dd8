"""
SurgeCast Outbreak Reconciler

Creates outbreak records from detections and merges repeat observations
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from surgecast.ai.agents.outbreak import OutbreakDetectorAgent, OutbreakObservation
from surgecast.core.config import OutbreakSettings
from surgecast.core.logging import get_logger
from surgecast.data.stores import OutbreakStore
from surgecast.domain import (
    SIGNIFICANT_SEVERITIES,
    OutbreakRecord,
    OutbreakSeverity,
    OutbreakSource,
    utcnow,
)

from .features import FeatureRecord
from .risk import half_up

logger = get_logger(__name__)


class ReconcileState(str, Enum):
    """Lifecycle of a (location, disease) pair within one reconciliation"""

    NONE = "none"
    PROPOSED = "proposed"
    ACTIVE = "active"
    MERGED = "merged"


@dataclass
class ReconcileOutcome:
    disease_name: str
    state: ReconcileState
    record: Optional[OutbreakRecord] = None


def union_names(existing: Optional[Iterable[str]], new: Optional[Iterable[str]]) -> List[str]:
    """Order-preserving, case-insensitive union"""
    result, seen = [], set()
    for item in list(existing or []) + list(new or []):
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(item.strip())
    return result


def severity_for_score(score: float) -> OutbreakSeverity:
    if score > 70:
        return OutbreakSeverity.HIGH
    if score > 50:
        return OutbreakSeverity.MODERATE
    return OutbreakSeverity.LOW


def build_record(
    location: str,
    observation: OutbreakObservation,
    score: float,
    observed_at: datetime,
    source: OutbreakSource = OutbreakSource.REASONING,
) -> OutbreakRecord:
    """New record; values the observation omits are scaled by the risk score"""
    active = observation.active_cases
    if active is None:
        active = half_up(50 * score / 100)

    new_cases = observation.new_cases
    if new_cases is None:
        new_cases = half_up(10 * score / 100)

    # recovered and deaths follow the reported count, or a nominal 50 cases
    reported = observation.active_cases or 50

    transmission = observation.transmission_rate
    if transmission is None:
        transmission = min(max(score / 100 * 3, 0.0), 10.0)

    return OutbreakRecord(
        location=location,
        disease_name=observation.disease_name,
        observed_at=observed_at,
        active_cases=active,
        new_cases=new_cases,
        recovered=observation.recovered if observation.recovered is not None else half_up(reported * 0.2),
        deaths=observation.deaths if observation.deaths is not None else half_up(reported * 0.01),
        severity=observation.severity or severity_for_score(score),
        transmission_rate=round(transmission, 2),
        affected_groups=union_names([], observation.affected_groups),
        symptoms=union_names([], observation.symptoms),
        required_medicines=union_names([], observation.required_medicines),
        notes=observation.notes or f"Detected at surge risk score {score:.0f}",
        source=source,
    )


def merge_observation(record: OutbreakRecord, observation: OutbreakObservation) -> OutbreakRecord:
    """
    Merge a repeat observation into a record in place

    Counts take the maximum, severity and transmission take the new value
    when provided, lists are unions. Merging the same observation twice
    leaves the record as merging it once.
    """
    for attr in ("active_cases", "new_cases", "recovered", "deaths"):
        value = getattr(observation, attr)
        if value is not None:
            setattr(record, attr, max(getattr(record, attr) or 0, value))

    if observation.severity is not None:
        record.severity = observation.severity
    if observation.transmission_rate is not None:
        record.transmission_rate = observation.transmission_rate
    if observation.notes:
        record.notes = observation.notes

    # New list objects so the JSON columns are flagged dirty
    record.required_medicines = union_names(record.required_medicines, observation.required_medicines)
    record.affected_groups = union_names(record.affected_groups, observation.affected_groups)
    record.symptoms = union_names(record.symptoms, observation.symptoms)
    return record


def total_active_cases(records: Iterable[OutbreakRecord]) -> int:
    return sum(r.active_cases for r in records)


def required_medicines(records: Iterable[OutbreakRecord]) -> List[str]:
    result: List[str] = []
    for record in records:
        result = union_names(result, record.required_medicines)
    return result


class OutbreakReconciler:
    """Per-location outbreak bookkeeping"""

    def __init__(
        self,
        store: OutbreakStore,
        detector: OutbreakDetectorAgent,
        settings: OutbreakSettings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.detector = detector
        self.settings = settings
        self._clock = clock

    async def active_outbreaks(self, location: str, days: Optional[int] = None) -> List[OutbreakRecord]:
        """Latest record per disease with active cases and at least moderate severity"""
        days = days or self.settings.active_window_days
        records = await self.store.recent(location, self._clock() - timedelta(days=days))

        latest: Dict[str, OutbreakRecord] = {}
        for record in records:  # newest first
            latest.setdefault(record.disease_name.strip().lower(), record)

        return [
            r for r in latest.values()
            if r.active_cases > 0 and r.severity in SIGNIFICANT_SEVERITIES
        ]

    async def reconcile(self, features: FeatureRecord, score: float) -> List[ReconcileOutcome]:
        """
        Reconcile outbreak records for one prediction run

        Returns:
            one outcome per accepted detection; empty below the threshold
            or when nothing usable was detected
        """
        location = features.location
        if score <= self.settings.risk_threshold:
            logger.debug(f"Risk {score} for {location} at or below threshold, skipping outbreak reconciliation")
            return []

        existing = await self.active_outbreaks(location)
        report = await self.detector.process(
            location=location,
            score=score,
            context=features.to_dict(),
            existing=[
                {"name": r.disease_name, "cases": r.active_cases, "severity": r.severity.value}
                for r in existing
            ],
        )

        if report is None or not report.detections:
            purged = await self.store.purge(
                location,
                self._clock() - timedelta(days=self.settings.purge_after_days),
                [OutbreakSource.FALLBACK],
            )
            if purged:
                logger.info(f"Purged {purged} stale fallback outbreak record(s) for {location}")
            return []

        logger.info(f"{len(report.detections)} outbreak detection(s) for {location}")
        outcomes = []
        for observation in report.detections[: self.settings.max_detections]:
            outcomes.append(await self._apply(location, observation, score, OutbreakSource.REASONING))
        return outcomes

    async def observe(
        self,
        location: str,
        observation: OutbreakObservation,
        score: float = 0.0,
        source: OutbreakSource = OutbreakSource.SYSTEM,
    ) -> ReconcileOutcome:
        """Apply an externally supplied observation with the same create-or-merge rule"""
        return await self._apply(location, observation, score, source)

    async def _apply(
        self,
        location: str,
        observation: OutbreakObservation,
        score: float,
        source: OutbreakSource,
    ) -> ReconcileOutcome:
        now = self._clock()
        since = now - timedelta(hours=self.settings.dedup_window_hours)
        current = await self.store.current(location, observation.disease_name, since)

        if current is None:
            record = build_record(location, observation, score, now, source)
            outcome = ReconcileOutcome(record.disease_name, ReconcileState.PROPOSED, record)
            await self.store.add(record)
            outcome.state = ReconcileState.ACTIVE
            logger.info(
                f"Created outbreak record: {record.disease_name} in {location} "
                f"({record.active_cases} active, severity {record.severity.value})"
            )
            return outcome

        record = await self.store.update(current.id, lambda r: merge_observation(r, observation))
        logger.info(f"Merged outbreak observation: {record.disease_name} in {location}")
        return ReconcileOutcome(record.disease_name, ReconcileState.MERGED, record)
