"""Outbreak reconciliation"""
import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from surgecast.ai.agents.outbreak import DetectionReport, OutbreakObservation, interpret_detections
from surgecast.core.config import OutbreakSettings
from surgecast.data.stores import OutbreakStore
from surgecast.domain import OutbreakRecord, OutbreakSeverity, OutbreakSource
from surgecast.pipeline.outbreak import (
    OutbreakReconciler,
    ReconcileState,
    build_record,
    merge_observation,
)

from .test_risk import make_features


@pytest.fixture
def store(database):
    return OutbreakStore(database)


@pytest.fixture
def detector():
    detector = AsyncMock()
    detector.process.return_value = None
    return detector


@pytest.fixture
def reconciler(store, detector, clock):
    return OutbreakReconciler(store, detector, OutbreakSettings(), clock=clock)


def influenza(active, **kwargs):
    return OutbreakObservation(disease_name="Influenza", active_cases=active, **kwargs)


def test_build_record_scales_missing_values_by_score(clock):
    record = build_record("Delhi", OutbreakObservation(disease_name="Asthma"), 80, clock())

    assert record.active_cases == 40
    assert record.new_cases == 8
    assert record.recovered == 10
    assert record.deaths == 1
    assert record.severity is OutbreakSeverity.HIGH
    assert record.transmission_rate == pytest.approx(2.4)
    assert record.source is OutbreakSource.REASONING


@pytest.mark.parametrize("score, severity", [(71, "high"), (70, "moderate"), (51, "moderate"), (50, "low")])
def test_default_severity(clock, score, severity):
    record = build_record("Delhi", OutbreakObservation(disease_name="Asthma"), score, clock())
    assert record.severity.value == severity


def test_merge_takes_maximum_and_unions(clock):
    record = build_record(
        "Mumbai",
        influenza(80, new_cases=10, required_medicines=["Oseltamivir"], symptoms=["Fever"]),
        60,
        clock(),
    )
    merge_observation(
        record,
        influenza(
            50,
            new_cases=20,
            severity="critical",
            required_medicines=["oseltamivir", "Paracetamol"],
            symptoms=["Cough"],
        ),
    )

    assert record.active_cases == 80
    assert record.new_cases == 20
    assert record.severity is OutbreakSeverity.CRITICAL
    assert record.required_medicines == ["Oseltamivir", "Paracetamol"]
    assert record.symptoms == ["Fever", "Cough"]


def test_merge_is_idempotent(clock):
    record = build_record("Mumbai", influenza(50), 60, clock())
    observation = influenza(80, transmission_rate=1.8, required_medicines=["Oseltamivir"])

    merge_observation(record, observation)
    once = record.snapshot(), list(record.required_medicines)
    merge_observation(record, observation)

    assert (record.snapshot(), list(record.required_medicines)) == once
    assert record.active_cases == 80


def test_merge_keeps_values_not_provided(clock):
    record = build_record("Mumbai", influenza(50, severity="high", transmission_rate=2.0), 60, clock())
    merge_observation(record, OutbreakObservation(disease_name="Influenza"))

    assert record.active_cases == 50
    assert record.severity is OutbreakSeverity.HIGH
    assert record.transmission_rate == 2.0


async def test_mumbai_observations_merge_into_one_record(reconciler, store, clock):
    first = await reconciler.observe("Mumbai", influenza(50))
    clock.advance(hours=3)
    second = await reconciler.observe("Mumbai", influenza(80))

    assert first.state is ReconcileState.ACTIVE
    assert second.state is ReconcileState.MERGED

    records = await store.recent("Mumbai", clock() - timedelta(days=1))
    assert len(records) == 1
    assert records[0].active_cases == 80


async def test_disease_match_is_case_insensitive(reconciler, store, clock):
    await reconciler.observe("Mumbai", influenza(50))
    await reconciler.observe("Mumbai", OutbreakObservation(disease_name="INFLUENZA", active_cases=60))

    assert len(await store.recent("Mumbai", clock() - timedelta(days=1))) == 1


async def test_observation_outside_window_creates_new_record(reconciler, store, clock):
    await reconciler.observe("Mumbai", influenza(50))
    clock.advance(hours=25)
    outcome = await reconciler.observe("Mumbai", influenza(80))

    assert outcome.state is ReconcileState.ACTIVE
    assert len(await store.recent("Mumbai", clock() - timedelta(days=7))) == 2


async def test_below_threshold_does_nothing(reconciler, detector):
    outcomes = await reconciler.reconcile(make_features(), 40)

    assert outcomes == []
    detector.process.assert_not_awaited()


async def test_reconcile_creates_at_most_max_detections(reconciler, detector, store, clock):
    detector.process.return_value = DetectionReport(
        detections=[OutbreakObservation(disease_name=f"Disease {i}") for i in range(5)]
    )

    outcomes = await reconciler.reconcile(make_features(), 60)

    assert len(outcomes) == 3
    assert all(o.state is ReconcileState.ACTIVE for o in outcomes)
    records = await store.recent("Delhi", clock() - timedelta(days=1))
    assert {r.active_cases for r in records} == {30}


async def test_no_detections_purges_only_fallback_records(reconciler, store, clock):
    old = clock() - timedelta(days=8)
    for source in OutbreakSource:
        record = build_record("Delhi", OutbreakObservation(disease_name=source.value), 60, old, source)
        await store.add(record)

    await reconciler.reconcile(make_features(), 60)

    remaining = await store.recent("Delhi", clock() - timedelta(days=30))
    assert sorted(r.source.value for r in remaining) == ["reasoning-service", "system"]


async def test_active_outbreaks_latest_per_disease(reconciler, store, clock):
    await store.add(build_record("Delhi", influenza(10, severity="low"), 60, clock() - timedelta(days=2)))
    await store.add(build_record("Delhi", influenza(40, severity="high"), 60, clock() - timedelta(days=1)))
    await store.add(build_record("Delhi", OutbreakObservation(disease_name="Dengue", active_cases=0, severity="high"), 60, clock()))
    await store.add(build_record("Delhi", OutbreakObservation(disease_name="Cold", severity="low"), 60, clock()))
    await store.add(build_record("Delhi", OutbreakObservation(disease_name="Cholera", severity="high"), 60, clock() - timedelta(days=9)))

    active = await reconciler.active_outbreaks("Delhi")

    assert [(r.disease_name, r.active_cases) for r in active] == [("Influenza", 40)]


def test_interpret_detections_accepts_both_key_styles():
    text = "```json\n" + json.dumps({
        "detectedPandemics": [
            {"diseaseName": "Heat Stroke", "activeCases": 120, "severity": "HIGH", "transmissionRate": 14},
            {"severity": "low"},
            {"disease_name": "Asthma", "affectedAgeGroups": ["elderly"]},
        ],
        "confidence": "medium",
    }) + "\n```"

    report = interpret_detections(text)

    assert [d.disease_name for d in report.detections] == ["Heat Stroke", "Asthma"]
    assert report.detections[0].severity is OutbreakSeverity.HIGH
    assert report.detections[0].transmission_rate == 10.0
    assert report.detections[1].affected_groups == ["elderly"]


@pytest.mark.parametrize("text", ["not json", "[]", json.dumps({"analysis": "nothing"})])
def test_interpret_detections_unusable(text):
    assert interpret_detections(text) is None


def test_recovered_and_deaths_follow_reported_cases(clock):
    record = build_record("Delhi", influenza(300), 80, clock())

    assert record.active_cases == 300
    assert (record.recovered, record.deaths) == (60, 3)
