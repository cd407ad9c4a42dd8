"""Risk scorer"""
from dataclasses import replace
from datetime import date, datetime

import pytest

from surgecast.pipeline.features import FeatureRecord
from surgecast.pipeline.risk import half_up, risk_tier, score_breakdown, score_risk, top_factors


def make_features(**overrides) -> FeatureRecord:
    values = dict(
        location="Delhi",
        timestamp=datetime(2026, 3, 10, 9, 0),
        target_date=date(2026, 3, 10),
        aqi=180.0,
        pm25=90.0,
        pm10=140.0,
        air_quality_source="airvisual",
        temperature=22.0,
        humidity=40.0,
        wind_speed=10.0,
        precipitation=0.0,
        weather_stale=False,
        admissions_avg=50.0,
        baseline_admissions=50.0,
    )
    values.update(overrides)
    return FeatureRecord(**values)


def test_delhi_scenario():
    features = make_features()

    assert score_risk(features) == 45
    assert risk_tier(45) == "moderate"
    assert [f["factor"] for f in top_factors(features)] == ["aqi"]


@pytest.mark.parametrize("aqi, points", [(151, 25), (150, 15), (101, 15), (100, 5), (51, 5), (50, 0)])
def test_aqi_tiers_are_exclusive(aqi, points):
    assert score_breakdown(make_features(aqi=aqi))["aqi"] == points


def test_each_condition_contributes():
    features = make_features(
        aqi=40,
        temperature=36,
        humidity=81,
        precipitation=6,
        admissions_avg=61,
    )
    breakdown = score_breakdown(features)

    assert breakdown["temperature"] == 15
    assert breakdown["humidity"] == 10
    assert breakdown["precipitation"] == 5
    assert breakdown["admissions"] == 20
    assert score_risk(features) == 20 + 15 + 10 + 5 + 20


def test_admissions_threshold_is_strict():
    assert score_breakdown(make_features(admissions_avg=60.0))["admissions"] == 0


def test_event_multiplier():
    features = make_features(aqi=40, event_flag=True, event_name="Diwali", event_multiplier=1.5)
    assert score_risk(features) == 35


def test_score_is_clamped():
    features = make_features(
        temperature=40,
        humidity=90,
        precipitation=10,
        admissions_avg=100,
        event_flag=True,
        event_multiplier=5,
    )
    assert score_risk(features) == 100


def test_scorer_is_pure():
    features = make_features(temperature=37)
    assert score_risk(features) == score_risk(replace(features))


def test_top_factors_ranked_and_limited():
    features = make_features(temperature=36, humidity=85, precipitation=8)
    factors = top_factors(features)

    assert [f["factor"] for f in factors] == ["aqi", "temperature", "humidity"]
    assert factors[0]["impact"] == 0.25


@pytest.mark.parametrize("score, tier", [(0, "low"), (39.9, "low"), (40, "moderate"), (69, "moderate"), (70, "high")])
def test_risk_tier(score, tier):
    assert risk_tier(score) == tier


def test_half_up():
    assert half_up(2.5) == 3
    assert half_up(112.5) == 113
    assert half_up(0.4) == 0
