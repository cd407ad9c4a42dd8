"""Advisory agent and reasoning-service plumbing"""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from surgecast.ai.agents import (
    AdvisoryAgent,
    DegradedAdvisory,
    StructuredAdvisory,
    interpret_advisory,
    strip_fences,
)
from surgecast.ai.defaults import default_diseases, default_medicines
from surgecast.core.config import AISettings
from surgecast.core.exceptions import MissingCredentialsError

from .fakes import chat_response


def make_agent(settings, executor, reasoning):
    return AdvisoryAgent(settings.ai, executor, clients={"openai": reasoning})


async def advise(agent):
    return await agent.process(
        location="Delhi",
        target_date="2026-03-10",
        score=45,
        factors=[{"name": "Air quality", "factor": "aqi", "impact": 0.25}],
        context={"aqi": 180, "temperature": 22},
    )


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences("```\n{}\n```") == "{}"


def test_structured_advisory():
    result = interpret_advisory(json.dumps({"summary": "ok", "confidence": "high", "suggested_actions": ["a"]}))

    assert isinstance(result, StructuredAdvisory)
    assert not result.degraded
    assert result.payload.confidence == "high"
    assert result.payload.staffing_plan == "Not provided"


def test_camel_case_keys_are_accepted():
    text = "```json\n" + json.dumps({
        "summary": "ok",
        "staffingPlan": "two extra nurses",
        "suggestedMedicines": ["ORS"],
        "aqiImpact": "low",
    }) + "\n```"
    payload = interpret_advisory(text).as_payload()

    assert payload.staffing_plan == "two extra nurses"
    assert payload.suggested_medicines == ["ORS"]
    assert payload.aqi_impact == "low"


def test_non_json_degrades_to_raw_text():
    result = interpret_advisory("Expect a busy weekend.")

    assert isinstance(result, DegradedAdvisory)
    payload = result.as_payload()
    assert payload.summary == "Expect a busy weekend."
    assert payload.confidence == "low"
    assert payload.suggested_actions == []
    assert payload.suggested_medicines == []


@pytest.mark.parametrize(
    "data",
    [
        {"confidence": "high"},
        {"summary": "ok", "confidence": "certain"},
        {"summary": "ok", "suggested_actions": "call everyone"},
    ],
)
def test_schema_mismatch_degrades(data):
    result = interpret_advisory(json.dumps(data))

    assert isinstance(result, DegradedAdvisory)
    assert result.as_payload().confidence == "low"


async def test_agent_returns_structured_advisory(settings, executor, reasoning):
    result = await advise(make_agent(settings, executor, reasoning))

    assert isinstance(result, StructuredAdvisory)
    assert result.payload.suggested_medicines == ["Salbutamol"]
    kwargs = reasoning.create.await_args.kwargs
    assert kwargs["model"] == settings.ai.model
    assert "Delhi" in kwargs["messages"][1]["content"]


async def test_missing_key_propagates(executor):
    agent = AdvisoryAgent(AISettings(openai_api_key=""), executor)

    with pytest.raises(MissingCredentialsError):
        await advise(agent)


async def test_exhausted_retries_degrade(settings, executor, reasoning):
    reasoning.create.side_effect = TimeoutError("slow model")

    result = await advise(make_agent(settings, executor, reasoning))

    assert isinstance(result, DegradedAdvisory)
    assert "slow model" in result.reason
    assert reasoning.create.await_count == 3


async def test_sdk_errors_are_translated_and_retried(settings, executor, reasoning):
    request = httpx.Request("POST", "https://api.openai.test/v1/chat/completions")
    reasoning.create.side_effect = [
        openai.APITimeoutError(request=request),
        openai.APIConnectionError(request=request),
        chat_response(json.dumps({"summary": "recovered"})),
    ]

    result = await advise(make_agent(settings, executor, reasoning))

    assert result.as_payload().summary == "recovered"
    assert reasoning.create.await_count == 3


async def test_response_cache_short_circuits_the_call(settings, executor, reasoning):
    cache = AsyncMock()
    cache.get.return_value = json.dumps({"summary": "cached"})
    ai = settings.ai.model_copy(update={"enable_cache": True})
    agent = AdvisoryAgent(ai, executor, cache=cache, clients={"openai": reasoning})

    result = await advise(agent)

    assert result.as_payload().summary == "cached"
    reasoning.create.assert_not_awaited()


def test_default_lists_follow_conditions():
    assert default_diseases(aqi=120, temperature=38)[:4] == [
        "Asthma Exacerbation",
        "Chronic Obstructive Pulmonary Disease (COPD)",
        "Acute Bronchitis",
        "Heat Stroke",
    ]
    assert default_diseases(aqi=40, temperature=22, humidity=40, precipitation=0) == [
        "Upper Respiratory Tract Infection"
    ]
    assert "Amoxicillin" in default_medicines(temperature=10)
    assert default_medicines(aqi=40, temperature=22, humidity=40) == ["Paracetamol", "Ibuprofen"]


async def test_empty_completion_degrades(settings, executor, reasoning):
    reasoning.create.side_effect = None
    reasoning.create.return_value = SimpleNamespace(choices=[])

    result = await advise(make_agent(settings, executor, reasoning))

    assert isinstance(result, DegradedAdvisory)
    assert "empty completion" in result.reason


async def test_empty_anthropic_content_degrades(executor):
    client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=SimpleNamespace(content=[]))))
    ai = AISettings(provider="anthropic", anthropic_api_key="key", enable_rate_limiting=False)
    agent = AdvisoryAgent(ai, executor, clients={"anthropic": client})

    result = await advise(agent)

    assert isinstance(result, DegradedAdvisory)


async def test_generic_sdk_error_degrades(settings, executor, reasoning):
    request = httpx.Request("POST", "https://api.openai.test/v1/chat/completions")
    reasoning.create.side_effect = openai.APIError("stream interrupted", request, body=None)

    result = await advise(make_agent(settings, executor, reasoning))

    assert isinstance(result, DegradedAdvisory)
    assert reasoning.create.await_count == 1
