"""
SurgeCast Advisory Agent

Turns features and a risk score into a structured operational advisory
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from surgecast.core.exceptions import FETCH_ERRORS, MissingCredentialsError
from surgecast.core.logging import get_logger

from .base import BaseAgent, parse_json_object

logger = get_logger(__name__)

NOT_PROVIDED = "Not provided"

SYSTEM_PROMPT = (
    "You are an operations-focused healthcare copilot. Provide concise, "
    "actionable insights for hospital administrators. Respond with JSON only."
)

ADVISORY_PROMPT = """\
Assess the expected patient surge for {location} on {target_date}.

Surge risk score: {score}/100
Top contributing factors: {factors}

Conditions:
{context}

Output MUST be valid JSON with keys:
{{
  "summary": string,
  "surge_insight": string,
  "staffing_plan": string,
  "supply_plan": string,
  "suggested_actions": string[],
  "suggested_medicines": string[],
  "suggested_diseases": string[],
  "weather_impact": string,
  "aqi_impact": string,
  "confidence": "high" | "medium" | "low"
}}

Suggest medicines that may be needed (bronchodilators when AQI is high,
ORS for heat, antibiotics for cold weather) and diseases that may spike.
Use proper medical and pharmaceutical names.
"""


def _field(default: Any, *names: str) -> Any:
    if isinstance(default, list):
        return Field(default_factory=list, validation_alias=AliasChoices(*names))
    return Field(default=default, validation_alias=AliasChoices(*names))


class AdvisoryPayload(BaseModel):
    """Fixed advisory schema; camelCase keys are accepted too"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str
    surge_insight: str = _field(NOT_PROVIDED, "surge_insight", "surgeProbabilityInsight")
    staffing_plan: str = _field(NOT_PROVIDED, "staffing_plan", "staffingPlan")
    supply_plan: str = _field(NOT_PROVIDED, "supply_plan", "supplyPlan")
    suggested_actions: List[str] = _field([], "suggested_actions", "suggestedActions")
    suggested_medicines: List[str] = _field([], "suggested_medicines", "suggestedMedicines")
    suggested_diseases: List[str] = _field([], "suggested_diseases", "suggestedDiseases")
    weather_impact: str = _field(NOT_PROVIDED, "weather_impact", "weatherImpact")
    aqi_impact: str = _field(NOT_PROVIDED, "aqi_impact", "aqiImpact")
    confidence: Literal["high", "medium", "low"] = "low"


@dataclass(frozen=True)
class StructuredAdvisory:
    """Advisory that conformed to the schema"""

    payload: AdvisoryPayload
    degraded = False

    def as_payload(self) -> AdvisoryPayload:
        return self.payload


@dataclass(frozen=True)
class DegradedAdvisory:
    """Advisory built from unusable output or a failed call"""

    raw_text: str
    reason: str
    degraded = True

    def as_payload(self) -> AdvisoryPayload:
        summary = self.raw_text.strip() or f"Advisory unavailable: {self.reason}"
        return AdvisoryPayload(summary=summary, confidence="low")


AdvisoryResult = Union[StructuredAdvisory, DegradedAdvisory]


def interpret_advisory(text: str) -> AdvisoryResult:
    """Validate a raw model response against the advisory schema"""
    data = parse_json_object(text)
    if data is None:
        logger.warning("Advisory response is not a JSON object, degrading to plain text")
        return DegradedAdvisory(raw_text=text or "", reason="non-json response")

    try:
        return StructuredAdvisory(AdvisoryPayload.model_validate(data))
    except ValidationError as e:
        logger.warning(f"Advisory response does not match the schema: {e.error_count()} error(s)")
        return DegradedAdvisory(raw_text=text, reason="schema mismatch")


class AdvisoryAgent(BaseAgent):
    """
    Advisory agent

    Never fails on model output; only a missing key propagates.
    """

    def __init__(self, settings, executor, cache=None, clients=None):
        super().__init__(
            name="Advisory",
            settings=settings,
            executor=executor,
            cache=cache,
            clients=clients,
        )

    async def process(
        self,
        location: str,
        target_date: str,
        score: float,
        factors: List[Dict[str, Any]],
        context: Dict[str, Any],
        **kwargs,
    ) -> AdvisoryResult:
        """
        Produce an advisory

        Args:
            location: location name
            target_date: ISO date the prediction is for
            score: risk score 0-100
            factors: ranked contributing factors
            context: feature snapshot

        Raises:
            MissingCredentialsError: no reasoning-service key
        """
        prompt = ADVISORY_PROMPT.format(
            location=location,
            target_date=target_date,
            score=score,
            factors=", ".join(f["name"] for f in factors) or "none",
            context=json.dumps(context, indent=2, default=str),
        )

        try:
            text = await self.complete(prompt, system=SYSTEM_PROMPT)
        except MissingCredentialsError:
            raise
        except FETCH_ERRORS as e:
            logger.error(f"Advisory generation failed for {location}: {e}")
            return DegradedAdvisory(raw_text="", reason=f"reasoning service unavailable: {e}")

        result = interpret_advisory(text)
        logger.info(
            f"Advisory for {location}: {'degraded' if result.degraded else 'structured'}"
        )
        return result
