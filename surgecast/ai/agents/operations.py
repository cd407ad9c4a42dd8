"""
SurgeCast Operations Agent

Free-form operational questions answered against the latest readings and prediction
"""
import json
from typing import Any, Dict, Optional

from surgecast.core.logging import get_logger

from .advisory import SYSTEM_PROMPT, AdvisoryResult, interpret_advisory
from .base import BaseAgent

logger = get_logger(__name__)

OPERATIONS_PROMPT = """\
Answer the hospital administrator's message using the context below.

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

Based on the context data (AQI, weather, surge risk), suggest medicines that
may be needed and diseases that may spike.

Context (may be empty):
{context}

User message:
{message}
"""


def aqi_status(aqi: float) -> str:
    if aqi > 150:
        return "Unhealthy"
    if aqi > 100:
        return "Moderate"
    return "Good"


class OperationsAgent(BaseAgent):
    """
    Operations copilot

    Output that does not fit the advisory schema degrades to plain text;
    a missing key and exhausted retries propagate to the caller.
    """

    def __init__(self, settings, executor, cache=None, clients=None):
        super().__init__(
            name="Operations",
            settings=settings,
            executor=executor,
            cache=cache,
            clients=clients,
        )

    async def process(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs) -> AdvisoryResult:
        prompt = OPERATIONS_PROMPT.format(
            context=json.dumps(context or {}, indent=2, default=str),
            message=message,
        )
        text = await self.complete(prompt, system=SYSTEM_PROMPT, use_cache=False)

        result = interpret_advisory(text)
        logger.info(f"Operations answer: {'degraded' if result.degraded else 'structured'}")
        return result
