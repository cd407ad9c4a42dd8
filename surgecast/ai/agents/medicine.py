"""
SurgeCast Disease and Medicine Agent

Medical Q&A and medicine suggestions for a list of diseases
"""
import json
from typing import Any, Dict, List, Optional

from surgecast.ai.defaults import default_medicines
from surgecast.core.exceptions import FETCH_ERRORS, MissingCredentialsError
from surgecast.core.logging import get_logger

from .base import BaseAgent, parse_json_object

logger = get_logger(__name__)

CHAT_SYSTEM_PROMPT = (
    "You are a medical information assistant. Answer questions about diseases "
    "and medicines accurately, using proper medical terminology. If you do not "
    "know something, say so clearly. Always prioritise accuracy and safety."
)

MEDICINES_SYSTEM_PROMPT = "You are a medical expert. Respond with JSON only."

MEDICINES_PROMPT = """\
Based on the following diseases and conditions, list REAL medicine names
(proper pharmaceutical names such as "Albuterol Sulfate", not "inhaler").

Diseases to treat:
{diseases}

Weather conditions:
- Temperature: {temperature} C
- Humidity: {humidity}%

Air quality:
- AQI: {aqi}
- PM2.5: {pm25}

Output MUST be valid JSON:
{{
  "medicines": ["Medicine Name 1", "Medicine Name 2"],
  "explanations": {{"Medicine Name 1": "Brief explanation of use"}}
}}
"""


def _value(conditions: Optional[Dict[str, Any]], key: str) -> Any:
    value = (conditions or {}).get(key)
    return "N/A" if value is None else value


class DiseaseMedicineAgent(BaseAgent):
    """Disease and medicine assistant"""

    def __init__(self, settings, executor, cache=None, clients=None):
        super().__init__(
            name="DiseaseMedicine",
            settings=settings,
            executor=executor,
            cache=cache,
            clients=clients,
        )

    async def process(self, question: str, context: Optional[Dict[str, Any]] = None, **kwargs) -> str:
        """
        Answer a free-form question

        Raises:
            MissingCredentialsError: no reasoning-service key
            the executor's last failure once retries are exhausted
        """
        prompt = question
        if context:
            prompt = f"Current conditions:\n{json.dumps(context, indent=2, default=str)}\n\nQuestion: {question}"
        return (await self.complete(prompt, system=CHAT_SYSTEM_PROMPT, use_cache=False)).strip()

    async def medicines_for(
        self,
        diseases: List[str],
        weather: Optional[Dict[str, Any]] = None,
        air_quality: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """
        Medicine names for the given diseases

        Falls back to condition-based defaults when no key is configured,
        the call fails or the response is unusable.
        """
        fallback = default_medicines(
            aqi=(air_quality or {}).get("aqi"),
            temperature=(weather or {}).get("temperature"),
            humidity=(weather or {}).get("humidity"),
        )

        prompt = MEDICINES_PROMPT.format(
            diseases="\n".join(f"- {d}" for d in diseases) or "- none specified",
            temperature=_value(weather, "temperature"),
            humidity=_value(weather, "humidity"),
            aqi=_value(air_quality, "aqi"),
            pm25=_value(air_quality, "pm25"),
        )

        try:
            text = await self.complete(prompt, system=MEDICINES_SYSTEM_PROMPT)
        except MissingCredentialsError:
            logger.info("No reasoning-service key, using default medicines")
            return fallback
        except FETCH_ERRORS as e:
            logger.error(f"Medicine lookup failed: {e}")
            return fallback

        data = parse_json_object(text)
        medicines = data.get("medicines") if data else None
        if not isinstance(medicines, list) or not all(isinstance(m, str) for m in medicines):
            logger.warning("Medicine response is unusable, using defaults")
            return fallback
        return [m.strip() for m in medicines if m.strip()]
