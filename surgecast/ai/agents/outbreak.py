"""
SurgeCast Outbreak Detector Agent

Asks the reasoning service which outbreaks current conditions suggest
"""
import json
from typing import Any, Dict, List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from surgecast.core.exceptions import FETCH_ERRORS
from surgecast.core.logging import get_logger
from surgecast.domain import OutbreakSeverity

from .base import BaseAgent, parse_json_object

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a medical epidemiologist analysing healthcare surge data to "
    "detect potential disease outbreaks. Respond with JSON only."
)

DETECTION_PROMPT = """\
Current conditions:
- Region: {location}
- Surge risk score: {score}/100
{conditions}

Existing active outbreaks: {existing}

Analyse whether there are potential disease outbreaks. Consider:
1. High AQI suggests respiratory diseases (asthma, COPD, pneumonia)
2. High temperature with high humidity suggests heat-related and vector-borne illness
3. Low temperature suggests flu, cold, pneumonia
4. Existing outbreaks may be spreading

Output MUST be valid JSON:
{{
  "detected_outbreaks": [
    {{
      "disease_name": string,
      "active_cases": number (0-1000),
      "new_cases": number (0-100, last 24h),
      "severity": "low" | "moderate" | "high" | "critical",
      "transmission_rate": number (0-10, R0),
      "affected_groups": string[],
      "symptoms": string[],
      "required_medicines": string[],
      "notes": string
    }}
  ],
  "confidence": "high" | "medium" | "low",
  "analysis": string
}}

Limit to at most {limit} most likely outbreaks.
"""


class OutbreakObservation(BaseModel):
    """One disease observation; omitted values are filled in by the reconciler"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    disease_name: str = Field(validation_alias=AliasChoices("disease_name", "diseaseName"))
    active_cases: Optional[int] = Field(default=None, ge=0, validation_alias=AliasChoices("active_cases", "activeCases"))
    new_cases: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("new_cases", "newCasesLast24h", "newCases")
    )
    recovered: Optional[int] = Field(default=None, ge=0)
    deaths: Optional[int] = Field(default=None, ge=0)
    severity: Optional[OutbreakSeverity] = None
    transmission_rate: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("transmission_rate", "transmissionRate")
    )
    affected_groups: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("affected_groups", "affectedAgeGroups")
    )
    symptoms: List[str] = Field(default_factory=list)
    required_medicines: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("required_medicines", "requiredMedicines")
    )
    notes: Optional[str] = None

    @field_validator("disease_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("disease name is empty")
        return v

    @field_validator("severity", mode="before")
    @classmethod
    def _lower_severity(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("transmission_rate")
    @classmethod
    def _clamp_rate(cls, v: Optional[float]) -> Optional[float]:
        return None if v is None else min(max(v, 0.0), 10.0)


class DetectionReport(BaseModel):
    """Detector output"""

    detections: List[OutbreakObservation] = Field(default_factory=list)
    confidence: str = "low"
    analysis: str = ""


def interpret_detections(text: str, limit: int = 3) -> Optional[DetectionReport]:
    """
    Parse detector output

    Invalid entries are skipped; returns None when the response is not a
    JSON object or carries no detection list.
    """
    data = parse_json_object(text)
    if data is None:
        return None

    items = data.get("detected_outbreaks", data.get("detectedPandemics"))
    if not isinstance(items, list):
        return None

    detections = []
    for item in items:
        try:
            detections.append(OutbreakObservation.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Skipping malformed detection: {e.error_count()} error(s)")
        if len(detections) >= limit:
            break

    return DetectionReport(
        detections=detections,
        confidence=str(data.get("confidence") or "low"),
        analysis=str(data.get("analysis") or ""),
    )


class OutbreakDetectorAgent(BaseAgent):
    """Outbreak detector; every failure yields None"""

    def __init__(self, settings, executor, cache=None, clients=None, limit: int = 3):
        super().__init__(
            name="OutbreakDetector",
            settings=settings,
            executor=executor,
            cache=cache,
            clients=clients,
        )
        self.limit = limit

    async def process(
        self,
        location: str,
        score: float,
        context: Dict[str, Any],
        existing: Sequence[Dict[str, Any]] = (),
        **kwargs,
    ) -> Optional[DetectionReport]:
        conditions = "\n".join(
            f"- {key}: {context.get(key, 'N/A')}"
            for key in ("temperature", "humidity", "aqi", "pm25", "pm10")
        )
        prompt = DETECTION_PROMPT.format(
            location=location,
            score=score,
            conditions=conditions,
            existing=json.dumps(list(existing), default=str) if existing else "None",
            limit=self.limit,
        )

        try:
            text = await self.complete(prompt, system=SYSTEM_PROMPT)
        except FETCH_ERRORS as e:
            logger.warning(f"Outbreak detection unavailable for {location}: {e}")
            return None

        report = interpret_detections(text, self.limit)
        if report is None:
            logger.warning(f"Outbreak detection for {location} returned an unusable response")
        return report
