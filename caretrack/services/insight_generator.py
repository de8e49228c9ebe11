"""Insight generator contract and its Gemini implementation.

The generator turns a patient's check-ins into an InsightPayload. It is
fallible and may be slow; callers bound it with a timeout and never retry.
"""

import logging
from typing import Protocol, Sequence

from caretrack.core.config import settings
from caretrack.core.exceptions import ExternalServiceError
from caretrack.db.enums import TimeWindow
from caretrack.db.models import CheckIn
from caretrack.schemas.insight import InsightPayload
from caretrack.services import metrics_service
from caretrack.services.ai_provider import ChatMessage, GeminiProvider
from caretrack.services.ai_response_validation import parse_json_object, validate_model

logger = logging.getLogger(__name__)

WEARING_OFF_DISCLAIMER = "⚠️ AI Observation:"

SYSTEM_PROMPT = (
    "You are a medical AI assistant specializing in Parkinson's disease symptom "
    "analysis. You describe patterns in self-reported data; you do not diagnose."
)

ANALYSIS_PROMPT = """Analyze the following patient data and provide insights.

**Patient Context:**
- Disease: Parkinson's Disease
- Time Range: {range_label}
- Total Check-ins: {total}

**Patient Data:**
{data}

**Analysis Required:**
1. **Summary**: A brief, empathetic summary (2-3 sentences) of the patient's overall condition during this period.
2. **Key Observations**: symptoms that INCREASED (worse), DECREASED (improved) and remained STABLE.
3. **Medication Patterns**: adherence, days with missed or partial doses, and any correlation with symptom severity.
4. **Symptom Trends**: trends in tremor, stiffness, balance, sleep quality and mood, including variability.
5. **Wearing-Off Patterns**: potential medication wearing-off patterns. CLEARLY LABEL this as an AI observation to be discussed with a healthcare provider.
6. **Recommendations**: 3-5 actionable, patient-friendly recommendations, encouraging medical consultation for concerning patterns.

**Response Format (JSON):**
```json
{{
  "summary": "Brief empathetic summary here",
  "keyObservations": {{
    "increases": ["symptom 1"],
    "decreases": ["symptom 1"],
    "stable": ["symptom 1"]
  }},
  "medicationPatterns": "Detailed medication pattern analysis",
  "symptomTrends": "Detailed symptom trends analysis",
  "wearingOffPatterns": "{disclaimer} [Wearing-off pattern analysis with clear disclaimer]",
  "recommendations": ["Recommendation 1", "Recommendation 2", "Recommendation 3"]
}}
```

Provide ONLY the JSON response, no additional text."""


class InsightGenerationError(Exception):
    """Generator could not produce a usable insight."""


class InsightGenerator(Protocol):
    async def generate(self, checkins: Sequence[CheckIn], window: TimeWindow) -> InsightPayload: ...


# =============================================================================
# Prompt
# =============================================================================

def build_checkin_data(checkins: Sequence[CheckIn]) -> str:
    """Per-day rows followed by the statistical summary."""
    ordered = sorted(checkins, key=lambda c: c.check_in_date)
    lines: list[str] = []
    for index, checkin in enumerate(ordered, start=1):
        lines.append(f"Day {index} ({checkin.check_in_date.strftime('%b %d, %Y')}):")
        lines.append(f"- Tremor Score: {checkin.tremor_score}/10")
        lines.append(f"- Stiffness Score: {checkin.stiffness_score}/10")
        lines.append(f"- Balance Score: {checkin.balance_score}/10")
        lines.append(f"- Sleep Quality: {checkin.sleep_score}/10")
        lines.append(f"- Mood Score: {checkin.mood_score}/10")
        lines.append(f"- Medication Taken: {checkin.medication_taken}")
        if checkin.notes:
            lines.append(f"- Patient Notes: {checkin.notes}")
        lines.append("")

    averages = metrics_service.symptom_averages(ordered)
    medication = metrics_service.medication_breakdown(ordered)
    lines.append("**Statistical Summary:**")
    if averages:
        lines.append(f"- Average Tremor: {averages.tremor:.1f}/10")
        lines.append(f"- Average Stiffness: {averages.stiffness:.1f}/10")
        lines.append(f"- Average Balance: {averages.balance:.1f}/10")
        lines.append(f"- Average Sleep Quality: {averages.sleep:.1f}/10")
        lines.append(f"- Average Mood: {averages.mood:.1f}/10")
    lines.append(
        f"- Medication Adherence: {medication.taken} taken, "
        f"{medication.partially} partial, {medication.missed} missed"
    )
    return "\n".join(lines)


def build_prompt(checkins: Sequence[CheckIn], window: TimeWindow) -> str:
    return ANALYSIS_PROMPT.format(
        range_label=window.description,
        total=len(checkins),
        data=build_checkin_data(checkins),
        disclaimer=WEARING_OFF_DISCLAIMER,
    )


# =============================================================================
# Response
# =============================================================================

def ensure_disclaimer(text: str) -> str:
    text = (text or "").strip()
    if text.startswith(WEARING_OFF_DISCLAIMER):
        return text
    if not text:
        return f"{WEARING_OFF_DISCLAIMER} No wearing-off pattern identified."
    return f"{WEARING_OFF_DISCLAIMER} {text}"


def parse_insight(text: str) -> InsightPayload:
    """
    Extract the payload from fenced or bare JSON output.

    Raises:
        InsightGenerationError: no valid JSON object in the output
    """
    payload = validate_model(InsightPayload, parse_json_object(text))
    if payload is None:
        raise InsightGenerationError("Failed to parse AI response")
    payload.wearing_off_patterns = ensure_disclaimer(payload.wearing_off_patterns)
    return payload


class GeminiInsightGenerator:
    """InsightGenerator backed by Gemini generateContent."""

    def __init__(self, provider: GeminiProvider):
        self.provider = provider

    async def generate(self, checkins: Sequence[CheckIn], window: TimeWindow) -> InsightPayload:
        response = await self.provider.chat(
            [
                ChatMessage(role="system", content=SYSTEM_PROMPT),
                ChatMessage(role="user", content=build_prompt(checkins, window)),
            ],
            temperature=0.4,
            max_tokens=4096,
        )
        logger.info(
            "Insight generated with %s (%s tokens)", response.model, response.total_tokens
        )
        return parse_insight(response.content)


def get_insight_generator() -> InsightGenerator:
    """FastAPI dependency; tests override it with a fake."""
    if not settings.GEMINI_API_KEY:
        raise ExternalServiceError("Insight generator is not configured")
    return GeminiInsightGenerator(
        GeminiProvider(
            api_key=settings.GEMINI_API_KEY,
            default_model=settings.GEMINI_MODEL,
            timeout=settings.INSIGHT_TIMEOUT_SECONDS,
        )
    )
