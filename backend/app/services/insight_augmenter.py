"""
Symptom Journal - Insight Augmentation
======================================
Adds model-generated flags, insights, a qualitative risk level and a
narrative summary on top of the deterministic metrics.

Augmentation is best-effort. Without a configured model, without logs,
or when the call fails, times out or returns anything other than the
expected JSON object, the fixed fallback result is used. Failures are
logged and never reach the caller.
"""

import asyncio
import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..core.normalization import NormalizedLog, ProfileSnapshot
from ..core.pattern_metrics import DeterministicMetrics
from ..models.analysis import LLMResult, PredictiveRiskAssessment, Severity
from .llm_client import LLMClient

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

PROMPT_LOG_SAMPLE = 30
DEFAULT_TIMEOUT_SECONDS = 30.0

FALLBACK_SUMMARY = (
    "Pattern analysis completed. No significant patterns identified in the available data."
)
FALLBACK_RISK_REASONING = "Insufficient data for assessment."

SYSTEM_PROMPT = """You are a medical pattern detection assistant.
You analyze symptom logs and identify patterns, anomalies, correlations, and possible inherited risk connections.

You DO NOT diagnose.
You ONLY identify patterns and observational insights.

You must produce structured JSON output.

You must consider:
- severity trends
- recurrence patterns
- anomaly signals
- correlations across body regions
- connections to family health history
- worsening or improving patterns
- predictive risk indicators

Be precise, factual, and cautious.
Avoid alarmist language."""

OUTPUT_FORMAT = """OUTPUT FORMAT REQUIRED (valid JSON only, no other text):
{
  "flags": [
    {
      "title": "string",
      "reasoning_summary": "string",
      "severity": "low" | "medium" | "high",
      "confidence_score": 0-100
    }
  ],
  "insights": ["string"],
  "anomaly_detected": boolean,
  "predictive_risk_assessment": {
    "risk_level": "low" | "medium" | "high",
    "reasoning": "string"
  },
  "family_history_connections": ["string"],
  "summary": "string"
}"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class LLMResponseError(ValueError):
    """The model answered, but not with a usable result."""


@dataclass
class AugmentationOutcome:
    """Augmenter output plus whether the model actually contributed."""
    result: LLMResult
    used_model: bool
    error: Optional[str] = None


# =============================================================================
# PROMPT
# =============================================================================

def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _dumps(value: Any, indent: Optional[int] = None) -> str:
    return json.dumps(value, default=_json_default, indent=indent)


def build_llm_prompt(
    current_log: Optional[NormalizedLog],
    recent_logs: Sequence[NormalizedLog],
    profile: Optional[ProfileSnapshot],
    metrics: DeterministicMetrics,
) -> Tuple[str, str]:
    """
    Build the system instruction and user payload.

    Returns:
        (system_prompt, user_input)
    """
    family_history = profile.family_history if profile is not None else []
    lifestyle = {
        "sleep_hours": profile.lifestyle_sleep_hours if profile else None,
        "activity_level": profile.lifestyle_activity_level if profile else None,
        "diet_type": profile.lifestyle_diet_type if profile else None,
    }
    current = asdict(current_log) if current_log is not None else None
    sample = [asdict(log) for log in recent_logs[:PROMPT_LOG_SAMPLE]]

    user_input = f"""
User Health Profile:
family_history: {_dumps(family_history)}
lifestyle_metrics: {_dumps(lifestyle)}

Current Log:
{_dumps(current, indent=2)}

Recent Logs (last 90 days, sample):
{_dumps(sample, indent=2)}

Deterministic Pattern Metrics:
severity_slope: {metrics.severity_slope}
frequency_score: {metrics.frequency_score}
recurrence_score: {metrics.recurrence_score}
anomaly_z_score: {metrics.z_score}
deterministic_risk_score: {metrics.risk_score}

{OUTPUT_FORMAT}"""

    return SYSTEM_PROMPT, user_input


# =============================================================================
# RESPONSE HANDLING
# =============================================================================

def parse_llm_response(text: Optional[str]) -> LLMResult:
    """
    Validate the model's text as an LLMResult.

    Raises:
        LLMResponseError: empty text, non-JSON, or any shape deviation
    """
    if not text or not text.strip():
        raise LLMResponseError("Empty response from language model")

    body = text.strip()
    fenced = _CODE_FENCE.match(body)
    if fenced:
        body = fenced.group(1)

    try:
        return LLMResult.model_validate_json(body)
    except ValidationError as e:
        raise LLMResponseError(
            f"Invalid language model response ({e.error_count()} errors)"
        ) from e


def fallback_result(anomaly_detected: bool) -> LLMResult:
    """Fixed result used whenever the model cannot contribute."""
    return LLMResult(
        flags=[],
        insights=[],
        anomaly_detected=anomaly_detected,
        predictive_risk_assessment=PredictiveRiskAssessment(
            risk_level=Severity.LOW,
            reasoning=FALLBACK_RISK_REASONING,
        ),
        family_history_connections=[],
        summary=FALLBACK_SUMMARY,
    )


# =============================================================================
# AUGMENTER
# =============================================================================

class InsightAugmenter:
    """
    Runs the single best-effort model call for an analysis run.

    Usage:
        augmenter = InsightAugmenter(llm_client, timeout_seconds=30)
        outcome = await augmenter.augment(current_log, recent_logs, profile,
                                          metrics, anomaly_detected)
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Args:
            llm_client: Any client with ``async generate(system, user)``,
                or None to always use the fallback
            timeout_seconds: Deadline for the model call
        """
        self.llm_client = llm_client
        self.timeout_seconds = timeout_seconds

    async def augment(
        self,
        current_log: Optional[NormalizedLog],
        recent_logs: Sequence[NormalizedLog],
        profile: Optional[ProfileSnapshot],
        metrics: DeterministicMetrics,
        anomaly_detected: bool,
    ) -> AugmentationOutcome:
        if self.llm_client is None:
            logger.debug("No language model configured - using fallback insights")
            return AugmentationOutcome(fallback_result(anomaly_detected), used_model=False)

        if not recent_logs:
            return AugmentationOutcome(fallback_result(anomaly_detected), used_model=False)

        system_prompt, user_input = build_llm_prompt(
            current_log, recent_logs, profile, metrics
        )

        try:
            content = await asyncio.wait_for(
                self.llm_client.generate(system_prompt, user_input),
                timeout=self.timeout_seconds,
            )
            result = parse_llm_response(content)
        except asyncio.TimeoutError:
            logger.warning(
                "Language model call timed out after %.1fs - using fallback",
                self.timeout_seconds,
            )
            return AugmentationOutcome(
                fallback_result(anomaly_detected), used_model=False, error="timeout"
            )
        except Exception as e:
            logger.warning(f"Insight augmentation failed: {e}")
            return AugmentationOutcome(
                fallback_result(anomaly_detected), used_model=False, error=str(e)
            )

        return AugmentationOutcome(result, used_model=True)
