"""
Symptom Journal - Risk Fusion
=============================
Blends the deterministic risk score with the model's qualitative risk
level into the single 0-100 integer returned to the caller.
"""

import math
from typing import Dict, Optional

from .pattern_metrics import RISK_SCORE_MAX, RISK_SCORE_MIN, clamp


DETERMINISTIC_WEIGHT = 0.7
LLM_WEIGHT = 0.3

RISK_LEVEL_ANCHORS: Dict[str, int] = {
    "high": 75,
    "medium": 45,
    "low": 20,
}
DEFAULT_RISK_ANCHOR = RISK_LEVEL_ANCHORS["low"]


def llm_risk_to_number(level: Optional[str]) -> int:
    """Numeric anchor for a qualitative level; unknown levels count as low."""
    value = getattr(level, "value", level)
    if not isinstance(value, str):
        return DEFAULT_RISK_ANCHOR
    return RISK_LEVEL_ANCHORS.get(value, DEFAULT_RISK_ANCHOR)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def fuse_risk_scores(deterministic_risk: float, llm_risk_level: Optional[str]) -> int:
    """
    Fused risk score.

        round(clamp(deterministic * 0.7 + anchor * 0.3, 0, 100))

    Always an int in [0, 100], whatever the deterministic input.
    """
    blended = (
        deterministic_risk * DETERMINISTIC_WEIGHT
        + llm_risk_to_number(llm_risk_level) * LLM_WEIGHT
    )
    return round_half_up(clamp(blended, RISK_SCORE_MIN, RISK_SCORE_MAX))
