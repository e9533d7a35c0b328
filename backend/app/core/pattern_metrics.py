"""
Symptom Journal - Deterministic Pattern Metrics
===============================================
Statistical signals computed over a user's own symptom history:

    severity_slope          OLS trend of pain over time for the current region
    frequency_score         30-day share of the region's 90-day occurrences
    z_score                 current pain against the 90-day baseline
    recurrence_score        30-day occurrences, saturating at 10
    family_relevance_score  keyword match of family history to the region

The signals are fused into a bounded 0-100 deterministic risk score.
Every formula has a floor for degenerate input (no logs, one log, zero
variance, identical timestamps), so nothing here raises.

All time windows are measured against an explicit ``now`` so the
computation is a pure function of its inputs.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .normalization import (
    UNKNOWN_REGION,
    NormalizedLog,
    ProfileSnapshot,
    parse_timestamp,
)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LONG_WINDOW_DAYS = 90
SHORT_WINDOW_DAYS = 30

# Deterministic risk weights (sum to 100)
SLOPE_WEIGHT = 25
FREQUENCY_WEIGHT = 20
Z_SCORE_WEIGHT = 20
RECURRENCE_WEIGHT = 15
FAMILY_WEIGHT = 20

# Slope normalization: (slope + offset) / window, clamped to [0, 1]
SLOPE_NORM_OFFSET = 0.5
SLOPE_NORM_WINDOW = 1.0

Z_SCORE_SATURATION = 3.0
RECURRENCE_SATURATION = 10
FAMILY_MATCH_INCREMENT = 0.25
STD_FLOOR = 0.001

RISK_SCORE_MIN = 0.0
RISK_SCORE_MAX = 100.0

# Family history condition keyword -> body region substrings
FAMILY_HISTORY_REGION_MAP: Dict[str, List[str]] = {
    "arthritis": ["left_arm", "right_arm", "left_leg", "right_leg", "back", "neck"],
    "migraine": ["head", "neck"],
    "diabetes": ["left_leg", "right_leg", "abdomen"],
    "heart": ["chest", "back"],
    "cardiac": ["chest"],
    "hypertension": ["chest", "head"],
    "asthma": ["chest"],
    "cancer": ["chest", "abdomen", "back", "head"],
}


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class DeterministicMetrics:
    """Deterministic signals for one analysis run."""
    severity_slope: float
    frequency_score: float           # 0-1
    z_score: float
    recurrence_score: float          # 0-1
    family_relevance_score: float    # 0-1
    risk_score: float                # 0-100
    region_count_30: int
    region_count_90: int
    avg_pain_90: float

    # Resolved inputs, shared with the anomaly rules
    current_region: str = UNKNOWN_REGION
    current_pain: float = 0.0


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def clamp(value: float, low: float, high: float) -> float:
    """Clamp to [low, high]; NaN collapses to low."""
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def sample_std(values: Sequence[float]) -> float:
    """Standard deviation with Bessel's correction; 0 below two samples."""
    if len(values) < 2:
        return 0.0
    with np.errstate(over="ignore", invalid="ignore"):
        return float(np.std(np.asarray(values, dtype=float), ddof=1))


def linear_regression_slope(points: Sequence[Tuple[float, float]]) -> float:
    """
    Ordinary least-squares slope of y against x.

        slope = (nΣxy − ΣxΣy) / (nΣx² − (Σx)²)

    x values are shifted to start at zero before summing; the slope is
    unchanged and identical x values give an exact zero denominator.

    Returns 0 for fewer than two points, a zero denominator or a
    non-finite result.
    """
    if len(points) < 2:
        return 0.0

    x = np.asarray([p[0] for p in points], dtype=float)
    y = np.asarray([p[1] for p in points], dtype=float)
    x = x - x.min()
    n = len(points)

    with np.errstate(all="ignore"):
        denominator = n * np.sum(x * x) - np.sum(x) ** 2
        if denominator == 0 or not np.isfinite(denominator):
            return 0.0
        slope = (n * np.sum(x * y) - np.sum(x) * np.sum(y)) / denominator

    return float(slope) if np.isfinite(slope) else 0.0


# ---------------------------------------------------------------------------
# Signal components
# ---------------------------------------------------------------------------

def logs_within(
    logs: Sequence[NormalizedLog], now: datetime, days: int
) -> List[NormalizedLog]:
    """Logs whose age relative to ``now`` is at most ``days``."""
    horizon = timedelta(days=days)
    selected = []
    for log in logs:
        timestamp = parse_timestamp(log.datetime)
        if timestamp is not None and now - timestamp <= horizon:
            selected.append(log)
    return selected


def severity_trend(logs_90: Sequence[NormalizedLog], region: str) -> float:
    """Pain slope per second over the region's 90-day logs."""
    points = []
    for log in logs_90:
        if log.body_region != region:
            continue
        timestamp = parse_timestamp(log.datetime)
        if timestamp is not None:
            points.append((timestamp.timestamp(), float(log.pain_score)))
    points.sort(key=lambda p: p[0])
    return linear_regression_slope(points)


def family_relevance(family_history: Sequence[str], region: str) -> float:
    """
    Coarse substring match of family history against the body region.

    Each condition found in the history whose mapped regions occur in
    the region name adds FAMILY_MATCH_INCREMENT.
    """
    haystack = " ".join(family_history).lower()
    region_lower = region.lower()

    score = 0.0
    for condition, regions in FAMILY_HISTORY_REGION_MAP.items():
        if condition in haystack and any(r in region_lower for r in regions):
            score += FAMILY_MATCH_INCREMENT
    return clamp(score, 0.0, 1.0)


def normalize_slope(severity_slope: float) -> float:
    return clamp((severity_slope + SLOPE_NORM_OFFSET) / SLOPE_NORM_WINDOW, 0.0, 1.0)


def deterministic_risk_score(
    severity_slope: float,
    frequency_score: float,
    z_score: float,
    recurrence_score: float,
    family_relevance_score: float,
) -> float:
    """Weighted 0-100 risk from the five signals."""
    risk = (
        SLOPE_WEIGHT * normalize_slope(severity_slope)
        + FREQUENCY_WEIGHT * clamp(frequency_score, 0.0, 1.0)
        + Z_SCORE_WEIGHT * clamp(z_score / Z_SCORE_SATURATION, 0.0, 1.0)
        + RECURRENCE_WEIGHT * clamp(recurrence_score, 0.0, 1.0)
        + FAMILY_WEIGHT * clamp(family_relevance_score, 0.0, 1.0)
    )
    return clamp(risk, RISK_SCORE_MIN, RISK_SCORE_MAX)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def compute_deterministic_metrics(
    logs: Sequence[NormalizedLog],
    current_log: Optional[NormalizedLog],
    profile: Optional[ProfileSnapshot],
    now: datetime,
) -> DeterministicMetrics:
    """
    Compute all deterministic signals for the working set.

    Args:
        logs: Normalized logs, newest first (at most 365)
        current_log: Log under analysis; defaults to the newest log
        profile: Optional health profile snapshot
        now: Reference time for the 30/90 day windows

    Returns:
        DeterministicMetrics
    """
    newest = logs[0] if logs else None
    if current_log is not None:
        current_region = current_log.body_region
        current_pain = float(current_log.pain_score)
    elif newest is not None:
        current_region = newest.body_region
        current_pain = float(newest.pain_score)
    else:
        current_region = UNKNOWN_REGION
        current_pain = 0.0

    # A brand-new user has no signal at all, not a neutral trend
    if not logs:
        return DeterministicMetrics(
            severity_slope=0.0,
            frequency_score=0.0,
            z_score=0.0,
            recurrence_score=0.0,
            family_relevance_score=0.0,
            risk_score=0.0,
            region_count_30=0,
            region_count_90=0,
            avg_pain_90=0.0,
            current_region=current_region,
            current_pain=current_pain,
        )

    now = parse_timestamp(now)
    logs_90 = logs_within(logs, now, LONG_WINDOW_DAYS)
    logs_30 = logs_within(logs, now, SHORT_WINDOW_DAYS)

    region_count_90 = sum(1 for log in logs_90 if log.body_region == current_region)
    region_count_30 = sum(1 for log in logs_30 if log.body_region == current_region)

    if region_count_90 > 0:
        frequency_score = clamp(region_count_30 / region_count_90, 0.0, 1.0)
    else:
        frequency_score = 0.0

    severity_slope = severity_trend(logs_90, current_region)

    pain_90 = [float(log.pain_score) for log in logs_90]
    avg_pain_90 = mean(pain_90)
    if len(pain_90) < 2:
        z_score = 0.0
    else:
        std_pain = max(sample_std(pain_90), STD_FLOOR)
        z_score = (current_pain - avg_pain_90) / std_pain
        if not math.isfinite(z_score):
            z_score = 0.0

    recurrence_score = clamp(region_count_30 / RECURRENCE_SATURATION, 0.0, 1.0)

    family_history = profile.family_history if profile is not None else []
    family_relevance_score = family_relevance(family_history, current_region)

    risk_score = deterministic_risk_score(
        severity_slope,
        frequency_score,
        z_score,
        recurrence_score,
        family_relevance_score,
    )

    return DeterministicMetrics(
        severity_slope=severity_slope,
        frequency_score=frequency_score,
        z_score=z_score,
        recurrence_score=recurrence_score,
        family_relevance_score=family_relevance_score,
        risk_score=risk_score,
        region_count_30=region_count_30,
        region_count_90=region_count_90,
        avg_pain_90=avg_pain_90,
        current_region=current_region,
        current_pain=current_pain,
    )
