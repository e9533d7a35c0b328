"""
Symptom Journal - Anomaly Rules
===============================
Rule-based anomaly classification over the deterministic metrics.

Independent of the numeric risk score: any one rule firing marks the
current log as anomalous. Each rule is a named check so it can be
tested and tuned on its own.
"""

from typing import Callable, List, Sequence, Tuple

from .normalization import NormalizedLog
from .pattern_metrics import DeterministicMetrics


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

Z_SCORE_THRESHOLD = 2.0
SLOPE_THRESHOLD = 0.3
SPIKE_PAIN_THRESHOLD = 8
SPIKE_BASELINE_CEILING = 4

# New-region rule: the region must be absent from logs[5:30]
NEW_REGION_SKIP_RECENT = 5
NEW_REGION_LOOKBACK = 30
NEW_REGION_MIN_LOGS = 5


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def is_extreme_z_score(metrics: DeterministicMetrics) -> bool:
    """Pain is statistically extreme against the 90-day baseline."""
    return metrics.z_score > Z_SCORE_THRESHOLD


def is_rapid_worsening(metrics: DeterministicMetrics) -> bool:
    """Severity trend for the region is rising quickly."""
    return metrics.severity_slope > SLOPE_THRESHOLD


def is_sudden_spike(metrics: DeterministicMetrics) -> bool:
    """Severe pain against a mild baseline."""
    return (
        metrics.current_pain >= SPIKE_PAIN_THRESHOLD
        and metrics.avg_pain_90 < SPIKE_BASELINE_CEILING
    )


def is_new_region(metrics: DeterministicMetrics, logs: Sequence[NormalizedLog]) -> bool:
    """The region does not appear in the logs just behind the most recent ones."""
    region = metrics.current_region
    if not region:
        return False

    recent = logs[:NEW_REGION_LOOKBACK]
    if len(recent) < NEW_REGION_MIN_LOGS:
        return False

    earlier_regions = {log.body_region for log in recent[NEW_REGION_SKIP_RECENT:]}
    return region not in earlier_regions


ANOMALY_RULES: List[Tuple[str, Callable[[DeterministicMetrics, Sequence[NormalizedLog]], bool]]] = [
    ("extreme_z_score", lambda m, logs: is_extreme_z_score(m)),
    ("rapid_worsening", lambda m, logs: is_rapid_worsening(m)),
    ("sudden_spike", lambda m, logs: is_sudden_spike(m)),
    ("new_region", is_new_region),
]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def anomaly_reasons(
    metrics: DeterministicMetrics, logs: Sequence[NormalizedLog]
) -> List[str]:
    """Names of every rule that fires, in rule order."""
    return [name for name, rule in ANOMALY_RULES if rule(metrics, logs)]


def detect_anomaly(metrics: DeterministicMetrics, logs: Sequence[NormalizedLog]) -> bool:
    """True if any anomaly rule fires."""
    return any(rule(metrics, logs) for _, rule in ANOMALY_RULES)
