"""
Symptom Journal - Pattern Analysis Engine
=========================================

Runs one analysis for one user:
1. Read the working set (trailing 365 days of logs, newest first) and profile
2. Normalize logs onto the analysis record
3. Deterministic metrics (slope, frequency, z-score, recurrence, family history)
4. Rule-based anomaly detection
5. Best-effort language model augmentation (1 call, fixed fallback)
6. Fuse deterministic and model risk into one 0-100 score
7. Append one flag row per model flag and exactly one summary row

Persistence policy:
- best_effort (default): each row commits on its own; a failed write is
  rolled back and logged, and the computed result is still returned
- strict: all rows commit together; a failed write rolls back the run and
  raises AnalysisPersistenceError
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from ..config import Settings
from ..core.anomaly import anomaly_reasons
from ..core.normalization import (
    NormalizedLog,
    normalize_logs,
    normalize_profile,
    parse_timestamp,
)
from ..core.pattern_metrics import compute_deterministic_metrics
from ..core.risk_fusion import fuse_risk_scores
from ..models.analysis import AnalysisResult, LLMResult, PersistencePolicy
from .insight_augmenter import InsightAugmenter
from .llm_client import LLMClient
from .pattern_store import PatternStore, PersistenceError, StoreReadError

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class PatternAnalysisError(Exception):
    """Base class for failures surfaced to the caller."""


class AnalysisRequestError(PatternAnalysisError):
    """The trigger was invalid (missing user_id). Nothing was computed."""


class UpstreamReadError(PatternAnalysisError):
    """Logs or profile could not be read. Nothing was written."""


class AnalysisPersistenceError(PatternAnalysisError):
    """Strict policy only: flags or summary could not be written."""


# =============================================================================
# HELPERS
# =============================================================================

def resolve_current_log(
    logs: Sequence[NormalizedLog], log_id: Optional[str] = None
) -> Optional[NormalizedLog]:
    """The log selected by id, or the newest log when no id is given."""
    if log_id:
        for log in logs:
            if log.id == log_id:
                return log
        return None
    return logs[0] if logs else None


def working_set_date_range(
    logs: Sequence[NormalizedLog],
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """(oldest, newest) log dates of a newest-first working set."""
    if not logs:
        return None, None
    return parse_timestamp(logs[-1].datetime), parse_timestamp(logs[0].datetime)


# =============================================================================
# ENGINE
# =============================================================================

class PatternAnalysisEngine:
    """
    Main orchestrator for a pattern analysis run.

    Usage:
        engine = PatternAnalysisEngine(store, llm_client)
        result = await engine.analyze(user_id, log_id=None, now=now)
    """

    def __init__(
        self,
        store: PatternStore,
        llm_client: Optional[LLMClient] = None,
        persistence_policy: PersistencePolicy = PersistencePolicy.BEST_EFFORT,
        llm_timeout_seconds: float = 30.0,
        lookback_days: int = 365,
        max_logs: int = 365,
        recent_logs_limit: int = 90,
    ):
        """
        Args:
            store: Store boundary for reads and appends
            llm_client: Optional language model capability
            persistence_policy: best_effort or strict
            llm_timeout_seconds: Deadline for the model call
            lookback_days: Working set window
            max_logs: Working set cap
            recent_logs_limit: Logs handed to the augmenter
        """
        self.store = store
        self.augmenter = InsightAugmenter(llm_client, timeout_seconds=llm_timeout_seconds)
        self.persistence_policy = PersistencePolicy(persistence_policy)
        self.lookback_days = lookback_days
        self.max_logs = max_logs
        self.recent_logs_limit = recent_logs_limit

    @classmethod
    def from_settings(
        cls, store: PatternStore, llm_client: Optional[LLMClient], settings: Settings
    ) -> "PatternAnalysisEngine":
        return cls(
            store,
            llm_client,
            persistence_policy=settings.persistence_policy,
            llm_timeout_seconds=settings.llm_timeout_seconds,
            lookback_days=settings.analysis_lookback_days,
            max_logs=settings.analysis_max_logs,
            recent_logs_limit=settings.analysis_recent_logs,
        )

    async def analyze(
        self,
        user_id: Optional[str],
        log_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AnalysisResult:
        """
        Run the complete analysis pipeline.

        Args:
            user_id: Owner of the logs (required)
            log_id: Optional log to analyze; defaults to the newest log
            now: Reference time; defaults to the current UTC time

        Returns:
            AnalysisResult

        Raises:
            AnalysisRequestError: missing user_id
            UpstreamReadError: logs or profile could not be read
            AnalysisPersistenceError: strict policy and a write failed
        """
        if not isinstance(user_id, str) or not user_id.strip():
            raise AnalysisRequestError("user_id is required")

        now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)

        # STEP 1: Working set
        try:
            raw_logs = await self.store.fetch_recent_logs(
                user_id, now, lookback_days=self.lookback_days, limit=self.max_logs
            )
            raw_profile = await self.store.fetch_profile(user_id)
        except StoreReadError as e:
            raise UpstreamReadError(str(e)) from e

        # STEP 2: Normalize
        logs = normalize_logs(raw_logs)
        profile = normalize_profile(raw_profile)
        current_log = resolve_current_log(logs, log_id)
        recent_logs = logs[:self.recent_logs_limit]

        # STEP 3-4: Deterministic signals
        metrics = compute_deterministic_metrics(logs, current_log, profile, now)
        reasons = anomaly_reasons(metrics, logs)
        anomaly_detected = bool(reasons)

        # STEP 5: Augmentation (never raises)
        outcome = await self.augmenter.augment(
            current_log, recent_logs, profile, metrics, anomaly_detected
        )
        insight = outcome.result

        # STEP 6: Risk fusion
        final_risk_score = fuse_risk_scores(
            metrics.risk_score, insight.predictive_risk_assessment.risk_level
        )

        # STEP 7: Append flags and summary
        date_range_start, date_range_end = working_set_date_range(logs)
        await self._persist(
            user_id=user_id,
            log_id=current_log.id if current_log is not None else None,
            insight=insight,
            risk_score=final_risk_score,
            date_range_start=date_range_start,
            date_range_end=date_range_end,
        )

        logger.info(
            "Pattern analysis for %s: %d logs, region=%s, deterministic=%.1f, "
            "final=%d, anomaly_rules=%s, model=%s",
            user_id,
            len(logs),
            metrics.current_region,
            metrics.risk_score,
            final_risk_score,
            reasons,
            outcome.used_model,
        )

        return AnalysisResult(
            flags=insight.flags,
            insights=insight.insights,
            risk_score=final_risk_score,
            summary=insight.summary,
            anomaly_detected=insight.anomaly_detected,
            family_history_connections=insight.family_history_connections,
        )

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _persist(
        self,
        user_id: str,
        log_id: Optional[str],
        insight: LLMResult,
        risk_score: int,
        date_range_start: Optional[datetime],
        date_range_end: Optional[datetime],
    ) -> None:
        writes = [
            (
                "flag",
                lambda flag=flag: self.store.add_flag(
                    user_id=user_id,
                    log_id=log_id,
                    title=flag.title,
                    reasoning_summary=flag.reasoning_summary,
                    severity=flag.severity.value,
                    confidence_score=flag.confidence_score,
                    risk_score=risk_score,
                ),
            )
            for flag in insight.flags
        ]
        writes.append(
            (
                "summary",
                lambda: self.store.add_summary(
                    user_id=user_id,
                    summary_text=insight.summary,
                    date_range_start=date_range_start,
                    date_range_end=date_range_end,
                ),
            )
        )

        if self.persistence_policy == PersistencePolicy.STRICT:
            try:
                for _, write in writes:
                    await write()
                await self.store.commit()
            except PersistenceError as e:
                await self.store.rollback()
                raise AnalysisPersistenceError(f"Failed to persist analysis: {e}") from e
            return

        failed: List[str] = []
        for kind, write in writes:
            try:
                await write()
                await self.store.commit()
            except PersistenceError as e:
                logger.error(f"Failed to persist {kind} for {user_id}: {e}")
                await self.store.rollback()
                failed.append(kind)

        if failed:
            logger.error(
                "Pattern analysis for %s returned with %d of %d writes failed",
                user_id,
                len(failed),
                len(writes),
            )
