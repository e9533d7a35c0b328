"""
Symptom Journal - Pattern Analysis Engine Tests
===============================================
End-to-end runs of PatternAnalysisEngine against FakePatternStore and
FakeLLMClient.

Usage:
    pytest backend/tests/test_pattern_analysis.py -v
"""

import sys
import os
import asyncio
import logging
from datetime import timedelta

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.models.analysis import AnalysisResult, PersistencePolicy
from app.services.insight_augmenter import FALLBACK_SUMMARY
from app.services.pattern_analysis import (
    AnalysisPersistenceError,
    AnalysisRequestError,
    PatternAnalysisEngine,
    UpstreamReadError,
    resolve_current_log,
    working_set_date_range,
)
from app.core.normalization import normalize_logs
from fakes import (
    NOW,
    FakeLLMClient,
    FakePatternStore,
    llm_payload,
    llm_response,
    make_raw_log,
    make_series,
)


RISING = [3, 3, 4, 4, 5, 5, 6, 6, 7, 8]
FLAT = [5] * 10

PROFILE = {
    "user_id": "user-1",
    "family_history": ["migraine", "arthritis"],
    "lifestyle_sleep_hours": 6.5,
    "lifestyle_activity_level": "moderate",
    "lifestyle_diet_type": "mixed",
}


def run(engine, user_id="user-1", log_id=None):
    return asyncio.run(engine.analyze(user_id, log_id=log_id, now=NOW))


# =============================================================================
# TEST 1: HELPERS
# =============================================================================

class TestHelpers:

    def test_resolve_newest_by_default(self):
        logs = normalize_logs(make_series([1, 2, 3]))
        assert resolve_current_log(logs).id == "log-03"

    def test_resolve_by_id(self):
        logs = normalize_logs(make_series([1, 2, 3]))
        assert resolve_current_log(logs, "log-01").pain_score == 1

    def test_resolve_unknown_id(self):
        logs = normalize_logs(make_series([1, 2, 3]))
        assert resolve_current_log(logs, "nope") is None

    def test_resolve_empty(self):
        assert resolve_current_log([]) is None

    def test_date_range(self):
        logs = normalize_logs(make_series([1, 2, 3], span_days=10))
        assert working_set_date_range(logs) == (NOW - timedelta(days=10), NOW)

    def test_date_range_empty(self):
        assert working_set_date_range([]) == (None, None)


# =============================================================================
# TEST 2: SCENARIOS WITHOUT A MODEL
# =============================================================================

class TestWithoutModel:

    def test_rising_series(self):
        store = FakePatternStore(logs=make_series(RISING), profile=PROFILE)
        result = run(PatternAnalysisEngine(store))

        assert isinstance(result, AnalysisResult)
        assert result.flags == []
        assert result.insights == []
        assert result.summary == FALLBACK_SUMMARY
        assert 0 <= result.risk_score <= 100
        # z is about 1.74 and the slope is per second, so no rule fires
        assert result.anomaly_detected is False

    def test_rising_scores_above_flat(self):
        rising = run(PatternAnalysisEngine(FakePatternStore(logs=make_series(RISING))))
        flat = run(PatternAnalysisEngine(FakePatternStore(logs=make_series(FLAT))))
        assert rising.risk_score > flat.risk_score

    def test_empty_history(self):
        store = FakePatternStore(logs=[], profile=None)
        result = run(PatternAnalysisEngine(store, FakeLLMClient(response=llm_response())))

        assert result.risk_score == 6
        assert result.anomaly_detected is False
        assert result.flags == []
        assert store.flags == []
        assert len(store.summaries) == 1
        summary = store.summaries[0]
        assert summary["summary_text"] == FALLBACK_SUMMARY
        assert summary["date_range_start"] is None
        assert summary["date_range_end"] is None

    def test_spike_is_flagged_as_anomaly(self):
        history = make_series([2, 1, 3, 2, 2, 1, 3, 2] * 2,
                              end=NOW - timedelta(days=1), span_days=80, prefix="h")
        spike = make_raw_log("spike", "head", 9, NOW)
        store = FakePatternStore(logs=[spike] + history)
        result = run(PatternAnalysisEngine(store))
        assert result.anomaly_detected is True

    def test_one_summary_per_run(self):
        store = FakePatternStore(logs=make_series(RISING, span_days=20))
        engine = PatternAnalysisEngine(store)
        run(engine)
        run(engine)
        assert len(store.summaries) == 2
        assert store.summaries[0]["date_range_start"] == NOW - timedelta(days=20)
        assert store.summaries[0]["date_range_end"] == NOW

    def test_store_queried_with_window(self):
        store = FakePatternStore(logs=make_series(RISING))
        run(PatternAnalysisEngine(store, lookback_days=365, max_logs=365))
        assert store.fetch_calls == [("user-1", NOW, 365, 365)]


# =============================================================================
# TEST 3: SCENARIOS WITH A MODEL
# =============================================================================

class TestWithModel:

    def test_model_flags_persisted(self):
        store = FakePatternStore(logs=make_series(RISING), profile=PROFILE)
        client = FakeLLMClient(response=llm_response())
        result = run(PatternAnalysisEngine(store, client))

        assert len(result.flags) == 1
        assert result.summary == llm_payload()["summary"]
        assert result.anomaly_detected is True
        assert result.family_history_connections == llm_payload()["family_history_connections"]

        assert len(store.flags) == 1
        flag = store.flags[0]
        assert flag["log_id"] == "log-10"
        assert flag["severity"] == "medium"
        assert flag["confidence_score"] == 72
        assert flag["risk_score"] == result.risk_score

    def test_model_high_raises_fused_score(self):
        logs = make_series(RISING)
        with_model = run(PatternAnalysisEngine(
            FakePatternStore(logs=logs), FakeLLMClient(response=llm_response())))
        without = run(PatternAnalysisEngine(FakePatternStore(logs=logs)))
        # high anchor 75 vs low anchor 20, weighted 0.3
        assert with_model.risk_score - without.risk_score in (16, 17)

    def test_log_id_selects_current_log(self):
        store = FakePatternStore(logs=make_series(RISING))
        run(PatternAnalysisEngine(store, FakeLLMClient(response=llm_response())), log_id="log-03")
        assert store.flags[0]["log_id"] == "log-03"

    def test_unknown_log_id(self):
        store = FakePatternStore(logs=make_series(RISING))
        run(PatternAnalysisEngine(store, FakeLLMClient(response=llm_response())), log_id="gone")
        assert store.flags[0]["log_id"] is None

    def test_model_failure_falls_back(self):
        store = FakePatternStore(logs=make_series(RISING))
        client = FakeLLMClient(error=RuntimeError("connection reset"))
        result = run(PatternAnalysisEngine(store, client))
        assert result.summary == FALLBACK_SUMMARY
        assert store.flags == []
        assert len(store.summaries) == 1

    def test_multiple_flags(self):
        flag = llm_payload()["flags"][0]
        flags = [flag, dict(flag, title="Second", severity="high")]
        store = FakePatternStore(logs=make_series(RISING))
        run(PatternAnalysisEngine(store, FakeLLMClient(response=llm_response(flags=flags))))
        assert [f["title"] for f in store.flags] == ["Worsening head pain trend", "Second"]


# =============================================================================
# TEST 4: ERRORS AND PERSISTENCE POLICY
# =============================================================================

class TestErrors:

    @pytest.mark.parametrize("user_id", [None, "", "   "])
    def test_missing_user_id(self, user_id):
        store = FakePatternStore(logs=make_series(RISING))
        with pytest.raises(AnalysisRequestError, match="user_id is required"):
            run(PatternAnalysisEngine(store), user_id=user_id)
        assert store.fetch_calls == []

    def test_log_read_failure(self):
        store = FakePatternStore(log_error="connection refused")
        with pytest.raises(UpstreamReadError, match="connection refused"):
            run(PatternAnalysisEngine(store))
        assert store.summaries == []

    def test_profile_read_failure(self):
        store = FakePatternStore(logs=make_series(RISING), profile_error="timeout")
        with pytest.raises(UpstreamReadError):
            run(PatternAnalysisEngine(store))
        assert store.commits == 0


class TestPersistencePolicy:

    def test_best_effort_flag_failure_still_returns(self, caplog):
        store = FakePatternStore(logs=make_series(RISING), fail_writes={"flag"})
        engine = PatternAnalysisEngine(store, FakeLLMClient(response=llm_response()))
        with caplog.at_level(logging.ERROR):
            result = run(engine)

        assert len(result.flags) == 1
        assert store.flags == []
        assert len(store.summaries) == 1
        assert store.rollbacks == 1
        assert "Failed to persist flag" in caplog.text

    def test_best_effort_summary_failure_still_returns(self):
        store = FakePatternStore(logs=make_series(RISING), fail_writes={"summary"})
        engine = PatternAnalysisEngine(store, FakeLLMClient(response=llm_response()))
        result = run(engine)
        assert result.summary == llm_payload()["summary"]
        assert len(store.flags) == 1
        assert store.summaries == []

    def test_strict_failure_raises_and_writes_nothing(self):
        store = FakePatternStore(logs=make_series(RISING), fail_writes={"summary"})
        engine = PatternAnalysisEngine(
            store,
            FakeLLMClient(response=llm_response()),
            persistence_policy=PersistencePolicy.STRICT,
        )
        with pytest.raises(AnalysisPersistenceError, match="Failed to persist analysis"):
            run(engine)
        assert store.flags == []
        assert store.summaries == []
        assert store.commits == 0
        assert store.rollbacks == 1

    def test_strict_success_commits_once(self):
        store = FakePatternStore(logs=make_series(RISING))
        engine = PatternAnalysisEngine(
            store, FakeLLMClient(response=llm_response()), persistence_policy="strict"
        )
        run(engine)
        assert store.commits == 1
        assert len(store.flags) == 1
        assert len(store.summaries) == 1
