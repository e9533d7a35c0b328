"""
Symptom Journal - Log Normalization Tests
=========================================
Tests for backend/app/core/normalization.py

Usage:
    pytest backend/tests/test_normalization.py -v
"""

import sys
import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.core.normalization import (
    UNKNOWN_REGION,
    NormalizedLog,
    normalize_log,
    normalize_logs,
    normalize_profile,
    parse_timestamp,
)


DATE = datetime(2026, 2, 20, 9, 30, tzinfo=timezone.utc)


class TestNormalizeLog:
    """Field mapping from stored log to analysis record."""

    def test_full_record(self):
        raw = {
            "id": "log-1",
            "title": "Headache",
            "description": "After work",
            "body_parts": ["head", "neck"],
            "severity": 6,
            "date": DATE,
        }
        assert normalize_log(raw) == NormalizedLog(
            id="log-1", body_region="head", pain_score=6, datetime=DATE, notes="After work"
        )

    def test_first_body_part_is_region(self):
        log = normalize_log({"id": "x", "body_parts": ["left_arm", "chest"], "date": DATE})
        assert log.body_region == "left_arm"

    def test_missing_body_parts_is_unknown(self):
        assert normalize_log({"id": "x", "date": DATE}).body_region == UNKNOWN_REGION
        assert normalize_log({"id": "x", "body_parts": [], "date": DATE}).body_region == UNKNOWN_REGION
        assert normalize_log({"id": "x", "body_parts": None, "date": DATE}).body_region == UNKNOWN_REGION

    def test_malformed_body_parts_is_unknown(self):
        assert normalize_log({"id": "x", "body_parts": "head", "date": DATE}).body_region == UNKNOWN_REGION
        assert normalize_log({"id": "x", "body_parts": [3], "date": DATE}).body_region == UNKNOWN_REGION

    def test_missing_severity_is_zero(self):
        assert normalize_log({"id": "x", "date": DATE}).pain_score == 0

    def test_malformed_severity_is_zero(self):
        for bad in ["severe", float("nan"), float("inf"), True, {"v": 3}]:
            assert normalize_log({"id": "x", "severity": bad, "date": DATE}).pain_score == 0, bad

    def test_numeric_string_severity(self):
        assert normalize_log({"id": "x", "severity": " 7 ", "date": DATE}).pain_score == 7.0

    def test_missing_description_is_empty_notes(self):
        assert normalize_log({"id": "x", "date": DATE}).notes == ""
        assert normalize_log({"id": "x", "description": 12, "date": DATE}).notes == ""

    def test_date_passes_through(self):
        assert normalize_log({"id": "x", "date": "2026-02-20T09:30:00Z"}).datetime == "2026-02-20T09:30:00Z"

    def test_attribute_style_record(self):
        row = SimpleNamespace(
            id="orm-1", body_parts=["back"], severity=3.5, date=DATE, description=None
        )
        log = normalize_log(row)
        assert log.id == "orm-1"
        assert log.body_region == "back"
        assert log.pain_score == 3.5
        assert log.notes == ""

    def test_raw_record_not_mutated(self):
        raw = {"id": "x", "body_parts": ["head"], "severity": None, "date": DATE}
        snapshot = dict(raw)
        normalize_log(raw)
        assert raw == snapshot


class TestNormalizeLogs:

    def test_one_to_one_same_order(self):
        raws = [
            {"id": f"log-{i}", "body_parts": ["head"], "severity": i, "date": DATE - timedelta(days=i)}
            for i in range(5)
        ]
        logs = normalize_logs(raws)
        assert [log.id for log in logs] == [f"log-{i}" for i in range(5)]

    def test_no_dedup(self):
        raw = {"id": "same", "body_parts": ["head"], "severity": 4, "date": DATE}
        assert len(normalize_logs([raw, raw])) == 2

    def test_none_is_empty(self):
        assert normalize_logs(None) == []


class TestNormalizeProfile:

    def test_missing_profile(self):
        assert normalize_profile(None) is None

    def test_family_history_list(self):
        profile = normalize_profile({"user_id": "u", "family_history": ["Migraine", "asthma"]})
        assert profile.family_history == ["Migraine", "asthma"]

    def test_family_history_string_is_wrapped(self):
        profile = normalize_profile({"user_id": "u", "family_history": "heart disease"})
        assert profile.family_history == ["heart disease"]

    def test_family_history_garbage_is_empty(self):
        profile = normalize_profile({"user_id": "u", "family_history": 42})
        assert profile.family_history == []

    def test_lifestyle_fields(self):
        profile = normalize_profile({
            "user_id": "u",
            "lifestyle_sleep_hours": 6.5,
            "lifestyle_activity_level": "moderate",
            "lifestyle_diet_type": "mixed",
        })
        assert profile.lifestyle_sleep_hours == 6.5
        assert profile.lifestyle_activity_level == "moderate"
        assert profile.lifestyle_diet_type == "mixed"


class TestParseTimestamp:

    def test_aware_datetime(self):
        assert parse_timestamp(DATE) == DATE

    def test_naive_is_utc(self):
        assert parse_timestamp(datetime(2026, 2, 20, 9, 30)) == DATE

    def test_zulu_string(self):
        assert parse_timestamp("2026-02-20T09:30:00Z") == DATE

    def test_offset_string(self):
        assert parse_timestamp("2026-02-20T11:30:00+02:00") == DATE

    def test_unparsable(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(12345) is None
