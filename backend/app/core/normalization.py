"""
Symptom Journal - Log Normalization
===================================
Maps stored symptom logs and health profiles onto the small records the
pattern analysis pipeline works with.

Raw records may be ORM rows or plain mappings. Malformed fields degrade to
safe defaults; nothing in this module raises on bad data.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional


UNKNOWN_REGION = "unknown"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class NormalizedLog:
    """One symptom log reduced to the fields the analysis needs."""
    id: Any
    body_region: str
    pain_score: float
    datetime: Any  # passed through from the stored log date
    notes: str


@dataclass
class ProfileSnapshot:
    """Read-only view of a user's health profile."""
    user_id: Any
    family_history: List[str] = field(default_factory=list)
    allergies: List[str] = field(default_factory=list)
    height: Optional[float] = None
    weight: Optional[float] = None
    lifestyle_sleep_hours: Optional[float] = None
    lifestyle_activity_level: Optional[str] = None
    lifestyle_diet_type: Optional[str] = None


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _get(raw: Any, name: str) -> Any:
    """Read a field from a mapping or an attribute-style record."""
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _as_string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Convert a stored timestamp into an aware UTC datetime.

    Accepts datetimes and ISO-8601 strings (``Z`` suffix allowed).
    Naive values are taken as UTC. Returns None when unparsable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_log(raw: Any) -> NormalizedLog:
    """Map a single stored log onto a NormalizedLog."""
    body_parts = _get(raw, "body_parts")
    body_region = UNKNOWN_REGION
    if isinstance(body_parts, (list, tuple)) and body_parts:
        first = body_parts[0]
        if isinstance(first, str) and first:
            body_region = first

    pain_score = _as_number(_get(raw, "severity"))
    description = _get(raw, "description")

    return NormalizedLog(
        id=_get(raw, "id"),
        body_region=body_region,
        pain_score=pain_score if pain_score is not None else 0,
        datetime=_get(raw, "date"),
        notes=description if isinstance(description, str) else "",
    )


def normalize_logs(raw_logs: Optional[Iterable[Any]]) -> List[NormalizedLog]:
    """1:1, order-preserving normalization of the working set."""
    return [normalize_log(raw) for raw in (raw_logs or [])]


def normalize_profile(raw: Any) -> Optional[ProfileSnapshot]:
    """Snapshot a stored profile; None when the user has no profile."""
    if raw is None:
        return None

    return ProfileSnapshot(
        user_id=_get(raw, "user_id"),
        family_history=_as_string_list(_get(raw, "family_history")),
        allergies=_as_string_list(_get(raw, "allergies")),
        height=_as_number(_get(raw, "height")),
        weight=_as_number(_get(raw, "weight")),
        lifestyle_sleep_hours=_as_number(_get(raw, "lifestyle_sleep_hours")),
        lifestyle_activity_level=_get(raw, "lifestyle_activity_level"),
        lifestyle_diet_type=_get(raw, "lifestyle_diet_type"),
    )
