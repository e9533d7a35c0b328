"""
Symptom Journal - Pattern Analysis API Models
=============================================
Pydantic models for request/response validation and for the
structured output expected from the language model.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum


# =============================================================
# ENUMS
# =============================================================

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PersistencePolicy(str, Enum):
    BEST_EFFORT = "best_effort"
    STRICT = "strict"


# =============================================================
# LANGUAGE MODEL OUTPUT
# =============================================================

class LLMFlag(BaseModel):
    """Single pattern observation returned by the model."""
    title: str
    reasoning_summary: str
    severity: Severity
    confidence_score: int = Field(ge=0, le=100)


class PredictiveRiskAssessment(BaseModel):
    """Qualitative risk level with the model's reasoning."""
    risk_level: Severity
    reasoning: str


class LLMResult(BaseModel):
    """Full structured response of the insight model."""
    flags: List[LLMFlag]
    insights: List[str]
    anomaly_detected: bool
    predictive_risk_assessment: PredictiveRiskAssessment
    family_history_connections: List[str]
    summary: str


# =============================================================
# REQUEST MODELS
# =============================================================

class PatternAnalysisRequest(BaseModel):
    """Trigger for one analysis run."""
    # Optional so a missing user_id gets the fixed client error, not a 422
    user_id: Optional[str] = None
    log_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "test-user-analysis",
                "log_id": None,
            }
        }


# =============================================================
# RESPONSE MODELS
# =============================================================

class AnalysisResult(BaseModel):
    """Complete pattern analysis response."""
    flags: List[LLMFlag] = []
    insights: List[str] = []
    risk_score: int = Field(ge=0, le=100)
    summary: str
    anomaly_detected: bool
    family_history_connections: List[str] = []


class ErrorResponse(BaseModel):
    """Error body for every failed call."""
    error: str


class AIFlagResponse(BaseModel):
    """Persisted flag row."""
    id: str
    user_id: str
    log_id: Optional[str]
    title: str
    reasoning_summary: str
    severity: Severity
    confidence_score: int
    risk_score: int
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AISummaryResponse(BaseModel):
    """Persisted summary row."""
    id: str
    user_id: str
    summary_text: str
    date_range_start: Optional[datetime]
    date_range_end: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AIInsightsResponse(BaseModel):
    """Flags and summaries for the insights page."""
    flags: List[AIFlagResponse]
    summaries: List[AISummaryResponse]
