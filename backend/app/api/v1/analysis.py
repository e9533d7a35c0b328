"""
Symptom Journal - Pattern Analysis API Routes
=============================================
Trigger endpoint for a pattern analysis run, plus read access to the
flags and summaries earlier runs appended.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ...config import settings
from ...db import get_db
from ...models.analysis import (
    AIFlagResponse,
    AIInsightsResponse,
    AISummaryResponse,
    AnalysisResult,
    ErrorResponse,
    PatternAnalysisRequest,
)
from ...services.llm_client import LLMClient, create_llm_client
from ...services.pattern_analysis import (
    AnalysisPersistenceError,
    AnalysisRequestError,
    PatternAnalysisEngine,
    UpstreamReadError,
)
from ...services.pattern_store import PatternStore, StoreReadError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["Pattern Analysis"])


# =============================================================
# DEPENDENCIES
# =============================================================

def get_pattern_store(db: AsyncSession = Depends(get_db)) -> PatternStore:
    return PatternStore(db)


def get_llm_client() -> Optional[LLMClient]:
    return create_llm_client(settings)


def get_pattern_engine(
    store: PatternStore = Depends(get_pattern_store),
    llm_client: Optional[LLMClient] = Depends(get_llm_client),
) -> PatternAnalysisEngine:
    return PatternAnalysisEngine.from_settings(store, llm_client, settings)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# =============================================================
# ENDPOINTS
# =============================================================

@router.post(
    "/pattern-analysis",
    response_model=AnalysisResult,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def run_pattern_analysis(
    request: PatternAnalysisRequest,
    engine: PatternAnalysisEngine = Depends(get_pattern_engine),
):
    """Analyze a user's symptom history, optionally focused on one log."""
    try:
        return await engine.analyze(request.user_id, log_id=request.log_id)
    except AnalysisRequestError as e:
        return error_response(400, str(e))
    except (UpstreamReadError, AnalysisPersistenceError) as e:
        return error_response(500, str(e))
    except Exception as e:
        logger.error(f"Pattern analysis failed for {request.user_id}: {e!r}")
        return error_response(500, str(e) or "Analysis failed")


@router.get(
    "/flags",
    response_model=List[AIFlagResponse],
    responses={500: {"model": ErrorResponse}},
)
async def list_flags(
    user_id: str = Query(..., description="Owner of the flags"),
    limit: int = Query(20, ge=1, le=200, description="Max records to return"),
    store: PatternStore = Depends(get_pattern_store),
):
    """Most recent flags for a user."""
    try:
        return await store.get_flags(user_id, limit=limit)
    except StoreReadError as e:
        return error_response(500, str(e))


@router.get(
    "/flags/log/{log_id}",
    response_model=List[AIFlagResponse],
    responses={500: {"model": ErrorResponse}},
)
async def list_flags_for_log(
    log_id: str,
    store: PatternStore = Depends(get_pattern_store),
):
    """Flags attached to one log."""
    try:
        return await store.get_flags_for_log(log_id)
    except StoreReadError as e:
        return error_response(500, str(e))


@router.get(
    "/summaries",
    response_model=List[AISummaryResponse],
    responses={500: {"model": ErrorResponse}},
)
async def list_summaries(
    user_id: str = Query(..., description="Owner of the summaries"),
    limit: int = Query(10, ge=1, le=200, description="Max records to return"),
    store: PatternStore = Depends(get_pattern_store),
):
    """Most recent run summaries for a user."""
    try:
        return await store.get_summaries(user_id, limit=limit)
    except StoreReadError as e:
        return error_response(500, str(e))


@router.get(
    "/insights",
    response_model=AIInsightsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def get_insights(
    user_id: str = Query(..., description="Owner of the insights"),
    store: PatternStore = Depends(get_pattern_store),
):
    """Flags and summaries for the insights page."""
    try:
        flags = await store.get_flags(user_id, limit=20)
        summaries = await store.get_summaries(user_id, limit=10)
    except StoreReadError as e:
        return error_response(500, str(e))
    return AIInsightsResponse(
        flags=[AIFlagResponse.model_validate(flag) for flag in flags],
        summaries=[AISummaryResponse.model_validate(summary) for summary in summaries],
    )
