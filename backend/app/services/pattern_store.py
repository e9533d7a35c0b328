"""
Symptom Journal Pattern Store
=============================
Reads the analysis working set (logs, profile) and appends the
flags and summaries produced by each analysis run.

Flag and summary rows are append-only: this store has no update or
delete entry points.
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timedelta
from typing import List, Optional
from ..models.database import AIFlag, AISummary, HealthLog, HealthProfile
import logging

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for store failures."""


class StoreReadError(StoreError):
    """Reading logs or profile failed."""


class PersistenceError(StoreError):
    """Writing flags or summaries failed."""


class PatternStore:
    """Store boundary used by the pattern analysis engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------

    async def fetch_recent_logs(
        self,
        user_id: str,
        now: datetime,
        lookback_days: int = 365,
        limit: int = 365,
    ) -> List[HealthLog]:
        """User's logs dated within the lookback window, newest first."""
        cutoff = now - timedelta(days=lookback_days)
        query = (
            select(HealthLog)
            .where(HealthLog.user_id == user_id)
            .where(HealthLog.date >= cutoff)
            .order_by(HealthLog.date.desc())
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to fetch logs: {e}") from e
        return list(result.scalars().all())

    async def fetch_profile(self, user_id: str) -> Optional[HealthProfile]:
        """The user's profile, or None when they have not created one."""
        query = select(HealthProfile).where(HealthProfile.user_id == user_id)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to fetch profile: {e}") from e
        return result.scalars().first()

    async def get_flags(self, user_id: str, limit: int = 20) -> List[AIFlag]:
        query = (
            select(AIFlag)
            .where(AIFlag.user_id == user_id)
            .order_by(AIFlag.created_at.desc())
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to fetch flags: {e}") from e
        return list(result.scalars().all())

    async def get_flags_for_log(self, log_id: str) -> List[AIFlag]:
        query = (
            select(AIFlag)
            .where(AIFlag.log_id == log_id)
            .order_by(AIFlag.created_at.desc())
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to fetch flags: {e}") from e
        return list(result.scalars().all())

    async def get_summaries(self, user_id: str, limit: int = 10) -> List[AISummary]:
        query = (
            select(AISummary)
            .where(AISummary.user_id == user_id)
            .order_by(AISummary.created_at.desc())
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreReadError(f"Failed to fetch summaries: {e}") from e
        return list(result.scalars().all())

    # -----------------------------------------------------------------
    # Appends
    # -----------------------------------------------------------------

    async def add_flag(
        self,
        user_id: str,
        log_id: Optional[str],
        title: str,
        reasoning_summary: str,
        severity: str,
        confidence_score: int,
        risk_score: int,
    ) -> AIFlag:
        """Stage one flag insert; visible after commit()."""
        flag = AIFlag(
            user_id=user_id,
            log_id=log_id,
            title=title,
            reasoning_summary=reasoning_summary,
            severity=severity,
            confidence_score=confidence_score,
            risk_score=risk_score,
        )
        self.db.add(flag)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to insert flag: {e}") from e
        return flag

    async def add_summary(
        self,
        user_id: str,
        summary_text: str,
        date_range_start: Optional[datetime],
        date_range_end: Optional[datetime],
    ) -> AISummary:
        """Stage the run's summary insert; visible after commit()."""
        summary = AISummary(
            user_id=user_id,
            summary_text=summary_text,
            date_range_start=date_range_start,
            date_range_end=date_range_end,
        )
        self.db.add(summary)
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to insert summary: {e}") from e
        return summary

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to commit analysis output: {e}") from e

    async def rollback(self) -> None:
        await self.db.rollback()
