"""
Symptom Journal - Seed Test Data
================================
Seeds fake health logs and a health profile for the demo user so the
pattern analysis can be exercised end to end.

Run from backend folder:
    python seed_test_data.py
    python seed_test_data.py --run        # also run the analysis and print it
    python seed_test_data.py --run --database-url sqlite+aiosqlite:///./demo.db
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add app to path
sys.path.insert(0, str(Path(__file__).parent))

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db import build_engine, init_db
from app.models.database import HealthLog, HealthProfile
from app.services.llm_client import create_llm_client
from app.services.pattern_analysis import PatternAnalysisEngine
from app.services.pattern_store import PatternStore


TEST_USER_ID = "test-user-analysis"

# (days ago, title, description, region, severity)
FAKE_LOGS = [
    (1, "Headache", "Tension headache after work", "head", 4),
    (2, "Lower back pain", "Ache after sitting long", "back", 5),
    (3, "Knee stiffness", "Right knee in the morning", "right_leg", 3),
    (5, "Headache again", "Similar to last week", "head", 5),
    (7, "Chest tightness", "Brief, after exercise", "chest", 3),
    (10, "Back pain", "Recurring lower back", "back", 6),
    (14, "Neck pain", "From desk work", "neck", 4),
    (18, "Headache", "Third headache this month", "head", 6),
    (21, "Right knee", "Twinge when climbing stairs", "right_leg", 4),
    (25, "Abdomen discomfort", "Mild, after lunch", "abdomen", 2),
]

FAKE_PROFILE = {
    "family_history": ["migraine", "arthritis"],
    "height": 170,
    "weight": 70,
    "lifestyle_sleep_hours": 6.5,
    "lifestyle_activity_level": "moderate",
    "lifestyle_diet_type": "mixed",
}


def days_ago(days: int, now: datetime) -> datetime:
    return (now - timedelta(days=days)).replace(hour=12, minute=0, second=0, microsecond=0)


def build_logs(user_id: str, now: datetime) -> list:
    return [
        HealthLog(
            user_id=user_id,
            title=title,
            description=description,
            body_parts=[region],
            severity=severity,
            date=days_ago(days, now),
        )
        for days, title, description, region, severity in FAKE_LOGS
    ]


async def seed(session: AsyncSession, user_id: str, now: datetime) -> int:
    """Insert the fake logs and upsert the profile. Returns logs inserted."""
    logs = build_logs(user_id, now)
    session.add_all(logs)
    await session.merge(HealthProfile(user_id=user_id, **FAKE_PROFILE))
    await session.commit()
    return len(logs)


async def main(args) -> int:
    engine = build_engine(args.database_url)
    now = datetime.now(timezone.utc)

    try:
        await init_db(bind=engine)

        async with AsyncSession(engine, expire_on_commit=False) as session:
            count = await seed(session, args.user_id, now)
            print(f"Inserted {count} fake health_logs for {args.user_id}")
            print(f"Upserted health_profile for {args.user_id}")

            if not args.run:
                print("")
                print(f"Test user_id: {args.user_id}")
                print("You can now run: python seed_test_data.py --run")
                return 0

            analysis = PatternAnalysisEngine.from_settings(
                PatternStore(session), create_llm_client(settings), settings
            )
            result = await analysis.analyze(args.user_id, now=now)

        print("\nAnalysis result:")
        print(json.dumps(result.model_dump(mode="json"), indent=2))
        return 0
    finally:
        await engine.dispose()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Seed demo data for pattern analysis")
    parser.add_argument("--user-id", default=TEST_USER_ID, help="Owner of the seeded rows")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Async SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    parser.add_argument("--run", action="store_true", help="Run the analysis after seeding")
    return parser.parse_args(argv)


if __name__ == "__main__":
    sys.exit(asyncio.run(main(parse_args())))
