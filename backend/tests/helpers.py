"""Shared builders for database-backed tests."""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import db, models

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


async def create_test_engine():
    """Return an in-memory engine with every table created, plus its session maker."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(db.Base.metadata.create_all)
    maker = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    return engine, maker


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def seed_league(session, league_id="l1", players=("a", "b", "c"), *, season_active=True):
    season_id = f"{league_id}-s1"
    session.add(models.League(id=league_id, slug=league_id, name=league_id.upper()))
    session.add(
        models.Season(id=season_id, league_id=league_id, name="S1", is_active=season_active)
    )
    for pid in players:
        session.add(models.Participant(id=pid, league_id=league_id, name=pid.upper()))
        session.add(
            models.SeasonParticipant(
                id=f"{season_id}-{pid}", season_id=season_id, participant_id=pid
            )
        )


def completed(mid, p1, p2, s1, s2, minutes, *, league_id="l1", season_id=None):
    return models.Match(
        id=mid,
        league_id=league_id,
        season_id=season_id,
        player1_id=p1,
        player2_id=p2,
        player1_score=s1,
        player2_score=s2,
        status=models.MATCH_STATUS_COMPLETED,
        completed_at=at(minutes),
        created_at=at(minutes),
    )


def scheduled(mid, p1, p2, *, league_id="l1", season_id=None, status="scheduled"):
    return models.Match(
        id=mid,
        league_id=league_id,
        season_id=season_id,
        player1_id=p1,
        player2_id=p2,
        status=status,
    )
