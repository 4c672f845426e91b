from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Integer,
    Float,
    Boolean,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from .db import Base

MATCH_STATUS_SCHEDULED = "scheduled"
MATCH_STATUS_IN_PROGRESS = "in_progress"
MATCH_STATUS_COMPLETED = "completed"
MATCH_STATUS_CANCELLED = "cancelled"

UNPLAYED_MATCH_STATUSES = (MATCH_STATUS_SCHEDULED, MATCH_STATUS_IN_PROGRESS)


class League(Base):
    __tablename__ = "league"
    id = Column(String, primary_key=True)
    slug = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)


class LeagueAdmin(Base):
    __tablename__ = "league_admin"
    id = Column(String, primary_key=True)
    league_id = Column(String, ForeignKey("league.id"), nullable=False)
    email = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("league_id", "email", name="uq_league_admin_league_id_email"),
    )


class Season(Base):
    __tablename__ = "season"
    id = Column(String, primary_key=True)
    league_id = Column(String, ForeignKey("league.id"), nullable=False)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)


class Participant(Base):
    __tablename__ = "participant"
    id = Column(String, primary_key=True)
    league_id = Column(String, ForeignKey("league.id"), nullable=False)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class SeasonParticipant(Base):
    """Membership of a participant in one season of their league."""

    __tablename__ = "season_participant"
    id = Column(String, primary_key=True)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    participant_id = Column(String, ForeignKey("participant.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "season_id",
            "participant_id",
            name="uq_season_participant_season_id_participant_id",
        ),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    league_id = Column(String, ForeignKey("league.id"), nullable=False)
    season_id = Column(String, ForeignKey("season.id"), nullable=True)
    player1_id = Column(String, ForeignKey("participant.id"), nullable=False)
    player2_id = Column(String, ForeignKey("participant.id"), nullable=False)
    player1_score = Column(Integer, nullable=True)
    player2_score = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=MATCH_STATUS_SCHEDULED)
    scheduled_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_match_league_status_completed", "league_id", "status", "completed_at"),
    )


class PlayerRating(Base):
    """Current rating snapshot for a participant, rebuilt on every recompute."""

    __tablename__ = "player_rating"
    id = Column(String, primary_key=True)
    player_id = Column(String, ForeignKey("participant.id"), nullable=False)
    league_id = Column(String, ForeignKey("league.id"), nullable=False)
    current_rating = Column(Float, nullable=False, default=1200.0)
    matches_played = Column(Integer, nullable=False, default=0)
    is_provisional = Column(Boolean, nullable=False, default=True)
    last_updated_at = Column(DateTime, nullable=True, server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "player_id", "league_id", name="uq_player_rating_player_id_league_id"
        ),
    )
