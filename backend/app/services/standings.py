import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import standings_cache
from ..db_errors import is_missing_table_error
from ..exceptions import MatchHistoryUnavailable, SeasonNotFound
from ..models import (
    MATCH_STATUS_COMPLETED,
    Match,
    Participant,
    PlayerRating,
    Season,
    SeasonParticipant,
)
from .match_history import load_completed_matches
from .rating import DEFAULT_POLICY, RatingState, seed_state
from .stats import ParticipantRecord, aggregate_records

logger = logging.getLogger(__name__)

StandingsOrder = Literal["points", "rating"]


@dataclass(frozen=True)
class StandingRow:
    player_id: str
    name: str
    wins: int
    losses: int
    sets_won: int
    sets_lost: int
    current_rating: float
    is_provisional: bool
    winning_streak: int

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def points(self) -> int:
        return self.wins * 2

    @property
    def total_matches(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.total_matches if self.total_matches else 0.0


def _name_key(row: StandingRow) -> tuple[str, str, str]:
    return row.name.casefold(), row.name, row.player_id


def _sort_key(row: StandingRow, order: StandingsOrder):
    if order == "rating":
        return (-row.current_rating, -row.win_rate, *_name_key(row))
    return (-row.points, -row.set_diff, *_name_key(row))


def compose_standings(
    participants: Mapping[str, str],
    records: Mapping[str, ParticipantRecord],
    ratings: Mapping[str, RatingState],
    order: StandingsOrder = "points",
) -> list[StandingRow]:
    """Merge records and ratings into a ranked standings table.

    ``participants`` maps participant id to display name; every participant
    gets a row, with an empty record when they have no completed matches and
    the seed rating when they have no rating row. ``order="points"`` ranks by
    points, then set difference, then name; ``order="rating"`` (exhibition
    play) ranks by rating, then win rate, then name.
    """

    if order not in ("points", "rating"):
        raise ValueError(f"unknown standings order {order!r}")

    rows = []
    for pid, name in participants.items():
        record = records.get(pid) or ParticipantRecord(player_id=pid)
        rating = ratings.get(pid) or seed_state(pid, DEFAULT_POLICY)
        rows.append(
            StandingRow(
                player_id=pid,
                name=name,
                wins=record.wins,
                losses=record.losses,
                sets_won=record.sets_won,
                sets_lost=record.sets_lost,
                current_rating=rating.rating,
                is_provisional=rating.is_provisional,
                winning_streak=record.winning_streak,
            )
        )
    rows.sort(key=lambda row: _sort_key(row, order))
    return rows


async def load_rating_states(
    session: AsyncSession, league_id: str
) -> dict[str, RatingState]:
    """Return stored ratings of a league; empty when the rating table is missing."""

    try:
        rows = (
            await session.execute(
                select(PlayerRating).where(PlayerRating.league_id == league_id)
            )
        ).scalars().all()
    except SQLAlchemyError as exc:
        if not is_missing_table_error(exc, PlayerRating.__tablename__):
            raise
        logger.warning("player_rating table missing; using seed ratings")
        await session.rollback()
        return {}
    return {
        r.player_id: RatingState(
            player_id=r.player_id,
            rating=r.current_rating,
            matches_played=r.matches_played,
            is_provisional=r.is_provisional,
        )
        for r in rows
    }


async def load_season(session: AsyncSession, league_id: str, season_id: str) -> Season:
    """Return the season ``season_id`` of the league or raise ``SeasonNotFound``."""

    season = (
        await session.execute(
            select(Season).where(Season.id == season_id, Season.league_id == league_id)
        )
    ).scalar_one_or_none()
    if season is None:
        raise SeasonNotFound(season_id)
    return season


async def load_participant_names(
    session: AsyncSession, league_id: str, season_id: Optional[str] = None
) -> dict[str, str]:
    """Return participant names of the league, or only the season's members."""

    stmt = select(Participant.id, Participant.name).where(
        Participant.league_id == league_id
    )
    if season_id is not None:
        stmt = stmt.join(
            SeasonParticipant, SeasonParticipant.participant_id == Participant.id
        ).where(SeasonParticipant.season_id == season_id)
    rows = (await session.execute(stmt)).all()
    return {row.id: row.name for row in rows}


async def _history_marker(
    session: AsyncSession, league_id: str, season_id: Optional[str]
) -> tuple[int, Any]:
    # Changes whenever a match of the league (or season) is completed.
    stmt = select(func.count(Match.id), func.max(Match.completed_at)).where(
        Match.league_id == league_id, Match.status == MATCH_STATUS_COMPLETED
    )
    if season_id is not None:
        stmt = stmt.where(Match.season_id == season_id)
    try:
        count, last_completed = (await session.execute(stmt)).one()
    except SQLAlchemyError as exc:
        logger.error("Failed to read match history state for league %s", league_id, exc_info=True)
        raise MatchHistoryUnavailable(league_id, exc) from exc
    return count, last_completed


async def load_standings(
    session: AsyncSession,
    league_id: str,
    season_id: Optional[str] = None,
    order: StandingsOrder = "points",
    *,
    use_cache: bool = True,
) -> list[StandingRow]:
    """Compose the standings of a league, or of one season when ``season_id`` is set.

    Season standings list only the season's members. Cached results are keyed
    by the number and latest completion time of the completed matches, so a
    newly completed match is visible on the next read; a rating recalculation
    drops the league's entries. ``use_cache=False`` always reads fresh rows.
    Raises ``SeasonNotFound`` when ``season_id`` is not a season of the league.
    """

    if season_id is not None:
        await load_season(session, league_id, season_id)

    key = None
    if use_cache:
        marker = await _history_marker(session, league_id, season_id)
        key = (league_id, season_id, order, marker)
        cached = await standings_cache.get(key)
        if cached is not None:
            return cached

    participants = await load_participant_names(session, league_id, season_id)
    matches = await load_completed_matches(session, league_id, season_id)
    ratings = await load_rating_states(session, league_id)
    rows = compose_standings(participants, aggregate_records(matches), ratings, order)

    if key is not None:
        await standings_cache.set(key, rows)
    return rows
