"""Loading completed and unplayed matches in replay order."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import MatchHistoryUnavailable
from ..models import MATCH_STATUS_COMPLETED, UNPLAYED_MATCH_STATUSES, Match
from ..time_utils import coerce_utc
from .validation import ValidationError, validate_match_result

logger = logging.getLogger(__name__)

_NO_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class CompletedMatch:
    """A finished two-player match as consumed by the rating and record replays."""

    id: str
    player1_id: str
    player2_id: str
    player1_score: int
    player2_score: int
    completed_at: Optional[datetime] = None

    @property
    def player1_won(self) -> bool:
        # Equal scores fall through to player 2.
        return self.player1_score > self.player2_score

    @property
    def winner_id(self) -> str:
        return self.player1_id if self.player1_won else self.player2_id

    @property
    def loser_id(self) -> str:
        return self.player2_id if self.player1_won else self.player1_id

    def involves(self, player_id: str) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def opponent_of(self, player_id: str) -> str:
        return self.player2_id if player_id == self.player1_id else self.player1_id

    def scores_for(self, player_id: str) -> tuple[int, int]:
        """Return ``(own_score, opponent_score)`` from ``player_id``'s side."""
        if player_id == self.player1_id:
            return self.player1_score, self.player2_score
        return self.player2_score, self.player1_score


@dataclass(frozen=True)
class UnplayedMatch:
    id: str
    player1_id: str
    player2_id: str
    status: str

    def involves(self, player_id: str) -> bool:
        return player_id in (self.player1_id, self.player2_id)

    def opponent_of(self, player_id: str) -> str:
        return self.player2_id if player_id == self.player1_id else self.player1_id


def order_matches(matches: Iterable[CompletedMatch]) -> list[CompletedMatch]:
    """Return ``matches`` sorted by completion time, oldest first.

    The sort is stable, so matches completed at the same instant keep the
    order they were supplied in (insertion order when read from the store).
    Matches without a completion time sort last.
    """

    def key(match: CompletedMatch) -> tuple[bool, datetime]:
        completed = coerce_utc(match.completed_at)
        return completed is None, completed or _NO_TIMESTAMP

    return sorted(matches, key=key)


def _to_completed(row: Match) -> Optional[CompletedMatch]:
    try:
        score1, score2 = validate_match_result(
            row.player1_id, row.player2_id, row.player1_score, row.player2_score
        )
    except ValidationError as exc:
        logger.warning("Skipping match %s from replay: %s", row.id, exc.detail)
        return None

    if score1 is None or score2 is None:
        logger.warning(
            "Completed match %s is missing a score; treating it as 0", row.id
        )
        score1 = score1 or 0
        score2 = score2 or 0

    if score1 == score2:
        logger.info(
            "Completed match %s has equal scores (%s-%s); counting it as a win for %s",
            row.id,
            score1,
            score2,
            row.player2_id,
        )

    return CompletedMatch(
        id=row.id,
        player1_id=row.player1_id,
        player2_id=row.player2_id,
        player1_score=score1,
        player2_score=score2,
        completed_at=row.completed_at,
    )


def _completed_stmt():
    return (
        select(Match)
        .where(Match.status == MATCH_STATUS_COMPLETED)
        .order_by(Match.completed_at, Match.created_at, Match.id)
    )


async def load_completed_matches(
    session: AsyncSession, league_id: str, season_id: str | None = None
) -> list[CompletedMatch]:
    """Return the completed matches of a league (optionally one season) in replay order."""

    stmt = _completed_stmt().where(Match.league_id == league_id)
    if season_id is not None:
        stmt = stmt.where(Match.season_id == season_id)

    try:
        rows = (await session.execute(stmt)).scalars().all()
    except SQLAlchemyError as exc:
        logger.error("Failed to load match history for league %s", league_id, exc_info=True)
        raise MatchHistoryUnavailable(league_id, exc) from exc

    converted = (_to_completed(row) for row in rows)
    return order_matches(m for m in converted if m is not None)


async def load_all_completed_matches(
    session: AsyncSession,
) -> dict[str, list[CompletedMatch]]:
    """Return completed matches for every league, keyed by league id."""

    try:
        rows = (await session.execute(_completed_stmt())).scalars().all()
    except SQLAlchemyError as exc:
        logger.error("Failed to load match history for all leagues", exc_info=True)
        raise MatchHistoryUnavailable(None, exc) from exc

    grouped: dict[str, list[CompletedMatch]] = {}
    for row in rows:
        match = _to_completed(row)
        if match is not None:
            grouped.setdefault(row.league_id, []).append(match)
    return {league_id: order_matches(ms) for league_id, ms in grouped.items()}


async def load_unplayed_matches(
    session: AsyncSession, league_id: str, season_id: str
) -> list[UnplayedMatch]:
    """Return scheduled and in-progress fixtures of a season."""

    stmt = (
        select(Match)
        .where(
            Match.league_id == league_id,
            Match.season_id == season_id,
            Match.status.in_(UNPLAYED_MATCH_STATUSES),
        )
        .order_by(Match.scheduled_at, Match.created_at, Match.id)
    )
    try:
        rows = (await session.execute(stmt)).scalars().all()
    except SQLAlchemyError as exc:
        logger.error("Failed to load fixtures for league %s", league_id, exc_info=True)
        raise MatchHistoryUnavailable(league_id, exc) from exc

    return [
        UnplayedMatch(
            id=row.id,
            player1_id=row.player1_id,
            player2_id=row.player2_id,
            status=row.status,
        )
        for row in rows
    ]
