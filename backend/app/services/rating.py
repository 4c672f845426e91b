import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import standings_cache
from ..config import (
    RATING_K_ESTABLISHED,
    RATING_K_PROVISIONAL,
    RATING_PROVISIONAL_THRESHOLD,
    RATING_SEED,
)
from ..exceptions import MatchHistoryUnavailable, RatingRecalculationError
from ..models import League, PlayerRating
from ..time_utils import utcnow_naive
from .match_history import (
    CompletedMatch,
    load_all_completed_matches,
    load_completed_matches,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatingPolicy:
    """K-factor schedule and seed used when replaying match history."""

    seed: float = RATING_SEED
    k_provisional: float = RATING_K_PROVISIONAL
    k_established: float = RATING_K_ESTABLISHED
    provisional_threshold: int = RATING_PROVISIONAL_THRESHOLD


DEFAULT_POLICY = RatingPolicy()


@dataclass(frozen=True)
class RatingState:
    player_id: str
    rating: float
    matches_played: int = 0
    is_provisional: bool = True


def expected_score(rating: float, opponent_rating: float) -> float:
    """Return the Elo expected score of ``rating`` against ``opponent_rating``."""
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def k_factor(matches_played: int, policy: RatingPolicy = DEFAULT_POLICY) -> float:
    if matches_played < policy.provisional_threshold:
        return policy.k_provisional
    return policy.k_established


def seed_state(player_id: str, policy: RatingPolicy = DEFAULT_POLICY) -> RatingState:
    return RatingState(player_id=player_id, rating=policy.seed)


def _advance(
    state: RatingState, actual: float, expected: float, policy: RatingPolicy
) -> RatingState:
    k = k_factor(state.matches_played, policy)
    played = state.matches_played + 1
    return replace(
        state,
        rating=state.rating + k * (actual - expected),
        matches_played=played,
        is_provisional=played < policy.provisional_threshold,
    )


def apply_match(
    player1: RatingState,
    player2: RatingState,
    player1_won: bool,
    policy: RatingPolicy = DEFAULT_POLICY,
) -> tuple[RatingState, RatingState]:
    """Return both participants' states after one match.

    Both expectations are taken from the pre-match ratings, and each side's
    K is chosen from that side's own match count.
    """

    expected1 = expected_score(player1.rating, player2.rating)
    expected2 = 1 - expected1
    actual1 = 1.0 if player1_won else 0.0
    actual2 = 1 - actual1
    return (
        _advance(player1, actual1, expected1, policy),
        _advance(player2, actual2, expected2, policy),
    )


def replay_ratings(
    matches: Iterable[CompletedMatch], policy: RatingPolicy = DEFAULT_POLICY
) -> dict[str, RatingState]:
    """Replay ``matches`` (already in chronological order) from seed ratings.

    Every participant appearing in the history starts at ``policy.seed`` with
    no matches played; the result maps participant id to the final state.
    Nothing outside the returned map is touched, so repeated replays of the
    same history always produce the same ratings.
    """

    states: dict[str, RatingState] = {}
    for match in matches:
        p1 = states.get(match.player1_id) or seed_state(match.player1_id, policy)
        p2 = states.get(match.player2_id) or seed_state(match.player2_id, policy)
        states[p1.player_id], states[p2.player_id] = apply_match(
            p1, p2, match.player1_won, policy
        )
    return states


@dataclass(frozen=True)
class PlayerRatingChange:
    player_id: str
    old_rating: float
    new_rating: float
    matches_played: int
    is_provisional: bool

    @property
    def rating_change(self) -> float:
        return self.new_rating - self.old_rating


@dataclass
class RatingRecalculation:
    league_id: str
    updated_players: int
    total_matches_processed: int
    changes: list[PlayerRatingChange] = field(default_factory=list)
    error: Optional[str] = None


async def _lock_league(session: AsyncSession, league_id: str) -> None:
    # Serializes concurrent recomputes of the same league on Postgres; SQLite
    # ignores FOR UPDATE and relies on its database-level write lock.
    await session.execute(
        select(League.id).where(League.id == league_id).with_for_update()
    )


async def _persist_ratings(
    session: AsyncSession,
    league_id: str,
    matches: list[CompletedMatch],
    policy: RatingPolicy,
) -> RatingRecalculation:
    states = replay_ratings(matches, policy)

    try:
        await _lock_league(session, league_id)
        existing = (
            await session.execute(
                select(PlayerRating).where(PlayerRating.league_id == league_id)
            )
        ).scalars().all()
        old_ratings = {r.player_id: r.current_rating for r in existing}

        # Delete and insert share one transaction: readers see either the
        # previous rating set or the new one.
        await session.execute(
            delete(PlayerRating).where(PlayerRating.league_id == league_id)
        )
        now = utcnow_naive()
        session.add_all(
            [
                PlayerRating(
                    id=uuid.uuid4().hex,
                    player_id=pid,
                    league_id=league_id,
                    current_rating=state.rating,
                    matches_played=state.matches_played,
                    is_provisional=state.is_provisional,
                    last_updated_at=now,
                )
                for pid, state in sorted(states.items())
            ]
        )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error(
            "Rating recalculation for league %s failed; rolled back", league_id,
            exc_info=True,
        )
        raise RatingRecalculationError(league_id, exc) from exc

    await standings_cache.invalidate_league(league_id)

    changes = [
        PlayerRatingChange(
            player_id=pid,
            old_rating=old_ratings.get(pid, policy.seed),
            new_rating=state.rating,
            matches_played=state.matches_played,
            is_provisional=state.is_provisional,
        )
        for pid, state in sorted(states.items())
    ]
    logger.info(
        "Recalculated ratings for league %s: %d players from %d matches",
        league_id,
        len(changes),
        len(matches),
    )
    return RatingRecalculation(
        league_id=league_id,
        updated_players=len(changes),
        total_matches_processed=len(matches),
        changes=changes,
    )


async def recalculate_league_ratings(
    session: AsyncSession,
    league_id: str,
    policy: RatingPolicy = DEFAULT_POLICY,
) -> RatingRecalculation:
    """Rebuild every rating row of a league from its full match history.

    Raises ``RatingRecalculationError`` when the history cannot be read (before
    any computation) or when persisting fails; in both cases no rating row is
    changed.
    """

    try:
        matches = await load_completed_matches(session, league_id)
    except MatchHistoryUnavailable as exc:
        await session.rollback()
        raise RatingRecalculationError(league_id, exc.cause or exc) from exc
    return await _persist_ratings(session, league_id, matches, policy)


async def recalculate_all_leagues(
    session: AsyncSession, policy: RatingPolicy = DEFAULT_POLICY
) -> list[RatingRecalculation]:
    """Recompute ratings for every league, one transaction per league.

    A league whose ratings cannot be written is reported with
    ``updated_players == 0`` and the error; the remaining leagues continue.
    """

    try:
        league_ids = (
            await session.execute(select(League.id).order_by(League.id))
        ).scalars().all()
    except SQLAlchemyError as exc:
        raise MatchHistoryUnavailable(None, exc) from exc
    matches_by_league = await load_all_completed_matches(session)
    await session.commit()

    results: list[RatingRecalculation] = []
    for league_id in league_ids:
        matches = matches_by_league.get(league_id, [])
        try:
            results.append(await _persist_ratings(session, league_id, matches, policy))
        except RatingRecalculationError as exc:
            results.append(
                RatingRecalculation(
                    league_id=league_id,
                    updated_players=0,
                    total_matches_processed=0,
                    error=exc.detail,
                )
            )
    return results
