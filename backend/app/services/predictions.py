import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..exceptions import InsufficientParticipants
from .match_history import UnplayedMatch
from .standings import StandingRow
from .stats import round_half_up

logger = logging.getLogger(__name__)

STANDING_WEIGHT = 0.4
REMAINING_WEIGHT = 0.35
FORM_WEIGHT = 0.25

MIN_PROBABILITY = 5.0
MAX_PROBABILITY = 95.0
MIN_MATCH_WIN = 0.15
MAX_MATCH_WIN = 0.85
POSITION_STEP = 0.05
POINTS_PER_WIN = 2

SCHEDULE_GAP = 3
STREAK_CALLOUT = 3
STRONG_WIN_RATE = 80.0
MAX_KEY_FACTORS = 3


@dataclass(frozen=True)
class SeasonPrediction:
    id: str
    name: str
    current_points: int
    current_position: int
    matches_remaining: int
    max_possible_points: int
    win_probability: float
    key_factors: tuple[str, ...]
    winning_streak: int
    win_percentage: float
    set_differential: int


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def standing_score(position: int) -> float:
    return max(0, 100 - (position - 1) * 10)


def form_score(winning_streak: int) -> float:
    return min(winning_streak * 5, 25)


def match_win_estimate(position_diff: int) -> float:
    """Chance of beating an opponent ``position_diff`` places below (negative: above)."""
    return _clamp(0.5 + position_diff * POSITION_STEP, MIN_MATCH_WIN, MAX_MATCH_WIN)


def _predict(
    row: StandingRow,
    position: int,
    positions: dict[str, int],
    fixtures: list[UnplayedMatch],
) -> SeasonPrediction:
    remaining = len(fixtures)
    win_percentage = row.win_rate * 100
    standing = standing_score(position)
    form = form_score(row.winning_streak)
    factors: list[str] = []

    if remaining == 0:
        probability = min(MAX_PROBABILITY, standing * STANDING_WEIGHT + form * FORM_WEIGHT)
        if position == 1:
            factors.append("Currently leading")
        factors.append("All matches completed")
    else:
        expected_points = 0.0
        strong = weak = 0
        for fixture in fixtures:
            opponent_position = positions.get(fixture.opponent_of(row.player_id))
            if opponent_position is None:
                logger.debug(
                    "Opponent of %s in fixture %s is not in the standings",
                    row.player_id,
                    fixture.id,
                )
                continue
            diff = opponent_position - position
            if diff >= SCHEDULE_GAP:
                weak += 1
            elif diff <= -SCHEDULE_GAP:
                strong += 1
            expected_points += match_win_estimate(diff) * POINTS_PER_WIN

        remaining_score = expected_points / (remaining * POINTS_PER_WIN) * 100
        probability = _clamp(
            standing * STANDING_WEIGHT
            + remaining_score * REMAINING_WEIGHT
            + form * FORM_WEIGHT,
            MIN_PROBABILITY,
            MAX_PROBABILITY,
        )

        if position == 1:
            factors.append("Leading the league")
        elif position <= 3:
            factors.append("Top 3 position")
        if remaining == 1:
            factors.append("1 match remaining")
        else:
            factors.append(f"{remaining} matches remaining")
        if weak > strong:
            factors.append("Favorable schedule")
        elif strong > weak:
            factors.append("Challenging schedule")
        if row.winning_streak >= STREAK_CALLOUT:
            factors.append(f"{row.winning_streak}-match winning streak")
        if win_percentage >= STRONG_WIN_RATE:
            factors.append("Strong win rate")

    return SeasonPrediction(
        id=row.player_id,
        name=row.name,
        current_points=row.points,
        current_position=position,
        matches_remaining=remaining,
        max_possible_points=row.points + remaining * POINTS_PER_WIN,
        win_probability=round_half_up(probability, 1),
        key_factors=tuple(factors[:MAX_KEY_FACTORS]),
        winning_streak=row.winning_streak,
        win_percentage=round_half_up(win_percentage, 1),
        set_differential=row.set_diff,
    )


def predict_season(
    standings: Sequence[StandingRow],
    unplayed: Iterable[UnplayedMatch],
    limit: int = 2,
) -> list[SeasonPrediction]:
    """Score every participant's chance of winning the season; return the top ``limit``.

    ``standings`` must already be ranked; position is the 1-based index. Ties
    in probability keep standings order.
    """
    if len(standings) < 2:
        raise InsufficientParticipants(len(standings))

    positions = {row.player_id: idx for idx, row in enumerate(standings, start=1)}
    fixtures_by_player: dict[str, list[UnplayedMatch]] = {pid: [] for pid in positions}
    for fixture in unplayed:
        for pid in (fixture.player1_id, fixture.player2_id):
            if pid in fixtures_by_player:
                fixtures_by_player[pid].append(fixture)

    predictions = [
        _predict(row, positions[row.player_id], positions, fixtures_by_player[row.player_id])
        for row in standings
    ]
    predictions.sort(key=lambda p: -p.win_probability)
    return predictions[:limit]
