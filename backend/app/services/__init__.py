"""Rating, standings and prediction services.

The replay and estimation functions are pure; the ``load_*`` and
``recalculate_*`` coroutines are the only parts that touch the database.
"""

from .validation import ValidationError, validate_match_result
from .match_history import (
    CompletedMatch,
    UnplayedMatch,
    order_matches,
    load_completed_matches,
    load_all_completed_matches,
    load_unplayed_matches,
)
from .rating import (
    RatingPolicy,
    RatingState,
    RatingRecalculation,
    expected_score,
    k_factor,
    replay_ratings,
    recalculate_league_ratings,
    recalculate_all_leagues,
)
from .stats import ParticipantRecord, aggregate_records, compute_streaks
from .standings import StandingRow, compose_standings, load_standings
from .head_to_head import HeadToHead, estimate_head_to_head
from .predictions import SeasonPrediction, predict_season

__all__ = [
    "ValidationError",
    "validate_match_result",
    "CompletedMatch",
    "UnplayedMatch",
    "order_matches",
    "load_completed_matches",
    "load_all_completed_matches",
    "load_unplayed_matches",
    "RatingPolicy",
    "RatingState",
    "RatingRecalculation",
    "expected_score",
    "k_factor",
    "replay_ratings",
    "recalculate_league_ratings",
    "recalculate_all_leagues",
    "ParticipantRecord",
    "aggregate_records",
    "compute_streaks",
    "StandingRow",
    "compose_standings",
    "load_standings",
    "HeadToHead",
    "estimate_head_to_head",
    "SeasonPrediction",
    "predict_season",
]
