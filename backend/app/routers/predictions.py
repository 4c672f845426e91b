import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_league
from ..db import get_session
from ..exceptions import InsufficientParticipants
from ..models import League, Season
from ..schemas import PredictionOut, PredictionsOut
from ..services.match_history import load_unplayed_matches
from ..services.predictions import SeasonPrediction, predict_season
from ..services.standings import load_standings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leagues", tags=["predictions"])


def _prediction_out(p: SeasonPrediction) -> PredictionOut:
    return PredictionOut(
        id=p.id,
        name=p.name,
        currentPoints=p.current_points,
        currentPosition=p.current_position,
        matchesRemaining=p.matches_remaining,
        maxPossiblePoints=p.max_possible_points,
        winProbability=p.win_probability,
        keyFactors=list(p.key_factors),
        winningStreak=p.winning_streak,
        winPercentage=p.win_percentage,
        setDifferential=p.set_differential,
    )


# GET /api/v0/leagues/{slug}/predictions
@router.get("/{slug}/predictions", response_model=PredictionsOut)
async def season_predictions(
    response: Response,
    league: League = Depends(get_league),
    session: AsyncSession = Depends(get_session),
):
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    generated_at = datetime.now(timezone.utc)

    season = (
        await session.execute(
            select(Season)
            .where(Season.league_id == league.id, Season.is_active.is_(True))
            .order_by(Season.id)
        )
    ).scalars().first()
    if season is None:
        logger.info("No active season for league %s; returning no predictions", league.id)
        return PredictionsOut(
            predictions=[],
            totalPlayers=0,
            message="No active season found",
            generatedAt=generated_at,
        )

    # Standings and fixtures must come from the same read.
    standings = await load_standings(session, league.id, season.id, use_cache=False)
    unplayed = await load_unplayed_matches(session, league.id, season.id)
    try:
        predictions = predict_season(standings, unplayed)
    except InsufficientParticipants:
        return PredictionsOut(
            predictions=[],
            totalPlayers=len(standings),
            message="Not enough players for predictions",
            generatedAt=generated_at,
        )

    return PredictionsOut(
        predictions=[_prediction_out(p) for p in predictions],
        totalPlayers=len(standings),
        generatedAt=generated_at,
    )
