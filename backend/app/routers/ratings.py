import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import LeagueAdminContext, limiter, recalculate_rate_limit, require_league_admin
from ..db import get_session
from ..schemas import LeagueRef, PlayerRatingChangeOut, RatingRecalculationOut
from ..services.rating import recalculate_league_ratings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leagues", tags=["ratings"])


# PUT /api/v0/leagues/{slug}/ratings/recalculate
@router.put("/{slug}/ratings/recalculate", response_model=RatingRecalculationOut)
@limiter.limit(recalculate_rate_limit)
async def recalculate_ratings(
    request: Request,
    admin: LeagueAdminContext = Depends(require_league_admin),
    session: AsyncSession = Depends(get_session),
):
    league = admin.league
    logger.info("Rating recalculation for league %s requested by %s", league.id, admin.email)
    result = await recalculate_league_ratings(session, league.id)
    return RatingRecalculationOut(
        message="Ratings recalculated successfully",
        league=LeagueRef(id=league.id, name=league.name),
        updated_players=result.updated_players,
        total_matches_processed=result.total_matches_processed,
        player_ratings=[
            PlayerRatingChangeOut(
                player_id=c.player_id,
                old_rating=c.old_rating,
                new_rating=c.new_rating,
                rating_change=c.rating_change,
                matches_played=c.matches_played,
                is_provisional=c.is_provisional,
            )
            for c in result.changes
        ],
    )
