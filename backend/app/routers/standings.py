from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_league
from ..db import get_session
from ..models import League
from ..schemas import LeagueRef, StandingOut, StandingsOut
from ..services.standings import load_standings

# Resource-only prefix; no /api or /api/v0 here
router = APIRouter(prefix="/leagues", tags=["standings"])


# GET /api/v0/leagues/{slug}/standings?seasonId=...
@router.get("/{slug}/standings", response_model=StandingsOut)
async def league_standings(
    season_id: Annotated[
        Optional[str], Query(alias="seasonId", description="Restrict to one season")
    ] = None,
    order: Annotated[
        Literal["points", "rating"],
        Query(description="'points' for league play, 'rating' for exhibition play"),
    ] = "points",
    league: League = Depends(get_league),
    session: AsyncSession = Depends(get_session),
):
    rows = await load_standings(session, league.id, season_id, order)
    players = [
        StandingOut(
            id=row.player_id,
            name=row.name,
            wins=row.wins,
            losses=row.losses,
            sets_won=row.sets_won,
            sets_lost=row.sets_lost,
            set_diff=row.set_diff,
            points=row.points,
            current_rating=row.current_rating,
            is_provisional=row.is_provisional,
            total_matches=row.total_matches,
            winning_streak=row.winning_streak,
        )
        for row in rows
    ]
    return StandingsOut(
        league=LeagueRef(id=league.id, name=league.name),
        season_id=season_id,
        order=order,
        players=players,
        total=len(players),
    )
