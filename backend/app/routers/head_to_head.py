from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_league
from ..db import get_session
from ..exceptions import InvalidMatchup, ParticipantNotFound
from ..models import League
from ..schemas import (
    CommonOpponentOut,
    DirectMatchesOut,
    HeadToHeadOut,
    HeadToHeadPlayerOut,
    ProbabilityOut,
    WinLossOut,
)
from ..services.head_to_head import estimate_head_to_head
from ..services.match_history import load_completed_matches
from ..services.rating import RatingState, seed_state
from ..services.standings import load_participant_names, load_rating_states

router = APIRouter(prefix="/leagues", tags=["head-to-head"])


def _player_out(player_id: str, name: str, rating: RatingState) -> HeadToHeadPlayerOut:
    return HeadToHeadPlayerOut(
        id=player_id,
        name=name,
        current_rating=rating.rating,
        is_provisional=rating.is_provisional,
        matches_played=rating.matches_played,
    )


# GET /api/v0/leagues/{slug}/head-to-head?player1_id=...&player2_id=...
@router.get("/{slug}/head-to-head", response_model=HeadToHeadOut)
async def head_to_head(
    player1_id: str = Query(..., min_length=1),
    player2_id: str = Query(..., min_length=1),
    league: League = Depends(get_league),
    session: AsyncSession = Depends(get_session),
):
    if player1_id == player2_id:
        raise InvalidMatchup()

    names = await load_participant_names(session, league.id)
    for pid in (player1_id, player2_id):
        if pid not in names:
            raise ParticipantNotFound(pid)

    matches = await load_completed_matches(session, league.id)
    result = estimate_head_to_head(matches, player1_id, player2_id, names)

    # Ratings are shown alongside the estimate but never feed into it.
    ratings = await load_rating_states(session, league.id)
    rating1 = ratings.get(player1_id) or seed_state(player1_id)
    rating2 = ratings.get(player2_id) or seed_state(player2_id)

    return HeadToHeadOut(
        player1=_player_out(player1_id, names[player1_id], rating1),
        player2=_player_out(player2_id, names[player2_id], rating2),
        direct_matches=DirectMatchesOut(
            player1_wins=result.direct.player1_wins,
            player2_wins=result.direct.player2_wins,
            total_matches=result.direct.total_matches,
        ),
        common_opponents=[
            CommonOpponentOut(
                id=o.id,
                name=o.name,
                player1_record=WinLossOut(
                    wins=o.player1_record.wins, losses=o.player1_record.losses
                ),
                player2_record=WinLossOut(
                    wins=o.player2_record.wins, losses=o.player2_record.losses
                ),
            )
            for o in result.common_opponents
        ],
        probability=ProbabilityOut(
            player1_chance=result.probability.player1_chance,
            player2_chance=result.probability.player2_chance,
            confidence=result.probability.confidence,
            basis=result.probability.basis,
        ),
    )
