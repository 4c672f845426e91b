from typing import List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel


class LeagueRef(BaseModel):
    id: str
    name: str


class StandingOut(BaseModel):
    id: str
    name: str
    wins: int
    losses: int
    sets_won: int
    sets_lost: int
    set_diff: int
    points: int
    current_rating: float
    is_provisional: bool
    total_matches: int
    winning_streak: int


class StandingsOut(BaseModel):
    league: LeagueRef
    season_id: Optional[str] = None
    order: Literal["points", "rating"] = "points"
    players: List[StandingOut]
    total: int


class HeadToHeadPlayerOut(BaseModel):
    id: str
    name: str
    current_rating: float
    is_provisional: bool
    matches_played: int


class DirectMatchesOut(BaseModel):
    player1_wins: int
    player2_wins: int
    total_matches: int


class WinLossOut(BaseModel):
    wins: int
    losses: int


class CommonOpponentOut(BaseModel):
    id: str
    name: str
    player1_record: WinLossOut
    player2_record: WinLossOut


class ProbabilityOut(BaseModel):
    player1_chance: int
    player2_chance: int
    confidence: Literal["high", "medium", "low"]
    basis: Literal["direct_matches", "common_opponents", "insufficient_data"]


class HeadToHeadOut(BaseModel):
    player1: HeadToHeadPlayerOut
    player2: HeadToHeadPlayerOut
    direct_matches: DirectMatchesOut
    common_opponents: List[CommonOpponentOut]
    probability: ProbabilityOut


class PredictionOut(BaseModel):
    id: str
    name: str
    currentPoints: int
    currentPosition: int
    matchesRemaining: int
    maxPossiblePoints: int
    winProbability: float
    keyFactors: List[str]
    winningStreak: int
    winPercentage: float
    setDifferential: int


class PredictionsOut(BaseModel):
    predictions: List[PredictionOut]
    totalPlayers: int
    message: Optional[str] = None
    generatedAt: datetime


class PlayerRatingChangeOut(BaseModel):
    player_id: str
    old_rating: float
    new_rating: float
    rating_change: float
    matches_played: int
    is_provisional: bool


class RatingRecalculationOut(BaseModel):
    message: str
    league: LeagueRef
    updated_players: int
    total_matches_processed: int
    player_ratings: List[PlayerRatingChangeOut]
