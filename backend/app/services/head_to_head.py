"""Head-to-head win probability from direct and common-opponent records.

The estimate deliberately ignores ratings: it is derived only from raw
win/loss records so that every number shown to players can be traced back
to matches they can see.

1. Three or more direct matches: each side's share of direct wins.
2. Otherwise, records against common opponents: each side's overall win rate
   against the shared opponents, normalized to 100.
3. Otherwise a neutral 50/50 split.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Literal, Mapping, Optional

from ..exceptions import InvalidMatchup
from .match_history import CompletedMatch
from .stats import round_half_up

Confidence = Literal["high", "medium", "low"]
Basis = Literal["direct_matches", "common_opponents", "insufficient_data"]

MIN_DIRECT_MATCHES = 3
HIGH_CONFIDENCE_DIRECT_MATCHES = 5
MEDIUM_CONFIDENCE_COMMON_OPPONENTS = 3


@dataclass(frozen=True)
class WinLossRecord:
    wins: int = 0
    losses: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses

    def add(self, won: bool) -> "WinLossRecord":
        if won:
            return WinLossRecord(self.wins + 1, self.losses)
        return WinLossRecord(self.wins, self.losses + 1)


@dataclass(frozen=True)
class DirectRecord:
    player1_wins: int = 0
    player2_wins: int = 0

    @property
    def total_matches(self) -> int:
        return self.player1_wins + self.player2_wins


@dataclass(frozen=True)
class CommonOpponent:
    id: str
    name: str
    player1_record: WinLossRecord
    player2_record: WinLossRecord


@dataclass(frozen=True)
class Probability:
    player1_chance: int
    player2_chance: int
    confidence: Confidence
    basis: Basis


@dataclass(frozen=True)
class HeadToHead:
    player1_id: str
    player2_id: str
    direct: DirectRecord
    probability: Probability
    common_opponents: list[CommonOpponent] = field(default_factory=list)


def direct_record(
    matches: Iterable[CompletedMatch], player1_id: str, player2_id: str
) -> DirectRecord:
    p1_wins = p2_wins = 0
    for match in matches:
        if not (match.involves(player1_id) and match.involves(player2_id)):
            continue
        if match.winner_id == player1_id:
            p1_wins += 1
        else:
            p2_wins += 1
    return DirectRecord(player1_wins=p1_wins, player2_wins=p2_wins)


def opponent_records(
    matches: Iterable[CompletedMatch], player_id: str, exclude: str
) -> dict[str, WinLossRecord]:
    """Return ``player_id``'s record against each opponent other than ``exclude``."""
    records: dict[str, WinLossRecord] = {}
    for match in matches:
        if not match.involves(player_id):
            continue
        opponent = match.opponent_of(player_id)
        if opponent == exclude:
            continue
        current = records.get(opponent, WinLossRecord())
        records[opponent] = current.add(match.winner_id == player_id)
    return records


def find_common_opponents(
    matches: Iterable[CompletedMatch],
    player1_id: str,
    player2_id: str,
    names: Optional[Mapping[str, str]] = None,
) -> list[CommonOpponent]:
    matches = list(matches)
    names = names or {}
    p1_records = opponent_records(matches, player1_id, exclude=player2_id)
    p2_records = opponent_records(matches, player2_id, exclude=player1_id)
    common = [
        CommonOpponent(
            id=oid,
            name=names.get(oid, oid),
            player1_record=p1_records[oid],
            player2_record=p2_records[oid],
        )
        for oid in p1_records.keys() & p2_records.keys()
    ]
    common.sort(key=lambda o: (o.name.casefold(), o.id))
    return common


def _split(player1_share: float, confidence: Confidence, basis: Basis) -> Probability:
    chance1 = int(round_half_up(player1_share * 100))
    return Probability(
        player1_chance=chance1,
        player2_chance=100 - chance1,
        confidence=confidence,
        basis=basis,
    )


def estimate_probability(
    direct: DirectRecord, common_opponents: list[CommonOpponent]
) -> Probability:
    total = direct.total_matches
    if total >= MIN_DIRECT_MATCHES:
        confidence: Confidence = (
            "high" if total >= HIGH_CONFIDENCE_DIRECT_MATCHES else "medium"
        )
        return _split(direct.player1_wins / total, confidence, "direct_matches")

    p1_wins = sum(o.player1_record.wins for o in common_opponents)
    p1_games = sum(o.player1_record.games for o in common_opponents)
    p2_wins = sum(o.player2_record.wins for o in common_opponents)
    p2_games = sum(o.player2_record.games for o in common_opponents)
    if p1_games > 0 and p2_games > 0:
        rate1 = p1_wins / p1_games
        rate2 = p2_wins / p2_games
        if rate1 + rate2 > 0:
            confidence = (
                "medium"
                if len(common_opponents) >= MEDIUM_CONFIDENCE_COMMON_OPPONENTS
                else "low"
            )
            return _split(rate1 / (rate1 + rate2), confidence, "common_opponents")

    return Probability(
        player1_chance=50,
        player2_chance=50,
        confidence="low",
        basis="insufficient_data",
    )


def estimate_head_to_head(
    matches: Iterable[CompletedMatch],
    player1_id: str,
    player2_id: str,
    names: Optional[Mapping[str, str]] = None,
) -> HeadToHead:
    """Estimate ``player1_id``'s and ``player2_id``'s chances against each other.

    Raises ``InvalidMatchup`` when both ids are the same participant.
    """
    if player1_id == player2_id:
        raise InvalidMatchup()

    matches = list(matches)
    direct = direct_record(matches, player1_id, player2_id)
    common = find_common_opponents(matches, player1_id, player2_id, names)
    return HeadToHead(
        player1_id=player1_id,
        player2_id=player2_id,
        direct=direct,
        probability=estimate_probability(direct, common),
        common_opponents=common,
    )
