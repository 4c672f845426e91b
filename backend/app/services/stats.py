from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Sequence

from .match_history import CompletedMatch


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like ``Math.round``: halves go up rather than to the even neighbour."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def compute_streaks(results: Sequence[bool]) -> Dict[str, int]:
    """Compute current, longest win, and longest loss streaks.

    ``results`` is in chronological order, ``True`` for a win. ``current`` is
    positive for a run of wins and negative for a run of losses.
    """
    longest_win = longest_loss = 0
    curr_win = curr_loss = 0
    for r in results:
        if r:
            curr_win += 1
            curr_loss = 0
            longest_win = max(longest_win, curr_win)
        else:
            curr_loss += 1
            curr_win = 0
            longest_loss = max(longest_loss, curr_loss)
    current = 0
    if results:
        last = results[-1]
        count = 0
        for r in reversed(results):
            if r == last:
                count += 1
            else:
                break
        current = count if last else -count
    return {
        "current": current,
        "longestWin": longest_win,
        "longestLoss": longest_loss,
    }


@dataclass(frozen=True)
class ParticipantRecord:
    player_id: str
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    winning_streak: int = 0

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def points(self) -> int:
        return self.wins * 2

    @property
    def total_matches(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.total_matches if self.total_matches else 0.0


def aggregate_records(matches: Iterable[CompletedMatch]) -> Dict[str, ParticipantRecord]:
    """Build win/loss, set and streak records for every participant in ``matches``.

    ``matches`` must already be in chronological order; the winning streak is
    the run of wins ending at each participant's most recent dated match.
    Matches without a completion time count toward the record only.
    """
    totals: Dict[str, list[int]] = {}
    results: Dict[str, list[bool]] = {}
    for match in matches:
        for pid in (match.player1_id, match.player2_id):
            own, opp = match.scores_for(pid)
            won = match.winner_id == pid
            entry = totals.setdefault(pid, [0, 0, 0, 0])
            entry[0 if won else 1] += 1
            entry[2] += own
            entry[3] += opp
            streak_results = results.setdefault(pid, [])
            if match.completed_at is not None:
                streak_results.append(won)

    records: Dict[str, ParticipantRecord] = {}
    for pid, (wins, losses, sets_won, sets_lost) in totals.items():
        streak = compute_streaks(results[pid])["current"]
        records[pid] = ParticipantRecord(
            player_id=pid,
            wins=wins,
            losses=losses,
            sets_won=sets_won,
            sets_lost=sets_lost,
            winning_streak=max(streak, 0),
        )
    return records
