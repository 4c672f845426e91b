from typing import Any, Optional, Tuple


class ValidationError(Exception):
    """Raised when a stored match result cannot be replayed."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def _coerce_score(raw: Any, label: str) -> Optional[int]:
    if raw is None:
        return None
    # Reject booleans explicitly (bool is a subclass of int in Python)
    if isinstance(raw, bool):
        raise ValidationError(f"{label} must be an integer (not a boolean).")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be an integer.")
    if value != raw and not isinstance(raw, str):
        raise ValidationError(f"{label} must be a whole number.")
    if value < 0:
        raise ValidationError(f"{label} must be >= 0.")
    return value


def validate_match_result(
    player1_id: str,
    player2_id: str,
    player1_score: Any,
    player2_score: Any,
    *,
    max_score: Optional[int] = 1000,
) -> Tuple[Optional[int], Optional[int]]:
    """Validate the participants and scores of a completed match.

    Rules:
    - Both participant ids are required and must differ
    - Scores are integers >= 0 (booleans are rejected) or ``None``
    - Scores must be <= ``max_score`` (if provided)

    Equal scores are accepted: the replay counts them as a player 2 win.
    Returns the normalized ``(player1_score, player2_score)`` pair.
    """

    if not player1_id or not player2_id:
        raise ValidationError("A match requires two participants.")
    if player1_id == player2_id:
        raise ValidationError("A participant cannot play against themselves.")

    score1 = _coerce_score(player1_score, "Player 1 score")
    score2 = _coerce_score(player2_score, "Player 2 score")

    if max_score is not None:
        for label, value in (("Player 1 score", score1), ("Player 2 score", score2)):
            if value is not None and value > max_score:
                raise ValidationError(f"{label} must be <= {max_score}.")

    return score1, score2
