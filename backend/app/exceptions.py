from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict
from typing import Any, Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str

    model_config = ConfigDict(extra="allow")


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
        extra: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code
        self.extra = extra or {}


class LeagueNotFound(DomainException):
    def __init__(self, slug: str) -> None:
        super().__init__(
            status_code=404,
            title="League not found",
            detail=f"league '{slug}' not found",
            code="league_not_found",
        )


class ParticipantNotFound(DomainException):
    def __init__(self, participant_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Participant not found",
            detail=f"participant '{participant_id}' not found in this league",
            code="participant_not_found",
        )


class SeasonNotFound(DomainException):
    def __init__(self, season_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Season not found",
            detail=f"season '{season_id}' not found in this league",
            code="season_not_found",
        )


class InvalidMatchup(DomainException):
    def __init__(self, detail: str = "cannot compare a player with themselves") -> None:
        super().__init__(
            status_code=400,
            title="Invalid matchup",
            detail=detail,
            code="invalid_matchup",
        )


class InsufficientParticipants(DomainException):
    def __init__(self, count: int) -> None:
        super().__init__(
            status_code=400,
            title="Not enough players",
            detail=f"at least two players are required for predictions (got {count})",
            code="insufficient_participants",
        )


class MatchHistoryUnavailable(DomainException):
    """Raised when completed matches cannot be read from the store."""

    def __init__(self, league_id: str | None, cause: Exception | None = None) -> None:
        scope = f"league '{league_id}'" if league_id else "all leagues"
        detail = f"failed to load match history for {scope}"
        if cause is not None:
            detail = f"{detail}: {cause}"
        super().__init__(
            status_code=503,
            title="Match history unavailable",
            detail=detail,
            code="match_history_unavailable",
        )
        self.league_id = league_id
        self.cause = cause


class RatingRecalculationError(DomainException):
    """A full recompute failed; no rating rows were changed."""

    updated_players = 0

    def __init__(self, league_id: str, cause: Exception) -> None:
        super().__init__(
            status_code=500,
            title="Rating recalculation failed",
            detail=f"ratings for league '{league_id}' were not updated: {cause}",
            code="rating_recalculation_failed",
            extra={"updated_players": 0},
        )
        self.league_id = league_id
        self.cause = cause


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
