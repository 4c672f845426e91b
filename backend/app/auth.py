"""Bearer-token checks for league administration endpoints.

Tokens are issued by the external auth service; this module only verifies
them and matches the ``email`` claim against the league's admin list.
"""

import os
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .exceptions import LeagueNotFound, http_problem
from .models import League, LeagueAdmin

JWT_ALG = "HS256"


def get_jwt_secret() -> str:
  secret = os.getenv("JWT_SECRET")
  if not secret:
    raise RuntimeError("JWT_SECRET environment variable is required")
  if len(secret) < 32 or secret.lower() in {"secret", "changeme", "default"}:
    raise RuntimeError(
        "JWT_SECRET must be at least 32 characters and not a common default"
    )
  return secret


def _rate_limits_disabled() -> bool:
  return (os.getenv("DISABLE_RATE_LIMITS") or "").lower() == "true"


def _get_client_ip(request: Request) -> str:
  forwarded = request.headers.get("X-Forwarded-For")
  if forwarded:
    parts = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
    if parts:
      return parts[-1]
  real_ip = request.headers.get("X-Real-IP")
  if real_ip:
    return real_ip
  return request.client.host if request.client else ""


limiter = Limiter(key_func=_get_client_ip)


def recalculate_rate_limit() -> str:
  if _rate_limits_disabled():
    return "1000/second"
  return "5/minute"


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
  detail = exc.detail if isinstance(exc.detail, str) else ""
  if detail:
    message = f"rate limit exceeded: {detail}"
  else:
    message = "rate limit exceeded: please wait before submitting another request."
  return JSONResponse(
      status_code=429,
      content={
          "detail": message,
          "code": "rate_limit_exceeded",
      },
  )


def _extract_bearer_token(authorization: str | None) -> str:
  if authorization and authorization.lower().startswith("bearer "):
    return authorization.split(" ", 1)[1]

  raise http_problem(
      status_code=401,
      detail="missing token",
      code="auth_missing_token",
  )


def decode_token(authorization: str | None) -> dict[str, Any]:
  token = _extract_bearer_token(authorization)
  try:
    return jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALG])
  except jwt.ExpiredSignatureError:
    raise http_problem(
        status_code=401,
        detail="token expired",
        code="auth_token_expired",
    )
  except jwt.PyJWTError:
    raise http_problem(
        status_code=401,
        detail="invalid token",
        code="auth_invalid_token",
    )


async def get_league(
    slug: str, session: AsyncSession = Depends(get_session)
) -> League:
  league = (
      await session.execute(select(League).where(League.slug == slug))
  ).scalar_one_or_none()
  if league is None:
    raise LeagueNotFound(slug)
  return league


@dataclass(frozen=True)
class LeagueAdminContext:
  league: League
  email: str


async def require_league_admin(
    league: League = Depends(get_league),
    authorization: str | None = Header(None),
    session: AsyncSession = Depends(get_session),
) -> LeagueAdminContext:
  payload = decode_token(authorization)
  email = (payload.get("email") or "").strip().lower()
  if not email:
    raise http_problem(
        status_code=401,
        detail="token has no email claim",
        code="auth_invalid_token",
    )
  admin_id = (
      await session.execute(
          select(LeagueAdmin.id).where(
              LeagueAdmin.league_id == league.id,
              func.lower(LeagueAdmin.email) == email,
          )
      )
  ).scalar_one_or_none()
  if admin_id is None:
    raise http_problem(
        status_code=403,
        detail="not authorized to manage this league",
        code="league_admin_forbidden",
    )
  return LeagueAdminContext(league=league, email=email)
