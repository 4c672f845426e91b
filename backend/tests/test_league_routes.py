import asyncio
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded

from app import db
from app.auth import JWT_ALG, limiter, rate_limit_handler
from app.exceptions import RatingRecalculationError
from app.main import install_exception_handlers
from app.cache import standings_cache
from app.models import LeagueAdmin, Match, Participant, PlayerRating, Season
from app.routers import head_to_head, predictions, ratings, standings

from helpers import at, completed, create_test_engine, scheduled, seed_league

SECRET = "x" * 32


def _token(email="admin@example.com", **overrides):
    payload = {"email": email, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}
    payload.update(overrides)
    return jwt.encode(payload, SECRET, algorithm=JWT_ALG)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


async def _seed(session):
    seed_league(session, players=("a", "b", "c"))
    seed_league(session, "other", players=("z",))
    session.add(Participant(id="d", league_id="l1", name="D"))
    await session.flush()
    session.add_all(
        [
            LeagueAdmin(id="adm", league_id="l1", email="Admin@Example.com"),
            completed("m1", "a", "b", 3, 1, 1, season_id="l1-s1"),
            completed("m2", "a", "b", 3, 0, 2, season_id="l1-s1"),
            completed("m3", "b", "a", 3, 2, 3, season_id="l1-s1"),
            completed("m4", "a", "c", 3, 0, 4, season_id="l1-s1"),
            scheduled("f1", "b", "c", season_id="l1-s1"),
            scheduled("f2", "a", "d", season_id="l1-s1"),
        ]
    )
    await session.commit()


@pytest.fixture
def client_and_maker():
    engine, maker = asyncio.run(create_test_engine())

    async def seed():
        async with maker() as session:
            await _seed(session)

    asyncio.run(seed())

    async def override_get_session():
        async with maker() as session:
            yield session

    app = FastAPI()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    install_exception_handlers(app)
    for module in (standings, head_to_head, predictions, ratings):
        app.include_router(module.router, prefix="/api/v0")
    app.dependency_overrides[db.get_session] = override_get_session

    with TestClient(app) as client:
        yield client, maker

    asyncio.run(engine.dispose())


def test_standings(client_and_maker):
    client, _ = client_and_maker
    resp = client.get("/api/v0/leagues/l1/standings")
    assert resp.status_code == 200
    body = resp.json()
    assert body["league"] == {"id": "l1", "name": "L1"}
    assert body["total"] == 4
    assert [p["id"] for p in body["players"]] == ["a", "b", "d", "c"]
    leader = body["players"][0]
    assert leader["points"] == 6
    assert leader["set_diff"] == 7
    assert leader["winning_streak"] == 1
    assert leader["current_rating"] == 1200


def test_standings_by_rating_and_season(client_and_maker):
    client, maker = client_and_maker

    async def add_rating():
        async with maker() as session:
            session.add(PlayerRating(id="r-d", player_id="d", league_id="l1", current_rating=1300))
            await session.commit()

    asyncio.run(add_rating())

    resp = client.get("/api/v0/leagues/l1/standings?order=rating&seasonId=l1-s1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["order"] == "rating"
    assert body["season_id"] == "l1-s1"
    assert [p["id"] for p in body["players"]] == ["a", "b", "c"]


def test_standings_unknown_league(client_and_maker):
    client, _ = client_and_maker
    resp = client.get("/api/v0/leagues/nope/standings")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["code"] == "league_not_found"


def test_head_to_head(client_and_maker):
    client, _ = client_and_maker
    resp = client.get("/api/v0/leagues/l1/head-to-head?player1_id=a&player2_id=b")
    assert resp.status_code == 200
    body = resp.json()
    assert body["player1"]["name"] == "A"
    assert body["direct_matches"] == {"player1_wins": 2, "player2_wins": 1, "total_matches": 3}
    assert body["probability"] == {
        "player1_chance": 67,
        "player2_chance": 33,
        "confidence": "medium",
        "basis": "direct_matches",
    }


def test_head_to_head_common_opponent(client_and_maker):
    client, _ = client_and_maker
    resp = client.get("/api/v0/leagues/l1/head-to-head?player1_id=c&player2_id=b")
    body = resp.json()
    assert resp.status_code == 200
    assert [o["id"] for o in body["common_opponents"]] == ["a"]
    assert body["common_opponents"][0]["player2_record"] == {"wins": 1, "losses": 2}
    assert body["probability"]["basis"] == "common_opponents"
    assert body["probability"]["player1_chance"] == 0


@pytest.mark.parametrize(
    "query, status, code",
    [
        ("player1_id=a&player2_id=a", 400, "invalid_matchup"),
        ("player1_id=a&player2_id=z", 404, "participant_not_found"),
        ("player1_id=a&player2_id=ghost", 404, "participant_not_found"),
    ],
)
def test_head_to_head_errors(client_and_maker, query, status, code):
    client, _ = client_and_maker
    resp = client.get(f"/api/v0/leagues/l1/head-to-head?{query}")
    assert resp.status_code == status
    assert resp.json()["code"] == code


def test_predictions(client_and_maker):
    client, _ = client_and_maker
    resp = client.get("/api/v0/leagues/l1/predictions")
    assert resp.status_code == 200
    assert "no-store" in resp.headers["cache-control"]
    body = resp.json()
    assert body["totalPlayers"] == 3
    assert [p["id"] for p in body["predictions"]] == ["b", "c"]
    leader = body["predictions"][0]
    assert leader["currentPosition"] == 2
    assert leader["matchesRemaining"] == 1
    assert leader["winProbability"] == 56.5
    assert leader["keyFactors"] == ["Top 3 position", "1 match remaining"]


def test_standings_and_predictions_follow_completed_fixture(client_and_maker):
    client, maker = client_and_maker
    season_url = "/api/v0/leagues/l1/standings?seasonId=l1-s1"
    before = {p["id"]: p for p in client.get(season_url).json()["players"]}
    assert before["b"]["points"] == 2
    client.get("/api/v0/leagues/l1/predictions")

    async def complete_fixture():
        async with maker() as session:
            match = await session.get(Match, "f1")
            match.player1_score = 3
            match.player2_score = 0
            match.status = "completed"
            match.completed_at = at(5)
            await session.commit()

    asyncio.run(complete_fixture())

    after = {p["id"]: p for p in client.get(season_url).json()["players"]}
    assert after["b"]["points"] == 4
    predictions = client.get("/api/v0/leagues/l1/predictions").json()["predictions"]
    assert [p["id"] for p in predictions] == ["a", "b"]
    assert predictions[1]["currentPoints"] == 4
    assert predictions[1]["matchesRemaining"] == 0


def test_standings_unknown_season(client_and_maker):
    client, _ = client_and_maker
    client.get("/api/v0/leagues/l1/standings")
    entries = len(standings_cache._store)
    for season_id in ("nope", "other-s1", "l1-s2"):
        resp = client.get(f"/api/v0/leagues/l1/standings?seasonId={season_id}")
        assert resp.status_code == 404
        assert resp.json()["code"] == "season_not_found"
    assert len(standings_cache._store) == entries


def test_predictions_without_active_season(client_and_maker):
    client, maker = client_and_maker

    async def deactivate():
        async with maker() as session:
            season = await session.get(Season, "l1-s1")
            season.is_active = False
            await session.commit()

    asyncio.run(deactivate())

    body = client.get("/api/v0/leagues/l1/predictions").json()
    assert body["predictions"] == []
    assert body["totalPlayers"] == 0
    assert body["message"] == "No active season found"


def test_predictions_with_single_player(client_and_maker):
    client, _ = client_and_maker
    body = client.get("/api/v0/leagues/other/predictions").json()
    assert body["predictions"] == []
    assert body["message"] == "Not enough players for predictions"


def test_recalculate_requires_token(client_and_maker):
    client, _ = client_and_maker
    resp = client.put("/api/v0/leagues/l1/ratings/recalculate")
    assert resp.status_code == 401
    assert resp.json()["code"] == "auth_missing_token"


def test_recalculate_rejects_bad_and_expired_tokens(client_and_maker):
    client, _ = client_and_maker
    resp = client.put("/api/v0/leagues/l1/ratings/recalculate", headers=_auth("garbage"))
    assert resp.json()["code"] == "auth_invalid_token"
    expired = _token(exp=datetime.now(timezone.utc) - timedelta(minutes=1))
    resp = client.put("/api/v0/leagues/l1/ratings/recalculate", headers=_auth(expired))
    assert resp.status_code == 401
    assert resp.json()["code"] == "auth_token_expired"


def test_recalculate_requires_league_admin(client_and_maker):
    client, _ = client_and_maker
    resp = client.put(
        "/api/v0/leagues/other/ratings/recalculate", headers=_auth(_token())
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "league_admin_forbidden"


def test_recalculate(client_and_maker):
    client, _ = client_and_maker
    standings_before = client.get("/api/v0/leagues/l1/standings").json()
    assert standings_before["players"][0]["current_rating"] == 1200

    resp = client.put(
        "/api/v0/leagues/l1/ratings/recalculate",
        headers=_auth(_token("ADMIN@example.com")),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Ratings recalculated successfully"
    assert body["updated_players"] == 3
    assert body["total_matches_processed"] == 4
    changes = {c["player_id"]: c for c in body["player_ratings"]}
    assert changes["a"]["old_rating"] == 1200
    assert changes["a"]["rating_change"] > 0
    assert changes["a"]["matches_played"] == 4

    standings_after = client.get("/api/v0/leagues/l1/standings").json()
    assert standings_after["players"][0]["current_rating"] == pytest.approx(
        changes["a"]["new_rating"]
    )


def test_recalculate_failure_reports_no_updates(client_and_maker, monkeypatch):
    client, _ = client_and_maker

    async def fail(session, league_id):
        raise RatingRecalculationError(league_id, Exception("database is locked"))

    monkeypatch.setattr(ratings, "recalculate_league_ratings", fail)
    resp = client.put(
        "/api/v0/leagues/l1/ratings/recalculate", headers=_auth(_token())
    )
    assert resp.status_code == 500
    body = resp.json()
    assert body["code"] == "rating_recalculation_failed"
    assert body["updated_players"] == 0
    assert "database is locked" in body["detail"]
