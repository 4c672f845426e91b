import asyncio
import logging
from datetime import datetime, timezone

import pytest
from sqlalchemy import text

from app.exceptions import MatchHistoryUnavailable
from app.services.match_history import (
    CompletedMatch,
    load_all_completed_matches,
    load_completed_matches,
    load_unplayed_matches,
    order_matches,
)

from helpers import at, completed, create_test_engine, scheduled, seed_league


def test_completed_match_outcome_helpers():
    match = CompletedMatch("m1", "a", "b", 3, 1)
    assert match.player1_won
    assert match.winner_id == "a"
    assert match.loser_id == "b"
    assert match.opponent_of("b") == "a"
    assert match.scores_for("b") == (1, 3)
    assert match.involves("a") and not match.involves("c")


def test_equal_scores_count_for_player2():
    match = CompletedMatch("m1", "a", "b", 2, 2)
    assert not match.player1_won
    assert match.winner_id == "b"


def test_order_matches_is_stable_and_puts_undated_last():
    first = CompletedMatch("m1", "a", "b", 1, 0, at(5))
    same_time = CompletedMatch("m2", "a", "c", 1, 0, at(5))
    earliest = CompletedMatch("m3", "b", "c", 1, 0, at(1))
    undated = CompletedMatch("m4", "a", "b", 1, 0, None)
    aware = CompletedMatch(
        "m5", "a", "b", 1, 0, datetime(2024, 1, 1, 12, 3, tzinfo=timezone.utc)
    )

    ordered = order_matches([undated, first, same_time, earliest, aware])

    assert [m.id for m in ordered] == ["m3", "m5", "m1", "m2", "m4"]


def test_load_completed_matches_orders_and_filters():
    async def run():
        engine, maker = await create_test_engine()
        try:
            async with maker() as session:
                seed_league(session)
                seed_league(session, "l2", players=("x", "y"))
                await session.flush()
                session.add_all(
                    [
                        completed("m2", "a", "b", 3, 1, 20, season_id="l1-s1"),
                        completed("m1", "b", "c", 0, 3, 10),
                        completed("m3", "a", "c", 2, 2, 30, season_id="l1-s1"),
                        completed("x1", "x", "y", 3, 0, 5, league_id="l2"),
                        scheduled("m4", "a", "b", season_id="l1-s1"),
                    ]
                )
                await session.commit()

                league = await load_completed_matches(session, "l1")
                season = await load_completed_matches(session, "l1", "l1-s1")
                grouped = await load_all_completed_matches(session)
            return league, season, grouped
        finally:
            await engine.dispose()

    league, season, grouped = asyncio.run(run())

    assert [m.id for m in league] == ["m1", "m2", "m3"]
    assert [m.id for m in season] == ["m2", "m3"]
    assert season[-1].winner_id == "c"
    assert set(grouped) == {"l1", "l2"}
    assert [m.id for m in grouped["l2"]] == ["x1"]


def test_invalid_rows_are_skipped_and_missing_scores_become_zero(caplog):
    async def run():
        engine, maker = await create_test_engine()
        try:
            async with maker() as session:
                seed_league(session)
                await session.flush()
                session.add_all(
                    [
                        completed("bad", "a", "a", 3, 1, 1),
                        completed("neg", "a", "b", -2, 1, 2),
                        completed("null", "a", "c", 3, None, 3),
                    ]
                )
                await session.commit()
                return await load_completed_matches(session, "l1")
        finally:
            await engine.dispose()

    with caplog.at_level(logging.WARNING, logger="app.services.match_history"):
        matches = asyncio.run(run())

    assert [m.id for m in matches] == ["null"]
    assert matches[0].scores_for("c") == (0, 3)
    messages = " ".join(r.getMessage() for r in caplog.records)
    assert "Skipping match bad" in messages
    assert "Skipping match neg" in messages
    assert "missing a score" in messages


def test_load_unplayed_matches_returns_open_fixtures_of_season():
    async def run():
        engine, maker = await create_test_engine()
        try:
            async with maker() as session:
                seed_league(session)
                await session.flush()
                session.add_all(
                    [
                        scheduled("f1", "a", "b", season_id="l1-s1"),
                        scheduled("f2", "a", "c", season_id="l1-s1", status="in_progress"),
                        scheduled("f3", "b", "c", season_id="l1-s1", status="cancelled"),
                        scheduled("f4", "b", "c"),
                        completed("m1", "a", "b", 3, 0, 1, season_id="l1-s1"),
                    ]
                )
                await session.commit()
                return await load_unplayed_matches(session, "l1", "l1-s1")
        finally:
            await engine.dispose()

    fixtures = asyncio.run(run())
    assert sorted(f.id for f in fixtures) == ["f1", "f2"]
    assert {f.status for f in fixtures} == {"scheduled", "in_progress"}


def test_read_failure_raises_match_history_unavailable():
    async def run():
        engine, maker = await create_test_engine()
        try:
            async with maker() as session:
                await session.execute(text("DROP TABLE match"))
                await session.commit()
                await load_completed_matches(session, "l1")
        finally:
            await engine.dispose()

    with pytest.raises(MatchHistoryUnavailable) as exc:
        asyncio.run(run())
    assert exc.value.status_code == 503
    assert exc.value.league_id == "l1"
