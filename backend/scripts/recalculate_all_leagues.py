#!/usr/bin/env python3
"""Admin helper to rebuild every league's ratings from its full match history."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import Any, Dict, List

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import db  # noqa: E402
from app.services.rating import (  # noqa: E402
    RatingPolicy,
    RatingRecalculation,
    recalculate_all_leagues,
)

logger = logging.getLogger("recalculate_all_leagues")


def _summary(results: List[RatingRecalculation], verbose: bool) -> Dict[str, Any]:
    leagues: List[Dict[str, Any]] = []
    for result in results:
        entry: Dict[str, Any] = {
            "league_id": result.league_id,
            "updated_players": result.updated_players,
            "total_matches_processed": result.total_matches_processed,
        }
        if result.error:
            entry["error"] = result.error
        if verbose:
            entry["player_ratings"] = [
                {**asdict(change), "rating_change": change.rating_change}
                for change in result.changes
            ]
        leagues.append(entry)
    return {
        "leagues": leagues,
        "failed": [r.league_id for r in results if r.error],
        "updated_players": sum(r.updated_players for r in results),
    }


async def _run(policy: RatingPolicy, verbose: bool) -> Dict[str, Any]:
    engine = db.get_engine()
    assert db.AsyncSessionLocal is not None
    try:
        async with db.AsyncSessionLocal() as session:
            results = await recalculate_all_leagues(session, policy)
    finally:
        await engine.dispose()
    return _summary(results, verbose)


def _parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    defaults = RatingPolicy()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--seed", type=float, default=defaults.seed)
    parser.add_argument("--k-provisional", type=float, default=defaults.k_provisional)
    parser.add_argument("--k-established", type=float, default=defaults.k_established)
    parser.add_argument(
        "--provisional-threshold", type=int, default=defaults.provisional_threshold
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Include per-player rating changes"
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = _parse_args(argv)
    policy = RatingPolicy(
        seed=args.seed,
        k_provisional=args.k_provisional,
        k_established=args.k_established,
        provisional_threshold=args.provisional_threshold,
    )
    summary = asyncio.run(_run(policy, args.verbose))
    print(json.dumps(summary, indent=2))
    if summary["failed"]:
        logger.error("Recalculation failed for %d league(s)", len(summary["failed"]))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
