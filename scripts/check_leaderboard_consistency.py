"""
Check cached league standings against raw prediction points.

For every league (or the ones given), compares each member's cached total
with the sum of their scored predictions. Mismatches are reported, never
repaired; rerun scoring for the affected matches instead.

Usage:
    python -m scripts.check_leaderboard_consistency
    python -m scripts.check_leaderboard_consistency --league <league_id>
"""
import sys

from core.exceptions import ConsistencyError
from core.logging import setup_logging
from core.settings import settings
from db.base import init_db, close_db
from db.models.league.leagues import League
from services.leaderboard import LeaderboardService


def check_leagues(league_ids: list[str] | None = None) -> int:
    store = init_db()
    try:
        service = LeaderboardService(store)
        if not league_ids:
            league_ids = [league.id for league in League.select().order_by(League.id)]

        inconsistent = []
        for league_id in league_ids:
            try:
                checked = service.verify_league(league_id)
                print(f"  OK   {league_id} ({checked} standings)")
            except ConsistencyError as e:
                inconsistent.append(league_id)
                print(f"  FAIL {league_id}: {e.message}")
                for mismatch in e.details.get("mismatches", []):
                    print(f"         {mismatch}")

        print("\n" + "=" * 60)
        print(f"Leagues checked: {len(league_ids)}")
        print(f"Inconsistent: {len(inconsistent)}")
        return 1 if inconsistent else 0
    finally:
        close_db()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Verify cached leaderboards")
    parser.add_argument("--league", action="append", dest="leagues", help="League id (repeatable)")

    args = parser.parse_args()
    setup_logging(log_level=settings.log_level, json_format=False, service_name=settings.service_name)
    sys.exit(check_leagues(args.leagues))
