"""
Run a sync from the command line.

This script:
1. Initializes the store from DATABASE_URL
2. Runs a pipeline by name, or syncs a single competition
3. Prints a summary and exits non-zero on failure

Usage:
    python -m scripts.sync_data fixture_sync
    python -m scripts.sync_data match_results
    python -m scripts.sync_data fixture_sync --competition champions_league
"""
import asyncio
import sys

from core.logging import setup_logging
from core.settings import settings
from db.base import init_db, close_db
from pipelines.extractors import FootballDataExtractor
from pipelines.registry import PIPELINE_REGISTRY, run_pipeline
from schemas.common import ApiStatus
from services.sync_service import SyncService


def sync_competition(competition: str) -> int:
    store = init_db()
    try:
        service = SyncService.from_settings(store, FootballDataExtractor(), settings)
        result = service.sync_competition(competition)
        print(f"{competition}: {result.teams} teams, {result.matches} matches, season {result.season_id}")
        return 0
    finally:
        close_db()


def run(pipeline_name: str) -> int:
    store = init_db()
    try:
        result = asyncio.run(run_pipeline(pipeline_name, store=store, trigger="script"))
    finally:
        close_db()

    print("\n" + "=" * 60)
    print(f"{pipeline_name}: {result.status}")
    print("=" * 60)
    print(f"Records processed: {result.records_processed}")
    print(f"Duration: {result.duration_seconds:.1f}s")
    for key, value in (result.details or {}).items():
        print(f"  {key}: {value}")
    if result.error:
        print(f"Error: {result.error}")

    return 0 if result.status == ApiStatus.SUCCESS.value else 1


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Sync fixtures and results from football-data.org")
    parser.add_argument("pipeline", choices=sorted(PIPELINE_REGISTRY), help="Pipeline to run")
    parser.add_argument(
        "--competition",
        help="Only sync this competition (fixture_sync only, no run is recorded)",
    )

    args = parser.parse_args()
    setup_logging(log_level=settings.log_level, json_format=False, service_name=settings.service_name)

    if args.competition:
        if args.pipeline != "fixture_sync":
            parser.error("--competition only applies to fixture_sync")
        sys.exit(sync_competition(args.competition))
    sys.exit(run(args.pipeline))
