#!/usr/bin/env python3
"""
Print standings for one two-month period and exit.

Usage:
    python3 scripts/show_standings.py
    python3 scripts/show_standings.py --period oct-nov
    python3 scripts/show_standings.py --period dec-jan --league 286461 --json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv(Path(__file__).parent.parent / ".env")

# Add src directory to path
backend_dir = Path(__file__).parent.parent
src_dir = backend_dir / "src"
sys.path.insert(0, str(src_dir))

from config import Config
from fpl_api.client import FPLAPIClient
from standings.aggregator import aggregate_standings
from standings.loader import SessionLoadError, load_session
from standings.periods import PERIODS, get_period
from standings.render import render_error, render_standings
from utils.logger import setup_logging


async def show_standings(period_id: str, league_id: int, as_json: bool) -> int:
    config = Config()
    setup_logging(config)
    period = get_period(period_id)

    async with FPLAPIClient(config) as client:
        if not as_json:
            print(f"🔄 Loading league {league_id}...", file=sys.stderr)
        try:
            session = await load_session(client, league_id)
        except SessionLoadError as e:
            print(render_error(str(e), retry_hint="Run the script again to retry."))
            return 1

        result = await aggregate_standings(client, session, period.id)

    if as_json:
        print(json.dumps({
            "period": period.id,
            "periodName": period.name,
            "leagueId": league_id,
            "live": result.live_in_period,
            "liveGameweek": result.live_gameweek_id,
            "standings": [entry.to_dict() for entry in result.standings],
        }, indent=2))
    else:
        print(render_standings(result, period, league_id, config.season_label))
    return 0


def main():
    config = Config()
    parser = argparse.ArgumentParser(description="Show FPL two-month period standings")
    parser.add_argument(
        "--period",
        choices=[p.id for p in PERIODS],
        default=config.default_period,
        help="Two-month period to rank",
    )
    parser.add_argument("--league", type=int, default=config.league_id, help="Classic league ID")
    parser.add_argument("--json", action="store_true", help="Print standings as JSON")
    args = parser.parse_args()

    sys.exit(asyncio.run(show_standings(args.period, args.league, args.json)))


if __name__ == "__main__":
    main()
