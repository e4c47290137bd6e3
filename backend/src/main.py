#!/usr/bin/env python3
"""
FPL Period Standings Service - Main Entry Point

Loads the league once, prints standings for the selected two-month period
and keeps them current while a gameweek in that period is live. Sending
SIGHUP recomputes them on demand.
"""

import asyncio
import logging
import signal
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# Load .env from backend directory before Config() is used
from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from config import Config
from fpl_api.client import FPLAPIClient
from standings.aggregator import StandingsResult
from standings.live_refresher import LiveRefresher
from standings.loader import SessionLoadError, load_session
from standings.models import SessionData
from standings.periods import current_period_for, get_period
from standings.render import render_error, render_standings
from utils.logger import setup_logging

logger = logging.getLogger(__name__)


class StandingsService:
    """Main service class for period standings."""

    def __init__(self, config: Optional[Config] = None, period_id: Optional[str] = None):
        self.config = config or Config()
        self.period_id = period_id
        self.client: Optional[FPLAPIClient] = None
        self.refresher: Optional[LiveRefresher] = None
        self.running = False

    def _initial_period(self) -> str:
        if self.period_id:
            return get_period(self.period_id).id
        current = current_period_for(date.today())
        return current.id if current else self.config.default_period

    def _print(self, result: StandingsResult):
        print(render_standings(
            result,
            get_period(result.period_id),
            self.config.league_id,
            self.config.season_label,
        ), flush=True)
        print(flush=True)

    async def load(self) -> Optional[SessionData]:
        """Load league data, retrying with backoff until it succeeds or the service stops."""
        attempt = 0
        while self.running:
            try:
                return await load_session(self.client, self.config.league_id)
            except SessionLoadError as e:
                delay = min(
                    self.config.retry_backoff_base * (2 ** attempt),
                    self.config.max_retry_delay
                )
                logger.error("Failed to load league data", extra={
                    "league_id": self.config.league_id,
                    "attempt": attempt + 1,
                    "retry_in": delay,
                    "error": str(e)
                })
                print(render_error(str(e), f"Retrying in {delay:.0f}s..."), flush=True)
                attempt += 1
                await asyncio.sleep(delay)
        return None

    async def start(self):
        """Start the standings service."""
        logger.info("Starting FPL Period Standings Service", extra={
            "version": "1.0.0",
            "environment": self.config.environment,
            "league_id": self.config.league_id
        })

        self.running = True
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown, sig)
        # kill -HUP recomputes standings immediately
        loop.add_signal_handler(signal.SIGHUP, self._handle_manual_refresh, signal.SIGHUP)

        async with FPLAPIClient(self.config) as client:
            self.client = client
            session = await self.load()
            if session is None:
                return

            self.refresher = LiveRefresher(
                client,
                session,
                self._initial_period(),
                interval=self.config.live_refresh_interval,
                on_update=self._print,
            )
            await self.refresher.run()

    def _handle_manual_refresh(self, signum) -> Optional[asyncio.Task]:
        """Recompute standings now instead of waiting for the next live poll."""
        logger.info("Received refresh signal", extra={"signal": signum})
        if self.refresher is None:
            return None
        return self.refresher.trigger()

    def _handle_shutdown(self, signum):
        """Handle shutdown signals gracefully."""
        logger.info("Received shutdown signal", extra={"signal": signum})
        self.running = False
        if self.refresher:
            self.refresher.stop()


async def main():
    """Main entry point."""
    config = Config()
    setup_logging(config)

    service = StandingsService(config)
    try:
        await service.start()
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except Exception as e:
        logger.error("Service crashed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
