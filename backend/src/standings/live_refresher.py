"""
Live Refresher - re-aggregates standings while a gameweek is live.

Manages the IDLE / LIVE_ACTIVE state machine and refresh cadence. Every
trigger (timer, manual refresh, period change, session swap) takes a new
generation token; only the result of the most recently started pass is
applied, so slower earlier passes can never overwrite newer standings.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional, Set

from fpl_api.client import FPLAPIClient
from standings.aggregator import StandingsResult, aggregate_standings
from standings.models import SessionData
from standings.periods import get_period

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[StandingsResult], Any]


class RefresherState(Enum):
    """Refresher state enumeration."""
    IDLE = "idle"  # Selected period has no live gameweek, nothing to poll
    LIVE_ACTIVE = "live_active"  # Selected period holds the live gameweek


class LiveRefresher:
    """Keeps standings for the selected period current while a gameweek is live."""

    def __init__(
        self,
        client: FPLAPIClient,
        session: SessionData,
        period_id: str,
        interval: float = 120.0,
        on_update: Optional[UpdateCallback] = None,
    ):
        get_period(period_id)
        self.client = client
        self.session = session
        self.period_id = period_id
        self.interval = interval
        self.on_update = on_update
        self.state = RefresherState.IDLE
        self.latest: Optional[StandingsResult] = None
        self.running = False
        self._generation = 0
        # Manual refreshes scheduled by trigger() and not yet finished
        self._pending: Set[asyncio.Task] = set()
        # Set on state change or stop so run() re-evaluates without waiting out the interval
        self._wake = asyncio.Event()

    @property
    def generation(self) -> int:
        return self._generation

    async def refresh(self) -> Optional[StandingsResult]:
        """
        Run one aggregation pass for the selected period.

        Returns:
            The applied result, or None if a newer pass started meanwhile
        """
        self._generation += 1
        token = self._generation
        session = self.session
        period_id = self.period_id

        result = await aggregate_standings(self.client, session, period_id)

        if token != self._generation:
            logger.debug("Discarding stale standings pass", extra={
                "period": period_id,
                "token": token,
                "latest_token": self._generation
            })
            return None

        await self._apply(result)
        return result

    async def select_period(self, period_id: str) -> Optional[StandingsResult]:
        """Switch the selected period and recompute."""
        get_period(period_id)
        if period_id != self.period_id:
            logger.info("Period selected", extra={"period": period_id})
        self.period_id = period_id
        return await self.refresh()

    async def replace_session(self, session: SessionData) -> Optional[StandingsResult]:
        """Swap in a freshly loaded session (e.g. after a bootstrap re-fetch) and recompute."""
        self.session = session
        return await self.refresh()

    async def _apply(self, result: StandingsResult):
        self.latest = result

        new_state = RefresherState.LIVE_ACTIVE if result.live_in_period else RefresherState.IDLE
        if new_state is not self.state:
            logger.info("Refresher state change", extra={
                "from_state": self.state.value,
                "to_state": new_state.value,
                "period": result.period_id,
                "live_gameweek": result.live_gameweek_id
            })
            self.state = new_state
            self._wake.set()

        if self.on_update is not None:
            outcome = self.on_update(result)
            if inspect.isawaitable(outcome):
                await outcome

    async def _wait_for_wake(self, timeout: Optional[float]) -> bool:
        """Wait for a state change or stop; False if the timeout elapsed first."""
        try:
            if timeout is None:
                await self._wake.wait()
            else:
                await asyncio.wait_for(self._wake.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False
        finally:
            self._wake.clear()

    async def run(self):
        """
        Main loop.

        Computes standings once if nothing has been applied yet, then polls
        every `interval` seconds while LIVE_ACTIVE and sleeps while IDLE.
        """
        self.running = True
        logger.info("Live refresher starting", extra={
            "period": self.period_id,
            "interval_seconds": self.interval
        })

        if self.latest is None:
            await self._safe_refresh()

        while self.running:
            if self.state is RefresherState.LIVE_ACTIVE:
                woken = await self._wait_for_wake(self.interval)
                if self.running and not woken and self.state is RefresherState.LIVE_ACTIVE:
                    await self._safe_refresh()
            else:
                await self._wait_for_wake(None)

        logger.info("Live refresher stopped")

    async def _safe_refresh(self):
        try:
            await self.refresh()
        except Exception as e:
            logger.error("Standings refresh failed", extra={
                "period": self.period_id,
                "error": str(e),
                "error_type": type(e).__name__
            }, exc_info=True)

    def trigger(self) -> asyncio.Task:
        """
        Schedule a manual refresh on the running loop without waiting for it.

        Safe to call from a loop signal handler; the pass takes a generation
        token like any other, so it supersedes a timer pass already in flight.
        """
        logger.info("Manual refresh requested", extra={"period": self.period_id})
        task = asyncio.get_running_loop().create_task(self._safe_refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def stop(self):
        """Stop the run loop after the current wait and cancel pending manual refreshes."""
        self.running = False
        for task in list(self._pending):
            task.cancel()
        self._wake.set()
