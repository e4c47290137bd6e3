"""Shared fixtures: sample upstream payloads, a fake upstream client and a mock-transport client."""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httpx
import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from config import Config
from fpl_api.client import FPLAPIClient, FPLAPIError
from standings.models import Gameweek, HistoryEntry, ManagerEntry, SessionData
from standings.periods import map_gameweeks_to_periods


def gw(gameweek_id: int, deadline: str, is_current: bool = False, finished: bool = True) -> Gameweek:
    return Gameweek(
        id=gameweek_id,
        deadline_time=datetime.fromisoformat(deadline).replace(tzinfo=timezone.utc),
        is_current=is_current,
        is_finished=finished,
    )


def manager(team_id: int, name: str, history: Dict[int, int]) -> ManagerEntry:
    return ManagerEntry(
        team_id=team_id,
        manager_name=name,
        team_name=f"{name} FC",
        history=tuple(HistoryEntry(event=e, points=p) for e, p in history.items()),
    )


def make_session(gameweeks, managers, live_gameweek_id: Optional[int] = None) -> SessionData:
    return SessionData(
        gameweeks=tuple(gameweeks),
        period_mapping=map_gameweeks_to_periods(gameweeks),
        managers=tuple(managers),
        live_gameweek_id=live_gameweek_id,
    )


BOOTSTRAP = {
    "events": [
        {"id": 1, "deadline_time": "2024-08-16T17:30:00Z", "is_current": False, "finished": True},
        {"id": 2, "deadline_time": "2024-08-24T10:00:00Z", "is_current": False, "finished": True},
        {"id": 3, "deadline_time": "2024-09-14T10:00:00Z", "is_current": True, "finished": False},
        {"id": 4, "deadline_time": "2024-10-05T10:00:00Z", "is_current": False, "finished": False},
    ]
}

LEAGUE = {
    "standings": {
        "results": [
            {"entry": 101, "player_name": "Alex Smith", "entry_name": "Smith's Stars"},
            {"entry": 102, "player_name": "Sam Jones", "entry_name": "Jones Town"},
            {"entry": 103, "player_name": "Robin Lee", "entry_name": "Lee Side"},
        ]
    }
}

HISTORIES = {
    101: {"current": [{"event": 1, "points": 50}, {"event": 2, "points": 60}, {"event": 3, "points": 5}]},
    102: {"current": [{"event": 1, "points": 70}, {"event": 2, "points": 45}, {"event": 3, "points": 0}]},
    103: {"current": [{"event": 1, "points": 40}, {"event": 2, "points": 40}]},
}

LIVE = {
    "elements": [
        {"id": 10, "stats": {"total_points": 8}},
        {"id": 11, "stats": {"total_points": 2}},
        {"id": 12, "stats": {"total_points": 6}},
    ]
}

PICKS = {
    101: {"picks": [{"element": 10, "multiplier": 2}, {"element": 11, "multiplier": 1}, {"element": 12, "multiplier": 0}]},
    102: {"picks": [{"element": 12, "multiplier": 3}, {"element": 99, "multiplier": 1}]},
    103: {"picks": [{"element": 11, "multiplier": 2}]},
}


class FakeFPLClient:
    """Stands in for FPLAPIClient; serves canned payloads and can fail selected calls."""

    def __init__(
        self,
        bootstrap=None,
        league=None,
        histories=None,
        live=None,
        picks=None,
        fail: Optional[set] = None,
    ):
        self.bootstrap = BOOTSTRAP if bootstrap is None else bootstrap
        self.league = LEAGUE if league is None else league
        self.histories = HISTORIES if histories is None else histories
        self.live = LIVE if live is None else live
        self.picks = PICKS if picks is None else picks
        self.fail = fail or set()
        self.calls = []
        # Optional gate awaited before answering live requests
        self.live_gate: Optional[asyncio.Event] = None

    def _check(self, key):
        self.calls.append(key)
        if key in self.fail:
            raise FPLAPIError(f"boom: {key}")

    async def get_bootstrap_static(self):
        self._check("bootstrap")
        return self.bootstrap

    async def get_league_standings(self, league_id):
        self._check("league")
        return self.league

    async def get_entry_history(self, team_id):
        self._check(("history", team_id))
        return self.histories[team_id]

    async def get_event_live(self, event_id):
        self._check(("live", event_id))
        if self.live_gate is not None:
            await self.live_gate.wait()
        return self.live

    async def get_entry_picks(self, team_id, event_id):
        self._check(("picks", team_id, event_id))
        return self.picks[team_id]


@pytest.fixture
def fake_client():
    return FakeFPLClient()


@pytest.fixture
def test_config():
    return Config(
        fpl_api_base_url="https://fpl.test/api",
        max_retries=1,
        retry_backoff_base=0.0,
        max_retry_delay=0,
        max_requests_per_minute=1000,
        min_request_interval=0.0,
        log_format="text",
    )


@pytest.fixture
def mock_client_factory(test_config) -> Callable[[Callable[[httpx.Request], httpx.Response]], FPLAPIClient]:
    """Build an FPLAPIClient whose requests are answered by the given handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> FPLAPIClient:
        return FPLAPIClient(test_config, transport=httpx.MockTransport(handler))

    return factory


def upstream_router(routes: Dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler serving JSON per upstream path; unknown paths 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in routes:
            body = routes[path]
            if isinstance(body, httpx.Response):
                return body
            return httpx.Response(200, json=body)
        return httpx.Response(404, json={"detail": "Not found."})

    return handler
