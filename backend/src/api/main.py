"""
Backend API: CORS-enabled proxy over the FPL API plus period standings.

Each proxy route forwards to one upstream endpoint and returns its JSON
verbatim with a Cache-Control policy matched to how often that data
changes; upstream failures become 500 {"error": ...}.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from dotenv import load_dotenv

# Load .env and ensure backend/src is on path
backend_dir = Path(__file__).resolve().parent.parent.parent
load_dotenv(backend_dir / ".env")
sys.path.insert(0, str(backend_dir / "src"))

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Config
from fpl_api.client import FPLAPIClient, FPLAPIError
from standings.aggregator import aggregate_standings
from standings.loader import load_session
from standings.models import SessionData
from standings.periods import PERIODS, UnknownPeriodError, get_period

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
}

# Lazy init so importing the app needs no network or env
_config: Optional[Config] = None
_client: Optional[FPLAPIClient] = None
_session: Optional[SessionData] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_fpl_client() -> FPLAPIClient:
    global _client
    if _client is None:
        _client = FPLAPIClient(get_config())
    return _client


def reset_session_cache():
    global _session
    _session = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global _client
    if _client is not None:
        await _client.close()
        _client = None


app = FastAPI(title="FPL Period Standings API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _json(body: Any, status_code: int = 200, cache_control: Optional[str] = None) -> JSONResponse:
    headers = dict(CORS_HEADERS)
    if cache_control:
        headers["Cache-Control"] = cache_control
    return JSONResponse(content=body, status_code=status_code, headers=headers)


async def _proxy(
    fetch: Callable[[], Awaitable[Any]],
    cache_control: str,
    error_message: str,
    **context: Any,
) -> JSONResponse:
    try:
        data = await fetch()
    except FPLAPIError as e:
        logger.error(error_message, extra={**context, "error": str(e), "error_type": type(e).__name__})
        return _json({"error": error_message}, status_code=500)
    return _json(data, cache_control=cache_control)


@app.get("/api/bootstrap-static")
@app.get("/api/bootstrap-static/", include_in_schema=False)
async def bootstrap_static(
    client: FPLAPIClient = Depends(get_fpl_client),
    config: Config = Depends(get_config),
):
    """Season metadata (gameweeks, players, teams). Long-lived cache."""
    return await _proxy(
        lambda: client.get_json("/bootstrap-static/"),
        config.cache_policies()["bootstrap"],
        "Failed to fetch bootstrap data",
    )


@app.get("/api/entry/{team_id}/history")
@app.get("/api/entry/{team_id}/history/", include_in_schema=False)
async def entry_history(
    team_id: int,
    client: FPLAPIClient = Depends(get_fpl_client),
    config: Config = Depends(get_config),
):
    """Manager gameweek-by-gameweek history. Short cache."""
    return await _proxy(
        lambda: client.get_json(f"/entry/{team_id}/history/"),
        config.cache_policies()["history"],
        "Failed to fetch manager history",
        team_id=team_id,
    )


@app.get("/api/entry/{team_id}/event/{event_id}/picks")
@app.get("/api/entry/{team_id}/event/{event_id}/picks/", include_in_schema=False)
async def entry_picks(
    team_id: int,
    event_id: int,
    client: FPLAPIClient = Depends(get_fpl_client),
    config: Config = Depends(get_config),
):
    """Manager picks for a gameweek; can change during a live gameweek so never cached."""
    return await _proxy(
        lambda: client.get_json(f"/entry/{team_id}/event/{event_id}/picks/"),
        config.cache_policies()["picks"],
        "Failed to fetch manager picks",
        team_id=team_id,
        gameweek=event_id,
    )


@app.get("/api/event/{event_id}/live")
@app.get("/api/event/{event_id}/live/", include_in_schema=False)
async def event_live(
    event_id: int,
    client: FPLAPIClient = Depends(get_fpl_client),
    config: Config = Depends(get_config),
):
    """Live per-player stats for a gameweek. Never cached."""
    return await _proxy(
        lambda: client.get_json(f"/event/{event_id}/live/"),
        config.cache_policies()["live"],
        "Failed to fetch live gameweek data",
        gameweek=event_id,
    )


@app.get("/api/leagues-classic/{league_id}/standings")
@app.get("/api/leagues-classic/{league_id}/standings/", include_in_schema=False)
async def league_standings(
    league_id: int,
    client: FPLAPIClient = Depends(get_fpl_client),
    config: Config = Depends(get_config),
):
    """Classic league members and overall standings. Short cache."""
    return await _proxy(
        lambda: client.get_json(f"/leagues-classic/{league_id}/standings/"),
        config.cache_policies()["standings"],
        "Failed to fetch league standings",
        league_id=league_id,
    )


@app.get("/api/periods")
def periods():
    """The five two-month periods."""
    body = [
        {"id": p.id, "name": p.name, "months": sorted(p.months)}
        for p in PERIODS
    ]
    return _json(body, cache_control=get_config().bootstrap_cache_control)


@app.get("/api/standings")
async def period_standings(
    period: Optional[str] = Query(None, description="aug-sep | oct-nov | dec-jan | feb-mar | apr-may"),
    client: FPLAPIClient = Depends(get_fpl_client),
    config: Config = Depends(get_config),
):
    """Ranked standings for one period, including live points when its gameweek is in progress."""
    global _session
    period_id = period or config.default_period
    try:
        selected = get_period(period_id)
    except UnknownPeriodError as e:
        return _json({"error": str(e)}, status_code=400)

    if _session is None or _session.is_older_than(config.session_ttl):
        try:
            _session = await load_session(client, config.league_id)
        except FPLAPIError as e:
            logger.error("Failed to load league data", extra={
                "league_id": config.league_id,
                "error": str(e)
            })
            return _json({"error": str(e)}, status_code=500)

    result = await aggregate_standings(client, _session, selected.id)
    body: Dict[str, Any] = {
        "period": selected.id,
        "periodName": selected.name,
        "leagueId": config.league_id,
        "live": result.live_in_period,
        "liveGameweek": result.live_gameweek_id,
        "standings": [entry.to_dict() for entry in result.standings],
    }
    return _json(body, cache_control=config.no_cache_control)


@app.get("/health")
def health():
    return {"status": "ok"}
