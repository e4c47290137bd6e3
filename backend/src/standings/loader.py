"""
Session loader: fetches bootstrap, league members and every manager's
history once, and freezes them into a SessionData snapshot.
"""

import asyncio
import logging
from typing import Any, Dict

from fpl_api.client import FPLAPIClient, FPLAPIError
from standings.models import (
    PAYLOAD_ERRORS,
    ManagerEntry,
    SessionData,
    find_live_gameweek,
    parse_gameweeks,
    parse_history,
    parse_league_members,
)
from standings.periods import map_gameweeks_to_periods

logger = logging.getLogger(__name__)


class SessionLoadError(FPLAPIError):
    """Raised when bootstrap or league data cannot be loaded."""
    pass


async def fetch_manager(client: FPLAPIClient, member: Dict[str, Any]) -> ManagerEntry:
    """
    Fetch one league member's gameweek history.

    A failed fetch or unreadable payload yields an empty history rather
    than failing the whole batch.
    """
    # entry is already an int: parse_league_members rejects anything else
    team_id = member["entry"]
    manager_name = member.get("player_name") or ""
    team_name = member.get("entry_name") or ""

    try:
        history = parse_history(await client.get_entry_history(team_id))
    except (FPLAPIError, *PAYLOAD_ERRORS) as e:
        logger.warning("Failed to fetch manager history, using empty history", extra={
            "team_id": team_id,
            "manager_name": manager_name,
            "error": str(e)
        })
        history = ()

    return ManagerEntry(
        team_id=team_id,
        manager_name=manager_name,
        team_name=team_name,
        history=history,
    )


async def load_session(client: FPLAPIClient, league_id: int) -> SessionData:
    """
    Load everything standings need for one session.

    Raises:
        SessionLoadError: If the bootstrap or league feed cannot be fetched or read
    """
    try:
        gameweeks = parse_gameweeks(await client.get_bootstrap_static())
    except (FPLAPIError, *PAYLOAD_ERRORS) as e:
        raise SessionLoadError(f"Bootstrap API error: {e}") from e

    period_mapping = map_gameweeks_to_periods(gameweeks)

    try:
        members = parse_league_members(await client.get_league_standings(league_id))
    except (FPLAPIError, *PAYLOAD_ERRORS) as e:
        raise SessionLoadError(f"League API error: {e}") from e

    managers = await asyncio.gather(*[fetch_manager(client, member) for member in members])

    live_gameweek_id = find_live_gameweek(gameweeks)

    logger.info("Session loaded", extra={
        "league_id": league_id,
        "gameweeks_count": len(gameweeks),
        "managers_count": len(managers),
        "empty_histories": sum(1 for m in managers if not m.history),
        "live_gameweek": live_gameweek_id
    })

    return SessionData(
        gameweeks=gameweeks,
        period_mapping={period_id: tuple(ids) for period_id, ids in period_mapping.items()},
        managers=tuple(managers),
        live_gameweek_id=live_gameweek_id,
    )
