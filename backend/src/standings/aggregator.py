"""
Period standings aggregation.

Sums each manager's historical gameweek points for a period and, when the
period holds the live gameweek, adds provisional points computed from the
manager's picks and live per-player stats.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from fpl_api.client import FPLAPIClient, FPLAPIError
from standings.models import (
    PAYLOAD_ERRORS,
    ManagerEntry,
    Pick,
    SessionData,
    StandingsEntry,
    parse_live_stats,
    parse_picks,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StandingsResult:
    period_id: str
    standings: Tuple[StandingsEntry, ...]
    live_in_period: bool = False
    live_gameweek_id: Optional[int] = None

    @property
    def has_live_data(self) -> bool:
        return any(entry.has_live_data for entry in self.standings)


def historical_points(
    manager: ManagerEntry,
    gameweeks: Iterable[int],
    exclude_event: Optional[int] = None,
) -> int:
    """Sum of history points for gameweeks in the period, skipping the live gameweek."""
    wanted = set(gameweeks)
    return sum(
        entry.points
        for entry in manager.history
        if entry.event in wanted and entry.event != exclude_event
    )


def live_points(picks: Iterable[Pick], live_stats: Mapping[int, int]) -> int:
    """Provisional points: live total per picked player times its multiplier; bench (0) ignored."""
    return sum(
        live_stats.get(pick.element, 0) * pick.multiplier
        for pick in picks
        if pick.multiplier > 0
    )


def rank_entries(entries: Iterable[StandingsEntry]) -> Tuple[StandingsEntry, ...]:
    """Sort by points descending (stable) and number positions from 1; ties keep input order."""
    ordered = sorted(entries, key=lambda entry: entry.points, reverse=True)
    return tuple(replace(entry, rank=position) for position, entry in enumerate(ordered, start=1))


def build_standings(
    session: SessionData,
    period_id: str,
    live_stats: Optional[Mapping[int, int]] = None,
    picks_by_team: Optional[Mapping[int, Sequence[Pick]]] = None,
) -> Tuple[StandingsEntry, ...]:
    """
    Combine historical and live points into ranked standings.

    live_stats is None when the period has no live gameweek or its stats
    could not be fetched; then every total is historical only. A team
    missing from picks_by_team gets no live points and no live flag.
    """
    gameweeks = session.gameweeks_in(period_id)
    live_gameweek_id = session.live_gameweek_id
    live_in_period = live_gameweek_id is not None and live_gameweek_id in gameweeks
    use_live = live_in_period and live_stats is not None
    picks_by_team = picks_by_team or {}

    entries: List[StandingsEntry] = []
    for manager in session.managers:
        # The live gameweek's history row is a stale snapshot while play is ongoing
        points = historical_points(
            manager,
            gameweeks,
            exclude_event=live_gameweek_id if live_in_period else None,
        )
        has_live_data = False
        if use_live and manager.team_id in picks_by_team:
            points += live_points(picks_by_team[manager.team_id], live_stats)
            has_live_data = True

        entries.append(StandingsEntry(
            manager_name=manager.manager_name,
            team_name=manager.team_name,
            points=points,
            has_live_data=has_live_data,
            team_id=manager.team_id,
        ))

    return rank_entries(entries)


async def fetch_live_stats(client: FPLAPIClient, event_id: int) -> Optional[Dict[int, int]]:
    """Live element points for a gameweek, or None if unavailable."""
    try:
        return parse_live_stats(await client.get_event_live(event_id))
    except (FPLAPIError, *PAYLOAD_ERRORS) as e:
        logger.warning("Live gameweek data unavailable, using historical points only", extra={
            "gameweek": event_id,
            "error": str(e)
        })
        return None


async def fetch_picks(
    client: FPLAPIClient,
    manager: ManagerEntry,
    event_id: int,
) -> Optional[Tuple[Pick, ...]]:
    try:
        return parse_picks(await client.get_entry_picks(manager.team_id, event_id))
    except (FPLAPIError, *PAYLOAD_ERRORS) as e:
        logger.warning("Failed to fetch manager picks, no live points for manager", extra={
            "team_id": manager.team_id,
            "manager_name": manager.manager_name,
            "gameweek": event_id,
            "error": str(e)
        })
        return None


async def aggregate_standings(
    client: FPLAPIClient,
    session: SessionData,
    period_id: str,
) -> StandingsResult:
    """
    Compute standings for a period, fetching live data when the period
    holds the live gameweek.

    Live stats failure degrades every manager to historical-only; a picks
    failure only affects that manager.
    """
    gameweeks = session.gameweeks_in(period_id)
    live_gameweek_id = session.live_gameweek_id
    live_in_period = live_gameweek_id is not None and live_gameweek_id in gameweeks

    live_stats: Optional[Dict[int, int]] = None
    picks_by_team: Dict[int, Tuple[Pick, ...]] = {}

    if live_in_period:
        live_stats = await fetch_live_stats(client, live_gameweek_id)

    if live_stats is not None:
        results = await asyncio.gather(*[
            fetch_picks(client, manager, live_gameweek_id) for manager in session.managers
        ])
        for manager, picks in zip(session.managers, results):
            if picks is not None:
                picks_by_team[manager.team_id] = picks

    standings = build_standings(session, period_id, live_stats, picks_by_team)

    logger.info("Standings aggregated", extra={
        "period": period_id,
        "gameweeks": list(gameweeks),
        "managers_count": len(standings),
        "live_in_period": live_in_period,
        "live_gameweek": live_gameweek_id,
        "live_entries": sum(1 for entry in standings if entry.has_live_data)
    })

    return StandingsResult(
        period_id=period_id,
        standings=standings,
        live_in_period=live_in_period,
        live_gameweek_id=live_gameweek_id if live_in_period else None,
    )
