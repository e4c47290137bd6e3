"""
Data model for period standings and parsers for upstream FPL payloads.

Upstream shapes consumed:
    bootstrap   {"events": [{"id", "deadline_time", "is_current", "finished"}]}
    league      {"standings": {"results": [{"entry", "player_name", "entry_name"}]}}
    history     {"current": [{"event", "points"}]}
    live        {"elements": [{"id", "stats": {"total_points"}}]}
    picks       {"picks": [{"element", "multiplier"}]}
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


class DataFormatError(ValueError):
    """Raised when an upstream payload is missing a required section."""
    pass


# Everything reading a malformed upstream payload can raise
PAYLOAD_ERRORS = (DataFormatError, ValueError, TypeError, AttributeError, KeyError)


@dataclass(frozen=True)
class Gameweek:
    id: int
    deadline_time: datetime
    is_current: bool = False
    is_finished: bool = False


@dataclass(frozen=True)
class HistoryEntry:
    event: int
    points: int


@dataclass(frozen=True)
class ManagerEntry:
    team_id: int
    manager_name: str
    team_name: str
    history: Tuple[HistoryEntry, ...] = ()


@dataclass(frozen=True)
class Pick:
    element: int
    multiplier: int  # 0 bench, 1 starter, 2 captain, 3 triple captain


@dataclass(frozen=True)
class StandingsEntry:
    manager_name: str
    team_name: str
    points: int
    has_live_data: bool = False
    rank: int = 0
    team_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "teamId": self.team_id,
            "managerName": self.manager_name,
            "teamName": self.team_name,
            "points": self.points,
            "hasLiveData": self.has_live_data,
        }


@dataclass(frozen=True)
class SessionData:
    """
    Everything fetched once per session.

    Never mutated; a bootstrap re-fetch produces a new SessionData that
    replaces the old one wholesale.
    """
    gameweeks: Tuple[Gameweek, ...]
    period_mapping: Mapping[str, Sequence[int]]
    managers: Tuple[ManagerEntry, ...]
    live_gameweek_id: Optional[int] = None
    fetched_at: datetime = field(default_factory=datetime.now)

    def gameweeks_in(self, period_id: str) -> Sequence[int]:
        return self.period_mapping.get(period_id, ())

    def is_older_than(self, seconds: float, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now()
        return (now - self.fetched_at).total_seconds() >= seconds


def parse_deadline(raw: Any) -> datetime:
    """Parse an ISO-8601 deadline; a trailing 'Z' is accepted on every Python version."""
    if not isinstance(raw, str):
        raise DataFormatError(f"Deadline is not an ISO-8601 string: {raw!r}")
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError as e:
        raise DataFormatError(f"Invalid deadline: {raw!r}") from e


def _as_int(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise DataFormatError(f"{what} is not an integer: {value!r}") from e


def _rows(payload: Any, key: str, what: str) -> List[Mapping[str, Any]]:
    """The list under payload[key], rejecting a missing list or any row that is not an object."""
    rows = payload.get(key) if isinstance(payload, Mapping) else None
    if not isinstance(rows, list):
        raise DataFormatError(f"{what} payload has no {key} list")
    for row in rows:
        if not isinstance(row, Mapping):
            raise DataFormatError(f"{what} payload has a malformed {key} row: {row!r}")
    return rows


def parse_gameweeks(bootstrap: Mapping[str, Any]) -> Tuple[Gameweek, ...]:
    gameweeks = []
    for event in _rows(bootstrap, "events", "Bootstrap"):
        if event.get("id") is None or not event.get("deadline_time"):
            continue
        gameweeks.append(Gameweek(
            id=_as_int(event["id"], "Gameweek id"),
            deadline_time=parse_deadline(event["deadline_time"]),
            is_current=bool(event.get("is_current")),
            is_finished=bool(event.get("finished")),
        ))
    return tuple(gameweeks)


def find_live_gameweek(gameweeks: Sequence[Gameweek]) -> Optional[int]:
    """Id of the current, unfinished gameweek, if any."""
    for gameweek in gameweeks:
        if gameweek.is_current and not gameweek.is_finished:
            return gameweek.id
    return None


def parse_league_members(league: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """League member rows ({entry, player_name, entry_name}) in upstream order, entry as int."""
    standings = league.get("standings") if isinstance(league, Mapping) else None
    members = []
    for row in _rows(standings, "results", "League standings"):
        if row.get("entry") is None:
            continue
        members.append({**row, "entry": _as_int(row["entry"], "League entry")})
    return members


def parse_history(history: Mapping[str, Any]) -> Tuple[HistoryEntry, ...]:
    if isinstance(history, Mapping) and not history.get("current"):
        return ()
    return tuple(
        HistoryEntry(
            event=_as_int(row["event"], "History event"),
            points=_as_int(row.get("points") or 0, "History points"),
        )
        for row in _rows(history, "current", "History")
        if row.get("event") is not None
    )


def parse_live_stats(live: Mapping[str, Any]) -> Dict[int, int]:
    """Map element id -> live total points."""
    stats: Dict[int, int] = {}
    for element in _rows(live, "elements", "Live"):
        if element.get("id") is None:
            continue
        element_stats = element.get("stats") or {}
        if not isinstance(element_stats, Mapping):
            raise DataFormatError(f"Live element {element['id']!r} has malformed stats")
        stats[_as_int(element["id"], "Live element id")] = _as_int(
            element_stats.get("total_points") or 0, "Live total points"
        )
    return stats


def parse_picks(picks: Mapping[str, Any]) -> Tuple[Pick, ...]:
    return tuple(
        Pick(
            element=_as_int(row["element"], "Pick element"),
            multiplier=_as_int(row.get("multiplier") or 0, "Pick multiplier"),
        )
        for row in _rows(picks, "picks", "Picks")
        if row.get("element") is not None
    )
