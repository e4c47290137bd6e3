"""
Two-month scoring periods and the gameweek -> period mapping.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from standings.models import Gameweek


class UnknownPeriodError(KeyError):
    """Raised when a period id is not one of the configured periods."""

    def __str__(self) -> str:
        return f"Unknown period: {self.args[0]!r}"


@dataclass(frozen=True)
class Period:
    id: str
    name: str
    months: FrozenSet[int]


PERIODS: Sequence[Period] = (
    Period("aug-sep", "August + September", frozenset({8, 9})),
    Period("oct-nov", "October + November", frozenset({10, 11})),
    Period("dec-jan", "December + January", frozenset({12, 1})),
    Period("feb-mar", "February + March", frozenset({2, 3})),
    Period("apr-may", "April + May", frozenset({4, 5})),
)

PeriodMapping = Dict[str, List[int]]


def get_period(period_id: str, periods: Iterable[Period] = PERIODS) -> Period:
    for period in periods:
        if period.id == period_id:
            return period
    raise UnknownPeriodError(period_id)


def deadline_month(deadline: datetime) -> int:
    """Calendar month of a deadline in local time; naive datetimes are taken as local already."""
    if deadline.tzinfo is not None:
        deadline = deadline.astimezone()
    return deadline.month


def map_gameweeks_to_periods(
    gameweeks: Iterable[Gameweek],
    periods: Sequence[Period] = PERIODS,
) -> PeriodMapping:
    """
    Group gameweek ids by the period their deadline month falls in.

    Every period gets a key, even when empty. Gameweek order is preserved
    within each bucket. A gameweek lands in every period whose month set
    contains its deadline month: month sets are not checked for overlap,
    so overlapping periods would each receive the gameweek.
    """
    mapping: PeriodMapping = {period.id: [] for period in periods}

    for gameweek in gameweeks:
        month = deadline_month(gameweek.deadline_time)
        for period in periods:
            if month in period.months:
                mapping[period.id].append(gameweek.id)

    return mapping


def current_period_for(day: date, periods: Sequence[Period] = PERIODS) -> Optional[Period]:
    """Period containing the given day's month, or None in the close season (June/July)."""
    for period in periods:
        if day.month in period.months:
            return period
    return None
