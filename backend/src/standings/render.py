"""Plain-text rendering of period standings for terminals and logs."""

from typing import List, Optional

from standings.aggregator import StandingsResult
from standings.periods import Period

TITLE = "FPL 2-Month League Standings"


def _fit(text: str, width: int) -> str:
    if len(text) <= width:
        return text.ljust(width)
    return text[: width - 1] + "…"


def render_standings(
    result: StandingsResult,
    period: Period,
    league_id: int,
    season_label: Optional[str] = None,
) -> str:
    """Standings table; live rows are flagged with '*' next to their points."""
    subtitle = f"League ID: {league_id}"
    if season_label:
        subtitle += f" • Season {season_label}"

    heading = f"{period.name} Standings"
    if result.live_in_period and result.live_gameweek_id is not None:
        heading += f"  [LIVE GW {result.live_gameweek_id}]"

    lines: List[str] = [TITLE, subtitle, "", heading]

    if not result.standings:
        lines.append("No data available for this period")
        return "\n".join(lines)

    name_width = max(12, min(24, max(len(e.manager_name) for e in result.standings)))
    team_width = max(9, min(24, max(len(e.team_name) for e in result.standings)))

    header = f"{'Rank':>4}  {'Manager Name'.ljust(name_width)}  {'Team Name'.ljust(team_width)}  {'Points':>7}"
    lines.append(header)
    lines.append("-" * len(header))

    for entry in result.standings:
        marker = "*" if entry.has_live_data else " "
        lines.append(
            f"{entry.rank:>4}  {_fit(entry.manager_name, name_width)}  "
            f"{_fit(entry.team_name, team_width)}  {entry.points:>6}{marker}"
        )

    if result.has_live_data:
        lines.append("")
        lines.append("* includes live points for the gameweek in progress")

    return "\n".join(lines)


def render_error(message: str, retry_hint: Optional[str] = "Retrying...") -> str:
    lines = [TITLE, "", "Error Loading Data", message]
    if retry_hint:
        lines.append(retry_hint)
    return "\n".join(lines)
