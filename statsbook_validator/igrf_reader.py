"""
IGRF tab reader: game details, team rosters and officials.

Runs first, because every other reader checks skater numbers against the
rosters it fills in.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from openpyxl.utils.datetime import from_excel

from .cells import CellAddress, CellValue, as_text
from .context import RunContext
from .grid import Workbook
from .models import (
    TEAMS,
    Category,
    Certification,
    ErrorSummary,
    Official,
    Person,
    Team,
)
from .template import TeamFields

logger = logging.getLogger(__name__)

_TIME_FORMATS = ("%H:%M:%S", "%H:%M", "%I:%M %p", "%I:%M:%S %p", "%I%p")


def read_igrf(ctx: RunContext) -> None:
    """Fill venue, date/time, teams and officials from the IGRF tab."""
    workbook, game, errors = ctx.workbook, ctx.game, ctx.errors
    igrf = ctx.template.igrf
    sheet = igrf.sheet_name

    def expected(address: CellAddress, label: str) -> Optional[CellValue]:
        value = workbook.value(sheet, address)
        if value is None:
            errors.record(Category.WARNINGS, "missingData", message=label)
        return value

    game.venue.name = as_text(expected(igrf.venue.name, "Venue Name"))
    game.venue.city = as_text(expected(igrf.venue.city, "Venue City"))
    game.venue.state = as_text(expected(igrf.venue.state, "Venue State"))
    game.tournament = as_text(workbook.value(sheet, igrf.tournament))
    game.host_league = as_text(workbook.value(sheet, igrf.host_league))
    raw_date = expected(igrf.date, "Date")
    game.date = excel_date(raw_date)
    if raw_date is not None and game.date is None:
        errors.record(Category.WARNINGS, "missingData", message="Date")
    game.time = excel_time(expected(igrf.time, "Time"))

    for team in TEAMS:
        setattr(game.teams, team, _read_team(workbook, sheet, team, getattr(igrf, team), errors))

    fields = igrf.officials
    for offset in range(fields.max_num):
        name = as_text(workbook.value(sheet, fields.first_name.shift(rows=offset)))
        role = as_text(workbook.value(sheet, fields.first_role.shift(rows=offset)))
        if name is None or role is None:
            continue
        cert = as_text(workbook.value(sheet, fields.first_cert.shift(rows=offset)))
        game.teams.officials.persons.append(
            Official(
                name=name,
                roles=[role],
                league=as_text(workbook.value(sheet, fields.first_league.shift(rows=offset))),
                certifications=[Certification(level=cert)] if cert else [],
            )
        )

    logger.info(
        "IGRF read: %d home skaters, %d away skaters, %d officials",
        len(game.teams.home.persons),
        len(game.teams.away.persons),
        len(game.teams.officials.persons),
    )


def _read_team(
    workbook: Workbook, sheet: str, team: str, fields: TeamFields, errors: ErrorSummary
) -> Team:
    result = Team(
        league=as_text(workbook.value(sheet, fields.league)),
        name=as_text(workbook.value(sheet, fields.name)),
        color=as_text(workbook.value(sheet, fields.color)),
    )
    if not result.color:
        errors.record(
            Category.WARNINGS,
            "missingData",
            message=f"Missing color for {team.capitalize()} team.",
        )

    for offset in range(fields.max_num):
        number = as_text(workbook.value(sheet, fields.first_number.shift(rows=offset)))
        if number is None:
            continue
        name = as_text(workbook.value(sheet, fields.first_name.shift(rows=offset)))
        result.persons.append(Person(name=name, number=number))
    return result


# ─── Excel Dates & Times ────────────────────────────────────────────


def excel_date(value: Optional[CellValue]) -> Optional[dt.date]:
    """A native date, an Excel serial day number, or an ISO date string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, (int, float)):
        try:
            converted = from_excel(value)
        except (OverflowError, ValueError):
            logger.warning("IGRF date serial %r is out of range", value)
            return None
        return converted.date() if isinstance(converted, dt.datetime) else None
    try:
        return dt.date.fromisoformat(str(value).strip())
    except ValueError:
        logger.warning("Unreadable IGRF date %r", value)
        return None


def excel_time(value: Optional[CellValue]) -> Optional[str]:
    """Render a time cell as "HH:MM:SS"."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (dt.datetime, dt.time)):
        return value.strftime("%H:%M:%S")
    if isinstance(value, (int, float)):
        # Only the fractional part of a serial is the time of day
        converted = from_excel(value % 1)
        if isinstance(converted, dt.datetime):
            converted = converted.time()
        return converted.strftime("%H:%M:%S")
    text = str(value).strip()
    for fmt in _TIME_FORMATS:
        try:
            return dt.datetime.strptime(text.upper(), fmt).strftime("%H:%M:%S")
        except ValueError:
            continue
    logger.warning("Unreadable IGRF time %r", value)
    return text
