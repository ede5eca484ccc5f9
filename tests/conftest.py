"""
Shared fixtures: an in-memory statsbook builder.

StatsbookBuilder writes cells through the same coordinate templates the
readers use, so tests describe a game ("jam 3, home jammer 12 scored 4") and
never hard-code sheet coordinates.
"""

from __future__ import annotations

import datetime as dt
import io
from typing import Callable, Optional, Sequence

import openpyxl
import pytest

from statsbook_validator.cells import CellAddress
from statsbook_validator.config import Settings
from statsbook_validator.grid import Workbook
from statsbook_validator.models import POSITIONS, TEAMS
from statsbook_validator.pipeline import StatsbookPipeline
from statsbook_validator.template import StatsbookTemplate, load_templates

TEMPLATES = load_templates()

HOME_ROSTER = ("1", "12", "23", "34", "45", "56", "67")
AWAY_ROSTER = ("2", "5", "21", "32", "43", "54", "65")


class _TrackedWorkbook(Workbook):
    """Workbook that remembers every address written, so it can be saved."""

    def __init__(self) -> None:
        super().__init__()
        self.written: dict[str, set[tuple[int, int]]] = {}

    def set(self, sheet, address, value, comment=None) -> None:
        super().set(sheet, address, value, comment=comment)
        if isinstance(address, str):
            address = CellAddress.from_a1(address)
        self.written.setdefault(sheet, set()).add((address.row, address.col))


class StatsbookBuilder:
    """Fluent writer for a minimal but complete statsbook."""

    def __init__(self, version: str = "2018", readme: bool = True):
        self.template: StatsbookTemplate = TEMPLATES[version]
        self.workbook = _TrackedWorkbook()
        for sheet in self.template.sheet_names:
            self.workbook.add_sheet(sheet)
        if readme:
            self.workbook.set("Read Me", "A3", f"WFTDA Statsbook - {version} Release")

        self._score_lines: dict[tuple[int, str], int] = {}
        self._lineup_lines: dict[tuple[int, str], int] = {}
        self._penalty_rows: dict[str, list[str]] = {team: [] for team in TEAMS}
        self._penalty_columns: dict[tuple[int, str, str], int] = {}
        self._bench_columns: dict[tuple[int, str], int] = {}

        self.game_details()
        self.roster("home", *HOME_ROSTER)
        self.roster("away", *AWAY_ROSTER)

    # ─── IGRF ───────────────────────────────────────────────────────

    def game_details(
        self,
        venue: Optional[str] = "Rollerdome",
        city: Optional[str] = "Springfield",
        state: Optional[str] = "OR",
        date: Optional[object] = dt.datetime(2019, 5, 4),
        time: Optional[object] = dt.time(19, 30),
        colors: tuple[Optional[str], Optional[str]] = ("Black", "White"),
    ) -> "StatsbookBuilder":
        igrf = self.template.igrf
        sheet = igrf.sheet_name
        self.workbook.set(sheet, igrf.venue.name, venue)
        self.workbook.set(sheet, igrf.venue.city, city)
        self.workbook.set(sheet, igrf.venue.state, state)
        self.workbook.set(sheet, igrf.date, date)
        self.workbook.set(sheet, igrf.time, time)
        for team, color in zip(TEAMS, colors):
            fields = getattr(igrf, team)
            self.workbook.set(sheet, fields.league, f"{team.capitalize()} League")
            self.workbook.set(sheet, fields.name, f"{team.capitalize()} All Stars")
            self.workbook.set(sheet, fields.color, color)
        return self

    def roster(self, team: str, *numbers: str) -> "StatsbookBuilder":
        fields = getattr(self.template.igrf, team)
        sheet = self.template.igrf.sheet_name
        for offset in range(fields.max_num):
            number = numbers[offset] if offset < len(numbers) else None
            self.workbook.set(sheet, fields.first_number.shift(rows=offset), number)
            self.workbook.set(
                sheet,
                fields.first_name.shift(rows=offset),
                f"Skater {number}" if number else None,
            )
        return self

    # ─── Score ──────────────────────────────────────────────────────

    def score_line(
        self,
        team: str,
        jam: object,
        jammer: Optional[str] = None,
        trips: Sequence[object] = (),
        *,
        period: int = 1,
        lost: bool = False,
        lead: bool = False,
        call: bool = False,
        injury: bool = False,
        no_initial: bool = False,
    ) -> "StatsbookBuilder":
        """Write the next line of a team's score block.

        `trips` fills the trip columns left to right; None leaves a column blank.
        """
        block = self.template.score.periods[period][team]
        sheet = self.template.score.sheet_name
        line = self._score_lines.get((period, team), 0)
        self._score_lines[(period, team)] = line + 1

        self.workbook.set(sheet, block.jam_number.shift(rows=line), jam)
        self.workbook.set(sheet, block.jammer_number.shift(rows=line), jammer)
        for field, marked in (
            (block.lost, lost),
            (block.lead, lead),
            (block.call, call),
            (block.injury, injury),
            (block.no_initial, no_initial),
        ):
            self.workbook.set(sheet, field.shift(rows=line), "X" if marked else None)
        for offset, points in enumerate(trips):
            self.workbook.set(sheet, block.first_trip.shift(rows=line, cols=offset), points)
        return self

    # ─── Penalties ──────────────────────────────────────────────────

    def _skater_row(self, period: int, team: str, number: str) -> int:
        rows = self._penalty_rows[team]
        if number not in rows:
            rows.append(number)
        row = rows.index(number) * self.template.penalties.skater_row_stride
        block = self.template.penalties.periods[period][team]
        self.workbook.set(self.template.penalties.sheet_name, block.number.shift(rows=row), number)
        return row

    def penalty(
        self,
        team: str,
        number: str,
        code: Optional[str],
        jam: Optional[object],
        *,
        period: int = 1,
    ) -> "StatsbookBuilder":
        block = self.template.penalties.periods[period][team]
        sheet = self.template.penalties.sheet_name
        row = self._skater_row(period, team, number)
        column = self._penalty_columns.get((period, team, number), 0)
        self._penalty_columns[(period, team, number)] = column + 1

        self.workbook.set(sheet, block.first_penalty.shift(rows=row, cols=column), code)
        self.workbook.set(sheet, block.first_jam.shift(rows=row, cols=column), jam)
        return self

    def foulout(
        self,
        team: str,
        number: str,
        code: Optional[str],
        jam: Optional[object],
        *,
        period: int = 1,
    ) -> "StatsbookBuilder":
        block = self.template.penalties.periods[period][team]
        sheet = self.template.penalties.sheet_name
        row = self._skater_row(period, team, number)
        self.workbook.set(sheet, block.foulout.shift(rows=row), code)
        self.workbook.set(sheet, block.foulout_jam.shift(rows=row), jam)
        return self

    def bench_expulsion(
        self, team: str, code: str, jam: object, *, period: int = 1
    ) -> "StatsbookBuilder":
        block = self.template.penalties.periods[period][team]
        sheet = self.template.penalties.sheet_name
        column = self._bench_columns.get((period, team), 0)
        self._bench_columns[(period, team)] = column + 1
        self.workbook.set(sheet, block.bench_exp_code.shift(cols=column), code)
        self.workbook.set(sheet, block.bench_exp_jam.shift(cols=column), jam)
        return self

    # ─── Lineups ────────────────────────────────────────────────────

    def lineup_line(
        self,
        team: str,
        jam: object,
        skaters: Sequence[Optional[str]] = (),
        codes: Optional[dict[str, str]] = None,
        *,
        period: int = 1,
        no_pivot: bool = False,
        pad: bool = True,
    ) -> "StatsbookBuilder":
        """Write the next line of a team's lineup block.

        Missing slots are filled with "?" unless pad=False. `codes` maps a
        skater number to its box codes, one glyph per code column.
        """
        block = self.template.lineups.periods[period][team]
        sheet = self.template.lineups.sheet_name
        stride = self.template.lineups.box_codes + 1
        line = self._lineup_lines.get((period, team), 0)
        self._lineup_lines[(period, team)] = line + 1

        slots = list(skaters)
        if pad:
            slots += ["?"] * (len(POSITIONS) - len(slots))

        self.workbook.set(sheet, block.jam_number.shift(rows=line), jam)
        self.workbook.set(sheet, block.no_pivot.shift(rows=line), "X" if no_pivot else None)
        for slot, number in enumerate(slots):
            cell = block.first_jammer.shift(rows=line, cols=slot * stride)
            self.workbook.set(sheet, cell, number)
            for column, glyph in enumerate((codes or {}).get(number or "", ""), start=1):
                self.workbook.set(sheet, cell.shift(cols=column), glyph)
        return self

    def lineup_comment(
        self, team: str, line: int, slot: int, comment: str, *, period: int = 1
    ) -> "StatsbookBuilder":
        block = self.template.lineups.periods[period][team]
        stride = self.template.lineups.box_codes + 1
        cell = block.first_jammer.shift(rows=line, cols=slot * stride)
        self.workbook.set(self.template.lineups.sheet_name, cell, None, comment=comment)
        return self

    # ─── Convenience ────────────────────────────────────────────────

    def quiet_jam(self, jam: int, *, period: int = 1) -> "StatsbookBuilder":
        """A jam with no scoring problems: home lead and call, 4 points each side."""
        self.score_line("home", jam, "12", [4], period=period, lead=True, call=True)
        self.score_line("away", jam, "5", [4], period=period)
        self.lineup_line("home", jam, ["12", "23", "34", "45", "56"], period=period)
        self.lineup_line("away", jam, ["5", "21", "32", "43", "54"], period=period)
        return self

    def score_jams(self, count: int, *, period: int = 1) -> "StatsbookBuilder":
        """Score lines only, for jams 1..count: home lead and call, 4 points each."""
        for jam in range(1, count + 1):
            self.score_line("home", jam, "12", [4], period=period, lead=True, call=True)
            self.score_line("away", jam, "5", [4], period=period)
        return self

    def build(self) -> Workbook:
        return self.workbook

    def xlsx_bytes(self) -> bytes:
        """The statsbook saved as a real .xlsx file."""
        book = openpyxl.Workbook()
        book.remove(book.active)
        for name in self.workbook.sheet_names:
            sheet = book.create_sheet(name)
            for row, col in sorted(self.workbook.written.get(name, ())):
                value = self.workbook.value(name, CellAddress(row=row, col=col))
                if value is not None:
                    sheet.cell(row=row + 1, column=col + 1, value=value)
        buffer = io.BytesIO()
        book.save(buffer)
        return buffer.getvalue()


@pytest.fixture
def make_statsbook() -> Callable[..., StatsbookBuilder]:
    return StatsbookBuilder


@pytest.fixture(scope="session")
def pipeline() -> StatsbookPipeline:
    return StatsbookPipeline(settings=Settings())
