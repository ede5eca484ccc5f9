"""
Lineups tab reader.

Each line lists five skaters (jammer, pivot, three blockers), each followed by
a few box-code columns. The reader:

  - emits "lineup" events (the pivot slot becomes a blocker when No Pivot is
    checked; star-pass lines add no lineup events)
  - feeds every box code to the run's BoxTracker and applies the outcome as
    "enter box"/"exit box" events and diagnostics
  - closes each jam by clearing fouled-out/expelled skaters from the box and
    cross-checking seated skaters and penalties against who was lined up

Penalty events must already be in the game record: the tracker is told
whether a skater was penalized in this jam or the one before it.
"""

from __future__ import annotations

import logging

from .box import BoxOutcome, GlyphContext, Transition
from .cells import JamTokenKind, as_text, parse_jam_token
from .context import RunContext
from .exceptions import InvalidJamNumberError
from .models import (
    PERIODS,
    POSITIONS,
    TEAMS,
    Category,
    EnterBoxEvent,
    ExitBoxEvent,
    Jam,
    LineupEvent,
    WarningEntry,
    ref_number,
    skater_ref,
)

logger = logging.getLogger(__name__)

PLACEHOLDERS = frozenset({"?", "n/a"})


def read_lineups(ctx: RunContext) -> None:
    """Build lineup and box events from the Lineups tab."""
    for period in PERIODS:
        for team in TEAMS:
            _LineupBlockScan(ctx, period, team).run()

    logger.info(
        "Lineups tab read: %d box entries",
        sum(
            len(jam.find("enter box"))
            for period in PERIODS
            for jam in ctx.game.period(period).jams
        ),
    )


class _LineupBlockScan:
    """Scan of one (period, team) block; jam state never leaves the block."""

    def __init__(self, ctx: RunContext, period: int, team: str):
        self.ctx = ctx
        self.period = period
        self.team = team
        self.block = ctx.template.block("lineups", period, team)
        self.sheet = ctx.template.lineups.sheet_name
        self.stride = ctx.template.lineups.box_codes + 1
        self.jam = 0
        self.current: Jam | None = None
        self.lined_up: list[str] = []

    def run(self) -> None:
        workbook = self.ctx.workbook

        for line in range(self.ctx.template.lineups.max_jams):
            jam_cell = self.block.jam_number.shift(rows=line)
            raw = workbook.value(self.sheet, jam_cell)
            if raw is None:
                break

            kind, number = parse_jam_token(raw, self.sheet, jam_cell)

            if kind is JamTokenKind.JAM:
                if number < 1:
                    raise InvalidJamNumberError(
                        f"Invalid Jam Number in {self.sheet}!{jam_cell}: {raw!r}",
                        details={"sheet": self.sheet, "cell": str(jam_cell), "value": str(raw)},
                    )
                self._start_jam(number)
            elif self.jam == 0:
                raise InvalidJamNumberError(
                    f"Star pass before any jam in {self.sheet}!{jam_cell}",
                    details={"sheet": self.sheet, "cell": str(jam_cell), "value": str(raw)},
                )

            if kind is JamTokenKind.OPPONENT_STAR_PASS:
                if self._any_skater_listed(line):
                    self._record(Category.LINEUPS, "spStarSkater")
                continue

            no_pivot = workbook.value(self.sheet, self.block.no_pivot.shift(rows=line)) is not None
            if kind is JamTokenKind.STAR_PASS and not no_pivot:
                self._record(Category.LINEUPS, "starPassNoPivot")

            self._read_line(line, star_pass=kind is JamTokenKind.STAR_PASS, no_pivot=no_pivot)

        if self.current is not None:
            self._close_jam()

    # ─── Jam Sequence ───────────────────────────────────────────────

    def _start_jam(self, number: int) -> None:
        if self.current is not None:
            self._close_jam()
        if number != self.jam + 1:
            self.ctx.record(
                Category.LINEUPS, "badJamNumber", team=self.team, period=self.period, jam=number
            )
        self.jam = number
        self.current = self.ctx.game.period(self.period).ensure_jam(number)
        self.lined_up = []

    def _close_jam(self) -> None:
        ctx, team, tracker = self.ctx, self.team, self.ctx.tracker

        for entry in ctx.warnings.foulouts + ctx.warnings.expulsions:
            if entry.team == team and entry.period == self.period and entry.jam == self.jam:
                tracker.release(team, entry.skater)

        for skater in tracker.seated(team):
            if skater not in self.lined_up:
                self._record(Category.LINEUPS, "seatedNotLinedUp", skater=ref_number(skater))
                ctx.warnings.no_exits.append(self._entry(skater))

        for penalty in self.current.team_events("penalty", team):
            if penalty.skater not in self.lined_up:
                self._record(
                    Category.PENALTIES, "penaltyNoLineup",
                    skater=ref_number(penalty.skater), unique=True,
                )

    # ─── Lines ──────────────────────────────────────────────────────

    def _slot_cell(self, line: int, slot: int):
        return self.block.first_jammer.shift(rows=line, cols=slot * self.stride)

    def _any_skater_listed(self, line: int) -> bool:
        return any(
            self.ctx.workbook.value(self.sheet, self._slot_cell(line, slot)) is not None
            for slot in range(len(POSITIONS))
        )

    def _read_line(self, line: int, star_pass: bool, no_pivot: bool) -> None:
        ctx, team, tracker = self.ctx, self.team, self.ctx.tracker
        roster = ctx.game.teams.team(team)

        for slot, position in enumerate(POSITIONS):
            cell = self._slot_cell(line, slot)
            number = as_text(ctx.workbook.value(self.sheet, cell))

            if number is None or number.lower() in PLACEHOLDERS:
                if number is None and not ctx.workbook.comment(self.sheet, cell):
                    self._record(Category.WARNINGS, "emptyLineupNoComment", Column=slot + 1)
                continue

            skater = skater_ref(team, number)
            if not roster.has_skater(number):
                self._record(Category.LINEUPS, "lineupsNotOnIGRF", skater=number)

            if not star_pass:
                if skater in self.lined_up:
                    self._record(Category.LINEUPS, "samePlayerTwice", skater=number)
                self.lined_up.append(skater)
                if slot == 1 and no_pivot:
                    position = "blocker"
                self.current.events.append(LineupEvent(skater=skater, position=position))

            context = self._glyph_context(skater)
            codes = 0
            for column in range(1, self.stride):
                glyph = as_text(ctx.workbook.value(self.sheet, cell.shift(cols=column)))
                if glyph is None:
                    continue
                codes += 1
                self._apply(tracker.parse_glyph(glyph, team, skater, context), skater)

            if codes == 0 and tracker.is_seated(team, skater):
                self._record(Category.LINEUPS, "seatedNoCode", skater=number)
                ctx.warnings.no_exits.append(self._entry(skater))
                tracker.release(team, skater)

    def _glyph_context(self, skater: str) -> GlyphContext:
        prior = self.ctx.game.previous_jam(self.period, self.jam)
        return GlyphContext(
            penalty_this_jam=bool(self.current.find("penalty", skater=skater)),
            penalty_prior_jam=prior is not None and bool(prior.find("penalty", skater=skater)),
            fouled_out=any(
                entry.skater == skater
                and (
                    entry.period < self.period
                    or (entry.period == self.period and entry.jam < self.jam)
                )
                for entry in self.ctx.warnings.foulouts
            ),
        )

    def _apply(self, outcome: BoxOutcome, skater: str) -> None:
        for transition in outcome.transitions:
            if transition.kind is Transition.ENTER:
                self.current.events.append(EnterBoxEvent(skater=skater, note=transition.note))
            else:
                self.current.events.append(ExitBoxEvent(skater=skater))

        for hit in outcome.hits:
            self._record(hit.category, hit.key, skater=ref_number(skater), **hit.details)

        if outcome.bad_start:
            self.ctx.warnings.bad_starts.append(self._entry(skater))
        if outcome.bad_continue:
            self.ctx.warnings.bad_continues.append(self._entry(skater))
        if outcome.injury:
            self.ctx.warnings.lineup_three.append(self._entry(skater))

    # ─── Helpers ────────────────────────────────────────────────────

    def _entry(self, skater: str) -> WarningEntry:
        return WarningEntry(team=self.team, period=self.period, jam=self.jam, skater=skater)

    def _record(self, category: Category, key: str, **fields: object) -> None:
        self.ctx.record(category, key, team=self.team, period=self.period, jam=self.jam, **fields)
