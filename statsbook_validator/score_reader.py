"""
Score tab reader.

For each (period, team) block the tab is scanned one line at a time until the
jam-number cell is blank:

  - "<n>"  starts jam n (jam numbers must run 1, 2, 3...; gaps are backfilled)
  - "SP"   this team's jammer passed the star; same jam, new jammer
  - "SP*"  the opposing team passed the star; same jam, no jammer

Each line becomes an initial pass, one pass per scored trip column, and
lead/lost/call events. Jam-wide checks (two leads, two calls, one-sided
injury, points with nobody lead) run once per period, after both teams.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Optional

from .cells import JamTokenKind, as_int, as_text, parse_jam_token
from .context import RunContext
from .exceptions import InvalidJamNumberError
from .models import (
    PERIODS,
    TEAMS,
    CallEvent,
    Category,
    InjuryEvent,
    LeadEvent,
    LostEvent,
    PassEvent,
    StarPassEvent,
    WarningEntry,
    skater_ref,
)
from .template import ScoreBlock

logger = logging.getLogger(__name__)

NP_POINTS_RE = re.compile(r"^(\d+)\s*\+\s*NP$", re.IGNORECASE)


def read_scores(ctx: RunContext) -> None:
    """Build pass/lead/lost/call/injury/star pass events from the Score tab."""
    star_passes: list[tuple[int, int]] = []

    for period in PERIODS:
        for team in TEAMS:
            block = ctx.template.block("score", period, team)
            _read_block(ctx, block, period, team, star_passes)
        _check_period(ctx, period)

    for (period, jam), count in Counter(star_passes).items():
        if count == 1:
            ctx.record(Category.SCORES, "onlyOneStarPass", period=period, jam=jam)

    logger.info(
        "Score tab read: %s",
        ", ".join(f"period {p}: {len(ctx.game.period(p).jams)} jams" for p in PERIODS),
    )


# ─── Per-block Scan ─────────────────────────────────────────────────


def _read_block(
    ctx: RunContext,
    block: ScoreBlock,
    period: int,
    team: str,
    star_passes: list[tuple[int, int]],
) -> None:
    workbook = ctx.workbook
    sheet = ctx.template.score.sheet_name
    roster = ctx.game.teams.team(team)
    trip_columns = block.last_trip.col - block.first_trip.col + 1

    jam = 0
    trip = 1
    star_pass = False
    skater: Optional[str] = None

    for line in range(ctx.template.score.max_jams):
        jam_cell = block.jam_number.shift(rows=line)
        raw = workbook.value(sheet, jam_cell)
        if raw is None:
            break

        kind, number = parse_jam_token(raw, sheet, jam_cell)

        if kind is JamTokenKind.JAM:
            if number < 1:
                raise InvalidJamNumberError(
                    f"Invalid Jam Number in {sheet}!{jam_cell}: {raw!r}",
                    details={"sheet": sheet, "cell": str(jam_cell), "value": str(raw)},
                )
            if number != jam + 1:
                ctx.record(Category.SCORES, "badJamNumber", team=team, period=period, jam=number)
            jam = number
            trip = 1
            star_pass = False
        elif jam == 0:
            raise InvalidJamNumberError(
                f"Star pass before any jam in {sheet}!{jam_cell}",
                details={"sheet": sheet, "cell": str(jam_cell), "value": str(raw)},
            )
        else:
            star_pass = True
            star_passes.append((period, jam))

        current = ctx.game.period(period).ensure_jam(jam)

        if kind is JamTokenKind.STAR_PASS:
            current.events.append(StarPassEvent(skater=skater))

        jammer = as_text(workbook.value(sheet, block.jammer_number.shift(rows=line)))
        completed = workbook.value(sheet, block.no_initial.shift(rows=line)) is None

        if jammer is not None and not roster.has_skater(jammer):
            ctx.record(
                Category.SCORES, "scoresNotOnIGRF", team=team, period=period, jam=jam, skater=jammer
            )

        if kind is JamTokenKind.OPPONENT_STAR_PASS:
            if jammer is not None:
                ctx.record(Category.SCORES, "spStarWithJammer", team=team, period=period, jam=jam)
        else:
            skater = skater_ref(team, jammer) if jammer is not None else None
            # A star pass only adds an initial pass while the initial trip is open
            if not star_pass or trip == 1:
                current.events.append(
                    PassEvent(skater=skater, team=team, number=1, completed=completed)
                )

        # ── Trips ───────────────────────────────────────────────────
        blank_trip = False
        for offset in range(trip_columns):
            trip_number = offset + 2
            value = workbook.value(sheet, block.first_trip.shift(rows=line, cols=offset))

            if value is None:
                if completed and trip_number == 2 and not star_pass:
                    following = as_text(workbook.value(sheet, jam_cell.shift(rows=1)))
                    if following is not None and following.upper() == "SP":
                        ctx.record(
                            Category.WARNINGS, "SPNoPointsNoNI",
                            team=team, period=period, jam=jam, Jammer=jammer,
                        )
                    else:
                        ctx.record(
                            Category.SCORES, "noPointsNoNI",
                            team=team, period=period, jam=jam, Jammer=jammer,
                        )
                blank_trip = True
                continue

            if trip_number <= trip:
                ctx.record(Category.SCORES, "spPointsBothJammers", team=team, period=period, jam=jam)

            if blank_trip and not star_pass:
                ctx.record(Category.SCORES, "blankTrip", team=team, period=period, jam=jam)
            blank_trip = False

            np_points = NP_POINTS_RE.match(as_text(value) or "")
            if np_points:
                initial = current.first("pass", number=1, skater=skater)
                if initial is not None:
                    initial.score = int(np_points.group(1))
                else:
                    logger.warning(
                        "No initial pass for %s in period %d jam %d to take %r",
                        skater, period, jam, value,
                    )
            else:
                if not star_pass:
                    trip += 1
                current.events.append(
                    PassEvent(skater=skater, team=team, number=trip_number, score=as_int(value))
                )
                if not completed:
                    ctx.record(
                        Category.SCORES, "npPoints",
                        team=team, period=period, jam=jam, Jammer=jammer,
                    )

        # ── Lead / Lost / Call / Injury ─────────────────────────────
        is_lost = workbook.value(sheet, block.lost.shift(rows=line)) is not None
        is_lead = workbook.value(sheet, block.lead.shift(rows=line)) is not None

        if is_lost:
            current.events.append(LostEvent(skater=skater))
            ctx.warnings.lost.append(
                WarningEntry(team=team, period=period, jam=jam, skater=skater)
            )
        if is_lead:
            current.events.append(LeadEvent(skater=skater))
        if workbook.value(sheet, block.call.shift(rows=line)) is not None:
            current.events.append(CallEvent(skater=skater))
        if workbook.value(sheet, block.injury.shift(rows=line)) is not None:
            ctx.warnings.jams_called_injury.append(
                WarningEntry(team=team, period=period, jam=jam)
            )

        if kind is JamTokenKind.STAR_PASS and is_lead and not is_lost:
            ctx.record(Category.SCORES, "spLeadNoLost", team=team, period=period, jam=jam)


# ─── Jam-wide Checks ────────────────────────────────────────────────


def _check_period(ctx: RunContext, period: int) -> None:
    for jam in ctx.game.period(period).jams:
        leads = jam.find("lead")
        if len(leads) >= 2:
            ctx.record(Category.SCORES, "tooManyLead", period=period, jam=jam.number)
        if len(jam.find("call")) >= 2:
            ctx.record(Category.SCORES, "tooManyCall", period=period, jam=jam.number)

        injured_teams = {
            entry.team
            for entry in ctx.warnings.jams_called_injury
            if entry.period == period and entry.jam == jam.number
        }
        if len(injured_teams) == 2:
            jam.events.append(InjuryEvent())
        elif len(injured_teams) == 1:
            ctx.record(Category.SCORES, "injuryOnlyOnce", period=period, jam=jam.number)

        if leads:
            continue
        for team in TEAMS:
            scored = any(
                event.team == team and event.number > 1 for event in jam.find("pass")
            )
            lost = any(
                entry.team == team and entry.period == period and entry.jam == jam.number
                for entry in ctx.warnings.lost
            )
            if scored and not lost:
                ctx.record(
                    Category.SCORES, "pointsNoLeadNoLost", team=team, period=period, jam=jam.number
                )
