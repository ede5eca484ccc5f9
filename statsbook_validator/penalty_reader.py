"""
Penalties tab reader.

Each roster row holds a skater number, then pairs of cells (penalty code over
jam number) and a trailing foul-out/expulsion pair. Penalties become
"penalty" events in the jam named on the sheet; an expulsion becomes an
"expulsion" event. A foul-out (code FO) is tracked for later checks only:
the game record has no foul-out event.

Penalty counts accumulate per skater across both periods.
"""

from __future__ import annotations

import logging
from typing import Optional

from .cells import CellValue, as_int, as_text
from .context import RunContext
from .models import (
    PERIODS,
    TEAMS,
    Category,
    ExpulsionEvent,
    Jam,
    Note,
    PenaltyEvent,
    WarningEntry,
    skater_ref,
)
from .template import PenaltyBlock

logger = logging.getLogger(__name__)

FOULOUT_CODE = "FO"
FOULOUT_PENALTIES = 7


def read_penalties(ctx: RunContext) -> None:
    """Build penalty and expulsion events from the Penalties tab."""
    tab = ctx.template.penalties
    counts: dict[str, int] = {}
    removed: set[str] = set()  # Skaters with a recorded foul-out or expulsion

    for period in PERIODS:
        for team in TEAMS:
            block = ctx.template.block("penalties", period, team)
            max_skaters = getattr(ctx.template.igrf, team).max_num
            for index in range(max_skaters):
                _read_skater_row(
                    ctx, block, period, team, index * tab.skater_row_stride, counts, removed
                )
            _read_bench_expulsions(ctx, block, period, team)

    logger.info(
        "Penalties tab read: %d penalties, %d skaters listed",
        sum(counts.values()),
        len(counts),
    )


def _jam_for(ctx: RunContext, period: int, value: Optional[CellValue]) -> Optional[Jam]:
    """The jam a penalty cell points at, or None when it is not a jam of the period."""
    number = as_int(value)
    if number is None:
        return None
    return ctx.game.period(period).jam(number)


# ─── Skater Rows ────────────────────────────────────────────────────


def _read_skater_row(
    ctx: RunContext,
    block: PenaltyBlock,
    period: int,
    team: str,
    row: int,
    counts: dict[str, int],
    removed: set[str],
) -> None:
    workbook = ctx.workbook
    sheet = ctx.template.penalties.sheet_name

    number = as_text(workbook.value(sheet, block.number.shift(rows=row)))
    if number is None:
        return

    if not ctx.game.teams.team(team).has_skater(number):
        ctx.record(Category.PENALTIES, "penaltiesNotOnIGRF", team=team, period=period, skater=number)

    skater = skater_ref(team, number)
    counts.setdefault(skater, 0)

    for column in range(ctx.template.penalties.max_penalties):
        code = as_text(workbook.value(sheet, block.first_penalty.shift(rows=row, cols=column)))
        jam_value = workbook.value(sheet, block.first_jam.shift(rows=row, cols=column))

        if code is None and jam_value is None:
            continue
        if code is None or jam_value is None:
            ctx.record(Category.PENALTIES, "codeNoJam", team=team, period=period, skater=number)
            continue

        jam = _jam_for(ctx, period, jam_value)
        if jam is None:
            ctx.record(
                Category.PENALTIES, "penaltyBadJam",
                team=team, period=period, skater=number,
                **{"Recorded Jam": as_text(jam_value)},
            )
            continue

        jam.events.append(PenaltyEvent(skater=skater, penalty=code))
        counts[skater] += 1

    # ── Foul-out / Expulsion ────────────────────────────────────────
    code = as_text(workbook.value(sheet, block.foulout.shift(rows=row)))
    jam_value = workbook.value(sheet, block.foulout_jam.shift(rows=row))

    if code is None or jam_value is None:
        if code is not None or jam_value is not None:
            ctx.record(Category.PENALTIES, "codeNoJam", team=team, period=period, skater=number)
        elif (
            period == PERIODS[-1]
            and skater not in removed
            and counts[skater] >= FOULOUT_PENALTIES
        ):
            ctx.record(Category.PENALTIES, "sevenWithoutFO", team=team, skater=number)
        return

    jam = _jam_for(ctx, period, jam_value)
    if jam is None:
        ctx.record(
            Category.PENALTIES, "foBadJam",
            team=team, period=period, skater=number,
            **{"Recorded Jam": as_text(jam_value)},
        )
        return

    removed.add(skater)
    entry = WarningEntry(team=team, period=period, jam=jam.number, skater=skater)

    if code.upper() == FOULOUT_CODE:
        ctx.warnings.foulouts.append(entry)
        if counts[skater] < FOULOUT_PENALTIES:
            ctx.record(Category.PENALTIES, "foUnder7", team=team, period=period, skater=number)
        return

    jam.events.append(
        ExpulsionEvent(
            skater=skater,
            notes=[Note(note=f"Penalty: {code}"), Note(note=f"Jam: {jam.number}")],
        )
    )
    ctx.warnings.expulsions.append(entry)
    if not jam.find("penalty", skater=skater):
        ctx.record(
            Category.PENALTIES, "expulsionNoPenalty",
            team=team, period=period, jam=jam.number, skater=number,
        )


# ─── Bench Staff ────────────────────────────────────────────────────


def _read_bench_expulsions(ctx: RunContext, block: PenaltyBlock, period: int, team: str) -> None:
    workbook = ctx.workbook
    sheet = ctx.template.penalties.sheet_name

    for column in range(ctx.template.penalties.bench_expulsions):
        code = as_text(workbook.value(sheet, block.bench_exp_code.shift(cols=column)))
        jam_value = workbook.value(sheet, block.bench_exp_jam.shift(cols=column))
        if code is None or jam_value is None:
            continue

        jam = _jam_for(ctx, period, jam_value)
        if jam is None:
            logger.warning(
                "Skipping bench staff expulsion for %s in period %d: no jam %r",
                team, period, jam_value,
            )
            continue

        jam.events.append(
            ExpulsionEvent(
                notes=[
                    Note(note=f"Bench Staff Expulsion - {code}"),
                    Note(note=f"Jam: {jam.number}"),
                ]
            )
        )
