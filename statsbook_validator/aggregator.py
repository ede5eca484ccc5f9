"""
Checks that span jams, periods and tabs.

These run once, after every reader has finished, over the assembled game
record and the run's WarningData. Like the readers they only append
diagnostics; nothing here changes the game record.

Each check:
  - Takes the RunContext
  - Records its hits under its own rule key
  - Is independently testable

The run_checks() function runs every check in order.
"""

from __future__ import annotations

import logging

from .context import RunContext
from .models import PERIODS, Category, Severity, WarningEntry, ref_number, ref_team

logger = logging.getLogger(__name__)


# ─── Orchestrator ────────────────────────────────────────────────────


def run_checks(ctx: RunContext) -> None:
    """Run ALL post-read checks."""
    check_penalty_entries(ctx)
    check_lead_penalties(ctx)
    check_substitutions(ctx)
    check_lost_without_penalty(ctx)
    check_injuries(ctx)
    logger.info(
        "Checks complete: %d errors, %d warnings",
        ctx.errors.count(Severity.ERROR),
        ctx.errors.count(Severity.WARNING),
    )


# ─── Individual Checks ───────────────────────────────────────────────


def check_penalty_entries(ctx: RunContext) -> None:
    """Every penalty needs a box entry in its jam or the next one.

    Period 1's last jam looks ahead to period 2 jam 1. The game's final jam
    has nothing after it, so a miss there is only a warning.
    """
    game = ctx.game
    for period in PERIODS:
        jams = game.period(period).jams
        for jam in jams:
            following = game.next_jam(period, jam.number)
            is_final = period == PERIODS[-1] and jam.number == len(jams)

            for penalty in jam.find("penalty"):
                entered = jam.find("enter box", skater=penalty.skater) or (
                    following is not None and following.find("enter box", skater=penalty.skater)
                )
                if entered:
                    continue

                category, key = (
                    (Category.WARNINGS, "lastJamNoEntry")
                    if is_final
                    else (Category.PENALTIES, "penaltyNoEntry")
                )
                ctx.record(
                    category, key,
                    team=ref_team(penalty.skater), period=period, jam=jam.number,
                    skater=ref_number(penalty.skater),
                )
                ctx.warnings.no_entries.append(
                    WarningEntry(
                        team=ref_team(penalty.skater),
                        period=period,
                        jam=jam.number,
                        skater=penalty.skater,
                    )
                )


def check_lead_penalties(ctx: RunContext) -> None:
    """The (first) lead jammer penalized in the jam should have lost lead."""
    for period in PERIODS:
        for jam in ctx.game.period(period).jams:
            lead = jam.first("lead")
            if lead is None or lead.skater is None:
                continue
            if jam.find("penalty", skater=lead.skater) and not jam.find("lost", skater=lead.skater):
                ctx.record(
                    Category.WARNINGS, "leadPenaltyNotLost",
                    team=ref_team(lead.skater), period=period, jam=jam.number,
                    Jammer=ref_number(lead.skater),
                )


def check_substitutions(ctx: RunContext) -> None:
    """Flag box codes without penalties that sit next to penalties without box codes.

    That pairing usually means a substitute served a penalty for a teammate
    and the substitution was not recorded.
      - bad start (S/$ without penalty) after a penalty with no box entry
        in the previous jam
      - bad continue (I/|/X without entry) in a jam where a teammate was
        never seen leaving the box, or right after a teammate fouled out
        or was expelled
    """
    warnings = ctx.warnings
    last_of_first = len(ctx.game.period(PERIODS[0]).jams)

    def previous_jam(candidate: WarningEntry, entry: WarningEntry) -> bool:
        if candidate.team != entry.team:
            return False
        if candidate.period == entry.period:
            return candidate.jam == entry.jam - 1
        return (
            candidate.period == entry.period - 1
            and entry.jam == 1
            and candidate.jam == last_of_first
        )

    def flag(entry: WarningEntry) -> None:
        if entry.jam != 1:
            details = {"Prior Jam": entry.jam - 1}
        else:
            details = {"Prior Period": entry.period - 1, "Prior Jam": last_of_first}
        ctx.record(
            Category.WARNINGS, "possibleSub",
            team=entry.team, period=entry.period, jam=entry.jam, unique=True,
            **details,
        )

    for bad_start in warnings.bad_starts:
        if any(previous_jam(ne, bad_start) for ne in warnings.no_entries):
            flag(bad_start)

    for bad_continue in warnings.bad_continues:
        if any(
            ne.team == bad_continue.team
            and ne.period == bad_continue.period
            and ne.jam == bad_continue.jam
            for ne in warnings.no_exits
        ):
            flag(bad_continue)
        if any(previous_jam(fo, bad_continue) for fo in warnings.foulouts):
            flag(bad_continue)
        if any(previous_jam(exp, bad_continue) for exp in warnings.expulsions):
            flag(bad_continue)


def check_lost_without_penalty(ctx: RunContext) -> None:
    """Lost lead is usually caused by a penalty in the same jam."""
    for lost in ctx.warnings.lost:
        jam = ctx.game.period(lost.period).jam(lost.jam)
        if jam is None or lost.skater is None:
            continue
        if not jam.find("penalty", skater=lost.skater):
            ctx.record(
                Category.WARNINGS, "lostNoPenalty",
                team=lost.team, period=lost.period, jam=lost.jam,
                skater=ref_number(lost.skater),
            )


def check_injuries(ctx: RunContext) -> None:
    """A jam called for injury should have someone marked 3 on the Lineups tab."""
    for called in ctx.warnings.jams_called_injury:
        marked = any(
            three.period == called.period and three.jam == called.jam
            for three in ctx.warnings.lineup_three
        )
        if not marked:
            ctx.record(
                Category.WARNINGS, "injNoThree",
                period=called.period, jam=called.jam, unique=True,
            )
