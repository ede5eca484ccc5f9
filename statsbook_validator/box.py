"""
Box-occupancy state machine.

The lineup tab marks penalty-box trips with one glyph per code column. Two
incompatible alphabets exist:

    2017/2018   /  enter              x X  exit (enter+exit if not seated)
                s S  sat between jams    $  sat between jams, then exit
                i I |  still seated      3  injured
                (the rune U+16BE is an old alias for x)

    2019        -  enter              +  enter+exit
                s S  sat between jams    $  sat between jams, exit if seated
                3  injured

Both alphabets sit behind one BoxTracker contract. A tracker is picked once per
run by `box_tracker_for(version)` and owns the per-team set of skaters with an
unmatched "enter box". `parse_glyph` never touches the game record: it returns
a BoxOutcome describing the transitions and rule hits, and the lineup reader
applies it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, ClassVar, Optional

from .exceptions import UnsupportedVersionError
from .models import TEAMS, Category

logger = logging.getLogger(__name__)

SAT_BETWEEN_JAMS = "Sat Between Jams."
RUNE_X = "ᚾ"


# ─── Outcome Types ──────────────────────────────────────────────────


class Transition(str, Enum):
    ENTER = "enter box"
    EXIT = "exit box"


@dataclass(frozen=True)
class GlyphContext:
    """What the lineup reader knows about a skater when a glyph is read."""

    penalty_this_jam: bool = False
    penalty_prior_jam: bool = False  # Prior jam wraps P2J1 back to P1's last jam
    fouled_out: bool = False  # Fouled out in an EARLIER jam

    @property
    def penalty_between_jams(self) -> bool:
        return self.penalty_this_jam or self.penalty_prior_jam


@dataclass
class BoxTransition:
    kind: Transition
    note: Optional[str] = None


@dataclass
class RuleHit:
    category: Category
    key: str
    details: dict[str, str] = field(default_factory=dict)


@dataclass
class BoxOutcome:
    """Everything one glyph did: transitions, rule hits, correlation flags."""

    transitions: list[BoxTransition] = field(default_factory=list)
    hits: list[RuleHit] = field(default_factory=list)
    bad_start: bool = False
    bad_continue: bool = False
    injury: bool = False

    def enter(self, note: Optional[str] = None) -> None:
        self.transitions.append(BoxTransition(Transition.ENTER, note))

    def exit(self) -> None:
        self.transitions.append(BoxTransition(Transition.EXIT))

    def hit(self, category: Category, key: str, **details: str) -> None:
        self.hits.append(RuleHit(category, key, dict(details)))


Handler = Callable[[str, str, GlyphContext, BoxOutcome], None]


# ─── Shared Contract ────────────────────────────────────────────────


class BoxTracker:
    """Per-team set of skaters currently serving a penalty.

    Invariant: a skater is in a team's set only between an "enter box"
    transition and the matching exit or forced removal.
    """

    version: ClassVar[str] = ""

    def __init__(self) -> None:
        # dicts keep insertion order, so seated() reports skaters as they sat
        self._box: dict[str, dict[str, None]] = {team: {} for team in TEAMS}

    def is_seated(self, team: str, skater: str) -> bool:
        return skater in self._box[team]

    def seat(self, team: str, skater: str) -> None:
        self._box[team][skater] = None

    def release(self, team: str, skater: str) -> bool:
        """Remove a skater from the box; False when they were not seated."""
        if skater not in self._box[team]:
            return False
        del self._box[team][skater]
        return True

    def seated(self, team: str) -> list[str]:
        return list(self._box[team])

    def parse_glyph(
        self, glyph: str, team: str, skater: str, context: GlyphContext
    ) -> BoxOutcome:
        """Apply one box-code glyph for `skater` ("team:number")."""
        outcome = BoxOutcome()
        handler = self._alphabet().get(glyph)
        if handler is None:
            outcome.hit(Category.LINEUPS, "badLineupCode", Code=glyph)
        else:
            handler(team, skater, context, outcome)
        logger.debug("%s glyph %r for %s -> %s", self.version, glyph, skater, outcome)
        return outcome

    def _alphabet(self) -> dict[str, Handler]:
        raise NotImplementedError

    def _injured(
        self, team: str, skater: str, context: GlyphContext, outcome: BoxOutcome
    ) -> None:
        outcome.injury = True


# ─── 2017 / 2018 ────────────────────────────────────────────────────


class BoxTracker2018(BoxTracker):
    version = "2018"

    def _alphabet(self) -> dict[str, Handler]:
        return {
            "/": self._enter,
            "x": self._exit,
            "X": self._exit,
            RUNE_X: self._rune,
            "s": self._sat_between,
            "S": self._sat_between,
            "$": self._sat_between_exit,
            "i": self._still_seated,
            "I": self._still_seated,
            "|": self._still_seated,
            "3": self._injured,
        }

    def _enter(self, team, skater, context, outcome):
        outcome.enter()
        self.seat(team, skater)
        if not context.penalty_this_jam:
            outcome.hit(Category.LINEUPS, "slashNoPenalty")

    def _exit(self, team, skater, context, outcome):
        if not self.is_seated(team, skater):
            outcome.enter()
            if not context.penalty_this_jam:
                outcome.hit(Category.LINEUPS, "xNoPenalty")
                outcome.bad_continue = True
        outcome.exit()
        self.release(team, skater)

    def _rune(self, team, skater, context, outcome):
        outcome.hit(Category.WARNINGS, "runeUsed")
        self._exit(team, skater, context, outcome)

    def _sat_between(self, team, skater, context, outcome):
        outcome.enter(SAT_BETWEEN_JAMS)
        if self.is_seated(team, skater):
            outcome.hit(Category.LINEUPS, "startsWhileThere")
        else:
            self.seat(team, skater)
        if not context.penalty_between_jams:
            outcome.hit(Category.LINEUPS, "sNoPenalty")
            outcome.bad_start = True

    def _sat_between_exit(self, team, skater, context, outcome):
        outcome.enter(SAT_BETWEEN_JAMS)
        outcome.exit()
        if self.release(team, skater):
            outcome.hit(Category.LINEUPS, "startsWhileThere")
        if not context.penalty_between_jams:
            outcome.hit(Category.LINEUPS, "sSlashNoPenalty")
            outcome.bad_start = True

    def _still_seated(self, team, skater, context, outcome):
        if self.is_seated(team, skater):
            return
        if context.fouled_out:
            outcome.hit(Category.LINEUPS, "foInBox")
        else:
            outcome.hit(Category.LINEUPS, "iNotInBox")
        outcome.bad_continue = True


# ─── 2019 ───────────────────────────────────────────────────────────


class BoxTracker2019(BoxTracker):
    version = "2019"

    def _alphabet(self) -> dict[str, Handler]:
        return {
            "-": self._enter,
            "+": self._enter_exit,
            "s": self._sat_between,
            "S": self._sat_between,
            "$": self._sat_between_exit,
            "3": self._injured,
        }

    def _enter(self, team, skater, context, outcome):
        outcome.enter()
        self.seat(team, skater)
        if not context.penalty_this_jam:
            outcome.hit(Category.LINEUPS, "dashNoPenalty")

    def _enter_exit(self, team, skater, context, outcome):
        outcome.enter()
        outcome.exit()
        if not context.penalty_this_jam:
            outcome.hit(Category.LINEUPS, "plusNoPenalty")

    def _sat_between(self, team, skater, context, outcome):
        if context.fouled_out:
            outcome.hit(Category.LINEUPS, "foInBox")
        if self.is_seated(team, skater):
            return
        if not context.penalty_between_jams:
            outcome.hit(Category.LINEUPS, "sNoPenalty")
            outcome.bad_start = True
        outcome.enter(SAT_BETWEEN_JAMS)
        self.seat(team, skater)

    def _sat_between_exit(self, team, skater, context, outcome):
        if context.fouled_out:
            outcome.hit(Category.LINEUPS, "foInBox")
        if self.release(team, skater):
            outcome.exit()
            return
        if not context.penalty_between_jams:
            outcome.hit(Category.LINEUPS, "sSlashNoPenalty")
            outcome.bad_start = True
        outcome.enter(SAT_BETWEEN_JAMS)
        outcome.exit()


# ─── Factory ────────────────────────────────────────────────────────

_TRACKERS: dict[str, type[BoxTracker]] = {
    "2017": BoxTracker2018,
    "2018": BoxTracker2018,
    "2019": BoxTracker2019,
}


def box_tracker_for(version: str) -> BoxTracker:
    """A fresh tracker for the glyph alphabet of a statsbook version.

    Raises:
        UnsupportedVersionError: no alphabet is defined for the version.
    """
    try:
        tracker_cls = _TRACKERS[version]
    except KeyError as exc:
        raise UnsupportedVersionError(
            f"No box code alphabet for statsbook version {version}",
            details={"version": version, "supported": sorted(_TRACKERS)},
        ) from exc
    return tracker_cls()
