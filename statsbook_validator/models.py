"""
Pydantic models for the game record and its diagnostics.

The game record follows derbyJSON: periods → jams → ORDERED events. Event
order is meaningful (first-match lookups rely on it), so events are only ever
appended, never sorted.

Diagnostics are structured records. Their one-line text form lives in
formatting.py and is attached on serialisation, so tests assert on fields.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Annotated, Iterator, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field

from .formatting import format_diagnostic

TEAMS: tuple[str, str] = ("home", "away")
PERIODS: tuple[int, int] = (1, 2)
POSITIONS: tuple[str, ...] = ("jammer", "pivot", "blocker", "blocker", "blocker")


def skater_ref(team: str, number: str) -> str:
    """Build the "<team>:<number>" reference used by every event."""
    return f"{team}:{number}"


def ref_team(ref: str) -> str:
    return ref.partition(":")[0]


def ref_number(ref: str) -> str:
    return ref.partition(":")[2]


# ─── Severity / Categories ──────────────────────────────────────────


class Severity(str, Enum):
    """Severity of a recorded diagnostic."""

    ERROR = "ERROR"  # Scorekeeping mistake
    WARNING = "WARNING"  # Plausible but unconfirmed; needs human review


class Category(str, Enum):
    SCORES = "scores"
    PENALTIES = "penalties"
    LINEUPS = "lineups"
    WARNINGS = "warnings"

    @property
    def severity(self) -> Severity:
        return Severity.WARNING if self is Category.WARNINGS else Severity.ERROR


# ─── Diagnostics ────────────────────────────────────────────────────


class Diagnostic(BaseModel):
    """One rule hit, located by team / period / jam / skater where they apply."""

    category: Category
    rule: str
    team: Optional[str] = None
    period: Optional[int] = None
    jam: Optional[int] = None
    skater: Optional[str] = None  # Roster number, not the "team:" reference
    details: dict[str, str] = Field(default_factory=dict)
    message: Optional[str] = None  # Free text for rules without a location

    @property
    def severity(self) -> Severity:
        return self.category.severity

    def __str__(self) -> str:
        return format_diagnostic(self)


class RuleResult(BaseModel):
    """Description, help text and ordered hits for one rule key."""

    description: str
    long: str = ""
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def events(self) -> list[str]:
        return [format_diagnostic(d) for d in self.diagnostics]


class ErrorSummary(BaseModel):
    """Every rule key, grouped in four categories, with the hits recorded."""

    scores: dict[str, RuleResult] = Field(default_factory=dict)
    penalties: dict[str, RuleResult] = Field(default_factory=dict)
    lineups: dict[str, RuleResult] = Field(default_factory=dict)
    warnings: dict[str, RuleResult] = Field(default_factory=dict)

    def rules(self, category: Category) -> dict[str, RuleResult]:
        return getattr(self, category.value)

    def rule(self, category: Category, key: str) -> RuleResult:
        """Look up a rule; unknown keys are programming errors and raise KeyError."""
        return self.rules(category)[key]

    def record(
        self,
        category: Category,
        key: str,
        *,
        team: Optional[str] = None,
        period: Optional[int] = None,
        jam: Optional[int] = None,
        skater: Optional[str] = None,
        message: Optional[str] = None,
        unique: bool = False,
        **details: object,
    ) -> Diagnostic:
        """Append a diagnostic under `category.key` and return it.

        With unique=True an identical diagnostic already present is not
        appended a second time.
        """
        diagnostic = Diagnostic(
            category=category,
            rule=key,
            team=team,
            period=period,
            jam=jam,
            skater=skater,
            message=message,
            details={
                label: str(value) for label, value in details.items() if value is not None
            },
        )
        hits = self.rule(category, key).diagnostics
        if not (unique and diagnostic in hits):
            hits.append(diagnostic)
        return diagnostic

    def diagnostics(self, category: Optional[Category] = None) -> Iterator[Diagnostic]:
        categories = [category] if category is not None else list(Category)
        for cat in categories:
            for result in self.rules(cat).values():
                yield from result.diagnostics

    def count(self, severity: Optional[Severity] = None) -> int:
        return sum(
            1 for d in self.diagnostics() if severity is None or d.severity == severity
        )


# ─── Events ─────────────────────────────────────────────────────────


class Note(BaseModel):
    note: str


class _Event(BaseModel):
    skater: Optional[str] = None
    notes: list[Note] = Field(default_factory=list)


class PassEvent(_Event):
    event: Literal["pass"] = "pass"
    team: str
    number: int  # Trip number; 1 is the initial pass
    score: Optional[int] = None
    completed: Optional[bool] = None  # Only set on initial passes


class LeadEvent(_Event):
    event: Literal["lead"] = "lead"


class LostEvent(_Event):
    event: Literal["lost"] = "lost"


class CallEvent(_Event):
    event: Literal["call"] = "call"


class InjuryEvent(_Event):
    event: Literal["injury"] = "injury"


class PenaltyEvent(_Event):
    event: Literal["penalty"] = "penalty"
    penalty: str


class EnterBoxEvent(_Event):
    event: Literal["enter box"] = "enter box"
    note: Optional[str] = None


class ExitBoxEvent(_Event):
    event: Literal["exit box"] = "exit box"


class StarPassEvent(_Event):
    event: Literal["star pass"] = "star pass"


class ExpulsionEvent(_Event):
    event: Literal["expulsion"] = "expulsion"


class LineupEvent(_Event):
    event: Literal["lineup"] = "lineup"
    position: str


Event = Annotated[
    Union[
        PassEvent,
        LeadEvent,
        LostEvent,
        CallEvent,
        InjuryEvent,
        PenaltyEvent,
        EnterBoxEvent,
        ExitBoxEvent,
        StarPassEvent,
        ExpulsionEvent,
        LineupEvent,
    ],
    Field(discriminator="event"),
]


# ─── Game Structure ─────────────────────────────────────────────────


class Jam(BaseModel):
    number: int
    events: list[Event] = Field(default_factory=list)

    def find(self, kind: str, **attrs: object) -> list[Event]:
        """All events of a kind whose attributes match, in recorded order."""
        return [
            e
            for e in self.events
            if e.event == kind
            and all(getattr(e, name, None) == value for name, value in attrs.items())
        ]

    def first(self, kind: str, **attrs: object) -> Optional[Event]:
        found = self.find(kind, **attrs)
        return found[0] if found else None

    def team_events(self, kind: str, team: str) -> list[Event]:
        return [e for e in self.find(kind) if e.skater and ref_team(e.skater) == team]


class Period(BaseModel):
    jams: list[Jam] = Field(default_factory=list)

    def jam(self, number: int) -> Optional[Jam]:
        if 1 <= number <= len(self.jams):
            return self.jams[number - 1]
        return None

    def ensure_jam(self, number: int) -> Jam:
        """Return jam `number`, backfilling empty placeholder jams up to it."""
        while len(self.jams) < number:
            self.jams.append(Jam(number=len(self.jams) + 1))
        return self.jams[number - 1]

    @property
    def last_jam(self) -> Optional[Jam]:
        return self.jams[-1] if self.jams else None


class Person(BaseModel):
    name: Optional[str] = None
    number: str


class Team(BaseModel):
    league: Optional[str] = None
    name: Optional[str] = None
    color: Optional[str] = None
    persons: list[Person] = Field(default_factory=list)

    def has_skater(self, number: Optional[str]) -> bool:
        return any(p.number == number for p in self.persons)


class Certification(BaseModel):
    level: str


class Official(BaseModel):
    name: str
    roles: list[str] = Field(default_factory=list)
    league: Optional[str] = None
    certifications: list[Certification] = Field(default_factory=list)


class Officials(BaseModel):
    persons: list[Official] = Field(default_factory=list)


class Teams(BaseModel):
    home: Team = Field(default_factory=Team)
    away: Team = Field(default_factory=Team)
    officials: Officials = Field(default_factory=Officials)

    def team(self, name: str) -> Team:
        return getattr(self, name)


class Venue(BaseModel):
    name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


class Metadata(BaseModel):
    producer: str = "statsbook-validator"
    date: dt.datetime = Field(default_factory=dt.datetime.now)


class GameRecord(BaseModel):
    """derbyJSON-shaped record of one bout."""

    version: str = "v0.3"
    type: str = "game"
    metadata: Metadata = Field(default_factory=Metadata)
    date: Optional[dt.date] = None
    time: Optional[str] = None
    tournament: Optional[str] = None
    host_league: Optional[str] = None
    venue: Venue = Field(default_factory=Venue)
    teams: Teams = Field(default_factory=Teams)
    periods: dict[int, Period] = Field(
        default_factory=lambda: {period: Period() for period in PERIODS}
    )

    def period(self, number: int) -> Period:
        return self.periods[number]

    def previous_jam(self, period: int, jam: int) -> Optional[Jam]:
        """The jam before (period, jam); period 2 jam 1 wraps to period 1's last."""
        if jam > 1:
            return self.period(period).jam(jam - 1)
        if period > 1:
            return self.period(period - 1).last_jam
        return None

    def next_jam(self, period: int, jam: int) -> Optional[Jam]:
        """The jam after (period, jam); period 1's last jam wraps to period 2 jam 1."""
        following = self.period(period).jam(jam + 1)
        if following is not None:
            return following
        if period < PERIODS[-1]:
            return self.period(period + 1).jam(1)
        return None


# ─── Cross-reader Correlation ───────────────────────────────────────


class WarningEntry(BaseModel):
    team: str
    period: int
    jam: int
    skater: Optional[str] = None  # "team:number" reference


class WarningData(BaseModel):
    """Lists that connect rules across readers. Lives for one run only."""

    lost: list[WarningEntry] = Field(default_factory=list)
    bad_starts: list[WarningEntry] = Field(default_factory=list)
    no_entries: list[WarningEntry] = Field(default_factory=list)
    bad_continues: list[WarningEntry] = Field(default_factory=list)
    no_exits: list[WarningEntry] = Field(default_factory=list)
    foulouts: list[WarningEntry] = Field(default_factory=list)
    expulsions: list[WarningEntry] = Field(default_factory=list)
    jams_called_injury: list[WarningEntry] = Field(default_factory=list)
    lineup_three: list[WarningEntry] = Field(default_factory=list)


# ─── Report ─────────────────────────────────────────────────────────


class StatsbookReport(BaseModel):
    """The final output of the pipeline: game record + error summary."""

    filename: str
    version: str
    is_valid: bool
    error_count: int
    warning_count: int
    game: GameRecord
    errors: ErrorSummary
    source_hash: str = ""  # SHA-256 of the uploaded file, when read from bytes
