"""
Versioned coordinate templates.

Each statsbook layout (2017, 2018, 2019) is described by a JSON file that maps
semantic field names to the coordinate of the FIRST occurrence of that field.
Readers derive every other coordinate by offset arithmetic (row per jam,
column per trip/penalty/box code), so no reader knows a layout.

Templates are validated in full when loaded. A missing or malformed field is
fatal: no reader may run against a partially-resolved template.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .cells import CellAddress
from .exceptions import TemplateError, UnsupportedVersionError
from .models import PERIODS, TEAMS

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class _Block(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# ─── IGRF ───────────────────────────────────────────────────────────


class VenueFields(_Block):
    name: CellAddress
    city: CellAddress
    state: CellAddress


class TeamFields(_Block):
    league: CellAddress
    name: CellAddress
    color: CellAddress
    first_number: CellAddress
    first_name: CellAddress
    max_num: int = Field(gt=0)


class OfficialFields(_Block):
    first_name: CellAddress
    first_role: CellAddress
    first_league: CellAddress
    first_cert: CellAddress
    max_num: int = Field(gt=0)


class IgrfTab(_Block):
    sheet_name: str
    venue: VenueFields
    tournament: CellAddress
    host_league: CellAddress
    date: CellAddress
    time: CellAddress
    home: TeamFields
    away: TeamFields
    officials: OfficialFields


# ─── Per-period / per-team blocks ───────────────────────────────────


class ScoreBlock(_Block):
    jam_number: CellAddress
    jammer_number: CellAddress
    lost: CellAddress
    lead: CellAddress
    call: CellAddress
    injury: CellAddress
    no_initial: CellAddress
    first_trip: CellAddress
    last_trip: CellAddress

    @model_validator(mode="after")
    def _trips_on_one_row(self) -> "ScoreBlock":
        if self.first_trip.row != self.last_trip.row or self.last_trip.col < self.first_trip.col:
            raise ValueError("last_trip must be on the first_trip row, at or right of it")
        return self


class PenaltyBlock(_Block):
    number: CellAddress
    first_penalty: CellAddress
    first_jam: CellAddress
    foulout: CellAddress
    foulout_jam: CellAddress
    bench_exp_code: CellAddress
    bench_exp_jam: CellAddress


class LineupBlock(_Block):
    jam_number: CellAddress
    no_pivot: CellAddress
    first_jammer: CellAddress


BlockType = Union[ScoreBlock, PenaltyBlock, LineupBlock]


def _require_every_period_and_team(periods: dict) -> dict:
    for period in PERIODS:
        if period not in periods:
            raise ValueError(f"missing period {period}")
        for team in TEAMS:
            if team not in periods[period]:
                raise ValueError(f"missing team '{team}' in period {period}")
    return periods


class ScoreTab(_Block):
    sheet_name: str
    max_jams: int = Field(gt=0)
    periods: dict[int, dict[str, ScoreBlock]]

    @model_validator(mode="after")
    def _complete(self) -> "ScoreTab":
        _require_every_period_and_team(self.periods)
        return self


class PenaltyTab(_Block):
    sheet_name: str
    max_penalties: int = Field(gt=0)
    skater_row_stride: int = Field(default=2, gt=0)
    bench_expulsions: int = Field(default=2, ge=0)
    periods: dict[int, dict[str, PenaltyBlock]]

    @model_validator(mode="after")
    def _complete(self) -> "PenaltyTab":
        _require_every_period_and_team(self.periods)
        return self


class LineupTab(_Block):
    sheet_name: str
    max_jams: int = Field(gt=0)
    box_codes: int = Field(gt=0)
    periods: dict[int, dict[str, LineupBlock]]

    @model_validator(mode="after")
    def _complete(self) -> "LineupTab":
        _require_every_period_and_team(self.periods)
        return self


# ─── Template ───────────────────────────────────────────────────────


class StatsbookTemplate(_Block):
    """Complete coordinate map for one statsbook layout version."""

    version: str
    igrf: IgrfTab
    score: ScoreTab
    penalties: PenaltyTab
    lineups: LineupTab

    @property
    def sheet_names(self) -> list[str]:
        return [
            self.igrf.sheet_name,
            self.score.sheet_name,
            self.penalties.sheet_name,
            self.lineups.sheet_name,
        ]

    def block(self, tab: str, period: int, team: str) -> BlockType:
        """The first-row coordinates of one (tab, period, team) section."""
        section = getattr(self, tab, None)
        if tab not in ("score", "penalties", "lineups") or section is None:
            raise TemplateError(f"Unknown template tab '{tab}'", details={"tab": tab})
        try:
            return section.periods[period][team]
        except KeyError as exc:
            raise TemplateError(
                f"No {tab} block for period {period}, team {team}",
                details={"tab": tab, "period": period, "team": team},
            ) from exc

    def cell(self, tab: str, period: int, team: str, field: str) -> CellAddress:
        """Resolve (tab, period, team, field) to its base coordinate."""
        address = getattr(self.block(tab, period, team), field, None)
        if not isinstance(address, CellAddress):
            raise TemplateError(
                f"Field '{field}' is not defined for {tab} in the {self.version} template",
                details={"tab": tab, "field": field, "version": self.version},
            )
        return address


# ─── Loading ────────────────────────────────────────────────────────


def parse_template(data: dict, source: str = "<dict>") -> StatsbookTemplate:
    """Validate raw template data.

    Raises:
        TemplateError: any field is missing, unknown, or not a coordinate.
    """
    try:
        return StatsbookTemplate.model_validate(data)
    except ValidationError as exc:
        raise TemplateError(
            f"Template {source} is invalid: {exc.error_count()} problem(s)",
            details={"source": source, "errors": exc.errors(include_url=False)},
        ) from exc


def load_templates(directory: Optional[Union[str, Path]] = None) -> dict[str, StatsbookTemplate]:
    """Load every `*.json` template in a directory, keyed by version.

    Args:
        directory: Template directory. Defaults to the packaged templates.
    """
    resolved = TEMPLATE_DIR if directory is None else Path(directory)
    templates: dict[str, StatsbookTemplate] = {}

    for path in sorted(resolved.glob("*.json")):
        with path.open(encoding="utf-8") as f:
            template = parse_template(json.load(f), source=path.name)
        templates[template.version] = template
        logger.debug("Loaded %s template from %s", template.version, path)

    if not templates:
        raise TemplateError(
            f"No statsbook templates found in {resolved}",
            details={"directory": str(resolved)},
        )
    return templates


def template_for(version: str, templates: dict[str, StatsbookTemplate]) -> StatsbookTemplate:
    """Pick the template for a detected version.

    Raises:
        UnsupportedVersionError: no template declares this version.
    """
    try:
        return templates[version]
    except KeyError as exc:
        raise UnsupportedVersionError(
            f"Unable to load template for year {version}",
            details={"version": version, "supported": sorted(templates)},
        ) from exc
