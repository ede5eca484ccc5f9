"""
Main validation pipeline — orchestrates one statsbook run.

Flow:
  ┌───────────┐
  │ Workbook  │
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │  Version  │   ← "Read Me"!A3, picks template + box code alphabet
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │   IGRF    │   ← Rosters first: every tab is checked against them
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │   Score   │   ← Jams, passes, lead/lost/call
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │ Penalties │   ← Penalty/expulsion events into existing jams
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │  Lineups  │   ← Box trips, cross-checked against penalties
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │  Checks   │   ← Cross-jam/cross-period warnings
  └─────┬─────┘
        │
  ┌─────▼─────┐
  │  Report   │   ← Game record + error summary
  └───────────┘

Fatal problems (bad jam number, unknown version, missing sheet, broken
template) raise a StatsbookError and produce no report. Everything else is
recorded in the error summary and the run continues.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import Optional, Union

from .aggregator import run_checks
from .box import box_tracker_for
from .cells import as_text
from .config import Settings
from .context import RunContext
from .exceptions import MissingSheetError, UnsupportedVersionError, WorkbookLoadError
from .grid import Workbook, load_workbook
from .igrf_reader import read_igrf
from .lineup_reader import read_lineups
from .models import Category, ErrorSummary, Severity, StatsbookReport
from .penalty_reader import read_penalties
from .score_reader import read_scores
from .template import load_templates, template_for

logger = logging.getLogger(__name__)

RULES_PATH = Path(__file__).parent / "error_rules.json"

README_SHEET = "Read Me"
README_VERSION_CELL = "A3"
VERSION_RE = re.compile(r"\d{4}")


def load_error_rules(path: Optional[Union[str, Path]] = None) -> ErrorSummary:
    """Load the rule-key skeleton (descriptions and help text, no hits)."""
    resolved = RULES_PATH if path is None else Path(path)
    with resolved.open(encoding="utf-8") as f:
        return ErrorSummary.model_validate(json.load(f))


def detect_version(workbook: Workbook, default: str) -> str:
    """Read the layout year from the "Read Me" sheet.

    Raises:
        UnsupportedVersionError: the sheet exists but names no year.
    """
    if not workbook.has_sheet(README_SHEET):
        logger.info("No '%s' sheet; assuming %s layout", README_SHEET, default)
        return default

    text = as_text(workbook.value(README_SHEET, README_VERSION_CELL)) or ""
    match = VERSION_RE.search(text)
    if match is None:
        raise UnsupportedVersionError(
            f"Unable to read a statsbook version from '{text}'",
            details={"sheet": README_SHEET, "cell": README_VERSION_CELL, "value": text},
        )
    return match.group(0)


class StatsbookPipeline:
    """Orchestrates a full statsbook validation.

    Usage:
        pipeline = StatsbookPipeline()
        report = pipeline.run_file("game.xlsx")
        if not report.is_valid:
            for diagnostic in report.errors.diagnostics():
                print(diagnostic)
    """

    def __init__(
        self,
        template_dir: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.templates = load_templates(template_dir or self.settings.template_dir)
        self.rules = load_error_rules()

    @property
    def supported_versions(self) -> list[str]:
        return sorted(self.templates)

    def run(self, workbook: Workbook, filename: str = "") -> StatsbookReport:
        """Validate an already-loaded workbook.

        Args:
            workbook: The statsbook grid.
            filename: Reported back unchanged in the report.

        Returns:
            StatsbookReport with the game record, error summary and verdict.
        """
        # ── Step 1: Version, template, box code alphabet ────────────
        version = detect_version(workbook, self.settings.default_version)
        template = template_for(version, self.templates)
        tracker = box_tracker_for(version)

        missing = [name for name in template.sheet_names if not workbook.has_sheet(name)]
        if missing:
            raise MissingSheetError(
                f"Statsbook is missing sheet(s): {', '.join(missing)}",
                details={"missing": missing, "version": version},
            )

        ctx = RunContext(
            workbook=workbook,
            template=template,
            tracker=tracker,
            errors=self.rules.model_copy(deep=True),
        )
        logger.info("Reading %s as a %s statsbook", filename or "workbook", version)

        if version != self.settings.current_version:
            ctx.record(
                Category.WARNINGS, "oldStatsbookVersion",
                **{"This File": version, "Current Version": self.settings.current_version},
            )

        # ── Step 2: Readers, in dependency order ────────────────────
        read_igrf(ctx)
        read_scores(ctx)
        read_penalties(ctx)
        read_lineups(ctx)

        # ── Step 3: Cross-jam checks ────────────────────────────────
        run_checks(ctx)

        # ── Step 4: Report ──────────────────────────────────────────
        error_count = ctx.errors.count(Severity.ERROR)
        return StatsbookReport(
            filename=filename,
            version=version,
            is_valid=error_count == 0,
            error_count=error_count,
            warning_count=ctx.errors.count(Severity.WARNING),
            game=ctx.game,
            errors=ctx.errors,
        )

    def run_bytes(self, data: bytes, filename: str = "") -> StatsbookReport:
        """Validate raw .xlsx bytes; the report carries their SHA-256."""
        digest = hashlib.sha256(data).hexdigest()
        report = self.run(load_workbook(data), filename)
        report.source_hash = digest
        return report

    def run_file(self, path: Union[str, Path]) -> StatsbookReport:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise WorkbookLoadError(
                f"Could not read {path}: {exc}", details={"path": str(path)}
            ) from exc
        return self.run_bytes(data, path.name)
