"""State shared by the readers during one validation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .box import BoxTracker
from .grid import Workbook
from .models import Category, Diagnostic, ErrorSummary, GameRecord, WarningData
from .template import StatsbookTemplate


@dataclass
class RunContext:
    """One document's inputs and accumulators.

    Created by the pipeline for a single run and passed by reference to each
    reader in turn; nothing in it outlives the run.
    """

    workbook: Workbook
    template: StatsbookTemplate
    tracker: BoxTracker
    errors: ErrorSummary
    game: GameRecord = field(default_factory=GameRecord)
    warnings: WarningData = field(default_factory=WarningData)

    def record(
        self,
        category: Category,
        key: str,
        *,
        team: Optional[str] = None,
        period: Optional[int] = None,
        jam: Optional[int] = None,
        skater: Optional[str] = None,
        **details: object,
    ) -> Diagnostic:
        return self.errors.record(
            category, key, team=team, period=period, jam=jam, skater=skater, **details
        )
