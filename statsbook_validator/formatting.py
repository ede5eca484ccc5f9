"""
Presentation of diagnostics.

Grammar (stable, assertable):

    Team: <Capitalized team>, Period: <n>, Jam: <n>[, Skater: <number>][, <Label>: <value>...]

Parts that do not apply to a rule are left out. Rules without a grid location
(e.g. missing IGRF data) render their free-text message instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Diagnostic


def format_diagnostic(diagnostic: "Diagnostic") -> str:
    """Render one diagnostic as a single line of text."""
    parts: list[str] = []

    if diagnostic.message:
        parts.append(diagnostic.message)
    if diagnostic.team:
        parts.append(f"Team: {diagnostic.team.capitalize()}")
    if diagnostic.period is not None:
        parts.append(f"Period: {diagnostic.period}")
    if diagnostic.jam is not None:
        parts.append(f"Jam: {diagnostic.jam}")
    if diagnostic.skater is not None:
        parts.append(f"Skater: {diagnostic.skater}")
    for label, value in diagnostic.details.items():
        parts.append(f"{label}: {value}")

    return ", ".join(parts)
