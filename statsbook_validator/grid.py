"""
Grid access: the one primitive every reader needs.

A Workbook answers "what is in sheet S at coordinate C?" and nothing else.
Readers never touch openpyxl directly: a statsbook is loaded once into an
in-memory grid (values + cell comments) and then only read.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import BinaryIO, Optional, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from .cells import CellAddress, CellValue, is_absent
from .exceptions import WorkbookLoadError

logger = logging.getLogger(__name__)

Coordinate = Union[CellAddress, str]


class Workbook:
    """In-memory, sparse spreadsheet: {sheet: {(row, col): value}}."""

    def __init__(self) -> None:
        self._values: dict[str, dict[tuple[int, int], CellValue]] = {}
        self._comments: dict[str, dict[tuple[int, int], str]] = {}

    # ─── Construction ───────────────────────────────────────────────

    def add_sheet(self, name: str) -> None:
        self._values.setdefault(name, {})
        self._comments.setdefault(name, {})

    def set(
        self,
        sheet: str,
        address: Coordinate,
        value: Optional[CellValue],
        comment: Optional[str] = None,
    ) -> None:
        """Write a value (and optional comment) into a cell."""
        self.add_sheet(sheet)
        key = _key(address)
        if value is None:
            self._values[sheet].pop(key, None)
        else:
            self._values[sheet][key] = value
        if comment:
            self._comments[sheet][key] = comment

    # ─── Access ─────────────────────────────────────────────────────

    @property
    def sheet_names(self) -> list[str]:
        return list(self._values)

    def has_sheet(self, name: str) -> bool:
        return name in self._values

    def value(self, sheet: str, address: Coordinate) -> Optional[CellValue]:
        """Raw cell value, or None when the cell (or sheet) is empty."""
        raw = self._values.get(sheet, {}).get(_key(address))
        return None if is_absent(raw) else raw

    def comment(self, sheet: str, address: Coordinate) -> Optional[str]:
        return self._comments.get(sheet, {}).get(_key(address))


def _key(address: Coordinate) -> tuple[int, int]:
    if isinstance(address, str):
        address = CellAddress.from_a1(address)
    return address.row, address.col


# ─── Loading ────────────────────────────────────────────────────────


def load_workbook(source: Union[str, Path, bytes, BinaryIO]) -> Workbook:
    """Read an .xlsx statsbook into a Workbook.

    Formulas are read as their cached values (what the scorekeeper saw).

    Raises:
        WorkbookLoadError: the source is not a readable spreadsheet.
    """
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    try:
        book = openpyxl.load_workbook(source, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise WorkbookLoadError(
            f"Could not open statsbook: {exc}", details={"reason": str(exc)}
        ) from exc

    workbook = Workbook()
    for sheet in book.worksheets:
        workbook.add_sheet(sheet.title)
        for row in sheet.iter_rows():
            for cell in row:
                comment = cell.comment.text if cell.comment is not None else None
                if cell.value is None and comment is None:
                    continue
                workbook.set(
                    sheet.title,
                    CellAddress(row=cell.row - 1, col=cell.column - 1),
                    cell.value,
                    comment=comment,
                )
    book.close()

    logger.info("Loaded workbook with %d sheets", len(workbook.sheet_names))
    return workbook
