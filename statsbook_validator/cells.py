"""
Cell-level primitives shared by every reader.

  - CellAddress: zero-based (row, col) with A1 conversion and offset arithmetic
  - Value normalisation: what counts as "absent", how numbers become text
  - Jam-number tokens: integer, SP (this team passed the star) or SP* (the
    opposing team did)

Absent is NOT zero. A cell holding 0 is a value; only None, blank strings and
FALSE checkbox values are treated as empty.
"""

from __future__ import annotations

import re
from datetime import datetime, time
from enum import Enum
from typing import Any, Optional, Union

from openpyxl.utils.cell import (
    column_index_from_string,
    coordinate_from_string,
    get_column_letter,
)
from openpyxl.utils.exceptions import CellCoordinatesException
from pydantic import BaseModel, ConfigDict, model_validator

from .exceptions import InvalidJamNumberError

CellValue = Union[str, int, float, bool, datetime, time]

JAM_NUMBER_RE = re.compile(r"^(\d+|SP\*?)$", re.IGNORECASE)
STAR_PASS_RE = re.compile(r"^SP\*?$", re.IGNORECASE)
OWN_STAR_PASS_RE = re.compile(r"^SP$", re.IGNORECASE)


# ─── Addressing ─────────────────────────────────────────────────────


class CellAddress(BaseModel):
    """A zero-based grid coordinate. Accepts "B12" wherever one is validated."""

    model_config = ConfigDict(frozen=True)

    row: int
    col: int

    @model_validator(mode="before")
    @classmethod
    def _parse_a1(cls, data: Any) -> Any:
        if isinstance(data, str):
            return _decode_a1(data)
        return data

    @classmethod
    def from_a1(cls, a1: str) -> "CellAddress":
        return cls(**_decode_a1(a1))

    def to_a1(self) -> str:
        return f"{get_column_letter(self.col + 1)}{self.row + 1}"

    def shift(self, rows: int = 0, cols: int = 0) -> "CellAddress":
        """Return the coordinate offset by the given number of rows/columns."""
        return CellAddress(row=self.row + rows, col=self.col + cols)

    def __str__(self) -> str:
        return self.to_a1()


def _decode_a1(a1: str) -> dict[str, int]:
    try:
        letters, number = coordinate_from_string(a1.strip().upper())
    except CellCoordinatesException as exc:
        raise ValueError(f"'{a1}' is not an A1 cell reference") from exc
    return {"row": number - 1, "col": column_index_from_string(letters) - 1}


# ─── Value Normalisation ────────────────────────────────────────────


def is_absent(value: Optional[CellValue]) -> bool:
    """True for empty cells: None, blank/whitespace strings and FALSE."""
    if value is None or value is False:
        return True
    return isinstance(value, str) and not value.strip()


def as_text(value: Optional[CellValue]) -> Optional[str]:
    """Render a cell as trimmed text; integral floats lose their '.0'."""
    if is_absent(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def as_int(value: Optional[CellValue]) -> Optional[int]:
    """Parse a whole number from a cell, or None when it is not one."""
    if is_absent(value) or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    return int(text) if text.isdigit() else None


# ─── Jam Number Tokens ──────────────────────────────────────────────


class JamTokenKind(str, Enum):
    JAM = "jam"
    STAR_PASS = "star_pass"  # "SP": this team passed the star
    OPPONENT_STAR_PASS = "opponent_star_pass"  # "SP*": the other team did


def parse_jam_token(
    value: Optional[CellValue], sheet: str, address: CellAddress
) -> tuple[JamTokenKind, Optional[int]]:
    """Classify a non-empty jam-number cell.

    Raises:
        InvalidJamNumberError: no safe jam index can be derived from the cell.
    """
    text = as_text(value) or ""
    if not JAM_NUMBER_RE.match(text):
        raise InvalidJamNumberError(
            f"Invalid Jam Number in {sheet}!{address}: {value!r}",
            details={"sheet": sheet, "cell": str(address), "value": str(value)},
        )
    if OWN_STAR_PASS_RE.match(text):
        return JamTokenKind.STAR_PASS, None
    if STAR_PASS_RE.match(text):
        return JamTokenKind.OPPONENT_STAR_PASS, None
    return JamTokenKind.JAM, int(text)
