"""
Custom exception hierarchy for statsbook processing.

These are the FATAL conditions: each one aborts the run and no report is
produced. Everything else a reader finds is recorded in the ErrorSummary.
"""

from __future__ import annotations


class StatsbookError(Exception):
    """Base exception for all fatal statsbook failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InvalidJamNumberError(StatsbookError):
    """A jam-number cell holds something other than an integer, SP or SP*."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INVALID_JAM_NUMBER", message, details)


class UnsupportedVersionError(StatsbookError):
    """The statsbook declares a layout version we have no template for."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("UNSUPPORTED_VERSION", message, details)


class TemplateError(StatsbookError):
    """A coordinate template is missing or has an unresolvable field."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("TEMPLATE_INVALID", message, details)


class MissingSheetError(StatsbookError):
    """A tab required by the template is not present in the workbook."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SHEET_MISSING", message, details)


class WorkbookLoadError(StatsbookError):
    """The file could not be opened as a spreadsheet."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("WORKBOOK_LOAD_FAILED", message, details)
