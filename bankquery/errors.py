"""Exception hierarchy for bankquery.

Unresolvable concepts, unparseable cell values and failing function
implementations are not errors: they degrade to unresolved conditions,
rejected rows and None results respectively. Only the cases below raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bankquery.models import ValidationReport


class BankQueryError(Exception):
    """Base class for all bankquery errors."""


class ImportFailedError(BankQueryError):
    """A data file could not be imported (unsupported type or malformed content)."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"Could not import {file_name}: {reason}")


class SourceNotFoundError(BankQueryError):
    """Update or delete was requested for a source id the store does not hold."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        super().__init__(f"Unknown source: {source_id}")


class PlanValidationError(BankQueryError):
    """A query plan failed validation and was refused before execution."""

    def __init__(self, report: "ValidationReport"):
        self.report = report
        super().__init__("Invalid query plan: " + "; ".join(report.issues))


class RowFetchError(BankQueryError):
    """Reading rows for a source failed during a multi-source query."""

    def __init__(self, source_id: str, cause: Exception):
        self.source_id = source_id
        self.cause = cause
        super().__init__(f"Failed to read rows for source {source_id}: {cause}")
