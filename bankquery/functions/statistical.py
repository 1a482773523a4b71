"""
Statistical operations over a result column.

Values are taken from raw rows and coerced to numbers; anything that does
not coerce is ignored. Reductions use numpy; variance and standard
deviation are population statistics (ddof=0).

Usage:
    apply_statistical_operation(rows, "Rate", "std dev")
    format_statistical_result("std dev", 0.123456, "Rate")
      -> StatisticalResult(operation="Standard Deviation", value=0.1235, field="Rate")
"""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from bankquery.models import DataType, RoleGuess, Schema, StatisticalResult
from bankquery.shared.numbers import to_number


def _numbers(values: list[Any]) -> list[float]:
    out = []
    for v in values:
        n = to_number(v)
        if n is not None:
            out.append(n)
    return out


def _plain(value: Any) -> float | int:
    """numpy scalar -> Python number, keeping integral floats as float."""
    return value.item() if hasattr(value, "item") else value


def mean(values: list[Any]) -> float | None:
    nums = _numbers(values)
    if not nums:
        return None
    return _plain(np.mean(nums))


def standard_deviation(values: list[Any]) -> float | None:
    nums = _numbers(values)
    if not nums:
        return None
    if len(nums) == 1:
        return 0
    return _plain(np.std(nums, ddof=0))


def variance(values: list[Any]) -> float | None:
    nums = _numbers(values)
    if not nums:
        return None
    if len(nums) == 1:
        return 0
    return _plain(np.var(nums, ddof=0))


def median(values: list[Any]) -> float | None:
    nums = _numbers(values)
    if not nums:
        return None
    return _plain(np.median(nums))


def min_value(values: list[Any]) -> float | None:
    nums = _numbers(values)
    return _plain(np.min(nums)) if nums else None


def max_value(values: list[Any]) -> float | None:
    nums = _numbers(values)
    return _plain(np.max(nums)) if nums else None


def mode(values: list[Any]) -> float | None:
    """Most frequent value; on ties, the one that reached the top count first."""
    nums = _numbers(values)
    if not nums:
        return None
    counts: dict[float, int] = {}
    best, best_count = None, 0
    for n in nums:
        counts[n] = counts.get(n, 0) + 1
    for n in counts:
        if counts[n] > best_count:
            best, best_count = n, counts[n]
    return best


def sum_values(values: list[Any]) -> float:
    nums = _numbers(values)
    return _plain(np.sum(nums)) if nums else 0


def count(values: list[Any]) -> int:
    """Non-null, non-empty entries (numeric or not)."""
    return sum(1 for v in values if v is not None and v != "")


OPERATIONS: dict[str, Callable[[list[Any]], Any]] = {
    "mean":               mean,
    "average":            mean,
    "avg":                mean,
    "standard deviation": standard_deviation,
    "std dev":            standard_deviation,
    "stddev":             standard_deviation,
    "std":                standard_deviation,
    "median":             median,
    "min":                min_value,
    "minimum":            min_value,
    "max":                max_value,
    "maximum":            max_value,
    "mode":               mode,
    "sum":                sum_values,
    "total":              sum_values,
    "count":              count,
    "variance":           variance,
}

DISPLAY_NAMES: dict[str, str] = {
    "mean": "Mean", "average": "Average", "avg": "Average",
    "standard deviation": "Standard Deviation", "std dev": "Standard Deviation",
    "stddev": "Standard Deviation", "std": "Standard Deviation",
    "median": "Median", "min": "Minimum", "minimum": "Minimum",
    "max": "Maximum", "maximum": "Maximum", "mode": "Mode",
    "sum": "Sum", "total": "Sum", "count": "Count", "variance": "Variance",
}

# Longest first so "standard deviation" is found before "std"
STATISTICAL_OPERATIONS: list[str] = sorted(OPERATIONS, key=len, reverse=True)


def extract_field_values(rows: list[dict[str, Any]], field: str) -> list[Any]:
    return [row.get(field) for row in rows]


def apply_statistical_operation(rows: list[dict[str, Any]], field: str, operation: str) -> Any:
    """Apply *operation* (any alias in OPERATIONS) to one column; None if unknown or no rows."""
    if not rows:
        return None
    fn = OPERATIONS.get((operation or "").lower())
    if fn is None:
        return None
    return fn(extract_field_values(rows, field))


def format_statistical_result(operation: str, value: Any, field: str) -> StatisticalResult | None:
    if value is None:
        return None
    name = DISPLAY_NAMES.get(operation.lower(), operation)
    if isinstance(value, float) and not value.is_integer():
        value = round(value, 4)
    return StatisticalResult(operation=name, value=value, field=field)


# ── Column summaries ──────────────────────────────────────────────────────────

_SUMMARY_BY_TYPE: dict[DataType, tuple[str, str]] = {
    DataType.integer:    ("mode", "Most Common"),
    DataType.currency:   ("sum",  "Total"),
    DataType.percentage: ("mean", "Average %"),
    DataType.number:     ("mean", "Average"),
}


def summarize_columns(
    columns: list[str], rows: list[dict[str, Any]], schemas: list[Schema]
) -> dict[str, tuple[str, Any]]:
    """Per-column footer values keyed by column: (label, value).

    Candidate id columns and non-numeric columns get no summary. The column's
    type is taken from the first schema that declares it.
    """
    summary: dict[str, tuple[str, Any]] = {}
    for column in columns:
        field = next((s.field_by_id(column) for s in schemas if s.field_by_id(column)), None)
        if field is None or field.role_guess == RoleGuess.candidate_id:
            continue
        rule = _SUMMARY_BY_TYPE.get(field.data_type)
        if rule is None:
            continue
        op, label = rule
        value = OPERATIONS[op](extract_field_values(rows, column))
        if value is not None:
            summary[column] = (label, value)
    return summary
