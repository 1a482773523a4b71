"""
Row predicates built from resolved conditions.

A predicate never raises: a missing field, a non-numeric cell or an
unparseable date all make the row fail the condition.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from bankquery.models import (
    DateCondition,
    LogicalOp,
    NumericCondition,
    RangeCondition,
    TextCondition,
)
from bankquery.shared.dates import parse_date, subtract_relative
from bankquery.shared.numbers import to_number

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Predicate = Callable[[Row], bool]

_COMPARE: dict[str, Callable[[float, float], bool]] = {
    "=":  lambda a, b: a == b,
    ">":  lambda a, b: a > b,
    "<":  lambda a, b: a < b,
    ">=": lambda a, b: a >= b,
    "<=": lambda a, b: a <= b,
}


def _reject(_row: Row) -> bool:
    return False


def _numeric(cond: NumericCondition) -> Predicate:
    compare = _COMPARE[cond.op]
    field, value = cond.field, cond.value

    def predicate(row: Row) -> bool:
        v = to_number(row.get(field))
        return v is not None and compare(v, value)

    return predicate


def _range(cond: RangeCondition) -> Predicate:
    field, lo, hi = cond.field, cond.value_min, cond.value_max

    def predicate(row: Row) -> bool:
        v = to_number(row.get(field))
        return v is not None and lo <= v <= hi

    return predicate


def _date(cond: DateCondition, now: datetime | None) -> Predicate:
    if cond.absolute_date is not None:
        boundary = cond.absolute_date
        if boundary.tzinfo is not None:
            boundary = parse_date(boundary)
    else:
        boundary = subtract_relative(now or datetime.now(), cond.relative_time)
    field, after = cond.field, cond.op == "after"

    def predicate(row: Row) -> bool:
        d = parse_date(row.get(field))
        if d is None:
            return False
        return d >= boundary if after else d <= boundary

    return predicate


def _text(cond: TextCondition) -> Predicate:
    field, wanted = cond.field, cond.value.strip().lower()

    def predicate(row: Row) -> bool:
        v = row.get(field)
        return v is not None and str(v).strip().lower() == wanted

    return predicate


def build_predicate(cond, now: datetime | None = None) -> Predicate:
    """Predicate for one condition; unresolved conditions reject every row."""
    if not cond.field:
        return _reject
    if isinstance(cond, RangeCondition):
        return _range(cond)
    if isinstance(cond, NumericCondition):
        return _numeric(cond)
    if isinstance(cond, DateCondition):
        return _date(cond, now)
    if isinstance(cond, TextCondition):
        return _text(cond)
    raise TypeError(f"Unsupported condition type: {type(cond).__name__}")


def combine(predicates: list[Predicate], logical_op: LogicalOp) -> Predicate:
    """AND: every predicate must pass. OR: any one must pass. No predicates keeps every row."""
    if not predicates:
        return lambda row: True
    if logical_op == LogicalOp.OR:
        return lambda row: any(p(row) for p in predicates)
    return lambda row: all(p(row) for p in predicates)


def filter_rows(rows: list[Row], conditions: list, logical_op: LogicalOp, now: datetime | None = None) -> list[Row]:
    keep = combine([build_predicate(c, now) for c in conditions], logical_op)
    return [row for row in rows if keep(row)]
