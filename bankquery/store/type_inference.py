"""
Column type and role inference for imported data.

TypeInference is the pluggable strategy; HeuristicTypeInference is the
default, counting how many sampled values look like dates, percentages or
numbers and picking a type once a share passes the threshold.
"""

from __future__ import annotations

import re
from typing import Any, Protocol

from bankquery.models import DataType, RoleGuess
from bankquery.shared.dates import looks_like_date, parse_date
from bankquery.shared.numbers import to_number

_CANDIDATE_ID_PATTERNS = [
    re.compile(p)
    for p in (r"customer_?id", r"member_?id", r"account_?id", r"portfolio_?id",
              r"^id$", r"^portfolio$", r"^reference$")
]

MIN_YEAR = 1900
MAX_YEAR = 2100


class TypeInference(Protocol):
    def detect_type(self, values: list[Any]) -> DataType: ...

    def guess_role(self, name: str) -> RoleGuess: ...


class HeuristicTypeInference:
    def __init__(self, threshold: float = 0.8, small_decimal_share: float = 0.3):
        self.threshold = threshold
        self.small_decimal_share = small_decimal_share

    def detect_type(self, values: list[Any]) -> DataType:
        total = num_count = integer_count = percent_count = decimal_count = date_count = 0
        max_numeric = float("-inf")

        for v in values:
            if v is None or v == "":
                continue
            total += 1
            text = str(v).strip()

            if looks_like_date(text):
                d = parse_date(text)
                if d is not None and MIN_YEAR < d.year < MAX_YEAR:
                    date_count += 1
                    continue

            n = to_number(text)
            if n is None:
                continue
            num_count += 1
            if text.endswith("%"):
                percent_count += 1
            if n.is_integer():
                integer_count += 1
            else:
                decimal_count += 1
            max_numeric = max(max_numeric, n)

        if not total:
            return DataType.string
        if date_count / total > self.threshold:
            return DataType.date
        if percent_count / total > self.threshold:
            return DataType.percentage
        numeric = num_count / total > self.threshold
        if numeric and decimal_count / max(num_count, 1) > self.small_decimal_share and max_numeric <= 1:
            return DataType.percentage
        if numeric:
            return DataType.integer if integer_count == num_count else DataType.currency
        return DataType.string

    def guess_role(self, name: str) -> RoleGuess:
        lower = name.lower()
        if any(p.search(lower) for p in _CANDIDATE_ID_PATTERNS):
            return RoleGuess.candidate_id
        return RoleGuess.field
