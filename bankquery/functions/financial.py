"""
Financial function library: loan calculations applied row by row.

All inputs may arrive as raw cell text ("$12,500.00", "4.25", "2027-06-30");
numbers are coerced with to_number and dates with parse_date. Time-based
functions take an optional `now` so results are reproducible.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from bankquery.functions.models import FunctionSpec, ParameterSpec
from bankquery.shared.dates import parse_date
from bankquery.shared.numbers import to_number

MAX_TERM_MONTHS = 360
DEFAULT_TERM_MONTHS = 12


def until_maturity(maturity: Any, now: datetime | None = None) -> int:
    """Whole calendar months from *now* to the maturity date, never negative.

    Only the year and month fields are compared, so 2024-01-31 -> 2024-02-01
    counts as one month. Unparseable or missing dates give 0.
    """
    target = parse_date(maturity)
    if target is None:
        return 0
    now = now or datetime.now()
    months = (target.year - now.year) * 12 + (target.month - now.month)
    return max(0, months)


def _monthly_rate(rate: float) -> float:
    # Rates below 1 are already decimals; otherwise a percentage
    return rate / 12 if rate < 1 else rate / 100 / 12


def average_principal(
    principal: Any,
    payment: Any = None,
    rate: Any = None,
    maturity: Any = None,
    term_months: Any = None,
    now: datetime | None = None,
) -> float:
    """Average outstanding principal over the remaining term of a loan.

    The balance is amortised month by month; each month's opening balance
    is added to the running total before that month's payment is applied.
    """
    p = to_number(principal)
    if p is None or p <= 0:
        return 0

    pay = to_number(payment) or 0.0
    r = to_number(rate) or 0.0

    term = to_number(term_months)
    if term is None or term <= 0:
        term = until_maturity(maturity, now=now) if maturity else 0
    if term <= 0:
        return p

    mr = _monthly_rate(r)

    if pay <= 0:
        if r > 0 and term > 0:
            if mr > 0:
                growth = (1 + mr) ** term
                pay = p * (mr * growth) / (growth - 1)
            else:
                pay = p / term
        elif term > 0:
            pay = p / term
        else:
            pay = p * mr * 1.1

    total = 0.0
    balance = p
    month = 0
    while month < term and balance > 0:
        total += balance
        interest = balance * mr
        balance = max(0.0, balance - (pay - interest))
        month += 1

    if month == 0:
        return p
    return round(total / month, 2)


def loan_profit(principal: Any, rate: Any, term_months: Any = DEFAULT_TERM_MONTHS) -> float:
    """Simple-interest profit: principal x rate x term/12, rounded to cents."""
    p = to_number(principal)
    if p is None or p <= 0:
        return 0
    r = to_number(rate)
    if r is None:
        return 0
    if r > 1:
        r = r / 100
    term = to_number(term_months)
    if term is None or term <= 0:
        term = DEFAULT_TERM_MONTHS
    term = min(max(term, 1), MAX_TERM_MONTHS)
    return round(p * r * term / 12, 2)


FINANCIAL_FUNCTIONS: list[FunctionSpec] = [
    FunctionSpec(
        name="untilMaturity",
        description="Calculates months until maturity date from a given maturity date string",
        parameters=[ParameterSpec(name="maturity", kind="date")],
        implementation=until_maturity,
        entities=["loans"],
        keywords=["months until maturity", "until maturity", "time to maturity"],
    ),
    FunctionSpec(
        name="averagePrincipal",
        description="Calculates the average balance of a loan over its term using maturity date",
        parameters=[
            ParameterSpec(name="principal"),
            ParameterSpec(name="payment"),
            ParameterSpec(name="rate"),
            ParameterSpec(name="maturity", kind="date"),
            ParameterSpec(name="term_months"),
        ],
        implementation=average_principal,
        entities=["loans"],
        keywords=["average principal", "average balance", "average loan balance"],
    ),
    FunctionSpec(
        name="loanProfit",
        description="Estimates simple interest profit earned on a loan for a term in months",
        parameters=[
            ParameterSpec(name="principal"),
            ParameterSpec(name="rate"),
            ParameterSpec(name="term_months"),
        ],
        implementation=loan_profit,
        entities=["loans"],
        keywords=["loan profit", "profit", "interest income"],
    ),
]
