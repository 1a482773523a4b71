"""
Unit tests for the financial function library.

All time-dependent assertions pass an explicit `now`.
"""
from datetime import datetime

import pytest

from bankquery.functions.financial import average_principal, loan_profit, until_maturity

NOW = datetime(2025, 1, 15)


@pytest.mark.unit
class TestUntilMaturity:

    def test_calendar_month_difference(self):
        assert until_maturity("2027-06-30", now=NOW) == 29

    def test_month_field_subtraction_only(self):
        assert until_maturity("2024-02-01", now=datetime(2024, 1, 31)) == 1

    def test_past_date_is_zero(self):
        assert until_maturity("2024-01-01", now=NOW) == 0

    @pytest.mark.parametrize("value", [None, "", "garbage"])
    def test_unparseable_is_zero(self, value):
        assert until_maturity(value, now=NOW) == 0


@pytest.mark.unit
class TestAveragePrincipal:

    @pytest.mark.parametrize("principal", [0, -5, "n/a", None])
    def test_invalid_principal(self, principal):
        assert average_principal(principal) == 0

    def test_no_term_returns_principal(self):
        assert average_principal(1200) == 1200

    def test_straight_line_without_rate(self):
        # Balances 1200, 1100, ... 100 averaged over 12 months
        assert average_principal(1200, rate=0, term_months=12) == 650.0

    def test_given_payment_stops_at_zero(self):
        assert average_principal(1000, payment=500, rate=0, term_months=12) == 750.0

    def test_term_from_maturity(self):
        assert average_principal(1200, rate=0, maturity="2026-01-15", now=NOW) == 650.0

    def test_amortised_with_rate(self):
        value = average_principal(10000, rate=6, term_months=12)
        assert 5000 < value < 10000

    def test_decimal_and_percent_rates_agree(self):
        assert average_principal(10000, rate=0.06, term_months=12) == average_principal(10000, rate=6, term_months=12)

    def test_cell_text_inputs(self):
        assert average_principal("$1,200.00", None, "0", None, "12") == 650.0


@pytest.mark.unit
class TestLoanProfit:

    def test_percent_rate_default_term(self):
        assert loan_profit(10000, 5) == 500.0

    def test_decimal_rate_and_term(self):
        assert loan_profit(10000, 0.05, 24) == 1000.0

    def test_term_clamped(self):
        assert loan_profit(10000, 5, 1000) == 15000.0

    def test_invalid_term_defaults(self):
        assert loan_profit(10000, 5, "abc") == 500.0

    @pytest.mark.parametrize("principal,rate", [(0, 5), (-1, 5), ("x", 5), (10000, None)])
    def test_invalid_inputs(self, principal, rate):
        assert loan_profit(principal, rate) == 0
