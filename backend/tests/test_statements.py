# tests/test_statements.py
"""
Tests for financial statements (accounting.statements).

Tests cover:
- Profit & Loss over a date window
- Balance Sheet with current-period earnings
- Sub-type grouping, fallback groups and zero-amount omission
- Date validation
"""

from datetime import date
from decimal import Decimal

import pytest

from accounting.errors import AggregationCancelled, ErrorKind, LedgerErrorException
from accounting.models import Account
from accounting.statements import balance_sheet, profit_and_loss


# =============================================================================
# Profit & Loss
# =============================================================================

@pytest.mark.django_db
class TestProfitAndLoss:

    def test_single_sale(self, company, scenario_entry):
        pnl = profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 31))

        assert pnl.total_revenue == Decimal("500.00")
        assert pnl.total_expenses == Decimal("0")
        assert pnl.net_income == Decimal("500.00")
        assert [(l.account_code, l.amount) for l in pnl.revenue] == [("4000", Decimal("500.00"))]
        assert pnl.expenses == []

    def test_window_excludes_outside_entries(
        self, company, scenario_entry, post_entry, cash_account, sales_account, expense_account
    ):
        post_entry(
            company,
            date(2024, 2, 28),
            [(cash_account, "80.00", "0"), (sales_account, "0", "80.00")],
        )
        post_entry(
            company,
            date(2024, 3, 20),
            [(expense_account, "150.00", "0"), (cash_account, "0", "150.00")],
        )
        post_entry(
            company,
            date(2024, 4, 1),
            [(expense_account, "999.00", "0"), (cash_account, "0", "999.00")],
        )

        pnl = profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 31))

        assert pnl.total_revenue == Decimal("500.00")
        assert pnl.total_expenses == Decimal("150.00")
        assert pnl.net_income == Decimal("350.00")

    def test_single_day_window(self, company, scenario_entry):
        pnl = profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 1))

        assert pnl.net_income == Decimal("500.00")

    def test_net_loss(self, company, scenario_entry, post_entry, cash_account, expense_account):
        post_entry(
            company,
            date(2024, 3, 10),
            [(expense_account, "700.00", "0"), (cash_account, "0", "700.00")],
        )

        pnl = profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 31))

        assert pnl.net_income == Decimal("-200.00")

    def test_start_after_end_rejected(self, company):
        with pytest.raises(LedgerErrorException) as exc_info:
            profit_and_loss(company, date(2024, 4, 1), date(2024, 3, 1))

        assert exc_info.value.kinds == [ErrorKind.INVALID_DATE_RANGE]

    def test_groups_by_sub_type(self, company, post_entry, cash_account, sales_account, expense_account):
        cogs = Account.objects.create(
            company=company, code="5000", name="Cost of Goods Sold",
            account_type="expense", sub_type="cost_of_sales",
        )
        misc = Account.objects.create(
            company=company, code="6900", name="Sundry", account_type="expense",
        )
        post_entry(
            company,
            date(2024, 3, 5),
            [
                (cash_account, "1000.00", "0"),
                (sales_account, "0", "1000.00"),
            ],
        )
        post_entry(
            company,
            date(2024, 3, 6),
            [
                (cogs, "400.00", "0"),
                (expense_account, "100.00", "0"),
                (misc, "25.50", "0"),
                (cash_account, "0", "525.50"),
            ],
        )

        pnl = profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 31))

        assert [(g.key, g.subtotal) for g in pnl.expense_groups] == [
            ("cost_of_sales", Decimal("400.00")),
            ("operating_expense", Decimal("100.00")),
            ("Other Expenses", Decimal("25.50")),
        ]
        assert [(g.key, g.subtotal) for g in pnl.revenue_groups] == [
            ("operating_revenue", Decimal("1000.00")),
        ]
        assert pnl.net_income == Decimal("474.50")

    def test_zero_amount_accounts_omitted(
        self, company, post_entry, cash_account, sales_account, expense_account
    ):
        post_entry(
            company,
            date(2024, 3, 5),
            [(expense_account, "50.00", "0"), (cash_account, "0", "50.00")],
        )
        post_entry(
            company,
            date(2024, 3, 6),
            [(cash_account, "50.00", "0"), (expense_account, "0", "50.00")],
        )

        pnl = profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 31))

        assert pnl.expenses == []
        assert pnl.expense_groups == []
        assert pnl.revenue == []

    def test_cancellation(self, company, scenario_entry):
        with pytest.raises(AggregationCancelled):
            profit_and_loss(company, date(2024, 3, 1), date(2024, 3, 31), should_cancel=lambda: True)

    def test_to_dict(self, company, scenario_entry):
        data = profit_and_loss(company, "2024-03-01", "2024-03-31").to_dict()

        assert data["start_date"] == "2024-03-01"
        assert data["net_income"] == "500.00"
        assert data["revenue"][0]["amount"] == "500.00"
        assert data["revenue_groups"][0]["subtotal"] == "500.00"


# =============================================================================
# Balance Sheet
# =============================================================================

@pytest.mark.django_db
class TestBalanceSheet:

    def test_single_sale(self, company, scenario_entry):
        bs = balance_sheet(company, date(2024, 3, 31))

        assert bs.total_assets == Decimal("500.00")
        assert bs.total_liabilities == Decimal("0")
        assert bs.total_equity == Decimal("0")
        assert bs.current_earnings == Decimal("500.00")
        assert bs.total_liabilities_and_equity == Decimal("500.00")
        assert bs.total_liabilities_and_recorded_equity == Decimal("0")
        assert bs.is_balanced

    def test_full_cycle(
        self,
        company,
        post_entry,
        cash_account,
        equipment_account,
        payable_account,
        equity_account,
        sales_account,
        expense_account,
    ):
        post_entry(
            company,
            date(2024, 1, 2),
            [(cash_account, "10000.00", "0"), (equity_account, "0", "10000.00")],
        )
        post_entry(
            company,
            date(2024, 1, 15),
            [(equipment_account, "3000.00", "0"), (payable_account, "0", "3000.00")],
        )
        post_entry(
            company,
            date(2024, 2, 1),
            [(cash_account, "2500.00", "0"), (sales_account, "0", "2500.00")],
        )
        post_entry(
            company,
            date(2024, 2, 28),
            [(expense_account, "1200.00", "0"), (cash_account, "0", "1200.00")],
        )

        bs = balance_sheet(company, date(2024, 2, 29))

        assert [(s.key, s.subtotal) for s in bs.assets] == [
            ("current_asset", Decimal("11300.00")),
            ("fixed_asset", Decimal("3000.00")),
        ]
        assert bs.total_assets == Decimal("14300.00")
        assert bs.total_liabilities == Decimal("3000.00")
        assert bs.total_equity == Decimal("10000.00")
        assert bs.current_earnings == Decimal("1300.00")
        assert bs.total_liabilities_and_equity == Decimal("14300.00")
        assert bs.total_liabilities_and_recorded_equity == Decimal("13000.00")
        assert bs.is_balanced

    def test_cumulative_to_date(self, company, scenario_entry, post_entry, cash_account, sales_account):
        post_entry(
            company,
            date(2024, 5, 1),
            [(cash_account, "250.00", "0"), (sales_account, "0", "250.00")],
        )

        march = balance_sheet(company, date(2024, 3, 31))
        may = balance_sheet(company, date(2024, 5, 31))

        assert march.total_assets == Decimal("500.00")
        assert may.total_assets == Decimal("750.00")

    def test_fallback_group(self, company, post_entry, cash_account):
        loan = Account.objects.create(
            company=company, code="2500", name="Director Loan", account_type="liability",
        )
        post_entry(
            company,
            date(2024, 3, 1),
            [(cash_account, "900.00", "0"), (loan, "0", "900.00")],
        )

        bs = balance_sheet(company, date(2024, 3, 31))

        assert [(s.key, s.subtotal) for s in bs.liabilities] == [("Other Liabilities", Decimal("900.00"))]
        assert bs.is_balanced

    def test_empty_ledger(self, company, cash_account):
        bs = balance_sheet(company, date(2024, 3, 31))

        assert bs.assets == []
        assert bs.total_assets == Decimal("0")
        assert bs.is_balanced

    def test_invalid_date(self, company):
        with pytest.raises(LedgerErrorException) as exc_info:
            balance_sheet(company, "not-a-date")

        assert exc_info.value.kinds == [ErrorKind.INVALID_FIELD]

    def test_to_dict(self, company, scenario_entry):
        data = balance_sheet(company, date(2024, 3, 31)).to_dict()

        assert data["as_of_date"] == "2024-03-31"
        assert data["total_assets"] == "500.00"
        assert data["current_earnings"] == "500.00"
        assert data["total_liabilities_and_recorded_equity"] == "0.00"
        assert data["assets"][0]["lines"][0]["account_code"] == "1000"
        assert data["is_balanced"] is True
