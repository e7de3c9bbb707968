# tests/conftest.py
"""
Pytest fixtures for the ledger tests.

Accounts are created straight through the ORM so each test starts from a
known chart; journal entries go through accounting.commands so they are
validated exactly as in production.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from accounts.models import Company, CompanyMembership
from accounts.permissions import CompanyRole
from accounting.commands import create_journal_entry, post_journal_entry
from accounting.models import Account


User = get_user_model()


# =============================================================================
# Company & User Fixtures
# =============================================================================

@pytest.fixture
def company(db):
    """Create a test company."""
    return Company.objects.create(
        name="Test Company",
        slug="test-company",
        currency="USD",
        is_active=True,
    )


@pytest.fixture
def second_company(db):
    """Create a second test company for multi-tenant tests."""
    return Company.objects.create(
        name="Second Company",
        slug="second-company",
        currency="EUR",
        is_active=True,
    )


@pytest.fixture
def user(db):
    return User.objects.create_user(
        email="accountant@test.com",
        password="testpass123",
        name="Test Accountant",
    )


@pytest.fixture
def accountant_membership(db, company, user):
    return CompanyMembership.objects.create(
        user=user,
        company=company,
        role=CompanyRole.ACCOUNTANT,
    )


# =============================================================================
# Account Fixtures
# =============================================================================

def _account(company, code, name, account_type, sub_type=""):
    return Account.objects.create(
        company=company,
        code=code,
        name=name,
        account_type=account_type,
        sub_type=sub_type,
    )


@pytest.fixture
def cash_account(db, company):
    return _account(company, "1000", "Cash", Account.AccountType.ASSET, "current_asset")


@pytest.fixture
def receivable_account(db, company):
    return _account(company, "1100", "Accounts Receivable", Account.AccountType.ASSET, "current_asset")


@pytest.fixture
def equipment_account(db, company):
    return _account(company, "1500", "Equipment", Account.AccountType.ASSET, "fixed_asset")


@pytest.fixture
def payable_account(db, company):
    return _account(company, "2000", "Accounts Payable", Account.AccountType.LIABILITY, "current_liability")


@pytest.fixture
def equity_account(db, company):
    return _account(company, "3000", "Owner's Equity", Account.AccountType.EQUITY, "capital")


@pytest.fixture
def sales_account(db, company):
    return _account(company, "4000", "Sales", Account.AccountType.REVENUE, "operating_revenue")


@pytest.fixture
def expense_account(db, company):
    return _account(company, "6100", "Rent Expense", Account.AccountType.EXPENSE, "operating_expense")


@pytest.fixture
def other_cash_account(db, second_company):
    """Cash account belonging to the second company."""
    return _account(second_company, "1000", "Cash", Account.AccountType.ASSET, "current_asset")


# =============================================================================
# Journal Entry Fixtures
# =============================================================================

def _lines(*pairs):
    """Build line dicts from (account, debit, credit) tuples."""
    return [
        {"account_id": account.pk, "debit": Decimal(debit), "credit": Decimal(credit)}
        for account, debit, credit in pairs
    ]


@pytest.fixture
def post_entry():
    """
    Factory: create and post a balanced entry, returning the JournalEntry.

    Usage:
        post_entry(company, date(2024, 3, 1), [(cash, "500.00", "0"), (sales, "0", "500.00")])
    """
    def _post(company, entry_date, pairs, entry_number=None, description="Test entry"):
        created = create_journal_entry(
            company,
            date=entry_date,
            lines=_lines(*pairs),
            description=description,
            entry_number=entry_number,
        )
        assert created.success, created.errors
        posted = post_journal_entry(company, created.data.pk)
        assert posted.success, posted.errors
        return posted.data

    return _post


@pytest.fixture
def scenario_entry(post_entry, company, cash_account, sales_account):
    """JE001 on 2024-03-01: debit Cash 500.00, credit Sales 500.00."""
    return post_entry(
        company,
        date(2024, 3, 1),
        [(cash_account, "500.00", "0"), (sales_account, "0", "500.00")],
        entry_number="JE001",
    )
