# accounting/types.py
"""
Value types passed into and out of the ledger engine.

Inputs:
- LineDraft / EntryDraft: a journal entry as submitted by a caller
- ValidationOutcome: result of validating a draft

Outputs:
- LedgerBalance / TrialBalance
- FinancialStatementLine / StatementSection / ProfitAndLoss / BalanceSheet

Monetary fields are Decimal. to_dict() renders them as strings so that
no consumer ever sees a binary float.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from django.utils.dateparse import parse_date

from accounting.errors import LedgerError


def _money(value: Decimal) -> str:
    return str(value)


def as_date(value) -> Optional[date]:
    """Coerce a date, datetime or ISO-8601 string to a date; None if impossible."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_date(value.strip())
        except ValueError:
            return None
    return None


# =============================================================================
# Inputs
# =============================================================================

@dataclass
class LineDraft:
    """One submitted journal line. Amounts may be Decimal, int or numeric strings."""
    account_id: Any
    debit: Any = Decimal("0")
    credit: Any = Decimal("0")
    description: str = ""
    line_no: Optional[int] = None

    @classmethod
    def from_value(cls, value) -> "LineDraft":
        if isinstance(value, LineDraft):
            return value
        return cls(
            account_id=value.get("account_id"),
            debit=value.get("debit"),
            credit=value.get("credit"),
            description=value.get("description") or "",
        )

    def to_dict(self) -> dict:
        return {
            "line_no": self.line_no,
            "account_id": self.account_id,
            "description": self.description,
            "debit": str(self.debit),
            "credit": str(self.credit),
        }


@dataclass
class EntryDraft:
    entry_number: Optional[str]
    date: Any
    description: str = ""
    lines: List[LineDraft] = field(default_factory=list)
    reference: str = ""

    def __post_init__(self):
        self.lines = [LineDraft.from_value(line) for line in (self.lines or [])]

    def to_dict(self) -> dict:
        return {
            "entry_number": self.entry_number,
            "date": self.date.isoformat() if hasattr(self.date, "isoformat") else self.date,
            "description": self.description,
            "reference": self.reference,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass
class ValidationOutcome:
    """
    Result of validate_entry().

    On success `entry` holds the normalized draft (amounts quantized,
    line numbers assigned); on failure `errors` lists every problem found.
    """
    errors: List[LedgerError] = field(default_factory=list)
    entry: Optional[EntryDraft] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def kinds(self) -> List[str]:
        return [e.kind for e in self.errors]


# =============================================================================
# Trial balance
# =============================================================================

@dataclass
class LedgerBalance:
    account_id: int
    account_code: str
    account_name: str
    account_type: str
    sub_type: str
    is_active: bool
    debit_total: Decimal
    credit_total: Decimal
    net: Decimal  # Signed by the account type's normal balance

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "account_code": self.account_code,
            "account_name": self.account_name,
            "account_type": self.account_type,
            "sub_type": self.sub_type,
            "is_active": self.is_active,
            "debit_total": _money(self.debit_total),
            "credit_total": _money(self.credit_total),
            "net": _money(self.net),
        }


@dataclass
class TrialBalance:
    as_of_date: date
    accounts: List[LedgerBalance]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    warnings: List[LedgerError] = field(default_factory=list)

    def for_account(self, code: str) -> Optional[LedgerBalance]:
        for balance in self.accounts:
            if balance.account_code == code:
                return balance
        return None

    def to_dict(self) -> dict:
        return {
            "as_of_date": self.as_of_date.isoformat(),
            "accounts": [a.to_dict() for a in self.accounts],
            "total_debits": _money(self.total_debits),
            "total_credits": _money(self.total_credits),
            "is_balanced": self.is_balanced,
            "warnings": [w.to_dict() for w in self.warnings],
        }


# =============================================================================
# Statements
# =============================================================================

@dataclass
class FinancialStatementLine:
    account_id: int
    account_code: str
    account_name: str
    type: str
    sub_type: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "account_id": self.account_id,
            "account_code": self.account_code,
            "account_name": self.account_name,
            "type": self.type,
            "sub_type": self.sub_type,
            "amount": _money(self.amount),
        }


@dataclass
class StatementSection:
    """Accounts sharing one grouping key, with their subtotal."""
    key: str
    lines: List[FinancialStatementLine]
    subtotal: Decimal

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "lines": [line.to_dict() for line in self.lines],
            "subtotal": _money(self.subtotal),
        }


@dataclass
class ProfitAndLoss:
    start_date: date
    end_date: date
    revenue: List[FinancialStatementLine]
    expenses: List[FinancialStatementLine]
    revenue_groups: List[StatementSection]
    expense_groups: List[StatementSection]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal

    def to_dict(self) -> dict:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "revenue": [line.to_dict() for line in self.revenue],
            "expenses": [line.to_dict() for line in self.expenses],
            "revenue_groups": [g.to_dict() for g in self.revenue_groups],
            "expense_groups": [g.to_dict() for g in self.expense_groups],
            "total_revenue": _money(self.total_revenue),
            "total_expenses": _money(self.total_expenses),
            "net_income": _money(self.net_income),
        }


@dataclass
class BalanceSheet:
    as_of_date: date
    assets: List[StatementSection]
    liabilities: List[StatementSection]
    equity: List[StatementSection]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_recorded_equity: Decimal  # Liabilities plus equity accounts only
    current_earnings: Decimal  # Revenue less expenses not yet closed into equity
    total_liabilities_and_equity: Decimal
    is_balanced: bool

    def to_dict(self) -> dict:
        return {
            "as_of_date": self.as_of_date.isoformat(),
            "assets": [s.to_dict() for s in self.assets],
            "liabilities": [s.to_dict() for s in self.liabilities],
            "equity": [s.to_dict() for s in self.equity],
            "total_assets": _money(self.total_assets),
            "total_liabilities": _money(self.total_liabilities),
            "total_equity": _money(self.total_equity),
            "total_liabilities_and_recorded_equity": _money(self.total_liabilities_and_recorded_equity),
            "current_earnings": _money(self.current_earnings),
            "total_liabilities_and_equity": _money(self.total_liabilities_and_equity),
            "is_balanced": self.is_balanced,
        }
