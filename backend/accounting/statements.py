# accounting/statements.py
"""
Financial statements built on posted ledger activity.

- profit_and_loss(): revenue and expenses for a closed date window
- balance_sheet(): assets, liabilities and equity cumulative to a date

Amounts are signed by the account type's normal balance, so a revenue
account with more credits than debits shows a positive amount. Accounts
are grouped by sub-type; an account without one lands in the
"Other <type>" group. Accounts whose amount is zero are left out of
statements (they still appear in the trial balance).

Net income is never closed into retained earnings here. The balance
sheet therefore reports revenue less expenses to date as
current_earnings and includes it on the liabilities-and-equity side;
total_liabilities_and_recorded_equity leaves it out.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from accounting.balances import ZERO, account_activity, require_date
from accounting.errors import ErrorKind, LedgerError, LedgerErrorException
from accounting.models import Account
from accounting.types import BalanceSheet, FinancialStatementLine, ProfitAndLoss, StatementSection

logger = logging.getLogger(__name__)

AccountType = Account.AccountType


def _statement_lines(
    company,
    account_types: Iterable[str],
    activity: Dict[int, Tuple[Decimal, Decimal]],
) -> List[Tuple[Account, FinancialStatementLine]]:
    accounts = Account.objects.filter(
        company=company,
        account_type__in=list(account_types),
    ).order_by("code")

    result = []
    for account in accounts:
        debit, credit = activity.get(account.pk, (ZERO, ZERO))
        amount = account.signed_balance(debit, credit)
        if amount == 0:
            continue
        result.append((account, FinancialStatementLine(
            account_id=account.pk,
            account_code=account.code,
            account_name=account.name,
            type=account.account_type,
            sub_type=account.sub_type,
            amount=amount,
        )))
    return result


def _group_order(account_type: str, key: str) -> Tuple[int, str]:
    known = Account.SUB_TYPES.get(account_type, ())
    if key in known:
        return known.index(key), ""
    # Fallback group last; unrecognized sub-types between, alphabetically
    if key == Account.FALLBACK_GROUPS.get(account_type):
        return len(known) + 1, key
    return len(known), key


def group_lines(account_type: str, rows: List[Tuple[Account, FinancialStatementLine]]) -> List[StatementSection]:
    """Group statement lines of one account type by sub-type, with subtotals."""
    groups: Dict[str, List[FinancialStatementLine]] = {}
    for account, line in rows:
        groups.setdefault(account.group_key, []).append(line)

    return [
        StatementSection(
            key=key,
            lines=groups[key],
            subtotal=sum((line.amount for line in groups[key]), ZERO),
        )
        for key in sorted(groups, key=lambda k: _group_order(account_type, k))
    ]


def _total(rows) -> Decimal:
    return sum((line.amount for _, line in rows), ZERO)


def profit_and_loss(
    company,
    start_date,
    end_date,
    *,
    chunk_size: Optional[int] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> ProfitAndLoss:
    """
    Profit & Loss for entries dated within [start_date, end_date].

    Raises:
        LedgerErrorException: InvalidDateRange when start_date > end_date
        AggregationCancelled: should_cancel() returned True
    """
    start = require_date(start_date, "start_date")
    end = require_date(end_date, "end_date")
    if start > end:
        raise LedgerErrorException([LedgerError(
            ErrorKind.INVALID_DATE_RANGE,
            f"Start date {start.isoformat()} is after end date {end.isoformat()}.",
            field="start_date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )])

    activity = account_activity(
        company,
        start_date=start,
        end_date=end,
        chunk_size=chunk_size,
        should_cancel=should_cancel,
    )

    revenue = _statement_lines(company, [AccountType.REVENUE], activity)
    expenses = _statement_lines(company, [AccountType.EXPENSE], activity)
    total_revenue = _total(revenue)
    total_expenses = _total(expenses)

    return ProfitAndLoss(
        start_date=start,
        end_date=end,
        revenue=[line for _, line in revenue],
        expenses=[line for _, line in expenses],
        revenue_groups=group_lines(AccountType.REVENUE, revenue),
        expense_groups=group_lines(AccountType.EXPENSE, expenses),
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        net_income=total_revenue - total_expenses,
    )


def balance_sheet(
    company,
    as_of_date,
    *,
    chunk_size: Optional[int] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> BalanceSheet:
    """
    Balance Sheet cumulative from inception to as_of_date.

    Raises:
        AggregationCancelled: should_cancel() returned True
    """
    as_of = require_date(as_of_date, "as_of_date")

    activity = account_activity(
        company,
        end_date=as_of,
        chunk_size=chunk_size,
        should_cancel=should_cancel,
    )

    assets = _statement_lines(company, [AccountType.ASSET], activity)
    liabilities = _statement_lines(company, [AccountType.LIABILITY], activity)
    equity = _statement_lines(company, [AccountType.EQUITY], activity)
    earnings = _statement_lines(company, [AccountType.REVENUE, AccountType.EXPENSE], activity)

    total_assets = _total(assets)
    total_liabilities = _total(liabilities)
    total_equity = _total(equity)
    current_earnings = sum(
        (line.amount if line.type == AccountType.REVENUE else -line.amount for _, line in earnings),
        ZERO,
    )
    total_liabilities_and_equity = total_liabilities + total_equity + current_earnings
    is_balanced = total_assets == total_liabilities_and_equity

    if not is_balanced:
        logger.warning(
            "Balance sheet out of balance",
            extra={
                "company_id": company.pk,
                "as_of_date": as_of.isoformat(),
                "total_assets": str(total_assets),
                "total_liabilities_and_equity": str(total_liabilities_and_equity),
            },
        )

    return BalanceSheet(
        as_of_date=as_of,
        assets=group_lines(AccountType.ASSET, assets),
        liabilities=group_lines(AccountType.LIABILITY, liabilities),
        equity=group_lines(AccountType.EQUITY, equity),
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        total_liabilities_and_recorded_equity=total_liabilities + total_equity,
        current_earnings=current_earnings,
        total_liabilities_and_equity=total_liabilities_and_equity,
        is_balanced=is_balanced,
    )
