# accounting/balances.py
"""
Ledger aggregation.

Folds the journal lines of POSTED entries into per-account debit and
credit totals. Every call reads the current database state; nothing is
cached between calls.

Lines are streamed from a server-side cursor in chunks, so memory stays
flat regardless of ledger size. A caller may pass should_cancel(); it is
polled between chunks and, once it returns True, the aggregation stops
with AggregationCancelled and nothing partial is returned.

An unbalanced trial balance cannot come from user input (every entry is
balanced before it is stored), so it is reported as a
LedgerIntegrityWarning on the "accounting.integrity" logger instead of
failing the read.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Callable, Dict, Optional, Tuple

from django.conf import settings

from accounting.errors import AggregationCancelled, ErrorKind, LedgerError, LedgerErrorException
from accounting.models import Account, JournalEntry, JournalLine
from accounting.types import LedgerBalance, TrialBalance, as_date
from ops import metrics

logger = logging.getLogger(__name__)
integrity_logger = logging.getLogger("accounting.integrity")

ZERO = Decimal("0.00")

Activity = Dict[int, Tuple[Decimal, Decimal]]


def require_date(value, field: str):
    """Coerce value to a date or raise LedgerErrorException(InvalidField)."""
    parsed = as_date(value)
    if parsed is None:
        raise LedgerErrorException([LedgerError(
            ErrorKind.INVALID_FIELD,
            f"Invalid {field}: {value!r}.",
            field=field,
        )])
    return parsed


def _chunk_size(chunk_size: Optional[int]) -> int:
    return chunk_size or getattr(settings, "LEDGER_AGGREGATION_CHUNK_SIZE", 2000)


def _check_cancel(should_cancel: Optional[Callable[[], bool]]) -> None:
    if should_cancel is not None and should_cancel():
        raise AggregationCancelled("Aggregation cancelled by caller.")


def account_activity(
    company,
    start_date=None,
    end_date=None,
    *,
    chunk_size: Optional[int] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> Activity:
    """
    Sum posted debits and credits per account within [start_date, end_date].

    Either bound may be None (open-ended). Draft entries never contribute.

    Returns:
        {account_id: (debit_total, credit_total)} for accounts with activity

    Raises:
        AggregationCancelled: should_cancel() returned True
    """
    size = _chunk_size(chunk_size)

    lines = JournalLine.objects.filter(
        company=company,
        entry__company=company,
        entry__status=JournalEntry.Status.POSTED,
    )
    if start_date is not None:
        lines = lines.filter(entry__date__gte=start_date)
    if end_date is not None:
        lines = lines.filter(entry__date__lte=end_date)

    debits = defaultdict(lambda: ZERO)
    credits = defaultdict(lambda: ZERO)

    _check_cancel(should_cancel)
    rows = lines.order_by().values_list("account_id", "debit", "credit")
    for count, (account_id, debit, credit) in enumerate(rows.iterator(chunk_size=size), start=1):
        debits[account_id] += debit
        credits[account_id] += credit
        if count % size == 0:
            _check_cancel(should_cancel)
    _check_cancel(should_cancel)

    return {
        account_id: (debits[account_id], credits[account_id])
        for account_id in set(debits) | set(credits)
    }


def trial_balance(
    company,
    as_of_date,
    *,
    chunk_size: Optional[int] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> TrialBalance:
    """
    Trial balance for a company as of a date.

    Every account of the company is listed (active or not); accounts
    without activity carry zero totals.

    Args:
        company: The company
        as_of_date: Include posted entries dated on or before this date
        chunk_size: Rows per fetch (defaults to LEDGER_AGGREGATION_CHUNK_SIZE)
        should_cancel: Optional callable polled between chunks

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

    balances = []
    total_debits = ZERO
    total_credits = ZERO
    for account in Account.objects.filter(company=company).order_by("code"):
        debit, credit = activity.pop(account.pk, (ZERO, ZERO))
        balances.append(LedgerBalance(
            account_id=account.pk,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type,
            sub_type=account.sub_type,
            is_active=account.is_active,
            debit_total=debit,
            credit_total=credit,
            net=account.signed_balance(debit, credit),
        ))
        total_debits += debit
        total_credits += credit

    warnings = []
    is_balanced = total_debits == total_credits
    if not is_balanced:
        warnings.append(_integrity_warning(
            company,
            as_of,
            f"Trial balance for {company} as of {as_of.isoformat()} is out of balance: "
            f"debits {total_debits}, credits {total_credits}.",
            {"total_debits": total_debits, "total_credits": total_credits},
        ))
    if activity:
        # Lines in this company pointing at another company's accounts
        warnings.append(_integrity_warning(
            company,
            as_of,
            f"Posted lines of {company} reference {len(activity)} account(s) outside the company.",
            {"foreign_account_ids": sorted(activity)},
        ))

    return TrialBalance(
        as_of_date=as_of,
        accounts=balances,
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=is_balanced,
        warnings=warnings,
    )


def _integrity_warning(company, as_of, message: str, details: dict) -> LedgerError:
    warning = LedgerError(ErrorKind.LEDGER_INTEGRITY_WARNING, message, details=details)
    integrity_logger.error(
        message,
        extra={
            "company_id": company.pk,
            "as_of_date": as_of.isoformat(),
            "error_kind": warning.kind,
            **{k: str(v) for k, v in details.items()},
        },
    )
    metrics.record_integrity_warning()
    return warning
