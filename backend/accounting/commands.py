# accounting/commands.py
"""
Command layer for ledger operations.

Commands are the single point where ledger state changes.
Callers (API layer, management commands) resolve the company first;
commands enforce rules and write.

Pattern:
1. Apply business policies (accounting.policies)
2. Perform the operation inside one transaction
3. Log and count the outcome
4. Return CommandResult

A rejected command writes nothing. ALL state changes MUST go through
commands so the validation above always runs.
"""

import logging
from typing import Iterable, Optional, Union

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.errors import ErrorKind, LedgerError
from accounting.models import Account, CompanySequence, JournalEntry, JournalLine
from accounting.policies import (
    can_change_account_code,
    can_change_account_type,
    can_modify_entry,
    can_post_entry,
    entry_number_taken,
    validate_account,
    validate_entry,
    validate_lines,
)
from accounting.types import EntryDraft, LineDraft
from ops import metrics

logger = logging.getLogger(__name__)

ENTRY_NUMBER_SEQUENCE = "journal_entry_number"
UPDATABLE_ACCOUNT_FIELDS = {"code", "name", "account_type", "sub_type", "parent_id", "description"}


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_account(company, code="1000", ...)
        if result.success:
            account = result.data
        else:
            for error in result.errors:
                print(error.kind, error.message)
    """

    def __init__(self, success: bool, data=None, errors: Optional[list] = None):
        self.success = success
        self.data = data
        self.errors = errors or []

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, errors: Union[LedgerError, Iterable[LedgerError]]):
        if isinstance(errors, LedgerError):
            errors = [errors]
        return cls(success=False, errors=list(errors))

    @property
    def error(self) -> Optional[str]:
        """First error message, or None."""
        return self.errors[0].message if self.errors else None

    @property
    def error_kinds(self) -> list[str]:
        return [e.kind for e in self.errors]

    def __repr__(self):
        if self.success:
            return f"<CommandResult ok data={self.data!r}>"
        return f"<CommandResult failed kinds={self.error_kinds}>"


def _reject(company, action: str, errors: list[LedgerError]) -> CommandResult:
    kinds = [e.kind for e in errors]
    logger.info(
        "Rejected %s",
        action,
        extra={"company_id": company.pk, "action": action, "error_kinds": kinds},
    )
    if action in ("journal_entry.create", "journal_entry.replace", "journal_entry.post"):
        metrics.record_rejection(kinds)
    return CommandResult.fail(errors)


def _next_company_sequence(company, name: str) -> int:
    """
    Allocate the next sequence value for a company/name pair.
    Uses select_for_update to avoid concurrent duplicates.
    """
    try:
        seq = CompanySequence.objects.select_for_update().get(company=company, name=name)
    except CompanySequence.DoesNotExist:
        try:
            with transaction.atomic():
                seq = CompanySequence.objects.create(company=company, name=name, next_value=1)
        except IntegrityError:
            seq = CompanySequence.objects.select_for_update().get(company=company, name=name)

    value = seq.next_value
    seq.next_value = value + 1
    seq.save(update_fields=["next_value", "updated_at"])
    return value


def _next_entry_number(company) -> str:
    """Next unused "<prefix><n:03d>" number; skips numbers that were assigned by hand."""
    while True:
        value = _next_company_sequence(company, ENTRY_NUMBER_SEQUENCE)
        number = f"{company.journal_prefix}{value:03d}"
        if not entry_number_taken(company, number):
            return number


# =============================================================================
# Account Commands
# =============================================================================

@transaction.atomic
def create_account(
    company,
    code: str,
    name: str,
    account_type: str,
    sub_type: Optional[str] = None,
    parent_id: Optional[int] = None,
    description: str = "",
) -> CommandResult:
    """
    Create a new account in the chart of accounts.

    Args:
        company: The owning company
        code: Account code (unique per company)
        name: Account name
        account_type: One of Account.AccountType values
        sub_type: Optional sub-type recognized for account_type
        parent_id: Optional parent account ID in the same company
        description: Free text

    Returns:
        CommandResult with the created Account or the list of errors
    """
    errors = validate_account(
        company,
        code=code,
        name=name,
        account_type=account_type,
        sub_type=sub_type,
        parent_id=parent_id,
    )
    if errors:
        return _reject(company, "account.create", errors)

    try:
        with transaction.atomic():
            account = Account.objects.create(
                company=company,
                code=code.strip(),
                name=name.strip(),
                account_type=account_type,
                sub_type=sub_type or "",
                parent_id=int(parent_id) if parent_id is not None else None,
                description=description or "",
            )
    except IntegrityError:
        return _reject(company, "account.create", [LedgerError(
            ErrorKind.DUPLICATE_CODE,
            f"Account code '{code}' already exists.",
            field="code",
        )])

    logger.info(
        "Account created",
        extra={"company_id": company.pk, "account_id": account.pk, "code": account.code},
    )
    return CommandResult.ok(account)


@transaction.atomic
def update_account(company, account_id: int, **changes) -> CommandResult:
    """
    Update fields of an existing account.

    Accepted fields: code, name, account_type, sub_type, parent_id, description.
    Code and type are frozen once any journal line references the account.
    Passing parent_id=None detaches the account from its parent.
    """
    unknown = set(changes) - UPDATABLE_ACCOUNT_FIELDS
    if unknown:
        return CommandResult.fail([
            LedgerError(ErrorKind.INVALID_FIELD, f"Field '{name}' cannot be updated.", field=name)
            for name in sorted(unknown)
        ])

    try:
        account = Account.objects.select_for_update().get(pk=account_id, company=company)
    except (Account.DoesNotExist, TypeError, ValueError):
        return CommandResult.fail(LedgerError(
            ErrorKind.UNKNOWN_ACCOUNT,
            f"Account {account_id} not found.",
            field="account_id",
        ))

    errors = []
    if "code" in changes and changes["code"] != account.code:
        allowed, reason = can_change_account_code(account)
        if not allowed:
            errors.append(LedgerError(ErrorKind.ACCOUNT_IN_USE, reason, field="code"))
    if "account_type" in changes and changes["account_type"] != account.account_type:
        allowed, reason = can_change_account_type(account)
        if not allowed:
            errors.append(LedgerError(ErrorKind.ACCOUNT_IN_USE, reason, field="account_type"))

    merged = {
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type,
        "sub_type": account.sub_type,
        "parent_id": account.parent_id,
        "description": account.description,
    }
    merged.update(changes)

    errors.extend(validate_account(
        company,
        code=merged["code"],
        name=merged["name"],
        account_type=merged["account_type"],
        sub_type=merged["sub_type"],
        parent_id=merged["parent_id"] if "parent_id" in changes else None,
        account=account,
    ))
    if errors:
        return _reject(company, "account.update", errors)

    account.code = merged["code"].strip()
    account.name = merged["name"].strip()
    account.account_type = merged["account_type"]
    account.sub_type = merged["sub_type"] or ""
    account.parent_id = int(merged["parent_id"]) if merged["parent_id"] is not None else None
    account.description = merged["description"] or ""
    account.save()

    logger.info(
        "Account updated",
        extra={"company_id": company.pk, "account_id": account.pk, "fields": sorted(changes)},
    )
    return CommandResult.ok(account)


def _set_account_active(company, account_id, is_active: bool) -> CommandResult:
    try:
        account = Account.objects.select_for_update().get(pk=account_id, company=company)
    except (Account.DoesNotExist, TypeError, ValueError):
        return CommandResult.fail(LedgerError(
            ErrorKind.UNKNOWN_ACCOUNT,
            f"Account {account_id} not found.",
            field="account_id",
        ))

    if account.is_active != is_active:
        account.is_active = is_active
        account.save(update_fields=["is_active", "updated_at"])
        logger.info(
            "Account %s",
            "reactivated" if is_active else "deactivated",
            extra={"company_id": company.pk, "account_id": account.pk},
        )
    return CommandResult.ok(account)


@transaction.atomic
def deactivate_account(company, account_id: int) -> CommandResult:
    """Soft-disable an account. The row and its history are kept."""
    return _set_account_active(company, account_id, False)


@transaction.atomic
def reactivate_account(company, account_id: int) -> CommandResult:
    return _set_account_active(company, account_id, True)


# =============================================================================
# Journal Entry Commands
# =============================================================================

def _write_lines(company, entry, lines: list[LineDraft]) -> None:
    JournalLine.objects.bulk_create([
        JournalLine(
            entry=entry,
            company=company,
            line_no=line.line_no,
            account_id=line.account_id,
            description=line.description,
            debit=line.debit,
            credit=line.credit,
        )
        for line in lines
    ])


def _duplicate_number(entry_number: str) -> LedgerError:
    return LedgerError(
        ErrorKind.DUPLICATE_ENTRY_NUMBER,
        f"Entry number '{entry_number}' already exists.",
        field="entry_number",
    )


def _unknown_entry(entry_id) -> LedgerError:
    return LedgerError(ErrorKind.UNKNOWN_ENTRY, f"Journal entry {entry_id} not found.", field="entry_id")


@transaction.atomic
def create_journal_entry(
    company,
    date,
    lines: Iterable,
    description: str = "",
    entry_number: Optional[str] = None,
    reference: str = "",
    today=None,
) -> CommandResult:
    """
    Validate and store a new draft journal entry with all of its lines.

    Args:
        company: The owning company
        date: Entry date
        lines: LineDraft objects or dicts with account_id, debit, credit, description
        description: Entry description
        entry_number: Explicit number; allocated from the company's prefix when omitted
        reference: Source document reference
        today: Validation date for the future-date policy

    Returns:
        CommandResult with the created JournalEntry or every validation error
    """
    if entry_number is None:
        entry_number = _next_entry_number(company)

    draft = EntryDraft(
        entry_number=entry_number,
        date=date,
        description=description,
        lines=list(lines or []),
        reference=reference,
    )
    outcome = validate_entry(company, draft, today=today)
    if not outcome.ok:
        # Undo the sequence increment of an allocated number
        transaction.set_rollback(True)
        return _reject(company, "journal_entry.create", outcome.errors)

    normalized = outcome.entry
    try:
        # A concurrent writer with the same number fails here on uniq_entry_number_per_company
        with transaction.atomic():
            entry = JournalEntry.objects.create(
                company=company,
                entry_number=normalized.entry_number,
                date=normalized.date,
                description=normalized.description,
                reference=normalized.reference,
                status=JournalEntry.Status.DRAFT,
            )
            _write_lines(company, entry, normalized.lines)
    except IntegrityError:
        if not entry_number_taken(company, normalized.entry_number):
            raise
        transaction.set_rollback(True)
        return _reject(company, "journal_entry.create", [_duplicate_number(normalized.entry_number)])

    metrics.record_entry_created()
    logger.info(
        "Journal entry created",
        extra={
            "company_id": company.pk,
            "entry_id": entry.pk,
            "entry_number": entry.entry_number,
            "line_count": len(normalized.lines),
        },
    )
    return CommandResult.ok(entry)


@transaction.atomic
def replace_journal_entry(
    company,
    entry_id: int,
    date,
    lines: Iterable,
    description: str = "",
    entry_number: Optional[str] = None,
    reference: str = "",
    today=None,
) -> CommandResult:
    """
    Replace a draft entry's header and lines as one unit.

    The entry keeps its number unless a new one is given. Posted entries
    cannot be replaced.
    """
    try:
        entry = JournalEntry.objects.select_for_update().get(pk=entry_id, company=company)
    except (JournalEntry.DoesNotExist, TypeError, ValueError):
        return CommandResult.fail(_unknown_entry(entry_id))

    allowed, reason = can_modify_entry(entry)
    if not allowed:
        return _reject(company, "journal_entry.replace", [
            LedgerError(ErrorKind.INVALID_STATUS, reason, field="status"),
        ])

    draft = EntryDraft(
        entry_number=entry_number if entry_number is not None else entry.entry_number,
        date=date,
        description=description,
        lines=list(lines or []),
        reference=reference,
    )
    outcome = validate_entry(company, draft, today=today, exclude_entry_id=entry.pk)
    if not outcome.ok:
        return _reject(company, "journal_entry.replace", outcome.errors)

    normalized = outcome.entry
    try:
        with transaction.atomic():
            entry.entry_number = normalized.entry_number
            entry.date = normalized.date
            entry.description = normalized.description
            entry.reference = normalized.reference
            entry.save()
            entry.lines.all().delete()
            _write_lines(company, entry, normalized.lines)
    except IntegrityError:
        if not entry_number_taken(company, normalized.entry_number, exclude_entry_id=entry.pk):
            raise
        return _reject(company, "journal_entry.replace", [_duplicate_number(normalized.entry_number)])

    entry.refresh_from_db()
    logger.info(
        "Journal entry replaced",
        extra={"company_id": company.pk, "entry_id": entry.pk, "entry_number": entry.entry_number},
    )
    return CommandResult.ok(entry)


@transaction.atomic
def post_journal_entry(company, entry_id: int) -> CommandResult:
    """
    Post a draft journal entry, making it affect account balances.

    The lines are checked again (shape, accounts, balance) because accounts
    may have been deactivated since the draft was saved. Posting is one-way.
    """
    try:
        entry = JournalEntry.objects.select_for_update().get(pk=entry_id, company=company)
    except (JournalEntry.DoesNotExist, TypeError, ValueError):
        return CommandResult.fail(_unknown_entry(entry_id))

    allowed, reason = can_post_entry(entry)
    if not allowed:
        return _reject(company, "journal_entry.post", [
            LedgerError(ErrorKind.INVALID_STATUS, reason, field="status"),
        ])

    stored = [
        LineDraft(
            account_id=line.account_id,
            debit=line.debit,
            credit=line.credit,
            description=line.description,
        )
        for line in entry.lines.order_by("line_no")
    ]
    errors, _ = validate_lines(company, stored)
    if errors:
        return _reject(company, "journal_entry.post", errors)

    entry.status = JournalEntry.Status.POSTED
    entry.posted_at = timezone.now()
    entry.save(update_fields=["status", "posted_at", "updated_at"])

    logger.info(
        "Journal entry posted",
        extra={"company_id": company.pk, "entry_id": entry.pk, "entry_number": entry.entry_number},
    )
    return CommandResult.ok(entry)


@transaction.atomic
def delete_journal_entry(company, entry_id: int) -> CommandResult:
    """
    Delete a draft journal entry and its lines.

    Posted entries are never deleted; they are corrected by a reversing entry.
    """
    try:
        entry = JournalEntry.objects.select_for_update().get(pk=entry_id, company=company)
    except (JournalEntry.DoesNotExist, TypeError, ValueError):
        return CommandResult.fail(_unknown_entry(entry_id))

    allowed, reason = can_modify_entry(entry)
    if not allowed:
        return _reject(company, "journal_entry.delete", [
            LedgerError(ErrorKind.INVALID_STATUS, reason, field="status"),
        ])

    entry_number = entry.entry_number
    entry.delete()

    logger.info(
        "Journal entry deleted",
        extra={"company_id": company.pk, "entry_id": entry_id, "entry_number": entry_number},
    )
    return CommandResult.ok({"deleted": True, "entry_number": entry_number})
