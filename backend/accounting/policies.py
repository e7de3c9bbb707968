# accounting/policies.py
"""
Business policy functions for the ledger.

Policies answer: "Is this request valid given the current state?"
They do NOT perform the action; that's the command's job.

Two families live here:

- Account registry rules (code uniqueness, type/sub-type taxonomy,
  parent ownership and acyclicity, immutability of referenced accounts).
- Journal entry rules (entry number uniqueness, line shape, account
  resolution, the double-entry balance, the future-date policy).

Design Principles:
1. Policies never write to the database
2. Validators collect EVERY problem and return a list of LedgerError,
   so a caller can show the full picture in one response
3. Single-rule checks (can_*) return (bool, str) tuples
4. Money is Decimal throughout; binary floats are rejected, not converted

Usage:
    from accounting.policies import validate_entry

    outcome = validate_entry(company, draft)
    if not outcome.ok:
        return CommandResult.fail(outcome.errors)
    persist(outcome.entry)
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from accounting.errors import ErrorKind, LedgerError
from accounting.models import Account, JournalEntry, JournalLine
from accounting.types import EntryDraft, LineDraft, ValidationOutcome, as_date

# Ledger columns are numeric(15, 2)
MAX_DECIMAL_PLACES = 2
MAX_AMOUNT = Decimal(10) ** 13


def length_error(model, field_name: str, value, *, line_no=None) -> Optional[LedgerError]:
    """InvalidField when value does not fit the model column, else None."""
    max_length = model._meta.get_field(field_name).max_length
    if not isinstance(value, str) or max_length is None or len(value) <= max_length:
        return None
    label = field_name.replace("_", " ").capitalize()
    prefix = f"Line {line_no}: " if line_no is not None else ""
    return LedgerError(
        ErrorKind.INVALID_FIELD,
        f"{prefix}{label} is longer than {max_length} characters.",
        field=field_name,
        line_no=line_no,
        details={"max_length": max_length, "length": len(value)},
    )


# =============================================================================
# Account Policies
# =============================================================================

def is_valid_account_type(account_type) -> bool:
    return account_type in Account.AccountType.values


def allowed_sub_types(account_type) -> tuple:
    return Account.SUB_TYPES.get(account_type, ())


def code_taken(company, code: str, exclude_account_id: Optional[int] = None) -> bool:
    qs = Account.objects.filter(company=company, code=code)
    if exclude_account_id is not None:
        qs = qs.exclude(pk=exclude_account_id)
    return qs.exists()


def is_account_referenced(account) -> bool:
    return account.journal_lines.exists()


def can_change_account_code(account) -> tuple[bool, str]:
    """
    Check if account code can be changed.

    Rules:
    - Cannot change code once any journal line references the account
    """
    if is_account_referenced(account):
        return False, f"Account {account.code} has journal lines; its code cannot change."
    return True, ""


def can_change_account_type(account) -> tuple[bool, str]:
    """
    Check if account type can be changed.

    Rules:
    - Cannot change type once any journal line references the account
    """
    if is_account_referenced(account):
        return False, f"Account {account.code} has journal lines; its type cannot change."
    return True, ""


def would_create_cycle(account, new_parent) -> bool:
    """
    Walk up from new_parent; a cycle exists if the walk reaches account.

    Guards against pre-existing corrupt chains by never visiting a node twice.
    """
    seen = set()
    node = new_parent
    while node is not None:
        if node.pk == account.pk:
            return True
        if node.pk in seen:
            return True
        seen.add(node.pk)
        node = node.parent
    return False


def validate_account(
    company,
    *,
    code,
    name,
    account_type,
    sub_type=None,
    parent_id=None,
    account: Optional[Account] = None,
) -> list[LedgerError]:
    """
    Validate account fields for create (account=None) or update.

    Returns every violation found; an empty list means the fields are valid.
    For updates, pass the existing account so its own code and its
    descendants are handled.
    """
    errors: list[LedgerError] = []

    code = (code or "").strip() if isinstance(code, str) else code
    code_too_long = length_error(Account, "code", code)
    if not code or not isinstance(code, str):
        errors.append(LedgerError(ErrorKind.INVALID_FIELD, "Account code is required.", field="code"))
    elif code_too_long:
        errors.append(code_too_long)
    elif code_taken(company, code, exclude_account_id=account.pk if account else None):
        errors.append(LedgerError(
            ErrorKind.DUPLICATE_CODE,
            f"Account code '{code}' already exists.",
            field="code",
        ))

    name_too_long = length_error(Account, "name", name.strip() if isinstance(name, str) else name)
    if not isinstance(name, str) or not name.strip():
        errors.append(LedgerError(ErrorKind.INVALID_FIELD, "Account name is required.", field="name"))
    elif name_too_long:
        errors.append(name_too_long)

    if not is_valid_account_type(account_type):
        errors.append(LedgerError(
            ErrorKind.INVALID_TYPE,
            f"Account type '{account_type}' is not one of: {', '.join(Account.AccountType.values)}.",
            field="account_type",
        ))
    elif sub_type and sub_type not in allowed_sub_types(account_type):
        errors.append(LedgerError(
            ErrorKind.INVALID_SUB_TYPE,
            f"Sub-type '{sub_type}' is not valid for {account_type} accounts.",
            field="sub_type",
            details={"allowed": list(allowed_sub_types(account_type))},
        ))

    if parent_id is not None:
        parent = _resolve_parent(company, parent_id)
        if parent is None:
            errors.append(LedgerError(
                ErrorKind.INVALID_PARENT,
                f"Parent account {parent_id} not found.",
                field="parent_id",
            ))
        elif account is not None and would_create_cycle(account, parent):
            errors.append(LedgerError(
                ErrorKind.INVALID_PARENT,
                f"Account {parent.code} cannot be the parent of {account.code}: "
                "it would create a cycle.",
                field="parent_id",
            ))

    return errors


def _resolve_parent(company, parent_id) -> Optional[Account]:
    try:
        return Account.objects.get(pk=int(parent_id), company=company)
    except (Account.DoesNotExist, TypeError, ValueError):
        return None


# =============================================================================
# Journal Entry Policies
# =============================================================================

def company_decimal_places(company) -> int:
    places = company.decimal_places
    if places is None:
        places = getattr(settings, "LEDGER_DEFAULT_DECIMAL_PLACES", MAX_DECIMAL_PLACES)
    return max(0, min(int(places), MAX_DECIMAL_PLACES))


def quantize_amount(value: Decimal, places: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def parse_amount(value) -> Optional[Decimal]:
    """
    Read a line amount. Missing amounts are zero.

    Returns None for anything that is not an exact, finite number:
    floats, booleans, non-numeric strings, NaN and infinities.
    """
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool) or isinstance(value, float):
        return None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not amount.is_finite():
        return None
    return amount


def entry_number_taken(company, entry_number: str, exclude_entry_id: Optional[int] = None) -> bool:
    qs = JournalEntry.objects.filter(company=company, entry_number=entry_number)
    if exclude_entry_id is not None:
        qs = qs.exclude(pk=exclude_entry_id)
    return qs.exists()


def is_future_dated(company, entry_date, today=None) -> bool:
    if not company.rejects_future_dated:
        return False
    today = today or timezone.localdate()
    return entry_date > today


def can_post_entry(entry) -> tuple[bool, str]:
    if entry.status != JournalEntry.Status.DRAFT:
        return False, f"Entry {entry.entry_number} is {entry.status}; only draft entries can be posted."
    return True, ""


def can_modify_entry(entry) -> tuple[bool, str]:
    """
    Check if an entry's header and lines can be replaced or deleted.

    Rules:
    - Only DRAFT entries; posted entries are corrected by a reversing entry
    """
    if entry.status != JournalEntry.Status.DRAFT:
        return False, (
            f"Entry {entry.entry_number} is posted and cannot be changed; "
            "reverse the entry instead."
        )
    return True, ""


def validate_lines(company, lines: Iterable) -> tuple[list[LedgerError], list[LineDraft]]:
    """
    Validate journal lines on their own: shape, accounts and balance.

    Returns (errors, normalized_lines). normalized_lines is only
    meaningful when errors is empty.
    """
    lines = [LineDraft.from_value(line) for line in lines]
    places = company_decimal_places(company)
    errors: list[LedgerError] = []

    if len(lines) < 2:
        errors.append(LedgerError(
            ErrorKind.MALFORMED_LINE,
            f"A journal entry needs at least two lines; got {len(lines)}.",
            field="lines",
        ))

    # Line shape
    parsed = []
    amounts_ok = True
    for line_no, line in enumerate(lines, start=1):
        debit = parse_amount(line.debit)
        credit = parse_amount(line.credit)
        problem = _line_shape_problem(debit, credit, places)
        if problem:
            errors.append(LedgerError(ErrorKind.MALFORMED_LINE, f"Line {line_no}: {problem}", line_no=line_no))
        too_long = length_error(JournalLine, "description", (line.description or "").strip(), line_no=line_no)
        if too_long:
            errors.append(too_long)
        if debit is None or credit is None or min(debit, credit) < 0 or max(debit, credit) >= MAX_AMOUNT:
            amounts_ok = False
        parsed.append((line_no, line, debit, credit))

    # Account resolution
    errors.extend(_account_errors(company, lines))

    # Balance, on the amounts as submitted and as they will be stored
    normalized = []
    if amounts_ok:
        total_debit = sum((d for _, _, d, _ in parsed), Decimal("0"))
        total_credit = sum((c for _, _, _, c in parsed), Decimal("0"))
        stored = [
            (n, line, quantize_amount(d, places), quantize_amount(c, places))
            for n, line, d, c in parsed
        ]
        stored_debit = sum((d for _, _, d, _ in stored), Decimal("0"))
        stored_credit = sum((c for _, _, _, c in stored), Decimal("0"))

        if total_debit != total_credit:
            errors.append(_unbalanced(total_debit, total_credit))
        elif stored_debit != stored_credit:
            errors.append(_unbalanced(stored_debit, stored_credit, rounded_to=places))

        normalized = [
            LineDraft(
                account_id=int(line.account_id),
                debit=debit,
                credit=credit,
                description=(line.description or "").strip(),
                line_no=line_no,
            )
            for line_no, line, debit, credit in stored
        ] if not errors else []

    return errors, normalized


def _line_shape_problem(debit, credit, places) -> str:
    if debit is None or credit is None:
        return "amounts must be exact numbers (Decimal, int or numeric string)."
    if debit < 0 or credit < 0:
        return "amounts cannot be negative."
    if debit != 0 and credit != 0:
        return "a line cannot have both a debit and a credit."
    if debit == 0 and credit == 0:
        return "a line needs either a debit or a credit."
    if max(debit, credit) >= MAX_AMOUNT:
        return "amount is too large."
    if quantize_amount(max(debit, credit), places) == 0:
        return f"amount rounds to zero at {places} decimal places."
    return ""


def _unbalanced(total_debit, total_credit, rounded_to=None) -> LedgerError:
    message = f"Entry is not balanced. Debit={total_debit} Credit={total_credit}"
    if rounded_to is not None:
        message += f" after rounding to {rounded_to} decimal places"
    return LedgerError(
        ErrorKind.UNBALANCED,
        message,
        details={"total_debit": total_debit, "total_credit": total_credit},
    )


def _account_errors(company, lines: list[LineDraft]) -> list[LedgerError]:
    ids = {}
    for line_no, line in enumerate(lines, start=1):
        try:
            ids[line_no] = int(line.account_id)
        except (TypeError, ValueError):
            ids[line_no] = None

    known = {
        acc.pk: acc
        for acc in Account.objects.filter(pk__in=[i for i in ids.values() if i is not None])
    }

    errors = []
    for line_no, account_id in ids.items():
        account = known.get(account_id)
        if account is None:
            errors.append(LedgerError(
                ErrorKind.UNKNOWN_ACCOUNT,
                f"Line {line_no}: account {lines[line_no - 1].account_id} not found.",
                field="account_id",
                line_no=line_no,
            ))
        elif account.company_id != company.pk:
            errors.append(LedgerError(
                ErrorKind.CROSS_TENANT_ACCOUNT,
                f"Line {line_no}: account {account_id} belongs to another company.",
                field="account_id",
                line_no=line_no,
            ))
        elif not account.is_active:
            errors.append(LedgerError(
                ErrorKind.INACTIVE_ACCOUNT,
                f"Line {line_no}: account {account.code} is inactive.",
                field="account_id",
                line_no=line_no,
            ))
    return errors


def validate_entry(
    company,
    draft: EntryDraft,
    *,
    today=None,
    exclude_entry_id: Optional[int] = None,
) -> ValidationOutcome:
    """
    Validate a journal entry draft for a company.

    Checks, all run so every error is reported together:
    1. entry number is present and unused in the company (DuplicateEntryNumber)
    2. at least two lines, each with exactly one positive amount (MalformedLine)
    3. every account exists, belongs to the company and is active
       (UnknownAccount / CrossTenantAccount / InactiveAccount)
    4. total debits equal total credits, exactly (Unbalanced)
    5. the date is not after today when the company rejects future dates
       (FutureDated)

    Args:
        company: Tenant the entry is for
        draft: The submitted entry
        today: Validation date (defaults to the current local date)
        exclude_entry_id: Entry being replaced, ignored by the number check

    Returns:
        ValidationOutcome; on success .entry is the normalized draft
    """
    errors: list[LedgerError] = []

    entry_number = draft.entry_number.strip() if isinstance(draft.entry_number, str) else ""
    number_too_long = length_error(JournalEntry, "entry_number", entry_number)
    if not entry_number:
        errors.append(LedgerError(ErrorKind.INVALID_FIELD, "Entry number is required.", field="entry_number"))
    elif number_too_long:
        errors.append(number_too_long)
    elif entry_number_taken(company, entry_number, exclude_entry_id=exclude_entry_id):
        errors.append(LedgerError(
            ErrorKind.DUPLICATE_ENTRY_NUMBER,
            f"Entry number '{entry_number}' already exists.",
            field="entry_number",
        ))

    for field_name in ("description", "reference"):
        too_long = length_error(JournalEntry, field_name, (getattr(draft, field_name) or "").strip())
        if too_long:
            errors.append(too_long)

    line_errors, lines = validate_lines(company, draft.lines)
    errors.extend(line_errors)

    entry_date = as_date(draft.date)
    if entry_date is None:
        errors.append(LedgerError(ErrorKind.INVALID_FIELD, f"Invalid entry date: {draft.date!r}.", field="date"))
    elif is_future_dated(company, entry_date, today=today):
        errors.append(LedgerError(
            ErrorKind.FUTURE_DATED,
            f"Entry date {entry_date.isoformat()} is in the future.",
            field="date",
        ))

    if errors:
        return ValidationOutcome(errors=errors)

    return ValidationOutcome(entry=EntryDraft(
        entry_number=entry_number,
        date=entry_date,
        description=(draft.description or "").strip(),
        lines=lines,
        reference=(draft.reference or "").strip(),
    ))
