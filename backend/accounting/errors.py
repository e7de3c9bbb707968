# accounting/errors.py
"""
Ledger error taxonomy.

Validation failures are values, not exceptions: policies collect every
problem with a request into a list of LedgerError and commands hand that
list back inside a CommandResult. Only two conditions raise:

- LedgerErrorException: a read path was asked something meaningless
  (a date range that ends before it starts).
- AggregationCancelled: the caller asked a running aggregation to stop.
"""
from dataclasses import dataclass, field as dataclass_field
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional


class ErrorKind:
    # Account registry
    DUPLICATE_CODE = "DuplicateCode"
    INVALID_TYPE = "InvalidType"
    INVALID_SUB_TYPE = "InvalidSubType"
    INVALID_PARENT = "InvalidParent"
    ACCOUNT_IN_USE = "AccountInUse"

    # Journal entries
    DUPLICATE_ENTRY_NUMBER = "DuplicateEntryNumber"
    MALFORMED_LINE = "MalformedLine"
    UNKNOWN_ACCOUNT = "UnknownAccount"
    CROSS_TENANT_ACCOUNT = "CrossTenantAccount"
    INACTIVE_ACCOUNT = "InactiveAccount"
    UNBALANCED = "Unbalanced"
    FUTURE_DATED = "FutureDated"
    INVALID_STATUS = "InvalidStatus"
    UNKNOWN_ENTRY = "UnknownEntry"

    # Header fields that are missing or unparseable (code, name, date, ...)
    INVALID_FIELD = "InvalidField"

    # Reads
    INVALID_DATE_RANGE = "InvalidDateRange"
    LEDGER_INTEGRITY_WARNING = "LedgerIntegrityWarning"


@dataclass(frozen=True)
class LedgerError:
    """One problem with a request, specific enough for the caller to display."""
    kind: str
    message: str
    field: Optional[str] = None
    line_no: Optional[int] = None
    details: Dict[str, Any] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "field": self.field,
            "line_no": self.line_no,
            "details": {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.details.items()
            },
        }


class LedgerErrorException(Exception):
    """Raised by read paths that cannot produce a result for the given arguments."""

    def __init__(self, errors: Iterable[LedgerError]):
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors))

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.errors]


class AggregationCancelled(Exception):
    """The caller cancelled a running aggregation; no partial result exists."""
    pass
