"""
Prometheus metrics for the ledger engine.

Metrics exposed:
- ledger_entries_created_total: Journal entries persisted
- ledger_entries_rejected_total: Rejected journal entry writes by error kind
- ledger_integrity_warnings_total: Trial balances that did not balance

Counters live in the default prometheus_client registry; a scrape
endpoint (or a push gateway job) is wired by the deployment, not here.
"""
import logging

from prometheus_client import Counter

logger = logging.getLogger(__name__)


entries_created = Counter(
    "ledger_entries_created_total",
    "Journal entries persisted",
)

entries_rejected = Counter(
    "ledger_entries_rejected_total",
    "Journal entry writes rejected by validation",
    ["kind"],
)

integrity_warnings = Counter(
    "ledger_integrity_warnings_total",
    "Trial balances whose debits and credits disagree",
)


def record_rejection(error_kinds) -> None:
    """Count one rejected write under each distinct error kind."""
    for kind in sorted(set(error_kinds)):
        entries_rejected.labels(kind=kind).inc()


def record_entry_created() -> None:
    entries_created.inc()


def record_integrity_warning() -> None:
    integrity_warnings.inc()
