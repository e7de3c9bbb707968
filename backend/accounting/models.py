# accounting/models.py
"""
Ledger models.

Models:
- CompanySequence: Per-company counters for automatic entry numbers
- Account: Chart of Accounts
- JournalEntry: Journal entry headers
- JournalLine: Journal entry lines

These rows are written by the command layer (accounting/commands.py),
which runs validation (accounting/policies.py) first. The database
constraints declared here are the second line of defense: they hold even
if a caller bypasses the commands.
"""

from decimal import Decimal

from django.db import models
from django.db.models import Q

from accounts.models import Company


class CompanySequence(models.Model):
    """
    Per-company counters for sequential identifiers.

    Used by commands to allocate unique numbers under concurrency.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="sequences",
    )
    name = models.CharField(max_length=100)
    next_value = models.BigIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"],
                name="uniq_company_sequence_name",
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.name}={self.next_value}"


class Account(models.Model):
    """
    Chart of Accounts entry.

    Supports:
    - Five account types with normal balance rules
    - Sub-types per type, used to group statement lines
    - Hierarchical structure (parent/child)
    - Soft disable (is_active); accounts are never deleted by the engine
    """

    class AccountType(models.TextChoices):
        ASSET = "asset", "Asset"
        LIABILITY = "liability", "Liability"
        EQUITY = "equity", "Equity"
        REVENUE = "revenue", "Revenue"
        EXPENSE = "expense", "Expense"

    class NormalBalance(models.TextChoices):
        DEBIT = "debit", "Debit"
        CREDIT = "credit", "Credit"

    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.REVENUE: NormalBalance.CREDIT,
    }

    # Sub-types recognized for each account type
    SUB_TYPES = {
        AccountType.ASSET: ("current_asset", "fixed_asset", "other_asset"),
        AccountType.LIABILITY: ("current_liability", "long_term_liability", "other_liability"),
        AccountType.EQUITY: ("capital", "retained_earnings", "other_equity"),
        AccountType.REVENUE: ("operating_revenue", "other_revenue"),
        AccountType.EXPENSE: ("cost_of_sales", "operating_expense", "other_expense"),
    }

    # Statement group label for accounts without a sub-type
    FALLBACK_GROUPS = {
        AccountType.ASSET: "Other Assets",
        AccountType.LIABILITY: "Other Liabilities",
        AccountType.EQUITY: "Other Equity",
        AccountType.REVENUE: "Other Revenue",
        AccountType.EXPENSE: "Other Expenses",
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )
    sub_type = models.CharField(max_length=30, blank=True, default="")

    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="children",
    )

    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_account_code_per_company",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["company", "account_type"], name="acct_company_type_idx"),
            models.Index(fields=["company", "parent"], name="acct_company_parent_idx"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def normal_balance(self) -> str:
        return self.NORMAL_BALANCE_MAP[self.account_type]

    @property
    def group_key(self) -> str:
        """Statement grouping key: the sub-type, or "Other <type>" without one."""
        return self.sub_type or self.FALLBACK_GROUPS[self.account_type]

    def signed_balance(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Net of debit and credit totals, positive on the normal-balance side."""
        if self.normal_balance == self.NormalBalance.DEBIT:
            return debit - credit
        return credit - debit


class JournalEntry(models.Model):
    """
    Journal Entry header.

    Workflow: DRAFT -> POSTED
    - DRAFT: Validated and balanced, does not affect balances yet
    - POSTED: Final; contributes to trial balance and statements
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        POSTED = "posted", "Posted"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )

    entry_number = models.CharField(max_length=50)
    date = models.DateField()
    description = models.CharField(max_length=500, blank=True, default="")
    reference = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Reference to source document (e.g., invoice number)",
    )

    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    posted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "entry_number"],
                name="uniq_entry_number_per_company",
            )
        ]
        indexes = [
            models.Index(fields=["company", "date", "id"], name="je_company_date_idx"),
            models.Index(fields=["company", "status"], name="je_company_status_idx"),
        ]
        ordering = ["-date", "-id"]
        verbose_name_plural = "journal entries"

    def __str__(self):
        return f"{self.entry_number} ({self.date}) {self.status}"


class JournalLine(models.Model):
    """
    Individual line within a journal entry.
    Each line affects one account with either a debit or credit amount.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_lines",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=15, decimal_places=2, default=0)

    class Meta:
        ordering = ["entry", "line_no"]
        constraints = [
            models.UniqueConstraint(
                fields=["entry", "line_no"],
                name="uniq_line_no_per_entry",
            ),
            models.CheckConstraint(
                condition=(
                    (Q(debit__gt=0) & Q(credit=0))
                    | (Q(debit=0) & Q(credit__gt=0))
                ),
                name="chk_line_one_sided",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "account"], name="jl_company_account_idx"),
        ]

    def __str__(self):
        return f"JE#{self.entry_id} L{self.line_no}"
