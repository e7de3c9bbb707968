# accounting/management/commands/seed_chart_of_accounts.py
"""
Install the default chart of accounts into a company.

Accounts whose code already exists in the company are left untouched, so
the command can be run repeatedly.

Usage:
    python manage.py seed_chart_of_accounts acme
"""

from django.core.management.base import BaseCommand, CommandError

from accounts.models import Company
from accounting.commands import create_account
from accounting.models import Account

T = Account.AccountType

DEFAULT_CHART = [
    ("1000", "Cash", T.ASSET, "current_asset"),
    ("1100", "Accounts Receivable", T.ASSET, "current_asset"),
    ("1200", "Inventory", T.ASSET, "current_asset"),
    ("1500", "Equipment", T.ASSET, "fixed_asset"),
    ("1600", "Accumulated Depreciation - Equipment", T.ASSET, "fixed_asset"),
    ("2000", "Accounts Payable", T.LIABILITY, "current_liability"),
    ("2100", "Accrued Expenses", T.LIABILITY, "current_liability"),
    ("2500", "Long-term Debt", T.LIABILITY, "long_term_liability"),
    ("3000", "Owner's Equity", T.EQUITY, "capital"),
    ("3100", "Retained Earnings", T.EQUITY, "retained_earnings"),
    ("4000", "Sales Revenue", T.REVENUE, "operating_revenue"),
    ("4100", "Service Revenue", T.REVENUE, "operating_revenue"),
    ("5000", "Cost of Goods Sold", T.EXPENSE, "cost_of_sales"),
    ("6000", "Office Expenses", T.EXPENSE, "operating_expense"),
    ("6100", "Rent Expense", T.EXPENSE, "operating_expense"),
    ("6200", "Utilities Expense", T.EXPENSE, "operating_expense"),
    ("6300", "Insurance Expense", T.EXPENSE, "operating_expense"),
    ("6400", "Depreciation Expense", T.EXPENSE, "operating_expense"),
]


class Command(BaseCommand):
    help = "Seed the default chart of accounts into a company"

    def add_arguments(self, parser):
        parser.add_argument("company", type=str, help="Company slug")

    def handle(self, *args, **options):
        slug = options["company"]
        try:
            company = Company.objects.get(slug=slug)
        except Company.DoesNotExist:
            raise CommandError(f"Company '{slug}' not found")

        existing = set(Account.objects.filter(company=company).values_list("code", flat=True))
        created = 0
        skipped = 0

        for code, name, account_type, sub_type in DEFAULT_CHART:
            if code in existing:
                skipped += 1
                continue
            result = create_account(
                company,
                code=code,
                name=name,
                account_type=account_type,
                sub_type=sub_type,
            )
            if not result.success:
                raise CommandError(f"Could not create {code} {name}: {result.error}")
            created += 1

        self.stdout.write(self.style.SUCCESS(
            f"Done! Created {created}, skipped {skipped} existing account(s) for {company.slug}."
        ))
