# accounting/management/commands/check_ledger_integrity.py
"""
Verify that every company's trial balance is balanced.

An imbalance means stored data no longer satisfies the double-entry rule
(a partial write, or rows changed outside the command layer). Each one is
reported and logged on "accounting.integrity"; the command exits non-zero
if any company is out of balance.

Usage:
    # All active companies, as of today
    python manage.py check_ledger_integrity

    # One company, as of a date
    python manage.py check_ledger_integrity --company acme --as-of 2024-03-31
"""

import logging

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_date

from accounts.models import Company
from accounting.balances import trial_balance

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Run the trial balance for each company and report imbalances."""

    help = "Check that each company's trial balance is balanced"

    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            type=str,
            help="Company slug (default: all active companies)",
        )
        parser.add_argument(
            "--as-of",
            type=str,
            dest="as_of",
            help="As-of date, YYYY-MM-DD (default: today)",
        )

    def handle(self, *args, **options):
        as_of = timezone.localdate()
        if options.get("as_of"):
            try:
                as_of = parse_date(options["as_of"])
            except ValueError:
                as_of = None
            if as_of is None:
                raise CommandError(f"Invalid --as-of date: {options['as_of']}")

        companies = Company.objects.filter(is_active=True)
        if options.get("company"):
            companies = Company.objects.filter(slug=options["company"])
            if not companies.exists():
                raise CommandError(f"Company '{options['company']}' not found")

        failures = 0
        for company in companies.order_by("slug"):
            tb = trial_balance(company, as_of)
            if tb.is_balanced and not tb.warnings:
                self.stdout.write(
                    f"{company.slug}: OK (debits {tb.total_debits}, credits {tb.total_credits})"
                )
                continue

            failures += 1
            for warning in tb.warnings:
                self.stdout.write(self.style.ERROR(f"{company.slug}: {warning.message}"))

        logger.info(
            "Ledger integrity check finished",
            extra={"as_of_date": as_of.isoformat(), "failures": failures},
        )

        if failures:
            raise CommandError(f"{failures} company ledger(s) out of balance as of {as_of.isoformat()}")

        self.stdout.write(self.style.SUCCESS(f"All ledgers balanced as of {as_of.isoformat()}."))
