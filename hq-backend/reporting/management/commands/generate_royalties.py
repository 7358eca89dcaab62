"""
Generate royalty reports for one billing period.

Usage:
    python manage.py generate_royalties --period 2025-08
    python manage.py generate_royalties --period 2025-08 --franchisee 12 --franchisee 14
"""
from django.core.management.base import BaseCommand, CommandError

from common import errors
from reporting.reports.royalty_reports import generate_royalty_reports_for_period


class Command(BaseCommand):
    help = "Generate monthly royalty reports (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--period",
            type=str,
            required=True,
            help="Billing period, YYYY-MM",
        )
        parser.add_argument(
            "--franchisee",
            type=int,
            action="append",
            dest="franchisees",
            help="Restrict to this franchisee id (repeatable)",
        )

    def handle(self, *args, **options):
        try:
            result = generate_royalty_reports_for_period(options["period"], franchisee_ids=options.get("franchisees"))
        except errors.DomainError as exc:
            raise CommandError(exc.message)

        self.stdout.write(
            f"Period {result['period']}: {len(result['created'])} created, "
            f"{len(result['existing'])} already existed, {len(result['failed'])} failed"
        )
        for failure in result["failed"]:
            self.stderr.write(f"  franchisee {failure['franchisee_id']}: {failure['error']}")
        if result["created"]:
            self.stdout.write(self.style.SUCCESS("Done."))
