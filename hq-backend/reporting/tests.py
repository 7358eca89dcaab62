"""
Royalty generation, billing periods and sales summaries.
"""
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal
from io import StringIO
from zoneinfo import ZoneInfo

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from common import errors
from franchisees.models import Franchisee, FranchiseAgreement
from reporting.models import RoyaltyReport
from reporting.reports.base import Period
from reporting.reports.royalty_reports import (
    compute_amount_due,
    generate_royalty_report,
    generate_royalty_reports_for_period,
)
from reporting.reports.sales_reports import calculate_sales_summaries
from reporting.tasks import generate_monthly_royalties
from sales.models import CustomerOrder, CustomerOrderStatus

User = get_user_model()
UTC = dt_timezone.utc
PARIS = ZoneInfo("Europe/Paris")
AFTER_AUGUST = datetime(2025, 10, 1, tzinfo=UTC)


class PeriodTests(SimpleTestCase):
    def test_parse(self):
        self.assertEqual(Period.parse("2025-08"), Period(2025, 8))
        self.assertEqual(str(Period.parse(" 2025-08 ")), "2025-08")
        for bad in ("2025-13", "2025-8", "08-2025", "", None, "2025-00"):
            with self.assertRaises(errors.ValidationError):
                Period.parse(bad)

    def test_bounds_are_half_open_in_zone(self):
        start, end = Period(2025, 8).bounds(PARIS)
        self.assertEqual(start, datetime(2025, 7, 31, 22, 0, tzinfo=UTC))
        self.assertEqual(end, datetime(2025, 8, 31, 22, 0, tzinfo=UTC))

    def test_winter_bounds(self):
        start, end = Period(2025, 1).bounds(PARIS)
        self.assertEqual(start, datetime(2024, 12, 31, 23, 0, tzinfo=UTC))
        self.assertEqual(end, datetime(2025, 1, 31, 23, 0, tzinfo=UTC))

    def test_navigation(self):
        self.assertEqual(Period(2025, 12).next(), Period(2026, 1))
        self.assertEqual(Period(2025, 1).previous(), Period(2024, 12))
        self.assertEqual([str(p) for p in Period(2025, 11).until(Period(2026, 1))], ["2025-11", "2025-12", "2026-01"])
        self.assertEqual(Period(2025, 11).months_until(Period(2026, 1)), 2)

    def test_containing(self):
        moment = datetime(2025, 8, 31, 22, 30, tzinfo=UTC)
        self.assertEqual(Period.containing(moment, PARIS), Period(2025, 9))
        self.assertEqual(Period.containing(moment, UTC), Period(2025, 8))

    def test_amount_due_rounds_half_up(self):
        self.assertEqual(compute_amount_due(Decimal("1250.00"), Decimal("0.0400")), Decimal("50.00"))
        self.assertEqual(compute_amount_due(Decimal("0.50"), Decimal("0.0500")), Decimal("0.03"))
        self.assertEqual(compute_amount_due(Decimal("10.10"), Decimal("0.0450")), Decimal("0.45"))
        self.assertEqual(compute_amount_due(Decimal("0.00"), Decimal("0.0400")), Decimal("0.00"))


class RoyaltyTestBase(TestCase):
    def setUp(self):
        self.franchisee = Franchisee.objects.create(code="bordeaux-01", name="Bordeaux Chartrons")
        self.agreement = FranchiseAgreement.objects.create(
            franchisee=self.franchisee,
            start_date=date(2024, 1, 1),
            entry_fee_amount=Decimal("50000.00"),
            revenue_share_pct=Decimal("0.0400"),
            timezone="Europe/Paris",
        )

    def sale(self, amount, fulfilled_at, status=CustomerOrderStatus.FULFILLED, franchisee=None):
        return CustomerOrder.objects.create(
            franchisee=franchisee or self.franchisee,
            status=status,
            total_excl_tax=Decimal(amount),
            total_incl_tax=Decimal(amount),
            fulfilled_at=fulfilled_at if status == CustomerOrderStatus.FULFILLED else None,
        )


class GenerateRoyaltyReportTests(RoyaltyTestBase):
    def test_august_report(self):
        self.sale("1000.00", datetime(2025, 8, 5, 12, 0, tzinfo=UTC))
        self.sale("250.00", datetime(2025, 8, 20, 18, 30, tzinfo=UTC))
        self.sale("99.00", None, status=CustomerOrderStatus.PENDING)
        self.sale("75.00", None, status=CustomerOrderStatus.CANCELLED)

        report, created = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)

        self.assertTrue(created)
        report.refresh_from_db()
        self.assertEqual(report.gross_sales, Decimal("1250.00"))
        self.assertEqual(report.share_pct, Decimal("0.0400"))
        self.assertEqual(report.amount_due, Decimal("50.00"))
        self.assertEqual(report.order_count, 2)
        self.assertEqual(report.agreement, self.agreement)
        self.assertEqual(report.timezone, "Europe/Paris")

    def test_second_generation_returns_existing_report(self):
        self.sale("1000.00", datetime(2025, 8, 5, 12, 0, tzinfo=UTC))
        first, created = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        self.assertTrue(created)

        self.sale("500.00", datetime(2025, 8, 6, 12, 0, tzinfo=UTC))
        again, created = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)

        self.assertFalse(created)
        self.assertEqual(again.pk, first.pk)
        self.assertEqual(again.gross_sales, Decimal("1000.00"))
        self.assertEqual(RoyaltyReport.objects.count(), 1)

    def test_zero_orders_gives_zero_report(self):
        report, created = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        self.assertTrue(created)
        self.assertEqual(report.gross_sales, Decimal("0.00"))
        self.assertEqual(report.amount_due, Decimal("0.00"))
        self.assertEqual(report.order_count, 0)

    def test_period_boundaries_use_agreement_time_zone(self):
        # 00:30 on Aug 1st in Paris, still July in UTC
        self.sale("100.00", datetime(2025, 7, 31, 22, 30, tzinfo=UTC))
        # 23:59 on Jul 31st in Paris
        self.sale("40.00", datetime(2025, 7, 31, 21, 59, tzinfo=UTC))
        # 00:00 on Sep 1st in Paris belongs to September
        self.sale("60.00", datetime(2025, 8, 31, 22, 0, tzinfo=UTC))
        # 23:59:59 on Aug 31st in Paris
        self.sale("10.00", datetime(2025, 8, 31, 21, 59, 59, tzinfo=UTC))

        report, _ = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        self.assertEqual(report.gross_sales, Decimal("110.00"))
        self.assertEqual(report.order_count, 2)

    def test_no_agreement(self):
        other = Franchisee.objects.create(code="brest-01", name="Brest Port")
        with self.assertRaises(errors.NoActiveAgreement) as ctx:
            generate_royalty_report(other.id, "2025-08", now=AFTER_AUGUST)
        self.assertEqual(ctx.exception.details["reference_date"], date(2025, 8, 1))
        self.assertFalse(RoyaltyReport.objects.exists())

    def test_agreement_end_is_exclusive(self):
        FranchiseAgreement.objects.filter(pk=self.agreement.pk).update(end_date=date(2025, 8, 1))
        with self.assertRaises(errors.NoActiveAgreement):
            generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        report, _ = generate_royalty_report(self.franchisee.id, "2025-07", now=AFTER_AUGUST)
        self.assertEqual(report.period, "2025-07")

    def test_rate_follows_agreement_in_force(self):
        FranchiseAgreement.objects.filter(pk=self.agreement.pk).update(end_date=date(2025, 8, 1))
        FranchiseAgreement.objects.create(
            franchisee=self.franchisee, start_date=date(2025, 8, 1),
            revenue_share_pct=Decimal("0.0500"), timezone="Europe/Paris",
        )
        self.sale("200.00", datetime(2025, 8, 10, 9, 0, tzinfo=UTC))
        report, _ = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        self.assertEqual(report.share_pct, Decimal("0.0500"))
        self.assertEqual(report.amount_due, Decimal("10.00"))

    def test_open_period_rejected(self):
        with self.assertRaises(errors.ValidationError):
            generate_royalty_report(self.franchisee.id, "2025-08", now=datetime(2025, 8, 15, tzinfo=UTC))

    def test_unknown_franchisee(self):
        with self.assertRaises(errors.NotFound):
            generate_royalty_report(999999, "2025-08", now=AFTER_AUGUST)

    def test_non_numeric_franchisee_id(self):
        for value in ("abc", None, "1.5"):
            with self.subTest(value=value):
                with self.assertRaises(errors.ValidationError) as ctx:
                    generate_royalty_report(value, "2025-08", now=AFTER_AUGUST)
                self.assertEqual(ctx.exception.details["field"], "franchisee_id")

    def test_generated_at_is_stamped_on_creation(self):
        before = timezone.now()
        report, _ = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        report.refresh_from_db()
        self.assertGreaterEqual(report.generated_at, before)
        self.assertLessEqual(report.generated_at, timezone.now())

    def test_report_is_immutable(self):
        report, _ = generate_royalty_report(self.franchisee.id, "2025-08", now=AFTER_AUGUST)
        report.amount_due = Decimal("1.00")
        with self.assertRaises(errors.StateError):
            report.save()
        with self.assertRaises(errors.StateError):
            report.delete()

        report = RoyaltyReport.objects.get(pk=report.pk)
        report.attach_pdf("https://files.example.com/royalties/2025-08.pdf")
        report.refresh_from_db()
        self.assertEqual(report.generated_pdf_url, "https://files.example.com/royalties/2025-08.pdf")
        self.assertEqual(report.amount_due, Decimal("0.00"))


class BatchGenerationTests(RoyaltyTestBase):
    def setUp(self):
        super().setUp()
        self.unsigned = Franchisee.objects.create(code="caen-01", name="Caen Vaugueux")

    def test_batch_collects_failures(self):
        result = generate_royalty_reports_for_period("2025-08", now=AFTER_AUGUST)
        self.assertEqual(len(result["created"]), 1)
        self.assertEqual(result["failed"][0]["franchisee_id"], self.unsigned.id)
        self.assertEqual(result["failed"][0]["code"], "no_active_agreement")

        again = generate_royalty_reports_for_period("2025-08", now=AFTER_AUGUST)
        self.assertEqual(again["created"], [])
        self.assertEqual(again["existing"], result["created"])

    def test_management_command(self):
        out, err = StringIO(), StringIO()
        call_command("generate_royalties", "--period", "2025-08", stdout=out, stderr=err)
        self.assertIn("1 created", out.getvalue())
        self.assertIn(str(self.unsigned.id), err.getvalue())
        self.assertTrue(RoyaltyReport.objects.filter(franchisee=self.franchisee, period="2025-08").exists())

    def test_celery_task(self):
        result = generate_monthly_royalties("2025-08")
        self.assertEqual(result["period"], "2025-08")
        self.assertEqual(result["created"], 1)
        self.assertEqual(len(result["failed"]), 1)


class SalesSummaryTests(RoyaltyTestBase):
    def setUp(self):
        super().setUp()
        self.other = Franchisee.objects.create(code="tours-01", name="Tours Plumereau")
        self.sale("100.00", datetime(2025, 7, 31, 22, 30, tzinfo=UTC))
        self.sale("50.00", datetime(2025, 8, 1, 10, 0, tzinfo=UTC))
        self.sale("30.00", datetime(2025, 9, 2, 10, 0, tzinfo=UTC))
        self.sale("20.00", datetime(2025, 8, 3, 10, 0, tzinfo=UTC), franchisee=self.other)
        self.sale("999.00", None, status=CustomerOrderStatus.PENDING)

    def test_monthly_buckets(self):
        data = calculate_sales_summaries("2025-08", "2025-09", tz_name="Europe/Paris")
        rows = [(r["franchisee_id"], r["bucket"], r["order_count"], r["gross_sales"]) for r in data["results"]]
        self.assertEqual(rows, [
            (self.franchisee.id, "2025-08", 2, "150.00"),
            (self.franchisee.id, "2025-09", 1, "30.00"),
            (self.other.id, "2025-08", 1, "20.00"),
        ])

    def test_daily_buckets_for_one_franchisee(self):
        data = calculate_sales_summaries(
            "2025-08", "2025-08", granularity="day", franchisee_id=self.franchisee.id, tz_name="Europe/Paris"
        )
        rows = [(r["bucket"], r["gross_sales"]) for r in data["results"]]
        self.assertEqual(rows, [("2025-08-01", "150.00")])

    def test_invalid_ranges(self):
        with self.assertRaises(errors.ValidationError):
            calculate_sales_summaries("2025-09", "2025-08")
        with self.assertRaises(errors.ValidationError):
            calculate_sales_summaries("2025-01", "2025-08", granularity="day")
        with self.assertRaises(errors.ValidationError):
            calculate_sales_summaries("2025-08", "2025-08", granularity="week")
