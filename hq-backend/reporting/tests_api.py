"""
HTTP surface of royalty reports and sales summaries.
"""
from datetime import date, datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model
from rest_framework.test import APIRequestFactory, force_authenticate

from common.roles import NetworkRole
from franchisees.models import Franchisee, FranchiseAgreement, FranchiseUser
from reporting.api import (
    RoyaltyReportDetailView,
    RoyaltyReportExportView,
    RoyaltyReportGenerateView,
    RoyaltyReportListView,
    SalesSummaryView,
)
from reporting.models import RoyaltyReport
from reporting.reports.royalty_reports import generate_royalty_report
from reporting.tests import RoyaltyTestBase

User = get_user_model()
UTC = dt_timezone.utc


class ReportingApiTests(RoyaltyTestBase):
    def setUp(self):
        super().setUp()
        self.factory = APIRequestFactory()
        self.finance = User.objects.create_user(username="finance", email="fin@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.finance, role=NetworkRole.HQ_FINANCE)
        self.owner = User.objects.create_user(username="owner", email="owner@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.owner, franchisee=self.franchisee, role=NetworkRole.FRANCHISEE_OWNER)
        self.sale("1000.00", datetime(2025, 8, 5, 12, 0, tzinfo=UTC))
        self.sale("250.00", datetime(2025, 8, 20, 12, 0, tzinfo=UTC))

    def _get(self, path, params=None, user=None):
        request = self.factory.get(path, params or {})
        force_authenticate(request, user=user or self.finance)
        return request

    def _post(self, path, data, user=None):
        request = self.factory.post(path, data, format="json")
        force_authenticate(request, user=user or self.finance)
        return request

    def test_generate_then_return_existing(self):
        body = {"period": "2025-08", "franchisee_id": self.franchisee.id}
        response = RoyaltyReportGenerateView.as_view()(self._post("/api/v1/reports/royalties/generate", body))
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data["created"])
        self.assertEqual(response.data["gross_sales"], "1250.00")
        self.assertEqual(response.data["amount_due"], "50.00")
        self.assertEqual(response.data["share_pct"], "0.0400")

        response = RoyaltyReportGenerateView.as_view()(self._post("/api/v1/reports/royalties/generate", body))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data["created"])
        self.assertEqual(RoyaltyReport.objects.count(), 1)

    def test_franchisee_cannot_generate(self):
        body = {"period": "2025-08", "franchisee_id": self.franchisee.id}
        response = RoyaltyReportGenerateView.as_view()(
            self._post("/api/v1/reports/royalties/generate", body, user=self.owner)
        )
        self.assertEqual(response.status_code, 403)

    def test_generate_without_agreement_is_422(self):
        other = Franchisee.objects.create(code="metz-01", name="Metz Gare")
        body = {"period": "2025-08", "franchisee_id": other.id}
        response = RoyaltyReportGenerateView.as_view()(self._post("/api/v1/reports/royalties/generate", body))
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data["code"], "no_active_agreement")

    def test_generate_bad_period_is_400(self):
        body = {"period": "August", "franchisee_id": self.franchisee.id}
        response = RoyaltyReportGenerateView.as_view()(self._post("/api/v1/reports/royalties/generate", body))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["field"], "period")

    def test_generate_non_numeric_franchisee_is_400(self):
        body = {"period": "2025-08", "franchisee_id": "abc"}
        response = RoyaltyReportGenerateView.as_view()(self._post("/api/v1/reports/royalties/generate", body))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "validation_error")
        self.assertEqual(response.data["field"], "franchisee_id")
        self.assertEqual(RoyaltyReport.objects.count(), 0)

    def test_list_and_detail_scoping(self):
        report, _ = generate_royalty_report(self.franchisee.id, "2025-08")
        other = Franchisee.objects.create(code="lille-01", name="Lille Vieux")
        FranchiseAgreement.objects.create(franchisee=other, start_date=date(2024, 1, 1), timezone="Europe/Paris")
        other_report, _ = generate_royalty_report(other.id, "2025-08")

        response = RoyaltyReportListView.as_view()(self._get("/api/v1/reports/royalties", {"period": "2025-08"}))
        self.assertEqual(response.data["total"], 2)

        response = RoyaltyReportListView.as_view()(self._get("/api/v1/reports/royalties", user=self.owner))
        self.assertEqual(response.data["total"], 1)
        self.assertEqual(response.data["items"][0]["id"], report.id)

        response = RoyaltyReportDetailView.as_view()(
            self._get(f"/api/v1/reports/royalties/{other_report.id}", user=self.owner), pk=other_report.id
        )
        self.assertEqual(response.status_code, 404)

        response = RoyaltyReportDetailView.as_view()(
            self._get(f"/api/v1/reports/royalties/{report.id}", user=self.owner), pk=report.id
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["period"], "2025-08")

    def test_csv_export(self):
        generate_royalty_report(self.franchisee.id, "2025-08")
        response = RoyaltyReportExportView.as_view()(
            self._get("/api/v1/reports/royalties/export", {"period": "2025-08"})
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        lines = response.content.decode().strip().splitlines()
        self.assertTrue(lines[0].startswith("period,franchisee_code"))
        self.assertIn("bordeaux-01", lines[1])
        self.assertIn("50.00", lines[1])

    def test_sales_summaries(self):
        response = SalesSummaryView.as_view()(
            self._get("/api/v1/reports/sales-summaries", {"from": "2025-08", "to": "2025-08"}, user=self.owner)
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["results"], [{
            "franchisee_id": self.franchisee.id,
            "bucket": "2025-08",
            "order_count": 2,
            "gross_sales": "1250.00",
        }])

    def test_sales_summaries_requires_from(self):
        response = SalesSummaryView.as_view()(self._get("/api/v1/reports/sales-summaries"))
        self.assertEqual(response.status_code, 400)
