from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIRequestFactory, force_authenticate

from common import errors
from common.roles import NetworkRole
from franchisees import services
from franchisees.models import Franchisee, FranchiseAgreement, FranchiseUser
from franchisees.views import FranchiseAgreementViewSet

User = get_user_model()


class AgreementServiceTests(TestCase):
    def setUp(self):
        self.franchisee = Franchisee.objects.create(code="lille-01", name="Lille Grand Place")

    def test_defaults_come_from_settings(self):
        agreement = services.create_agreement(self.franchisee, "2025-01-01")
        agreement.refresh_from_db()
        self.assertEqual(agreement.entry_fee_amount, Decimal("50000.00"))
        self.assertEqual(agreement.revenue_share_pct, Decimal("0.0400"))
        self.assertIsNone(agreement.end_date)

    @override_settings(FRANCHISE_DEFAULT_REVENUE_SHARE_PCT="0.0550", FRANCHISE_DEFAULT_ENTRY_FEE="25000.00")
    def test_overridden_defaults(self):
        agreement = services.create_agreement(self.franchisee, date(2025, 1, 1))
        self.assertEqual(agreement.revenue_share_pct, Decimal("0.0550"))
        self.assertEqual(agreement.entry_fee_amount, Decimal("25000.00"))

    def test_overlap_rejected(self):
        services.create_agreement(self.franchisee, "2024-01-01", "2025-01-01")
        with self.assertRaises(errors.AgreementOverlap):
            services.create_agreement(self.franchisee, "2024-06-01")
        with self.assertRaises(errors.AgreementOverlap):
            services.create_agreement(self.franchisee, "2023-01-01")
        # End date is exclusive, so the next agreement may start on it
        follow_up = services.create_agreement(self.franchisee, "2025-01-01")
        self.assertEqual(follow_up.start_date, date(2025, 1, 1))

    def test_invalid_values(self):
        with self.assertRaises(errors.ValidationError):
            services.create_agreement(self.franchisee, "2025-02-01", "2025-01-01")
        with self.assertRaises(errors.ValidationError):
            services.create_agreement(self.franchisee, "2025-01-01", revenue_share_pct="4")
        with self.assertRaises(errors.ValidationError):
            services.create_agreement(self.franchisee, "2025-01-01", timezone_name="Mars/Olympus")
        with self.assertRaises(errors.ValidationError):
            services.create_agreement(self.franchisee, "not-a-date")

    def test_amounts_beyond_column_scale_rejected(self):
        with self.assertRaises(errors.ValidationError) as ctx:
            services.create_agreement(self.franchisee, "2025-01-01", revenue_share_pct="0.04005")
        self.assertEqual(ctx.exception.details["field"], "revenue_share_pct")
        with self.assertRaises(errors.ValidationError) as ctx:
            services.create_agreement(self.franchisee, "2025-01-01", entry_fee_amount="1000.005")
        self.assertEqual(ctx.exception.details["field"], "entry_fee_amount")
        self.assertFalse(FranchiseAgreement.objects.exists())
        agreement = services.create_agreement(self.franchisee, "2025-01-01", revenue_share_pct="0.0450")
        self.assertEqual(agreement.revenue_share_pct, Decimal("0.0450"))

    def test_resolve_agreement(self):
        first = services.create_agreement(self.franchisee, "2024-01-01", "2025-01-01")
        second = services.create_agreement(self.franchisee, "2025-01-01", revenue_share_pct="0.0500")
        self.assertEqual(services.resolve_agreement(self.franchisee, date(2024, 12, 31)), first)
        self.assertEqual(services.resolve_agreement(self.franchisee, date(2025, 1, 1)), second)
        with self.assertRaises(errors.NoActiveAgreement):
            services.resolve_agreement(self.franchisee, date(2023, 12, 31))

    def test_close_agreement(self):
        agreement = services.create_agreement(self.franchisee, "2024-01-01")
        services.close_agreement(agreement, "2024-07-01")
        agreement.refresh_from_db()
        self.assertEqual(agreement.end_date, date(2024, 7, 1))
        self.assertFalse(agreement.covers(date(2024, 7, 1)))
        self.assertTrue(agreement.covers(date(2024, 6, 30)))
        with self.assertRaises(errors.ValidationError):
            services.close_agreement(agreement, "2024-08-01")


class AgreementApiTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.franchisee = Franchisee.objects.create(code="rennes-01", name="Rennes Lices")
        self.other = Franchisee.objects.create(code="vannes-01", name="Vannes Port")
        self.admin = User.objects.create_user(username="hq", email="hq@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.admin, role=NetworkRole.HQ_ADMIN)
        self.owner = User.objects.create_user(username="owner", email="owner@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.owner, franchisee=self.franchisee, role=NetworkRole.FRANCHISEE_OWNER)

    def _call(self, method, path, data=None, user=None, action=None, **kwargs):
        if method == "get":
            request = self.factory.get(path, data or {})
        else:
            request = getattr(self.factory, method)(path, data or {}, format="json")
        force_authenticate(request, user=user or self.admin)
        return FranchiseAgreementViewSet.as_view(action)(request, **kwargs)

    def test_hq_creates_agreement(self):
        response = self._call("post", "/api/v1/franchise-agreements", {
            "franchisee_id": self.franchisee.id, "start_date": "2025-01-01", "timezone": "Europe/Paris",
        }, action={"post": "create"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["revenue_share_pct"], "0.0400")

    def test_overlap_is_400(self):
        services.create_agreement(self.franchisee, "2025-01-01")
        response = self._call("post", "/api/v1/franchise-agreements", {
            "franchisee_id": self.franchisee.id, "start_date": "2025-03-01",
        }, action={"post": "create"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "agreement_overlap")

    def test_franchisee_cannot_create(self):
        response = self._call("post", "/api/v1/franchise-agreements", {
            "franchisee_id": self.franchisee.id, "start_date": "2025-01-01",
        }, user=self.owner, action={"post": "create"})
        self.assertEqual(response.status_code, 403)

    def test_franchisee_sees_only_own_agreements(self):
        services.create_agreement(self.franchisee, "2025-01-01")
        services.create_agreement(self.other, "2025-01-01")
        response = self._call("get", "/api/v1/franchise-agreements", user=self.owner, action={"get": "list"})
        self.assertEqual(response.status_code, 200)
        rows = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual([row["franchisee_id"] for row in rows], [self.franchisee.id])

    def test_close_action(self):
        agreement = services.create_agreement(self.franchisee, "2025-01-01")
        response = self._call(
            "post", f"/api/v1/franchise-agreements/{agreement.id}/close", {"end_date": "2025-12-01"},
            action={"post": "close"}, pk=agreement.id,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(FranchiseAgreement.objects.get(pk=agreement.id).end_date, date(2025, 12, 1))
