"""
Purchase-order lifecycle through procurement.services against the database.
"""
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db.models import F
from django.test import TestCase, override_settings

from catalog.models import Product
from common import errors
from common.roles import NetworkRole
from franchisees.models import Franchisee, FranchiseUser
from procurement import services
from procurement.models import PurchaseOrder, Warehouse
from procurement.workflow import PurchaseOrderStatus

User = get_user_model()


class ProcurementTestBase(TestCase):
    """Shared fixtures: one franchisee, one warehouse, a core and a free product."""

    def setUp(self):
        self.franchisee = Franchisee.objects.create(code="lyon-01", name="Lyon Part-Dieu")
        self.other_franchisee = Franchisee.objects.create(code="paris-02", name="Paris Bastille")
        self.warehouse = Warehouse.objects.create(code="wh-south", name="South Warehouse")
        self.core = Product.objects.create(sku="CORE-BUN", name="Brioche bun", is_core_item=True)
        self.free = Product.objects.create(
            sku="FREE-HERB", name="Local herbs", is_core_item=False, default_tax_rate_pct=Decimal("20.00")
        )

        self.owner = User.objects.create_user(username="owner", email="owner@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.owner, franchisee=self.franchisee, role=NetworkRole.FRANCHISEE_OWNER)
        self.approver = User.objects.create_user(username="buyer", email="buyer@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.approver, role=NetworkRole.HQ_PROCUREMENT)
        self.finance = User.objects.create_user(username="finance", email="fin@example.com", password="test-pass")
        FranchiseUser.objects.create(user=self.finance, role=NetworkRole.HQ_FINANCE)

    def core_line(self, price="80.00", quantity="1"):
        return {"product_id": self.core.id, "quantity": quantity, "unit_price_excl_tax": price}

    def free_line(self, price="20.00", quantity="1"):
        return {"product_id": self.free.id, "quantity": quantity, "unit_price_excl_tax": price}

    def make_order(self, lines=None):
        if lines is None:
            lines = [self.core_line(), self.free_line()]
        return services.create_order(self.franchisee.id, self.warehouse.id, lines=lines, actor=self.owner)

    def submitted_order(self):
        order = self.make_order()
        return services.submit_order(order.id, actor=self.owner)


class CreateAndEditTests(ProcurementTestBase):
    def test_create_order_is_draft_with_totals(self):
        order = self.make_order()
        order.refresh_from_db()
        self.assertEqual(order.status, PurchaseOrderStatus.DRAFT)
        self.assertEqual(order.po_number, f"PO-{order.id:06d}")
        self.assertEqual(order.total_excl_tax, Decimal("100.00"))
        self.assertEqual(order.core_pct, Decimal("80.0000"))
        self.assertEqual(order.created_by, self.owner)

    def test_line_takes_catalog_classification_and_tax(self):
        order = self.make_order()
        lines = list(order.lines.all())
        self.assertEqual([ln.is_core_item for ln in lines], [True, False])
        self.assertEqual(lines[1].tax_rate_pct, Decimal("20.00"))
        self.assertEqual([ln.position for ln in lines], [0, 1])

    def test_contradicting_core_flag_rejected(self):
        payload = dict(self.free_line(), is_core_item=True)
        with self.assertRaises(errors.ValidationError) as ctx:
            self.make_order([payload])
        self.assertEqual(ctx.exception.details["field"], "is_core_item")

    def test_unknown_product_rejected(self):
        with self.assertRaises(errors.ValidationError):
            self.make_order([{"product_id": 999999, "quantity": "1", "unit_price_excl_tax": "1.00"}])
        self.assertFalse(PurchaseOrder.objects.exists())

    def test_inactive_product_rejected(self):
        self.free.is_active = False
        self.free.save()
        with self.assertRaises(errors.ValidationError):
            self.make_order([self.free_line()])

    def test_negative_quantity_rejected(self):
        with self.assertRaises(errors.ValidationError):
            self.make_order([self.core_line(quantity="-2")])

    def test_too_many_decimals_rejected(self):
        with self.assertRaises(errors.ValidationError):
            self.make_order([self.core_line(price="1.005")])

    def test_unknown_warehouse(self):
        with self.assertRaises(errors.ValidationError):
            services.create_order(self.franchisee.id, 424242)

    def test_add_update_remove_keep_totals_in_sync(self):
        order = self.make_order([self.core_line()])
        self.assertEqual(order.core_pct, Decimal("100.0000"))

        line = services.add_line(order.id, self.free_line(price="20.00"))
        order.refresh_from_db()
        self.assertEqual(order.total_excl_tax, Decimal("100.00"))
        self.assertEqual(order.core_pct, Decimal("80.0000"))
        self.assertEqual(line.position, 1)

        services.update_line(line.id, {"quantity": "2"})
        order.refresh_from_db()
        self.assertEqual(order.total_excl_tax, Decimal("120.00"))
        self.assertEqual(order.core_pct, Decimal("66.6667"))

        services.remove_line(line.id)
        order.refresh_from_db()
        self.assertEqual(order.total_excl_tax, Decimal("80.00"))
        self.assertEqual(order.lines.count(), 1)

    def test_every_mutation_bumps_version(self):
        order = self.make_order([self.core_line()])
        start = PurchaseOrder.objects.get(pk=order.pk).version
        services.add_line(order.id, self.core_line())
        self.assertEqual(PurchaseOrder.objects.get(pk=order.pk).version, start + 1)

    def test_expected_version_mismatch_conflicts(self):
        order = self.make_order()
        current = PurchaseOrder.objects.get(pk=order.pk).version
        with self.assertRaises(errors.ConflictError) as ctx:
            services.add_line(order.id, self.core_line(), expected_version=current - 1)
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(ctx.exception.details["current_version"], current)

    def test_replace_lines(self):
        order = self.make_order()
        services.replace_lines(order.id, [self.core_line(price="10.00")], notes="urgent")
        order.refresh_from_db()
        self.assertEqual(order.lines.count(), 1)
        self.assertEqual(order.total_excl_tax, Decimal("10.00"))
        self.assertEqual(order.notes, "urgent")

    def test_delete_draft(self):
        order = self.make_order()
        services.delete_order(order.id)
        self.assertFalse(PurchaseOrder.objects.filter(pk=order.pk).exists())

    def test_missing_order(self):
        with self.assertRaises(errors.NotFound):
            services.submit_order(987654)


class SubmitTests(ProcurementTestBase):
    def test_exactly_eighty_percent_submits(self):
        order = self.make_order()
        order = services.submit_order(order.id, actor=self.owner)
        order.refresh_from_db()
        self.assertEqual(order.status, PurchaseOrderStatus.SUBMITTED)
        self.assertIsNotNone(order.submitted_at)
        self.assertEqual(order.core_pct, Decimal("80.0000"))
        self.assertEqual(order.total_excl_tax, Decimal("100.00"))

    def test_seventy_nine_percent_refused(self):
        order = self.make_order([self.core_line("79.00"), self.free_line("21.00")])
        with self.assertRaises(errors.InsufficientCoreRatio) as ctx:
            services.submit_order(order.id)
        exc = ctx.exception
        self.assertEqual(exc.details["core_pct"], Decimal("79.00"))
        self.assertEqual(exc.details["required_pct"], Decimal("80"))
        self.assertEqual(exc.http_status, 422)
        self.assertEqual(PurchaseOrder.objects.get(pk=order.pk).status, PurchaseOrderStatus.DRAFT)

    def test_seventy_nine_point_nine_refused(self):
        order = self.make_order([self.core_line("79.90"), self.free_line("20.10")])
        with self.assertRaises(errors.InsufficientCoreRatio) as ctx:
            services.submit_order(order.id)
        self.assertIn("79.90%", ctx.exception.message)

    def test_empty_order_refused(self):
        order = self.make_order([])
        with self.assertRaises(errors.EmptyOrder):
            services.submit_order(order.id)

    def test_zero_total_refused(self):
        order = self.make_order([self.core_line(price="0.00")])
        with self.assertRaises(errors.InsufficientCoreRatio) as ctx:
            services.submit_order(order.id)
        self.assertIsNone(ctx.exception.details["core_pct"])

    @override_settings(PROCUREMENT_MIN_CORE_PCT="90")
    def test_threshold_from_settings(self):
        order = self.make_order()
        with self.assertRaises(errors.InsufficientCoreRatio):
            services.submit_order(order.id)

    def test_resubmit_refused(self):
        order = self.submitted_order()
        with self.assertRaises(errors.OrderNotEditable):
            services.submit_order(order.id)

    def test_reclassification_during_draft_applies_at_submit(self):
        order = self.make_order()
        Product.objects.filter(pk=self.core.pk).update(is_core_item=False)
        with self.assertRaises(errors.InsufficientCoreRatio) as ctx:
            services.submit_order(order.id)
        self.assertEqual(ctx.exception.details["core_pct"], Decimal("0"))
        self.assertEqual(PurchaseOrder.objects.get(pk=order.pk).status, PurchaseOrderStatus.DRAFT)

    def test_submit_freezes_current_classification_on_lines(self):
        order = self.make_order()
        Product.objects.filter(pk=self.free.pk).update(is_core_item=True)
        services.submit_order(order.id)
        order.refresh_from_db()
        self.assertEqual(order.core_pct, Decimal("100.0000"))
        self.assertEqual(list(order.lines.values_list("is_core_item", flat=True)), [True, True])

    def test_concurrent_write_makes_submit_conflict(self):
        order = self.make_order()
        stale = PurchaseOrder.objects.get(pk=order.pk)
        # Another writer commits between our read and our write
        PurchaseOrder.objects.filter(pk=order.pk).update(version=F("version") + 1)
        with mock.patch.object(services, "_lock_order", return_value=stale):
            with self.assertRaises(errors.ConflictError) as ctx:
                services.submit_order(order.id)
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(ctx.exception.http_status, 409)
        current = PurchaseOrder.objects.get(pk=order.pk)
        self.assertEqual(current.status, PurchaseOrderStatus.DRAFT)
        self.assertIsNone(current.submitted_at)
        self.assertEqual(current.version, stale.version + 1)

    def test_snapshot_survives_catalog_change(self):
        order = self.submitted_order()
        self.free.is_core_item = True
        self.free.save()
        order.refresh_from_db()
        self.assertEqual(order.core_pct, Decimal("80.0000"))

    def test_lines_locked_after_submit(self):
        order = self.submitted_order()
        line = order.lines.first()
        with self.assertRaises(errors.OrderNotEditable):
            services.add_line(order.id, self.core_line())
        with self.assertRaises(errors.OrderNotEditable):
            services.update_line(line.id, {"quantity": "3"})
        with self.assertRaises(errors.OrderNotEditable):
            services.remove_line(line.id)
        with self.assertRaises(errors.OrderNotEditable):
            services.replace_lines(order.id, [self.core_line()])
        with self.assertRaises(errors.OrderNotEditable):
            services.delete_order(order.id)


class TransitionTests(ProcurementTestBase):
    def test_full_lifecycle(self):
        order = self.make_order()
        services.transition_order(order.id, "submit", actor=self.owner)
        services.transition_order(order.id, "approve", actor=self.approver)
        services.transition_order(order.id, "mark-ready", actor=self.approver)
        services.transition_order(order.id, "mark-delivered", actor=self.approver)
        order.refresh_from_db()
        self.assertEqual(order.status, PurchaseOrderStatus.DELIVERED)
        self.assertEqual(order.approved_by, self.approver)
        for stamp in ("submitted_at", "approved_at", "ready_at", "delivered_at"):
            self.assertIsNotNone(getattr(order, stamp), stamp)

    def test_submit_event_runs_guard(self):
        order = self.make_order([self.core_line("10.00"), self.free_line("90.00")])
        with self.assertRaises(errors.InsufficientCoreRatio):
            services.transition_order(order.id, "submit")

    def test_approve_requires_capability(self):
        order = self.submitted_order()
        for actor in (self.owner, self.finance, None):
            with self.assertRaises(errors.ApprovalNotPermitted):
                services.transition_order(order.id, "approve", actor=actor)
        self.assertEqual(PurchaseOrder.objects.get(pk=order.pk).status, PurchaseOrderStatus.SUBMITTED)

    def test_superuser_can_approve(self):
        admin = User.objects.create_superuser(username="root", email="root@example.com", password="test-pass")
        order = self.submitted_order()
        order = services.transition_order(order.id, "approve", actor=admin)
        self.assertEqual(order.status, PurchaseOrderStatus.PREPARING)

    def test_reject_records_reason(self):
        order = self.submitted_order()
        services.transition_order(order.id, "reject", actor=self.approver, reason="  Out of season  ")
        order.refresh_from_db()
        self.assertEqual(order.status, PurchaseOrderStatus.CANCELLED)
        self.assertEqual(order.rejection_reason, "Out of season")
        self.assertIsNotNone(order.cancelled_at)

    def test_mark_ready_from_draft(self):
        order = self.make_order()
        with self.assertRaises(errors.InvalidTransition) as ctx:
            services.transition_order(order.id, "mark-ready", actor=self.approver)
        self.assertEqual(ctx.exception.details["allowed_events"], ["submit"])

    def test_terminal_orders_reject_everything(self):
        order = self.submitted_order()
        services.transition_order(order.id, "reject", actor=self.approver)
        for event in ("submit", "approve", "reject", "mark-ready", "mark-delivered"):
            with self.assertRaises(errors.InvalidTransition):
                services.transition_order(order.id, event, actor=self.approver)

    def test_set_order_status(self):
        order = self.submitted_order()
        order = services.set_order_status(order.id, "PREPARING", actor=self.approver)
        self.assertEqual(order.status, PurchaseOrderStatus.PREPARING)
        with self.assertRaises(errors.InvalidTransition):
            services.set_order_status(order.id, "DELIVERED", actor=self.approver)

    def test_stale_version_on_transition(self):
        order = self.submitted_order()
        with self.assertRaises(errors.ConflictError):
            services.transition_order(order.id, "approve", actor=self.approver, expected_version=1)
