"""
Calculator and state-table tests. Neither touches the database.
"""
from decimal import Decimal

from django.test import SimpleTestCase

from common import errors
from procurement import workflow
from procurement.ratios import compute_ratios, line_amount
from procurement.workflow import PurchaseOrderEvent, PurchaseOrderStatus


def line(quantity, price, core, tax=None):
    data = {"quantity": quantity, "unit_price_excl_tax": price, "is_core_item": core}
    if tax is not None:
        data["tax_rate_pct"] = tax
    return data


class ComputeRatiosTests(SimpleTestCase):
    def test_eighty_twenty_is_compliant(self):
        result = compute_ratios([line("1", "80.00", True), line("1", "20.00", False)])
        self.assertEqual(result.core_amount, Decimal("80.00"))
        self.assertEqual(result.free_amount, Decimal("20.00"))
        self.assertEqual(result.total_amount, Decimal("100.00"))
        self.assertEqual(result.core_pct, Decimal("80"))
        self.assertTrue(result.is_compliant(Decimal("80")))

    def test_seventy_nine_is_not_compliant(self):
        result = compute_ratios([line("1", "79.00", True), line("1", "21.00", False)])
        self.assertEqual(result.core_pct, Decimal("79"))
        self.assertFalse(result.is_compliant(Decimal("80")))

    def test_just_below_threshold_is_not_rounded_up(self):
        result = compute_ratios([line("1", "79.99", True), line("1", "20.01", False)])
        self.assertEqual(result.core_pct_display, Decimal("80.0"))
        self.assertFalse(result.is_compliant(Decimal("80")))
        self.assertEqual(result.core_pct_floor(), Decimal("79.99"))

    def test_seventy_nine_point_nine(self):
        result = compute_ratios([line("1", "79.90", True), line("1", "20.10", False)])
        self.assertFalse(result.is_compliant())

    def test_amounts_add_up(self):
        cases = [
            [line("3", "0.333", True), line("7", "1.115", False)],
            [line("1.5", "0.35", True)],
            [line("2", "10.00", False), line("0.125", "19.99", True), line("4", "0.01", True)],
        ]
        for lines in cases:
            result = compute_ratios(lines)
            self.assertEqual(result.core_amount + result.free_amount, result.total_amount)
            self.assertEqual(result.core_pct + result.free_pct, Decimal("100"))

    def test_line_amount_rounds_half_up_per_line(self):
        self.assertEqual(line_amount(Decimal("1.5"), Decimal("0.35")), Decimal("0.53"))
        self.assertEqual(line_amount(Decimal("3"), Decimal("0.333")), Decimal("1.00"))
        result = compute_ratios([line("1.5", "0.35", True), line("1.5", "0.35", True)])
        self.assertEqual(result.total_amount, Decimal("1.06"))

    def test_core_pct_keeps_full_precision(self):
        result = compute_ratios([line("2", "1.00", True), line("1", "1.00", False)])
        self.assertEqual(result.core_pct_display, Decimal("66.7"))
        self.assertTrue(Decimal("66.66") < result.core_pct < Decimal("66.67"))
        self.assertEqual(result.core_pct_snapshot, Decimal("66.6667"))

    def test_zero_total_has_undefined_share(self):
        result = compute_ratios([line("5", "0.00", True)])
        self.assertEqual(result.total_amount, Decimal("0.00"))
        self.assertIsNone(result.core_pct)
        self.assertIsNone(result.free_pct)
        self.assertFalse(result.is_compliant())

    def test_no_lines(self):
        result = compute_ratios([])
        self.assertEqual(result.line_count, 0)
        self.assertIsNone(result.core_pct)

    def test_tax_totals(self):
        result = compute_ratios([line("2", "10.00", True, tax="5.50"), line("1", "5.00", False, tax="20")])
        self.assertEqual(result.tax_amount, Decimal("2.10"))
        self.assertEqual(result.total_incl_tax, Decimal("27.10"))

    def test_accepts_objects(self):
        class Row:
            quantity = Decimal("2")
            unit_price_excl_tax = Decimal("4.00")
            tax_rate_pct = Decimal("0")
            is_core_item = True

        result = compute_ratios([Row()])
        self.assertEqual(result.core_amount, Decimal("8.00"))
        self.assertEqual(result.core_pct, Decimal("100"))

    def test_negative_quantity_names_line(self):
        with self.assertRaises(errors.ValidationError) as ctx:
            compute_ratios([line("1", "1.00", True), line("-1", "1.00", True)])
        self.assertEqual(ctx.exception.details["line"], 1)
        self.assertEqual(ctx.exception.details["field"], "quantity")

    def test_zero_quantity_rejected(self):
        with self.assertRaises(errors.ValidationError):
            compute_ratios([line("0", "1.00", True)])

    def test_negative_price_rejected(self):
        with self.assertRaises(errors.ValidationError) as ctx:
            compute_ratios([line("1", "-0.01", False)])
        self.assertEqual(ctx.exception.details["field"], "unit_price_excl_tax")

    def test_float_rejected(self):
        with self.assertRaises(errors.ValidationError):
            compute_ratios([line(1, 0.1, True)])

    def test_missing_core_flag_rejected(self):
        with self.assertRaises(errors.ValidationError):
            compute_ratios([{"quantity": "1", "unit_price_excl_tax": "1.00"}])

    def test_deterministic(self):
        lines = [line("3", "12.34", True), line("1", "9.99", False)]
        self.assertEqual(compute_ratios(lines), compute_ratios(lines))

    def test_as_dict_uses_strings(self):
        data = compute_ratios([line("1", "80.00", True), line("1", "20.00", False)]).as_dict()
        self.assertEqual(data["core_amount"], "80.00")
        self.assertEqual(data["core_pct"], "80.0000")
        self.assertEqual(data["core_pct_display"], "80.0")
        self.assertEqual(data["line_count"], 2)


class WorkflowTableTests(SimpleTestCase):
    def test_draft_only_allows_submit(self):
        self.assertEqual(workflow.allowed_events(PurchaseOrderStatus.DRAFT), ["submit"])

    def test_happy_path(self):
        status = PurchaseOrderStatus.DRAFT
        for event in ("submit", "approve", "mark-ready", "mark-delivered"):
            status = workflow.next_status(status, event)
        self.assertEqual(status, PurchaseOrderStatus.DELIVERED)

    def test_reject_cancels(self):
        self.assertEqual(
            workflow.next_status(PurchaseOrderStatus.SUBMITTED, PurchaseOrderEvent.REJECT),
            PurchaseOrderStatus.CANCELLED,
        )

    def test_mark_ready_from_draft_lists_submit(self):
        with self.assertRaises(errors.InvalidTransition) as ctx:
            workflow.next_status("DRAFT", "mark-ready")
        exc = ctx.exception
        self.assertEqual(exc.details["status"], "DRAFT")
        self.assertEqual(exc.details["event"], "mark-ready")
        self.assertEqual(exc.details["allowed_events"], ["submit"])
        self.assertEqual(exc.http_status, 409)

    def test_terminal_states_reject_every_event(self):
        for status in (PurchaseOrderStatus.DELIVERED, PurchaseOrderStatus.CANCELLED):
            self.assertTrue(workflow.is_terminal(status))
            for event in PurchaseOrderEvent.values:
                with self.assertRaises(errors.InvalidTransition) as ctx:
                    workflow.next_status(status, event)
                self.assertEqual(ctx.exception.details["allowed_events"], [])
                self.assertIn("terminal", ctx.exception.message)

    def test_unknown_event(self):
        with self.assertRaises(errors.InvalidTransition):
            workflow.next_status("SUBMITTED", "ship")

    def test_event_for_target(self):
        self.assertEqual(workflow.event_for_target("SUBMITTED", "CANCELLED"), "reject")
        self.assertEqual(workflow.event_for_target("PREPARING", "READY"), "mark-ready")
        with self.assertRaises(errors.InvalidTransition) as ctx:
            workflow.event_for_target("DRAFT", "DELIVERED")
        self.assertEqual(ctx.exception.details["allowed_events"], ["submit"])

    def test_only_draft_is_editable(self):
        self.assertEqual(
            [s for s in PurchaseOrderStatus.values if workflow.is_editable(s)],
            ["DRAFT"],
        )
