"""
HTTP surface of the procurement engine.
"""
from rest_framework.test import APIRequestFactory, force_authenticate

from catalog.models import Product
from procurement import services
from procurement.api import (
    PurchaseOrderDetailView,
    PurchaseOrderLineCreateView,
    PurchaseOrderLineDetailView,
    PurchaseOrderListCreateView,
    PurchaseOrderStatusView,
    PurchaseOrderSubmitView,
    PurchaseOrderTransitionView,
    RatioPreviewView,
)
from procurement.models import PurchaseOrder
from procurement.tests_services import ProcurementTestBase


class ProcurementApiTests(ProcurementTestBase):
    def setUp(self):
        super().setUp()
        self.factory = APIRequestFactory()

    def _request(self, method, path, data=None, user=None):
        if method == "GET":
            request = self.factory.get(path, data or {})
        elif method == "POST":
            request = self.factory.post(path, data or {}, format="json")
        elif method == "PUT":
            request = self.factory.put(path, data or {}, format="json")
        elif method == "DELETE":
            request = self.factory.delete(path, data or {}, format="json")
        else:
            raise ValueError(f"Unsupported method: {method}")
        force_authenticate(request, user=user or self.owner)
        return request

    def test_ratio_preview(self):
        request = self._request("POST", "/api/v1/procurement/ratios", {
            "lines": [
                {"product_id": self.core.id, "quantity": "1", "unit_price_excl_tax": "79.00"},
                {"is_core_item": False, "quantity": "1", "unit_price_excl_tax": "21.00"},
            ],
        })
        response = RatioPreviewView.as_view()(request)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["core_amount"], "79.00")
        self.assertEqual(response.data["core_pct_display"], "79.0")
        self.assertEqual(response.data["min_core_pct"], "80")
        self.assertFalse(response.data["is_compliant"])
        self.assertFalse(PurchaseOrder.objects.exists())

    def test_ratio_preview_negative_quantity(self):
        request = self._request("POST", "/api/v1/procurement/ratios", {
            "lines": [{"is_core_item": True, "quantity": "-1", "unit_price_excl_tax": "1.00"}],
        })
        response = RatioPreviewView.as_view()(request)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "validation_error")
        self.assertEqual(response.data["line"], 0)

    def test_franchisee_creates_order_for_itself(self):
        request = self._request("POST", "/api/v1/procurement/purchase-orders", {
            "warehouse_id": self.warehouse.id,
            "lines": [self.core_line(), self.free_line()],
        })
        response = PurchaseOrderListCreateView.as_view()(request)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["status"], "DRAFT")
        self.assertEqual(response.data["franchisee"]["id"], self.franchisee.id)
        self.assertEqual(response.data["core_pct"], "80.0000")
        self.assertEqual(response.data["allowed_events"], ["submit"])
        self.assertEqual(len(response.data["lines"]), 2)

    def test_franchisee_cannot_order_for_another(self):
        request = self._request("POST", "/api/v1/procurement/purchase-orders", {
            "franchisee_id": self.other_franchisee.id,
            "warehouse_id": self.warehouse.id,
        })
        response = PurchaseOrderListCreateView.as_view()(request)
        self.assertEqual(response.status_code, 403)

    def test_list_is_scoped(self):
        self.make_order()
        services.create_order(self.other_franchisee.id, self.warehouse.id, lines=[self.core_line()])

        response = PurchaseOrderListCreateView.as_view()(self._request("GET", "/api/v1/procurement/purchase-orders"))
        self.assertEqual(response.data["count"], 1)

        response = PurchaseOrderListCreateView.as_view()(
            self._request("GET", "/api/v1/procurement/purchase-orders", user=self.approver)
        )
        self.assertEqual(response.data["count"], 2)

    def test_list_rejects_non_numeric_paging(self):
        for params in ({"page": "abc"}, {"page_size": "1.5"}, {"franchisee_id": "x"}):
            with self.subTest(params=params):
                response = PurchaseOrderListCreateView.as_view()(
                    self._request("GET", "/api/v1/procurement/purchase-orders", params, user=self.approver)
                )
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.data["field"], next(iter(params)))

    def test_detail_reports_live_catalog_classification(self):
        order = self.make_order()
        Product.objects.filter(pk=self.core.pk).update(is_core_item=False)
        response = PurchaseOrderDetailView.as_view()(
            self._request("GET", f"/api/v1/procurement/purchase-orders/{order.id}"), pk=order.id
        )
        self.assertEqual(response.data["ratios"]["core_amount"], "0.00")

    def test_other_franchisee_order_is_not_found(self):
        order = services.create_order(self.other_franchisee.id, self.warehouse.id, lines=[self.core_line()])
        request = self._request("GET", f"/api/v1/procurement/purchase-orders/{order.id}")
        response = PurchaseOrderDetailView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 404)

    def test_submit_below_threshold_is_422(self):
        order = self.make_order([self.core_line("79.00"), self.free_line("21.00")])
        request = self._request("POST", f"/api/v1/procurement/purchase-orders/{order.id}/submit")
        response = PurchaseOrderSubmitView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data["code"], "insufficient_core_ratio")
        self.assertEqual(response.data["core_pct"], "79.00")
        self.assertEqual(response.data["required_pct"], "80")

    def test_submit_empty_is_422(self):
        order = self.make_order([])
        request = self._request("POST", f"/api/v1/procurement/purchase-orders/{order.id}/submit")
        response = PurchaseOrderSubmitView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.data["code"], "empty_order")

    def test_submit_and_approve(self):
        order = self.make_order()
        request = self._request("POST", f"/api/v1/procurement/purchase-orders/{order.id}/submit")
        response = PurchaseOrderSubmitView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "SUBMITTED")

        request = self._request(
            "POST", f"/api/v1/procurement/purchase-orders/{order.id}/transition", {"event": "approve"}
        )
        response = PurchaseOrderTransitionView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data["code"], "approval_not_permitted")

        request = self._request(
            "POST", f"/api/v1/procurement/purchase-orders/{order.id}/transition",
            {"event": "approve"}, user=self.approver,
        )
        response = PurchaseOrderTransitionView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "PREPARING")
        self.assertEqual(response.data["allowed_events"], ["mark-ready"])

    def test_invalid_transition_is_409(self):
        order = self.make_order()
        request = self._request(
            "POST", f"/api/v1/procurement/purchase-orders/{order.id}/transition", {"event": "mark-ready"}
        )
        response = PurchaseOrderTransitionView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "invalid_transition")
        self.assertEqual(response.data["allowed_events"], ["submit"])

    def test_status_endpoint(self):
        order = self.submitted_order()
        request = self._request(
            "PUT", f"/api/v1/procurement/purchase-orders/{order.id}/status",
            {"status": "cancelled", "reason": "duplicate"}, user=self.approver,
        )
        response = PurchaseOrderStatusView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "CANCELLED")
        self.assertEqual(response.data["rejection_reason"], "duplicate")

    def test_line_endpoints(self):
        order = self.make_order([self.core_line()])
        request = self._request(
            "POST", f"/api/v1/procurement/purchase-orders/{order.id}/lines", self.free_line(price="20.00")
        )
        response = PurchaseOrderLineCreateView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_excl_tax"], "100.00")
        line_id = response.data["lines"][1]["id"]

        request = self._request("PUT", f"/api/v1/procurement/purchase-order-lines/{line_id}", {"quantity": "3"})
        response = PurchaseOrderLineDetailView.as_view()(request, pk=line_id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_excl_tax"], "140.00")

        request = self._request("DELETE", f"/api/v1/procurement/purchase-order-lines/{line_id}")
        response = PurchaseOrderLineDetailView.as_view()(request, pk=line_id)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["lines"]), 1)

    def test_stale_version_is_retryable_conflict(self):
        order = self.make_order([self.core_line()])
        request = self._request(
            "POST", f"/api/v1/procurement/purchase-orders/{order.id}/lines",
            dict(self.free_line(), expected_version=1),
        )
        response = PurchaseOrderLineCreateView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 409)
        self.assertTrue(response.data["retryable"])
        self.assertEqual(response["Retry-After"], "1")

    def test_edit_after_submit_is_409(self):
        order = self.submitted_order()
        request = self._request(
            "PUT", f"/api/v1/procurement/purchase-orders/{order.id}", {"lines": [self.core_line()]}
        )
        response = PurchaseOrderDetailView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "order_not_editable")

    def test_delete_draft(self):
        order = self.make_order()
        request = self._request("DELETE", f"/api/v1/procurement/purchase-orders/{order.id}")
        response = PurchaseOrderDetailView.as_view()(request, pk=order.id)
        self.assertEqual(response.status_code, 204)
        self.assertFalse(PurchaseOrder.objects.filter(pk=order.id).exists())
