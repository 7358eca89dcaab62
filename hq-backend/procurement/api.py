# procurement/api.py
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product
from common import errors
from common.money import money_str
from common.params import int_param
from common.permissions import IsNetworkMember, can_act_for_franchisee, franchisee_scope
from .models import PurchaseOrder, PurchaseOrderLine
from .ratios import compute_ratios
from .serializers import (
    LineInputSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderReplaceSerializer,
    RatioPreviewSerializer,
    STATUS_CHOICES,
    StatusChangeSerializer,
    TransitionSerializer,
    VersionedSerializer,
)
from . import services, workflow


def _line_payload(ln):
    return {
        "id": ln.id,
        "position": ln.position,
        "product_id": ln.product_id,
        "sku": ln.product.sku,
        "product_name": ln.product.name,
        "quantity": str(ln.quantity),
        "unit_price_excl_tax": str(ln.unit_price_excl_tax),
        "tax_rate_pct": str(ln.tax_rate_pct),
        "is_core_item": ln.is_core_item,
        "line_amount_excl_tax": money_str(ln.line_amount_excl_tax),
        "line_tax_amount": money_str(ln.line_tax_amount),
    }


def _po_payload(po, with_lines=True):
    data = {
        "id": po.id,
        "po_number": po.po_number or "",
        "status": po.status,
        "version": po.version,
        "franchisee": {"id": po.franchisee_id, "code": po.franchisee.code, "name": po.franchisee.name},
        "warehouse": {"id": po.warehouse_id, "code": po.warehouse.code, "name": po.warehouse.name},
        "core_pct": str(po.core_pct) if po.core_pct is not None else None,
        "total_excl_tax": money_str(po.total_excl_tax),
        "allowed_events": workflow.allowed_events(po.status),
        "notes": po.notes or "",
        "rejection_reason": po.rejection_reason or "",
        "created_at": po.created_at,
        "submitted_at": po.submitted_at,
        "approved_at": po.approved_at,
        "ready_at": po.ready_at,
        "delivered_at": po.delivered_at,
        "cancelled_at": po.cancelled_at,
    }
    if with_lines:
        lines = services.live_lines(po)
        data["lines"] = [_line_payload(ln) for ln in lines]
        # Live breakdown; for submitted orders core_pct above stays the snapshot
        data["ratios"] = compute_ratios(lines).as_dict() if lines else None
    return data


def _order_for(request, pk):
    po = PurchaseOrder.objects.select_related("franchisee", "warehouse").filter(pk=pk).first()
    # Orders of other franchisees are reported as missing
    if po is None or not can_act_for_franchisee(request.user, po.franchisee_id):
        raise errors.NotFound(f"Purchase order {pk} not found", order_id=pk)
    return po


def _reload(pk):
    return PurchaseOrder.objects.select_related("franchisee", "warehouse").get(pk=pk)


class RatioPreviewView(APIView):
    """
    POST /api/v1/procurement/ratios  { lines: [{product_id? | is_core_item?, quantity, unit_price_excl_tax, tax_rate_pct?}] }
    Same computation the submit guard runs; nothing is persisted.
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def post(self, request):
        ser = RatioPreviewSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        rows = ser.validated_data["lines"]

        product_ids = {row["product_id"] for row in rows if row.get("product_id")}
        products = {p.id: p for p in Product.objects.filter(id__in=product_ids, is_active=True)}

        lines = []
        for index, row in enumerate(rows):
            line = dict(row)
            product_id = row.get("product_id")
            if product_id:
                product = products.get(product_id)
                if product is None:
                    raise errors.ValidationError(
                        f"Line {index + 1}: unknown product {product_id}", line=index, field="product_id"
                    )
                line["is_core_item"] = product.is_core_item
                line.setdefault("tax_rate_pct", product.default_tax_rate_pct)
            lines.append(line)

        ratios = compute_ratios(lines)
        threshold = services.min_core_pct()
        data = ratios.as_dict()
        data["min_core_pct"] = str(threshold)
        data["is_compliant"] = ratios.is_compliant(threshold)
        return Response(data, status=200)


class PurchaseOrderListCreateView(APIView):
    """
    GET  /api/v1/procurement/purchase-orders?franchisee_id=&status=&page=&page_size=
    POST /api/v1/procurement/purchase-orders  { franchisee_id?, warehouse_id, notes?, lines? }
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def get(self, request):
        page = max(int_param(request, "page", 1), 1)
        page_size = min(max(int_param(request, "page_size", 24), 1), 200)
        status_f = (request.GET.get("status") or "").strip().upper()
        franchisee_id = int_param(request, "franchisee_id")

        qs = PurchaseOrder.objects.select_related("franchisee", "warehouse").order_by("-created_at", "-id")
        scope = franchisee_scope(request.user)
        if scope is not None:
            qs = qs.filter(franchisee_id=scope)
        if status_f:
            if status_f not in STATUS_CHOICES:
                return Response({"error": f"Unknown status {status_f}"}, status=400)
            qs = qs.filter(status=status_f)
        if franchisee_id:
            qs = qs.filter(franchisee_id=franchisee_id)

        total = qs.count()
        rows = qs[(page - 1) * page_size: page * page_size]
        return Response(
            {
                "results": [_po_payload(po, with_lines=False) for po in rows],
                "count": total,
                "page": page,
                "page_size": page_size,
            },
            status=200,
        )

    def post(self, request):
        ser = PurchaseOrderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        scope = franchisee_scope(request.user)
        franchisee_id = data.get("franchisee_id")
        if scope is None:
            if not franchisee_id:
                return Response({"error": "franchisee_id required"}, status=400)
        else:
            if franchisee_id and franchisee_id != scope:
                return Response({"error": "Cannot order for another franchisee"}, status=403)
            franchisee_id = scope

        po = services.create_order(
            franchisee_id=franchisee_id,
            warehouse_id=data["warehouse_id"],
            lines=data.get("lines") or [],
            actor=request.user,
            notes=data.get("notes") or "",
        )
        return Response(_po_payload(_reload(po.pk)), status=201)


class PurchaseOrderDetailView(APIView):
    """
    GET    /api/v1/procurement/purchase-orders/<id>
    PUT    /api/v1/procurement/purchase-orders/<id>  { lines, notes?, expected_version? }  (DRAFT only)
    DELETE /api/v1/procurement/purchase-orders/<id>  (DRAFT only)
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def get(self, request, pk):
        return Response(_po_payload(_order_for(request, pk)), status=200)

    def put(self, request, pk):
        _order_for(request, pk)
        ser = PurchaseOrderReplaceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        services.replace_lines(
            pk, data["lines"], expected_version=data.get("expected_version"), notes=data.get("notes")
        )
        return Response(_po_payload(_reload(pk)), status=200)

    def delete(self, request, pk):
        _order_for(request, pk)
        ser = VersionedSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        services.delete_order(pk, expected_version=ser.validated_data.get("expected_version"))
        return Response(status=204)


class PurchaseOrderLineCreateView(APIView):
    """
    POST /api/v1/procurement/purchase-orders/<id>/lines  { product_id, quantity, unit_price_excl_tax, tax_rate_pct?, expected_version? }
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def post(self, request, pk):
        _order_for(request, pk)
        ser = LineInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        version = VersionedSerializer(data=request.data)
        version.is_valid(raise_exception=True)
        services.add_line(pk, ser.validated_data, expected_version=version.validated_data.get("expected_version"))
        return Response(_po_payload(_reload(pk)), status=201)


class PurchaseOrderLineDetailView(APIView):
    """
    PUT    /api/v1/procurement/purchase-order-lines/<id>  { quantity?, unit_price_excl_tax?, tax_rate_pct?, product_id?, expected_version? }
    DELETE /api/v1/procurement/purchase-order-lines/<id>
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def _order_of_line(self, request, pk):
        line = PurchaseOrderLine.objects.filter(pk=pk).values("purchase_order_id").first()
        if line is None:
            raise errors.NotFound(f"Purchase order line {pk} not found", line_id=pk)
        try:
            return _order_for(request, line["purchase_order_id"])
        except errors.NotFound:
            raise errors.NotFound(f"Purchase order line {pk} not found", line_id=pk)

    def put(self, request, pk):
        po = self._order_of_line(request, pk)
        ser = LineInputSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        version = VersionedSerializer(data=request.data)
        version.is_valid(raise_exception=True)
        services.update_line(pk, ser.validated_data, expected_version=version.validated_data.get("expected_version"))
        return Response(_po_payload(_reload(po.pk)), status=200)

    def delete(self, request, pk):
        po = self._order_of_line(request, pk)
        version = VersionedSerializer(data=request.data or {})
        version.is_valid(raise_exception=True)
        services.remove_line(pk, expected_version=version.validated_data.get("expected_version"))
        return Response(_po_payload(_reload(po.pk)), status=200)


class PurchaseOrderSubmitView(APIView):
    """
    POST /api/v1/procurement/purchase-orders/<id>/submit  { expected_version? }
    422 when empty or below the core-items threshold, 409 when not DRAFT.
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def post(self, request, pk):
        _order_for(request, pk)
        ser = VersionedSerializer(data=request.data or {})
        ser.is_valid(raise_exception=True)
        services.submit_order(pk, actor=request.user, expected_version=ser.validated_data.get("expected_version"))
        return Response(_po_payload(_reload(pk)), status=200)


class PurchaseOrderTransitionView(APIView):
    """
    POST /api/v1/procurement/purchase-orders/<id>/transition  { event, reason?, expected_version? }
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def post(self, request, pk):
        _order_for(request, pk)
        ser = TransitionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        services.transition_order(
            pk,
            data["event"],
            actor=request.user,
            expected_version=data.get("expected_version"),
            reason=data.get("reason") or "",
        )
        return Response(_po_payload(_reload(pk)), status=200)


class PurchaseOrderStatusView(APIView):
    """
    PUT /api/v1/procurement/purchase-orders/<id>/status  { status, reason?, expected_version? }
    Status-oriented form of /transition: the target must be one event away.
    """
    permission_classes = [IsAuthenticated, IsNetworkMember]

    def put(self, request, pk):
        _order_for(request, pk)
        ser = StatusChangeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        services.set_order_status(
            pk,
            data["status"],
            actor=request.user,
            expected_version=data.get("expected_version"),
            reason=data.get("reason") or "",
        )
        return Response(_po_payload(_reload(pk)), status=200)
