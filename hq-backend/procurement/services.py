# procurement/services.py
"""
Purchase-order lifecycle service.

Every mutation runs inside ``transaction.atomic()`` with the order row locked
(``select_for_update``) and bumps ``version`` through a conditional UPDATE, so
two concurrent submits or a line edit racing a submit cannot both win. The
loser gets a ConflictError (retryable) instead of a partial state.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import OperationalError, connection, transaction
from django.db.models import F, Max
from django.utils import timezone

from catalog.models import Product
from common import errors
from common.money import parse_decimal
from common.permissions import can_approve_purchase_orders
from franchisees.models import Franchisee
from . import workflow
from .models import PurchaseOrder, PurchaseOrderLine, Warehouse
from .ratios import DEFAULT_MIN_CORE_PCT, compute_ratios
from .workflow import PurchaseOrderEvent, PurchaseOrderStatus

logger = logging.getLogger(__name__)

# Max decimal places accepted per line field (matches the columns)
LINE_SCALES = {"quantity": 3, "unit_price_excl_tax": 2, "tax_rate_pct": 2}


def min_core_pct():
    return Decimal(str(getattr(settings, "PROCUREMENT_MIN_CORE_PCT", DEFAULT_MIN_CORE_PCT)))


def _apply_lock_timeout():
    timeout_ms = int(getattr(settings, "PROCUREMENT_LOCK_TIMEOUT_MS", 3000))
    if connection.vendor != "postgresql" or timeout_ms <= 0:
        return
    with connection.cursor() as cursor:
        # Scoped to the current transaction
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [f"{timeout_ms}ms"])


def _lock_order(order_id, expected_version=None):
    """Fetch and row-lock an order. Must be called inside transaction.atomic()."""
    _apply_lock_timeout()
    try:
        order = PurchaseOrder.objects.select_for_update().get(pk=order_id)
    except PurchaseOrder.DoesNotExist:
        raise errors.NotFound(f"Purchase order {order_id} not found", order_id=order_id)
    except OperationalError as exc:
        logger.warning("Lock wait on purchase order %s failed: %s", order_id, exc)
        raise errors.LockTimeout(order_id=order_id) from exc
    if expected_version is not None and order.version != int(expected_version):
        raise errors.ConflictError(
            f"Purchase order {order_id} is at version {order.version}, expected {expected_version}",
            order_id=order_id,
            current_version=order.version,
        )
    return order


def _save_order(order, fields):
    """
    Persist ``fields`` and bump version, only if nobody else did in between.
    """
    values = {name: getattr(order, name) for name in fields}
    now = timezone.now()
    updated = PurchaseOrder.objects.filter(pk=order.pk, version=order.version).update(
        version=F("version") + 1, updated_at=now, **values
    )
    if not updated:
        raise errors.ConflictError(f"Purchase order {order.pk} was modified concurrently", order_id=order.pk)
    order.version += 1
    order.updated_at = now
    return order


def _ensure_editable(order):
    if not workflow.is_editable(order.status):
        raise errors.OrderNotEditable(order.status, order_id=order.pk)


def live_lines(order):
    """
    Lines of ``order`` as the ratio calculator should see them. Until the
    order is submitted the core flag is read from the catalog product, so a
    reclassification made while the order is DRAFT is taken into account.
    """
    lines = list(order.lines.select_related("product"))
    if workflow.is_editable(order.status):
        for line in lines:
            line.is_core_item = line.product.is_core_item
    return lines


def _refresh_totals(order):
    """Recompute the live core share and total of a DRAFT order."""
    ratios = compute_ratios(live_lines(order))
    order.core_pct = ratios.core_pct_snapshot
    order.total_excl_tax = ratios.total_amount
    return _save_order(order, ["core_pct", "total_excl_tax"])


def _check_scale(value, field, index):
    places = LINE_SCALES[field]
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > places:
        raise errors.ValidationError(
            f"Line {index + 1}: {field} accepts at most {places} decimal places", line=index, field=field, value=value
        )


def _line_values(data, index, current=None):
    """
    Validate a line payload (mapping) against the catalog.
    Returns the model field values for PurchaseOrderLine.
    """
    product_id = data.get("product_id", current.product_id if current else None)
    if product_id in (None, ""):
        raise errors.ValidationError(f"Line {index + 1}: product_id is required", line=index, field="product_id")
    try:
        product = Product.objects.get(pk=product_id, is_active=True)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise errors.ValidationError(
            f"Line {index + 1}: unknown product {product_id}", line=index, field="product_id", value=product_id
        )

    claimed = data.get("is_core_item")
    if claimed is not None and claimed != product.is_core_item:
        raise errors.ValidationError(
            f"Line {index + 1}: product {product.sku} is classified as "
            f"{'core' if product.is_core_item else 'free'} in the catalog",
            line=index,
            field="is_core_item",
        )

    def pick(field, fallback):
        if field in data and data[field] is not None:
            return parse_decimal(data[field], f"Line {index + 1}: {field}")
        return fallback

    quantity = pick("quantity", current.quantity if current else None)
    price = pick("unit_price_excl_tax", current.unit_price_excl_tax if current else None)
    if current is not None and current.product_id == product.id:
        default_tax = current.tax_rate_pct
    else:
        default_tax = product.default_tax_rate_pct
    tax_rate = pick("tax_rate_pct", default_tax)

    if quantity is None:
        raise errors.ValidationError(f"Line {index + 1}: quantity is required", line=index, field="quantity")
    if price is None:
        raise errors.ValidationError(
            f"Line {index + 1}: unit_price_excl_tax is required", line=index, field="unit_price_excl_tax"
        )
    if quantity <= 0:
        raise errors.ValidationError(
            f"Line {index + 1}: quantity must be greater than 0", line=index, field="quantity", value=quantity
        )
    if price < 0:
        raise errors.ValidationError(
            f"Line {index + 1}: unit_price_excl_tax must not be negative", line=index, field="unit_price_excl_tax", value=price
        )
    if tax_rate < 0:
        raise errors.ValidationError(
            f"Line {index + 1}: tax_rate_pct must not be negative", line=index, field="tax_rate_pct", value=tax_rate
        )
    _check_scale(quantity, "quantity", index)
    _check_scale(price, "unit_price_excl_tax", index)
    _check_scale(tax_rate, "tax_rate_pct", index)

    return {
        "product": product,
        "quantity": quantity,
        "unit_price_excl_tax": price,
        "tax_rate_pct": tax_rate,
        "is_core_item": product.is_core_item,
    }


def _write_lines(order, lines, start_position=0):
    created = []
    for offset, data in enumerate(lines):
        values = _line_values(data, start_position + offset)
        created.append(
            PurchaseOrderLine.objects.create(purchase_order=order, position=start_position + offset, **values)
        )
    return created


# ---------- creation & line edits (DRAFT only) ----------

def create_order(franchisee_id, warehouse_id, lines=(), actor=None, notes=""):
    """
    Create a DRAFT purchase order, optionally with its first lines.

    Raises:
        ValidationError: unknown/inactive franchisee, warehouse or product, bad line values
    """
    try:
        franchisee = Franchisee.objects.get(pk=franchisee_id, is_active=True)
    except (Franchisee.DoesNotExist, ValueError, TypeError):
        raise errors.ValidationError(f"Unknown franchisee {franchisee_id}", field="franchisee_id")
    try:
        warehouse = Warehouse.objects.get(pk=warehouse_id, is_active=True)
    except (Warehouse.DoesNotExist, ValueError, TypeError):
        raise errors.ValidationError(f"Unknown warehouse {warehouse_id}", field="warehouse_id")

    with transaction.atomic():
        order = PurchaseOrder.objects.create(
            franchisee=franchisee,
            warehouse=warehouse,
            notes=(notes or "").strip(),
            created_by=actor if getattr(actor, "pk", None) else None,
        )
        order.assign_po_number()
        _write_lines(order, list(lines or ()))
        _refresh_totals(order)

    logger.info("Created purchase order %s for franchisee %s", order.po_number, franchisee.id)
    return order


def add_line(order_id, data, expected_version=None):
    with transaction.atomic():
        order = _lock_order(order_id, expected_version)
        _ensure_editable(order)
        last = order.lines.aggregate(last=Max("position"))["last"]
        position = 0 if last is None else last + 1
        line = _write_lines(order, [data], start_position=position)[0]
        _refresh_totals(order)
    return line


def update_line(line_id, data, expected_version=None):
    line = _get_line(line_id)
    with transaction.atomic():
        order = _lock_order(line.purchase_order_id, expected_version)
        _ensure_editable(order)
        line = PurchaseOrderLine.objects.get(pk=line.pk)
        values = _line_values(data, line.position, current=line)
        for field, value in values.items():
            setattr(line, field, value)
        line.save()
        _refresh_totals(order)
    return line


def remove_line(line_id, expected_version=None):
    line = _get_line(line_id)
    with transaction.atomic():
        order = _lock_order(line.purchase_order_id, expected_version)
        _ensure_editable(order)
        PurchaseOrderLine.objects.filter(pk=line.pk).delete()
        _refresh_totals(order)
    return order


def replace_lines(order_id, lines, expected_version=None, notes=None):
    """Replace every line of a DRAFT order (PUT semantics)."""
    with transaction.atomic():
        order = _lock_order(order_id, expected_version)
        _ensure_editable(order)
        order.lines.all().delete()
        _write_lines(order, list(lines or ()))
        if notes is not None:
            order.notes = notes.strip()
            _save_order(order, ["notes"])
        _refresh_totals(order)
    return order


def delete_order(order_id, expected_version=None):
    with transaction.atomic():
        order = _lock_order(order_id, expected_version)
        _ensure_editable(order)
        order.delete()
    logger.info("Deleted draft purchase order %s", order_id)


def _get_line(line_id):
    try:
        return PurchaseOrderLine.objects.only("id", "purchase_order_id").get(pk=line_id)
    except (PurchaseOrderLine.DoesNotExist, ValueError, TypeError):
        raise errors.NotFound(f"Purchase order line {line_id} not found", line_id=line_id)


# ---------- lifecycle ----------

def check_compliance(order, lines=None):
    """
    Run the submit guard on the live lines of ``order`` without changing it.
    Returns the RatioResult.

    Raises:
        EmptyOrder, InsufficientCoreRatio
    """
    if lines is None:
        lines = live_lines(order)
    if not lines:
        raise errors.EmptyOrder(order_id=order.pk)
    ratios = compute_ratios(lines)
    required = min_core_pct()
    if not ratios.is_compliant(required):
        raise errors.InsufficientCoreRatio(
            core_pct=ratios.core_pct_floor(),
            required_pct=required,
            order_id=order.pk,
            core_amount=ratios.core_amount,
            total_amount=ratios.total_amount,
        )
    return ratios


def _submit_locked(order, actor=None):
    lines = live_lines(order)
    try:
        ratios = check_compliance(order, lines)
    except errors.ComplianceError as exc:
        logger.info("Refused submit of purchase order %s: %s", order.pk, exc.message)
        raise

    # Freeze the classification the guard ran on
    PurchaseOrderLine.objects.bulk_update(lines, ["is_core_item"])
    order.status = PurchaseOrderStatus.SUBMITTED
    order.submitted_at = timezone.now()
    # Snapshot: kept even if the catalog classification changes later
    order.core_pct = ratios.core_pct_snapshot
    order.total_excl_tax = ratios.total_amount
    _save_order(order, ["status", "submitted_at", "core_pct", "total_excl_tax"])
    logger.info(
        "Purchase order %s submitted (core %s%%, total %s)",
        order.pk, ratios.core_pct_display, ratios.total_amount,
    )
    return order


def submit_order(order_id, actor=None, expected_version=None):
    """
    DRAFT -> SUBMITTED once the order has lines and a core share >= the threshold.

    Raises:
        OrderNotEditable: the order already left DRAFT
        EmptyOrder: no lines
        InsufficientCoreRatio: core share undefined or below the threshold
    """
    with transaction.atomic():
        order = _lock_order(order_id, expected_version)
        if not workflow.is_editable(order.status):
            raise errors.OrderNotEditable(
                order.status, order_id=order.pk, allowed_events=workflow.allowed_events(order.status)
            )
        return _submit_locked(order, actor)


def transition_order(order_id, event, actor=None, expected_version=None, reason=""):
    """
    Apply a lifecycle event. See procurement.workflow for the table.

    Raises:
        InvalidTransition: event not legal from the current status
        ApprovalNotPermitted: 'approve' by an actor without the capability
        plus every error of submit_order for 'submit'
    """
    with transaction.atomic():
        order = _lock_order(order_id, expected_version)
        return _transition_locked(order, event, actor, reason)


def set_order_status(order_id, target_status, actor=None, expected_version=None, reason=""):
    """Status-oriented variant: move the order to ``target_status`` if one event leads there."""
    with transaction.atomic():
        order = _lock_order(order_id, expected_version)
        event = workflow.event_for_target(order.status, target_status)
        return _transition_locked(order, event, actor, reason)


def _transition_locked(order, event, actor, reason):
    previous = order.status
    target = workflow.next_status(previous, event)

    if event == PurchaseOrderEvent.SUBMIT:
        return _submit_locked(order, actor)

    fields = ["status"]
    if event == PurchaseOrderEvent.APPROVE:
        if not can_approve_purchase_orders(actor):
            raise errors.ApprovalNotPermitted(order_id=order.pk)
        order.approved_by = actor
        fields.append("approved_by")
    elif event == PurchaseOrderEvent.REJECT:
        order.rejection_reason = (reason or "").strip()
        fields.append("rejection_reason")

    order.status = target
    stamp = workflow.STATUS_TIMESTAMP_FIELDS.get(target)
    if stamp:
        setattr(order, stamp, timezone.now())
        fields.append(stamp)
    _save_order(order, fields)

    logger.info("Purchase order %s: %s --%s--> %s", order.pk, previous, event, target)
    return order
