# sales/services.py
import logging

from django.db import transaction
from django.utils import timezone

from common import errors
from common.money import parse_decimal, to_money
from .models import CustomerOrder, CustomerOrderChannel, CustomerOrderStatus

logger = logging.getLogger(__name__)

CLOSED_STATUSES = {CustomerOrderStatus.FULFILLED.value, CustomerOrderStatus.CANCELLED.value}


def record_customer_order(franchisee, total_excl_tax, total_incl_tax=None, channel=None, reference=""):
    """Register an open (PENDING) customer order."""
    total = parse_decimal(total_excl_tax, "total_excl_tax")
    if total < 0:
        raise errors.ValidationError("total_excl_tax must not be negative", field="total_excl_tax")
    gross = total if total_incl_tax is None else parse_decimal(total_incl_tax, "total_incl_tax")
    if gross < total:
        raise errors.ValidationError("total_incl_tax must not be below total_excl_tax", field="total_incl_tax")
    order = CustomerOrder.objects.create(
        franchisee=franchisee,
        reference=reference or "",
        channel=channel or CustomerOrderChannel.ON_SITE,
        total_excl_tax=to_money(total),
        total_incl_tax=to_money(gross),
    )
    return order


def fulfil_customer_order(order_id, fulfilled_at=None):
    """
    Mark a customer order FULFILLED. This is the only way into FULFILLED;
    afterwards the row is frozen.

    Raises:
        NotFound, StateError: already fulfilled or cancelled
    """
    with transaction.atomic():
        try:
            order = CustomerOrder.objects.select_for_update().get(pk=order_id)
        except CustomerOrder.DoesNotExist:
            raise errors.NotFound(f"Customer order {order_id} not found", order_id=order_id)
        if order.status in CLOSED_STATUSES:
            raise errors.StateError(
                f"Customer order {order_id} is already {order.status}", order_id=order_id, status=order.status
            )
        order.status = CustomerOrderStatus.FULFILLED
        order.fulfilled_at = fulfilled_at or timezone.now()
        order.save(update_fields=["status", "fulfilled_at", "updated_at"])

    logger.info("Customer order %s fulfilled at %s", order.pk, order.fulfilled_at.isoformat())
    return order
