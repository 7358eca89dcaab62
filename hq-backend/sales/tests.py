from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase

from common import errors
from franchisees.models import Franchisee
from sales import services
from sales.models import CustomerOrder, CustomerOrderStatus


class CustomerOrderTests(TestCase):
    def setUp(self):
        self.franchisee = Franchisee.objects.create(code="nantes-01", name="Nantes Centre")

    def test_record_and_fulfil(self):
        order = services.record_customer_order(self.franchisee, "12.50", "13.19", reference="A-1")
        self.assertEqual(order.status, CustomerOrderStatus.PENDING)
        when = datetime(2025, 8, 3, 12, 0, tzinfo=dt_timezone.utc)
        order = services.fulfil_customer_order(order.id, fulfilled_at=when)
        order.refresh_from_db()
        self.assertEqual(order.status, CustomerOrderStatus.FULFILLED)
        self.assertEqual(order.fulfilled_at, when)
        self.assertEqual(order.total_excl_tax, Decimal("12.50"))

    def test_fulfilled_order_is_frozen(self):
        order = services.record_customer_order(self.franchisee, "10.00")
        services.fulfil_customer_order(order.id)
        order = CustomerOrder.objects.get(pk=order.pk)
        order.total_excl_tax = Decimal("1.00")
        with self.assertRaises(errors.StateError):
            order.save()
        with self.assertRaises(errors.StateError):
            order.delete()
        with self.assertRaises(errors.StateError):
            services.fulfil_customer_order(order.id)

    def test_cancelled_order_cannot_be_fulfilled(self):
        order = services.record_customer_order(self.franchisee, "10.00")
        order.status = CustomerOrderStatus.CANCELLED
        order.save()
        with self.assertRaises(errors.StateError):
            services.fulfil_customer_order(order.id)

    def test_negative_total_rejected(self):
        with self.assertRaises(errors.ValidationError):
            services.record_customer_order(self.franchisee, "-1.00")

    def test_missing_order(self):
        with self.assertRaises(errors.NotFound):
            services.fulfil_customer_order(123456)
