# procurement/models.py
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel
from .ratios import line_amount, line_tax
from .workflow import PurchaseOrderStatus


class Warehouse(TimeStampedModel):
    """
    Network warehouse preparing and shipping supply orders.
    """
    code = models.SlugField(unique=True)
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class PurchaseOrder(models.Model):
    """
    Supply order placed by a franchisee with a network warehouse.
    Lines are editable only while DRAFT; core_pct/total_excl_tax are kept in
    sync during DRAFT and frozen as a snapshot at submit.
    """
    franchisee = models.ForeignKey("franchisees.Franchisee", on_delete=models.PROTECT, related_name="purchase_orders")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="purchase_orders")
    po_number = models.CharField(max_length=50, blank=True, db_index=True, help_text="Purchase order number")
    status = models.CharField(
        max_length=20, choices=PurchaseOrderStatus.choices, default=PurchaseOrderStatus.DRAFT, db_index=True
    )
    core_pct = models.DecimalField(
        max_digits=7, decimal_places=4, null=True, blank=True,
        help_text="Share of the order value from core items, in percent; empty when the total is zero",
    )
    total_excl_tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    version = models.PositiveIntegerField(default=1, help_text="Optimistic concurrency counter")
    notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    submitted_at = models.DateTimeField(null=True, blank=True, db_index=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True, db_index=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["franchisee", "status"], name="procurement_franchi_1b7e2c_idx"),
            models.Index(fields=["status", "created_at"], name="procurement_status_4d9a10_idx"),
        ]

    def __str__(self):
        return f"PO {self.po_number or self.id} - {self.franchisee_id} ({self.status})"

    def assign_po_number(self):
        """Generate PO number if not set"""
        if not self.po_number:
            self.po_number = f"PO-{self.id:06d}"
            type(self).objects.filter(pk=self.pk).update(po_number=self.po_number)
        return self.po_number


class PurchaseOrderLine(models.Model):
    """
    Individual line of a purchase order. is_core_item is copied from the
    catalog product when the line is written.
    """
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name="lines")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="purchase_order_lines")
    position = models.PositiveIntegerField(default=0, help_text="Entry order, for display")
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit_price_excl_tax = models.DecimalField(max_digits=12, decimal_places=2)
    tax_rate_pct = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    is_core_item = models.BooleanField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["position", "id"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name="po_line_quantity_positive"),
            models.CheckConstraint(condition=Q(unit_price_excl_tax__gte=0), name="po_line_price_non_negative"),
            models.CheckConstraint(condition=Q(tax_rate_pct__gte=0), name="po_line_tax_non_negative"),
        ]

    @property
    def line_amount_excl_tax(self):
        return line_amount(self.quantity, self.unit_price_excl_tax)

    @property
    def line_tax_amount(self):
        return line_tax(self.line_amount_excl_tax, self.tax_rate_pct)

    def __str__(self):
        return f"POLine #{self.id} - {self.product_id} x{self.quantity}"
