# sales/models.py
from decimal import Decimal

from django.db import models
from django.db.models import Q

from common import errors
from common.models import TimeStampedModel


class CustomerOrderChannel(models.TextChoices):
    IN_APP = "IN_APP", "In app"
    ON_SITE = "ON_SITE", "On site"
    PHONE = "PHONE", "Phone"


class CustomerOrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    CONFIRMED = "CONFIRMED", "Confirmed"
    PREPARING = "PREPARING", "Preparing"
    READY = "READY", "Ready"
    FULFILLED = "FULFILLED", "Fulfilled"
    CANCELLED = "CANCELLED", "Cancelled"


class CustomerOrder(TimeStampedModel):
    """
    A sale made by a franchisee's truck. Only FULFILLED orders count toward
    the gross sales of a royalty period, by fulfilled_at.
    """
    franchisee = models.ForeignKey("franchisees.Franchisee", on_delete=models.PROTECT, related_name="customer_orders")
    reference = models.CharField(max_length=64, blank=True, db_index=True)
    channel = models.CharField(max_length=16, choices=CustomerOrderChannel.choices, default=CustomerOrderChannel.ON_SITE)
    status = models.CharField(
        max_length=16, choices=CustomerOrderStatus.choices, default=CustomerOrderStatus.PENDING, db_index=True
    )
    total_excl_tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_incl_tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    fulfilled_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["franchisee", "status", "fulfilled_at"], name="sales_fulfilled_lookup_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(total_excl_tax__gte=0), name="customer_order_total_non_negative"),
            models.CheckConstraint(
                condition=~Q(status="FULFILLED") | Q(fulfilled_at__isnull=False),
                name="customer_order_fulfilled_has_timestamp",
            ),
        ]

    def __str__(self):
        return f"Order {self.reference or self.id} - {self.franchisee_id} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_status = instance.__dict__.get("status")
        return instance

    def save(self, *args, **kwargs):
        # Royalty reports are computed from fulfilled orders; they must not move
        if getattr(self, "_loaded_status", None) == CustomerOrderStatus.FULFILLED:
            raise errors.StateError("Fulfilled customer orders cannot be modified", order_id=self.pk)
        super().save(*args, **kwargs)
        self._loaded_status = self.status

    def delete(self, *args, **kwargs):
        if getattr(self, "_loaded_status", None) == CustomerOrderStatus.FULFILLED:
            raise errors.StateError("Fulfilled customer orders cannot be deleted", order_id=self.pk)
        return super().delete(*args, **kwargs)
