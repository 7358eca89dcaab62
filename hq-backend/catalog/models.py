# catalog/models.py

from decimal import Decimal

from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel


class Product(TimeStampedModel):
    """
    Network catalog product. Core items come from the network's mandated supply
    chain and count toward the minimum core share of every purchase order;
    the others are free items sourced independently by the franchisee.
    """
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=200)
    unit = models.CharField(max_length=16, blank=True, default="", help_text="Sales unit, e.g. kg, pcs, l")
    is_core_item = models.BooleanField(default=True, db_index=True)
    default_tax_rate_pct = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("5.50"), help_text="VAT rate in percent, e.g. 5.50"
    )
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["sku"]
        constraints = [
            models.CheckConstraint(condition=Q(default_tax_rate_pct__gte=0), name="product_tax_rate_non_negative"),
        ]

    def __str__(self):
        kind = "core" if self.is_core_item else "free"
        return f"{self.name} ({self.sku}, {kind})"
