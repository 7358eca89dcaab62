# franchisees/models.py
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from common.models import TimeStampedModel
from common.roles import NetworkRole


def default_entry_fee():
    return Decimal(str(getattr(settings, "FRANCHISE_DEFAULT_ENTRY_FEE", "50000.00")))


def default_revenue_share_pct():
    return Decimal(str(getattr(settings, "FRANCHISE_DEFAULT_REVENUE_SHARE_PCT", "0.0400")))


def default_reference_time_zone():
    return getattr(settings, "FRANCHISE_REFERENCE_TIME_ZONE", settings.TIME_ZONE)


class Franchisee(TimeStampedModel):
    """
    A franchise operator. Owns agreements, purchase orders, customer orders
    and royalty reports.
    """
    code = models.SlugField(unique=True)
    name = models.CharField(max_length=200)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.name} ({self.code})"


class FranchiseUser(TimeStampedModel):
    """
    Network membership of a Django user. Franchisee-side roles are bound to
    one franchisee; HQ roles leave it empty.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="franchise_membership"
    )
    franchisee = models.ForeignKey(
        Franchisee, null=True, blank=True, on_delete=models.CASCADE, related_name="users"
    )
    role = models.CharField(max_length=32, choices=NetworkRole.choices, default=NetworkRole.FRANCHISEE_STAFF)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.user} - {self.role}"


class FranchiseAgreement(TimeStampedModel):
    """
    Commercial terms in force for a franchisee over [start_date, end_date).
    end_date is exclusive; null means open-ended.
    """
    franchisee = models.ForeignKey(Franchisee, on_delete=models.PROTECT, related_name="agreements")
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True, help_text="Exclusive; empty while the agreement is open")
    entry_fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=default_entry_fee)
    revenue_share_pct = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        default=default_revenue_share_pct,
        help_text="Fraction of gross sales owed per period, e.g. 0.0400 for 4%",
    )
    timezone = models.CharField(
        max_length=64,
        default=default_reference_time_zone,
        help_text="IANA time zone used for billing period boundaries",
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ["franchisee", "-start_date"]
        constraints = [
            models.UniqueConstraint(fields=["franchisee", "start_date"], name="unique_agreement_start_per_franchisee"),
            models.CheckConstraint(
                condition=Q(end_date__isnull=True) | Q(end_date__gte=F("start_date")),
                name="agreement_end_not_before_start",
            ),
        ]

    def __str__(self):
        end = self.end_date.isoformat() if self.end_date else "open"
        return f"Agreement {self.franchisee.code} {self.start_date.isoformat()} -> {end}"

    def covers(self, day):
        return self.start_date <= day and (self.end_date is None or day < self.end_date)
