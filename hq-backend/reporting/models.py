# reporting/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone as dj_timezone

from common import errors


class RoyaltyReport(models.Model):
    """
    Revenue share owed by a franchisee for one calendar month.

    Immutable once written: a later correction of sales data does not change an
    issued report. The only field written afterwards is generated_pdf_url, set
    by the external renderer through attach_pdf().
    """
    franchisee = models.ForeignKey("franchisees.Franchisee", on_delete=models.PROTECT, related_name="royalty_reports")
    agreement = models.ForeignKey(
        "franchisees.FranchiseAgreement", on_delete=models.PROTECT, related_name="royalty_reports"
    )
    period = models.CharField(max_length=7, db_index=True, help_text="YYYY-MM")
    period_start = models.DateTimeField()
    period_end = models.DateTimeField(help_text="Exclusive")
    timezone = models.CharField(max_length=64)
    gross_sales = models.DecimalField(max_digits=14, decimal_places=2)
    share_pct = models.DecimalField(max_digits=6, decimal_places=4, help_text="Fraction, e.g. 0.0400")
    amount_due = models.DecimalField(max_digits=14, decimal_places=2)
    order_count = models.PositiveIntegerField(default=0)
    generated_at = models.DateTimeField(default=dj_timezone.now)
    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    generated_pdf_url = models.URLField(max_length=500, blank=True)

    class Meta:
        ordering = ["-period", "franchisee"]
        constraints = [
            models.UniqueConstraint(fields=["franchisee", "period"], name="unique_royalty_report_per_period"),
        ]

    def __str__(self):
        return f"Royalty {self.period} - {self.franchisee_id}: {self.amount_due}"

    def save(self, *args, **kwargs):
        if not self._state.adding and set(kwargs.get("update_fields") or ()) != {"generated_pdf_url"}:
            raise errors.StateError("Royalty reports are immutable", report_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise errors.StateError("Royalty reports cannot be deleted", report_id=self.pk)

    def attach_pdf(self, url):
        self.generated_pdf_url = url
        self.save(update_fields=["generated_pdf_url"])
