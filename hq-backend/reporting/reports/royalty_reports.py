# reporting/reports/royalty_reports.py
"""
Monthly royalty generation.

gross_sales is the sum of total_excl_tax over the franchisee's FULFILLED
customer orders whose fulfilled_at falls in the period (agreement time zone);
amount_due = gross_sales x share_pct rounded to the cent, half up.
Generation is idempotent per (franchisee, period).
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Count, DecimalField, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from common import errors
from common.money import to_money
from franchisees.models import Franchisee
from franchisees.services import resolve_agreement
from reporting.models import RoyaltyReport
from sales.models import CustomerOrder, CustomerOrderStatus
from .base import Period, get_zone

logger = logging.getLogger(__name__)


def aggregate_gross_sales(franchisee_id, start, end) -> Tuple[Decimal, int]:
    """(gross sales, order count) of fulfilled orders with start <= fulfilled_at < end."""
    agg = CustomerOrder.objects.filter(
        franchisee_id=franchisee_id,
        status=CustomerOrderStatus.FULFILLED,
        fulfilled_at__gte=start,
        fulfilled_at__lt=end,
    ).aggregate(
        gross=Coalesce(Sum("total_excl_tax", output_field=DecimalField(max_digits=14, decimal_places=2)), Decimal("0.00")),
        orders=Count("id"),
    )
    return to_money(agg["gross"]), int(agg["orders"] or 0)


def compute_amount_due(gross_sales: Decimal, share_pct: Decimal) -> Decimal:
    return to_money(Decimal(gross_sales) * Decimal(share_pct))


def _existing(franchisee_id, period):
    return RoyaltyReport.objects.filter(franchisee_id=franchisee_id, period=str(period)).first()


def generate_royalty_report(franchisee_id, period, actor=None, now=None) -> Tuple[RoyaltyReport, bool]:
    """
    Generate (or return) the royalty report of ``franchisee_id`` for ``period``.

    Returns:
        (report, created). created is False when the report already existed;
        the existing row is returned unchanged.

    Raises:
        ValidationError: malformed period or franchisee id, or a period that has not ended yet
        NotFound: unknown franchisee
        NoActiveAgreement: no agreement covers the first day of the period
    """
    period = Period.parse(period)
    try:
        franchisee_id = int(franchisee_id)
    except (TypeError, ValueError):
        raise errors.ValidationError(
            f"franchisee_id must be an integer, got {franchisee_id!r}", field="franchisee_id"
        )
    report = _existing(franchisee_id, period)
    if report is not None:
        return report, False

    try:
        franchisee = Franchisee.objects.get(pk=franchisee_id)
    except (Franchisee.DoesNotExist, ValueError, TypeError):
        raise errors.NotFound(f"Franchisee {franchisee_id} not found", franchisee_id=franchisee_id)

    agreement = resolve_agreement(franchisee, period.first_day)
    tz = get_zone(agreement.timezone)
    start, end = period.bounds(tz)
    now = now or timezone.now()
    if end > now:
        raise errors.ValidationError(
            f"Period {period} is not closed yet; it ends at {end.isoformat()}", field="period", period=str(period)
        )

    try:
        with transaction.atomic():
            # Serialise generators of the same franchisee; the unique constraint backs this up
            Franchisee.objects.select_for_update().get(pk=franchisee.pk)
            report = _existing(franchisee.pk, period)
            if report is not None:
                return report, False

            gross, count = aggregate_gross_sales(franchisee.pk, start, end)
            report = RoyaltyReport.objects.create(
                franchisee=franchisee,
                agreement=agreement,
                period=str(period),
                period_start=start,
                period_end=end,
                timezone=agreement.timezone,
                gross_sales=gross,
                share_pct=agreement.revenue_share_pct,
                amount_due=compute_amount_due(gross, agreement.revenue_share_pct),
                order_count=count,
                generated_by=actor if getattr(actor, "pk", None) else None,
            )
    except IntegrityError:
        report = _existing(franchisee.pk, period)
        if report is None:
            raise
        logger.info("Royalty report %s for franchisee %s was generated concurrently", period, franchisee.pk)
        return report, False

    logger.info(
        "Generated royalty report %s for franchisee %s: gross %s x %s = %s (%s orders)",
        period, franchisee.pk, report.gross_sales, report.share_pct, report.amount_due, report.order_count,
    )
    return report, True


def generate_royalty_reports_for_period(period, actor=None, now=None, franchisee_ids=None) -> Dict[str, Any]:
    """
    Batch generation over active franchisees. Franchisees without an agreement
    for the period are collected under "failed"; other errors propagate.
    """
    period = Period.parse(period)
    qs = Franchisee.objects.filter(is_active=True).order_by("id")
    if franchisee_ids:
        qs = qs.filter(id__in=list(franchisee_ids))

    result = {"period": str(period), "created": [], "existing": [], "failed": []}
    for franchisee in qs:
        try:
            report, created = generate_royalty_report(franchisee.pk, period, actor=actor, now=now)
        except errors.NoActiveAgreement as exc:
            logger.warning("Skipping franchisee %s for %s: %s", franchisee.code, period, exc.message)
            result["failed"].append({"franchisee_id": franchisee.pk, "code": exc.code, "error": exc.message})
            continue
        result["created" if created else "existing"].append(report.pk)
    return result


def report_payload(report: RoyaltyReport, franchisee: Optional[Franchisee] = None) -> Dict[str, Any]:
    franchisee = franchisee or report.franchisee
    return {
        "id": report.id,
        "franchisee": {"id": franchisee.id, "code": franchisee.code, "name": franchisee.name},
        "agreement_id": report.agreement_id,
        "period": report.period,
        "period_start": report.period_start.isoformat(),
        "period_end": report.period_end.isoformat(),
        "timezone": report.timezone,
        "gross_sales": str(to_money(report.gross_sales)),
        "share_pct": str(report.share_pct),
        "amount_due": str(to_money(report.amount_due)),
        "order_count": report.order_count,
        "generated_at": report.generated_at.isoformat(),
        "generated_by": report.generated_by_id,
        "generated_pdf_url": report.generated_pdf_url or None,
    }
