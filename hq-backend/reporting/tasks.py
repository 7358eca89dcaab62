# reporting/tasks.py
"""
Celery tasks for the monthly royalty run.
"""
import logging

from celery import shared_task
from django.utils import timezone

from .reports.base import Period, get_zone
from .reports.royalty_reports import generate_royalty_reports_for_period

logger = logging.getLogger(__name__)


@shared_task(name="reporting.generate_monthly_royalties")
def generate_monthly_royalties(period: str = None):
    """
    Generate every franchisee's royalty report for ``period`` (default: the
    month that just ended in the network reference time zone). Safe to re-run.
    """
    if period:
        period = Period.parse(period)
    else:
        period = Period.containing(timezone.now(), get_zone()).previous()

    result = generate_royalty_reports_for_period(period)
    logger.info(
        "Royalty run %s: %d created, %d existing, %d failed",
        result["period"], len(result["created"]), len(result["existing"]), len(result["failed"]),
    )
    return {
        "period": result["period"],
        "created": len(result["created"]),
        "existing": len(result["existing"]),
        "failed": result["failed"],
    }
