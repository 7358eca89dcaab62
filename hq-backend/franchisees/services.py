# franchisees/services.py
"""
Franchise agreement rules: creation with overlap checks, closing, and
resolving the agreement in force on a given day.
"""
import logging
from datetime import date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils.dateparse import parse_date

from common import errors
from common.money import parse_decimal
from .models import (
    Franchisee,
    FranchiseAgreement,
    default_entry_fee,
    default_reference_time_zone,
    default_revenue_share_pct,
)

logger = logging.getLogger(__name__)


def _as_date(value, field):
    if value is None or isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise errors.ValidationError(f"{field} must be a YYYY-MM-DD date", field=field)
    return parsed


def _check_places(value, places, field):
    exponent = value.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > places:
        raise errors.ValidationError(f"{field} accepts at most {places} decimal places", field=field, value=value)
    return value


def validate_time_zone(name):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise errors.ValidationError(f"Unknown time zone: {name!r}", field="timezone")


def _overlapping(franchisee, start_date, end_date, exclude_id=None):
    qs = FranchiseAgreement.objects.filter(franchisee=franchisee).filter(
        Q(end_date__isnull=True) | Q(end_date__gt=start_date)
    )
    if end_date is not None:
        qs = qs.filter(start_date__lt=end_date)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs


def create_agreement(
    franchisee,
    start_date,
    end_date=None,
    entry_fee_amount=None,
    revenue_share_pct=None,
    timezone_name=None,
    notes="",
):
    """
    Create a franchise agreement.

    Raises:
        ValidationError: bad dates/amounts, unknown time zone
        AgreementOverlap: the date range intersects another agreement of the franchisee
    """
    start_date = _as_date(start_date, "start_date")
    end_date = _as_date(end_date, "end_date")
    if start_date is None:
        raise errors.ValidationError("start_date is required", field="start_date")
    if end_date is not None and end_date < start_date:
        raise errors.ValidationError("end_date must be on or after start_date", field="end_date")

    fee = default_entry_fee() if entry_fee_amount in (None, "") else parse_decimal(entry_fee_amount, "entry_fee_amount")
    if fee < 0:
        raise errors.ValidationError("entry_fee_amount must not be negative", field="entry_fee_amount")
    _check_places(fee, 2, "entry_fee_amount")

    share = (
        default_revenue_share_pct()
        if revenue_share_pct in (None, "")
        else parse_decimal(revenue_share_pct, "revenue_share_pct")
    )
    if share < 0 or share > 1:
        raise errors.ValidationError(
            "revenue_share_pct is a fraction between 0 and 1 (0.0400 = 4%)", field="revenue_share_pct"
        )
    _check_places(share, 4, "revenue_share_pct")

    tz_name = timezone_name or default_reference_time_zone()
    validate_time_zone(tz_name)

    with transaction.atomic():
        # Serialize agreement writes per franchisee
        franchisee = Franchisee.objects.select_for_update().get(pk=franchisee.pk)
        clash = _overlapping(franchisee, start_date, end_date).first()
        if clash is not None:
            raise errors.AgreementOverlap(
                f"Agreement {start_date.isoformat()} overlaps agreement starting {clash.start_date.isoformat()}",
                conflicting_agreement_id=clash.id,
            )
        try:
            with transaction.atomic():
                agreement = FranchiseAgreement.objects.create(
                    franchisee=franchisee,
                    start_date=start_date,
                    end_date=end_date,
                    entry_fee_amount=fee,
                    revenue_share_pct=share,
                    timezone=tz_name,
                    notes=(notes or "").strip(),
                )
        except IntegrityError as exc:
            raise errors.ConflictError("An agreement with this start date already exists") from exc

    logger.info(
        "Created franchise agreement %s for franchisee %s (%s -> %s, share %s)",
        agreement.id, franchisee.id, start_date, end_date, share,
    )
    return agreement


def close_agreement(agreement, end_date):
    """Set the (exclusive) end date of an open agreement."""
    end_date = _as_date(end_date, "end_date")
    with transaction.atomic():
        agreement = FranchiseAgreement.objects.select_for_update().get(pk=agreement.pk)
        if agreement.end_date is not None:
            raise errors.ValidationError("Agreement is already closed", field="end_date")
        if end_date is None or end_date < agreement.start_date:
            raise errors.ValidationError("end_date must be on or after start_date", field="end_date")
        agreement.end_date = end_date
        agreement.save(update_fields=["end_date", "updated_at"])
    logger.info("Closed franchise agreement %s on %s", agreement.id, end_date)
    return agreement


def resolve_agreement(franchisee, day):
    """
    The agreement whose [start_date, end_date) contains ``day``.

    Raises:
        NoActiveAgreement
    """
    agreement = (
        FranchiseAgreement.objects.filter(franchisee=franchisee, start_date__lte=day)
        .filter(Q(end_date__isnull=True) | Q(end_date__gt=day))
        .order_by("-start_date")
        .first()
    )
    if agreement is None:
        raise errors.NoActiveAgreement(franchisee.id, day)
    return agreement
