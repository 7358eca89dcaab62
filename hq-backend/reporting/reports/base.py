# reporting/reports/base.py
"""
Billing periods.

A period is a calendar month ``YYYY-MM``. Its bounds are the half-open
interval [first instant of the month, first instant of the next month) in a
given IANA time zone, so an order fulfilled at 00:00:00 local on the 1st
belongs to the new month.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterator, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta
from django.conf import settings

from common import errors

PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def get_zone(name=None) -> ZoneInfo:
    name = name or getattr(settings, "FRANCHISE_REFERENCE_TIME_ZONE", None) or settings.TIME_ZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise errors.ValidationError(f"Unknown time zone: {name!r}", field="timezone")


@dataclass(frozen=True, order=True)
class Period:
    year: int
    month: int

    @classmethod
    def parse(cls, value) -> "Period":
        if isinstance(value, Period):
            return value
        match = PERIOD_RE.match(str(value or "").strip())
        if not match:
            raise errors.ValidationError(f"Period must be YYYY-MM, got {value!r}", field="period")
        year = int(match.group(1))
        if year < 1900:
            raise errors.ValidationError(f"Period year out of range: {value!r}", field="period")
        return cls(year, int(match.group(2)))

    @classmethod
    def containing(cls, moment: datetime, tz: ZoneInfo) -> "Period":
        local = moment.astimezone(tz)
        return cls(local.year, local.month)

    def __str__(self):
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    def shift(self, months: int) -> "Period":
        day = self.first_day + relativedelta(months=months)
        return Period(day.year, day.month)

    def next(self) -> "Period":
        return self.shift(1)

    def previous(self) -> "Period":
        return self.shift(-1)

    def bounds(self, tz: ZoneInfo) -> Tuple[datetime, datetime]:
        start = datetime.combine(self.first_day, time.min, tzinfo=tz)
        end = datetime.combine(self.next().first_day, time.min, tzinfo=tz)
        return start, end

    def until(self, last: "Period") -> Iterator["Period"]:
        """Periods from self to ``last``, both included."""
        current = self
        while current <= last:
            yield current
            current = current.next()

    def months_until(self, last: "Period") -> int:
        return (last.year - self.year) * 12 + (last.month - self.month)
