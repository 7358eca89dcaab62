# procurement/ratios.py
"""
Money & ratio calculator for purchase-order lines.

Pure and deterministic: the same lines always give the same totals. It is the
single authoritative computation; the order-entry UI only previews it through
the ratios endpoint.

Line amounts are rounded to the cent (half up) per line, then summed exactly,
so ``core_amount + free_amount == total_amount`` always holds. ``core_pct`` is
kept at full decimal precision; only ``*_display`` values are rounded.
"""
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from common import errors
from common.money import HUNDRED, ZERO, money_str, parse_decimal, to_money

DEFAULT_MIN_CORE_PCT = Decimal("80")
PCT_DISPLAY = Decimal("0.1")
PCT_SNAPSHOT = Decimal("0.0001")


def _get(line, name, default=None):
    if isinstance(line, Mapping):
        return line.get(name, default)
    return getattr(line, name, default)


def line_amount(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return to_money(quantity * unit_price)


def line_tax(amount: Decimal, tax_rate_pct: Decimal) -> Decimal:
    return to_money(amount * tax_rate_pct / HUNDRED)


@dataclass(frozen=True)
class LineFigures:
    quantity: Decimal
    unit_price_excl_tax: Decimal
    tax_rate_pct: Decimal
    is_core_item: bool
    amount_excl_tax: Decimal
    tax_amount: Decimal


def read_line(line: Any, index: int = 0) -> LineFigures:
    """
    Validate one line (mapping or object with quantity, unit_price_excl_tax,
    is_core_item and optional tax_rate_pct) and compute its amounts.
    """
    label = f"Line {index + 1}"
    quantity = parse_decimal(_get(line, "quantity"), f"{label}: quantity")
    price = parse_decimal(_get(line, "unit_price_excl_tax"), f"{label}: unit_price_excl_tax")
    raw_tax = _get(line, "tax_rate_pct")
    tax_rate = ZERO if raw_tax is None else parse_decimal(raw_tax, f"{label}: tax_rate_pct")
    is_core = _get(line, "is_core_item")

    if quantity <= 0:
        raise errors.ValidationError(f"{label}: quantity must be greater than 0", line=index, field="quantity", value=quantity)
    if price < 0:
        raise errors.ValidationError(f"{label}: unit_price_excl_tax must not be negative", line=index, field="unit_price_excl_tax", value=price)
    if tax_rate < 0:
        raise errors.ValidationError(f"{label}: tax_rate_pct must not be negative", line=index, field="tax_rate_pct", value=tax_rate)
    if not isinstance(is_core, bool):
        raise errors.ValidationError(f"{label}: is_core_item must be true or false", line=index, field="is_core_item")

    amount = line_amount(quantity, price)
    return LineFigures(
        quantity=quantity,
        unit_price_excl_tax=price,
        tax_rate_pct=tax_rate,
        is_core_item=is_core,
        amount_excl_tax=amount,
        tax_amount=line_tax(amount, tax_rate),
    )


@dataclass(frozen=True)
class RatioResult:
    core_amount: Decimal
    free_amount: Decimal
    total_amount: Decimal
    tax_amount: Decimal
    total_incl_tax: Decimal
    core_pct: Optional[Decimal]
    free_pct: Optional[Decimal]
    line_count: int

    def is_compliant(self, min_core_pct: Decimal = DEFAULT_MIN_CORE_PCT) -> bool:
        # Undefined share (zero total) is never compliant
        if self.core_pct is None:
            return False
        return self.core_pct >= Decimal(min_core_pct)

    @property
    def core_pct_display(self) -> Optional[Decimal]:
        if self.core_pct is None:
            return None
        return self.core_pct.quantize(PCT_DISPLAY, rounding=ROUND_HALF_UP)

    @property
    def free_pct_display(self) -> Optional[Decimal]:
        if self.free_pct is None:
            return None
        return self.free_pct.quantize(PCT_DISPLAY, rounding=ROUND_HALF_UP)

    @property
    def core_pct_snapshot(self) -> Optional[Decimal]:
        """Value stored on the order (4 dp)."""
        if self.core_pct is None:
            return None
        return self.core_pct.quantize(PCT_SNAPSHOT, rounding=ROUND_HALF_UP)

    def core_pct_floor(self, places: str = "0.01") -> Optional[Decimal]:
        """Truncated value for messages, never shown above the real share."""
        if self.core_pct is None:
            return None
        return self.core_pct.quantize(Decimal(places), rounding=ROUND_DOWN)

    def as_dict(self):
        return {
            "core_amount": money_str(self.core_amount),
            "free_amount": money_str(self.free_amount),
            "total_amount": money_str(self.total_amount),
            "tax_amount": money_str(self.tax_amount),
            "total_incl_tax": money_str(self.total_incl_tax),
            "core_pct": str(self.core_pct_snapshot) if self.core_pct is not None else None,
            "free_pct": str(self.free_pct.quantize(PCT_SNAPSHOT, rounding=ROUND_HALF_UP)) if self.free_pct is not None else None,
            "core_pct_display": str(self.core_pct_display) if self.core_pct is not None else None,
            "free_pct_display": str(self.free_pct_display) if self.free_pct is not None else None,
            "line_count": self.line_count,
        }


def compute_ratios(lines: Iterable[Any]) -> RatioResult:
    """
    Aggregate order lines into core/free amounts and shares.

    ``core_pct``/``free_pct`` are None when the total is zero; callers treat
    that as "not compliant".

    Raises:
        ValidationError: a line has a non-positive quantity, a negative price or
            tax rate, a non-decimal value or a non-boolean core flag.
    """
    core = ZERO
    total = ZERO
    tax = ZERO
    count = 0
    for index, line in enumerate(lines):
        figures = read_line(line, index)
        total += figures.amount_excl_tax
        tax += figures.tax_amount
        if figures.is_core_item:
            core += figures.amount_excl_tax
        count += 1

    free = total - core
    if total == 0:
        core_pct = free_pct = None
    else:
        core_pct = core / total * HUNDRED
        free_pct = HUNDRED - core_pct

    return RatioResult(
        core_amount=core,
        free_amount=free,
        total_amount=total,
        tax_amount=tax,
        total_incl_tax=total + tax,
        core_pct=core_pct,
        free_pct=free_pct,
        line_count=count,
    )
