"""Order fee breakdown in integer cents."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings


def _rate(name: str, default: str) -> Decimal:
    return Decimal(str(getattr(settings, name, default)))


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def insurance_cents(amount_cents: int, total_days: int) -> int:
    """Renter protection on an amount: first-day rate plus a smaller rate for every extra day."""
    amount = Decimal(amount_cents)
    first_day = round_cents(amount * _rate("RENTER_FEE_RATE", "0.10"))
    extra_days = max(total_days - 1, 0)
    subsequent = (
        round_cents(amount * _rate("SUBSEQUENT_DAILY_FEE_RATE", "0.015") * extra_days)
        if extra_days
        else 0
    )
    return first_day + subsequent


@dataclass(frozen=True)
class FeeBreakdown:
    daily_total_cents: int
    addons_total_cents: int
    subtotal_cents: int
    renter_fee_cents: int
    host_fee_cents: int
    tax_cents: int
    renter_pays_cents: int
    host_earns_cents: int
    platform_commission_total_cents: int
    total_cents: int

    def as_dict(self) -> dict:
        return asdict(self)


def addon_line_total(addon: dict) -> int:
    return int(addon.get("price_cents") or 0) * max(int(addon.get("qty") or 1), 1)


def compute_fees(
    *,
    daily_price_cents: int,
    total_days: int,
    addons: Iterable[dict] = (),
) -> FeeBreakdown:
    """
    Price an order.

    Addons are dicts with ``price_cents``, ``qty`` and ``consumable``. Only
    non-consumable addons carry renter protection. The host fee is taken from
    the subtotal (rental days plus addons); tax applies to what the renter pays
    before tax.
    """
    total_days = max(int(total_days), 1)
    daily_total = int(daily_price_cents) * total_days

    addons = list(addons)
    addons_total = sum(addon_line_total(addon) for addon in addons)
    insured_addons = sum(
        insurance_cents(addon_line_total(addon), total_days)
        for addon in addons
        if not addon.get("consumable")
    )
    renter_fee = insurance_cents(int(daily_price_cents), total_days) + insured_addons

    subtotal = daily_total + addons_total
    host_fee = round_cents(Decimal(subtotal) * _rate("HOST_FEE_RATE", "0.12"))
    pre_tax = subtotal + renter_fee
    tax = round_cents(Decimal(pre_tax) * _rate("TAX_RATE", "0"))
    renter_pays = pre_tax + tax

    return FeeBreakdown(
        daily_total_cents=daily_total,
        addons_total_cents=addons_total,
        subtotal_cents=subtotal,
        renter_fee_cents=renter_fee,
        host_fee_cents=host_fee,
        tax_cents=tax,
        renter_pays_cents=renter_pays,
        host_earns_cents=subtotal - host_fee,
        platform_commission_total_cents=renter_fee + host_fee,
        total_cents=renter_pays,
    )
