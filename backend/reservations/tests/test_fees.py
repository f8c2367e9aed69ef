from decimal import Decimal

from reservations.fees import compute_fees, insurance_cents

ADDONS = [
    {"id": 1, "name": "Drill bits", "price_cents": 500, "qty": 2, "consumable": False},
    {"id": 2, "name": "Sanding pads", "price_cents": 300, "qty": 1, "consumable": True},
]


def test_insurance_single_day_uses_first_day_rate_only():
    assert insurance_cents(2500, 1) == 250


def test_insurance_adds_subsequent_day_rate():
    # 10% first day plus 1.5% for each of the 4 extra days.
    assert insurance_cents(2500, 5) == 250 + 150


def test_compute_fees_breakdown():
    fees = compute_fees(daily_price_cents=2500, total_days=5, addons=ADDONS)

    assert fees.daily_total_cents == 12500
    assert fees.addons_total_cents == 1300
    assert fees.subtotal_cents == 13800
    # Consumable addons carry no renter protection.
    assert fees.renter_fee_cents == 400 + 160
    assert fees.host_fee_cents == 1656
    assert fees.tax_cents == 0
    assert fees.renter_pays_cents == 14360
    assert fees.total_cents == fees.renter_pays_cents
    assert fees.host_earns_cents == 13800 - 1656
    assert fees.platform_commission_total_cents == 560 + 1656


def test_compute_fees_applies_tax_to_pre_tax_total(settings):
    settings.TAX_RATE = Decimal("0.08")

    fees = compute_fees(daily_price_cents=2500, total_days=5, addons=ADDONS)

    assert fees.tax_cents == 1149
    assert fees.renter_pays_cents == 14360 + 1149


def test_compute_fees_treats_zero_days_as_one():
    fees = compute_fees(daily_price_cents=1000, total_days=0)

    assert fees.daily_total_cents == 1000
    assert fees.renter_fee_cents == 100
    assert fees.as_dict()["subtotal_cents"] == 1000
