# storefront/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from .config import FLAT_SHIPPING_PRICE, FREE_SHIPPING_THRESHOLD, TAX_RATE

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value) -> int:
    """Amount in cents, as the payment gateway expects it."""
    return int((Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal


def compute_totals(subtotal) -> OrderTotals:
    # rounding happens once, after summation
    subtotal = Decimal(str(subtotal))
    shipping = Decimal("0") if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_PRICE
    tax = to_money(subtotal * TAX_RATE)
    total = to_money(subtotal + shipping + tax)
    return OrderTotals(
        subtotal=subtotal,
        shipping_price=shipping,
        tax_price=tax,
        total_price=total,
    )
