"""Totals engine shared by receipts and invoices.

The discount is taken off the subtotal first and tax is charged on the
discounted amount. Values are kept unrounded; rounding to cents happens only
when an amount is formatted for display.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from receiptpro.schemas.totals import TotalsResult


class PricedLine(Protocol):
    quantity: float
    unit_price: float


def line_amount(quantity: float, unit_price: float) -> float:
    return float(quantity) * float(unit_price)


def calculate_totals(
    items: Iterable[PricedLine],
    tax_rate: float,
    discount_rate: float,
) -> TotalsResult:
    """Compute subtotal, discount, tax and total.

    Rates are percentages and are used as given; bounds are checked when a
    draft is finalized, not here.
    """

    subtotal = sum((line_amount(item.quantity, item.unit_price) for item in items), 0.0)
    discount_amount = subtotal * (float(discount_rate) / 100)
    taxable_amount = subtotal - discount_amount
    tax_amount = taxable_amount * (float(tax_rate) / 100)
    total = subtotal - discount_amount + tax_amount

    return TotalsResult(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total=total,
    )
