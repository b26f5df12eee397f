# repario/services/totals.py

from collections.abc import Mapping
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable

from repario.models.invoices import InvoiceTotals

# Not exposed to users yet; every invoice is taxed at this rate.
TAX_RATE = Decimal("0")

CENT = Decimal("0.01")
RATE_STEP = Decimal("0.0001")


def round_money(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Any) -> Decimal:
    return Decimal(str(value)).quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def line_total(quantity: Any, price: Any) -> Decimal:
    return round_money(Decimal(str(quantity)) * Decimal(str(price)))


def _total_of(item: Any) -> Decimal:
    total = item["total"] if isinstance(item, Mapping) else item.total
    return Decimal(str(total))


def calculate_invoice_totals(items: Iterable[Any], tax_rate: Any = TAX_RATE) -> InvoiceTotals:
    """
    Sum line totals into the four persisted invoice figures.

    Depends only on the multiset of item totals. `total_amount` is the sum of
    the already rounded subtotal and tax amount, so the three money figures
    always add up exactly.
    """
    rate = round_rate(tax_rate)
    if rate < 0:
        raise ValueError("tax_rate must be non-negative")

    subtotal = round_money(sum((_total_of(item) for item in items), Decimal("0")))
    tax_amount = round_money(subtotal * rate)

    return InvoiceTotals(
        subtotal=subtotal,
        tax_rate=rate,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
    )
