"""Totals calculation for quotes and client orders."""

from collections import namedtuple
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Union

Totals = namedtuple('Totals', ['subtotal', 'taxable_amount', 'total_tax', 'total'])

HUNDRED = Decimal('100')
NAN = Decimal('NaN')


def to_decimal(value: Any) -> Decimal:
    """Coerce a number-ish value to Decimal; anything unparseable becomes NaN."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return NAN
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return NAN


def _field(item: Union[Mapping, Any], *names: str, default=None):
    for name in names:
        if isinstance(item, Mapping):
            if item.get(name) is not None:
                return item[name]
        elif getattr(item, name, None) is not None:
            return getattr(item, name)
    return default


def compute_totals(items: Iterable[Any], document_discount: Any) -> Totals:
    """
    Compute document totals.

    lineNet  = quantity * unit_price * (1 - line_discount / 100)
    lineTax  = lineNet * (1 - document_discount / 100) * (tax_rate / 100)
    taxable  = subtotal - subtotal * document_discount / 100
    total    = taxable + sum(lineTax)

    The document discount is applied twice on purpose: once to the subtotal
    and once per line before tax. Tax rate defaults to 0 (orders carry none).
    Non-finite inputs propagate as NaN; callers check `is_valid_total`.
    """
    global_discount = to_decimal(document_discount)
    if not global_discount.is_finite():
        global_discount = Decimal('0')

    subtotal = Decimal('0')
    total_tax = Decimal('0')

    for item in items:
        quantity = to_decimal(_field(item, 'quantity'))
        unit_price = to_decimal(_field(item, 'unit_price'))
        line_discount = to_decimal(_field(item, 'discount', default=0))
        if not (quantity.is_finite() and unit_price.is_finite() and line_discount.is_finite()):
            return Totals(NAN, NAN, NAN, NAN)

        line_net = quantity * unit_price * (1 - line_discount / HUNDRED)
        subtotal += line_net

        tax_rate = to_decimal(_field(item, 'tax_rate', 'product_tax_rate', default=0))
        total_tax += line_net * (1 - global_discount / HUNDRED) * (tax_rate / HUNDRED)

    discount_amount = subtotal * (global_discount / HUNDRED)
    taxable_amount = subtotal - discount_amount
    total = taxable_amount + total_tax
    return Totals(subtotal, taxable_amount, total_tax, total)


def is_valid_total(totals: Totals) -> bool:
    """A document may only be persisted with a finite, strictly positive total."""
    return totals.total.is_finite() and totals.total > 0
