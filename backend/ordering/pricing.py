"""
Cart and order pricing.

Every function here is pure: it works on already-fetched, in-memory line
data and never touches the database. Amounts are Decimal and rounded to
cents with ROUND_HALF_UP.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal('0.01')
ZERO = Decimal('0.00')

# 13% HST (Ontario)
TAX_RATE = Decimal('0.13')
DELIVERY_FEE = Decimal('5.99')


def to_money(value):
    """Coerce ints, floats, strings and Decimals to a 2dp Decimal."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_unit_price(base_price, price_modifiers=()):
    """Base price plus the price delta of every selected option."""
    unit_price = to_money(base_price)
    for modifier in price_modifiers:
        unit_price += to_money(modifier)
    return unit_price


def calculate_line_total(unit_price, quantity):
    return to_money(to_money(unit_price) * int(quantity))


def _line_values(item):
    if isinstance(item, dict):
        return item.get('unit_price'), item.get('quantity', 0)
    return item.unit_price, item.quantity


def calculate_subtotal(items):
    subtotal = ZERO
    for item in items:
        unit_price, quantity = _line_values(item)
        subtotal += calculate_line_total(unit_price, quantity)
    return subtotal


def calculate_tax(subtotal, rate=TAX_RATE):
    return to_money(to_money(subtotal) * Decimal(str(rate)))


def calculate_delivery_fee(subtotal, fee=DELIVERY_FEE):
    if to_money(subtotal) > ZERO:
        return to_money(fee)
    return ZERO


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    total_items: int

    def as_dict(self):
        return {
            'subtotal': self.subtotal,
            'tax': self.tax,
            'delivery_fee': self.delivery_fee,
            'total': self.total,
            'total_items': self.total_items,
        }


def calculate_totals(items, tax_rate=TAX_RATE, delivery_fee=DELIVERY_FEE):
    """Subtotal, tax, delivery fee and grand total for a list of lines.

    An empty list yields all zeros.
    """
    items = list(items)
    subtotal = calculate_subtotal(items)
    tax = calculate_tax(subtotal, tax_rate)
    fee = calculate_delivery_fee(subtotal, delivery_fee)
    total_items = sum(int(_line_values(item)[1]) for item in items)
    return CartTotals(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        total=subtotal + tax + fee,
        total_items=total_items,
    )


def amounts_match(expected, actual, tolerance=CENTS):
    """Compare two client/server amounts allowing one cent of drift."""
    return abs(to_money(expected) - to_money(actual)) <= tolerance
