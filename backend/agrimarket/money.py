# Overview: Decimal helpers for quantities, unit prices and totals.

"""
Quantities and prices are stored as NUMERIC columns and handled as Decimal
everywhere in the service layer. Floats never reach the ledger.

- Quantities: 3 decimal places (kg, litres, crates)
- Prices and totals: 2 decimal places, half-up rounding
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

QUANTITY_EXP = Decimal("0.001")
MONEY_EXP = Decimal("0.01")

# Column limits: quantities NUMERIC(14,3), prices NUMERIC(12,2), line totals NUMERIC(14,2)
MAX_QUANTITY = Decimal("9999999.999")
MAX_UNIT_PRICE = Decimal("99999.99")


def quantize_quantity(value) -> Decimal:
    return Decimal(value).quantize(QUANTITY_EXP, rounding=ROUND_HALF_UP)


def quantize_money(value) -> Decimal:
    return Decimal(value).quantize(MONEY_EXP, rounding=ROUND_HALF_UP)


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """quantity * unit_price rounded to the cent."""
    return quantize_money(Decimal(quantity) * Decimal(unit_price))


def decimal_str(value) -> str | None:
    """Serialize a Decimal for JSON without float conversion."""
    if value is None:
        return None
    return str(value)
