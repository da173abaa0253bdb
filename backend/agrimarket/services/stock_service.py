# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

"""
Stock Ledger

WHY: Warehouse quantities are the shared resource every workflow competes
for. All changes go through increment()/decrement() so that quantity never
goes negative and unit prices are only set deliberately.

TRANSACTIONS: Functions here never commit. They are always called inside
unit_of_work(), which owns commit/rollback. Rows are read with
SELECT ... FOR UPDATE (lock=True) and carry an optimistic version_id.

PRICING:
- The first receipt for a (product, warehouse) creates the entry with the
  receipt's proposed price
- Later receipts add quantity only; the price stays
- reprice() is the only way to change a unit price
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import InsufficientStockError, ProductNotFoundError, ValidationError
from ..extensions import db
from ..models import StockEntry
from ..money import quantize_quantity, quantize_money
from .concurrency import lock_for_update


def _positive_quantity(quantity) -> Decimal:
    qty = quantize_quantity(quantity)
    if qty <= 0:
        raise ValidationError("Quantity must be greater than 0", details={"quantity": qty})
    return qty


def get_entry(product_id: int, warehouse_id: int, *, lock: bool = False) -> StockEntry | None:
    query = db.session.query(StockEntry).filter_by(product_id=product_id, warehouse_id=warehouse_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def require_entry(product_id: int, warehouse_id: int, *, lock: bool = False) -> StockEntry:
    entry = get_entry(product_id, warehouse_id, lock=lock)
    if entry is None:
        raise ProductNotFoundError(product_id, warehouse_id)
    return entry


def increment(
    product_id: int,
    warehouse_id: int,
    quantity,
    unit_price_if_creating,
    source_approvisionnement_id: int | None = None,
) -> StockEntry:
    """
    Add quantity to an entry, creating it at unit_price_if_creating if absent.

    An existing entry keeps its unit price. A concurrent creator of the same
    (product, warehouse) loses on the unique constraint at flush, which the
    unit of work reports as a conflict.
    """
    qty = _positive_quantity(quantity)

    entry = get_entry(product_id, warehouse_id, lock=True)
    if entry is None:
        price = quantize_money(unit_price_if_creating)
        if price < 0:
            raise ValidationError("Unit price must be >= 0", details={"unit_price": price})
        entry = StockEntry(
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=qty,
            unit_price=price,
            approvisionnement_id=source_approvisionnement_id,
        )
        db.session.add(entry)
    else:
        entry.quantity = quantize_quantity(Decimal(entry.quantity) + qty)

    db.session.flush()
    current_app.logger.info(
        "Stock +%s product=%s warehouse=%s now=%s", qty, product_id, warehouse_id, entry.quantity
    )
    return entry


def decrement(product_id: int, warehouse_id: int, quantity) -> StockEntry:
    """
    Remove quantity from an existing entry.

    Raises:
        ProductNotFoundError: no entry for (product, warehouse)
        InsufficientStockError: quantity exceeds the available amount;
            the entry is left unchanged
    """
    qty = _positive_quantity(quantity)
    entry = require_entry(product_id, warehouse_id, lock=True)
    return _take(entry, qty)


def _take(entry: StockEntry, qty: Decimal) -> StockEntry:
    available = Decimal(entry.quantity)
    if qty > available:
        raise InsufficientStockError(entry.product_id, entry.warehouse_id, available, qty)

    entry.quantity = quantize_quantity(available - qty)
    db.session.flush()
    return entry


def reprice(product_id: int, warehouse_id: int, unit_price) -> StockEntry:
    """Set a new unit price; existing order items keep their snapshot."""
    price = quantize_money(unit_price)
    if price < 0:
        raise ValidationError("Unit price must be >= 0", details={"unit_price": price})

    entry = require_entry(product_id, warehouse_id, lock=True)
    entry.unit_price = price
    db.session.flush()
    return entry


def list_entries(
    warehouse_id: int | None = None,
    product_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[StockEntry], int]:
    query = db.session.query(StockEntry)
    if warehouse_id is not None:
        query = query.filter(StockEntry.warehouse_id == warehouse_id)
    if product_id is not None:
        query = query.filter(StockEntry.product_id == product_id)

    total = query.count()
    items = (
        query.order_by(StockEntry.warehouse_id.asc(), StockEntry.product_id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def stock_value(warehouse_id: int | None = None) -> Decimal:
    """Sum of quantity * unit_price over the selected entries."""
    query = db.session.query(StockEntry)
    if warehouse_id is not None:
        query = query.filter(StockEntry.warehouse_id == warehouse_id)
    return quantize_money(sum((entry.value for entry in query.all()), Decimal("0")))
