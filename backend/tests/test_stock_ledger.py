"""
Stock ledger and unit of work tests.

Verifies:
- increment() creates entries at the given price and keeps it afterwards
- decrement() never drives quantity below zero
- Failed units of work leave nothing behind
- Lock/version conflicts surface as ConflictError and are retried only on request
- A writer holding a stale version loses to a committed concurrent decrement
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from agrimarket import create_app
from agrimarket.config import TestingConfig

from agrimarket.errors import (
    ConflictError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from agrimarket.extensions import db
from agrimarket.models import Product, StockEntry, Warehouse
from agrimarket.services import stock_service
from agrimarket.services.concurrency import unit_of_work


def _quantity(db_session, product, warehouse):
    db_session.expire_all()
    entry = stock_service.get_entry(product.id, warehouse.id)
    return None if entry is None else Decimal(entry.quantity)


# =============================================================================
# INCREMENT
# =============================================================================


class TestIncrement:

    def test_creates_entry_at_given_price(self, db_session, product, warehouse):
        unit_of_work(lambda s: stock_service.increment(product.id, warehouse.id, Decimal("20"), Decimal("1.00")))

        entry = stock_service.get_entry(product.id, warehouse.id)
        assert Decimal(entry.quantity) == Decimal("20")
        assert Decimal(entry.unit_price) == Decimal("1.00")

    def test_existing_entry_keeps_price(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]

        unit_of_work(lambda s: stock_service.increment(product.id, warehouse.id, Decimal("5"), Decimal("9.99")))

        db_session.expire_all()
        entry = stock_service.get_entry(product.id, warehouse.id)
        assert Decimal(entry.quantity) == Decimal("15")
        assert Decimal(entry.unit_price) == Decimal("2.50")

    def test_same_product_in_two_warehouses_is_two_entries(self, db_session, stock, other_warehouse):
        product = stock["product"]
        unit_of_work(lambda s: stock_service.increment(product.id, other_warehouse.id, Decimal("3"), Decimal("3.00")))

        assert db_session.query(StockEntry).filter_by(product_id=product.id).count() == 2
        assert _quantity(db_session, product, stock["warehouse"]) == Decimal("10")

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
    def test_rejects_non_positive_quantity(self, db_session, product, warehouse, quantity):
        with pytest.raises(ValidationError):
            unit_of_work(lambda s: stock_service.increment(product.id, warehouse.id, quantity, Decimal("1")))

        assert stock_service.get_entry(product.id, warehouse.id) is None


# =============================================================================
# DECREMENT
# =============================================================================


class TestDecrement:

    def test_decrement_reduces_quantity(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]

        unit_of_work(lambda s: stock_service.decrement(product.id, warehouse.id, Decimal("4")))

        assert _quantity(db_session, product, warehouse) == Decimal("6")

    def test_decrement_to_exactly_zero(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]

        unit_of_work(lambda s: stock_service.decrement(product.id, warehouse.id, Decimal("10")))

        assert _quantity(db_session, product, warehouse) == Decimal("0")

    def test_insufficient_stock_leaves_entry_unchanged(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]

        with pytest.raises(InsufficientStockError) as exc_info:
            unit_of_work(lambda s: stock_service.decrement(product.id, warehouse.id, Decimal("11")))

        assert exc_info.value.available == Decimal("10")
        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert _quantity(db_session, product, warehouse) == Decimal("10")

    def test_missing_entry_is_product_not_found(self, db_session, stock, other_warehouse):
        with pytest.raises(ProductNotFoundError) as exc_info:
            unit_of_work(lambda s: stock_service.decrement(stock["product"].id, other_warehouse.id, Decimal("1")))

        assert exc_info.value.code == "PRODUCT_NOT_FOUND"
        assert exc_info.value.status_code == 404


# =============================================================================
# PRICING AND VALUE
# =============================================================================


class TestPricing:

    def test_reprice_changes_only_unit_price(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]

        unit_of_work(lambda s: stock_service.reprice(product.id, warehouse.id, Decimal("3.10")))

        db_session.expire_all()
        entry = stock_service.get_entry(product.id, warehouse.id)
        assert Decimal(entry.unit_price) == Decimal("3.10")
        assert Decimal(entry.quantity) == Decimal("10")

    def test_reprice_rejects_negative_price(self, db_session, stock):
        with pytest.raises(ValidationError):
            unit_of_work(
                lambda s: stock_service.reprice(stock["product"].id, stock["warehouse"].id, Decimal("-1"))
            )

    def test_stock_value(self, db_session, stock, other_warehouse):
        # 10 x 2.50 + 5 x 1.20
        assert stock_service.stock_value(stock["warehouse"].id) == Decimal("31.00")
        assert stock_service.stock_value(other_warehouse.id) == Decimal("0.00")

    def test_list_entries_filters_and_counts(self, db_session, stock):
        items, total = stock_service.list_entries(warehouse_id=stock["warehouse"].id, page=1, limit=1)
        assert total == 2
        assert len(items) == 1


# =============================================================================
# UNIT OF WORK
# =============================================================================


class TestUnitOfWork:

    def test_rolls_back_on_error(self, db_session, product, warehouse):
        def _work(session):
            stock_service.increment(product.id, warehouse.id, Decimal("5"), Decimal("1"))
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            unit_of_work(_work)

        assert db_session.query(StockEntry).count() == 0

    def test_domain_errors_are_not_retried(self, db_session):
        calls = []

        def _work(session):
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            unit_of_work(_work, attempts=3, backoff_base=0)

        assert len(calls) == 1

    def test_stale_data_becomes_conflict(self, db_session):
        def _work(session):
            raise StaleDataError("version mismatch")

        with pytest.raises(ConflictError) as exc_info:
            unit_of_work(_work)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["retryable"] is True

    def test_conflicts_are_retried_up_to_attempts(self, db_session):
        calls = []

        def _work(session):
            calls.append(1)
            raise OperationalError("UPDATE stock_entries", {}, Exception("database is locked"))

        with pytest.raises(ConflictError):
            unit_of_work(_work, attempts=3, backoff_base=0)

        assert len(calls) == 3

    def test_retry_succeeds_after_transient_conflict(self, db_session):
        calls = []

        def _work(session):
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("version mismatch")
            return "ok"

        assert unit_of_work(_work, attempts=3, backoff_base=0) == "ok"
        assert len(calls) == 2

    def test_duplicate_entry_race_surfaces_as_conflict(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]

        def _work(session):
            session.add(StockEntry(
                product_id=product.id,
                warehouse_id=warehouse.id,
                quantity=Decimal("1"),
                unit_price=Decimal("1"),
            ))
            session.flush()

        with pytest.raises(ConflictError):
            unit_of_work(_work)

        assert _quantity(db_session, product, warehouse) == Decimal("10")

    def test_version_increments_on_update(self, db_session, stock):
        product, warehouse = stock["product"], stock["warehouse"]
        before = stock_service.get_entry(product.id, warehouse.id).version_id

        unit_of_work(lambda s: stock_service.decrement(product.id, warehouse.id, Decimal("1")))

        db_session.expire_all()
        assert stock_service.get_entry(product.id, warehouse.id).version_id == before + 1


# =============================================================================
# CONCURRENT WRITERS
# =============================================================================


@pytest.fixture
def file_backed_stock(tmp_path):
    """
    10 units @ 2.50 in a file-backed SQLite database, so that a second
    Session gets its own connection instead of sharing the in-memory one.
    """
    class FileConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'ledger.sqlite3'}"
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 1}}

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()
        product = Product(name="Tomatoes", unit="kg")
        warehouse = Warehouse(name="Entrepot Sud", address="2 Route du Port")
        db.session.add_all([product, warehouse])
        db.session.commit()
        unit_of_work(lambda s: stock_service.increment(product.id, warehouse.id, Decimal("10"), Decimal("2.50")))

        yield product.id, warehouse.id

        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _sell_in_other_session(product_id, warehouse_id, quantity):
    """Commit a decrement through an independent session and connection."""
    with Session(db.engine) as other:
        entry = other.query(StockEntry).filter_by(product_id=product_id, warehouse_id=warehouse_id).one()
        entry.quantity = Decimal(entry.quantity) - quantity
        other.commit()


class TestConcurrentWriters:

    def test_stale_writer_loses_to_committed_decrement(self, file_backed_stock):
        product_id, warehouse_id = file_backed_stock

        def _work(session):
            stock_service.get_entry(product_id, warehouse_id)
            _sell_in_other_session(product_id, warehouse_id, Decimal("3"))
            return stock_service.decrement(product_id, warehouse_id, Decimal("2"))

        with pytest.raises(ConflictError):
            unit_of_work(_work)

        db.session.expire_all()
        entry = stock_service.get_entry(product_id, warehouse_id)
        assert Decimal(entry.quantity) == Decimal("7")
        assert entry.version_id == 2

    def test_retry_rereads_the_committed_quantity(self, file_backed_stock):
        product_id, warehouse_id = file_backed_stock
        calls = []

        def _work(session):
            calls.append(1)
            stock_service.get_entry(product_id, warehouse_id)
            if len(calls) == 1:
                _sell_in_other_session(product_id, warehouse_id, Decimal("3"))
            return stock_service.decrement(product_id, warehouse_id, Decimal("2"))

        unit_of_work(_work, attempts=2, backoff_base=0)

        assert len(calls) == 2
        db.session.expire_all()
        entry = stock_service.get_entry(product_id, warehouse_id)
        assert Decimal(entry.quantity) == Decimal("5")
        assert entry.version_id == 3
