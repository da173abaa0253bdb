from __future__ import annotations

from ..extensions import db
from ..money import decimal_str, line_total
from ..time_utils import to_utc_z
from .enums import ApprovisionnementStatus


class StockEntry(db.Model):
    """
    Stock ledger row: quantity and unit price of one product in one warehouse.

    INVARIANTS:
    - (product_id, warehouse_id) is unique
    - quantity >= 0 (also enforced by CHECK constraint)
    - unit_price is set when the entry is created by a receipt; later
      receipts only add quantity

    CONCURRENCY: version_id is an optimistic lock. Concurrent writers that
    read the same version cannot both commit (StaleDataError), which backs up
    SELECT ... FOR UPDATE on databases that ignore row locks (SQLite).
    """
    __tablename__ = "stock_entries"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_stock_entries_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_entries_quantity_nonneg"),
        db.CheckConstraint("unit_price >= 0", name="ck_stock_entries_unit_price_nonneg"),
        db.Index("ix_stock_entries_warehouse", "warehouse_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    quantity = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)

    # Receipt that first created this entry
    approvisionnement_id = db.Column(db.Integer, db.ForeignKey("approvisionnements.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("stock_entries", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("stock_entries", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<StockEntry product_id={self.product_id} warehouse_id={self.warehouse_id} "
            f"quantity={self.quantity} unit_price={self.unit_price}>"
        )

    @property
    def value(self):
        """Stock value at the current unit price."""
        return line_total(self.quantity, self.unit_price)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": decimal_str(self.quantity),
            "unit_price": decimal_str(self.unit_price),
            "value": decimal_str(self.value),
            "approvisionnement_id": self.approvisionnement_id,
            "version_id": self.version_id,
            "product": self.product.to_summary() if self.product else None,
            "warehouse": self.warehouse.to_summary() if self.warehouse else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Approvisionnement(db.Model):
    """
    Supplier proposal to add stock to a warehouse.

    LIFECYCLE:
    1. PENDING: Proposed by a supplier
    2. APPROVED: Accepted by business staff
    3. RECEIVED: Goods received by a stock manager (feeds the stock ledger)
    4. REJECTED / CANCELLED: Refused by business staff / withdrawn by supplier

    AUDIT: Never deleted.
    """
    __tablename__ = "approvisionnements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_approvisionnements_quantity_pos"),
        db.CheckConstraint("proposed_price >= 0", name="ck_approvisionnements_price_nonneg"),
        db.Index("ix_approvisionnements_status_created", "status", "created_at"),
        db.Index("ix_approvisionnements_supplier", "supplier_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    proposed_price = db.Column(db.Numeric(12, 2), nullable=False)
    delivery_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(
        db.String(16),
        nullable=False,
        default=ApprovisionnementStatus.PENDING.value,
        index=True,
    )

    business_developer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    stock_manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("User", foreign_keys=[supplier_id])
    business_developer = db.relationship("User", foreign_keys=[business_developer_id])
    stock_manager = db.relationship("User", foreign_keys=[stock_manager_id])
    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity": decimal_str(self.quantity),
            "proposed_price": decimal_str(self.proposed_price),
            "delivery_date": to_utc_z(self.delivery_date),
            "notes": self.notes,
            "status": self.status,
            "business_developer_id": self.business_developer_id,
            "stock_manager_id": self.stock_manager_id,
            "supplier": self.supplier.to_summary() if self.supplier else None,
            "product": self.product.to_summary() if self.product else None,
            "warehouse": self.warehouse.to_summary() if self.warehouse else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
