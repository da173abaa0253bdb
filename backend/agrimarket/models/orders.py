from __future__ import annotations

from ..extensions import db
from ..money import decimal_str
from ..time_utils import to_utc_z
from .enums import OrderStatus, DeliveryStatus


class Order(db.Model):
    """
    Client purchase against one warehouse.

    IMMUTABLE: total_amount is computed once at creation from the price
    snapshot stored on the items; it is never recomputed.

    LIFECYCLE:
    PENDING -> CONFIRMED -> SHIPPED -> DELIVERED, or PENDING -> CANCELLED.
    Entering SHIPPED (or DELIVERED) creates the order's single Delivery.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_amount >= 0", name="ck_orders_total_nonneg"),
        db.Index("ix_orders_client_created", "client_id", "created_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    total_amount = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING.value)
    payment_method = db.Column(db.String(32), nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    client = db.relationship("User", foreign_keys=[client_id])
    warehouse = db.relationship("Warehouse")
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )
    delivery = db.relationship(
        "Delivery",
        backref="order",
        uselist=False,
        lazy=True,
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} client_id={self.client_id} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "client_id": self.client_id,
            "warehouse_id": self.warehouse_id,
            "total_amount": decimal_str(self.total_amount),
            "status": self.status,
            "payment_method": self.payment_method,
            "client": self.client.to_summary() if self.client else None,
            "delivery": self.delivery.to_dict() if self.delivery else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """
    Order line.

    IMMUTABLE: unit_price is the stock entry price snapshotted when the order
    was created; later repricing of the stock entry does not touch it.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", name="uq_order_items_order_product"),
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    line_total = db.Column(db.Numeric(14, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": decimal_str(self.quantity),
            "unit_price": decimal_str(self.unit_price),
            "line_total": decimal_str(self.line_total),
            "product": self.product.to_summary() if self.product else None,
        }


class Delivery(db.Model):
    """
    Fulfillment of one order by a driver.

    Created exactly once, by the order transition into SHIPPED; the unique
    order_id backs that up at the database level.
    """
    __tablename__ = "deliveries"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_deliveries_order"),
        db.Index("ix_deliveries_driver_status", "driver_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False)
    driver_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status = db.Column(db.String(32), nullable=False, default=DeliveryStatus.ASSIGNED.value)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    driver = db.relationship("User", foreign_keys=[driver_id])

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "driver_id": self.driver_id,
            "status": self.status,
            "driver": self.driver.to_summary() if self.driver else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
