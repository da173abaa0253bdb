# Overview: Service-layer operations for client orders; encapsulates business logic and database work.

"""
Order Service

WHY: An order reserves stock the moment it is created. Creation, stock
checks, price snapshot and decrements are a single unit of work: either
every line is decremented and the order exists, or nothing changed.

CREATION STEPS (inside one transaction):
1. Lock each line's StockEntry, in product id order
2. Missing entry -> ProductNotFoundError
3. Any line over the available quantity -> InsufficientStockError, before
   anything is decremented
4. total_amount = sum(quantity * unit_price) from the locked entries
5. Insert Order + OrderItems (price snapshot), decrement every entry

LIFECYCLE:
PENDING -> CONFIRMED -> SHIPPED -> DELIVERED
PENDING -> CANCELLED (owning client only; stock is put back)
Entering SHIPPED or DELIVERED ensures exactly one Delivery exists.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import (
    AuthorizationError,
    InsufficientStockError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import Delivery, DeliveryStatus, Order, OrderItem, OrderStatus, PaymentMethod
from ..money import line_total, quantize_money, quantize_quantity
from ..permissions import (
    ORDER_CREATE_GATE,
    ORDER_DELETE_ROLES,
    ORDER_READ_GATE,
    ORDER_SHIPPED_STATUSES,
    ORDER_STAFF_ROLES,
    ORDER_TRANSITIONS,
    GateDecision,
    authorize_transition,
)
from . import permission_service, stock_service
from .catalog_service import get_warehouse
from .concurrency import lock_for_update, unit_of_work
from .user_service import get_user

ENTITY = "order"


def _normalize_lines(lines) -> list[tuple[int, Decimal]]:
    if not lines:
        raise ValidationError("Order must contain at least one item", details={"field": "items"})

    normalized: list[tuple[int, Decimal]] = []
    seen: set[int] = set()
    for line in lines:
        product_id, quantity = line
        qty = quantize_quantity(quantity)
        if qty <= 0:
            raise ValidationError(
                "Quantity must be greater than 0",
                details={"field": "quantity", "product_id": product_id},
            )
        if product_id in seen:
            raise ValidationError(
                f"Product {product_id} appears more than once",
                details={"field": "items", "product_id": product_id},
            )
        seen.add(product_id)
        normalized.append((product_id, qty))
    return normalized


def create_order(
    *,
    actor_id: int,
    client_id: int,
    warehouse_id: int,
    payment_method: str,
    lines,
) -> Order:
    """
    Create an order and decrement stock atomically.

    `lines` is a sequence of (product_id, quantity) pairs. Never retried.

    Raises:
        AuthorizationError: actor is neither the client nor order staff
        NotFoundError: unknown client or warehouse
        ProductNotFoundError: a product has no entry in the warehouse
        InsufficientStockError: a line exceeds available stock
        ValidationError: empty/duplicate lines, bad quantity or payment method
    """
    roles = permission_service.effective_roles(actor_id)
    if not ORDER_CREATE_GATE.allows(roles, is_owner=actor_id == client_id):
        raise AuthorizationError("Not allowed to create orders for this client")

    if payment_method not in {m.value for m in PaymentMethod}:
        raise ValidationError(f"Unknown payment method: {payment_method}", details={"field": "paymentMethod"})

    normalized = _normalize_lines(lines)

    def _create(session):
        get_user(client_id)
        get_warehouse(warehouse_id)

        # Lock in a stable order so concurrent orders cannot deadlock
        entries = {}
        for product_id in sorted(pid for pid, _ in normalized):
            entries[product_id] = stock_service.require_entry(product_id, warehouse_id, lock=True)

        for product_id, qty in normalized:
            available = Decimal(entries[product_id].quantity)
            if qty > available:
                raise InsufficientStockError(product_id, warehouse_id, available, qty)

        order = Order(
            client_id=client_id,
            warehouse_id=warehouse_id,
            payment_method=payment_method,
            status=OrderStatus.PENDING.value,
            total_amount=Decimal("0"),
        )
        total = Decimal("0")
        for position, (product_id, qty) in enumerate(normalized):
            unit_price = Decimal(entries[product_id].unit_price)
            amount = line_total(qty, unit_price)
            total += amount
            order.items.append(OrderItem(
                product_id=product_id,
                position=position,
                quantity=qty,
                unit_price=unit_price,
                line_total=amount,
            ))
        order.total_amount = quantize_money(total)

        session.add(order)
        session.flush()

        for product_id, qty in normalized:
            stock_service.decrement(product_id, warehouse_id, qty)

        return order

    order = unit_of_work(_create)
    current_app.logger.info(
        "Order %s created for client %s total=%s", order.id, client_id, order.total_amount
    )
    return order


def _load(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError(ENTITY, order_id)
    return order


def _can_read(order: Order, actor_id: int) -> bool:
    is_owner = order.client_id == actor_id or (
        order.delivery is not None and order.delivery.driver_id == actor_id
    )
    return ORDER_READ_GATE.allows(permission_service.effective_roles(actor_id), is_owner=is_owner)


def get_order(order_id: int, actor_id: int) -> Order:
    """Readable by its client, its assigned driver, and order staff."""
    order = _load(order_id)
    if not _can_read(order, actor_id):
        raise AuthorizationError("Not allowed to view this order")
    return order


def list_orders(
    actor_id: int,
    *,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Order], int]:
    """Staff see every order; anyone else sees the orders they placed or deliver."""
    query = db.session.query(Order)

    if not permission_service.has_role(actor_id, ORDER_STAFF_ROLES):
        query = query.outerjoin(Delivery, Delivery.order_id == Order.id).filter(
            db.or_(Order.client_id == actor_id, Delivery.driver_id == actor_id)
        )

    if status:
        query = query.filter(Order.status == status)

    total = query.count()
    items = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def _ensure_delivery(session, order: Order) -> Delivery:
    if order.delivery is not None:
        return order.delivery
    delivery = Delivery(order_id=order.id, driver_id=None, status=DeliveryStatus.ASSIGNED.value)
    session.add(delivery)
    order.delivery = delivery
    session.flush()
    current_app.logger.info("Delivery %s created for order %s", delivery.id, order.id)
    return delivery


def _restock(order: Order) -> None:
    for item in order.items:
        stock_service.increment(item.product_id, order.warehouse_id, item.quantity, item.unit_price)


def transition_order(order_id: int, requested_status: str, actor_id: int) -> Order:
    """
    Move an order to requested_status.

    Raises:
        NotFoundError: unknown id
        InvalidStateTransitionError: edge not allowed from the current status
        AuthorizationError: edge allowed but not for this actor
    """
    if requested_status not in {s.value for s in OrderStatus}:
        raise ValidationError(f"Unknown status: {requested_status}", details={"field": "status"})

    def _apply(session):
        order = _load(order_id, lock=True)
        current = order.status

        decision = authorize_transition(
            ORDER_TRANSITIONS,
            current,
            requested_status,
            permission_service.effective_roles(actor_id),
            is_owner=order.client_id == actor_id,
        )
        if decision is GateDecision.INVALID:
            raise InvalidStateTransitionError(ENTITY, order.id, current, requested_status)
        if decision is GateDecision.DENIED:
            raise AuthorizationError(
                f"Not allowed to move order from {current} to {requested_status}",
                details={"current_status": current, "requested_status": requested_status},
            )

        if requested_status == OrderStatus.CANCELLED.value:
            _restock(order)
        elif requested_status in ORDER_SHIPPED_STATUSES:
            _ensure_delivery(session, order)

        if order.status != requested_status:
            order.status = requested_status
        session.flush()
        return order

    attempts = 3 if requested_status == OrderStatus.CANCELLED.value else 1
    order = unit_of_work(_apply, attempts=attempts)
    current_app.logger.info("Order %s -> %s by user %s", order_id, requested_status, actor_id)
    return order


def delete_order(order_id: int, actor_id: int) -> None:
    """
    Remove an order with its items and delivery. Stock is not restored.
    """
    if not permission_service.has_role(actor_id, ORDER_DELETE_ROLES):
        raise AuthorizationError("Not allowed to delete orders")

    def _delete(session):
        order = _load(order_id, lock=True)
        session.delete(order)
        session.flush()

    unit_of_work(_delete)
    current_app.logger.info("Order %s deleted by user %s", order_id, actor_id)
