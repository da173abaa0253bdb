# Overview: Service-layer operations for deliveries; encapsulates business logic and database work.

"""
Delivery Service

Deliveries are created by the order workflow (never here). This module
assigns drivers and advances delivery status.

Two fields, gated independently:
- driver_id: COMMAND_MANAGER or ADMIN; the new driver must hold DELIVERY_DRIVER
- status: the assigned driver, or COMMAND_MANAGER/ADMIN; follows the
  DELIVERY_STATUS_TRANSITIONS graph from config

Setting a field to its current value changes nothing and needs no gate
beyond read access.
"""

from __future__ import annotations

from flask import current_app

from ..errors import AuthorizationError, InvalidStateTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Delivery, RoleType
from ..permissions import (
    DELIVERY_ASSIGN_GATE,
    DELIVERY_LIST_ROLES,
    DELIVERY_READ_GATE,
    GateDecision,
    authorize_transition,
    delivery_transitions,
)
from . import permission_service
from .concurrency import lock_for_update, unit_of_work
from .user_service import get_user

ENTITY = "delivery"

# Sentinel for "driver_id not supplied" (None means unassign)
UNSET = object()


def _status_graph() -> dict:
    return current_app.config["DELIVERY_STATUS_TRANSITIONS"]


def known_statuses() -> set[str]:
    graph = _status_graph()
    statuses = set(graph)
    for targets in graph.values():
        statuses.update(targets)
    return statuses


def _load(delivery_id: int, *, lock: bool = False) -> Delivery:
    query = db.session.query(Delivery).filter_by(id=delivery_id)
    if lock:
        query = lock_for_update(query)
    delivery = query.first()
    if delivery is None:
        raise NotFoundError(ENTITY, delivery_id)
    return delivery


def _can_read(delivery: Delivery, actor_id: int, roles) -> bool:
    is_owner = delivery.driver_id == actor_id or (
        delivery.order is not None and delivery.order.client_id == actor_id
    )
    return DELIVERY_READ_GATE.allows(roles, is_owner=is_owner)


def get_delivery(delivery_id: int, actor_id: int) -> Delivery:
    """Readable by the assigned driver, the order's client, and staff."""
    delivery = _load(delivery_id)
    if not _can_read(delivery, actor_id, permission_service.effective_roles(actor_id)):
        raise AuthorizationError("Not allowed to view this delivery")
    return delivery


def list_deliveries(
    actor_id: int,
    *,
    status: str | None = None,
    driver_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Delivery], int]:
    """
    Staff see all deliveries; a driver without a staff role sees only the
    deliveries assigned to them.
    """
    roles = permission_service.effective_roles(actor_id)
    if not roles.intersection(DELIVERY_LIST_ROLES):
        raise AuthorizationError("Not allowed to list deliveries")

    query = db.session.query(Delivery)
    if roles.intersection(DELIVERY_LIST_ROLES) == {RoleType.DELIVERY_DRIVER}:
        query = query.filter(Delivery.driver_id == actor_id)
    elif driver_id is not None:
        query = query.filter(Delivery.driver_id == driver_id)

    if status:
        query = query.filter(Delivery.status == status)

    total = query.count()
    items = (
        query.order_by(Delivery.created_at.desc(), Delivery.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def update_delivery(
    delivery_id: int,
    actor_id: int,
    *,
    driver_id=UNSET,
    status: str | None = None,
) -> Delivery:
    """
    Assign a driver and/or advance the status in one unit of work.

    Raises:
        ValidationError: neither field supplied, unknown status, or the new
            driver lacks DELIVERY_DRIVER
        NotFoundError: unknown delivery or driver
        AuthorizationError: actor may not change the supplied field
        InvalidStateTransitionError: status edge not in the graph
    """
    if driver_id is UNSET and status is None:
        raise ValidationError("Request body must contain driverId or status")
    if status is not None and status not in known_statuses():
        raise ValidationError(f"Unknown delivery status: {status}", details={"field": "status"})

    table = delivery_transitions(_status_graph())

    def _apply(session):
        delivery = _load(delivery_id, lock=True)
        roles = permission_service.effective_roles(actor_id)
        if not _can_read(delivery, actor_id, roles):
            raise AuthorizationError("Not allowed to view this delivery")
        assigned_driver = delivery.driver_id

        if driver_id is not UNSET and driver_id != delivery.driver_id:
            if not DELIVERY_ASSIGN_GATE.allows(roles):
                raise AuthorizationError("Only command managers can assign drivers")
            if driver_id is not None:
                get_user(driver_id)
                if not permission_service.has_role(driver_id, [RoleType.DELIVERY_DRIVER]):
                    raise ValidationError(
                        f"User {driver_id} is not a delivery driver",
                        details={"field": "driverId", "driver_id": driver_id},
                    )
            delivery.driver_id = driver_id

        if status is not None:
            current = delivery.status
            if status != current:
                decision = authorize_transition(
                    table, current, status, roles, is_owner=assigned_driver == actor_id
                )
                if decision is GateDecision.INVALID:
                    raise InvalidStateTransitionError(ENTITY, delivery.id, current, status)
                if decision is GateDecision.DENIED:
                    raise AuthorizationError(
                        "Only the assigned driver or a command manager can update status",
                        details={"current_status": current, "requested_status": status},
                    )
                delivery.status = status

        session.flush()
        return delivery

    delivery = unit_of_work(_apply)
    current_app.logger.info(
        "Delivery %s updated by user %s (driver=%s status=%s)",
        delivery_id, actor_id, delivery.driver_id, delivery.status,
    )
    return delivery
