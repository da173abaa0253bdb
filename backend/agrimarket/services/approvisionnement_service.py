# Overview: Service-layer operations for approvisionnements (supply requests); encapsulates business logic.

"""
Approvisionnement Service

WHY: Suppliers propose stock, business staff decide, stock managers receive.
Receiving is the only way stock enters the ledger.

LIFECYCLE:
1. PENDING: Proposed by a supplier (or an admin)
2. APPROVED: Accepted by BUSINESS/ADMIN; records the business developer
3. RECEIVED: Goods received by STOCK_MANAGER/ADMIN; records the stock
   manager and increments the ledger in the same transaction
4. REJECTED: Refused by BUSINESS/ADMIN while PENDING
5. CANCELLED: Withdrawn by the originating supplier (or ADMIN) while PENDING

Anything else, including receiving twice, is an invalid transition.
Approvisionnements are never deleted.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import AuthorizationError, InvalidStateTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Approvisionnement, ApprovisionnementStatus, RoleType
from ..money import quantize_money, quantize_quantity
from ..permissions import (
    APPROVISIONNEMENT_CREATE_ROLES,
    APPROVISIONNEMENT_READ_GATE,
    APPROVISIONNEMENT_TRANSITIONS,
    GateDecision,
    authorize_transition,
)
from . import permission_service, stock_service
from .catalog_service import get_product, get_warehouse
from .concurrency import lock_for_update, unit_of_work

ENTITY = "approvisionnement"

# Statuses each role sees when listing; ADMIN sees everything
_LIST_SCOPES = {
    RoleType.BUSINESS: {ApprovisionnementStatus.PENDING.value, ApprovisionnementStatus.APPROVED.value},
    RoleType.STOCK_MANAGER: {ApprovisionnementStatus.APPROVED.value},
}

# Cancellation/rejection may be retried on conflict; receipt may not
_RETRYABLE_TARGETS = {ApprovisionnementStatus.CANCELLED.value, ApprovisionnementStatus.REJECTED.value}


def create_approvisionnement(
    *,
    actor_id: int,
    product_id: int,
    warehouse_id: int,
    quantity,
    proposed_price,
    delivery_date: datetime,
    notes: str | None = None,
) -> Approvisionnement:
    """
    Create a PENDING approvisionnement with the actor as supplier.

    Raises:
        AuthorizationError: actor is neither SUPPLIER nor ADMIN
        NotFoundError: unknown product or warehouse
        ValidationError: quantity <= 0 or proposed_price < 0
    """
    if not permission_service.has_role(actor_id, APPROVISIONNEMENT_CREATE_ROLES):
        raise AuthorizationError("Only suppliers can create approvisionnements")

    qty = quantize_quantity(quantity)
    if qty <= 0:
        raise ValidationError("Quantity must be greater than 0", details={"field": "quantity"})
    price = quantize_money(proposed_price)
    if price < 0:
        raise ValidationError("Proposed price must be >= 0", details={"field": "proposedPrice"})
    if delivery_date is None:
        raise ValidationError("Delivery date is required", details={"field": "deliveryDate"})

    def _create(session):
        get_product(product_id)
        get_warehouse(warehouse_id)

        appro = Approvisionnement(
            supplier_id=actor_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=qty,
            proposed_price=price,
            delivery_date=delivery_date,
            notes=notes,
            status=ApprovisionnementStatus.PENDING.value,
        )
        session.add(appro)
        session.flush()
        return appro

    appro = unit_of_work(_create)
    current_app.logger.info("Approvisionnement %s created by supplier %s", appro.id, actor_id)
    return appro


def _load(approvisionnement_id: int, *, lock: bool = False) -> Approvisionnement:
    query = db.session.query(Approvisionnement).filter_by(id=approvisionnement_id)
    if lock:
        query = lock_for_update(query)
    appro = query.first()
    if appro is None:
        raise NotFoundError(ENTITY, approvisionnement_id)
    return appro


def get_approvisionnement(approvisionnement_id: int, actor_id: int) -> Approvisionnement:
    """Load one approvisionnement; readable by staff and its supplier."""
    appro = _load(approvisionnement_id)
    roles = permission_service.effective_roles(actor_id)
    if not APPROVISIONNEMENT_READ_GATE.allows(roles, is_owner=appro.supplier_id == actor_id):
        raise AuthorizationError("Not allowed to view this approvisionnement")
    return appro


def list_approvisionnements(
    actor_id: int,
    *,
    status: str | None = None,
    warehouse_id: int | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Approvisionnement], int]:
    """
    Role-scoped listing, newest first.

    SUPPLIER sees its own, BUSINESS sees PENDING and APPROVED,
    STOCK_MANAGER sees APPROVED, ADMIN sees all. Scopes of several held
    roles are combined.
    """
    roles = permission_service.effective_roles(actor_id)
    query = db.session.query(Approvisionnement)

    if RoleType.ADMIN not in roles:
        clauses = []
        if RoleType.SUPPLIER in roles:
            clauses.append(Approvisionnement.supplier_id == actor_id)
        visible: set[str] = set()
        for role, statuses in _LIST_SCOPES.items():
            if role in roles:
                visible |= statuses
        if visible:
            clauses.append(Approvisionnement.status.in_(sorted(visible)))
        if not clauses:
            raise AuthorizationError("Not allowed to list approvisionnements")
        query = query.filter(db.or_(*clauses))

    if status:
        query = query.filter(Approvisionnement.status == status)
    if warehouse_id is not None:
        query = query.filter(Approvisionnement.warehouse_id == warehouse_id)

    total = query.count()
    items = (
        query.order_by(Approvisionnement.created_at.desc(), Approvisionnement.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def transition_approvisionnement(
    approvisionnement_id: int,
    requested_status: str,
    actor_id: int,
) -> Approvisionnement:
    """
    Move an approvisionnement to requested_status.

    The status check and the ledger increment run in one unit of work: if the
    increment fails the status change is rolled back too.

    Raises:
        NotFoundError: unknown id
        InvalidStateTransitionError: edge not allowed from the current status
        AuthorizationError: edge allowed but not for this actor
    """
    if requested_status not in {s.value for s in ApprovisionnementStatus}:
        raise ValidationError(f"Unknown status: {requested_status}", details={"field": "status"})

    def _apply(session):
        appro = _load(approvisionnement_id, lock=True)
        current = appro.status

        decision = authorize_transition(
            APPROVISIONNEMENT_TRANSITIONS,
            current,
            requested_status,
            permission_service.effective_roles(actor_id),
            is_owner=appro.supplier_id == actor_id,
        )
        if decision is GateDecision.INVALID:
            raise InvalidStateTransitionError(ENTITY, appro.id, current, requested_status)
        if decision is GateDecision.DENIED:
            raise AuthorizationError(
                f"Not allowed to move approvisionnement from {current} to {requested_status}",
                details={"current_status": current, "requested_status": requested_status},
            )

        if requested_status == ApprovisionnementStatus.APPROVED.value:
            appro.business_developer_id = actor_id
        elif requested_status == ApprovisionnementStatus.RECEIVED.value:
            appro.stock_manager_id = actor_id
            stock_service.increment(
                appro.product_id,
                appro.warehouse_id,
                appro.quantity,
                appro.proposed_price,
                source_approvisionnement_id=appro.id,
            )

        appro.status = requested_status
        session.flush()
        return appro

    attempts = 3 if requested_status in _RETRYABLE_TARGETS else 1
    appro = unit_of_work(_apply, attempts=attempts)
    current_app.logger.info(
        "Approvisionnement %s -> %s by user %s", approvisionnement_id, requested_status, actor_id
    )
    return appro
