# Overview: Transition-authorization tables for the workflows and the pure gate function.

"""
Transition Gates

WHY: Every state-machine edge names the roles allowed to take it in one
place. Services load the entity, compute the actor's effective roles and
ownership, and ask authorize_transition() for a decision. Nothing here
touches the database.

Decision order:
1. INVALID  - the (current, requested) edge is not in the table
2. DENIED   - the edge exists but the actor holds none of its roles and
              is not an allowed owner
3. ALLOWED
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Mapping

from ..models.enums import RoleType, ApprovisionnementStatus as AS, OrderStatus as OS


class GateDecision(str, enum.Enum):
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"
    INVALID = "INVALID"


@dataclass(frozen=True)
class Gate:
    """
    roles: role types that may pass
    owner: whether the owning actor (supplier, client, assigned driver,
           depending on the gate) may pass without one of those roles
    """
    roles: frozenset = frozenset()
    owner: bool = False

    def allows(self, actor_roles: Iterable[RoleType], *, is_owner: bool = False) -> bool:
        if self.owner and is_owner:
            return True
        return bool(self.roles.intersection(actor_roles))


def _gate(*roles: RoleType, owner: bool = False) -> Gate:
    return Gate(roles=frozenset(roles), owner=owner)


# -- APPROVISIONNEMENTS --

APPROVISIONNEMENT_CREATE_ROLES = (RoleType.SUPPLIER, RoleType.ADMIN)
APPROVISIONNEMENT_READ_GATE = _gate(RoleType.ADMIN, RoleType.BUSINESS, RoleType.STOCK_MANAGER, owner=True)

APPROVISIONNEMENT_TRANSITIONS: dict[tuple[str, str], Gate] = {
    (AS.PENDING.value, AS.APPROVED.value): _gate(RoleType.BUSINESS, RoleType.ADMIN),
    (AS.PENDING.value, AS.REJECTED.value): _gate(RoleType.BUSINESS, RoleType.ADMIN),
    (AS.PENDING.value, AS.CANCELLED.value): _gate(RoleType.ADMIN, owner=True),
    (AS.APPROVED.value, AS.RECEIVED.value): _gate(RoleType.STOCK_MANAGER, RoleType.ADMIN),
}


# -- ORDERS --

ORDER_MANAGER_ROLES = (RoleType.COMMAND_MANAGER, RoleType.ADMIN)
ORDER_STAFF_ROLES = (RoleType.ADMIN, RoleType.BUSINESS, RoleType.COMMAND_MANAGER)

ORDER_CREATE_GATE = _gate(*ORDER_STAFF_ROLES, owner=True)
ORDER_READ_GATE = _gate(*ORDER_STAFF_ROLES, owner=True)
ORDER_DELETE_ROLES = (RoleType.ADMIN, RoleType.BUSINESS)

_manager = _gate(*ORDER_MANAGER_ROLES)

ORDER_TRANSITIONS: dict[tuple[str, str], Gate] = {
    # Only the owning client, and only while still PENDING
    (OS.PENDING.value, OS.CANCELLED.value): _gate(owner=True),
    (OS.PENDING.value, OS.CONFIRMED.value): _manager,
    (OS.PENDING.value, OS.SHIPPED.value): _manager,
    (OS.PENDING.value, OS.DELIVERED.value): _manager,
    (OS.CONFIRMED.value, OS.SHIPPED.value): _manager,
    (OS.CONFIRMED.value, OS.DELIVERED.value): _manager,
    # Re-entering SHIPPED is accepted and creates nothing new
    (OS.SHIPPED.value, OS.SHIPPED.value): _manager,
    (OS.SHIPPED.value, OS.DELIVERED.value): _manager,
}

# Statuses at or past shipping; an order in one of these has a Delivery
ORDER_SHIPPED_STATUSES = frozenset({OS.SHIPPED.value, OS.DELIVERED.value})


# -- DELIVERIES --

DELIVERY_LIST_ROLES = (RoleType.ADMIN, RoleType.BUSINESS, RoleType.COMMAND_MANAGER, RoleType.DELIVERY_DRIVER)
DELIVERY_READ_GATE = _gate(RoleType.ADMIN, RoleType.BUSINESS, RoleType.COMMAND_MANAGER, owner=True)
DELIVERY_ASSIGN_GATE = _gate(RoleType.COMMAND_MANAGER, RoleType.ADMIN)
DELIVERY_STATUS_GATE = _gate(RoleType.COMMAND_MANAGER, RoleType.ADMIN, owner=True)


def delivery_transitions(graph: Mapping[str, Iterable[str]]) -> dict[tuple[str, str], Gate]:
    """Build the delivery status table from the configured status graph."""
    return {
        (current, target): DELIVERY_STATUS_GATE
        for current, targets in graph.items()
        for target in targets
    }


# -- STOCK --

STOCK_READ_ROLES = (RoleType.ADMIN, RoleType.BUSINESS, RoleType.STOCK_MANAGER)


def authorize_transition(
    table: Mapping[tuple[str, str], Gate],
    current: str,
    requested: str,
    actor_roles: Iterable[RoleType],
    *,
    is_owner: bool = False,
) -> GateDecision:
    """Pure decision for one requested edge of a state machine."""
    gate = table.get((current, requested))
    if gate is None:
        return GateDecision.INVALID
    if gate.allows(actor_roles, is_owner=is_owner):
        return GateDecision.ALLOWED
    return GateDecision.DENIED
