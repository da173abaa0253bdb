# Overview: Flask API routes for approvisionnement (supply request) operations; parses input and returns JSON responses.

"""
Approvisionnement Routes

SECURITY: All routes require authentication.
- Create requires SUPPLIER or ADMIN
- Read/list are scoped by role inside the service
- Status changes are gated per transition inside the service
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_roles, validate_json
from ..models import ApprovisionnementStatus
from ..permissions import APPROVISIONNEMENT_CREATE_ROLES
from ..responses import success_response, paginated
from ..services import approvisionnement_service
from ..validation import (
    coerce_choice,
    optional_int_arg,
    parse_approvisionnement_create,
    parse_approvisionnement_update,
    parse_pagination,
)


approvisionnements_bp = Blueprint("approvisionnements", __name__, url_prefix="/api/approvisionnements")


@approvisionnements_bp.get("")
@require_auth
def list_approvisionnements_route():
    """
    List approvisionnements visible to the current user.

    Query parameters:
    - status: PENDING, APPROVED, RECEIVED, REJECTED, CANCELLED
    - warehouseId: Filter by warehouse
    - page, limit: Pagination
    """
    page, limit = parse_pagination(request.args)
    status = request.args.get("status")
    if status:
        status = coerce_choice(status, "status", (s.value for s in ApprovisionnementStatus))

    items, total = approvisionnement_service.list_approvisionnements(
        g.current_user.id,
        status=status,
        warehouse_id=optional_int_arg(request.args, "warehouseId"),
        page=page,
        limit=limit,
    )
    return success_response(
        paginated([a.to_dict() for a in items], page=page, limit=limit, total=total),
        "Approvisionnements fetched successfully",
    )


@approvisionnements_bp.post("")
@require_auth
@require_roles(*APPROVISIONNEMENT_CREATE_ROLES)
@validate_json(parse_approvisionnement_create)
def create_approvisionnement_route(payload):
    """
    Propose stock to a warehouse.

    Request body:
    {
        "productId": 1,
        "warehouseId": 1,
        "quantity": 20,
        "proposedPrice": 1.00,
        "deliveryDate": "2025-06-01T00:00:00Z",
        "notes": "optional"
    }
    """
    appro = approvisionnement_service.create_approvisionnement(actor_id=g.current_user.id, **payload)
    return success_response(appro.to_dict(), "Approvisionnement created successfully", 201)


@approvisionnements_bp.get("/<int:approvisionnement_id>")
@require_auth
def get_approvisionnement_route(approvisionnement_id: int):
    appro = approvisionnement_service.get_approvisionnement(approvisionnement_id, g.current_user.id)
    return success_response(appro.to_dict(), "Approvisionnement fetched successfully")


@approvisionnements_bp.put("/<int:approvisionnement_id>")
@require_auth
@validate_json(parse_approvisionnement_update)
def update_approvisionnement_route(approvisionnement_id: int, payload):
    """
    Request body: {"status": "APPROVED" | "REJECTED" | "CANCELLED" | "RECEIVED"}

    Returns 409 INVALID_STATE_TRANSITION for an edge that does not exist and
    403 FORBIDDEN for an edge the user may not take.
    """
    appro = approvisionnement_service.transition_approvisionnement(
        approvisionnement_id, payload["status"], g.current_user.id
    )
    return success_response(appro.to_dict(), "Approvisionnement updated successfully")
