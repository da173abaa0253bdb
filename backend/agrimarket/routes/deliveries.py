# Overview: Flask API routes for delivery operations; parses input and returns JSON responses.

"""
Delivery Routes

Deliveries are created by the order workflow when an order ships; there is
no POST here. PUT accepts driverId and/or status, each gated separately.
"""

from flask import Blueprint, request, g

from ..decorators import require_auth, require_roles, validate_json
from ..permissions import DELIVERY_LIST_ROLES
from ..responses import success_response, paginated
from ..services import delivery_service
from ..validation import optional_int_arg, parse_delivery_update, parse_pagination


deliveries_bp = Blueprint("deliveries", __name__, url_prefix="/api/deliveries")


@deliveries_bp.get("")
@require_auth
@require_roles(*DELIVERY_LIST_ROLES)
def list_deliveries_route():
    """Query parameters: status, driverId, page, limit. Drivers only see their own."""
    page, limit = parse_pagination(request.args)
    status = request.args.get("status")

    items, total = delivery_service.list_deliveries(
        g.current_user.id,
        status=status.strip().upper() if status else None,
        driver_id=optional_int_arg(request.args, "driverId"),
        page=page,
        limit=limit,
    )
    return success_response(
        paginated([d.to_dict() for d in items], page=page, limit=limit, total=total),
        "Deliveries fetched successfully",
    )


@deliveries_bp.get("/<int:delivery_id>")
@require_auth
def get_delivery_route(delivery_id: int):
    delivery = delivery_service.get_delivery(delivery_id, g.current_user.id)
    return success_response(delivery.to_dict(), "Delivery fetched successfully")


@deliveries_bp.put("/<int:delivery_id>")
@require_auth
@validate_json(parse_delivery_update)
def update_delivery_route(delivery_id: int, payload):
    """
    Request body: {"driverId": 12, "status": "IN_TRANSIT"} (either or both)
    """
    delivery = delivery_service.update_delivery(delivery_id, g.current_user.id, **payload)
    return success_response(delivery.to_dict(), "Delivery updated successfully")
