# Overview: Flask API routes for order operations; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..decorators import require_auth, require_roles, validate_json
from ..models import OrderStatus
from ..permissions import ORDER_DELETE_ROLES
from ..responses import success_response, paginated
from ..services import order_service
from ..validation import coerce_choice, parse_order_create, parse_order_update, parse_pagination


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Staff (ADMIN, BUSINESS, COMMAND_MANAGER) see all orders; other users see
    their own. Query parameters: status, page, limit.
    """
    page, limit = parse_pagination(request.args)
    status = request.args.get("status")
    if status:
        status = coerce_choice(status, "status", (s.value for s in OrderStatus))

    items, total = order_service.list_orders(g.current_user.id, status=status, page=page, limit=limit)
    return success_response(
        paginated([o.to_dict(include_items=False) for o in items], page=page, limit=limit, total=total),
        "Orders fetched successfully",
    )


@orders_bp.post("")
@require_auth
@validate_json(parse_order_create)
def create_order_route(payload):
    """
    Place an order against one warehouse.

    Request body:
    {
        "warehouseId": 1,
        "paymentMethod": "CASH",
        "items": [{"productId": 1, "quantity": 4}],
        "clientId": 7          # optional; staff may order for a client
    }

    Errors: 404 PRODUCT_NOT_FOUND, 409 INSUFFICIENT_STOCK (nothing is
    decremented in either case).
    """
    client_id = payload.pop("client_id") or g.current_user.id
    order = order_service.create_order(actor_id=g.current_user.id, client_id=client_id, **payload)
    return success_response(order.to_dict(), "Order created successfully", 201)


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    order = order_service.get_order(order_id, g.current_user.id)
    return success_response(order.to_dict(), "Order fetched successfully")


@orders_bp.put("/<int:order_id>")
@require_auth
@validate_json(parse_order_update)
def update_order_route(order_id: int, payload):
    """Request body: {"status": "CONFIRMED" | "SHIPPED" | "DELIVERED" | "CANCELLED"}"""
    order = order_service.transition_order(order_id, payload["status"], g.current_user.id)
    return success_response(order.to_dict(), "Order updated successfully")


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_roles(*ORDER_DELETE_ROLES)
def delete_order_route(order_id: int):
    order_service.delete_order(order_id, g.current_user.id)
    return "", 204
