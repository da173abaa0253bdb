# Overview: Flask API routes for reading the stock ledger; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_roles
from ..money import decimal_str
from ..permissions import STOCK_READ_ROLES
from ..responses import success_response, paginated
from ..services import stock_service
from ..validation import optional_int_arg, parse_pagination


stocks_bp = Blueprint("stocks", __name__, url_prefix="/api/stocks")


@stocks_bp.get("")
@require_auth
@require_roles(*STOCK_READ_ROLES)
def list_stocks_route():
    """
    Stock entries with their value (quantity x unit price).

    Query parameters: warehouseId, productId, page, limit.
    """
    page, limit = parse_pagination(request.args)
    warehouse_id = optional_int_arg(request.args, "warehouseId")

    items, total = stock_service.list_entries(
        warehouse_id=warehouse_id,
        product_id=optional_int_arg(request.args, "productId"),
        page=page,
        limit=limit,
    )
    data = paginated([e.to_dict() for e in items], page=page, limit=limit, total=total)
    data["total_value"] = decimal_str(stock_service.stock_value(warehouse_id))
    return success_response(data, "Stocks fetched successfully")
