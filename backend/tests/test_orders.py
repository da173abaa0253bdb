"""
Order workflow tests.

Verifies:
- Creating an order decrements stock and snapshots prices in one transaction
- A failing line (missing product, insufficient stock) changes nothing
- Only the owning client can cancel, and only while PENDING; stock is put back
- Entering SHIPPED creates exactly one delivery
- Read and list access follow ownership and staff roles
"""

from decimal import Decimal

import pytest

from agrimarket.errors import (
    AuthorizationError,
    InsufficientStockError,
    InvalidStateTransitionError,
    ProductNotFoundError,
    ValidationError,
)
from agrimarket.models import Delivery, Order, OrderItem, SecurityEvent
from agrimarket.services import order_service, stock_service
from agrimarket.services.concurrency import unit_of_work


def _qty(db_session, product, warehouse) -> Decimal:
    db_session.expire_all()
    return Decimal(stock_service.get_entry(product.id, warehouse.id).quantity)


@pytest.fixture
def place_order(db_session, stock):
    """Factory: place_order(actor, [(product, qty), ...], client=None) -> Order."""
    def _place(actor, lines, client=None, payment_method="CASH"):
        return order_service.create_order(
            actor_id=actor.id,
            client_id=(client or actor).id,
            warehouse_id=stock["warehouse"].id,
            payment_method=payment_method,
            lines=[(p.id, Decimal(str(q))) for p, q in lines],
        )
    return _place


# =============================================================================
# CREATE
# =============================================================================


class TestCreateOrder:

    def test_order_decrements_stock_and_totals(self, db_session, client_user, stock, place_order):
        product, warehouse = stock["product"], stock["warehouse"]

        order = place_order(client_user, [(product, 4)])

        assert order.status == "PENDING"
        assert Decimal(order.total_amount) == Decimal("10.00")
        assert len(order.items) == 1
        assert Decimal(order.items[0].unit_price) == Decimal("2.50")
        assert _qty(db_session, product, warehouse) == Decimal("6")

    def test_insufficient_stock_changes_nothing(self, db_session, client_user, stock, place_order):
        product, warehouse = stock["product"], stock["warehouse"]
        place_order(client_user, [(product, 4)])

        with pytest.raises(InsufficientStockError) as exc_info:
            place_order(client_user, [(product, 8)])

        assert exc_info.value.available == Decimal("6")
        assert _qty(db_session, product, warehouse) == Decimal("6")
        assert db_session.query(Order).count() == 1

    def test_one_bad_line_rolls_back_the_others(self, db_session, client_user, stock, place_order):
        product, product_b, warehouse = stock["product"], stock["product_b"], stock["warehouse"]

        with pytest.raises(InsufficientStockError):
            place_order(client_user, [(product, 2), (product_b, 6)])

        assert _qty(db_session, product, warehouse) == Decimal("10")
        assert _qty(db_session, product_b, warehouse) == Decimal("5")
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_missing_product_is_not_found(self, db_session, client_user, stock, other_warehouse):
        with pytest.raises(ProductNotFoundError):
            order_service.create_order(
                actor_id=client_user.id,
                client_id=client_user.id,
                warehouse_id=other_warehouse.id,
                payment_method="CASH",
                lines=[(stock["product"].id, Decimal("1"))],
            )
        assert db_session.query(Order).count() == 0

    def test_multi_line_total_and_item_order(self, db_session, client_user, stock, place_order):
        order = place_order(client_user, [(stock["product_b"], "2.5"), (stock["product"], 1)])

        # 2.5 x 1.20 + 1 x 2.50
        assert Decimal(order.total_amount) == Decimal("5.50")
        assert [i.product_id for i in order.items] == [stock["product_b"].id, stock["product"].id]

    def test_duplicate_lines_rejected(self, db_session, client_user, stock, place_order):
        with pytest.raises(ValidationError):
            place_order(client_user, [(stock["product"], 1), (stock["product"], 2)])

    def test_empty_order_rejected(self, db_session, client_user, stock, place_order):
        with pytest.raises(ValidationError):
            place_order(client_user, [])

    def test_client_cannot_order_for_someone_else(self, db_session, client_user, other_client, stock,
                                                 place_order):
        with pytest.raises(AuthorizationError):
            place_order(client_user, [(stock["product"], 1)], client=other_client)

    def test_command_manager_orders_for_client(self, db_session, command_manager, client_user, stock, place_order):
        order = place_order(command_manager, [(stock["product"], 1)], client=client_user)
        assert order.client_id == client_user.id

    def test_reprice_does_not_touch_existing_items(self, db_session, client_user, stock, place_order):
        product, warehouse = stock["product"], stock["warehouse"]
        order = place_order(client_user, [(product, 2)])

        unit_of_work(lambda s: stock_service.reprice(product.id, warehouse.id, Decimal("4.00")))

        db_session.expire_all()
        order = db_session.get(Order, order.id)
        assert Decimal(order.items[0].unit_price) == Decimal("2.50")
        assert Decimal(order.total_amount) == Decimal("5.00")


# =============================================================================
# TRANSITIONS
# =============================================================================


class TestOrderTransitions:

    def test_client_cancels_pending_and_stock_returns(self, db_session, client_user, stock, place_order):
        product, warehouse = stock["product"], stock["warehouse"]
        order = place_order(client_user, [(product, 4)])

        cancelled = order_service.transition_order(order.id, "CANCELLED", client_user.id)

        assert cancelled.status == "CANCELLED"
        assert _qty(db_session, product, warehouse) == Decimal("10")

    def test_other_client_cannot_cancel(self, db_session, client_user, other_client, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        with pytest.raises(AuthorizationError):
            order_service.transition_order(order.id, "CANCELLED", other_client.id)

    def test_admin_cannot_cancel_for_client(self, db_session, client_user, admin, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        with pytest.raises(AuthorizationError):
            order_service.transition_order(order.id, "CANCELLED", admin.id)

    def test_cannot_cancel_confirmed(self, db_session, client_user, command_manager, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        order_service.transition_order(order.id, "CONFIRMED", command_manager.id)

        with pytest.raises(InvalidStateTransitionError):
            order_service.transition_order(order.id, "CANCELLED", client_user.id)

    def test_client_cannot_confirm(self, db_session, client_user, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        with pytest.raises(AuthorizationError):
            order_service.transition_order(order.id, "CONFIRMED", client_user.id)

    def test_shipping_creates_single_delivery(self, db_session, client_user, command_manager, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        order_service.transition_order(order.id, "CONFIRMED", command_manager.id)

        shipped = order_service.transition_order(order.id, "SHIPPED", command_manager.id)
        assert shipped.status == "SHIPPED"
        assert shipped.delivery is not None
        assert shipped.delivery.status == "ASSIGNED"
        assert shipped.delivery.driver_id is None

        order_service.transition_order(order.id, "SHIPPED", command_manager.id)
        order_service.transition_order(order.id, "DELIVERED", command_manager.id)

        assert db_session.query(Delivery).filter_by(order_id=order.id).count() == 1

    def test_pending_straight_to_delivered_creates_delivery(self, db_session, client_user, admin, stock,
                                                            place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        order_service.transition_order(order.id, "DELIVERED", admin.id)
        assert db_session.query(Delivery).filter_by(order_id=order.id).count() == 1

    def test_delivered_is_terminal(self, db_session, client_user, admin, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        order_service.transition_order(order.id, "DELIVERED", admin.id)

        with pytest.raises(InvalidStateTransitionError):
            order_service.transition_order(order.id, "SHIPPED", admin.id)

    def test_cancelled_cannot_be_cancelled_again(self, db_session, client_user, stock, place_order):
        product, warehouse = stock["product"], stock["warehouse"]
        order = place_order(client_user, [(product, 3)])
        order_service.transition_order(order.id, "CANCELLED", client_user.id)

        with pytest.raises(InvalidStateTransitionError):
            order_service.transition_order(order.id, "CANCELLED", client_user.id)

        assert _qty(db_session, product, warehouse) == Decimal("10")


# =============================================================================
# DELETE
# =============================================================================


class TestDeleteOrder:

    def test_business_deletes_without_restock(self, db_session, client_user, business, stock, place_order):
        product, warehouse = stock["product"], stock["warehouse"]
        order = place_order(client_user, [(product, 4)])

        order_service.delete_order(order.id, business.id)

        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert _qty(db_session, product, warehouse) == Decimal("6")

    def test_client_cannot_delete(self, db_session, client_user, stock, place_order):
        order = place_order(client_user, [(stock["product"], 1)])
        with pytest.raises(AuthorizationError):
            order_service.delete_order(order.id, client_user.id)


# =============================================================================
# API
# =============================================================================


class TestOrderApi:

    def _create(self, client, headers, stock, quantity):
        return client.post(
            "/api/orders",
            json={
                "warehouseId": stock["warehouse"].id,
                "paymentMethod": "mobile_money",
                "items": [{"productId": stock["product"].id, "quantity": quantity}],
            },
            headers=headers,
        )

    def test_create_then_insufficient(self, client, db_session, client_user, stock, headers_for):
        headers = headers_for(client_user)

        resp = self._create(client, headers, stock, 4)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["client_id"] == client_user.id
        assert data["payment_method"] == "MOBILE_MONEY"
        assert Decimal(data["total_amount"]) == Decimal("10.00")
        assert Decimal(data["items"][0]["line_total"]) == Decimal("10.00")

        resp = self._create(client, headers, stock, 8)
        assert resp.status_code == 409
        error = resp.get_json()["error"]
        assert error["code"] == "INSUFFICIENT_STOCK"
        assert Decimal(error["details"]["available"]) == Decimal("6")

        assert _qty(db_session, stock["product"], stock["warehouse"]) == Decimal("6")

    @pytest.mark.parametrize("quantity", ["1e30", "0.0001"])
    def test_out_of_range_quantity_is_400(self, client, db_session, client_user, stock, headers_for, quantity):
        resp = self._create(client, headers_for(client_user), stock, quantity)

        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["field"] == "items[0].quantity"
        assert _qty(db_session, stock["product"], stock["warehouse"]) == Decimal("10")

    def test_unknown_product_is_404(self, client, client_user, stock, headers_for):
        resp = client.post(
            "/api/orders",
            json={
                "warehouseId": stock["warehouse"].id,
                "paymentMethod": "CASH",
                "items": [{"productId": 999999, "quantity": 1}],
            },
            headers=headers_for(client_user),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "PRODUCT_NOT_FOUND"

    @pytest.mark.parametrize(
        "body",
        [
            {"paymentMethod": "CASH", "items": [{"productId": 1, "quantity": 1}]},
            {"warehouseId": 1, "paymentMethod": "BARTER", "items": [{"productId": 1, "quantity": 1}]},
            {"warehouseId": 1, "paymentMethod": "CASH", "items": []},
            {"warehouseId": 1, "paymentMethod": "CASH", "items": [{"productId": 1, "quantity": 0}]},
            {"warehouseId": 1, "paymentMethod": "CASH", "items": "tomatoes"},
        ],
    )
    def test_invalid_bodies_are_400(self, client, client_user, stock, headers_for, body):
        resp = client.post("/api/orders", json=body, headers=headers_for(client_user))
        assert resp.status_code == 400

    def test_client_lists_only_own_orders(self, client, client_user, other_client, stock, place_order,
                                          headers_for):
        mine = place_order(client_user, [(stock["product"], 1)])
        place_order(other_client, [(stock["product"], 1)])

        resp = client.get("/api/orders", headers=headers_for(client_user))

        data = resp.get_json()["data"]
        assert [o["id"] for o in data["items"]] == [mine.id]
        assert data["pagination"]["total"] == 1

    def test_staff_lists_all_orders(self, client, client_user, other_client, business, stock, place_order,
                                    headers_for):
        place_order(client_user, [(stock["product"], 1)])
        place_order(other_client, [(stock["product"], 1)])

        resp = client.get("/api/orders", headers=headers_for(business))
        assert resp.get_json()["data"]["pagination"]["total"] == 2

    def test_other_client_cannot_read(self, client, client_user, other_client, stock, place_order, headers_for):
        order = place_order(client_user, [(stock["product"], 1)])

        assert client.get(f"/api/orders/{order.id}", headers=headers_for(other_client)).status_code == 403
        assert client.get(f"/api/orders/{order.id}", headers=headers_for(client_user)).status_code == 200

    def test_cancel_via_api(self, client, db_session, client_user, stock, place_order, headers_for):
        order = place_order(client_user, [(stock["product"], 4)])

        resp = client.put(f"/api/orders/{order.id}", json={"status": "CANCELLED"}, headers=headers_for(client_user))

        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "CANCELLED"
        assert _qty(db_session, stock["product"], stock["warehouse"]) == Decimal("10")

    def test_ship_returns_delivery(self, client, client_user, command_manager, stock, place_order, headers_for):
        order = place_order(client_user, [(stock["product"], 1)])

        resp = client.put(f"/api/orders/{order.id}", json={"status": "SHIPPED"}, headers=headers_for(command_manager))

        assert resp.status_code == 200
        delivery = resp.get_json()["data"]["delivery"]
        assert delivery["order_id"] == order.id
        assert delivery["status"] == "ASSIGNED"

    def test_delete_requires_role_and_returns_204(self, client, db_session, client_user, admin, stock,
                                                  place_order, headers_for):
        order = place_order(client_user, [(stock["product"], 1)])

        denied = client.delete(f"/api/orders/{order.id}", headers=headers_for(client_user))
        assert denied.status_code == 403
        assert db_session.query(SecurityEvent).filter_by(user_id=client_user.id).count() == 1

        resp = client.delete(f"/api/orders/{order.id}", headers=headers_for(admin))
        assert resp.status_code == 204
        assert client.get(f"/api/orders/{order.id}", headers=headers_for(admin)).status_code == 404
