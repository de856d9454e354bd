from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tramar.cart.models import Cart
from tramar.cart.service import CartService
from tramar.core.exceptions import InsufficientStockError
from tramar.database.core import Base
from tramar.inventory.service import InventoryLedger
from tramar.orders.models import Order, PaymentMethod
from tramar.orders.service import OrderService
from tramar.products.models import Product
from tramar.schemas.orders import CreateOrderRequest, OrderItemRequest, ShippingAddressSchema
from tramar.users.models import User, UserRole


SHIPPING_ADDRESS = {
    "address": "12 Tahrir St",
    "city": "Cairo",
    "postalCode": "11511",
    "country": "Egypt",
}


def _order_body(*lines, payment_method="stripe"):
    return {
        "orderItems": [{"product": str(product.id), "quantity": quantity} for product, quantity in lines],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": payment_method,
    }


def test_place_order_prices_from_catalog(client, db_session, make_product, auth_headers):
    product = make_product(price_cents=5000, count_in_stock=3)

    response = client.post("/api/orders", json=_order_body((product, 1)), headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["itemsPrice"] == 50.0
    assert data["taxPrice"] == 7.5
    assert data["shippingPrice"] == 10.0
    assert data["totalPrice"] == 67.5
    assert data["isPaid"] is False
    assert data["isDelivered"] is False
    assert data["shippingAddress"]["postalCode"] == "11511"
    assert data["orderItems"][0]["product"] == str(product.id)
    assert data["orderItems"][0]["price"] == 50.0

    db_session.refresh(product)
    assert product.count_in_stock == 2


def test_forged_client_price_is_ignored(client, make_product, auth_headers):
    product = make_product(price_cents=20000, count_in_stock=3)
    body = _order_body((product, 1))
    body["orderItems"][0]["price"] = 0.01
    body["orderItems"][0]["name"] = "Free stuff"
    body["totalPrice"] = 0.01

    response = client.post("/api/orders", json=body, headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["orderItems"][0]["price"] == 200.0
    assert data["orderItems"][0]["name"] == product.name
    assert data["totalPrice"] == 230.0


def test_insufficient_stock_rolls_back_every_line(client, db_session, make_product, auth_headers):
    plenty = make_product(name="Case", price_cents=8000, count_in_stock=10)
    scarce = make_product(name="Ryzen 9", price_cents=45000, count_in_stock=1)

    response = client.post(
        "/api/orders", json=_order_body((plenty, 2), (scarce, 2)), headers=auth_headers
    )

    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "INSUFFICIENT_STOCK"
    assert "Ryzen 9" in data["message"]
    assert data["context"]["available"] == 1

    db_session.expire_all()
    assert db_session.get(Product, plenty.id).count_in_stock == 10
    assert db_session.get(Product, scarce.id).count_in_stock == 1
    assert db_session.query(Order).count() == 0


def test_unknown_product_is_404(client, db_session, auth_headers):
    body = {
        "orderItems": [{"product": str(uuid4()), "quantity": 1}],
        "shippingAddress": SHIPPING_ADDRESS,
        "paymentMethod": "stripe",
    }

    response = client.post("/api/orders", json=body, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"
    assert db_session.query(Order).count() == 0


def test_empty_order_is_rejected(client, auth_headers):
    body = {"orderItems": [], "shippingAddress": SHIPPING_ADDRESS, "paymentMethod": "stripe"}

    response = client.post("/api/orders", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_zero_quantity_is_rejected(client, make_product, auth_headers):
    product = make_product()

    response = client.post("/api/orders", json=_order_body((product, 0)), headers=auth_headers)

    assert response.status_code == 400


def test_quantity_above_limit_is_rejected(client, make_product, auth_headers):
    product = make_product(count_in_stock=1000)

    response = client.post("/api/orders", json=_order_body((product, 101)), headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "QUANTITY_OUT_OF_RANGE"


def test_duplicate_lines_are_merged(client, db_session, make_product, auth_headers):
    product = make_product(price_cents=1000, count_in_stock=5)

    response = client.post(
        "/api/orders", json=_order_body((product, 2), (product, 1)), headers=auth_headers
    )

    assert response.status_code == 201
    items = response.json()["orderItems"]
    assert len(items) == 1
    assert items[0]["quantity"] == 3
    db_session.refresh(product)
    assert product.count_in_stock == 2


def test_place_order_clears_cart(client, db_session, make_product, auth_headers, test_user):
    product = make_product(count_in_stock=5)
    added = client.post(
        "/api/cart", json={"productId": str(product.id), "quantity": 2}, headers=auth_headers
    )
    assert added.status_code == 200

    response = client.post("/api/orders", json=_order_body((product, 2)), headers=auth_headers)

    assert response.status_code == 201
    assert db_session.query(Cart).filter(Cart.user_id == test_user.id).first() is None
    assert client.get("/api/cart", headers=auth_headers).json()["items"] == []


def test_failed_order_keeps_cart(client, db_session, make_product, auth_headers, test_user):
    product = make_product(count_in_stock=2)
    client.post("/api/cart", json={"productId": str(product.id), "quantity": 2}, headers=auth_headers)

    response = client.post("/api/orders", json=_order_body((product, 3)), headers=auth_headers)

    assert response.status_code == 400
    cart = client.get("/api/cart", headers=auth_headers).json()
    assert len(cart["items"]) == 1


def test_place_order_requires_auth(client, make_product):
    product = make_product()

    response = client.post("/api/orders", json=_order_body((product, 1)))

    assert response.status_code == 401


def test_invalid_token_is_rejected(client, make_product):
    product = make_product()

    response = client.post(
        "/api/orders", json=_order_body((product, 1)), headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.json()["code"] == "NOT_AUTHENTICATED"


def test_two_orders_for_last_unit(client, db_session, make_product, auth_headers, other_headers):
    product = make_product(count_in_stock=1)

    first = client.post("/api/orders", json=_order_body((product, 1)), headers=auth_headers)
    second = client.post("/api/orders", json=_order_body((product, 1)), headers=other_headers)

    assert first.status_code == 201
    assert second.status_code == 400
    assert second.json()["code"] == "INSUFFICIENT_STOCK"
    db_session.refresh(product)
    assert product.count_in_stock == 0
    assert db_session.query(Order).count() == 1


def test_get_order_owner_and_admin(client, make_product, auth_headers, other_headers, admin_headers):
    product = make_product()
    order_id = client.post(
        "/api/orders", json=_order_body((product, 1)), headers=auth_headers
    ).json()["id"]

    assert client.get(f"/api/orders/{order_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 200

    response = client.get(f"/api/orders/{order_id}", headers=other_headers)
    assert response.status_code == 401
    assert response.json()["code"] == "NOT_AUTHORIZED"


def test_get_missing_order(client, auth_headers):
    response = client.get(f"/api/orders/{uuid4()}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "ORDER_NOT_FOUND"


def test_my_orders_lists_only_own(client, make_product, auth_headers, other_headers):
    product = make_product()
    client.post("/api/orders", json=_order_body((product, 1)), headers=auth_headers)
    client.post("/api/orders", json=_order_body((product, 1)), headers=auth_headers)
    client.post("/api/orders", json=_order_body((product, 1)), headers=other_headers)

    response = client.get("/api/orders/myorders", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["count"] == 2


def test_all_orders_requires_admin(client, make_product, auth_headers, admin_headers):
    product = make_product()
    client.post("/api/orders", json=_order_body((product, 1)), headers=auth_headers)

    assert client.get("/api/orders", headers=auth_headers).status_code == 403
    response = client.get("/api/orders", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["count"] == 1


def test_deliver_requires_paid(client, make_product, auth_headers, admin_headers):
    product = make_product()
    order_id = client.post(
        "/api/orders", json=_order_body((product, 1)), headers=auth_headers
    ).json()["id"]

    response = client.put(f"/api/orders/{order_id}/deliver", headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "ORDER_NOT_PAID"


def test_deliver_paid_order_once(client, make_product, auth_headers, admin_headers):
    product = make_product()
    order_id = client.post(
        "/api/orders", json=_order_body((product, 1), payment_method="cod"), headers=auth_headers
    ).json()["id"]
    paid = client.put(
        f"/api/orders/{order_id}/pay",
        json={"id": "cod-1", "status": "COMPLETED", "updateTime": "2026-01-01T10:00:00Z"},
        headers=admin_headers,
    )
    assert paid.status_code == 200

    response = client.put(f"/api/orders/{order_id}/deliver", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["isDelivered"] is True
    assert response.json()["deliveredAt"] is not None

    again = client.put(f"/api/orders/{order_id}/deliver", headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["code"] == "ORDER_ALREADY_DELIVERED"


def test_deliver_requires_admin(client, make_product, auth_headers):
    product = make_product()
    order_id = client.post(
        "/api/orders", json=_order_body((product, 1)), headers=auth_headers
    ).json()["id"]

    response = client.put(f"/api/orders/{order_id}/deliver", headers=auth_headers)

    assert response.status_code == 403
    assert response.json()["code"] == "ADMIN_REQUIRED"


def test_deliver_missing_order(client, admin_headers):
    response = client.put(f"/api/orders/{uuid4()}/deliver", headers=admin_headers)
    assert response.status_code == 404


def test_lost_decrement_race_rolls_back_whole_placement(tmp_path):
    """Stock passes the upfront check on stale data, then the conditional decrement loses."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'placement.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    user = User(name="Racer", email="racer@example.com", password_hash="x", role=UserRole.USER)
    plenty = Product(name="Case", price_cents=8000, count_in_stock=5)
    last_unit = Product(name="RTX 4090", price_cents=160000, count_in_stock=1)
    setup.add_all([user, plenty, last_unit])
    setup.commit()
    user_id, plenty_id, last_unit_id = user.id, plenty.id, last_unit.id
    setup.close()

    buyer, rival = Session(), Session()
    try:
        CartService.add_item(buyer, user_id, last_unit_id, 1)
        assert buyer.get(Product, plenty_id).count_in_stock == 5
        assert buyer.get(Product, last_unit_id).count_in_stock == 1

        InventoryLedger.check_and_reserve(rival, last_unit_id, 1)
        rival.commit()

        order_data = CreateOrderRequest(
            order_items=[
                OrderItemRequest(product=plenty_id, quantity=2),
                OrderItemRequest(product=last_unit_id, quantity=1),
            ],
            shipping_address=ShippingAddressSchema(
                address="12 Tahrir St", city="Cairo", postal_code="11511", country="Egypt"
            ),
            payment_method=PaymentMethod.STRIPE,
        )
        with pytest.raises(InsufficientStockError) as exc_info:
            OrderService.place_order(buyer, user_id, order_data)
        assert exc_info.value.product_name == "RTX 4090"
        assert exc_info.value.available == 0

        check = Session()
        assert check.query(Order).count() == 0
        assert check.get(Product, plenty_id).count_in_stock == 5
        assert check.get(Product, last_unit_id).count_in_stock == 0
        cart = check.query(Cart).filter(Cart.user_id == user_id).one()
        assert len(cart.items) == 1
        check.close()
    finally:
        buyer.close()
        rival.close()
        engine.dispose()
