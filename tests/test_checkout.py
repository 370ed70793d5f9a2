import asyncio
import logging

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from storefront.exceptions import InvalidCart
from storefront.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from storefront.models.product import Product
from storefront.services import catalog
from storefront.services.checkout import CartLine, merge_cart


def _checkout(client, headers, items, address="1-2-3 Shibuya, Tokyo"):
    return client.post("/api/orders/checkout", json={"items": items, "address": address}, headers=headers)


def test_checkout_creates_pending_order_with_snapshot_lines(client, db, gateway, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product(name="Lantern", price=1000, stock=5)

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 2, "title": "ignored", "price": 1}])

    assert res.status_code == 200
    assert res.json() == {"url": "https://checkout.test/pay/cs_test_1"}

    order = db.query(Order).one()
    assert order.user_id == user.id
    assert order.total_price == 2000 + 500
    assert order.status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.UNPAID
    assert order.payment_session_id == "cs_test_1"
    assert order.shipping_address == "1-2-3 Shibuya, Tokyo"

    [line] = order.items
    assert (line.product_id, line.product_name, line.quantity, line.unit_price) == (product.id, "Lantern", 2, 1000)

    # Stock is only debited on settlement
    db.expire_all()
    assert db.get(Product, product.id).stock == 5


def test_checkout_session_request(client, gateway, make_user, make_product, auth_headers):
    user = make_user(email="buyer@example.com")
    a = make_product(name="A", price=300, stock=10)
    b = make_product(name="B", price=1200, stock=10)

    _checkout(client, auth_headers(user), [{"id": a.id, "quantity": 3}, {"id": b.id, "quantity": 1}])

    [call] = gateway.calls
    assert [(li.name, li.unit_amount, li.quantity) for li in call["line_items"]] == [
        ("A", 300, 3),
        ("B", 1200, 1),
        ("Shipping", 500, 1),
    ]
    assert call["customer_email"] == "buyer@example.com"
    assert call["success_url"] == "http://shop.test/account?session_id={CHECKOUT_SESSION_ID}"
    assert call["cancel_url"] == "http://shop.test/order-confirm"
    assert call["metadata"]["userId"] == str(user.id)
    assert call["metadata"]["orderId"].isdigit()


def test_checkout_uses_catalog_prices_only(client, db, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product(price=750, stock=3)

    _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 1, "price": 1}])

    assert db.query(Order).one().total_price == 750 + 500


def test_duplicate_cart_lines_are_merged(client, db, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product(price=100, stock=5)

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 2}, {"id": product.id, "quantity": 3}])

    assert res.status_code == 200
    [line] = db.query(OrderItem).all()
    assert line.quantity == 5


def test_unknown_product_persists_nothing(client, db, gateway, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product()

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 1}, {"id": 9999, "quantity": 1}])

    assert res.status_code == 400
    assert res.json() == {"error": "Some cart products were not found"}
    assert db.query(Order).count() == 0
    assert gateway.calls == []


def test_out_of_range_product_id_is_not_found(client, db, gateway, make_user, make_product, auth_headers):
    user = make_user()
    make_product()

    res = _checkout(client, auth_headers(user), [{"id": 10**20, "quantity": 1}])

    assert res.status_code == 400
    assert res.json() == {"error": "Some cart products were not found"}
    assert db.query(Order).count() == 0
    assert gateway.calls == []


def test_out_of_range_quantity_is_invalid_input(client, db, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product()

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 10**20}])

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid input"}
    assert db.query(Order).count() == 0


def test_insufficient_stock_lists_every_short_product(client, db, make_user, make_product, auth_headers):
    user = make_user()
    a = make_product(name="Tent", stock=1)
    b = make_product(name="Stove", stock=10)
    c = make_product(name="Pad", stock=0)

    res = _checkout(client, auth_headers(user), [
        {"id": a.id, "quantity": 2},
        {"id": b.id, "quantity": 2},
        {"id": c.id, "quantity": 1},
    ])

    assert res.status_code == 400
    assert res.json() == {"error": "Out of stock products: Tent, Pad"}
    assert db.query(Order).count() == 0


def test_payment_session_failure_rolls_back_order(client, db, gateway, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product()
    gateway.fail = True

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 1}])

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to generate payment page"}
    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0


def test_commit_failure_after_payment_session_persists_nothing(
    client, db, gateway, make_user, make_product, auth_headers, monkeypatch, caplog
):
    user = make_user()
    product = make_product()
    headers = auth_headers(user)

    def _failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(Session, "commit", _failing_commit)
    caplog.set_level(logging.ERROR, logger="storefront.services.checkout")

    res = _checkout(client, headers, [{"id": product.id, "quantity": 1}])

    assert res.status_code == 500
    assert res.json() == {"error": "Failed to register order"}
    assert len(gateway.calls) == 1
    assert db.query(Order).count() == 0
    assert db.query(OrderItem).count() == 0
    assert "cs_test_1" in caplog.text


def _outside_event_loop():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return True
    return False


def test_checkout_database_work_runs_in_worker_thread(client, make_user, make_product, auth_headers, monkeypatch):
    user = make_user()
    product = make_product()
    seen = []
    lookup = catalog.lookup_by_ids

    def _recording_lookup(db, ids):
        seen.append(_outside_event_loop())
        return lookup(db, ids)

    monkeypatch.setattr(catalog, "lookup_by_ids", _recording_lookup)

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 1}])

    assert res.status_code == 200
    assert seen == [True]


@pytest.mark.parametrize("items", [[], [{"id": 1, "quantity": 0}], [{"id": 1, "quantity": -2}]])
def test_invalid_cart_is_rejected(client, db, make_user, make_product, auth_headers, items):
    user = make_user()
    make_product()

    res = _checkout(client, auth_headers(user), items)

    assert res.status_code == 400
    assert db.query(Order).count() == 0


def test_blank_address_is_rejected(client, db, make_user, make_product, auth_headers):
    user = make_user()
    product = make_product()

    res = _checkout(client, auth_headers(user), [{"id": product.id, "quantity": 1}], address="   ")

    assert res.status_code == 400
    assert res.json() == {"error": "Shipping address is required"}
    assert db.query(Order).count() == 0


def test_checkout_requires_authentication(client, make_product):
    product = make_product()

    res = client.post("/api/orders/checkout", json={"items": [{"id": product.id, "quantity": 1}], "address": "x"})

    assert res.status_code == 401
    assert res.json() == {"error": "Authentication required"}


def test_merge_cart_keeps_first_seen_order():
    merged = merge_cart([CartLine(3, 1), CartLine(1, 2), CartLine(3, 4)])
    assert list(merged.items()) == [(3, 5), (1, 2)]


def test_merge_cart_rejects_empty_cart():
    with pytest.raises(InvalidCart):
        merge_cart([])


def test_order_history_newest_first(client, make_user, make_product, auth_headers):
    user = make_user()
    other = make_user(email="other@example.com")
    a = make_product(name="A", price=100, stock=10)
    b = make_product(name="B", price=200, stock=10)

    _checkout(client, auth_headers(user), [{"id": a.id, "quantity": 1}])
    _checkout(client, auth_headers(user), [{"id": b.id, "quantity": 2}, {"id": a.id, "quantity": 1}])
    _checkout(client, auth_headers(other), [{"id": a.id, "quantity": 1}])

    res = client.get("/api/orders", headers=auth_headers(user))

    assert res.status_code == 200
    orders = res.json()["orders"]
    assert len(orders) == 2
    newest = orders[0]
    assert newest["totalPrice"] == 200 * 2 + 100 + 500
    assert newest["status"] == "Pending"
    assert newest["paymentStatus"] == "Unpaid"
    assert [(i["productName"], i["quantity"], i["unitPrice"]) for i in newest["items"]] == [("B", 2, 200), ("A", 1, 100)]
    assert orders[1]["totalPrice"] == 600
