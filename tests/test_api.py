"""HTTP surface: routing, status codes and error mapping."""

import httpx
import pytest

from checkout_service.database import get_session_factory
from checkout_service.domain.models import PaymentVerification
from checkout_service.main import app
from checkout_service.presentation.api import get_payment_gateway


class StubGateway:
    async def build_payment_url(self, order_id, amount, client_ip):
        return f"https://pay.example.com/{order_id}?amount={amount}"

    async def verify_callback(self, raw_params):
        return PaymentVerification(valid=True, order_id=raw_params["order_id"], succeeded=True)


@pytest.fixture
async def client(session_factory, market):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_payment_gateway] = lambda: StubGateway()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


SHIPPING = {"phone_number": "+84900000000", "address": "1 Market St"}


async def add_item(client, product_id, size, quantity, user_id="user-1"):
    return await client.post("/api/cart/items", json={
        "user_id": user_id, "product_id": product_id, "size": size, "quantity": quantity
    })


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_cart_flow(client):
    response = await add_item(client, "product-x", "M", 2)
    assert response.status_code == 201
    assert response.json()["quantity"] == 2

    await add_item(client, "product-z", "S", 1)
    cart = (await client.get("/api/cart/user-1")).json()

    assert cart["total_cart_value"] == "25.00"
    assert len(cart["cart_items"]) == 2
    assert {group["seller_id"] for group in cart["items_by_seller"]} == {"seller-a", "seller-b"}


async def test_add_to_cart_errors(client):
    assert (await add_item(client, "product-x", "M", 50)).status_code == 400
    assert (await add_item(client, "product-unknown", "M", 1)).status_code == 404
    assert (await add_item(client, "product-x", "M", 1, user_id="user-unknown")).status_code == 404


async def test_cart_item_update_and_remove(client):
    item = (await add_item(client, "product-x", "M", 1)).json()

    response = await client.patch(f"/api/cart/items/{item['id']}", json={"user_id": "user-1", "quantity": 3})
    assert response.status_code == 200
    assert response.json()["total_price"] == "30.00"

    response = await client.delete(f"/api/cart/items/{item['id']}", params={"user_id": "user-2"})
    assert response.status_code == 404
    response = await client.delete(f"/api/cart/items/{item['id']}", params={"user_id": "user-1"})
    assert response.status_code == 200


async def test_remove_seller_items(client):
    await add_item(client, "product-x", "M", 1)
    await add_item(client, "product-y", "M", 1)
    await add_item(client, "product-z", "S", 1)

    response = await client.delete("/api/cart/user-1/sellers/seller-a")

    assert response.status_code == 200
    assert response.json()["deleted_count"] == 2
    assert response.json()["total_price_reduction"] == "30.00"
    assert (await client.get("/api/cart/user-1")).json()["total_cart_value"] == "5.00"


async def test_inventory_endpoints(client):
    response = await client.get("/api/inventory/product-x/M/available", params={"quantity": 6})
    assert response.status_code == 200
    assert response.json()["available"] is False

    response = await client.put("/api/inventory/product-x", json={
        "stock_size": [{"size": "M", "quantity": 1}, {"size": "M", "quantity": 2}]
    })
    assert response.status_code == 400

    response = await client.put("/api/inventory/product-x", json={"stock_size": [{"size": "XL", "quantity": 4}]})
    assert response.status_code == 200
    assert (await client.get("/api/inventory/product-x/XL")).json()["quantity"] == 4


async def test_checkout_and_order_lifecycle(client):
    item = (await add_item(client, "product-x", "M", 2)).json()
    await add_item(client, "product-z", "S", 1)

    response = await client.post("/api/orders/from-cart", json={
        "user_id": "user-1", "cart_id": item["cart_id"], **SHIPPING
    })
    assert response.status_code == 201
    orders = {order["seller_id"]: order for order in response.json()}
    assert set(orders) == {"seller-a", "seller-b"}
    order_id = orders["seller-a"]["id"]

    details = (await client.get(f"/api/orders/{order_id}")).json()
    assert details["shipment"]["status"] == "PENDING"
    assert len(details["items"]) == 1

    response = await client.patch(f"/api/orders/{order_id}", json={"status": "DELIVERED"})
    assert response.status_code == 200
    assert response.json()["status"] == "DELIVERED"

    response = await client.post(f"/api/orders/{order_id}/cancel", json={"reason": "late"})
    assert response.status_code == 400

    assert len((await client.get("/api/orders/user/user-1")).json()) == 2
    assert len((await client.get("/api/orders/seller/seller-b")).json()) == 1


async def test_create_order_and_delete(client):
    response = await client.post("/api/orders", json={
        "user_id": "user-1",
        "seller_id": "seller-a",
        "order_items": [{"size_stock_id": "stock-x-m", "quantity": 1, "price": "10.00"}],
        **SHIPPING
    })
    assert response.status_code == 201
    order_id = response.json()["id"]

    assert (await client.delete(f"/api/orders/{order_id}")).status_code == 200
    assert (await client.get(f"/api/orders/{order_id}")).status_code == 404


async def test_checkout_empty_selection_is_not_found(client):
    item = (await add_item(client, "product-x", "M", 1)).json()
    response = await client.post("/api/orders/from-cart", json={
        "user_id": "user-1", "cart_id": item["cart_id"], "selected_cart_item_ids": ["nope"], **SHIPPING
    })
    assert response.status_code == 404


async def test_payment_endpoints(client):
    response = await client.post("/api/orders", json={
        "user_id": "user-1",
        "seller_id": "seller-b",
        "order_items": [{"size_stock_id": "stock-z-s", "quantity": 2, "price": "5.00"}],
        **SHIPPING
    })
    order_id = response.json()["id"]

    response = await client.post(f"/api/payments/{order_id}/url")
    assert response.status_code == 200
    assert response.json()["payment_url"].endswith("amount=1000")

    response = await client.post("/api/payments/callback", json={"order_id": order_id})
    assert response.status_code == 200
    assert response.json()["message"] == "Payment successful"

    assert (await client.post(f"/api/payments/{order_id}/url")).status_code == 400


async def test_notification_endpoints(client):
    await client.post("/api/orders", json={
        "user_id": "user-1",
        "seller_id": "seller-a",
        "order_items": [{"size_stock_id": "stock-x-m", "quantity": 1, "price": "10.00"}],
        **SHIPPING
    })

    inbox = (await client.get("/api/notifications/user-1")).json()
    assert len(inbox) == 1
    assert (await client.get("/api/notifications/user-1/unread-count")).json() == {"count": 1}

    response = await client.post(f"/api/notifications/{inbox[0]['id']}/read")
    assert response.status_code == 200
    assert (await client.get("/api/notifications/user-1/unread-count")).json() == {"count": 0}
    assert (await client.post("/api/notifications/missing/read")).status_code == 404


async def test_create_order_rejects_sub_cent_price(client):
    response = await client.post("/api/orders", json={
        "user_id": "user-1",
        "seller_id": "seller-a",
        "order_items": [{"size_stock_id": "stock-x-m", "quantity": 1, "price": "0.005"}],
        **SHIPPING
    })
    assert response.status_code == 400


async def test_delete_notifications(client):
    await client.post("/api/orders", json={
        "user_id": "user-1",
        "seller_id": "seller-a",
        "order_items": [{"size_stock_id": "stock-x-m", "quantity": 1, "price": "10.00"}],
        **SHIPPING
    })
    seller_inbox = (await client.get("/api/notifications/user-sa")).json()

    response = await client.delete(f"/api/notifications/{seller_inbox[0]['id']}")
    assert response.status_code == 200
    assert (await client.delete(f"/api/notifications/{seller_inbox[0]['id']}")).status_code == 404

    response = await client.delete("/api/notifications/user/user-1")
    assert response.status_code == 200
    assert response.json()["message"] == "1 notifications deleted"
    assert (await client.get("/api/notifications/user-1")).json() == []
