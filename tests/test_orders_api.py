from __future__ import annotations


def _seed(client) -> dict[str, dict]:
    resp = client.post("/v1/seed")
    assert resp.status_code == 200
    return {product["name"]: product for product in resp.json()["created"]}


def _place(client, customer_id: int, lines: list[tuple[str, int]], address: str | None = "12 Market Road"):
    return client.post(
        "/v1/orders",
        json={
            "customer_id": customer_id,
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
            "shipping_address": address,
        },
    )


def _stock(client, product_id: str) -> int:
    return client.get(f"/v1/products/{product_id}").json()["stock"]


def test_health(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True
    assert resp.json()["ts"].endswith("Z")


def test_seed_replaces_the_catalog(client):
    client.post("/v1/products", json={"name": "Leftover", "price": 100, "stock": 1})

    catalog = _seed(client)

    listed = client.get("/v1/products").json()
    assert sorted(p["name"] for p in listed) == sorted(catalog)
    assert len(listed) == 5
    assert catalog["Coffee Mug"]["price"] == 19900


def test_product_create_and_fetch(client):
    resp = client.post(
        "/v1/products",
        json={"name": "Desk Lamp", "description": "LED", "price": 89900, "stock": 4, "category": "Home"},
    )
    assert resp.status_code == 201
    product = resp.json()

    fetched = client.get(f"/v1/products/{product['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["category"] == "Home"
    assert fetched.json()["stock"] == 4


def test_product_create_validation(client):
    missing_price = client.post("/v1/products", json={"name": "Nothing"})
    assert missing_price.status_code == 400
    assert missing_price.json()["error"] == "ValidationError"

    negative = client.post("/v1/products", json={"name": "Bad", "price": 10, "stock": -1})
    assert negative.status_code == 400


def test_unknown_product_is_404(client):
    resp = client.get("/v1/products/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {
        "error": "NotFound",
        "detail": "product does-not-exist not found",
        "ref_id": "does-not-exist",
    }


def test_create_order_reserves_stock(client):
    catalog = _seed(client)
    mug = catalog["Coffee Mug"]
    cable = catalog["USB-C Cable"]

    resp = client.post(
        "/v1/orders",
        json={
            "customer_id": 9,
            "items": [{"productId": mug["id"], "quantity": 2}, {"product_id": cable["id"], "quantity": 1}],
        },
    )

    assert resp.status_code == 201
    body = resp.json()
    assert set(body) == {"order_id", "status", "total_amount"}
    assert body["status"] == "confirmed"
    assert body["total_amount"] == 2 * 19900 + 39900
    assert _stock(client, mug["id"]) == 48
    assert _stock(client, cable["id"]) == 99


def test_create_order_failures(client):
    catalog = _seed(client)
    headphones = catalog["Wireless Headphones"]

    no_items = client.post("/v1/orders", json={"customer_id": 9, "items": []})
    assert no_items.status_code == 400
    assert no_items.json()["error"] == "ValidationError"

    no_customer = client.post("/v1/orders", json={"items": [{"product_id": headphones["id"], "quantity": 1}]})
    assert no_customer.status_code == 400

    unknown = _place(client, 9, [(headphones["id"], 1), ("ghost", 1)])
    assert unknown.status_code == 400
    assert unknown.json()["error"] == "ProductNotFound"
    assert unknown.json()["ref_id"] == "ghost"

    too_many = _place(client, 9, [(headphones["id"], 11)])
    assert too_many.status_code == 400
    assert too_many.json()["error"] == "InsufficientStock"
    assert too_many.json()["ref_id"] == headphones["id"]

    assert _stock(client, headphones["id"]) == 10
    assert client.get("/v1/orders", params={"customer_id": 9}).json() == []


def test_get_order_includes_product_details(client):
    catalog = _seed(client)
    shirt = catalog["T-Shirt"]
    order_id = _place(client, 3, [(shirt["id"], 2)]).json()["order_id"]

    order = client.get(f"/v1/orders/{order_id}").json()

    assert order["order_id"] == order_id
    assert order["customer_id"] == 3
    assert order["shipping_address"] == "12 Market Road"
    assert order["estimated_delivery"].endswith("Z")
    item = order["items"][0]
    assert item["quantity"] == 2
    assert item["price_at_purchase"] == 59900
    assert item["product"] == {
        "id": shirt["id"],
        "name": "T-Shirt",
        "description": "100% cotton",
        "price": 59900,
    }


def test_order_keeps_purchase_price_after_catalog_reseed(client):
    catalog = _seed(client)
    order_id = _place(client, 3, [(catalog["Notebook"]["id"], 1)]).json()["order_id"]

    _seed(client)
    item = client.get(f"/v1/orders/{order_id}").json()["items"][0]

    assert item["price_at_purchase"] == 12900
    assert item["product"] is None


def test_list_orders_for_customer(client):
    catalog = _seed(client)
    mug = catalog["Coffee Mug"]
    first = _place(client, 5, [(mug["id"], 1)]).json()["order_id"]
    second = _place(client, 5, [(mug["id"], 2)]).json()["order_id"]
    _place(client, 6, [(mug["id"], 1)])

    orders = client.get("/v1/orders", params={"customer_id": 5}).json()

    assert {o["order_id"] for o in orders} == {first, second}
    assert set(orders[0]["items"][0]["product"]) == {"id", "name", "price"}


def test_list_orders_requires_customer_id(client):
    resp = client.get("/v1/orders")
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"


def test_malformed_requests_get_the_tagged_400(client):
    for resp in (
        client.get("/v1/orders", params={"customer_id": "abc"}),
        client.post("/v1/orders", json={"customer_id": "x", "items": []}),
        client.post("/v1/orders", json={"customer_id": 1, "items": [{"product_id": "p", "quantity": "abc"}]}),
        client.post("/v1/products", json={"name": "Lamp", "price": "cheap"}),
    ):
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "ValidationError"
        assert body["detail"]
        assert body["ref_id"] is None


def test_cancel_via_delete_and_put(client):
    catalog = _seed(client)
    mug = catalog["Coffee Mug"]
    first = _place(client, 5, [(mug["id"], 4)]).json()["order_id"]
    second = _place(client, 5, [(mug["id"], 6)]).json()["order_id"]
    assert _stock(client, mug["id"]) == 40

    deleted = client.delete(f"/v1/orders/{first}")
    assert deleted.status_code == 200
    assert deleted.json() == {"ok": True, "order_id": first, "status": "cancelled"}

    put = client.put(f"/v1/orders/{second}", json={"status": "cancelled"})
    assert put.status_code == 200
    assert _stock(client, mug["id"]) == 50

    again = client.delete(f"/v1/orders/{first}")
    assert again.status_code == 400
    assert again.json()["error"] == "InvalidTransition"
    assert _stock(client, mug["id"]) == 50


def test_put_address_and_status(client):
    catalog = _seed(client)
    order_id = _place(client, 5, [(catalog["Notebook"]["id"], 1)]).json()["order_id"]

    moved = client.put(f"/v1/orders/{order_id}", json={"shipping_address": "7 River Lane"})
    assert moved.status_code == 200
    assert moved.json()["shipping_address"] == "7 River Lane"

    shipped = client.put(f"/v1/orders/{order_id}", json={"status": "shipped"})
    assert shipped.json()["status"] == "shipped"

    late = client.put(f"/v1/orders/{order_id}", json={"shipping_address": "elsewhere"})
    assert late.status_code == 400
    assert late.json()["error"] == "InvalidTransition"

    cancel = client.delete(f"/v1/orders/{order_id}")
    assert cancel.status_code == 400

    bogus = client.put(f"/v1/orders/{order_id}", json={"status": "teleported"})
    assert bogus.status_code == 400
    assert bogus.json()["error"] == "ValidationError"

    empty = client.put(f"/v1/orders/{order_id}", json={})
    assert empty.status_code == 400


def test_status_and_history(client):
    catalog = _seed(client)
    order_id = _place(client, 5, [(catalog["Notebook"]["id"], 1)]).json()["order_id"]
    client.put(f"/v1/orders/{order_id}", json={"status": "shipped"})
    client.put(f"/v1/orders/{order_id}", json={"status": "delivered"})

    status = client.get(f"/v1/orders/{order_id}/status").json()
    assert status["order_id"] == order_id
    assert status["status"] == "delivered"
    assert status["estimated_delivery"].endswith("Z")

    history = client.get(f"/v1/orders/{order_id}/history").json()
    assert history["order_id"] == order_id
    assert [(h["from_status"], h["to_status"], h["override"]) for h in history["history"]] == [
        ("pending", "confirmed", False),
        ("confirmed", "shipped", False),
        ("shipped", "delivered", True),
    ]


def test_unknown_order_routes_are_404(client):
    for resp in (
        client.get("/v1/orders/nope"),
        client.get("/v1/orders/nope/status"),
        client.get("/v1/orders/nope/history"),
        client.delete("/v1/orders/nope"),
        client.put("/v1/orders/nope", json={"status": "shipped"}),
    ):
        assert resp.status_code == 404
        assert resp.json()["ref_id"] == "nope"
