def _order(client, customer_id, items, order_type="dine-in"):
    resp = client.post("/orders", json={
        "customer_id": customer_id,
        "order_type": order_type,
        "items": items,
    })
    assert resp.status_code == 201
    return resp.json()["data"]


def test_empty_dashboard(client):
    data = client.get("/stats").json()["data"]

    assert data["summary"] == {
        "totalOrders": 0,
        "totalRevenue": "0.00",
        "totalCustomers": 0,
        "totalMenuItems": 0,
    }
    assert data["ordersByStatus"] == []
    assert data["topSellingItems"] == []
    assert data["recentOrders"] == []
    assert data["revenueByType"] == []


def test_delivered_order_counts_as_revenue(client, make_menu_item, make_customer):
    """Сквозной сценарий: заказ на 250.00, доставлен, попадает в выручку."""
    a = make_menu_item("A", 100.0)
    b = make_menu_item("B", 50.0)
    customer = make_customer()
    order = _order(client, customer["id"], [
        {"menu_item_id": a["id"], "quantity": 2},
        {"menu_item_id": b["id"], "quantity": 1},
    ])
    assert order["total_amount"] == 250.0

    client.patch(f"/orders/{order['id']}", json={"status": "delivered"})
    data = client.get("/stats").json()["data"]

    assert data["summary"]["totalRevenue"] == "250.00"
    assert data["summary"]["totalOrders"] == 1
    assert data["ordersByStatus"] == [{"status": "delivered", "count": 1}]
    assert data["revenueByType"] == [{"order_type": "dine-in", "count": 1, "revenue": 250.0}]
    assert data["recentOrders"][0]["customer_name"] == "Asha"


def test_revenue_ignores_undelivered_orders(client, make_menu_item, make_customer):
    item = make_menu_item("A", 30.0)
    customer = make_customer()
    delivered = _order(client, customer["id"], [{"menu_item_id": item["id"], "quantity": 1}], "takeaway")
    _order(client, customer["id"], [{"menu_item_id": item["id"], "quantity": 5}])
    client.patch(f"/orders/{delivered['id']}", json={"status": "delivered"})

    data = client.get("/stats").json()["data"]

    assert data["summary"]["totalRevenue"] == "30.00"
    assert data["ordersByStatus"] == [
        {"status": "delivered", "count": 1},
        {"status": "pending", "count": 1},
    ]
    assert data["revenueByType"] == [{"order_type": "takeaway", "count": 1, "revenue": 30.0}]


def test_top_selling_items_limited_to_five(client, make_menu_item, make_customer):
    customer = make_customer()
    items = [make_menu_item(f"Dish {n}", 10.0) for n in range(7)]
    _order(client, customer["id"], [
        {"menu_item_id": item["id"], "quantity": n + 1} for n, item in enumerate(items)
    ])

    top = client.get("/stats").json()["data"]["topSellingItems"]

    assert len(top) == 5
    assert [t["name"] for t in top] == ["Dish 6", "Dish 5", "Dish 4", "Dish 3", "Dish 2"]
    assert top[0] == {"name": "Dish 6", "category": "Mains", "total_sold": 7, "revenue": 70.0}


def test_recent_orders_newest_first_limited_to_ten(client, make_menu_item, make_customer):
    item = make_menu_item()
    customer = make_customer()
    created = [_order(client, customer["id"], [{"menu_item_id": item["id"], "quantity": 1}]) for _ in range(12)]

    recent = client.get("/stats").json()["data"]["recentOrders"]

    assert len(recent) == 10
    assert recent[0]["id"] == created[-1]["id"]


def test_menu_item_count_only_available(client, make_menu_item):
    make_menu_item("On")
    make_menu_item("Off", is_available=False)

    summary = client.get("/stats").json()["data"]["summary"]
    assert summary["totalMenuItems"] == 1
