from datetime import datetime, timedelta, timezone

import pytest
import requests

import models
from health_monitor import OrderMonitor


class RefusingHttp:
    def get(self, url, timeout):
        raise requests.ConnectionError("connection refused")


@pytest.fixture
def monitor(client, database):
    # TestClient умеет get(url, timeout=...), так что монитор ходит прямо в приложение
    return OrderMonitor(database, api_url="http://testserver", http=client, pending_alert_minutes=30)


def test_api_health_endpoint(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_all_checks_pass_on_a_healthy_service(monitor):
    assert monitor.run() == {"api": True, "dashboard": True, "database": True, "stale_orders": True}


def test_dashboard_check_reports_summary(monitor, make_menu_item, make_customer, client):
    item = make_menu_item(price=40.0)
    customer = make_customer()
    client.post("/orders", json={
        "customer_id": customer["id"],
        "order_type": "dine-in",
        "items": [{"menu_item_id": item["id"], "quantity": 1}],
    })

    ok, message = monitor.check_dashboard()

    assert ok is True
    assert message == "dashboard: OK (1 orders, revenue 0.00)"


def test_unreachable_api_fails_http_checks(database):
    monitor = OrderMonitor(database, api_url="http://nowhere", http=RefusingHttp())

    results = monitor.run()

    assert results == {"api": False, "dashboard": False, "database": True, "stale_orders": True}
    ok, message = monitor.check_api()
    assert "connection refused" in message


def test_stale_pending_orders_are_flagged(monitor, session, make_customer, make_menu_item, client):
    """Заказ в pending старше порога считается зависшим, свежий нет."""
    item = make_menu_item()
    customer = make_customer()
    client.post("/orders", json={
        "customer_id": customer["id"],
        "order_type": "takeaway",
        "items": [{"menu_item_id": item["id"], "quantity": 1}],
    })
    old = models.Order(
        customer_id=customer["id"],
        order_date=datetime.now(timezone.utc) - timedelta(hours=2),
        total_amount=100,
        status="pending",
        order_type="dine-in",
    )
    session.add(old)
    session.commit()

    ok, message = monitor.check_stale_orders()

    assert ok is False
    assert message == f"stale_orders: 1 pending longer than 30 min (orders {old.id})"


def test_old_delivered_orders_are_not_stale(monitor, session, make_customer):
    customer = make_customer()
    session.add(models.Order(
        customer_id=customer["id"],
        order_date=datetime.now(timezone.utc) - timedelta(days=1),
        total_amount=10,
        status="delivered",
        order_type="takeaway",
    ))
    session.commit()

    assert monitor.check_stale_orders() == (True, "stale_orders: OK")
