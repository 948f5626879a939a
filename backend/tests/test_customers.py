import pytest

import customer_service
import models
from errors import ConflictError, ValidationError


@pytest.mark.parametrize("phone", ["12345", "98765432101", "98765abcde", "987-654-321"])
def test_create_customer_rejects_malformed_phone(client, phone):
    resp = client.post("/customers", json={"name": "Asha", "phone": phone})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Phone must be a 10-digit number"


def test_create_customer_duplicate_phone_is_conflict(client, make_customer):
    make_customer("Asha", "9876543210")

    resp = client.post("/customers", json={"name": "Ravi", "phone": "9876543210"})

    assert resp.status_code == 409
    assert resp.json() == {"success": False, "error": "Phone number already registered"}


def test_update_customer_phone_owned_by_other_is_conflict(client, make_customer):
    make_customer("Asha", "9876543210")
    ravi = make_customer("Ravi", "9123456780")

    resp = client.put(f"/customers/{ravi['id']}", json={"phone": "9876543210"})

    assert resp.status_code == 409
    assert client.get(f"/customers/{ravi['id']}").json()["data"]["phone"] == "9123456780"


def test_update_customer_is_partial(client, make_customer):
    asha = make_customer("Asha", "9876543210", "asha@example.com")

    resp = client.put(f"/customers/{asha['id']}", json={"name": "Asha K"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Asha K"
    assert data["phone"] == "9876543210"
    assert data["email"] == "asha@example.com"


def test_update_customer_keeps_own_phone(client, make_customer):
    asha = make_customer("Asha", "9876543210")
    resp = client.put(f"/customers/{asha['id']}", json={"phone": "9876543210"})
    assert resp.status_code == 200


def test_update_customer_rejects_malformed_phone(client, make_customer):
    asha = make_customer()
    resp = client.put(f"/customers/{asha['id']}", json={"phone": "123"})
    assert resp.status_code == 400


def test_update_missing_customer_is_not_found(client):
    resp = client.put("/customers/55", json={"name": "Nobody"})
    assert resp.status_code == 404


def test_delete_customer_with_orders_is_conflict(client, make_customer, make_menu_item):
    asha = make_customer()
    item = make_menu_item()
    client.post("/orders", json={
        "customer_id": asha["id"],
        "order_type": "takeaway",
        "items": [{"menu_item_id": item["id"], "quantity": 1}],
    })

    resp = client.delete(f"/customers/{asha['id']}")

    assert resp.status_code == 409
    assert resp.json()["error"] == "Cannot delete customer with existing orders"
    assert client.get(f"/customers/{asha['id']}").status_code == 200


def test_delete_customer_without_orders(client, session, make_customer):
    asha = make_customer()

    resp = client.delete(f"/customers/{asha['id']}")

    assert resp.status_code == 200
    assert session.query(models.Customer).count() == 0


def test_list_customers_search_and_totals(client, make_customer, make_menu_item):
    asha = make_customer("Asha", "9876543210", "asha@example.com")
    make_customer("Ravi", "9123456780")
    item = make_menu_item(price=40.0)
    client.post("/orders", json={
        "customer_id": asha["id"],
        "order_type": "dine-in",
        "items": [{"menu_item_id": item["id"], "quantity": 3}],
    })

    everyone = client.get("/customers").json()
    assert everyone["count"] == 2
    assert [c["name"] for c in everyone["data"]] == ["Asha", "Ravi"]

    found = client.get("/customers", params={"search": "EXAMPLE"}).json()
    assert found["count"] == 1
    assert found["data"][0]["order_count"] == 1
    assert found["data"][0]["total_spent"] == 120.0

    detail = client.get(f"/customers/{asha['id']}").json()["data"]
    assert detail["last_order_date"] is not None


def test_service_phone_validation_and_conflict(session):
    customer_service.create_customer(session, "Asha", "9876543210")

    with pytest.raises(ValidationError):
        customer_service.create_customer(session, "Ravi", "98765")
    with pytest.raises(ConflictError):
        customer_service.create_customer(session, "Ravi", "9876543210")

    assert session.query(models.Customer).count() == 1
