"""
Integration tests for the categories API.
"""
from datetime import datetime
from decimal import Decimal

from fintrack.models import DEFAULT_CATEGORIES, Category, Transaction


def test_create_and_get_category(api):
    response = api.post("/api/categories/", json={"name": "Groceries", "icon": "ShoppingCart"})

    assert response.status_code == 201
    created = response.json()
    assert created["color"] == "#10B981"
    assert created["is_default"] is False

    fetched = api.get(f"/api/categories/{created['id']}").json()
    assert fetched["name"] == "Groceries"


def test_create_rejects_blank_name(api):
    assert api.post("/api/categories/", json={"name": ""}).status_code == 422


def test_update_category(api):
    created = api.post("/api/categories/", json={"name": "Fun"}).json()

    response = api.patch(f"/api/categories/{created['id']}", json={"color": "#F97316"})

    assert response.status_code == 200
    assert response.json()["color"] == "#F97316"
    assert response.json()["name"] == "Fun"


def test_create_default_categories_once(api):
    first = api.post("/api/categories/defaults")

    assert first.status_code == 201
    assert sorted(c["name"] for c in first.json()) == sorted(d["name"] for d in DEFAULT_CATEGORIES)
    assert all(c["is_default"] for c in first.json())

    second = api.post("/api/categories/defaults")
    assert second.json() == []
    assert len(api.get("/api/categories/").json()) == len(DEFAULT_CATEGORIES)


def test_default_category_cannot_be_deleted(api):
    defaults = api.post("/api/categories/defaults").json()

    response = api.delete(f"/api/categories/{defaults[0]['id']}")

    assert response.status_code == 404
    assert api.get(f"/api/categories/{defaults[0]['id']}").status_code == 200


def test_delete_category_detaches_transactions(api, db, user):
    category = api.post("/api/categories/", json={"name": "Travel"}).json()
    transaction = api.post("/api/transactions/", json={
        "title": "Train",
        "amount": "42.00",
        "date": "2024-04-02T10:00:00",
        "category_id": category["id"],
    }).json()

    assert api.delete(f"/api/categories/{category['id']}").status_code == 204

    detached = api.get(f"/api/transactions/{transaction['id']}").json()
    assert detached["category_id"] is None
    assert api.get(f"/api/categories/{category['id']}").status_code == 404


def test_categories_are_scoped_to_user(api, db, other_user):
    foreign = Category(user_id=other_user.id, name="Theirs")
    db.add(foreign)
    db.add(Transaction(user_id=other_user.id, title="x", amount=Decimal("1.00"), date=datetime(2024, 1, 1)))
    db.commit()

    assert api.get(f"/api/categories/{foreign.id}").status_code == 404
    assert api.delete(f"/api/categories/{foreign.id}").status_code == 404
    assert api.get("/api/categories/").json() == []
