"""
Rewards catalog, orders, points and the admin routes.
"""

from decimal import Decimal

import pytest

from realsingles.db.models import Notification, PointTransaction, Product, User


@pytest.fixture
def product(db_session):
    product = Product(
        name="Coffee Gift Card",
        points_cost=100,
        dollar_price=Decimal("10.00"),
        category="gift_card",
        stock_quantity=2,
    )
    db_session.add(product)
    db_session.commit()
    return product


def test_public_catalog_hides_inactive(client, db_session, product):
    db_session.add(Product(name="Retired Mug", points_cost=50, category="merchandise", is_active=False))
    db_session.commit()

    response = client.get("/api/products")
    assert response.status_code == 200
    products = response.json()["data"]["products"]
    assert [p["name"] for p in products] == ["Coffee Gift Card"]
    assert products[0]["dollar_price"] == 10.0


def test_get_product_not_found(client, db_session, product):
    product.is_active = False
    db_session.commit()
    assert client.get(f"/api/products/{product.id}").status_code == 404


def test_place_order_spends_points(client, db_session, make_user, auth_headers, product):
    user = make_user(points_balance=250)

    response = client.post("/api/orders", json={"product_id": str(product.id)}, headers=auth_headers(user))
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["points_balance"] == 150
    assert data["order"]["status"] == "pending"

    db_session.expire_all()
    assert db_session.get(Product, product.id).stock_quantity == 1
    ledger = db_session.query(PointTransaction).filter(PointTransaction.user_id == user.id).one()
    assert ledger.amount == -100
    assert ledger.balance_after == 150

    points = client.get("/api/points", headers=auth_headers(user)).json()["data"]
    assert points["balance"] == 150
    assert len(points["transactions"]) == 1

    orders = client.get("/api/orders", headers=auth_headers(user)).json()["data"]["orders"]
    assert orders[0]["product_name"] == "Coffee Gift Card"


def test_order_with_insufficient_points(client, make_user, auth_headers, product):
    user = make_user(points_balance=20)
    response = client.post("/api/orders", json={"product_id": str(product.id)}, headers=auth_headers(user))
    assert response.status_code == 400
    assert response.json()["error"] == "Insufficient points"


def test_order_out_of_stock(client, db_session, make_user, auth_headers, product):
    product.stock_quantity = 0
    db_session.commit()
    user = make_user(points_balance=500)
    response = client.post("/api/orders", json={"product_id": str(product.id)}, headers=auth_headers(user))
    assert response.status_code == 400


def test_shipping_address_required(client, db_session, make_user, auth_headers):
    hoodie = Product(name="Hoodie", points_cost=10, category="merchandise", requires_shipping=True)
    db_session.add(hoodie)
    db_session.commit()
    user = make_user(points_balance=500)
    headers = auth_headers(user)

    assert client.post("/api/orders", json={"product_id": str(hoodie.id)}, headers=headers).status_code == 400
    shipped = client.post(
        "/api/orders",
        json={"product_id": str(hoodie.id), "shipping_address": {"line1": "1 Main St", "city": "Austin"}},
        headers=headers,
    )
    assert shipped.status_code == 201


def test_admin_product_crud(client, make_user, auth_headers):
    admin = make_user(role="admin")
    headers = auth_headers(admin)

    created = client.post(
        "/api/admin/products",
        json={"name": " Spa Day ", "points_cost": 500, "category": "experience"},
        headers=headers,
    )
    assert created.status_code == 201
    product_id = created.json()["data"]["id"]
    assert created.json()["data"]["name"] == "Spa Day"

    toggled = client.post(f"/api/admin/products/{product_id}/toggle", headers=headers)
    assert toggled.json()["data"] == {"id": product_id, "is_active": False}
    toggled = client.post(f"/api/admin/products/{product_id}/toggle", headers=headers)
    assert toggled.json()["data"]["is_active"] is True

    detail = client.get(f"/api/admin/products/{product_id}", headers=headers).json()["data"]
    assert detail["total_orders"] == 0

    assert client.delete(f"/api/admin/products/{product_id}", headers=headers).status_code == 200
    assert client.get("/api/products").json()["data"]["products"] == []


def test_admin_product_validation(client, make_user, auth_headers):
    admin = make_user(role="admin")
    response = client.post(
        "/api/admin/products",
        json={"name": "Mystery", "points_cost": 10, "category": "lottery"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


def test_admin_adjusts_points(client, db_session, make_user, auth_headers):
    admin = make_user(role="admin")
    member = make_user(points_balance=10)

    response = client.post(
        f"/api/admin/users/{member.id}/points",
        json={"amount": 40, "reason": "Event bonus"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["data"]["points_balance"] == 50
    assert db_session.query(Notification).filter(Notification.user_id == member.id).count() == 1

    overdraw = client.post(
        f"/api/admin/users/{member.id}/points",
        json={"amount": -100, "reason": "Correction"},
        headers=auth_headers(admin),
    )
    assert overdraw.status_code == 400

    zero = client.post(
        f"/api/admin/users/{member.id}/points",
        json={"amount": 0, "reason": "Nothing"},
        headers=auth_headers(admin),
    )
    assert zero.status_code == 400


def test_admin_updates_user(client, db_session, make_user, auth_headers):
    admin = make_user(role="admin")
    member = make_user()
    headers = auth_headers(admin)

    response = client.patch(
        f"/api/admin/users/{member.id}",
        json={"status": "suspended", "bio": "Updated by support"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["user"]["status"] == "suspended"

    db_session.expire_all()
    assert db_session.get(User, member.id).profile.bio == "Updated by support"

    # Suspended members lose API access
    assert client.get("/api/users/me", headers=auth_headers(member)).status_code == 403

    bad = client.patch(f"/api/admin/users/{member.id}", json={"role": "owner"}, headers=headers)
    assert bad.status_code == 400


def test_admin_lists_and_updates_orders(client, make_user, auth_headers, product):
    admin = make_user(role="admin")
    member = make_user(points_balance=100)
    order_id = client.post("/api/orders", json={"product_id": str(product.id)},
                           headers=auth_headers(member)).json()["data"]["order"]["id"]

    listing = client.get("/api/admin/orders?status=pending", headers=auth_headers(admin)).json()["data"]
    assert listing["total"] == 1

    updated = client.patch(f"/api/admin/orders/{order_id}", json={"status": "shipped"},
                           headers=auth_headers(admin))
    assert updated.json()["data"]["status"] == "shipped"

    notifications = client.get("/api/notifications", headers=auth_headers(member)).json()["data"]
    assert notifications["unread_count"] == 1
    assert notifications["notifications"][0]["type"] == "order_update"


def test_admin_user_search(client, make_user, auth_headers):
    admin = make_user(role="admin", email="boss@example.com")
    make_user(email="pat@example.com", display_name="Pat")

    data = client.get("/api/admin/users?search=pat", headers=auth_headers(admin)).json()["data"]
    assert data["total"] == 1
    assert data["users"][0]["email"] == "pat@example.com"
