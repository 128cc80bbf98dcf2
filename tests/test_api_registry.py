# tests/test_api_registry.py

"""Products and subscriptions with statuses derived against a pinned clock (2025-01-15 12:00 UTC)."""

from __future__ import annotations

from .conftest import auth_headers, make_user

API = "/api/v1"


async def test_product_warranty_is_computed_from_purchase_date(client, member_headers) -> None:
    response = await client.post(
        f"{API}/products/",
        json={
            "name": "Laptop",
            "category": "electronics",
            "purchase_date": "2023-02-01",
            "warranty_years": 2,
            "total_cost": 1499.99,
            "details": {"brand": "Lenovo", "serial_number": "PF-123"},
        },
        headers=member_headers,
    )
    assert response.status_code == 201, response.text
    product = response.json()
    assert product["warranty_expiry_date"] == "2025-02-01"
    assert product["warranty_status"] == "under_warranty"
    assert product["days_until_expiry"] == 17
    assert product["warranty_expiring_soon"] is True
    assert product["details"]["brand"] == "Lenovo"
    assert product["details"]["model"] is None


async def test_product_statuses_and_filters(client, member_headers) -> None:
    products = [
        {"name": "Old phone", "category": "gadgets", "purchase_date": "2020-01-01", "warranty_years": 1},
        {"name": "Ring", "category": "jewellery", "purchase_date": "2024-06-01"},
        {"name": "Car", "category": "vehicles", "purchase_date": "2024-02-29", "warranty_years": 3},
    ]
    for body in products:
        response = await client.post(f"{API}/products/", json=body, headers=member_headers)
        assert response.status_code == 201, response.text

    listing = await client.get(f"{API}/products/", headers=member_headers)
    statuses = {p["name"]: p["warranty_status"] for p in listing.json()}
    assert statuses == {
        "Old phone": "warranty_expired",
        "Ring": "no_warranty",
        "Car": "under_warranty",
    }
    car = next(p for p in listing.json() if p["name"] == "Car")
    assert car["warranty_expiry_date"] == "2027-03-01"

    expired = await client.get(
        f"{API}/products/", params={"warranty_status": "warranty_expired"}, headers=member_headers
    )
    assert [p["name"] for p in expired.json()] == ["Old phone"]

    jewellery = await client.get(
        f"{API}/products/", params={"category": "jewellery"}, headers=member_headers
    )
    assert [p["name"] for p in jewellery.json()] == ["Ring"]


async def test_product_update_recomputes_expiry_and_replaces_details(client, member_headers) -> None:
    created = await client.post(
        f"{API}/products/",
        json={
            "name": "Tablet",
            "category": "electronics",
            "purchase_date": "2024-01-10",
            "warranty_years": 1,
            "details": {"brand": "Acme"},
        },
        headers=member_headers,
    )
    product_id = created.json()["id"]

    updated = await client.patch(
        f"{API}/products/{product_id}",
        json={"warranty_years": 3, "category": "gadgets", "details": {"imei": "3567"}},
        headers=member_headers,
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["warranty_expiry_date"] == "2027-01-10"
    assert updated.json()["details"]["imei"] == "3567"
    assert "brand" not in updated.json()["details"]

    unknown = await client.patch(
        f"{API}/products/{product_id}", json={"details": {"horsepower": 300}}, headers=member_headers
    )
    assert unknown.status_code == 400


async def test_clearing_warranty_years_clears_computed_expiry(client, member_headers) -> None:
    created = await client.post(
        f"{API}/products/",
        json={
            "name": "Headphones",
            "category": "electronics",
            "purchase_date": "2024-06-01",
            "warranty_years": 2,
        },
        headers=member_headers,
    )
    product_id = created.json()["id"]
    assert created.json()["warranty_expiry_date"] == "2026-06-01"

    cleared = await client.patch(
        f"{API}/products/{product_id}", json={"warranty_years": None}, headers=member_headers
    )
    assert cleared.status_code == 200, cleared.text
    body = cleared.json()
    assert body["warranty_years"] is None
    assert body["warranty_expiry_date"] is None
    assert body["warranty_status"] == "no_warranty"
    assert body["days_until_expiry"] is None

    manual = await client.patch(
        f"{API}/products/{product_id}",
        json={"warranty_years": None, "warranty_expiry_date": "2025-03-01"},
        headers=member_headers,
    )
    assert manual.json()["warranty_expiry_date"] == "2025-03-01"
    assert manual.json()["warranty_status"] == "under_warranty"


async def test_products_are_private_to_their_owner(client, db, member_headers) -> None:
    created = await client.post(
        f"{API}/products/",
        json={"name": "Watch", "category": "gadgets", "purchase_date": "2024-05-05"},
        headers=member_headers,
    )
    product_id = created.json()["id"]

    stranger = auth_headers(await make_user(db, "sam"))
    assert (await client.get(f"{API}/products/{product_id}", headers=stranger)).status_code == 404
    assert (await client.get(f"{API}/products/", headers=stranger)).json() == []
    assert (await client.delete(f"{API}/products/{product_id}", headers=stranger)).status_code == 404

    assert (await client.delete(f"{API}/products/{product_id}", headers=member_headers)).status_code == 204


async def test_subscription_renewal_statuses(client, member_headers) -> None:
    subscriptions = [
        {"name": "Music", "category": "music", "cost": 9.99, "start_date": "2024-01-18", "next_renewal_date": "2025-01-18"},
        {"name": "Cloud", "category": "cloud", "cost": 120, "frequency": "yearly", "start_date": "2024-04-25", "next_renewal_date": "2025-04-25"},
        {"name": "Old news", "category": "general", "cost": 5, "start_date": "2023-01-01", "next_renewal_date": "2025-01-16", "is_active": False},
        {"name": "Lapsed", "category": "software", "cost": 15, "currency": "EUR", "start_date": "2024-01-01", "next_renewal_date": "2025-01-01"},
    ]
    for body in subscriptions:
        response = await client.post(f"{API}/subscriptions/", json=body, headers=member_headers)
        assert response.status_code == 201, response.text

    listing = await client.get(f"{API}/subscriptions/", headers=member_headers)
    statuses = {s["name"]: (s["renewal_status"], s["days_until_renewal"]) for s in listing.json()}
    assert statuses == {
        "Music": ("expiring_soon", 3),
        "Cloud": ("active", 100),
        "Old news": ("inactive", 1),
        "Lapsed": ("expired", -14),
    }

    soon = await client.get(
        f"{API}/subscriptions/", params={"renewal_status": "expiring_soon"}, headers=member_headers
    )
    assert [s["name"] for s in soon.json()] == ["Music"]


async def test_subscription_stats(client, member_headers) -> None:
    for body in (
        {"name": "A", "category": "streaming", "cost": 10.5, "start_date": "2024-01-01", "next_renewal_date": "2025-01-20"},
        {"name": "B", "category": "streaming", "cost": 4.5, "start_date": "2024-01-01"},
        {"name": "C", "category": "cloud", "cost": 20, "currency": "EUR", "start_date": "2024-01-01"},
        {"name": "D", "category": "cloud", "cost": 99, "start_date": "2024-01-01", "is_active": False},
    ):
        await client.post(f"{API}/subscriptions/", json=body, headers=member_headers)

    stats = await client.get(f"{API}/subscriptions/stats", headers=member_headers)
    assert stats.status_code == 200
    assert stats.json() == {
        "total_active": 3,
        "total_cost": 35.0,
        "cost_by_currency": {"USD": 15.0, "EUR": 20.0},
        "expiring_soon": 1,
        "categories": {"streaming": 2, "cloud": 1},
    }


async def test_subscription_update_and_validation(client, member_headers) -> None:
    bad = await client.post(
        f"{API}/subscriptions/",
        json={"name": "Bad", "cost": 1, "currency": "JPY", "start_date": "2024-01-01"},
        headers=member_headers,
    )
    assert bad.status_code == 422

    created = await client.post(
        f"{API}/subscriptions/",
        json={"name": "Notes", "category": "productivity", "cost": 3, "start_date": "2024-01-01"},
        headers=member_headers,
    )
    subscription_id = created.json()["id"]
    assert created.json()["renewal_status"] == "active"

    paused = await client.patch(
        f"{API}/subscriptions/{subscription_id}", json={"is_active": False}, headers=member_headers
    )
    assert paused.json()["renewal_status"] == "inactive"

    nulled = await client.patch(
        f"{API}/subscriptions/{subscription_id}", json={"cost": None}, headers=member_headers
    )
    assert nulled.status_code == 400
