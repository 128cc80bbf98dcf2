# tests/test_api_accounts.py

"""Login, user management and the team directory."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select

from workhub.models.activity import Notification
from workhub.models.user import User, UserClientPermission
from workhub.scripts.seed_admin import seed_admin
from workhub.services.auth import create_access_token, verify_password

from .conftest import PASSWORD, auth_headers, make_user

API = "/api/v1"


async def test_health(client) -> None:
    response = await client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "x-request-id" in response.headers


async def test_login_with_username_or_email(client, member, session_factory) -> None:
    by_name = await client.post(f"{API}/auth/login", json={"username": "mia", "password": PASSWORD})
    assert by_name.status_code == 200, by_name.text
    assert by_name.json()["token_type"] == "bearer"
    token = by_name.json()["access_token"]

    by_email = await client.post(
        f"{API}/auth/login", json={"username": "MIA@example.com", "password": PASSWORD}
    )
    assert by_email.status_code == 200

    me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["username"] == "mia"
    assert me.json()["kind"] == "account"

    async with session_factory() as db:
        refreshed = await db.get(User, member.id)
        assert refreshed.last_login_at is not None


async def test_login_failures(client, db, member) -> None:
    wrong = await client.post(f"{API}/auth/login", json={"username": "mia", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"] == "Invalid username or password"

    await make_user(db, "dora", is_active=False)
    disabled = await client.post(
        f"{API}/auth/login", json={"username": "dora", "password": PASSWORD}
    )
    assert disabled.status_code == 401
    assert disabled.json()["detail"] == "This account is disabled"


async def test_garbage_token_is_rejected(client) -> None:
    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_directory_entry_promoted_to_account(client, admin_headers) -> None:
    created = await client.post(
        f"{API}/team-members/",
        json={"display_name": "Dee Directory", "email": "dee@example.com"},
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    assert created.json()["kind"] == "directory"
    entry_id = created.json()["id"]

    token = create_access_token(uuid.UUID(entry_id))
    no_login = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert no_login.status_code == 401

    promoted = await client.patch(
        f"{API}/users/{entry_id}",
        json={"username": "dee", "password": "long-enough-pw"},
        headers=admin_headers,
    )
    assert promoted.status_code == 200, promoted.text
    assert promoted.json()["kind"] == "account"

    login = await client.post(
        f"{API}/auth/login", json={"username": "dee", "password": "long-enough-pw"}
    )
    assert login.status_code == 200


async def test_user_management_is_admin_only(client, admin_headers, member_headers) -> None:
    body = {
        "username": "newbie",
        "password": "s3cret-pass",
        "email": "newbie@example.com",
        "display_name": "New Bie",
    }
    forbidden = await client.post(f"{API}/users/", json=body, headers=member_headers)
    assert forbidden.status_code == 403

    created = await client.post(f"{API}/users/", json=body, headers=admin_headers)
    assert created.status_code == 201, created.text
    assert created.json()["role"] == "member"

    duplicate = await client.post(
        f"{API}/users/", json={**body, "username": "NEWBIE"}, headers=admin_headers
    )
    assert duplicate.status_code == 400

    accounts = await client.get(f"{API}/users/", params={"kind": "account"}, headers=admin_headers)
    assert "newbie" in [u["username"] for u in accounts.json()]


async def test_admin_cannot_demote_or_delete_self(client, admin, admin_headers) -> None:
    demote = await client.patch(
        f"{API}/users/{admin.id}", json={"role": "member"}, headers=admin_headers
    )
    assert demote.status_code == 400

    delete = await client.delete(f"{API}/users/{admin.id}", headers=admin_headers)
    assert delete.status_code == 400


async def test_deleting_a_user_removes_grants_and_notifications(
    client, admin, admin_headers, member, acme, session_factory
) -> None:
    await client.put(
        f"{API}/users/{member.id}/permissions/clients/{acme.id}", json={}, headers=admin_headers
    )
    sent = await client.post(
        f"{API}/notifications/",
        json={"user_id": str(member.id), "title": "Hi", "message": "Welcome", "type": "comment_added"},
        headers=admin_headers,
    )
    assert sent.status_code == 201

    response = await client.delete(f"{API}/users/{member.id}", headers=admin_headers)
    assert response.status_code == 204

    async with session_factory() as db:
        assert await db.scalar(select(func.count(UserClientPermission.id))) == 0
        assert await db.scalar(select(func.count(Notification.id))) == 0


async def test_team_directory_rules(client, db, member, member_headers, admin_headers) -> None:
    manager = await make_user(db, "max", role="manager")
    manager_headers = auth_headers(manager)

    # Members cannot add people; managers can, but not admins
    denied = await client.post(
        f"{API}/team-members/",
        json={"display_name": "X", "email": "x@example.com"},
        headers=member_headers,
    )
    assert denied.status_code == 403
    no_admin = await client.post(
        f"{API}/team-members/",
        json={"display_name": "Boss", "email": "boss@example.com", "role": "admin"},
        headers=manager_headers,
    )
    assert no_admin.status_code == 403

    own = await client.patch(
        f"{API}/team-members/{member.id}", json={"department": "Design"}, headers=member_headers
    )
    assert own.json()["department"] == "Design"

    others = await client.patch(
        f"{API}/team-members/{manager.id}", json={"department": "Design"}, headers=member_headers
    )
    assert others.status_code == 403

    promote = await client.patch(
        f"{API}/team-members/{member.id}", json={"role": "manager"}, headers=manager_headers
    )
    assert promote.status_code == 403

    active = await client.get(f"{API}/team-members/", params={"active_only": True}, headers=member_headers)
    assert {m["display_name"] for m in active.json()} == {"Mia Member", "Max", "Ada Admin"}


async def test_seed_admin_creates_then_resets(db) -> None:
    user, created = await seed_admin(db, "root", "root@example.com", "first-password")
    assert created is True
    assert user.role == "admin"

    again, created = await seed_admin(db, "ROOT", "root@example.com", "second-password")
    assert created is False
    assert again.id == user.id
    assert verify_password("second-password", again.hashed_password)
