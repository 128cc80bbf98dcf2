# tests/test_api_collaboration.py

"""Clients, applications, notifications, time tracking and dashboard stats."""

from __future__ import annotations

import uuid

from workhub.models.project import Project, Task

from .conftest import auth_headers, make_user

API = "/api/v1"


async def test_clients_are_admin_created_and_grant_scoped(client, admin_headers, member, member_headers) -> None:
    body = {"name": "Globex", "contact_email": "ops@globex.example.com", "tags": ["retail"]}
    assert (await client.post(f"{API}/clients/", json=body, headers=member_headers)).status_code == 403

    created = await client.post(f"{API}/clients/", json=body, headers=admin_headers)
    assert created.status_code == 201, created.text
    client_id = created.json()["id"]
    assert created.json()["status"] == "active"

    assert (await client.get(f"{API}/clients/", headers=member_headers)).json() == []
    await client.put(
        f"{API}/users/{member.id}/permissions/clients/{client_id}",
        json={"can_edit": True},
        headers=admin_headers,
    )
    listed = await client.get(f"{API}/clients/", headers=member_headers)
    assert [c["name"] for c in listed.json()] == ["Globex"]

    renamed = await client.patch(
        f"{API}/clients/{client_id}", json={"name": "Globex Inc"}, headers=member_headers
    )
    assert renamed.json()["name"] == "Globex Inc"
    assert (await client.delete(f"{API}/clients/{client_id}", headers=member_headers)).status_code == 403


async def test_deleting_a_client_keeps_its_projects(client, admin_headers, acme, project, session_factory) -> None:
    response = await client.delete(f"{API}/clients/{acme.id}", headers=admin_headers)
    assert response.status_code == 204

    async with session_factory() as db:
        survivor = await db.get(Project, project.id)
        assert survivor is not None
        assert survivor.client_id is None


async def test_applications_need_manager_role(client, db, member_headers, project, admin_headers) -> None:
    body = {"name": "Android", "type": "Mobile"}
    assert (await client.post(f"{API}/applications/", json=body, headers=member_headers)).status_code == 403

    manager = await make_user(db, "max", role="manager")
    created = await client.post(f"{API}/applications/", json=body, headers=auth_headers(manager))
    assert created.status_code == 201, created.text
    application_id = created.json()["id"]

    task = await client.post(
        f"{API}/tasks/",
        json={"title": "Port UI", "project_id": str(project.id), "application_id": application_id},
        headers=admin_headers,
    )
    deleted = await client.delete(f"{API}/applications/{application_id}", headers=auth_headers(manager))
    assert deleted.status_code == 204

    orphaned = await client.get(f"{API}/tasks/{task.json()['id']}", headers=admin_headers)
    assert orphaned.json()["application_id"] is None


async def test_notifications_inbox(client, admin, admin_headers, member, member_headers, project) -> None:
    await client.post(
        f"{API}/tasks/",
        json={"title": "Assigned", "project_id": str(project.id), "assignee": "mia"},
        headers=admin_headers,
    )
    await client.post(
        f"{API}/notifications/",
        json={"user_id": str(member.id), "title": "Ping", "message": "Standup", "type": "deadline_approaching"},
        headers=admin_headers,
    )

    inbox = await client.get(f"{API}/notifications/", headers=member_headers)
    assert inbox.json()["unread_count"] == 2
    assert {n["type"] for n in inbox.json()["notifications"]} == {"task_assigned", "deadline_approaching"}

    first_id = inbox.json()["notifications"][0]["id"]
    other_user = await client.patch(f"{API}/notifications/{first_id}/read", headers=admin_headers)
    assert other_user.status_code == 404

    read = await client.patch(f"{API}/notifications/{first_id}/read", headers=member_headers)
    assert read.json()["is_read"] is True

    rest = await client.patch(f"{API}/notifications/read-all", headers=member_headers)
    assert rest.json() == {"updated": 1}

    unread = await client.get(f"{API}/notifications/", params={"unread_only": True}, headers=member_headers)
    assert unread.json() == {"notifications": [], "unread_count": 0}

    to_self = await client.post(
        f"{API}/notifications/",
        json={"user_id": str(admin.id), "title": "Me", "message": "Myself", "type": "comment_added"},
        headers=admin_headers,
    )
    assert to_self.status_code == 400


async def test_time_entries(client, admin_headers, member, member_headers, acme, project, db) -> None:
    task = Task(title="Billable", project_id=project.id)
    db.add(task)
    await db.commit()

    await client.put(
        f"{API}/users/{member.id}/permissions/clients/{acme.id}",
        json={"can_edit": True},
        headers=admin_headers,
    )

    logged = await client.post(
        f"{API}/time-entries/", json={"task_id": str(task.id), "hours": 90}, headers=member_headers
    )
    assert logged.status_code == 201, logged.text
    assert logged.json()["minutes"] == 90
    assert logged.json()["date"] == "2025-01-15"
    assert logged.json()["user_id"] == str(member.id)

    for_someone_else = await client.post(
        f"{API}/time-entries/",
        json={"task_id": str(task.id), "minutes": 15, "user_id": str(uuid.uuid4())},
        headers=member_headers,
    )
    assert for_someone_else.status_code == 403

    zero = await client.post(
        f"{API}/time-entries/", json={"task_id": str(task.id), "minutes": 0}, headers=member_headers
    )
    assert zero.status_code == 422

    listed = await client.get(f"{API}/time-entries/", params={"task_id": str(task.id)}, headers=member_headers)
    assert [e["minutes"] for e in listed.json()] == [90]

    removed = await client.delete(f"{API}/time-entries/{logged.json()['id']}", headers=member_headers)
    assert removed.status_code == 204


async def test_dashboard_stats_are_scoped(client, db, admin_headers, member, member_headers, acme, project) -> None:
    hidden = Project(name="Other client work")
    db.add(hidden)
    await db.commit()

    for title, status, project_id in (
        ("A", "Open", project.id),
        ("B", "Closed", project.id),
        ("C", "Blocked", project.id),
        ("D", "InProgress", hidden.id),
    ):
        await client.post(
            f"{API}/tasks/",
            json={"title": title, "status": status, "project_id": str(project_id)},
            headers=admin_headers,
        )

    everything = await client.get(f"{API}/stats", headers=admin_headers)
    assert everything.json()["total_tasks"] == 4
    assert everything.json()["total_projects"] == 2
    assert everything.json()["in_progress_tasks"] == 1

    await client.put(
        f"{API}/users/{member.id}/permissions/clients/{acme.id}", json={}, headers=admin_headers
    )
    scoped = await client.get(f"{API}/stats", headers=member_headers)
    body = scoped.json()
    assert body["total_tasks"] == 3
    assert body["total_projects"] == 1
    assert (body["open_tasks"], body["closed_tasks"], body["blocked_tasks"]) == (1, 1, 1)
    assert body["completion_percent"] == 33
    assert body["active_team_members"] == 2
