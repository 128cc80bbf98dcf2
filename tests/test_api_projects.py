# tests/test_api_projects.py

"""HTTP tests for projects, applications, tasks and comments."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select

from workhub.models.project import Application, Project, ProjectApplication, Task

from .conftest import auth_headers, make_user

API = "/api/v1"


async def test_requests_without_a_token_are_rejected(client) -> None:
    response = await client.get(f"{API}/projects/")
    assert response.status_code == 401
    assert response.json()["code"] == "NOT_AUTHENTICATED"
    assert response.headers["www-authenticate"] == "Bearer"


async def test_project_lifecycle_progress_and_delete(client, admin_headers, acme, web_app, session_factory) -> None:
    created = await client.post(
        f"{API}/projects/",
        json={"name": "Mobile app", "client_id": str(acme.id), "application_ids": [str(web_app.id)]},
        headers=admin_headers,
    )
    assert created.status_code == 201, created.text
    project_id = created.json()["id"]
    assert created.json()["status"] == "active"

    progress = await client.get(f"{API}/projects/{project_id}/progress", headers=admin_headers)
    assert progress.json()["percent"] == 0
    assert progress.json()["total"] == 0

    task_ids = []
    for title in ("Design", "Build"):
        response = await client.post(
            f"{API}/tasks/", json={"title": title, "project_id": project_id}, headers=admin_headers
        )
        assert response.status_code == 201, response.text
        task_ids.append(response.json()["id"])

    closed = await client.patch(
        f"{API}/tasks/{task_ids[0]}/status", json={"status": "done"}, headers=admin_headers
    )
    assert closed.json()["status"] == "Closed"
    assert closed.json()["completed_at"] is not None

    progress = await client.get(f"{API}/projects/{project_id}/progress", headers=admin_headers)
    assert progress.json() == {
        "project_id": project_id,
        "total": 2,
        "completed": 1,
        "in_progress": 0,
        "blocked": 0,
        "open": 1,
        "percent": 50,
    }

    deleted = await client.delete(f"{API}/projects/{project_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"tasks_deleted": 2, "links_deleted": 1}

    async with session_factory() as db:
        pid = uuid.UUID(project_id)
        assert await db.scalar(select(func.count(Task.id)).where(Task.project_id == pid)) == 0
        assert await db.scalar(
            select(func.count()).select_from(ProjectApplication).where(ProjectApplication.project_id == pid)
        ) == 0

    missing = await client.get(f"{API}/projects/{project_id}", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


async def test_create_project_with_bad_application_is_atomic(client, admin_headers, acme, web_app, session_factory) -> None:
    response = await client.post(
        f"{API}/projects/",
        json={
            "name": "Half made",
            "client_id": str(acme.id),
            "application_ids": [str(web_app.id), str(uuid.uuid4())],
        },
        headers=admin_headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"].startswith("Application ")

    async with session_factory() as db:
        assert await db.scalar(select(func.count(Project.id))) == 0
        assert await db.scalar(select(func.count()).select_from(ProjectApplication)) == 0


async def test_linking_twice_leaves_one_join_row(client, admin_headers, project, web_app, session_factory) -> None:
    url = f"{API}/projects/{project.id}/applications"
    body = {"application_ids": [str(web_app.id)]}

    first = await client.post(url, json=body, headers=admin_headers)
    second = await client.post(url, json=body, headers=admin_headers)
    assert first.json()["changed"] is True
    assert second.status_code == 200
    assert second.json()["changed"] is False
    assert [a["id"] for a in second.json()["applications"]] == [str(web_app.id)]

    async with session_factory() as db:
        assert await db.scalar(select(func.count()).select_from(ProjectApplication)) == 1

    unlink = await client.delete(f"{url}/{web_app.id}", headers=admin_headers)
    again = await client.delete(f"{url}/{web_app.id}", headers=admin_headers)
    assert unlink.json()["changed"] is True
    assert again.json()["changed"] is False

    linked_projects = await client.get(
        f"{API}/applications/{web_app.id}/projects", headers=admin_headers
    )
    assert linked_projects.json() == []


async def test_replace_application_set(client, admin_headers, project, web_app, db) -> None:
    watch = Application(name="Watch face", type="Watch")
    db.add(watch)
    await db.commit()

    url = f"{API}/projects/{project.id}/applications"
    await client.post(url, json={"application_ids": [str(web_app.id)]}, headers=admin_headers)
    replaced = await client.put(url, json={"application_ids": [str(watch.id)]}, headers=admin_headers)

    assert replaced.json()["changed"] is True
    assert replaced.json()["added"] == [str(watch.id)]
    assert [a["name"] for a in replaced.json()["applications"]] == ["Watch face"]


async def test_member_needs_grants(client, member, member_headers, admin_headers, acme, project) -> None:
    denied = await client.get(f"{API}/projects/{project.id}", headers=member_headers)
    assert denied.status_code == 403
    assert denied.json()["detail"] == "You do not have permission to view this project"
    assert (await client.get(f"{API}/projects/", headers=member_headers)).json() == []

    grant = await client.put(
        f"{API}/users/{member.id}/permissions/clients/{acme.id}",
        json={"can_view": True},
        headers=admin_headers,
    )
    assert grant.status_code == 200, grant.text
    assert grant.json()["can_edit"] is False

    visible = await client.get(f"{API}/projects/", headers=member_headers)
    assert [p["id"] for p in visible.json()] == [str(project.id)]

    edit = await client.patch(
        f"{API}/projects/{project.id}", json={"name": "Renamed"}, headers=member_headers
    )
    assert edit.status_code == 403

    task = await client.post(
        f"{API}/tasks/", json={"title": "Sneaky", "project_id": str(project.id)}, headers=member_headers
    )
    assert task.status_code == 403


async def test_manage_holder_can_grant_on_that_client(client, db, member, member_headers, acme, admin_headers) -> None:
    other = await make_user(db, "otto")
    await client.put(
        f"{API}/users/{member.id}/permissions/clients/{acme.id}",
        json={"can_manage": True},
        headers=admin_headers,
    )

    response = await client.put(
        f"{API}/users/{other.id}/permissions/clients/{acme.id}",
        json={"can_view": True, "can_edit": True},
        headers=member_headers,
    )
    assert response.status_code == 200
    assert response.json()["can_edit"] is True

    listing = await client.get(f"{API}/users/{other.id}/permissions", headers=auth_headers(other))
    assert [row["client_id"] for row in listing.json()["clients"]] == [str(acme.id)]

    revoke = await client.delete(
        f"{API}/users/{other.id}/permissions/clients/{acme.id}", headers=member_headers
    )
    assert revoke.status_code == 204


async def test_search_supersedes_structured_filters(client, admin_headers, project) -> None:
    for body in (
        {"title": "Fix login bug", "priority": "high"},
        {"title": "Write docs", "description": "Explain LOGIN flow", "priority": "low"},
        {"title": "Unrelated", "priority": "high"},
    ):
        await client.post(
            f"{API}/tasks/", json={**body, "project_id": str(project.id)}, headers=admin_headers
        )

    filtered = await client.get(f"{API}/tasks/", params={"priority": "high"}, headers=admin_headers)
    assert sorted(t["title"] for t in filtered.json()) == ["Fix login bug", "Unrelated"]

    searched = await client.get(
        f"{API}/tasks/", params={"priority": "high", "q": "login"}, headers=admin_headers
    )
    assert sorted(t["title"] for t in searched.json()) == ["Fix login bug", "Write docs"]

    empty = await client.get(f"{API}/tasks/search", params={"q": "  "}, headers=admin_headers)
    assert empty.status_code == 400


async def test_status_filter_accepts_aliases_and_board_groups(client, admin_headers, project) -> None:
    await client.post(
        f"{API}/tasks/",
        json={"title": "Started", "status": "in_progress", "project_id": str(project.id)},
        headers=admin_headers,
    )
    await client.post(
        f"{API}/tasks/", json={"title": "Fresh", "project_id": str(project.id)}, headers=admin_headers
    )

    by_alias = await client.get(f"{API}/tasks/", params={"status": "inprogress"}, headers=admin_headers)
    assert [t["title"] for t in by_alias.json()] == ["Started"]

    board = await client.get(
        f"{API}/tasks/by-status", params={"project_id": str(project.id)}, headers=admin_headers
    )
    columns = board.json()
    assert set(columns) == {"Open", "InProgress", "Blocked", "Closed"}
    assert [t["title"] for t in columns["InProgress"]] == ["Started"]
    assert [t["title"] for t in columns["Open"]] == ["Fresh"]


async def test_task_validation_errors(client, admin_headers, project) -> None:
    out_of_range = await client.post(
        f"{API}/tasks/",
        json={"title": "Too far", "progress": 120, "project_id": str(project.id)},
        headers=admin_headers,
    )
    assert out_of_range.status_code == 422

    bad_status = await client.post(
        f"{API}/tasks/",
        json={"title": "Odd", "status": "someday", "project_id": str(project.id)},
        headers=admin_headers,
    )
    assert bad_status.status_code == 400
    assert bad_status.json()["code"] == "VALIDATION_ERROR"


async def test_project_update_keeps_end_after_start(client, admin_headers, acme) -> None:
    created = await client.post(
        f"{API}/projects/",
        json={
            "name": "Spring launch",
            "client_id": str(acme.id),
            "start_date": "2025-01-10",
            "end_date": "2025-02-10",
        },
        headers=admin_headers,
    )
    project_id = created.json()["id"]

    early_end = await client.patch(
        f"{API}/projects/{project_id}", json={"end_date": "2024-01-01"}, headers=admin_headers
    )
    assert early_end.status_code == 400
    assert early_end.json()["code"] == "VALIDATION_ERROR"

    late_start = await client.patch(
        f"{API}/projects/{project_id}", json={"start_date": "2025-03-01"}, headers=admin_headers
    )
    assert late_start.status_code == 400

    both = await client.patch(
        f"{API}/projects/{project_id}",
        json={"start_date": "2025-03-01", "end_date": "2025-04-01"},
        headers=admin_headers,
    )
    assert both.status_code == 200
    assert both.json()["end_date"] == "2025-04-01"

    stored = await client.get(f"{API}/projects/{project_id}", headers=admin_headers)
    assert stored.json()["start_date"] == "2025-03-01"


async def test_comments_are_listed_oldest_first(client, admin_headers, project) -> None:
    task = await client.post(
        f"{API}/tasks/", json={"title": "Chat", "project_id": str(project.id)}, headers=admin_headers
    )
    task_id = task.json()["id"]
    for text in ("first", "second", "third"):
        response = await client.post(
            f"{API}/tasks/{task_id}/comments", json={"content": text}, headers=admin_headers
        )
        assert response.status_code == 201

    comments = await client.get(f"{API}/tasks/{task_id}/comments", headers=admin_headers)
    assert [c["content_text"] for c in comments.json()] == ["first", "second", "third"]

    feed = await client.get(
        f"{API}/activities/", params={"task_id": task_id, "limit": 2}, headers=admin_headers
    )
    assert [a["type"] for a in feed.json()] == ["commented", "commented"]
