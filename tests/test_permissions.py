# tests/test_permissions.py

from __future__ import annotations

import uuid

import pytest

from workhub.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from workhub.models.project import Project, Task
from workhub.services.permissions import PermissionEvaluator

from .conftest import make_user


async def test_no_grant_row_means_no_access(db, member, acme, project) -> None:
    evaluator = PermissionEvaluator(db)
    for action in ("view", "edit", "delete", "manage"):
        assert await evaluator.can_perform(member.id, "client", acme.id, action) is False
        assert await evaluator.can_perform(member.id, "project", project.id, action) is False


async def test_admin_is_allowed_everything(db, admin, acme, project) -> None:
    evaluator = PermissionEvaluator(db)
    assert await evaluator.can_perform(admin.id, "client", acme.id, "delete") is True
    assert await evaluator.can_perform(admin.id, "project", project.id, "manage") is True
    # Even ids that do not exist
    assert await evaluator.can_perform(admin.id, "task", uuid.uuid4(), "edit") is True


async def test_unknown_and_inactive_users_are_refused(db, acme) -> None:
    evaluator = PermissionEvaluator(db)
    inactive = await make_user(db, "ghost", role="admin", is_active=False)
    assert await evaluator.can_perform(uuid.uuid4(), "client", acme.id, "view") is False
    assert await evaluator.can_perform(None, "client", acme.id, "view") is False
    assert await evaluator.can_perform(inactive.id, "client", acme.id, "view") is False


async def test_client_grant_flows_to_projects_and_tasks(db, member, acme, project) -> None:
    evaluator = PermissionEvaluator(db)
    await evaluator.assign_client_permissions(member.id, acme.id, {"can_edit": True})
    task = Task(title="Draft copy", project_id=project.id)
    db.add(task)
    await db.commit()

    assert await evaluator.can_perform(member.id, "client", acme.id, "view") is True
    assert await evaluator.can_perform(member.id, "project", project.id, "edit") is True
    assert await evaluator.can_perform(member.id, "task", task.id, "edit") is True
    assert await evaluator.can_perform(member.id, "task", task.id, "delete") is False


async def test_project_grant_overrides_client_grant(db, member, acme, project) -> None:
    evaluator = PermissionEvaluator(db)
    await evaluator.assign_client_permissions(
        member.id, acme.id, {"can_view": True, "can_edit": True}
    )
    await evaluator.assign_project_permissions(
        member.id, project.id, {"can_view": True, "can_edit": False}
    )
    await db.commit()

    assert await evaluator.can_perform(member.id, "client", acme.id, "edit") is True
    assert await evaluator.can_perform(member.id, "project", project.id, "edit") is False

    sibling = Project(name="Sibling", client_id=acme.id)
    db.add(sibling)
    await db.commit()
    assert await evaluator.can_perform(member.id, "project", sibling.id, "edit") is True


async def test_project_without_client_or_grant_is_denied(db, member) -> None:
    orphan = Project(name="Internal")
    db.add(orphan)
    loose = Task(title="No project")
    db.add(loose)
    await db.commit()

    evaluator = PermissionEvaluator(db)
    assert await evaluator.can_perform(member.id, "project", orphan.id, "view") is False
    assert await evaluator.can_perform(member.id, "task", loose.id, "view") is False

    await evaluator.assign_project_permissions(member.id, orphan.id, {})
    assert await evaluator.can_perform(member.id, "project", orphan.id, "view") is True


async def test_upsert_is_last_write_wins_per_flag(db, member, acme) -> None:
    evaluator = PermissionEvaluator(db)
    grant = await evaluator.assign_client_permissions(member.id, acme.id, {"can_edit": True})
    assert (grant.can_view, grant.can_edit, grant.can_delete, grant.can_manage) == (
        True,
        True,
        False,
        False,
    )

    again = await evaluator.assign_client_permissions(
        member.id, acme.id, {"can_view": None, "can_delete": True}
    )
    assert again.id == grant.id
    assert (again.can_view, again.can_edit, again.can_delete) == (True, True, True)


async def test_accessible_project_ids(db, admin, member, acme, project) -> None:
    evaluator = PermissionEvaluator(db)
    assert await evaluator.accessible_project_ids(admin) is None
    assert await evaluator.accessible_project_ids(member) == set()

    hidden = Project(name="Hidden", client_id=acme.id)
    db.add(hidden)
    await db.commit()
    await evaluator.assign_client_permissions(member.id, acme.id, {})
    await evaluator.assign_project_permissions(member.id, hidden.id, {"can_view": False})

    assert await evaluator.accessible_project_ids(member) == {project.id}


async def test_require_raises_with_action_and_resource(db, member, project) -> None:
    with pytest.raises(PermissionDeniedError) as exc:
        await PermissionEvaluator(db).require(member, "project", project.id, "delete")
    assert exc.value.message == "You do not have permission to delete this project"


async def test_unknown_action_is_a_validation_error(db, member, acme) -> None:
    with pytest.raises(ValidationError):
        await PermissionEvaluator(db).can_perform(member.id, "client", acme.id, "approve")


async def test_revoking_a_missing_grant_is_not_found(db, member, acme) -> None:
    with pytest.raises(NotFoundError):
        await PermissionEvaluator(db).revoke_client_permissions(member.id, acme.id)
