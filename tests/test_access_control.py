"""
Tests for entity relationship checks layered on top of role grants
"""

import pytest

from app.config.permissions_config import Permission
from app.core.access_control import (
    can_edit_project,
    can_execute_workflow,
    can_manage_account,
    can_manage_department,
    can_view_account,
    can_view_department,
    can_view_project,
    can_view_task,
    check_entity_access,
    has_account_access,
    is_assigned_to_project,
    is_department_member,
    is_assigned_to_task,
    verify_form_response_access,
    verify_workflow_history_access,
    verify_workflow_instance_access,
)
from tests.factories import make_profile, make_role


EDITOR = make_role("role-editor", "Editor", {
    "view_projects": True,
    "manage_projects": True,
    "view_accounts": True,
    "execute_workflows": True,
})
AUDITOR = make_role("role-auditor", "Auditor", {
    "view_all_projects": True,
    "view_all_accounts": True,
    "execute_any_workflow": True,
})
DESIGN_MEMBER = make_role(
    "role-design", "Designer", {"view_departments": True}, department_id="d-design"
)


@pytest.fixture
def db(fake_supabase):
    fake_supabase.seed("roles", EDITOR, AUDITOR, DESIGN_MEMBER)
    fake_supabase.seed(
        "projects",
        {"id": "p-owned", "created_by": "u1", "assigned_user_id": None, "account_id": "a1"},
        {"id": "p-assigned", "created_by": "u9", "assigned_user_id": None, "account_id": "a2"},
        {"id": "p-removed", "created_by": "u9", "assigned_user_id": None, "account_id": "a3"},
        {"id": "p-task", "created_by": "u9", "assigned_user_id": None, "account_id": "a3"},
        {"id": "p-other", "created_by": "u9", "assigned_user_id": None, "account_id": "a4"},
    )
    fake_supabase.seed(
        "project_assignments",
        {"id": "pa1", "user_id": "u1", "project_id": "p-assigned", "removed_at": None},
        {"id": "pa2", "user_id": "u1", "project_id": "p-removed", "removed_at": "2024-05-01T00:00:00Z"},
    )
    fake_supabase.seed(
        "tasks",
        {"id": "t1", "assigned_to": "u1", "project_id": "p-task"},
        {"id": "t2", "assigned_to": "u9", "project_id": "p-other"},
        {"id": "t3", "assigned_to": "u9", "project_id": "p-assigned"},
    )
    fake_supabase.seed("account_members", {"id": "am1", "user_id": "u1", "account_id": "a5"})
    fake_supabase.seed(
        "workflow_instances",
        {"id": "wf-mine", "project_id": "p-assigned"},
        {"id": "wf-other", "project_id": "p-other"},
        {"id": "wf-orphan", "project_id": None},
    )
    fake_supabase.seed(
        "workflow_history",
        {"id": "wh1", "workflow_instance_id": "wf-mine"},
        {"id": "wh2", "workflow_instance_id": "wf-other"},
    )
    fake_supabase.seed(
        "form_responses",
        {"id": "fr-standalone", "workflow_history_id": None},
        {"id": "fr-mine", "workflow_history_id": "wh1"},
        {"id": "fr-other", "workflow_history_id": "wh2"},
    )
    return fake_supabase


class TestProjectAssignment:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("project_id", ["p-owned", "p-assigned", "p-task"])
    async def test_related(self, db, project_id):
        assert await is_assigned_to_project(db, "u1", project_id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("project_id", ["p-removed", "p-other", "missing"])
    async def test_unrelated(self, db, project_id):
        assert not await is_assigned_to_project(db, "u1", project_id)

    @pytest.mark.asyncio
    async def test_lookup_failure_denies(self, db):
        db.failing_tables.add("project_assignments")
        assert not await is_assigned_to_project(db, "u1", "p-assigned")


class TestAccountAccess:

    @pytest.mark.asyncio
    async def test_member(self, db):
        assert await has_account_access(db, "u1", "a5")

    @pytest.mark.asyncio
    async def test_through_project(self, db):
        assert await has_account_access(db, "u1", "a2")
        assert await has_account_access(db, "u1", "a3")

    @pytest.mark.asyncio
    async def test_no_relationship(self, db):
        assert not await has_account_access(db, "u1", "a4")
        assert not await has_account_access(db, "u1", "a-empty")


class TestWorkflowLookup:

    @pytest.mark.asyncio
    async def test_instance(self, db):
        assert await verify_workflow_instance_access(db, "u1", "wf-mine") == (True, "p-assigned")
        assert await verify_workflow_instance_access(db, "u1", "wf-other") == (False, "p-other")
        assert await verify_workflow_instance_access(db, "u1", "wf-orphan") == (False, None)
        assert await verify_workflow_instance_access(db, "u1", "missing") == (False, None)

    @pytest.mark.asyncio
    async def test_history(self, db):
        assert await verify_workflow_history_access(db, "u1", "wh1") == (True, "p-assigned")
        assert await verify_workflow_history_access(db, "u1", "missing") == (False, None)

    @pytest.mark.asyncio
    async def test_form_response(self, db):
        assert await verify_form_response_access(db, "u1", "fr-standalone") == (True, None)
        assert await verify_form_response_access(db, "u1", "fr-mine") == (True, "p-assigned")
        assert await verify_form_response_access(db, "u1", "fr-other") == (False, "p-other")
        assert await verify_form_response_access(db, "u1", "missing") == (False, None)

    @pytest.mark.asyncio
    async def test_form_response_lookup_failure_denies(self, db):
        db.failing_tables.add("form_responses")
        assert await verify_form_response_access(db, "u1", "fr-standalone") == (False, None)


class TestTaskAssignment:

    @pytest.mark.asyncio
    async def test_assignee(self, db):
        assert await is_assigned_to_task(db, "u1", "t1")

    @pytest.mark.asyncio
    async def test_assigned_to_the_task_project(self, db):
        # t3 belongs to someone else but sits in a project u1 is assigned to
        assert await is_assigned_to_task(db, "u1", "t3")

    @pytest.mark.asyncio
    async def test_unrelated_or_missing(self, db):
        assert not await is_assigned_to_task(db, "u1", "t2")
        assert not await is_assigned_to_task(db, "u1", "missing")


class TestEntityAccess:

    @pytest.mark.asyncio
    async def test_base_permission_requires_relationship(self, db, role_store):
        profile = make_profile("u1", EDITOR)
        assert await can_view_project(profile, "p-assigned", db, role_store)
        assert await can_edit_project(profile, "p-owned", db, role_store)
        assert not await can_view_project(profile, "p-other", db, role_store)
        assert not await can_edit_project(profile, "p-removed", db, role_store)

    @pytest.mark.asyncio
    async def test_relationship_is_the_callers_own(self, db, role_store):
        outsider = make_profile("u2", EDITOR)
        borrowed = {"project_id": "p-owned", "user_id": "u1"}
        assert not await check_entity_access(outsider, Permission.MANAGE_PROJECTS, borrowed, db, role_store)
        assert not await can_edit_project(outsider, "p-owned", db, role_store)

    @pytest.mark.asyncio
    async def test_matching_context_user(self, db, role_store):
        profile = make_profile("u1", EDITOR)
        context = {"project_id": "p-owned", "user_id": "u1"}
        assert await check_entity_access(profile, Permission.MANAGE_PROJECTS, context, db, role_store)

    @pytest.mark.asyncio
    async def test_override_skips_relationship(self, db, role_store):
        profile = make_profile("u2", AUDITOR)
        assert await can_view_project(profile, "p-other", db, role_store)
        assert await can_view_account(profile, "a4", db, role_store)
        assert await can_execute_workflow(profile, "wf-other", db, role_store)
        # view_all_projects does not grant editing
        assert not await can_edit_project(profile, "p-other", db, role_store)

    @pytest.mark.asyncio
    async def test_override_permission_checked_directly(self, db, role_store):
        profile = make_profile("u2", AUDITOR)
        assert await check_entity_access(
            profile, Permission.VIEW_ALL_PROJECTS, {"project_id": "p-other"}, db, role_store
        )

    @pytest.mark.asyncio
    async def test_no_role_grant(self, db, role_store):
        profile = make_profile("u1", DESIGN_MEMBER)
        assert not await can_view_project(profile, "p-owned", db, role_store)

    @pytest.mark.asyncio
    async def test_task_and_account(self, db, role_store):
        profile = make_profile("u1", EDITOR)
        assert await can_view_task(profile, "t1", db, role_store)
        assert not await can_view_task(profile, "t2", db, role_store)
        assert await can_view_account(profile, "a5", db, role_store)
        assert not await can_view_account(profile, "a4", db, role_store)

    @pytest.mark.asyncio
    async def test_workflow_execution(self, db, role_store):
        profile = make_profile("u1", EDITOR)
        assert await can_execute_workflow(profile, "wf-mine", db, role_store)
        assert not await can_execute_workflow(profile, "wf-other", db, role_store)

    @pytest.mark.asyncio
    async def test_no_entity_in_context(self, db, role_store):
        profile = make_profile("u1", EDITOR)
        assert await check_entity_access(profile, Permission.VIEW_PROJECTS, None, db, role_store)

    @pytest.mark.asyncio
    async def test_superadmin(self, db, failing_store):
        profile = make_profile("u1", is_superadmin=True)
        assert await can_edit_project(profile, "p-other", db, failing_store)
        assert failing_store.calls == 0

    @pytest.mark.asyncio
    async def test_relationship_lookup_failure_denies(self, db, role_store):
        db.failing_tables.add("projects")
        profile = make_profile("u1", EDITOR)
        assert not await can_view_project(profile, "p-owned", db, role_store)

    @pytest.mark.asyncio
    async def test_unknown_permission(self, db, role_store):
        profile = make_profile("u1", EDITOR)
        assert not await check_entity_access(profile, "edit_everything", {"project_id": "p-owned"}, db, role_store)


class TestDepartments:

    def test_membership(self):
        profile = make_profile("u1", DESIGN_MEMBER)
        assert is_department_member(profile, "d-design")
        assert not is_department_member(profile, "d-sales")
        assert not is_department_member(profile, "")

    @pytest.mark.asyncio
    async def test_view_department(self, db, role_store):
        profile = make_profile("u1", DESIGN_MEMBER)
        assert await can_view_department(profile, "d-design", role_store)
        assert not await can_view_department(profile, "d-sales", role_store)

    @pytest.mark.asyncio
    async def test_manage_department(self, fake_supabase, role_store):
        head = make_role("role-head", "Head", {"manage_departments": True}, department_id="d-design")
        fake_supabase.seed("roles", head)
        profile = make_profile("u1", head)
        assert await can_manage_department(profile, "d-design", role_store)
        assert not await can_manage_department(profile, "d-sales", role_store)

    @pytest.mark.asyncio
    async def test_manage_account_is_organization_wide(self, fake_supabase, role_store):
        manager = make_role("role-am", "Account Manager", {"manage_accounts": True})
        fake_supabase.seed("roles", manager)
        assert await can_manage_account(make_profile("u1", manager), role_store)
        assert not await can_manage_account(make_profile("u2", EDITOR), role_store)
