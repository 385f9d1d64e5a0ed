"""
Entity relationship checks

A role grant answers "may this user edit projects at all". For base
(non-override) permissions on a specific entity the user must also be
related to it: assigned to the project, member of the account, holding a
role in the department. The helpers below combine both tiers; override
permissions skip the relationship tier.

All checks are fail-closed: lookup errors are logged and deny.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple, Union
from supabase import Client
from app.config.permissions_config import (
    OVERRIDE_FOR, Permission, is_override_permission, to_permission
)
from app.core.permission_checker import check_permission
from app.core.permission_utils import (
    PermissionKey, coerce_profile, get_user_department_ids, is_superadmin
)
from app.database.supabase_client import get_optional_supabase
from app.modules.roles.schemas import PermissionContext
import logging

logger = logging.getLogger(__name__)


def _project_row(supabase: Client, project_id: str) -> Optional[Dict[str, Any]]:
    result = supabase.table("projects")\
        .select("id, created_by, assigned_user_id, account_id")\
        .eq("id", project_id)\
        .limit(1)\
        .execute()
    return result.data[0] if result.data else None


def _assigned_to_project(supabase: Client, user_id: str, project_id: str) -> bool:
    project = _project_row(supabase, project_id)
    if project and user_id in (project.get("created_by"), project.get("assigned_user_id")):
        return True

    # Only live assignments count; removed ones keep their row with removed_at set
    assignment = supabase.table("project_assignments")\
        .select("id")\
        .eq("user_id", user_id)\
        .eq("project_id", project_id)\
        .is_("removed_at", "null")\
        .limit(1)\
        .execute()
    if assignment.data:
        return True

    task = supabase.table("tasks")\
        .select("id")\
        .eq("assigned_to", user_id)\
        .eq("project_id", project_id)\
        .limit(1)\
        .execute()
    return bool(task.data)


def _account_access(supabase: Client, user_id: str, account_id: str) -> bool:
    member = supabase.table("account_members")\
        .select("id")\
        .eq("user_id", user_id)\
        .eq("account_id", account_id)\
        .limit(1)\
        .execute()
    if member.data:
        return True

    projects = supabase.table("projects")\
        .select("id")\
        .eq("account_id", account_id)\
        .execute()
    project_ids = [p["id"] for p in projects.data or []]
    if not project_ids:
        return False

    assignments = supabase.table("project_assignments")\
        .select("id")\
        .eq("user_id", user_id)\
        .in_("project_id", project_ids)\
        .is_("removed_at", "null")\
        .limit(1)\
        .execute()
    if assignments.data:
        return True

    tasks = supabase.table("tasks")\
        .select("id")\
        .eq("assigned_to", user_id)\
        .in_("project_id", project_ids)\
        .limit(1)\
        .execute()
    return bool(tasks.data)


def _assigned_to_task(supabase: Client, user_id: str, task_id: str) -> bool:
    result = supabase.table("tasks")\
        .select("id, assigned_to, project_id")\
        .eq("id", task_id)\
        .limit(1)\
        .execute()
    if not result.data:
        return False
    task = result.data[0]
    if task.get("assigned_to") == user_id:
        return True
    if task.get("project_id"):
        return _assigned_to_project(supabase, user_id, task["project_id"])
    return False


def _workflow_instance_project(supabase: Client, workflow_instance_id: str) -> Optional[str]:
    result = supabase.table("workflow_instances")\
        .select("project_id")\
        .eq("id", workflow_instance_id)\
        .limit(1)\
        .execute()
    if not result.data:
        return None
    return result.data[0].get("project_id")


def _workflow_history_project(supabase: Client, history_id: str) -> Optional[str]:
    result = supabase.table("workflow_history")\
        .select("workflow_instance_id")\
        .eq("id", history_id)\
        .limit(1)\
        .execute()
    if not result.data or not result.data[0].get("workflow_instance_id"):
        return None
    return _workflow_instance_project(supabase, result.data[0]["workflow_instance_id"])


def _form_response_row(supabase: Client, form_response_id: str) -> Optional[Dict[str, Any]]:
    result = supabase.table("form_responses")\
        .select("id, workflow_history_id")\
        .eq("id", form_response_id)\
        .limit(1)\
        .execute()
    return result.data[0] if result.data else None


async def _run(description: str, fn, *args, default=False):
    try:
        return await asyncio.to_thread(fn, *args)
    except Exception as e:
        logger.error(f"Error checking {description}: {e}")
        return default


async def is_assigned_to_project(supabase: Client, user_id: str, project_id: str) -> bool:
    """Creator, assignee, live project assignment or an assigned task in the project"""
    return await _run(f"project assignment {project_id}", _assigned_to_project, supabase, user_id, project_id)


async def has_account_access(supabase: Client, user_id: str, account_id: str) -> bool:
    """Account member, or assigned to any project of the account"""
    return await _run(f"account access {account_id}", _account_access, supabase, user_id, account_id)


async def is_assigned_to_task(supabase: Client, user_id: str, task_id: str) -> bool:
    return await _run(f"task assignment {task_id}", _assigned_to_task, supabase, user_id, task_id)


def is_department_member(profile: Any, department_id: str) -> bool:
    """Holds at least one role scoped to the department"""
    return bool(department_id) and department_id in get_user_department_ids(profile)


async def get_project_id_for_workflow_instance(supabase: Client, workflow_instance_id: str) -> Optional[str]:
    return await _run(
        f"workflow instance {workflow_instance_id}",
        _workflow_instance_project, supabase, workflow_instance_id,
        default=None,
    )


async def get_project_id_for_workflow_history(supabase: Client, history_id: str) -> Optional[str]:
    return await _run(
        f"workflow history {history_id}",
        _workflow_history_project, supabase, history_id,
        default=None,
    )


async def verify_workflow_instance_access(
    supabase: Client,
    user_id: str,
    workflow_instance_id: str
) -> Tuple[bool, Optional[str]]:
    """Return (has_access, project_id) for the project behind a workflow instance"""
    project_id = await get_project_id_for_workflow_instance(supabase, workflow_instance_id)
    if not project_id:
        return False, None
    return await is_assigned_to_project(supabase, user_id, project_id), project_id


async def verify_workflow_history_access(
    supabase: Client,
    user_id: str,
    history_id: str
) -> Tuple[bool, Optional[str]]:
    project_id = await get_project_id_for_workflow_history(supabase, history_id)
    if not project_id:
        return False, None
    return await is_assigned_to_project(supabase, user_id, project_id), project_id


async def verify_form_response_access(
    supabase: Client,
    user_id: str,
    form_response_id: str
) -> Tuple[bool, Optional[str]]:
    """Return (has_access, project_id) for a form response.

    A response not attached to a workflow step needs no relationship beyond
    the caller's own form permission; an attached one follows the workflow
    history it belongs to. A missing response denies.
    """
    response = await _run(
        f"form response {form_response_id}",
        _form_response_row, supabase, form_response_id,
        default=None,
    )
    if response is None:
        return False, None
    if not response.get("workflow_history_id"):
        return True, None
    return await verify_workflow_history_access(supabase, user_id, response["workflow_history_id"])


async def _has_relationship(
    profile,
    context: PermissionContext,
    supabase: Optional[Client]
) -> bool:
    """Relationship of the profile itself to the most specific entity named in the context"""
    # The role grant came from this profile; the relationship must be its own too
    if context.user_id and context.user_id != profile.id:
        logger.warning(f"Context user {context.user_id} does not match profile {profile.id}; denying")
        return False

    if context.department_id and not any(
        (context.workflow_instance_id, context.task_id, context.project_id, context.account_id)
    ):
        return is_department_member(profile, context.department_id)

    if supabase is None:
        supabase = get_optional_supabase()
    if supabase is None:
        logger.error("Supabase client not available for relationship check")
        return False

    user_id = profile.id
    if context.workflow_instance_id:
        has_access, _ = await verify_workflow_instance_access(supabase, user_id, context.workflow_instance_id)
        return has_access
    if context.task_id:
        return await is_assigned_to_task(supabase, user_id, context.task_id)
    if context.project_id:
        return await is_assigned_to_project(supabase, user_id, context.project_id)
    return await has_account_access(supabase, user_id, context.account_id)


async def check_entity_access(
    profile: Any,
    permission: PermissionKey,
    context: Union[PermissionContext, Dict[str, Any], None] = None,
    supabase: Optional[Client] = None,
    store: Optional[Any] = None
) -> bool:
    """Role grant plus, for base permissions, a live relationship to the entity in context"""
    try:
        profile = coerce_profile(profile)
        resolved = to_permission(permission)
        if profile is None or resolved is None:
            return False
        if is_superadmin(profile):
            return True
        if context is not None and not isinstance(context, PermissionContext):
            context = PermissionContext(**context)

        if is_override_permission(resolved):
            return await check_permission(profile, resolved, context, store)

        override = OVERRIDE_FOR.get(resolved)
        if override is not None and await check_permission(profile, override, store=store):
            return True

        if not await check_permission(profile, resolved, context, store):
            return False
        if context is None or not any((
            context.workflow_instance_id, context.task_id, context.project_id,
            context.account_id, context.department_id,
        )):
            return True
        return await _has_relationship(profile, context, supabase)
    except Exception as e:
        logger.error(f"Error checking entity access for {getattr(permission, 'value', permission)}: {e}")
        return False


async def can_view_project(profile, project_id: str, supabase: Optional[Client] = None, store=None) -> bool:
    return await check_entity_access(
        profile, Permission.VIEW_PROJECTS, PermissionContext(project_id=project_id), supabase, store
    )


async def can_edit_project(profile, project_id: str, supabase: Optional[Client] = None, store=None) -> bool:
    return await check_entity_access(
        profile, Permission.MANAGE_PROJECTS, PermissionContext(project_id=project_id), supabase, store
    )


async def can_view_task(profile, task_id: str, supabase: Optional[Client] = None, store=None) -> bool:
    return await check_entity_access(
        profile, Permission.VIEW_PROJECTS, PermissionContext(task_id=task_id), supabase, store
    )


async def can_view_account(profile, account_id: str, supabase: Optional[Client] = None, store=None) -> bool:
    return await check_entity_access(
        profile, Permission.VIEW_ACCOUNTS, PermissionContext(account_id=account_id), supabase, store
    )


async def can_manage_account(profile, store=None) -> bool:
    """Account management is organization-wide; no relationship tier"""
    return await check_permission(profile, Permission.MANAGE_ACCOUNTS, store=store)


async def can_view_department(profile, department_id: str, store=None) -> bool:
    return await check_entity_access(
        profile, Permission.VIEW_DEPARTMENTS, PermissionContext(department_id=department_id), store=store
    )


async def can_manage_department(profile, department_id: str, store=None) -> bool:
    return await check_permission(
        profile, Permission.MANAGE_DEPARTMENTS, PermissionContext(department_id=department_id), store
    )


async def can_execute_workflow(
    profile,
    workflow_instance_id: str,
    supabase: Optional[Client] = None,
    store=None
) -> bool:
    return await check_entity_access(
        profile,
        Permission.EXECUTE_WORKFLOWS,
        PermissionContext(workflow_instance_id=workflow_instance_id),
        supabase,
        store,
    )
