from fastapi import APIRouter, Depends
from app.core.access_control import (
    can_edit_project, can_execute_workflow, can_manage_account, can_manage_department,
    can_view_account, can_view_department, can_view_project, get_project_id_for_workflow_instance
)
from app.core.dependencies import get_current_user_profile, get_role_service
from app.database.supabase_client import get_supabase
from app.modules.access.schemas import EntityAccessResponse
from app.modules.roles.service import RoleService
from app.modules.users.schemas import UserWithRoles
from supabase import Client

router = APIRouter(prefix="/access", tags=["access"])


@router.get("/projects/{project_id}", response_model=EntityAccessResponse)
async def get_project_access(
    project_id: str,
    profile: UserWithRoles = Depends(get_current_user_profile),
    supabase: Client = Depends(get_supabase),
    store: RoleService = Depends(get_role_service)
):
    """Whether the caller may view and edit a project"""
    return EntityAccessResponse(
        entity_type="project",
        entity_id=project_id,
        can_view=await can_view_project(profile, project_id, supabase, store),
        can_edit=await can_edit_project(profile, project_id, supabase, store),
    )


@router.get("/accounts/{account_id}", response_model=EntityAccessResponse)
async def get_account_access(
    account_id: str,
    profile: UserWithRoles = Depends(get_current_user_profile),
    supabase: Client = Depends(get_supabase),
    store: RoleService = Depends(get_role_service)
):
    """Whether the caller may view and manage an account"""
    return EntityAccessResponse(
        entity_type="account",
        entity_id=account_id,
        can_view=await can_view_account(profile, account_id, supabase, store),
        can_edit=await can_manage_account(profile, store),
    )


@router.get("/departments/{department_id}", response_model=EntityAccessResponse)
async def get_department_access(
    department_id: str,
    profile: UserWithRoles = Depends(get_current_user_profile),
    store: RoleService = Depends(get_role_service)
):
    """Whether the caller may view and manage a department"""
    return EntityAccessResponse(
        entity_type="department",
        entity_id=department_id,
        can_view=await can_view_department(profile, department_id, store),
        can_edit=await can_manage_department(profile, department_id, store),
    )


@router.get("/workflows/{workflow_instance_id}", response_model=EntityAccessResponse)
async def get_workflow_access(
    workflow_instance_id: str,
    profile: UserWithRoles = Depends(get_current_user_profile),
    supabase: Client = Depends(get_supabase),
    store: RoleService = Depends(get_role_service)
):
    """Whether the caller may hand off work in a workflow instance"""
    can_execute = await can_execute_workflow(profile, workflow_instance_id, supabase, store)
    return EntityAccessResponse(
        entity_type="workflow_instance",
        entity_id=workflow_instance_id,
        can_view=can_execute,
        can_edit=can_execute,
        project_id=await get_project_id_for_workflow_instance(supabase, workflow_instance_id),
    )
