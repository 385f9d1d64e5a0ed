from fastapi import APIRouter, Depends
from app.config.permissions_config import Permission
from app.core.dependencies import (
    get_current_user_profile, get_computed_permissions, get_optional_user_profile
)
from app.core.permission_checker import check_permission
from app.core.permission_utils import (
    get_all_user_permissions, get_user_department_names, get_user_role_names, is_superadmin
)
from app.modules.roles.service import RoleService
from app.modules.users.schemas import (
    ComputedPermissions, PermissionSummaryResponse, UserPermissionsResponse, UserWithRoles
)
from app.database.supabase_client import get_optional_supabase
from supabase import Client
from typing import Optional

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=UserPermissionsResponse)
async def get_current_user(
    profile: UserWithRoles = Depends(get_current_user_profile),
    computed: ComputedPermissions = Depends(get_computed_permissions)
):
    """Get current authenticated user and their permissions (for frontend UI)."""
    return UserPermissionsResponse(
        id=profile.id,
        email=profile.email,
        name=profile.name,
        is_superadmin=computed.is_superadmin,
        is_unassigned=computed.is_unassigned,
        roles=get_user_role_names(profile),
        departments=get_user_department_names(profile),
        permissions=[p.value for p in get_all_user_permissions(computed)],
    )


@router.get("/permissions", response_model=PermissionSummaryResponse)
async def get_permission_summary(
    profile: Optional[UserWithRoles] = Depends(get_optional_user_profile),
    supabase: Optional[Client] = Depends(get_optional_supabase)
):
    """Role-management capabilities of the caller; anonymous callers get all False"""
    if profile is None:
        return PermissionSummaryResponse()

    store = RoleService(supabase) if supabase is not None else None
    can_manage_roles = await check_permission(profile, Permission.MANAGE_USER_ROLES, store=store)
    return PermissionSummaryResponse(
        can_manage_roles=can_manage_roles,
        # Viewing is implied by the manage permission
        can_view_roles=can_manage_roles,
        is_admin=is_superadmin(profile),
        roles=get_user_role_names(profile),
    )
