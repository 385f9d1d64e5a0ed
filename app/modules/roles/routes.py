from fastapi import APIRouter, Depends
from app.config.permissions_config import Permission, get_permission_catalog
from app.core.dependencies import get_role_service, require_permission
from app.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, RolePermissionsUpdate, PermissionCatalogResponse
)
from app.modules.roles.service import RoleService
from app.modules.users.schemas import UserWithRoles
from typing import List, Optional

router = APIRouter(prefix="/roles", tags=["roles"])

manage_roles = require_permission(Permission.MANAGE_USER_ROLES)


@router.get("/catalog", response_model=PermissionCatalogResponse)
async def get_catalog(
    profile: UserWithRoles = Depends(manage_roles)
):
    """All permissions grouped by category, for role-editing screens"""
    return get_permission_catalog()


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    department_id: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """List roles in display order"""
    return service.list_roles(department_id=department_id, limit=limit, offset=offset)


@router.post("", response_model=RoleResponse, status_code=201)
async def create_role(
    role_data: RoleCreate,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """Create a new role"""
    return service.create_role(role_data)


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """Get role by ID"""
    return service.get_role_by_id(role_id)


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_data: RoleUpdate,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """Update role"""
    return service.update_role(role_id, role_data)


@router.delete("/{role_id}", status_code=204)
async def delete_role(
    role_id: str,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """Delete role (system roles are protected)"""
    service.delete_role(role_id)
    return None


@router.get("/{role_id}/permissions", response_model=List[Permission])
async def get_role_permissions(
    role_id: str,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """Get the permissions a role grants"""
    return service.get_role_permissions(role_id)


@router.put("/{role_id}/permissions", response_model=RoleResponse)
async def update_role_permissions(
    role_id: str,
    permissions_data: RolePermissionsUpdate,
    profile: UserWithRoles = Depends(manage_roles),
    service: RoleService = Depends(get_role_service)
):
    """Replace the permission map of a role"""
    return service.update_role_permissions(role_id, permissions_data.permissions)
