from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List, FrozenSet
from app.modules.roles.schemas import Role


class UserRole(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    role_id: Optional[str] = None
    roles: Optional[Role] = None


class UserWithRoles(BaseModel):
    """User profile with its role links embedded"""
    id: str = ""
    email: Optional[str] = None
    name: Optional[str] = None
    is_superadmin: bool = False
    user_roles: Optional[List[UserRole]] = None

    @field_validator("is_superadmin", mode="before")
    @classmethod
    def _strict_superadmin_flag(cls, value):
        return value is True


class ComputedPermissions(BaseModel):
    """Permission snapshot built once per profile load; never mutated"""
    model_config = ConfigDict(frozen=True)

    permissions: FrozenSet[str] = frozenset()
    is_superadmin: bool = False
    is_unassigned: bool = True
    user_id: str = ""


class UserPermissionsResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_superadmin: bool
    is_unassigned: bool
    roles: List[str]
    departments: List[str]
    permissions: List[str]


class PermissionSummaryResponse(BaseModel):
    can_manage_roles: bool = False
    can_view_roles: bool = False
    is_admin: bool = False
    roles: List[str] = []
