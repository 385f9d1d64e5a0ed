from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from app.config.permissions_config import Permission, to_permission


def parse_permission_map(raw: Any) -> Dict[Permission, bool]:
    """Validate a stored permission map: unknown keys are dropped, non-bool values count as False"""
    if not isinstance(raw, dict):
        return {}
    parsed: Dict[Permission, bool] = {}
    for key, value in raw.items():
        permission = to_permission(key)
        if permission is None:
            continue
        parsed[permission] = value is True
    return parsed


class DepartmentRef(BaseModel):
    id: str
    name: Optional[str] = None


class Role(BaseModel):
    """Role as embedded in a user profile; the permission map is kept as stored"""
    id: Optional[str] = None
    name: Optional[str] = None
    permissions: Dict[str, Any] = {}
    is_system_role: bool = False
    department_id: Optional[str] = None
    departments: Optional[DepartmentRef] = None

    @field_validator("permissions", mode="before")
    @classmethod
    def _permissions_dict(cls, value):
        return value if isinstance(value, dict) else {}

    @field_validator("is_system_role", mode="before")
    @classmethod
    def _strict_system_flag(cls, value):
        return value is True

    @property
    def scoped_department_id(self) -> Optional[str]:
        if self.departments is not None:
            return self.departments.id
        return self.department_id


class PermissionContext(BaseModel):
    """Entity identifiers narrowing a permission check to one instance"""
    user_id: Optional[str] = None
    department_id: Optional[str] = None
    account_id: Optional[str] = None
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    deliverable_id: Optional[str] = None
    workflow_instance_id: Optional[str] = None


class RoleCreate(BaseModel):
    name: str
    description: Optional[str] = None
    department_id: Optional[str] = None
    permissions: Dict[Permission, bool] = {}
    hierarchy_level: Optional[int] = None
    display_order: Optional[int] = None


class RoleUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    department_id: Optional[str] = None
    hierarchy_level: Optional[int] = None
    display_order: Optional[int] = None


class RolePermissionsUpdate(BaseModel):
    permissions: Dict[Permission, bool]


class RoleResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    permissions: Dict[Permission, bool] = {}
    department_id: Optional[str] = None
    is_system_role: bool = False
    hierarchy_level: Optional[int] = None
    display_order: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("permissions", mode="before")
    @classmethod
    def _validate_permissions(cls, value):
        return parse_permission_map(value)

    @field_validator("is_system_role", mode="before")
    @classmethod
    def _strict_system_flag(cls, value):
        return value is True

    def grants(self, permission: Permission) -> bool:
        return self.permissions.get(permission, False)

    class Config:
        from_attributes = True


class PermissionDefinitionResponse(BaseModel):
    key: str
    name: str
    description: str
    is_override: bool


class PermissionCategoryResponse(BaseModel):
    name: str
    permissions: List[PermissionDefinitionResponse]


class PermissionCatalogResponse(BaseModel):
    categories: List[PermissionCategoryResponse]
