from supabase import Client
from app.modules.roles.schemas import (
    RoleCreate, RoleUpdate, RoleResponse, parse_permission_map
)
from app.config.permissions_config import Permission
from typing import Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

ROLE_LOOKUP_COLUMNS = "id, name, permissions, department_id, is_system_role"


class RoleService:
    """Role/permission store backed by the Supabase ``roles`` table"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_roles_by_ids(self, role_ids: List[str]) -> List[RoleResponse]:
        """Live read of the permission maps and scoping of the given roles.

        Errors propagate to the caller; the permission checker turns them into a denial.
        """
        if not role_ids:
            return []
        result = self.supabase.table("roles")\
            .select(ROLE_LOOKUP_COLUMNS)\
            .in_("id", role_ids)\
            .execute()
        return [RoleResponse(**role) for role in (result.data or [])]

    def create_role(self, role_data: RoleCreate) -> RoleResponse:
        """Create a new role"""
        try:
            result = self.supabase.table("roles").insert({
                "name": role_data.name,
                "description": role_data.description,
                "department_id": role_data.department_id,
                "permissions": {p.value: granted for p, granted in role_data.permissions.items()},
                "hierarchy_level": role_data.hierarchy_level,
                "display_order": role_data.display_order,
                "is_system_role": False
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create role")

            logger.info(f"Created role {result.data[0]['id']} ({role_data.name})")
            return RoleResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_role_by_id(self, role_id: str) -> RoleResponse:
        """Get role by ID"""
        try:
            result = self.supabase.table("roles")\
                .select("*")\
                .eq("id", role_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Role not found")

            return RoleResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_role(self, role_id: str, role_data: RoleUpdate) -> RoleResponse:
        """Update role"""
        try:
            update_data = {}
            if role_data.name:
                update_data["name"] = role_data.name
            if role_data.description is not None:
                update_data["description"] = role_data.description
            # An explicit null clears the department scope
            if "department_id" in role_data.model_fields_set:
                update_data["department_id"] = role_data.department_id
            if role_data.hierarchy_level is not None:
                update_data["hierarchy_level"] = role_data.hierarchy_level
            if role_data.display_order is not None:
                update_data["display_order"] = role_data.display_order

            if not update_data:
                return self.get_role_by_id(role_id)

            result = self.supabase.table("roles")\
                .update(update_data)\
                .eq("id", role_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Role not found")

            return RoleResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_roles(
        self,
        department_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[RoleResponse]:
        """List roles in display order, optionally only those scoped to a department"""
        try:
            query = self.supabase.table("roles").select("*")
            if department_id:
                query = query.eq("department_id", department_id)
            result = query.order("display_order")\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [RoleResponse(**role) for role in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_role(self, role_id: str) -> bool:
        """Delete role; system roles are protected"""
        role = self.get_role_by_id(role_id)
        if role.is_system_role:
            raise HTTPException(status_code=400, detail="System roles cannot be deleted")
        try:
            # Remove user links first
            self.supabase.table("user_roles")\
                .delete()\
                .eq("role_id", role_id)\
                .execute()

            result = self.supabase.table("roles")\
                .delete()\
                .eq("id", role_id)\
                .execute()

            logger.info(f"Deleted role {role_id} ({role.name})")
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_role_permissions(self, role_id: str) -> List[Permission]:
        """Get the catalog permissions a role grants"""
        role = self.get_role_by_id(role_id)
        return [p for p, granted in role.permissions.items() if granted]

    def update_role_permissions(self, role_id: str, permissions: Dict[Permission, bool]) -> RoleResponse:
        """Replace the permission map of a role"""
        try:
            stored = {p.value: granted for p, granted in parse_permission_map(permissions).items()}
            result = self.supabase.table("roles")\
                .update({"permissions": stored})\
                .eq("id", role_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Role not found")

            logger.info(f"Updated permissions of role {role_id}: {sum(stored.values())} granted")
            return RoleResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
