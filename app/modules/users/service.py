from supabase import Client
from app.modules.users.schemas import UserWithRoles
from typing import Any, Dict, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PROFILE_WITH_ROLES = (
    "id, email, name, is_superadmin, "
    "user_roles(id, user_id, role_id, "
    "roles(id, name, permissions, is_system_role, department_id, departments(id, name)))"
)


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_with_roles(
        self,
        user_id: str,
        app_metadata: Optional[Dict[str, Any]] = None
    ) -> UserWithRoles:
        """Load a user profile with its roles embedded"""
        try:
            result = self.supabase.table("user_profiles")\
                .select(PROFILE_WITH_ROLES)\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error loading profile for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load user profile")

        if not result.data:
            raise HTTPException(status_code=404, detail="User profile not found")

        row = dict(result.data[0])
        if row.get("user_roles") is None:
            row["user_roles"] = []
        if (app_metadata or {}).get("type") == "super_user":
            row["is_superadmin"] = True
        return UserWithRoles(**row)
