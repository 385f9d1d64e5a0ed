"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config.permissions_config import Permission
from app.core.permission_checker import check_permission
from app.core.permission_utils import compute_user_permissions
from app.database.supabase_client import get_supabase, get_optional_supabase
from app.modules.auth.service import AuthService
from app.modules.roles.service import RoleService
from app.modules.users.schemas import ComputedPermissions, UserWithRoles
from app.modules.users.service import UserService
from supabase import Client
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (profile, computed permissions)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


def get_role_service(supabase: Client = Depends(get_supabase)) -> RoleService:
    return RoleService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    return auth_service.get_current_user(token)


def _load_profile(request: Request, user_data: dict, user_service: UserService) -> UserWithRoles:
    cache = _get_request_cache(request)
    if "profile" not in cache:
        cache["profile"] = user_service.get_user_with_roles(
            user_data["id"], app_metadata=user_data.get("app_metadata")
        )
    return cache["profile"]


def get_current_user_profile(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service)
) -> UserWithRoles:
    """Profile of the authenticated user with roles embedded, loaded once per request"""
    return _load_profile(request, user_data, user_service)


def get_optional_user_profile(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    supabase: Optional[Client] = Depends(get_optional_supabase)
) -> Optional[UserWithRoles]:
    """Like get_current_user_profile, but None instead of 401/404 for anonymous callers"""
    if credentials is None or supabase is None:
        return None
    try:
        user_data = AuthService(supabase).get_current_user(credentials.credentials)
        return _load_profile(request, user_data, UserService(supabase))
    except HTTPException as e:
        logger.debug(f"No profile for request: {e.detail}")
        return None


def get_computed_permissions(
    request: Request,
    profile: UserWithRoles = Depends(get_current_user_profile)
) -> ComputedPermissions:
    """Permission snapshot for the request; computed once"""
    cache = _get_request_cache(request)
    if "computed_permissions" not in cache:
        cache["computed_permissions"] = compute_user_permissions(profile)
    return cache["computed_permissions"]


def require_permission(required_permission: Permission):
    """Factory function to create permission check dependency"""
    async def check_required_permission(
        profile: UserWithRoles = Depends(get_current_user_profile),
        store: RoleService = Depends(get_role_service)
    ) -> UserWithRoles:
        """Dependency to check if user has required permission (live role data)"""
        if not await check_permission(profile, required_permission, store=store):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission.value}"
            )
        return profile
    return check_required_permission
