"""
Context-aware permission checks

Answers "does some role held by this user grant this permission", reading
the role permission maps live from the role store so that role edits take
effect without a profile reload. A department context narrows base
permissions to roles scoped to that department; override permissions are
never narrowed.

Every function here is fail-closed: a missing datastore, a lookup error or a
malformed profile resolves to a denial, is logged and is never raised.
Relationship checks against specific projects, accounts and workflow
instances live in app.core.access_control and are layered on top.
"""

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional, Union
from app.config.permissions_config import (
    Permission, get_all_permissions, is_override_permission, to_permission
)
from app.core.permission_utils import PermissionKey, coerce_profile, is_superadmin
from app.database.supabase_client import get_optional_supabase
from app.modules.roles.schemas import PermissionContext, RoleResponse
from app.modules.roles.service import RoleService
from app.modules.users.schemas import UserWithRoles
import logging

logger = logging.getLogger(__name__)

ADMIN_PERMISSIONS = [
    Permission.MANAGE_USERS,
    Permission.MANAGE_USER_ROLES,
    Permission.MANAGE_DEPARTMENTS,
    Permission.MANAGE_ACCOUNTS,
]


def get_role_store() -> Optional[RoleService]:
    """Role store on the default Supabase client, or None when Supabase is not configured"""
    supabase = get_optional_supabase()
    if supabase is None:
        return None
    return RoleService(supabase)


def _coerce_context(context: Union[PermissionContext, Dict[str, Any], None]) -> Optional[PermissionContext]:
    if context is None or isinstance(context, PermissionContext):
        return context
    return PermissionContext(**context)


def _role_ids(profile: UserWithRoles) -> List[str]:
    ids = []
    for ur in profile.user_roles or []:
        role_id = ur.role_id or (ur.roles.id if ur.roles is not None else None)
        if role_id and role_id not in ids:
            ids.append(role_id)
    return ids


def _held_department_id(profile: UserWithRoles, role: RoleResponse) -> Optional[str]:
    """Department the user's own link to ``role`` is scoped to"""
    for ur in profile.user_roles or []:
        linked_id = ur.role_id or (ur.roles.id if ur.roles is not None else None)
        if linked_id != role.id:
            continue
        if role.department_id:
            return role.department_id
        if ur.roles is not None:
            return ur.roles.scoped_department_id
    return None


async def _fetch_roles(store, role_ids: List[str]) -> List[RoleResponse]:
    # Supabase client calls block; keep them off the event loop
    return await asyncio.to_thread(store.get_roles_by_ids, role_ids)


def _log_decision(permission, user_id: str, granted: bool, started: float, reason: str):
    duration_ms = (time.monotonic() - started) * 1000
    logger.debug(
        f"Permission {getattr(permission, 'value', permission)} "
        f"{'granted' if granted else 'denied'} for user {user_id or '-'} "
        f"({reason}, {duration_ms:.1f}ms)"
    )


async def check_permission(
    profile: Any,
    permission: PermissionKey,
    context: Union[PermissionContext, Dict[str, Any], None] = None,
    store: Optional[Any] = None
) -> bool:
    """Check whether any role held by the user grants ``permission``.

    ``store`` is anything with ``get_roles_by_ids(role_ids)``; by default the
    Supabase-backed RoleService.
    """
    started = time.monotonic()
    user_id = ""
    try:
        profile = coerce_profile(profile)
        if profile is None:
            _log_decision(permission, user_id, False, started, "no profile")
            return False
        user_id = profile.id

        # A profile loaded without its roles is unusable, superadmin flag or not
        if profile.user_roles is None:
            _log_decision(permission, user_id, False, started, "no roles loaded")
            return False

        if is_superadmin(profile):
            _log_decision(permission, user_id, True, started, "superadmin")
            return True

        resolved = to_permission(permission)
        if resolved is None:
            _log_decision(permission, user_id, False, started, "unknown permission")
            return False

        role_ids = _role_ids(profile)
        if not role_ids:
            _log_decision(resolved, user_id, False, started, "no role ids")
            return False

        if store is None:
            store = get_role_store()
        if store is None:
            logger.error(f"Role store not available; denying {resolved.value} for user {user_id}")
            return False

        ctx = _coerce_context(context)
        department_id = ctx.department_id if ctx is not None else None
        department_scoped = bool(department_id) and not is_override_permission(resolved)

        roles = await _fetch_roles(store, role_ids)
        for role in roles:
            if not role.grants(resolved):
                continue
            if department_scoped:
                if _held_department_id(profile, role) == department_id:
                    _log_decision(resolved, user_id, True, started, f"role {role.id} in department {department_id}")
                    return True
                continue
            _log_decision(resolved, user_id, True, started, f"role {role.id}")
            return True

        _log_decision(resolved, user_id, False, started, "no granting role")
        return False
    except Exception as e:
        logger.error(
            f"Error checking permission {getattr(permission, 'value', permission)} "
            f"for user {user_id or '-'}: {e}"
        )
        return False


async def check_any_permission(
    profile: Any,
    permissions: Iterable[PermissionKey],
    context: Union[PermissionContext, Dict[str, Any], None] = None,
    store: Optional[Any] = None
) -> bool:
    for permission in permissions:
        if await check_permission(profile, permission, context, store):
            return True
    return False


async def check_all_permissions(
    profile: Any,
    permissions: Iterable[PermissionKey],
    context: Union[PermissionContext, Dict[str, Any], None] = None,
    store: Optional[Any] = None
) -> bool:
    permissions = list(permissions)
    if not permissions:
        return True
    for permission in permissions:
        if not await check_permission(profile, permission, context, store):
            return False
    return True


async def get_user_permissions(profile: Any, store: Optional[Any] = None) -> List[Permission]:
    """Live union of the valid permissions granted by the user's roles"""
    try:
        profile = coerce_profile(profile)
        if profile is None:
            return []
        if profile.user_roles is None:
            return []
        if is_superadmin(profile):
            return get_all_permissions()
        role_ids = _role_ids(profile)
        if not role_ids:
            return []
        if store is None:
            store = get_role_store()
        if store is None:
            logger.error(f"Role store not available; no permissions for user {profile.id}")
            return []
        granted = set()
        for role in await _fetch_roles(store, role_ids):
            granted.update(p for p, value in role.permissions.items() if value)
        return [p for p in get_all_permissions() if p in granted]
    except Exception as e:
        logger.error(f"Error getting user permissions: {e}")
        return []


async def get_role_permissions(role_id: str, store: Optional[Any] = None) -> List[Permission]:
    try:
        if store is None:
            store = get_role_store()
        if store is None:
            return []
        roles = await _fetch_roles(store, [role_id])
        if not roles:
            return []
        return [p for p, value in roles[0].permissions.items() if value]
    except Exception as e:
        logger.error(f"Error getting permissions of role {role_id}: {e}")
        return []


async def update_role_permissions(
    role_id: str,
    permissions: Dict[PermissionKey, bool],
    store: Optional[RoleService] = None
) -> bool:
    """Replace a role's permission map; True on success"""
    try:
        if store is None:
            store = get_role_store()
        if store is None:
            return False
        await asyncio.to_thread(store.update_role_permissions, role_id, permissions)
        return True
    except Exception as e:
        logger.error(f"Error updating permissions of role {role_id}: {e}")
        return False


async def is_admin_level(profile: Any, store: Optional[Any] = None) -> bool:
    """Can reach the admin dashboard: manages users, roles, departments or accounts"""
    if is_superadmin(profile):
        return True
    return await check_any_permission(profile, ADMIN_PERMISSIONS, store=store)
