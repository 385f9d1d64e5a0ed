"""
Fast synchronous permission checks

Permissions are computed from the roles already embedded in a user profile,
so no database call is made. Use these for UI gating and anywhere a cached
answer is acceptable. Authorization of state-changing operations goes
through app.core.permission_checker instead, which reads role data live.
"""

from typing import Any, Iterable, List, Optional, Union
from pydantic import ValidationError
from app.config.permissions_config import Permission, get_all_permissions, to_permission
from app.modules.users.schemas import UserWithRoles, ComputedPermissions
import logging

logger = logging.getLogger(__name__)

PermissionKey = Union[Permission, str]

UNASSIGNED_ROLE_NAMES = ("unassigned", "no assigned role")


def coerce_profile(profile: Any) -> Optional[UserWithRoles]:
    """Accept a profile model or a raw profile row; anything unusable becomes None"""
    if profile is None or isinstance(profile, UserWithRoles):
        return profile
    if isinstance(profile, dict):
        try:
            return UserWithRoles.model_validate(profile)
        except ValidationError as e:
            logger.warning(f"Malformed user profile ignored: {e.error_count()} validation error(s)")
            return None
    return None


def is_superadmin(profile: Any) -> bool:
    """Superadmin flag on the profile, or a system role named Superadmin"""
    profile = coerce_profile(profile)
    if profile is None:
        return False
    if profile.is_superadmin:
        return True
    if not profile.user_roles:
        return False
    return any(
        ur.roles is not None
        and ur.roles.is_system_role
        and (ur.roles.name or "").lower() == "superadmin"
        for ur in profile.user_roles
    )


def is_unassigned(profile: Any) -> bool:
    """No roles, or only the Unassigned system role"""
    profile = coerce_profile(profile)
    if profile is None or not profile.user_roles:
        return True
    if len(profile.user_roles) != 1:
        return False

    role = profile.user_roles[0].roles
    if role is None:
        return True
    name = (role.name or "").lower()
    return role.is_system_role and (
        name in UNASSIGNED_ROLE_NAMES or "unassigned" in name
    )


def compute_user_permissions(profile: Any) -> ComputedPermissions:
    """Compute the permission set of a profile; call once per profile load"""
    profile = coerce_profile(profile)
    if profile is None:
        return ComputedPermissions()

    superadmin = is_superadmin(profile)
    unassigned = is_unassigned(profile)

    if superadmin:
        return ComputedPermissions(
            permissions=frozenset(p.value for p in get_all_permissions()),
            is_superadmin=True,
            is_unassigned=unassigned,
            user_id=profile.id,
        )

    granted = set()
    for user_role in profile.user_roles or []:
        if user_role.roles is None:
            continue
        for key, value in user_role.roles.permissions.items():
            if value is True:
                granted.add(key)

    return ComputedPermissions(
        permissions=frozenset(granted),
        is_superadmin=False,
        is_unassigned=unassigned,
        user_id=profile.id,
    )


def _key(permission: PermissionKey) -> Optional[str]:
    resolved = to_permission(permission)
    return resolved.value if resolved is not None else None


def has_permission(computed: ComputedPermissions, permission: PermissionKey) -> bool:
    if computed.is_superadmin:
        return True
    key = _key(permission)
    return key is not None and key in computed.permissions


def has_any_permission(computed: ComputedPermissions, permissions: Iterable[PermissionKey]) -> bool:
    if computed.is_superadmin:
        return True
    return any(has_permission(computed, p) for p in permissions)


def has_all_permissions(computed: ComputedPermissions, permissions: Iterable[PermissionKey]) -> bool:
    if computed.is_superadmin:
        return True
    return all(has_permission(computed, p) for p in permissions)


def get_all_user_permissions(computed: ComputedPermissions) -> List[Permission]:
    """Valid catalog permissions of the snapshot, unknown keys filtered out"""
    if computed.is_superadmin:
        return get_all_permissions()
    return [p for p in get_all_permissions() if p.value in computed.permissions]


# Convenience wrappers: compute and check in one call. For several checks on
# the same profile, compute once and use the functions above.

def has_permission_direct(profile: Any, permission: PermissionKey) -> bool:
    return has_permission(compute_user_permissions(profile), permission)


def has_any_permission_direct(profile: Any, permissions: Iterable[PermissionKey]) -> bool:
    return has_any_permission(compute_user_permissions(profile), permissions)


def has_all_permissions_direct(profile: Any, permissions: Iterable[PermissionKey]) -> bool:
    return has_all_permissions(compute_user_permissions(profile), permissions)


# Role information helpers

def get_user_role_names(profile: Any) -> List[str]:
    profile = coerce_profile(profile)
    if profile is None or not profile.user_roles:
        return []
    return [ur.roles.name for ur in profile.user_roles if ur.roles is not None and ur.roles.name]


def get_user_department_ids(profile: Any) -> List[str]:
    profile = coerce_profile(profile)
    if profile is None or not profile.user_roles:
        return []
    ids = []
    for ur in profile.user_roles:
        department_id = ur.roles.scoped_department_id if ur.roles is not None else None
        if department_id and department_id not in ids:
            ids.append(department_id)
    return ids


def get_user_department_names(profile: Any) -> List[str]:
    profile = coerce_profile(profile)
    if profile is None or not profile.user_roles:
        return []
    names = []
    for ur in profile.user_roles:
        if ur.roles is not None and ur.roles.departments is not None and ur.roles.departments.name:
            if ur.roles.departments.name not in names:
                names.append(ur.roles.departments.name)
    return names


def get_primary_role(profile: Any) -> Optional[str]:
    """First non-system role, falling back to the first role"""
    profile = coerce_profile(profile)
    if profile is None or not profile.user_roles:
        return None
    roles = [ur.roles for ur in profile.user_roles if ur.roles is not None]
    if not roles:
        return None
    for role in roles:
        if not role.is_system_role:
            return role.name
    return roles[0].name


def get_primary_department(profile: Any) -> Optional[str]:
    profile = coerce_profile(profile)
    if profile is None or not profile.user_roles:
        return None
    roles = [ur.roles for ur in profile.user_roles if ur.roles is not None]
    for role in roles:
        if not role.is_system_role and role.departments is not None and role.departments.name:
            return role.departments.name
    if roles and roles[0].departments is not None:
        return roles[0].departments.name
    return None


def has_any_role_assigned(profile: Any) -> bool:
    return not is_unassigned(profile)
