"""
Validate Permission System Integrity
Checks stored roles against the permission catalog:
- deprecated permission keys still granted
- unknown keys (ignored by the engine, but usually a typo or a removed permission)
- non-boolean values
- missing Superadmin / Unassigned system roles
Exits non-zero when issues are found, so it can gate a deploy.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config.permissions_config import (
    DEPRECATED_PERMISSION_KEYS, PERMISSION_DEFINITIONS, Permission, is_valid_permission
)
from app.database.supabase_client import SupabaseClient
from supabase import Client
from typing import Any, Dict, List
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

REQUIRED_SYSTEM_ROLES = ("superadmin", "unassigned")


def validate_catalog() -> List[str]:
    """Every permission must carry a definition"""
    return [
        f"Missing definition for permission: {p.value}"
        for p in Permission
        if p not in PERMISSION_DEFINITIONS
    ]


def validate_roles(roles: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Return {"issues": [...], "warnings": [...]} for the given role rows"""
    issues: List[str] = []
    warnings: List[str] = []

    if not roles:
        warnings.append("No roles found in database")

    for role in roles:
        name = role.get("name") or role.get("id")
        permissions = role.get("permissions") or {}
        if not isinstance(permissions, dict):
            issues.append(f'Role "{name}" has a non-object permissions column')
            continue

        deprecated = sorted(k for k, v in permissions.items() if k in DEPRECATED_PERMISSION_KEYS and v is True)
        if deprecated:
            issues.append(f'Role "{name}" has deprecated permissions: {", ".join(deprecated)}')

        unknown = sorted(
            k for k in permissions
            if k not in DEPRECATED_PERMISSION_KEYS and not is_valid_permission(k)
        )
        if unknown:
            warnings.append(f'Role "{name}" has unknown permissions: {", ".join(unknown)}')

        non_bool = sorted(k for k, v in permissions.items() if not isinstance(v, bool))
        if non_bool:
            warnings.append(f'Role "{name}" has non-boolean values for: {", ".join(non_bool)}')

    system_names = {
        (role.get("name") or "").lower()
        for role in roles
        if role.get("is_system_role") is True
    }
    for required in REQUIRED_SYSTEM_ROLES:
        if required not in system_names:
            issues.append(f"Missing system role: {required}")

    return {"issues": issues, "warnings": warnings}


def fetch_roles(supabase: Client) -> List[Dict[str, Any]]:
    result = supabase.table("roles")\
        .select("id, name, permissions, is_system_role")\
        .order("name")\
        .execute()
    return result.data or []


def main():
    """Main function to validate the permission system"""
    if not SupabaseClient.is_configured():
        logger.error("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")
        sys.exit(1)

    issues = validate_catalog()
    logger.info(f"Checked {len(Permission)} catalog permissions")

    try:
        roles = fetch_roles(SupabaseClient.get_service_client())
    except Exception as e:
        logger.error(f"Error fetching roles: {e}")
        sys.exit(1)

    report = validate_roles(roles)
    issues.extend(report["issues"])
    for warning in report["warnings"]:
        logger.warning(warning)
    for issue in issues:
        logger.error(issue)

    logger.info(f"Validated {len(roles)} roles: {len(issues)} issue(s), {len(report['warnings'])} warning(s)")
    if issues:
        sys.exit(1)


if __name__ == "__main__":
    main()
