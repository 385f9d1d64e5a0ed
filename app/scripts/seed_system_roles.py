"""
Seed System Roles Script
Creates or refreshes the system roles every deployment relies on:
Superadmin (bypasses every check) and Unassigned (default for new users, grants nothing).
Can be run manually or as part of a deploy job.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import SupabaseClient
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SYSTEM_ROLES = [
    {
        "name": "Superadmin",
        "description": "Full access to every feature; bypasses all permission checks",
        "permissions": {},
        "display_order": 0,
    },
    {
        "name": "Unassigned",
        "description": "Default role for users awaiting a role assignment",
        "permissions": {},
        "display_order": 999,
    },
]


def seed_system_roles(supabase: Client) -> int:
    """Create missing system roles and refresh existing ones; returns roles processed"""
    logger.info("Seeding system roles...")
    created_count = 0
    updated_count = 0

    for role in SYSTEM_ROLES:
        try:
            existing = supabase.table("roles")\
                .select("id")\
                .eq("name", role["name"])\
                .eq("is_system_role", True)\
                .execute()

            if existing.data:
                # Permission maps of system roles are left as administrators set them
                supabase.table("roles")\
                    .update({
                        "description": role["description"],
                        "display_order": role["display_order"]
                    })\
                    .eq("id", existing.data[0]["id"])\
                    .execute()
                updated_count += 1
                logger.debug(f"Updated system role: {role['name']}")
            else:
                supabase.table("roles").insert({
                    "name": role["name"],
                    "description": role["description"],
                    "permissions": role["permissions"],
                    "display_order": role["display_order"],
                    "is_system_role": True
                }).execute()
                created_count += 1
                logger.debug(f"Created system role: {role['name']}")
        except Exception as e:
            logger.error(f"Error processing system role {role['name']}: {e}")

    logger.info(f"System roles seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def main():
    """Main function to seed system roles"""
    try:
        if not SupabaseClient.is_configured():
            logger.error("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")
            sys.exit(1)
        seed_system_roles(SupabaseClient.get_service_client())
        logger.info("Seeding completed successfully!")
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
