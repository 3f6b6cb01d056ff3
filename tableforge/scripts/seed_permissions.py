"""
Seed Permissions and Groups Script
This script populates the permissions and user_groups tables using the config.
Can be run manually or as part of a deployment job.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from tableforge.config.permissions_config import PERMISSION_MATRIX
from tableforge.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_permissions(supabase: Client):
    """Seed permissions from config"""
    logger.info("Seeding permissions...")

    permissions = PERMISSION_MATRIX["permissions"]
    created_count = 0
    updated_count = 0

    for perm in permissions:
        try:
            existing = supabase.table("permissions")\
                .select("id")\
                .eq("slug", perm["slug"])\
                .execute()

            if existing.data:
                supabase.table("permissions")\
                    .update({
                        "name": perm["name"],
                        "description": perm["description"]
                    })\
                    .eq("slug", perm["slug"])\
                    .execute()
                updated_count += 1
                logger.debug(f"Updated permission: {perm['slug']}")
            else:
                supabase.table("permissions").insert({
                    "slug": perm["slug"],
                    "name": perm["name"],
                    "description": perm["description"]
                }).execute()
                created_count += 1
                logger.debug(f"Created permission: {perm['slug']}")
        except Exception as e:
            logger.error(f"Error processing permission {perm['slug']}: {e}")

    logger.info(f"Permissions seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def seed_groups(supabase: Client):
    """Seed default user groups from config"""
    logger.info("Seeding groups...")

    groups = PERMISSION_MATRIX["groups"]
    created_count = 0
    updated_count = 0

    for group in groups:
        try:
            existing = supabase.table("user_groups")\
                .select("id")\
                .eq("slug", group["slug"])\
                .execute()

            if existing.data:
                supabase.table("user_groups")\
                    .update({
                        "name": group["name"],
                        "description": group["description"]
                    })\
                    .eq("slug", group["slug"])\
                    .execute()
                group_id = existing.data[0]["id"]
                updated_count += 1
                logger.debug(f"Updated group: {group['slug']}")
            else:
                result = supabase.table("user_groups").insert({
                    "slug": group["slug"],
                    "name": group["name"],
                    "description": group["description"]
                }).execute()
                group_id = result.data[0]["id"]
                created_count += 1
                logger.debug(f"Created group: {group['slug']}")

            assign_permissions_to_group(supabase, group_id, group["slug"], group["permissions"])

        except Exception as e:
            logger.error(f"Error processing group {group['slug']}: {e}")

    logger.info(f"Groups seeded: {created_count} created, {updated_count} updated")
    return created_count + updated_count


def assign_permissions_to_group(supabase: Client, group_id: str, group_slug: str, permission_slugs: list):
    """Make the group's permissions match the config"""
    try:
        permission_result = supabase.table("permissions")\
            .select("id")\
            .in_("slug", permission_slugs)\
            .execute()

        if not permission_result.data:
            logger.warning(f"No permissions found for group {group_slug}")
            return

        permission_ids = [p["id"] for p in permission_result.data]

        existing_result = supabase.table("group_permissions")\
            .select("permission_id")\
            .eq("group_id", group_id)\
            .execute()

        existing_permission_ids = {p["permission_id"] for p in existing_result.data} if existing_result.data else set()

        new_assignments = [
            {"group_id": group_id, "permission_id": pid}
            for pid in permission_ids
            if pid not in existing_permission_ids
        ]

        if new_assignments:
            supabase.table("group_permissions").insert(new_assignments).execute()
            logger.debug(f"Assigned {len(new_assignments)} permissions to group {group_slug}")

        permissions_to_remove = existing_permission_ids - set(permission_ids)
        if permissions_to_remove:
            supabase.table("group_permissions")\
                .delete()\
                .eq("group_id", group_id)\
                .in_("permission_id", list(permissions_to_remove))\
                .execute()
            logger.debug(f"Removed {len(permissions_to_remove)} permissions from group {group_slug}")

    except Exception as e:
        logger.error(f"Error assigning permissions to group {group_slug}: {e}")


def main():
    """Seed permissions, then the groups that reference them"""
    try:
        supabase = get_service_supabase()

        logger.info("Starting permissions and groups seeding...")

        perm_count = seed_permissions(supabase)
        group_count = seed_groups(supabase)

        logger.info("Seeding completed successfully!")
        logger.info(f"Total: {perm_count} permissions, {group_count} groups processed")

    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
