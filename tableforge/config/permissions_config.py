"""
Permissions and Groups Configuration
This config defines the table permission matrix and the default user groups.
Used by the seed script to populate/update permissions and groups.
"""

# Resources and their actions; permission slugs are ACTION_RESOURCE
RESOURCES = {
    "table": {
        "actions": ["view", "create", "update", "remove"],
        "description": "Table definitions"
    },
    "field": {
        "actions": ["view", "create", "update", "remove"],
        "description": "Fields of a table"
    },
    "row": {
        "actions": ["view", "create", "update", "remove"],
        "description": "Records stored in a table"
    }
}

# Permission descriptions that differ from the generated default
SPECIFIC_DESCRIPTIONS = {
    "CREATE_TABLE": "Create new tables",
    "CREATE_ROW": "Add records to tables the user can see",
    "REMOVE_ROW": "Send records to trash",
    "REMOVE_FIELD": "Send fields to trash",
    "REMOVE_TABLE": "Send tables to trash or delete them"
}

# Default groups; "*" grants every permission, "exclude" removes some of them
GROUPS = {
    "MASTER": {
        "name": "Master",
        "permissions": "*",
        "description": "Unrestricted access to every table"
    },
    "ADMINISTRATOR": {
        "name": "Administrator",
        "permissions": "*",
        "description": "Platform administrators"
    },
    "MANAGER": {
        "name": "Manager",
        "permissions": "*",
        "description": "Creates and manages their own tables"
    },
    "REGISTERED": {
        "name": "Registered",
        "permissions": "*",
        "exclude": ["CREATE_TABLE"],
        "description": "Registered users; cannot create tables"
    }
}


def get_permission_matrix():
    """
    Returns a dictionary with all permissions and the default groups
    Format: {
        "permissions": [
            {"slug": "VIEW_TABLE", "name": "View table", "description": "..."},
            ...
        ],
        "groups": [
            {"slug": "MASTER", "name": "Master", "description": "...", "permissions": ["CREATE_FIELD", ...]},
            ...
        ]
    }
    """
    permissions = []
    groups = []

    for resource, config in RESOURCES.items():
        for action in config["actions"]:
            slug = f"{action}_{resource}".upper()
            permissions.append({
                "slug": slug,
                "name": f"{action.capitalize()} {resource}",
                "description": SPECIFIC_DESCRIPTIONS.get(slug, f"{action.capitalize()} {config['description'].lower()}")
            })

    all_slugs = [p["slug"] for p in permissions]
    for slug, config in GROUPS.items():
        granted = all_slugs if config["permissions"] == "*" else config["permissions"]
        excluded = set(config.get("exclude", []))
        groups.append({
            "slug": slug,
            "name": config["name"],
            "description": config["description"],
            "permissions": sorted(p for p in granted if p not in excluded)
        })

    return {
        "permissions": permissions,
        "groups": groups
    }


# Export the matrix for use in seed scripts
PERMISSION_MATRIX = get_permission_matrix()
