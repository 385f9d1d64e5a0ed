"""
Permission Catalog
This config defines every permission a role can grant, grouped by category.
Base permissions are scoped to the entities a user is related to; override
permissions grant the same capability organization-wide.
Used by the permission engine, the role admin API and the maintenance scripts.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Optional, Union


class Permission(str, Enum):
    # Role management
    MANAGE_USER_ROLES = "manage_user_roles"
    MANAGE_USERS = "manage_users"

    # Departments
    MANAGE_DEPARTMENTS = "manage_departments"
    MANAGE_USERS_IN_DEPARTMENTS = "manage_users_in_departments"
    VIEW_DEPARTMENTS = "view_departments"
    VIEW_ALL_DEPARTMENTS = "view_all_departments"

    # Accounts
    MANAGE_ACCOUNTS = "manage_accounts"
    MANAGE_USERS_IN_ACCOUNTS = "manage_users_in_accounts"
    VIEW_ACCOUNTS = "view_accounts"
    VIEW_ALL_ACCOUNTS = "view_all_accounts"

    # Projects
    MANAGE_PROJECTS = "manage_projects"
    VIEW_PROJECTS = "view_projects"
    VIEW_ALL_PROJECTS = "view_all_projects"
    MANAGE_ALL_PROJECTS = "manage_all_projects"

    # Project updates
    MANAGE_UPDATES = "manage_updates"
    VIEW_UPDATES = "view_updates"
    VIEW_ALL_UPDATES = "view_all_updates"

    # Project issues
    MANAGE_ISSUES = "manage_issues"
    VIEW_ISSUES = "view_issues"

    # Newsletters
    MANAGE_NEWSLETTERS = "manage_newsletters"
    VIEW_NEWSLETTERS = "view_newsletters"

    # Analytics
    VIEW_ALL_DEPARTMENT_ANALYTICS = "view_all_department_analytics"
    VIEW_ALL_ACCOUNT_ANALYTICS = "view_all_account_analytics"
    VIEW_ALL_ANALYTICS = "view_all_analytics"

    # Capacity & time tracking
    EDIT_OWN_AVAILABILITY = "edit_own_availability"
    VIEW_TEAM_CAPACITY = "view_team_capacity"
    VIEW_ALL_CAPACITY = "view_all_capacity"
    MANAGE_TIME = "manage_time"
    VIEW_TIME_ENTRIES = "view_time_entries"
    EDIT_TIME_ENTRIES = "edit_time_entries"
    VIEW_ALL_TIME_ENTRIES = "view_all_time_entries"

    # Workflows
    MANAGE_WORKFLOWS = "manage_workflows"
    EXECUTE_WORKFLOWS = "execute_workflows"
    EXECUTE_ANY_WORKFLOW = "execute_any_workflow"
    SKIP_WORKFLOW_NODES = "skip_workflow_nodes"
    MANAGE_ALL_WORKFLOWS = "manage_all_workflows"

    # Client portal
    MANAGE_CLIENT_INVITES = "manage_client_invites"


# Category display order for role-editing screens
CATEGORIES = [
    "Role Management",
    "Department Management",
    "Account Management",
    "Project Management",
    "Project Updates",
    "Project Issues",
    "Newsletters",
    "Analytics",
    "Capacity & Time",
    "Workflows",
    "Client Portal",
]

_DEFINITIONS = {
    Permission.MANAGE_USER_ROLES: {
        "name": "Manage User Roles",
        "description": "Create, edit and delete roles, assign and remove users, approve registrations",
        "category": "Role Management",
    },
    Permission.MANAGE_USERS: {
        "name": "Manage Users",
        "description": "View, edit and delete users",
        "category": "Role Management",
    },
    Permission.MANAGE_DEPARTMENTS: {
        "name": "Manage Departments",
        "description": "Create, edit and delete departments",
        "category": "Department Management",
    },
    Permission.MANAGE_USERS_IN_DEPARTMENTS: {
        "name": "Manage Department Users",
        "description": "Assign and remove users from departments",
        "category": "Department Management",
    },
    Permission.VIEW_DEPARTMENTS: {
        "name": "View Departments",
        "description": "View departments the user belongs to",
        "category": "Department Management",
    },
    Permission.VIEW_ALL_DEPARTMENTS: {
        "name": "View All Departments",
        "description": "View all departments across the organization (override)",
        "category": "Department Management",
        "is_override": True,
    },
    Permission.MANAGE_ACCOUNTS: {
        "name": "Manage Accounts",
        "description": "Create, edit and delete client accounts",
        "category": "Account Management",
    },
    Permission.MANAGE_USERS_IN_ACCOUNTS: {
        "name": "Manage Account Users",
        "description": "Assign and remove users from accounts",
        "category": "Account Management",
    },
    Permission.VIEW_ACCOUNTS: {
        "name": "View Accounts",
        "description": "View accounts the user has access to",
        "category": "Account Management",
    },
    Permission.VIEW_ALL_ACCOUNTS: {
        "name": "View All Accounts",
        "description": "View all accounts across the organization (override)",
        "category": "Account Management",
        "is_override": True,
    },
    Permission.MANAGE_PROJECTS: {
        "name": "Manage Projects",
        "description": "Create, edit and delete projects the user is assigned to",
        "category": "Project Management",
    },
    Permission.VIEW_PROJECTS: {
        "name": "View Projects",
        "description": "View projects the user is assigned to",
        "category": "Project Management",
    },
    Permission.VIEW_ALL_PROJECTS: {
        "name": "View All Projects",
        "description": "View all projects outside of assigned ones (override)",
        "category": "Project Management",
        "is_override": True,
    },
    Permission.MANAGE_ALL_PROJECTS: {
        "name": "Manage All Projects",
        "description": "Create, edit and delete any project regardless of assignment (override)",
        "category": "Project Management",
        "is_override": True,
    },
    Permission.MANAGE_UPDATES: {
        "name": "Manage Project Updates",
        "description": "Create, edit and delete project status updates",
        "category": "Project Updates",
    },
    Permission.VIEW_UPDATES: {
        "name": "View Project Updates",
        "description": "View updates for assigned projects, accounts and departments",
        "category": "Project Updates",
    },
    Permission.VIEW_ALL_UPDATES: {
        "name": "View All Updates",
        "description": "View all project updates organization-wide (override)",
        "category": "Project Updates",
        "is_override": True,
    },
    Permission.MANAGE_ISSUES: {
        "name": "Manage Project Issues",
        "description": "Create, edit and delete project issues and blockers",
        "category": "Project Issues",
    },
    Permission.VIEW_ISSUES: {
        "name": "View Project Issues",
        "description": "View project issues and blockers",
        "category": "Project Issues",
    },
    Permission.MANAGE_NEWSLETTERS: {
        "name": "Manage Newsletters",
        "description": "Create, edit and delete company newsletters",
        "category": "Newsletters",
    },
    Permission.VIEW_NEWSLETTERS: {
        "name": "View Newsletters",
        "description": "View company newsletters on the welcome page",
        "category": "Newsletters",
    },
    Permission.VIEW_ALL_DEPARTMENT_ANALYTICS: {
        "name": "View All Department Analytics",
        "description": "View analytics for every project and user in a department",
        "category": "Analytics",
        "is_override": True,
    },
    Permission.VIEW_ALL_ACCOUNT_ANALYTICS: {
        "name": "View All Account Analytics",
        "description": "View analytics for every project in an account",
        "category": "Analytics",
        "is_override": True,
    },
    Permission.VIEW_ALL_ANALYTICS: {
        "name": "View All Analytics",
        "description": "View organization-wide analytics (override)",
        "category": "Analytics",
        "is_override": True,
    },
    Permission.EDIT_OWN_AVAILABILITY: {
        "name": "Edit Own Availability",
        "description": "Set and manage personal weekly work availability",
        "category": "Capacity & Time",
    },
    Permission.VIEW_TEAM_CAPACITY: {
        "name": "View Team Capacity",
        "description": "View capacity metrics for team and department members",
        "category": "Capacity & Time",
    },
    Permission.VIEW_ALL_CAPACITY: {
        "name": "View All Capacity",
        "description": "View organization-wide capacity metrics (override)",
        "category": "Capacity & Time",
        "is_override": True,
    },
    Permission.MANAGE_TIME: {
        "name": "Manage Time",
        "description": "Log and edit own time entries",
        "category": "Capacity & Time",
    },
    Permission.VIEW_TIME_ENTRIES: {
        "name": "View Time Entries",
        "description": "View own or team time entries",
        "category": "Capacity & Time",
    },
    Permission.EDIT_TIME_ENTRIES: {
        "name": "Edit Time Entries",
        "description": "Edit own or team time entries",
        "category": "Capacity & Time",
    },
    Permission.VIEW_ALL_TIME_ENTRIES: {
        "name": "View All Time Entries",
        "description": "View all time entries organization-wide (override)",
        "category": "Capacity & Time",
        "is_override": True,
    },
    Permission.MANAGE_WORKFLOWS: {
        "name": "Manage Workflows",
        "description": "Create, edit and delete workflow templates",
        "category": "Workflows",
    },
    Permission.EXECUTE_WORKFLOWS: {
        "name": "Execute Workflows",
        "description": "Hand off work to the next nodes of workflows the user is assigned to",
        "category": "Workflows",
    },
    Permission.EXECUTE_ANY_WORKFLOW: {
        "name": "Execute Any Workflow",
        "description": "Hand off any workflow without node assignment (override)",
        "category": "Workflows",
        "is_override": True,
    },
    Permission.SKIP_WORKFLOW_NODES: {
        "name": "Skip Workflow Nodes",
        "description": "Hand off work out of order",
        "category": "Workflows",
    },
    Permission.MANAGE_ALL_WORKFLOWS: {
        "name": "Manage All Workflows",
        "description": "Create, edit and delete any workflow organization-wide (override)",
        "category": "Workflows",
        "is_override": True,
    },
    Permission.MANAGE_CLIENT_INVITES: {
        "name": "Manage Client Invitations",
        "description": "Send client invitations and view client feedback",
        "category": "Client Portal",
    },
}

PERMISSION_DEFINITIONS = MappingProxyType({
    permission: MappingProxyType({
        "name": definition["name"],
        "description": definition["description"],
        "category": definition["category"],
        "is_override": definition.get("is_override", False),
    })
    for permission, definition in _DEFINITIONS.items()
})

OVERRIDE_PERMISSIONS = frozenset(
    p for p, d in PERMISSION_DEFINITIONS.items() if d["is_override"]
)

# Base permission -> override granting the same capability organization-wide
OVERRIDE_FOR = MappingProxyType({
    Permission.VIEW_PROJECTS: Permission.VIEW_ALL_PROJECTS,
    Permission.MANAGE_PROJECTS: Permission.MANAGE_ALL_PROJECTS,
    Permission.VIEW_ACCOUNTS: Permission.VIEW_ALL_ACCOUNTS,
    Permission.VIEW_DEPARTMENTS: Permission.VIEW_ALL_DEPARTMENTS,
    Permission.VIEW_UPDATES: Permission.VIEW_ALL_UPDATES,
    Permission.VIEW_TIME_ENTRIES: Permission.VIEW_ALL_TIME_ENTRIES,
    Permission.VIEW_TEAM_CAPACITY: Permission.VIEW_ALL_CAPACITY,
    Permission.EXECUTE_WORKFLOWS: Permission.EXECUTE_ANY_WORKFLOW,
    Permission.MANAGE_WORKFLOWS: Permission.MANAGE_ALL_WORKFLOWS,
})

# Keys from earlier permission schemes that may still sit in stored role maps
DEPRECATED_PERMISSION_KEYS = frozenset({
    "CREATE_PROJECT",
    "EDIT_PROJECT",
    "DELETE_PROJECT",
    "CREATE_ACCOUNT",
    "EDIT_ACCOUNT",
    "DELETE_ACCOUNT",
    "CREATE_DEPARTMENT",
    "EDIT_DEPARTMENT",
    "DELETE_DEPARTMENT",
    "LOG_TIME",
    "EDIT_OWN_TIME_ENTRIES",
    "EDIT_TEAM_TIME_ENTRIES",
    "VIEW_TEAM_TIME_ENTRIES",
    "VIEW_WORKFLOWS",
    "VIEW_FORMS",
    "VIEW_CLIENT_FEEDBACK",
    "VIEW_ALL_PROJECT_UPDATES",
    "VIEW_ASSIGNED_PROJECTS_UPDATES",
    "VIEW_DEPARTMENT_PROJECTS_UPDATES",
    "VIEW_ACCOUNT_PROJECTS_UPDATES",
})

_BY_VALUE = {p.value: p for p in Permission}


def to_permission(key: Union[str, Permission, None]) -> Optional[Permission]:
    """Resolve a raw key to a catalog permission; unknown keys give None"""
    if isinstance(key, Permission):
        return key
    if not isinstance(key, str):
        return None
    return _BY_VALUE.get(key)


def is_valid_permission(key: Union[str, Permission, None]) -> bool:
    return to_permission(key) is not None


def is_override_permission(key: Union[str, Permission, None]) -> bool:
    return to_permission(key) in OVERRIDE_PERMISSIONS


def get_all_permissions() -> List[Permission]:
    return list(Permission)


def get_permission_definition(key: Union[str, Permission]) -> Optional[MappingProxyType]:
    permission = to_permission(key)
    if permission is None:
        return None
    return PERMISSION_DEFINITIONS[permission]


def get_permissions_by_category() -> Dict[str, List[Permission]]:
    """Group permissions by category, in display order"""
    grouped: Dict[str, List[Permission]] = {category: [] for category in CATEGORIES}
    for permission in Permission:
        grouped[PERMISSION_DEFINITIONS[permission]["category"]].append(permission)
    return grouped


def get_permission_catalog():
    """
    Returns the catalog in a serialisable form
    Format: {
        "categories": [
            {
                "name": "Project Management",
                "permissions": [
                    {"key": "view_projects", "name": "...", "description": "...", "is_override": False},
                    ...
                ]
            },
            ...
        ]
    }
    """
    categories = []
    for category, permissions in get_permissions_by_category().items():
        categories.append({
            "name": category,
            "permissions": [
                {
                    "key": p.value,
                    "name": PERMISSION_DEFINITIONS[p]["name"],
                    "description": PERMISSION_DEFINITIONS[p]["description"],
                    "is_override": PERMISSION_DEFINITIONS[p]["is_override"],
                }
                for p in permissions
            ]
        })
    return {"categories": categories}
