"""
Permission catalog and default role grants.

Permissions are grouped by module for display in the settings screen. Route
access is still decided by the role ladder in roles.py; the catalog records
which screens and actions each role is granted, and administrators can edit
those grants per role.
"""


class PermissionModule:
    """Modules permissions are grouped under."""
    SYSTEM = "SYSTEM"
    SALES = "SALES"
    INVENTORY = "INVENTORY"
    FINANCE = "FINANCE"
    HR = "HR"
    REPORTS = "REPORTS"
    OPERATIONS = "OPERATIONS"


# Each permission is defined as: (code, name, description, module)
PERMISSION_DEFINITIONS = [
    # SYSTEM
    ("VIEW_ALL", "View Everything", "Read access to every module", PermissionModule.SYSTEM),
    ("EDIT_ALL", "Edit Everything", "Write access to every module", PermissionModule.SYSTEM),
    ("DELETE_ALL", "Delete Everything", "Delete records in every module", PermissionModule.SYSTEM),
    ("MANAGE_USERS", "Manage Users", "Create, update and deactivate users", PermissionModule.SYSTEM),
    ("MANAGE_SETTINGS", "Manage Settings", "Change company settings, permissions and backups", PermissionModule.SYSTEM),

    # SALES
    ("VIEW_SALES", "View Sales", "View orders and POS transactions", PermissionModule.SALES),
    ("EDIT_SALES", "Edit Sales", "Create orders and ring up POS sales", PermissionModule.SALES),
    ("DELETE_SALES", "Delete Sales", "Delete orders", PermissionModule.SALES),

    # INVENTORY
    ("VIEW_INVENTORY", "View Inventory", "View products, raw materials and stock", PermissionModule.INVENTORY),
    ("EDIT_INVENTORY", "Edit Inventory", "Change products, raw materials and stock", PermissionModule.INVENTORY),
    ("DELETE_INVENTORY", "Delete Inventory", "Delete products and raw materials", PermissionModule.INVENTORY),

    # FINANCE
    ("VIEW_FINANCE", "View Finance", "View accounts, expenses and tax records", PermissionModule.FINANCE),
    ("EDIT_FINANCE", "Edit Finance", "Record expenses and tax filings", PermissionModule.FINANCE),
    ("DELETE_FINANCE", "Delete Finance", "Delete finance records", PermissionModule.FINANCE),

    # HR
    ("VIEW_HR", "View HR", "View employees, attendance, payroll and training", PermissionModule.HR),
    ("EDIT_HR", "Edit HR", "Manage employees, attendance, payroll and training", PermissionModule.HR),
    ("DELETE_HR", "Delete HR", "Delete HR records", PermissionModule.HR),

    # REPORTS
    ("VIEW_REPORTS", "View Reports", "View dashboards and reports", PermissionModule.REPORTS),
    ("EXPORT_REPORTS", "Export Reports", "Download report data", PermissionModule.REPORTS),

    # OPERATIONS
    ("MANAGE_COUNTERS", "Manage Counters", "Deliver packets to counters and manage them", PermissionModule.OPERATIONS),
    ("MANAGE_FRANCHISES", "Manage Franchises", "Create and update franchises", PermissionModule.OPERATIONS),
]

PERMISSION_CODES = [code for code, _, _, _ in PERMISSION_DEFINITIONS]


DEFAULT_ROLE_PERMISSIONS = {
    "SUPER_ADMIN": list(PERMISSION_CODES),
    "ADMIN": [
        "VIEW_SALES", "EDIT_SALES",
        "VIEW_INVENTORY", "EDIT_INVENTORY",
        "VIEW_FINANCE", "EDIT_FINANCE",
        "VIEW_HR", "EDIT_HR",
        "VIEW_REPORTS", "EXPORT_REPORTS",
        "MANAGE_COUNTERS",
    ],
    "MANAGER": [
        "VIEW_SALES", "EDIT_SALES",
        "VIEW_INVENTORY", "EDIT_INVENTORY",
        "VIEW_FINANCE",
        "VIEW_HR",
        "VIEW_REPORTS", "EXPORT_REPORTS",
    ],
    "FRANCHISE_MANAGER": [
        "VIEW_SALES", "EDIT_SALES",
        "VIEW_INVENTORY",
        "VIEW_REPORTS",
        "MANAGE_COUNTERS",
    ],
    "COUNTER_OPERATOR": [
        "VIEW_SALES",
        "VIEW_INVENTORY",
    ],
}

