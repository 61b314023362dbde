"""
Permission constants and role mappings.

WHY: Centralized permission definitions ensure consistency across the application.
Service functions check these codes against the calling Actor's role before
doing any domain work.

DESIGN PRINCIPLES:
- Permissions are granular (one action per permission)
- Categories group related permissions for display
- Three fixed roles: MANAGER > STAFF > VIEWER
- Manager has all permissions
"""

# =============================================================================
# ROLES
# =============================================================================

class Role:
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    VIEWER = "VIEWER"

    ALL = (MANAGER, STAFF, VIEWER)


# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Permission categories for organization."""
    INVENTORY = "INVENTORY"
    CATALOG = "CATALOG"
    STORES = "STORES"
    ALERTS = "ALERTS"
    SYSTEM = "SYSTEM"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    # INVENTORY PERMISSIONS
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View on-hand quantities and movement history",
        PermissionCategory.INVENTORY
    ),
    (
        "RECEIVE_INVENTORY",
        "Receive Inventory",
        "Record RECEIVE movements from vendors",
        PermissionCategory.INVENTORY
    ),
    (
        "TRANSFER_INVENTORY",
        "Transfer Inventory",
        "Move stock between storage, shelves, trucks and stores",
        PermissionCategory.INVENTORY
    ),
    (
        "CONVERT_INVENTORY",
        "Convert Boxes",
        "Open boxes into packs",
        PermissionCategory.INVENTORY
    ),
    (
        "RECORD_SALE",
        "Record Retail Sale",
        "Record retail pack and box sales",
        PermissionCategory.INVENTORY
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Create ADJUSTMENT movements (corrections, shrink, etc.)",
        PermissionCategory.INVENTORY
    ),
    (
        "REVERSE_MOVEMENT",
        "Reverse Movement",
        "Create compensating reversal rows for ledger entries",
        PermissionCategory.INVENTORY
    ),

    # CATALOG PERMISSIONS
    (
        "VIEW_CATALOG",
        "View Catalog",
        "View products, barcodes, locations and vendors",
        PermissionCategory.CATALOG
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create and edit products, pricing, barcodes, locations and vendors",
        PermissionCategory.CATALOG
    ),

    # STORE PERMISSIONS
    (
        "VIEW_STORES",
        "View Stores",
        "View stores, counts, payments and balances",
        PermissionCategory.STORES
    ),
    (
        "MANAGE_STORES",
        "Manage Stores",
        "Create, edit and deactivate stores; set price overrides",
        PermissionCategory.STORES
    ),
    (
        "SUBMIT_STORE_COUNT",
        "Submit Store Count",
        "Record physical counts at partner stores",
        PermissionCategory.STORES
    ),
    (
        "RECORD_PAYMENT",
        "Record Payment",
        "Record money collected from stores",
        PermissionCategory.STORES
    ),

    # ALERT PERMISSIONS
    (
        "VIEW_ALERTS",
        "View Alerts",
        "View operator alerts",
        PermissionCategory.ALERTS
    ),
    (
        "MANAGE_ALERTS",
        "Manage Alerts",
        "Acknowledge and resolve alerts, trigger scans",
        PermissionCategory.ALERTS
    ),

    # SYSTEM PERMISSIONS
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create users and assign roles",
        PermissionCategory.SYSTEM
    ),
]

ALL_PERMISSION_CODES = frozenset(code for code, _, _, _ in PERMISSION_DEFINITIONS)


# =============================================================================
# DEFAULT ROLE PERMISSIONS
# =============================================================================

_VIEW = {
    "VIEW_INVENTORY",
    "VIEW_CATALOG",
    "VIEW_STORES",
    "VIEW_ALERTS",
}

ROLE_PERMISSIONS = {
    # Manager gets ALL permissions
    Role.MANAGER: ALL_PERMISSION_CODES,

    # Staff: day-to-day floor and route work, no corrections
    Role.STAFF: frozenset(_VIEW | {
        "RECEIVE_INVENTORY",
        "TRANSFER_INVENTORY",
        "CONVERT_INVENTORY",
        "RECORD_SALE",
        "SUBMIT_STORE_COUNT",
        "RECORD_PAYMENT",
    }),

    # Viewer: read-only (store partners, accountants)
    Role.VIEWER: frozenset(_VIEW),
}
