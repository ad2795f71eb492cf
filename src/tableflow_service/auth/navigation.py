"""Role based navigation policy.

A static table maps each view of the front-of-house app to the staff roles
allowed to open it. The API uses the same table to gate its routes.
"""

from enum import Enum


class StaffRole(str, Enum):
    """Roles returned by the identity service."""

    ADMIN = "admin"
    MANAGER = "manager"
    WAITER = "waiter"
    CASHIER = "cashier"
    KITCHEN = "kitchen"
    STAFF = "staff"


class View(str, Enum):
    DASHBOARD = "dashboard"
    TABLES = "tables"
    ORDERS = "orders"
    MENU = "menu"
    BILLING = "billing"
    KITCHEN = "kitchen"
    ANALYTICS = "analytics"
    SETTINGS = "settings"


_ADMIN_AND_MANAGER = frozenset({StaffRole.ADMIN, StaffRole.MANAGER})

VIEW_ROLES: dict[View, frozenset[StaffRole]] = {
    View.DASHBOARD: _ADMIN_AND_MANAGER,
    View.TABLES: _ADMIN_AND_MANAGER | {StaffRole.WAITER},
    View.ORDERS: _ADMIN_AND_MANAGER | {StaffRole.WAITER, StaffRole.CASHIER, StaffRole.STAFF},
    View.MENU: _ADMIN_AND_MANAGER | {StaffRole.WAITER},
    View.BILLING: _ADMIN_AND_MANAGER | {StaffRole.WAITER, StaffRole.CASHIER},
    View.KITCHEN: _ADMIN_AND_MANAGER | {StaffRole.KITCHEN},
    View.ANALYTICS: _ADMIN_AND_MANAGER,
    View.SETTINGS: _ADMIN_AND_MANAGER,
}


def allowed_views(role: StaffRole) -> frozenset[View]:
    """Return the views a role may open."""
    return frozenset(view for view, roles in VIEW_ROLES.items() if role in roles)


def can_access(role: StaffRole, view: View) -> bool:
    return role in VIEW_ROLES[view]


def landing_view(role: StaffRole) -> View:
    """Return the view a role lands on after signing in."""
    if role in _ADMIN_AND_MANAGER:
        return View.DASHBOARD
    if role == StaffRole.KITCHEN:
        return View.KITCHEN
    return View.ORDERS
