from enum import Enum


class Role(str, Enum):
    admin = "admin"
    operator = "operator"
    viewer = "viewer"


class Permission(str, Enum):
    view_transactions = "view_transactions"
    create_transactions = "create_transactions"
    edit_transactions = "edit_transactions"
    delete_transactions = "delete_transactions"
    manage_customers = "manage_customers"
    manage_suppliers = "manage_suppliers"
    manage_categories = "manage_categories"
    manage_users = "manage_users"
    view_reports = "view_reports"


ADMIN_ROLES = {Role.admin}

DEFAULT_PERMISSIONS = {
    Role.admin: {p.value: True for p in Permission},
    Role.operator: {
        Permission.view_transactions.value: True,
        Permission.create_transactions.value: True,
        Permission.edit_transactions.value: True,
        Permission.manage_customers.value: True,
        Permission.manage_suppliers.value: True,
        Permission.view_reports.value: True,
    },
    Role.viewer: {
        Permission.view_transactions.value: True,
        Permission.view_reports.value: True,
    },
}


def default_permissions_for(role: str) -> dict:
    try:
        return dict(DEFAULT_PERMISSIONS[Role(role)])
    except ValueError:
        return {}
