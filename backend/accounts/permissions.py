# accounts/permissions.py
"""
Role and permission lookup.

Two role axes exist:
- GlobalRole: set on the user, system-wide.
- CompanyRole: set on the membership, scoped to one company.

effective_permission() merges them: a global administrator is granted
everything; every other user gets exactly what their company role's
default set contains. The table is static; nothing here touches the
database.

Usage:
    from accounts.permissions import Permission, effective_permission

    if not effective_permission(user.global_role, membership.role, Permission.JOURNAL_POST):
        raise PermissionDenied
"""
from __future__ import annotations

from typing import Optional

from django.db import models


class GlobalRole(models.TextChoices):
    USER = "user", "User"
    GLOBAL_ADMINISTRATOR = "global_administrator", "Global Administrator"


class CompanyRole(models.TextChoices):
    ASSISTANT = "assistant", "Assistant Accountant"
    ACCOUNTANT = "accountant", "Accountant"
    MANAGER = "manager", "Manager"
    ADMINISTRATOR = "administrator", "Administrator"


class Permission(models.TextChoices):
    # Users
    USER_VIEW = "users.view", "View user list"
    USER_CREATE = "users.create", "Create new users"
    USER_EDIT = "users.edit", "Edit user details"
    USER_DELETE = "users.delete", "Delete users"
    USER_ASSIGN_ROLES = "users.assign_roles", "Assign roles to users"

    # Companies
    COMPANY_VIEW = "companies.view", "View company list"
    COMPANY_CREATE = "companies.create", "Create new companies"
    COMPANY_EDIT = "companies.edit", "Edit company details"
    COMPANY_DELETE = "companies.delete", "Delete companies"

    # Chart of accounts
    ACCOUNTS_VIEW = "accounts.view", "View chart of accounts"
    ACCOUNTS_CREATE = "accounts.create", "Create new accounts"
    ACCOUNTS_EDIT = "accounts.edit", "Edit account details"
    ACCOUNTS_DELETE = "accounts.delete", "Deactivate accounts"

    # Journal
    JOURNAL_VIEW = "journal.view", "View journal entries"
    JOURNAL_CREATE = "journal.create", "Create journal entries"
    JOURNAL_EDIT = "journal.edit", "Edit journal entries"
    JOURNAL_DELETE = "journal.delete", "Delete journal entries"
    JOURNAL_POST = "journal.post", "Post journal entries"
    JOURNAL_UNPOST = "journal.unpost", "Unpost journal entries"

    # Customers & vendors
    CUSTOMERS_VIEW = "customers.view", "View customers"
    CUSTOMERS_CREATE = "customers.create", "Create customers"
    CUSTOMERS_EDIT = "customers.edit", "Edit customers"
    CUSTOMERS_DELETE = "customers.delete", "Delete customers"
    VENDORS_VIEW = "vendors.view", "View vendors"
    VENDORS_CREATE = "vendors.create", "Create vendors"
    VENDORS_EDIT = "vendors.edit", "Edit vendors"
    VENDORS_DELETE = "vendors.delete", "Delete vendors"

    # Invoices & bills
    INVOICES_VIEW = "invoices.view", "View invoices"
    INVOICES_CREATE = "invoices.create", "Create invoices"
    INVOICES_EDIT = "invoices.edit", "Edit invoices"
    INVOICES_DELETE = "invoices.delete", "Delete invoices"
    INVOICES_SEND = "invoices.send", "Send invoices to customers"
    BILLS_VIEW = "bills.view", "View bills"
    BILLS_CREATE = "bills.create", "Create bills"
    BILLS_EDIT = "bills.edit", "Edit bills"
    BILLS_DELETE = "bills.delete", "Delete bills"
    BILLS_PAY = "bills.pay", "Mark bills as paid"

    # Reports
    REPORTS_VIEW = "reports.view", "View financial reports"
    REPORTS_EXPORT = "reports.export", "Export reports"
    REPORTS_CUSTOM = "reports.custom", "Create custom reports"

    # Settings
    SETTINGS_VIEW = "settings.view", "View company settings"
    SETTINGS_EDIT = "settings.edit", "Edit company settings"

    DASHBOARD_VIEW = "dashboard.view", "View dashboard"


P = Permission

_ASSISTANT = frozenset({
    P.DASHBOARD_VIEW,
    P.ACCOUNTS_VIEW,
    P.CUSTOMERS_VIEW, P.CUSTOMERS_CREATE, P.CUSTOMERS_EDIT,
    P.VENDORS_VIEW, P.VENDORS_CREATE, P.VENDORS_EDIT,
    P.JOURNAL_VIEW, P.JOURNAL_CREATE,
    P.INVOICES_VIEW, P.INVOICES_CREATE,
    P.BILLS_VIEW, P.BILLS_CREATE,
    P.REPORTS_VIEW,
})

_ACCOUNTANT = _ASSISTANT | {
    P.ACCOUNTS_CREATE, P.ACCOUNTS_EDIT,
    P.CUSTOMERS_DELETE,
    P.VENDORS_DELETE,
    P.JOURNAL_EDIT, P.JOURNAL_POST, P.JOURNAL_UNPOST,
    P.INVOICES_EDIT, P.INVOICES_SEND,
    P.BILLS_EDIT, P.BILLS_PAY,
    P.REPORTS_EXPORT,
    P.SETTINGS_VIEW,
}

_MANAGER = _ACCOUNTANT | {
    P.ACCOUNTS_DELETE,
    P.JOURNAL_DELETE,
    P.INVOICES_DELETE,
    P.BILLS_DELETE,
    P.REPORTS_CUSTOM,
    P.SETTINGS_EDIT,
    P.USER_VIEW, P.USER_CREATE, P.USER_EDIT, P.USER_ASSIGN_ROLES,
    P.COMPANY_VIEW, P.COMPANY_EDIT,
}

_ADMINISTRATOR = _MANAGER | {
    P.USER_DELETE,
    P.COMPANY_CREATE, P.COMPANY_DELETE,
}

ROLE_PERMISSIONS: dict[CompanyRole, frozenset] = {
    CompanyRole.ASSISTANT: _ASSISTANT,
    CompanyRole.ACCOUNTANT: _ACCOUNTANT,
    CompanyRole.MANAGER: _MANAGER,
    CompanyRole.ADMINISTRATOR: _ADMINISTRATOR,
}


def role_permissions(company_role) -> frozenset:
    """Default permission set for a company role."""
    return ROLE_PERMISSIONS[CompanyRole(company_role)]


def effective_permission(
    global_role,
    company_role: Optional[str],
    permission,
) -> bool:
    """
    Decide whether a user holds a permission inside a company.

    Args:
        global_role: GlobalRole of the user
        company_role: CompanyRole of the membership, or None without one
        permission: Permission being checked

    Raises:
        ValueError: if any argument is outside its enumeration
    """
    global_role = GlobalRole(global_role)
    permission = Permission(permission)

    if global_role == GlobalRole.GLOBAL_ADMINISTRATOR:
        return True
    if company_role is None:
        return False
    return permission in role_permissions(company_role)
