# tests/test_permissions.py
"""
Tests for role-based permission lookup.
"""

import pytest

from accounts.models import CompanyMembership
from accounts.permissions import (
    ROLE_PERMISSIONS,
    CompanyRole,
    GlobalRole,
    Permission,
    effective_permission,
    role_permissions,
)


class TestRolePermissions:

    def test_roles_are_nested(self):
        assert role_permissions(CompanyRole.ASSISTANT) < role_permissions(CompanyRole.ACCOUNTANT)
        assert role_permissions(CompanyRole.ACCOUNTANT) < role_permissions(CompanyRole.MANAGER)
        assert role_permissions(CompanyRole.MANAGER) < role_permissions(CompanyRole.ADMINISTRATOR)

    def test_administrator_holds_everything(self):
        assert role_permissions(CompanyRole.ADMINISTRATOR) == frozenset(Permission)

    def test_every_role_has_a_set(self):
        assert set(ROLE_PERMISSIONS) == set(CompanyRole)

    def test_lookup_by_string(self):
        assert role_permissions("manager") == role_permissions(CompanyRole.MANAGER)


class TestEffectivePermission:

    @pytest.mark.parametrize("role,permission,expected", [
        (CompanyRole.ASSISTANT, Permission.JOURNAL_CREATE, True),
        (CompanyRole.ASSISTANT, Permission.JOURNAL_POST, False),
        (CompanyRole.ASSISTANT, Permission.ACCOUNTS_CREATE, False),
        (CompanyRole.ACCOUNTANT, Permission.JOURNAL_POST, True),
        (CompanyRole.ACCOUNTANT, Permission.JOURNAL_DELETE, False),
        (CompanyRole.MANAGER, Permission.JOURNAL_DELETE, True),
        (CompanyRole.MANAGER, Permission.COMPANY_DELETE, False),
        (CompanyRole.ADMINISTRATOR, Permission.COMPANY_DELETE, True),
    ])
    def test_company_roles(self, role, permission, expected):
        assert effective_permission(GlobalRole.USER, role, permission) is expected

    def test_global_administrator_overrides_company_role(self):
        assert effective_permission(
            GlobalRole.GLOBAL_ADMINISTRATOR, CompanyRole.ASSISTANT, Permission.COMPANY_DELETE
        ) is True

    def test_global_administrator_without_membership(self):
        assert effective_permission(GlobalRole.GLOBAL_ADMINISTRATOR, None, Permission.JOURNAL_POST) is True

    def test_no_membership(self):
        assert effective_permission(GlobalRole.USER, None, Permission.DASHBOARD_VIEW) is False

    def test_plain_strings_accepted(self):
        assert effective_permission("user", "accountant", "journal.post") is True

    @pytest.mark.parametrize("global_role,company_role,permission", [
        ("superuser", "accountant", "journal.post"),
        ("user", "owner", "journal.post"),
        ("user", "accountant", "journal.approve"),
    ])
    def test_unknown_values_rejected(self, global_role, company_role, permission):
        with pytest.raises(ValueError):
            effective_permission(global_role, company_role, permission)


@pytest.mark.django_db
class TestMembershipPermissions:

    def test_membership_uses_role(self, accountant_membership):
        assert accountant_membership.has_permission(Permission.JOURNAL_POST)
        assert not accountant_membership.has_permission(Permission.JOURNAL_DELETE)

    def test_inactive_membership_grants_nothing(self, accountant_membership):
        accountant_membership.is_active = False
        accountant_membership.save()

        assert not accountant_membership.has_permission(Permission.DASHBOARD_VIEW)

    def test_global_administrator_membership(self, accountant_membership, user):
        user.global_role = GlobalRole.GLOBAL_ADMINISTRATOR
        user.save()

        assert accountant_membership.has_permission(Permission.COMPANY_DELETE)

    def test_one_membership_per_company(self, accountant_membership, user, company):
        from django.db import IntegrityError

        with pytest.raises(IntegrityError):
            CompanyMembership.objects.create(user=user, company=company, role=CompanyRole.MANAGER)
