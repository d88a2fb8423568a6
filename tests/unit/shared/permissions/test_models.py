"""
Tests for shared permissions models (Permission enum and ROLE_PERMISSIONS mapping).
"""

from prisma.enums import UserRole

from csr26_api.shared.permissions.models import ROLE_PERMISSIONS, Permission


class TestPermissionEnum:
    """Test the Permission enum definition."""

    def test_permission_enum_values(self):
        assert Permission.VIEW_OWN_WALLET.value == "view_own_wallet"
        assert Permission.VIEW_MERCHANT_DASHBOARD.value == "view_merchant_dashboard"
        assert Permission.MANAGE_BILLING.value == "manage_billing"
        assert Permission.MANAGE_EXPORTS.value == "manage_exports"
        assert Permission.RUN_SCHEDULED_TASKS.value == "run_scheduled_tasks"

    def test_permission_enum_structure(self):
        """Names are UPPER_SNAKE, values lower_snake."""
        for perm in Permission:
            assert perm.name.isupper(), f"Permission {perm.name} should be uppercase"
            assert "_" in perm.name
            assert perm.value == perm.name.lower()


class TestRolePermissions:
    """Test the role to permission mapping."""

    def test_every_role_is_mapped(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    def test_admin_has_everything(self):
        assert ROLE_PERMISSIONS[UserRole.ADMIN] == set(Permission)

    def test_merchant_is_limited_to_own_data(self):
        assert ROLE_PERMISSIONS[UserRole.MERCHANT] == {
            Permission.VIEW_OWN_WALLET,
            Permission.VIEW_MERCHANT_DASHBOARD,
        }

    def test_user_has_wallet_only(self):
        assert ROLE_PERMISSIONS[UserRole.USER] == {Permission.VIEW_OWN_WALLET}

    def test_roles_are_hierarchical(self):
        assert ROLE_PERMISSIONS[UserRole.USER] < ROLE_PERMISSIONS[UserRole.MERCHANT]
        assert ROLE_PERMISSIONS[UserRole.MERCHANT] < ROLE_PERMISSIONS[UserRole.ADMIN]
