"""
Tests for shared permissions services (has_permission function).
"""

from prisma.enums import UserRole

from csr26_api.shared.permissions.models import Permission
from csr26_api.shared.permissions.services import has_permission


class TestHasPermission:
    """Test the has_permission function."""

    def test_admin_has_all_permissions(self):
        """Test that admins have every permission."""
        for permission in Permission:
            assert has_permission(UserRole.ADMIN, permission) is True

    def test_merchant_permissions(self):
        """Test merchants see their wallet and dashboard only."""
        role = UserRole.MERCHANT

        assert has_permission(role, Permission.VIEW_OWN_WALLET) is True
        assert has_permission(role, Permission.VIEW_MERCHANT_DASHBOARD) is True

        assert has_permission(role, Permission.MANAGE_MERCHANTS) is False
        assert has_permission(role, Permission.VIEW_ALL_TRANSACTIONS) is False
        assert has_permission(role, Permission.MANAGE_BILLING) is False

    def test_user_permissions(self):
        """Test users have minimal access."""
        role = UserRole.USER

        assert has_permission(role, Permission.VIEW_OWN_WALLET) is True

        assert has_permission(role, Permission.VIEW_MERCHANT_DASHBOARD) is False
        assert has_permission(role, Permission.MANAGE_USERS) is False
        assert has_permission(role, Permission.RUN_SCHEDULED_TASKS) is False

    def test_unknown_role_has_no_permissions(self):
        """Test that an unmapped role is denied everything."""
        assert has_permission("GUEST", Permission.VIEW_OWN_WALLET) is False  # type: ignore[arg-type]
