from enum import Enum
from typing import Set

from prisma.enums import UserRole


class Permission(Enum):
    """
    Defines all permissions available in the system.

    Permissions should follow the pattern: ACTION_RESOURCE
    Common actions: VIEW, MANAGE, RUN
    """

    # Own account
    VIEW_OWN_WALLET = "view_own_wallet"

    # Merchant self-service
    VIEW_MERCHANT_DASHBOARD = "view_merchant_dashboard"

    # Administration
    VIEW_ALL_TRANSACTIONS = "view_all_transactions"  # Cross-user transaction lists
    MANAGE_TRANSACTIONS = "manage_transactions"  # Status changes and manual entries
    MANAGE_USERS = "manage_users"  # Profiles, wallet adjustments, CSV export
    MANAGE_MERCHANTS = "manage_merchants"
    MANAGE_PARTNERS = "manage_partners"
    MANAGE_SKUS = "manage_skus"
    MANAGE_GIFT_CODES = "manage_gift_codes"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_BILLING = "manage_billing"  # Invoices and monthly billing runs
    MANAGE_EXPORTS = "manage_exports"  # Corsair exports
    VIEW_REPORTS = "view_reports"
    RUN_SCHEDULED_TASKS = "run_scheduled_tasks"


ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.ADMIN: {
        # Admins have all permissions
        *Permission,
    },
    UserRole.MERCHANT: {
        Permission.VIEW_OWN_WALLET,
        Permission.VIEW_MERCHANT_DASHBOARD,
    },
    UserRole.USER: {
        Permission.VIEW_OWN_WALLET,
    },
}
