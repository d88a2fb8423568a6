from prisma.enums import UserRole

from .models import ROLE_PERMISSIONS, Permission


def has_permission(role: UserRole, permission: Permission) -> bool:
    """
    Whether a platform role grants ``permission``.

    Roles are cumulative: USER holds only its own wallet, MERCHANT adds its
    dashboard, ADMIN holds every permission. Unknown roles grant nothing.
    """
    return permission in ROLE_PERMISSIONS.get(role, set())
