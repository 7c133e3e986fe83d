"""Platform user roles."""
from enum import Enum


class UserRoles(str, Enum):
    """Roles a platform account can hold.

    SUPER_ADMIN: platform creator
    ADMIN: manager of a customer account or company
    APP_MANAGER: application manager
    MARKETING / SUPPORT / COMMERCIAL: customer-facing staff
    """

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    APP_MANAGER = "app_manager"
    MARKETING = "marketing"
    SUPPORT = "support"
    COMMERCIAL = "commercial"
