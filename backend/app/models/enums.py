"""
User roles enumeration.

Defines the role types carried in access tokens.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Manages coupons and the rewards inventory
        USER: Redeems rewards (default role)
    """
    ADMIN = "ADMIN"
    USER = "USER"
