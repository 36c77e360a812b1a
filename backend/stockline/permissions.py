"""
Roles and Authorization Tiers

WHY: Centralized role and tier definitions ensure every action is checked
against the same table. Handlers never test roles themselves; the router
looks up the action's tier and asks the session whether its role qualifies.

DESIGN PRINCIPLES:
- Three fixed roles, stored on the user row as their display names
- Four tiers, each mapping to the set of roles allowed through
- Admin is allowed through every tier
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles. Values match the strings stored in users.role."""
    ADMIN = "Admin"
    STOCK_MANAGER = "Stock Manager"
    CASHIER = "Cashier"

    @classmethod
    def parse(cls, value: str) -> "Role":
        """
        Accept the stored display name or the enum name in any case
        ("Stock Manager", "STOCK_MANAGER", "stock_manager").
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError("role must be a string")
        normalized = value.strip()
        for role in cls:
            if normalized == role.value or normalized.upper().replace(" ", "_") == role.name:
                return role
        raise ValueError(f"unknown role: {value}")


class Tier(Enum):
    """Minimum authorization level required to invoke an action."""
    NONE = "none"
    AUTHENTICATED = "authenticated"
    ADMIN_OR_MANAGER = "admin-or-manager"
    ADMIN = "admin"


ALL_ROLES = frozenset(Role)

# Roles admitted by each tier. NONE admits unauthenticated sessions as well,
# which the router handles before consulting this table.
TIER_ROLES: dict[Tier, frozenset[Role]] = {
    Tier.NONE: ALL_ROLES,
    Tier.AUTHENTICATED: ALL_ROLES,
    Tier.ADMIN_OR_MANAGER: frozenset({Role.ADMIN, Role.STOCK_MANAGER}),
    Tier.ADMIN: frozenset({Role.ADMIN}),
}
