"""Domain enumerations for the access matrix.

Enums represent fixed sets of domain values (e.g. provisioning policy,
grant lifecycle state).
"""

from enum import Enum


class ProvisioningPolicy(str, Enum):
    """How default (derived) grants are computed for a user's territories.

    ROLE_EXPANSION grants every active base permission of the user's roles in
    every assigned municipality. VIEW_ONLY grants a single "view" permission
    per municipality regardless of roles.
    """

    ROLE_EXPANSION = "role_expansion"
    VIEW_ONLY = "view_only"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid policy values as strings."""
        return [policy.value for policy in cls]


class GrantState(str, Enum):
    """Lifecycle state of a single access grant row."""

    DERIVED = "derived"
    EXCEPTION = "exception"
    REVOKED = "revoked"

    @classmethod
    def of(cls, *, active: bool, is_exception: bool) -> "GrantState":
        """Classify a row by its flags."""
        if not active:
            return cls.REVOKED
        return cls.EXCEPTION if is_exception else cls.DERIVED
