from .auth import AccountIdentity, AuthMethod, AuthSession
from .profile import (
    ProfileCompletion,
    ProfileCreate,
    SecuritySettingsCreate,
    UserStatsCreate,
)
from .trusted_contact import (
    ContactMethod,
    ContactPermissions,
    ContactStatus,
    TrustedContactCreate,
    TrustedContactRecord,
)

__all__ = [
    "AccountIdentity",
    "AuthMethod",
    "AuthSession",
    "ProfileCompletion",
    "ProfileCreate",
    "SecuritySettingsCreate",
    "UserStatsCreate",
    "ContactMethod",
    "ContactPermissions",
    "ContactStatus",
    "TrustedContactCreate",
    "TrustedContactRecord",
]
