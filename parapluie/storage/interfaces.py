"""Backend collaborator interfaces for dependency injection."""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from parapluie.schemas import (
    AuthSession,
    ProfileCompletion,
    ProfileCreate,
    SecuritySettingsCreate,
    TrustedContactCreate,
    TrustedContactRecord,
    UserStatsCreate,
)


class AuthBackendIface(ABC):
    """Interface for the hosted authentication service."""

    @abstractmethod
    async def sign_up_with_password(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthSession:
        """Create an identity with email and password."""
        pass

    @abstractmethod
    async def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        """Start an OAuth flow and return the provider URL to open."""
        pass

    @abstractmethod
    async def sign_in_anonymously(self) -> AuthSession:
        """Create an anonymous identity."""
        pass

    @abstractmethod
    async def get_session(self) -> Optional[AuthSession]:
        """Get the current session, if any."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""
        pass


class DataStoreIface(ABC):
    """Interface for the hosted row store."""

    @abstractmethod
    async def insert_profile(self, profile: ProfileCreate) -> None:
        """Insert a user profile row."""
        pass

    @abstractmethod
    async def update_profile(self, user_id: str, completion: ProfileCompletion) -> None:
        """Mark a profile's onboarding as complete."""
        pass

    @abstractmethod
    async def insert_security_settings(self, security: SecuritySettingsCreate) -> None:
        """Insert a security settings row."""
        pass

    @abstractmethod
    async def insert_user_stats(self, stats: UserStatsCreate) -> None:
        """Insert a user stats row."""
        pass

    @abstractmethod
    async def insert_trusted_contact(
        self, contact: TrustedContactCreate
    ) -> TrustedContactRecord:
        """Insert a trusted-contact invitation row."""
        pass

    @abstractmethod
    async def find_trusted_contact_by_code(
        self, code: str
    ) -> Optional[TrustedContactRecord]:
        """Get a trusted-contact invitation by its code."""
        pass

    @abstractmethod
    async def update_trusted_contact(
        self, code: str, updates: dict[str, Any]
    ) -> Optional[TrustedContactRecord]:
        """Update a trusted-contact invitation by its code."""
        pass


class LocalStoreIface(ABC):
    """Interface for the device-local key/value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get a value by key."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Set a value."""
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove a key."""
        pass

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Remove several keys."""
        for key in keys:
            await self.remove(key)


class BackendIface(AuthBackendIface, DataStoreIface):
    """A hosted backend providing both authentication and the row store."""

    async def aclose(self) -> None:
        """Release the client's connections. Nothing to release by default."""
        return None
