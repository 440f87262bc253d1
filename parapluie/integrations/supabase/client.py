"""Supabase-backed implementation of the auth and data store interfaces."""

from typing import Any, Awaitable, Optional, TypeVar

import httpx
from supabase import AsyncClient, PostgrestAPIError, acreate_client
from supabase import AuthError as SupabaseAuthError

from parapluie.core.logging import get_logger
from parapluie.core.settings import Settings
from parapluie.schemas import (
    AuthSession,
    ProfileCompletion,
    ProfileCreate,
    SecuritySettingsCreate,
    TrustedContactCreate,
    TrustedContactRecord,
    UserStatsCreate,
)
from parapluie.storage.errors import AuthError, BackendError, backend_error_from_code
from parapluie.storage.interfaces import BackendIface

logger = get_logger(__name__)

T = TypeVar("T")

PROFILES_TABLE = "user_profiles"
SECURITY_SETTINGS_TABLE = "security_settings"
USER_STATS_TABLE = "user_stats"
TRUSTED_CONTACTS_TABLE = "trusted_contacts"


def _translate_postgrest(exc: PostgrestAPIError) -> BackendError:
    return backend_error_from_code(exc.message or str(exc), exc.code)


def _session_from_user(user: Any) -> AuthSession:
    return AuthSession(
        user_id=str(user.id),
        email=getattr(user, "email", None),
        is_anonymous=bool(getattr(user, "is_anonymous", False)),
    )


async def _auth_call(call: Awaitable[T]) -> T:
    """Await an auth client call; every failure surfaces as AuthError."""
    try:
        return await call
    except SupabaseAuthError as e:
        raise AuthError(e.message, getattr(e, "code", None)) from e
    except httpx.HTTPError as e:
        logger.error("Auth service unreachable", error=str(e), error_type=type(e).__name__)
        raise AuthError(f"Auth service unreachable: {e}") from e


async def _execute(query: Any) -> Any:
    """Run a PostgREST query; API and transport failures surface as BackendError."""
    try:
        return await query.execute()
    except PostgrestAPIError as e:
        raise _translate_postgrest(e) from e
    except httpx.HTTPError as e:
        logger.error("Row store unreachable", error=str(e), error_type=type(e).__name__)
        raise BackendError(f"Row store unreachable: {e}") from e


class SupabaseBackend(BackendIface):
    """One Supabase client per device session (the client holds the auth session)."""

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def create(cls, settings: Settings) -> "SupabaseBackend":
        if not settings.supabase_url or not settings.supabase_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        client = await acreate_client(settings.supabase_url, settings.supabase_key)
        return cls(client)

    async def aclose(self) -> None:
        """Close the HTTP session of the row store client."""
        try:
            await self.client.postgrest.aclose()
        except httpx.HTTPError as e:
            logger.warning("Error closing Supabase client", error=str(e))

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def sign_up_with_password(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthSession:
        response = await _auth_call(
            self.client.auth.sign_up(
                {"email": email, "password": password, "options": {"data": metadata}}
            )
        )
        if not response.user:
            raise AuthError("User creation failed")
        return _session_from_user(response.user)

    async def sign_in_with_oauth(self, provider: str, redirect_to: str) -> str:
        response = await _auth_call(
            self.client.auth.sign_in_with_oauth(
                {
                    "provider": provider,
                    "options": {"redirect_to": redirect_to},
                }
            )
        )
        return response.url

    async def sign_in_anonymously(self) -> AuthSession:
        response = await _auth_call(self.client.auth.sign_in_anonymously())
        if not response.session or not response.user:
            raise AuthError("Anonymous sign-in returned no session")
        return _session_from_user(response.user)

    async def get_session(self) -> Optional[AuthSession]:
        session = await _auth_call(self.client.auth.get_session())
        if session is None or session.user is None:
            return None
        return _session_from_user(session.user)

    async def sign_out(self) -> None:
        await _auth_call(self.client.auth.sign_out())

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    async def _insert(self, table: str, row: dict[str, Any]) -> list[dict]:
        response = await _execute(self.client.table(table).insert(row))
        return response.data

    async def insert_profile(self, profile: ProfileCreate) -> None:
        await self._insert(PROFILES_TABLE, profile.model_dump(mode="json"))

    async def update_profile(self, user_id: str, completion: ProfileCompletion) -> None:
        await _execute(
            self.client.table(PROFILES_TABLE)
            .update(completion.model_dump(mode="json"))
            .eq("id", user_id)
        )

    async def insert_security_settings(self, security: SecuritySettingsCreate) -> None:
        await self._insert(SECURITY_SETTINGS_TABLE, security.model_dump(mode="json"))

    async def insert_user_stats(self, stats: UserStatsCreate) -> None:
        await self._insert(USER_STATS_TABLE, stats.model_dump(mode="json"))

    async def insert_trusted_contact(
        self, contact: TrustedContactCreate
    ) -> TrustedContactRecord:
        rows = await self._insert(
            TRUSTED_CONTACTS_TABLE, contact.model_dump(mode="json", exclude_none=True)
        )
        if not rows:
            raise BackendError("Trusted contact insert returned no row")
        return TrustedContactRecord.model_validate(rows[0])

    async def find_trusted_contact_by_code(
        self, code: str
    ) -> Optional[TrustedContactRecord]:
        response = await _execute(
            self.client.table(TRUSTED_CONTACTS_TABLE)
            .select("*")
            .eq("invitation_code", code)
            .limit(1)
        )
        if not response.data:
            return None
        return TrustedContactRecord.model_validate(response.data[0])

    async def update_trusted_contact(
        self, code: str, updates: dict[str, Any]
    ) -> Optional[TrustedContactRecord]:
        payload = {
            key: value.isoformat() if hasattr(value, "isoformat") else value
            for key, value in updates.items()
        }
        response = await _execute(
            self.client.table(TRUSTED_CONTACTS_TABLE)
            .update(payload)
            .eq("invitation_code", code)
        )
        if not response.data:
            logger.warning("Trusted contact update matched no row", code=code)
            return None
        return TrustedContactRecord.model_validate(response.data[0])
