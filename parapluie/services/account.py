"""Account creation and finalization against the hosted backend."""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from parapluie.core import metrics
from parapluie.core.logging import get_logger
from parapluie.core.settings import Settings
from parapluie.core.ui_strings import get_string
from parapluie.onboarding.draft import OnboardingDraft
from parapluie.onboarding.errors import (
    AccountCreationError,
    FieldValidationError,
    OAuthCallbackError,
    ProfileCreationError,
)
from parapluie.schemas import (
    AccountIdentity,
    ProfileCompletion,
    ProfileCreate,
    SecuritySettingsCreate,
    UserStatsCreate,
)
from parapluie.storage.errors import AuthError, BackendError, ForeignKeyViolation
from parapluie.storage.interfaces import AuthBackendIface, DataStoreIface, LocalStoreIface
from parapluie.storage.local import (
    ONBOARDING_COMPLETED_KEY,
    ONBOARDING_DATA_KEY,
    USER_ID_KEY,
)

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]

SUPPORTED_OAUTH_PROVIDERS = ("google",)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountService:
    """
    Creates the auth identity and the records that activate protection.

    Core identity writes (the profile) block the flow when they fail.
    Auxiliary writes (security settings, stats) are best effort: their
    failures are logged and counted, never raised.
    """

    def __init__(
        self,
        auth: AuthBackendIface,
        store: DataStoreIface,
        local_store: LocalStoreIface,
        settings: Settings,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utcnow,
    ):
        self.auth = auth
        self.store = store
        self.local_store = local_store
        self.settings = settings
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Identity creation
    # ------------------------------------------------------------------

    async def sign_up_with_password(
        self, draft: OnboardingDraft, email: str, password: str
    ) -> AccountIdentity:
        metadata = {
            "first_name": draft.name,
            "phone_number": draft.phone,
            "language": draft.language,
        }
        try:
            session = await self.auth.sign_up_with_password(email, password, metadata)
        except AuthError as e:
            if "already registered" in e.message.lower():
                raise FieldValidationError(
                    "email", get_string("email_taken", draft.language)
                ) from e
            logger.error("Sign up failed", error=e.message)
            raise AccountCreationError(
                get_string("signup_failed", draft.language), detail=e.message
            ) from e
        except BackendError as e:
            logger.error("Sign up failed", error=e.message)
            raise AccountCreationError(
                get_string("signup_failed", draft.language), detail=e.message
            ) from e

        logger.info("Account created", user_id=session.user_id, method="email")
        return AccountIdentity(user_id=session.user_id, method="email", email=email)

    async def start_oauth(self, provider: str, language: Optional[str] = None) -> str:
        """Return the provider URL that redirects back to <scheme>://auth/callback."""
        if provider == "apple":
            raise AccountCreationError(get_string("apple_unavailable", language))
        if provider not in SUPPORTED_OAUTH_PROVIDERS:
            raise AccountCreationError(
                get_string("oauth_failed", language), detail=f"unknown provider {provider}"
            )

        try:
            url = await self.auth.sign_in_with_oauth(
                provider, self.settings.auth_callback_url
            )
        except BackendError as e:
            logger.error("OAuth flow could not start", provider=provider, error=e.message)
            raise AccountCreationError(
                get_string("google_failed", language), detail=e.message
            ) from e

        logger.info("OAuth flow initiated", provider=provider)
        return url

    async def complete_oauth(
        self, provider: str, language: Optional[str] = None
    ) -> AccountIdentity:
        """Read the session left behind by the external sign-in flow."""
        try:
            session = await self.auth.get_session()
        except BackendError as e:
            logger.error("Deep link auth error", error=e.message)
            raise OAuthCallbackError(
                get_string("oauth_failed", language), detail=e.message
            ) from e

        if session is None:
            logger.error("No session found after OAuth callback", provider=provider)
            raise OAuthCallbackError(
                get_string("oauth_failed", language),
                detail="No session found after OAuth callback",
            )

        logger.info("OAuth sign-in succeeded", user_id=session.user_id, provider=provider)
        return AccountIdentity(
            user_id=session.user_id, method=provider, email=session.email
        )

    async def create_anonymous_identity(self, draft: OnboardingDraft) -> AccountIdentity:
        """
        Anonymous account, or a device-local pseudo-identity as the last resort.

        The local identity keeps the user moving; the draft is stored on the
        device since no backend row can reference it.
        """
        try:
            session = await self.auth.sign_in_anonymously()
        except BackendError as e:
            logger.error("Error creating anonymous session", error=e.message)
        else:
            logger.info("Anonymous session created", user_id=session.user_id)
            return AccountIdentity(user_id=session.user_id, method="anonymous")

        user_id = f"temp-user-{int(self._clock().timestamp() * 1000)}"
        await self.local_store.set(USER_ID_KEY, user_id)
        await self.local_store.set(ONBOARDING_DATA_KEY, draft.model_dump_json())
        logger.warning("Stored locally, anonymous auth failed", user_id=user_id)
        return AccountIdentity(user_id=user_id, method="local", local_only=True)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    async def finalize_account(
        self, identity: AccountIdentity, draft: OnboardingDraft
    ) -> None:
        """Insert profile (with retry), then the auxiliary records."""
        if identity.local_only:
            logger.info("Local-only identity, skipping backend writes", user_id=identity.user_id)
            return

        await self._insert_profile(identity, draft)
        await self._insert_security_settings(identity)
        await self._insert_user_stats(identity)

    async def _insert_profile(
        self, identity: AccountIdentity, draft: OnboardingDraft
    ) -> None:
        profile = ProfileCreate(
            id=identity.user_id,
            first_name=draft.name,
            phone_number=draft.phone,
            email=identity.email,
            language=draft.language,
            timezone=self.settings.default_timezone,
            onboarding_completed=False,
        )
        max_attempts = self.settings.profile_insert_max_attempts

        # The auth row may not be committed yet when sign-up returns
        if self.settings.profile_settle_delay_sec:
            await self._sleep(self.settings.profile_settle_delay_sec)

        last_error: Optional[BackendError] = None
        for attempt in range(1, max_attempts + 1):
            try:
                await self.store.insert_profile(profile)
            except ForeignKeyViolation as e:
                metrics.profile_insert_attempts.labels(result="foreign_key").inc()
                last_error = e
                if attempt < max_attempts:
                    logger.info(
                        "Profile creation failed, retrying",
                        user_id=identity.user_id,
                        attempt=attempt,
                    )
                    await self._sleep(self.settings.profile_retry_delay_sec)
                    continue
            except BackendError as e:
                metrics.profile_insert_attempts.labels(result="error").inc()
                last_error = e
            else:
                metrics.profile_insert_attempts.labels(result="ok").inc()
                logger.info("Profile created", user_id=identity.user_id, attempt=attempt)
                return
            break

        logger.error(
            "Profile creation error",
            user_id=identity.user_id,
            error=last_error.message if last_error else None,
            code=last_error.code if last_error else None,
        )
        raise ProfileCreationError(
            get_string("profile_failed", draft.language),
            detail=last_error.message if last_error else None,
        )

    async def _insert_security_settings(self, identity: AccountIdentity) -> None:
        try:
            await self.store.insert_security_settings(
                SecuritySettingsCreate(user_id=identity.user_id, protection_level="medium")
            )
        except BackendError as e:
            metrics.auxiliary_write_failures.labels(table="security_settings").inc()
            logger.warning(
                "Security settings creation warning", user_id=identity.user_id, error=e.message
            )

    async def _insert_user_stats(self, identity: AccountIdentity) -> None:
        try:
            await self.store.insert_user_stats(
                UserStatsCreate(user_id=identity.user_id, since=self._clock())
            )
        except BackendError as e:
            metrics.auxiliary_write_failures.labels(table="user_stats").inc()
            logger.warning(
                "User stats creation warning", user_id=identity.user_id, error=e.message
            )

    async def mark_onboarding_complete(self, identity: AccountIdentity) -> None:
        """Persist the completion flag locally, then on the profile (best effort)."""
        await self.local_store.set(ONBOARDING_COMPLETED_KEY, "true")
        await self.local_store.set(USER_ID_KEY, identity.user_id)

        if identity.local_only:
            return

        try:
            await self.store.update_profile(
                identity.user_id, ProfileCompletion(onboarding_completed_at=self._clock())
            )
        except BackendError as e:
            logger.error(
                "Error completing onboarding", user_id=identity.user_id, error=e.message
            )
