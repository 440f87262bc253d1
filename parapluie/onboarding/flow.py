"""
Onboarding state machine.

Welcome -> AccountCreation -> Permissions -> InviteContactPrompt
    -> {InviteContactInfo -> ShareInvitation} | (skip) -> Completion -> MainShell

Each action checks that it applies to the current step, validates its
input, runs its backend calls and pushes the next step. Backend calls are
bound to the step that started them: going back or closing the flow while
a call is in flight makes its completion stale, and a stale completion is
dropped instead of being applied.
"""

import uuid
from typing import Awaitable, Callable, Optional, TypeVar

from parapluie.core import metrics
from parapluie.core.logging import correlation_id_var, get_logger, log_with_context
from parapluie.core.settings import Settings
from parapluie.core.ui_strings import get_string
from parapluie.onboarding.auth_state import AuthState
from parapluie.onboarding.deep_link import is_auth_callback
from parapluie.onboarding.draft import (
    OnboardingDraft,
    PermissionGrants,
    TrustedContactRequest,
)
from parapluie.onboarding.errors import (
    FieldValidationError,
    FlowBusy,
    InvalidTransition,
    PermissionsDenied,
    ProfileCreationError,
    SkipNotConfirmed,
    StepCancelled,
)
from parapluie.onboarding.permissions import (
    PermissionRequester,
    SimulatedPermissionRequester,
)
from parapluie.onboarding.sharing import (
    ShareMessage,
    email_message,
    manual_message,
    sms_message,
)
from parapluie.onboarding.steps import (
    AccountCreation,
    Completion,
    InviteContactInfo,
    InviteContactPrompt,
    MainShell,
    Permissions,
    ShareInvitation,
    StepHistory,
    StepState,
    Welcome,
)
from parapluie.onboarding.validation import (
    evaluate_password,
    validate_contact_name,
    validate_email,
    validate_name,
    validate_phone,
    validate_relationship,
)
from parapluie.schemas import AccountIdentity
from parapluie.services.account import AccountService
from parapluie.services.trusted_contact import TrustedContactService
from parapluie.storage.interfaces import LocalStoreIface
from parapluie.storage.local import ONBOARDING_DATA_KEY, PERMISSIONS_KEY

logger = get_logger(__name__)

T = TypeVar("T")
Step = TypeVar("Step")

SHARE_METHODS = ("sms", "email", "manual")


class OnboardingFlow:
    """One user's walk through the onboarding screens."""

    def __init__(
        self,
        account_service: AccountService,
        contact_service: TrustedContactService,
        auth_state: AuthState,
        local_store: LocalStoreIface,
        settings: Settings,
        permission_requester: Optional[PermissionRequester] = None,
        *,
        flow_id: Optional[str] = None,
        platform: str = "android",
    ):
        self.accounts = account_service
        self.contacts = contact_service
        self.auth_state = auth_state
        self.local_store = local_store
        self.settings = settings
        self.permission_requester = permission_requester or SimulatedPermissionRequester()
        self.flow_id = flow_id or str(uuid.uuid4())
        self.platform = platform

        self.history = StepHistory()
        self.busy = False
        self.closed = False
        self.last_share: Optional[ShareMessage] = None

        self._generation = 0
        self._oauth_provider: Optional[str] = None
        self._denied_grants: Optional[PermissionGrants] = None
        # Auth identity whose profile insert failed; reused on retry
        self._orphan: Optional[AccountIdentity] = None
        self._logger = log_with_context(logger, flow_id=self.flow_id)

    @property
    def current(self) -> StepState:
        return self.history.current

    @property
    def language(self) -> str:
        draft = getattr(self.current, "draft", None)
        return draft.language if draft is not None else self.settings.default_language

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _expect(self, step_type: type[Step]) -> Step:
        if self.closed:
            raise InvalidTransition(
                get_string("generic_error", self.language), detail="flow is closed"
            )
        step = self.current
        if not isinstance(step, step_type):
            raise InvalidTransition(
                get_string("generic_error", self.language),
                detail=f"expected {step_type.name}, current step is {step.name}",
            )
        return step

    def _advance(self, step: StepState) -> StepState:
        previous = self.current
        metrics.onboarding_steps_completed.labels(step=previous.name).inc()
        self.history.push(step)
        self._logger.info("Onboarding step advanced", previous=previous.name, step=step.name)
        return step

    def _settle(self, generation: int) -> None:
        if generation != self._generation:
            self._logger.warning("Dropping late completion of a torn-down step")
            raise StepCancelled(
                get_string("generic_error", self.language), detail="step torn down"
            )
        self.busy = False

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a backend call under the busy flag, bound to the current step."""
        if self.busy:
            raise FlowBusy(
                get_string("generic_error", self.language), detail="call already in flight"
            )
        self.busy = True
        generation = self._generation
        token = correlation_id_var.set(self.flow_id)
        try:
            result = await operation()
        except Exception:
            self._settle(generation)
            raise
        finally:
            correlation_id_var.reset(token)
        self._settle(generation)
        return result

    def _require_confirmation(self, confirmed: bool, title_key: str, message_key: str) -> None:
        if not confirmed:
            raise SkipNotConfirmed(
                get_string(title_key, self.language), get_string(message_key, self.language)
            )

    # ------------------------------------------------------------------
    # Welcome
    # ------------------------------------------------------------------

    def submit_welcome(self, name: str, phone: str, language: Optional[str] = None) -> StepState:
        self._expect(Welcome)
        language = language or self.settings.default_language

        name_check = validate_name(name, language)
        if not name_check.valid:
            raise FieldValidationError("name", name_check.message)
        phone_check = validate_phone(phone, language)
        if not phone_check.valid:
            raise FieldValidationError("phone", phone_check.message)

        draft = OnboardingDraft(name=name.strip(), phone=phone_check.formatted, language=language)
        return self._advance(AccountCreation(draft=draft))

    def skip_welcome(self, confirmed: bool = False, language: Optional[str] = None) -> StepState:
        self._expect(Welcome)
        language = language or self.settings.default_language
        if not confirmed:
            raise SkipNotConfirmed(
                get_string("skip_welcome_title", language),
                get_string("skip_welcome_message", language),
            )
        self._logger.info("Welcome skipped, using placeholder profile")
        return self._advance(AccountCreation(draft=OnboardingDraft.placeholder(language)))

    # ------------------------------------------------------------------
    # Account creation
    # ------------------------------------------------------------------

    async def sign_up(self, email: str, password: str, confirm_password: str) -> StepState:
        step = self._expect(AccountCreation)
        language = step.draft.language

        email_check = validate_email(email, language)
        if not email_check.valid:
            raise FieldValidationError("email", email_check.message)
        if not evaluate_password(password, language).is_valid:
            raise FieldValidationError("password", get_string("password_weak", language))
        if password != confirm_password:
            raise FieldValidationError(
                "confirm_password", get_string("password_mismatch", language)
            )

        async def create() -> AccountIdentity:
            if self._orphan is not None and self._orphan.email == email_check.formatted:
                identity = self._orphan
                self._logger.info("Retrying profile creation", user_id=identity.user_id)
            else:
                identity = await self.accounts.sign_up_with_password(
                    step.draft, email_check.formatted, password
                )
            await self._finalize(identity, step.draft)
            return identity

        identity = await self._call(create)
        return self._advance(Permissions(identity=identity, draft=step.draft))

    async def continue_anonymously(self) -> StepState:
        step = self._expect(AccountCreation)

        async def create() -> AccountIdentity:
            identity = await self.accounts.create_anonymous_identity(step.draft)
            await self._finalize(identity, step.draft)
            return identity

        identity = await self._call(create)
        return self._advance(Permissions(identity=identity, draft=step.draft))

    async def start_social_sign_in(self, provider: str) -> str:
        """Return the URL of the external sign-in page for `provider`."""
        step = self._expect(AccountCreation)
        url = await self._call(
            lambda: self.accounts.start_oauth(provider, step.draft.language)
        )
        self._oauth_provider = provider
        return url

    async def handle_deep_link(self, url: str) -> Optional[StepState]:
        """
        Finish a social sign-in when the auth callback comes back.

        Links that are not the auth callback, or that arrive when no account
        is being created, are ignored and return None.
        """
        if not is_auth_callback(url, self.settings.deep_link_scheme):
            self._logger.debug("Ignoring deep link", url=url)
            return None
        if self.closed or not isinstance(self.current, AccountCreation):
            self._logger.info("Auth callback outside account creation, ignored")
            return None

        step = self.current
        provider = self._oauth_provider or "google"
        self._logger.info("Deep link received", provider=provider)

        async def create() -> AccountIdentity:
            identity = await self.accounts.complete_oauth(provider, step.draft.language)
            await self._finalize(identity, step.draft)
            return identity

        identity = await self._call(create)
        self._oauth_provider = None
        return self._advance(Permissions(identity=identity, draft=step.draft))

    async def _finalize(self, identity: AccountIdentity, draft: OnboardingDraft) -> None:
        try:
            await self.accounts.finalize_account(identity, draft)
        except ProfileCreationError:
            self._orphan = identity
            raise
        self._orphan = None

    # ------------------------------------------------------------------
    # Permissions
    # ------------------------------------------------------------------

    async def request_permissions(self) -> StepState:
        step = self._expect(Permissions)
        grants = await self._call(self.permission_requester.request)
        await self.local_store.set(PERMISSIONS_KEY, grants.model_dump_json())

        denied = grants.denied()
        if denied:
            self._denied_grants = grants
            self._logger.warning("Permissions denied", denied=denied)
            raise PermissionsDenied(get_string("permissions_denied", step.draft.language), denied)

        self._denied_grants = None
        draft = step.draft.model_copy(update={"permissions": grants})
        return self._advance(InviteContactPrompt(identity=step.identity, draft=draft))

    def skip_permissions(self, confirmed: bool = False) -> StepState:
        """Continue without protection. Keeps whatever was granted before."""
        step = self._expect(Permissions)
        self._require_confirmation(confirmed, "skip_permissions_title", "skip_permissions_message")

        grants = self._denied_grants or PermissionGrants()
        self._denied_grants = None
        self._logger.info("Permissions skipped", denied=grants.denied())
        draft = step.draft.model_copy(update={"permissions": grants})
        return self._advance(InviteContactPrompt(identity=step.identity, draft=draft))

    # ------------------------------------------------------------------
    # Trusted contact
    # ------------------------------------------------------------------

    def choose_add_contact(self) -> StepState:
        step = self._expect(InviteContactPrompt)
        return self._advance(InviteContactInfo(identity=step.identity, draft=step.draft))

    def skip_contact_invitation(self, confirmed: bool = False) -> StepState:
        step = self._expect(InviteContactPrompt)
        self._require_confirmation(confirmed, "skip_contact_title", "skip_contact_message")
        return self._advance(Completion(identity=step.identity, has_trusted_contact=False))

    async def submit_contact_info(
        self,
        name: str,
        relationship: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
    ) -> StepState:
        """
        Create the invitation and move to the share step.

        A local-only identity has no backend row for the invitation to
        reference: the contact is kept on the device with the draft and the
        flow goes straight to completion.
        """
        step = self._expect(InviteContactInfo)
        language = step.draft.language

        name_check = validate_contact_name(name, language)
        if not name_check.valid:
            raise FieldValidationError("name", name_check.message)
        relationship_check = validate_relationship(relationship, language)
        if not relationship_check.valid:
            raise FieldValidationError("relationship", relationship_check.message)
        if phone:
            phone_check = validate_phone(phone, language)
            if not phone_check.valid:
                raise FieldValidationError("phone", phone_check.message)
            phone = phone_check.formatted
        if email:
            email_check = validate_email(email, language)
            if not email_check.valid:
                raise FieldValidationError("email", email_check.message)
            email = email_check.formatted

        contact = TrustedContactRequest(
            name=name_check.formatted,
            relationship=relationship,
            phone=phone or None,
            email=email or None,
        )
        draft = step.draft.model_copy(update={"trusted_contact": contact})

        if step.identity.local_only:
            await self._call(
                lambda: self.local_store.set(ONBOARDING_DATA_KEY, draft.model_dump_json())
            )
            self._logger.warning(
                "Local-only identity, trusted contact kept on device",
                user_id=step.identity.user_id,
            )
            return self._advance(Completion(identity=step.identity, has_trusted_contact=False))

        record = await self._call(
            lambda: self.contacts.create_invitation(step.identity.user_id, contact, language)
        )

        return self._advance(
            ShareInvitation(
                identity=step.identity,
                draft=draft,
                invitation_code=record.invitation_code,
                contact_name=record.name,
                expires_at=record.invitation_expires_at,
            )
        )

    async def share_invitation(self, method: str, destination: Optional[str] = None) -> StepState:
        """Compose the share message for `method` and record the invitation as sent."""
        step = self._expect(ShareInvitation)
        language = step.draft.language
        ttl_hours = self.settings.invitation_ttl_hours
        destination = (destination or "").strip()

        if method == "sms":
            if not destination:
                raise FieldValidationError("phone", get_string("share_phone_missing", language))
            phone_check = validate_phone(destination, language)
            if not phone_check.valid:
                raise FieldValidationError("phone", phone_check.message)
            message = sms_message(
                step.invitation_code,
                phone_check.formatted,
                ttl_hours=ttl_hours,
                platform=self.platform,
                language=language,
            )
        elif method == "email":
            if not destination:
                raise FieldValidationError("email", get_string("share_email_missing", language))
            email_check = validate_email(destination, language)
            if not email_check.valid:
                raise FieldValidationError("email", email_check.message)
            message = email_message(
                step.invitation_code, email_check.formatted, ttl_hours=ttl_hours, language=language
            )
        elif method == "manual":
            message = manual_message(step.invitation_code, ttl_hours=ttl_hours, language=language)
        else:
            raise FieldValidationError("method", get_string("generic_error", language))

        await self._call(lambda: self.contacts.mark_invitation_sent(step.invitation_code, method))
        self.last_share = message
        return self._advance(
            Completion(identity=step.identity, has_trusted_contact=True, invitation_method=method)
        )

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete(self) -> StepState:
        """Persist the completion flag and hand over to the main shell."""
        step = self._expect(Completion)
        await self._call(lambda: self.accounts.mark_onboarding_complete(step.identity))

        self.auth_state.set_user(step.identity)
        self.auth_state.set_onboarding_complete(True)
        metrics.onboarding_completed.labels(
            trusted_contact="yes" if step.has_trusted_contact else "no"
        ).inc()
        self._logger.info(
            "Onboarding completed",
            user_id=step.identity.user_id,
            has_trusted_contact=step.has_trusted_contact,
        )
        return self._advance(MainShell(identity=step.identity))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def go_back(self) -> StepState:
        """Return to the previous step; everything the current step carried is discarded."""
        if self.closed:
            raise InvalidTransition(
                get_string("generic_error", self.language), detail="flow is closed"
            )
        if isinstance(self.current, MainShell):
            raise InvalidTransition(
                get_string("generic_error", self.language), detail="onboarding already completed"
            )
        self._teardown()
        left = self.current.name
        step = self.history.pop()
        self._logger.info("Onboarding step reverted", previous=left, step=step.name)
        return step

    def close(self) -> None:
        self._teardown()
        self.closed = True
        self._logger.info("Onboarding flow closed", step=self.current.name)

    def _teardown(self) -> None:
        self._generation += 1
        self.busy = False
        self._oauth_provider = None
        self._denied_grants = None
