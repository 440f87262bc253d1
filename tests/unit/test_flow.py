"""Unit tests for the onboarding state machine."""

import asyncio
import json

import pytest

from parapluie.onboarding.draft import PermissionGrants
from parapluie.onboarding.errors import (
    FieldValidationError,
    FlowBusy,
    InvalidTransition,
    OAuthCallbackError,
    PermissionsDenied,
    ProfileCreationError,
    SkipNotConfirmed,
    StepCancelled,
)
from parapluie.onboarding.flow import OnboardingFlow
from parapluie.onboarding.permissions import PermissionRequester, SimulatedPermissionRequester
from parapluie.onboarding.steps import (
    AccountCreation,
    Completion,
    InviteContactInfo,
    InviteContactPrompt,
    MainShell,
    Permissions,
    ShareInvitation,
    Welcome,
)
from parapluie.schemas import AuthSession
from parapluie.storage.errors import AuthError, ForeignKeyViolation
from parapluie.storage.local import (
    ONBOARDING_COMPLETED_KEY,
    ONBOARDING_DATA_KEY,
    PERMISSIONS_KEY,
)

PASSWORD = "Parapluie2024"


async def to_permissions(flow: OnboardingFlow) -> None:
    flow.submit_welcome("Marie", "5145551234")
    await flow.sign_up("marie@example.com", PASSWORD, PASSWORD)


async def to_contact_info(flow: OnboardingFlow) -> None:
    await to_permissions(flow)
    await flow.request_permissions()
    flow.choose_add_contact()


def make_flow(account_service, contact_service, auth_state, local_store, settings, requester):
    return OnboardingFlow(
        account_service, contact_service, auth_state, local_store, settings, requester
    )


@pytest.mark.unit
class TestWelcome:
    def test_starts_on_welcome(self, flow):
        assert isinstance(flow.current, Welcome)

    def test_valid_input_builds_draft(self, flow):
        step = flow.submit_welcome("  Marie ", "(514) 555-1234")

        assert isinstance(step, AccountCreation)
        assert step.draft.name == "Marie"
        assert step.draft.phone == "+15145551234"
        assert step.draft.language == "fr"

    def test_invalid_name_blocks(self, flow):
        with pytest.raises(FieldValidationError) as exc_info:
            flow.submit_welcome("M", "5145551234")
        assert exc_info.value.field == "name"
        assert isinstance(flow.current, Welcome)

    def test_invalid_phone_blocks(self, flow):
        with pytest.raises(FieldValidationError) as exc_info:
            flow.submit_welcome("Marie", "555-1234")
        assert exc_info.value.field == "phone"

    def test_skip_requires_confirmation(self, flow):
        with pytest.raises(SkipNotConfirmed) as exc_info:
            flow.skip_welcome()
        assert exc_info.value.title == "Êtes-vous sûr?"
        assert isinstance(flow.current, Welcome)

    def test_confirmed_skip_uses_placeholder(self, flow):
        step = flow.skip_welcome(confirmed=True)
        assert step.draft.name == "Utilisateur"
        assert step.draft.phone is None


@pytest.mark.unit
class TestAccountCreation:
    async def test_sign_up_moves_to_permissions(self, flow, backend):
        flow.submit_welcome("Marie", "5145551234")

        step = await flow.sign_up("marie@example.com", PASSWORD, PASSWORD)

        assert isinstance(step, Permissions)
        assert step.identity.email == "marie@example.com"
        assert step.identity.user_id in backend.profiles
        assert not flow.busy

    @pytest.mark.parametrize(
        "email, password, confirm, field",
        [
            ("not-an-email", PASSWORD, PASSWORD, "email"),
            ("marie@example.com", "parapluie", "parapluie", "password"),
            ("marie@example.com", PASSWORD, PASSWORD + "!", "confirm_password"),
        ],
    )
    async def test_field_errors(self, flow, backend, email, password, confirm, field):
        flow.submit_welcome("Marie", "5145551234")

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.sign_up(email, password, confirm)

        assert exc_info.value.field == field
        assert backend.calls == []

    async def test_profile_failure_keeps_step_and_retry_reuses_identity(self, flow, backend):
        flow.submit_welcome("Marie", "5145551234")
        backend.fail_always("insert_profile", ForeignKeyViolation("fk", "23503"))

        with pytest.raises(ProfileCreationError):
            await flow.sign_up("marie@example.com", PASSWORD, PASSWORD)
        assert isinstance(flow.current, AccountCreation)
        assert not flow.busy

        backend._always.clear()
        step = await flow.sign_up("marie@example.com", PASSWORD, PASSWORD)

        assert isinstance(step, Permissions)
        assert backend.count("sign_up_with_password") == 1
        assert step.identity.user_id in backend.profiles

    async def test_continue_anonymously(self, flow, backend):
        flow.skip_welcome(confirmed=True)

        step = await flow.continue_anonymously()

        assert isinstance(step, Permissions)
        assert step.identity.method == "anonymous"
        assert backend.profiles[step.identity.user_id].first_name == "Utilisateur"

    async def test_sign_up_before_welcome_is_rejected(self, flow):
        with pytest.raises(InvalidTransition):
            await flow.sign_up("marie@example.com", PASSWORD, PASSWORD)


@pytest.mark.unit
class TestSocialSignIn:
    async def test_callback_completes_sign_in(self, flow, backend):
        flow.submit_welcome("Marie", "5145551234")
        url = await flow.start_social_sign_in("google")
        assert "provider=google" in url

        backend.oauth_session = AuthSession(user_id="g-1", email="marie@gmail.com")
        step = await flow.handle_deep_link("parapluie://auth/callback#access_token=x")

        assert isinstance(step, Permissions)
        assert step.identity.method == "google"
        assert "g-1" in backend.profiles

    async def test_unrelated_link_is_ignored(self, flow, backend):
        flow.submit_welcome("Marie", "5145551234")

        assert await flow.handle_deep_link("parapluie://home") is None
        assert isinstance(flow.current, AccountCreation)
        assert backend.count("get_session") == 0

    async def test_callback_without_session_is_an_error(self, flow, backend):
        flow.submit_welcome("Marie", "5145551234")
        await flow.start_social_sign_in("google")

        with pytest.raises(OAuthCallbackError):
            await flow.handle_deep_link("parapluie://auth/callback")

        assert isinstance(flow.current, AccountCreation)
        # No automatic retry
        assert backend.count("get_session") == 1

    async def test_callback_outside_account_creation_is_ignored(self, flow):
        assert await flow.handle_deep_link("parapluie://auth/callback") is None


@pytest.mark.unit
class TestPermissions:
    async def test_granted_permissions_are_cached(self, flow, local_store):
        await to_permissions(flow)

        step = await flow.request_permissions()

        assert isinstance(step, InviteContactPrompt)
        assert step.draft.permissions == PermissionGrants.all_granted()
        assert json.loads(local_store.data[PERMISSIONS_KEY])["call_protection"] is True

    async def test_denied_permissions_offer_retry_or_skip(
        self, account_service, contact_service, auth_state, local_store, settings
    ):
        partial = PermissionGrants(call_protection=True, notifications=True)
        flow = make_flow(
            account_service,
            contact_service,
            auth_state,
            local_store,
            settings,
            SimulatedPermissionRequester(partial),
        )
        await to_permissions(flow)

        with pytest.raises(PermissionsDenied) as exc_info:
            await flow.request_permissions()
        assert exc_info.value.denied == ["sms_protection", "location_alerts"]
        assert isinstance(flow.current, Permissions)

        with pytest.raises(SkipNotConfirmed):
            flow.skip_permissions()

        step = flow.skip_permissions(confirmed=True)
        assert isinstance(step, InviteContactPrompt)
        assert step.draft.permissions == partial


@pytest.mark.unit
class TestTrustedContact:
    async def test_skip_goes_to_completion(self, flow):
        await to_permissions(flow)
        await flow.request_permissions()

        with pytest.raises(SkipNotConfirmed) as exc_info:
            flow.skip_contact_invitation()
        assert exc_info.value.user_message == (
            "Une personne de confiance peut vous aider en cas d'arnaque."
        )

        step = flow.skip_contact_invitation(confirmed=True)
        assert isinstance(step, Completion)
        assert not step.has_trusted_contact

    async def test_contact_info_validation(self, flow, backend):
        await to_contact_info(flow)

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.submit_contact_info("J", "fils")
        assert exc_info.value.field == "name"

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.submit_contact_info("Jean Dubois", "")
        assert exc_info.value.field == "relationship"
        assert backend.count("insert_trusted_contact") == 0

    async def test_contact_phone_and_email_are_validated(self, flow, backend):
        await to_contact_info(flow)

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.submit_contact_info("Jean Dubois", "fils", phone="555-12")
        assert exc_info.value.field == "phone"

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.submit_contact_info("Jean Dubois", "fils", email="jean@")
        assert exc_info.value.field == "email"
        assert backend.count("insert_trusted_contact") == 0

        step = await flow.submit_contact_info(
            "Jean Dubois", "fils", phone="514 555 9876", email=" jean@example.com "
        )
        assert step.draft.trusted_contact.phone == "+15145559876"
        assert step.draft.trusted_contact.email == "jean@example.com"

    async def test_local_identity_keeps_contact_on_device(self, flow, backend, local_store):
        backend.fail_next("sign_in_anonymously", AuthError("Anonymous sign-ins are disabled"))
        flow.skip_welcome(confirmed=True)
        await flow.continue_anonymously()
        await flow.request_permissions()
        flow.choose_add_contact()

        step = await flow.submit_contact_info("Jean Dubois", "fils")

        assert isinstance(step, Completion)
        assert not step.has_trusted_contact
        assert backend.count("insert_trusted_contact") == 0
        stored = json.loads(local_store.data[ONBOARDING_DATA_KEY])
        assert stored["trusted_contact"]["name"] == "Jean Dubois"
        assert stored["trusted_contact"]["relationship"] == "fils"

    async def test_invitation_reaches_share_step(self, flow, backend):
        await to_contact_info(flow)

        step = await flow.submit_contact_info("Jean Dubois", "fils")

        assert isinstance(step, ShareInvitation)
        assert step.invitation_code in backend.trusted_contacts
        assert step.contact_name == "Jean Dubois"
        assert step.draft.trusted_contact.relationship == "fils"

    async def test_share_by_sms(self, flow, backend):
        await to_contact_info(flow)
        share_step = await flow.submit_contact_info("Jean Dubois", "fils")

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.share_invitation("sms")
        assert exc_info.value.user_message == "Entrez un numéro de téléphone"

        step = await flow.share_invitation("sms", "514 555 9876")

        assert isinstance(step, Completion)
        assert step.has_trusted_contact
        assert step.invitation_method == "sms"
        assert flow.last_share.url.startswith("sms:+15145559876?body=")
        record = backend.trusted_contacts[share_step.invitation_code]
        assert record.preferred_contact_method == "sms"
        assert record.invitation_sent_at is not None

    async def test_share_by_email_requires_address(self, flow):
        await to_contact_info(flow)
        await flow.submit_contact_info("Jean Dubois", "fils")

        with pytest.raises(FieldValidationError) as exc_info:
            await flow.share_invitation("email", "jean@")
        assert exc_info.value.field == "email"

        step = await flow.share_invitation("email", "jean@example.com")
        assert step.invitation_method == "email"
        assert flow.last_share.subject == "Invitation Parapluie"


@pytest.mark.unit
class TestCompletion:
    async def test_complete_switches_to_main_shell(self, flow, auth_state, local_store, backend):
        await to_permissions(flow)
        await flow.request_permissions()
        flow.skip_contact_invitation(confirmed=True)

        step = await flow.complete()

        assert isinstance(step, MainShell)
        assert local_store.data[ONBOARDING_COMPLETED_KEY] == "true"
        assert auth_state.snapshot.has_completed_onboarding
        assert auth_state.snapshot.user == step.identity
        assert backend.completions[step.identity.user_id].onboarding_completed

    async def test_main_shell_is_one_way(self, flow):
        await to_permissions(flow)
        await flow.request_permissions()
        flow.skip_contact_invitation(confirmed=True)
        await flow.complete()

        with pytest.raises(InvalidTransition):
            flow.go_back()


@pytest.mark.unit
class TestNavigation:
    def test_back_discards_later_state(self, flow):
        flow.submit_welcome("Marie", "5145551234")

        step = flow.go_back()
        assert isinstance(step, Welcome)

        step = flow.submit_welcome("Marc", "5145550000")
        assert step.draft.name == "Marc"
        assert len(flow.history.stack) == 2

    def test_back_on_first_step_stays(self, flow):
        assert isinstance(flow.go_back(), Welcome)

    def test_closed_flow_rejects_actions(self, flow):
        flow.close()
        with pytest.raises(InvalidTransition):
            flow.submit_welcome("Marie", "5145551234")


class BlockingRequester(PermissionRequester):
    """Permission prompt that stays open until released."""

    def __init__(self):
        self.release = asyncio.Event()

    async def request(self) -> PermissionGrants:
        await self.release.wait()
        return PermissionGrants.all_granted()


@pytest.mark.unit
class TestInFlightCalls:
    @pytest.fixture
    def requester(self) -> BlockingRequester:
        return BlockingRequester()

    @pytest.fixture
    def blocking_flow(
        self, account_service, contact_service, auth_state, local_store, settings, requester
    ) -> OnboardingFlow:
        return make_flow(
            account_service, contact_service, auth_state, local_store, settings, requester
        )

    async def test_second_submit_while_busy(self, blocking_flow, requester):
        await to_permissions(blocking_flow)
        first = asyncio.create_task(blocking_flow.request_permissions())
        await asyncio.sleep(0)

        assert blocking_flow.busy
        with pytest.raises(FlowBusy):
            await blocking_flow.request_permissions()

        requester.release.set()
        step = await first
        assert isinstance(step, InviteContactPrompt)
        assert not blocking_flow.busy

    async def test_late_completion_after_back_is_dropped(
        self, blocking_flow, requester, local_store
    ):
        await to_permissions(blocking_flow)
        pending = asyncio.create_task(blocking_flow.request_permissions())
        await asyncio.sleep(0)

        step = blocking_flow.go_back()
        assert isinstance(step, AccountCreation)
        assert not blocking_flow.busy

        requester.release.set()
        with pytest.raises(StepCancelled):
            await pending

        assert isinstance(blocking_flow.current, AccountCreation)
        assert PERMISSIONS_KEY not in local_store.data

    async def test_late_completion_after_close_is_dropped(self, blocking_flow, requester):
        await to_permissions(blocking_flow)
        pending = asyncio.create_task(blocking_flow.request_permissions())
        await asyncio.sleep(0)

        blocking_flow.close()
        requester.release.set()

        with pytest.raises(StepCancelled):
            await pending
        assert isinstance(blocking_flow.current, Permissions)
