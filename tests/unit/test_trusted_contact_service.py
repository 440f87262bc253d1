"""Unit tests for trusted-contact invitations."""

from datetime import timedelta

import pytest

from parapluie.onboarding.draft import TrustedContactRequest
from parapluie.onboarding.errors import CodeGenerationExhausted, InvitationError
from parapluie.schemas import ContactStatus
from parapluie.services.trusted_contact import TrustedContactService
from parapluie.storage.errors import BackendError
from parapluie.storage.local import INVITATION_CODE_KEY
from tests.conftest import NOW, SequenceChoice


@pytest.fixture
def contact() -> TrustedContactRequest:
    return TrustedContactRequest(name="Jean Dubois", relationship="fils")


def service_with_codes(backend, local_store, settings, clock, *codes):
    return TrustedContactService(
        backend, local_store, settings, clock=clock, choice=SequenceChoice(*codes)
    )


@pytest.mark.unit
class TestCreateInvitation:
    async def test_inserts_pending_invitation(
        self, backend, local_store, settings, clock, contact
    ):
        service = service_with_codes(backend, local_store, settings, clock, "K7PM")

        record = await service.create_invitation("user-1", contact)

        assert record.invitation_code == "K7PM"
        assert record.senior_id == "user-1"
        assert record.name == "Jean Dubois"
        assert record.relationship == "fils"
        assert record.contact_status == ContactStatus.PENDING
        assert record.invited_at == NOW
        assert record.invitation_expires_at == NOW + timedelta(hours=24)
        assert local_store.data[INVITATION_CODE_KEY] == "K7PM"

    async def test_conservative_permissions(self, backend, local_store, settings, clock, contact):
        service = service_with_codes(backend, local_store, settings, clock, "K7PM")

        record = await service.create_invitation("user-1", contact)

        assert record.permissions.model_dump() == {
            "alert_level": "high",
            "can_view_alerts": True,
            "can_receive_notifications": True,
            "can_view_location": False,
            "can_access_calendar": False,
            "can_modify_settings": False,
        }

    async def test_unique_violation_regenerates_code(
        self, backend, local_store, settings, clock, contact
    ):
        # Another invitation lands with the same code between probe and insert
        service = service_with_codes(backend, local_store, settings, clock, "AAAA", "BBBB")
        original_insert = backend.insert_trusted_contact

        async def racing_insert(row):
            if row.invitation_code == "AAAA" and "AAAA" not in backend.trusted_contacts:
                await original_insert(row.model_copy(update={"senior_id": "someone-else"}))
            return await original_insert(row)

        backend.insert_trusted_contact = racing_insert

        record = await service.create_invitation("user-1", contact)

        assert record.invitation_code == "BBBB"
        assert backend.trusted_contacts["AAAA"].senior_id == "someone-else"
        assert local_store.data[INVITATION_CODE_KEY] == "BBBB"

    async def test_exhausted_code_generation(self, backend, local_store, settings, clock, contact):
        backend.existing_codes = {"ZZZZ"}
        service = service_with_codes(backend, local_store, settings, clock, *["ZZZZ"] * 10)

        with pytest.raises(CodeGenerationExhausted):
            await service.create_invitation("user-1", contact)
        assert backend.count("insert_trusted_contact") == 0
        assert INVITATION_CODE_KEY not in local_store.data

    async def test_insert_failure(self, backend, local_store, settings, clock, contact):
        backend.fail_next("insert_trusted_contact", BackendError("violates foreign key", "23503"))
        service = service_with_codes(backend, local_store, settings, clock, "K7PM")

        with pytest.raises(InvitationError) as exc_info:
            await service.create_invitation("temp-user-1", contact)
        assert exc_info.value.user_message == "Erreur lors de la création de l'invitation"


@pytest.mark.unit
class TestInvitationLifecycle:
    @pytest.fixture
    async def code(self, backend, local_store, settings, clock, contact) -> str:
        service = service_with_codes(backend, local_store, settings, clock, "K7PM")
        record = await service.create_invitation("user-1", contact)
        return record.invitation_code

    async def test_mark_sent(self, contact_service, backend, code):
        await contact_service.mark_invitation_sent(code, "sms")

        record = backend.trusted_contacts[code]
        assert record.invitation_sent_at == NOW
        assert record.preferred_contact_method == "sms"

    async def test_mark_sent_failure_is_logged_only(self, contact_service, backend, code):
        backend.fail_next("update_trusted_contact", BackendError("timeout"))
        await contact_service.mark_invitation_sent(code, "email")
        assert backend.trusted_contacts[code].invitation_sent_at is None

    async def test_accept(self, contact_service, code):
        record = await contact_service.accept_invitation(code.lower(), "contact-9")

        assert record.contact_status == ContactStatus.ACCEPTED
        assert record.accepted_at == NOW
        assert record.contact_user_id == "contact-9"

    async def test_accept_twice_fails(self, contact_service, code):
        await contact_service.accept_invitation(code, "contact-9")
        with pytest.raises(InvitationError):
            await contact_service.accept_invitation(code, "contact-10")

    async def test_accept_unknown_code(self, contact_service):
        with pytest.raises(InvitationError) as exc_info:
            await contact_service.accept_invitation("NOPE", "contact-9")
        assert exc_info.value.user_message == "Code d'invitation invalide"

    async def test_accept_expired_marks_expired(self, contact_service, backend, clock, code):
        clock.advance(timedelta(hours=24, seconds=1))

        with pytest.raises(InvitationError) as exc_info:
            await contact_service.accept_invitation(code, "contact-9")

        assert exc_info.value.user_message == "Ce code d'invitation a expiré"
        assert backend.trusted_contacts[code].contact_status == ContactStatus.EXPIRED

    async def test_cached_code(self, contact_service, code):
        assert await contact_service.get_cached_code() == code
