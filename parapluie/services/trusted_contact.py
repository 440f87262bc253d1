"""Trusted-contact invitations: creation, share tracking and acceptance."""

import random
from typing import Callable, Optional, Sequence

from parapluie.core import metrics
from parapluie.core.logging import get_logger
from parapluie.core.settings import Settings
from parapluie.core.ui_strings import get_string
from parapluie.onboarding.draft import TrustedContactRequest
from parapluie.onboarding.errors import InvitationError
from parapluie.onboarding.invitation_codes import generate_invitation_code
from parapluie.schemas import (
    ContactMethod,
    ContactPermissions,
    ContactStatus,
    TrustedContactCreate,
    TrustedContactRecord,
)
from parapluie.services.account import Clock, utcnow
from parapluie.storage.errors import BackendError, UniqueViolation
from parapluie.storage.interfaces import DataStoreIface, LocalStoreIface
from parapluie.storage.local import INVITATION_CODE_KEY

logger = get_logger(__name__)


class TrustedContactService:
    def __init__(
        self,
        store: DataStoreIface,
        local_store: LocalStoreIface,
        settings: Settings,
        *,
        clock: Clock = utcnow,
        choice: Callable[[Sequence[str]], str] = random.choice,
    ):
        self.store = store
        self.local_store = local_store
        self.settings = settings
        self._clock = clock
        self._choice = choice

    async def create_invitation(
        self,
        inviter_id: str,
        contact: TrustedContactRequest,
        language: Optional[str] = None,
    ) -> TrustedContactRecord:
        """
        Generate a code and insert the pending invitation.

        A unique violation on insert means another invitation grabbed the
        same code after our probe; a fresh code is drawn in that case.

        Raises:
            CodeGenerationExhausted: no free code was found.
            InvitationError: the insert failed.
        """
        max_inserts = self.settings.invitation_insert_max_attempts

        for insert_attempt in range(1, max_inserts + 1):
            code = await generate_invitation_code(
                self.store,
                length=self.settings.invitation_code_length,
                max_attempts=self.settings.invitation_code_max_attempts,
                choice=self._choice,
                language=language,
            )
            now = self._clock()
            row = TrustedContactCreate(
                senior_id=inviter_id,
                name=contact.name.strip(),
                relationship=contact.relationship,
                phone_number=contact.phone,
                email=contact.email,
                contact_status=ContactStatus.PENDING,
                invitation_code=code,
                invited_at=now,
                invitation_expires_at=now + self.settings.invitation_ttl,
                permissions=ContactPermissions(),
            )

            try:
                record = await self.store.insert_trusted_contact(row)
            except UniqueViolation:
                logger.warning(
                    "Invitation code taken at insert, regenerating",
                    attempt=insert_attempt,
                )
                continue
            except BackendError as e:
                logger.error("Invitation creation error", inviter_id=inviter_id, error=e.message)
                raise InvitationError(
                    get_string("invitation_failed", language), detail=e.message
                ) from e

            await self.local_store.set(INVITATION_CODE_KEY, code)
            metrics.invitations_created.inc()
            logger.info(
                "Invitation created",
                inviter_id=inviter_id,
                code=code,
                expires_at=row.invitation_expires_at.isoformat(),
            )
            return record

        raise InvitationError(
            get_string("invitation_failed", language),
            detail=f"code taken at insert {max_inserts} times",
        )

    async def mark_invitation_sent(self, code: str, method: ContactMethod) -> None:
        """Record when and how the code was shared. Failures are only logged."""
        try:
            await self.store.update_trusted_contact(
                code,
                {"invitation_sent_at": self._clock(), "preferred_contact_method": method},
            )
        except BackendError as e:
            logger.error("Error updating invitation status", code=code, error=e.message)

    async def accept_invitation(
        self, code: str, contact_user_id: str, language: Optional[str] = None
    ) -> TrustedContactRecord:
        """Link the contact's account to a pending invitation."""
        code = code.strip().upper()
        try:
            record = await self.store.find_trusted_contact_by_code(code)
        except BackendError as e:
            raise InvitationError(get_string("generic_error", language), detail=e.message) from e

        if record is None or record.contact_status != ContactStatus.PENDING:
            raise InvitationError(get_string("invitation_unknown", language))

        now = self._clock()
        try:
            if record.is_expired(now):
                await self.store.update_trusted_contact(
                    code, {"contact_status": ContactStatus.EXPIRED.value}
                )
                raise InvitationError(get_string("invitation_expired", language))

            updated = await self.store.update_trusted_contact(
                code,
                {
                    "contact_status": ContactStatus.ACCEPTED.value,
                    "accepted_at": now,
                    "contact_user_id": contact_user_id,
                },
            )
        except BackendError as e:
            raise InvitationError(get_string("generic_error", language), detail=e.message) from e

        if updated is None:
            raise InvitationError(get_string("invitation_unknown", language))
        logger.info("Invitation accepted", code=code, contact_user_id=contact_user_id)
        return updated

    async def get_cached_code(self) -> Optional[str]:
        return await self.local_store.get(INVITATION_CODE_KEY)
