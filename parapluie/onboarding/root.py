"""Root controller: decides whether the onboarding flow or the main shell is shown."""

from typing import Literal

from parapluie.core.logging import get_logger
from parapluie.onboarding.auth_state import AuthSnapshot, AuthState
from parapluie.schemas import AccountIdentity
from parapluie.storage.errors import BackendError
from parapluie.storage.interfaces import AuthBackendIface, LocalStoreIface
from parapluie.storage.local import ALL_KEYS, ONBOARDING_COMPLETED_KEY

logger = get_logger(__name__)

RootView = Literal["loading", "onboarding", "main"]


def select_view(snapshot: AuthSnapshot) -> RootView:
    if snapshot.is_loading:
        return "loading"
    if not snapshot.has_completed_onboarding:
        return "onboarding"
    if snapshot.is_authenticated:
        return "main"
    return "onboarding"


class RootController:
    def __init__(
        self,
        auth_state: AuthState,
        auth_backend: AuthBackendIface,
        local_store: LocalStoreIface,
    ):
        self.auth_state = auth_state
        self.auth_backend = auth_backend
        self.local_store = local_store
        self.view: RootView = select_view(auth_state.snapshot)
        self._unsubscribe = auth_state.subscribe(self._on_change)

    def _on_change(self, snapshot: AuthSnapshot) -> None:
        view = select_view(snapshot)
        if view != self.view:
            logger.info("Root view switched", previous=self.view, view=view)
        self.view = view

    def current_view(self) -> RootView:
        return self.view

    async def bootstrap(self) -> None:
        """Restore persisted flags and the backend session on start-up."""
        try:
            if await self.local_store.get(ONBOARDING_COMPLETED_KEY) == "true":
                self.auth_state.set_onboarding_complete(True)

            session = await self.auth_backend.get_session()
            if session is not None:
                logger.info("Existing session found", user_id=session.user_id)
                self.auth_state.set_user(
                    AccountIdentity(
                        user_id=session.user_id,
                        method="anonymous" if session.is_anonymous else "email",
                        email=session.email,
                    )
                )
        except BackendError as e:
            logger.error("Failed to check auth state", error=str(e))
        finally:
            self.auth_state.set_loading(False)

    async def sign_out(self) -> None:
        """Sign out of the backend and forget every local flag."""
        try:
            await self.auth_backend.sign_out()
        except BackendError as e:
            logger.error("Sign out failed", error=str(e))
            self.auth_state.set_error(e.message)
            raise

        await self.local_store.multi_remove(ALL_KEYS)
        self.auth_state.set_onboarding_complete(False)
        self.auth_state.logout()

    def close(self) -> None:
        self._unsubscribe()
