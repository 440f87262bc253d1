"""Process-wide authentication and onboarding state.

The state is only changed through the enumerated mutations below. Every
mutation notifies the subscribers (the root controller first of all).
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional

from parapluie.core.logging import get_logger
from parapluie.schemas import AccountIdentity

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthSnapshot:
    user: Optional[AccountIdentity] = None
    is_authenticated: bool = False
    is_loading: bool = True
    has_completed_onboarding: bool = False
    error: Optional[str] = None


Listener = Callable[[AuthSnapshot], None]


class AuthState:
    """Single container for the auth/onboarding flags."""

    def __init__(self, initial: Optional[AuthSnapshot] = None):
        self._snapshot = initial or AuthSnapshot()
        self._listeners: list[Listener] = []

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, action: str, **changes) -> None:
        self._snapshot = replace(self._snapshot, **changes)
        logger.debug("Auth state changed", action=action)
        for listener in list(self._listeners):
            listener(self._snapshot)

    # Mutations

    def set_user(self, user: AccountIdentity) -> None:
        self._commit(
            "set_user", user=user, is_authenticated=True, is_loading=False, error=None
        )

    def set_loading(self, loading: bool) -> None:
        self._commit("set_loading", is_loading=loading)

    def set_onboarding_complete(self, complete: bool) -> None:
        self._commit("set_onboarding_complete", has_completed_onboarding=complete)

    def logout(self) -> None:
        self._commit(
            "logout", user=None, is_authenticated=False, is_loading=False, error=None
        )

    def set_error(self, message: str) -> None:
        self._commit("set_error", error=message, is_loading=False)

    def clear_error(self) -> None:
        self._commit("clear_error", error=None)
