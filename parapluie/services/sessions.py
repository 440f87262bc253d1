"""Registry of live onboarding sessions, one per device."""

import asyncio
import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from parapluie.core.logging import get_logger
from parapluie.core.settings import Settings
from parapluie.onboarding.auth_state import AuthState
from parapluie.onboarding.flow import OnboardingFlow
from parapluie.onboarding.permissions import PermissionRequester, SimulatedPermissionRequester
from parapluie.onboarding.root import RootController
from parapluie.services.account import AccountService, Clock, Sleep, utcnow
from parapluie.services.trusted_contact import TrustedContactService
from parapluie.storage.errors import BackendError
from parapluie.storage.interfaces import BackendIface
from parapluie.storage.local import SqlLocalStore

logger = get_logger(__name__)


BackendFactory = Callable[[Settings], Awaitable[BackendIface]]
PermissionRequesterFactory = Callable[[], PermissionRequester]


@dataclass
class OnboardingSession:
    id: str
    device_id: str
    backend: BackendIface
    auth_state: AuthState
    root: RootController
    flow: OnboardingFlow
    last_seen: datetime


class SessionRegistry:
    """Creates, looks up and closes onboarding sessions."""

    def __init__(
        self,
        settings: Settings,
        backend_factory: BackendFactory,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        permission_requester_factory: PermissionRequesterFactory = SimulatedPermissionRequester,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utcnow,
        choice: Callable[[Sequence[str]], str] = random.choice,
    ):
        self.settings = settings
        self.backend_factory = backend_factory
        self.session_maker = session_maker
        self.permission_requester_factory = permission_requester_factory
        self._sleep = sleep
        self._clock = clock
        self._choice = choice
        self._sessions: dict[str, OnboardingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(
        self, device_id: Optional[str] = None, platform: str = "android"
    ) -> OnboardingSession:
        """Build the collaborators for a device and restore its persisted state."""
        await self.evict_idle()

        session_id = str(uuid.uuid4())
        device_id = device_id or session_id

        backend = await self.backend_factory(self.settings)
        local_store = SqlLocalStore(self.session_maker, namespace=device_id)
        auth_state = AuthState()
        root = RootController(auth_state, backend, local_store)
        await root.bootstrap()

        accounts = AccountService(
            backend,
            backend,
            local_store,
            self.settings,
            sleep=self._sleep,
            clock=self._clock,
        )
        contacts = TrustedContactService(
            backend, local_store, self.settings, clock=self._clock, choice=self._choice
        )
        flow = OnboardingFlow(
            accounts,
            contacts,
            auth_state,
            local_store,
            self.settings,
            self.permission_requester_factory(),
            flow_id=session_id,
            platform=platform,
        )

        session = OnboardingSession(
            id=session_id,
            device_id=device_id,
            backend=backend,
            auth_state=auth_state,
            root=root,
            flow=flow,
            last_seen=self._clock(),
        )
        self._sessions[session_id] = session
        logger.info(
            "Onboarding session opened",
            session_id=session_id,
            device_id=device_id,
            view=root.current_view(),
        )
        return session

    def get(self, session_id: str) -> Optional[OnboardingSession]:
        """Look a session up and mark it as active."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen = self._clock()
        return session

    async def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.flow.close()
        session.root.close()
        try:
            await session.backend.aclose()
        except BackendError as e:
            logger.warning("Error closing backend client", session_id=session_id, error=e.message)
        logger.info("Onboarding session closed", session_id=session_id)
        return True

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

    async def evict_idle(self) -> int:
        """Close sessions not used for longer than the idle TTL. Returns how many."""
        cutoff = self._clock() - self.settings.session_idle_ttl
        idle = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_seen <= cutoff
        ]
        for session_id in idle:
            await self.close(session_id)
        if idle:
            logger.info("Idle onboarding sessions evicted", count=len(idle))
        return len(idle)
