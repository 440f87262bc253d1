"""Test configuration and fixtures for Parapluie tests."""

import os
from datetime import datetime, timedelta, timezone

# Settings are read from the environment; keep tests off any real backend
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOCAL_STORE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("METRICS_ENABLED", "true")

import pytest  # noqa: E402

from parapluie.core.settings import Settings, reset_settings_cache  # noqa: E402
from parapluie.onboarding.auth_state import AuthState  # noqa: E402
from parapluie.onboarding.flow import OnboardingFlow  # noqa: E402
from parapluie.services.account import AccountService  # noqa: E402
from parapluie.services.trusted_contact import TrustedContactService  # noqa: E402
from parapluie.storage.session import (  # noqa: E402
    create_local_engine,
    get_sessionmaker,
    init_local_store,
)
from tests.fakes.backend import FakeBackend, InMemoryLocalStore  # noqa: E402

NOW = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers the requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class SequenceChoice:
    """Replaces random.choice: yields the characters of the given codes in order."""

    def __init__(self, *codes: str):
        self._chars = list("".join(codes))

    def __call__(self, alphabet):
        return self._chars.pop(0)


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(app_env="test", local_store_url="sqlite+aiosqlite://")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def local_store() -> InMemoryLocalStore:
    return InMemoryLocalStore()


@pytest.fixture
def auth_state() -> AuthState:
    return AuthState()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def account_service(backend, local_store, settings, sleep, clock) -> AccountService:
    return AccountService(backend, backend, local_store, settings, sleep=sleep, clock=clock)


@pytest.fixture
def contact_service(backend, local_store, settings, clock) -> TrustedContactService:
    return TrustedContactService(backend, local_store, settings, clock=clock)


@pytest.fixture
def flow(account_service, contact_service, auth_state, local_store, settings) -> OnboardingFlow:
    return OnboardingFlow(
        account_service,
        contact_service,
        auth_state,
        local_store,
        settings,
        flow_id="flow-test",
    )


@pytest.fixture
async def session_maker():
    """Async session maker over a fresh in-memory local store."""
    engine = create_local_engine("sqlite+aiosqlite://")
    await init_local_store(engine)
    yield get_sessionmaker(engine)
    await engine.dispose()
