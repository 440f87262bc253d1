"""SQLAlchemy-backed device-local key/value store."""

from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from parapluie.models import LocalFlag
from parapluie.storage.interfaces import LocalStoreIface

# Keys written by the onboarding flow
ONBOARDING_COMPLETED_KEY = "@parapluie/onboardingCompleted"
USER_ID_KEY = "@parapluie/userId"
INVITATION_CODE_KEY = "@parapluie/invitationCode"
PERMISSIONS_KEY = "@parapluie/permissions"
ONBOARDING_DATA_KEY = "@parapluie/onboardingData"

ALL_KEYS = (
    ONBOARDING_COMPLETED_KEY,
    USER_ID_KEY,
    INVITATION_CODE_KEY,
    PERMISSIONS_KEY,
    ONBOARDING_DATA_KEY,
)


class SqlLocalStore(LocalStoreIface):
    """Key/value rows in the local_flags table, scoped by namespace."""

    def __init__(
        self, session_maker: async_sessionmaker[AsyncSession], namespace: str = "default"
    ):
        self._session_maker = session_maker
        self.namespace = namespace

    async def get(self, key: str) -> Optional[str]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(LocalFlag.value).where(
                    LocalFlag.namespace == self.namespace, LocalFlag.key == key
                )
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self._session_maker() as session:
            await session.merge(LocalFlag(namespace=self.namespace, key=key, value=value))
            await session.commit()

    async def remove(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        async with self._session_maker() as session:
            await session.execute(
                delete(LocalFlag).where(
                    LocalFlag.namespace == self.namespace, LocalFlag.key.in_(keys)
                )
            )
            await session.commit()
