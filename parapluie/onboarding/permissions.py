"""Device permission requests."""

from abc import ABC, abstractmethod

from parapluie.onboarding.draft import PermissionGrants


class PermissionRequester(ABC):
    """Asks the device for the protection permissions."""

    @abstractmethod
    async def request(self) -> PermissionGrants:
        pass


class SimulatedPermissionRequester(PermissionRequester):
    """Grants everything, or the fixed set it was built with."""

    def __init__(self, grants: PermissionGrants | None = None):
        self.grants = grants or PermissionGrants.all_granted()

    async def request(self) -> PermissionGrants:
        return self.grants
