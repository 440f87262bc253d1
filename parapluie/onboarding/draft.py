"""In-session onboarding data, accumulated screen by screen."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from parapluie.core.ui_strings import get_string
from parapluie.schemas import ContactMethod


class PermissionGrants(BaseModel):
    """Device permissions granted during onboarding."""

    call_protection: bool = False
    sms_protection: bool = False
    location_alerts: bool = False
    notifications: bool = False

    @classmethod
    def all_granted(cls) -> "PermissionGrants":
        return cls(
            call_protection=True,
            sms_protection=True,
            location_alerts=True,
            notifications=True,
        )

    def denied(self) -> list[str]:
        return [name for name, granted in self.model_dump().items() if not granted]


class TrustedContactRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    relationship: str
    phone: Optional[str] = None
    email: Optional[str] = None
    preferred_method: ContactMethod = "app"


class OnboardingDraft(BaseModel):
    """
    Everything the user entered so far.

    Never persisted as an entity: it is transcribed into the profile,
    security settings, stats and trusted-contact rows at the end of the flow.
    """

    name: str
    phone: Optional[str] = None
    language: Literal["fr", "en"] = "fr"
    permissions: PermissionGrants = Field(default_factory=PermissionGrants)
    trusted_contact: Optional[TrustedContactRequest] = None

    @classmethod
    def placeholder(cls, language: Literal["fr", "en"] = "fr") -> "OnboardingDraft":
        """Defaults used when the user skips name and phone entry."""
        return cls(name=get_string("placeholder_name", language), phone=None, language=language)
