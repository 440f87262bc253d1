"""
Onboarding step states.

One variant per screen, each carrying exactly the fields that screen needs,
so a later step can never read something an earlier step did not set.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Optional, Union

from parapluie.onboarding.draft import OnboardingDraft
from parapluie.schemas import AccountIdentity, ContactMethod


@dataclass(frozen=True)
class Welcome:
    name: ClassVar[str] = "welcome"


@dataclass(frozen=True)
class AccountCreation:
    name: ClassVar[str] = "account_creation"
    draft: OnboardingDraft


@dataclass(frozen=True)
class Permissions:
    name: ClassVar[str] = "permissions"
    identity: AccountIdentity
    draft: OnboardingDraft


@dataclass(frozen=True)
class InviteContactPrompt:
    name: ClassVar[str] = "invite_contact_prompt"
    identity: AccountIdentity
    draft: OnboardingDraft


@dataclass(frozen=True)
class InviteContactInfo:
    name: ClassVar[str] = "invite_contact_info"
    identity: AccountIdentity
    draft: OnboardingDraft


@dataclass(frozen=True)
class ShareInvitation:
    name: ClassVar[str] = "share_invitation"
    identity: AccountIdentity
    draft: OnboardingDraft
    invitation_code: str
    contact_name: str
    expires_at: datetime


@dataclass(frozen=True)
class Completion:
    name: ClassVar[str] = "completion"
    identity: AccountIdentity
    has_trusted_contact: bool
    invitation_method: Optional[ContactMethod] = None


@dataclass(frozen=True)
class MainShell:
    name: ClassVar[str] = "main_shell"
    identity: AccountIdentity


StepState = Union[
    Welcome,
    AccountCreation,
    Permissions,
    InviteContactPrompt,
    InviteContactInfo,
    ShareInvitation,
    Completion,
    MainShell,
]


@dataclass
class StepHistory:
    """Back stack of visited steps. The last entry is the current step."""

    stack: list[StepState] = field(default_factory=lambda: [Welcome()])

    @property
    def current(self) -> StepState:
        return self.stack[-1]

    def push(self, step: StepState) -> None:
        self.stack.append(step)

    def pop(self) -> StepState:
        """Drop the current step and everything it carried; return the previous one."""
        if len(self.stack) > 1:
            self.stack.pop()
        return self.current


def describe_step(step: StepState) -> dict[str, Any]:
    """Plain-dict view of a step, tagged with its name."""
    data: dict[str, Any] = {"step": step.name}
    for key, value in asdict(step).items():
        if key == "draft":
            data[key] = step.draft.model_dump()
        elif key == "identity":
            data[key] = step.identity.model_dump()
        elif isinstance(value, datetime):
            data[key] = value.isoformat()
        else:
            data[key] = value
    return data
