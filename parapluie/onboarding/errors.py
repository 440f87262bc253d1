"""Onboarding error taxonomy.

Every error carries the localized message shown to the user. Field
validation errors also name the field they belong to so the caller can
render them inline.
"""

from typing import Optional


class OnboardingError(Exception):
    """Base class for onboarding failures surfaced to the user."""

    code = "onboarding_error"

    def __init__(self, user_message: str, *, detail: Optional[str] = None):
        super().__init__(detail or user_message)
        self.user_message = user_message
        self.detail = detail


class FieldValidationError(OnboardingError):
    """Inline, field-level validation failure. Blocks the transition."""

    code = "validation_error"

    def __init__(self, field: str, user_message: str):
        super().__init__(user_message)
        self.field = field


class AccountCreationError(OnboardingError):
    """The auth identity could not be created."""

    code = "account_creation_failed"


class ProfileCreationError(OnboardingError):
    """The profile insert failed for good. The auth identity is left orphaned."""

    code = "profile_creation_failed"


class InvitationError(OnboardingError):
    """The trusted-contact invitation could not be created or updated."""

    code = "invitation_failed"


class CodeGenerationExhausted(InvitationError):
    """Every generated invitation code collided with an existing one."""

    code = "code_generation_exhausted"


class OAuthCallbackError(OnboardingError):
    """A matched auth callback produced no session."""

    code = "oauth_callback_failed"


class PermissionsDenied(OnboardingError):
    """Some device permissions were refused. The user may retry or skip."""

    code = "permissions_denied"

    def __init__(self, user_message: str, denied: list[str]):
        super().__init__(user_message, detail=f"denied: {', '.join(denied)}")
        self.denied = denied


class SkipNotConfirmed(OnboardingError):
    """A skip was requested without the confirmation dialog being accepted."""

    code = "skip_not_confirmed"

    def __init__(self, title: str, user_message: str):
        super().__init__(user_message)
        self.title = title


class InvalidTransition(OnboardingError):
    """The requested action does not apply to the current step."""

    code = "invalid_transition"


class FlowBusy(OnboardingError):
    """Another backend call is already in flight for this flow."""

    code = "flow_busy"


class StepCancelled(OnboardingError):
    """The step was torn down while its backend call was in flight."""

    code = "step_cancelled"
