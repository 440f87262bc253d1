"""Onboarding flow API endpoints, one session per device."""

from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import APIRouter, HTTPException, status

from parapluie.core.logging import get_logger
from parapluie.dependencies import RegistryDep, SessionDep
from parapluie.onboarding.errors import (
    AccountCreationError,
    FieldValidationError,
    FlowBusy,
    InvalidTransition,
    InvitationError,
    OAuthCallbackError,
    OnboardingError,
    PermissionsDenied,
    ProfileCreationError,
    SkipNotConfirmed,
    StepCancelled,
)
from parapluie.onboarding.steps import describe_step
from parapluie.schemas.onboarding import (
    AuthCallbackRequest,
    ContactInfoRequest,
    OAuthRequest,
    SessionCreate,
    SessionResponse,
    ShareMessageResponse,
    ShareRequest,
    SignUpRequest,
    SkipRequest,
    WelcomeRequest,
)
from parapluie.services.sessions import OnboardingSession

logger = get_logger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

_CONFLICTS = (SkipNotConfirmed, PermissionsDenied, InvalidTransition, FlowBusy, StepCancelled)
_UPSTREAM = (AccountCreationError, ProfileCreationError, InvitationError, OAuthCallbackError)


def _error_detail(error: OnboardingError) -> dict:
    detail: dict = {"code": error.code, "message": error.user_message}
    if isinstance(error, FieldValidationError):
        detail["field"] = error.field
    elif isinstance(error, SkipNotConfirmed):
        detail["title"] = error.title
    elif isinstance(error, PermissionsDenied):
        detail["denied"] = error.denied
    return detail


def _status_for(error: OnboardingError) -> int:
    if isinstance(error, FieldValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, _CONFLICTS):
        return status.HTTP_409_CONFLICT
    if isinstance(error, _UPSTREAM):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


@contextmanager
def onboarding_errors() -> Iterator[None]:
    """Translate onboarding errors into HTTP errors carrying the localized message."""
    try:
        yield
    except OnboardingError as e:
        code = _status_for(e)
        logger.info(
            "Onboarding action rejected",
            error_code=e.code,
            status_code=code,
            detail=e.detail,
        )
        raise HTTPException(status_code=code, detail=_error_detail(e)) from e


def _session_response(
    session: OnboardingSession, auth_url: Optional[str] = None
) -> SessionResponse:
    flow = session.flow
    step = flow.current
    share = None
    if flow.last_share is not None and getattr(step, "invitation_method", None):
        share = ShareMessageResponse(
            method=flow.last_share.method,
            url=flow.last_share.url,
            body=flow.last_share.body,
            subject=flow.last_share.subject,
        )
    return SessionResponse(
        session_id=session.id,
        view=session.root.current_view(),
        busy=flow.busy,
        step=describe_step(step),
        auth_url=auth_url,
        share=share,
    )


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start an onboarding session",
)
async def open_session(body: SessionCreate, registry: RegistryDep):
    """
    Open an onboarding session for a device.

    Persisted flags of the device are restored first, so a device that
    already completed onboarding gets `view == "main"`.
    """
    session = await registry.open(device_id=body.device_id, platform=body.platform)
    return _session_response(session)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session: SessionDep):
    """Get the current step of a session."""
    return _session_response(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session: SessionDep, registry: RegistryDep):
    """Close a session. Backend calls still in flight are dropped when they return."""
    await registry.close(session.id)


@router.post("/sessions/{session_id}/welcome", response_model=SessionResponse)
async def submit_welcome(body: WelcomeRequest, session: SessionDep):
    with onboarding_errors():
        session.flow.submit_welcome(body.name, body.phone, body.language)
    return _session_response(session)


@router.post("/sessions/{session_id}/welcome/skip", response_model=SessionResponse)
async def skip_welcome(body: SkipRequest, session: SessionDep):
    with onboarding_errors():
        session.flow.skip_welcome(body.confirmed, body.language)
    return _session_response(session)


@router.post("/sessions/{session_id}/account", response_model=SessionResponse)
async def sign_up(body: SignUpRequest, session: SessionDep):
    """Create the account with email and password."""
    with onboarding_errors():
        await session.flow.sign_up(body.email, body.password, body.confirm_password)
    return _session_response(session)


@router.post("/sessions/{session_id}/account/anonymous", response_model=SessionResponse)
async def continue_anonymously(session: SessionDep):
    with onboarding_errors():
        await session.flow.continue_anonymously()
    return _session_response(session)


@router.post("/sessions/{session_id}/account/oauth", response_model=SessionResponse)
async def start_social_sign_in(body: OAuthRequest, session: SessionDep):
    """Start a social sign-in; the client opens `auth_url`."""
    with onboarding_errors():
        url = await session.flow.start_social_sign_in(body.provider)
    return _session_response(session, auth_url=url)


@router.post("/sessions/{session_id}/auth/callback", response_model=SessionResponse)
async def auth_callback(body: AuthCallbackRequest, session: SessionDep):
    """Forward a deep link opened by the app. Unrelated links leave the step unchanged."""
    with onboarding_errors():
        await session.flow.handle_deep_link(body.url)
    return _session_response(session)


@router.post("/sessions/{session_id}/permissions", response_model=SessionResponse)
async def request_permissions(session: SessionDep):
    with onboarding_errors():
        await session.flow.request_permissions()
    return _session_response(session)


@router.post("/sessions/{session_id}/permissions/skip", response_model=SessionResponse)
async def skip_permissions(body: SkipRequest, session: SessionDep):
    with onboarding_errors():
        session.flow.skip_permissions(body.confirmed)
    return _session_response(session)


@router.post("/sessions/{session_id}/contact/prompt", response_model=SessionResponse)
async def choose_add_contact(session: SessionDep):
    with onboarding_errors():
        session.flow.choose_add_contact()
    return _session_response(session)


@router.post("/sessions/{session_id}/contact/skip", response_model=SessionResponse)
async def skip_contact_invitation(body: SkipRequest, session: SessionDep):
    with onboarding_errors():
        session.flow.skip_contact_invitation(body.confirmed)
    return _session_response(session)


@router.post("/sessions/{session_id}/contact", response_model=SessionResponse)
async def submit_contact_info(body: ContactInfoRequest, session: SessionDep):
    """Create the trusted-contact invitation and its code."""
    with onboarding_errors():
        await session.flow.submit_contact_info(
            body.name, body.relationship, phone=body.phone, email=body.email
        )
    return _session_response(session)


@router.post("/sessions/{session_id}/share", response_model=SessionResponse)
async def share_invitation(body: ShareRequest, session: SessionDep):
    with onboarding_errors():
        await session.flow.share_invitation(body.method, body.destination)
    return _session_response(session)


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse)
async def complete(session: SessionDep):
    with onboarding_errors():
        await session.flow.complete()
    return _session_response(session)


@router.post("/sessions/{session_id}/back", response_model=SessionResponse)
async def go_back(session: SessionDep):
    with onboarding_errors():
        session.flow.go_back()
    return _session_response(session)
