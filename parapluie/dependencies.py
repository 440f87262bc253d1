"""
FastAPI dependencies for Parapluie.
Provides dependency injection for settings and onboarding sessions.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from parapluie.core.settings import Settings
from parapluie.services.sessions import OnboardingSession, SessionRegistry


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Args:
        request: FastAPI request object.

    Returns:
        Settings instance the app was created with.
    """
    return request.app.state.settings


def get_session_registry(request: Request) -> SessionRegistry:
    """Get the onboarding session registry from application state."""
    return request.app.state.sessions


def get_onboarding_session(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> OnboardingSession:
    """
    Look up the onboarding session named in the path.

    Raises:
        HTTPException: 404 when the session does not exist or was closed.
    """
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Onboarding session not found"
        )
    return session


# Type aliases for cleaner code
SettingsDep = Annotated[Settings, Depends(get_settings)]
RegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
SessionDep = Annotated[OnboardingSession, Depends(get_onboarding_session)]
