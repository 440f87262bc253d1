from typing import Literal, Optional

from pydantic import BaseModel

AuthMethod = Literal["email", "google", "apple", "anonymous", "local"]


class AuthSession(BaseModel):
    """Identity returned by the authentication service."""

    user_id: str
    email: Optional[str] = None
    is_anonymous: bool = False


class AccountIdentity(BaseModel):
    """Identity the onboarding flow carries forward after account creation."""

    user_id: str
    method: AuthMethod
    email: Optional[str] = None
    local_only: bool = False
