"""Request and response bodies of the onboarding API."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class SessionCreate(BaseModel):
    device_id: Optional[str] = Field(None, description="Stable device identifier")
    platform: Literal["ios", "android"] = "android"


class WelcomeRequest(BaseModel):
    name: str
    phone: str
    language: Optional[Literal["fr", "en"]] = None


class SkipRequest(BaseModel):
    confirmed: bool = Field(False, description="User accepted the confirmation dialog")
    language: Optional[Literal["fr", "en"]] = None


class SignUpRequest(BaseModel):
    email: str
    password: str
    confirm_password: str


class OAuthRequest(BaseModel):
    provider: str = "google"


class AuthCallbackRequest(BaseModel):
    url: str


class ContactInfoRequest(BaseModel):
    name: str
    relationship: str
    phone: Optional[str] = None
    email: Optional[str] = None


class ShareRequest(BaseModel):
    method: Literal["sms", "email", "manual"]
    destination: Optional[str] = None


class ShareMessageResponse(BaseModel):
    method: str
    url: Optional[str] = None
    body: str
    subject: Optional[str] = None


class SessionResponse(BaseModel):
    session_id: str
    view: Literal["loading", "onboarding", "main"]
    busy: bool
    step: dict[str, Any]
    auth_url: Optional[str] = None
    share: Optional[ShareMessageResponse] = None
