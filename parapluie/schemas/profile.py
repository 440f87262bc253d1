from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProfileCreate(BaseModel):
    id: str = Field(..., description="Auth identity id (user_profiles.id references auth.users)")
    first_name: str = Field(..., min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, description="E.164 phone number")
    email: Optional[str] = None
    language: str = Field("fr", pattern=r"^(fr|en)$")
    timezone: str = "America/Montreal"
    onboarding_completed: bool = False


class ProfileCompletion(BaseModel):
    onboarding_completed: bool = True
    onboarding_completed_at: datetime


class SecuritySettingsCreate(BaseModel):
    user_id: str
    protection_level: str = Field("medium", pattern=r"^(low|medium|high)$")
    call_protection_enabled: bool = True
    sms_protection_enabled: bool = True
    location_alerts_enabled: bool = False
    notifications_enabled: bool = True
    auto_block_unknown: bool = False
    auto_block_international: bool = False
    quiet_hours_enabled: bool = False


class UserStatsCreate(BaseModel):
    user_id: str
    since: datetime
