import enum
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContactMethod = Literal["sms", "email", "app", "manual"]


class ContactStatus(str, enum.Enum):
    """Lifecycle of a trusted-contact invitation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class ContactPermissions(BaseModel):
    """What a trusted contact may see or do. Conservative by default."""

    alert_level: str = "high"
    can_view_alerts: bool = True
    can_receive_notifications: bool = True
    can_view_location: bool = False
    can_access_calendar: bool = False
    can_modify_settings: bool = False


class TrustedContactCreate(BaseModel):
    senior_id: str = Field(..., description="Inviting user id")
    name: str = Field(..., min_length=2, max_length=100)
    relationship: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    preferred_contact_method: Optional[ContactMethod] = None
    contact_status: ContactStatus = ContactStatus.PENDING
    invitation_code: str = Field(..., min_length=4, max_length=6)
    invited_at: datetime
    invitation_expires_at: datetime
    permissions: ContactPermissions = Field(default_factory=ContactPermissions)


class TrustedContactRecord(TrustedContactCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invitation_sent_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    contact_user_id: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.invitation_expires_at
