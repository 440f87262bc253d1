"""Invitation share messages and the URLs that open the SMS or mail app."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from parapluie.core.ui_strings import get_string

APP_URL = "https://parapluie.app"


@dataclass(frozen=True)
class ShareMessage:
    method: str
    url: Optional[str]
    body: str
    subject: Optional[str] = None


def sms_message(
    code: str,
    phone: str,
    *,
    ttl_hours: int = 24,
    platform: str = "android",
    language: Optional[str] = None,
) -> ShareMessage:
    body = get_string("share_sms_body", language, code=code, hours=ttl_hours, app_url=APP_URL)
    # iOS expects "&body=", everything else "?body="
    separator = "&" if platform == "ios" else "?"
    return ShareMessage("sms", f"sms:{phone}{separator}body={quote(body)}", body)


def email_message(
    code: str,
    email: str,
    *,
    ttl_hours: int = 24,
    language: Optional[str] = None,
) -> ShareMessage:
    subject = get_string("share_email_subject", language)
    body = get_string("share_email_body", language, code=code, hours=ttl_hours, app_url=APP_URL)
    url = f"mailto:{email}?subject={quote(subject)}&body={quote(body)}"
    return ShareMessage("email", url, body, subject)


def manual_message(code: str, *, ttl_hours: int = 24, language: Optional[str] = None) -> ShareMessage:
    """The code is copied by hand; nothing to open."""
    body = get_string("share_sms_body", language, code=code, hours=ttl_hours, app_url=APP_URL)
    return ShareMessage("manual", None, body)
