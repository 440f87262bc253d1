"""Unit tests for auth callback matching and invitation share messages."""

from urllib.parse import unquote

import pytest

from parapluie.onboarding.deep_link import is_auth_callback
from parapluie.onboarding.sharing import email_message, manual_message, sms_message


@pytest.mark.unit
@pytest.mark.parametrize(
    "url, expected",
    [
        ("parapluie://auth/callback", True),
        ("parapluie://auth/callback/", True),
        ("parapluie://auth/callback?code=abc", True),
        ("parapluie://auth/callback#access_token=abc&refresh_token=def", True),
        ("parapluie://auth/other", False),
        ("parapluie://home", False),
        ("otherapp://auth/callback", False),
        ("https://parapluie.app/auth/callback", False),
        ("", False),
    ],
)
def test_is_auth_callback(url, expected):
    assert is_auth_callback(url, "parapluie") is expected


@pytest.mark.unit
class TestShareMessages:
    def test_sms_android_separator(self):
        message = sms_message("K7PM", "+15145551234")
        assert message.method == "sms"
        assert message.url.startswith("sms:+15145551234?body=")
        assert "Code d'invitation: K7PM" in message.body
        assert "Valide pendant 24 heures" in message.body

    def test_sms_ios_separator(self):
        message = sms_message("K7PM", "+15145551234", platform="ios")
        assert message.url.startswith("sms:+15145551234&body=")

    def test_sms_body_is_url_encoded(self):
        message = sms_message("K7PM", "+15145551234")
        encoded = message.url.split("body=", 1)[1]
        assert " " not in encoded
        assert unquote(encoded) == message.body

    def test_email(self):
        message = email_message("K7PM", "jean@example.com")
        assert message.subject == "Invitation Parapluie"
        assert message.url.startswith("mailto:jean@example.com?subject=Invitation%20Parapluie&body=")
        assert "Code d'invitation: K7PM" in message.body

    def test_manual_has_no_url(self):
        message = manual_message("K7PM", language="en")
        assert message.url is None
        assert "Invitation code: K7PM" in message.body
        assert "Valid for 24 hours" in message.body
