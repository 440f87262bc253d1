"""Matching of deep links returning from the external sign-in flow."""

from urllib.parse import urlsplit

CALLBACK_HOST = "auth"
CALLBACK_PATH = "/callback"


def is_auth_callback(url: str, scheme: str) -> bool:
    """True for <scheme>://auth/callback, with or without query or fragment."""
    parts = urlsplit(url or "")
    return (
        parts.scheme == scheme
        and parts.netloc == CALLBACK_HOST
        and parts.path.rstrip("/") == CALLBACK_PATH
    )
