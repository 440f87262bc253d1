"""Normalized errors raised by backend collaborators."""

# PostgreSQL SQLSTATE codes surfaced by the hosted backend
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"


class BackendError(Exception):
    """A backend call failed."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __repr__(self):
        return f"<{self.__class__.__name__}(code={self.code!r}, message={self.message!r})>"


class ForeignKeyViolation(BackendError):
    """Referenced row (usually the auth identity) is not visible to the data layer yet."""


class UniqueViolation(BackendError):
    """A unique constraint rejected the write."""


class AuthError(BackendError):
    """The authentication service rejected the request."""


def backend_error_from_code(message: str, code: str | None) -> BackendError:
    """Build the most specific BackendError for a SQLSTATE code."""
    if code == FOREIGN_KEY_VIOLATION:
        return ForeignKeyViolation(message, code)
    if code == UNIQUE_VIOLATION:
        return UniqueViolation(message, code)
    return BackendError(message, code)
