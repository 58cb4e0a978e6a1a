"""
JUSTDOIT - Error Taxonomy
=========================
Every failure a store or the session guard can surface to the UI.

Stores catch these at their boundary, record the message, push a
notification and re-raise so the caller can branch on the type.
"""

from typing import Optional


class JustDoItError(Exception):
    """Base class for all recoverable client errors"""

    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NotAuthenticated(JustDoItError):
    """An operation needed a session and there was none"""

    kind = "not_authenticated"

    def __init__(self, message: str = "Not signed in"):
        super().__init__(message)


class RemoteServiceError(JustDoItError):
    """Network or backend failure, message passed through verbatim"""

    kind = "remote"


class ConstraintViolation(JustDoItError):
    """Client-side uniqueness check failed (e.g. duplicate contact email)"""

    kind = "constraint_violation"


class ValidationError(JustDoItError):
    """Required-field or policy check failed before any remote call"""

    kind = "validation"


class InvalidCredentials(JustDoItError):
    kind = "invalid_credentials"


class UnconfirmedAccount(JustDoItError):
    kind = "unconfirmed_account"


class ConfigError(JustDoItError, ValueError):
    """Required environment configuration is missing"""

    kind = "config"


ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (
        NotAuthenticated,
        RemoteServiceError,
        ConstraintViolation,
        ValidationError,
        InvalidCredentials,
        UnconfirmedAccount,
    )
}


def error_for(kind: Optional[str], message: str) -> JustDoItError:
    """Exception for a failure kind reported in an AuthResult"""
    return ERRORS_BY_KIND.get(kind, JustDoItError)(message)
