"""
core/errors.py -- Error taxonomy shared by every MediaVault layer.

Domain and store code raise these; only api/main.py turns them into HTTP
responses (one exception handler, one ErrorResponse envelope). Each class
carries its own status code and machine-readable code so the handler never
needs an isinstance ladder.

4xx errors are recovered at the request boundary and reported to the client
as-is. 5xx errors (ServerConfigError, InternalError) are logged server-side
and reduced to a generic message -- their text never reaches the client.

Layer rule: core/ is the kernel. No imports from api/, auth/, or media/.
"""

from __future__ import annotations


class MediaVaultError(Exception):
    """Base class. Subclasses override status_code, code and public_message."""

    status_code: int = 500
    code: str = "internal_error"
    # Message sent to clients for server-side failures.
    public_message: str = "An unexpected error occurred."

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    @property
    def exposes_detail(self) -> bool:
        return self.status_code < 500

    @property
    def client_message(self) -> str:
        return self.message if self.exposes_detail else self.public_message


class ValidationError(MediaVaultError):
    """Malformed or missing input. The message names the offending field."""

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidFilterValue(ValidationError):
    code = "invalid_filter"

    def __init__(self, field: str, reason: str = "") -> None:
        message = f"Invalid value for filter '{field}'."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message, field=field)


class AuthenticationError(MediaVaultError):
    """Missing, invalid, expired or revoked token; or bad credentials."""

    status_code = 401
    code = "unauthenticated"


class DuplicateError(MediaVaultError):
    status_code = 403
    code = "duplicate"


class NotFoundError(MediaVaultError):
    status_code = 404
    code = "not_found"


class ServerConfigError(MediaVaultError):
    """Required configuration (SECRET_KEY) is absent."""

    status_code = 500
    code = "server_misconfigured"
    public_message = "The server is not configured correctly."


class InternalError(MediaVaultError):
    status_code = 500
    code = "internal_error"
