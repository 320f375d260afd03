"""
Error taxonomy for the User Directory MCP server.

Resource handlers let these propagate so the MCP SDK reports them as protocol
errors. The random-user tool captures them in a GenerationOutcome instead.
"""

from typing import Any, Optional


class UserServiceError(Exception):
    """Base class for all errors raised by this package."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UserNotFoundError(UserServiceError):
    """Raised when no row matches the requested user id."""

    kind = "not_found"

    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class PersistenceError(UserServiceError):
    """Raised when the database rejects a write or cannot be reached."""

    kind = "persistence"


class UpstreamError(UserServiceError):
    """
    Raised when the completion endpoint cannot be reached or answers with a
    non-success HTTP status.
    """

    kind = "upstream"

    def __init__(self, message: str, status_code: Optional[int] = None, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)


class MalformedResponse(UserServiceError):
    """Raised when the completion response does not have the expected shape."""

    kind = "malformed_response"


class ParseError(UserServiceError):
    """Raised when generated text is not a valid user record."""

    kind = "parse"


class GenerationError(UserServiceError):
    """Wraps a failure outside this taxonomy during random user generation."""

    kind = "unexpected"


class ConfigurationError(UserServiceError):
    """Raised when an environment variable holds a value that can't be used."""

    kind = "configuration"

    def __init__(self, variable: str, value: str, expected: str):
        self.variable = variable
        self.value = value
        super().__init__(f"{variable}={value!r} is not {expected}")
