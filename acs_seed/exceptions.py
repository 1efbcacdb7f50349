"""Exception classes for the access-control seeding toolkit."""

from typing import Dict, Any, Optional


class SeedAutomationError(Exception):
    """Base exception for all seeding errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(SeedAutomationError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, setting: Optional[str] = None, value: Optional[Any] = None):
        details = {"setting": setting, "value": value}
        super().__init__(message, details)
        self.setting = setting
        self.value = value


class APIError(SeedAutomationError):
    """Raised when a vendor API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_body: Optional[str] = None, endpoint: Optional[str] = None):
        """Initialize APIError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        status_code : int | None
            HTTP status of the failing response, when one was received.
        response_body : str | None
            Raw response body, kept for diagnostics.
        endpoint : str | None
            URL of the call that failed.
        """
        details = {"status_code": status_code, "response_body": response_body, "endpoint": endpoint}
        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body
        self.endpoint = endpoint


class AuthError(APIError):
    """Raised when login fails or yields no session token. Fatal to the run."""
    pass


class CardCreationError(APIError):
    """Raised when the bulk card creation call fails. Fatal to the run."""
    pass


class AllocationError(APIError):
    """Raised when a user ID cannot be allocated. Fails the owning card only."""
    pass


class SubmissionError(APIError):
    """Raised when the user-create call is rejected."""
    pass


class BlacklistError(APIError):
    """Raised when blacklisting a card fails. Logged, never fatal."""
    pass


class RetriesExhausted(SeedAutomationError):
    """Raised when a retried operation failed on every attempt."""

    def __init__(self, attempts: int, cause: BaseException):
        message = f"Gave up after {attempts} attempt(s): {cause}"
        super().__init__(message, {"attempts": attempts, "cause": repr(cause)})
        self.attempts = attempts
        self.cause = cause


def format_error_message(error: Exception) -> str:
    """Format error message for user display."""
    if isinstance(error, APIError) and error.status_code is not None:
        body = (error.response_body or "").strip()
        suffix = f" - {body}" if body else ""
        return f"{error} (HTTP {error.status_code}){suffix}"
    if isinstance(error, SeedAutomationError):
        return str(error)
    else:
        return f"Unexpected error: {error}"
