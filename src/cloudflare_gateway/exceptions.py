"""
Exception classes for the Cloudflare gateway.

All exceptions inherit from GatewayError and provide structured error
information with codes, messages, and optional details. The four members
of the taxonomy raised by gateway operations are ConfigurationError,
RequestError, ApiError and MalformedResponse.
"""

from typing import Any, Optional


class GatewayError(Exception):
    """Base exception for all gateway errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(GatewayError):
    """Raised when a required identifier or credential is not configured.

    Always raised before any network I/O is attempted.
    """

    @classmethod
    def missing_credentials(cls) -> "ConfigurationError":
        return cls(
            code="missing_credentials",
            message=(
                "Cloudflare credentials are not configured. Please set "
                "CLOUDFLARE_TOKEN or CLOUDFLARE_EMAIL and CLOUDFLARE_API_KEY."
            ),
        )

    @classmethod
    def missing_zone_id(cls) -> "ConfigurationError":
        return cls(code="missing_zone_id", message="Cloudflare Zone ID is not configured.")

    @classmethod
    def missing_account_id(cls) -> "ConfigurationError":
        return cls(code="missing_account_id", message="Cloudflare Account ID is not configured.")

    @classmethod
    def invalid_argument(cls, message: str, **details: Any) -> "ConfigurationError":
        return cls(code="invalid_argument", message=message, details=details)


class RequestError(GatewayError):
    """Raised when the HTTP transport failed after exhausting retries."""

    def __init__(
        self,
        message: str,
        method: str = "",
        path: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            code="request_failed",
            message=message,
            details={"method": method, "path": path},
        )
        self.method = method
        self.path = path
        self.cause = cause


class ApiError(GatewayError):
    """Raised when the provider answered with ``success: false``."""

    UNKNOWN_MESSAGE = "Unknown Cloudflare API error"

    def __init__(
        self,
        message: str,
        errors: Optional[list] = None,
        error_code: int = 0,
    ) -> None:
        self.errors: list = list(errors or [])
        self.error_code = error_code
        super().__init__(
            code="api_error",
            message=message,
            details={"errors": self.errors, "error_code": error_code},
        )

    def has_error_code(self, code: int) -> bool:
        """Check if the provider reported a specific error code."""
        for error in self.errors:
            if isinstance(error, dict) and error.get("code") == code:
                return True
        return False

    @classmethod
    def from_body(cls, body: dict) -> "ApiError":
        """Build an ApiError from a decoded response envelope."""
        errors = body.get("errors") or []
        if not isinstance(errors, list):
            errors = []
        first = errors[0] if errors and isinstance(errors[0], dict) else {}

        message = first.get("message")
        if not message:
            code = first.get("code")
            message = str(code) if code is not None else cls.UNKNOWN_MESSAGE

        try:
            error_code = int(first.get("code") or 0)
        except (TypeError, ValueError):
            error_code = 0

        return cls(message=message, errors=errors, error_code=error_code)


class MalformedResponse(GatewayError):
    """Raised when a response body is not a JSON object (proxy or transport problem)."""

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(code="malformed_response", message=message, details=details)


class PersistenceError(GatewayError):
    """Raised when the settings record store cannot be read or written."""

    pass


class TamperingError(PersistenceError):
    """Raised when a stored settings value fails to decrypt."""

    pass
