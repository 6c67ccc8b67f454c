"""
Explicit result values for gateway operations.

``capture`` runs an operation and turns a raised gateway error into a failed
OperationResult, so boundary code can branch on ``success`` instead of
wrapping every call in try/except. Errors outside the gateway taxonomy still
propagate.
"""

from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

from .exceptions import ApiError, GatewayError

T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Outcome of a gateway operation."""

    success: bool
    value: Optional[T] = None
    error: Optional[GatewayError] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: GatewayError) -> "OperationResult[T]":
        return cls(success=False, error=error)

    def unwrap(self) -> Optional[T]:
        """Return the value, or raise the stored error."""
        if not self.success and self.error is not None:
            raise self.error
        return self.value

    def has_error_code(self, code: int) -> bool:
        """True if the stored error is an ApiError carrying provider ``code``."""
        return isinstance(self.error, ApiError) and self.error.has_error_code(code)

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None


async def capture(operation: Awaitable[T]) -> OperationResult[T]:
    """Await ``operation`` and wrap its outcome."""
    try:
        return OperationResult.ok(await operation)
    except GatewayError as e:
        return OperationResult.fail(e)
