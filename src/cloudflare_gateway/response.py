"""
Provider response envelope.

Every REST answer is wrapped as::

    {"success": bool, "result": any, "errors": [{"code": int, "message": str}],
     "messages": [...], "result_info": {"page", "per_page", "total_count", "total_pages"}}

``ResponseEnvelope`` parses that shape once; ``throw_if_failed`` is the gate
every caller passes through before using ``result``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

import httpx

from .exceptions import ApiError, MalformedResponse


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, list) else []


def _as_dict(value: Any) -> dict:
    return dict(value) if isinstance(value, dict) else {}


@dataclass(frozen=True)
class ResponseEnvelope:
    """Immutable view over a decoded response body."""

    data: dict = field(default_factory=dict)
    status_code: Optional[int] = None

    @classmethod
    def from_body(cls, body: Union[str, bytes], status_code: Optional[int] = None) -> "ResponseEnvelope":
        """
        Decode a raw body.

        Raises:
            MalformedResponse: If the body is not a JSON object
        """
        try:
            decoded = json.loads(body)
        except (ValueError, TypeError) as e:
            raise MalformedResponse(
                "Invalid JSON response from Cloudflare API",
                details={"status_code": status_code, "reason": str(e)},
            ) from e
        if not isinstance(decoded, dict):
            raise MalformedResponse(
                "Invalid JSON response from Cloudflare API",
                details={"status_code": status_code, "json_type": type(decoded).__name__},
            )
        return cls(data=decoded, status_code=status_code)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ResponseEnvelope":
        return cls.from_body(response.content, status_code=response.status_code)

    @property
    def success(self) -> bool:
        return self.data.get("success") is True

    @property
    def result(self) -> Any:
        return self.data.get("result")

    @property
    def errors(self) -> list:
        return _as_list(self.data.get("errors"))

    @property
    def messages(self) -> list:
        return _as_list(self.data.get("messages"))

    @property
    def result_info(self) -> dict:
        return _as_dict(self.data.get("result_info"))

    def is_successful(self) -> bool:
        return self.success

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def get_errors(self) -> list:
        return self.errors

    def get_messages(self) -> list:
        return self.messages

    def get_result(self) -> Any:
        return self.result

    def get_result_info(self) -> dict:
        return self.result_info

    def get_first_error(self) -> Optional[str]:
        """Message of the first error, falling back to its code."""
        errors = self.errors
        if not errors:
            return None
        first = errors[0] if isinstance(errors[0], dict) else {}
        message = first.get("message")
        if message:
            return str(message)
        code = first.get("code")
        if code is not None:
            return str(code)
        return "Unknown error"

    def has_error_code(self, code: int) -> bool:
        return any(isinstance(e, dict) and e.get("code") == code for e in self.errors)

    def throw_if_failed(self) -> "ResponseEnvelope":
        """
        Raise ApiError unless the provider reported success.

        Returns:
            self, so calls can be chained
        """
        if not self.success:
            raise ApiError.from_body(self.data)
        return self

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "result": self.result,
            "errors": self.errors,
            "messages": self.messages,
            "result_info": self.result_info,
        }


@dataclass(frozen=True)
class PaginatedResult:
    """Items of one or more pages plus pagination metadata."""

    items: list = field(default_factory=list)
    result_info: dict = field(default_factory=dict)

    @classmethod
    def from_envelope(cls, envelope: ResponseEnvelope) -> "PaginatedResult":
        return cls(items=_as_list(envelope.result), result_info=envelope.result_info)

    @classmethod
    def merge(cls, envelopes: Iterable[ResponseEnvelope]) -> "PaginatedResult":
        """Concatenate page results; metadata comes from the last page."""
        items: list = []
        info: dict = {}
        for envelope in envelopes:
            items.extend(_as_list(envelope.result))
            info = envelope.result_info
        return cls(items=items, result_info=info)

    def total_pages(self) -> int:
        return int(self.result_info.get("total_pages") or 1)

    def total_count(self) -> int:
        count = self.result_info.get("total_count")
        return int(count) if count is not None else len(self.items)

    def current_page(self) -> int:
        return int(self.result_info.get("page") or 1)

    def is_empty(self) -> bool:
        return len(self.items) == 0

    def to_dict(self) -> dict:
        return {"items": self.items, "result_info": self.result_info}
