"""
Structured logging for the Cloudflare gateway.

Entries are written as JSON lines, human-readable text, or both. Credentials
and header values that carry them are masked before an entry is stored or
written. In audit mode every entry is signed with HMAC-SHA256 so an exported
log can later be checked for edits.
"""

import hashlib
import hmac
import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from .enums import LogLevel


@dataclass
class LogEntry:
    """A single log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)
    signature: Optional[str] = None

    def signable(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }


class AuditLogger:
    """
    Gateway logger with masking and optional signing.

    Entries below ``min_level`` are dropped without being stored or written.
    """

    # Substrings of keys whose values must never reach the log
    SENSITIVE_KEYS = frozenset({
        "authorization", "x-auth-key", "x-auth-email", "api_key", "apikey",
        "token", "email", "secret", "password", "credential", "private_key",
        "encryption_key", "signing_key",
    })

    MASK_VALUE = "***MASKED***"

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: LogLevel = LogLevel.INFO,
    ) -> None:
        if output_format not in ("json", "text", "both"):
            raise ValueError(f"Invalid output_format: {output_format}")

        self._output_format = output_format
        self._output_stream = output_stream or sys.stderr
        self._min_level = min_level
        self._signing_key: Optional[bytes] = None
        self._entries: list[LogEntry] = []

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @property
    def audit_mode(self) -> bool:
        return self._signing_key is not None

    @property
    def entries(self) -> list[LogEntry]:
        """Entries recorded so far (copy)."""
        return self._entries.copy()

    def enable_audit_mode(self, signing_key: str) -> None:
        """Sign every subsequent entry with ``signing_key``."""
        if not signing_key:
            raise ValueError("Signing key cannot be empty")
        self._signing_key = signing_key.encode("utf-8")

    def disable_audit_mode(self) -> None:
        self._signing_key = None

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level.rank >= self._min_level.rank

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record an entry and write it in the configured format(s).

        Returns:
            The stored entry, or None when ``level`` is below ``min_level``
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        if self._signing_key is not None:
            entry.signature = self._sign_entry(entry)

        self._entries.append(entry)
        self._write(entry)
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, component, message, data)

    def warning(self, component: str, message: str, data: Optional[dict] = None) -> Optional[LogEntry]:
        return self.log(LogLevel.WARN, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        method: Optional[str] = None,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log a failed call with its request context.

        Args:
            component: Component name generating the log
            message: Human-readable error message
            error: Exception that caused the failure
            method: HTTP method of the failed call
            path: API path of the failed call
            status_code: HTTP status of the last response, if any
            additional_data: Extra context merged into the entry
        """
        data = dict(additional_data or {})
        if error is not None:
            data["error_message"] = str(error)
            data["error_type"] = type(error).__name__
            error_code = getattr(error, "code", None)
            if isinstance(error_code, str):
                data["error_code"] = error_code
        if method is not None:
            data["method"] = method
        if path is not None:
            data["path"] = path
        if status_code is not None:
            data["status_code"] = status_code
        return self.log(LogLevel.ERROR, component, message, data)

    def mask_sensitive_data(self, data: Any) -> Any:
        """Return a copy of ``data`` with sensitive values replaced, recursively."""
        if isinstance(data, list):
            return [self.mask_sensitive_data(item) for item in data]
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                masked[key] = self.MASK_VALUE
            else:
                masked[key] = self.mask_sensitive_data(value)
        return masked

    def _sign_entry(self, entry: LogEntry) -> str:
        if self._signing_key is None:
            raise RuntimeError("Signing key not set")
        content = json.dumps(entry.signable(), sort_keys=True, ensure_ascii=False, default=str)
        return hmac.new(self._signing_key, content.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify_signature(self, entry: LogEntry) -> bool:
        """Check an entry's signature against the current signing key."""
        if not entry.signature or self._signing_key is None:
            return False
        return hmac.compare_digest(entry.signature, self._sign_entry(entry))

    def _write(self, entry: LogEntry) -> None:
        if self._output_format in ("json", "both"):
            self._output_stream.write(self.format_json(entry) + "\n")
        if self._output_format in ("text", "both"):
            self._output_stream.write(self.format_text(entry) + "\n")
        self._output_stream.flush()

    def format_json(self, entry: LogEntry) -> str:
        obj = entry.signable()
        if entry.signature:
            obj["signature"] = entry.signature
        return json.dumps(obj, ensure_ascii=False, default=str)

    def format_text(self, entry: LogEntry) -> str:
        # [TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data}
        parts = [
            f"[{entry.timestamp}]",
            entry.level.value.upper(),
            f"[{entry.component}]",
            entry.message,
        ]
        if entry.data:
            parts.append(json.dumps(entry.data, ensure_ascii=False, default=str))

        text = " ".join(parts)
        if entry.signature:
            text += f" [sig:{entry.signature[:16]}...]"
        return text

    def clear_entries(self) -> None:
        self._entries.clear()


def create_logger(
    level: str = "info",
    output_format: str = "text",
    audit_signing_key: Optional[str] = None,
    output_stream: Optional[TextIO] = None,
) -> AuditLogger:
    """Build a logger from ``LoggingConfig``-style values."""
    try:
        min_level = LogLevel(level.lower())
    except ValueError:
        min_level = LogLevel.INFO
    logger = AuditLogger(output_format=output_format, output_stream=output_stream, min_level=min_level)
    if audit_signing_key:
        logger.enable_audit_mode(audit_signing_key)
    return logger
