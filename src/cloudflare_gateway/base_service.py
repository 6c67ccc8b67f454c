"""
Shared plumbing for resource services.

Resolves zone and account identifiers from the injected settings (failing
before any network I/O when they are missing), routes reads through the
VersionedCache and exposes the make_request + throw_if_failed gate.
"""

import hashlib
import json
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .audit_logger import AuditLogger
from .cache import VersionedCache
from .client import GatewayClient
from .exceptions import ConfigurationError
from .response import ResponseEnvelope
from .settings import SettingsProvider

T = TypeVar("T")


def query_suffix(query: dict) -> str:
    """Stable cache-key suffix for a set of query parameters."""
    encoded = json.dumps(query, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(encoded.encode("utf-8")).hexdigest()


def drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


class BaseService:
    """Base class for services scoped to a zone or account."""

    COMPONENT = "service"

    def __init__(
        self,
        client: GatewayClient,
        settings: SettingsProvider,
        cache: VersionedCache,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._cache = cache
        self._logger = logger

    @property
    def client(self) -> GatewayClient:
        return self._client

    def ensure_zone_id(self, zone_id: Optional[str] = None) -> str:
        """
        Return ``zone_id`` or the configured default.

        Raises:
            ConfigurationError: If neither is set
        """
        zone_id = zone_id or self._settings.get("cloudflare_zone_id")
        if not zone_id:
            raise ConfigurationError.missing_zone_id()
        return zone_id

    def ensure_account_id(self) -> str:
        """
        Return the configured account id.

        Raises:
            ConfigurationError: If it is not set
        """
        account_id = self._settings.get("cloudflare_account_id")
        if not account_id:
            raise ConfigurationError.missing_account_id()
        return account_id

    async def remember(self, group: str, producer: Callable[[], Awaitable[T]], suffix: str = "") -> T:
        return await self._cache.remember(group, producer, suffix=suffix)

    async def invalidate(self, *groups: str) -> None:
        for group in groups:
            await self._cache.invalidate(group)

    async def _envelope(self, method: str, path: str, **options: Any) -> ResponseEnvelope:
        envelope = await self._client.make_request(method, path, **options)
        return envelope.throw_if_failed()

    async def _fetch(self, method: str, path: str, **options: Any) -> Any:
        """``make_request`` gated by ``throw_if_failed``; returns ``result``."""
        return (await self._envelope(method, path, **options)).result

    def _log_info(self, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.info(self.COMPONENT, message, data)
