"""
Gateway assembly.

``build_gateway`` constructs the credential resolver, HTTP client, cache and
every service once, up front, and hands them out as plain attributes.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from .access import AccessService
from .analytics import AnalyticsService
from .audit_logger import AuditLogger
from .auth import CredentialResolver
from .cache import CacheStore, VersionedCache, create_cache_store
from .cache_purge import CachePurgeService
from .cache_rules import CacheRulesService
from .client import GatewayClient
from .config import GatewayConfig
from .dns import DnsService
from .edge_caching import EdgeCachingService
from .exceptions import ApiError, ConfigurationError, GatewayError
from .firewall import FirewallService
from .graphql_client import GraphQLAnalyticsClient
from .page_rules import PageRulesService
from .results import OperationResult, capture
from .rule_reconciler import RuleReconciler
from .settings import EnvSettingsProvider, SettingsProvider
from .zones import ZoneService

T = TypeVar("T")


class CloudflareGateway:
    """Entry point owning the client, the cache and every service."""

    COMPONENT = "gateway"

    def __init__(
        self,
        config: GatewayConfig,
        settings: SettingsProvider,
        auth: CredentialResolver,
        client: GatewayClient,
        cache: VersionedCache,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self.config = config
        self.settings = settings
        self.auth = auth
        self.client = client
        self.response_cache = cache
        self.logger = logger

        self.zones = ZoneService(client, settings, cache, logger)
        self.cache = CachePurgeService(client, settings, cache, logger)
        self.dns = DnsService(client, settings, cache, logger)
        self.firewall = FirewallService(client, settings, cache, logger)
        self.cache_rules = CacheRulesService(client, settings, cache, logger)
        self.page_rules = PageRulesService(client, settings, cache, logger)
        self.access = AccessService(client, settings, cache, logger)
        self.graphql = GraphQLAnalyticsClient(client, logger)
        self.analytics = AnalyticsService(client, settings, cache, self.graphql, logger)
        self.reconciler = RuleReconciler(self.cache_rules, logger)
        self.edge_caching = EdgeCachingService(self.reconciler)

    async def __aenter__(self) -> "CloudflareGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.response_cache.store.aclose()

    def zone_id(self) -> Optional[str]:
        return self.settings.get("cloudflare_zone_id")

    def account_id(self) -> Optional[str]:
        return self.settings.get("cloudflare_account_id")

    async def verify_credentials(self) -> bool:
        """
        Check the configured credentials against the API.

        Tries ``user/tokens/verify`` when a token is configured, then ``user``.

        Raises:
            ConfigurationError: If no credentials are configured
            ApiError: Carrying the last failure when both checks fail
        """
        if not self.auth.has_credentials():
            self.auth.refresh_credentials()
        if not self.auth.has_credentials():
            raise ConfigurationError.missing_credentials()

        last_error: Optional[GatewayError] = None
        paths = (["user/tokens/verify"] if self.auth.token else []) + ["user"]
        for path in paths:
            try:
                envelope = await self.client.make_request("GET", path)
                envelope.throw_if_failed()
                return True
            except GatewayError as e:
                last_error = e

        assert last_error is not None
        if self.logger:
            self.logger.log_error(self.COMPONENT, "Credential verification failed", error=last_error)
        errors = last_error.errors if isinstance(last_error, ApiError) else []
        error_code = last_error.error_code if isinstance(last_error, ApiError) else 0
        raise ApiError(last_error.message, errors=errors, error_code=error_code) from last_error

    async def attempt(self, operation: Awaitable[T]) -> OperationResult[T]:
        """Run an operation and return its outcome as an OperationResult."""
        result = await capture(operation)
        if not result.success and self.logger and result.error is not None:
            self.logger.log_error(self.COMPONENT, "Operation failed", error=result.error)
        return result


def build_gateway(
    config: Optional[GatewayConfig] = None,
    settings: Optional[SettingsProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cache_store: Optional[CacheStore] = None,
    logger: Optional[AuditLogger] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> CloudflareGateway:
    """
    Construct a fully wired gateway.

    Args:
        config: Gateway configuration (defaults apply when omitted)
        settings: Source of credentials and identifiers
        transport: Optional httpx transport shared by REST and GraphQL calls
        cache_store: Cache backend; built from ``config.cache`` when omitted
        logger: Optional logger shared by every component
        sleep: Backoff sleeper
    """
    config = config or GatewayConfig()
    settings = settings or EnvSettingsProvider()
    store = cache_store if cache_store is not None else create_cache_store(config.cache)

    auth = CredentialResolver(settings)
    client = GatewayClient(
        auth,
        config=config.http,
        retry=config.retry,
        transport=transport,
        logger=logger,
        sleep=sleep,
    )
    cache = VersionedCache.from_config(store, config.cache, logger)
    return CloudflareGateway(config, settings, auth, client, cache, logger)
