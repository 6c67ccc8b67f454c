"""
Cloudflare Gateway - authenticated, retrying access to the Cloudflare API.

This package resolves credentials, retries rate-limited and failed calls,
parses the provider's response envelope, caches reads with version-tag
invalidation and builds idempotent feature toggles on top of ruleset CRUD.
"""

__version__ = "0.1.0"
__author__ = "Cloudflare Gateway Team"

from cloudflare_gateway.exceptions import (
    GatewayError,
    ConfigurationError,
    RequestError,
    ApiError,
    MalformedResponse,
    PersistenceError,
    TamperingError,
)
from cloudflare_gateway.enums import (
    LogLevel,
    AuthScheme,
    ProviderErrorCode,
    RulesetPhase,
    DnsRecordType,
    FirewallMode,
    PageRuleStatus,
    AnalyticsDaysRange,
)
from cloudflare_gateway.config import (
    HttpConfig,
    RetryConfig,
    CacheConfig,
    LoggingConfig,
    SettingsStoreConfig,
    GatewayConfig,
    apply_env_overrides,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)
from cloudflare_gateway.settings import (
    SettingsProvider,
    EnvSettingsProvider,
    StaticSettingsProvider,
    ENV_KEYS,
)
from cloudflare_gateway.settings_store import (
    SettingsRecordStore,
)
from cloudflare_gateway.audit_logger import (
    AuditLogger,
    LogEntry,
    create_logger,
)
from cloudflare_gateway.auth import (
    CredentialResolver,
)
from cloudflare_gateway.retry_manager import (
    RetryManager,
)
from cloudflare_gateway.response import (
    ResponseEnvelope,
    PaginatedResult,
)
from cloudflare_gateway.client import (
    GatewayClient,
)
from cloudflare_gateway.cache import (
    CacheStore,
    MemoryCacheStore,
    NullCacheStore,
    RedisCacheStore,
    VersionedCache,
    create_cache_store,
)
from cloudflare_gateway.results import (
    OperationResult,
    capture,
)
from cloudflare_gateway.base_service import (
    BaseService,
)
from cloudflare_gateway.zones import ZoneService
from cloudflare_gateway.cache_purge import CachePurgeService
from cloudflare_gateway.dns import DnsService
from cloudflare_gateway.cache_rules import CacheRulesService
from cloudflare_gateway.firewall import FirewallService
from cloudflare_gateway.page_rules import PageRulesService
from cloudflare_gateway.access import AccessService
from cloudflare_gateway.graphql_client import (
    GraphQLAnalyticsClient,
    TimeWindow,
    build_time_window,
)
from cloudflare_gateway.analytics import AnalyticsService
from cloudflare_gateway.rule_reconciler import (
    RuleReconciler,
    RulesBackend,
)
from cloudflare_gateway.edge_caching import (
    EdgeCachingService,
    GUEST_EXPRESSION,
    media_expression,
    build_cache_action,
)
from cloudflare_gateway.gateway import (
    CloudflareGateway,
    build_gateway,
)
from cloudflare_gateway.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "GatewayError",
    "ConfigurationError",
    "RequestError",
    "ApiError",
    "MalformedResponse",
    "PersistenceError",
    "TamperingError",
    # Enums
    "LogLevel",
    "AuthScheme",
    "ProviderErrorCode",
    "RulesetPhase",
    "DnsRecordType",
    "FirewallMode",
    "PageRuleStatus",
    "AnalyticsDaysRange",
    # Configuration
    "HttpConfig",
    "RetryConfig",
    "CacheConfig",
    "LoggingConfig",
    "SettingsStoreConfig",
    "GatewayConfig",
    "apply_env_overrides",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
    # Settings
    "SettingsProvider",
    "EnvSettingsProvider",
    "StaticSettingsProvider",
    "ENV_KEYS",
    "SettingsRecordStore",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    "create_logger",
    # Auth
    "CredentialResolver",
    # HTTP
    "RetryManager",
    "ResponseEnvelope",
    "PaginatedResult",
    "GatewayClient",
    # Cache
    "CacheStore",
    "MemoryCacheStore",
    "NullCacheStore",
    "RedisCacheStore",
    "VersionedCache",
    "create_cache_store",
    # Results
    "OperationResult",
    "capture",
    # Services
    "BaseService",
    "ZoneService",
    "CachePurgeService",
    "DnsService",
    "CacheRulesService",
    "FirewallService",
    "PageRulesService",
    "AccessService",
    "GraphQLAnalyticsClient",
    "TimeWindow",
    "build_time_window",
    "AnalyticsService",
    "RuleReconciler",
    "RulesBackend",
    "EdgeCachingService",
    "GUEST_EXPRESSION",
    "media_expression",
    "build_cache_action",
    # Gateway
    "CloudflareGateway",
    "build_gateway",
    # CLI
    "cli_main",
    "create_parser",
]
