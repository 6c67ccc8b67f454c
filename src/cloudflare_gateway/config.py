"""
Configuration dataclasses for the Cloudflare gateway.

This module defines all configuration structures used throughout the
gateway: HTTP endpoints and timeouts, retry behavior, response caching,
logging, and the encrypted settings record store.
"""

import json
import sys
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional


@dataclass
class HttpConfig:
    """Endpoints and timeouts for outbound calls."""

    base_url: str = "https://api.cloudflare.com/client/v4"
    graphql_url: str = "https://api.cloudflare.com/client/v4/graphql"
    timeout_seconds: float = 30.0
    graphql_timeout_seconds: float = 30.0


@dataclass
class RetryConfig:
    """Retry behavior configuration."""

    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: Optional[int] = None
    retry_statuses: tuple[int, ...] = (429,)
    retry_server_errors: bool = True


@dataclass
class CacheConfig:
    """Response cache configuration. ``ttl_seconds <= 0`` disables caching."""

    ttl_seconds: int = 300
    prefix: str = "cloudflare"
    version_ttl_seconds: int = 86400
    backend: str = "memory"  # 'memory', 'redis', 'none'
    redis_url: Optional[str] = None

    def __post_init__(self) -> None:
        if self.ttl_seconds > self.version_ttl_seconds:
            raise ValueError(
                f"cache.ttl_seconds ({self.ttl_seconds}) must not exceed "
                f"cache.version_ttl_seconds ({self.version_ttl_seconds})"
            )


@dataclass
class LoggingConfig:
    """Logging and audit configuration."""

    level: str = "info"
    audit_mode: bool = False
    audit_signing_key: Optional[str] = None
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SettingsStoreConfig:
    """Encrypted settings record used when environment keys are absent."""

    path: Optional[Path] = None
    encryption_key: Optional[str] = None


@dataclass
class GatewayConfig:
    """Main gateway configuration combining all sub-configurations."""

    http: HttpConfig = field(default_factory=HttpConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    settings_store: SettingsStoreConfig = field(default_factory=SettingsStoreConfig)


CACHE_TTL_ENV = "CLOUDFLARE_CACHE_TTL"


def apply_env_overrides(config: GatewayConfig, environ: Mapping[str, str]) -> GatewayConfig:
    """Return a copy of ``config`` with environment overrides applied.

    Only ``CLOUDFLARE_CACHE_TTL`` is honored. Non-integer values and values
    above ``cache.version_ttl_seconds`` are ignored.
    """
    raw = (environ.get(CACHE_TTL_ENV) or "").strip()
    if not raw:
        return config
    try:
        cache = replace(config.cache, ttl_seconds=int(raw))
    except ValueError:
        return config
    return replace(config, cache=cache)


def create_default_config() -> GatewayConfig:
    """Create a configuration with default values for every section."""
    return GatewayConfig()


def load_config_from_file(config_path: Path) -> Optional[GatewayConfig]:
    """
    Load configuration from a JSON file.

    Missing sections and keys take their defaults.

    Args:
        config_path: Path to the configuration file

    Returns:
        GatewayConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        http_data = data.get("http", {})
        http = HttpConfig(
            base_url=http_data.get("base_url", HttpConfig.base_url),
            graphql_url=http_data.get("graphql_url", HttpConfig.graphql_url),
            timeout_seconds=float(http_data.get("timeout_seconds", 30.0)),
            graphql_timeout_seconds=float(http_data.get("graphql_timeout_seconds", 30.0)),
        )

        retry_data = data.get("retry", {})
        retry = RetryConfig(
            max_retries=int(retry_data.get("max_retries", 3)),
            base_delay_ms=int(retry_data.get("base_delay_ms", 1000)),
            max_delay_ms=retry_data.get("max_delay_ms"),
            retry_statuses=tuple(retry_data.get("retry_statuses", (429,))),
            retry_server_errors=bool(retry_data.get("retry_server_errors", True)),
        )

        cache_data = data.get("cache", {})
        cache = CacheConfig(
            ttl_seconds=int(cache_data.get("ttl_seconds", 300)),
            prefix=cache_data.get("prefix", "cloudflare"),
            version_ttl_seconds=int(cache_data.get("version_ttl_seconds", 86400)),
            backend=cache_data.get("backend", "memory"),
            redis_url=cache_data.get("redis_url"),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            audit_mode=logging_data.get("audit_mode", False),
            audit_signing_key=logging_data.get("audit_signing_key"),
            output_format=logging_data.get("output_format", "text"),
        )

        store_data = data.get("settings_store", {})
        store_path = store_data.get("path")
        settings_store = SettingsStoreConfig(
            path=Path(store_path) if store_path else None,
            encryption_key=store_data.get("encryption_key"),
        )

        return GatewayConfig(
            http=http,
            retry=retry,
            cache=cache,
            logging=logging_config,
            settings_store=settings_store,
        )

    except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except OSError:
        return None


def save_config_to_file(config: GatewayConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: GatewayConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = asdict(config)
        data["retry"]["retry_statuses"] = list(config.retry.retry_statuses)
        store_path = config.settings_store.path
        data["settings_store"]["path"] = str(store_path) if store_path else None

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False
