"""
Command-line interface for the Cloudflare gateway.

Commands:
- verify: Check the configured credentials
- zones: List zones visible to the credentials
- purge: Purge the zone cache (everything, or selected files)
- guest-cache / media-cache: Show or toggle the edge caching rules
- analytics: Zone traffic summary
- config: Configuration management
"""

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from . import __version__
from .audit_logger import AuditLogger, create_logger
from .config import (
    GatewayConfig,
    apply_env_overrides,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
)
from .enums import AnalyticsDaysRange
from .exceptions import GatewayError
from .gateway import CloudflareGateway, build_gateway
from .settings import EnvSettingsProvider
from .settings_store import SettingsRecordStore

DEFAULT_CONFIG_PATH = Path.home() / ".cloudflare_gateway" / "config.json"


def load_cli_config(args: argparse.Namespace) -> Optional[GatewayConfig]:
    """Config from ``--config`` (or defaults) with environment overrides applied."""
    config: Optional[GatewayConfig]
    if getattr(args, "config", None):
        config = load_config_from_file(Path(args.config))
        if config is None:
            print(f"Error: Could not load config from {args.config}", file=sys.stderr)
            return None
    else:
        config = create_default_config()
    return apply_env_overrides(config, os.environ)


def create_cli_logger(config: GatewayConfig, verbose: bool = False) -> AuditLogger:
    return create_logger(
        level="debug" if verbose else config.logging.level,
        output_format=config.logging.output_format,
        audit_signing_key=config.logging.audit_signing_key if config.logging.audit_mode else None,
    )


def create_cli_gateway(args: argparse.Namespace, config: GatewayConfig) -> CloudflareGateway:
    """Wire a gateway from CLI arguments and configuration."""
    store = None
    store_config = config.settings_store
    if store_config.path and store_config.encryption_key:
        store = SettingsRecordStore(store_config.path, store_config.encryption_key)

    settings = EnvSettingsProvider(store=store, dotenv_path=getattr(args, "env_file", None))
    return build_gateway(config, settings, logger=create_cli_logger(config, getattr(args, "verbose", False)))


def run_gateway_command(
    args: argparse.Namespace,
    operation: Callable[[CloudflareGateway], Awaitable[Any]],
    render: Callable[[Any], None],
) -> int:
    """
    Run one gateway operation; errors are reported, never raised.

    Returns:
        Exit code (0 on success, 1 on failure)
    """
    config = load_cli_config(args)
    if config is None:
        return 1

    async def runner() -> int:
        try:
            gateway = create_cli_gateway(args, config)
        except GatewayError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

        async with gateway:
            result = await gateway.attempt(operation(gateway))

        if not result.success:
            print(f"Error: {result.error_message}", file=sys.stderr)
            return 1
        render(result.value)
        return 0

    return asyncio.run(runner())


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2, ensure_ascii=False, default=str))


def cmd_verify(args: argparse.Namespace) -> int:
    """Handle the 'verify' command."""
    return run_gateway_command(
        args,
        lambda gw: gw.verify_credentials(),
        lambda _: print("Credentials are valid."),
    )


def cmd_zones(args: argparse.Namespace) -> int:
    """Handle the 'zones' command."""

    def render(zones: list) -> None:
        if not zones:
            print("No zones found.")
            return
        for zone in zones:
            print(f"{zone.get('id', '?')}  {zone.get('name', '?')}  {zone.get('status', '')}".rstrip())

    return run_gateway_command(args, lambda gw: gw.zones.list_zones(), render)


def cmd_purge(args: argparse.Namespace) -> int:
    """Handle the 'purge' command."""
    files = args.file or None
    return run_gateway_command(
        args,
        lambda gw: gw.cache.purge_cache(purge_everything=files is None, files=files),
        lambda _: print("Cache purged." if files is None else f"Purged {len(files)} file(s)."),
    )


def cmd_guest_cache(args: argparse.Namespace) -> int:
    """Handle the 'guest-cache' command."""
    if args.action == "enable":
        return run_gateway_command(
            args,
            lambda gw: gw.edge_caching.enable_guest_cache(args.ttl),
            lambda _: print(f"Guest page caching enabled ({args.ttl}s)."),
        )
    if args.action == "disable":
        return run_gateway_command(
            args,
            lambda gw: gw.edge_caching.disable_guest_cache(),
            lambda deleted: print(f"Guest page caching disabled ({deleted} rule(s) removed)."),
        )
    return run_gateway_command(
        args,
        lambda gw: gw.edge_caching.is_guest_cache_enabled(),
        lambda enabled: print(f"Guest page caching: {'enabled' if enabled else 'disabled'}"),
    )


def cmd_media_cache(args: argparse.Namespace) -> int:
    """Handle the 'media-cache' command."""
    if args.action == "enable":
        return run_gateway_command(
            args,
            lambda gw: gw.edge_caching.enable_media_cache(args.ttl, prefix=args.prefix),
            lambda _: print(f"Media caching enabled for {args.prefix} ({args.ttl}s)."),
        )
    if args.action == "disable":
        return run_gateway_command(
            args,
            lambda gw: gw.edge_caching.disable_media_cache(prefix=args.prefix),
            lambda deleted: print(f"Media caching disabled ({deleted} rule(s) removed)."),
        )
    return run_gateway_command(
        args,
        lambda gw: gw.edge_caching.is_media_cache_enabled(prefix=args.prefix),
        lambda enabled: print(f"Media caching for {args.prefix}: {'enabled' if enabled else 'disabled'}"),
    )


def summarize_zone_analytics(data: dict) -> dict:
    """Totals across every time slot of a zone analytics response."""
    totals = {"requests": 0, "cached_requests": 0, "bytes": 0, "cached_bytes": 0, "threats": 0, "page_views": 0}
    zones = (data.get("viewer") or {}).get("zones") or []
    for zone in zones:
        for slot in zone.get("zones") or []:
            sums = slot.get("sum") or {}
            totals["requests"] += int(sums.get("requests") or 0)
            totals["cached_requests"] += int(sums.get("cachedRequests") or 0)
            totals["bytes"] += int(sums.get("bytes") or 0)
            totals["cached_bytes"] += int(sums.get("cachedBytes") or 0)
            totals["threats"] += int(sums.get("threats") or 0)
            totals["page_views"] += int(sums.get("pageViews") or 0)
    return totals


def parse_anchor_date(value: str) -> datetime:
    """Parse a YYYY-MM-DD argument as midnight UTC."""
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)")


def cmd_analytics(args: argparse.Namespace) -> int:
    """Handle the 'analytics' command."""

    def render(data: dict) -> None:
        if args.raw:
            _print_json(data)
            return
        totals = summarize_zone_analytics(data)
        anchor = args.date_from.strftime("%Y-%m-%d") if args.date_from else "now"
        print(f"{args.days} day(s) before {anchor}:")
        for key, value in totals.items():
            print(f"  {key.replace('_', ' ').capitalize()}: {value}")

    return run_gateway_command(
        args,
        lambda gw: gw.analytics.get_zone_analytics(days=args.days, date_from=args.date_from),
        render,
    )


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  API base URL: {config.http.base_url}")
        print(f"  Timeout: {config.http.timeout_seconds}s")
        print(f"  Max retries: {config.retry.max_retries}")
        print(f"  Cache backend: {config.cache.backend}")
        print(f"  Cache TTL: {config.cache.ttl_seconds}s")
        print(f"  Log level: {config.logging.level}")
        print(f"  Audit mode: {config.logging.audit_mode}")
        print(f"  Settings store: {config.settings_store.path or 'not configured'}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        if save_config_to_file(create_default_config(), config_path):
            print(f"Configuration created at: {config_path}")
            return 0
        return 1

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1

        if config.cache.backend not in ("memory", "redis", "none"):
            print(f"Error: Unknown cache backend: {config.cache.backend}", file=sys.stderr)
            return 1
        if config.cache.backend == "redis" and not config.cache.redis_url:
            print("Error: cache.redis_url is required for the redis backend", file=sys.stderr)
            return 1

        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--env-file",
        help="Path to a .env file with CLOUDFLARE_* settings",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )


def _add_toggle_parser(subparsers, name: str, help_text: str, func) -> argparse.ArgumentParser:
    toggle_parser = subparsers.add_parser(name, help=help_text)
    toggle_parser.add_argument(
        "action",
        choices=["status", "enable", "disable"],
        help="Show the current state or switch it",
    )
    toggle_parser.add_argument(
        "--ttl",
        type=int,
        default=3600,
        help="Edge and browser TTL in seconds when enabling (default: 3600)",
    )
    _add_common_arguments(toggle_parser)
    toggle_parser.set_defaults(func=func)
    return toggle_parser


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="cloudflare-gateway",
        description="Cloudflare API gateway: zones, cache, edge caching rules and analytics",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    verify_parser = subparsers.add_parser("verify", help="Verify the configured credentials")
    _add_common_arguments(verify_parser)
    verify_parser.set_defaults(func=cmd_verify)

    zones_parser = subparsers.add_parser("zones", help="List zones")
    _add_common_arguments(zones_parser)
    zones_parser.set_defaults(func=cmd_zones)

    purge_parser = subparsers.add_parser("purge", help="Purge the zone cache")
    purge_parser.add_argument(
        "--file",
        action="append",
        help="URL to purge (repeatable); purges everything when omitted",
    )
    _add_common_arguments(purge_parser)
    purge_parser.set_defaults(func=cmd_purge)

    _add_toggle_parser(subparsers, "guest-cache", "Guest page caching rule", cmd_guest_cache)

    media_parser = _add_toggle_parser(subparsers, "media-cache", "Media caching rule", cmd_media_cache)
    media_parser.add_argument(
        "--prefix",
        default="/storage",
        help="Media path prefix (default: /storage)",
    )

    analytics_parser = subparsers.add_parser("analytics", help="Zone traffic analytics")
    analytics_parser.add_argument(
        "--days",
        type=int,
        choices=[int(d) for d in AnalyticsDaysRange],
        default=int(AnalyticsDaysRange.default()),
        help="Look-back window in days (default: 1)",
    )
    analytics_parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the raw GraphQL data",
    )
    analytics_parser.add_argument(
        "--date-from",
        type=parse_anchor_date,
        default=None,
        help="End the window at this UTC date (YYYY-MM-DD) instead of now",
    )
    _add_common_arguments(analytics_parser)
    analytics_parser.set_defaults(func=cmd_analytics)

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
