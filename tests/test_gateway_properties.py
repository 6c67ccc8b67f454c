"""
Tests for gateway assembly, credential verification, operation results and
the command-line interface.
"""

import asyncio
import json
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from cloudflare_gateway.cache import MemoryCacheStore
from cloudflare_gateway.cli import create_parser, main, summarize_zone_analytics
from cloudflare_gateway.config import CacheConfig, GatewayConfig, load_config_from_file, save_config_to_file
from cloudflare_gateway.exceptions import ApiError, ConfigurationError, RequestError
from cloudflare_gateway.gateway import build_gateway
from cloudflare_gateway.results import OperationResult, capture
from cloudflare_gateway.settings import StaticSettingsProvider

from fakes import FakeApi, RecordingSleep, api_failure, default_settings, make_gateway, ok


def _run(api, operation, settings=None):
    async def run():
        async with make_gateway(api, settings=settings) as gateway:
            return await operation(gateway)

    return asyncio.run(run())


class TestVerifyCredentials:
    def test_token_verify_succeeds(self) -> None:
        api = FakeApi().route("GET", "user/tokens/verify", ok({"status": "active"}))

        assert _run(api, lambda g: g.verify_credentials()) is True
        assert len(api.requests) == 1

    def test_falls_back_to_user_endpoint(self) -> None:
        api = (
            FakeApi()
            .route("GET", "user/tokens/verify", api_failure(1000, "Invalid API Token", 401))
            .route("GET", "user", ok({"id": "u1"}))
        )

        assert _run(api, lambda g: g.verify_credentials()) is True
        assert [FakeApi.api_path(r) for r in api.requests] == ["user/tokens/verify", "user"]

    def test_api_key_scheme_skips_token_endpoint(self) -> None:
        api = FakeApi().route("GET", "user", ok({"id": "u1"}))
        settings = StaticSettingsProvider({"cloudflare_email": "ops@example.com", "cloudflare_api_key": "key"})

        assert _run(api, lambda g: g.verify_credentials(), settings=settings) is True
        assert [FakeApi.api_path(r) for r in api.requests] == ["user"]
        assert api.requests[0].headers["X-Auth-Email"] == "ops@example.com"

    def test_both_failures_raise_last_error(self) -> None:
        api = (
            FakeApi()
            .route("GET", "user/tokens/verify", api_failure(1000, "Invalid API Token", 401))
            .route("GET", "user", api_failure(9109, "Unauthorized to access requested resource", 403))
        )

        with pytest.raises(ApiError) as exc_info:
            _run(api, lambda g: g.verify_credentials())

        assert exc_info.value.message == "Unauthorized to access requested resource"
        assert exc_info.value.error_code == 9109

    def test_missing_credentials_raise_before_io(self) -> None:
        api = FakeApi()

        with pytest.raises(ConfigurationError) as exc_info:
            _run(api, lambda g: g.verify_credentials(), settings=default_settings(cloudflare_token=None))

        assert exc_info.value.code == "missing_credentials"
        assert api.requests == []


class TestOperationResult:
    def test_attempt_wraps_api_errors(self) -> None:
        api = FakeApi().route("GET", "zones", api_failure(6003, "Invalid request headers"))

        result = _run(api, lambda g: g.attempt(g.zones.list_zones()))

        assert not result.success
        assert result.has_error_code(6003)
        assert result.error_message == "Invalid request headers"
        with pytest.raises(ApiError):
            result.unwrap()

    def test_attempt_wraps_success(self) -> None:
        api = FakeApi().route("GET", "zones", ok([{"id": "z"}]))

        result = _run(api, lambda g: g.attempt(g.zones.list_zones()))

        assert result.success
        assert result.unwrap() == [{"id": "z"}]
        assert result.error_message is None

    def test_request_errors_are_captured(self) -> None:
        async def failing():
            raise RequestError("connection refused", method="GET", path="/zones")

        result = asyncio.run(capture(failing()))

        assert not result.success
        assert isinstance(result.error, RequestError)
        assert not result.has_error_code(0)

    def test_other_exceptions_propagate(self) -> None:
        async def failing():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            asyncio.run(capture(failing()))

    def test_ok_and_fail(self) -> None:
        assert OperationResult.ok(1).unwrap() == 1
        assert OperationResult.fail(ConfigurationError.missing_zone_id()).error.code == "missing_zone_id"


class TestGatewayAssembly:
    def test_services_share_one_cache(self) -> None:
        gateway = make_gateway(FakeApi())

        assert gateway.reconciler is not None
        assert gateway.response_cache.ttl_seconds == 300
        assert gateway.zone_id() == "zone-123"
        assert gateway.account_id() == "account-456"

    def test_cache_store_built_from_config(self) -> None:
        gateway = build_gateway(
            GatewayConfig(cache=CacheConfig(backend="memory", ttl_seconds=10)),
            default_settings(),
            transport=FakeApi().transport,
            sleep=RecordingSleep(),
        )

        assert isinstance(gateway.response_cache.store, MemoryCacheStore)
        assert gateway.response_cache.ttl_seconds == 10

    def test_aclose_clears_memory_store(self) -> None:
        api = FakeApi().route("GET", "zones", ok([]))
        store = MemoryCacheStore()

        async def run():
            gateway = build_gateway(GatewayConfig(), default_settings(), transport=api.transport, cache_store=store)
            async with gateway:
                await gateway.zones.list_zones()
                assert len(store) > 0

        asyncio.run(run())

        assert len(store) == 0


class TestCli:
    def test_parser_defaults(self) -> None:
        parser = create_parser()

        args = parser.parse_args(["media-cache", "enable"])

        assert args.ttl == 3600
        assert args.prefix == "/storage"

    def test_analytics_days_are_restricted(self) -> None:
        with pytest.raises(SystemExit):
            create_parser().parse_args(["analytics", "--days", "3"])

    def test_analytics_date_from(self) -> None:
        args = create_parser().parse_args(["analytics", "--days", "7", "--date-from", "2025-06-01"])

        assert args.date_from == datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert create_parser().parse_args(["analytics"]).date_from is None
        with pytest.raises(SystemExit):
            create_parser().parse_args(["analytics", "--date-from", "June 1st"])

    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == 0
        assert "cloudflare-gateway" in capsys.readouterr().out

    def test_config_init_show_validate(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = str(Path(tmpdir) / "config.json")

            assert main(["config", "init", "--path", path]) == 0
            assert main(["config", "init", "--path", path]) == 1
            assert main(["config", "init", "--path", path, "--force"]) == 0
            assert main(["config", "show", "--path", path]) == 0
            assert main(["config", "validate", "--path", path]) == 0

        out = capsys.readouterr().out
        assert "Configuration created at" in out
        assert "Cache TTL: 300s" in out

    def test_config_validate_rejects_redis_without_url(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            save_config_to_file(GatewayConfig(cache=CacheConfig(backend="redis")), path)

            assert load_config_from_file(path) is not None
            assert main(["config", "validate", "--path", str(path)]) == 1

    def test_config_show_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert main(["config", "show", "--path", str(Path(tmpdir) / "absent.json")]) == 1

    def test_gateway_command_reports_configuration_errors(self, monkeypatch, capsys) -> None:
        monkeypatch.setenv("CLOUDFLARE_TOKEN", "test-token")
        monkeypatch.delenv("CLOUDFLARE_ZONE_ID", raising=False)

        assert main(["guest-cache", "status"]) == 1
        assert "Cloudflare Zone ID is not configured." in capsys.readouterr().err

    def test_unreadable_config_fails(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("{broken", encoding="utf-8")

            assert main(["zones", "--config", str(path)]) == 1

    def test_summarize_zone_analytics(self) -> None:
        data = {"viewer": {"zones": [{"zones": [
            {"sum": {"requests": 10, "cachedRequests": 4, "bytes": 100, "pageViews": 3}},
            {"sum": {"requests": 5, "threats": 1}},
        ]}]}}

        totals = summarize_zone_analytics(data)

        assert totals["requests"] == 15
        assert totals["cached_requests"] == 4
        assert totals["threats"] == 1
        assert totals["page_views"] == 3
        assert summarize_zone_analytics({})["requests"] == 0

    def test_summary_json_safe(self) -> None:
        assert json.loads(json.dumps(summarize_zone_analytics({"viewer": None})))["bytes"] == 0
