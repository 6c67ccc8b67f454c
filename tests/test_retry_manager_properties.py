"""
Property-based tests for the retry policy and the retrying client.

Covers backoff arithmetic, Retry-After handling, which outcomes are retried
and full response sequences driven through ``httpx.MockTransport``.
"""

import asyncio

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cloudflare_gateway.auth import CredentialResolver
from cloudflare_gateway.client import GatewayClient
from cloudflare_gateway.config import RetryConfig
from cloudflare_gateway.exceptions import RequestError
from cloudflare_gateway.retry_manager import RetryManager
from cloudflare_gateway.settings import StaticSettingsProvider

from fakes import FakeApi, RecordingSleep, envelope, json_response, ok


def _request() -> httpx.Request:
    return httpx.Request("GET", "https://api.cloudflare.com/client/v4/zones")


def _response(status_code: int, headers: dict = None) -> httpx.Response:
    return httpx.Response(status_code, headers=headers, request=_request())


def _client(api: FakeApi, sleep: RecordingSleep, retry: RetryConfig = None) -> GatewayClient:
    auth = CredentialResolver(StaticSettingsProvider({"cloudflare_token": "t"}))
    return GatewayClient(auth, retry=retry, transport=api.transport, sleep=sleep)


class TestBackoffProperty:
    """Delay arithmetic."""

    def test_default_sequence(self) -> None:
        manager = RetryManager(RetryConfig())

        assert [manager.calculate_delay_ms(n) for n in range(3)] == [1000, 2000, 4000]

    @given(
        base=st.integers(min_value=1, max_value=5000),
        retries=st.integers(min_value=0, max_value=10),
    )
    @settings(max_examples=100)
    def test_exponential_from_current_attempt(self, base: int, retries: int) -> None:
        manager = RetryManager(RetryConfig(base_delay_ms=base))

        assert manager.calculate_delay_ms(retries) == base * 2 ** retries

    @given(
        retries=st.integers(min_value=0, max_value=10),
        cap=st.integers(min_value=1, max_value=10000),
    )
    @settings(max_examples=100)
    def test_cap_is_honored(self, retries: int, cap: int) -> None:
        manager = RetryManager(RetryConfig(max_delay_ms=cap))

        assert manager.calculate_delay_ms(retries) <= cap

    @given(seconds=st.integers(min_value=0, max_value=600), retries=st.integers(min_value=0, max_value=2))
    @settings(max_examples=100)
    def test_retry_after_on_429_is_used_verbatim(self, seconds: int, retries: int) -> None:
        manager = RetryManager(RetryConfig())
        response = _response(429, {"Retry-After": str(seconds)})

        assert manager.calculate_delay_ms(retries, response) == seconds * 1000

    def test_retry_after_ignored_on_other_statuses(self) -> None:
        manager = RetryManager(RetryConfig())

        assert manager.calculate_delay_ms(1, _response(503, {"Retry-After": "30"})) == 2000

    def test_non_numeric_retry_after_uses_backoff(self) -> None:
        manager = RetryManager(RetryConfig())
        response = _response(429, {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})

        assert manager.calculate_delay_ms(2, response) == 4000

    def test_fractional_retry_after_is_honored(self) -> None:
        manager = RetryManager(RetryConfig())

        assert manager.calculate_delay_ms(2, _response(429, {"Retry-After": "1.5"})) == 1500
        assert manager.calculate_delay_ms(0, _response(429, {"Retry-After": " 0.25 "})) == 250

    @pytest.mark.parametrize("value", ["-1", "nan", "inf", ""])
    def test_unusable_retry_after_uses_backoff(self, value: str) -> None:
        manager = RetryManager(RetryConfig())

        assert manager.calculate_delay_ms(1, _response(429, {"Retry-After": value})) == 2000


class TestShouldRetryProperty:
    """Which outcomes are retried."""

    @given(status=st.integers(min_value=500, max_value=599))
    @settings(max_examples=50)
    def test_server_errors_are_retried(self, status: int) -> None:
        assert RetryManager(RetryConfig()).should_retry(0, response=_response(status))

    @given(status=st.integers(min_value=400, max_value=499).filter(lambda s: s != 429))
    @settings(max_examples=50)
    def test_other_client_errors_are_not_retried(self, status: int) -> None:
        assert not RetryManager(RetryConfig()).should_retry(0, response=_response(status))

    @given(status=st.integers(min_value=200, max_value=399))
    @settings(max_examples=50)
    def test_success_is_not_retried(self, status: int) -> None:
        assert not RetryManager(RetryConfig()).should_retry(0, response=_response(status))

    def test_rate_limit_is_retried(self) -> None:
        assert RetryManager(RetryConfig()).should_retry(0, response=_response(429))

    def test_transport_errors_are_retried(self) -> None:
        error = httpx.ConnectError("connection refused", request=_request())

        assert RetryManager(RetryConfig()).should_retry(0, exception=error)

    def test_other_exceptions_are_not_retried(self) -> None:
        assert not RetryManager(RetryConfig()).should_retry(0, exception=ValueError("bad"))

    @given(max_retries=st.integers(min_value=0, max_value=5))
    @settings(max_examples=20)
    def test_budget_is_respected(self, max_retries: int) -> None:
        manager = RetryManager(RetryConfig(max_retries=max_retries))

        assert not manager.should_retry(max_retries, response=_response(500))


class TestRetrySequences:
    """Complete call sequences through the client."""

    def test_rate_limited_then_success(self) -> None:
        api = FakeApi().route(
            "GET", "zones",
            json_response(429, envelope(None, success=False), headers={"Retry-After": "0"}),
            ok([{"id": "z1"}]),
        )
        sleep = RecordingSleep()

        async def run():
            async with _client(api, sleep) as client:
                return await client.make_request("GET", "zones")

        result = asyncio.run(run())

        assert result.is_successful()
        assert result.result == [{"id": "z1"}]
        assert len(api.requests) == 2
        assert sleep.calls == [0.0]

    def test_server_errors_exhaust_retries(self) -> None:
        failure = json_response(500, envelope(None, success=False, errors=[{"code": 1, "message": "oops"}]))
        api = FakeApi().route("GET", "zones", failure)
        sleep = RecordingSleep()

        async def run():
            async with _client(api, sleep) as client:
                return await client.make_request("GET", "zones")

        result = asyncio.run(run())

        assert not result.is_successful()
        assert result.status_code == 500
        assert len(api.requests) == 4
        assert sleep.calls == [1.0, 2.0, 4.0]

    def test_bad_request_is_not_retried(self) -> None:
        api = FakeApi().route(
            "GET", "zones",
            json_response(400, envelope(None, success=False, errors=[{"code": 1004, "message": "Invalid"}])),
        )
        sleep = RecordingSleep()

        async def run():
            async with _client(api, sleep) as client:
                return await client.make_request("GET", "zones")

        result = asyncio.run(run())

        assert not result.is_successful()
        assert len(api.requests) == 1
        assert sleep.calls == []

    def test_connection_errors_are_wrapped_after_retries(self) -> None:
        api = FakeApi().route("GET", "zones", httpx.ConnectError("connection refused"))
        sleep = RecordingSleep()

        async def run():
            async with _client(api, sleep) as client:
                return await client.make_request("GET", "/zones")

        with pytest.raises(RequestError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.method == "GET"
        assert exc_info.value.path == "/zones"
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert "connection refused" in exc_info.value.message
        assert len(api.requests) == 4

    def test_connection_error_then_success(self) -> None:
        api = FakeApi().route("GET", "zones", httpx.ConnectError("reset"), ok([]))
        sleep = RecordingSleep()

        async def run():
            async with _client(api, sleep) as client:
                return await client.make_request("GET", "zones")

        assert asyncio.run(run()).is_successful()
        assert sleep.calls == [1.0]

    def test_deadline_stops_retries(self) -> None:
        calls = []

        async def operation() -> httpx.Response:
            calls.append(1)
            return _response(503)

        sleep = RecordingSleep()
        manager = RetryManager(RetryConfig(), sleep=sleep, clock=lambda: 100.0)

        response = asyncio.run(manager.execute(operation, "GET", "/zones", deadline=101.5))

        # First retry (1s) fits before the deadline, the second (2s) does not
        assert response.status_code == 503
        assert len(calls) == 2
        assert sleep.calls == [1.0]


class TestRequestHeaders:
    """Auth headers reach the wire and win over caller headers."""

    def test_auth_headers_override_caller_headers(self) -> None:
        api = FakeApi().route("GET", "zones", ok([]))

        async def run():
            async with _client(api, RecordingSleep()) as client:
                await client.request(
                    "GET", "zones",
                    headers={"Authorization": "Bearer spoofed", "X-Trace": "abc"},
                )

        asyncio.run(run())

        sent = api.requests[0]
        assert sent.headers["Authorization"] == "Bearer t"
        assert sent.headers["X-Trace"] == "abc"
        assert sent.headers["Content-Type"] == "application/json"

    def test_missing_credentials_trigger_one_refresh(self) -> None:
        settings_provider = StaticSettingsProvider({})
        auth = CredentialResolver(settings_provider)
        settings_provider.update(cloudflare_token="late-token")
        api = FakeApi().route("GET", "zones", ok([]))

        async def run():
            async with GatewayClient(auth, transport=api.transport, sleep=RecordingSleep()) as client:
                await client.request("GET", "zones")

        asyncio.run(run())

        assert api.requests[0].headers["Authorization"] == "Bearer late-token"

    def test_none_query_values_are_dropped(self) -> None:
        api = FakeApi().route("GET", "zones", ok([]))

        async def run():
            async with _client(api, RecordingSleep()) as client:
                await client.request("GET", "zones", params={"name": None, "page": 2})

        asyncio.run(run())

        assert dict(api.requests[0].url.params) == {"page": "2"}
