"""
Tests for the GraphQL analytics client and the cached analytics service.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cloudflare_gateway.exceptions import MalformedResponse, RequestError
from cloudflare_gateway.graphql_client import (
    DATE_FORMAT,
    ZULU_FORMAT,
    GraphQLAnalyticsClient,
    build_time_window,
)

from fakes import ZONE_ID, FakeApi, make_gateway

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _run(api, operation):
    async def run():
        async with make_gateway(api) as gateway:
            gateway.graphql = GraphQLAnalyticsClient(gateway.client, now=lambda: NOW)
            gateway.analytics._graphql = gateway.graphql
            return await operation(gateway)

    return asyncio.run(run())


def graphql_ok(data) -> httpx.Response:
    return httpx.Response(200, json={"data": data, "errors": None})


class TestTimeWindow:
    """Window selection and formatting."""

    def test_single_day_is_hourly(self) -> None:
        window = build_time_window(1, now=NOW)

        assert window.group_name == "httpRequests1hGroups"
        assert window.time_field == "datetime"
        assert window.since == "2026-01-14T12:00:00Z"
        assert window.until == "2026-01-15T11:59:59Z"

    def test_exact_single_day_is_daily(self) -> None:
        window = build_time_window(1, exact_date=True, now=NOW)

        assert window.group_name == "httpRequests1dGroups"
        assert window.time_field == "date"
        assert (window.since, window.until) == ("2026-01-14", "2026-01-15")

    @given(days=st.sampled_from([7, 30, 90]))
    @settings(max_examples=10)
    def test_longer_windows_are_daily(self, days: int) -> None:
        window = build_time_window(days, now=NOW)

        assert window.group_name == "httpRequests1dGroups"
        assert window.since == (NOW - timedelta(days=days)).strftime(DATE_FORMAT)

    @given(now=st.datetimes(
        min_value=datetime(2000, 1, 1),
        max_value=datetime(2100, 1, 1),
        timezones=st.just(timezone.utc),
    ))
    @settings(max_examples=50)
    def test_hourly_bounds_are_ordered(self, now: datetime) -> None:
        window = build_time_window(1, now=now)

        since = datetime.strptime(window.since, ZULU_FORMAT)
        until = datetime.strptime(window.until, ZULU_FORMAT)
        assert since < until


class TestQuery:
    """Request shape and error mapping."""

    def test_posts_query_and_returns_data(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({"viewer": {"zones": [{"totals": []}]}}))

        result = _run(api, lambda g: g.graphql.get_zone_analytics(ZONE_ID))

        assert result == {"viewer": {"zones": [{"totals": []}]}}
        sent = api.requests[0]
        body = json.loads(sent.content)
        assert body["operationName"] == "GetZoneAnalytics"
        assert body["variables"] == {
            "zoneTag": ZONE_ID,
            "since": "2026-01-14T12:00:00Z",
            "until": "2026-01-15T11:59:59Z",
        }
        assert "httpRequests1hGroups" in body["query"]
        assert sent.headers["Authorization"] == "Bearer test-token"

    def test_date_from_anchors_hourly_window(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({}))
        anchor = datetime(2025, 3, 10, 6, 0, 0, tzinfo=timezone.utc)

        _run(api, lambda g: g.graphql.get_zone_analytics(ZONE_ID, date_from=anchor))

        variables = json.loads(api.requests[0].content)["variables"]
        assert variables["since"] == "2025-03-09T06:00:00Z"
        assert variables["until"] == "2025-03-10T05:59:59Z"

    def test_missing_data_reads_as_empty(self) -> None:
        api = FakeApi().route("POST", "graphql", httpx.Response(200, json={"errors": [{"message": "bad"}]}))

        assert _run(api, lambda g: g.graphql.query("Q", "query { viewer }")) == {}

    def test_anonymous_query_has_no_operation_name(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({}))

        _run(api, lambda g: g.graphql.get_dmarc_analytics(ZONE_ID))

        body = json.loads(api.requests[0].content)
        assert "operationName" not in body
        assert body["variables"]["filter"]["AND"][0] == {"date_geq": "2026-01-08", "date_leq": "2026-01-15"}

    def test_approved_sources_are_excluded(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({}))

        _run(api, lambda g: g.graphql.get_dmarc_sources(ZONE_ID, ["google", "amazon"]))

        variables = json.loads(api.requests[0].content)["variables"]
        assert variables["filter"]["AND"] == [{"sourceOrgSlug_notin": ["google", "amazon"]}]

    def test_captcha_filters_name_rule(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({}))

        _run(api, lambda g: g.graphql.get_captcha_solve_rate(ZONE_ID, "rule-9"))

        variables = json.loads(api.requests[0].content)["variables"]
        assert variables["issued_filter"]["ruleId"] == "rule-9"
        assert {"action": "managed_challenge"} in variables["issued_filter"]["OR"]
        assert {"action": "challenge_solved"} in variables["solved_filter"]["OR"]

    def test_http_error_becomes_request_error(self) -> None:
        api = FakeApi().route("POST", "graphql", httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(RequestError) as exc_info:
            _run(api, lambda g: g.graphql.query("Q", "query { viewer }"))

        assert exc_info.value.method == "POST"
        assert exc_info.value.path == "/graphql"
        assert len(api.requests) == 1

    def test_transport_error_is_not_retried(self) -> None:
        api = FakeApi().route("POST", "graphql", httpx.ConnectError("refused"))

        with pytest.raises(RequestError):
            _run(api, lambda g: g.graphql.query("Q", "query { viewer }"))

        assert len(api.requests) == 1

    def test_non_json_body_is_malformed(self) -> None:
        api = FakeApi().route("POST", "graphql", httpx.Response(200, text="<html>"))

        with pytest.raises(MalformedResponse):
            _run(api, lambda g: g.graphql.query("Q", "query { viewer }"))


class TestAnalyticsService:
    def test_results_are_cached_per_query(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({"viewer": {}}))

        async def operation(gateway):
            await gateway.analytics.get_zone_analytics(days=1)
            await gateway.analytics.get_zone_analytics(days=1)
            await gateway.analytics.get_zone_analytics(days=7)

        _run(api, operation)

        assert len(api.requests) == 2

    def test_uses_configured_zone(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({}))

        _run(api, lambda g: g.analytics.get_rule_activity("rule-1"))

        assert json.loads(api.requests[0].content)["variables"]["zoneTag"] == ZONE_ID

    def test_anchor_date_shifts_window_and_cache_key(self) -> None:
        api = FakeApi().route("POST", "graphql", graphql_ok({"viewer": {}}))
        anchor = datetime(2025, 6, 1, tzinfo=timezone.utc)

        async def operation(gateway):
            await gateway.analytics.get_zone_analytics(days=7, date_from=anchor)
            await gateway.analytics.get_zone_analytics(days=7, date_from=anchor)
            await gateway.analytics.get_zone_analytics(days=7)

        _run(api, operation)

        assert len(api.requests) == 2
        anchored = json.loads(api.requests[0].content)["variables"]
        assert (anchored["since"], anchored["until"]) == ("2025-05-25", "2025-05-31")
        assert json.loads(api.requests[1].content)["variables"]["until"] == "2026-01-15"
