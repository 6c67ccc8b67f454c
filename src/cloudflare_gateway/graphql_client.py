"""
GraphQL analytics client.

Analytics are best effort: queries go through a separate client without the
retry wrapper, and a transport or HTTP failure surfaces as RequestError on
``POST /graphql``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .client import GatewayClient
from .exceptions import MalformedResponse, RequestError

ZULU_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
DATE_FORMAT = "%Y-%m-%d"

ZONE_ANALYTICS_QUERY = """query GetZoneAnalytics($zoneTag: string, $since: string, $until: string) {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      totals: %(group)s(limit: 10000, filter: {%(field)s_geq: $since, %(field)s_lt: $until}) {
        uniq { uniques }
      }
      zones: %(group)s(orderBy: [%(field)s_ASC], limit: 10000, filter: {%(field)s_geq: $since, %(field)s_lt: $until}) {
        dimensions { timeslot: %(field)s }
        uniq { uniques }
        sum {
          browserMap { pageViews key: uaBrowserFamily }
          bytes
          cachedBytes
          cachedRequests
          contentTypeMap { bytes requests key: edgeResponseContentTypeName }
          clientSSLMap { requests key: clientSSLProtocol }
          countryMap { bytes requests threats key: clientCountryName }
          encryptedBytes
          encryptedRequests
          ipClassMap { requests key: ipType }
          pageViews
          requests
          responseStatusMap { requests key: edgeResponseStatus }
          threats
          threatPathingMap { requests key: threatPathingName }
        }
      }
    }
  }
}"""

CAPTCHA_SOLVE_RATE_QUERY = """query GetCaptchaSolvedRate($zoneTag: string) {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      issued: firewallEventsAdaptiveByTimeGroups(limit: 1, filter: $issued_filter) { count }
      solved: firewallEventsAdaptiveByTimeGroups(limit: 1, filter: $solved_filter) { count }
    }
  }
}"""

RULE_ACTIVITY_QUERY = """query RuleActivityQuery($zoneTag: string) {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      issued: firewallEventsAdaptiveByTimeGroups(limit: 1, filter: $filter) { count }
    }
  }
}"""

DMARC_SOURCES_QUERY = """query {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      dmarcReportsSourcesAdaptiveGroups(limit: 10000, filter: $filter, orderBy: [sum_totalMatchingMessages_DESC]) {
        dimensions { sourceOrgName sourceOrgSlug }
        avg { dmarc dkimPass spfPass }
        sum { totalMatchingMessages }
        uniq { ipCount }
      }
    }
  }
}"""

DMARC_ANALYTICS_QUERY = """query {
  viewer {
    zones(filter: {zoneTag: $zoneTag}) {
      dmarcReportsSourcesAdaptiveGroups(limit: 10000, filter: $filter, orderBy: [datetimeDay_DESC, sum_totalMatchingMessages_DESC]) {
        dimensions { datetimeDay dkim spf }
        sum { totalMatchingMessages }
      }
    }
  }
}"""

CHALLENGE_ISSUED_ACTIONS = ("jschallenge", "managed_challenge", "challenge")
CHALLENGE_SOLVED_ACTIONS = (
    "jschallenge_solved",
    "challenge_solved",
    "managed_challenge_non_interactive_solved",
    "managed_challenge_interactive_solved",
)
CHALLENGE_OUTCOME_ACTIONS = (
    "challenge_solved",
    "challenge_failed",
    "challenge_bypassed",
    "jschallenge_solved",
    "jschallenge_failed",
    "jschallenge_bypassed",
    "managed_challenge_skipped",
    "managed_challenge_non_interactive_solved",
    "managed_challenge_interactive_solved",
    "managed_challenge_bypassed",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    """Query window for zone traffic analytics."""

    group_name: str
    time_field: str
    since: str
    until: str


def build_time_window(days: int = 1, exact_date: bool = False, now: Optional[datetime] = None) -> TimeWindow:
    """
    Window ending one second before ``now`` and starting ``days`` earlier.

    A single non-exact day uses hourly groups with Zulu timestamps; anything
    else uses daily groups with plain dates.
    """
    now = now or _utcnow()
    start = now - timedelta(days=days)
    end = now - timedelta(seconds=1)

    if days == 1 and not exact_date:
        group_name, time_field, fmt = "httpRequests1hGroups", "datetime", ZULU_FORMAT
    else:
        group_name, time_field, fmt = "httpRequests1dGroups", "date", DATE_FORMAT

    return TimeWindow(group_name, time_field, start.strftime(fmt), end.strftime(fmt))


class GraphQLAnalyticsClient:
    """Builds and runs analytics queries against the GraphQL endpoint."""

    COMPONENT = "graphql"

    def __init__(
        self,
        client: GatewayClient,
        logger: Optional[AuditLogger] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._logger = logger
        self._now = now

    async def query(self, operation_name: Optional[str], query: str, variables: Optional[dict] = None) -> dict:
        """
        Run a query and return its ``data`` member (``{}`` when absent).

        Raises:
            RequestError: On transport failure or an HTTP error status
            MalformedResponse: If the body is not JSON
        """
        payload: dict = {"query": query, "variables": variables or {}}
        if operation_name is not None:
            payload = {"operationName": operation_name, **payload}

        async with self._client.for_graphql() as graphql:
            try:
                response = await graphql.post(self._client.config.graphql_url, json=payload)
                response.raise_for_status()
            except httpx.HTTPError as e:
                if self._logger:
                    self._logger.log_error(
                        self.COMPONENT,
                        "Cloudflare GraphQL Error",
                        error=e,
                        method="POST",
                        path="/graphql",
                        additional_data={"operation": operation_name},
                    )
                raise RequestError(
                    message=f"Cloudflare GraphQL request failed: {e}",
                    method="POST",
                    path="/graphql",
                    cause=e,
                ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse("Invalid JSON response from Cloudflare GraphQL API") from e

        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, dict) else {}

    async def get_zone_analytics(
        self,
        zone_id: str,
        days: int = 1,
        exact_date: bool = False,
        date_from: Optional[datetime] = None,
    ) -> dict:
        """Traffic for the ``days`` before ``date_from`` (now when omitted)."""
        window = build_time_window(days, exact_date, date_from or self._now())
        query = ZONE_ANALYTICS_QUERY % {"group": window.group_name, "field": window.time_field}
        return await self.query(
            "GetZoneAnalytics",
            query,
            {"zoneTag": zone_id, "since": window.since, "until": window.until},
        )

    def _event_window(self, days: int) -> tuple[str, str]:
        now = self._now()
        return (now - timedelta(days=days)).strftime(ZULU_FORMAT), (now - timedelta(seconds=1)).strftime(ZULU_FORMAT)

    async def get_captcha_solve_rate(self, zone_id: str, rule_id: str, days: int = 1) -> dict:
        since, until = self._event_window(days)

        def event_filter(actions: tuple) -> dict:
            return {
                "OR": [{"action": action} for action in actions],
                "datetime_geq": since,
                "datetime_leq": until,
                "ruleId": rule_id,
            }

        return await self.query(
            "GetCaptchaSolvedRate",
            CAPTCHA_SOLVE_RATE_QUERY,
            {
                "zoneTag": zone_id,
                "issued_filter": event_filter(CHALLENGE_ISSUED_ACTIONS),
                "solved_filter": event_filter(CHALLENGE_SOLVED_ACTIONS),
            },
        )

    async def get_rule_activity(self, zone_id: str, rule_id: str, days: int = 1) -> dict:
        since, until = self._event_window(days)
        return await self.query(
            "RuleActivityQuery",
            RULE_ACTIVITY_QUERY,
            {
                "zoneTag": zone_id,
                "filter": {
                    "AND": [{"action_neq": action} for action in CHALLENGE_OUTCOME_ACTIONS],
                    "datetime_geq": since,
                    "datetime_leq": until,
                    "ruleId": rule_id,
                },
            },
        )

    async def get_dmarc_sources(self, zone_id: str, approved_sources: Optional[list] = None, days: int = 7) -> dict:
        today = self._now()
        date_filter: dict = {
            "date_gt": (today - timedelta(days=days)).strftime(DATE_FORMAT),
            "date_leq": today.strftime(DATE_FORMAT),
        }
        if approved_sources:
            date_filter["AND"] = [{"sourceOrgSlug_notin": list(approved_sources)}]
        return await self.query(None, DMARC_SOURCES_QUERY, {"zoneTag": zone_id, "filter": date_filter})

    async def get_dmarc_analytics(self, zone_id: str, days: int = 7) -> dict:
        today = self._now()
        return await self.query(
            None,
            DMARC_ANALYTICS_QUERY,
            {
                "zoneTag": zone_id,
                "filter": {
                    "AND": [
                        {
                            "date_geq": (today - timedelta(days=days)).strftime(DATE_FORMAT),
                            "date_leq": today.strftime(DATE_FORMAT),
                        }
                    ]
                },
            },
        )
