"""Zone-scoped analytics with response caching."""

from datetime import datetime
from typing import Optional

from .audit_logger import AuditLogger
from .base_service import BaseService, query_suffix
from .cache import VersionedCache
from .client import GatewayClient
from .graphql_client import GraphQLAnalyticsClient
from .settings import SettingsProvider


class AnalyticsService(BaseService):
    """Resolves the zone and caches GraphQL analytics under ``analytics:{zone}``."""

    COMPONENT = "analytics"

    def __init__(
        self,
        client: GatewayClient,
        settings: SettingsProvider,
        cache: VersionedCache,
        graphql: GraphQLAnalyticsClient,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        super().__init__(client, settings, cache, logger)
        self._graphql = graphql

    @property
    def graphql(self) -> GraphQLAnalyticsClient:
        return self._graphql

    async def get_zone_analytics(
        self,
        days: int = 1,
        exact_date: bool = False,
        zone_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        params = {"query": "zone", "days": days, "exact_date": exact_date}
        if date_from is not None:
            params["date_from"] = date_from.isoformat()
        return await self.remember(
            f"analytics:{zone_id}",
            lambda: self._graphql.get_zone_analytics(zone_id, days, exact_date, date_from),
            suffix=query_suffix(params),
        )

    async def get_captcha_solve_rate(self, rule_id: str, days: int = 1, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        suffix = query_suffix({"query": "captcha", "rule_id": rule_id, "days": days})
        return await self.remember(
            f"analytics:{zone_id}",
            lambda: self._graphql.get_captcha_solve_rate(zone_id, rule_id, days),
            suffix=suffix,
        )

    async def get_rule_activity(self, rule_id: str, days: int = 1, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        suffix = query_suffix({"query": "rule_activity", "rule_id": rule_id, "days": days})
        return await self.remember(
            f"analytics:{zone_id}",
            lambda: self._graphql.get_rule_activity(zone_id, rule_id, days),
            suffix=suffix,
        )

    async def get_dmarc_sources(
        self, approved_sources: Optional[list] = None, days: int = 7, zone_id: Optional[str] = None
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        suffix = query_suffix({"query": "dmarc_sources", "approved": sorted(approved_sources or []), "days": days})
        return await self.remember(
            f"analytics:{zone_id}",
            lambda: self._graphql.get_dmarc_sources(zone_id, approved_sources, days),
            suffix=suffix,
        )

    async def get_dmarc_analytics(self, days: int = 7, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        suffix = query_suffix({"query": "dmarc_analytics", "days": days})
        return await self.remember(
            f"analytics:{zone_id}",
            lambda: self._graphql.get_dmarc_analytics(zone_id, days),
            suffix=suffix,
        )
