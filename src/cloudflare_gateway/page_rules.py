"""Page rules."""

from typing import Optional

from .base_service import BaseService
from .enums import PageRuleStatus
from .exceptions import ConfigurationError


class PageRulesService(BaseService):
    COMPONENT = "page_rules"

    async def get_page_rules(self, zone_id: Optional[str] = None) -> list:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> list:
            return await self._fetch("GET", f"zones/{zone_id}/pagerules") or []

        return await self.remember(f"page_rules:{zone_id}", produce)

    async def get_page_rule(self, rule_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> dict:
            return await self._fetch("GET", f"zones/{zone_id}/pagerules/{rule_id}") or {}

        return await self.remember(f"page_rule:{zone_id}:{rule_id}", produce)

    @staticmethod
    def _payload(targets: list, actions: list, priority: int, status: PageRuleStatus) -> dict:
        if not targets:
            raise ConfigurationError.invalid_argument("Page rule targets must not be empty.")
        return {"targets": targets, "actions": actions, "priority": priority, "status": status.value}

    async def create_page_rule(
        self,
        targets: list,
        actions: list,
        priority: int = 1,
        status: PageRuleStatus = PageRuleStatus.ACTIVE,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        payload = self._payload(targets, actions, priority, status)
        result = await self._fetch("POST", f"zones/{zone_id}/pagerules", json=payload)
        await self.invalidate(f"page_rules:{zone_id}")
        return result or {}

    async def update_page_rule(
        self,
        rule_id: str,
        targets: list,
        actions: list,
        priority: int,
        status: PageRuleStatus,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        payload = self._payload(targets, actions, priority, status)
        result = await self._fetch("PUT", f"zones/{zone_id}/pagerules/{rule_id}", json=payload)
        await self.invalidate(f"page_rules:{zone_id}", f"page_rule:{zone_id}:{rule_id}")
        return result or {}

    async def delete_page_rule(self, rule_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch("DELETE", f"zones/{zone_id}/pagerules/{rule_id}")
        await self.invalidate(f"page_rules:{zone_id}", f"page_rule:{zone_id}:{rule_id}")
        return result or {}
