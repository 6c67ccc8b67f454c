"""
Firewall: custom ruleset, IP access rules and user-agent blocking rules.
"""

from typing import Optional

from .base_service import BaseService, drop_none
from .enums import FirewallMode, ProviderErrorCode, RulesetPhase
from .exceptions import ApiError, ConfigurationError
from .response import PaginatedResult


class FirewallService(BaseService):
    """Reads and writes a zone's firewall configuration."""

    COMPONENT = "firewall"

    async def get_firewall_rules(self, zone_id: Optional[str] = None) -> dict:
        """The custom-phase entrypoint ruleset, or ``{"rules": []}`` if none exists."""
        zone_id = self.ensure_zone_id(zone_id)
        path = f"zones/{zone_id}/rulesets/phases/{RulesetPhase.FIREWALL_CUSTOM.value}/entrypoint"

        async def produce() -> dict:
            try:
                return await self._fetch("GET", path) or {}
            except ApiError as e:
                if e.has_error_code(ProviderErrorCode.ENTRYPOINT_NOT_FOUND):
                    return {"rules": []}
                raise

        return await self.remember(f"firewall_rules:{zone_id}", produce)

    async def get_access_rules(self, page: int = 1, per_page: int = 50, zone_id: Optional[str] = None) -> list:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> list:
            return await self._fetch(
                "GET",
                f"zones/{zone_id}/firewall/access_rules/rules",
                params={"page": page, "per_page": per_page},
            ) or []

        return await self.remember(f"firewall_access_rules:{zone_id}", produce, suffix=f"{page}:{per_page}")

    async def create_access_rule(
        self,
        mode: FirewallMode,
        configuration: dict,
        notes: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        """
        Create an IP/ASN/country access rule.

        Raises:
            ConfigurationError: If ``configuration`` lacks ``target`` or ``value``
        """
        zone_id = self.ensure_zone_id(zone_id)
        if "target" not in configuration or "value" not in configuration:
            raise ConfigurationError.invalid_argument('Configuration must contain "target" and "value" keys.')

        payload = drop_none({"mode": mode.value, "configuration": configuration, "notes": notes})
        result = await self._fetch("POST", f"zones/{zone_id}/firewall/access_rules/rules", json=payload)
        await self.invalidate(f"firewall_access_rules:{zone_id}")
        return result or {}

    async def delete_access_rule(self, rule_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch("DELETE", f"zones/{zone_id}/firewall/access_rules/rules/{rule_id}")
        await self.invalidate(f"firewall_access_rules:{zone_id}")
        return result or {}

    async def get_user_agent_rules(
        self, page: int = 1, per_page: int = 1000, zone_id: Optional[str] = None
    ) -> PaginatedResult:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> dict:
            envelope = await self._envelope(
                "GET", f"zones/{zone_id}/firewall/ua_rules", params={"page": page, "per_page": per_page}
            )
            return PaginatedResult.from_envelope(envelope).to_dict()

        cached = await self.remember(f"firewall_ua_rules:{zone_id}", produce, suffix=f"{page}:{per_page}")
        return PaginatedResult(items=cached["items"], result_info=cached["result_info"])

    @staticmethod
    def _require_user_agent(user_agent: str) -> None:
        if not user_agent or not user_agent.strip():
            raise ConfigurationError.invalid_argument("User agent string must not be empty.")

    async def create_user_agent_rule(
        self,
        user_agent: str,
        mode: FirewallMode,
        description: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        self._require_user_agent(user_agent)

        payload = drop_none({
            "mode": mode.value,
            "configuration": {"target": "ua", "value": user_agent},
            "description": description,
        })
        result = await self._fetch("POST", f"zones/{zone_id}/firewall/ua_rules", json=payload)
        await self.invalidate(f"firewall_ua_rules:{zone_id}")
        return result or {}

    async def update_user_agent_rule(
        self,
        rule_id: str,
        mode: FirewallMode,
        user_agent: str,
        description: Optional[str] = None,
        paused: bool = False,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        self._require_user_agent(user_agent)

        payload = drop_none({
            "id": rule_id,
            "mode": mode.value,
            "configuration": {"target": "ua", "value": user_agent},
            "paused": paused,
            "description": description,
        })
        result = await self._fetch("PUT", f"zones/{zone_id}/firewall/ua_rules/{rule_id}", json=payload)
        await self.invalidate(f"firewall_ua_rules:{zone_id}")
        return result or {}

    async def delete_user_agent_rule(self, rule_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch("DELETE", f"zones/{zone_id}/firewall/ua_rules/{rule_id}")
        await self.invalidate(f"firewall_ua_rules:{zone_id}")
        return result or {}
