"""
Cache rules in the ``http_request_cache_settings`` ruleset phase.

A zone has no cache-settings ruleset until the first rule is written; the
provider reports that with error 10003, which reads as an empty rule list.
"""

from typing import Optional

from .base_service import BaseService
from .enums import ProviderErrorCode, RulesetPhase
from .exceptions import ApiError, ConfigurationError

CACHE_RULE_ACTION = "set_cache_settings"


class CacheRulesService(BaseService):
    """CRUD for cache rules; also the rules backend of the edge-caching toggles."""

    COMPONENT = "cache_rules"
    PHASE = RulesetPhase.CACHE_SETTINGS

    def _entrypoint(self, zone_id: str) -> str:
        return f"zones/{zone_id}/rulesets/phases/{self.PHASE.value}/entrypoint"

    async def get_cache_rules(self, zone_id: Optional[str] = None) -> dict:
        """The phase entrypoint ruleset, or ``{"rules": []}`` if none exists yet."""
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> dict:
            try:
                return await self._fetch("GET", self._entrypoint(zone_id)) or {}
            except ApiError as e:
                if e.has_error_code(ProviderErrorCode.ENTRYPOINT_NOT_FOUND):
                    return {"rules": []}
                raise

        return await self.remember(f"cache_rules:{zone_id}", produce)

    @staticmethod
    def _require_expression(expression: str) -> None:
        if not expression or not expression.strip():
            raise ConfigurationError.invalid_argument("Cache rule expression must not be empty.")

    async def create_cache_rule(
        self,
        description: str,
        expression: str,
        action_parameters: dict,
        ruleset_id: Optional[str] = None,
        enabled: bool = True,
        zone_id: Optional[str] = None,
    ) -> dict:
        """
        Create a rule.

        Without ``ruleset_id`` the whole entrypoint is written with PUT and
        this single rule; otherwise the rule is appended to that ruleset.
        """
        zone_id = self.ensure_zone_id(zone_id)
        self._require_expression(expression)

        rule = {
            "action": CACHE_RULE_ACTION,
            "description": description,
            "expression": expression,
            "action_parameters": action_parameters,
            "enabled": enabled,
        }

        if ruleset_id is None:
            result = await self._fetch("PUT", self._entrypoint(zone_id), json={"rules": [rule]})
        else:
            result = await self._fetch("POST", f"zones/{zone_id}/rulesets/{ruleset_id}/rules", json=rule)

        await self.invalidate(f"cache_rules:{zone_id}")
        return result or {}

    async def update_cache_rule(
        self,
        ruleset_id: str,
        rule_id: str,
        description: str,
        expression: str,
        action_parameters: dict,
        enabled: bool = True,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        self._require_expression(expression)

        rule = {
            "id": rule_id,
            "action": CACHE_RULE_ACTION,
            "description": description,
            "expression": expression,
            "action_parameters": action_parameters,
            "enabled": enabled,
        }
        result = await self._fetch("PATCH", f"zones/{zone_id}/rulesets/{ruleset_id}/rules/{rule_id}", json=rule)
        await self.invalidate(f"cache_rules:{zone_id}")
        return result or {}

    async def delete_cache_rule(self, ruleset_id: str, rule_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch("DELETE", f"zones/{zone_id}/rulesets/{ruleset_id}/rules/{rule_id}")
        await self.invalidate(f"cache_rules:{zone_id}")
        return result or {}

    # Rules backend used by RuleReconciler

    async def get_ruleset(self, zone_id: Optional[str] = None) -> dict:
        return await self.get_cache_rules(zone_id)

    async def create_rule(
        self,
        expression: str,
        action_parameters: dict,
        description: str,
        ruleset_id: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        return await self.create_cache_rule(
            description, expression, action_parameters, ruleset_id=ruleset_id, zone_id=zone_id
        )

    async def delete_rule(self, ruleset_id: str, rule_id: str, zone_id: Optional[str] = None) -> dict:
        return await self.delete_cache_rule(ruleset_id, rule_id, zone_id=zone_id)
