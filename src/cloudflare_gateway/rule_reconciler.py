"""
Idempotent feature toggles on top of ruleset CRUD.

A feature is identified only by its match expression: it is "on" when a rule
with exactly that expression exists in the remote ruleset and "off"
otherwise. Nothing is recorded locally. Enabling always creates a new rule,
so re-enabling with different parameters requires disabling first.
"""

from typing import Optional, Protocol

from .audit_logger import AuditLogger


class RulesBackend(Protocol):
    """Ruleset operations the reconciler needs from a rules service."""

    async def get_ruleset(self, zone_id: Optional[str] = None) -> dict:
        ...

    async def create_rule(
        self,
        expression: str,
        action_parameters: dict,
        description: str,
        ruleset_id: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        ...

    async def delete_rule(self, ruleset_id: str, rule_id: str, zone_id: Optional[str] = None) -> dict:
        ...


class RuleReconciler:
    """Derives and changes feature state from the rules matching an expression."""

    COMPONENT = "rule_reconciler"

    def __init__(self, rules: RulesBackend, logger: Optional[AuditLogger] = None) -> None:
        self._rules = rules
        self._logger = logger

    async def find_rules(self, expression: str, zone_id: Optional[str] = None) -> tuple[Optional[str], list]:
        """
        Rules whose expression equals ``expression`` exactly.

        Returns:
            ``(ruleset_id, matches)``; ruleset_id is None when no ruleset exists yet
        """
        ruleset = await self._rules.get_ruleset(zone_id) or {}
        rules = ruleset.get("rules") or []
        matches = [
            rule for rule in rules
            if isinstance(rule, dict) and rule.get("expression") == expression
        ]
        return ruleset.get("id"), matches

    async def is_enabled(self, expression: str, zone_id: Optional[str] = None) -> bool:
        _, matches = await self.find_rules(expression, zone_id)
        return len(matches) > 0

    async def enable(
        self,
        expression: str,
        action_parameters: dict,
        description: str,
        zone_id: Optional[str] = None,
    ) -> dict:
        """
        Create a rule for ``expression``.

        Writes the whole entrypoint when the zone has no ruleset yet, otherwise
        appends to the existing ruleset.
        """
        ruleset_id, _ = await self.find_rules(expression, zone_id)
        result = await self._rules.create_rule(
            expression, action_parameters, description, ruleset_id=ruleset_id, zone_id=zone_id
        )
        if self._logger:
            self._logger.info(
                self.COMPONENT,
                "Feature rule enabled",
                {"description": description, "ruleset_id": ruleset_id, "created_ruleset": ruleset_id is None},
            )
        return result

    async def disable(self, expression: str, zone_id: Optional[str] = None) -> int:
        """
        Delete every rule matching ``expression``.

        Disabling an already disabled feature is a no-op.

        Returns:
            Number of rules deleted
        """
        ruleset_id, matches = await self.find_rules(expression, zone_id)
        if not ruleset_id:
            return 0

        deleted = 0
        for rule in matches:
            rule_id = rule.get("id")
            if not rule_id:
                continue
            await self._rules.delete_rule(ruleset_id, rule_id, zone_id=zone_id)
            deleted += 1

        if deleted and self._logger:
            self._logger.info(
                self.COMPONENT,
                "Feature rule disabled",
                {"ruleset_id": ruleset_id, "deleted": deleted},
            )
        return deleted
