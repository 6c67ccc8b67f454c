"""Zone listing, details and settings."""

from typing import Any, Optional

from .base_service import BaseService


class ZoneService(BaseService):
    """Reads zones and updates zone settings."""

    COMPONENT = "zones"

    async def list_zones(self) -> list:
        async def produce() -> list:
            return await self._fetch("GET", "zones") or []

        return await self.remember("zones", produce)

    async def get_zone_details(self, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> dict:
            return await self._fetch("GET", f"zones/{zone_id}") or {}

        return await self.remember(f"zone_details:{zone_id}", produce)

    async def get_zone_settings(self, zone_id: Optional[str] = None) -> list:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> list:
            return await self._fetch("GET", f"zones/{zone_id}/settings") or []

        return await self.remember(f"zone_settings:{zone_id}", produce)

    async def update_zone_setting(self, setting: str, value: Any, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch("PATCH", f"zones/{zone_id}/settings/{setting}", json={"value": value})
        await self.invalidate(f"zone_settings:{zone_id}")
        return result or {}

    async def update_zone_settings(self, settings: dict, zone_id: Optional[str] = None) -> list:
        """
        Update several settings in one call.

        Values may be given bare or as ``{"value": ...}`` mappings.
        """
        zone_id = self.ensure_zone_id(zone_id)
        items = []
        for setting_id, setting in settings.items():
            value = setting["value"] if isinstance(setting, dict) and "value" in setting else setting
            items.append({"id": setting_id, "value": value})

        result = await self._fetch("PATCH", f"zones/{zone_id}/settings", json={"items": items})
        await self.invalidate(f"zone_settings:{zone_id}")
        return result or []
