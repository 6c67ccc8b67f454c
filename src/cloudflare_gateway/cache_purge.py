"""Edge cache purging."""

from typing import Optional

from .base_service import BaseService, drop_none
from .exceptions import ConfigurationError


class CachePurgeService(BaseService):
    """Purges cached content for a zone."""

    COMPONENT = "cache_purge"

    async def purge_cache(
        self,
        purge_everything: bool = True,
        files: Optional[list] = None,
        tags: Optional[list] = None,
        hosts: Optional[list] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        """
        Purge everything, or only the given files, cache tags or hosts.

        Raises:
            ConfigurationError: If a selective purge names no selector
        """
        zone_id = self.ensure_zone_id(zone_id)

        if purge_everything:
            payload: dict = {"purge_everything": True}
        else:
            payload = drop_none({"files": files, "tags": tags, "hosts": hosts})
            if not payload:
                raise ConfigurationError.invalid_argument(
                    "A selective purge needs at least one of files, tags or hosts."
                )

        result = await self._fetch("POST", f"zones/{zone_id}/purge_cache", json=payload)
        self._log_info("Cache purged", {"zone_id": zone_id, "purge_everything": purge_everything})
        return result or {}
