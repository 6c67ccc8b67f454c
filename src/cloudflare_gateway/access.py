"""
Zero Trust Access applications, groups and identity providers.

All calls are account scoped; creating an admin protection app also needs the
zone, whose name becomes the protected hostname.
"""

from typing import Optional

from .base_service import BaseService
from .exceptions import ConfigurationError

ADMIN_APP_PATHS = {"admin": "/admin", "install": "/install"}


class AccessService(BaseService):
    COMPONENT = "access"

    async def _list(self, group: str, resource: str) -> list:
        account_id = self.ensure_account_id()

        async def produce() -> list:
            result = await self._fetch("GET", f"accounts/{account_id}/access/{resource}")
            return result if isinstance(result, list) else []

        return await self.remember(f"{group}:{account_id}", produce)

    async def get_access_apps(self) -> list:
        return await self._list("access_apps", "apps")

    async def get_access_groups(self) -> list:
        return await self._list("access_groups", "groups")

    async def get_identity_providers(self) -> list:
        return await self._list("access_idps", "identity_providers")

    async def create_admin_access_app(self, kind: str = "admin", zone_id: Optional[str] = None) -> dict:
        """
        Protect ``https://{zone}/admin`` (or ``/install``) with a self-hosted Access app.

        Raises:
            ConfigurationError: If no identity provider is configured for the account
        """
        zone_id = self.ensure_zone_id(zone_id)
        account_id = self.ensure_account_id()

        if not await self.get_identity_providers():
            raise ConfigurationError(
                code="missing_identity_provider",
                message=(
                    "No Cloudflare Access login methods configured. Please configure at least "
                    "one identity provider in Cloudflare Zero Trust dashboard."
                ),
            )

        zone = await self._fetch("GET", f"zones/{zone_id}") or {}
        domain = zone.get("name", "")
        host_path = f"{domain}{ADMIN_APP_PATHS.get(kind, '/admin')}"

        payload = {
            "name": f"Laravel {kind} protection",
            "type": "self_hosted",
            "destinations": [{"type": "public", "uri": host_path}],
            "session_duration": "24h",
            "policies": [
                {
                    "decision": "allow",
                    "name": f"Allow {kind} access",
                    "include": [{"email": {"email": "*"}}],
                    "exclude": [],
                    "require": [],
                }
            ],
        }

        result = await self._fetch("POST", f"accounts/{account_id}/access/apps", json=payload)
        await self.invalidate(f"access_apps:{account_id}")
        self._log_info("Access app created", {"kind": kind, "uri": host_path})
        return result or {}

    async def delete_access_app(self, app_id: str) -> dict:
        account_id = self.ensure_account_id()
        result = await self._fetch("DELETE", f"accounts/{account_id}/access/apps/{app_id}")
        await self.invalidate(f"access_apps:{account_id}")
        return result or {}
