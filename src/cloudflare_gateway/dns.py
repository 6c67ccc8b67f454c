"""
DNS record management.

List and single-record reads are cached per zone; every write invalidates the
zone's record list and, for updates and deletes, the record itself.
"""

from typing import Optional

from .base_service import BaseService, drop_none, query_suffix
from .enums import DnsRecordType


class DnsService(BaseService):
    """CRUD plus BIND export/import for a zone's DNS records."""

    COMPONENT = "dns"

    async def list_records(self, filters: Optional[dict] = None, zone_id: Optional[str] = None) -> dict:
        """
        List records matching ``filters``.

        Args:
            filters: Optional type, name, content, page, per_page, order, direction

        Returns:
            ``{"records": [...], "result_info": {...}}``
        """
        zone_id = self.ensure_zone_id(zone_id)
        filters = filters or {}
        query = drop_none({
            "type": filters.get("type"),
            "name": filters.get("name"),
            "content": filters.get("content"),
            "page": filters.get("page", 1),
            "per_page": filters.get("per_page", 100),
            "order": filters.get("order", "type"),
            "direction": filters.get("direction", "asc"),
        })

        async def produce() -> dict:
            envelope = await self._envelope("GET", f"zones/{zone_id}/dns_records", params=query)
            return {"records": envelope.result or [], "result_info": envelope.result_info}

        return await self.remember(f"dns_records:{zone_id}", produce, suffix=query_suffix(query))

    async def get_record(self, record_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)

        async def produce() -> dict:
            return await self._fetch("GET", f"zones/{zone_id}/dns_records/{record_id}") or {}

        return await self.remember(f"dns_record:{zone_id}:{record_id}", produce)

    @staticmethod
    def _record_payload(
        record_type: DnsRecordType,
        name: str,
        content: str,
        ttl: int,
        proxied: bool,
        priority: Optional[int],
        comment: Optional[str],
    ) -> dict:
        # proxied/priority are only sent for types that accept them
        return drop_none({
            "type": record_type.value,
            "name": name,
            "content": content,
            "ttl": ttl,
            "proxied": proxied if record_type.supports_proxy() else None,
            "priority": priority if record_type.requires_priority() else None,
            "comment": comment,
        })

    async def create_record(
        self,
        record_type: DnsRecordType,
        name: str,
        content: str,
        ttl: int = 1,
        proxied: bool = False,
        priority: Optional[int] = None,
        comment: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        payload = self._record_payload(record_type, name, content, ttl, proxied, priority, comment)
        result = await self._fetch("POST", f"zones/{zone_id}/dns_records", json=payload)
        await self.invalidate(f"dns_records:{zone_id}")
        return result or {}

    async def update_record(
        self,
        record_id: str,
        record_type: DnsRecordType,
        name: str,
        content: str,
        ttl: int = 1,
        proxied: bool = False,
        priority: Optional[int] = None,
        comment: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        payload = self._record_payload(record_type, name, content, ttl, proxied, priority, comment)
        result = await self._fetch("PATCH", f"zones/{zone_id}/dns_records/{record_id}", json=payload)
        await self.invalidate(f"dns_records:{zone_id}", f"dns_record:{zone_id}:{record_id}")
        return result or {}

    async def delete_record(self, record_id: str, zone_id: Optional[str] = None) -> dict:
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch("DELETE", f"zones/{zone_id}/dns_records/{record_id}")
        await self.invalidate(f"dns_records:{zone_id}", f"dns_record:{zone_id}:{record_id}")
        return result or {}

    async def export_records(self, zone_id: Optional[str] = None) -> str:
        """Zone records as BIND zone-file text."""
        zone_id = self.ensure_zone_id(zone_id)
        response = await self._client.request("GET", f"zones/{zone_id}/dns_records/export")
        return response.text

    async def import_records(self, bind_content: str, proxied: bool = False, zone_id: Optional[str] = None) -> dict:
        """Upload a BIND zone file as multipart form data."""
        zone_id = self.ensure_zone_id(zone_id)
        result = await self._fetch(
            "POST",
            f"zones/{zone_id}/dns_records/import",
            files={"file": ("records.txt", bind_content.encode("utf-8"), "text/plain")},
            data={"proxied": "true" if proxied else "false"},
        )
        await self.invalidate(f"dns_records:{zone_id}")
        return result or {}
