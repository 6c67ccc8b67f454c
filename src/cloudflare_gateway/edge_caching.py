"""
Edge caching toggles: guest pages and media attachments.

Each toggle is a cache rule identified by a fixed expression. Guest pages are
GET requests without a query string from visitors carrying no session or
XSRF cookie; media are files with a known extension under a path prefix.
"""

from typing import Optional

from .rule_reconciler import RuleReconciler

GUEST_EXPRESSION = (
    '(not http.cookie contains "laravel_session=" and not http.cookie contains "XSRF-TOKEN=" '
    'and http.request.method eq "GET" and http.request.uri.query eq "")'
)

MEDIA_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".mp4", ".webm", ".mp3", ".ogg", ".wav")
DEFAULT_MEDIA_PREFIX = "/storage"

GUEST_DESCRIPTION = "Cache guest pages"
MEDIA_DESCRIPTION = "Cache media attachments"


def media_expression(prefix: str = DEFAULT_MEDIA_PREFIX) -> str:
    extensions = " or ".join(f'ends_with(http.request.uri.path, "{ext}")' for ext in MEDIA_EXTENSIONS)
    return f'(starts_with(http.request.uri.path, "{prefix}") and ({extensions}))'


def build_cache_action(seconds: int) -> dict:
    """Cache eligibility with edge and browser TTLs overriding the origin."""
    return {
        "cache": True,
        "edge_ttl": {"default": seconds, "mode": "override_origin"},
        "browser_ttl": {"default": seconds, "mode": "override_origin"},
    }


class EdgeCachingService:
    """Guest-page and media caching switches for a zone."""

    def __init__(self, reconciler: RuleReconciler) -> None:
        self._reconciler = reconciler

    async def enable_guest_cache(self, seconds: int, zone_id: Optional[str] = None) -> dict:
        return await self._reconciler.enable(GUEST_EXPRESSION, build_cache_action(seconds), GUEST_DESCRIPTION, zone_id)

    async def disable_guest_cache(self, zone_id: Optional[str] = None) -> int:
        return await self._reconciler.disable(GUEST_EXPRESSION, zone_id)

    async def is_guest_cache_enabled(self, zone_id: Optional[str] = None) -> bool:
        return await self._reconciler.is_enabled(GUEST_EXPRESSION, zone_id)

    async def enable_media_cache(
        self, seconds: int, zone_id: Optional[str] = None, prefix: Optional[str] = None
    ) -> dict:
        return await self._reconciler.enable(
            media_expression(prefix or DEFAULT_MEDIA_PREFIX),
            build_cache_action(seconds),
            MEDIA_DESCRIPTION,
            zone_id,
        )

    async def disable_media_cache(self, zone_id: Optional[str] = None, prefix: Optional[str] = None) -> int:
        return await self._reconciler.disable(media_expression(prefix or DEFAULT_MEDIA_PREFIX), zone_id)

    async def is_media_cache_enabled(self, zone_id: Optional[str] = None, prefix: Optional[str] = None) -> bool:
        return await self._reconciler.is_enabled(media_expression(prefix or DEFAULT_MEDIA_PREFIX), zone_id)

    async def reenable_media_cache(
        self,
        seconds: int,
        old_prefix: Optional[str] = None,
        new_prefix: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> dict:
        """Switch media caching to new parameters, removing the previous rule first."""
        await self.disable_media_cache(zone_id, old_prefix)
        if (new_prefix or DEFAULT_MEDIA_PREFIX) != (old_prefix or DEFAULT_MEDIA_PREFIX):
            await self.disable_media_cache(zone_id, new_prefix)
        return await self.enable_media_cache(seconds, zone_id, new_prefix)

    async def reenable_guest_cache(self, seconds: int, zone_id: Optional[str] = None) -> dict:
        """Change the guest-page TTL by replacing the rule."""
        await self.disable_guest_cache(zone_id)
        return await self.enable_guest_cache(seconds, zone_id)
