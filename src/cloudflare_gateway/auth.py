"""
Credential resolution.

Exactly one authentication scheme is attached to every request: a bearer
token when one is configured, otherwise the email and global API key pair,
otherwise nothing beyond the JSON content type.
"""

from typing import Optional

from .enums import AuthScheme
from .settings import SettingsProvider


class CredentialResolver:
    """Resolves credentials from a SettingsProvider and produces auth headers."""

    def __init__(self, settings: SettingsProvider) -> None:
        self._settings = settings
        self._email: Optional[str] = None
        self._api_key: Optional[str] = None
        self._token: Optional[str] = None
        self._manually_set = False
        self.refresh_credentials()

    @property
    def email(self) -> Optional[str]:
        return self._email

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def credentials_manually_set(self) -> bool:
        return self._manually_set

    def refresh_credentials(self) -> None:
        """Re-read credentials from settings, discarding manual overrides."""
        self._email = self._settings.get("cloudflare_email")
        self._api_key = self._settings.get("cloudflare_api_key")
        self._token = self._settings.get("cloudflare_token")
        self._manually_set = False

    def set_credentials(
        self,
        email: Optional[str] = None,
        api_key: Optional[str] = None,
        token: Optional[str] = None,
    ) -> None:
        """Override credentials in-process without touching the settings source."""
        self._email = email or None
        self._api_key = api_key or None
        self._token = token or None
        self._manually_set = True

    def scheme(self) -> AuthScheme:
        if self._token:
            return AuthScheme.TOKEN
        if self._email and self._api_key:
            return AuthScheme.API_KEY
        return AuthScheme.NONE

    def has_credentials(self) -> bool:
        return self.scheme() is not AuthScheme.NONE

    def get_auth_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        scheme = self.scheme()
        if scheme is AuthScheme.TOKEN:
            headers["Authorization"] = f"Bearer {self._token}"
        elif scheme is AuthScheme.API_KEY:
            headers["X-Auth-Email"] = str(self._email)
            headers["X-Auth-Key"] = str(self._api_key)
        return headers
