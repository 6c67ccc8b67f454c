"""
Settings providers.

Components never read process-wide configuration themselves: every service
receives a SettingsProvider. Environment-style keys take priority; the
encrypted settings record is the fallback when a key is absent or empty.
"""

import os
from pathlib import Path
from typing import Mapping, Optional, Protocol, Union, runtime_checkable

from dotenv import dotenv_values

from .settings_store import SettingsRecordStore

# Setting key -> environment variable
ENV_KEYS: dict[str, str] = {
    "cloudflare_email": "CLOUDFLARE_EMAIL",
    "cloudflare_api_key": "CLOUDFLARE_API_KEY",
    "cloudflare_token": "CLOUDFLARE_TOKEN",
    "cloudflare_zone_id": "CLOUDFLARE_ZONE_ID",
    "cloudflare_account_id": "CLOUDFLARE_ACCOUNT_ID",
}


@runtime_checkable
class SettingsProvider(Protocol):
    """Read-only lookup of credentials and identifiers by setting key."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        ...

    def get_all(self) -> dict[str, Optional[str]]:
        ...


def _non_empty(value: object) -> Optional[str]:
    if isinstance(value, str) and value.strip() != "":
        return value.strip()
    return None


class EnvSettingsProvider:
    """
    Resolve settings from environment variables, then the settings record.

    A ``.env`` file is read with python-dotenv; real environment variables
    always win over values from the file.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        store: Optional[SettingsRecordStore] = None,
        dotenv_path: Optional[Union[str, Path]] = None,
    ) -> None:
        merged: dict[str, str] = {}
        if dotenv_path is not None:
            merged.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
        merged.update(os.environ if environ is None else environ)
        self._environ = merged
        self._store = store

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        env_key = ENV_KEYS.get(key)
        if env_key is None:
            return default

        value = _non_empty(self._environ.get(env_key))
        if value is not None:
            return value

        if self._store is not None:
            stored = _non_empty(self._store.get(key))
            if stored is not None:
                return stored

        return default

    def get_all(self) -> dict[str, Optional[str]]:
        return {key: self.get(key) for key in ENV_KEYS}


class StaticSettingsProvider:
    """In-memory settings, used for embedding and tests."""

    def __init__(self, values: Optional[Mapping[str, Optional[str]]] = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = _non_empty(self._values.get(key))
        return value if value is not None else default

    def get_all(self) -> dict[str, Optional[str]]:
        return {key: self.get(key) for key in ENV_KEYS}

    def update(self, **values: Optional[str]) -> None:
        """Replace values in place (simulates an edited backing source)."""
        self._values.update(values)
