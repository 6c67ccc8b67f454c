"""
Settings record store for credentials and identifiers.

Values are kept in a JSON file keyed by setting name, each value encrypted
with Fernet so the record is encrypted at rest. The store is the fallback
source consulted when the corresponding environment key is absent.
"""

import json
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .exceptions import PersistenceError, TamperingError


class SettingsRecordStore:
    """
    Encrypted key/value settings record backed by a JSON file.

    File layout::

        {"version": 1, "values": {"cloudflare_token": "<fernet token>", ...}}
    """

    VERSION = 1

    def __init__(self, file_path: Path, encryption_key: str) -> None:
        """
        Initialize the settings store.

        Args:
            file_path: Path to the settings file (JSON format)
            encryption_key: urlsafe base64 Fernet key
        """
        self._file_path = Path(file_path)
        try:
            self._fernet = Fernet(encryption_key.encode("utf-8"))
        except (ValueError, TypeError) as e:
            raise PersistenceError(
                code="invalid_key",
                message=f"Invalid settings encryption key: {e}",
                details={"file_path": str(self._file_path)},
            ) from e
        self._values: Optional[dict[str, Optional[str]]] = None

    @staticmethod
    def generate_key() -> str:
        """Generate a new encryption key for a settings file."""
        return Fernet.generate_key().decode("ascii")

    def load(self) -> dict[str, Optional[str]]:
        """
        Load and decrypt every stored value.

        Returns:
            Mapping of setting key to plaintext value; empty if the file doesn't exist

        Raises:
            TamperingError: If a value cannot be decrypted with the configured key
            PersistenceError: If the file cannot be read or parsed
        """
        if not self._file_path.exists():
            self._values = {}
            return {}

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse settings file: {e}",
                details={"file_path": str(self._file_path)},
            ) from e
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read settings file: {e}",
                details={"file_path": str(self._file_path)},
            ) from e

        stored = raw_data.get("values", {}) if isinstance(raw_data, dict) else {}
        if not isinstance(stored, dict):
            stored = {}

        values: dict[str, Optional[str]] = {}
        for key, token in stored.items():
            if token is None:
                values[key] = None
                continue
            try:
                values[key] = self._fernet.decrypt(str(token).encode("ascii")).decode("utf-8")
            except (InvalidToken, UnicodeError) as e:
                raise TamperingError(
                    code="decrypt_failed",
                    message=f"Stored value for {key!r} could not be decrypted",
                    details={"file_path": str(self._file_path), "key": key},
                ) from e

        self._values = values
        return dict(values)

    def get(self, key: str) -> Optional[str]:
        """Return the plaintext value for ``key`` (loading lazily)."""
        if self._values is None:
            self.load()
        assert self._values is not None
        return self._values.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        """Stage a value; call ``save()`` to persist it."""
        if self._values is None:
            self.load()
        assert self._values is not None
        self._values[key] = value

    def save(self) -> None:
        """
        Encrypt and write all staged values.

        Raises:
            PersistenceError: If the file cannot be written
        """
        values = self._values or {}
        encrypted = {
            key: (self._fernet.encrypt(value.encode("utf-8")).decode("ascii") if value is not None else None)
            for key, value in values.items()
        }

        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self._file_path, "w", encoding="utf-8") as f:
                json.dump({"version": self.VERSION, "values": encrypted}, f, indent=2, sort_keys=True)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write settings file: {e}",
                details={"file_path": str(self._file_path)},
            ) from e

    @property
    def file_path(self) -> Path:
        """Get the settings file path."""
        return self._file_path
