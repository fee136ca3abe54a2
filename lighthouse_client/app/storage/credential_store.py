"""
Key-value credential storage.

Holds the access token, the refresh token and a cached user object under
fixed keys. ``FileCredentialStore`` survives process restarts the way browser
local storage survives page reloads.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from lighthouse_shared.logging import get_logger

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user"

CREDENTIAL_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)


class CredentialStore:
    """Base class for credential stores.

    Subclasses implement ``_load`` and ``_save``; every mutation is written
    through immediately.
    """

    def _load(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _save(self, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def clear(self) -> None:
        self._save({})

    @property
    def access_token(self) -> Optional[str]:
        return self.get(ACCESS_TOKEN_KEY) or None

    @property
    def refresh_token(self) -> Optional[str]:
        return self.get(REFRESH_TOKEN_KEY) or None

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.get(USER_KEY)

    def save_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Persist a new access token and, when issued, a rotated refresh token."""
        data = self._load()
        data[ACCESS_TOKEN_KEY] = access_token
        if refresh_token:
            data[REFRESH_TOKEN_KEY] = refresh_token
        self._save(data)

    def save_user(self, user: Dict[str, Any]) -> None:
        self.set(USER_KEY, user)

    def clear_credentials(self) -> None:
        """Remove the credential pair and the cached user."""
        data = self._load()
        for key in CREDENTIAL_KEYS:
            data.pop(key, None)
        self._save(data)


class MemoryCredentialStore(CredentialStore):
    """In-process store; lost when the process exits."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def _load(self) -> Dict[str, Any]:
        return dict(self._data)

    def _save(self, data: Dict[str, Any]) -> None:
        self._data = dict(data)


class FileCredentialStore(CredentialStore):
    """JSON file store with atomic replace-on-write."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self.logger = get_logger("lighthouse.storage")

    def _load(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            self.logger.warning("Unreadable credentials file, treating as empty",
                                path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".credentials-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
