"""Persistent storage for the access/refresh token pair.

Stores credentials in ``~/.local/share/dashauth/credentials.json`` (XDG)
or the platform-equivalent directory. Writes go through
:func:`dashauth.config._atomic_write` with ``0o600`` permissions so that
tokens are never world-readable, even momentarily.

Only three fields are persisted: the access token, its expiry, and the
refresh token. Everything else in a
:class:`~dashauth.auth.session.SessionState` lives for one process only.

See Also:
    :meth:`dashauth.auth.session.SessionState.seed` -- restores the
    stored pair at process start.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from dashauth.config import _atomic_write, get_data_dir
from dashauth.models import AccessContext, AccessToken, RefreshToken

logger = logging.getLogger(__name__)

_CREDENTIALS_FILENAME = "credentials.json"


class StoredCredentials(BaseModel):
    """The on-disk credential record.

    Attributes:
        oauth_token: The access token value.
        expiration_time: Absolute UTC expiry of the access token.
        refresh_token: The refresh token value, if the provider issued one.
    """

    oauth_token: str = Field(description="Access token value")
    expiration_time: datetime = Field(description="When the access token expires (UTC)")
    refresh_token: Optional[str] = Field(default=None, description="Refresh token value")

    @classmethod
    def from_context(cls, context: AccessContext) -> "StoredCredentials":
        return cls(
            oauth_token=context.token.value,
            expiration_time=context.token.expires_at,
            refresh_token=context.refresh_token.value if context.refresh_token else None,
        )

    def access_token(self) -> AccessToken:
        expires = self.expiration_time
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return AccessToken(value=self.oauth_token, expires_at=expires)

    def refresh(self) -> Optional[RefreshToken]:
        if not self.refresh_token:
            return None
        return RefreshToken(value=self.refresh_token)


class CredentialStore:
    """Read/write the persisted token pair.

    Args:
        path: Override for the credential file location. Defaults to
            ``<data_dir>/credentials.json``.

    Example::

        store = CredentialStore()
        store.save(StoredCredentials.from_context(context))
        stored = store.load()
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path or get_data_dir() / _CREDENTIALS_FILENAME

    @property
    def path(self) -> Path:
        """The filesystem path to the credential file."""
        return self._path

    def save(self, credentials: StoredCredentials) -> None:
        """Persist *credentials* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written (permissions, disk full, etc.).
        """
        data = credentials.model_dump(mode="json")
        _atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)

    def load(self) -> Optional[StoredCredentials]:
        """Load the stored credentials.

        Returns:
            The record, or ``None`` if the file does not exist or cannot
            be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return StoredCredentials.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            logger.warning("Ignoring unreadable credential file %s: %s", self._path, exc)
            return None

    def clear(self) -> None:
        """Delete the credential file. A no-op when it does not exist."""
        if self._path.is_file():
            self._path.unlink()
