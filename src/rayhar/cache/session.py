"""Session identity for the ephemeral tier.

A session id is created lazily the first time it is needed, cached in memory
and persisted inside the ephemeral storage itself. A new runtime over the same
ephemeral storage (a reloaded tab) picks the persisted id up again; a fresh
storage (a new tab) gets a new one. Rotating the id orphans every ephemeral
entry written under the old one.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

from rayhar.cache.errors import StorageError
from rayhar.cache.storage import KeyValueStorage

logger = logging.getLogger(__name__)


def _new_token() -> str:
    return secrets.token_hex(16)


class SessionIdentity:
    """Lazily created, persisted session token."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        token_factory: Callable[[], str] = _new_token,
    ) -> None:
        self.storage = storage
        self.key = key
        self._token_factory = token_factory
        self._session_id: str | None = None

    def current(self) -> str:
        """Return the session id, creating and persisting it on first use."""
        if self._session_id is not None:
            return self._session_id

        try:
            stored = self.storage.get(self.key)
        except StorageError as e:
            logger.warning(f"Could not read persisted session id: {e}")
            stored = None

        if stored:
            self._session_id = stored
        else:
            self._session_id = self._token_factory()
            self._persist(self._session_id)
            logger.debug("Created new cache session id")
        return self._session_id

    def rotate(self) -> str:
        """Replace the session id; entries of the previous session become invalid."""
        previous = self._session_id
        self._session_id = self._token_factory()
        self._persist(self._session_id)
        logger.info(
            "Rotated cache session id",
            extra={"previous_session": (previous or "")[:8]},
        )
        return self._session_id

    def _persist(self, session_id: str) -> None:
        try:
            self.storage.set(self.key, session_id)
        except StorageError as e:
            # The in-memory id still scopes entries for this runtime
            logger.warning(f"Could not persist session id: {e}")
