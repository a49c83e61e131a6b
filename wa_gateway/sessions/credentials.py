"""
Credential Store - Per-session credential persistence

Credential material is opaque to the gateway: the transport hands it over as
a JSON-serializable dict on every update and gets it back when the session
is (re)initialized. Deleting a session's credentials is authoritative
erasure: the next connect for that id starts pairing from scratch.

Adapters:
- FileCredentialStore: one directory per session under auth_dir
- RedisCredentialStore: one key per session
- InMemoryCredentialStore: process-local, for tests and development

Pattern: Repository pattern
Pattern: Dependency injection for the backing client
"""

import asyncio
import json
import re
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from redis.asyncio import Redis

from wa_gateway.core.config import Settings
from wa_gateway.core.exceptions import CredentialStoreError

Credentials = dict[str, Any]

_SAFE_SESSION_ID = re.compile(r"^[A-Za-z0-9_.@+-]{1,128}$")


def ensure_safe_session_id(session_id: str) -> str:
    """
    Reject session ids that cannot be used as a storage key.

    Raises:
        CredentialStoreError: If the id is empty, too long, contains path
            separators or is a relative path component.
    """
    if not _SAFE_SESSION_ID.match(session_id) or session_id in {".", ".."}:
        raise CredentialStoreError(
            f"Session id not usable as a credential key: {session_id!r}",
            session_id=session_id,
        )
    return session_id


class CredentialStore(ABC):
    """Abstract per-session credential repository."""

    @abstractmethod
    async def load(self, session_id: str) -> Optional[Credentials]:
        """Return stored credentials, or None if the session has none."""
        ...

    @abstractmethod
    async def save(self, session_id: str, credentials: Credentials) -> None:
        """Replace the stored credentials for a session."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Erase a session's credentials. Returns False if none existed."""
        ...

    @abstractmethod
    async def exists(self, session_id: str) -> bool:
        ...


# =============================================================================
# Filesystem Store
# =============================================================================


class FileCredentialStore(CredentialStore):
    """
    Stores credentials as <auth_dir>/<session_id>/creds.json.

    Blocking filesystem calls run in a worker thread so a slow disk never
    stalls the event loop.
    """

    FILENAME = "creds.json"

    def __init__(self, auth_dir: str | Path) -> None:
        # Created on first save.
        self._root = Path(auth_dir).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _session_dir(self, session_id: str) -> Path:
        return self._root / ensure_safe_session_id(session_id)

    async def load(self, session_id: str) -> Optional[Credentials]:
        path = self._session_dir(session_id) / self.FILENAME
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, ValueError) as e:
            raise CredentialStoreError(
                f"Failed to load credentials for {session_id}: {e}", session_id=session_id
            ) from e

    async def save(self, session_id: str, credentials: Credentials) -> None:
        directory = self._session_dir(session_id)
        try:
            await asyncio.to_thread(self._write, directory, credentials)
        except (OSError, TypeError, ValueError) as e:
            raise CredentialStoreError(
                f"Failed to save credentials for {session_id}: {e}", session_id=session_id
            ) from e

    async def delete(self, session_id: str) -> bool:
        directory = self._session_dir(session_id)
        try:
            return await asyncio.to_thread(self._remove, directory)
        except OSError as e:
            raise CredentialStoreError(
                f"Failed to delete credentials for {session_id}: {e}", session_id=session_id
            ) from e

    async def exists(self, session_id: str) -> bool:
        path = self._session_dir(session_id) / self.FILENAME
        return await asyncio.to_thread(path.is_file)

    @staticmethod
    def _read(path: Path) -> Optional[Credentials]:
        if not path.is_file():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, directory: Path, credentials: Credentials) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        tmp = directory / (self.FILENAME + ".tmp")
        tmp.write_text(json.dumps(credentials), encoding="utf-8")
        tmp.replace(directory / self.FILENAME)

    @staticmethod
    def _remove(directory: Path) -> bool:
        if not directory.exists():
            return False
        shutil.rmtree(directory, ignore_errors=False)
        return True


# =============================================================================
# Redis Store
# =============================================================================


class RedisCredentialStore(CredentialStore):
    """
    Redis-backed credential storage.

    Credentials are stored as JSON without expiry; they live until the
    session is erased.

    Example:
        >>> import redis.asyncio as redis
        >>> store = RedisCredentialStore(redis.from_url("redis://localhost:6379"))
        >>> await store.save("shop-42", {"me": {"id": "1555...:3@s.whatsapp.net"}})
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "wa-credentials:") -> None:
        self._redis: Redis = redis_client
        self._key_prefix = key_prefix

    def _make_key(self, session_id: str) -> str:
        return f"{self._key_prefix}{ensure_safe_session_id(session_id)}"

    async def load(self, session_id: str) -> Optional[Credentials]:
        key = self._make_key(session_id)
        try:
            raw = await self._redis.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as e:
            raise CredentialStoreError(
                f"Failed to load credentials for {session_id}: {e}", session_id=session_id
            ) from e

    async def save(self, session_id: str, credentials: Credentials) -> None:
        key = self._make_key(session_id)
        try:
            await self._redis.set(key, json.dumps(credentials))
        except Exception as e:
            raise CredentialStoreError(
                f"Failed to save credentials for {session_id}: {e}", session_id=session_id
            ) from e

    async def delete(self, session_id: str) -> bool:
        key = self._make_key(session_id)
        try:
            return await self._redis.delete(key) > 0
        except Exception as e:
            raise CredentialStoreError(
                f"Failed to delete credentials for {session_id}: {e}", session_id=session_id
            ) from e

    async def exists(self, session_id: str) -> bool:
        key = self._make_key(session_id)
        try:
            return await self._redis.exists(key) > 0
        except Exception as e:
            raise CredentialStoreError(
                f"Failed to check credentials for {session_id}: {e}", session_id=session_id
            ) from e


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryCredentialStore(CredentialStore):
    """Process-local store; credentials are lost on restart."""

    def __init__(self) -> None:
        self._data: dict[str, Credentials] = {}
        self.deleted: list[str] = []

    async def load(self, session_id: str) -> Optional[Credentials]:
        creds = self._data.get(session_id)
        return dict(creds) if creds is not None else None

    async def save(self, session_id: str, credentials: Credentials) -> None:
        self._data[session_id] = dict(credentials)

    async def delete(self, session_id: str) -> bool:
        self.deleted.append(session_id)
        return self._data.pop(session_id, None) is not None

    async def exists(self, session_id: str) -> bool:
        return session_id in self._data


def create_credential_store(settings: Settings) -> CredentialStore:
    """Build the credential store selected by settings.credential_backend."""
    if settings.credential_backend == "redis":
        import redis.asyncio as redis

        client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        return RedisCredentialStore(client, key_prefix=settings.credential_key_prefix)
    return FileCredentialStore(settings.auth_dir)
