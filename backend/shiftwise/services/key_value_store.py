"""
Key-value store abstraction for guest-mode data.

Guest data lives in a flat string-to-string store, one JSON blob per logical
collection. Two backends, selected by the LOCAL_STORE_BACKEND env var:
  - "file" (default): one file per key under LOCAL_STORE_DIR
  - "redis": keys prefixed with LOCAL_STORE_NAMESPACE in the Redis at REDIS_URL

Usage::

    from shiftwise.services.key_value_store import get_key_value_store

    store = get_key_value_store()
    await store.set("@local_goals", "[]")
    raw = await store.get("@local_goals")
    await store.multi_remove(["@local_goals", "@has_local_data"])

Backend failures surface as ``LocalStoreError``.
"""

import os
import re
import tempfile
from typing import Iterable, Optional, Protocol, runtime_checkable

import redis.asyncio as redis
from redis.exceptions import RedisError

from shiftwise.config import settings
from shiftwise.core.exceptions import LocalStoreError


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for guest-mode storage backends."""

    async def get(self, key: str) -> Optional[str]:
        """Return the value stored at ``key``, or None if absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    async def multi_remove(self, keys: Iterable[str]) -> None:
        """Remove every key in ``keys``; missing keys are ignored."""
        ...


class FileKeyValueStore:
    """
    Stores each key as a file under ``base_dir``.

    Writes go through a temp file and ``os.replace`` so a crash never leaves
    a half-written blob behind.
    """

    def __init__(self, base_dir: str = settings.LOCAL_STORE_DIR):
        self._base_dir = base_dir
        os.makedirs(base_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        # Keys like "@local_goals" become "local_goals.json"; no path traversal possible
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key.lstrip("@")).strip(".")
        if not safe_key:
            raise LocalStoreError(f"Invalid storage key: {key!r}")
        return os.path.join(self._base_dir, f"{safe_key}.json")

    async def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise LocalStoreError(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._base_dir, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise LocalStoreError(f"Failed to write {key}: {e}") from e

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            path = self._path(key)
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise LocalStoreError(f"Failed to remove {key}: {e}") from e


class RedisKeyValueStore:
    """Stores keys in Redis under a namespace prefix."""

    def __init__(self, client=None, namespace: str = settings.LOCAL_STORE_NAMESPACE):
        if client is None:
            client = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        self._client = client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(self._key(key))
        except RedisError as e:
            raise LocalStoreError(f"Failed to read {key}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(self._key(key), value)
        except RedisError as e:
            raise LocalStoreError(f"Failed to write {key}: {e}") from e

    async def multi_remove(self, keys: Iterable[str]) -> None:
        namespaced = [self._key(k) for k in keys]
        if not namespaced:
            return
        try:
            await self._client.delete(*namespaced)
        except RedisError as e:
            raise LocalStoreError(f"Failed to remove keys: {e}") from e


_store_instance: Optional[KeyValueStore] = None


def get_key_value_store() -> KeyValueStore:
    """
    Return the configured backend (singleton).

    Use as a FastAPI dependency::

        store: KeyValueStore = Depends(get_key_value_store)
    """
    global _store_instance
    if _store_instance is None:
        if settings.LOCAL_STORE_BACKEND == "redis":
            _store_instance = RedisKeyValueStore(namespace=settings.LOCAL_STORE_NAMESPACE)
        else:
            _store_instance = FileKeyValueStore(settings.LOCAL_STORE_DIR)
    return _store_instance
