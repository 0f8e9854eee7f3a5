"""Key-value stores for engine state and history (StateStore protocol).

Two backends with the same get/set surface: JSON files in a directory,
and Redis. Values are JSON-serializable payloads; last write wins.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import redis.asyncio as redis

from supercore.core.errors import StateCorruptionError
from supercore.core.logging import get_logger

log = get_logger(__name__)

KEY_PREFIX = "supercore:"
STATE_KEY = "engine_state"
HISTORY_KEY = "history"


class FileStateStore:
    """One ``<key>.json`` file per key under ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def load(self, key: str) -> Any:
        """Read a key synchronously.

        Raises:
            StateCorruptionError: If the file exists but is not valid JSON.
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StateCorruptionError(f"Corrupt state file {path}: {exc}") from exc

    def save(self, key: str, value: Any) -> None:
        """Write a key atomically (temp file, then rename)."""
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(value, f, default=str)
        os.replace(tmp, path)

    async def get(self, key: str) -> Any:
        """Value for ``key``; None when missing or unreadable."""
        try:
            return await asyncio.to_thread(self.load, key)
        except StateCorruptionError as exc:
            log.warning("state_store_corrupt", key=key, error=str(exc), action="ignored")
            return None

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self.save, key, value)


class RedisStateStore:
    """Async Redis store with JSON serialization and key prefixing.

    Reads URL from REDIS_URL env var. Entries do not expire unless a TTL
    is given.
    """

    def __init__(
        self,
        url: str | None = None,
        prefix: str = KEY_PREFIX,
        default_ttl: int | None = None,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
    ) -> None:
        self._url = url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._socket_timeout = socket_timeout
        self._socket_connect_timeout = socket_connect_timeout
        self._redis: redis.Redis | None = None

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(  # type: ignore[no-untyped-call]
                self._url,
                decode_responses=True,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._socket_connect_timeout,
                retry_on_timeout=True,
            )
        return self._redis

    async def ping(self) -> bool:
        """Check Redis connectivity. Returns True if healthy."""
        try:
            r = await self._get_redis()
            return bool(await r.ping())
        except Exception:
            return False

    async def get(self, key: str) -> Any:
        """Get a value by key. Returns None if missing or not valid JSON."""
        r = await self._get_redis()
        raw = await r.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            log.warning("state_store_corrupt", key=key, action="ignored")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        r = await self._get_redis()
        serialized = json.dumps(value, default=str)
        effective_ttl = ttl if ttl is not None else self._default_ttl
        await r.set(self._key(key), serialized, ex=effective_ttl)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
