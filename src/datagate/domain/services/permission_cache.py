"""Permission cache with TTL support.

Holds three independent categories of cached values: computed scopes, rule
lists and individual access decisions. Each category has its own key
namespace so unrelated entries can never collide.

Every key written for a user is tracked in a per-user index, so
invalidating a user removes exactly the entries that user owns. A per-user
generation counter is bumped on invalidation; writers capture the
generation before computing and the write is dropped if it changed in the
meantime.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol
from urllib.parse import quote

from datagate.core.clock import Clock, utc_now
from datagate.domain.entities.permission import DataOperation, PermissionRule
from datagate.domain.entities.permission_scope import PermissionScope


class CacheStore(Protocol):
    """Key/value store with per-entry TTL."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...

    def remove(self, key: str) -> None: ...


@dataclass
class CacheEntry:
    """Cache entry with TTL support.

    Attributes:
        value: The cached value.
        expires_at: When this entry expires.
    """

    value: Any
    expires_at: datetime


class MemoryCacheStore:
    """Thread-safe in-process TTL store."""

    def __init__(self, clock: Clock = utc_now):
        """Initialize the store.

        Args:
            clock: Time source used for expiry.
        """
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Any | None:
        """Get a cached value.

        Returns:
            Cached value if found and not expired, None otherwise.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None

            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a value for ``ttl_seconds``."""
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup_expired(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            keys_to_delete = [
                key for key, entry in self._entries.items()
                if now >= entry.expires_at
            ]

            for key in keys_to_delete:
                del self._entries[key]

            return len(keys_to_delete)

    def size(self) -> int:
        """Get current number of entries, expired ones included."""
        with self._lock:
            return len(self._entries)


def _part(value: Any) -> str:
    if value is None:
        return "*"
    if isinstance(value, DataOperation):
        value = value.value
    return quote(str(value), safe="")


class CacheKeys:
    """Key builder for each cache category.

    Components are percent-encoded, so an ID containing the separator cannot
    produce the same key as a different tuple.
    """

    PREFIX = "dg"
    SCOPE = "scope"
    RULES = "rules"
    ACCESS = "access"

    @classmethod
    def scope(cls, user_id: str, resource_type: str | None) -> str:
        return f"{cls.PREFIX}:{cls.SCOPE}:{_part(user_id)}:{_part(resource_type)}"

    @classmethod
    def rules(cls, user_id: str, resource_type: str | None) -> str:
        return f"{cls.PREFIX}:{cls.RULES}:{_part(user_id)}:{_part(resource_type)}"

    @classmethod
    def access(
        cls,
        user_id: str,
        resource_type: str,
        resource_id: str | None,
        operation: DataOperation,
    ) -> str:
        return (
            f"{cls.PREFIX}:{cls.ACCESS}:{_part(user_id)}:{_part(resource_type)}:"
            f"{_part(resource_id)}:{_part(operation)}"
        )


Generation = tuple[int, int]


class PermissionCache:
    """Typed cache for scopes, rule lists and access decisions.

    Example:
        generation = cache.generation(user_id)
        decision = await compute()
        cache.set_access(user_id, "Posts", post_id, op, decision, 900, generation)
    """

    def __init__(self, store: CacheStore | None = None, clock: Clock = utc_now):
        """Initialize the cache.

        Args:
            store: Backing store (defaults to an in-memory store).
            clock: Time source for the default store.
        """
        self.store: CacheStore = store if store is not None else MemoryCacheStore(clock)
        self._index: dict[str, set[str]] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.RLock()

    def generation(self, user_id: str) -> Generation:
        """Capture the token a later write must present."""
        with self._lock:
            return (self._epoch, self._generations.get(user_id, 0))

    def _get(self, key: str) -> Any | None:
        return self.store.get(key)

    def _set(
        self,
        user_id: str,
        key: str,
        value: Any,
        ttl_seconds: float,
        generation: Generation | None,
    ) -> bool:
        if ttl_seconds <= 0:
            return False
        with self._lock:
            if generation is not None and generation != (
                self._epoch,
                self._generations.get(user_id, 0),
            ):
                return False
            self.store.set(key, value, ttl_seconds)
            self._index.setdefault(user_id, set()).add(key)
            return True

    def get_scope(self, user_id: str, resource_type: str | None) -> PermissionScope | None:
        return self._get(CacheKeys.scope(user_id, resource_type))

    def set_scope(
        self,
        user_id: str,
        resource_type: str | None,
        scope: PermissionScope,
        ttl_seconds: float,
        generation: Generation | None = None,
    ) -> bool:
        """Cache a scope.

        Returns:
            True if stored, False if the write was dropped.
        """
        return self._set(
            user_id, CacheKeys.scope(user_id, resource_type), scope, ttl_seconds, generation
        )

    def get_rules(self, user_id: str, resource_type: str | None) -> list[PermissionRule] | None:
        return self._get(CacheKeys.rules(user_id, resource_type))

    def set_rules(
        self,
        user_id: str,
        resource_type: str | None,
        rules: list[PermissionRule],
        ttl_seconds: float,
        generation: Generation | None = None,
    ) -> bool:
        return self._set(
            user_id, CacheKeys.rules(user_id, resource_type), rules, ttl_seconds, generation
        )

    def get_access(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str | None,
        operation: DataOperation,
    ) -> bool | None:
        return self._get(CacheKeys.access(user_id, resource_type, resource_id, operation))

    def set_access(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str | None,
        operation: DataOperation,
        allowed: bool,
        ttl_seconds: float,
        generation: Generation | None = None,
    ) -> bool:
        key = CacheKeys.access(user_id, resource_type, resource_id, operation)
        return self._set(user_id, key, allowed, ttl_seconds, generation)

    def invalidate_user(self, user_id: str) -> int:
        """Invalidate every cache entry for a user.

        Args:
            user_id: User ID to invalidate.

        Returns:
            Number of keys removed.
        """
        with self._lock:
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
            keys = self._index.pop(user_id, set())
            for key in keys:
                self.store.remove(key)
            return len(keys)

    def invalidate_all(self) -> None:
        """Invalidate every tracked entry."""
        with self._lock:
            self._epoch += 1
            for keys in self._index.values():
                for key in keys:
                    self.store.remove(key)
            self._index.clear()

    def tracked_keys(self, user_id: str) -> set[str]:
        with self._lock:
            return set(self._index.get(user_id, set()))

    def cleanup_expired(self) -> int:
        """Drop index entries whose values are gone from the store.

        Returns:
            Number of index entries removed.
        """
        removed = 0
        with self._lock:
            if isinstance(self.store, MemoryCacheStore):
                self.store.cleanup_expired()
            for user_id in list(self._index):
                keys = self._index[user_id]
                stale = {key for key in keys if self.store.get(key) is None}
                keys -= stale
                removed += len(stale)
                if not keys:
                    del self._index[user_id]
        return removed
