# ==== IN-PROCESS DEFINITION CACHES ==== #

"""
Named in-process caches for tenant configuration and metadata definitions.

Keys are always tenant-qualified by the callers (``tenant_key``), so one
cache instance safely serves every tenant.
"""

from threading import RLock
from typing import Any, Dict, Hashable, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from easybill.observability.metrics import cache_requests_total


# Reserved for runtime entity schemas; registered so the cache name set is
# stable, but no service reads or writes it yet.
ENTITY_DEFINITIONS = "entityDefinitions"
RULE_DEFINITIONS = "ruleDefinitions"
WORKFLOW_DEFINITIONS = "workflowDefinitions"
TEMPLATE_DEFINITIONS = "templateDefinitions"
PLUGIN_DEFINITIONS = "pluginDefinitions"
TENANT_CONFIGS = "tenantConfigs"

CACHE_NAMES = (
    ENTITY_DEFINITIONS,
    RULE_DEFINITIONS,
    WORKFLOW_DEFINITIONS,
    TEMPLATE_DEFINITIONS,
    PLUGIN_DEFINITIONS,
    TENANT_CONFIGS,
)


def tenant_key(tenant_id: str, *parts: Any) -> str:
    return ":".join([tenant_id, *(str(p) for p in parts)])


class MapCache:
    """Thread-safe dictionary cache with hit/miss metrics."""

    def __init__(self, name: str):
        self.name = name
        self._data: Dict[Hashable, Any] = {}
        self._lock = RLock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            if key in self._data:
                cache_requests_total.labels(cache=self.name, result="hit").inc()
                return self._data[key]
        cache_requests_total.labels(cache=self.name, result="miss").inc()
        return None

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def evict(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def evict_prefix(self, prefix: str) -> int:
        """Drop every string key starting with ``prefix``; returns the count."""
        with self._lock:
            doomed = [k for k in self._data if isinstance(k, str) and k.startswith(prefix)]
            for key in doomed:
                del self._data[key]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def contains(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data


class CacheManager:
    """Registry of named caches."""

    def __init__(self, names=CACHE_NAMES):
        self._caches: Dict[str, MapCache] = {name: MapCache(name) for name in names}

    def get_cache(self, name: str) -> MapCache:
        """Return the named cache.

        Raises:
            KeyError: When ``name`` is not a configured cache
        """
        try:
            return self._caches[name]
        except KeyError:
            raise KeyError(f"Unknown cache: {name}") from None

    def cache_names(self):
        return tuple(self._caches)

    def clear_all(self) -> None:
        for cache in self._caches.values():
            cache.clear()


# Global cache manager for application-wide access
cache_manager = CacheManager()


# ==== TRANSACTION-AWARE EVICTION ==== #

PENDING_EVICTIONS = "pending_cache_evictions"


def evict_on_commit(session, cache_name: str, *keys: Hashable, prefix: Optional[str] = None) -> int:
    """Evict entries now and again when ``session`` commits or rolls back.

    The immediate pass keeps reads inside the writing transaction fresh. The
    second pass drops entries other sessions cached from pre-commit rows while
    the transaction was open.

    Args:
        session: Sync or async session doing the write
        cache_name: Configured cache name
        *keys: Exact keys to evict
        prefix: Evict every string key with this prefix

    Returns:
        Number of entries evicted by the immediate pass
    """
    evicted = _evict(cache_name, keys, prefix)
    session.info.setdefault(PENDING_EVICTIONS, set()).add((cache_name, tuple(keys), prefix))
    return evicted


def _evict(cache_name: str, keys, prefix: Optional[str]) -> int:
    cache = cache_manager.get_cache(cache_name)
    evicted = 0
    for key in keys:
        if cache.contains(key):
            cache.evict(key)
            evicted += 1
    if prefix is not None:
        evicted += cache.evict_prefix(prefix)
    return evicted


@event.listens_for(Session, "after_commit")
@event.listens_for(Session, "after_rollback")
def _run_pending_evictions(session: Session) -> None:
    for cache_name, keys, prefix in session.info.pop(PENDING_EVICTIONS, ()):
        _evict(cache_name, keys, prefix)
