"""Keyed query cache and the unconfirmed (optimistic) record overlay."""

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Key = tuple


def _matches(key: Key, prefix: Key) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    """Results cached under composite tuple keys.

    ``invalidate(prefix)`` drops every key starting with ``prefix`` and tells
    subscribers which prefix went stale, so a key like
    ``("checklist-completions", resident_id, day)`` can be invalidated exactly
    or by any leading part of it.
    """

    def __init__(self):
        self._data: dict[Key, Any] = {}
        self._listeners: list[Callable[[Key], None]] = []

    def get(self, key: Key, loader: Callable[[], Any]) -> Any:
        if key not in self._data:
            self._data[key] = loader()
        return self._data[key]

    def peek(self, key: Key) -> Any | None:
        return self._data.get(key)

    def __contains__(self, key: Key) -> bool:
        return key in self._data

    def invalidate(self, prefix: Key) -> int:
        stale = [k for k in self._data if _matches(k, prefix)]
        for k in stale:
            del self._data[k]
        for listener in list(self._listeners):
            try:
                listener(prefix)
            except Exception:
                logger.exception("Cache invalidation listener failed for %s", prefix)
        return len(stale)

    def clear(self):
        self._data.clear()

    def subscribe(self, listener: Callable[[Key], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class Overlay:
    """Records shown to readers before the authoritative write has landed.

    Each staged record lives under a ``scope`` key (the same composite key its
    readers use) until it is confirmed or discarded.
    """

    def __init__(self):
        self._pending: dict[str, tuple[Key, Any]] = {}

    def stage(self, pending_id: str, scope: Key, record: Any):
        self._pending[pending_id] = (scope, record)

    def records(self, scope: Key) -> list[Any]:
        return [rec for s, rec in self._pending.values() if _matches(s, scope)]

    def scope_of(self, pending_id: str) -> Key | None:
        item = self._pending.get(pending_id)
        return item[0] if item else None

    def resolve(self, pending_id: str) -> Any | None:
        """Drop a staged record, returning it if it was still pending."""
        item = self._pending.pop(pending_id, None)
        return item[1] if item else None

    def __len__(self) -> int:
        return len(self._pending)
