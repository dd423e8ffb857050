"""Typed load/save of a record sequence stored under one key."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from floraguard.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistentCollection(Generic[T]):
    """Serialize a whole sequence of records to one store key.

    There is no partial update: every ``save`` replaces the prior value, and
    the caller is expected to pass the full, freshly mutated sequence.
    """

    def __init__(
        self,
        store: KeyValueStore,
        encode: Callable[[T], dict[str, Any]],
        decode: Callable[[dict[str, Any]], T],
    ) -> None:
        self._store = store
        self._encode = encode
        self._decode = decode

    def load(self, key: str) -> list[T]:
        """Return the stored records, or an empty list if absent or malformed."""
        raw = self._store.get(key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Discarding malformed value under %s: %s", key, e)
            return []
        if not isinstance(data, list):
            logger.warning("Expected a list under %s, got %s", key, type(data).__name__)
            return []

        items: list[T] = []
        for entry in data:
            try:
                items.append(self._decode(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping undecodable record under %s: %s", key, e)
        return items

    def save(self, key: str, items: Sequence[T]) -> None:
        payload = [self._encode(item) for item in items]
        self._store.set(key, json.dumps(payload, ensure_ascii=False))
