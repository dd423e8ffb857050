"""Append-only ledger of past analyses, guides and detections."""

from __future__ import annotations

import logging

from floraguard.models import HistoryItem, history_item_from_dict, history_item_to_dict
from floraguard.storage.collection import PersistentCollection
from floraguard.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "flora_guard_history"


class HistoryLedger:
    """Newest-first record log. Items are never edited or removed one by one.

    The in-memory list is loaded once and stays authoritative; every append
    writes the full sequence back to the store.
    """

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY) -> None:
        self._key = key
        self._collection: PersistentCollection[HistoryItem] = PersistentCollection(
            store, encode=history_item_to_dict, decode=history_item_from_dict
        )
        self._items: list[HistoryItem] = self._collection.load(key)

    def append(self, item: HistoryItem) -> None:
        """Prepend ``item``. Its id and timestamp are set by the producer."""
        self._items = [item, *self._items]
        self._collection.save(self._key, self._items)
        logger.info("Saved %s to history: %s", item.type, item.plant_name)

    def clear(self) -> None:
        """Drop every item. Confirmation is the caller's job."""
        self._items = []
        self._collection.save(self._key, self._items)
        logger.info("History cleared")

    def all(self) -> list[HistoryItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
