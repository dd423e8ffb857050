"""Scheduled care tasks: fertilizer, pesticide, watering and the rest."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import replace
from datetime import date

from floraguard.models import Reminder
from floraguard.storage.collection import PersistentCollection
from floraguard.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

REMINDERS_KEY = "flora_guard_reminders"


class MonthView:
    """Reminders falling in one calendar month, ascending by date.

    Iterating re-reads the registry each time, so the view can be walked more
    than once and always reflects the current state.
    """

    def __init__(self, registry: ReminderRegistry, year: int, month: int) -> None:
        if not 1 <= month <= 12:
            raise ValueError(f"month must be in 1..12, got {month}")
        self._registry = registry
        self.year = year
        self.month = month

    def __iter__(self) -> Iterator[Reminder]:
        matching = [
            r
            for r in self._registry.all()
            if (r.day.year, r.day.month) == (self.year, self.month)
        ]
        return iter(sorted(matching, key=lambda r: r.date.timestamp()))


class ReminderRegistry:
    """Mutable set of reminders, stored in insertion order.

    Each mutation rewrites the whole stored sequence from the current
    in-memory list.
    """

    def __init__(self, store: KeyValueStore, key: str = REMINDERS_KEY) -> None:
        self._key = key
        self._collection: PersistentCollection[Reminder] = PersistentCollection(
            store, encode=Reminder.to_dict, decode=Reminder.from_dict
        )
        self._items: list[Reminder] = self._collection.load(key)

    def _persist(self) -> None:
        self._collection.save(self._key, self._items)

    def add(self, reminder: Reminder) -> None:
        self._items = [*self._items, reminder]
        self._persist()
        logger.info("Added reminder %s (%s on %s)", reminder.id, reminder.title, reminder.day)

    def toggle_completion(self, reminder_id: str) -> Reminder | None:
        """Flip ``completed`` on the matching reminder. Unknown ids are ignored."""
        toggled: Reminder | None = None
        updated: list[Reminder] = []
        for r in self._items:
            if r.id == reminder_id and toggled is None:
                toggled = replace(r, completed=not r.completed)
                updated.append(toggled)
            else:
                updated.append(r)
        if toggled is None:
            logger.debug("Toggle ignored, no reminder %s", reminder_id)
            return None
        self._items = updated
        self._persist()
        return toggled

    def delete(self, reminder_id: str) -> bool:
        remaining = [r for r in self._items if r.id != reminder_id]
        if len(remaining) == len(self._items):
            logger.debug("Delete ignored, no reminder %s", reminder_id)
            return False
        self._items = remaining
        self._persist()
        logger.info("Deleted reminder %s", reminder_id)
        return True

    def get(self, reminder_id: str) -> Reminder | None:
        for r in self._items:
            if r.id == reminder_id:
                return r
        return None

    def all(self) -> list[Reminder]:
        return list(self._items)

    def for_month(self, year: int, month: int) -> MonthView:
        return MonthView(self, year, month)

    def on_day(self, day: date) -> list[Reminder]:
        return sorted(
            (r for r in self._items if r.day == day),
            key=lambda r: r.date.timestamp(),
        )
