"""Tests for the reminder registry and month views."""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from floraguard.models import Reminder, ReminderType
from floraguard.reminders import REMINDERS_KEY, ReminderRegistry
from floraguard.storage.kv import InMemoryKeyValueStore


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def registry(store) -> ReminderRegistry:
    return ReminderRegistry(store)


class TestReminderModel:
    def test_create_defaults(self):
        r = Reminder.create("Fertilize Tomatoes", datetime(2024, 6, 3, 9))
        assert r.type is ReminderType.FERTILIZER
        assert r.completed is False
        assert r.plant_name is None
        assert r.id

    def test_create_rejects_blank_title(self):
        with pytest.raises(ValueError):
            Reminder.create("   ", datetime(2024, 6, 3))

    def test_create_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            Reminder.create("Prune", datetime(2024, 6, 3), type="pruning")

    def test_day_uses_local_calendar(self):
        aware = datetime(2024, 6, 3, 12, tzinfo=timezone.utc)
        r = Reminder.create("Water", aware, ReminderType.WATERING)
        assert r.day == aware.astimezone().date()

    def test_dict_roundtrip_parses_trailing_z(self):
        data = {
            "id": "r1",
            "title": "Spray",
            "date": "2024-06-03T09:00:00.000Z",
            "type": "pesticide",
            "completed": True,
            "plantName": "Chili",
        }
        r = Reminder.from_dict(data)
        assert r.date == datetime(2024, 6, 3, 9, tzinfo=timezone.utc)
        assert r.plant_name == "Chili"
        assert Reminder.from_dict(r.to_dict()) == r

    def test_completed_requires_true(self):
        data = {"id": "r1", "title": "Spray", "date": "2024-06-03T09:00:00", "type": "other"}
        assert Reminder.from_dict({**data, "completed": "false"}).completed is False
        assert Reminder.from_dict({**data, "completed": 1}).completed is False
        assert Reminder.from_dict({**data, "completed": True}).completed is True
        assert Reminder.from_dict(data).completed is False


class TestReminderRegistry:
    def test_add_persists(self, store, registry):
        r = Reminder.create("Water", datetime(2024, 6, 3, 9), ReminderType.WATERING)
        registry.add(r)
        assert ReminderRegistry(store).all() == [r]

    def test_toggle_twice_restores_stored_bytes(self, store, registry):
        registry.add(Reminder.create("Water", datetime(2024, 6, 3, 9)))
        r = registry.all()[0]
        before = store.get(REMINDERS_KEY)

        first = registry.toggle_completion(r.id)
        assert first is not None and first.completed
        assert json.loads(store.get(REMINDERS_KEY))[0]["completed"] is True

        second = registry.toggle_completion(r.id)
        assert second is not None and not second.completed
        assert store.get(REMINDERS_KEY) == before

    def test_toggle_unknown_is_noop(self, store, registry):
        registry.add(Reminder.create("Water", datetime(2024, 6, 3, 9)))
        before = store.get(REMINDERS_KEY)
        assert registry.toggle_completion("nope") is None
        assert store.get(REMINDERS_KEY) == before

    def test_delete(self, store, registry):
        keep = Reminder.create("Keep", datetime(2024, 6, 3, 9))
        drop = Reminder.create("Drop", datetime(2024, 6, 4, 9))
        registry.add(keep)
        registry.add(drop)

        assert registry.delete(drop.id) is True
        assert registry.delete(drop.id) is False
        assert ReminderRegistry(store).all() == [keep]

    def test_get(self, registry):
        r = Reminder.create("Water", datetime(2024, 6, 3, 9))
        registry.add(r)
        assert registry.get(r.id) == r
        assert registry.get("missing") is None

    def test_on_day(self, registry):
        late = Reminder.create("Late", datetime(2024, 6, 3, 18))
        early = Reminder.create("Early", datetime(2024, 6, 3, 7))
        other = Reminder.create("Other", datetime(2024, 6, 4, 7))
        for r in (late, early, other):
            registry.add(r)
        assert registry.on_day(date(2024, 6, 3)) == [early, late]


class TestMonthView:
    def test_filters_and_sorts(self, registry):
        june_late = Reminder.create("B", datetime(2024, 6, 20, 9))
        may = Reminder.create("A", datetime(2024, 5, 31, 9))
        june_early = Reminder.create("C", datetime(2024, 6, 1, 9))
        june_other_year = Reminder.create("D", datetime(2023, 6, 1, 9))
        for r in (june_late, may, june_early, june_other_year):
            registry.add(r)

        assert list(registry.for_month(2024, 6)) == [june_early, june_late]

    def test_restartable_and_live(self, registry):
        view = registry.for_month(2024, 6)
        assert list(view) == []

        r = Reminder.create("Water", datetime(2024, 6, 10, 9))
        registry.add(r)
        assert list(view) == [r]
        assert list(view) == [r]

        registry.toggle_completion(r.id)
        assert [x.completed for x in view] == [True]

    def test_invalid_month(self, registry):
        with pytest.raises(ValueError):
            registry.for_month(2024, 13)

    def test_month_boundary(self, registry):
        last = datetime(2024, 6, 30, 23, 59)
        registry.add(Reminder.create("Last", last))
        registry.add(Reminder.create("Next", last + timedelta(minutes=2)))
        assert [r.title for r in registry.for_month(2024, 6)] == ["Last"]
        assert [r.title for r in registry.for_month(2024, 7)] == ["Next"]
