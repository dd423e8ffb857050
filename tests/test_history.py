"""Tests for the history ledger."""

import json

from floraguard.history import HISTORY_KEY, HistoryLedger
from floraguard.models import (
    AnalysisItem,
    Cures,
    GuideItem,
    SeedAnalysisItem,
    SeedProfile,
    SoilAnalysisItem,
    SoilReading,
    describe,
)
from floraguard.storage.kv import InMemoryKeyValueStore


def _guide(n: int) -> GuideItem:
    return GuideItem(id=f"g{n}", timestamp=1_700_000_000_000 + n, plant_name="Basil",
                     guide_content=f"Guide {n}")


class TestHistoryLedger:
    def test_append_is_newest_first(self):
        ledger = HistoryLedger(InMemoryKeyValueStore())
        ledger.append(_guide(1))
        ledger.append(_guide(2))
        assert [i.id for i in ledger.all()] == ["g2", "g1"]

    def test_append_writes_through(self):
        store = InMemoryKeyValueStore()
        HistoryLedger(store).append(_guide(1))

        reloaded = HistoryLedger(store)
        assert reloaded.all() == [_guide(1)]
        assert json.loads(store.get(HISTORY_KEY))[0]["type"] == "guide"

    def test_clear_persists_empty(self):
        store = InMemoryKeyValueStore()
        ledger = HistoryLedger(store)
        ledger.append(_guide(1))
        ledger.clear()

        assert len(ledger) == 0
        assert HistoryLedger(store).all() == []

    def test_all_returns_copy(self):
        ledger = HistoryLedger(InMemoryKeyValueStore())
        ledger.append(_guide(1))
        ledger.all().clear()
        assert len(ledger) == 1

    def test_mixed_variants_roundtrip(self):
        store = InMemoryKeyValueStore()
        ledger = HistoryLedger(store)
        items = [
            AnalysisItem(id="a", timestamp=1, plant_name="Tomato", disease_name="Early Blight",
                         severity="Medium", symptoms=("Brown spots",),
                         cures=Cures(organic=("Neem oil",)), image_url="abc"),
            SoilAnalysisItem(id="s", timestamp=2, plant_name="Soil Test",
                             soil=SoilReading(ph_value="6.5", suitable_crops=("Wheat",))),
            SeedAnalysisItem(id="d", timestamp=3, plant_name="Okra",
                             seed=SeedProfile(seed_name="Okra", plant_name="Abelmoschus")),
            _guide(4),
        ]
        for item in items:
            ledger.append(item)

        assert HistoryLedger(store).all() == list(reversed(items))

    def test_unknown_variant_skipped_on_load(self):
        store = InMemoryKeyValueStore({
            HISTORY_KEY: json.dumps([
                {"id": "x", "timestamp": 1, "type": "weather", "plantName": "?"},
                _guide(1).to_dict(),
            ])
        })
        assert [i.id for i in HistoryLedger(store).all()] == ["g1"]


class TestDescribe:
    def test_summaries(self):
        assert describe(_guide(1)) == "Care Guide: Basil"
        analysis = AnalysisItem(id="a", timestamp=1, plant_name="Rose", disease_name="Rust")
        assert "Rust" in describe(analysis)
