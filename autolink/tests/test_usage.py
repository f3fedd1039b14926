"""Tests for usage statistics."""

import pytest

from autolink.daemon.bus import EventBus, note_renamed, note_deleted
from autolink.daemon.models import UsageRecord
from autolink.daemon.usage import UsageStatsStore

from conftest import FakeClock


@pytest.fixture
def saves():
    return []


@pytest.fixture
def store(saves, clock):
    return UsageStatsStore(on_change=lambda: saves.append(1), clock=clock)


def test_first_selection_creates_record(store, clock, saves):
    record = store.record_selection("Alpha.md")

    assert record == UsageRecord(count=1, last_used=clock.now)
    assert store.get("Alpha.md") is record
    assert len(saves) == 1


def test_selection_count_is_monotonic(store):
    for n in range(1, 8):
        assert store.record_selection("Alpha.md").count == n
    assert store.get("Alpha.md").count == 7


def test_selection_updates_timestamp(store, clock):
    store.record_selection("Alpha.md")
    clock.advance_days(3)
    store.record_selection("Alpha.md")
    assert store.get("Alpha.md").last_used == clock.now


def test_get_absent(store):
    assert store.get("missing.md") is None


def test_rekey_preserves_values(store, saves):
    store.record_selection("Alpha.md")
    store.record_selection("Alpha.md")
    before = store.get("Alpha.md")

    assert store.rekey("Alpha.md", "Aleph.md")
    assert store.get("Alpha.md") is None
    assert store.get("Aleph.md") == UsageRecord(before.count, before.last_used)
    assert len(saves) == 3


def test_rekey_missing_is_noop(store, saves):
    assert not store.rekey("nope.md", "other.md")
    assert saves == []


def test_remove(store, saves):
    store.record_selection("Alpha.md")
    assert store.remove("Alpha.md")
    assert "Alpha.md" not in store
    assert not store.remove("Alpha.md")
    assert len(saves) == 2


def test_save_failure_does_not_break_selection(clock):
    def failing_save():
        raise OSError("disk full")

    store = UsageStatsStore(on_change=failing_save, clock=clock)
    assert store.record_selection("Alpha.md").count == 1


class TestPersistedLayout:

    def test_round_trip_layout(self, store, clock):
        store.record_selection("Alpha.md")
        assert store.to_dict() == {"Alpha.md": {"count": 1, "lastUsed": clock.now}}

    def test_from_dict_tolerates_corruption(self):
        records = UsageStatsStore.from_dict({
            "good.md": {"count": 3, "lastUsed": 1000},
            "negative.md": {"count": -2, "lastUsed": 1000},
            "text.md": {"count": "many", "lastUsed": "yesterday"},
            "legacy.md": {"count": 2, "lastUsed": 0},
            "empty.md": {},
            "broken.md": "oops",
        })

        assert records["good.md"] == UsageRecord(3, 1000)
        assert records["negative.md"] == UsageRecord(0, 1000)
        assert records["text.md"] == UsageRecord(0, None)
        assert records["legacy.md"] == UsageRecord(2, None)
        assert records["empty.md"] == UsageRecord(0, None)
        assert "broken.md" not in records

    def test_from_dict_non_mapping(self):
        assert UsageStatsStore.from_dict(None) == {}
        assert UsageStatsStore.from_dict(["a"]) == {}


@pytest.mark.asyncio
async def test_follows_rename_and_delete_events():
    store = UsageStatsStore(clock=FakeClock())
    store.record_selection("Alpha.md")
    store.record_selection("Beta.md")

    bus = EventBus()
    store.subscribe(bus)
    await bus.start()
    await bus.emit(note_renamed("Alpha.md", "Aleph.md"))
    await bus.emit(note_deleted("Beta.md"))
    await bus.join()

    assert "Aleph.md" in store
    assert "Alpha.md" not in store
    assert "Beta.md" not in store
    await bus.stop()
