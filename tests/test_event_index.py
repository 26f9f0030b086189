from datetime import datetime, timezone

import pytest

from LOGLENS.store import EventIndex, Occurrence

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def index():
    return EventIndex(["Error", "Warn"])


class TestEventIndex:

    def test_tracked_names_start_empty(self, index):
        assert index.names() == ["Error", "Warn"]
        assert index.counts() == {"Error": 0, "Warn": 0}
        assert "Error" in index
        assert "Other" not in index

    def test_record_keeps_seq_order(self, index):
        index.record(1, T0, ["Error"])
        index.record(4, None, ["Error", "Warn"])
        assert index["Error"] == [Occurrence(1, T0), Occurrence(4, None)]
        assert index.occurrences("Warn") == [Occurrence(4, None)]
        assert len(index) == 3

    def test_evict_below(self, index):
        for seq in range(6):
            index.record(seq, T0, ["Error"])
        index.evict_below(4)
        assert [o.seq for o in index["Error"]] == [4, 5]

    def test_rebuild_replaces_names(self, index):
        index.record(0, T0, ["Error"])
        index.rebuild(["Timeout"], [(0, T0, ()), (1, T0, ("Timeout",))])
        assert index.names() == ["Timeout"]
        assert [o.seq for o in index["Timeout"]] == [1]

    def test_clear_keeps_names(self, index):
        index.record(0, T0, ["Error"])
        index.clear()
        assert index.counts() == {"Error": 0, "Warn": 0}

    def test_readers_get_copies(self, index):
        index.record(0, T0, ["Error"])
        snapshot = index.snapshot()
        snapshot["Error"].clear()
        assert len(index["Error"]) == 1

    def test_unknown_name_raises(self, index):
        with pytest.raises(KeyError):
            index["Missing"]


class TestEventEnabledFlags:

    def test_enabled_by_default(self, index):
        assert index.enabled_names() == ["Error", "Warn"]

    def test_disable_event(self, index):
        index.set_enabled("Warn", False)
        assert not index.is_enabled("Warn")
        assert index.enabled_names() == ["Error"]

    def test_flag_survives_reset(self, index):
        index.set_enabled("Warn", False)
        index.reset(["Error", "Warn"])
        assert index.enabled_names() == ["Error"]

    def test_unknown_event_rejected(self, index):
        with pytest.raises(KeyError):
            index.set_enabled("Missing", False)
