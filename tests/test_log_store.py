import threading
from datetime import datetime, timezone

import pytest

from LOGLENS.analysis.time_filter import TimeFilter
from LOGLENS.rules import EventRule, FilterMode, FilterRule, HighlightRule, compile_ruleset
from LOGLENS.store import LogStore, StoreListener


class RecordingListener(StoreListener):
    def __init__(self):
        self.appended = []
        self.evicted = []
        self.cleared = 0
        self.rulesets = []

    def on_append(self, line):
        self.appended.append(line.seq)

    def on_evict(self, first_seq):
        self.evicted.append(first_seq)

    def on_clear(self):
        self.cleared += 1

    def on_ruleset(self, ruleset):
        self.rulesets.append(ruleset.version)


@pytest.fixture
def ruleset():
    return compile_ruleset(
        [HighlightRule(pattern="ERROR")],
        [EventRule(name="Error", pattern="ERROR", critical=True)],
        [FilterRule(pattern="DEBUG", mode=FilterMode.EXCLUDE)],
    )


@pytest.fixture
def store(ruleset):
    return LogStore(ruleset)


class TestAppend:

    def test_sequence_numbers_increase(self, store):
        lines = store.extend(["a", "b", "c"], source="file.log")
        assert [line.seq for line in lines] == [0, 1, 2]
        assert store.append("d").seq == 3
        assert len(store) == 4
        assert store.get(1).text == "b"
        assert store.get(1).source == "file.log"

    def test_line_classified_on_append(self, store, ruleset):
        line = store.append("2024-01-15 10:30:45 ERROR disk full")
        assert line.classification.ruleset_version == ruleset.version
        assert line.classification.events == ("Error",)
        assert line.timestamp == datetime(2024, 1, 15, 10, 30, 45, tzinfo=timezone.utc)

    def test_events_recorded(self, store):
        store.extend(["INFO ok", "ERROR one", "ERROR two"])
        assert [o.seq for o in store.event_index["Error"]] == [1, 2]

    def test_listeners_notified_in_order(self, store):
        listener = RecordingListener()
        store.subscribe(listener)
        store.extend(["a", "b"])
        assert listener.appended == [0, 1]

    def test_unknown_seq_raises(self, store):
        store.append("a")
        with pytest.raises(IndexError):
            store.get(1)
        with pytest.raises(IndexError):
            store.get(-1)

    def test_concurrent_appends_keep_every_line(self, store):
        def writer(source):
            for i in range(200):
                store.append(f"{source} {i}", source)

        threads = [threading.Thread(target=writer, args=(f"s{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 800
        for source in ("s0", "s1", "s2", "s3"):
            texts = [line.text for line in store.iter_range() if line.source == source]
            assert texts == [f"{source} {i}" for i in range(200)]


class TestEviction:

    def test_oldest_lines_evicted(self, ruleset):
        store = LogStore(ruleset, capacity=3)
        store.extend([f"line {i}" for i in range(5)])
        assert len(store) == 3
        assert store.first_seq == 2
        assert [line.seq for line in store.iter_range()] == [2, 3, 4]
        with pytest.raises(IndexError):
            store.get(1)

    def test_event_index_pruned(self, ruleset):
        store = LogStore(ruleset, capacity=2)
        store.extend(["ERROR a", "INFO", "ERROR b", "INFO"])
        assert [o.seq for o in store.event_index["Error"]] == [2]

    def test_listener_receives_first_seq(self, ruleset):
        store = LogStore(ruleset, capacity=2)
        listener = RecordingListener()
        store.subscribe(listener)
        store.extend(["a", "b", "c"])
        assert listener.evicted == [1]

    def test_compaction_keeps_lines_addressable(self, ruleset):
        store = LogStore(ruleset, capacity=10)
        store.COMPACT_THRESHOLD = 4
        store.extend([str(i) for i in range(50)])
        assert [line.text for line in store.iter_range()] == [str(i) for i in range(40, 50)]
        assert store.get(45).text == "45"

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            LogStore(capacity=0)


class TestRuleSetInstall:

    def test_lazy_reclassification(self, store):
        store.append("ERROR x")
        new_rules = compile_ruleset([], [EventRule(name="X", pattern="x")], [])
        store.install_ruleset(new_rules)
        assert store.get(0).classification.ruleset_version != new_rules.version
        result = store.classification(0)
        assert result.ruleset_version == new_rules.version
        assert result.events == ("X",)

    def test_event_index_rebuilt(self, store):
        store.extend(["ERROR x", "WARN y", "WARN z"])
        store.install_ruleset(compile_ruleset([], [EventRule(name="Warn", pattern="WARN")], []))
        assert store.event_index.names() == ["Warn"]
        assert [o.seq for o in store.event_index["Warn"]] == [1, 2]
        assert "Error" not in store.event_index

    def test_filter_states_reset(self, store):
        store.set_filter_enabled(0, False)
        store.install_ruleset(compile_ruleset([], [], [
            FilterRule(pattern="a", enabled=False),
            FilterRule(pattern="b"),
        ]))
        assert store.filter_states() == [False, True]

    def test_listener_notified(self, store):
        listener = RecordingListener()
        store.subscribe(listener)
        new_rules = compile_ruleset([], [], [])
        store.install_ruleset(new_rules)
        assert listener.rulesets == [new_rules.version]


class TestVisibility:

    def test_debug_excluded(self, store):
        store.extend(["DEBUG x", "INFO y"])
        assert [store.is_visible(seq) for seq in (0, 1)] == [False, True]
        assert store.visible_seqs() == [1]

    def test_toggle_filter(self, store):
        store.extend(["DEBUG x", "INFO y"])
        epoch = store.filter_epoch
        assert store.toggle_filter(0) is False
        assert store.filter_epoch > epoch
        assert store.visible_seqs() == [0, 1]

    def test_visible_range(self, store):
        store.extend(["a", "DEBUG", "b", "c"])
        assert store.visible_seqs(1, 3) == [2]

    def test_time_filter(self, store):
        store.extend([
            "2024-01-01 10:00:00 early",
            "no timestamp",
            "2024-01-01 12:00:00 late",
        ])
        store.set_time_filter(TimeFilter(
            datetime(2024, 1, 1, 9, tzinfo=timezone.utc),
            datetime(2024, 1, 1, 11, tzinfo=timezone.utc),
        ))
        assert store.visible_seqs() == [0, 1]
        store.set_time_filter(None)
        assert store.visible_seqs() == [0, 1, 2]


class TestClear:

    def test_clear_keeps_numbering(self, store):
        listener = RecordingListener()
        store.subscribe(listener)
        store.extend(["ERROR a", "b"])
        store.clear()
        assert len(store) == 0
        assert list(store.iter_range()) == []
        assert store.event_index["Error"] == []
        assert listener.cleared == 1
        assert store.append("c").seq == 2
