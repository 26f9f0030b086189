import pytest

from LOGLENS.analysis.marking import Mark, Marking
from LOGLENS.store import LogStore


@pytest.fixture
def marking():
    return Marking()


class TestMarking:

    def test_toggle(self, marking):
        assert marking.toggle(5) is True
        assert marking.is_marked(5)
        assert marking.toggle(5) is False
        assert not marking.is_marked(5)

    def test_marks_ordered_by_seq(self, marking):
        for seq in (9, 2, 5):
            marking.toggle(seq)
        marking.set_name(5, "deploy")
        assert marking.marks() == [Mark(2), Mark(5, "deploy"), Mark(9)]
        assert len(marking) == 3

    def test_set_name_marks_line(self, marking):
        marking.set_name(3, "start")
        assert marking.is_marked(3)

    def test_unmark_drops_name(self, marking):
        marking.set_name(3, "start")
        marking.unmark(3)
        marking.toggle(3)
        assert marking.marks() == [Mark(3)]

    def test_navigation_wraps(self, marking):
        for seq in (2, 5, 9):
            marking.toggle(seq)
        assert marking.next_mark(5) == 9
        assert marking.next_mark(9) == 2
        assert marking.previous_mark(5) == 2
        assert marking.previous_mark(2) == 9
        assert marking.next_mark(-1) == 2

    def test_navigation_without_marks(self, marking):
        assert marking.next_mark(0) is None
        assert marking.previous_mark(0) is None


class TestMarkingWithStore:

    def test_evicted_marks_dropped(self):
        store = LogStore(capacity=3)
        marking = Marking()
        store.subscribe(marking)
        store.extend(["a", "b", "c"])
        marking.toggle(0)
        marking.toggle(2)
        store.extend(["d", "e"])
        assert [mark.seq for mark in marking.marks()] == [2]

    def test_clear_drops_all_marks(self):
        store = LogStore()
        marking = Marking()
        store.subscribe(marking)
        store.extend(["a", "b"])
        marking.toggle(1)
        store.clear()
        assert len(marking) == 0
