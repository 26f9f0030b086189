import pytest

from LOGLENS.analysis.expansion import Expansions
from LOGLENS.rules import FilterMode, FilterRule, compile_ruleset
from LOGLENS.store import LogStore


@pytest.fixture
def store():
    ruleset = compile_ruleset([], [], [FilterRule(pattern="DEBUG", mode=FilterMode.EXCLUDE)])
    store = LogStore(ruleset)
    store.extend(["INFO a", "DEBUG b", "DEBUG c", "INFO d", "DEBUG e"])
    return store


class TestHiddenAfter:

    def test_stops_at_next_visible_line(self, store):
        assert store.hidden_after(0) == [1, 2]

    def test_runs_to_end_of_store(self, store):
        assert store.hidden_after(3) == [4]

    def test_nothing_hidden(self, store):
        assert store.hidden_after(2) == []

    def test_limit(self, store):
        assert store.hidden_after(0, limit=1) == [1]


class TestExpansions:

    def test_toggle(self, store):
        expansions = Expansions()
        assert expansions.toggle(0, store.hidden_after(0)) is True
        assert expansions.is_expanded(0)
        assert expansions.expanded_lines(0) == [1, 2]
        assert expansions.toggle(0, []) is False
        assert not expansions.is_expanded(0)

    def test_nothing_to_expand(self):
        expansions = Expansions()
        assert expansions.toggle(3, []) is False
        assert len(expansions) == 0

    def test_merge_places_hidden_lines_after_parent(self, store):
        expansions = Expansions()
        expansions.toggle(0, store.hidden_after(0))
        assert expansions.merge(store.visible_seqs()) == [0, 1, 2, 3]
        assert expansions.total() == 2

    def test_find_parent(self):
        expansions = Expansions()
        expansions.toggle(10, [11, 12])
        assert expansions.find_parent(12) == 10
        assert expansions.find_parent(13) is None

    def test_eviction_drops_expansions(self):
        store = LogStore(capacity=3)
        expansions = Expansions()
        store.subscribe(expansions)
        store.extend(["a", "b"])
        expansions.toggle(0, [1])
        store.extend(["c", "d"])
        assert not expansions.is_expanded(0)

    def test_new_rules_collapse_everything(self, store):
        expansions = Expansions()
        store.subscribe(expansions)
        expansions.toggle(0, store.hidden_after(0))
        store.install_ruleset(compile_ruleset([], [], []))
        assert len(expansions) == 0
