import json
from datetime import datetime, timedelta, timezone

import pytest
from rich.text import Span

from LOGLENS.analysis.marking import Marking
from LOGLENS.config import RuleManager
from LOGLENS.log_analysis.alert_manager import AlertManager
from LOGLENS.rules import (
    EventRule,
    FilterMode,
    FilterRule,
    HighlightRule,
    StyleSpec,
    classify,
    compile_ruleset,
)
from LOGLENS.search import SearchEngine
from LOGLENS.store import EventIndex, LogStore
from LOGLENS.timeline import build_timeline
from LOGLENS.UI.app import LogLensApp
from LOGLENS.UI.views.log_viewer import (
    HistoryInput,
    LogViewerTable,
    LogViewerView,
    format_timeline,
    render_line_text,
    render_marker,
)
from LOGLENS.UI.views.log_viewer.components import filter_label


@pytest.fixture
def ruleset():
    return compile_ruleset(
        [HighlightRule(pattern="disk", style=StyleSpec(fg="cyan"))],
        [EventRule(name="Error", pattern="ERROR", critical=True, style=StyleSpec(fg="red"))],
        [FilterRule(pattern="DEBUG", mode=FilterMode.EXCLUDE)],
    )


class TestRenderLineText:

    def test_spans_become_text_styles(self, ruleset):
        text = "ERROR disk full"
        rendered = render_line_text(text, classify(text, ruleset))
        assert rendered.plain == text
        assert rendered.style == "red"
        assert Span(6, 10, "cyan") in rendered.spans

    def test_plain_line(self, ruleset):
        rendered = render_line_text("nothing", classify("nothing", ruleset))
        assert rendered.spans == []
        assert rendered.style == ""

    def test_unclassified_line(self):
        assert render_line_text("raw", None).plain == "raw"

    def test_marker(self, ruleset):
        critical = classify("ERROR", ruleset)
        assert render_marker(critical, marked=False).plain == " !"
        assert render_marker(None, marked=True).plain == "* "


class TestFormatTimeline:

    def test_rows_per_event(self):
        t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        index = EventIndex(["Error", "Warn"])
        index.record(0, t0, ["Error"])
        index.record(1, t0 + timedelta(seconds=30), ["Warn"])
        index.record(2, t0 + timedelta(seconds=59), ["Error"])

        lines = format_timeline(build_timeline(index, 4)).plain.splitlines()
        assert "2024-01-01 00:00:00" in lines[0]
        assert lines[1].startswith("Error")
        assert "█..█ 2" in lines[1]
        assert "..█. 1" in lines[2]

    def test_no_data(self):
        assert "Not enough" in format_timeline(None).plain


def test_filter_label():
    rules = compile_ruleset([], [], [
        FilterRule(pattern="ERROR"),
        FilterRule(pattern="DEBUG|TRACE", regex=True, mode=FilterMode.EXCLUDE),
    ])
    assert [filter_label(rule) for rule in rules.filters] == ["+ ERROR", "- /DEBUG|TRACE/"]


@pytest.mark.asyncio
async def test_app_shows_visible_lines_and_navigates(ruleset):
    store = LogStore(ruleset)
    store.extend(["INFO start", "DEBUG noise", "ERROR disk full", "INFO end"])
    search = SearchEngine(store)
    marking = Marking()
    store.subscribe(marking)
    alerts = AlertManager()

    app = LogLensApp(store, search, marking, alerts, refresh_interval=0.1)
    async with app.run_test() as pilot:
        await pilot.pause()
        table = app.query_one("#log-viewer-table", LogViewerTable)
        assert table.seqs == [0, 2, 3]

        search.search("ERROR")
        table.focus()
        await pilot.press("n")
        await pilot.pause()
        assert table.selected_seq() == 2

        await pilot.press("m")
        await pilot.pause()
        assert marking.is_marked(2)

        store.append("INFO later")
        await pilot.pause(0.3)
        assert table.seqs[-1] == 4


def make_app(store, rules=None):
    search = SearchEngine(store)
    marking = Marking()
    store.subscribe(marking)
    return LogLensApp(store, search, marking, AlertManager(), rules=rules, refresh_interval=0.1)


@pytest.mark.asyncio
async def test_rules_added_and_reloaded_at_runtime(tmp_path):
    rule_file = tmp_path / "rules.json"
    rule_file.write_text(json.dumps({"events": [{"name": "Error", "pattern": "ERROR"}]}))
    store = LogStore()
    store.extend(["INFO start", "DEBUG noise", "ERROR disk full"])
    rules = RuleManager(store, path=rule_file)

    app = make_app(store, rules)
    async with app.run_test() as pilot:
        await pilot.pause()
        view = app.query_one("#log-viewer-view", LogViewerView)
        table = app.query_one("#log-viewer-table", LogViewerTable)
        assert table.seqs == [0, 1, 2]

        rule_input = app.query_one("#rule-input", HistoryInput)
        rule_input.value = "DEBUG"
        view.handle_add_exclude()
        await pilot.pause()
        assert table.seqs == [0, 2]
        assert rule_input.value == ""
        assert rule_input.history.entries == ["DEBUG"]

        table.focus()
        await pilot.press("r")
        await pilot.pause()
        assert store.event_index.counts() == {"Error": 1}
        assert table.seqs == [0, 1, 2]

        version = store.ruleset.version
        rule_file.write_text(json.dumps({"events": [{"name": "bad", "pattern": "(", "regex": True}]}))
        await pilot.press("r")
        await pilot.pause()
        assert store.ruleset.version == version

        rule_input.value = "("
        app.query_one("#rule-regex-checkbox").value = True
        view.handle_add_event()
        await pilot.pause()
        assert store.ruleset.version == version
        assert rule_input.value == "("


@pytest.mark.asyncio
async def test_search_history_recall():
    store = LogStore()
    store.extend(["INFO start", "ERROR disk full"])
    app = make_app(store)
    async with app.run_test() as pilot:
        search_input = app.query_one("#log-search-input", HistoryInput)
        search_input.focus()
        await pilot.press(*"disk")
        await pilot.press("enter")
        await pilot.pause()
        assert search_input.history.entries == ["disk"]

        search_input.value = ""
        await pilot.press("up")
        assert search_input.value == "disk"


@pytest.mark.asyncio
async def test_expand_hidden_lines(ruleset):
    store = LogStore(ruleset)
    store.extend(["INFO start", "DEBUG noise", "DEBUG more", "INFO end"])
    app = make_app(store)
    async with app.run_test() as pilot:
        await pilot.pause()
        table = app.query_one("#log-viewer-table", LogViewerTable)
        assert table.seqs == [0, 3]

        table.focus()
        table.move_cursor(row=0)
        await pilot.press("e")
        await pilot.pause()
        assert table.seqs == [0, 1, 2, 3]

        table.move_cursor(row=2)
        await pilot.press("e")
        await pilot.pause()
        assert table.seqs == [0, 3]
