"""
Log Viewer View Module - Main UI orchestration

Handles:
- Main view composition and layout
- Periodic refresh pulling new lines from the log store
- Search, filter, event and time window coordination
- Line marks and critical-line alert notifications
- Runtime rule changes and expansion of filtered-out lines
- Event handlers for all UI interactions
"""
import bisect
from typing import Optional

from rich.markup import escape
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.timer import Timer
from textual.widgets import Button, Checkbox, DataTable, Input, Label

from LOGLENS.analysis.expansion import Expansions
from LOGLENS.analysis.marking import Marking
from LOGLENS.analysis.time_filter import TimeFilter, parse_time_bound
from LOGLENS.config import RuleManager
from LOGLENS.ingest.controller import IngestionController
from LOGLENS.log_analysis.alert_manager import AlertManager
from LOGLENS.rules.compiler import RuleError
from LOGLENS.rules.models import FilterMode
from LOGLENS.search.search_engine import SearchEngine, SearchError
from LOGLENS.store.log_store import LogStore
from LOGLENS.timeline.aggregator import build_timeline

from .components import (
    EventFilterPanel,
    HistoryInput,
    LogEntryDetailsPanel,
    LogFilterPanel,
    LogSearchPanel,
    LogStatsPanel,
    LogTimeFilterPanel,
    RuleEntryPanel,
    TimelinePanel,
)
from .log_table import LogViewerTable

MAX_EXPANDED_LINES = 1000


class LogViewerView(Vertical):
    """
    Interactive view over a LogStore

    Features:
    - Styled lines with highlight spans and event colors
    - Live tailing of growing sources
    - Search with match navigation
    - Filter, event and time window toggles
    - Event timeline and line marks
    - Rules added or reloaded while running
    """

    def __init__(self, store: LogStore, search: SearchEngine, marking: Marking,
                 alerts: AlertManager, controller: Optional[IngestionController] = None,
                 rules: Optional[RuleManager] = None,
                 refresh_interval: float = 0.5, timeline_buckets: int = 60, **kwargs):
        """
        Initialize the log viewer

        Args:
            store: LogStore to display
            search: SearchEngine bound to the store
            marking: Line marks bound to the store
            alerts: AlertManager collecting critical lines
            controller: Ingestion controller whose source states are shown
            rules: Rule manager used to add and reload rules
            refresh_interval: Seconds between store refreshes
            timeline_buckets: Number of timeline buckets
        """
        super().__init__(**kwargs)
        self.store = store
        self.search = search
        self.marking = marking
        self.alerts = alerts
        self.controller = controller
        self.rules = rules
        self.expansions = Expansions()
        self.refresh_interval = refresh_interval
        self.timeline_buckets = timeline_buckets

        # Refresh state
        self.refresh_timer: Optional[Timer] = None
        self.follow = True
        self._rendered_upto = 0
        self._rendered_first = 0
        self._rendered_epoch = -1
        self._visible_count = 0
        self._event_total = -1
        self._ruleset_version = None

        # Search state
        self.case_sensitive = False
        self.use_regex = False
        self._search_timer: Optional[Timer] = None

    def compose(self) -> ComposeResult:
        """Compose the log viewer layout"""
        with Container(id="log-viewer-controls"):
            with Horizontal(id="log-search-filter-panel"):
                yield LogSearchPanel(id="log-search-panel")

            with Horizontal(id="log-rule-filter-panel"):
                yield LogFilterPanel(id="log-filter-panel")

            with Horizontal(id="log-event-filter-panel"):
                yield EventFilterPanel(id="event-filter-panel")

            with Horizontal(id="log-time-filter-panel"):
                yield LogTimeFilterPanel(id="time-filter-panel")

            with Horizontal(id="log-rule-entry-panel"):
                yield RuleEntryPanel(id="rule-entry-panel")

        with Horizontal(id="log-viewer-content"):
            with Vertical(classes="main-panel", id="log-main-panel"):
                yield Label("[bold]Log Lines[/bold]", classes="section-title")
                yield LogViewerTable(id="log-viewer-table")
                yield TimelinePanel(id="timeline-panel")

            with Vertical(classes="right-panel", id="log-sidebar"):
                yield LogStatsPanel(id="log-stats-panel")
                yield LogEntryDetailsPanel(id="log-entry-details-panel")

    def on_mount(self) -> None:
        """Initialize when view is mounted"""
        self.store.subscribe(self.expansions)
        self._sync_rule_panels()
        self._refresh_from_store()
        self.refresh_timer = self.set_interval(self.refresh_interval, self._refresh_from_store)

    # Store refresh

    def _sync_rule_panels(self) -> None:
        ruleset = self.store.ruleset
        self._ruleset_version = ruleset.version
        self.query_one("#log-filter-panel", LogFilterPanel).set_filters(
            ruleset.filters, self.store.filter_states())
        index = self.store.event_index
        self.query_one("#event-filter-panel", EventFilterPanel).set_events(
            index.names(), index.enabled_names())
        self._event_total = -1

    def _refresh_from_store(self) -> None:
        """Pull lines appended since the last refresh, or rebuild when visibility changed"""
        if self.store.ruleset.version != self._ruleset_version:
            self._sync_rule_panels()

        table = self.query_one("#log-viewer-table", LogViewerTable)
        first, upto = self.store.first_seq, self.store.next_seq

        if self.store.filter_epoch != self._rendered_epoch:
            self.expansions.clear()
            self._rebuild_table(table, upto)
        else:
            if first > self._rendered_first:
                # Eviction or clear: drop rows of lines that are gone
                table.drop_below(first)
                self._rendered_first = first
                self._visible_count = len(self.store.visible_seqs(None, self._rendered_upto))
            if upto > self._rendered_upto:
                new_seqs = self.store.visible_seqs(self._rendered_upto, upto)
                table.add_lines(self.store, new_seqs, self.marking)
                self._visible_count += len(new_seqs)
                self._rendered_upto = upto
                if self.follow:
                    table.jump_to_bottom()

        self._notify_alerts()
        self._update_stats()
        self._update_timeline()

    def _rebuild_table(self, table: LogViewerTable, upto: int, anchor: Optional[int] = None) -> None:
        visible = self.store.visible_seqs(None, upto)
        self._visible_count = len(visible)
        rows = self.expansions.merge(visible)
        self._rendered_upto = upto
        self._rendered_first = self.store.first_seq
        self._rendered_epoch = self.store.filter_epoch

        if anchor is None:
            window = rows[-table.max_rows:]
        else:
            # Center the window on the anchor line
            pos = bisect.bisect_left(rows, anchor)
            lo = max(0, pos - table.max_rows // 2)
            window = rows[lo:lo + table.max_rows]

        selected = anchor if anchor is not None else table.selected_seq()
        table.show_lines(self.store, window, self.marking)
        if selected is not None and table.jump_to_seq(selected):
            return
        if self.follow:
            table.jump_to_bottom()

    def _notify_alerts(self) -> None:
        pending = self.alerts.drain()
        if not pending:
            return
        if len(pending) > 3:
            self.notify(f"{len(pending)} critical lines", severity="error")
            return
        for alert in pending:
            self.notify(escape(alert.message[:200]), title=alert.detected_by, severity="error")

    def _update_stats(self) -> None:
        """Update statistics panel"""
        stats_panel = self.query_one("#log-stats-panel", LogStatsPanel)
        stats_panel.total_entries = len(self.store)
        stats_panel.visible_entries = self._visible_count
        stats_panel.event_count = sum(self.store.event_index.counts().values())
        stats_panel.alert_count = self.alerts.number_of_alerts
        stats_panel.mark_count = len(self.marking)
        if self.controller:
            stats_panel.sources = "\n".join(
                f"{escape(name)}: {state.value}" for name, state in self.controller.states.items()
            )

    def _update_timeline(self, force: bool = False) -> None:
        total = sum(self.store.event_index.counts().values())
        if not force and total == self._event_total:
            return
        self._event_total = total
        data = build_timeline(self.store.event_index, self.timeline_buckets)
        self.query_one("#timeline-panel", TimelinePanel).show_timeline(data)

    def _go_to(self, seq: Optional[int]) -> None:
        """Select a line, moving the table window if it is not shown"""
        if seq is None:
            return
        table = self.query_one("#log-viewer-table", LogViewerTable)
        self.follow = False
        if not table.jump_to_seq(seq):
            self._rebuild_table(table, self.store.next_seq, anchor=seq)

    # Search

    @on(Input.Changed, "#log-search-input")
    def handle_search_changed(self, event: Input.Changed) -> None:
        """Debounce search input changes"""
        if self._search_timer:
            self._search_timer.stop()
        self._search_timer = self.set_timer(0.3, self._perform_search)

    @on(Input.Submitted, "#log-search-input")
    def handle_search_submitted(self, event: Input.Submitted) -> None:
        self.query_one("#log-search-input", HistoryInput).remember(event.value)
        if self._search_timer:
            self._search_timer.stop()
            self._search_timer = None
        self._perform_search()

    def _perform_search(self) -> None:
        """Execute the actual search operation (debounced)"""
        self._search_timer = None
        query = self.query_one("#log-search-input", Input).value
        self._run_search(query, self.use_regex, self.case_sensitive)

    @work(exclusive=True, thread=True)
    def _run_search(self, query: str, regex: bool, case_sensitive: bool) -> None:
        """Scan the store in a background thread"""
        try:
            self.search.search(query, regex=regex, case_sensitive=case_sensitive)
        except SearchError as e:
            self.app.call_from_thread(self.notify, escape(e.reason), title="Invalid search", severity="error")
            return
        self.app.call_from_thread(self._search_finished)

    def _search_finished(self) -> None:
        if self.search.active:
            table = self.query_one("#log-viewer-table", LogViewerTable)
            anchor = table.selected_seq()
            self._go_to(self.search.next_from(anchor if anchor is not None else -1))
        self._update_match_info()

    def _update_match_info(self) -> None:
        position, total = self.search.match_info()
        self.query_one("#log-search-panel", LogSearchPanel).show_match_info(position, total, self.search.query)

    def action_next_match(self) -> None:
        self._go_to(self.search.next())
        self._update_match_info()

    def action_previous_match(self) -> None:
        self._go_to(self.search.previous())
        self._update_match_info()

    @on(Button.Pressed, "#search-next-btn")
    def handle_next_match(self) -> None:
        self.action_next_match()

    @on(Button.Pressed, "#search-prev-btn")
    def handle_previous_match(self) -> None:
        self.action_previous_match()

    @on(Button.Pressed, "#clear-search-btn")
    def handle_clear_search(self) -> None:
        """Handle clear search button"""
        self.query_one("#log-search-input", Input).value = ""
        self.search.clear_search()
        self._update_match_info()

    @on(Checkbox.Changed, "#case-sensitive-checkbox")
    def handle_case_sensitive_changed(self, event: Checkbox.Changed) -> None:
        self.case_sensitive = event.value
        if self.search.active:
            self._perform_search()

    @on(Checkbox.Changed, "#regex-checkbox")
    def handle_regex_changed(self, event: Checkbox.Changed) -> None:
        self.use_regex = event.value
        if self.search.active:
            self._perform_search()

    # Filters

    @on(Checkbox.Changed)
    def handle_rule_toggle_changed(self, event: Checkbox.Changed) -> None:
        """Handle filter and event checkboxes, identified by their name"""
        kind, _, key = (event.checkbox.name or "").partition(":")
        if kind == "filter":
            self.store.set_filter_enabled(int(key), event.value)
            self._refresh_from_store()
        elif kind == "event":
            self.store.event_index.set_enabled(key, event.value)
            self._update_timeline(force=True)

    @on(Button.Pressed, "#reset-filters-btn")
    def handle_reset_filters(self) -> None:
        """Restore every filter to its configured enabled state"""
        for index, rule in enumerate(self.store.ruleset.filters):
            self.store.set_filter_enabled(index, rule.enabled)
        self._sync_rule_panels()
        self._refresh_from_store()
        self.notify("Filters reset", severity="information")

    @on(Button.Pressed, "#time-apply-btn")
    def handle_time_apply(self) -> None:
        start_text = self.query_one("#time-start-input", Input).value
        end_text = self.query_one("#time-end-input", Input).value
        try:
            start = parse_time_bound(start_text)
            end = parse_time_bound(end_text)
            self.store.set_time_filter(TimeFilter(start, end))
        except ValueError as e:
            self.notify(escape(str(e)), title="Invalid time window", severity="error")
            return
        self._refresh_from_store()

    @on(Button.Pressed, "#time-clear-btn")
    def handle_time_clear(self) -> None:
        self.query_one("#time-start-input", Input).value = ""
        self.query_one("#time-end-input", Input).value = ""
        self.store.set_time_filter(None)
        self._refresh_from_store()

    # Marks and selection

    def action_toggle_mark(self) -> None:
        table = self.query_one("#log-viewer-table", LogViewerTable)
        seq = table.selected_seq()
        if seq is None:
            return
        self.marking.toggle(seq)
        table.refresh_line(self.store, seq, self.marking)
        self._update_stats()

    def action_next_mark(self) -> None:
        table = self.query_one("#log-viewer-table", LogViewerTable)
        current = table.selected_seq()
        self._go_to(self.marking.next_mark(current if current is not None else -1))

    def action_previous_mark(self) -> None:
        table = self.query_one("#log-viewer-table", LogViewerTable)
        current = table.selected_seq()
        self._go_to(self.marking.previous_mark(current if current is not None else self.store.next_seq))

    def action_toggle_follow(self) -> None:
        self.follow = not self.follow
        if self.follow:
            self.query_one("#log-viewer-table", LogViewerTable).jump_to_bottom()
        self.notify(f"Follow {'on' if self.follow else 'off'}", severity="information")

    def action_jump_top(self) -> None:
        self.follow = False
        self.query_one("#log-viewer-table", LogViewerTable).jump_to_top()

    def action_jump_bottom(self) -> None:
        self.query_one("#log-viewer-table", LogViewerTable).jump_to_bottom()

    def action_focus_search(self) -> None:
        self.query_one("#log-search-input", Input).focus()

    @on(DataTable.RowHighlighted, "#log-viewer-table")
    def handle_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        """Show details of the line under the cursor"""
        if event.row_key is None or event.row_key.value is None:
            return
        seq = int(event.row_key.value)
        try:
            line = self.store.get(seq)
        except IndexError:
            return
        mark_name = next((m.name for m in self.marking.marks() if m.seq == seq), None)
        details_panel = self.query_one("#log-entry-details-panel", LogEntryDetailsPanel)
        details_panel.show_line_details(line, self.store.classification(seq), mark_name)

    # Rules

    def action_reload_rules(self) -> None:
        """Recompile the rule file; the current rules stay active on error"""
        if self.rules is None or not self.rules.path:
            self.notify("No rule file to reload", severity="warning")
            return
        try:
            ruleset = self.rules.reload()
        except RuleError as e:
            self.notify(escape(str(e)), title="Invalid rule", severity="error")
            return
        except (OSError, ValueError) as e:
            self.notify(escape(str(e)), title="Could not load rules", severity="error")
            return
        self._refresh_from_store()
        self.notify(f"Rules reloaded (v{ruleset.version})", severity="information")

    def _add_rule(self, kind: str) -> None:
        rule_input = self.query_one("#rule-input", HistoryInput)
        pattern = rule_input.value
        if not pattern:
            return
        if self.rules is None:
            self.notify("Rules cannot be changed in this session", severity="warning")
            return

        regex = self.query_one("#rule-regex-checkbox", Checkbox).value
        try:
            if kind == "include":
                self.rules.add_filter(pattern, FilterMode.INCLUDE, regex)
            elif kind == "exclude":
                self.rules.add_filter(pattern, FilterMode.EXCLUDE, regex)
            elif kind == "event":
                self.rules.add_event(pattern, regex)
            else:
                self.rules.add_highlight(pattern, regex)
        except RuleError as e:
            self.notify(escape(str(e)), title="Invalid rule", severity="error")
            return

        rule_input.remember(pattern)
        rule_input.value = ""
        self._refresh_from_store()

    @on(Input.Submitted, "#rule-input")
    def handle_rule_submitted(self) -> None:
        self._add_rule("include")

    @on(Button.Pressed, "#rule-include-btn")
    def handle_add_include(self) -> None:
        self._add_rule("include")

    @on(Button.Pressed, "#rule-exclude-btn")
    def handle_add_exclude(self) -> None:
        self._add_rule("exclude")

    @on(Button.Pressed, "#rule-event-btn")
    def handle_add_event(self) -> None:
        self._add_rule("event")

    @on(Button.Pressed, "#rule-highlight-btn")
    def handle_add_highlight(self) -> None:
        self._add_rule("highlight")

    # Expansion

    def action_toggle_expand(self) -> None:
        """Show or hide the filtered-out lines below the selected line"""
        table = self.query_one("#log-viewer-table", LogViewerTable)
        seq = table.selected_seq()
        if seq is None:
            return
        parent = self.expansions.find_parent(seq)
        target = parent if parent is not None else seq

        if self.expansions.is_expanded(target):
            self.expansions.toggle(target, [])
        else:
            hidden = self.store.hidden_after(target, limit=MAX_EXPANDED_LINES)
            if not hidden:
                self.notify("No hidden lines below this line", severity="information")
                return
            self.expansions.toggle(target, hidden)

        self.follow = False
        self._rebuild_table(table, self.store.next_seq, anchor=target)

    def on_unmount(self) -> None:
        """Clean up when view is unmounted"""
        self.store.unsubscribe(self.expansions)
        if self.refresh_timer:
            self.refresh_timer.stop()
            self.refresh_timer = None

        if self._search_timer:
            self._search_timer.stop()
            self._search_timer = None
