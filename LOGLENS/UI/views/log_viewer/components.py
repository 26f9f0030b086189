"""
Log Viewer Components Module - UI widgets and panels

Handles:
- Search controls and match counter, with input history
- Rule entry for adding filters, events and highlights
- Filter rule and event toggles
- Time window controls
- Statistics, timeline and line details panels
"""
from typing import List, Optional, Sequence

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.widgets import Button, Checkbox, Input, Label, Static

from LOGLENS.analysis.history import History
from LOGLENS.rules.compiler import CompiledFilter, RegexMatcher
from LOGLENS.rules.models import FilterMode
from LOGLENS.timeline.aggregator import TimelineData

TIME_FORMAT = '%Y-%m-%d %H:%M:%S'


def format_timeline(data: Optional[TimelineData], label_width: int = 14) -> Text:
    """
    Render a timeline as one row of intensity glyphs per event

    Args:
        data: Aggregated timeline, or None when there is nothing to show
        label_width: Width of the event name column

    Returns:
        Rich Text block ready for a Static widget
    """
    if data is None:
        return Text("Not enough timestamped events for a timeline", style="dim")

    rendered = Text()
    rendered.append(f"{'':<{label_width}}{data.start.strftime(TIME_FORMAT)}", style="dim")
    rendered.append(f" .. {data.end.strftime(TIME_FORMAT)}\n", style="dim")

    for name in data.names:
        label = name if len(name) < label_width else name[:label_width - 2] + "~"
        rendered.append(f"{label:<{label_width}}", style="bold")
        rendered.append("".join(level.glyph for level in data.row(name)))
        rendered.append(f" {sum(data.counts[name])}\n", style="dim")

    rendered.rstrip()
    return rendered


def filter_label(rule: CompiledFilter) -> str:
    """Checkbox label for a filter rule, e.g. '+ ERROR' or '- /DEBUG/'"""
    sign = "+" if rule.mode is FilterMode.INCLUDE else "-"
    pattern = f"/{rule.pattern}/" if isinstance(rule.matcher, RegexMatcher) else rule.pattern
    return f"{sign} {pattern}"


class HistoryInput(Input):
    """Input recalling earlier entries with the up and down keys"""

    BINDINGS = [
        ("up", "history_previous", "Older"),
        ("down", "history_next", "Newer"),
    ]

    def __init__(self, *args, history: Optional[History] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.history = history if history is not None else History()

    def remember(self, entry: str) -> None:
        if entry:
            self.history.add(entry)

    def action_history_previous(self) -> None:
        self._recall(self.history.previous_record())

    def action_history_next(self) -> None:
        self._recall(self.history.next_record())

    def _recall(self, entry: Optional[str]) -> None:
        if entry is None:
            return
        self.value = entry
        self.cursor_position = len(entry)


class LogSearchPanel(Horizontal):
    """Search controls for log viewer"""

    def compose(self) -> ComposeResult:
        """Compose the search panel"""
        yield Label("[bold]Search:[/bold]", classes="control-label")
        yield HistoryInput(
            placeholder="Search logs... (up/down for history)",
            id="log-search-input"
        )
        yield Checkbox("Case sensitive", id="case-sensitive-checkbox")
        yield Checkbox("Regex", id="regex-checkbox")
        yield Button("◀", id="search-prev-btn", variant="default")
        yield Button("▶", id="search-next-btn", variant="default")
        yield Static("", id="search-match-info")
        yield Button("Clear", id="clear-search-btn", variant="default")

    def show_match_info(self, position: int, total: int, query: Optional[str]) -> None:
        """Update the 'n/m' match counter"""
        info = self.query_one("#search-match-info", Static)
        if not query:
            info.update("")
        elif total == 0:
            info.update("[red]no matches[/red]")
        else:
            info.update(f"{position}/{total}")


class LogFilterPanel(Horizontal):
    """One checkbox per filter rule, toggling it on the store"""

    def compose(self) -> ComposeResult:
        """Compose the filter panel"""
        yield Label("[bold]Filters:[/bold]", classes="control-label")
        yield Horizontal(id="filter-checkboxes")
        yield Button("Reset Filters", id="reset-filters-btn", variant="default")

    def set_filters(self, filters: Sequence[CompiledFilter], states: List[bool]) -> None:
        """Rebuild the checkboxes for the current filter rules"""
        container = self.query_one("#filter-checkboxes", Horizontal)
        container.remove_children()
        if not filters:
            container.mount(Static("[dim]none[/dim]"))
            return
        container.mount(*[
            Checkbox(filter_label(rule), value=enabled, name=f"filter:{index}")
            for index, (rule, enabled) in enumerate(zip(filters, states))
        ])


class EventFilterPanel(Horizontal):
    """One checkbox per tracked event, selecting it for the timeline"""

    def compose(self) -> ComposeResult:
        yield Label("[bold]Events:[/bold]", classes="control-label")
        yield Horizontal(id="event-checkboxes")

    def set_events(self, names: Sequence[str], enabled: Sequence[str]) -> None:
        container = self.query_one("#event-checkboxes", Horizontal)
        container.remove_children()
        if not names:
            container.mount(Static("[dim]none[/dim]"))
            return
        container.mount(*[
            Checkbox(name, value=name in enabled, name=f"event:{name}")
            for name in names
        ])


class RuleEntryPanel(Horizontal):
    """Pattern entry adding a filter, custom event or highlight at runtime"""

    def compose(self) -> ComposeResult:
        yield Label("[bold]Add rule:[/bold]", classes="control-label")
        yield HistoryInput(placeholder="pattern (Enter adds an include filter)", id="rule-input")
        yield Checkbox("Regex", id="rule-regex-checkbox")
        yield Button("+ Include", id="rule-include-btn", variant="default")
        yield Button("- Exclude", id="rule-exclude-btn", variant="default")
        yield Button("Event", id="rule-event-btn", variant="default")
        yield Button("Highlight", id="rule-highlight-btn", variant="default")


class LogTimeFilterPanel(Horizontal):
    """Start/end inputs restricting visible lines to a time window"""

    def compose(self) -> ComposeResult:
        yield Label("[bold]Time:[/bold]", classes="control-label")
        yield Input(placeholder="from (e.g. 2024-01-01 10:00:00)", id="time-start-input")
        yield Input(placeholder="to", id="time-end-input")
        yield Button("Apply", id="time-apply-btn", variant="primary")
        yield Button("Clear", id="time-clear-btn", variant="default")


class LogStatsPanel(Static):
    """Display log statistics"""

    total_entries: reactive[int] = reactive(0)
    visible_entries: reactive[int] = reactive(0)
    event_count: reactive[int] = reactive(0)
    alert_count: reactive[int] = reactive(0)
    mark_count: reactive[int] = reactive(0)
    sources: reactive[str] = reactive("")

    def compose(self) -> ComposeResult:
        """Compose the stats panel"""
        yield Label("[bold]Log Statistics[/bold]", classes="panel-title")
        yield Static(
            self._format_stats(),
            id="stats-content"
        )

    def _format_stats(self) -> str:
        """Format statistics for display"""
        return (
            f"Total Lines: {self.total_entries}\n"
            f"Visible: {self.visible_entries}\n"
            f"[yellow]Events: {self.event_count}[/yellow]\n"
            f"[red]Critical: {self.alert_count}[/red]\n"
            f"Marks: {self.mark_count}\n"
            f"{self.sources}"
        )

    def watch_total_entries(self, value: int) -> None:
        self._update_display()

    def watch_visible_entries(self, value: int) -> None:
        self._update_display()

    def watch_event_count(self, value: int) -> None:
        self._update_display()

    def watch_alert_count(self, value: int) -> None:
        self._update_display()

    def watch_mark_count(self, value: int) -> None:
        self._update_display()

    def watch_sources(self, value: str) -> None:
        self._update_display()

    def _update_display(self) -> None:
        """Update the stats display"""
        if not self.is_mounted:
            return
        stats_content = self.query_one("#stats-content", Static)
        stats_content.update(self._format_stats())


class TimelinePanel(Vertical):
    """Event intensity over time"""

    def compose(self) -> ComposeResult:
        yield Label("[bold]Event Timeline[/bold]", classes="panel-title")
        yield Static(format_timeline(None), id="timeline-content")

    def show_timeline(self, data: Optional[TimelineData]) -> None:
        self.query_one("#timeline-content", Static).update(format_timeline(data))


class LogEntryDetailsPanel(Vertical):
    """Detailed view of the selected line"""

    def compose(self) -> ComposeResult:
        """Compose the details panel"""
        yield Label("[bold]Line Details[/bold]", classes="panel-title")
        yield Static(
            "Select a line to view details",
            id="entry-details-content"
        )

    def show_line_details(self, line, classification, mark_name: Optional[str] = None) -> None:
        """
        Display details for a line

        Args:
            line: Line from the store
            classification: Its current Classification
            mark_name: Name of its mark, if marked and named
        """
        timestamp = line.timestamp.strftime(TIME_FORMAT) if line.timestamp else 'N/A'
        events = ", ".join(classification.events) if classification.events else 'none'

        details = Text()
        details.append("Line: ", style="bold")
        details.append(f"{line.seq}\n")
        details.append("Timestamp: ", style="bold")
        details.append(f"{timestamp}\n")
        details.append("Source: ", style="bold")
        details.append(f"{line.source}\n")
        details.append("Events: ", style="bold")
        details.append(f"{events}\n", style="bold red" if classification.critical else "")
        if mark_name:
            details.append("Mark: ", style="bold")
            details.append(f"{mark_name}\n")
        details.append("\nRaw Line:\n", style="bold")
        details.append(line.text)

        self.query_one("#entry-details-content", Static).update(details)

    def clear_details(self) -> None:
        """Clear the details display"""
        self.query_one("#entry-details-content", Static).update("Select a line to view details")
