"""
Log Viewer Package - Interactive view over the log store

This package provides the terminal log viewing interface with:
- Styled lines with highlight spans, event colors and critical markers
- Live refresh as sources append lines
- Search with match navigation (literal or regex)
- Filter rule, event and time window toggles
- Event intensity timeline and line marks
- Rules added or reloaded at runtime, input history, expanded hidden lines

Package Structure:
- view: Main view orchestration (LogViewerView)
- components: UI panels and controls (LogSearchPanel, LogFilterPanel, TimelinePanel, etc.)
- log_table: Line table widget and rendering helpers (LogViewerTable, render_line_text)
"""

from .view import LogViewerView

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
    format_timeline,
)
from .log_table import LogViewerTable, render_line_text, render_marker

__all__ = [
    # Main view
    'LogViewerView',

    # UI components
    'EventFilterPanel',
    'HistoryInput',
    'LogEntryDetailsPanel',
    'LogFilterPanel',
    'LogSearchPanel',
    'LogStatsPanel',
    'LogTimeFilterPanel',
    'RuleEntryPanel',
    'TimelinePanel',
    'LogViewerTable',

    # Rendering helpers
    'format_timeline',
    'render_line_text',
    'render_marker',
]
