"""
LOGLENS Main Application - Terminal log viewer using Textual
"""
from typing import Optional

from textual.app import App, ComposeResult
from textual.widgets import Footer, Header

from LOGLENS.analysis.marking import Marking
from LOGLENS.config import RuleManager
from LOGLENS.ingest.controller import IngestionController
from LOGLENS.log_analysis.alert_manager import AlertManager
from LOGLENS.search.search_engine import SearchEngine
from LOGLENS.store.log_store import LogStore
from LOGLENS.UI.views.log_viewer import LogViewerView


class LogLensApp(App):
    """Terminal log viewer application"""

    TITLE = "LOGLENS - Terminal Log Viewer"
    CSS_PATH = "loglens.tcss"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("slash", "viewer('focus_search')", "Search"),
        ("n", "viewer('next_match')", "Next"),
        ("N", "viewer('previous_match')", "Prev"),
        ("m", "viewer('toggle_mark')", "Mark"),
        ("right_square_bracket", "viewer('next_mark')", "Next Mark"),
        ("left_square_bracket", "viewer('previous_mark')", "Prev Mark"),
        ("f", "viewer('toggle_follow')", "Follow"),
        ("g", "viewer('jump_top')", "Top"),
        ("G", "viewer('jump_bottom')", "Bottom"),
        ("e", "viewer('toggle_expand')", "Expand"),
        ("r", "viewer('reload_rules')", "Reload Rules"),
    ]

    def __init__(self, store: LogStore, search: SearchEngine, marking: Marking,
                 alerts: AlertManager, controller: Optional[IngestionController] = None,
                 rules: Optional[RuleManager] = None,
                 refresh_interval: float = 0.5, timeline_buckets: int = 60):
        super().__init__()
        self.store = store
        self.search = search
        self.marking = marking
        self.alerts = alerts
        self.controller = controller
        self.rules = rules
        self.refresh_interval = refresh_interval
        self.timeline_buckets = timeline_buckets

    def compose(self) -> ComposeResult:
        """Compose the main UI layout"""
        yield Header(show_clock=True)
        yield LogViewerView(
            self.store,
            self.search,
            self.marking,
            self.alerts,
            self.controller,
            rules=self.rules,
            refresh_interval=self.refresh_interval,
            timeline_buckets=self.timeline_buckets,
            id="log-viewer-view",
        )
        yield Footer()

    def on_mount(self) -> None:
        if self.controller:
            self.controller.start()

    def action_viewer(self, action: str) -> None:
        """Forward a key binding to the log viewer"""
        view = self.query_one("#log-viewer-view", LogViewerView)
        getattr(view, f"action_{action}")()

    def on_unmount(self) -> None:
        if self.controller:
            self.controller.stop()


def run_app(store: LogStore, controller: Optional[IngestionController] = None,
            rules: Optional[RuleManager] = None, refresh_interval: float = 0.5, timeline_buckets: int = 60) -> None:
    """Entry point to run the LOGLENS application over a prepared store"""
    search = SearchEngine(store)
    marking = Marking()
    store.subscribe(marking)
    alerts = AlertManager()
    store.subscribe(alerts)

    app = LogLensApp(store, search, marking, alerts, controller, rules=rules,
                     refresh_interval=refresh_interval, timeline_buckets=timeline_buckets)
    app.run()
