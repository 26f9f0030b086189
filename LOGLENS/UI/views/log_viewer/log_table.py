"""
Log Table Module - DataTable for displaying store lines

Handles:
- Highlight spans and event line styles rendered as Rich text
- Critical and mark indicators
- Windowed rows over the visible sequence numbers
- Row selection and jumping to a line
"""
import bisect
from typing import Iterable, List, Optional

from rich.text import Text
from textual.widgets import DataTable

from LOGLENS.rules.matcher import Classification
from LOGLENS.store.log_store import Line, LogStore


def render_line_text(text: str, classification: Optional[Classification]) -> Text:
    """
    Build the styled message cell for a line

    The first triggered event's style (if any) paints the whole line, then
    highlight spans are layered on top.
    """
    if classification is None:
        return Text(text)

    rendered = Text(text, style=classification.line_style or "")
    for span in classification.spans:
        rendered.stylize(span.style, span.start, span.end)
    return rendered


def render_marker(classification: Optional[Classification], marked: bool) -> Text:
    """Gutter cell: '*' for a marked line, '!' for a critical one"""
    marker = Text()
    marker.append("*" if marked else " ", style="bold cyan")
    critical = classification is not None and classification.critical
    marker.append("!" if critical else " ", style="bold red")
    return marker


class LogViewerTable(DataTable):
    """
    DataTable showing a window of visible lines

    Row keys are line sequence numbers, so selection and jumps stay stable
    while rows are appended or the window moves.
    """

    def __init__(self, max_rows: int = 5000, **kwargs):
        """
        Initialize the log viewer table

        Args:
            max_rows: Largest number of rows kept in the table at once
        """
        super().__init__(**kwargs)
        self.max_rows = max_rows
        self.seqs: List[int] = []

    def on_mount(self) -> None:
        """Initialize table columns when mounted"""
        self.cursor_type = "row"
        self.zebra_stripes = True

        self.add_columns(
            "",            # Mark / critical
            "#",           # Sequence number
            "Source",      # Originating file or stream
            "Message"      # Styled line text
        )

    def _format_line(self, store: LogStore, line: Line, marked: bool) -> tuple:
        classification = store.classification(line.seq)
        source = line.source
        if len(source) > 20:
            source = "..." + source[-17:]
        return (
            render_marker(classification, marked),
            str(line.seq),
            source,
            render_line_text(line.text, classification),
        )

    def add_lines(self, store: LogStore, seqs: Iterable[int], marking=None) -> None:
        """Append rows for lines, dropping the oldest rows past max_rows"""
        for seq in seqs:
            try:
                line = store.get(seq)
            except IndexError:
                continue  # evicted since the visibility pass
            marked = marking.is_marked(seq) if marking else False
            self.add_row(*self._format_line(store, line, marked), key=str(seq))
            self.seqs.append(seq)

        overflow = len(self.seqs) - self.max_rows
        if overflow > 0:
            for seq in self.seqs[:overflow]:
                self.remove_row(str(seq))
            del self.seqs[:overflow]

    def drop_below(self, first_seq: int) -> None:
        """Remove rows of lines that left the store"""
        cut = bisect.bisect_left(self.seqs, first_seq)
        if cut == len(self.seqs):
            self.clear()
        else:
            for seq in self.seqs[:cut]:
                self.remove_row(str(seq))
        del self.seqs[:cut]

    def show_lines(self, store: LogStore, seqs: List[int], marking=None) -> None:
        """Replace all rows with the given lines"""
        self.clear()
        self.seqs = []
        self.add_lines(store, seqs, marking)

    def refresh_line(self, store: LogStore, seq: int, marking=None) -> None:
        """Re-render one row, e.g. after toggling its mark"""
        if not self.contains(seq):
            return
        try:
            line = store.get(seq)
        except IndexError:
            return
        marked = marking.is_marked(seq) if marking else False
        values = self._format_line(store, line, marked)
        for column, value in zip(self.columns, values):
            self.update_cell(str(seq), column, value)

    def selected_seq(self) -> Optional[int]:
        """Sequence number of the row under the cursor"""
        if self.row_count == 0:
            return None
        row_key = self.coordinate_to_cell_key(self.cursor_coordinate).row_key
        return int(row_key.value)

    def contains(self, seq: int) -> bool:
        return str(seq) in self.rows

    def jump_to_seq(self, seq: int) -> bool:
        """Move the cursor to a line; False if it is not in the table"""
        if not self.contains(seq):
            return False
        index = self.get_row_index(str(seq))
        self.move_cursor(row=index)
        return True

    def jump_to_top(self) -> None:
        """Jump to the first row"""
        if self.row_count > 0:
            self.move_cursor(row=0)

    def jump_to_bottom(self) -> None:
        """Jump to the last row"""
        if self.row_count > 0:
            self.move_cursor(row=self.row_count - 1)
