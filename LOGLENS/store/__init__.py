"""
Store Package - Shared line buffer and event index

Package Structure:
- log_store: Line records and the LogStore buffer
- event_index: Per-event occurrence log (EventIndex, Occurrence)
- listener: Mutation hooks (StoreListener)
"""
from .listener import StoreListener
from .event_index import EventIndex, Occurrence
from .log_store import Line, LogStore

__all__ = [
    'Line',
    'LogStore',
    'EventIndex',
    'Occurrence',
    'StoreListener',
]
