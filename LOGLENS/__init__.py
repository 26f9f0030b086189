"""
LOGLENS - Interactive terminal log viewer

Core pipeline: ingestion sources feed a shared LogStore; a compiled RuleSet
classifies every line for highlighting, events and filtering; the search
engine and the event timeline read from the store.
"""

__version__ = "0.1.0"
