"""
Ingest Package - Concurrent reading of log sources into the store
"""
from .controller import IngestionController
from .save_mirror import SaveMirror
from .sources import (
    FileSource,
    FollowedFileSource,
    LineAssembler,
    SourceKind,
    SourceState,
    StreamSource,
)

__all__ = [
    'IngestionController',
    'SaveMirror',
    'FileSource',
    'FollowedFileSource',
    'LineAssembler',
    'SourceKind',
    'SourceState',
    'StreamSource',
]
