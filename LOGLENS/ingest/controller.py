"""
Ingestion Controller Module - Read sources concurrently into the log store

Handles:
- One daemon reader thread per source
- Line assembly from raw byte chunks
- Per-source state tracking and error reporting
- Optional raw mirroring of stream input to a save file
"""
import logging
from threading import Lock, Thread
from typing import Callable, Dict, List, Optional

from LOGLENS.store.log_store import LogStore

from .save_mirror import SaveMirror
from .sources import LineAssembler, SourceState


class IngestionController:
    """Owns the ingestion sources and their reader threads"""

    def __init__(self, store: LogStore, save_path=None,
                 on_error: Optional[Callable[[str, str], None]] = None):
        """
        Initialize the ingestion controller

        Args:
            store: LogStore receiving the assembled lines
            save_path: Optional file mirroring the raw bytes of stream sources
            on_error: Called with (source name, message) when a source or the
                save file fails
        """
        self.store = store
        self.on_error = on_error
        self.logger = logging.getLogger(__name__)

        self.sources: Dict[str, object] = {}
        self.states: Dict[str, SourceState] = {}
        self.errors: Dict[str, str] = {}
        self.mirror = SaveMirror(save_path, on_error=self._mirror_failed) if save_path else None

        self._threads: List[Thread] = []
        self._lock = Lock()

    def add_source(self, source) -> None:
        """
        Register a source; it is read once start() or ingest() runs

        Raises:
            ValueError: If a source with the same name is already registered
        """
        with self._lock:
            if source.name in self.sources:
                raise ValueError(f"source {source.name!r} already added")
            self.sources[source.name] = source
            self.states[source.name] = SourceState.IDLE

    def state(self, name: str) -> SourceState:
        with self._lock:
            return self.states[name]

    def _set_state(self, name: str, state: SourceState) -> None:
        with self._lock:
            self.states[name] = state

    def ingest(self, source) -> SourceState:
        """
        Read a source to completion on the calling thread

        Returns:
            The final state of the source (EOF or ERROR)
        """
        if source.name not in self.sources:
            self.add_source(source)

        mirrored = self.mirror is not None and source.mirrored
        if mirrored:
            self.mirror.start()

        self._set_state(source.name, SourceState.READING)
        try:
            source.open()
        except OSError as e:
            source.close()
            return self._source_failed(source, e)

        self.logger.info(f"Reading {source.kind.value} source {source.name}")
        assembler = LineAssembler()
        total = 0
        try:
            while True:
                chunk = source.read_chunk()
                if not chunk:
                    break
                if mirrored:
                    self.mirror.write(chunk)
                lines = assembler.feed(chunk)
                if lines:
                    self.store.extend(lines, source.name)
                    total += len(lines)

            tail = assembler.flush()
            if tail is not None:
                self.store.append(tail, source.name)
                total += 1
        except OSError as e:
            return self._source_failed(source, e)
        except Exception as e:
            self.logger.exception(f"Unexpected error reading {source.name}")
            return self._source_failed(source, e)
        finally:
            source.close()

        self._set_state(source.name, SourceState.EOF)
        self.logger.info(f"Finished {source.name}: {total} line(s)")
        return SourceState.EOF

    def _source_failed(self, source, error: Exception) -> SourceState:
        message = str(error)
        with self._lock:
            self.states[source.name] = SourceState.ERROR
            self.errors[source.name] = message
        self.logger.error(f"Source {source.name} failed: {message}")
        if self.on_error:
            self.on_error(source.name, message)
        return SourceState.ERROR

    def _mirror_failed(self, message: str) -> None:
        if self.on_error:
            self.on_error(str(self.mirror.path), message)

    def start(self) -> None:
        """Start a reader thread for every source that has not been read yet"""
        with self._lock:
            pending = [s for name, s in self.sources.items() if self.states[name] is SourceState.IDLE]
            # Marked before the threads exist; a repeated start() skips them
            for source in pending:
                self.states[source.name] = SourceState.READING

        for source in pending:
            thread = Thread(target=self.ingest, args=(source,), daemon=True,
                            name=f"ingest-{source.name}")
            thread.start()
            self._threads.append(thread)
        self.logger.info(f"Started {len(pending)} ingestion thread(s)")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the reader threads to finish

        Returns:
            True if every reader thread has finished
        """
        for thread in self._threads:
            thread.join(timeout=timeout)
        return not self.is_running

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def stop(self, timeout: float = 2.0) -> None:
        """Ask every source to finish, then stop the save mirror"""
        for source in list(self.sources.values()):
            source.stop()

        # A stream blocked in read() cannot be interrupted; its daemon thread
        # ends with the process
        for thread in self._threads:
            thread.join(timeout=timeout)
            if thread.is_alive():
                self.logger.warning(f"{thread.name} did not terminate gracefully.")

        if self.mirror:
            self.mirror.stop()
        self.logger.info("Ingestion stopped")
