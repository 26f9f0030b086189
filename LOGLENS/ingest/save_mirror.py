"""
Save Mirror Module - Copy raw stream bytes to a file on disk

Handles:
- Background writer thread fed through a queue
- Append-mode save file, created if absent
- Reporting a write failure once without interrupting ingestion
"""
import logging
from pathlib import Path
from queue import Empty, Queue
from threading import Lock, Thread
from typing import Callable, Optional


class SaveMirror:
    """Queue-fed writer appending raw bytes to a save file"""

    def __init__(self, path, on_error: Optional[Callable[[str], None]] = None):
        """
        Initialize the save mirror

        Args:
            path: Save file path (appended to, created if absent)
            on_error: Called once with the error message if writing fails
        """
        self.path = Path(path)
        self.on_error = on_error
        self.error: Optional[str] = None
        self.bytes_written = 0
        self.logger = logging.getLogger(__name__)

        self._queue: Queue = Queue()
        self._writer_thread: Optional[Thread] = None
        self._lock = Lock()

    @property
    def is_running(self) -> bool:
        return self._writer_thread is not None and self._writer_thread.is_alive()

    def start(self) -> None:
        """Start the writer thread; calling it again is a no-op"""
        with self._lock:
            if self._writer_thread is not None:
                return
            self._writer_thread = Thread(target=self._writer_loop, daemon=True, name="save-mirror")
            self._writer_thread.start()

    def write(self, chunk: bytes) -> None:
        """Queue bytes for the save file; dropped once the mirror has failed"""
        if self.error is None and chunk:
            self._queue.put(chunk)

    def stop(self, timeout: float = 2.0) -> None:
        """Flush queued bytes and stop the writer thread"""
        with self._lock:
            thread = self._writer_thread
        if thread is None:
            return
        self._queue.put(None)
        thread.join(timeout=timeout)
        if thread.is_alive():
            self.logger.warning("Save mirror thread did not terminate gracefully.")

    def _writer_loop(self) -> None:
        try:
            save_file = open(self.path, 'ab')
        except OSError as e:
            self._fail(e)
            return

        with save_file:
            while True:
                chunk = self._queue.get()
                if chunk is None:
                    break
                try:
                    save_file.write(chunk)
                    save_file.flush()
                except OSError as e:
                    self._fail(e)
                    return
                self.bytes_written += len(chunk)

    def _fail(self, error: OSError) -> None:
        self.error = str(error)
        self.logger.warning(f"Could not write save file {self.path}: {error}. Continuing without saving.")

        # Nothing more will be written; release what is still queued
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                break

        if self.on_error:
            self.on_error(self.error)
