"""
Log Sources Module - Byte sources feeding the ingestion controller

Every source implements the same small read contract:
- open(): acquire the underlying resource (raises OSError on failure)
- read_chunk(): next bytes, b"" once the source is finished
- stop(): ask a blocked or endless source to finish (any thread)
- close(): release the resource (reading thread)

Variants:
- FileSource: static file, finished at EOF
- StreamSource: live stream such as piped stdin, finished when the stream closes
- FollowedFileSource: growing file tailed with watchdog, finished only when stopped
"""
import logging
import os
from enum import Enum
from pathlib import Path
from threading import Event
from typing import BinaryIO, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer


class SourceState(Enum):
    IDLE = "idle"
    READING = "reading"
    EOF = "eof"
    ERROR = "error"


class SourceKind(Enum):
    FILE = "file"
    STREAM = "stream"
    FOLLOW = "follow"


DEFAULT_CHUNK_SIZE = 64 * 1024


class FileSource:
    """Static log file read to EOF"""

    kind = SourceKind.FILE
    mirrored = False

    def __init__(self, path, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.path = Path(path)
        self.name = str(path)
        self.chunk_size = chunk_size
        self._file: Optional[BinaryIO] = None
        self._stopped = Event()

    def open(self) -> None:
        self._file = open(self.path, 'rb')

    def read_chunk(self) -> bytes:
        if self._stopped.is_set():
            return b""
        return self._file.read(self.chunk_size)

    def stop(self) -> None:
        self._stopped.set()

    def close(self) -> None:
        if self._file:
            self._file.close()
            self._file = None


class StreamSource:
    """Live byte stream; reads block until data arrives or the stream closes"""

    kind = SourceKind.STREAM
    mirrored = True

    def __init__(self, stream: BinaryIO, name: str = "<stdin>", chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.stream = stream
        self.name = name
        self.chunk_size = chunk_size
        self._stopped = Event()

    def open(self) -> None:
        pass

    def read_chunk(self) -> bytes:
        if self._stopped.is_set():
            return b""
        # read1 returns as soon as some bytes are available instead of
        # waiting for a full chunk
        read = getattr(self.stream, 'read1', None) or self.stream.read
        return read(self.chunk_size)

    def stop(self) -> None:
        self._stopped.set()

    def close(self) -> None:
        self.stream.close()


class FileChangeHandler(FileSystemEventHandler):
    """Watchdog handler signalling changes to one file inside a watched directory"""

    def __init__(self, path: Path, callback):
        super().__init__()
        self.path = os.path.abspath(path)
        self.callback = callback

    def _process_event(self, event):
        if not event.is_directory and os.path.abspath(event.src_path) == self.path:
            self.callback()

    def on_created(self, event):
        self._process_event(event)

    def on_modified(self, event):
        self._process_event(event)


class FollowedFileSource(FileSource):
    """
    Growing log file, tailed like `tail -f`

    At EOF the reader waits for a watchdog modification event (with a polling
    fallback) instead of finishing. A file that shrinks is treated as
    truncated and re-read from the start.
    """

    kind = SourceKind.FOLLOW

    def __init__(self, path, chunk_size: int = DEFAULT_CHUNK_SIZE, poll_interval: float = 1.0):
        super().__init__(path, chunk_size)
        self.poll_interval = poll_interval
        self.logger = logging.getLogger(__name__)
        self._changed = Event()
        self._observer: Optional[Observer] = None

    def open(self) -> None:
        super().open()
        self._observer = Observer()
        handler = FileChangeHandler(self.path, self._changed.set)
        self._observer.schedule(handler, str(self.path.parent.resolve()), recursive=False)
        self._observer.start()

    def read_chunk(self) -> bytes:
        while not self._stopped.is_set():
            chunk = self._file.read(self.chunk_size)
            if chunk:
                return chunk

            if self._truncated():
                self.logger.info(f"{self.path} was truncated, reading from the start")
                self._file.seek(0)
                continue

            self._changed.wait(self.poll_interval)
            self._changed.clear()
        return b""

    def _truncated(self) -> bool:
        try:
            return self.path.stat().st_size < self._file.tell()
        except FileNotFoundError:
            return False

    def stop(self) -> None:
        super().stop()
        self._changed.set()

    def close(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=2.0)
            self._observer = None
        super().close()


class LineAssembler:
    """
    Split byte chunks into text lines

    Unterminated trailing bytes are kept until the next chunk. Lines are
    decoded as UTF-8 with replacement characters, so malformed input is kept
    as literal text instead of failing.
    """

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding
        self._partial = b""

    def feed(self, chunk: bytes) -> List[str]:
        parts = (self._partial + chunk).split(b"\n")
        self._partial = parts.pop()
        return [self._decode(part) for part in parts]

    def flush(self) -> Optional[str]:
        """Return the buffered unterminated line, if any"""
        if not self._partial:
            return None
        line = self._decode(self._partial)
        self._partial = b""
        return line

    @property
    def pending(self) -> bytes:
        return self._partial

    def _decode(self, raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        return raw.decode(self.encoding, errors='replace')
