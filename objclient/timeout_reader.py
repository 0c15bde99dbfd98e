"""
Stall-watchdog stream reader

TimeoutReader wraps a readable byte stream and cancels the operation context
associated with it when nothing has been read for a whole watchdog interval.
Both the read path (the caller drains the stream) and the write path (the SDK
drains the caller's stream) go through it, so a stalled transfer or an abandoned
stream is torn down instead of holding a connection forever.
"""

import io
import logging
import threading
from typing import Any, Protocol

from .context import OperationContext

logger = logging.getLogger(__name__)

# Seconds without any read after which the transfer is considered stalled
WATCHDOG_INTERVAL = 30.0


class Readable(Protocol):
    def read(self, size: int = ..., /) -> bytes: ...


class Closeable(Protocol):
    def close(self) -> Any: ...


class TimeoutReader:
    """
    Readable stream which cancels its context when reading stalls.

    Only read/readable/close are exposed: SDKs which check for seek/tell to discover a
    body size fall back to streaming (chunked) uploads with it. See
    SeekableTimeoutReader for SDKs which have to rewind the body.

    Caller must close the reader after reading, otherwise the watchdog thread keeps
    running until it detects the stall and the underlying connection stays open
    until then.

    Args:
        reader: Wrapped byte stream
        closer: Optional resource released on close (often the reader itself)
        ctx: Context cancelled on stall and on close
        interval: Watchdog interval in seconds

    Example:
        >>> with client.read(ctx, "some/key") as reader:
        ...     data = reader.read()
    """

    def __init__(
        self,
        reader: Readable,
        closer: Closeable | None,
        ctx: OperationContext,
        interval: float = WATCHDOG_INTERVAL,
    ):
        self._reader = reader
        self._closer = closer
        self._ctx = ctx
        self._interval = interval
        self._readBytes = 0
        self._counterLock = threading.Lock()
        self._closed = threading.Event()
        self._watchdog = threading.Thread(target=self._watch, name="objclient-watchdog", daemon=True)
        self._watchdog.start()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def readable(self) -> bool:
        return True

    def read(self, size: int | None = -1) -> bytes:
        """
        Read up to size bytes, or everything left when size is negative or None.

        Errors and EOF of the wrapped stream pass through, unless the context was
        cancelled: then StorageCanceledError is raised so that an aborted transfer
        never looks like a complete one.

        Raises:
            ValueError: If the reader is closed
            StorageCanceledError: If the context was cancelled
        """
        if self._closed.is_set():
            raise ValueError("I/O operation on closed TimeoutReader")
        self._ctx.raiseIfCancelled()

        try:
            if size is None or size < 0:
                data = self._reader.read()
            else:
                data = self._reader.read(size)
        except Exception as e:
            err = self._ctx.err()
            if err is not None:
                raise err from e
            raise

        if not data:
            self._ctx.raiseIfCancelled()
            return b""

        with self._counterLock:
            self._readBytes += len(data)
        return data

    def close(self) -> None:
        """Close the reader, cancel its context and release the auxiliary resource. Idempotent."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._ctx.cancel()
        if self._closer is not None:
            self._closer.close()

    def _watch(self) -> None:
        while not self._closed.wait(self._interval):
            with self._counterLock:
                readBytes = self._readBytes
                self._readBytes = 0

            if readBytes == 0:
                logger.warning(f"No data read for {self._interval} seconds, canceling the transfer, dood!")
                self._ctx.cancel()
                return

    def __enter__(self) -> "TimeoutReader":
        return self

    def __exit__(self, excType, excValue, traceback) -> None:
        self.close()


class Seekable(Readable, Protocol):
    def seek(self, offset: int, whence: int = ..., /) -> int: ...

    def tell(self) -> int: ...


def isSeekable(stream: Any) -> bool:
    """
    Check if a stream supports random access.

    Streams with a seekable() method are trusted, others must at least have seek and tell.
    """
    seekable = getattr(stream, "seekable", None)
    if callable(seekable):
        try:
            return bool(seekable())
        except (OSError, ValueError):
            return False
    return hasattr(stream, "seek") and hasattr(stream, "tell")


class SeekableTimeoutReader(TimeoutReader):
    """
    TimeoutReader which passes seek/tell through to a seekable stream.

    Used for uploads whose SDK has to hash or checksum the body before sending it,
    which means reading it once and rewinding. Rewinding does not reset the stall
    watchdog, only reads do.
    """

    def __init__(
        self,
        reader: Seekable,
        closer: Closeable | None,
        ctx: OperationContext,
        interval: float = WATCHDOG_INTERVAL,
    ):
        super().__init__(reader, closer, ctx, interval=interval)
        self._seekableReader = reader

    def seekable(self) -> bool:
        return True

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if self._closed.is_set():
            raise ValueError("I/O operation on closed TimeoutReader")
        return self._seekableReader.seek(offset, whence)

    def tell(self) -> int:
        if self._closed.is_set():
            raise ValueError("I/O operation on closed TimeoutReader")
        return self._seekableReader.tell()
