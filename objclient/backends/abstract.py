"""
Abstract object client interface

This module defines the abstract base class that all backend clients must implement.
It provides a consistent interface for object storage operations across different
providers, plus the plumbing which makes blocking SDK calls cancellable.
"""

import io
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from ..context import CANCELED_REASON, OperationContext
from ..exceptions import StorageCanceledError
from ..models import ObjectInfo, ObjectItem, WriteOptions
from ..timeout_reader import WATCHDOG_INTERVAL, Readable, SeekableTimeoutReader, TimeoutReader

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default timeout in seconds for non-streaming operations (exist, remove, info, copy)
DEFAULT_TIMEOUT = 60.0

# Default size of the worker pool running SDK calls
DEFAULT_MAX_WORKERS = 32


class AbstractObjectClient(ABC):
    """
    Abstract base class for object clients.

    All backend implementations must inherit from this class and implement all
    abstract methods. Every operation takes an OperationContext as the first
    argument and must honor its cancellation.

    A client is long-lived and safe for concurrent use from multiple threads: it
    holds only resolved configuration, the SDK handle and a worker pool, all
    per-call state lives in the call itself.

    Implementations should translate backend "not found" responses into
    StorageNotFoundError (or False for exist) and wrap every other backend error
    in StorageBackendError.

    Args:
        defaultTimeout: Timeout in seconds applied to exist, remove, info and copy
        maxWorkers: Size of the worker pool running blocking SDK calls
        watchdogInterval: Stall detection interval of read and write streams
    """

    def __init__(
        self,
        defaultTimeout: float = DEFAULT_TIMEOUT,
        maxWorkers: int = DEFAULT_MAX_WORKERS,
        watchdogInterval: float = WATCHDOG_INTERVAL,
    ):
        self.defaultTimeout = defaultTimeout
        self.watchdogInterval = watchdogInterval
        self._executor = ThreadPoolExecutor(max_workers=maxWorkers, thread_name_prefix="objclient")

    @abstractmethod
    def read(self, ctx: OperationContext, key: str) -> TimeoutReader:
        """
        Open the object for reading.

        The caller must close the returned reader when done, otherwise the watchdog
        thread and the underlying connection leak until a stall is detected.

        Args:
            ctx: Operation context
            key: Object key

        Returns:
            Readable stream positioned at the start of the object

        Raises:
            StorageNotFoundError: If the object does not exist
            StorageCanceledError: If the context was cancelled
            StorageBackendError: If the backend call fails
        """
        pass

    @abstractmethod
    def write(
        self,
        ctx: OperationContext,
        key: str,
        stream: Readable | bytes,
        options: WriteOptions | None = None,
    ) -> None:
        """
        Upload the whole stream to the key, creating or overwriting the object.

        The object becomes visible only when the write succeeds. Metadata keys are
        lower-cased before transmission.

        Args:
            ctx: Operation context
            key: Object key
            stream: Object with read(size) method, or bytes
            options: Size and metadata, the size is mandatory for some backends

        Raises:
            StorageInvalidArgumentError: If the backend needs a size and none was given
            StorageCanceledError: If the context was cancelled or the transfer stalled
            StorageBackendError: If the upload fails
        """
        pass

    @abstractmethod
    def exist(self, ctx: OperationContext, key: str) -> bool:
        """
        Check if the object exists.

        Returns:
            True if the object exists, False if the backend reports it as not found

        Raises:
            StorageCanceledError: If the context was cancelled
            StorageBackendError: If the check fails for any other reason
        """
        pass

    @abstractmethod
    def remove(self, ctx: OperationContext, *keys: str) -> None:
        """
        Remove objects, no-op for an empty key list.

        The batch is not atomic: every key is attempted and the first failure is
        reported, other keys may or may not have been removed.

        Raises:
            StoragePartialBatchError: If at least one key failed, names the first one
            StorageCanceledError: If the context was cancelled
        """
        pass

    @abstractmethod
    def list(self, ctx: OperationContext, prefix: str = "") -> list[ObjectItem]:
        """
        List all objects whose key starts with the prefix, recursively.

        An empty prefix lists the whole bucket. Pagination is handled internally,
        a failure on any page aborts the listing without partial results.

        Returns:
            Items in provider order

        Raises:
            StorageCanceledError: If the context was cancelled
            StorageBackendError: If listing fails
        """
        pass

    @abstractmethod
    def info(self, ctx: OperationContext, key: str) -> ObjectInfo:
        """
        Get object size, modification time and metadata with lower-cased keys.

        Raises:
            StorageNotFoundError: If the object does not exist
            StorageCanceledError: If the context was cancelled
            StorageBackendError: If the backend call fails
        """
        pass

    @abstractmethod
    def copy(self, ctx: OperationContext, src: str, dst: str) -> None:
        """
        Copy an object within the bucket without moving data through this process.

        Raises:
            StorageNotFoundError: If the source object does not exist
            StorageCanceledError: If the context was cancelled
            StorageBackendError: If the backend call fails
        """
        pass

    def close(self) -> None:
        """Release the worker pool. Calls which are already running are not waited for."""
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "AbstractObjectClient":
        return self

    def __exit__(self, excType, excValue, traceback) -> None:
        self.close()

    def _call(self, ctx: OperationContext, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run a blocking SDK call on the worker pool and wait for it or for cancellation.

        Exceptions raised by fn are re-raised unchanged for the caller to translate.

        Raises:
            StorageCanceledError: If the context is cancelled before fn finishes
        """
        return self._callReleasing(ctx, None, fn, *args, **kwargs)

    def _callReleasing(
        self,
        ctx: OperationContext,
        release: Callable[[T], Any] | None,
        fn: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Same as _call, for calls whose result holds a resource (e.g. a response body).

        If the context is cancelled first, the SDK call keeps running in the pool and
        release is called with its result once it arrives.

        Raises:
            StorageCanceledError: If the context is cancelled before fn finishes
        """
        ctx.raiseIfCancelled()

        finished = threading.Event()
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(lambda _: finished.set())
        removeCallback = ctx.addCallback(finished.set)
        try:
            finished.wait()
        finally:
            removeCallback()

        if future.done():
            return future.result()

        future.cancel()
        if release is not None:
            future.add_done_callback(lambda f: self._releaseLateResult(f, release))
        raise ctx.err() or StorageCanceledError(CANCELED_REASON)

    @staticmethod
    def _releaseLateResult(future: Future, release: Callable[[Any], Any]) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        try:
            release(future.result())
        except Exception as e:
            logger.warning(f"Failed to release result of an abandoned call: {e}, dood!")
        else:
            logger.debug("Released result of an abandoned call, dood!")

    def _newTimeoutReader(
        self, reader: Readable, closer: Any, ctx: OperationContext, seekable: bool = False
    ) -> TimeoutReader:
        if seekable:
            return SeekableTimeoutReader(reader, closer, ctx, interval=self.watchdogInterval)  # type: ignore[arg-type]
        return TimeoutReader(reader, closer, ctx, interval=self.watchdogInterval)

    @staticmethod
    def _asStream(stream: Readable | bytes) -> Readable:
        if isinstance(stream, (bytes, bytearray, memoryview)):
            return io.BytesIO(bytes(stream))
        return stream
