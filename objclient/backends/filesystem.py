"""
Filesystem object client implementation

This module provides an object client that stores objects as files in a local
directory, with atomic writes and the same error contract as the remote backends.
Useful for development and for tests which must not touch the network.
"""

import datetime
import json
import logging
import os
import shutil
import uuid
from pathlib import Path
from typing import Any

from ..config import ResolvedFSConfig, resolveFSConfig
from ..context import OperationContext
from ..exceptions import StorageBackendError, StorageError, StorageNotFoundError, StoragePartialBatchError
from ..models import FSConfig, ObjectInfo, ObjectItem, WriteOptions
from ..timeout_reader import Readable, TimeoutReader
from ..utils import lowerMetadata, validateKey
from .abstract import AbstractObjectClient

logger = logging.getLogger(__name__)

# Chunk size used when copying a stream into a file
COPY_CHUNK_SIZE = 64 * 1024


class FSObjectClient(AbstractObjectClient):
    """
    Filesystem-based object client.

    Directory layout under baseDir:
    - objects/<key>: object content, "/" in keys maps onto subdirectories
    - metadata/<key>.json: user metadata of the object, if any
    - tmp/: files being written, moved into objects/ only when complete

    Features:
    - Automatic directory creation if baseDir doesn't exist
    - Atomic writes: temporary file first, then rename into place
    - File permissions set to 0o644 (readable by all, writable by owner)
    - Size check: a write whose stream length differs from options.size fails
      and leaves nothing behind

    A key cannot be both an object and a "directory" of other objects (e.g. "a" and
    "a/b"), such writes fail with StorageBackendError.

    Args:
        config: Filesystem configuration
        **kwargs: Passed to AbstractObjectClient (defaultTimeout, maxWorkers, watchdogInterval)

    Raises:
        StorageConfigError: If base directory is not specified
        StorageBackendError: If baseDir cannot be created or accessed

    Example:
        >>> client = FSObjectClient(FSConfig(baseDir="/tmp/storage"))
        >>> ctx = OperationContext.background()
        >>> client.write(ctx, "a/b", b"demo")
        >>> client.exist(ctx, "a/b")
        True
    """

    def __init__(self, config: FSConfig, **kwargs: Any):
        self.config: ResolvedFSConfig = resolveFSConfig(config)
        self.baseDir = Path(self.config.baseDir)
        self.objectsDir = self.baseDir / "objects"
        self.metadataDir = self.baseDir / "metadata"
        self.tmpDir = self.baseDir / "tmp"

        try:
            for directory in (self.objectsDir, self.metadataDir, self.tmpDir):
                directory.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            raise StorageBackendError(f"Failed to create base directory '{self.baseDir}': {e}", originalError=e)

        if not self.baseDir.is_dir():
            raise StorageBackendError(f"Base path '{self.baseDir}' exists but is not a directory")

        super().__init__(**kwargs)
        logger.info(f"Initialized FSObjectClient with base-dir: {self.baseDir}, dood!")

    def _getObjectPath(self, key: str) -> Path:
        """
        Get the content file path for a key.

        Raises:
            StorageKeyError: If the key is invalid
        """
        return self.objectsDir.joinpath(*validateKey(key))

    def _getMetadataPath(self, key: str) -> Path:
        segments = validateKey(key)
        return self.metadataDir.joinpath(*segments[:-1], f"{segments[-1]}.json")

    def _newTempPath(self) -> Path:
        return self.tmpDir / f"{uuid.uuid4().hex}.tmp"

    def _wrapError(self, e: Exception, operation: str, key: str) -> StorageError:
        if isinstance(e, (FileNotFoundError, IsADirectoryError, NotADirectoryError)):
            return StorageNotFoundError(f"Object '{key}' not found in '{self.baseDir}'", key=key)
        return StorageBackendError(
            f"Failed to {operation} object with key '{key}': {e}",
            originalError=e,
            operation=operation,
            key=key,
        )

    def _readMetadata(self, key: str) -> dict[str, str]:
        metadataPath = self._getMetadataPath(key)
        try:
            with open(metadataPath, "rt", encoding="utf-8") as f:
                return lowerMetadata(json.load(f))
        except FileNotFoundError:
            return {}

    def _writeMetadata(self, key: str, metadata: dict[str, str]) -> None:
        metadataPath = self._getMetadataPath(key)
        if not metadata:
            metadataPath.unlink(missing_ok=True)
            return

        metadataPath.parent.mkdir(parents=True, exist_ok=True)
        tempPath = self._newTempPath()
        try:
            with open(tempPath, "wt", encoding="utf-8") as f:
                json.dump(metadata, f, ensure_ascii=False, sort_keys=True)
            tempPath.replace(metadataPath)
        finally:
            tempPath.unlink(missing_ok=True)

    def _pruneEmptyDirs(self, path: Path, root: Path) -> None:
        """Remove empty parent directories of path up to (not including) root."""
        parent = path.parent
        while parent != root and root in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                return
            parent = parent.parent

    def read(self, ctx: OperationContext, key: str) -> TimeoutReader:
        filePath = self._getObjectPath(key)
        ctx.raiseIfCancelled()

        readCtx = ctx.withCancel()
        try:
            f = open(filePath, "rb")
        except Exception as e:
            readCtx.cancel()
            raise self._wrapError(e, "read", key) from e

        readCtx.addCallback(f.close)
        return self._newTimeoutReader(f, f, readCtx)

    def _storeFile(self, key: str, reader: TimeoutReader, options: WriteOptions) -> int:
        filePath = self._getObjectPath(key)
        tempPath = self._newTempPath()
        written = 0

        try:
            # Write to temporary file first
            with open(tempPath, "wb") as f:
                while True:
                    chunk = reader.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
                    written += len(chunk)

            if options.size > 0 and written != options.size:
                raise StorageBackendError(
                    f"Size mismatch for key '{key}': expected {options.size} bytes, got {written}",
                    operation="write",
                    key=key,
                )

            os.chmod(tempPath, 0o644)
            filePath.parent.mkdir(parents=True, exist_ok=True)

            # Atomic rename to target file, metadata follows the content
            tempPath.replace(filePath)
            self._writeMetadata(key, lowerMetadata(options.metadata))
        finally:
            # Clean up temporary file if it is still there
            tempPath.unlink(missing_ok=True)

        return written

    def write(
        self,
        ctx: OperationContext,
        key: str,
        stream: Readable | bytes,
        options: WriteOptions | None = None,
    ) -> None:
        self._getObjectPath(key)
        options = options or WriteOptions()

        writeCtx = ctx.withCancel()
        reader = self._newTimeoutReader(self._asStream(stream), None, writeCtx)
        try:
            written = self._call(writeCtx, self._storeFile, key, reader, options)
        except StorageError:
            raise
        except Exception as e:
            raise StorageBackendError(
                f"Failed to store object with key '{key}': {e}", originalError=e, operation="write", key=key
            ) from e
        finally:
            reader.close()

        logger.debug(f"Stored object with key: {key}, size: {written}, dood!")

    def exist(self, ctx: OperationContext, key: str) -> bool:
        filePath = self._getObjectPath(key)
        ctx.raiseIfCancelled()
        try:
            return filePath.is_file()
        except Exception as e:
            raise self._wrapError(e, "check existence of", key) from e

    def remove(self, ctx: OperationContext, *keys: str) -> None:
        """Remove objects one by one, missing objects are not an error."""
        if not keys:
            return

        firstError: StoragePartialBatchError | None = None
        for key in keys:
            ctx.raiseIfCancelled()
            try:
                filePath = self._getObjectPath(key)
                filePath.unlink(missing_ok=True)
                self._getMetadataPath(key).unlink(missing_ok=True)
                self._pruneEmptyDirs(filePath, self.objectsDir)
                self._pruneEmptyDirs(self._getMetadataPath(key), self.metadataDir)
            except Exception as e:
                logger.warning(f"Failed to remove {key}: {e}, dood!")
                if firstError is None:
                    firstError = StoragePartialBatchError(
                        f"Failed to remove {key}: {e}", originalError=e, operation="remove", key=key
                    )

        if firstError is not None:
            raise firstError
        logger.debug(f"Removed {len(keys)} objects, dood!")

    def info(self, ctx: OperationContext, key: str) -> ObjectInfo:
        filePath = self._getObjectPath(key)
        ctx.raiseIfCancelled()
        try:
            if not filePath.is_file():
                raise FileNotFoundError(str(filePath))
            stat = filePath.stat()
            metadata = self._readMetadata(key)
        except Exception as e:
            raise self._wrapError(e, "stat", key) from e

        return ObjectInfo(
            size=stat.st_size,
            lastModified=datetime.datetime.fromtimestamp(stat.st_mtime, tz=datetime.timezone.utc),
            metadata=metadata,
        )

    def copy(self, ctx: OperationContext, src: str, dst: str) -> None:
        srcPath = self._getObjectPath(src)
        dstPath = self._getObjectPath(dst)
        ctx.raiseIfCancelled()

        if not srcPath.is_file():
            raise StorageNotFoundError(f"Object '{src}' not found in '{self.baseDir}'", key=src)

        tempPath = self._newTempPath()
        try:
            try:
                shutil.copyfile(srcPath, tempPath)
                metadata = self._readMetadata(src)
            except Exception as e:
                raise self._wrapError(e, "copy", src) from e

            try:
                os.chmod(tempPath, 0o644)
                dstPath.parent.mkdir(parents=True, exist_ok=True)
                tempPath.replace(dstPath)
                self._writeMetadata(dst, metadata)
            except Exception as e:
                raise StorageBackendError(
                    f"Failed to copy object '{src}' to '{dst}': {e}", originalError=e, operation="copy", key=dst
                ) from e
        finally:
            tempPath.unlink(missing_ok=True)

        logger.debug(f"Copied object {src} to {dst}, dood!")

    def list(self, ctx: OperationContext, prefix: str = "") -> list[ObjectItem]:
        """
        List files under objects/ whose key starts with the prefix.

        Keys are returned in lexicographic order, like S3 does.
        """
        items: list[ObjectItem] = []
        try:
            for root, _, files in os.walk(self.objectsDir):
                ctx.raiseIfCancelled()
                rootPath = Path(root)
                for name in files:
                    filePath = rootPath / name
                    key = filePath.relative_to(self.objectsDir).as_posix()
                    if not key.startswith(prefix):
                        continue
                    stat = filePath.stat()
                    items.append(
                        ObjectItem(
                            key=key,
                            size=stat.st_size,
                            lastModified=datetime.datetime.fromtimestamp(stat.st_mtime, tz=datetime.timezone.utc),
                        )
                    )
        except StorageError:
            raise
        except Exception as e:
            raise StorageBackendError(
                f"Failed to list objects with prefix '{prefix}': {e}", originalError=e, operation="list", key=prefix
            ) from e

        # Sort for consistent ordering
        items.sort(key=lambda item: item.key)
        logger.debug(f"Listed {len(items)} objects with prefix: '{prefix}', dood!")
        return items
