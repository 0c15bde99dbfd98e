"""
Aliyun OSS object client implementation

This module provides an object client for Aliyun Object Storage Service.
Uses the oss2 SDK; unlike S3 the object size does not have to be known before
a write, the SDK streams bodies of unknown length with chunked transfer encoding.
"""

import datetime
import logging
from typing import Any

import oss2
from oss2.exceptions import NotFound

from ..config import ResolvedOSSConfig, resolveOSSConfig
from ..context import OperationContext
from ..exceptions import StorageBackendError, StorageError, StorageNotFoundError, StoragePartialBatchError
from ..models import ObjectInfo, ObjectItem, OSSConfig, WriteOptions
from ..timeout_reader import Readable, TimeoutReader
from ..utils import LIST_PAGE_SIZE, REMOVE_BATCH_SIZE, batched, lowerMetadata, stripMetadataPrefix
from .abstract import AbstractObjectClient

logger = logging.getLogger(__name__)

OSS_META_PREFIX = "x-oss-meta-"


def fromTimestamp(timestamp: int) -> datetime.datetime:
    """Convert epoch seconds returned by oss2 into an aware UTC datetime."""
    return datetime.datetime.fromtimestamp(int(timestamp), tz=datetime.timezone.utc)


def closeResult(result: Any) -> None:
    result.close()


class OSSObjectClient(AbstractObjectClient):
    """
    Aliyun OSS object client using oss2.

    Features:
    - Endpoint derived from the region when not configured
    - Writes of unknown size (the body is handed over without seek/tell)
    - Metadata sent and received as x-oss-meta-* headers, exposed with the prefix
      stripped and lower-cased keys
    - Transparent listing pagination and batched removal

    Args:
        config: Raw OSS configuration, validated before the oss2 bucket is created
        **kwargs: Passed to AbstractObjectClient (defaultTimeout, maxWorkers, watchdogInterval)

    Raises:
        StorageConfigError: If the configuration is invalid
        StorageBackendError: If the oss2 bucket handle cannot be created
    """

    def __init__(self, config: OSSConfig, **kwargs: Any):
        self.config: ResolvedOSSConfig = resolveOSSConfig(config)

        try:
            auth = oss2.Auth(self.config.keyId, self.config.key)
            self.bucket = oss2.Bucket(auth, self.config.endpointUrl, self.config.bucket)
        except Exception as e:
            raise StorageBackendError(f"Failed to initialize OSS client: {e}", originalError=e)

        super().__init__(**kwargs)
        logger.info(
            f"Initialized OSSObjectClient with endpoint: {self.config.endpointUrl}, "
            f"bucket: {self.config.bucket}, dood!"
        )

    def _wrapError(self, e: Exception, operation: str, key: str) -> StorageError:
        if isinstance(e, NotFound):
            return StorageNotFoundError(f"Object '{key}' not found in OSS bucket '{self.config.bucket}'", key=key)
        return StorageBackendError(
            f"Failed to {operation} object with key '{key}' in OSS: {e}",
            originalError=e,
            operation=operation,
            key=key,
        )

    def read(self, ctx: OperationContext, key: str) -> TimeoutReader:
        readCtx = ctx.withCancel()
        try:
            result = self._callReleasing(readCtx, closeResult, self.bucket.get_object, key)
        except Exception as e:
            readCtx.cancel()
            if isinstance(e, StorageError):
                raise
            raise self._wrapError(e, "read", key) from e

        readCtx.addCallback(result.close)
        logger.debug(f"Opened object with key: {key}, dood!")
        return self._newTimeoutReader(result, result, readCtx)

    def write(
        self,
        ctx: OperationContext,
        key: str,
        stream: Readable | bytes,
        options: WriteOptions | None = None,
    ) -> None:
        """
        Upload stream to OSS, the size option is not required.

        The stream is wrapped in a TimeoutReader which exposes no seek/tell, so oss2
        uploads it with chunked transfer instead of measuring its length.
        """
        headers: dict[str, str] = {}
        if options is not None:
            for name, value in lowerMetadata(options.metadata).items():
                headers[f"{OSS_META_PREFIX}{name}"] = value

        writeCtx = ctx.withCancel()
        reader = self._newTimeoutReader(self._asStream(stream), None, writeCtx)
        try:
            self._call(writeCtx, self.bucket.put_object, key, reader, headers=headers or None)
        except StorageError:
            raise
        except Exception as e:
            raise self._wrapError(e, "write", key) from e
        finally:
            reader.close()

        logger.debug(f"Stored object with key: {key}, dood!")

    def exist(self, ctx: OperationContext, key: str) -> bool:
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            try:
                return self._call(callCtx, self.bucket.object_exists, key)
            except StorageError:
                raise
            except Exception as e:
                raise self._wrapError(e, "check existence of", key) from e

    def remove(self, ctx: OperationContext, *keys: str) -> None:
        """
        Remove objects with batch delete requests of up to 1000 keys each.

        OSS acknowledges every deleted key (missing keys included), any key which is
        not acknowledged is reported as failed.
        """
        if not keys:
            return

        firstError: StoragePartialBatchError | None = None
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            for batch in batched(keys, REMOVE_BATCH_SIZE):
                try:
                    result = self._call(callCtx, self.bucket.batch_delete_objects, batch)
                except StorageError:
                    raise
                except Exception as e:
                    if firstError is None:
                        firstError = StoragePartialBatchError(
                            f"Failed to remove {batch[0]}: {e}", originalError=e, operation="remove", key=batch[0]
                        )
                    continue

                deleted = set(result.deleted_keys)
                for key in batch:
                    if key in deleted:
                        continue
                    logger.warning(f"Failed to remove {key}: not acknowledged by OSS, dood!")
                    if firstError is None:
                        firstError = StoragePartialBatchError(
                            f"Failed to remove {key}: deletion was not acknowledged by OSS",
                            operation="remove",
                            key=key,
                        )

        if firstError is not None:
            raise firstError
        logger.debug(f"Removed {len(keys)} objects, dood!")

    def info(self, ctx: OperationContext, key: str) -> ObjectInfo:
        """Stat object with a HEAD request, user metadata comes from x-oss-meta-* headers."""
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            try:
                result = self._call(callCtx, self.bucket.head_object, key)
            except StorageError:
                raise
            except Exception as e:
                raise self._wrapError(e, "stat", key) from e

        return ObjectInfo(
            size=int(result.content_length),
            lastModified=fromTimestamp(result.last_modified),
            metadata=stripMetadataPrefix(dict(result.headers), OSS_META_PREFIX),
        )

    def copy(self, ctx: OperationContext, src: str, dst: str) -> None:
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            try:
                self._call(callCtx, self.bucket.copy_object, self.config.bucket, src, dst)
            except StorageError:
                raise
            except Exception as e:
                raise self._wrapError(e, "copy", src) from e

        logger.debug(f"Copied object {src} to {dst}, dood!")

    def list(self, ctx: OperationContext, prefix: str = "") -> list[ObjectItem]:
        """List objects with ListObjectsV2, following continuation tokens, no delimiter."""
        items: list[ObjectItem] = []
        token = ""

        while True:
            try:
                result = self._call(
                    ctx,
                    self.bucket.list_objects_v2,
                    prefix=prefix,
                    continuation_token=token,
                    max_keys=LIST_PAGE_SIZE,
                )
            except StorageError:
                raise
            except Exception as e:
                raise StorageBackendError(
                    f"Failed to list objects with prefix '{prefix}' in OSS: {e}",
                    originalError=e,
                    operation="list",
                    key=prefix,
                ) from e

            for obj in result.object_list:
                items.append(ObjectItem(key=obj.key, size=int(obj.size), lastModified=fromTimestamp(obj.last_modified)))

            if not result.is_truncated:
                break
            token = result.next_continuation_token

        logger.debug(f"Listed {len(items)} objects with prefix: '{prefix}', dood!")
        return items
