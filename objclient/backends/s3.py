"""
S3 object client implementation

This module provides an object client for AWS S3 and S3-compatible storage services.
Uses boto3 library for S3 operations with proper error handling.
"""

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..config import ResolvedS3Config, resolveS3Config
from ..context import OperationContext
from ..exceptions import (
    StorageBackendError,
    StorageError,
    StorageInvalidArgumentError,
    StorageNotFoundError,
    StoragePartialBatchError,
)
from ..models import ObjectInfo, ObjectItem, S3Config, WriteOptions
from ..timeout_reader import Readable, TimeoutReader, isSeekable
from ..utils import LIST_PAGE_SIZE, REMOVE_BATCH_SIZE, batched, lowerMetadata
from .abstract import AbstractObjectClient

logger = logging.getLogger(__name__)

SSEC_ALGORITHM = "AES256"

# Error codes S3 uses for missing objects, HEAD responses carry only the status code
NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def isNotFound(error: ClientError) -> bool:
    """Check if a boto3 ClientError means the object does not exist."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in NOT_FOUND_CODES or status == 404


def closeResponseBody(response: dict[str, Any]) -> None:
    response["Body"].close()


class S3ObjectClient(AbstractObjectClient):
    """
    S3-based object client using boto3.

    Works with AWS S3 and S3-compatible services (MinIO, Yandex Object Storage, etc.).

    Features:
    - Legacy or v4 signatures, path-style or virtual-hosted addressing
    - Optional SSE-C encryption attached to every read, write, stat and copy call
    - 404 errors are translated into StorageNotFoundError / False
    - Transparent listing pagination and batched removal

    The size of every write must be known up front: boto3 would otherwise have to
    buffer the whole stream to discover it.

    Args:
        config: Raw S3 configuration, validated before the boto3 client is created
        **kwargs: Passed to AbstractObjectClient (defaultTimeout, maxWorkers, watchdogInterval)

    Raises:
        StorageConfigError: If the configuration is invalid
        StorageBackendError: If boto3 client creation fails

    Example:
        >>> client = S3ObjectClient(S3Config(region="us-east-1", bucket="my-bucket",
        ...                                  keyId="AKIA...", key="...", v4Signature="true"))
        >>> ctx = OperationContext.background()
        >>> client.write(ctx, "a/b", b"demo", WriteOptions(size=4))
        >>> with client.read(ctx, "a/b") as reader:
        ...     reader.read()
        b'demo'
    """

    def __init__(self, config: S3Config, **kwargs: Any):
        self.config: ResolvedS3Config = resolveS3Config(config)
        self.bucket = self.config.bucket

        try:
            self.client = boto3.client(
                "s3",
                endpoint_url=self.config.endpointUrl,
                region_name=self.config.region or None,
                aws_access_key_id=self.config.keyId,
                aws_secret_access_key=self.config.key,
                use_ssl=self.config.https,
                config=Config(
                    signature_version=self.config.signatureVersion,
                    s3={"addressing_style": self.config.addressingStyle},
                ),
            )
        except Exception as e:
            raise StorageBackendError(f"Failed to initialize S3 client: {e}", originalError=e)

        super().__init__(**kwargs)
        logger.info(
            f"Initialized S3ObjectClient with endpoint: {self.config.endpointUrl}, bucket: {self.bucket}, "
            f"sse-c: {self.config.sseCKey is not None}, dood!"
        )

    def _sseParams(self) -> dict[str, Any]:
        if self.config.sseCKey is None:
            return {}
        return {"SSECustomerAlgorithm": SSEC_ALGORITHM, "SSECustomerKey": self.config.sseCKey}

    def _wrapError(self, e: Exception, operation: str, key: str) -> StorageError:
        if isinstance(e, ClientError) and isNotFound(e):
            return StorageNotFoundError(f"Object '{key}' not found in S3 bucket '{self.bucket}'", key=key)
        return StorageBackendError(
            f"Failed to {operation} object with key '{key}' in S3: {e}",
            originalError=e,
            operation=operation,
            key=key,
        )

    def read(self, ctx: OperationContext, key: str) -> TimeoutReader:
        """
        Open S3 object for reading.

        The returned reader owns a derived context: closing the reader, cancelling
        the caller's context or a stalled transfer all close the response body. A
        response arriving after cancellation is closed as soon as it arrives.
        """
        readCtx = ctx.withCancel()
        try:
            response = self._callReleasing(
                readCtx,
                closeResponseBody,
                self.client.get_object,
                Bucket=self.bucket,
                Key=key,
                **self._sseParams(),
            )
        except Exception as e:
            readCtx.cancel()
            if isinstance(e, StorageError):
                raise
            raise self._wrapError(e, "read", key) from e

        body = response["Body"]
        readCtx.addCallback(body.close)
        logger.debug(f"Opened object with key: {key}, dood!")
        return self._newTimeoutReader(body, body, readCtx)

    def write(
        self,
        ctx: OperationContext,
        key: str,
        stream: Readable | bytes,
        options: WriteOptions | None = None,
    ) -> None:
        """
        Upload stream to S3 with a single PUT request.

        botocore rewinds the body after checksumming it, and after hashing it for
        v4 payload signing over plain http, so seekable streams (bytes included) are
        passed with seek/tell. Non-seekable streams can only be sent unsigned, which
        botocore does for v4 signatures over https.

        Raises:
            StorageInvalidArgumentError: If options.size is missing, or the stream is not
                seekable and the client does not use v4 signature over https, before any S3 call
        """
        if options is None or options.size <= 0:
            raise StorageInvalidArgumentError("The size option must be specified for S3 writes")

        body = self._asStream(stream)
        seekable = isSeekable(body)
        if not seekable and not (self.config.v4Signature and self.config.https):
            raise StorageInvalidArgumentError(
                "Non-seekable streams can be written to S3 only with v4 signature over https"
            )

        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "ContentLength": options.size,
            "ContentType": "application/octet-stream",
        }
        params.update(self._sseParams())
        metadata = lowerMetadata(options.metadata)
        if metadata:
            params["Metadata"] = metadata

        writeCtx = ctx.withCancel()
        reader = self._newTimeoutReader(body, None, writeCtx, seekable=seekable)
        try:
            self._call(writeCtx, self.client.put_object, Body=reader, **params)
        except StorageError:
            raise
        except Exception as e:
            raise self._wrapError(e, "write", key) from e
        finally:
            reader.close()

        logger.debug(f"Stored object with key: {key}, size: {options.size}, dood!")

    def exist(self, ctx: OperationContext, key: str) -> bool:
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            try:
                self._call(callCtx, self.client.head_object, Bucket=self.bucket, Key=key, **self._sseParams())
            except StorageError:
                raise
            except ClientError as e:
                if isNotFound(e):
                    return False
                raise self._wrapError(e, "check existence of", key) from e
            except Exception as e:
                raise self._wrapError(e, "check existence of", key) from e

        return True

    def remove(self, ctx: OperationContext, *keys: str) -> None:
        """
        Remove objects with DeleteObjects requests of up to 1000 keys each.

        All batches are attempted, the first per-key error is reported.
        """
        if not keys:
            return

        firstError: StoragePartialBatchError | None = None
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            for batch in batched(keys, REMOVE_BATCH_SIZE):
                request = {"Objects": [{"Key": key} for key in batch], "Quiet": True}
                try:
                    response = self._call(callCtx, self.client.delete_objects, Bucket=self.bucket, Delete=request)
                except StorageError:
                    raise
                except Exception as e:
                    if firstError is None:
                        firstError = StoragePartialBatchError(
                            f"Failed to remove {batch[0]}: {e}", originalError=e, operation="remove", key=batch[0]
                        )
                    continue

                for error in response.get("Errors", []):
                    errorKey = error.get("Key", "")
                    logger.warning(f"Failed to remove {errorKey}: {error.get('Code')} {error.get('Message')}, dood!")
                    if firstError is None:
                        firstError = StoragePartialBatchError(
                            f"Failed to remove {errorKey}: {error.get('Code')}: {error.get('Message')}",
                            operation="remove",
                            key=errorKey,
                        )

        if firstError is not None:
            raise firstError
        logger.debug(f"Removed {len(keys)} objects, dood!")

    def info(self, ctx: OperationContext, key: str) -> ObjectInfo:
        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            try:
                response = self._call(
                    callCtx, self.client.head_object, Bucket=self.bucket, Key=key, **self._sseParams()
                )
            except StorageError:
                raise
            except Exception as e:
                raise self._wrapError(e, "stat", key) from e

        return ObjectInfo(
            size=int(response.get("ContentLength", 0)),
            lastModified=response["LastModified"],
            metadata=lowerMetadata(response.get("Metadata")),
        )

    def copy(self, ctx: OperationContext, src: str, dst: str) -> None:
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": dst,
            "CopySource": {"Bucket": self.bucket, "Key": src},
        }
        if self.config.sseCKey is not None:
            params.update(self._sseParams())
            params["CopySourceSSECustomerAlgorithm"] = SSEC_ALGORITHM
            params["CopySourceSSECustomerKey"] = self.config.sseCKey

        with ctx.withTimeout(self.defaultTimeout) as callCtx:
            try:
                self._call(callCtx, self.client.copy_object, **params)
            except StorageError:
                raise
            except Exception as e:
                raise self._wrapError(e, "copy", src) from e

        logger.debug(f"Copied object {src} to {dst}, dood!")

    def list(self, ctx: OperationContext, prefix: str = "") -> list[ObjectItem]:
        """
        List objects with ListObjectsV2, following continuation tokens.

        No delimiter is sent, so the listing is recursive.
        """
        items: list[ObjectItem] = []
        params: dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix, "MaxKeys": LIST_PAGE_SIZE}

        while True:
            try:
                response = self._call(ctx, self.client.list_objects_v2, **params)
            except StorageError:
                raise
            except Exception as e:
                raise StorageBackendError(
                    f"Failed to list objects with prefix '{prefix}' in S3: {e}",
                    originalError=e,
                    operation="list",
                    key=prefix,
                ) from e

            for obj in response.get("Contents", []):
                items.append(ObjectItem(key=obj["Key"], size=int(obj["Size"]), lastModified=obj["LastModified"]))

            if not response.get("IsTruncated"):
                break
            params["ContinuationToken"] = response["NextContinuationToken"]

        logger.debug(f"Listed {len(items)} objects with prefix: '{prefix}', dood!")
        return items
