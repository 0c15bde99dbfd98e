"""
Object client package

This package provides a unified interface for reading, writing, listing and
managing objects across multiple object storage providers (S3, Aliyun OSS,
local filesystem).

Example:
    >>> from objclient import OperationContext, WriteOptions, createClient, loadStorageConfig
    >>>
    >>> client = createClient(loadStorageConfig("config.toml"))
    >>> ctx = OperationContext.background()
    >>>
    >>> client.write(ctx, "a/b", b"demo", WriteOptions(size=4, metadata={"Owner": "me"}))
    >>> with client.read(ctx, "a/b") as reader:
    ...     data = reader.read()
    >>> client.info(ctx, "a/b").metadata
    {'owner': 'me'}
"""

from .backends.abstract import AbstractObjectClient
from .backends.filesystem import FSObjectClient
from .backends.oss import OSSObjectClient
from .backends.s3 import S3ObjectClient
from .context import OperationContext
from .exceptions import (
    StorageBackendError,
    StorageCanceledError,
    StorageConfigError,
    StorageError,
    StorageInvalidArgumentError,
    StorageKeyError,
    StorageNotFoundError,
    StoragePartialBatchError,
)
from .factory import createClient
from .models import FSConfig, ObjectInfo, ObjectItem, OSSConfig, S3Config, WriteOptions
from .settings import loadStorageConfig
from .timeout_reader import TimeoutReader

__all__ = [
    "AbstractObjectClient",
    "FSObjectClient",
    "OSSObjectClient",
    "S3ObjectClient",
    "OperationContext",
    "TimeoutReader",
    "createClient",
    "loadStorageConfig",
    "ObjectItem",
    "ObjectInfo",
    "WriteOptions",
    "S3Config",
    "OSSConfig",
    "FSConfig",
    "StorageError",
    "StorageInvalidArgumentError",
    "StorageKeyError",
    "StorageConfigError",
    "StorageNotFoundError",
    "StorageCanceledError",
    "StorageBackendError",
    "StoragePartialBatchError",
]
