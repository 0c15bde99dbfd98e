"""
Object client data models

This module contains the value types shared by every backend: listing entries,
stat results, write options and the raw (string based) backend configurations.
"""

import datetime
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ObjectItem:
    """
    One entry of a listing result.

    Attributes:
        key: Full object key
        size: Object size in bytes
        lastModified: Last modification time
    """

    key: str
    size: int
    lastModified: datetime.datetime


@dataclass(frozen=True)
class ObjectInfo:
    """
    Point-in-time stat result for a single object.

    Attributes:
        size: Object size in bytes
        lastModified: Last modification time
        metadata: User metadata, keys are always lower case
    """

    size: int
    lastModified: datetime.datetime
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class WriteOptions:
    """
    Options for a write operation.

    Attributes:
        size: Object size in bytes. Required by the S3 backend, optional for others.
        metadata: Optional user metadata. Keys are lower-cased before transmission.
    """

    size: int = 0
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class S3Config:
    """
    Raw S3 configuration, values as they come from config files.

    Boolean toggles are strings: https defaults to enabled, pathStyleRequest and
    v4Signature default to disabled.
    """

    endpoint: str = ""
    region: str = ""
    https: str = ""
    bucket: str = ""
    pathStyleRequest: str = ""
    keyId: str = ""
    key: str = ""
    v4Signature: str = ""
    sseCKey: str = ""


@dataclass
class OSSConfig:
    """Raw Aliyun OSS configuration, https defaults to enabled."""

    endpoint: str = ""
    region: str = ""
    https: str = ""
    bucket: str = ""
    keyId: str = ""
    key: str = ""


@dataclass
class FSConfig:
    """Local filesystem configuration."""

    baseDir: str = ""
