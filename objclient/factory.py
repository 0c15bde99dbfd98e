"""
Object client factory

This module builds an object client from a storage configuration section, as
loaded from a TOML config file.
"""

import logging
from typing import Any, Dict

from .backends.abstract import DEFAULT_TIMEOUT, AbstractObjectClient
from .backends.filesystem import FSObjectClient
from .backends.oss import OSSObjectClient
from .backends.s3 import S3ObjectClient
from .exceptions import StorageConfigError
from .models import FSConfig, OSSConfig, S3Config

logger = logging.getLogger(__name__)


def configString(value: Any) -> str:
    """
    Render configuration value in the boolean-as-string form the configs expect.

    TOML booleans become "true"/"false", None becomes "", anything else is str()-ed.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def createClient(config: Dict[str, Any]) -> AbstractObjectClient:
    """
    Create object client from storage configuration.

    Args:
        config: Storage configuration section

    Returns:
        Ready to use object client

    Raises:
        StorageConfigError: If configuration is invalid or backend type is unknown
        StorageBackendError: If the backend SDK client cannot be created

    Configuration format:
        {
            "type": "s3",  # or "oss" or "fs"
            "default-timeout": 60,  # optional, seconds
            "s3": {
                "endpoint": "",
                "region": "us-east-1",
                "https": "true",
                "bucket": "my-bucket",
                "path-style-request": "false",
                "key-id": "...",
                "key": "...",
                "v4-signature": "true",
                "sse-c-key": "",
            },
            "oss": {"endpoint": "", "region": "cn-hangzhou", "https": "true",
                    "bucket": "my-bucket", "key-id": "...", "key": "..."},
            "fs": {"base-dir": "./storage"},
        }
    """
    if not config:
        raise StorageConfigError("Storage configuration is missing")

    storageType = config.get("type")
    if not storageType:
        raise StorageConfigError("Storage type is not specified in configuration")

    try:
        defaultTimeout = float(config.get("default-timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as e:
        raise StorageConfigError(f"Invalid default-timeout: {config.get('default-timeout')!r}") from e
    if defaultTimeout <= 0:
        raise StorageConfigError(f"default-timeout must be positive, got {defaultTimeout}")

    if storageType not in ("s3", "oss", "fs"):
        raise StorageConfigError(f"Unknown storage type: {storageType}")

    backendConfig = config.get(storageType)
    if not isinstance(backendConfig, dict) or not backendConfig:
        raise StorageConfigError(f"{storageType} storage configuration is missing")

    client: AbstractObjectClient
    match storageType:
        case "s3":
            client = S3ObjectClient(
                S3Config(
                    endpoint=configString(backendConfig.get("endpoint")),
                    region=configString(backendConfig.get("region")),
                    https=configString(backendConfig.get("https")),
                    bucket=configString(backendConfig.get("bucket")),
                    pathStyleRequest=configString(backendConfig.get("path-style-request")),
                    keyId=configString(backendConfig.get("key-id")),
                    key=configString(backendConfig.get("key")),
                    v4Signature=configString(backendConfig.get("v4-signature")),
                    sseCKey=configString(backendConfig.get("sse-c-key")),
                ),
                defaultTimeout=defaultTimeout,
            )
        case "oss":
            client = OSSObjectClient(
                OSSConfig(
                    endpoint=configString(backendConfig.get("endpoint")),
                    region=configString(backendConfig.get("region")),
                    https=configString(backendConfig.get("https")),
                    bucket=configString(backendConfig.get("bucket")),
                    keyId=configString(backendConfig.get("key-id")),
                    key=configString(backendConfig.get("key")),
                ),
                defaultTimeout=defaultTimeout,
            )
        case "fs":
            client = FSObjectClient(
                FSConfig(baseDir=configString(backendConfig.get("base-dir"))),
                defaultTimeout=defaultTimeout,
            )
        case _:
            raise StorageConfigError(f"Unknown storage type: {storageType}")

    logger.info(f"Created {storageType} object client, dood!")
    return client
