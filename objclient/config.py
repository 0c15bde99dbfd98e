"""
Configuration normalization

This module turns raw, string based backend configurations into the concrete
parameters a backend needs. Every function here is pure: defaults are resolved
and interdependent options are validated without any network I/O, so an invalid
configuration fails synchronously before any SDK handle is constructed.
"""

from dataclasses import dataclass

from .exceptions import StorageConfigError
from .models import FSConfig, OSSConfig, S3Config
from .utils import stringToBool

# Region used for v4 signatures when none is configured
DEFAULT_S3_REGION = "us-east-1"

# Required SSE-C key length in bytes (AES-256)
SSEC_KEY_LENGTH = 32


@dataclass(frozen=True)
class ResolvedS3Config:
    """
    Concrete S3 parameters.

    Attributes:
        endpointUrl: Endpoint URL with scheme (e.g. "https://s3.us-east-1.amazonaws.com")
        region: Region name, empty when unknown
        https: Whether TLS is used
        bucket: Bucket name
        pathStyle: Whether path-style addressing is used instead of virtual-hosted style
        keyId: Access key ID
        key: Secret access key
        v4Signature: Whether SigV4 is used instead of the legacy S3 signature
        sseCKey: SSE-C key bytes or None
    """

    endpointUrl: str
    region: str
    https: bool
    bucket: str
    pathStyle: bool
    keyId: str
    key: str
    v4Signature: bool
    sseCKey: bytes | None

    @property
    def signatureVersion(self) -> str:
        return "s3v4" if self.v4Signature else "s3"

    @property
    def addressingStyle(self) -> str:
        return "path" if self.pathStyle else "virtual"


@dataclass(frozen=True)
class ResolvedOSSConfig:
    """Concrete Aliyun OSS parameters."""

    endpointUrl: str
    region: str
    https: bool
    bucket: str
    keyId: str
    key: str


@dataclass(frozen=True)
class ResolvedFSConfig:
    """Concrete filesystem parameters."""

    baseDir: str


def stripScheme(endpoint: str) -> str:
    """
    Get endpoint host without scheme and trailing slashes.

    Examples:
        >>> stripScheme("https://storage.yandexcloud.net/")
        'storage.yandexcloud.net'
        >>> stripScheme("minio:9000")
        'minio:9000'
    """
    endpoint = endpoint.strip()
    if "://" in endpoint:
        endpoint = endpoint.split("://", 1)[1]
    return endpoint.rstrip("/")


def buildEndpointUrl(host: str, https: bool) -> str:
    scheme = "https" if https else "http"
    return f"{scheme}://{host}"


def resolveS3Config(config: S3Config) -> ResolvedS3Config:
    """
    Resolve S3 configuration defaults and validate it.

    Resolution rules:
    - v4Signature defaults to disabled, https defaults to enabled,
      pathStyleRequest defaults to disabled
    - Region defaults to "us-east-1" when v4 signature is enabled
    - Endpoint defaults to "s3.<region>.amazonaws.com", or "s3.amazonaws.com"
      without a region

    SSE-C key validation is a conjunction: the key must be exactly 32 bytes long,
    v4 signature must be enabled and https must be enabled.

    Args:
        config: Raw S3 configuration

    Returns:
        Resolved configuration

    Raises:
        StorageConfigError: If the configuration is invalid
    """
    if not config.bucket:
        raise StorageConfigError("S3 bucket is not specified")

    v4Signature = stringToBool(config.v4Signature, False)

    region = config.region
    if v4Signature and not region:
        region = DEFAULT_S3_REGION

    endpoint = stripScheme(config.endpoint)
    if not endpoint:
        if region:
            endpoint = f"s3.{region}.amazonaws.com"
        else:
            endpoint = "s3.amazonaws.com"

    https = stringToBool(config.https, True)
    pathStyle = stringToBool(config.pathStyleRequest, False)

    sseCKey: bytes | None = None
    if config.sseCKey:
        sseCKey = config.sseCKey.encode("utf-8")
        if len(sseCKey) != SSEC_KEY_LENGTH:
            raise StorageConfigError(f"Length of SSE-C key must be {SSEC_KEY_LENGTH} bytes")
        if not v4Signature:
            raise StorageConfigError("SSE-C key requires v4 signature")
        if not https:
            raise StorageConfigError("SSE-C key requires https")

    return ResolvedS3Config(
        endpointUrl=buildEndpointUrl(endpoint, https),
        region=region,
        https=https,
        bucket=config.bucket,
        pathStyle=pathStyle,
        keyId=config.keyId,
        key=config.key,
        v4Signature=v4Signature,
        sseCKey=sseCKey,
    )


def resolveOSSConfig(config: OSSConfig) -> ResolvedOSSConfig:
    """
    Resolve Aliyun OSS configuration defaults and validate it.

    Endpoint defaults to "oss-<region>.aliyuncs.com", https defaults to enabled.

    Args:
        config: Raw OSS configuration

    Returns:
        Resolved configuration

    Raises:
        StorageConfigError: If bucket is missing or neither endpoint nor region is set
    """
    if not config.bucket:
        raise StorageConfigError("OSS bucket is not specified")

    endpoint = stripScheme(config.endpoint)
    if not endpoint:
        if not config.region:
            raise StorageConfigError("OSS endpoint or region must be specified")
        endpoint = f"oss-{config.region}.aliyuncs.com"

    https = stringToBool(config.https, True)

    return ResolvedOSSConfig(
        endpointUrl=buildEndpointUrl(endpoint, https),
        region=config.region,
        https=https,
        bucket=config.bucket,
        keyId=config.keyId,
        key=config.key,
    )


def resolveFSConfig(config: FSConfig) -> ResolvedFSConfig:
    """
    Validate filesystem configuration.

    Raises:
        StorageConfigError: If base directory is not specified
    """
    if not config.baseDir:
        raise StorageConfigError("Filesystem base-dir is not specified")
    return ResolvedFSConfig(baseDir=config.baseDir)
