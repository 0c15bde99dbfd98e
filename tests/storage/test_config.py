"""
Tests for configuration normalization, dood!
"""

import pytest

from objclient.config import (
    DEFAULT_S3_REGION,
    buildEndpointUrl,
    resolveFSConfig,
    resolveOSSConfig,
    resolveS3Config,
    stripScheme,
)
from objclient.exceptions import StorageConfigError, StorageInvalidArgumentError
from objclient.models import FSConfig, OSSConfig, S3Config

SSEC_KEY = "0123456789abcdef0123456789abcdef"


class TestEndpointHelpers:
    """Test endpoint helpers, dood!"""

    @pytest.mark.parametrize(
        "endpoint, expected",
        [
            ("https://storage.yandexcloud.net/", "storage.yandexcloud.net"),
            ("http://minio:9000", "minio:9000"),
            ("minio:9000", "minio:9000"),
            ("  s3.amazonaws.com  ", "s3.amazonaws.com"),
        ],
    )
    def testStripScheme(self, endpoint, expected):
        """Test that scheme and trailing slashes are removed"""
        assert stripScheme(endpoint) == expected

    def testBuildEndpointUrl(self):
        """Test that the scheme follows the https flag"""
        assert buildEndpointUrl("host", True) == "https://host"
        assert buildEndpointUrl("host", False) == "http://host"


class TestResolveS3Config:
    """Test S3 configuration resolution, dood!"""

    def testDefaults(self):
        """Test defaults: legacy signature, https, virtual-hosted style, global endpoint"""
        resolved = resolveS3Config(S3Config(bucket="b"))

        assert resolved.v4Signature is False
        assert resolved.signatureVersion == "s3"
        assert resolved.https is True
        assert resolved.pathStyle is False
        assert resolved.addressingStyle == "virtual"
        assert resolved.region == ""
        assert resolved.endpointUrl == "https://s3.amazonaws.com"
        assert resolved.sseCKey is None

    def testV4DefaultsRegion(self):
        """Test that v4 signature without region defaults the region to us-east-1"""
        resolved = resolveS3Config(S3Config(bucket="b", v4Signature="true"))

        assert resolved.region == DEFAULT_S3_REGION
        assert resolved.signatureVersion == "s3v4"
        assert resolved.endpointUrl == f"https://s3.{DEFAULT_S3_REGION}.amazonaws.com"

    def testRegionalEndpoint(self):
        """Test that the endpoint is derived from an explicit region"""
        resolved = resolveS3Config(S3Config(bucket="b", region="eu-west-1"))

        assert resolved.endpointUrl == "https://s3.eu-west-1.amazonaws.com"

    def testExplicitEndpointHttp(self):
        """Test custom endpoint with https disabled and path style requests"""
        resolved = resolveS3Config(
            S3Config(bucket="b", endpoint="http://minio:9000", https="false", pathStyleRequest="true")
        )

        assert resolved.endpointUrl == "http://minio:9000"
        assert resolved.https is False
        assert resolved.addressingStyle == "path"

    def testHttpsOnlyDisabledByLiteralFalse(self):
        """Test the asymmetric boolean rule for the https toggle"""
        assert resolveS3Config(S3Config(bucket="b", https="False")).https is True
        assert resolveS3Config(S3Config(bucket="b", https="no")).https is True
        assert resolveS3Config(S3Config(bucket="b", https="false")).https is False

    def testV4OnlyEnabledByLiteralTrue(self):
        """Test the asymmetric boolean rule for the v4 toggle"""
        assert resolveS3Config(S3Config(bucket="b", v4Signature="True")).v4Signature is False
        assert resolveS3Config(S3Config(bucket="b", v4Signature="1")).v4Signature is False
        assert resolveS3Config(S3Config(bucket="b", v4Signature="true")).v4Signature is True

    def testMissingBucket(self):
        """Test that a missing bucket is rejected"""
        with pytest.raises(StorageConfigError):
            resolveS3Config(S3Config())

    def testValidSSECKey(self):
        """Test that a 32 byte key with v4 and https is accepted"""
        resolved = resolveS3Config(S3Config(bucket="b", v4Signature="true", sseCKey=SSEC_KEY))

        assert resolved.sseCKey == SSEC_KEY.encode("utf-8")

    @pytest.mark.parametrize("key", ["short", SSEC_KEY + "x", "k" * 31])
    def testSSECKeyWrongLength(self, key):
        """Test that SSE-C keys which are not exactly 32 bytes are rejected"""
        with pytest.raises(StorageConfigError, match="32 bytes"):
            resolveS3Config(S3Config(bucket="b", v4Signature="true", sseCKey=key))

    def testSSECKeyRequiresV4(self):
        """Test that SSE-C key without v4 signature is rejected"""
        with pytest.raises(StorageConfigError, match="v4 signature"):
            resolveS3Config(S3Config(bucket="b", sseCKey=SSEC_KEY))

    def testSSECKeyRequiresHttps(self):
        """Test that SSE-C key over plain http is rejected"""
        with pytest.raises(StorageConfigError, match="https"):
            resolveS3Config(S3Config(bucket="b", v4Signature="true", https="false", sseCKey=SSEC_KEY))

    def testConfigErrorIsInvalidArgument(self):
        """Test that configuration errors belong to the InvalidArgument category"""
        with pytest.raises(StorageInvalidArgumentError):
            resolveS3Config(S3Config(bucket="b", sseCKey="short"))


class TestResolveOSSConfig:
    """Test OSS configuration resolution, dood!"""

    def testEndpointFromRegion(self):
        """Test that the endpoint is derived from the region"""
        resolved = resolveOSSConfig(OSSConfig(bucket="b", region="cn-hangzhou"))

        assert resolved.endpointUrl == "https://oss-cn-hangzhou.aliyuncs.com"
        assert resolved.https is True

    def testExplicitEndpoint(self):
        """Test that an explicit endpoint wins and https can be disabled"""
        resolved = resolveOSSConfig(OSSConfig(bucket="b", endpoint="oss.internal:8080", https="false"))

        assert resolved.endpointUrl == "http://oss.internal:8080"

    def testNoEndpointNoRegion(self):
        """Test that neither endpoint nor region is rejected"""
        with pytest.raises(StorageConfigError):
            resolveOSSConfig(OSSConfig(bucket="b"))

    def testMissingBucket(self):
        """Test that a missing bucket is rejected"""
        with pytest.raises(StorageConfigError):
            resolveOSSConfig(OSSConfig(region="cn-hangzhou"))


class TestResolveFSConfig:
    """Test filesystem configuration resolution, dood!"""

    def testBaseDir(self):
        """Test that base directory is kept"""
        assert resolveFSConfig(FSConfig(baseDir="/tmp/x")).baseDir == "/tmp/x"

    def testMissingBaseDir(self):
        """Test that a missing base directory is rejected"""
        with pytest.raises(StorageConfigError):
            resolveFSConfig(FSConfig())
