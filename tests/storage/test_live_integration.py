"""
Live integration tests against real S3 / OSS buckets, dood!

Skipped unless the bucket is configured through environment variables:
- S3: s3_bucket, s3_region, s3_key_id, s3_key
- OSS: oss_bucket, oss_region, oss_key_id, oss_key

Every test works under the "objclient/" prefix and cleans it up first.
"""

import os

import pytest

from objclient.backends.oss import OSSObjectClient
from objclient.backends.s3 import S3ObjectClient
from objclient.context import OperationContext
from objclient.models import OSSConfig, S3Config, WriteOptions

PREFIX = "objclient/"
TEST_KEY = "objclient/test"
COPY_KEY = "objclient/copy"


def createS3Client():
    return S3ObjectClient(
        S3Config(
            region=os.getenv("s3_region", ""),
            https="true",
            bucket=os.getenv("s3_bucket", ""),
            keyId=os.getenv("s3_key_id", ""),
            key=os.getenv("s3_key", ""),
            v4Signature="true",
        )
    )


def createOSSClient():
    region = os.getenv("oss_region", "")
    return OSSObjectClient(
        OSSConfig(
            endpoint=f"oss-{region}.aliyuncs.com",
            region=region,
            bucket=os.getenv("oss_bucket", ""),
            keyId=os.getenv("oss_key_id", ""),
            key=os.getenv("oss_key", ""),
        )
    )


@pytest.fixture(
    params=[
        pytest.param(
            createS3Client,
            id="s3",
            marks=pytest.mark.skipif(not os.getenv("s3_bucket"), reason="s3_bucket is not set"),
        ),
        pytest.param(
            createOSSClient,
            id="oss",
            marks=pytest.mark.skipif(not os.getenv("oss_bucket"), reason="oss_bucket is not set"),
        ),
    ]
)
def liveClient(request):
    """Create a live client and clean the test prefix around the test, dood!"""
    client = request.param()
    ctx = OperationContext.background()

    def cleanPrefix():
        keys = [item.key for item in client.list(ctx, PREFIX)]
        client.remove(ctx, *keys)

    cleanPrefix()
    yield client
    cleanPrefix()
    client.close()


def testLiveLifecycle(liveClient):
    """Test write, read, exist, info, copy, list and remove against a real bucket"""
    ctx = OperationContext.background()

    liveClient.write(ctx, TEST_KEY, b"demo", WriteOptions(size=4))
    with liveClient.read(ctx, TEST_KEY) as reader:
        assert reader.read() == b"demo"

    assert liveClient.exist(ctx, TEST_KEY) is True
    assert liveClient.exist(ctx, COPY_KEY) is False

    liveClient.write(ctx, TEST_KEY, b"demo", WriteOptions(size=4, metadata={"Foo": "bar"}))
    info = liveClient.info(ctx, TEST_KEY)
    assert info.size == 4
    assert info.metadata.get("foo") == "bar"

    liveClient.copy(ctx, TEST_KEY, COPY_KEY)
    assert liveClient.exist(ctx, COPY_KEY) is True

    keys = sorted(item.key for item in liveClient.list(ctx, PREFIX))
    assert keys == [COPY_KEY, TEST_KEY]

    liveClient.remove(ctx, TEST_KEY, COPY_KEY)
    assert liveClient.list(ctx, PREFIX) == []
