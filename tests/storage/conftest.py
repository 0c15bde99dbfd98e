"""
Shared fixtures for object client tests, dood!
"""

import shutil
import tempfile

import pytest

from objclient.backends.filesystem import FSObjectClient
from objclient.context import OperationContext
from objclient.models import FSConfig


@pytest.fixture
def ctx():
    """Create a root operation context, cancelled after the test, dood!"""
    rootCtx = OperationContext.background()
    yield rootCtx
    rootCtx.cancel()


@pytest.fixture
def tempDir():
    """Create a temporary directory for testing, dood!"""
    tmpDir = tempfile.mkdtemp()
    yield tmpDir
    shutil.rmtree(tmpDir, ignore_errors=True)


@pytest.fixture
def fsClient(tempDir):
    """Create FSObjectClient in a temporary directory, dood!"""
    client = FSObjectClient(FSConfig(baseDir=tempDir), defaultTimeout=5.0)
    yield client
    client.close()
