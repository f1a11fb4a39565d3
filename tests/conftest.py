# tests/conftest.py
import tempfile
from pathlib import Path

import pytest

from unistore.file_access.storage import Storage

SECRET = "test-secret-key-with-at-least-32-bytes!"


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_config(temp_dir):
    return {
        "name": "test",
        "provider": "filesystem",
        "filesystem": {"base_path": str(temp_dir / "store"), "create_dirs": True},
        "signed_url": {"enabled": True, "expires_in": 1800, "secret_key": SECRET},
    }


@pytest.fixture
def storage(storage_config):
    return Storage(storage_config)


@pytest.fixture
def base_path(storage):
    return storage.backend.base_path


@pytest.fixture
def objectstore_config():
    return {
        "name": "objects",
        "provider": "objectstore",
        "objectstore": {
            "region": "eu-west-1",
            "bucket": "documents",
            "access_key": "AKIATEST",
            "secret_key": "secret",
        },
    }


@pytest.fixture
def secret():
    return SECRET
