"""Shared pytest fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from cli.config import Config
from appserver import service_locator
from appserver.main import app
from appserver.classifier import NullClassifier
from appserver.locks import KeyedLockRegistry
from appserver.repositories.entry_repository import EntryRepository
from appserver.services.entry_service import EntryService
from appserver.services.upload_service import UploadService
from appserver.services.download_service import DownloadService


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .appserver directory
    """
    config_dir = tmp_path / '.appserver'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing uploads.

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def data_dir(tmp_path):
    """Empty server data directory."""
    path = tmp_path / 'data'
    path.mkdir()
    return path


@pytest.fixture
def entry_repo(data_dir):
    return EntryRepository(data_dir)


@pytest.fixture
def lock_registry():
    return KeyedLockRegistry()


@pytest.fixture
def entry_service(entry_repo):
    return EntryService(entry_repo=entry_repo, base_uri='http://files.test')


@pytest.fixture
def upload_service(entry_repo, lock_registry):
    return UploadService(entry_repo=entry_repo, lock_registry=lock_registry, classifier=NullClassifier())


@pytest.fixture
def download_service(entry_repo):
    return DownloadService(entry_repo=entry_repo, max_range_bytes=1024 * 1024)


@pytest.fixture
def server_components(entry_repo, lock_registry):
    """
    Install test instances in the service locator.

    The classifier is disabled so tests do not depend on the `file` binary.
    """
    service_locator.set_entry_repository(entry_repo)
    service_locator.set_lock_registry(lock_registry)
    service_locator.set_classifier(NullClassifier())
    yield
    service_locator.reset()


@pytest.fixture
def api_client(server_components):
    """FastAPI test client backed by a temporary data directory."""
    return TestClient(app)


@pytest.fixture
def body_of():
    """Factory for async iterators standing in for a request body stream."""
    async def stream(*pieces: bytes):
        for piece in pieces:
            yield piece
    return stream
