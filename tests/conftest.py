"""Shared pytest fixtures for all tests."""

import io
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from starlette.datastructures import Headers, UploadFile

from cli.config import Config
from server import service_locator
from server.metadata_store import MetadataStore
from server.rate_limiter import SlidingWindowRateLimiter
from server.storage import ContentStorage
from server.types import FileRecord


@pytest.fixture
def metadata_store(tmp_path):
    """
    Metadata store backed by a snapshot file in a temporary directory.
    """
    return MetadataStore(str(tmp_path / 'data' / 'database.json'))


@pytest.fixture
def content_storage(tmp_path):
    """
    Content storage rooted in a temporary uploads directory.
    """
    return ContentStorage(str(tmp_path / 'uploads'))


@pytest.fixture
def server_state(metadata_store, content_storage):
    """
    Install temporary store, storage and a generous rate limiter in the service locator.

    Returns:
        Namespace with store, storage and limiter attributes
    """
    limiter = SlidingWindowRateLimiter(limit=1000, window_seconds=900)
    service_locator.set_metadata_store(metadata_store)
    service_locator.set_content_storage(content_storage)
    service_locator.set_rate_limiter(limiter)

    yield SimpleNamespace(store=metadata_store, storage=content_storage, limiter=limiter)

    service_locator.reset()


@pytest.fixture
def client(server_state):
    """Create FastAPI test client against temporary server state."""
    from server.main import app

    with TestClient(app) as test_client:
        yield test_client


def make_record(file_id: str = 'abc123XYZ0', **overrides) -> FileRecord:
    """
    Build a FileRecord with sensible defaults for tests.
    """
    fields = {
        'id': file_id,
        'stored_filename': f'{file_id}.txt',
        'original_name': 'notes.txt',
        'mime_type': 'text/plain',
        'size_bytes': 10,
        'uploaded_at': '2026-01-07T10:30:45.123456+00:00',
        'public_url': f'http://testserver/{file_id}',
        'category': 'document',
    }
    fields.update(overrides)
    return FileRecord(**fields)


def make_upload(data: bytes, filename: str = 'notes.txt', content_type: str = 'text/plain', known_size: bool = True) -> UploadFile:
    """
    Build a Starlette UploadFile the way the multipart parser would.

    Args:
        known_size: When False, leave size unset to exercise the streaming size guard
    """
    return UploadFile(
        file=io.BytesIO(data),
        size=len(data) if known_size else None,
        filename=filename,
        headers=Headers({'content-type': content_type}),
    )


@pytest.fixture
def temp_config(tmp_path):
    """
    Create temporary CLI config instance.
    """
    config_dir = tmp_path / '.shortdrop'
    config_dir.mkdir()
    return Config(config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample text file for CLI uploads.
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path
