"""Shared pytest fixtures for all tests."""

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from cli.config import Config
from server import service_locator
from server.database import init_database
from server.services.temp_file_service import TempFileService
from server.services.upload_service import UploadSessionManager


def build_payload(size: int) -> bytes:
    """Deterministic, non-repeating-per-chunk test bytes."""
    pattern = bytes(range(251))
    return (pattern * (size // len(pattern) + 1))[:size]


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .resumable-upload directory
    """
    config_dir = tmp_path / '.resumable-upload'
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
def test_db(monkeypatch) -> Generator[Path, None, None]:
    """
    Create a temporary test database for each test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        monkeypatch.setattr("server.database.DATABASE_PATH", str(db_path))
        monkeypatch.setattr("server.config.DATABASE_PATH", str(db_path))
        init_database()
        yield db_path


@pytest.fixture
def storage_root(tmp_path) -> Path:
    """Empty storage root for chunks and assembled files."""
    root = tmp_path / 'storage'
    root.mkdir()
    return root


@pytest.fixture
def manager(test_db, storage_root) -> UploadSessionManager:
    """Upload session manager backed by the temporary database and storage."""
    return UploadSessionManager(storage_root=storage_root, session_ttl=86400, public_url_prefix="")


@pytest.fixture
def api_client(manager, storage_root) -> Generator[TestClient, None, None]:
    """
    TestClient for the upload server wired to the temporary manager.
    """
    from server.main import app

    service_locator.set_upload_manager(manager)
    service_locator.set_temp_file_service(TempFileService(storage_root=storage_root, public_url_prefix=""))
    try:
        yield TestClient(app)
    finally:
        service_locator.set_upload_manager(None)
        service_locator.set_temp_file_service(None)


@pytest.fixture
def make_file(tmp_path):
    """
    Factory creating a file of the given size with deterministic content.

    Returns:
        Callable (size, name) -> Path
    """
    def _make(size: int, name: str = 'payload.bin') -> Path:
        file_path = tmp_path / name
        file_path.write_bytes(build_payload(size))
        return file_path

    return _make


@pytest.fixture
def payload():
    """Factory for deterministic test bytes of a given size."""
    return build_payload


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a small text file for CLI upload tests.

    Returns:
        Path to a 26-byte test.txt
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('abcdefghijklmnopqrstuvwxyz')
    return file_path
