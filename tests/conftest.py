"""
Shared fixtures.
"""
import pytest

from tests.fixtures.mock_mtp_client import MockMTPClient


@pytest.fixture
def mock_mtp_client():
    """Mock device with an empty Music folder."""
    client = MockMTPClient()
    client.music_id = client.add_folder("Music")
    return client


@pytest.fixture
def playlists_dir(tmp_path):
    path = tmp_path / "playlists"
    path.mkdir()
    return path


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "tmp"
