"""
Integration tests for sync.py by mocking the MTP client.
"""
import pytest

from playlistsync.models import SyncState
from playlistsync.sync import PlaylistSync
from tests.fixtures.audio import write_mp3
from tests.fixtures.constants import TEST_STORAGE_ID
from tests.fixtures.mock_mtp_client import MockMTPClient


@pytest.fixture
def road_trip(playlists_dir):
    """One playlist with two Queen tracks from the same album."""
    write_mp3(playlists_dir / "Road Trip" / "b side.mp3",
              title="Bohemian Rhapsody", artist="Queen", album="Greatest Hits", track="1/17")
    write_mp3(playlists_dir / "Road Trip" / "c side.mp3",
              title="Another One Bites the Dust", artist="Queen", album="Greatest Hits", artwork=True)
    return playlists_dir


def make_sync(client, playlists_dir, staging_dir, **kwargs):
    return PlaylistSync(
        mtp_client=client,
        storage_id=TEST_STORAGE_ID,
        playlists_dir=playlists_dir,
        staging_dir=staging_dir,
        **kwargs
    )


def uploaded_track_paths(client):
    """Device paths, in playlist notation, of every uploaded track."""
    return sorted(
        "0:/" + client.path_of(object_id).upper()
        for object_id, entry in client.objects.items()
        if entry.name.endswith(".MP3")
    )


def test_road_trip_scenario(road_trip, staging_dir, mock_mtp_client):
    sync = make_sync(mock_mtp_client, road_trip, staging_dir)

    report = sync.run()

    assert sync.state == SyncState.DONE
    assert mock_mtp_client.tree() == [
        "Music/",
        "Music/QUEEN/",
        "Music/QUEEN/GREATEST HITS/",
        "Music/QUEEN/GREATEST HITS/B SIDE.MP3",
        "Music/QUEEN/GREATEST HITS/C SIDE.MP3",
        "Music/ROAD TRIP.M3U8",
    ]
    playlist = mock_mtp_client.uploads[mock_mtp_client.music_id]["ROAD TRIP.M3U8"]
    assert playlist.decode("utf-8") == (
        "0:/MUSIC/QUEEN/GREATEST HITS/B SIDE.MP3\n"
        "0:/MUSIC/QUEEN/GREATEST HITS/C SIDE.MP3\n"
    )
    assert report.tracks_scanned == 2
    assert report.tracks_uploaded == 2
    assert report.playlists_uploaded == 1
    assert not report.has_failures
    assert not staging_dir.exists()


def test_every_playlist_entry_was_uploaded(playlists_dir, staging_dir, mock_mtp_client):
    write_mp3(playlists_dir / "Gym" / "a.mp3", artist="AC/DC", album="Back in Black")
    write_mp3(playlists_dir / "Gym" / "b.mp3", artist="Queen", album="Jazz")
    write_mp3(playlists_dir / "Chill" / "a.mp3", artist="AC/DC", album="Back in Black")
    write_mp3(playlists_dir / "Chill" / "c.mp3", title="No Tags Album")

    sync = make_sync(mock_mtp_client, playlists_dir, staging_dir)
    sync.run()

    referenced = sorted({path for p in sync.playlists for path in p.paths})
    assert referenced == uploaded_track_paths(mock_mtp_client)


def test_uploads_sanitized_copies(road_trip, staging_dir, mock_mtp_client):
    make_sync(mock_mtp_client, road_trip, staging_dir).run()

    source = (road_trip / "Road Trip" / "b side.mp3").read_bytes()
    album_id = next(
        object_id for object_id, entry in mock_mtp_client.objects.items()
        if entry.name == "GREATEST HITS"
    )
    uploaded = mock_mtp_client.uploads[album_id]["B SIDE.MP3"]
    assert b"TRCK" in source
    assert b"TRCK" not in uploaded
    assert b"TIT2" in uploaded


def test_running_twice_gives_same_library(road_trip, staging_dir, mock_mtp_client):
    make_sync(mock_mtp_client, road_trip, staging_dir).run()
    first = mock_mtp_client.tree()

    make_sync(mock_mtp_client, road_trip, staging_dir).run()

    assert mock_mtp_client.tree() == first


def test_existing_library_is_replaced(road_trip, staging_dir, mock_mtp_client):
    old_artist = mock_mtp_client.add_folder("ABBA", mock_mtp_client.music_id)
    old_album = mock_mtp_client.add_folder("GOLD", old_artist)
    mock_mtp_client.add_file("DANCING QUEEN.MP3", old_album, b"old")

    make_sync(mock_mtp_client, road_trip, staging_dir).run()

    assert not any(path.startswith("Music/ABBA") for path in mock_mtp_client.tree())
    assert "Music/ABBA/GOLD/DANCING QUEEN.MP3" in mock_mtp_client.deleted


def test_missing_music_folder_fails_before_deleting(road_trip, staging_dir):
    client = MockMTPClient()
    other = client.add_folder("Podcasts")
    client.add_file("EPISODE.MP3", other, b"keep")
    sync = make_sync(client, road_trip, staging_dir)

    with pytest.raises(RuntimeError, match="Music"):
        sync.run()

    assert sync.state == SyncState.FAILED
    assert sync.failed_state == SyncState.WIPING
    assert client.deleted == []
    assert client.tree() == ["Podcasts/", "Podcasts/EPISODE.MP3"]
    assert not staging_dir.exists()


def test_unreadable_track_is_left_out(playlists_dir, staging_dir, mock_mtp_client):
    write_mp3(playlists_dir / "Mix" / "a.mp3", artist="X", album="Y")
    write_mp3(playlists_dir / "Mix" / "broken.mp3", tagged=False)
    write_mp3(playlists_dir / "Mix" / "c.mp3", artist="X", album="Y")

    sync = make_sync(mock_mtp_client, playlists_dir, staging_dir)
    report = sync.run()

    assert sync.playlists[0].paths == ["0:/MUSIC/X/Y/A.MP3", "0:/MUSIC/X/Y/C.MP3"]
    assert [t.filename for t in sync.plan["X"]["Y"]] == ["a.mp3", "c.mp3"]
    assert uploaded_track_paths(mock_mtp_client) == ["0:/MUSIC/X/Y/A.MP3", "0:/MUSIC/X/Y/C.MP3"]
    assert report.tracks_scanned == 2


def test_staging_failure_cleans_up(road_trip, staging_dir, mock_mtp_client, monkeypatch):
    def broken_sanitize(tracks):
        (staging_dir / "partial").mkdir(exist_ok=True)
        raise RuntimeError("Failed to sanitize staged file")

    sync = make_sync(mock_mtp_client, road_trip, staging_dir)
    monkeypatch.setattr(sync.staging, "sanitize", broken_sanitize)

    with pytest.raises(RuntimeError, match="Failed to sanitize"):
        sync.run()

    assert sync.failed_state == SyncState.STAGING
    assert sync.state == SyncState.FAILED
    assert not staging_dir.exists()
    assert mock_mtp_client.deleted == []


def test_interrupt_during_staging_cleans_up(road_trip, staging_dir, mock_mtp_client, monkeypatch):
    def interrupted_sanitize(tracks):
        (staging_dir / "partial").mkdir(exist_ok=True)
        raise KeyboardInterrupt

    sync = make_sync(mock_mtp_client, road_trip, staging_dir)
    monkeypatch.setattr(sync.staging, "sanitize", interrupted_sanitize)

    with pytest.raises(KeyboardInterrupt):
        sync.run()

    assert sync.failed_state == SyncState.STAGING
    assert sync.state == SyncState.FAILED
    assert not staging_dir.exists()
    assert mock_mtp_client.deleted == []


def test_stale_staging_directory_is_replaced(road_trip, staging_dir, mock_mtp_client):
    (staging_dir / "Leftover").mkdir(parents=True)
    (staging_dir / "Leftover" / "x.mp3").write_bytes(b"stale")

    make_sync(mock_mtp_client, road_trip, staging_dir).run()

    assert "Music/LEFTOVER.M3U8" not in mock_mtp_client.tree()
    assert not staging_dir.exists()


def test_partial_failures_are_reported(road_trip, staging_dir, mock_mtp_client):
    mock_mtp_client.fail_upload.add("C SIDE.MP3")

    sync = make_sync(mock_mtp_client, road_trip, staging_dir)
    report = sync.run()

    assert sync.state == SyncState.DONE
    assert report.tracks_uploaded == 1
    assert [item for item, _ in report.failures] == ["0:/MUSIC/QUEEN/GREATEST HITS/C SIDE.MP3"]


def test_dry_run_leaves_device_untouched(road_trip, staging_dir):
    sync = PlaylistSync(None, playlists_dir=road_trip, staging_dir=staging_dir, dry_run=True)

    report = sync.run()

    assert sync.state == SyncState.DONE
    assert report.tracks_scanned == 2
    assert report.tracks_uploaded == 0
    assert not staging_dir.exists()


def test_client_required_without_dry_run(road_trip, staging_dir):
    with pytest.raises(ValueError):
        PlaylistSync(None, playlists_dir=road_trip, staging_dir=staging_dir)


def test_empty_playlists_dir_is_created(tmp_path, staging_dir, mock_mtp_client):
    playlists_dir = tmp_path / "new_playlists"

    report = make_sync(mock_mtp_client, playlists_dir, staging_dir).run()

    assert playlists_dir.is_dir()
    assert report.tracks_scanned == 0
    assert mock_mtp_client.tree() == ["Music/"]
