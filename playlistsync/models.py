"""
Models for playlist sync.
Contains the track, playlist and device entry structures plus the upload plan.
"""
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import DEVICE_MUSIC_ROOT, PLAYLIST_EXTENSION


# libmtp filetype tags (LIBMTP_filetype_t)
FILETYPE_FOLDER = 0
FILETYPE_MP3 = 2
FILETYPE_PLAYLIST = 43
FILETYPE_UNKNOWN = 44


class Track:
    """A local audio file scheduled for upload."""

    def __init__(
        self,
        source_path: Path,
        artist: str,
        album: str,
        filename: str,
        size: int,
        modified: float,
    ):
        self.source_path: Path = source_path
        self.artist: str = artist
        self.album: str = album
        self.filename: str = filename
        self.size: int = size
        self.modified: float = modified
        # Set by the staging processor once the sanitized copy exists
        self.staged_path: Optional[Path] = None

    @property
    def device_name(self) -> str:
        """File name the track is uploaded under."""
        return self.filename.upper()

    @property
    def device_path(self) -> str:
        """Absolute device path used inside playlist files."""
        return f"{DEVICE_MUSIC_ROOT}/{self.artist}/{self.album}/{self.filename}".upper()

    def __repr__(self) -> str:
        return f"Track({self.device_path!r})"


class Playlist:
    """An ordered list of device paths generated from one playlist folder."""

    def __init__(self, name: str, paths: Optional[List[str]] = None):
        self.name: str = name
        self.paths: List[str] = paths if paths is not None else []

    @property
    def device_name(self) -> str:
        return f"{self.name}{PLAYLIST_EXTENSION}".upper()

    def render(self) -> str:
        return "".join(f"{path}\n" for path in self.paths)

    def __repr__(self) -> str:
        return f"Playlist({self.name!r}, {len(self.paths)} tracks)"


class DeviceEntry:
    """A folder or file as reported by the device."""

    def __init__(
        self,
        id: int,
        parent_id: int,
        storage_id: int,
        name: str,
        filetype: int,
        size: int = 0,
        modified: int = 0,
    ):
        self.id: int = id
        self.parent_id: int = parent_id
        self.storage_id: int = storage_id
        self.name: str = name
        self.filetype: int = filetype
        self.size: int = size
        self.modified: int = modified

    @property
    def is_folder(self) -> bool:
        return self.filetype == FILETYPE_FOLDER

    def __repr__(self) -> str:
        return f"DeviceEntry(id={self.id}, name={self.name!r}, filetype={self.filetype})"


class SyncState(Enum):
    """Stages of a single sync run."""

    IDLE = "idle"
    SCANNING = "scanning"
    STAGING = "staging"
    WIPING = "wiping"
    REBUILDING = "rebuilding"
    UPLOADING_PLAYLISTS = "uploading_playlists"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


class SyncReport:
    """Outcome counters and skipped items of a sync run."""

    def __init__(self):
        self.tracks_scanned: int = 0
        self.tracks_uploaded: int = 0
        self.playlists_uploaded: int = 0
        self.entries_deleted: int = 0
        self.failures: List[Tuple[str, str]] = []

    def add_failure(self, item: str, reason: str) -> None:
        self.failures.append((item, reason))

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0

    @property
    def summary(self) -> str:
        lines = [
            f"  Scanned {self.tracks_scanned} tracks",
            f"  Deleted {self.entries_deleted} device entries",
            f"  Uploaded {self.tracks_uploaded} tracks",
            f"  Uploaded {self.playlists_uploaded} playlists",
        ]
        if self.failures:
            lines.append(f"  {len(self.failures)} items skipped after errors")
        return "\n".join(lines)


# Type definitions for the main data structures
AlbumMap = Dict[str, List[Track]]
UploadPlan = Dict[str, AlbumMap]
