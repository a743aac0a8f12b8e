"""
Local library scanner.
Turns the playlists directory into an upload plan and device playlists.
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import AUDIO_EXTENSION, UNKNOWN_TAG
from .models import Playlist, Track, UploadPlan
from .tags import TagReadError, TrackTags
from .utils.names import sanitize_name


# Configure logger
logger = logging.getLogger(__name__)


class LibraryScanner:
    """Scans one folder per playlist into an artist/album upload plan."""

    def __init__(
        self,
        playlists_dir: Path,
        read_tags: Callable[[Path], TrackTags] = TrackTags.read
    ):
        """
        Initialize the scanner.

        Args:
            playlists_dir: Directory holding one sub-directory per playlist
            read_tags: Tag reader, replaceable for tests
        """
        self.playlists_dir = playlists_dir
        self.read_tags = read_tags

    def ensure_playlists_dir(self) -> bool:
        """
        Create the playlists directory if it does not exist yet.

        Returns:
            True if the directory was created
        """
        try:
            self.playlists_dir.mkdir()
        except FileExistsError:
            logger.debug(f"{self.playlists_dir} directory already exists, continuing")
            return False
        logger.info(f"Created empty playlists directory {self.playlists_dir}")
        return True

    def scan(self) -> Tuple[UploadPlan, List[Playlist]]:
        """
        Scan every playlist folder.

        Returns:
            Tuple of (upload_plan, playlists)

        Raises:
            FileNotFoundError: If the playlists directory does not exist
            RuntimeError: If the playlists directory cannot be read
        """
        if not self.playlists_dir.is_dir():
            raise FileNotFoundError(f"Playlists directory not found: {self.playlists_dir}")

        try:
            entries = sorted(self.playlists_dir.iterdir())
        except OSError as e:
            raise RuntimeError(f"Cannot read playlists directory {self.playlists_dir}: {e}") from e

        plan: UploadPlan = {}
        playlists: List[Playlist] = []

        for entry in entries:
            if not entry.is_dir():
                logger.warning(f"Skipping {entry.name}: not a playlist directory")
                continue

            logger.info(f"Found Playlist {entry.name}")
            playlists.append(self._scan_playlist(entry, plan))

        return plan, playlists

    def _scan_playlist(self, playlist_dir: Path, plan: UploadPlan) -> Playlist:
        """
        Scan the files of one playlist folder into the plan.

        Args:
            playlist_dir: Playlist folder
            plan: Upload plan to extend

        Returns:
            Playlist referencing the device paths of accepted tracks
        """
        playlist = Playlist(playlist_dir.name)

        try:
            files = sorted(playlist_dir.iterdir())
        except OSError as e:
            logger.error(f"Cannot read playlist {playlist_dir.name}: {e}")
            return playlist

        for path in files:
            track = self._scan_file(path)
            if track is None:
                continue

            album_tracks = plan.setdefault(track.artist, {}).setdefault(track.album, [])
            # The same file may sit in several playlists; upload it once
            kept = next((t for t in album_tracks if t.device_name == track.device_name), None)
            if kept is None:
                album_tracks.append(track)
            elif kept.source_path != track.source_path:
                logger.warning(
                    f"{track.source_path} maps to {track.device_path} like {kept.source_path}; "
                    f"only {kept.source_path} will be uploaded"
                )
            playlist.paths.append(track.device_path)

        return playlist

    def _scan_file(self, path: Path) -> Optional[Track]:
        """Build a Track for one file, or None if the file is skipped."""
        if not path.is_file() or not path.name.lower().endswith(AUDIO_EXTENSION):
            logger.warning(f"Skipping {path}: not an {AUDIO_EXTENSION} file")
            return None

        try:
            tags = self.read_tags(path)
            stat = path.stat()
        except (TagReadError, OSError) as e:
            logger.warning(f"Skipping {path}: {e}")
            return None

        artist = sanitize_name(tags.artist or UNKNOWN_TAG).upper()
        album = sanitize_name(tags.album or UNKNOWN_TAG).upper()

        return Track(
            source_path=path,
            artist=artist,
            album=album,
            filename=path.name,
            size=stat.st_size,
            modified=stat.st_mtime,
        )
