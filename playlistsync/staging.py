"""
Staging processor.
Copies the playlists tree into a working directory and sanitizes the copies.
"""
import logging
import shutil
from pathlib import Path
from typing import Callable, Iterable

from .config import AUDIO_EXTENSION, STAGING_PLAYLISTS_DIRNAME, STRIPPED_TAG_FIELDS
from .models import Track
from .tags import TagReadError, TagWriteError, TrackTags
from .utils.names import sanitize_name


# Configure logger
logger = logging.getLogger(__name__)


class StagingProcessor:
    """Owns the staging directory for the duration of one run."""

    def __init__(
        self,
        source_dir: Path,
        staging_dir: Path,
        read_tags: Callable[[Path], TrackTags] = TrackTags.read
    ):
        self.source_dir = source_dir
        self.staging_dir = staging_dir
        self.read_tags = read_tags

    @property
    def playlists_path(self) -> Path:
        """Directory receiving generated playlist files."""
        return self.staging_dir / STAGING_PLAYLISTS_DIRNAME

    def prepare(self) -> None:
        """
        Recreate the staging directory as a fresh copy of the source tree.

        Raises:
            RuntimeError: If the copy fails
        """
        if self.staging_dir.exists():
            logger.info(f"Removing stale staging directory {self.staging_dir}")
            try:
                shutil.rmtree(self.staging_dir)
            except OSError as e:
                raise RuntimeError(f"Cannot remove stale staging directory {self.staging_dir}: {e}") from e

        try:
            shutil.copytree(self.source_dir, self.staging_dir)
        except (OSError, shutil.Error) as e:
            raise RuntimeError(f"Failed to copy {self.source_dir} to {self.staging_dir}: {e}") from e

        logger.info(f"Copied {self.source_dir} to {self.staging_dir}")

    def sanitize(self, tracks: Iterable[Track]) -> None:
        """
        Strip volatile tags from the staged copy of every track and rename
        it after its title. Sets ``staged_path`` on each track.

        Args:
            tracks: Tracks accepted by the scanner

        Raises:
            RuntimeError: If any tag write or rename fails
        """
        for track in tracks:
            staged = self.staging_dir / track.source_path.relative_to(self.source_dir)
            try:
                track.staged_path = self._sanitize_file(staged)
            except (TagReadError, TagWriteError, OSError) as e:
                raise RuntimeError(f"Failed to sanitize staged file {staged}: {e}") from e

    def _sanitize_file(self, path: Path) -> Path:
        """
        Remove optional tag fields and rename the file after its title.

        Args:
            path: Staged file

        Returns:
            Path of the file after renaming
        """
        tags = self.read_tags(path)
        for field in STRIPPED_TAG_FIELDS:
            tags.remove(field)
        tags.write(path)

        if not tags.title:
            return path

        target = self._free_name(path, sanitize_name(tags.title))
        if target != path:
            path.rename(target)
            logger.debug(f"Renamed {path.name} to {target.name}")
        return target

    @staticmethod
    def _free_name(path: Path, stem: str) -> Path:
        """Return ``<stem>.mp3`` next to path, suffixed " (N)" if already taken."""
        target = path.with_name(f"{stem}{AUDIO_EXTENSION}")
        counter = 2
        while target.exists() and target != path:
            target = path.with_name(f"{stem} ({counter}){AUDIO_EXTENSION}")
            counter += 1
        return target

    def cleanup(self) -> bool:
        """
        Remove the staging directory if it exists.

        Returns:
            True if nothing is left behind
        """
        if not self.staging_dir.exists():
            return True

        try:
            shutil.rmtree(self.staging_dir)
        except OSError as e:
            logger.error(f"Failed to remove staging directory {self.staging_dir}: {e}")
            return False

        logger.info(f"Removed staging directory {self.staging_dir}")
        return True
