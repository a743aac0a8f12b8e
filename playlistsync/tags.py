"""
ID3 tag access for audio files.
Wraps mutagen so the scanner and staging processor only see read/remove/write.
"""
from pathlib import Path
from typing import Optional

from mutagen import MutagenError
from mutagen.id3 import ID3, ID3NoHeaderError


class TagReadError(Exception):
    """Raised when a file's tags cannot be read."""


class TagWriteError(Exception):
    """Raised when a file's tags cannot be written back."""


class TrackTags:
    """Tags of one audio file, read from and written back to disk."""

    def __init__(self, id3: ID3):
        self._id3 = id3

    @classmethod
    def read(cls, path: Path) -> "TrackTags":
        """
        Read the ID3 tag of a file.

        Args:
            path: Path to the audio file

        Returns:
            TrackTags instance

        Raises:
            TagReadError: If the file has no tag or it cannot be parsed
        """
        try:
            return cls(ID3(path))
        except ID3NoHeaderError as e:
            raise TagReadError(f"No ID3 tag in {path}") from e
        except (MutagenError, OSError) as e:
            raise TagReadError(f"Failed to read tags from {path}: {e}") from e

    def _text(self, frame_id: str) -> Optional[str]:
        frame = self._id3.get(frame_id)
        if frame is None or not frame.text:
            return None
        return str(frame.text[0])

    @property
    def artist(self) -> Optional[str]:
        return self._text("TPE1")

    @property
    def album(self) -> Optional[str]:
        return self._text("TALB")

    @property
    def title(self) -> Optional[str]:
        return self._text("TIT2")

    def remove(self, field: str) -> None:
        """Remove every frame of the given ID3 frame id."""
        self._id3.delall(field)

    def write(self, path: Path) -> None:
        """Persist the tag to the given file."""
        try:
            self._id3.save(path)
        except (MutagenError, OSError) as e:
            raise TagWriteError(f"Failed to write tags to {path}: {e}") from e
