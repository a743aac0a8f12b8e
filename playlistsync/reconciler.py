"""
Device reconciler.
Wipes the device music library and rebuilds it from an upload plan.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .config import MUSIC_FOLDER_NAME, PLAYLIST_EXTENSION
from .models import (
    DeviceEntry,
    FILETYPE_MP3,
    FILETYPE_PLAYLIST,
    Playlist,
    SyncReport,
    Track,
    UploadPlan,
)
from .mtp_client import MTPClient, ProgressCallback, ROOT_FOLDER_ID


# Configure logger
logger = logging.getLogger(__name__)


class DeviceReconciler:
    """Applies an upload plan to the Music folder of one device storage."""

    def __init__(
        self,
        mtp_client: MTPClient,
        storage_id: int,
        report: Optional[SyncReport] = None,
        progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the reconciler.

        Args:
            mtp_client: Connected MTP client (the device session)
            storage_id: Storage holding the Music folder
            report: Report collecting counters and skipped items
            progress: Optional upload progress callback
        """
        self.mtp_client = mtp_client
        self.storage_id = storage_id
        self.report = report if report is not None else SyncReport()
        self.progress = progress
        self.music_id: Optional[int] = None

    def locate_music_folder(self) -> int:
        """
        Find the top-level Music folder of the storage.

        Returns:
            Folder ID

        Raises:
            RuntimeError: If the storage has no Music folder
        """
        folder = self.mtp_client.find_folder(self.storage_id, ROOT_FOLDER_ID, MUSIC_FOLDER_NAME)
        if folder is None:
            raise RuntimeError(
                f"No '{MUSIC_FOLDER_NAME}' folder found on storage {self.storage_id}"
            )

        self.music_id = folder.id
        logger.debug(f"Found {MUSIC_FOLDER_NAME} folder with id {folder.id}")
        return folder.id

    def _music_folder(self) -> int:
        if self.music_id is None:
            return self.locate_music_folder()
        return self.music_id

    def wipe(self) -> None:
        """
        Delete every artist folder under Music, deepest entries first, plus
        playlist files left at the top level. Failures are logged and skipped.
        """
        music_id = self._music_folder()

        for entry in self.mtp_client.list_folder(self.storage_id, music_id):
            if entry.is_folder:
                self._delete_artist(entry)
            elif entry.name.lower().endswith(PLAYLIST_EXTENSION):
                self._delete(entry)

    def _delete_artist(self, artist: DeviceEntry) -> None:
        for entry in self.mtp_client.list_folder(self.storage_id, artist.id):
            if entry.is_folder:
                for track in self.mtp_client.list_folder(self.storage_id, entry.id):
                    self._delete(track)
            self._delete(entry)
        self._delete(artist)

    def _delete(self, entry: DeviceEntry) -> bool:
        try:
            self.mtp_client.delete(entry.id)
        except RuntimeError as e:
            logger.error(f"Failed to delete {entry.name} ({entry.id}): {e}")
            self.report.add_failure(entry.name, f"delete failed: {e}")
            return False

        logger.debug(f"Deleted {entry.name} ({entry.id})")
        self.report.entries_deleted += 1
        return True

    def rebuild(self, plan: UploadPlan) -> None:
        """
        Create artist and album folders and upload every track.
        A failed folder skips its subtree; a failed upload skips the track.

        Args:
            plan: Upload plan from the scanner
        """
        music_id = self._music_folder()

        for artist, albums in plan.items():
            artist_id = self._mkdir(music_id, artist)
            if artist_id is None:
                continue

            for album, tracks in albums.items():
                album_id = self._mkdir(artist_id, album, f"{artist}/{album}")
                if album_id is None:
                    continue

                for track in tracks:
                    self._upload_track(track, album_id)

    def _mkdir(self, parent_id: int, name: str, label: Optional[str] = None) -> Optional[int]:
        label = label or name
        try:
            folder_id = self.mtp_client.mkdir(parent_id, name, self.storage_id)
        except RuntimeError as e:
            logger.error(f"Failed to create folder {label}, skipping its contents: {e}")
            self.report.add_failure(label, f"create folder failed: {e}")
            return None

        logger.info(f"Created folder {label}")
        return folder_id

    def _upload_track(self, track: Track, album_id: int) -> bool:
        source = track.staged_path or track.source_path
        try:
            self.mtp_client.upload(
                source,
                album_id,
                self.storage_id,
                filename=track.device_name,
                filetype=FILETYPE_MP3,
                modified=track.modified,
                progress=self.progress,
            )
        except (RuntimeError, OSError) as e:
            logger.error(f"Failed to upload {track.device_path}: {e}")
            self.report.add_failure(track.device_path, f"upload failed: {e}")
            return False

        logger.info(f"Uploaded {track.device_path}")
        self.report.tracks_uploaded += 1
        return True

    def write_playlists(self, playlists: List[Playlist], directory: Path) -> Dict[str, Path]:
        """
        Write each playlist as a UTF-8 file with one device path per line.

        Args:
            playlists: Generated playlists
            directory: Local directory receiving the files

        Returns:
            Dict mapping playlist names to written files

        Raises:
            RuntimeError: If any file cannot be written
        """
        written = {}
        try:
            directory.mkdir(parents=True, exist_ok=True)
            for playlist in playlists:
                path = directory / f"{playlist.name}{PLAYLIST_EXTENSION}"
                path.write_text(playlist.render(), encoding="utf-8")
                written[playlist.name] = path
        except OSError as e:
            raise RuntimeError(f"Failed to write playlist files to {directory}: {e}") from e

        return written

    def upload_playlists(self, playlists: List[Playlist], directory: Path) -> None:
        """
        Write the playlists into the staging directory and upload them to
        the top level of the Music folder.

        Args:
            playlists: Generated playlists
            directory: Local staging directory for the playlist files
        """
        music_id = self._music_folder()
        written = self.write_playlists(playlists, directory)

        for playlist in playlists:
            try:
                self.mtp_client.upload(
                    written[playlist.name],
                    music_id,
                    self.storage_id,
                    filename=playlist.device_name,
                    filetype=FILETYPE_PLAYLIST,
                    progress=self.progress,
                )
            except (RuntimeError, OSError) as e:
                logger.error(f"Failed to upload playlist {playlist.name}: {e}")
                self.report.add_failure(playlist.device_name, f"upload failed: {e}")
                continue

            logger.info(f"Uploaded playlist {playlist.device_name}")
            self.report.playlists_uploaded += 1
