"""
Core synchronization pipeline.
Runs scan, stage, wipe, rebuild and playlist upload, then cleans up staging.
"""
import logging
from pathlib import Path
from typing import List, Optional

from .config import PLAYLISTS_DIR, STAGING_DIR
from .models import Playlist, SyncReport, SyncState, Track, UploadPlan
from .mtp_client import MTPClient, ProgressCallback
from .reconciler import DeviceReconciler
from .scanner import LibraryScanner
from .staging import StagingProcessor


# Configure logger
logger = logging.getLogger(__name__)


def iter_tracks(plan: UploadPlan) -> List[Track]:
    """Flatten an upload plan in artist, album, scan order."""
    return [
        track
        for albums in plan.values()
        for tracks in albums.values()
        for track in tracks
    ]


class PlaylistSync:
    """Replaces the device music library with the local playlists."""

    def __init__(
        self,
        mtp_client: Optional[MTPClient],
        storage_id: int = 0,
        playlists_dir: Path = PLAYLISTS_DIR,
        staging_dir: Path = STAGING_DIR,
        progress: Optional[ProgressCallback] = None,
        dry_run: bool = False
    ):
        """
        Initialize the pipeline.

        Args:
            mtp_client: Connected MTP client, may be None for a dry run
            storage_id: MTP storage ID holding the Music folder
            playlists_dir: Local directory with one folder per playlist
            staging_dir: Working directory for sanitized copies
            progress: Optional upload progress callback
            dry_run: Stop after staging without touching the device
        """
        if mtp_client is None and not dry_run:
            raise ValueError("An MTP client is required unless dry_run is set")

        self.mtp_client = mtp_client
        self.storage_id = storage_id
        self.dry_run = dry_run
        self.report = SyncReport()

        self.scanner = LibraryScanner(playlists_dir)
        self.staging = StagingProcessor(playlists_dir, staging_dir)
        self.reconciler = (
            DeviceReconciler(mtp_client, storage_id, self.report, progress)
            if mtp_client is not None else None
        )

        self.state = SyncState.IDLE
        self.failed_state: Optional[SyncState] = None
        self.plan: UploadPlan = {}
        self.playlists: List[Playlist] = []

    def _enter(self, state: SyncState) -> None:
        logger.debug(f"Sync state {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> SyncReport:
        """
        Run the whole pipeline once.

        Returns:
            SyncReport with counters and skipped items

        Raises:
            Any fatal error, after the staging directory has been cleaned up
        """
        try:
            self._run_steps()
        except BaseException:
            # Interrupts too, so the staging directory never outlives the run
            self.failed_state = self.state
            logger.error(f"Sync failed during {self.state.value}")
            raise
        finally:
            self._cleanup()
            self._enter(SyncState.DONE if self.failed_state is None else SyncState.FAILED)

        return self.report

    def _run_steps(self) -> None:
        self._enter(SyncState.SCANNING)
        self.scanner.ensure_playlists_dir()
        self.plan, self.playlists = self.scanner.scan()
        tracks = iter_tracks(self.plan)
        self.report.tracks_scanned = len(tracks)
        logger.info(
            f"Scanned {len(tracks)} tracks by {len(self.plan)} artists "
            f"in {len(self.playlists)} playlists"
        )

        self._enter(SyncState.STAGING)
        self.staging.prepare()
        self.staging.sanitize(tracks)

        if self.dry_run:
            logger.info("Dry run, leaving the device untouched")
            return

        self._enter(SyncState.WIPING)
        self.reconciler.locate_music_folder()
        self.reconciler.wipe()

        self._enter(SyncState.REBUILDING)
        self.reconciler.rebuild(self.plan)

        self._enter(SyncState.UPLOADING_PLAYLISTS)
        self.reconciler.upload_playlists(self.playlists, self.staging.playlists_path)

    def _cleanup(self) -> None:
        self._enter(SyncState.CLEANING_UP)
        self.staging.cleanup()
