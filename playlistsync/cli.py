"""
CLI entry point for playlist sync.
Connects to the device and runs the sync pipeline.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import GARMIN_VENDOR_ID, LOG_FILE, PLAYLISTS_DIR, STAGING_DIR
from .mtp_client import MTPClient
from .sync import PlaylistSync
from .utils.prompt import prompt_choice, prompt_yes_no, transfer_progress


logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging with the specified level."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE),
            logging.StreamHandler(sys.stdout)
        ]
    )
    logger.debug(f"Logging initialized at level {log_level}")


def select_storage(mtp_client: MTPClient, storage_id: Optional[int] = None) -> dict:
    """
    Get available storages and prompt user to select one if storage_id not provided.

    Args:
        mtp_client: Connected MTP client
        storage_id: Optional specific storage ID to use

    Returns:
        Selected storage info
    """
    storages = mtp_client.get_storages()

    # If storage ID provided, find matching storage
    if storage_id is not None:
        for storage in storages:
            if storage['id'] == storage_id:
                return storage
        raise RuntimeError(f"Storage ID {storage_id} not found on device")

    if len(storages) == 1:
        return storages[0]

    def format_storage(storage):
        capacity_gb = storage['capacity'] / (1024**3)
        free_space_gb = storage['free_space'] / (1024**3)
        return f"{storage['desc']} ({capacity_gb:.1f} GB, {free_space_gb:.1f} GB free)"

    return prompt_choice("Select storage:", storages, format_storage)


@click.command(name="playlistsync")
@click.option(
    "--playlists", "playlists_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=PLAYLISTS_DIR, show_default=True,
    help="Directory with one sub-directory per playlist"
)
@click.option(
    "--staging", "staging_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=STAGING_DIR, show_default=True,
    help="Working directory for sanitized copies (removed after the run)"
)
@click.option("--storage", "storage_id", type=int, metavar="ID", help="MTP storage ID (prompted if several)")
@click.option(
    "--vendor-id", type=int, default=GARMIN_VENDOR_ID, show_default=True,
    help="USB vendor id of the target device"
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Do not ask before wiping the device library")
@click.option("--dry-run", is_flag=True, help="Scan and stage only, leave the device untouched")
@click.option(
    "--log-level",
    type=click.Choice(['debug', 'info', 'warning', 'error', 'critical']),
    default='info', show_default=True,
    help="Set the logging level"
)
def main(playlists_dir, staging_dir, storage_id, vendor_id, assume_yes, dry_run, log_level):
    """Replace the music library of an MTP player with local playlists."""
    setup_logging(log_level)

    mtp_client = None
    try:
        if dry_run:
            engine = PlaylistSync(
                None,
                playlists_dir=playlists_dir,
                staging_dir=staging_dir,
                dry_run=True
            )
        else:
            mtp_client = MTPClient()
            device = mtp_client.find_device(vendor_id)
            mtp_client.open_device(device)

            storage = select_storage(mtp_client, storage_id)
            click.echo(f"Using storage: {storage['desc']}")

            if not assume_yes and not prompt_yes_no(
                "This deletes every artist folder under Music on the device. Continue?"
            ):
                click.echo("Aborted.")
                return

            engine = PlaylistSync(
                mtp_client,
                storage_id=storage['id'],
                playlists_dir=playlists_dir,
                staging_dir=staging_dir,
                progress=transfer_progress()
            )

        report = engine.run()

        click.echo(report.summary)
        for item, reason in report.failures:
            click.echo(f"  skipped {item}: {reason}")

    except Exception as e:
        logger.exception("Error in playlist sync")
        click.echo(f"Error: {str(e)}")
        sys.exit(1)

    finally:
        if mtp_client is not None:
            mtp_client.close()


if __name__ == "__main__":
    main()
