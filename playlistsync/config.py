"""
Configuration settings for playlist sync.
"""
import os
from pathlib import Path

# Local directories
PLAYLISTS_DIR = Path(os.environ.get("PLAYLISTSYNC_PLAYLISTS_DIR", "playlists"))
STAGING_DIR = Path(os.environ.get("PLAYLISTSYNC_STAGING_DIR", "tmp"))
STAGING_PLAYLISTS_DIRNAME = "playlists"

LOG_DIR = Path(os.environ.get(
    "PLAYLISTSYNC_LOG_DIR",
    Path.home() / ".local" / "state" / "playlistsync"
))
LOG_FILE = LOG_DIR / "sync.log"

# Device settings
GARMIN_VENDOR_ID = 2334
MUSIC_FOLDER_NAME = "Music"
DEVICE_MUSIC_ROOT = "0:/MUSIC"

# Library settings
AUDIO_EXTENSION = ".mp3"
PLAYLIST_EXTENSION = ".m3u8"
UNKNOWN_TAG = "Unknown"

# ID3 frames removed from staged copies: artwork, disc n/N, track n/N
STRIPPED_TAG_FIELDS = ("APIC", "TPOS", "TRCK")
