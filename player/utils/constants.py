"""Named constants for Player. No magic numbers."""

import os as _os

# --- Application ---
APP_NAME = "Player"
APP_VERSION = "0.1.0"

# --- Recognized Audio Extensions ---
# Maps lower-cased extension (without dot) to the AudioFormat value.
# m4a is treated as the same container as m4b.
FORMAT_EXTENSIONS = {
    "mp3": "mp3",
    "m4b": "m4b",
    "m4a": "m4b",
}

# --- Directory Layout (under the player root) ---
DEFAULT_ROOT_DIRNAME = "Player"
IMPORT_DIRNAME = "Import"
MUSIC_DIRNAME = "Music"
IMPORTED_DIRNAME = "Imported"
PROBLEM_DIRNAME = "Problem"

# --- Manifest ---
DEFAULT_MANIFEST_FILENAME = "lib.jsonl"
LEGACY_MANIFEST_FILENAME = "lib.json"
MANIFEST_TEMP_SUFFIX = ".tmp"
MANIFEST_ENCODING = "utf-8"

# --- Duration Sanity ---
MILLISECONDS_PER_SECOND = 1000
SECONDS_PER_HOUR = 3600
MAX_DURATION_SECONDS = 24 * SECONDS_PER_HOUR

# --- Path Planning Fallbacks ---
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN_TITLE = "Unknown Title"
INVALID_PATH_CHARS = '/\\:*?"<>|'
PATH_CHAR_REPLACEMENT = "_"

# --- Repair ---
# Half the logical cores, minimum 2. Decoding is CPU-bound but ffmpeg runs
# as a subprocess, so threads are enough.
DEFAULT_REPAIR_WORKERS = max(2, (_os.cpu_count() or 4) // 2)
PROGRESS_POLL_INTERVAL_SECONDS = 0.1

# --- Paths ---
DEFAULT_CONFIG_FILENAME = "config.yaml"
DEFAULT_LOG_FILENAME = "player.log"

# --- Catalog ---
# Identifiers start at 1; the next identifier is always max(existing) + 1.
FIRST_CATALOG_ID = 1
