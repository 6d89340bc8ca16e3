"""
Configuration constants for the media migrator.
"""
import os
from pathlib import Path

# --- File Type Definitions ---
PHOTO_EXTS = {'jpg', 'jpeg', 'png'}
VIDEO_EXTS = {'mp4', 'avi', 'mov', 'm4v'}
DVD_EXTS = {'vob', 'ifo', 'bup'}

# Only these carry EXIF worth reading
JPEG_EXTS = {'jpg', 'jpeg'}

# Videos in these containers are re-encoded instead of copied
CONVERT_VIDEO_EXTS = {'avi'}

VIDEO_TS_DIR = "VIDEO_TS"

# --- Metadata Parsing ---
DATE_TAGS = [
    'EXIF DateTimeOriginal',
    'EXIF DateTimeDigitized',
    'Image DateTime',
]

# ffprobe format/stream tags holding a container creation time
VIDEO_DATE_TAGS = [
    'creation_time',
    'com.apple.quicktime.creationdate',
    'date',
]

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# --- Hashing ---
HASH_CHUNK_SIZE = 1024 * 1024  # 1 MB chunks for reading

# --- Organization ---
CATEGORY_DIRS = {
    'Photo': 'Photos',
    'Video': 'Videos',
    'Dvd': 'DVDs',
}
UNKNOWN_DATE_DIR = "UnknownDate"
TRANSCODED_EXT = "mp4"

# --- Files & Defaults ---
DEFAULT_INPUT_ROOT = Path(".")
DEFAULT_OUT_ROOT = Path("./ExportSet")
DEFAULT_MANIFEST = Path("manifest.jsonl")
RUN_LOG_NAME = "media_migrate.log"

APPLY_OK_LOG = "apply_ok.log"
APPLY_FAIL_LOG = "apply_fail.log"
APPLY_DUPLICATES_LOG = "apply_duplicates_skipped.log"

MANIFEST_SCHEMA_VERSION = 1

# --- External Tools ---
FFMPEG_BIN = os.environ.get("MEDIA_MIGRATE_FFMPEG", "ffmpeg")
FFPROBE_BIN = os.environ.get("MEDIA_MIGRATE_FFPROBE", "ffprobe")

FFPROBE_ARGS = ["-v", "quiet", "-print_format", "json", "-show_format", "-show_streams"]
FFPROBE_TIMEOUT = 60  # seconds

# H.264/AAC in MP4 plays everywhere
FFMPEG_ENCODE_ARGS = [
    "-c:v", "libx264", "-preset", "medium", "-crf", "20",
    "-c:a", "aac", "-b:a", "192k",
    "-movflags", "+faststart",
]
# DVD audio streams are optional (some discs are silent)
FFMPEG_DVD_MAP_ARGS = ["-map", "0:v:0", "-map", "0:a:0?"]
