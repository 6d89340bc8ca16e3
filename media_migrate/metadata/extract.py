import json
import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import exifread
from pymediainfo import MediaInfo

from .. import config
from ..exceptions import MetadataExtractionError

# QuickTime/MP4 writers store 0 (1904 or 1970 epoch) when the clock was unset
MIN_VIDEO_YEAR = 1971


class MetadataExtractor:
    """
    Extracts embedded capture timestamps.

    Strategies:
      - Images: Uses 'exifread' (fast, Python-native).
      - Video: Uses 'ffprobe' (container tags) -> falls back to 'pymediainfo'.

    "No data" is returned as None. A file that cannot be opened, or whose
    metadata block is corrupt, raises MetadataExtractionError.
    """

    def __init__(self, ffprobe_bin: str = config.FFPROBE_BIN):
        self.ffprobe_bin = ffprobe_bin

    def photo_datetime(self, path: Path) -> Optional[datetime]:
        try:
            with path.open('rb') as f:
                # details=False speeds up processing significantly
                tags = exifread.process_file(f, details=False)
        except Exception as e:
            raise MetadataExtractionError(f"EXIF read failed for {path}: {e}") from e

        if not tags:
            # Not really an error, just means "no EXIF at all".
            logging.debug(f"No EXIF tags found for {path}")
            return None

        dt = self._parse_exif_date(tags)
        if dt is None:
            logging.debug(f"EXIF tags present but no datetime found for {path}")
        return dt

    def video_datetime(self, path: Path) -> Optional[datetime]:
        try:
            path.stat()
        except OSError as e:
            raise MetadataExtractionError(f"Cannot read {path}: {e}") from e

        # Strategy 1: ffprobe container tags
        probe = self._run_ffprobe(path)
        if probe is not None:
            dt = self._ffprobe_creation_time(probe)
            if dt:
                return dt

        # Strategy 2: MediaInfo (reads some camera formats ffprobe leaves untagged)
        try:
            dt = self._mediainfo_creation_time(path)
            if dt:
                return dt
        except Exception as e:
            logging.debug(f"MediaInfo failed for {path}: {e}")

        logging.debug(f"No embedded creation time for {path}")
        return None

    # --- Internal Extraction Helpers ---

    def _run_ffprobe(self, path: Path) -> Optional[Dict[str, Any]]:
        cmd = [self.ffprobe_bin, *config.FFPROBE_ARGS, str(path)]
        try:
            proc = subprocess.run(
                cmd, check=False, capture_output=True, text=True,
                timeout=config.FFPROBE_TIMEOUT,
            )
        except FileNotFoundError:
            # Only log at debug level to avoid spamming console if tool is missing
            logging.debug(f"ffprobe not found: {self.ffprobe_bin}")
            return None
        except subprocess.TimeoutExpired as e:
            raise MetadataExtractionError(f"ffprobe timed out on {path}") from e

        if proc.returncode != 0:
            # Unparseable container: treated as "no metadata"
            logging.debug(f"ffprobe exited {proc.returncode} for {path}")
            return None

        try:
            return json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            raise MetadataExtractionError(f"ffprobe output was not valid JSON for {path}: {e}") from e

    def _ffprobe_creation_time(self, probe: Dict[str, Any]) -> Optional[datetime]:
        sources: List[Dict[str, Any]] = [probe.get("format") or {}]
        streams = probe.get("streams") or []
        if isinstance(streams, list):
            sources.extend(s for s in streams if isinstance(s, dict))

        for source in sources:
            tags = source.get("tags") or {}
            if not isinstance(tags, dict):
                continue
            for tag in config.VIDEO_DATE_TAGS:
                dt = self._parse_flexible_date(tags.get(tag))
                if dt:
                    return dt
        return None

    def _mediainfo_creation_time(self, path: Path) -> Optional[datetime]:
        mi = MediaInfo.parse(str(path))
        for track in mi.tracks:
            if track.track_type != "General":
                continue
            # Priority: Recorded -> Encoded -> Tagged
            for field in ("recorded_date", "encoded_date", "tagged_date"):
                dt = self._parse_flexible_date(getattr(track, field, None))
                if dt:
                    return dt
        return None

    def _parse_exif_date(self, tags) -> Optional[datetime]:
        """Helper to parse standard EXIF date strings from exifread."""
        for tag in config.DATE_TAGS:
            if tag in tags:
                try:
                    # EXIF format is usually "YYYY:MM:DD HH:MM:SS"
                    dt_str = str(tags[tag]).strip().replace(':', '-', 2)
                    return datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S")
                except ValueError:
                    continue
        return None

    def _parse_flexible_date(self, value: Any) -> Optional[datetime]:
        """
        Handles ISO strings (ffprobe) and 'UTC YYYY-MM-DD HH:MM:SS' (MediaInfo).
        Returns a naive local datetime.
        """
        if not value:
            return None

        s = str(value).strip()
        is_utc = "UTC" in s
        s = s.replace("UTC", "").strip()

        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            try:
                clean = s.replace(":", "-", 2)
                # Drop sub-second precision, strptime rejects it
                if "." in clean:
                    clean = clean.split(".")[0]
                dt = datetime.strptime(clean, "%Y-%m-%d %H:%M:%S")
            except ValueError:
                return None

        if dt.tzinfo is None and is_utc:
            dt = dt.replace(tzinfo=timezone.utc)
        if dt.year < MIN_VIDEO_YEAR:
            return None
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return dt
