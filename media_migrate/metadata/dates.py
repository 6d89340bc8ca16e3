"""
Best-effort capture date resolution.

Each asset kind has a fixed chain of sources; the first one that yields a
timestamp wins and is recorded as the item's DateSource:

    Photo: EXIF (JPEG only) -> mtime -> none
    Video: container creation time -> mtime -> none
    DVD:   mtime of the DVD root folder -> none
"""
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .. import config
from ..models import DateSource, Kind
from ..protocols import DateExtractor
from ..scanning.classify import classify, is_jpeg

Resolved = Tuple[Optional[datetime], DateSource]


def file_mtime(path: Path) -> Optional[datetime]:
    """Modification time as a naive local datetime; None if unreadable."""
    try:
        ts = Path(path).stat().st_mtime
        return datetime.fromtimestamp(ts).replace(microsecond=0)
    except (OSError, OverflowError, ValueError):
        return None


def format_dt(dt: datetime) -> str:
    return dt.strftime(config.DATE_FORMAT)


class DateResolver:
    def __init__(self, extractor: DateExtractor):
        self.extractor = extractor

    def best_datetime_for_file(self, path: Path) -> Resolved:
        """
        Raises:
            MetadataExtractionError: embedded metadata exists but is unreadable.
        """
        kind = classify(path)

        if kind == Kind.PHOTO:
            if is_jpeg(path):
                dt = self.extractor.photo_datetime(path)
                if dt:
                    return dt, DateSource.EXIF
            return self._mtime_or_none(path)

        if kind == Kind.VIDEO:
            dt = self.extractor.video_datetime(path)
            if dt:
                return dt, DateSource.FFPROBE
            return self._mtime_or_none(path)

        return None, DateSource.NONE

    def best_datetime_for_dvd(self, dvd_root: Path) -> Resolved:
        return self._mtime_or_none(dvd_root)

    def _mtime_or_none(self, path: Path) -> Resolved:
        dt = file_mtime(path)
        if dt:
            return dt, DateSource.MTIME
        return None, DateSource.NONE
