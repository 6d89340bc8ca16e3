from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class Kind(Enum):
    """Classifier result for a single filesystem entry."""
    PHOTO = 'photo'
    VIDEO = 'video'
    DVD_FRAGMENT = 'dvd_fragment'
    IGNORE = 'ignore'


# The values below are written verbatim into the manifest.

class MediaKind(str, Enum):
    PHOTO = 'Photo'
    VIDEO = 'Video'
    DVD = 'Dvd'


class Action(str, Enum):
    COPY = 'Copy'
    CONVERT_VIDEO = 'ConvertVideo'
    CONVERT_DVD = 'ConvertDvd'


class DateSource(str, Enum):
    EXIF = 'Exif'
    FFPROBE = 'Ffprobe'
    MTIME = 'Mtime'
    NONE = 'None'


@dataclass(frozen=True)
class Asset:
    """
    A file (or a DVD root folder treated as one unit) found during a walk.
    """
    path: Path
    kind: MediaKind
    size: int


@dataclass
class PlannedItem:
    """
    One unit of migration work: one source, one destination, one action.
    """
    kind: MediaKind
    action: Action
    src: str
    dst: str
    best_dt: Optional[str] = None       # "YYYY-MM-DD HH:MM:SS"
    date_source: DateSource = DateSource.NONE
    duplicate_of: Optional[str] = None  # src of the canonical item


@dataclass
class PlanSummary:
    planned: int = 0
    photos: int = 0
    videos: int = 0
    dvds: int = 0
    ignored: int = 0
    missing_date: int = 0
    need_convert_video: int = 0
    need_convert_dvd: int = 0
    duplicate_photos: int = 0
    duplicate_videos: int = 0
    metadata_errors: int = 0
    walk_errors: int = 0
    dvds_without_main_title: int = 0


@dataclass
class ApplySummary:
    total: int = 0
    copied: int = 0
    converted_video: int = 0
    converted_dvd: int = 0
    skipped_existing: int = 0
    skipped_duplicate: int = 0
    failed: int = 0
    dry_run: int = 0

    @property
    def written(self) -> int:
        return self.copied + self.converted_video + self.converted_dvd


@dataclass
class ReportSummary:
    total: int = 0
    by_kind: Dict[str, int] = field(default_factory=dict)
    by_action: Dict[str, int] = field(default_factory=dict)
    by_date_source: Dict[str, int] = field(default_factory=dict)
    missing_date: int = 0
    duplicates: int = 0
    by_year: Dict[str, int] = field(default_factory=dict)
    by_year_month: Dict[str, int] = field(default_factory=dict)

    # Only populated when outputs are validated
    outputs_exist: int = 0
    outputs_missing: int = 0
    outputs_zero_bytes: int = 0
