"""Protocol definitions (interfaces) for the injectable collaborators."""
from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Sequence


class DateExtractor(Protocol):
    """Reads capture timestamps embedded in media files.

    Implementations return None when the file simply carries no usable date
    and raise MetadataExtractionError when the metadata cannot be read.

    Implementations:
    - MetadataExtractor: exifread for photos, ffprobe/pymediainfo for videos
    """

    @abstractmethod
    def photo_datetime(self, path: Path) -> Optional[datetime]:
        """EXIF capture time as a naive local datetime."""
        ...

    @abstractmethod
    def video_datetime(self, path: Path) -> Optional[datetime]:
        """Container creation time as a naive local datetime."""
        ...


class Transcoder(Protocol):
    """Produces an MP4 at `dst`. Raises TranscodeError on failure."""

    @abstractmethod
    def convert_video(self, src: Path, dst: Path) -> None:
        ...

    @abstractmethod
    def convert_dvd(self, vobs: Sequence[Path], dst: Path) -> None:
        """Concatenates the given title VOBs (playback order) into one file."""
        ...
