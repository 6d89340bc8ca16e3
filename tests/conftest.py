import os
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from media_migrate.exceptions import TranscodeError
from media_migrate.models import Action, DateSource, MediaKind, PlannedItem


class FakeExtractor:
    """Deterministic stand-in for exifread/ffprobe.

    `dates` maps a file name to the datetime to return, or to an exception
    instance to raise. Unknown names return None ("no metadata").
    """

    def __init__(self, dates: Optional[Dict[str, object]] = None):
        self.dates = dates or {}
        self.calls: List[Path] = []

    def _lookup(self, path: Path):
        self.calls.append(path)
        value = self.dates.get(path.name)
        if isinstance(value, Exception):
            raise value
        return value

    def photo_datetime(self, path: Path) -> Optional[datetime]:
        return self._lookup(path)

    def video_datetime(self, path: Path) -> Optional[datetime]:
        return self._lookup(path)


class FakeTranscoder:
    """Writes a marker file instead of running ffmpeg."""

    def __init__(self, fail_on: Sequence[str] = ()):
        self.fail_on = set(fail_on)
        self.videos: List[Tuple[Path, Path]] = []
        self.dvds: List[Tuple[List[Path], Path]] = []

    def convert_video(self, src: Path, dst: Path) -> None:
        if src.name in self.fail_on:
            raise TranscodeError(f"{src}: simulated encoder crash")
        self.videos.append((src, dst))
        dst.write_bytes(b"mp4:" + src.read_bytes())

    def convert_dvd(self, vobs: Sequence[Path], dst: Path) -> None:
        if not vobs:
            raise TranscodeError("no main title VOBs to convert")
        root_name = vobs[0].parent.parent.name
        if root_name in self.fail_on:
            raise TranscodeError(f"{root_name}: simulated encoder crash")
        self.dvds.append((list(vobs), dst))
        dst.write_bytes(b"".join(v.read_bytes() for v in vobs))


def _set_mtime(path: Path, dt: datetime) -> None:
    ts = dt.timestamp()
    os.utime(path, (ts, ts))


def _make_file(path: Path, data: bytes = b"data", mtime: Optional[datetime] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    if mtime is not None:
        _set_mtime(path, mtime)
    return path


def _make_item(src: Path, dst: Path, kind=MediaKind.PHOTO, action=Action.COPY,
              best_dt: Optional[str] = "2020-01-02 03:04:05",
              date_source=DateSource.EXIF, duplicate_of: Optional[str] = None) -> PlannedItem:
    return PlannedItem(
        kind=kind,
        action=action,
        src=str(src),
        dst=str(dst),
        best_dt=best_dt,
        date_source=date_source,
        duplicate_of=duplicate_of,
    )


@pytest.fixture
def set_mtime():
    return _set_mtime


@pytest.fixture
def make_file():
    return _make_file


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def make_extractor():
    """Factory: make_extractor({"name.jpg": datetime or exception})."""
    return FakeExtractor


@pytest.fixture
def make_transcoder():
    """Factory: make_transcoder(fail_on=["name.avi"])."""
    return FakeTranscoder


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def transcoder():
    return FakeTranscoder()


@pytest.fixture
def dvd_tree(tmp_path):
    """A DVD folder whose VTS_01 title set outweighs VTS_02."""
    root = tmp_path / "src" / "Wedding DVD"
    vts = root / "VIDEO_TS"
    _make_file(vts / "VIDEO_TS.IFO", b"ifo")
    _make_file(vts / "VTS_01_0.VOB", b"m" * 5000)     # menu, largest file on purpose
    _make_file(vts / "VTS_01_1.VOB", b"a" * 300)
    _make_file(vts / "VTS_01_2.VOB", b"b" * 300)
    _make_file(vts / "VTS_02_1.VOB", b"c" * 400)
    _make_file(vts / "VTS_01_0.IFO", b"ifo")
    return root
