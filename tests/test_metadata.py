import json
import subprocess
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from PIL import Image

import media_migrate.metadata.extract as extract_module
from media_migrate.exceptions import MetadataExtractionError
from media_migrate.metadata.dates import DateResolver, file_mtime, format_dt
from media_migrate.metadata.extract import MetadataExtractor
from media_migrate.models import DateSource

MTIME = datetime(2018, 5, 6, 7, 8, 9)


def local(dt_utc: datetime) -> datetime:
    return dt_utc.replace(tzinfo=timezone.utc).astimezone().replace(tzinfo=None)


# Mock MediaInfo class structure
class MockTrack:
    def __init__(self, **kwargs):
        self.track_type = "General"
        for k, v in kwargs.items():
            setattr(self, k, v)


class MockMediaInfo:
    tracks_to_return = []

    def __init__(self, tracks):
        self.tracks = tracks

    @classmethod
    def parse(cls, path):
        return cls(cls.tracks_to_return)


def fake_ffprobe(payload=None, returncode=0):
    def run(cmd, **kwargs):
        return SimpleNamespace(returncode=returncode, stdout=json.dumps(payload or {}), stderr="")
    return run


# --- DateResolver ---

def test_photo_prefers_exif_over_mtime(tmp_path, make_extractor, make_file):
    exif_dt = datetime(2019, 7, 4, 10, 20, 30)
    p = make_file(tmp_path / "a.jpg", mtime=MTIME)
    resolver = DateResolver(make_extractor({"a.jpg": exif_dt}))

    assert resolver.best_datetime_for_file(p) == (exif_dt, DateSource.EXIF)


def test_photo_without_exif_falls_back_to_mtime(tmp_path, make_extractor, make_file):
    p = make_file(tmp_path / "a.jpg", mtime=MTIME)

    assert DateResolver(make_extractor()).best_datetime_for_file(p) == (MTIME, DateSource.MTIME)


def test_png_never_reads_exif(tmp_path, make_extractor, make_file):
    p = make_file(tmp_path / "shot.png", mtime=MTIME)
    extractor = make_extractor({"shot.png": datetime(2001, 1, 1)})

    assert DateResolver(extractor).best_datetime_for_file(p) == (MTIME, DateSource.MTIME)
    assert extractor.calls == []


def test_video_with_container_date(tmp_path, make_extractor, make_file):
    created = datetime(2021, 6, 1, 12, 0, 0)
    p = make_file(tmp_path / "clip.mov", mtime=MTIME)

    result = DateResolver(make_extractor({"clip.mov": created})).best_datetime_for_file(p)

    assert result == (created, DateSource.FFPROBE)


def test_video_without_metadata_uses_mtime(tmp_path, make_extractor, make_file):
    p = make_file(tmp_path / "clip.mp4", b"not really a video", mtime=MTIME)

    assert DateResolver(make_extractor()).best_datetime_for_file(p) == (MTIME, DateSource.MTIME)


def test_extraction_error_propagates(tmp_path, make_extractor, make_file):
    p = make_file(tmp_path / "bad.jpg", mtime=MTIME)
    extractor = make_extractor({"bad.jpg": MetadataExtractionError("corrupt EXIF")})

    with pytest.raises(MetadataExtractionError):
        DateResolver(extractor).best_datetime_for_file(p)


def test_missing_file_resolves_to_none(tmp_path, make_extractor):
    result = DateResolver(make_extractor()).best_datetime_for_file(tmp_path / "gone.png")

    assert result == (None, DateSource.NONE)


def test_ignored_kind_has_no_date(tmp_path, make_extractor, make_file):
    p = make_file(tmp_path / "notes.txt", mtime=MTIME)

    assert DateResolver(make_extractor()).best_datetime_for_file(p) == (None, DateSource.NONE)


def test_dvd_uses_root_folder_mtime(dvd_tree, make_extractor, set_mtime):
    dvd_mtime = datetime(2005, 12, 24, 18, 0, 0)
    set_mtime(dvd_tree, dvd_mtime)

    result = DateResolver(make_extractor()).best_datetime_for_dvd(dvd_tree)

    assert result == (dvd_mtime, DateSource.MTIME)


def test_dvd_root_missing(tmp_path, make_extractor):
    assert DateResolver(make_extractor()).best_datetime_for_dvd(tmp_path / "nope") == (None, DateSource.NONE)


def test_file_mtime_and_format(tmp_path, make_file):
    p = make_file(tmp_path / "a.jpg", mtime=MTIME)

    assert file_mtime(p) == MTIME
    assert format_dt(MTIME) == "2018-05-06 07:08:09"
    assert file_mtime(tmp_path / "missing") is None


# --- MetadataExtractor: photos (exifread) ---

def test_exif_datetime_read_from_real_jpeg(tmp_path):
    p = tmp_path / "camera.jpg"
    exif = Image.Exif()
    exif[306] = "2019:07:04 10:20:30"  # IFD0 DateTime
    with Image.new("RGB", (8, 8), color="red") as im:
        im.save(p, exif=exif)

    assert MetadataExtractor().photo_datetime(p) == datetime(2019, 7, 4, 10, 20, 30)


def test_jpeg_without_exif_is_no_data(tmp_path):
    p = tmp_path / "plain.jpg"
    with Image.new("RGB", (8, 8), color="blue") as im:
        im.save(p)

    assert MetadataExtractor().photo_datetime(p) is None


def test_unreadable_photo_raises(tmp_path):
    with pytest.raises(MetadataExtractionError):
        MetadataExtractor().photo_datetime(tmp_path / "missing.jpg")


# --- MetadataExtractor: videos (ffprobe -> MediaInfo) ---

def test_ffprobe_creation_time(monkeypatch, tmp_path, make_file):
    vid = make_file(tmp_path / "clip.mp4")
    payload = {"format": {"tags": {"creation_time": "2021-06-01T12:00:00.000000Z"}}}
    monkeypatch.setattr(extract_module.subprocess, "run", fake_ffprobe(payload))

    dt = MetadataExtractor().video_datetime(vid)

    assert dt == local(datetime(2021, 6, 1, 12, 0, 0))


def test_ffprobe_stream_tag_used_when_format_has_none(monkeypatch, tmp_path, make_file):
    vid = make_file(tmp_path / "clip.mov")
    payload = {
        "format": {"tags": {"encoder": "Lavf"}},
        "streams": [{"codec_type": "video", "tags": {"creation_time": "2016-02-03T04:05:06Z"}}],
    }
    monkeypatch.setattr(extract_module.subprocess, "run", fake_ffprobe(payload))

    assert MetadataExtractor().video_datetime(vid) == local(datetime(2016, 2, 3, 4, 5, 6))


def test_ffprobe_epoch_zero_is_no_data(monkeypatch, tmp_path, make_file):
    vid = make_file(tmp_path / "clip.mp4")
    payload = {"format": {"tags": {"creation_time": "1904-01-01T00:00:00.000000Z"}}}
    monkeypatch.setattr(extract_module.subprocess, "run", fake_ffprobe(payload))
    MockMediaInfo.tracks_to_return = []
    monkeypatch.setattr(extract_module, "MediaInfo", MockMediaInfo)

    assert MetadataExtractor().video_datetime(vid) is None


def test_mediainfo_fallback_when_ffprobe_missing(monkeypatch, tmp_path, make_file):
    vid = make_file(tmp_path / "clip.mp4")

    def missing(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(extract_module.subprocess, "run", missing)
    MockMediaInfo.tracks_to_return = [MockTrack(encoded_date="UTC 2015-03-04 05:06:07")]
    monkeypatch.setattr(extract_module, "MediaInfo", MockMediaInfo)

    assert MetadataExtractor().video_datetime(vid) == local(datetime(2015, 3, 4, 5, 6, 7))


def test_unparseable_container_is_no_data(monkeypatch, tmp_path, make_file):
    vid = make_file(tmp_path / "clip.avi", b"garbage")
    monkeypatch.setattr(extract_module.subprocess, "run", fake_ffprobe(returncode=1))
    MockMediaInfo.tracks_to_return = []
    monkeypatch.setattr(extract_module, "MediaInfo", MockMediaInfo)

    assert MetadataExtractor().video_datetime(vid) is None


def test_ffprobe_timeout_is_an_error(monkeypatch, tmp_path, make_file):
    vid = make_file(tmp_path / "clip.mp4")

    def hang(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(extract_module.subprocess, "run", hang)

    with pytest.raises(MetadataExtractionError):
        MetadataExtractor().video_datetime(vid)


def test_missing_video_is_an_error(tmp_path):
    with pytest.raises(MetadataExtractionError):
        MetadataExtractor().video_datetime(tmp_path / "gone.mp4")
