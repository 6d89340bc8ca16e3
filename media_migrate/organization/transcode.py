import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from .. import config
from ..exceptions import TranscodeError


class FfmpegTranscoder:
    """
    Re-encodes AVIs and DVD title sets to H.264/AAC MP4 with ffmpeg.

    ffmpeg writes straight to `dst`; the Apply Engine hands in a temporary
    path and renames it into place once this returns.
    """

    def __init__(self, ffmpeg_bin: str = config.FFMPEG_BIN):
        self.ffmpeg_bin = ffmpeg_bin

    def convert_video(self, src: Path, dst: Path) -> None:
        cmd = [
            self.ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
            "-i", str(src),
            *config.FFMPEG_ENCODE_ARGS,
            "-f", "mp4", str(dst),
        ]
        self._run(cmd, src)

    def convert_dvd(self, vobs: Sequence[Path], dst: Path) -> None:
        if not vobs:
            raise TranscodeError("no main title VOBs to convert")
        # VOB segments of one title are a single MPEG-PS stream split on disk
        concat = "concat:" + "|".join(str(v) for v in vobs)
        cmd = [
            self.ffmpeg_bin, "-hide_banner", "-loglevel", "error", "-y",
            "-i", concat,
            *config.FFMPEG_DVD_MAP_ARGS,
            *config.FFMPEG_ENCODE_ARGS,
            "-f", "mp4", str(dst),
        ]
        self._run(cmd, vobs[0].parent.parent)

    def _run(self, cmd: List[str], src: Path) -> None:
        logging.debug(f"Running: {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, check=False, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise TranscodeError(f"ffmpeg not found: {self.ffmpeg_bin}") from e
        except OSError as e:
            raise TranscodeError(f"ffmpeg exec error: {e}") from e

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else f"ffmpeg exited {proc.returncode}"
            raise TranscodeError(f"{src}: {detail}")
