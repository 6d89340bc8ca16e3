"""
DVD folder handling.

A DVD copied to disk is a folder holding a VIDEO_TS directory with many
VTS_NN_S.VOB files. The whole folder is planned as one item; the largest
title set (by bytes) is taken to be the main feature.
"""
import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional

from .. import config

# VTS_<title>_<segment>.VOB, segment 0 is the title's menu
VOB_NAME_RE = re.compile(r'^VTS_(\d{2})_(\d+)\.VOB$', re.IGNORECASE)
MIN_VOB_NAME_LEN = 10


def is_inside_video_ts(path: Path) -> bool:
    return any(part.upper() == config.VIDEO_TS_DIR for part in Path(path).parts)


def dvd_root_from_video_ts_dir(path: Path) -> Optional[Path]:
    path = Path(path)
    if path.name.upper() == config.VIDEO_TS_DIR:
        return path.parent
    return None


def find_video_ts_dir(dvd_root: Path) -> Optional[Path]:
    """Returns the VIDEO_TS child of dvd_root, matched case-insensitively."""
    exact = Path(dvd_root) / config.VIDEO_TS_DIR
    if exact.is_dir():
        return exact
    try:
        for child in sorted(Path(dvd_root).iterdir()):
            if child.name.upper() == config.VIDEO_TS_DIR and child.is_dir():
                return child
    except OSError:
        return None
    return None


def dvd_main_title_vobs(dvd_root: Path) -> List[Path]:
    """
    Returns the VOBs of the largest title set, in playback order.

    Raises OSError if the VIDEO_TS directory exists but cannot be listed.
    """
    video_ts = find_video_ts_dir(dvd_root)
    if video_ts is None:
        return []

    groups: Dict[str, List[Path]] = defaultdict(list)
    for path in video_ts.iterdir():
        name = path.name
        if len(name) < MIN_VOB_NAME_LEN:
            continue
        m = VOB_NAME_RE.match(name)
        if not m or int(m.group(2)) == 0:
            continue
        groups[name[:6].upper()].append(path)

    best: List[Path] = []
    best_size = 0
    best_key = None
    for key in sorted(groups):
        files = sorted(groups[key], key=lambda p: p.name)
        size = main_title_size(files)
        # Strictly greater over sorted keys: ties go to the lowest title number,
        # and title sets with no bytes never win
        if size > best_size:
            best, best_size, best_key = files, size, key

    if best_key is not None:
        logging.debug(f"DVD {dvd_root}: main title {best_key} ({len(best)} VOBs, {best_size} bytes)")
    return best


def main_title_size(vobs: List[Path]) -> int:
    total = 0
    for p in vobs:
        try:
            total += p.stat().st_size
        except OSError:
            pass
    return total
