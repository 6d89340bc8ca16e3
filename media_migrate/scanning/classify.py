from pathlib import Path
from typing import Optional

from .. import config
from ..models import Kind


def normalize_extension(path: Path) -> Optional[str]:
    """Lower-cased extension without the dot, or None."""
    ext = Path(path).suffix
    if not ext or ext == '.':
        return None
    return ext[1:].lower()


def classify(path: Path) -> Kind:
    ext = normalize_extension(path)
    if ext in config.PHOTO_EXTS:
        return Kind.PHOTO
    if ext in config.VIDEO_EXTS:
        return Kind.VIDEO
    if ext in config.DVD_EXTS:
        return Kind.DVD_FRAGMENT
    return Kind.IGNORE


def is_jpeg(path: Path) -> bool:
    return normalize_extension(path) in config.JPEG_EXTS
