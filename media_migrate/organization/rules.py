from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Set

from .. import config
from ..models import Action, MediaKind
from ..scanning.classify import normalize_extension


def action_for_video(path: Path) -> Action:
    if normalize_extension(path) in config.CONVERT_VIDEO_EXTS:
        return Action.CONVERT_VIDEO
    return Action.COPY


def date_folder(base: Path, best_dt: Optional[datetime]) -> Path:
    """<base>/YYYY/YYYY-MM/YYYY-MM-DD, or <base>/UnknownDate."""
    if best_dt is None:
        return base / config.UNKNOWN_DATE_DIR
    return (
        base
        / best_dt.strftime("%Y")
        / best_dt.strftime("%Y-%m")
        / best_dt.strftime("%Y-%m-%d")
    )


def target_filename(kind: MediaKind, src: Path) -> str:
    if kind == MediaKind.DVD:
        # DVDs are named after their folder, not a content stem
        return f"{src.name or 'DVD'}.{config.TRANSCODED_EXT}"
    if kind == MediaKind.VIDEO:
        return f"{src.stem or 'file'}.{config.TRANSCODED_EXT}"
    ext = normalize_extension(src) or 'jpg'
    return f"{src.stem or 'file'}.{ext}"


class DestinationPlanner:
    """
    Computes archive paths:

        <out_root>/<Photos|Videos|DVDs>/<YYYY>/<YYYY-MM>/<YYYY-MM-DD>/<stem>.<ext>
        <out_root>/<Photos|Videos|DVDs>/UnknownDate/<stem>.<ext>
    """

    def __init__(self, out_root: Path):
        self.out_root = Path(out_root)
        # Cache used names to prevent collisions within a single run
        self.used_names: Dict[Path, Set[str]] = defaultdict(set)

    def layout_path(self, kind: MediaKind, src: Path, best_dt: Optional[datetime]) -> Path:
        """The layout rule alone, without collision handling."""
        base = self.out_root / config.CATEGORY_DIRS[kind.value]
        return date_folder(base, best_dt) / target_filename(kind, Path(src))

    def assign(self, kind: MediaKind, src: Path, best_dt: Optional[datetime]) -> Path:
        """Layout path made unique among the paths assigned so far."""
        path = self.layout_path(kind, src, best_dt)
        return self._resolve_collision(path.parent, path.name)

    def _resolve_collision(self, folder: Path, filename: str) -> Path:
        """Ensures filename is unique in the destination folder."""
        stem = Path(filename).stem
        ext = Path(filename).suffix
        candidate = filename
        counter = 1

        # Case-insensitive: the archive may live on a case-folding filesystem
        while candidate.lower() in self.used_names[folder]:
            candidate = f"{stem}_{counter}{ext}"
            counter += 1

        self.used_names[folder].add(candidate.lower())
        return folder / candidate
