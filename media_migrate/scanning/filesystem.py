import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional


@dataclass(frozen=True)
class WalkEntry:
    path: Path
    is_dir: bool


class DiskScanner:
    """
    Depth-first directory walker built on os.scandir.

    Entries are visited in a stable, case-insensitive name order so two walks
    over an unchanged tree yield the same sequence. Unreadable directories are
    logged, counted in `errors` and skipped; the walk itself never raises.
    """

    def __init__(self):
        self.errors = 0

    def walk(self,
             root: Path,
             descend: Optional[Callable[[Path], bool]] = None) -> Iterator[WalkEntry]:
        """
        Yields every file and directory below root (root itself excluded).

        Args:
            descend: Called for each directory; returning False yields the
                     directory but does not walk into it.
        """
        stack = [root]
        while stack:
            current = stack.pop()

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logging.warning(f"Walk error: {current}: {e}")
                self.errors += 1
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: (e.name.lower(), e.name))

            dirs = []
            for e in entries:
                try:
                    if e.is_dir(follow_symlinks=False):
                        path = Path(e.path)
                        yield WalkEntry(path, is_dir=True)
                        if descend is None or descend(path):
                            dirs.append(path)
                    elif e.is_file(follow_symlinks=False):
                        yield WalkEntry(Path(e.path), is_dir=False)
                except OSError as err:
                    logging.warning(f"Walk error: {e.path}: {err}")
                    self.errors += 1

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append(d)
