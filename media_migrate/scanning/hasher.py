import hashlib
from pathlib import Path

from .. import config
from ..exceptions import FileHashError


class FileHasher:
    def __init__(self, chunk_size: int = config.HASH_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def full_sha256(self, path: Path) -> str:
        """Streams the whole file through SHA-256. High I/O cost."""
        h = hashlib.sha256()
        try:
            with open(path, 'rb') as f:
                while chunk := f.read(self.chunk_size):
                    h.update(chunk)
        except OSError as e:
            raise FileHashError(f"Cannot hash {path}: {e}") from e
        return h.hexdigest()


def file_size_or_zero(path: Path) -> int:
    try:
        return Path(path).stat().st_size
    except OSError:
        return 0
