import logging
from collections import defaultdict
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .hasher import FileHasher, file_size_or_zero


def find_exact_duplicates(paths: Sequence[Path],
                          max_workers: int = 1,
                          hasher: Optional[FileHasher] = None) -> Dict[str, List[Path]]:
    """
    Groups byte-identical files.

    Two-phase: bucket by size, then SHA-256 every member of buckets holding
    two or more files. Files with a unique size are never read.

    Returns:
        {digest: [paths...]} for every digest shared by 2+ paths. Members keep
        the order they had in `paths`.

    Raises:
        FileHashError: a file in a shared-size bucket could not be read.
    """
    hasher = hasher or FileHasher()

    # Unreadable sizes land in the 0 bucket together with empty files
    by_size: Dict[int, List[Path]] = defaultdict(list)
    for p in paths:
        by_size[file_size_or_zero(p)].append(Path(p))

    dup_groups: Dict[str, List[Path]] = {}
    hashed = 0

    for size, group in by_size.items():
        if len(group) < 2:
            continue

        digests = _hash_bucket(group, hasher, max_workers)
        hashed += len(group)

        by_hash: Dict[str, List[Path]] = defaultdict(list)
        for p, digest in zip(group, digests):
            by_hash[digest].append(p)

        for digest, members in by_hash.items():
            if len(members) > 1:
                dup_groups[digest] = members

    logging.debug(
        f"Duplicate scan: {len(paths)} candidates, {hashed} hashed, {len(dup_groups)} duplicate groups"
    )
    return dup_groups


def _hash_bucket(group: List[Path], hasher: FileHasher, max_workers: int) -> List[str]:
    """Digests for `group`, in the same order."""
    if max_workers <= 1 or len(group) < 2:
        return [hasher.full_sha256(p) for p in group]

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = [executor.submit(hasher.full_sha256, p) for p in group]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        for fut in futures:
            if fut in done and fut.exception() is not None:
                raise fut.exception()
        return [fut.result() for fut in futures]
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
