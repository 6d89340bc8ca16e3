"""
Line-delimited JSON manifest: the only state handed from plan to apply/report.

One object per line, in plan order:

    {"schema_version": 1, "kind": "Photo", "action": "Copy", "src": "...",
     "dst": "...", "best_dt": "2020-01-02 03:04:05", "date_source": "Exif",
     "duplicate_of": null}

Readers ignore unknown keys and default the optional ones, so later schema
versions can add fields without breaking older manifests.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List

from . import config
from .exceptions import ManifestError
from .models import Action, DateSource, MediaKind, PlannedItem

REQUIRED_FIELDS = ('kind', 'action', 'src', 'dst')


def item_to_dict(item: PlannedItem) -> Dict[str, Any]:
    return {
        "schema_version": config.MANIFEST_SCHEMA_VERSION,
        "kind": item.kind.value,
        "action": item.action.value,
        "src": item.src,
        "dst": item.dst,
        "best_dt": item.best_dt,
        "date_source": item.date_source.value,
        "duplicate_of": item.duplicate_of,
    }


def item_from_dict(data: Any) -> PlannedItem:
    """Raises ValueError on a structurally invalid record."""
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")

    missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
    if missing:
        raise ValueError(f"missing field(s): {', '.join(missing)}")

    version = data.get("schema_version", 1)
    if not isinstance(version, int) or version > config.MANIFEST_SCHEMA_VERSION:
        raise ValueError(f"unsupported schema_version {version!r}")

    for key in ("src", "dst"):
        if not isinstance(data[key], str):
            raise ValueError(f"{key} must be a string")
    for key in ("best_dt", "duplicate_of"):
        value = data.get(key)
        if value is not None and (not isinstance(value, str) or not value):
            raise ValueError(f"{key} must be a non-empty string or null")

    return PlannedItem(
        kind=MediaKind(data["kind"]),
        action=Action(data["action"]),
        src=data["src"],
        dst=data["dst"],
        best_dt=data.get("best_dt"),
        date_source=DateSource(data.get("date_source", DateSource.NONE.value)),
        duplicate_of=data.get("duplicate_of"),
    )


def write_manifest(path: Path, items: Iterable[PlannedItem]) -> int:
    """Writes items one JSON object per line. Returns the number written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    # Write then rename so a crash never leaves a half-written manifest behind
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        for item in items:
            f.write(json.dumps(item_to_dict(item), ensure_ascii=False))
            f.write("\n")
            count += 1
    tmp.replace(path)

    logging.info(f"Manifest: {path} ({count} items)")
    return count


def iter_manifest(path: Path) -> Iterator[PlannedItem]:
    """
    Yields items line by line. Blank lines are skipped.

    Raises:
        ManifestError: the file cannot be opened, or a line does not parse
                       (carries the 1-based line number).
    """
    path = Path(path)
    try:
        f = path.open("r", encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Cannot open manifest {path}: {e}") from e

    with f:
        try:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    yield item_from_dict(json.loads(line))
                except ValueError as e:
                    # json.JSONDecodeError is a ValueError too
                    raise ManifestError(f"parse json: {e}", line_number=line_number) from e
        except UnicodeDecodeError as e:
            raise ManifestError(f"Manifest {path} is not valid UTF-8: {e}") from e


def read_manifest(path: Path) -> List[PlannedItem]:
    """All-or-nothing read: any bad line raises and no items are returned."""
    return list(iter_manifest(path))
