import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from ..exceptions import MediaMigrateError, MetadataExtractionError
from ..metadata.dates import DateResolver, format_dt
from ..models import (
    Action,
    Asset,
    DateSource,
    Kind,
    MediaKind,
    PlannedItem,
    PlanSummary,
)
from ..scanning.classify import classify
from ..scanning.dedupe import find_exact_duplicates
from ..scanning.dvd import (
    dvd_main_title_vobs,
    dvd_root_from_video_ts_dir,
    is_inside_video_ts,
    main_title_size,
)
from ..scanning.filesystem import DiskScanner
from ..scanning.hasher import file_size_or_zero
from .rules import DestinationPlanner, action_for_video


@dataclass
class _Pending:
    asset: Asset
    action: Action
    dt: Optional[datetime]
    source: DateSource


class Planner:
    """
    Walks an input tree once and produces the ordered list of PlannedItems.

    Order: photos and videos interleaved in walk order, then DVD roots sorted
    by path.
    """

    def __init__(self, resolver: DateResolver, max_workers: int = 1):
        self.resolver = resolver
        self.max_workers = max_workers

    def build_plan(self, input_root: Path, out_root: Path) -> Tuple[List[PlannedItem], PlanSummary]:
        """
        Raises:
            MediaMigrateError: input_root is not a directory.
            FileHashError: a duplicate candidate became unreadable while hashing.
        """
        input_root = Path(input_root)
        out_root = Path(out_root)
        if not input_root.is_dir():
            raise MediaMigrateError(f"Input root {input_root} is not a directory.")

        summary = PlanSummary()
        pending, dvd_roots = self._scan_files(input_root, out_root, summary)

        dup_of = self._find_duplicates(pending, summary)

        dests = DestinationPlanner(out_root)
        planned: List[PlannedItem] = []
        for p in pending + self._scan_dvds(dvd_roots, summary):
            canonical = dup_of.get(p.asset.path)
            if canonical is None:
                dst = dests.assign(p.asset.kind, p.asset.path, p.dt)
            else:
                # Duplicates produce no output; their path is informational only
                dst = dests.layout_path(p.asset.kind, p.asset.path, p.dt)

            if p.dt is None:
                summary.missing_date += 1

            planned.append(PlannedItem(
                kind=p.asset.kind,
                action=p.action,
                src=str(p.asset.path),
                dst=str(dst),
                best_dt=format_dt(p.dt) if p.dt else None,
                date_source=p.source,
                duplicate_of=str(canonical) if canonical is not None else None,
            ))
            summary.planned += 1

        logging.info(
            f"Planned {summary.planned} items "
            f"({summary.photos} photos, {summary.videos} videos, {summary.dvds} DVDs)."
        )
        return planned, summary

    # --- Walk ---

    def _scan_files(self,
                    input_root: Path,
                    out_root: Path,
                    summary: PlanSummary) -> Tuple[List[_Pending], Set[Path]]:
        scanner = DiskScanner()
        dvd_roots: Set[Path] = set()
        pending: List[_Pending] = []

        root_dvd = dvd_root_from_video_ts_dir(input_root)
        if root_dvd is not None:
            dvd_roots.add(root_dvd)

        skip_out = out_root.resolve() if out_root.exists() else out_root

        def descend(d: Path) -> bool:
            # VIDEO_TS trees are planned as whole DVDs; the archive is never an input
            if dvd_root_from_video_ts_dir(d) is not None:
                return False
            return d != out_root and d.resolve() != skip_out

        logging.info(f"Scanning {input_root}...")
        for entry in scanner.walk(input_root, descend=descend):
            path = entry.path
            if entry.is_dir:
                dvd_root = dvd_root_from_video_ts_dir(path)
                if dvd_root is not None:
                    dvd_roots.add(dvd_root)
                continue

            if root_dvd is not None or is_inside_video_ts(path):
                summary.ignored += 1
                continue

            kind = classify(path)
            if kind == Kind.PHOTO:
                summary.photos += 1
                pending.append(self._plan_file(path, MediaKind.PHOTO, Action.COPY, summary))
            elif kind == Kind.VIDEO:
                summary.videos += 1
                action = action_for_video(path)
                if action == Action.CONVERT_VIDEO:
                    summary.need_convert_video += 1
                pending.append(self._plan_file(path, MediaKind.VIDEO, action, summary))
            else:
                summary.ignored += 1

        summary.walk_errors = scanner.errors
        return pending, dvd_roots

    def _plan_file(self, path: Path, kind: MediaKind, action: Action, summary: PlanSummary) -> _Pending:
        label = kind.value.lower()
        try:
            dt, source = self.resolver.best_datetime_for_file(path)
        except MetadataExtractionError as e:
            note = "(exif error)" if kind == MediaKind.PHOTO else "(error)"
            logging.warning(f"({label}) {note} {path} [ {e} ]")
            summary.metadata_errors += 1
            dt, source = None, DateSource.NONE

        if dt:
            logging.debug(f"({label}) {format_dt(dt)}    {path}")
        else:
            logging.debug(f"({label}) (no date)    {path}")

        asset = Asset(path=path, kind=kind, size=file_size_or_zero(path))
        return _Pending(asset=asset, action=action, dt=dt, source=source)

    def _scan_dvds(self, dvd_roots: Set[Path], summary: PlanSummary) -> List[_Pending]:
        result: List[_Pending] = []
        for dvd_root in sorted(dvd_roots):
            summary.dvds += 1
            summary.need_convert_dvd += 1

            dt, source = self.resolver.best_datetime_for_dvd(dvd_root)

            try:
                vobs = dvd_main_title_vobs(dvd_root)
            except OSError as e:
                logging.warning(f"Cannot list VOBs in {dvd_root}: {e}")
                vobs = []
            if not vobs:
                summary.dvds_without_main_title += 1
                logging.warning(f"(dvd) no main title VOBs found in {dvd_root}")

            size = main_title_size(vobs)
            when = format_dt(dt) if dt else "(no date)"
            logging.debug(f"(dvd)  {when}  {dvd_root}  ({len(vobs)} VOBs, {size} bytes)")

            asset = Asset(path=dvd_root, kind=MediaKind.DVD, size=size)
            result.append(_Pending(asset=asset, action=Action.CONVERT_DVD, dt=dt, source=source))
        return result

    # --- Duplicates ---

    def _find_duplicates(self, pending: List[_Pending], summary: PlanSummary) -> Dict[Path, Path]:
        """
        Maps each duplicate path to its canonical path.

        The canonical member of a group is the one earliest in plan order, so
        every back-reference points at an item already written to the manifest.
        """
        dup_of: Dict[Path, Path] = {}
        for kind in (MediaKind.PHOTO, MediaKind.VIDEO):
            paths = [p.asset.path for p in pending if p.asset.kind == kind]
            if len(paths) < 2:
                continue

            logging.info(f"Checking {len(paths)} {kind.value.lower()}s for exact duplicates...")
            groups = find_exact_duplicates(paths, max_workers=self.max_workers)

            order = {path: i for i, path in enumerate(paths)}
            for digest in sorted(groups):
                members = sorted(groups[digest], key=order.__getitem__)
                canonical = members[0]
                for dup in members[1:]:
                    dup_of[dup] = canonical
                    logging.debug(f"Duplicate: {dup} == {canonical}")

            found = sum(len(g) - 1 for g in groups.values())
            if kind == MediaKind.PHOTO:
                summary.duplicate_photos = found
            else:
                summary.duplicate_videos = found
        return dup_of
