import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .manifest import read_manifest, write_manifest
from .metadata.dates import DateResolver
from .metadata.extract import MetadataExtractor
from .models import ApplySummary, PlannedItem, PlanSummary, ReportSummary
from .organization.mover import FileMover
from .organization.planner import Planner
from .organization.transcode import FfmpegTranscoder
from .protocols import DateExtractor, Transcoder
from .reporting import ReportGenerator


class MediaMigrateApp:
    """
    The plan -> apply -> report pipeline.

    Stages only talk through the manifest file: apply and report read it
    back from disk and never share in-memory state with plan.
    """

    def __init__(self,
                 extractor: Optional[DateExtractor] = None,
                 transcoder: Optional[Transcoder] = None):
        self.extractor = extractor or MetadataExtractor()
        self.transcoder = transcoder or FfmpegTranscoder()

    def plan(self,
             input_root: Path,
             out_root: Path,
             manifest_path: Path,
             max_workers: int = 1) -> Tuple[List[PlannedItem], PlanSummary]:
        input_root = Path(input_root).resolve()
        out_root = Path(out_root).resolve()

        logging.info(f"Source: {input_root}")
        logging.info(f"Dest:   {out_root}")

        planner = Planner(DateResolver(self.extractor), max_workers=max_workers)
        items, summary = planner.build_plan(input_root, out_root)
        write_manifest(manifest_path, items)
        return items, summary

    def apply(self,
              manifest_path: Path,
              log_dir: Optional[Path] = None,
              dry_run: bool = False) -> ApplySummary:
        manifest_path = Path(manifest_path)
        items = read_manifest(manifest_path)
        log_dir = Path(log_dir) if log_dir else manifest_path.parent

        mover = FileMover(self.transcoder, log_dir)
        summary = mover.execute(items, dry_run=dry_run)
        logging.info(
            f"Apply complete: {summary.written} written, {summary.failed} failed, "
            f"{summary.skipped_existing} already present."
        )
        return summary

    def report(self,
               manifest_path: Path,
               validate_outputs: bool = False,
               csv_path: Optional[Path] = None) -> Tuple[ReportSummary, List[str]]:
        items = read_manifest(manifest_path)
        reporter = ReportGenerator(items, validate_outputs=validate_outputs)
        if csv_path:
            reporter.write_csv(csv_path)
        return reporter.build()
