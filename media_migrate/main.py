import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import MediaMigrateApp
from .exceptions import ManifestError, MediaMigrateError
from .models import ApplySummary, PlanSummary
from .reporting import format_report


def setup_logging(log_file: Optional[Path], verbose: bool):
    """Sets up logging to both console and a log file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="media-migrate",
        description="Migrate photos, videos and DVD folders into a date-partitioned archive.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None,
                   help=f"Run log path (default: {config.RUN_LOG_NAME} next to the manifest)")

    sub = p.add_subparsers(dest="command")

    plan = sub.add_parser("plan", help="Scan a tree and write the manifest")
    plan.add_argument("input_root", type=Path, nargs="?", default=config.DEFAULT_INPUT_ROOT,
                      help="Directory to scan (default: .)")
    plan.add_argument("out_root", type=Path, nargs="?", default=config.DEFAULT_OUT_ROOT,
                      help="Archive root (default: ./ExportSet)")
    plan.add_argument("--manifest", type=Path, default=config.DEFAULT_MANIFEST,
                      help=f"Manifest to write (default: {config.DEFAULT_MANIFEST})")
    plan.add_argument("--max-workers", type=int, default=1,
                      help="Threads for duplicate hashing (default: 1)")

    apply = sub.add_parser("apply", help="Execute a manifest (skips outputs that already exist)")
    apply.add_argument("manifest", type=Path, nargs="?", default=config.DEFAULT_MANIFEST,
                       help=f"Manifest to apply (default: {config.DEFAULT_MANIFEST})")
    apply.add_argument("--log-dir", type=Path, default=None,
                       help="Directory for apply_*.log (default: the manifest's directory)")
    apply.add_argument("--dry-run", action="store_true",
                       help="Report what would be done without touching the filesystem")

    report = sub.add_parser("report", help="Summarize a manifest")
    report.add_argument("manifest", type=Path, nargs="?", default=config.DEFAULT_MANIFEST,
                        help=f"Manifest to read (default: {config.DEFAULT_MANIFEST})")
    report.add_argument("--validate-outputs", action="store_true",
                        help="Check every planned destination on disk")
    report.add_argument("--csv", type=Path, default=None, help="Also write a per-item CSV report")

    return p


def format_plan_summary(summary: PlanSummary, manifest: Path) -> str:
    return "\n".join([
        "",
        f"Manifest: {manifest}",
        f"Planned items: {summary.planned}",
        f"Photos: {summary.photos}",
        f"Videos: {summary.videos}",
        f"DVDs (as items): {summary.dvds}",
        f"Ignored: {summary.ignored}",
        f"Missing date: {summary.missing_date}",
        f"Need convert (video): {summary.need_convert_video}",
        f"Need convert (DVD): {summary.need_convert_dvd}",
        f"Duplicate photos: {summary.duplicate_photos}",
        f"Duplicate videos: {summary.duplicate_videos}",
        f"Metadata errors: {summary.metadata_errors}",
        f"Walk errors: {summary.walk_errors}",
        f"DVDs without main title: {summary.dvds_without_main_title}",
    ])


def format_apply_summary(summary: ApplySummary) -> str:
    lines = [
        "",
        f"Total: {summary.total}",
        f"Copied: {summary.copied}",
        f"Converted (video): {summary.converted_video}",
        f"Converted (DVD): {summary.converted_dvd}",
        f"Skipped (exists): {summary.skipped_existing}",
        f"Skipped (duplicate): {summary.skipped_duplicate}",
        f"Failed: {summary.failed}",
    ]
    if summary.dry_run:
        lines.append(f"Dry run (not written): {summary.dry_run}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_usage(sys.stderr)
        return 2

    manifest = args.manifest
    log_file = args.log_file or manifest.parent / config.RUN_LOG_NAME
    setup_logging(log_file, args.verbose)

    app = MediaMigrateApp()

    try:
        if args.command == "plan":
            _, summary = app.plan(args.input_root, args.out_root, manifest, max_workers=args.max_workers)
            print(format_plan_summary(summary, manifest))

        elif args.command == "apply":
            summary = app.apply(manifest, log_dir=args.log_dir, dry_run=args.dry_run)
            print(format_apply_summary(summary))

        elif args.command == "report":
            summary, notes = app.report(manifest, validate_outputs=args.validate_outputs, csv_path=args.csv)
            print(format_report(summary, notes, args.validate_outputs))

    except ManifestError as e:
        logging.error(f"Manifest error: {e}")
        return 1
    except MediaMigrateError:
        logging.exception(f"Fatal error during {args.command}.")
        return 1
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
