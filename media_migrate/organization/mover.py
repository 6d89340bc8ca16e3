import os
import shutil
import logging
from pathlib import Path
from typing import List, Optional, TextIO

from tqdm import tqdm

from .. import config
from ..exceptions import FileOperationError, TranscodeError
from ..models import Action, ApplySummary, PlannedItem
from ..protocols import Transcoder
from ..scanning.dvd import dvd_main_title_vobs


class ApplyLogs:
    """
    Plain-text outcome logs of one apply run, one line per item:

        apply_ok.log                    action, src, dst
        apply_fail.log                  action, src, dst, error
        apply_duplicates_skipped.log    src, canonical src, dst
    """

    def __init__(self, log_dir: Path, enabled: bool = True):
        self.log_dir = Path(log_dir)
        self.enabled = enabled
        self._ok: Optional[TextIO] = None
        self._fail: Optional[TextIO] = None
        self._dup: Optional[TextIO] = None

    def __enter__(self):
        if self.enabled:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            # Line buffered so an interrupted run keeps everything logged so far
            self._ok = open(self.log_dir / config.APPLY_OK_LOG, "w", encoding="utf-8", buffering=1)
            self._fail = open(self.log_dir / config.APPLY_FAIL_LOG, "w", encoding="utf-8", buffering=1)
            self._dup = open(self.log_dir / config.APPLY_DUPLICATES_LOG, "w", encoding="utf-8", buffering=1)
        return self

    def __exit__(self, exc_type, exc, tb):
        for f in (self._ok, self._fail, self._dup):
            if f is not None:
                f.close()
        self._ok = self._fail = self._dup = None

    def ok(self, item: PlannedItem):
        if self._ok:
            self._ok.write(f"{item.action.value}\t{item.src}\t{item.dst}\n")

    def fail(self, item: PlannedItem, error: Exception):
        if self._fail:
            message = str(error).replace("\n", " ")
            self._fail.write(f"{item.action.value}\t{item.src}\t{item.dst}\t{message}\n")

    def duplicate(self, item: PlannedItem):
        if self._dup:
            self._dup.write(f"{item.src}\t{item.duplicate_of}\t{item.dst}\n")


class FileMover:
    """
    Executes a manifest against the filesystem.

    Never overwrites: an existing destination is taken as already done, so
    re-running after an interruption only works on what is left.
    """

    def __init__(self, transcoder: Transcoder, log_dir: Path):
        self.transcoder = transcoder
        self.log_dir = Path(log_dir)

    def execute(self, items: List[PlannedItem], dry_run: bool = False) -> ApplySummary:
        summary = ApplySummary()

        logging.info(f"Applying {len(items)} items (DryRun={dry_run})...")

        with ApplyLogs(self.log_dir, enabled=not dry_run) as logs:
            for item in tqdm(items, desc="Applying", unit="item"):
                summary.total += 1
                dst = Path(item.dst)

                if item.duplicate_of is not None:
                    summary.skipped_duplicate += 1
                    logs.duplicate(item)
                    logging.debug(f"Skip duplicate {item.src} (of {item.duplicate_of})")
                    continue

                if dst.exists():
                    summary.skipped_existing += 1
                    logging.debug(f"Skip existing {dst}")
                    continue

                if dry_run:
                    summary.dry_run += 1
                    logging.info(f"[DRY RUN] {item.action.value} {item.src} -> {dst}")
                    continue

                try:
                    self._perform(item, Path(item.src), dst)
                except Exception as e:
                    summary.failed += 1
                    logs.fail(item, e)
                    logging.error(f"Failed to process {item.src} -> {dst}: {e}")
                    continue

                if item.action == Action.COPY:
                    summary.copied += 1
                elif item.action == Action.CONVERT_VIDEO:
                    summary.converted_video += 1
                else:
                    summary.converted_dvd += 1
                logs.ok(item)

        return summary

    def _perform(self, item: PlannedItem, src: Path, dst: Path):
        dst.parent.mkdir(parents=True, exist_ok=True)

        # Materialize under a temporary name; only complete outputs reach dst
        tmp = dst.with_name(f".{dst.stem}.partial{dst.suffix}")
        try:
            if item.action == Action.COPY:
                try:
                    shutil.copy2(src, tmp)
                except OSError as e:
                    raise FileOperationError(f"copy failed: {e}") from e
            elif item.action == Action.CONVERT_VIDEO:
                self.transcoder.convert_video(src, tmp)
            else:
                self.transcoder.convert_dvd(dvd_main_title_vobs(src), tmp)

            if not tmp.exists():
                raise TranscodeError(f"no output produced for {src}")
            os.replace(tmp, dst)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
