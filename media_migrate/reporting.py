import csv
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from . import config
from .models import PlannedItem, ReportSummary

CSV_HEADERS = [
    "Source Path",
    "Status",
    "Kind",
    "Action",
    "Destination Path",
    "Canonical Source (If Duplicate)",
    "Notes",
]


def _bump(counter: Dict[str, int], key: str):
    counter[key] = counter.get(key, 0) + 1


class ReportGenerator:
    """
    Audits a manifest, optionally against the live filesystem.

    All counts come from the items themselves; the notes are a readable
    listing for remediation and are never parsed back.
    """

    def __init__(self, items: List[PlannedItem], validate_outputs: bool = False):
        self.items = items
        self.validate_outputs = validate_outputs

    def build(self) -> Tuple[ReportSummary, List[str]]:
        s = ReportSummary()

        missing_dates: List[PlannedItem] = []
        duplicates: List[PlannedItem] = []
        missing_outputs: List[PlannedItem] = []

        for item in self.items:
            s.total += 1
            _bump(s.by_kind, item.kind.value)
            _bump(s.by_action, item.action.value)
            _bump(s.by_date_source, item.date_source.value)

            if item.best_dt is None:
                s.missing_date += 1
                missing_dates.append(item)

            if item.duplicate_of is not None:
                s.duplicates += 1
                duplicates.append(item)

            _bump(s.by_year, item.best_dt[:4] if item.best_dt else config.UNKNOWN_DATE_DIR)
            _bump(s.by_year_month, item.best_dt[:7] if item.best_dt else config.UNKNOWN_DATE_DIR)

            # Duplicates are expected to have no output of their own
            if self.validate_outputs and item.duplicate_of is None:
                status = output_status(Path(item.dst))
                if status is None:
                    s.outputs_missing += 1
                    missing_outputs.append(item)
                else:
                    s.outputs_exist += 1
                    if status == 0:
                        s.outputs_zero_bytes += 1

        notes: List[str] = []
        if missing_dates:
            notes.append("Missing dates:")
            for it in missing_dates:
                notes.append(
                    f"    - {it.kind.value} {it.action.value} src={it.src} (date_source={it.date_source.value})"
                )

        if duplicates:
            notes.append("Duplicate files (skipped in apply):")
            for it in duplicates:
                notes.append(f"    - {it.kind.value} src={it.src} dup_of {it.duplicate_of}")

        if self.validate_outputs and missing_outputs:
            notes.append("Missing output (dst does not exist):")
            for it in missing_outputs:
                notes.append(f"    - {it.kind.value} {it.action.value} dst={it.dst} (src={it.src})")

        return s, notes

    def write_csv(self, output_csv: Path) -> int:
        """One row per item with its status. Returns the row count."""
        output_csv = Path(output_csv)
        output_csv.parent.mkdir(parents=True, exist_ok=True)

        rows = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADERS)
            for item in self.items:
                writer.writerow(self._analyze_item(item))
                rows += 1

        logging.info(f"Report CSV: {output_csv} ({rows} rows)")
        return rows

    def _analyze_item(self, item: PlannedItem) -> list:
        notes = []
        if item.best_dt is None:
            notes.append("No capture date")

        if item.duplicate_of is not None:
            status = "Duplicate"
        elif not self.validate_outputs:
            status = "Planned"
        else:
            size = output_status(Path(item.dst))
            if size is None:
                status = "Output Missing"
            elif size == 0:
                status = "Output Zero Bytes"
            else:
                status = "Output Exists"

        return [
            item.src,
            status,
            item.kind.value,
            item.action.value,
            item.dst,
            item.duplicate_of or "",
            "; ".join(notes),
        ]


def output_status(dst: Path) -> Optional[int]:
    """Size of an existing output, or None when it does not exist."""
    if not dst.exists():
        return None
    try:
        return dst.stat().st_size
    except OSError:
        return 0


def build_report(items: List[PlannedItem], validate_outputs: bool = False) -> Tuple[ReportSummary, List[str]]:
    return ReportGenerator(items, validate_outputs).build()


def format_report(summary: ReportSummary, notes: List[str], validate_outputs: bool) -> str:
    lines = ["=== Manifest Report ===", f"Total planned items: {summary.total}"]

    def section(title: str, counts: Dict[str, int]):
        lines.append("")
        lines.append(title)
        for k in sorted(counts):
            lines.append(f"  {k:12} {counts[k]}")

    section("By kind:", summary.by_kind)
    section("By action:", summary.by_action)
    section("By date source:", summary.by_date_source)

    lines.append("")
    lines.append(f"Missing date: {summary.missing_date}")
    lines.append(f"Duplicates (input): {summary.duplicates}")

    section("By year (sorted):", summary.by_year)
    section("By year-month (sorted):", summary.by_year_month)

    if validate_outputs:
        lines.append("")
        lines.append("Output validation:")
        lines.append(f"  Outputs exist:      {summary.outputs_exist}")
        lines.append(f"  Outputs missing:    {summary.outputs_missing}")
        lines.append(f"  Outputs zero-bytes: {summary.outputs_zero_bytes}")

    if notes:
        lines.append("")
        lines.append("=== Notes ===")
        lines.extend(notes)

    return "\n".join(lines)
