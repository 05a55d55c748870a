"""JSON / CSV report writers and the console summary.

Paths that are not valid UTF-8 reach here as surrogate escapes and are
written back as their original bytes.
"""

from __future__ import annotations
import csv
import json
from pathlib import Path

from .aggregate import RunAggregate

REPORT_NAME = "redaction-report.json"


def write_report(path: str | Path, aggregate: RunAggregate) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", errors="surrogateescape") as f:
        json.dump(aggregate.to_dict(), f, indent=2, ensure_ascii=False)
        f.write("\n")


def write_csv_report(path: str | Path, aggregate: RunAggregate) -> None:
    """One row per file, one column per label seen anywhere in the run."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    labels = aggregate.labels()
    with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["source", "target", "total_redactions", "skipped", *labels])
        for entry in aggregate.per_file:
            writer.writerow([
                entry.source,
                entry.target or "",
                entry.total,
                "true" if entry.skipped else "false",
                *(entry.counts.get(label, 0) for label in labels),
            ])


def print_summary(aggregate: RunAggregate, report_path: str | Path) -> None:
    print(f"Redacted {aggregate.file_count} files. Total redactions: {aggregate.total_redactions}")
    if aggregate.skipped_files:
        print(f"Skipped {aggregate.skipped_files} clean files")
    for label in aggregate.labels():
        print(f"  {label}: {aggregate.by_label[label]}")
    print(f"Report: {report_path}")
