"""Run-level fold of per-document outcomes."""

from __future__ import annotations
import threading
from dataclasses import dataclass, field
from datetime import datetime

from .types import RedactionOutcome


def _now() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


@dataclass
class RunAggregate:
    """Totals for one run.

    ``add`` may be called from worker threads; call ``finalize`` once all
    documents are in, after which the aggregate is read-only.
    """

    input_path: str
    output_path: str
    generated_at: str = field(default_factory=_now)
    by_label: dict[str, int] = field(default_factory=dict)
    per_file: list[RedactionOutcome] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False,
    )

    def add(self, outcome: RedactionOutcome) -> None:
        with self._lock:
            self.per_file.append(outcome)
            for label, count in outcome.counts.items():
                self.by_label[label] = self.by_label.get(label, 0) + count

    def finalize(self) -> RunAggregate:
        with self._lock:
            self.per_file.sort(key=lambda o: o.source)
        return self

    @property
    def file_count(self) -> int:
        return len(self.per_file)

    @property
    def total_redactions(self) -> int:
        return sum(o.total for o in self.per_file)

    @property
    def skipped_files(self) -> int:
        return sum(1 for o in self.per_file if o.skipped)

    def labels(self) -> list[str]:
        """Every label seen in the run, sorted."""
        return sorted(self.by_label)

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at,
            "input_path": self.input_path,
            "output_path": self.output_path,
            "files": self.file_count,
            "skipped_files": self.skipped_files,
            "total_redactions": self.total_redactions,
            "by_pattern": {label: self.by_label[label] for label in self.labels()},
            "details": [o.to_dict() for o in self.per_file],
        }
