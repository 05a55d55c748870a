"""Core types."""

from __future__ import annotations
import re
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Detector:
    """A labeled pattern that finds PII-shaped spans."""
    label: str             # e.g. "email", "name:Jordan", "custom:<raw>"
    pattern: re.Pattern


@dataclass(slots=True)
class RedactedText:
    """Result of running the detector set over one document."""
    text: str                                       # content with masks applied
    counts: dict[str, int] = field(default_factory=dict)  # label → redactions

    @property
    def total(self) -> int:
        return sum(self.counts.values())


@dataclass(frozen=True, slots=True)
class RedactionOutcome:
    """Per-document record consumed by the aggregate and report writers."""
    source: str
    target: str | None     # None when no output location applies (dry run)
    counts: dict[str, int]
    total: int
    skipped: bool = False  # skip-clean policy hit: no redactions, nothing written

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "target": self.target or "",
            "redactions": dict(sorted(self.counts.items())),
            "total": self.total,
            "skipped": self.skipped,
        }
