"""Configuration-time errors.

Both are fatal: they surface before any document is processed and the only
fix is to correct the configuration and rerun.
"""

from __future__ import annotations


class InvalidPattern(ValueError):
    """A custom regex or name could not be turned into a detector."""

    def __init__(self, raw: str, reason: str, kind: str = "custom regex") -> None:
        super().__init__(f"invalid {kind} {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason
        self.kind = kind


class ConfigurationError(ValueError):
    """Mask, run-log or config-file settings that cannot be used as given."""


class RunLogError(RuntimeError):
    """The run-log sink could not record the run."""
