"""Detector set — built-in regexes plus custom regexes and name lists.

Order matters.  Each detector runs over the text already rewritten by the
ones before it, so an earlier, more specific detector hides its span from
every later, broader one.  Built-ins come first in a fixed order, then
custom regexes in the order given, then names.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .errors import InvalidPattern
from .types import Detector

logger = logging.getLogger(__name__)

CUSTOM_PREFIX = "custom:"
NAME_PREFIX = "name:"

# (label, regex). Order is observable behaviour; do not sort.
_BUILTINS: list[tuple[str, str]] = [
    ("email", r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"),

    # North-American numbers, optional +1 and (area) code
    ("phone", r"(?i)(?:\+?1[\s.\-]?)?(?:\(\s*\d{3}\s*\)|\d{3})[\s.\-]?\d{3}[\s.\-]?\d{4}"),

    ("ssn", r"\b\d{3}-\d{2}-\d{4}\b"),

    # M/D/YYYY or M-D-YYYY, years 1900–2099
    ("dob", r"\b(?:0?[1-9]|1[0-2])[/\-](?:0?[1-9]|[12]\d|3[01])[/\-](?:19|20)\d{2}\b"),

    # House number, one to six words on the same line, then a street type.
    # Words and gaps share no characters, so each start scans at most six words.
    ("street_address", (
        r"\b\d+[ \t]+(?:[A-Za-z0-9.\-]+[ \t]+){1,6}"
        r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way|Court|Ct)\b"
    )),

    ("url", r"\bhttps?://[^\s]+"),

    # Syntactic only: octets are not range-checked
    ("ip_address", r"\b(?:\d{1,3}\.){3}\d{1,3}\b"),

    # Candidate shape only; the Luhn check decides what is redacted
    ("credit_card", r"\b(?:\d[ \-]*?){13,19}\b"),
]

# ASCII mode: \d and \b mean plain digits and word characters here
_COMPILED: list[Detector] = [
    Detector(label=label, pattern=re.compile(regex, re.ASCII))
    for label, regex in _BUILTINS
]

BUILTIN_LABELS: tuple[str, ...] = tuple(label for label, _ in _BUILTINS)


def builtin_detectors() -> list[Detector]:
    """The eight built-in detectors, in priority order."""
    return list(_COMPILED)


def build_custom_detectors(custom_regex: Iterable[str]) -> list[Detector]:
    detectors: list[Detector] = []
    for raw in custom_regex:
        if not raw or not raw.strip():
            raise InvalidPattern(raw, "custom regex cannot be empty")
        try:
            pattern = re.compile(raw)
        except re.error as exc:
            raise InvalidPattern(raw, str(exc)) from exc
        detectors.append(Detector(label=CUSTOM_PREFIX + raw, pattern=pattern))
    return detectors


def build_name_detectors(names: Iterable[str]) -> list[Detector]:
    """One case-insensitive, whole-word detector per name."""
    detectors: list[Detector] = []
    for name in names:
        try:
            pattern = re.compile(r"\b" + re.escape(name) + r"\b", re.IGNORECASE)
        except re.error as exc:
            raise InvalidPattern(name, str(exc), kind="name") from exc
        detectors.append(Detector(label=NAME_PREFIX + name, pattern=pattern))
    return detectors


def build_detectors(
    custom_regex: Sequence[str] = (),
    names: Sequence[str] = (),
) -> list[Detector]:
    """Built-ins, then custom regexes, then names.

    Raises InvalidPattern on the first bad entry; nothing is returned
    partially built.
    """
    detectors = builtin_detectors()
    detectors.extend(build_custom_detectors(custom_regex))
    detectors.extend(build_name_detectors(names))
    logger.debug(
        "built %d detectors (%d custom, %d names)",
        len(detectors), len(custom_regex), len(names),
    )
    return detectors


def load_names(path: str | Path) -> list[str]:
    """Read a names file: one name per line, blanks ignored."""
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


# ----------------------------------------------------------------------
# Pattern filter
# ----------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DisableRule:
    """A parsed disable request: an exact label, or a prefix for ``foo*``."""
    label: str
    prefix: bool = False

    @classmethod
    def parse(cls, raw: str) -> DisableRule | None:
        value = raw.strip()
        if not value:
            return None
        if value.endswith("*"):
            return cls(label=value[:-1], prefix=True)
        return cls(label=value)

    def matches(self, label: str) -> bool:
        if self.prefix:
            return label.startswith(self.label)
        return label == self.label


def parse_disable_rules(values: Iterable[str | DisableRule]) -> list[DisableRule]:
    rules: list[DisableRule] = []
    for value in values:
        rule = value if isinstance(value, DisableRule) else DisableRule.parse(value)
        if rule is not None:
            rules.append(rule)
    return rules


def filter_detectors(
    detectors: Iterable[Detector],
    disabled: Iterable[str | DisableRule],
) -> list[Detector]:
    """Drop detectors matched by any disable rule, keeping the rest in order.

    A rule that matches nothing is fine (e.g. ``name:*`` with no names file).
    """
    rules = parse_disable_rules(disabled)
    if not rules:
        return list(detectors)
    kept: list[Detector] = []
    for det in detectors:
        if any(rule.matches(det.label) for rule in rules):
            logger.debug("disabled detector %s", det.label)
            continue
        kept.append(det)
    return kept
