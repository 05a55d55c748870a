"""Redactor — the main API.  Ordered, in-place detector passes.

Usage:
    from essay_anonymizer import Redactor, build_detectors, build_mask_config

    redactor = Redactor(build_detectors(), build_mask_config())  # reusable, thread-safe
    result = redactor.redact("Email me at john@acme.com")
    print(result.text)           # "Email me at [REDACTED]"
    print(result.counts)         # {"email": 1}
"""

from __future__ import annotations
from typing import Callable, Iterable

from .luhn import luhn_valid_token
from .mask import MaskConfig
from .types import Detector, RedactedText

# Labels whose matches must pass a check before they are redacted.
# A failing match stays in the text verbatim and is not counted.
_VALIDATORS: dict[str, Callable[[str], bool]] = {
    "credit_card": luhn_valid_token,
}


def redact_content(
    content: str,
    detectors: Iterable[Detector],
    mask: MaskConfig,
) -> tuple[str, dict[str, int]]:
    """Apply every detector in order and return (text, counts by label).

    Each detector sees the text as left by the previous one.  Matches are
    leftmost-first and non-overlapping, and ``{n}`` counts from 1 within
    each detector's pass over this content.
    """
    counts: dict[str, int] = {}
    for det in detectors:
        label = det.label
        validate = _VALIDATORS.get(label)
        index = 0

        def _replace(m) -> str:
            nonlocal index
            raw = m.group()
            if validate is not None and not validate(raw):
                return raw
            index += 1
            return mask.render(label, raw, index)

        content = det.pattern.sub(_replace, content)
        if index:
            counts[label] = counts.get(label, 0) + index
    return content, counts


class Redactor:
    """Holds an immutable detector set and mask config.

    No per-call state lives on the instance, so one Redactor can serve many
    documents on many threads.
    """

    __slots__ = ("detectors", "mask")

    def __init__(self, detectors: Iterable[Detector], mask: MaskConfig | None = None) -> None:
        self.detectors: tuple[Detector, ...] = tuple(detectors)
        self.mask = mask or MaskConfig()

    @property
    def labels(self) -> list[str]:
        return [d.label for d in self.detectors]

    def redact(self, text: str) -> RedactedText:
        """Redact one document's content."""
        redacted, counts = redact_content(text, self.detectors, self.mask)
        return RedactedText(text=redacted, counts=counts)
