"""Mask resolver — turns a match into its replacement text.

Three modes:
  - literal:  every match becomes the same string, e.g. ``[REDACTED]``
  - template: ``{label}``, ``{n}`` and ``{hash}`` are filled in per match
  - hashed:   ``{hash}`` is a salted SHA-256 prefix of the matched text, so the
              same value always maps to the same token, across documents and
              runs, without exposing the value itself

    cfg = build_mask_config(template="[{label}:{n}]")
    cfg.render("email", "a@b.com", 2)      # "[email:2]"
"""

from __future__ import annotations
import hashlib
import logging
import re
from dataclasses import dataclass

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MASK = "[REDACTED]"
DEFAULT_HASH_TEMPLATE = "[REDACTED:{label}:{hash}]"
DEFAULT_HASH_LENGTH = 8
MAX_HASH_LENGTH = 64    # hex length of a SHA-256 digest

HASH_PLACEHOLDER = "{hash}"
_PLACEHOLDER = re.compile(r"\{(label|n|hash)\}")


def hash_fragment(salt: str, raw: str, length: int = DEFAULT_HASH_LENGTH) -> str:
    """First ``length`` hex chars of sha256(salt + raw)."""
    digest = hashlib.sha256((salt + raw).encode("utf-8", "surrogateescape"))
    return digest.hexdigest()[:length]


def apply_template(
    template: str,
    label: str,
    n: int,
    hash_fragment: str | None = None,
) -> str:
    """Fill ``{label}``, ``{n}`` and ``{hash}`` in one pass.

    Substituted values are never rescanned, so a label that itself contains
    ``{n}`` comes through untouched.  ``{hash}`` stays literal when no
    fragment is given; any other brace text is left alone.
    """
    values = {"label": label, "n": str(n)}
    if hash_fragment is not None:
        values["hash"] = hash_fragment

    def _sub(m: re.Match) -> str:
        return values.get(m.group(1), m.group())

    return _PLACEHOLDER.sub(_sub, template)


@dataclass(frozen=True, slots=True)
class MaskConfig:
    """How matches are rendered.  Immutable; one per run."""
    literal: str = DEFAULT_MASK
    template: str | None = None
    hash_enabled: bool = False
    salt: str = ""
    hash_length: int = DEFAULT_HASH_LENGTH

    def __post_init__(self) -> None:
        if not 1 <= self.hash_length <= MAX_HASH_LENGTH:
            raise ConfigurationError(
                f"hash length must be between 1 and {MAX_HASH_LENGTH}, got {self.hash_length}"
            )
        if self.hash_enabled and (not self.template or HASH_PLACEHOLDER not in self.template):
            raise ConfigurationError("mask template must include {hash} when hashing is enabled")

    def render(self, label: str, raw: str, index: int) -> str:
        """Replacement for one match; ``index`` is 1-based within the pass."""
        if not self.template:
            return self.literal
        fragment = None
        if self.hash_enabled:
            fragment = hash_fragment(self.salt, raw, self.hash_length)
        return apply_template(self.template, label, index, fragment)


def build_mask_config(
    literal: str = DEFAULT_MASK,
    template: str | None = None,
    hash_enabled: bool = False,
    salt: str = "",
    hash_length: int = DEFAULT_HASH_LENGTH,
) -> MaskConfig:
    """Validate CLI/config values and build a MaskConfig.

    Hashing without a template gets DEFAULT_HASH_TEMPLATE.  Hashing with an
    explicit template that has no ``{hash}`` is ambiguous and rejected.
    """
    template = (template or "").strip() or None
    if hash_enabled:
        if template is None:
            template = DEFAULT_HASH_TEMPLATE
        elif HASH_PLACEHOLDER not in template:
            raise ConfigurationError(
                f"mask template {template!r} must include {{hash}} when hashing is enabled"
            )
        if not salt:
            logger.warning("hashing enabled with an empty salt; tokens are guessable for short values")
    elif template is not None and HASH_PLACEHOLDER in template:
        logger.warning("mask template uses {hash} but hashing is disabled; it will stay literal")
    return MaskConfig(
        literal=literal,
        template=template,
        hash_enabled=hash_enabled,
        salt=salt,
        hash_length=hash_length,
    )
