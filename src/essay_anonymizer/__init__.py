"""Essay Anonymizer — ordered regex PII redaction for text documents."""

from .redactor import Redactor, redact_content
from .patterns import DisableRule, build_detectors, builtin_detectors, filter_detectors, load_names
from .mask import MaskConfig, apply_template, build_mask_config, hash_fragment
from .luhn import luhn_valid, luhn_valid_token
from .aggregate import RunAggregate
from .config import load_config, load_from_yaml
from .errors import ConfigurationError, InvalidPattern, RunLogError
from .types import Detector, RedactedText, RedactionOutcome

__all__ = [
    "Redactor", "redact_content",
    "DisableRule", "build_detectors", "builtin_detectors", "filter_detectors", "load_names",
    "MaskConfig", "apply_template", "build_mask_config", "hash_fragment",
    "luhn_valid", "luhn_valid_token",
    "RunAggregate",
    "load_config", "load_from_yaml",
    "ConfigurationError", "InvalidPattern", "RunLogError",
    "Detector", "RedactedText", "RedactionOutcome",
]
__version__ = "0.1.0"
