r"""YAML/dict config loader for essay-anonymizer.

Supports loading from a YAML file or a plain dict (for embedding in a
larger config).  Command-line flags override anything set here.

Example YAML:

    essay_anonymizer:
      extensions: .txt,.md
      mask: "[REDACTED]"
      mask_template: "[REDACTED:{label}:{hash}]"
      hash: true
      salt: change-me
      hash_length: 10
      names_file: names.txt
      custom_regex:
        - "\\bSTU-\\d{6}\\b"
      disable_patterns:
        - url
        - "name:*"
      exclude_dirs: [drafts]
      skip_clean: true
      workers: 4
      run_log:
        backend: sqlite          # "none", "sqlite" or "postgres"
        path: ~/.essay-anonymizer/runs.db
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .files import DEFAULT_EXTENSIONS
from .mask import DEFAULT_HASH_LENGTH, DEFAULT_MASK
from .runlog import DEFAULT_DB

RUN_LOG_BACKENDS = ("none", "sqlite", "postgres")


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline), filling defaults."""
    data = data or {}
    # Support nested under "essay_anonymizer" key or flat
    if "essay_anonymizer" in data:
        data = data["essay_anonymizer"] or {}

    extensions = data.get("extensions", DEFAULT_EXTENSIONS)
    if not isinstance(extensions, str):
        extensions = ",".join(_as_list(extensions))

    run_log = data.get("run_log") or {}
    backend = str(run_log.get("backend", "none")).lower()
    if backend not in RUN_LOG_BACKENDS:
        raise ConfigurationError(
            f"unknown run_log backend {backend!r} (expected one of {', '.join(RUN_LOG_BACKENDS)})"
        )

    try:
        hash_length = int(data.get("hash_length", DEFAULT_HASH_LENGTH))
        workers = int(data.get("workers", 1))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid numeric setting: {exc}") from exc

    return {
        "output": data.get("output") or "",
        "extensions": extensions,
        "mask": str(data.get("mask", DEFAULT_MASK)),
        "mask_template": data.get("mask_template") or "",
        "hash": bool(data.get("hash", False)),
        "salt": str(data.get("salt", os.environ.get("ESSAY_ANONYMIZER_SALT", ""))),
        "hash_length": hash_length,
        "names_file": data.get("names_file") or "",
        "custom_regex": _as_list(data.get("custom_regex")),
        "disable_patterns": _as_list(data.get("disable_patterns")),
        "exclude_dirs": _as_list(data.get("exclude_dirs")),
        "exclude_paths": _as_list(data.get("exclude_paths")),
        "skip_clean": bool(data.get("skip_clean", False)),
        "dry_run": bool(data.get("dry_run", False)),
        "workers": workers,
        "report": data.get("report") or "",
        "report_csv": data.get("report_csv") or "",
        "run_log_backend": backend,
        "run_log_path": run_log.get("path", DEFAULT_DB),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"{path}: top level must be a mapping")
    return load_config(data)
