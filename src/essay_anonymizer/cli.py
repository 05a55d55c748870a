r"""CLI interface for essay-anonymizer.

Usage:
    # Redact a directory into ./redacted, report at ./redacted/redaction-report.json
    essay-anonymizer --input essays/

    # Preview only, with per-match hashed tokens and a CSV breakdown
    essay-anonymizer --input essays/ --dry-run --hash --salt s3cret \
        --report-csv counts.csv

    # Names list, an extra regex, and no URL or name redaction
    essay-anonymizer --input essays/ --names-file names.txt \
        --custom-regex '\bSTU-\d{6}\b' --disable-pattern url --disable-pattern 'name:*'

Settings may also come from a YAML file (--config); flags win.
"""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Any, Sequence

from .aggregate import RunAggregate
from .config import load_config, load_from_yaml
from .errors import ConfigurationError, InvalidPattern, RunLogError
from .files import (
    build_exclude_dirs,
    build_exclude_paths,
    collect_files,
    parse_extensions,
    process_files,
)
from .mask import build_mask_config
from .patterns import build_detectors, filter_detectors, load_names
from .redactor import Redactor
from .report import REPORT_NAME, print_summary, write_csv_report, write_report
from .runlog import PostgresRunLog, RunLog, SqliteRunLog, load_db_config

logger = logging.getLogger(__name__)

DRY_RUN_LABEL = "(dry-run)"


class CommandError(Exception):
    """A fatal problem with the run; printed and turned into exit status 1."""


def _merge(cfg: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    """Overlay command-line values on the file config."""
    merged = dict(cfg)
    for key in (
        "output", "extensions", "mask", "mask_template", "salt", "hash_length",
        "names_file", "workers", "report", "report_csv",
    ):
        value = getattr(args, key)
        if value is not None:
            merged[key] = value
    for key in ("hash", "skip_clean", "dry_run"):
        value = getattr(args, key)
        if value is not None:
            merged[key] = value
    for key in ("custom_regex", "disable_patterns", "exclude_dirs", "exclude_paths"):
        merged[key] = [*cfg.get(key, []), *(getattr(args, key) or [])]
    if args.db_log:
        merged["run_log_backend"] = "postgres"
    elif args.run_log:
        merged["run_log_backend"] = "sqlite"
        merged["run_log_path"] = args.run_log
    return merged


def _resolve_output(raw: str, dry_run: bool) -> str:
    out_dir = raw.strip()
    if dry_run:
        return os.path.abspath(out_dir) if out_dir else ""
    out_dir = os.path.abspath(out_dir or os.path.join(".", "redacted"))
    try:
        os.makedirs(out_dir, exist_ok=True)
    except OSError as exc:
        raise CommandError(f"failed to create output directory: {exc}") from exc
    return out_dir


def _build_redactor(cfg: dict[str, Any]) -> Redactor:
    mask = build_mask_config(
        literal=cfg["mask"],
        template=cfg["mask_template"],
        hash_enabled=cfg["hash"],
        salt=cfg["salt"],
        hash_length=cfg["hash_length"],
    )
    names: list[str] = []
    if cfg["names_file"]:
        try:
            names = load_names(cfg["names_file"])
        except OSError as exc:
            raise CommandError(f"failed to read names file: {exc}") from exc
    detectors = filter_detectors(
        build_detectors(cfg["custom_regex"], names),
        cfg["disable_patterns"],
    )
    if not detectors:
        raise CommandError("no patterns configured")
    return Redactor(detectors, mask)


def _open_run_log(cfg: dict[str, Any]) -> RunLog | None:
    backend = cfg["run_log_backend"]
    if backend == "sqlite":
        return SqliteRunLog(cfg["run_log_path"])
    if backend == "postgres":
        return PostgresRunLog(load_db_config())
    return None


def run(cfg: dict[str, Any], input_path: str) -> RunAggregate:
    """Execute one run from a merged config; returns the finalized aggregate."""
    if not input_path.strip():
        raise CommandError("--input is required")
    abs_input = os.path.abspath(input_path)
    if not os.path.exists(abs_input):
        raise CommandError(f"failed to access input path: {abs_input}")

    dry_run = cfg["dry_run"]
    redactor = _build_redactor(cfg)
    out_dir = _resolve_output(cfg["output"], dry_run)

    exclude_paths = build_exclude_paths(cfg["exclude_paths"])
    if os.path.isdir(abs_input):
        # Never feed our own output back in
        if out_dir and os.path.commonpath([abs_input, out_dir]) == abs_input and out_dir != abs_input:
            exclude_paths.add(os.path.relpath(out_dir, abs_input))
        files = collect_files(
            abs_input,
            parse_extensions(cfg["extensions"]),
            build_exclude_dirs(cfg["exclude_dirs"]),
            exclude_paths,
        )
    else:
        files = [abs_input]
    if not files:
        raise CommandError("no files to process")

    logger.info("redacting %d files with %d detectors", len(files), len(redactor.detectors))
    aggregate = RunAggregate(
        input_path=abs_input,
        output_path=out_dir or DRY_RUN_LABEL,
    )
    try:
        process_files(
            redactor, files, abs_input, out_dir or None, aggregate,
            dry_run=dry_run,
            skip_clean=cfg["skip_clean"],
            workers=max(1, cfg["workers"]),
        )
    except OSError as exc:
        raise CommandError(f"failed to redact {exc.filename or ''}: {exc}") from exc
    return aggregate


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="essay-anonymizer",
        description="Redact PII from text documents and report what was removed",
    )
    parser.add_argument("--input", default="", help="File or directory to redact")
    parser.add_argument("--output", help="Output directory for redacted files (default: ./redacted)")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--extensions", help="Comma-separated extensions to include when input is a directory")
    parser.add_argument("--mask", help="Text to replace redactions with")
    parser.add_argument("--mask-template", help="Mask template using {label}, {n} and {hash}")
    parser.add_argument("--hash", action=argparse.BooleanOptionalAction, help="Add a salted hash of each value to the mask")
    parser.add_argument("--salt", help="Salt for --hash (default: $ESSAY_ANONYMIZER_SALT)")
    parser.add_argument("--hash-length", type=int, help="Hex characters of the hash to keep (1-64)")
    parser.add_argument("--names-file", help="File with names to redact (one per line)")
    parser.add_argument("--custom-regex", action="append", help="Custom regex to redact (repeatable)")
    parser.add_argument("--disable-pattern", dest="disable_patterns", action="append",
                        help="Label to disable, or prefix ending in * (repeatable)")
    parser.add_argument("--exclude-dir", dest="exclude_dirs", action="append",
                        help="Directory name to skip (repeatable)")
    parser.add_argument("--exclude-path", dest="exclude_paths", action="append",
                        help="Relative path to skip (repeatable)")
    parser.add_argument("--skip-clean", action=argparse.BooleanOptionalAction,
                        help="Do not write files with no redactions")
    parser.add_argument("--dry-run", action=argparse.BooleanOptionalAction, help="Preview redactions without writing files")
    parser.add_argument("--workers", type=int, help="Files to redact in parallel")
    parser.add_argument("--report", help="JSON report path (default: <output>/" + REPORT_NAME + ")")
    parser.add_argument("--report-csv", help="Optional CSV report path")
    parser.add_argument("--run-log", help="Log the run summary to this SQLite file")
    parser.add_argument("--db-log", action="store_true", help="Log the run summary to PostgreSQL (GS_PG_* env vars)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_from_yaml(args.config) if args.config else load_config({})
        cfg = _merge(cfg, args)
        aggregate = run(cfg, args.input)

        report_path = cfg["report"]
        if not report_path:
            base = "." if cfg["dry_run"] else aggregate.output_path
            report_path = os.path.join(base, REPORT_NAME)
        write_report(report_path, aggregate)
        if cfg["report_csv"]:
            write_csv_report(cfg["report_csv"], aggregate)

        sink = _open_run_log(cfg)
        if sink is not None:
            try:
                sink.log(
                    aggregate,
                    report_path=report_path,
                    report_csv_path=cfg["report_csv"] or None,
                    dry_run=cfg["dry_run"],
                )
            finally:
                sink.close()
    except (CommandError, InvalidPattern, ConfigurationError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    except RunLogError as exc:
        sys.stderr.write(f"failed to log run: {exc}\n")
        return 1
    except OSError as exc:
        sys.stderr.write(f"I/O error: {exc}\n")
        return 1
    except UnicodeError as exc:
        sys.stderr.write(f"encoding error: {exc}\n")
        return 1

    print_summary(aggregate, report_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
