"""Document discovery and per-file I/O around the redaction pass."""

from __future__ import annotations
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, Sequence

from .aggregate import RunAggregate
from .redactor import Redactor
from .types import RedactionOutcome

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = ".txt,.md,.csv"

# Arbitrary bytes survive a read/redact/write round trip
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def parse_extensions(raw: str | Iterable[str]) -> set[str]:
    """``"txt, .md ,csv"`` → ``{".txt", ".md", ".csv"}``."""
    parts = raw.split(",") if isinstance(raw, str) else raw
    result: set[str] = set()
    for part in parts:
        ext = part.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        result.add(ext)
    return result


def build_exclude_dirs(values: Iterable[str]) -> set[str]:
    """Directory base names to prune anywhere in the tree."""
    return {os.path.basename(v.strip().rstrip("/\\")) for v in values if v.strip()}


def build_exclude_paths(values: Iterable[str]) -> set[str]:
    """Paths relative to the input root, normalised."""
    result: set[str] = set()
    for raw in values:
        trimmed = raw.strip()
        if not trimmed:
            continue
        cleaned = os.path.normpath(trimmed).lstrip(os.sep)
        if cleaned in ("", "."):
            continue
        result.add(cleaned)
    return result


def collect_files(
    root: str | Path,
    extensions: set[str],
    exclude_dirs: set[str] = frozenset(),
    exclude_paths: set[str] = frozenset(),
) -> list[str]:
    """Walk ``root`` and return matching files, sorted.

    An empty extension set admits every file.
    """
    root = os.path.normpath(str(root))
    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        keep = []
        for name in sorted(dirnames):
            rel = os.path.normpath(os.path.join(rel_dir, name))
            if name in exclude_dirs or rel in exclude_paths:
                logger.debug("skipping directory %s", rel)
                continue
            keep.append(name)
        dirnames[:] = keep

        for name in sorted(filenames):
            rel = os.path.normpath(os.path.join(rel_dir, name))
            if rel in exclude_paths:
                logger.debug("skipping file %s", rel)
                continue
            if extensions and os.path.splitext(name)[1].lower() not in extensions:
                continue
            files.append(os.path.join(dirpath, name))
    return sorted(files)


def target_for(path: str, input_root: str, output_root: str | None) -> str | None:
    """Where the redacted copy of ``path`` goes, mirroring the input tree."""
    if not output_root:
        return None
    if os.path.isdir(input_root):
        rel = os.path.relpath(path, input_root)
    else:
        rel = os.path.basename(path)
    return os.path.join(output_root, rel)


def read_document(path: str | Path) -> str:
    return Path(path).read_bytes().decode(_ENCODING, _ERRORS)


def write_document(path: str | Path, content: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.encode(_ENCODING, _ERRORS))


def redact_file(
    redactor: Redactor,
    source: str,
    target: str | None,
    *,
    dry_run: bool = False,
    skip_clean: bool = False,
) -> tuple[RedactionOutcome, str]:
    """Redact one file.  Returns the outcome and the (would-be) output text.

    Nothing is written in dry-run mode, when there is no target, or when
    skip-clean is on and the document had no matches.
    """
    result = redactor.redact(read_document(source))
    skipped = skip_clean and result.total == 0

    if not dry_run and not skipped and target is not None:
        write_document(target, result.text)
        logger.debug("wrote %s (%d redactions)", target, result.total)
    elif skipped:
        logger.debug("clean, not written: %s", source)

    outcome = RedactionOutcome(
        source=source,
        target=target,
        counts=result.counts,
        total=result.total,
        skipped=skipped,
    )
    return outcome, result.text


def process_files(
    redactor: Redactor,
    files: Sequence[str],
    input_root: str,
    output_root: str | None,
    aggregate: RunAggregate,
    *,
    dry_run: bool = False,
    skip_clean: bool = False,
    workers: int = 1,
) -> RunAggregate:
    """Redact every file into ``aggregate`` and finalize it.

    The first failing file aborts the run; its error propagates.
    """

    def _one(path: str) -> RedactionOutcome:
        target = target_for(path, input_root, output_root)
        outcome, _ = redact_file(
            redactor, path, target, dry_run=dry_run, skip_clean=skip_clean,
        )
        aggregate.add(outcome)
        return outcome

    if workers <= 1:
        for path in files:
            _one(path)
    else:
        pool = ThreadPoolExecutor(max_workers=workers)
        try:
            futures = [pool.submit(_one, path) for path in files]
            for future in as_completed(futures):
                future.result()
        except BaseException:
            # Queued files never start once one has failed
            pool.shutdown(wait=True, cancel_futures=True)
            raise
        pool.shutdown()

    return aggregate.finalize()
