"""Optional run-log sinks — persist one summary row per run.

Two backends with the same API:

    log = SqliteRunLog("~/.essay-anonymizer/runs.db")   # local file
    log = PostgresRunLog(load_db_config())              # GS_PG_* env vars

    run_id = log.log(aggregate, report_path="out/redaction-report.json",
                     report_csv_path=None, dry_run=False)
    log.close()

The redaction engine never touches these; a run without a sink simply
isn't logged.
"""

from __future__ import annotations
import json
import logging
import os
import sqlite3
from pathlib import Path
from typing import Mapping, Protocol
from urllib.parse import quote, urlencode

from .aggregate import RunAggregate
from .errors import ConfigurationError, RunLogError

logger = logging.getLogger(__name__)

DEFAULT_DB = os.environ.get(
    "ESSAY_ANONYMIZER_RUNLOG_DB",
    str(Path.home() / ".essay-anonymizer" / "runs.db"),
)

CONNECT_TIMEOUT = 5  # seconds

_SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS run_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    generated_at TEXT,
    input_path TEXT NOT NULL,
    output_path TEXT NOT NULL,
    dry_run INTEGER NOT NULL,
    file_count INTEGER NOT NULL,
    total_redactions INTEGER NOT NULL,
    by_pattern TEXT NOT NULL,
    report_path TEXT NOT NULL,
    report_csv_path TEXT
);
"""

_PG_SCHEMA = """
CREATE SCHEMA IF NOT EXISTS essay_anonymizer;
CREATE TABLE IF NOT EXISTS essay_anonymizer.run_log (
    id BIGSERIAL PRIMARY KEY,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    generated_at TIMESTAMPTZ,
    input_path TEXT NOT NULL,
    output_path TEXT NOT NULL,
    dry_run BOOLEAN NOT NULL,
    file_count INTEGER NOT NULL,
    total_redactions INTEGER NOT NULL,
    by_pattern JSONB NOT NULL,
    report_path TEXT NOT NULL,
    report_csv_path TEXT
);
"""


class RunLog(Protocol):
    def log(
        self,
        aggregate: RunAggregate,
        *,
        report_path: str,
        report_csv_path: str | None,
        dry_run: bool,
    ) -> int: ...

    def close(self) -> None: ...


def _row(aggregate: RunAggregate, report_path: str, report_csv_path: str | None, dry_run: bool) -> tuple:
    return (
        aggregate.generated_at,
        aggregate.input_path,
        aggregate.output_path,
        dry_run,
        aggregate.file_count,
        aggregate.total_redactions,
        json.dumps(aggregate.to_dict()["by_pattern"]),
        report_path,
        report_csv_path or None,
    )


class SqliteRunLog:
    """Run log in a local SQLite file."""

    __slots__ = ("_db",)

    def __init__(self, db_path: str | Path = DEFAULT_DB) -> None:
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = sqlite3.connect(str(db_path), timeout=CONNECT_TIMEOUT)
            self._db.executescript(_SQLITE_SCHEMA)
        except sqlite3.Error as exc:
            raise RunLogError(f"{db_path}: {exc}") from exc

    def log(
        self,
        aggregate: RunAggregate,
        *,
        report_path: str,
        report_csv_path: str | None = None,
        dry_run: bool = False,
    ) -> int:
        try:
            cur = self._db.execute(
                """INSERT INTO run_log (
                       generated_at, input_path, output_path, dry_run, file_count,
                       total_redactions, by_pattern, report_path, report_csv_path
                   ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                _row(aggregate, report_path, report_csv_path, dry_run),
            )
            self._db.commit()
        except sqlite3.Error as exc:
            raise RunLogError(str(exc)) from exc
        logger.debug("logged run %d to sqlite", cur.lastrowid)
        return cur.lastrowid

    def recent(self, limit: int = 20) -> list[dict]:
        """Most recent runs first."""
        cur = self._db.execute(
            """SELECT id, generated_at, input_path, output_path, dry_run, file_count,
                      total_redactions, by_pattern, report_path, report_csv_path
               FROM run_log ORDER BY id DESC LIMIT ?""",
            (limit,),
        )
        cols = [c[0] for c in cur.description]
        rows = []
        for values in cur.fetchall():
            row = dict(zip(cols, values))
            row["dry_run"] = bool(row["dry_run"])
            row["by_pattern"] = json.loads(row["by_pattern"])
            rows.append(row)
        return rows

    def close(self) -> None:
        self._db.close()


class PostgresRunLog:
    """Run log in PostgreSQL.  Needs the ``postgres`` extra (psycopg)."""

    __slots__ = ("_dsn",)

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn

    def log(
        self,
        aggregate: RunAggregate,
        *,
        report_path: str,
        report_csv_path: str | None = None,
        dry_run: bool = False,
    ) -> int:
        try:
            import psycopg  # optional dependency
        except ImportError as exc:
            raise RunLogError("psycopg is not installed (pip install 'essay-anonymizer[postgres]')") from exc

        try:
            with psycopg.connect(self._dsn, connect_timeout=CONNECT_TIMEOUT) as conn:
                conn.execute(_PG_SCHEMA)
                row = conn.execute(
                    """INSERT INTO essay_anonymizer.run_log (
                           generated_at, input_path, output_path, dry_run, file_count,
                           total_redactions, by_pattern, report_path, report_csv_path
                       ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s) RETURNING id""",
                    _row(aggregate, report_path, report_csv_path, dry_run),
                ).fetchone()
        except psycopg.Error as exc:
            raise RunLogError(str(exc)) from exc
        logger.debug("logged run %d to postgres", row[0])
        return row[0]

    def close(self) -> None:
        pass


def load_db_config(environ: Mapping[str, str] | None = None) -> str:
    """Build a PostgreSQL DSN from GS_PG_DSN or the GS_PG_* parts."""
    env = os.environ if environ is None else environ

    dsn = env.get("GS_PG_DSN", "").strip()
    if dsn:
        return dsn

    host = env.get("GS_PG_HOST", "").strip()
    user = env.get("GS_PG_USER", "").strip()
    password = env.get("GS_PG_PASSWORD", "")
    if not host or not user or not password:
        raise ConfigurationError("missing GS_PG_HOST, GS_PG_USER, or GS_PG_PASSWORD")

    port = env.get("GS_PG_PORT", "").strip() or "5432"
    database = env.get("GS_PG_DB", "").strip() or "postgres"
    sslmode = env.get("GS_PG_SSLMODE", "").strip() or "disable"

    return (
        f"postgres://{quote(user, safe='')}:{quote(password, safe='')}"
        f"@{host}:{port}/{quote(database)}?{urlencode({'sslmode': sslmode})}"
    )
