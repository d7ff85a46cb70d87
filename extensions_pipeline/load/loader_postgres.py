# extensions_pipeline/load/loader_postgres.py
"""
Loader for browser-extension data into PostgreSQL.

Reads the extensions metadata file, the packaged ``.crx`` archives and
the recorded-requests file, and inserts one row per record.

Schema (in schema "extensions"):
    extensions
    extensions_files
    requests

Every inserter opens its own connection through :func:`db_cursor`,
catches and logs its own failures, and reports what it did as an
:class:`InsertOutcome`. A bad record never stops the batch unless a
:class:`FailurePolicy` says so.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from psycopg2.pool import SimpleConnectionPool

from extensions_pipeline.extract.crx_archive import CrxArchive, archive_path_for
from extensions_pipeline.extract.sources import (
    ExtensionDescriptor,
    RequestGroup,
    read_extension_entries,
    read_request_entries,
)
from extensions_pipeline.load.db_connection import (
    DbConfig,
    DbProperties,
    db_cursor,
    open_pool,
)
from extensions_pipeline.load.load_report import (
    EXTENSIONS_TABLE,
    FILES_TABLE,
    REQUESTS_TABLE,
    FailurePolicy,
    InsertOutcome,
    LoadReport,
)

logger = logging.getLogger(__name__)

INSERT_META_SQL = """
    INSERT INTO extensions.extensions (
        id, name, author, description, category,
        usersCount, rating, ratingsCount, analyticsId, website, inApp
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s);
"""

INSERT_FILE_SQL = """
    INSERT INTO extensions.extensions_files (extension_id, file_path, file_content)
    VALUES (%s, %s, %s);
"""

INSERT_REQUEST_SQL = """
    INSERT INTO extensions.requests (
        extension_id, method, url, origin_url, type, request_body
    )
    VALUES (%s, %s, %s, %s, %s, %s);
"""


# ============================================================
# 1) SCHEMA CREATION
# ============================================================
def ensure_schema(db_properties: Optional[DbProperties] = None) -> None:
    """Create the schema and tables if they do not exist."""

    ddl_schema = "CREATE SCHEMA IF NOT EXISTS extensions;"

    ddl_extensions = """
    CREATE TABLE IF NOT EXISTS extensions.extensions (
        id           TEXT PRIMARY KEY,
        name         TEXT,
        author       TEXT,
        description  TEXT,
        category     TEXT,
        usersCount   BIGINT,
        rating       DOUBLE PRECISION,
        ratingsCount BIGINT,
        analyticsId  TEXT,
        website      TEXT,
        inApp        BOOLEAN
    );
    """

    ddl_files = """
    CREATE TABLE IF NOT EXISTS extensions.extensions_files (
        extension_id TEXT NOT NULL,
        file_path    TEXT NOT NULL,
        file_content TEXT
    );
    """

    ddl_requests = """
    CREATE TABLE IF NOT EXISTS extensions.requests (
        extension_id TEXT NOT NULL,
        method       TEXT,
        url          TEXT,
        origin_url   TEXT,
        type         TEXT,
        request_body TEXT
    );
    """

    with db_cursor(db_properties, autocommit=True) as cur:
        cur.execute(ddl_schema)
        cur.execute(ddl_extensions)
        cur.execute(ddl_files)
        cur.execute(ddl_requests)


# ============================================================
# 2) INSERTERS
# ============================================================
def insert_extension_data(
    extension: ExtensionDescriptor,
    db_properties: Optional[DbProperties] = None,
    pool: Optional[SimpleConnectionPool] = None,
) -> InsertOutcome:
    """
    Insert the metadata row of one extension into ``extensions.extensions``.

    Failures are logged and reported in the returned outcome.
    """
    logger.info("Inserting data of %s (%s)", extension.name, extension.id)
    outcome = InsertOutcome(EXTENSIONS_TABLE)

    try:
        with db_cursor(db_properties, pool=pool) as cur:
            cur.execute(INSERT_META_SQL, extension.as_row())
            outcome.inserted = 1
    except Exception as exc:
        logger.exception("Failed to insert data of %s", extension.id)
        outcome.error = str(exc)

    return outcome


def insert_extension_files(
    extension: ExtensionDescriptor,
    extensions_directory: Path,
    db_properties: Optional[DbProperties] = None,
    pool: Optional[SimpleConnectionPool] = None,
) -> InsertOutcome:
    """
    Insert the text files of one extension archive into ``extensions.extensions_files``.

    Only ``.js``, ``.json`` and ``.txt`` members are stored, in archive
    order, all over one connection. A missing archive is skipped
    without touching the database. The first decode or insert error
    stops this extension; rows written before it stay.
    """
    logger.info("Inserting files of %s (%s)", extension.name, extension.id)
    outcome = InsertOutcome(FILES_TABLE)

    archive_path = archive_path_for(extensions_directory, extension.id)
    if not archive_path.exists():
        logger.info("Archive %s does not exist", archive_path)
        outcome.skipped = True
        return outcome

    try:
        with db_cursor(db_properties, pool=pool) as cur:
            with CrxArchive(archive_path) as archive:
                for member_path, content in archive.iter_text_files():
                    cur.execute(INSERT_FILE_SQL, (extension.id, member_path, content))
                    outcome.inserted += 1
    except Exception as exc:
        logger.exception(
            "Failed to insert files of %s after %d rows", extension.id, outcome.inserted
        )
        outcome.error = str(exc)

    return outcome


def insert_requests(
    requests_path: Path,
    db_properties: Optional[DbProperties] = None,
    pool: Optional[SimpleConnectionPool] = None,
) -> InsertOutcome:
    """
    Insert all recorded requests into ``extensions.requests``.

    Groups and their requests are inserted in file order over one
    connection. A missing file is skipped. A file that cannot be
    parsed is raised to the caller; a malformed group is logged, left
    out and reported, and the other groups are still inserted.
    Database errors are logged and reported.
    """
    logger.info("Inserting extension requests")
    outcome = InsertOutcome(REQUESTS_TABLE)

    requests_path = Path(requests_path)
    if not requests_path.exists():
        logger.info("Requests file %s does not exist", requests_path)
        outcome.skipped = True
        return outcome

    groups: List[RequestGroup] = []
    for raw in read_request_entries(requests_path):
        try:
            groups.append(RequestGroup.from_json(raw))
        except ValueError as exc:
            logger.error("Skipping malformed request group: %s", exc)
            outcome.error = str(exc)

    try:
        with db_cursor(db_properties, pool=pool) as cur:
            for group in groups:
                for row in group.rows():
                    cur.execute(INSERT_REQUEST_SQL, row)
                    outcome.inserted += 1
    except Exception as exc:
        logger.exception("Failed to insert requests after %d rows", outcome.inserted)
        outcome.error = str(exc)

    return outcome


# ============================================================
# 3) HIGH-LEVEL ENTRY POINT
# ============================================================
def _record(report: LoadReport, outcome: InsertOutcome, policy: FailurePolicy) -> bool:
    """Add ``outcome`` to the report; return True if the run must stop."""
    report.record(outcome)
    if policy.should_abort(report.consecutive_failures):
        logger.error(
            "Aborting after %d consecutive failures", report.consecutive_failures
        )
        report.aborted = True
        return True
    return False


def fill_extensions_tables(
    extensions_meta_path: Path,
    extensions_directory: Path,
    requests_path: Path,
    db_properties: Optional[DbProperties] = None,
    *,
    policy: Optional[FailurePolicy] = None,
    use_pool: bool = False,
) -> LoadReport:
    """
    Fill the extensions tables with data.

    Parameters
    ----------
    extensions_meta_path:
        JSON file with the extensions metadata.
    extensions_directory:
        Directory holding the ``<id>.crx`` archives.
    requests_path:
        JSON file with the recorded requests.
    db_properties:
        Connection properties, passed through to :mod:`psycopg2`.
    policy:
        When to abort; by default the run never aborts.
    use_pool:
        Check connections out of one pool for the whole run instead of
        opening a new connection per operation.

    Returns
    -------
    LoadReport
        Counts of inserted, skipped and failed rows per table. Errors
        are never raised out of this function.
    """
    policy = policy or FailurePolicy()
    report = LoadReport()
    pool = None

    try:
        logger.info("Filling extensions tables with data")
        entries = read_extension_entries(extensions_meta_path)

        if use_pool:
            pool = open_pool(db_properties)

        for raw in entries:
            report.extensions_seen += 1

            try:
                extension = ExtensionDescriptor.from_json(raw)
            except ValueError as exc:
                logger.error("Skipping malformed extension descriptor: %s", exc)
                if _record(report, InsertOutcome(EXTENSIONS_TABLE, error=str(exc)), policy):
                    return report
                continue

            outcome = insert_extension_data(extension, db_properties, pool=pool)
            if _record(report, outcome, policy):
                return report

            outcome = insert_extension_files(
                extension, extensions_directory, db_properties, pool=pool
            )
            if _record(report, outcome, policy):
                return report

        # Nothing is left to skip after the requests, so no abort check
        report.record(insert_requests(requests_path, db_properties, pool=pool))
    except Exception as exc:
        logger.exception("Filling extensions tables failed")
        report.error = str(exc)
    finally:
        if pool is not None:
            pool.closeall()
        logger.info("Load finished: %s", report.summary())

    return report


# ============================================================
# 4) COMMAND LINE
# ============================================================
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load extension metadata, files and requests into PostgreSQL."
    )
    parser.add_argument(
        "--meta",
        type=Path,
        required=True,
        help="Path to the JSON file with the extensions metadata.",
    )
    parser.add_argument(
        "--extensions-dir",
        type=Path,
        required=True,
        help="Directory holding the <id>.crx archives.",
    )
    parser.add_argument(
        "--requests",
        type=Path,
        required=True,
        help="Path to the JSON file with the recorded requests.",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create the extensions schema and tables before loading.",
    )
    parser.add_argument(
        "--max-consecutive-failures",
        type=int,
        default=None,
        help="Abort the run after this many failed operations in a row.",
    )
    parser.add_argument(
        "--use-pool",
        action="store_true",
        help="Reuse one pooled connection for the whole run.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    db_config = DbConfig.from_env()
    if args.create_schema:
        try:
            ensure_schema(db_config)
        except Exception:
            logger.exception("Creating the extensions schema failed")
            return 1

    report = fill_extensions_tables(
        args.meta,
        args.extensions_dir,
        args.requests,
        db_config,
        policy=FailurePolicy(max_consecutive_failures=args.max_consecutive_failures),
        use_pool=args.use_pool,
    )
    return 1 if report.aborted or report.error else 0


if __name__ == "__main__":
    sys.exit(main())
