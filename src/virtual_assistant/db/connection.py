"""DuckDB connection setup for the virtual assistant.

One process-wide connection is opened by the API; request handlers work on
their own cursors from it (``with conn.cursor() as cur``).
"""

import logging
import os
from pathlib import Path

import duckdb

from virtual_assistant.db.migrations import run_migrations

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "data/virtual_assistant.db"
IN_MEMORY = ":memory:"


def get_db_path() -> str:
    """Database location from DUCKDB_PATH (":memory:" for a throwaway database)."""
    return os.getenv("DUCKDB_PATH", DEFAULT_DB_PATH)


def get_connection(db_path: str | None = None) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection, creating the parent directory of a file database."""
    db_path = db_path or get_db_path()
    if db_path != IN_MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path)


def init_db(
    db_path: str | None = None, migrations_dir: Path | None = None
) -> duckdb.DuckDBPyConnection:
    """Open the database and bring its schema up to date.

    Args:
        db_path: Database file, ":memory:", or None for get_db_path().
        migrations_dir: Override for the ``migrations/`` directory.

    Returns:
        Migrated DuckDB connection.
    """
    db_path = db_path or get_db_path()
    conn = get_connection(db_path)
    applied = run_migrations(conn, migrations_dir)
    logger.info("Database ready at %s (%d new migrations)", db_path, len(applied))
    return conn
