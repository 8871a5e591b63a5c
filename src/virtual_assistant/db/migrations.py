"""Database migrations for the virtual assistant."""

import logging
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

# src/virtual_assistant/db/migrations.py -> repository root
MIGRATIONS_DIR = Path(__file__).parent.parent.parent.parent / "migrations"


def run_migrations(
    conn: duckdb.DuckDBPyConnection,
    migrations_dir: Path | None = None,
) -> list[str]:
    """Apply pending migrations in file-name order.

    Args:
        conn: Open DuckDB connection.
        migrations_dir: Directory holding ``*.sql`` files (default: repo ``migrations/``).

    Returns:
        Versions applied by this call.
    """
    migrations_dir = migrations_dir or MIGRATIONS_DIR
    if not migrations_dir.exists():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")

    migration_files = sorted(migrations_dir.glob("*.sql"))
    if not migration_files:
        return []

    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TIMESTAMP NOT NULL DEFAULT current_timestamp
        )
    """)

    applied = {row[0] for row in conn.execute("SELECT version FROM schema_migrations").fetchall()}

    newly_applied = []
    for migration_file in migration_files:
        version = migration_file.stem  # e.g., "001_initial_schema"
        if version in applied:
            continue

        conn.execute(migration_file.read_text(encoding="utf-8"))
        conn.execute("INSERT INTO schema_migrations (version) VALUES (?)", [version])
        newly_applied.append(version)
        logger.info("Applied migration: %s", version)

    return newly_applied
