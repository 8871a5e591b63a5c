"""DuckDB persistence for users, assistant settings and command history."""

from virtual_assistant.db.connection import get_connection, get_db_path, init_db

__all__ = ["get_connection", "get_db_path", "init_db"]
