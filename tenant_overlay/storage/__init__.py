# tenant_overlay/storage/__init__.py
"""SQLite connection handling and schema for the SQLite Config Store."""

from .sqlite_base import close_sqlite_db_connection, init_sqlite_db, open_sqlite_db_connection

__all__ = ["open_sqlite_db_connection", "init_sqlite_db", "close_sqlite_db_connection"]
