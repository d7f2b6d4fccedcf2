# tenant_overlay/storage/sqlite_base.py
import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def open_sqlite_db_connection(db_path: str) -> sqlite3.Connection:
    """
    Open a SQLite connection and make sure the schema exists.

    Ensures the database directory exists. ``":memory:"`` opens a private
    in-memory database.

    Raises:
        sqlite3.Error: If database connection fails
    """
    try:
        if db_path != ":memory:":
            resolved = Path(db_path).resolve()
            # Ensure the database directory structure exists
            resolved.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(resolved)

        logger.info(f"Attempting to connect to SQLite DB at: {db_path}")

        # Enable thread-safe access for async/FastAPI compatibility
        conn = sqlite3.connect(db_path, check_same_thread=False)
        # Enable column access by name instead of index
        conn.row_factory = sqlite3.Row

        logger.info(f"Successfully connected to SQLite DB: {db_path}")
        init_sqlite_db(conn)
        return conn
    except sqlite3.Error as e:
        logger.error(f"Error connecting to SQLite database at {db_path}: {e}", exc_info=True)
        raise


def init_sqlite_db(conn: sqlite3.Connection) -> None:
    """
    Create the Config Store tables. Uses IF NOT EXISTS to safely handle
    repeated initialization calls.
    """
    cursor = conn.cursor()

    # Tenant records
    cursor.execute('''
    CREATE TABLE IF NOT EXISTS overlay_tenants (
        slug TEXT PRIMARY KEY,
        display_name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TEXT NOT NULL
    )
    ''')
    logger.info("Ensured 'overlay_tenants' table exists.")

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS overlay_tenant_domains (
        domain TEXT PRIMARY KEY,
        slug TEXT NOT NULL
    )
    ''')
    logger.info("Ensured 'overlay_tenant_domains' table exists.")

    cursor.execute('''
    CREATE TABLE IF NOT EXISTS overlay_tenant_overrides (
        slug TEXT PRIMARY KEY,
        document TEXT NOT NULL,
        version INTEGER NOT NULL,
        updated_at TEXT NOT NULL,
        deleted INTEGER NOT NULL DEFAULT 0
    )
    ''')
    logger.info("Ensured 'overlay_tenant_overrides' table exists.")

    conn.commit()
    logger.info("SQLite database schema initialized/verified.")


def close_sqlite_db_connection(conn: sqlite3.Connection) -> None:
    logger.info("Closing SQLite DB connection.")
    conn.close()
    logger.info("SQLite DB connection closed.")
