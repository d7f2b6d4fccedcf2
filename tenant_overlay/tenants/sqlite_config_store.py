import asyncio
import sqlite3
import logging
import json
import threading
from typing import Optional, List, Dict, Any, Callable, TypeVar
from datetime import datetime, timezone

from .storage_interfaces import AbstractConfigStore
from .models import OverrideChangeEvent, TenantCreate, TenantOverride, TenantRecord, TenantStatus, TenantUpdate
from ..storage.sqlite_base import open_sqlite_db_connection, close_sqlite_db_connection

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _parse_timestamp(value: Any) -> datetime:
    # SQLite may store as string or datetime
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


class SQLiteConfigStore(AbstractConfigStore):
    """
    SQLite implementation of the Config Store.

    Every statement runs on a worker thread, so a locked or slow database
    stalls only that call (which the resolver bounds with a timeout) and
    never the event loop. The single connection is used by one thread at
    a time.
    """

    def __init__(self, db_path: str):
        super().__init__()
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    async def initialize(self) -> None:
        """Open the database and ensure the tables exist."""
        if self._conn is None:
            self._conn = await asyncio.to_thread(open_sqlite_db_connection, self.db_path)
        logger.info("SQLiteConfigStore initialized.")

    async def teardown(self) -> None:
        if self._conn is not None:
            await self._run(close_sqlite_db_connection)
            self._conn = None
        logger.info("SQLiteConfigStore teardown complete.")

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteConfigStore not initialized. Call initialize() first.")
        return self._conn

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """Run ``func(conn, *args)`` on a worker thread."""
        conn = self._get_conn()
        return await asyncio.to_thread(self._locked_call, func, conn, *args)

    def _locked_call(self, func: Callable[..., T], conn: sqlite3.Connection, *args: Any) -> T:
        with self._lock:
            return func(conn, *args)

    # Blocking helpers; called on the worker thread with the lock held.

    def _select_tenant(self, conn: sqlite3.Connection, slug: str) -> Optional[TenantRecord]:
        row = conn.execute(
            "SELECT slug, display_name, status, created_at FROM overlay_tenants WHERE slug = ?",
            (slug,)
        ).fetchone()
        return self._row_to_record(conn, row)

    def _row_to_record(self, conn: sqlite3.Connection, row: Optional[sqlite3.Row]) -> Optional[TenantRecord]:
        if not row:
            return None
        domains = conn.execute(
            "SELECT domain FROM overlay_tenant_domains WHERE slug = ? ORDER BY domain", (row["slug"],)
        ).fetchall()
        return TenantRecord(
            slug=row["slug"],
            display_name=row["display_name"],
            status=TenantStatus(row["status"]),
            created_at=_parse_timestamp(row["created_at"]),
            custom_domains=[domain["domain"] for domain in domains],
        )

    def _select_by_domain(self, conn: sqlite3.Connection, host: str) -> Optional[TenantRecord]:
        row = conn.execute(
            "SELECT slug FROM overlay_tenant_domains WHERE domain = ?", (host.lower(),)
        ).fetchone()
        if not row:
            return None
        return self._select_tenant(conn, row["slug"])

    def _select_page(self, conn: sqlite3.Connection, skip: int, limit: int) -> List[TenantRecord]:
        rows = conn.execute(
            """
            SELECT slug, display_name, status, created_at
            FROM overlay_tenants
            ORDER BY created_at DESC
            LIMIT ? OFFSET ?
            """,
            (limit, skip)
        ).fetchall()
        return [self._row_to_record(conn, row) for row in rows]

    def _write_domains(self, conn: sqlite3.Connection, slug: str, domains: List[str]) -> None:
        conn.execute("DELETE FROM overlay_tenant_domains WHERE slug = ?", (slug,))
        conn.executemany(
            "INSERT INTO overlay_tenant_domains (domain, slug) VALUES (?, ?)",
            [(domain.lower(), slug) for domain in domains],
        )

    def _commit_tenant_write(self, conn: sqlite3.Connection, slug: str, write: Callable[[], None]) -> None:
        """Run ``write`` as one transaction; a domain or slug clash becomes ValueError."""
        try:
            write()
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ValueError(f"Tenant '{slug}' conflicts with an existing tenant or custom domain: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"SQLite error writing tenant '{slug}': {e}", exc_info=True)
            conn.rollback()
            raise

    def _insert_tenant(self, conn: sqlite3.Connection, tenant_create: TenantCreate) -> TenantRecord:
        if self._select_tenant(conn, tenant_create.slug):
            raise ValueError(f"Tenant with slug '{tenant_create.slug}' already exists.")
        created_at_dt = datetime.now(timezone.utc)

        def write() -> None:
            conn.execute(
                """
                INSERT INTO overlay_tenants (slug, display_name, status, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (tenant_create.slug, tenant_create.display_name,
                 tenant_create.status.value, created_at_dt.isoformat())
            )
            self._write_domains(conn, tenant_create.slug, tenant_create.custom_domains)

        self._commit_tenant_write(conn, tenant_create.slug, write)
        return self._select_tenant(conn, tenant_create.slug)

    def _update_tenant(
        self, conn: sqlite3.Connection, slug: str, update_fields: Dict[str, Any]
    ) -> Optional[TenantRecord]:
        if self._select_tenant(conn, slug) is None:
            return None
        domains = update_fields.pop("custom_domains", None)
        set_clauses = []
        params = []
        for key, value in update_fields.items():
            set_clauses.append(f"{key} = ?")
            params.append(value.value if isinstance(value, TenantStatus) else value)

        def write() -> None:
            if domains is not None:
                self._write_domains(conn, slug, domains)
            if set_clauses:
                conn.execute(
                    f"UPDATE overlay_tenants SET {', '.join(set_clauses)} WHERE slug = ?", (*params, slug)
                )

        self._commit_tenant_write(conn, slug, write)
        return self._select_tenant(conn, slug)

    def _select_override(self, conn: sqlite3.Connection, slug: str) -> Optional[TenantOverride]:
        row = conn.execute(
            "SELECT slug, document, version, updated_at, deleted FROM overlay_tenant_overrides WHERE slug = ?",
            (slug,)
        ).fetchone()
        if not row:
            return None
        return TenantOverride(
            slug=row["slug"],
            document=json.loads(row["document"]),
            version=row["version"],
            updated_at=_parse_timestamp(row["updated_at"]),
            deleted=bool(row["deleted"]),
        )

    def _write_override(
        self, conn: sqlite3.Connection, slug: str, document: Dict[str, Any], deleted: bool = False
    ) -> TenantOverride:
        updated_at = datetime.now(timezone.utc)
        try:
            # The row outlives deletes as a tombstone, so its version only grows.
            previous = conn.execute(
                "SELECT version FROM overlay_tenant_overrides WHERE slug = ?", (slug,)
            ).fetchone()
            version = (previous["version"] if previous else 0) + 1
            conn.execute(
                """
                INSERT INTO overlay_tenant_overrides (slug, document, version, updated_at, deleted)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(slug) DO UPDATE SET
                    document = excluded.document,
                    version = excluded.version,
                    updated_at = excluded.updated_at,
                    deleted = excluded.deleted
                """,
                (slug, json.dumps(document), version, updated_at.isoformat(), int(deleted))
            )
            conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SQLite error storing override for tenant '{slug}': {e}", exc_info=True)
            conn.rollback()
            raise
        return TenantOverride(
            slug=slug, document=document, version=version, updated_at=updated_at, deleted=deleted
        )

    def _tombstone_override(self, conn: sqlite3.Connection, slug: str) -> Optional[TenantOverride]:
        current = self._select_override(conn, slug)
        if current is None or current.deleted:
            return None
        return self._write_override(conn, slug, {}, deleted=True)

    # AbstractConfigStore

    async def get_tenant_record(self, slug: str) -> Optional[TenantRecord]:
        return await self._run(self._select_tenant, slug)

    async def get_tenant_by_domain(self, host: str) -> Optional[TenantRecord]:
        return await self._run(self._select_by_domain, host)

    async def list_tenants(self, skip: int = 0, limit: int = 100) -> List[TenantRecord]:
        """Paginated tenants ordered by creation date (newest first)."""
        return await self._run(self._select_page, skip, limit)

    async def create_tenant(self, tenant_create: TenantCreate) -> TenantRecord:
        """
        Raises:
            ValueError: If the slug or one of the custom domains is already taken
        """
        record = await self._run(self._insert_tenant, tenant_create)
        self.publish_change(OverrideChangeEvent(slug=record.slug, reason="tenant_created"))
        return record

    async def update_tenant(self, slug: str, tenant_update: TenantUpdate) -> Optional[TenantRecord]:
        # Extract only the fields that were explicitly set
        update_fields: Dict[str, Any] = tenant_update.model_dump(exclude_unset=True)
        if not update_fields:
            return await self.get_tenant_record(slug)

        record = await self._run(self._update_tenant, slug, update_fields)
        if record is not None:
            self.publish_change(OverrideChangeEvent(slug=slug, reason="tenant_updated"))
        return record

    async def get_override(self, slug: str) -> Optional[TenantOverride]:
        return await self._run(self._select_override, slug)

    async def put_override(self, slug: str, document: Dict[str, Any]) -> TenantOverride:
        override = await self._run(self._write_override, slug, document)
        self.publish_change(OverrideChangeEvent(slug=slug, version=override.version))
        return override

    async def delete_override(self, slug: str) -> bool:
        tombstone = await self._run(self._tombstone_override, slug)
        if tombstone is None:
            return False
        self.publish_change(
            OverrideChangeEvent(slug=slug, version=tombstone.version, reason="override_deleted")
        )
        return True
