"""Database schema and migration logic for the journal SQLite store.

Contains:
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Ordered, named migrations (MIGRATIONS)
- Schema version tracking (current_version)
- Migration runner (migrate)

Migrations are additive and individually idempotent. Each one commits
together with its bookkeeping row in schema_migrations, so an open that
fails partway leaves only fully applied migrations behind and a retried
open picks up where it stopped.
"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List

from msgjournal.utility.logger import get_logger

logger = get_logger("msgjournal.schema")

JOURNAL_TABLE = "journal"
MIGRATIONS_TABLE = "schema_migrations"

# Allowed table names for SQL text (prevents SQL injection via table names)
ALLOWED_TABLES = frozenset({JOURNAL_TABLE, MIGRATIONS_TABLE})


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


def get_columns(conn: sqlite3.Connection, table: str) -> set:
    validate_table_name(table)
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}


@dataclass(frozen=True)
class Migration:
    """One named schema step."""

    version: int
    name: str
    apply: Callable[[sqlite3.Connection], None]


def _create_journal(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {JOURNAL_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            message_id VARCHAR(36) NOT NULL,
            sent DATETIME NOT NULL,
            worker_name VARCHAR(128) NOT NULL,
            response_to VARCHAR(36),
            worker_event INTEGER,
            payload TEXT
        )
        """
    )


def _add_payload_format(conn: sqlite3.Connection) -> None:
    # Rows written before structured payloads existed keep the 'text' default
    if "payload_format" not in get_columns(conn, JOURNAL_TABLE):
        conn.execute(
            f"ALTER TABLE {JOURNAL_TABLE} "
            "ADD COLUMN payload_format TEXT NOT NULL DEFAULT 'text'"
        )


def _index_journal_sent(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"CREATE INDEX IF NOT EXISTS journal_sent_idx ON {JOURNAL_TABLE} (sent, id)"
    )


MIGRATIONS: List[Migration] = [
    Migration(1, "create_journal", _create_journal),
    Migration(2, "add_payload_format", _add_payload_format),
    Migration(3, "index_journal_sent", _index_journal_sent),
]

SCHEMA_VERSION = MIGRATIONS[-1].version


def _ensure_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
            version INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            applied_at TEXT NOT NULL
        )
        """
    )


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 for a fresh database)."""
    tables = {
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
    }
    if MIGRATIONS_TABLE not in tables:
        return 0
    row = conn.execute(f"SELECT MAX(version) FROM {MIGRATIONS_TABLE}").fetchone()
    return row[0] or 0


def migrate(conn: sqlite3.Connection) -> List[Migration]:
    """Apply pending migrations in version order.

    The connection must be in autocommit mode (isolation_level=None); each
    migration runs in its own explicit transaction.

    Args:
        conn: Database connection.

    Returns:
        The migrations applied by this call (empty when already up to date).

    Raises:
        sqlite3.Error: If a migration fails; that migration is rolled back.
    """
    _ensure_migrations_table(conn)
    applied_versions = {
        row[0] for row in conn.execute(f"SELECT version FROM {MIGRATIONS_TABLE}")
    }

    applied: List[Migration] = []
    for migration in sorted(MIGRATIONS, key=lambda m: m.version):
        if migration.version in applied_versions:
            continue

        conn.execute("BEGIN IMMEDIATE")
        try:
            # A concurrent open may have applied it while we waited for the lock
            already_applied = conn.execute(
                f"SELECT 1 FROM {MIGRATIONS_TABLE} WHERE version = ?",
                (migration.version,),
            ).fetchone()
            if already_applied:
                conn.execute("COMMIT")
                continue
            migration.apply(conn)
            conn.execute(
                f"INSERT INTO {MIGRATIONS_TABLE} (version, name, applied_at) "
                "VALUES (?, ?, ?)",
                (
                    migration.version,
                    migration.name,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.execute("COMMIT")
        except sqlite3.Error:
            conn.execute("ROLLBACK")
            logger.error(
                f"Migration {migration.version:04d}_{migration.name} failed, "
                "rolled back"
            )
            raise

        applied.append(migration)
        logger.debug(f"Applied migration {migration.version:04d}_{migration.name}")

    return applied
