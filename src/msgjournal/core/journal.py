"""
Journal implementation for recording worker messages and emitted events.

Single-table SQLite journal. Entries are appended and never updated or
deleted. "This session only" visibility is implemented with the session
clock watermark rather than a second table.
"""
import asyncio
import os
import re
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from msgjournal.core.entry import JournalEntry
from msgjournal.core.events import EventNameResolver, resolve_event_name
from msgjournal.core.filter import Filter, compile_filter
from msgjournal.core.projector import Projector, decode_rows
from msgjournal.core.schema import (
    Migration,
    current_version,
    migrate,
    validate_table_name,
)
from msgjournal.core.session import SessionClock
from msgjournal.utility.exceptions import (
    ConfigError,
    JournalConnectionError,
    JournalMigrationError,
    JournalQueryError,
    JournalWriteError,
)
from msgjournal.utility.logger import get_logger
from msgjournal.utility.settings import settings
from msgjournal.utility.timestamps import to_storage

MEMORY_LOCATION = ":memory:"

# ${VAR_NAME} or ${VAR_NAME:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^:}]+)(?::-([^}]*))?\}")


def _expand_env_vars(data: Any) -> Any:
    """
    Recursively expand environment variables in configuration data.

    Raises:
        ConfigError: If a variable is not set and has no default
    """
    if isinstance(data, str):

        def replace_env_var(match):
            var_name, default_value = match.group(1), match.group(2)
            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            raise ConfigError(
                f"Environment variable '{var_name}' is not set and no default"
            )

        return _ENV_VAR_PATTERN.sub(replace_env_var, data)
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    return data


class JournalConfig(BaseModel):
    """
    Configuration for the journal.

    Example:
        ```yaml
        journal:
          path: /var/lib/worker/journal.db
          timeout: 5
        ```
    """

    path: str = Field(
        ...,
        description=(
            "SQLite database file, ':memory:', or a 'file:' URI "
            "(parent directories are created)"
        ),
    )
    timeout: float = Field(
        default_factory=lambda: settings.journal.timeout,
        gt=0,
        description="Seconds to wait on a locked database before failing",
    )
    text_field: str = Field(
        default="message",
        description="Structured payload field holding the worker message",
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v):
        """Validate path is provided."""
        if not v or not v.strip():
            raise ValueError("Path is required for the journal database")
        return v

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "JournalConfig":
        """
        Load configuration from a YAML file.

        Reads the ``journal:`` section when present, otherwise the whole
        document. ``${VAR}`` and ``${VAR:-default}`` references in values are
        expanded from the environment.

        Raises:
            ConfigError: If the file is missing or invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Journal configuration not found: {config_path}")

        try:
            data = yaml.safe_load(config_path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Journal configuration must be a mapping: {config_path}")
        section = data.get("journal", data)
        if not isinstance(section, dict):
            raise ConfigError(f"'journal' section must be a mapping: {config_path}")
        section = _expand_env_vars(section)

        try:
            return cls(**section)
        except ValueError as e:
            raise ConfigError(f"Invalid journal configuration: {e}") from e


class Journal:
    """
    SQLite-backed journal of worker messages and emitted events.

    One connection per handle, shared by concurrent callers. Blocking
    database work runs in a worker thread and a lock serializes every use
    of the connection.

    Example:
        ```python
        journal = await Journal.open("/var/lib/worker/journal.db")

        await journal.add_entry(
            JournalEntry(
                message_id="2f0f5a1e-6d0b-4c52-9a53-6e1f4e0b3c7d",
                sent=datetime.now(timezone.utc),
                worker_name="echo",
                worker_event=WorkerEventName.WORKING,
                payload={"message": "processing"},
            )
        )

        # Entries from this session for the echo worker
        entries = await journal.get_entries(Filter(worker="echo"))
        await journal.close()
        ```
    """

    def __init__(
        self,
        name: str,
        config: JournalConfig,
        event_name_resolver: Optional[EventNameResolver] = None,
        opened_at: Optional[datetime] = None,
        table: Optional[str] = None,
    ):
        """
        Create an unopened journal handle. Use ``Journal.open()`` instead.

        Args:
            name: Journal name (for logging)
            config: Journal configuration
            event_name_resolver: Maps event codes to names when projecting
            opened_at: Explicit session watermark (defaults to open time)
            table: Journal table name (defaults to settings.journal.table)
        """
        self.name = name
        self.config = config
        self.event_name_resolver = event_name_resolver or resolve_event_name
        self.table = validate_table_name(table or settings.journal.table)
        self.logger = get_logger(f"msgjournal.journal.{name}")

        self._opened_at = opened_at
        self.session: Optional[SessionClock] = None
        self.applied_migrations: List[Migration] = []
        self._connection: Optional[sqlite3.Connection] = None
        self._connection_lock = threading.Lock()

    @classmethod
    async def open(
        cls,
        location: Union[str, Path, JournalConfig],
        name: str = "journal",
        event_name_resolver: Optional[EventNameResolver] = None,
        opened_at: Optional[datetime] = None,
    ) -> "Journal":
        """
        Open a journal, creating and migrating its database as needed.

        Args:
            location: Database path, ':memory:', 'file:' URI, or JournalConfig
            name: Journal name (for logging)
            event_name_resolver: Maps event codes to names when projecting
            opened_at: Explicit session watermark (defaults to now)

        Returns:
            An open Journal

        Raises:
            JournalConnectionError: If the database cannot be created or reached
            JournalMigrationError: If a schema migration fails
        """
        if isinstance(location, JournalConfig):
            config = location
        else:
            config = JournalConfig(path=str(location))

        journal = cls(
            name,
            config,
            event_name_resolver=event_name_resolver,
            opened_at=opened_at,
        )
        await asyncio.to_thread(journal._open)
        return journal

    def _connect(self) -> sqlite3.Connection:
        path = self.config.path
        is_uri = path.startswith("file:")
        if path != MEMORY_LOCATION and not is_uri:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        return sqlite3.connect(
            path,
            timeout=self.config.timeout,
            isolation_level=None,
            check_same_thread=False,
            uri=is_uri,
        )

    def _open(self) -> None:
        try:
            connection = self._connect()
        except (sqlite3.Error, OSError) as e:
            self.logger.error(f"Failed to create journal database {self.config.path}: {e}")
            raise JournalConnectionError(
                f"database object not created: {e}",
                operation="open",
                path=self.config.path,
            ) from e

        try:
            try:
                self.applied_migrations = migrate(connection)
            except sqlite3.Error as e:
                raise JournalMigrationError(
                    f"database migration failed: {e}",
                    operation="open",
                    path=self.config.path,
                ) from e

            try:
                connection.execute("SELECT 1").fetchone()
            except sqlite3.Error as e:
                raise JournalConnectionError(
                    f"message journal database not connected: {e}",
                    operation="open",
                    path=self.config.path,
                ) from e
        except (JournalMigrationError, JournalConnectionError) as e:
            self.logger.error(f"Failed to open journal {self.config.path}: {e}")
            connection.close()
            raise

        self._connection = connection
        self.session = SessionClock(self._opened_at)

        if self.applied_migrations:
            names = ", ".join(
                f"{m.version:04d}_{m.name}" for m in self.applied_migrations
            )
            self.logger.debug(f"Applied journal migrations: {names}")
        self.logger.debug(
            f"Journal opened at {self.config.path} "
            f"(session watermark {self.session.serialize()})"
        )

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def _require_connection(self, operation: str) -> sqlite3.Connection:
        if self._connection is None:
            raise JournalConnectionError(
                "message journal database not connected",
                operation=operation,
                path=self.config.path,
            )
        return self._connection

    async def add_entry(self, entry: JournalEntry) -> None:
        """
        Append one entry to the journal.

        Args:
            entry: Entry to record (its ``id`` is ignored; the store assigns one)

        Raises:
            JournalWriteError: If the payload cannot be encoded or the insert fails
            JournalConnectionError: If the journal is closed
        """
        payload_text = None
        payload_format = "text"
        if entry.payload is not None:
            try:
                payload_text = entry.payload.encode()
            except (TypeError, ValueError) as e:
                raise JournalWriteError(
                    f"cannot encode worker data for message '{entry.message_id}': {e}",
                    operation="add_entry",
                    message_id=entry.message_id,
                ) from e
            payload_format = entry.payload.payload_format

        row = (
            entry.message_id,
            to_storage(entry.sent),
            entry.worker_name,
            entry.response_to,
            entry.worker_event,
            payload_text,
            payload_format,
        )
        entry_id = await asyncio.to_thread(self._insert, row)

        self.logger.debug(
            f"new message journal entry (id: {entry_id}) added: '{entry.message_id}'"
        )

    def _insert(self, row: tuple) -> int:
        with self._connection_lock:
            connection = self._require_connection("add_entry")
            try:
                cursor = connection.execute(
                    f"INSERT INTO {self.table} ("
                    "message_id, sent, worker_name, response_to, "
                    "worker_event, payload, payload_format) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    row,
                )
                try:
                    return cursor.lastrowid
                finally:
                    cursor.close()
            except sqlite3.Error as e:
                self.logger.error(f"Failed to insert journal entry: {e}")
                raise JournalWriteError(
                    f"insert failed: could not insert journal entry into table "
                    f"'{self.table}': {e}",
                    operation="add_entry",
                    message_id=row[0],
                ) from e

    async def get_entries(
        self, entry_filter: Optional[Filter] = None
    ) -> List[Dict[str, str]]:
        """
        Get the journal entries matching a filter, ordered by sent.

        Zero matches is not an error: an empty list is returned.

        Args:
            entry_filter: Filter to apply (default: this session, no truncation)

        Returns:
            Projected entries as string-keyed records

        Raises:
            JournalQueryError: If the query cannot be built, executed or decoded
            JournalConnectionError: If the journal is closed
        """
        self._require_connection("get_entries")
        entry_filter = entry_filter or Filter()
        query = compile_filter(entry_filter, self.session, table=self.table)

        rows = await asyncio.to_thread(self._fetch, query.sql, query.params)
        if not rows:
            return []

        projector = Projector(
            truncate_length=entry_filter.truncate_length,
            event_name_resolver=self.event_name_resolver,
            text_field=self.config.text_field,
        )
        try:
            return projector.project_frame(decode_rows(rows))
        except Exception as e:
            self.logger.error(f"Failed to decode journal entries: {e}")
            raise JournalQueryError(
                f"cannot decode journal entries: {e}", operation="get_entries"
            ) from e

    def _fetch(self, sql: str, params: tuple) -> List[tuple]:
        with self._connection_lock:
            connection = self._require_connection("get_entries")
            try:
                cursor = connection.execute(sql, params)
                try:
                    return cursor.fetchall()
                finally:
                    cursor.close()
            except sqlite3.Error as e:
                self.logger.error(f"Failed to query journal entries: {e}")
                raise JournalQueryError(
                    f"cannot execute query to retrieve journal entries: {e}",
                    operation="get_entries",
                ) from e

    async def count_entries(self) -> int:
        """Get the total number of stored entries, across all sessions."""
        rows = await asyncio.to_thread(
            self._fetch, f"SELECT COUNT(*) FROM {self.table}", ()
        )
        return rows[0][0]

    async def schema_version(self) -> int:
        """Get the highest applied schema migration version."""
        return await asyncio.to_thread(self._schema_version)

    def _schema_version(self) -> int:
        with self._connection_lock:
            connection = self._require_connection("schema_version")
            try:
                return current_version(connection)
            except sqlite3.Error as e:
                raise JournalQueryError(
                    f"cannot read journal schema version: {e}",
                    operation="schema_version",
                ) from e

    async def close(self) -> None:
        """Close the database connection. Safe to call more than once."""
        await asyncio.to_thread(self._close)

    def _close(self) -> None:
        with self._connection_lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                self.logger.debug(f"Journal closed: {self.config.path}")

    async def __aenter__(self) -> "Journal":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Journal(name={self.name!r}, path={self.config.path!r})"
