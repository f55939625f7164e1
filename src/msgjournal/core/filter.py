"""
Journal filters and the query builder that compiles them.

A Filter describes which entries a caller wants to see. compile_filter()
turns it into SQL text plus a separate tuple of bound values; caller-supplied
values never appear in the SQL text itself.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from msgjournal.core.schema import JOURNAL_TABLE, validate_table_name
from msgjournal.core.session import SessionClock
from msgjournal.utility.exceptions import JournalQueryError
from msgjournal.utility.timestamps import to_storage

JOURNAL_COLUMNS = (
    "id",
    "message_id",
    "sent",
    "worker_name",
    "response_to",
    "worker_event",
    "payload",
    "payload_format",
)


class Filter(BaseModel):
    """
    Filtering options for retrieving journal entries.

    Unset fields (None) add no constraint. An empty string is a value like any
    other and only matches entries where that column is empty.

    Example:
        ```python
        Filter(worker="echo", since="2024-01-01T00:00:00Z", truncate_length=40)
        ```
    """

    persistent: bool = Field(
        default=False,
        description="True for all stored entries, False for this session only",
    )
    truncate_length: int = Field(
        default=0, ge=0, description="Truncate worker messages (0 disables)"
    )
    message_id: Optional[str] = None
    worker: Optional[str] = None
    since: Optional[Union[str, datetime]] = Field(
        default=None, description="Inclusive lower bound on sent"
    )
    until: Optional[Union[str, datetime]] = Field(
        default=None, description="Inclusive upper bound on sent"
    )

    @classmethod
    def from_wire(
        cls,
        persistent: bool = False,
        truncate_length: int = 0,
        message_id: str = "",
        worker: str = "",
        since: str = "",
        until: str = "",
    ) -> "Filter":
        """
        Build a filter from transport arguments, where "" means unset.

        IPC and CLI callers pass every argument positionally with empty
        strings for options the user did not give.
        """
        return cls(
            persistent=persistent,
            truncate_length=truncate_length,
            message_id=message_id or None,
            worker=worker or None,
            since=since or None,
            until=until or None,
        )


@dataclass(frozen=True)
class CompiledQuery:
    """SQL text with its bound parameter values."""

    sql: str
    params: Tuple[Any, ...]


def _bound(name: str, value: Union[str, datetime]) -> str:
    try:
        return to_storage(value)
    except ValueError as e:
        raise JournalQueryError(
            f"cannot build journal query: invalid '{name}' timestamp: {e}",
            operation="compile_filter",
            field=name,
        ) from e


def compile_filter(
    entry_filter: Filter,
    session: SessionClock,
    table: str = JOURNAL_TABLE,
) -> CompiledQuery:
    """
    Compile a filter into a parameterized SELECT.

    Args:
        entry_filter: Caller-supplied filter
        session: Session clock providing the session-scope watermark
        table: Journal table (must be allow-listed)

    Returns:
        CompiledQuery ordered by sent, then insertion order

    Raises:
        JournalQueryError: If a time bound cannot be parsed
    """
    validate_table_name(table)

    conditions: List[str] = []
    params: List[Any] = []

    if entry_filter.message_id is not None:
        conditions.append("message_id = ?")
        params.append(entry_filter.message_id)
    if entry_filter.worker is not None:
        conditions.append("worker_name = ?")
        params.append(entry_filter.worker)
    if entry_filter.since is not None:
        conditions.append("sent >= ?")
        params.append(_bound("since", entry_filter.since))
    if entry_filter.until is not None:
        conditions.append("sent <= ?")
        params.append(_bound("until", entry_filter.until))

    watermark = session.lower_bound(entry_filter.persistent)
    if watermark is not None:
        conditions.append("sent >= ?")
        params.append(watermark)

    sql = f"SELECT {', '.join(JOURNAL_COLUMNS)} FROM {table}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += " ORDER BY sent ASC, id ASC"

    return CompiledQuery(sql=sql, params=tuple(params))
