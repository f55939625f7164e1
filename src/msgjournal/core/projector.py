"""
Projection of stored journal rows into caller-facing records.

Stored rows are decoded into a polars DataFrame (typed columns, parsed
timestamps) and then projected one row at a time: event codes become names,
worker messages are truncated, and timestamps are formatted for display.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

import polars as pl

from msgjournal.core.entry import JournalEntry, decode_payload
from msgjournal.core.events import EventNameResolver, resolve_event_name
from msgjournal.utility.timestamps import format_display

# Journal schema (Polars types), in the column order selected by compile_filter()
JOURNAL_SCHEMA = {
    "id": pl.Int64,
    "message_id": pl.Utf8,
    "sent": pl.Utf8,  # storage-form string, parsed in decode_rows()
    "worker_name": pl.Utf8,
    "response_to": pl.Utf8,  # Nullable
    "worker_event": pl.Int64,  # Nullable
    "payload": pl.Utf8,  # Nullable
    "payload_format": pl.Utf8,
}

# chrono spelling of the storage form written by timestamps.to_storage()
_POLARS_STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S%.f"


def decode_rows(rows: Sequence[Tuple[Any, ...]]) -> pl.DataFrame:
    """
    Decode fetched rows into a typed DataFrame.

    The ``sent`` column is parsed into a UTC ``Datetime``.

    Raises:
        polars.exceptions.PolarsError: If a row does not match the schema
    """
    df = pl.DataFrame(
        [tuple(row) for row in rows],
        schema=JOURNAL_SCHEMA,
        orient="row",
    )
    return df.with_columns(
        pl.col("sent")
        .str.to_datetime(_POLARS_STORAGE_FORMAT, time_unit="us")
        .dt.replace_time_zone("UTC")
    )


class Projector:
    """
    Shapes decoded journal rows for display.

    Each projected entry is a string-keyed record with fixed keys:
    ``message_id``, ``sent``, ``worker_name``, ``response_to``,
    ``worker_event``, and ``worker_message`` (plain-text or empty payload)
    or ``worker_data`` (structured payload as JSON).

    Args:
        truncate_length: Truncate worker messages to this many characters
            (0 disables truncation)
        event_name_resolver: Maps event codes to names
        text_field: Structured payload field holding the worker message
    """

    def __init__(
        self,
        truncate_length: int = 0,
        event_name_resolver: Optional[EventNameResolver] = None,
        text_field: str = "message",
    ):
        self.truncate_length = truncate_length
        self.event_name_resolver = event_name_resolver or resolve_event_name
        self.text_field = text_field

    def to_entry(self, row: Dict[str, Any]) -> JournalEntry:
        """Rebuild a JournalEntry from a decoded row."""
        return JournalEntry(
            id=row["id"],
            message_id=row["message_id"],
            sent=row["sent"],
            worker_name=row["worker_name"],
            response_to=row["response_to"],
            worker_event=row["worker_event"],
            payload=decode_payload(
                row["payload"], row["payload_format"], text_field=self.text_field
            ),
        )

    def project(self, entry: JournalEntry) -> Dict[str, str]:
        projected = {
            "message_id": entry.message_id,
            "sent": format_display(entry.sent),
            "worker_name": entry.worker_name,
            "response_to": entry.response_to or "",
            "worker_event": (
                self.event_name_resolver(entry.worker_event)
                if entry.worker_event is not None
                else ""
            ),
        }
        if entry.payload is None:
            projected["worker_message"] = ""
        else:
            projected.update(entry.payload.truncate(self.truncate_length).projection())
        return projected

    def project_frame(self, df: pl.DataFrame) -> List[Dict[str, str]]:
        """Project every row of a decoded frame, preserving its order."""
        return [self.project(self.to_entry(row)) for row in df.iter_rows(named=True)]

