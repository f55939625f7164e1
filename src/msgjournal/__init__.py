"""
An embedded journal of worker messages and emitted events.
"""
from .core import (
    Filter,
    Journal,
    JournalConfig,
    JournalEntry,
    StructuredPayload,
    TextPayload,
    WorkerEventName,
)

__version__ = "0.1.0"

__all__ = [
    "Journal",
    "JournalConfig",
    "JournalEntry",
    "TextPayload",
    "StructuredPayload",
    "Filter",
    "WorkerEventName",
]
