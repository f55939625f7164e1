"""
Core journal components.
"""
from .entry import JournalEntry, StructuredPayload, TextPayload
from .events import WorkerEventName, resolve_event_name
from .filter import CompiledQuery, Filter, compile_filter
from .journal import Journal, JournalConfig
from .projector import Projector
from .session import SessionClock

__all__ = [
    "Journal",
    "JournalConfig",
    "JournalEntry",
    "TextPayload",
    "StructuredPayload",
    "Filter",
    "CompiledQuery",
    "compile_filter",
    "Projector",
    "SessionClock",
    "WorkerEventName",
    "resolve_event_name",
]
