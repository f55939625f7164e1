"""
Utility functions and classes for msgjournal.
"""
from .exceptions import (
    ConfigError,
    JournalConnectionError,
    JournalError,
    JournalMigrationError,
    JournalOpenError,
    JournalQueryError,
    JournalWriteError,
    MsgJournalError,
)

__all__ = [
    "MsgJournalError",
    "ConfigError",
    "JournalError",
    "JournalOpenError",
    "JournalConnectionError",
    "JournalMigrationError",
    "JournalWriteError",
    "JournalQueryError",
]
