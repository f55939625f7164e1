"""
Custom exceptions for msgjournal - clear, actionable error handling.

Every failure the journal surfaces names the operation that failed and
chains the underlying cause, so callers can act on it without the journal
logging on their behalf.

Exception Hierarchy:
    MsgJournalError (base)
    ├── ConfigError - Configuration errors
    └── JournalError
        ├── JournalOpenError - The store is unavailable, no handle is returned
        │   ├── JournalConnectionError - Database could not be created or reached
        │   └── JournalMigrationError - A schema migration failed
        ├── JournalWriteError - An entry could not be encoded or inserted
        └── JournalQueryError - A query could not be built, executed or decoded

Usage Guidelines:
    - Always use exception chaining (`raise JournalWriteError(...) from e`) when
      wrapping exceptions to preserve the original traceback for debugging.
    - Nothing here is retried by the journal. Retry policy belongs to the
      caller that invoked the journal.
    - Zero matching entries is not an error; queries return an empty list.
"""


class MsgJournalError(Exception):
    """Base exception for all msgjournal errors."""

    pass


class ConfigError(MsgJournalError):
    """Raised when there's an error in configuration."""

    pass


class JournalError(MsgJournalError):
    """Base exception for journal-related errors."""

    def __init__(self, message: str, operation: str = None, **kwargs):
        super().__init__(message)
        self.operation = operation
        self.context = kwargs


class JournalOpenError(JournalError):
    """The journal store is unavailable."""

    pass


class JournalConnectionError(JournalOpenError):
    """Database object not created or not connected."""

    pass


class JournalMigrationError(JournalOpenError):
    """Schema migration failed while opening the journal."""

    pass


class JournalWriteError(JournalError):
    """Error writing an entry to the journal."""

    pass


class JournalQueryError(JournalError):
    """Error building, executing or decoding a journal query."""

    pass
