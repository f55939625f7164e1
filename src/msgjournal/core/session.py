"""
Session clock for session-scoped journal queries.

The journal keeps every entry in one table. "This session only" visibility
is a time lower bound: the watermark recorded when the journal handle was
opened. Entries sent before it are durable history; entries sent at or
after it belong to the current session.
"""
from datetime import datetime, timezone
from typing import Optional

from msgjournal.utility.timestamps import ensure_utc, format_display, to_storage


class SessionClock:
    """
    Records when a journal handle was opened.

    Example:
        ```python
        clock = SessionClock()
        clock.lower_bound(persistent=False)  # storage-form watermark
        clock.lower_bound(persistent=True)   # None, no constraint
        ```

    Args:
        opened_at: Explicit watermark (defaults to now, in UTC)
    """

    def __init__(self, opened_at: Optional[datetime] = None):
        if opened_at is None:
            opened_at = datetime.now(timezone.utc)
        self._opened_at = ensure_utc(opened_at)

    @property
    def opened_at(self) -> datetime:
        return self._opened_at

    def lower_bound(self, persistent: bool) -> Optional[str]:
        """
        Get the session-scope lower bound for a query.

        Args:
            persistent: True for durable scope, False for this session only

        Returns:
            Storage-form watermark for session scope, or None for durable scope
        """
        if persistent:
            return None
        return to_storage(self._opened_at)

    def serialize(self) -> str:
        """Display form of the watermark, accepted back by ``--session-start``."""
        return format_display(self._opened_at)

    def __repr__(self) -> str:
        return f"SessionClock(opened_at={self._opened_at.isoformat()})"
