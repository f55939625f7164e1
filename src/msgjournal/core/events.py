"""
Worker event names.

Workers report state transitions as small integer codes. The journal stores
the code and only resolves it to a name when entries are projected for
display, through a resolver the caller may replace.
"""
from enum import IntEnum
from typing import Callable

EventNameResolver = Callable[[int], str]


class WorkerEventName(IntEnum):
    """Event codes emitted by workers."""

    BEGIN = 1
    END = 2
    WORKING = 3
    STARTED = 4
    STOPPED = 5


def resolve_event_name(code: int) -> str:
    """
    Resolve an event code to its name.

    Returns an empty string for unknown codes (including 0), so projected
    entries always carry a string.
    """
    try:
        return WorkerEventName(code).name
    except ValueError:
        return ""
