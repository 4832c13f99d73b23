"""
Clock — the single source of "now" for the policy engine.

Every engine function takes `now` as an argument; routers obtain it from
`get_clock` so tests can override it with a fixed instant.
"""

from datetime import datetime
from typing import Callable

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Server-local wall clock time, timezone-aware."""
    return datetime.now().astimezone()


def get_clock() -> Clock:
    return local_now
