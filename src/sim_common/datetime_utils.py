"""Wall-clock timestamps for created_at / closed_at columns.

Simulation time is the integer world tick; these only order rows within a tick.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
