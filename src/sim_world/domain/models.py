from dataclasses import dataclass
from datetime import datetime

WORLD_STATE_ID = 1


@dataclass
class WorldTickState:
    """Singleton row holding the simulation clock."""

    current_tick: int = 0
    lock_version: int = 0
    last_advanced_at: datetime | None = None
    id: int = WORLD_STATE_ID
