"""Snowflake-style ID generator for orders, trades, jobs and ledger rows.

IDs are decimal strings of one fixed width for the next few decades, so plain
string comparison orders them by creation time. Matching and candle ordering
use the id as the final tiebreak after (tick, created_at).
"""

import threading
import time

from config.settings import settings


class SnowflakeIdGenerator:
    """Layout (63 bits used):
      - 41 bits: millisecond timestamp since _EPOCH_MS
      - 10 bits: machine_id (0-1023), one per API/worker process
      - 12 bits: sequence (0-4095 per millisecond)
    """

    _EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1
    _WIDTH = 19

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_timestamp_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            ts = max(self._current_ms(), self._last_timestamp_ms)
            if ts == self._last_timestamp_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    ts = self._wait_next_ms(ts)
            else:
                self._sequence = 0

            self._last_timestamp_ms = ts
            id_int = (
                ((ts - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(id_int).zfill(self._WIDTH)

    def _current_ms(self) -> int:
        return int(time.time() * 1000)

    def _wait_next_ms(self, last_ts: int) -> int:
        ts = self._current_ms()
        while ts <= last_ts:
            ts = self._current_ms()
        return ts


_default_generator = SnowflakeIdGenerator(settings.SNOWFLAKE_MACHINE_ID)


def generate_id() -> str:
    """Next id from the process-wide generator."""
    return _default_generator.next_id()
