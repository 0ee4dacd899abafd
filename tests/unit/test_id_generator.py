"""Tests for sim_common.id_generator and sim_common.datetime_utils."""

from datetime import UTC, datetime

import pytest

from src.sim_common.datetime_utils import utc_now
from src.sim_common.id_generator import SnowflakeIdGenerator, generate_id


class TestSnowflakeIdGenerator:
    def test_returns_str(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        assert isinstance(gen.next_id(), str)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_string_order_matches_creation_order(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=7)
        ids = [gen.next_id() for _ in range(200)]
        assert ids == sorted(ids)
        assert len({len(i) for i in ids}) == 1

    def test_machine_id_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)

    def test_module_level_generate_id(self) -> None:
        assert generate_id() < generate_id()


class TestUtcNow:
    def test_returns_aware_datetime(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo == UTC
