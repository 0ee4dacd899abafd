# src/sim_clearing/domain/repository.py
"""Ledger and trade persistence Protocols used by settlement and the auditor."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.models import LedgerEntry
from src.sim_matching.domain.models import Trade


class LedgerRepositoryProtocol(Protocol):
    async def append(self, db: AsyncSession, entry: LedgerEntry) -> None: ...

    async def list_for_company(self, db: AsyncSession, company_id: str) -> list[LedgerEntry]: ...


class TradeRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, trade: Trade) -> None: ...

    async def list_for_tick(self, db: AsyncSession, tick: int) -> list[Trade]: ...

    async def latest_prices(
        self, db: AsyncSession, item_ids: list[str]
    ) -> dict[tuple[str, str], int]: ...
