# src/sim_account/domain/repository.py
"""AccountRepository Protocol — companies, inventories and the item catalog.

Unit tests inject an in-memory implementation conforming to this Protocol.
All mutating methods are atomic guarded updates: they either apply the change
and return the new row, or raise without changing anything.
"""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.models import Company, Inventory, Item


class AccountRepositoryProtocol(Protocol):
    # --- companies ---

    async def get_company(
        self, db: AsyncSession, company_id: str, *, for_update: bool = False
    ) -> Company | None: ...

    async def list_bot_companies(self, db: AsyncSession, limit: int) -> list[Company]: ...

    async def reserve_cash(self, db: AsyncSession, company_id: str, amount: int) -> Company: ...

    async def release_cash(self, db: AsyncSession, company_id: str, amount: int) -> Company: ...

    async def settle_buyer_cash(
        self, db: AsyncSession, company_id: str, notional: int, reserve_release: int
    ) -> Company: ...

    async def credit_cash(self, db: AsyncSession, company_id: str, amount: int) -> Company: ...

    async def debit_available_cash(
        self, db: AsyncSession, company_id: str, amount: int
    ) -> Company: ...

    # --- inventories ---

    async def get_inventory(
        self,
        db: AsyncSession,
        company_id: str,
        item_id: str,
        region_id: str,
        *,
        for_update: bool = False,
    ) -> Inventory | None: ...

    async def list_inventories(
        self, db: AsyncSession, company_ids: list[str], item_ids: list[str]
    ) -> list[Inventory]: ...

    async def reserve_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory: ...

    async def release_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory: ...

    async def consume_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory: ...

    async def add_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory: ...

    # --- catalog ---

    async def get_item(self, db: AsyncSession, item_id: str) -> Item | None: ...

    async def list_items(self, db: AsyncSession, codes: list[str] | None = None) -> list[Item]: ...

    async def region_exists(self, db: AsyncSession, region_id: str) -> bool: ...
