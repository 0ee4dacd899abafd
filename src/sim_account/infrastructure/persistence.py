"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows means a business constraint was violated (insufficient cash,
insufficient inventory, or a reservation that would go negative).

Transaction ownership: the CALLER (application service or tick engine) owns the
session and commits or rolls back the unit of work.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.models import Company, Inventory, Item
from src.sim_common.errors import (
    DomainInvariantError,
    InsufficientFundsError,
    InsufficientInventoryError,
    NotFoundError,
)

# ---------------------------------------------------------------------------
# SQL: companies
# ---------------------------------------------------------------------------

_COMPANY_COLUMNS = """
    id, code, region_id, cash_cents, reserved_cash_cents, is_player,
    specialization, initial_cash_cents, created_at, updated_at
"""

_GET_COMPANY_SQL = text(f"SELECT {_COMPANY_COLUMNS} FROM companies WHERE id = :id")

_GET_COMPANY_FOR_UPDATE_SQL = text(
    f"SELECT {_COMPANY_COLUMNS} FROM companies WHERE id = :id FOR UPDATE"
)

_LIST_BOT_COMPANIES_SQL = text(f"""
    SELECT {_COMPANY_COLUMNS}
    FROM companies
    WHERE is_player = FALSE
    ORDER BY code ASC
    LIMIT :limit
""")

_RESERVE_CASH_SQL = text(f"""
    UPDATE companies
    SET reserved_cash_cents = reserved_cash_cents + :amount,
        updated_at = NOW()
    WHERE id = :id AND cash_cents - reserved_cash_cents >= :amount
    RETURNING {_COMPANY_COLUMNS}
""")

_RELEASE_CASH_SQL = text(f"""
    UPDATE companies
    SET reserved_cash_cents = reserved_cash_cents - :amount,
        updated_at = NOW()
    WHERE id = :id AND reserved_cash_cents >= :amount
    RETURNING {_COMPANY_COLUMNS}
""")

# Buyer pays `notional` out of cash and drops `reserve_release` from its hold.
# Guard keeps reserved <= cash after the move.
_SETTLE_BUYER_SQL = text(f"""
    UPDATE companies
    SET cash_cents = cash_cents - :notional,
        reserved_cash_cents = reserved_cash_cents - :reserve_release,
        updated_at = NOW()
    WHERE id = :id
      AND reserved_cash_cents >= :reserve_release
      AND cash_cents >= :notional
      AND reserved_cash_cents - :reserve_release <= cash_cents - :notional
    RETURNING {_COMPANY_COLUMNS}
""")

_CREDIT_CASH_SQL = text(f"""
    UPDATE companies
    SET cash_cents = cash_cents + :amount,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_COMPANY_COLUMNS}
""")

_DEBIT_AVAILABLE_CASH_SQL = text(f"""
    UPDATE companies
    SET cash_cents = cash_cents - :amount,
        updated_at = NOW()
    WHERE id = :id AND cash_cents - reserved_cash_cents >= :amount
    RETURNING {_COMPANY_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: inventories
# ---------------------------------------------------------------------------

_INVENTORY_COLUMNS = "company_id, item_id, region_id, quantity, reserved_quantity"

_INVENTORY_KEY = "company_id = :company_id AND item_id = :item_id AND region_id = :region_id"

_GET_INVENTORY_SQL = text(
    f"SELECT {_INVENTORY_COLUMNS} FROM inventories WHERE {_INVENTORY_KEY}"
)

_GET_INVENTORY_FOR_UPDATE_SQL = text(
    f"SELECT {_INVENTORY_COLUMNS} FROM inventories WHERE {_INVENTORY_KEY} FOR UPDATE"
)

_LIST_INVENTORIES_SQL = text(f"""
    SELECT {_INVENTORY_COLUMNS}
    FROM inventories
    WHERE company_id = ANY(:company_ids) AND item_id = ANY(:item_ids)
    ORDER BY company_id ASC, item_id ASC, region_id ASC
""")

_RESERVE_INVENTORY_SQL = text(f"""
    UPDATE inventories
    SET reserved_quantity = reserved_quantity + :quantity,
        updated_at = NOW()
    WHERE {_INVENTORY_KEY} AND quantity - reserved_quantity >= :quantity
    RETURNING {_INVENTORY_COLUMNS}
""")

_RELEASE_INVENTORY_SQL = text(f"""
    UPDATE inventories
    SET reserved_quantity = reserved_quantity - :quantity,
        updated_at = NOW()
    WHERE {_INVENTORY_KEY} AND reserved_quantity >= :quantity
    RETURNING {_INVENTORY_COLUMNS}
""")

_CONSUME_INVENTORY_SQL = text(f"""
    UPDATE inventories
    SET quantity = quantity - :quantity,
        reserved_quantity = reserved_quantity - :quantity,
        updated_at = NOW()
    WHERE {_INVENTORY_KEY}
      AND quantity >= :quantity
      AND reserved_quantity >= :quantity
    RETURNING {_INVENTORY_COLUMNS}
""")

_ADD_INVENTORY_SQL = text(f"""
    INSERT INTO inventories (company_id, item_id, region_id, quantity, reserved_quantity)
    VALUES (:company_id, :item_id, :region_id, :quantity, 0)
    ON CONFLICT (company_id, item_id, region_id) DO UPDATE
        SET quantity = inventories.quantity + EXCLUDED.quantity,
            updated_at = NOW()
    RETURNING {_INVENTORY_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: catalog
# ---------------------------------------------------------------------------

_GET_ITEM_SQL = text("SELECT id, code, name FROM items WHERE id = :id")

_LIST_ITEMS_SQL = text("SELECT id, code, name FROM items ORDER BY code ASC")

_LIST_ITEMS_BY_CODE_SQL = text(
    "SELECT id, code, name FROM items WHERE code = ANY(:codes) ORDER BY code ASC"
)

_REGION_EXISTS_SQL = text("SELECT 1 FROM regions WHERE id = :id")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_company(row: Any) -> Company:
    return Company(
        id=row.id,
        code=row.code,
        region_id=row.region_id,
        cash_cents=row.cash_cents,
        reserved_cash_cents=row.reserved_cash_cents,
        is_player=row.is_player,
        specialization=row.specialization,
        initial_cash_cents=row.initial_cash_cents,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_inventory(row: Any) -> Inventory:
    return Inventory(
        company_id=row.company_id,
        item_id=row.item_id,
        region_id=row.region_id,
        quantity=row.quantity,
        reserved_quantity=row.reserved_quantity,
    )


def _row_to_item(row: Any) -> Item:
    return Item(id=row.id, code=row.code, name=row.name)


class AccountRepository:
    """Raw SQL persistence for companies, inventories and items."""

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    async def get_company(
        self, db: AsyncSession, company_id: str, *, for_update: bool = False
    ) -> Company | None:
        sql = _GET_COMPANY_FOR_UPDATE_SQL if for_update else _GET_COMPANY_SQL
        row = (await db.execute(sql, {"id": company_id})).fetchone()
        return _row_to_company(row) if row is not None else None

    async def list_bot_companies(self, db: AsyncSession, limit: int) -> list[Company]:
        rows = (await db.execute(_LIST_BOT_COMPANIES_SQL, {"limit": limit})).fetchall()
        return [_row_to_company(r) for r in rows]

    async def reserve_cash(self, db: AsyncSession, company_id: str, amount: int) -> Company:
        row = (
            await db.execute(_RESERVE_CASH_SQL, {"id": company_id, "amount": amount})
        ).fetchone()
        if row is None:
            await self._require_company(db, company_id)
            raise InsufficientFundsError(
                f"insufficient available cash to reserve {amount} for company {company_id}"
            )
        return _row_to_company(row)

    async def release_cash(self, db: AsyncSession, company_id: str, amount: int) -> Company:
        row = (
            await db.execute(_RELEASE_CASH_SQL, {"id": company_id, "amount": amount})
        ).fetchone()
        if row is None:
            await self._require_company(db, company_id)
            raise DomainInvariantError("reserved cash cannot become negative")
        return _row_to_company(row)

    async def settle_buyer_cash(
        self, db: AsyncSession, company_id: str, notional: int, reserve_release: int
    ) -> Company:
        row = (
            await db.execute(
                _SETTLE_BUYER_SQL,
                {"id": company_id, "notional": notional, "reserve_release": reserve_release},
            )
        ).fetchone()
        if row is None:
            await self._require_company(db, company_id)
            raise DomainInvariantError("buyer company cannot satisfy matched cash transfer")
        return _row_to_company(row)

    async def credit_cash(self, db: AsyncSession, company_id: str, amount: int) -> Company:
        row = (
            await db.execute(_CREDIT_CASH_SQL, {"id": company_id, "amount": amount})
        ).fetchone()
        if row is None:
            raise NotFoundError(f"company {company_id} not found")
        return _row_to_company(row)

    async def debit_available_cash(
        self, db: AsyncSession, company_id: str, amount: int
    ) -> Company:
        row = (
            await db.execute(_DEBIT_AVAILABLE_CASH_SQL, {"id": company_id, "amount": amount})
        ).fetchone()
        if row is None:
            await self._require_company(db, company_id)
            raise InsufficientFundsError(
                f"insufficient available cash to pay {amount} for company {company_id}"
            )
        return _row_to_company(row)

    async def _require_company(self, db: AsyncSession, company_id: str) -> None:
        if await self.get_company(db, company_id) is None:
            raise NotFoundError(f"company {company_id} not found")

    # ------------------------------------------------------------------
    # Inventories
    # ------------------------------------------------------------------

    async def get_inventory(
        self,
        db: AsyncSession,
        company_id: str,
        item_id: str,
        region_id: str,
        *,
        for_update: bool = False,
    ) -> Inventory | None:
        sql = _GET_INVENTORY_FOR_UPDATE_SQL if for_update else _GET_INVENTORY_SQL
        row = (
            await db.execute(
                sql, {"company_id": company_id, "item_id": item_id, "region_id": region_id}
            )
        ).fetchone()
        return _row_to_inventory(row) if row is not None else None

    async def list_inventories(
        self, db: AsyncSession, company_ids: list[str], item_ids: list[str]
    ) -> list[Inventory]:
        if not company_ids or not item_ids:
            return []
        rows = (
            await db.execute(
                _LIST_INVENTORIES_SQL, {"company_ids": company_ids, "item_ids": item_ids}
            )
        ).fetchall()
        return [_row_to_inventory(r) for r in rows]

    async def reserve_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory:
        row = await self._guarded_inventory_update(
            db, _RESERVE_INVENTORY_SQL, company_id, item_id, region_id, quantity
        )
        if row is None:
            raise InsufficientInventoryError(
                f"insufficient available inventory of item {item_id} "
                f"for company {company_id}: required {quantity}"
            )
        return _row_to_inventory(row)

    async def release_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory:
        row = await self._guarded_inventory_update(
            db, _RELEASE_INVENTORY_SQL, company_id, item_id, region_id, quantity
        )
        if row is None:
            raise DomainInvariantError(
                f"reserved inventory of item {item_id} cannot become negative"
            )
        return _row_to_inventory(row)

    async def consume_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory:
        row = await self._guarded_inventory_update(
            db, _CONSUME_INVENTORY_SQL, company_id, item_id, region_id, quantity
        )
        if row is None:
            raise DomainInvariantError(
                f"inventory of item {item_id} cannot satisfy consumption of {quantity}"
            )
        return _row_to_inventory(row)

    async def add_inventory(
        self, db: AsyncSession, company_id: str, item_id: str, region_id: str, quantity: int
    ) -> Inventory:
        row = (
            await db.execute(
                _ADD_INVENTORY_SQL,
                {
                    "company_id": company_id,
                    "item_id": item_id,
                    "region_id": region_id,
                    "quantity": quantity,
                },
            )
        ).fetchone()
        return _row_to_inventory(row)

    async def _guarded_inventory_update(
        self,
        db: AsyncSession,
        sql: Any,
        company_id: str,
        item_id: str,
        region_id: str,
        quantity: int,
    ) -> Any:
        return (
            await db.execute(
                sql,
                {
                    "company_id": company_id,
                    "item_id": item_id,
                    "region_id": region_id,
                    "quantity": quantity,
                },
            )
        ).fetchone()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def get_item(self, db: AsyncSession, item_id: str) -> Item | None:
        row = (await db.execute(_GET_ITEM_SQL, {"id": item_id})).fetchone()
        return _row_to_item(row) if row is not None else None

    async def list_items(self, db: AsyncSession, codes: list[str] | None = None) -> list[Item]:
        if codes:
            rows = (await db.execute(_LIST_ITEMS_BY_CODE_SQL, {"codes": codes})).fetchall()
        else:
            rows = (await db.execute(_LIST_ITEMS_SQL)).fetchall()
        return [_row_to_item(r) for r in rows]

    async def region_exists(self, db: AsyncSession, region_id: str) -> bool:
        return (await db.execute(_REGION_EXISTS_SQL, {"id": region_id})).fetchone() is not None
