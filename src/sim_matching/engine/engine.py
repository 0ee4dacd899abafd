"""MatchingEngine — order placement, cancellation and the per-tick matching sweep.

The book is never cached between calls: every placement locks the crossing
counter-orders FOR UPDATE, builds a transient OrderBook from them, matches and
settles inside one savepoint of the caller's transaction.
"""
import logging
from collections import defaultdict
from dataclasses import replace

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.repository import AccountRepositoryProtocol
from src.sim_account.domain.reservations import buy_order_reserve_amount
from src.sim_account.infrastructure.persistence import AccountRepository
from src.sim_clearing.domain.repository import (
    LedgerRepositoryProtocol,
    TradeRepositoryProtocol,
)
from src.sim_clearing.domain.service import settle_trade
from src.sim_clearing.infrastructure.ledger import LedgerRepository, new_entry
from src.sim_clearing.infrastructure.trades_writer import TradeRepository
from src.sim_common.cents import (
    validate_non_negative_int,
    validate_notional,
    validate_positive_int,
    validate_price,
)
from src.sim_common.datetime_utils import utc_now
from src.sim_common.enums import LedgerEntryType, LedgerReferenceType, OrderSide, OrderStatus
from src.sim_common.errors import DomainInvariantError, NotFoundError
from src.sim_common.id_generator import generate_id
from src.sim_matching.domain.models import BookOrder, Trade
from src.sim_matching.engine.matching_algo import match_order, plan_order_matches_for_book
from src.sim_matching.engine.order_book import OrderBook
from src.sim_order.domain.models import MarketOrder
from src.sim_order.domain.repository import OrderRepositoryProtocol
from src.sim_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)


def to_book_order(order: MarketOrder) -> BookOrder:
    return BookOrder(
        order_id=order.id,
        company_id=order.company_id,
        side=order.side,
        price=order.unit_price_cents,
        quantity=order.remaining_quantity,
        tick_placed=order.tick_placed,
        created_at=order.created_at or utc_now(),
    )


def _require_id(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise DomainInvariantError(f"{name} is required")
    return value


class MatchingEngine:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        trades: TradeRepositoryProtocol | None = None,
        ledger: LedgerRepositoryProtocol | None = None,
    ) -> None:
        self._accounts = accounts or AccountRepository()
        self._orders = orders or OrderRepository()
        self._trades = trades or TradeRepository()
        self._ledger = ledger or LedgerRepository()

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def place_order(
        self,
        db: AsyncSession,
        *,
        company_id: str,
        item_id: str,
        region_id: str,
        side: str,
        quantity: int,
        unit_price_cents: int,
        tick: int,
    ) -> tuple[MarketOrder, list[Trade]]:
        """Reserve, persist and match a new limit order. Returns (order, trades)."""
        _require_id(company_id, "company_id")
        _require_id(item_id, "item_id")
        _require_id(region_id, "region_id")
        if side not in (OrderSide.BUY.value, OrderSide.SELL.value):
            raise DomainInvariantError("side must be BUY or SELL")
        validate_positive_int(quantity, "quantity")
        validate_price(unit_price_cents)
        validate_notional(quantity, unit_price_cents)
        validate_non_negative_int(tick, "tick")

        if await self._accounts.get_company(db, company_id) is None:
            raise NotFoundError(f"company {company_id} not found")
        if await self._accounts.get_item(db, item_id) is None:
            raise NotFoundError(f"item {item_id} not found")
        if not await self._accounts.region_exists(db, region_id):
            raise NotFoundError(f"region {region_id} not found")

        async with db.begin_nested():
            return await self._place_order_inner(
                db, company_id, item_id, region_id, side, quantity, unit_price_cents, tick
            )

    async def _place_order_inner(
        self,
        db: AsyncSession,
        company_id: str,
        item_id: str,
        region_id: str,
        side: str,
        quantity: int,
        unit_price_cents: int,
        tick: int,
    ) -> tuple[MarketOrder, list[Trade]]:
        order = MarketOrder(
            id=generate_id(),
            company_id=company_id,
            item_id=item_id,
            region_id=region_id,
            side=side,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            tick_placed=tick,
            created_at=utc_now(),
        )

        # Reserve
        if side == OrderSide.BUY.value:
            amount = buy_order_reserve_amount(quantity, unit_price_cents)
            company = await self._accounts.reserve_cash(db, company_id, amount)
            order.reserved_cash_cents = amount
            await self._ledger.append(
                db,
                new_entry(
                    company_id=company_id,
                    tick=tick,
                    entry_type=LedgerEntryType.ORDER_RESERVE.value,
                    delta_cash_cents=0,
                    delta_reserved_cash_cents=amount,
                    balance_after_cents=company.cash_cents,
                    reference_type=LedgerReferenceType.MARKET_ORDER.value,
                    reference_id=order.id,
                ),
            )
        else:
            await self._accounts.reserve_inventory(db, company_id, item_id, region_id, quantity)
            order.reserved_quantity = quantity

        await self._orders.save(db, order)

        # Match against the locked counter side
        counter_side = OrderSide.SELL.value if side == OrderSide.BUY.value else OrderSide.BUY.value
        resting = await self._orders.lock_counter_orders(
            db, item_id, region_id, counter_side, unit_price_cents
        )
        resting_by_id = {o.id: o for o in resting}
        ob = OrderBook(item_id=item_id, region_id=region_id)
        for o in resting:
            ob.add_order(to_book_order(o))

        # match_order works on a copy; settle_trade owns the real decrements.
        fills = match_order(replace(order), ob)

        trades: list[Trade] = []
        for fill in fills:
            if side == OrderSide.BUY.value:
                buy, sell = order, resting_by_id[fill.sell_order_id]
            else:
                buy, sell = resting_by_id[fill.buy_order_id], order
            trade = await settle_trade(
                db,
                buy=buy,
                sell=sell,
                quantity=fill.quantity,
                unit_price_cents=fill.price,
                tick=tick,
                accounts=self._accounts,
                orders=self._orders,
                trades=self._trades,
                ledger=self._ledger,
            )
            trades.append(trade)

        logger.info(
            "Placed %s order %s: %s x %s @ %s for company %s, %d fill(s), status %s",
            side, order.id, item_id, quantity, unit_price_cents, company_id,
            len(trades), order.status,
        )
        return order, trades

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel_order(self, db: AsyncSession, order_id: str, tick: int) -> MarketOrder:
        """Cancel an OPEN order and release what it still holds."""
        _require_id(order_id, "order_id")
        validate_non_negative_int(tick, "tick")

        async with db.begin_nested():
            order = await self._orders.get_by_id(db, order_id, for_update=True)
            if order is None:
                raise NotFoundError(f"order {order_id} not found")
            if order.status != OrderStatus.OPEN.value:
                raise DomainInvariantError(f"order {order_id} is {order.status}, not OPEN")

            if order.side == OrderSide.BUY.value:
                release = order.reserved_cash_cents
                if release > 0:
                    company = await self._accounts.release_cash(db, order.company_id, release)
                    await self._ledger.append(
                        db,
                        new_entry(
                            company_id=order.company_id,
                            tick=tick,
                            entry_type=LedgerEntryType.ORDER_RESERVE.value,
                            delta_cash_cents=0,
                            delta_reserved_cash_cents=-release,
                            balance_after_cents=company.cash_cents,
                            reference_type=LedgerReferenceType.MARKET_ORDER.value,
                            reference_id=order.id,
                        ),
                    )
                order.reserved_cash_cents = 0
            else:
                if order.reserved_quantity > 0:
                    await self._accounts.release_inventory(
                        db, order.company_id, order.item_id, order.region_id,
                        order.reserved_quantity,
                    )
                order.reserved_quantity = 0

            order.status = OrderStatus.CANCELLED.value
            order.tick_closed = tick
            order.closed_at = utc_now()
            await self._orders.update_fill(db, order)

        logger.info("Cancelled order %s at tick %d", order_id, tick)
        return order

    # ------------------------------------------------------------------
    # Tick sweep
    # ------------------------------------------------------------------

    async def run_matching_for_tick(self, db: AsyncSession, tick: int) -> list[Trade]:
        """Settle every crossed pair among resting orders, book by book.

        Placement already matches eagerly, so in a consistent store this finds
        nothing; it is the safety net for orders that rest crossed.
        """
        open_orders = await self._orders.lock_open_orders(db)
        books: dict[tuple[str, str], list[MarketOrder]] = defaultdict(list)
        for o in open_orders:
            books[(o.region_id, o.item_id)].append(o)

        trades: list[Trade] = []
        for region_id, item_id in sorted(books):
            book_orders = books[(region_id, item_id)]
            by_id = {o.id: o for o in book_orders}
            book = [to_book_order(o) for o in book_orders]
            plans = plan_order_matches_for_book(
                item_id,
                region_id,
                [b for b in book if b.side == OrderSide.BUY.value],
                [b for b in book if b.side == OrderSide.SELL.value],
            )
            for plan in plans:
                trade = await settle_trade(
                    db,
                    buy=by_id[plan.buy_order_id],
                    sell=by_id[plan.sell_order_id],
                    quantity=plan.quantity,
                    unit_price_cents=plan.unit_price_cents,
                    tick=tick,
                    accounts=self._accounts,
                    orders=self._orders,
                    trades=self._trades,
                    ledger=self._ledger,
                )
                trades.append(trade)

        if trades:
            logger.info("Matching sweep at tick %d settled %d trade(s)", tick, len(trades))
        return trades
