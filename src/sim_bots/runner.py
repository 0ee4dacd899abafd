"""BotRunner — snapshot the market, plan, then execute the plan in order.

Runs inside the tick engine's transaction for the tick being produced. Orders
go through the same placement path as API orders.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.models import Company, Inventory, Item
from src.sim_account.domain.repository import AccountRepositoryProtocol
from src.sim_account.infrastructure.persistence import AccountRepository
from src.sim_bots.config import DEFAULT_BOT_RUNTIME_CONFIG, BotRuntimeConfig
from src.sim_bots.planner import (
    BotCompanySnapshot,
    RegionItemKey,
    infer_strategy,
    plan_bot_actions,
    resolve_reference_price,
)
from src.sim_bots.strategies.liquidity import LiquidityItemState
from src.sim_bots.strategies.producer import run_producer_bot
from src.sim_clearing.domain.repository import TradeRepositoryProtocol
from src.sim_clearing.infrastructure.trades_writer import TradeRepository
from src.sim_common.cents import validate_non_negative_int
from src.sim_common.enums import OrderSide
from src.sim_matching.application.service import get_matching_engine
from src.sim_matching.engine.engine import MatchingEngine
from src.sim_order.domain.models import MarketOrder
from src.sim_order.domain.repository import OrderRepositoryProtocol
from src.sim_order.infrastructure.persistence import OrderRepository
from src.sim_production.application.service import ProductionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunBotsResult:
    placed_orders: int = 0
    started_production_jobs: int = 0


def best_prices(
    open_orders: list[MarketOrder],
) -> tuple[dict[RegionItemKey, int], dict[RegionItemKey, int]]:
    """(best bid, best ask) per (region, item) among OPEN orders."""
    bids: dict[RegionItemKey, int] = {}
    asks: dict[RegionItemKey, int] = {}
    for order in open_orders:
        key = (order.region_id, order.item_id)
        if order.side == OrderSide.BUY.value:
            if key not in bids or order.unit_price_cents > bids[key]:
                bids[key] = order.unit_price_cents
        elif key not in asks or order.unit_price_cents < asks[key]:
            asks[key] = order.unit_price_cents
    return bids, asks


class BotRunner:
    def __init__(
        self,
        accounts: AccountRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        trades: TradeRepositoryProtocol | None = None,
        engine: MatchingEngine | None = None,
        production: ProductionService | None = None,
    ) -> None:
        self._accounts: AccountRepositoryProtocol = accounts or AccountRepository()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._trades: TradeRepositoryProtocol = trades or TradeRepository()
        self._engine = engine or get_matching_engine()
        self._production = production or ProductionService()

    async def run_for_tick(
        self, db: AsyncSession, tick: int, config: BotRuntimeConfig = DEFAULT_BOT_RUNTIME_CONFIG
    ) -> RunBotsResult:
        if not config.enabled:
            return RunBotsResult()
        validate_non_negative_int(tick, "tick")
        if config.bot_count <= 0:
            return RunBotsResult()

        companies = await self._accounts.list_bot_companies(db, config.bot_count)
        if not companies:
            return RunBotsResult()
        items = await self._accounts.list_items(db, list(config.item_codes) or None)
        if not items:
            return RunBotsResult()

        company_ids = [c.id for c in companies]
        item_ids = [i.id for i in items]
        inventories = await self._accounts.list_inventories(db, company_ids, item_ids)
        open_orders = await self._orders.list_open_for_items(db, item_ids)
        latest_trades = await self._trades.latest_prices(db, item_ids)
        best_bids, best_asks = best_prices(open_orders)

        reference_prices: dict[str, dict[str, int]] = {}
        snapshots = [
            self._snapshot(
                company, items, inventories, open_orders,
                best_bids, best_asks, latest_trades, reference_prices,
            )
            for company in companies
        ]
        plan = plan_bot_actions(snapshots, config, tick)

        placed = 0
        for placement in plan.order_placements:
            await self._engine.place_order(
                db,
                company_id=placement.company_id,
                item_id=placement.item_id,
                region_id=placement.region_id,
                side=placement.side,
                quantity=placement.quantity,
                unit_price_cents=placement.unit_price_cents,
                tick=tick,
            )
            placed += 1

        started = 0
        for company_id in plan.producer_company_ids:
            started += await run_producer_bot(
                db, self._production, company_id, tick, config, reference_prices[company_id]
            )

        logger.info(
            "Bots at tick %d: %d order(s) placed, %d production job(s) started",
            tick, placed, started,
        )
        return RunBotsResult(placed_orders=placed, started_production_jobs=started)

    @staticmethod
    def _snapshot(
        company: Company,
        items: list[Item],
        inventories: list[Inventory],
        open_orders: list[MarketOrder],
        best_bids: dict[RegionItemKey, int],
        best_asks: dict[RegionItemKey, int],
        latest_trades: dict[RegionItemKey, int],
        reference_prices: dict[str, dict[str, int]],
    ) -> BotCompanySnapshot:
        inventory_by_item = {
            inv.item_id: inv
            for inv in inventories
            if inv.company_id == company.id and inv.region_id == company.region_id
        }
        open_sides = {
            (o.item_id, o.side)
            for o in open_orders
            if o.company_id == company.id and o.region_id == company.region_id
        }
        prices = {
            item.id: resolve_reference_price(
                item.code, company.region_id, item.id, best_bids, best_asks, latest_trades
            )
            for item in items
        }
        reference_prices[company.id] = prices

        item_states = []
        for item in items:
            inventory = inventory_by_item.get(item.id)
            available = inventory.available_quantity if inventory is not None else 0
            item_states.append(
                LiquidityItemState(
                    item_id=item.id,
                    item_code=item.code,
                    reference_price_cents=prices[item.id],
                    available_inventory=max(0, available),
                    has_open_buy_order=(item.id, OrderSide.BUY.value) in open_sides,
                    has_open_sell_order=(item.id, OrderSide.SELL.value) in open_sides,
                )
            )
        return BotCompanySnapshot(
            company_id=company.id,
            company_code=company.code,
            region_id=company.region_id,
            strategy=infer_strategy(company.code, company.specialization),
            available_cash_cents=company.available_cash_cents,
            items=tuple(item_states),
        )


async def run_bots_for_tick(
    db: AsyncSession, tick: int, config: BotRuntimeConfig = DEFAULT_BOT_RUNTIME_CONFIG
) -> RunBotsResult:
    return await BotRunner().run_for_tick(db, tick, config)
