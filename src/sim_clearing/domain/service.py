"""Trade settlement — moves cash, inventory and order reservations for one fill.

Called by the matching engine inside its savepoint. Every step goes through a
guarded repository UPDATE, so a fill that would break a balance invariant
raises and rolls the whole placement (or sweep) back.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.sim_account.domain.repository import AccountRepositoryProtocol
from src.sim_clearing.domain.repository import (
    LedgerRepositoryProtocol,
    TradeRepositoryProtocol,
)
from src.sim_clearing.infrastructure.ledger import new_entry
from src.sim_common.cents import is_int, validate_positive_int
from src.sim_common.datetime_utils import utc_now
from src.sim_common.enums import LedgerEntryType, LedgerReferenceType, OrderStatus
from src.sim_common.errors import DomainInvariantError
from src.sim_common.id_generator import generate_id
from src.sim_matching.domain.models import Trade
from src.sim_order.domain.models import MarketOrder
from src.sim_order.domain.repository import OrderRepositoryProtocol

logger = logging.getLogger(__name__)


def _check_fill(buy: MarketOrder, sell: MarketOrder, quantity: int, unit_price_cents: int) -> None:
    validate_positive_int(quantity, "quantity")
    if not is_int(unit_price_cents) or unit_price_cents <= 0:
        raise DomainInvariantError("execution price must be a positive integer")
    if buy.side != "BUY" or sell.side != "SELL":
        raise DomainInvariantError("settlement requires one BUY and one SELL order")
    if not buy.is_open or not sell.is_open:
        raise DomainInvariantError("cannot settle against a closed order")
    if buy.item_id != sell.item_id or buy.region_id != sell.region_id:
        raise DomainInvariantError("orders belong to different books")
    if quantity > buy.remaining_quantity or quantity > sell.remaining_quantity:
        raise DomainInvariantError("fill quantity exceeds remaining order quantity")
    if not sell.unit_price_cents <= unit_price_cents <= buy.unit_price_cents:
        raise DomainInvariantError("execution price outside the crossing range")
    if buy.reserved_cash_cents < quantity * buy.unit_price_cents:
        raise DomainInvariantError("buy order reservation too small for fill")
    if sell.reserved_quantity < quantity:
        raise DomainInvariantError("sell order reservation too small for fill")


def _reduce_order(order: MarketOrder, quantity: int, tick: int) -> None:
    order.remaining_quantity -= quantity
    if order.side == "BUY":
        order.reserved_cash_cents -= quantity * order.unit_price_cents
    else:
        order.reserved_quantity -= quantity
    if order.remaining_quantity == 0:
        order.status = OrderStatus.FILLED.value
        order.tick_closed = tick
        order.closed_at = utc_now()


async def settle_trade(
    db: AsyncSession,
    *,
    buy: MarketOrder,
    sell: MarketOrder,
    quantity: int,
    unit_price_cents: int,
    tick: int,
    accounts: AccountRepositoryProtocol,
    orders: OrderRepositoryProtocol,
    trades: TradeRepositoryProtocol,
    ledger: LedgerRepositoryProtocol,
) -> Trade:
    """Settle one fill between `buy` and `sell`. Mutates both orders in place."""
    _check_fill(buy, sell, quantity, unit_price_cents)

    notional = quantity * unit_price_cents
    reserve_release = quantity * buy.unit_price_cents

    # Cash: a company on both sides pays itself, so only the hold is released.
    if buy.company_id == sell.company_id:
        buyer = await accounts.release_cash(db, buy.company_id, reserve_release)
        seller = buyer
    else:
        buyer = await accounts.settle_buyer_cash(db, buy.company_id, notional, reserve_release)
        seller = await accounts.credit_cash(db, sell.company_id, notional)

    # Inventory: seller's reserved goods leave, buyer's stock grows.
    await accounts.consume_inventory(db, sell.company_id, sell.item_id, sell.region_id, quantity)
    await accounts.add_inventory(db, buy.company_id, buy.item_id, buy.region_id, quantity)

    _reduce_order(buy, quantity, tick)
    _reduce_order(sell, quantity, tick)
    await orders.update_fill(db, buy)
    await orders.update_fill(db, sell)

    trade = Trade(
        id=generate_id(),
        buy_order_id=buy.id,
        sell_order_id=sell.id,
        buyer_id=buy.company_id,
        seller_id=sell.company_id,
        item_id=buy.item_id,
        region_id=buy.region_id,
        tick=tick,
        unit_price_cents=unit_price_cents,
        quantity=quantity,
        total_price_cents=notional,
        created_at=utc_now(),
    )
    await trades.insert(db, trade)

    await ledger.append(
        db,
        new_entry(
            company_id=buy.company_id,
            tick=tick,
            entry_type=LedgerEntryType.TRADE_SETTLEMENT.value,
            delta_cash_cents=-notional,
            delta_reserved_cash_cents=-reserve_release,
            balance_after_cents=buyer.cash_cents,
            reference_type=LedgerReferenceType.MARKET_TRADE_BUY.value,
            reference_id=trade.id,
        ),
    )
    await ledger.append(
        db,
        new_entry(
            company_id=sell.company_id,
            tick=tick,
            entry_type=LedgerEntryType.TRADE_SETTLEMENT.value,
            delta_cash_cents=notional,
            balance_after_cents=seller.cash_cents,
            reference_type=LedgerReferenceType.MARKET_TRADE_SELL.value,
            reference_id=trade.id,
        ),
    )
    logger.debug(
        "Settled trade %s: %s x %s @ %s (buy=%s sell=%s)",
        trade.id, trade.item_id, quantity, unit_price_cents, buy.id, sell.id,
    )
    return trade
