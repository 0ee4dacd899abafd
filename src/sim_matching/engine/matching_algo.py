"""Price-time priority matching.

Two entry points share one priority rule (best price, then earlier tick_placed,
then earlier created_at, then id):

- match_order: an incoming order walks the opposite side of an OrderBook and
  fills greedily at each resting order's price.
- plan_order_matches_for_book: a crossed set of resting orders is paired off
  and each pair executes at the older order's price.
"""
from dataclasses import replace

from src.sim_matching.domain.models import BookOrder, MatchPlan, TradeResult
from src.sim_matching.engine.order_book import OrderBook
from src.sim_order.domain.models import MarketOrder


def match_order(incoming: MarketOrder, ob: OrderBook) -> list[TradeResult]:
    if incoming.side == "BUY":
        return _match_buy(incoming, ob)
    return _match_sell(incoming, ob)


def _match_buy(incoming: MarketOrder, ob: OrderBook) -> list[TradeResult]:
    """Match a BUY order against resting asks priced <= the buy price."""
    trades: list[TradeResult] = []
    while incoming.remaining_quantity > 0:
        price = ob.best_ask
        if price is None or price > incoming.unit_price_cents:
            break
        resting = ob.head("SELL", price)
        fill_qty = min(incoming.remaining_quantity, resting.quantity)
        trades.append(_make_trade_buy_incoming(incoming, resting, price, fill_qty))
        _apply_fill(incoming, resting, fill_qty)
        if resting.quantity == 0:
            ob.pop_front("SELL", price)
    return trades


def _match_sell(incoming: MarketOrder, ob: OrderBook) -> list[TradeResult]:
    """Match a SELL order against resting bids priced >= the sell price."""
    trades: list[TradeResult] = []
    while incoming.remaining_quantity > 0:
        price = ob.best_bid
        if price is None or price < incoming.unit_price_cents:
            break
        resting = ob.head("BUY", price)
        fill_qty = min(incoming.remaining_quantity, resting.quantity)
        trades.append(_make_trade_sell_incoming(incoming, resting, price, fill_qty))
        _apply_fill(incoming, resting, fill_qty)
        if resting.quantity == 0:
            ob.pop_front("BUY", price)
    return trades


def _make_trade_buy_incoming(
    buy_incoming: MarketOrder, sell_resting: BookOrder, price: int, qty: int
) -> TradeResult:
    """incoming is BUY, resting is SELL."""
    return TradeResult(
        buy_order_id=buy_incoming.id,
        sell_order_id=sell_resting.order_id,
        buyer_id=buy_incoming.company_id,
        seller_id=sell_resting.company_id,
        item_id=buy_incoming.item_id,
        region_id=buy_incoming.region_id,
        price=price,
        quantity=qty,
    )


def _make_trade_sell_incoming(
    sell_incoming: MarketOrder, buy_resting: BookOrder, price: int, qty: int
) -> TradeResult:
    """incoming is SELL, resting is BUY."""
    return TradeResult(
        buy_order_id=buy_resting.order_id,
        sell_order_id=sell_incoming.id,
        buyer_id=buy_resting.company_id,
        seller_id=sell_incoming.company_id,
        item_id=sell_incoming.item_id,
        region_id=sell_incoming.region_id,
        price=price,
        quantity=qty,
    )


def _apply_fill(incoming: MarketOrder, resting: BookOrder, qty: int) -> None:
    incoming.remaining_quantity -= qty
    resting.quantity -= qty
    if incoming.remaining_quantity == 0:
        incoming.status = "FILLED"


# ---------------------------------------------------------------------------
# Crossed-book sweep
# ---------------------------------------------------------------------------


def buy_priority(order: BookOrder) -> tuple:
    return (-order.price, *order.time_key)


def sell_priority(order: BookOrder) -> tuple:
    return (order.price, *order.time_key)


def resolve_execution_price(buy: BookOrder, sell: BookOrder) -> int:
    """The older order of the pair is the resting one; its price executes."""
    return buy.price if buy.time_key <= sell.time_key else sell.price


def plan_order_matches_for_book(
    item_id: str, region_id: str, buys: list[BookOrder], sells: list[BookOrder]
) -> list[MatchPlan]:
    """Pair off crossing resting orders. Inputs are not mutated."""
    ordered_buys = sorted(
        (replace(o) for o in buys if o.side == "BUY" and o.quantity > 0),
        key=buy_priority,
    )
    ordered_sells = sorted(
        (replace(o) for o in sells if o.side == "SELL" and o.quantity > 0),
        key=sell_priority,
    )

    plans: list[MatchPlan] = []
    bi = si = 0
    while bi < len(ordered_buys) and si < len(ordered_sells):
        buy = ordered_buys[bi]
        sell = ordered_sells[si]
        if buy.price < sell.price:
            break
        qty = min(buy.quantity, sell.quantity)
        plans.append(
            MatchPlan(
                item_id=item_id,
                region_id=region_id,
                buy_order_id=buy.order_id,
                sell_order_id=sell.order_id,
                quantity=qty,
                unit_price_cents=resolve_execution_price(buy, sell),
            )
        )
        buy.quantity -= qty
        sell.quantity -= qty
        if buy.quantity == 0:
            bi += 1
        if sell.quantity == 0:
            si += 1
    return plans
