from bisect import insort
from collections import deque
from dataclasses import dataclass, field

from src.sim_matching.domain.models import BookOrder


@dataclass
class OrderBook:
    """Price-level book for one (item, region). Prices are unbounded int cents.

    Each level is a FIFO deque kept in time priority (tick_placed, created_at, id).
    """

    item_id: str
    region_id: str
    bids: dict[int, deque[BookOrder]] = field(default_factory=dict)
    asks: dict[int, deque[BookOrder]] = field(default_factory=dict)
    _bid_prices: list[int] = field(default_factory=list)  # ascending
    _ask_prices: list[int] = field(default_factory=list)  # ascending

    @property
    def best_bid(self) -> int | None:
        return self._bid_prices[-1] if self._bid_prices else None

    @property
    def best_ask(self) -> int | None:
        return self._ask_prices[0] if self._ask_prices else None

    def add_order(self, book_order: BookOrder) -> None:
        if book_order.side == "BUY":
            levels, prices = self.bids, self._bid_prices
        else:
            levels, prices = self.asks, self._ask_prices
        queue = levels.get(book_order.price)
        if queue is None:
            queue = deque()
            levels[book_order.price] = queue
            insort(prices, book_order.price)
        _insert_by_time(queue, book_order)

    def head(self, side: str, price: int) -> BookOrder:
        """Oldest order resting at `price` on `side`."""
        return self._levels(side)[price][0]

    def pop_front(self, side: str, price: int) -> BookOrder:
        """Remove the oldest order at a level; the level goes once empty."""
        queue = self._levels(side)[price]
        book_order = queue.popleft()
        if not queue:
            self.remove_level(side, price)
        return book_order

    def remove_level(self, side: str, price: int) -> None:
        if side == "BUY":
            self.bids.pop(price, None)
            self._bid_prices.remove(price)
        else:
            self.asks.pop(price, None)
            self._ask_prices.remove(price)

    def _levels(self, side: str) -> dict[int, deque[BookOrder]]:
        return self.bids if side == "BUY" else self.asks


def _insert_by_time(queue: deque[BookOrder], book_order: BookOrder) -> None:
    if not queue or queue[-1].time_key <= book_order.time_key:
        queue.append(book_order)
        return
    for i, bo in enumerate(queue):
        if book_order.time_key < bo.time_key:
            queue.insert(i, book_order)
            return
