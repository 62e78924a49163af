"""
Order book depth with a freshness bound, and average prices for a volume.

Horizon convention: in the book for (base, counter) a bid offers the counter
asset for the base asset and its amount is in the counter asset; an ask
offers the base asset and its amount is in the base asset. Prices are always
counter per base.
"""
import time
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Callable, Dict, FrozenSet, List, Tuple

from .amount import ZERO, parse_amount, price_to_fraction
from .asset import Asset, AssetRegistry
from .exceptions import InvalidAssetError
from .horizon import HorizonClient, Record
from .log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderBookLevel:
    price: Fraction
    amount: Fraction    # stroops


@dataclass
class OrderBookSnapshot:
    base: Asset
    counter: Asset
    timestamp: float
    bids: List[OrderBookLevel] = field(default_factory=list)
    asks: List[OrderBookLevel] = field(default_factory=list)

    def inverted(self) -> "OrderBookSnapshot":
        """The same book seen from the other asset: bids become asks at the inverse price."""
        return OrderBookSnapshot(
            base=self.counter,
            counter=self.base,
            timestamp=self.timestamp,
            bids=[OrderBookLevel(1 / lv.price, lv.amount) for lv in self.asks],
            asks=[OrderBookLevel(1 / lv.price, lv.amount) for lv in self.bids],
        )

    def best_bid(self) -> Fraction:
        return self.bids[0].price if self.bids else ZERO

    def best_ask(self) -> Fraction:
        return self.asks[0].price if self.asks else ZERO


def _levels(entries: List[Record]) -> List[OrderBookLevel]:
    levels = []
    for e in entries:
        price = price_to_fraction(e["price_r"])
        if price <= 0:
            continue
        levels.append(OrderBookLevel(price=price, amount=parse_amount(e["amount"])))
    return levels


def average_prices(book: OrderBookSnapshot, volume: Fraction) -> Tuple[Fraction, Fraction]:
    """
    Volume weighted prices (counter per base) for trading `volume` stroops of
    the base asset: (buy_price, sell_price). Selling walks the bids, buying
    walks the asks. A side that fills nothing gives exactly 0.
    """
    # selling base: bid amounts are in the counter asset
    remaining = Fraction(volume)
    received = ZERO
    for lv in book.bids:
        if remaining <= 0:
            break
        base_amount = lv.amount / lv.price
        if remaining >= base_amount:
            received += lv.amount
            remaining -= base_amount
        else:
            received += remaining * lv.price
            remaining = ZERO
    sold = volume - remaining
    sell_price = received / sold if sold > 0 else ZERO

    # buying base: ask amounts are in the base asset
    remaining = Fraction(volume)
    paid = ZERO
    for lv in book.asks:
        if remaining <= 0:
            break
        if remaining >= lv.amount:
            paid += lv.amount * lv.price
            remaining -= lv.amount
        else:
            paid += remaining * lv.price
            remaining = ZERO
    bought = volume - remaining
    buy_price = paid / bought if bought > 0 else ZERO

    return buy_price, sell_price


class OrderBookCache:
    def __init__(self, horizon: HorizonClient, registry: AssetRegistry,
                 clock: Callable[[], float] = time.monotonic):
        self._horizon = horizon
        self._registry = registry
        self._clock = clock
        self._entries: Dict[FrozenSet[Asset], OrderBookSnapshot] = {}

    def get(self, asset1: Asset, asset2: Asset, max_age: float) -> OrderBookSnapshot:
        """Book with asset1 as base and asset2 as counter."""
        if asset1 is asset2:
            raise InvalidAssetError("order book needs two different assets")

        key = frozenset((asset1, asset2))
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None or now - entry.timestamp >= max_age:
            self._entries.pop(key, None)
            record = self._horizon.order_book(asset1, asset2)
            entry = OrderBookSnapshot(
                base=asset1,
                counter=asset2,
                timestamp=now,
                bids=_levels(record.get("bids", [])),
                asks=_levels(record.get("asks", [])),
            )
            self._entries[key] = entry
            logger.debug(f"Order book {asset1}/{asset2} refreshed: "
                         f"{len(entry.bids)} bids, {len(entry.asks)} asks")

        if entry.base is asset1:
            return entry
        return entry.inverted()

    def average_price(self, asset1: Asset, asset2: Asset, volume: Fraction,
                      max_age: float) -> Tuple[Fraction, Fraction]:
        """(buy_price, sell_price) in asset2 per asset1 for `volume` stroops of asset1."""
        if volume <= 0:
            return ZERO, ZERO
        return average_prices(self.get(asset1, asset2, max_age), volume)

    def clear(self) -> None:
        self._entries.clear()
