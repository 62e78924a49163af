"""
Price of the native asset in a reference currency (EUR, USD or BTC).

The Kraken public ticker is asked first. When it fails, the sell price for
1000 units against EURT on the network's own exchange is used instead. A
price is cached until it is older than the caller's max_age.
"""
import time
from dataclasses import dataclass
from fractions import Fraction
from typing import Callable, Optional

import requests

from .amount import parse_amount, parse_price
from .asset import AssetRegistry
from .config import CACHE_TIMEOUT_FORCE, HTTP_TIMEOUT
from .exceptions import HorizonError, InvalidAmount
from .log import get_logger
from .orderbook import OrderBookCache

logger = get_logger(__name__)

KRAKEN_TICKER_URL = "https://api.kraken.com/0/public/Ticker"
KRAKEN_PAIRS = {
    "EUR": "XLMEUR",
    "USD": "XLMUSD",
    "BTC": "XLMXBT",
}
REFERENCE_CURRENCIES = ["none"] + sorted(KRAKEN_PAIRS)

SDEX_REFERENCE_ISSUER = "GAP5LETOV6YIE62YAM56STDANPRDO7ZFDBGSNHJQIYGGKSMOZAHOOS2S"
SDEX_REFERENCE_CODE = "EURT"
SDEX_REFERENCE_VOLUME = "1000"


@dataclass(frozen=True)
class ReferencePrice:
    currency: str
    price: Fraction     # reference currency per native unit
    timestamp: float


class ReferencePriceCache:
    def __init__(self, currency: str, order_books: OrderBookCache, registry: AssetRegistry,
                 clock: Callable[[], float] = time.monotonic):
        if currency not in REFERENCE_CURRENCIES:
            raise ValueError(f"Unknown reference currency '{currency}', "
                             f"choose one of: {', '.join(REFERENCE_CURRENCIES)}")
        self.currency = currency
        self._order_books = order_books
        self._registry = registry
        self._clock = clock
        self._price: Optional[ReferencePrice] = None

    def get(self, max_age: float) -> Optional[ReferencePrice]:
        """Cached price, refreshed when older than max_age. None when no source has one."""
        if self.currency == "none":
            return None

        now = self._clock()
        if self._price is not None and now - self._price.timestamp < max_age:
            return self._price

        self._price = None
        price = self._kraken()
        if price is not None:
            self._price = ReferencePrice(self.currency, price, now)
        else:
            price = self._sdex()
            if price is not None:
                self._price = ReferencePrice(SDEX_REFERENCE_CODE, price, now)
        return self._price

    def _kraken(self) -> Optional[Fraction]:
        # Kraken quotes XLM only
        if self._registry.native_code != "XLM":
            return None

        try:
            r = requests.get(KRAKEN_TICKER_URL, params={"pair": KRAKEN_PAIRS[self.currency]},
                             timeout=HTTP_TIMEOUT)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Kraken ticker request failed: {e}")
            return None

        if data.get("error"):
            logger.warning(f"Kraken ticker error: {data['error'][0]}")
            return None

        for pair, ticker in (data.get("result") or {}).items():
            average = ticker.get("p") or []
            if not average:
                continue
            try:
                return parse_price(average[0])
            except InvalidAmount as e:
                logger.warning(f"Kraken ticker {pair}: {e}")
        return None

    def _sdex(self) -> Optional[Fraction]:
        reference = self._registry.intern(SDEX_REFERENCE_ISSUER, SDEX_REFERENCE_CODE)
        try:
            _, sell = self._order_books.average_price(
                self._registry.native(), reference, parse_amount(SDEX_REFERENCE_VOLUME),
                CACHE_TIMEOUT_FORCE)
        except HorizonError as e:
            logger.warning(f"Reference price from order book failed: {e}")
            return None
        return sell if sell > 0 else None

    def clear(self) -> None:
        self._price = None
