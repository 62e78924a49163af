# test_orderbook.py
from fractions import Fraction

import pytest

from conftest import book_level
from stellarcli.amount import parse_amount
from stellarcli.config import CACHE_TIMEOUT_SHORT
from stellarcli.exceptions import InvalidAssetError


class TestOrderBook:
    @pytest.fixture
    def usd(self, session, issuer):
        return session.registry.intern(issuer, "USD")

    @pytest.fixture
    def xlm(self, session):
        return session.registry.native()

    @pytest.fixture
    def book(self, horizon, xlm, usd):
        # bids pay USD for XLM, amounts in USD; asks sell XLM, amounts in XLM
        horizon.books[(str(xlm), str(usd))] = {
            "bids": [book_level(2, 1, "50.0000000")],
            "asks": [book_level(5, 2, "30.0000000")],
        }

    def test_average_price_single_level(self, session, book, xlm, usd):
        buy, sell = session.order_books.average_price(xlm, usd, parse_amount("30"), CACHE_TIMEOUT_SHORT)
        assert sell == Fraction(2)
        assert buy == Fraction(5, 2)

    def test_partial_fill_is_still_exact(self, session, book, xlm, usd):
        buy, sell = session.order_books.average_price(xlm, usd, parse_amount("100"), CACHE_TIMEOUT_SHORT)
        assert sell == Fraction(2)
        assert buy == Fraction(5, 2)

    def test_walks_several_levels(self, session, horizon, xlm, usd):
        horizon.books[(str(xlm), str(usd))] = {
            "bids": [book_level(2, 1, "20.0000000"), book_level(1, 1, "100.0000000")],
            "asks": [book_level(3, 1, "10.0000000"), book_level(4, 1, "10.0000000")],
        }
        buy, sell = session.order_books.average_price(xlm, usd, parse_amount("20"), CACHE_TIMEOUT_SHORT)
        # 10 XLM at 2 then 10 XLM at 1
        assert sell == Fraction(3, 2)
        # 10 XLM at 3 then 10 XLM at 4
        assert buy == Fraction(7, 2)

    def test_zero_volume_or_empty_book(self, session, horizon, book, xlm, usd):
        assert session.order_books.average_price(xlm, usd, Fraction(0), CACHE_TIMEOUT_SHORT) == (0, 0)
        horizon.books.clear()
        session.order_books.clear()
        assert session.order_books.average_price(xlm, usd, parse_amount("1"), CACHE_TIMEOUT_SHORT) == (0, 0)

    def test_reverse_request_uses_cached_book(self, session, horizon, book, xlm, usd):
        forward = session.order_books.get(xlm, usd, CACHE_TIMEOUT_SHORT)
        reverse = session.order_books.get(usd, xlm, CACHE_TIMEOUT_SHORT)
        assert horizon.calls["order_book"] == 1
        assert reverse.base is usd and reverse.counter is xlm
        assert reverse.asks[0].price == 1 / forward.bids[0].price
        assert reverse.asks[0].amount == forward.bids[0].amount
        assert reverse.bids[0].price == Fraction(2, 5)
        assert reverse.best_ask() == Fraction(1, 2)
        assert forward.best_bid() == Fraction(2)

    def test_freshness(self, session, horizon, clock, book, xlm, usd):
        session.order_books.get(xlm, usd, CACHE_TIMEOUT_SHORT)
        clock.advance(5)
        session.order_books.get(xlm, usd, CACHE_TIMEOUT_SHORT)
        assert horizon.calls["order_book"] == 1
        clock.advance(CACHE_TIMEOUT_SHORT)
        session.order_books.get(xlm, usd, CACHE_TIMEOUT_SHORT)
        assert horizon.calls["order_book"] == 2

    def test_same_asset_twice(self, session, xlm):
        with pytest.raises(InvalidAssetError):
            session.order_books.get(xlm, xlm, CACHE_TIMEOUT_SHORT)
