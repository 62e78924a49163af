# test_offers.py
from fractions import Fraction

import pytest
from stellar_sdk import Keypair

from stellarcli.amount import parse_amount
from stellarcli.offers import Offer, get_offers


def offer_record(offer_id, selling, buying, amount, n, d):
    return {
        "id": str(offer_id),
        "selling": selling,
        "buying": buying,
        "amount": amount,
        "price_r": {"n": n, "d": d},
        "price": str(n / d),
    }


NATIVE = {"asset_type": "native"}


def credit(issuer, code):
    return {"asset_type": "credit_alphanum4", "asset_code": code, "asset_issuer": issuer}


class TestOffers:
    @pytest.fixture
    def seller(self):
        return Keypair.random().public_key

    @pytest.fixture
    def usd(self, session, issuer):
        return session.registry.intern(issuer, "USD")

    @pytest.fixture
    def xlm(self, session):
        return session.registry.native()

    @pytest.fixture
    def offers(self, horizon, seller, issuer):
        horizon.offers[seller] = [
            # sell 10 XLM at 1/2 USD each
            offer_record(1, NATIVE, credit(issuer, "USD"), "10.0000000", 1, 2),
            offer_record(2, credit(issuer, "EUR"), NATIVE, "4.0000000", 3, 1),
        ]

    def test_from_horizon(self, session, usd, xlm, issuer):
        offer = Offer.from_horizon(session.registry,
                                   offer_record(9, NATIVE, credit(issuer, "USD"), "10.0000000", 1, 2))
        assert offer.offer_id == 9
        assert offer.asset1 is xlm and offer.asset2 is usd
        assert offer.amount1 == parse_amount("10")
        assert offer.amount2 == parse_amount("5")
        assert not offer.buying

    def test_reverse(self, session, usd, issuer):
        offer = Offer.from_horizon(session.registry,
                                   offer_record(9, NATIVE, credit(issuer, "USD"), "10.0000000", 1, 2))
        offer.reverse()
        assert offer.buying
        assert offer.asset1 is usd
        assert offer.price == Fraction(2)
        assert offer.amount1 == parse_amount("5")
        assert str(offer).startswith("Buy : 5.0000000 USD/")

    def test_all_offers(self, session, offers, seller):
        result = get_offers(session, seller)
        assert [o.offer_id for o in result] == [1, 2]
        assert not any(o.buying for o in result)

    def test_pair_filter_in_given_orientation(self, session, offers, seller, xlm, usd):
        result = get_offers(session, seller, xlm, usd)
        assert len(result) == 1
        assert result[0].offer_id == 1
        assert not result[0].buying

    def test_pair_filter_reversed(self, session, offers, seller, xlm, usd):
        result = get_offers(session, seller, usd, xlm)
        assert len(result) == 1
        assert result[0].buying
        assert result[0].asset1 is usd
        assert result[0].price == Fraction(2)

    def test_wallet_trading_pair_orientation(self, session, offers, seller, unlocked_wallet, issuer):
        usd = unlocked_wallet.add_asset(issuer, "USD")
        unlocked_wallet.add_trading_pair(usd, None)
        session.wallet = unlocked_wallet

        result = {o.offer_id: o for o in get_offers(session, seller)}
        assert result[1].buying
        assert result[1].asset1.code == "USD"
        # EUR is not in the wallet
        assert not result[2].buying
