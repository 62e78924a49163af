from collections import Counter
from typing import Dict, List, Optional

import pytest
from stellar_sdk import Keypair

from stellarcli.config import get_network
from stellarcli.session import Session
from stellarcli.wallet import PasswordMonitor, Wallet
from stellarcli.wallet.mnemonic import generate_mnemonic

# keeps PBKDF2 fast in tests
TEST_ITERATIONS = 1000
PASSWORD = "correct horse"

WORDS = generate_mnemonic()


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHorizon:
    """In-memory stand-in for HorizonClient."""

    def __init__(self, network):
        self.network = network
        self.accounts: Dict[str, dict] = {}
        self.books: Dict[tuple, dict] = {}
        self.offers: Dict[str, List[dict]] = {}
        self.transactions: Dict[str, List[dict]] = {}
        self.trades: Dict[str, List[dict]] = {}
        self.submitted = []
        self.calls = Counter()
        self.fail: Optional[Exception] = None

    def _call(self, name: str) -> None:
        self.calls[name] += 1
        if self.fail is not None:
            raise self.fail

    def load_account(self, account_id):
        self._call("load_account")
        return self.accounts.get(account_id)

    def order_book(self, selling, buying, limit=200):
        self._call("order_book")
        return self.books.get((str(selling), str(buying)), {"bids": [], "asks": []})

    def account_offers(self, account_id):
        self._call("account_offers")
        return list(self.offers.get(account_id, []))

    def _page(self, records, limit, cursor):
        start = 0
        if cursor:
            tokens = [r["paging_token"] for r in records]
            start = tokens.index(cursor) + 1
        return records[start:start + limit]

    def account_transactions(self, account_id, limit, cursor=""):
        self._call("account_transactions")
        return self._page(self.transactions.get(account_id, []), limit, cursor)

    def account_trades(self, account_id, limit, cursor=""):
        self._call("account_trades")
        return self._page(self.trades.get(account_id, []), limit, cursor)

    def submit_transaction(self, envelope):
        self._call("submit_transaction")
        self.submitted.append(envelope)
        return {"hash": envelope.hash_hex(), "ledger": 42}

    def fund(self, account_id):
        self._call("fund")
        self.accounts[account_id] = account_record(account_id)
        return True, "abc"


def account_record(account_id: str, sequence: int = 100, balances: Optional[List[dict]] = None) -> dict:
    return {
        "id": account_id,
        "account_id": account_id,
        "sequence": str(sequence),
        "subentry_count": 0,
        "thresholds": {"low_threshold": 0, "med_threshold": 0, "high_threshold": 0},
        "balances": balances if balances is not None else [
            {"asset_type": "native", "balance": "100.0000000"},
        ],
        "signers": [{"key": account_id, "weight": 1, "type": "ed25519_public_key"}],
    }


def book_level(price_n: int, price_d: int, amount: str) -> dict:
    return {"price_r": {"n": price_n, "d": price_d}, "price": str(price_n / price_d), "amount": amount}


@pytest.fixture
def network():
    return get_network("testnet")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def horizon(network):
    return FakeHorizon(network)


@pytest.fixture
def session(network, horizon, clock):
    return Session(network, horizon=horizon, clock=clock)


@pytest.fixture
def issuer():
    return Keypair.random().public_key


@pytest.fixture
def monitor(clock):
    return PasswordMonitor(timeout=120, clock=clock)


@pytest.fixture
def wallet(monitor):
    return Wallet.create(PASSWORD, words=WORDS, iterations=TEST_ITERATIONS, monitor=monitor)


@pytest.fixture
def unlocked_wallet(wallet):
    wallet.unlock(PASSWORD)
    yield wallet
    wallet.release()
