# test_accounts.py
import pytest
from stellar_sdk import Keypair

from conftest import account_record
from stellarcli.accounts import get_account_trades, get_account_transactions
from stellarcli.amount import parse_amount
from stellarcli.config import CACHE_TIMEOUT_FORCE, CACHE_TIMEOUT_SHORT
from stellarcli.exceptions import HorizonError


class TestAccountInfoCache:
    @pytest.fixture
    def account_id(self, horizon, issuer):
        account_id = Keypair.random().public_key
        horizon.accounts[account_id] = account_record(account_id, sequence=7, balances=[
            {"asset_type": "native", "balance": "25.5000000"},
            {"asset_type": "credit_alphanum4", "asset_code": "USD", "asset_issuer": issuer,
             "balance": "3.0000000"},
            {"asset_type": "liquidity_pool_shares", "liquidity_pool_id": "abcd", "balance": "1.0000000"},
        ])
        return account_id

    def test_snapshot_contents(self, session, account_id, issuer):
        info = session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        assert info.exists
        assert info.sequence == 7
        assert info.balance(session.registry.native()) == parse_amount("25.5")
        assert info.balance(session.registry.intern(issuer, "USD")) == parse_amount("3")
        assert len(info.balances) == 2
        assert info.signers[0].key == account_id

    def test_fresh_entry_is_reused(self, session, horizon, clock, account_id):
        first = session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        clock.advance(5)
        assert session.accounts.get(account_id, CACHE_TIMEOUT_SHORT) is first
        assert horizon.calls["load_account"] == 1

    def test_stale_entry_is_refetched(self, session, horizon, clock, account_id):
        first = session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        clock.advance(CACHE_TIMEOUT_SHORT)
        assert session.accounts.get(account_id, CACHE_TIMEOUT_SHORT) is not first
        assert horizon.calls["load_account"] == 2

    def test_force_always_refetches(self, session, horizon, account_id):
        session.accounts.get(account_id, CACHE_TIMEOUT_FORCE)
        session.accounts.get(account_id, CACHE_TIMEOUT_FORCE)
        assert horizon.calls["load_account"] == 2

    def test_missing_account(self, session):
        info = session.accounts.get(Keypair.random().public_key, CACHE_TIMEOUT_SHORT)
        assert not info.exists
        assert info.balances == {}

    def test_failure_leaves_no_entry(self, session, horizon, clock, account_id):
        session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        clock.advance(60)
        horizon.fail = HorizonError("Load account", "Internal Server Error", status=500)
        with pytest.raises(HorizonError):
            session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        assert account_id not in session.accounts

    def test_clear(self, session, horizon, account_id):
        session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        session.accounts.clear(account_id)
        assert account_id not in session.accounts
        session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        session.accounts.clear()
        assert account_id not in session.accounts


class TestHistory:
    def test_pages_with_cursor(self, horizon):
        account_id = Keypair.random().public_key
        horizon.transactions[account_id] = [{"hash": f"h{i}", "paging_token": f"t{i}"} for i in range(5)]

        records, cursor = get_account_transactions(horizon, account_id, 3)
        assert [r["hash"] for r in records] == ["h0", "h1", "h2"]
        assert cursor == "t2"

        records, cursor = get_account_transactions(horizon, account_id, 3, cursor)
        assert [r["hash"] for r in records] == ["h3", "h4"]
        assert cursor == ""

    def test_count_is_capped(self, horizon):
        account_id = Keypair.random().public_key
        horizon.trades[account_id] = [{"id": i, "paging_token": str(i)} for i in range(250)]
        records, cursor = get_account_trades(horizon, account_id, 1000)
        assert len(records) == 200
        assert cursor == "199"

    def test_missing_account_has_no_history(self, horizon):
        assert get_account_transactions(horizon, Keypair.random().public_key, 10) == ([], "")
