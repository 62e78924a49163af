# test_transaction.py
from fractions import Fraction

import pytest
from stellar_sdk import HashMemo, IdMemo, Keypair, NoneMemo, Price, ReturnHashMemo, TextMemo

from conftest import account_record
from stellarcli.amount import parse_amount
from stellarcli.exceptions import InvalidAmount, InvalidMemoError, TransactionStateError, ValidationError
from stellarcli.transaction import Transaction, sdk_price


@pytest.fixture
def source(horizon):
    kp = Keypair.random()
    horizon.accounts[kp.public_key] = account_record(kp.public_key, sequence=100)
    return kp


@pytest.fixture
def tx(session, source):
    return Transaction.open(session, source.public_key)


class TestTransaction:
    def test_open_missing_account(self, session):
        assert Transaction.open(session, Keypair.random().public_key) is None

    def test_single_payment(self, tx):
        tx.native_payment(Keypair.random().public_key, parse_amount("10"))
        envelope = tx.finalize()
        assert len(envelope.transaction.operations) == 1
        assert isinstance(envelope.transaction.memo, NoneMemo)
        assert envelope.transaction.fee == 100
        assert envelope.transaction.sequence == 101

    def test_fee_scales_with_operations(self, tx, issuer, session):
        usd = session.registry.intern(issuer, "USD")
        tx.add_trustline(usd)
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        tx.add_sell_offer(session.registry.native(), usd, Fraction(1, 2), parse_amount("5"))
        assert tx.finalize().transaction.fee == 300

    def test_unsigned_blob(self, tx):
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        tx.finalize()
        signed, envelope = tx.sign([])
        assert not signed
        assert tx.blob()
        assert envelope.signatures == []

    def test_sign(self, tx, source):
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        tx.finalize()
        signed, envelope = tx.sign([source])
        assert signed
        assert len(envelope.signatures) == 1

    def test_sign_before_finalize(self, tx, source):
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        with pytest.raises(TransactionStateError):
            tx.sign([source])

    def test_frozen_after_signing(self, tx, source):
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        tx.finalize()
        tx.sign([source])
        with pytest.raises(TransactionStateError):
            tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        with pytest.raises(TransactionStateError):
            tx.memo_text("late")

    def test_empty_transaction(self, tx):
        with pytest.raises(TransactionStateError):
            tx.finalize()

    def test_last_memo_wins(self, tx):
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        tx.memo_text("first")
        tx.memo_id(7)
        memo = tx.finalize().transaction.memo
        assert isinstance(memo, IdMemo)
        assert memo.memo_id == 7

    def test_memo_limits(self, tx):
        tx.memo_text("x" * 28)
        assert isinstance(tx.memo, TextMemo)
        with pytest.raises(InvalidMemoError):
            tx.memo_text("x" * 29)
        with pytest.raises(InvalidMemoError):
            tx.memo_id(2 ** 64)
        with pytest.raises(InvalidMemoError):
            tx.memo_hash(b"short")

    def test_hash_memos(self, tx):
        tx.memo_hash("ab" * 32)
        assert isinstance(tx.memo, HashMemo)
        tx.memo_return_hash(bytes(32))
        assert isinstance(tx.memo, ReturnHashMemo)
        assert tx.memo.memo_return == bytes(32)

    def test_cancel_offer_without_assets(self, tx):
        tx.cancel_offer(12345)
        op = tx.finalize().transaction.operations[0]
        assert op.offer_id == 12345
        assert op.buying.code == "FAKE"

    @pytest.mark.parametrize("offer_id", [0, -1])
    def test_cancel_offer_needs_positive_id(self, tx, offer_id):
        with pytest.raises(ValidationError):
            tx.cancel_offer(offer_id)

    def test_submit(self, tx, source, horizon):
        tx.native_payment(Keypair.random().public_key, parse_amount("1"))
        tx.finalize()
        tx.sign([source])
        result = tx.submit()
        assert result["hash"] == tx.hash_hex()
        assert horizon.submitted == [tx.envelope]


class TestSdkPrice:
    def test_exact_price(self):
        price = sdk_price(Fraction(3, 7))
        assert isinstance(price, Price)
        assert (price.n, price.d) == (3, 7)

    def test_large_fraction_falls_back_to_decimal(self):
        assert sdk_price(Fraction(10 ** 10 + 1, 10 ** 10)) == "1.0000000001"

    def test_non_positive(self):
        with pytest.raises(InvalidAmount):
            sdk_price(Fraction(0))
