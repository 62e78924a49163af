"""
Transaction assembly.

A Transaction collects operations against the sequence number of its source
account at the time it was opened. finalize() builds the envelope with
stellar_sdk's TransactionBuilder (fee = base fee per operation, sequence + 1,
TX_TIMEOUT time bounds); sign() adds signatures; after that the operation
list is frozen.
"""
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from stellar_sdk import (
    Account,
    ChangeTrust,
    ClaimClaimableBalance,
    CreateAccount,
    HashMemo,
    IdMemo,
    Keypair,
    ManageBuyOffer,
    ManageSellOffer,
    Memo,
    NoneMemo,
    Payment,
    Price,
    ReturnHashMemo,
    SetOptions,
    TextMemo,
    TransactionBuilder,
    TransactionEnvelope,
)
from stellar_sdk import Asset as SdkAsset
from stellar_sdk.operation import Operation

from .amount import ZERO, float_string, format_amount
from .asset import Asset
from .config import CACHE_TIMEOUT_FORCE, MEMO_TEXT_MAX, TX_TIMEOUT, NetworkConfig
from .exceptions import InvalidAmount, InvalidMemoError, TransactionStateError, ValidationError
from .horizon import HorizonClient, Record
from .log import get_logger

logger = get_logger(__name__)

INT32_MAX = 2 ** 31 - 1
MAX_MEMO_ID = 2 ** 64 - 1
PRICE_DIGITS = 10


def sdk_price(price: Fraction):
    """Exact Price when it fits the ledger's int32 pair, else a decimal string."""
    price = Fraction(price)
    if price <= 0:
        raise InvalidAmount("price must be greater than zero")
    if price.numerator <= INT32_MAX and price.denominator <= INT32_MAX:
        return Price(price.numerator, price.denominator)
    return float_string(price, PRICE_DIGITS)


def sdk_amount(amount: Fraction) -> str:
    if amount < 0:
        raise InvalidAmount("amount must not be negative")
    return format_amount(amount)


class Transaction:
    def __init__(self, network: NetworkConfig, horizon: HorizonClient,
                 source_id: str, sequence: int):
        self.network = network
        self._horizon = horizon
        self.source_id = source_id
        self.sequence = sequence
        self.operations: List[Operation] = []
        self.memo: Memo = NoneMemo()
        self.envelope: Optional[TransactionEnvelope] = None
        self.signed = False

    @classmethod
    def open(cls, session, source_id: str) -> Optional["Transaction"]:
        """Start a transaction for `source_id`, or None if the account does not exist."""
        snapshot = session.accounts.get(source_id, CACHE_TIMEOUT_FORCE)
        if not snapshot.exists:
            logger.info(f"Source account {source_id} does not exist")
            return None
        return cls(session.network, session.horizon, source_id, snapshot.sequence)

    def _append(self, op: Operation) -> None:
        if self.signed:
            raise TransactionStateError("Transaction is already signed.")
        self.operations.append(op)
        self.envelope = None

    # -------- operations --------

    def create_account(self, destination: str, amount: Fraction) -> None:
        self._append(CreateAccount(destination=destination, starting_balance=sdk_amount(amount)))

    def native_payment(self, destination: str, amount: Fraction) -> None:
        self._append(Payment(destination=destination, asset=SdkAsset.native(), amount=sdk_amount(amount)))

    def asset_payment(self, destination: str, asset: Asset, amount: Fraction) -> None:
        self._append(Payment(destination=destination, asset=asset.to_sdk(), amount=sdk_amount(amount)))

    def inflation_destination(self, destination: str) -> None:
        self._append(SetOptions(inflation_dest=destination))

    def add_trustline(self, asset: Asset) -> None:
        # no limit means the maximum limit
        self._append(ChangeTrust(asset=asset.to_sdk()))

    def remove_trustline(self, asset: Asset) -> None:
        self._append(ChangeTrust(asset=asset.to_sdk(), limit="0"))

    def add_sell_offer(self, selling: Asset, buying: Asset, price: Fraction,
                       amount: Fraction, offer_id: int = 0) -> None:
        """Sell `amount` of selling at `price` (buying per selling). offer_id 0 creates a new offer."""
        self._append(ManageSellOffer(
            selling=selling.to_sdk(),
            buying=buying.to_sdk(),
            amount=sdk_amount(amount),
            price=sdk_price(price),
            offer_id=offer_id,
        ))

    def add_buy_offer(self, selling: Asset, buying: Asset, price: Fraction,
                      amount: Fraction, offer_id: int = 0) -> None:
        """Buy `amount` of buying at `price` (selling per buying). offer_id 0 creates a new offer."""
        self._append(ManageBuyOffer(
            selling=selling.to_sdk(),
            buying=buying.to_sdk(),
            amount=sdk_amount(amount),
            price=sdk_price(price),
            offer_id=offer_id,
        ))

    def cancel_offer(self, offer_id: int, selling: Optional[Asset] = None,
                     buying: Optional[Asset] = None) -> None:
        """Delete an offer. The ledger only looks at the id when the amount is zero."""
        if offer_id <= 0:
            raise ValidationError("offer id must be positive")
        sdk_selling = selling.to_sdk() if selling is not None else SdkAsset.native()
        sdk_buying = buying.to_sdk() if buying is not None else SdkAsset("FAKE", self.source_id)
        self._append(ManageSellOffer(
            selling=sdk_selling,
            buying=sdk_buying,
            amount=sdk_amount(ZERO),
            price=Price(1, 1),
            offer_id=offer_id,
        ))

    def claim_claimable_balance(self, balance_id: str) -> None:
        self._append(ClaimClaimableBalance(balance_id=balance_id))

    # -------- memo, last one set wins --------

    def _set_memo(self, memo: Memo) -> None:
        if self.signed:
            raise TransactionStateError("Transaction is already signed.")
        self.memo = memo
        self.envelope = None

    def memo_text(self, text: str) -> None:
        if len(text.encode("utf-8")) > MEMO_TEXT_MAX:
            raise InvalidMemoError(f"Memo text too long, max length {MEMO_TEXT_MAX} bytes.")
        self._set_memo(TextMemo(text))

    def memo_id(self, memo_id: int) -> None:
        if not 0 <= memo_id <= MAX_MEMO_ID:
            raise InvalidMemoError("Memo ID invalid, must be unsigned 64 bit integer.")
        self._set_memo(IdMemo(memo_id))

    def memo_hash(self, memo_hash: bytes) -> None:
        self._set_memo(HashMemo(_hash32(memo_hash)))

    def memo_return_hash(self, memo_hash: bytes) -> None:
        self._set_memo(ReturnHashMemo(_hash32(memo_hash)))

    # -------- envelope --------

    def finalize(self) -> TransactionEnvelope:
        if self.signed:
            raise TransactionStateError("Transaction is already signed.")
        if not self.operations:
            raise TransactionStateError("Transaction has no operations.")

        builder = TransactionBuilder(
            source_account=Account(self.source_id, self.sequence),
            network_passphrase=self.network.passphrase,
            base_fee=self.network.base_fee,
        )
        for op in self.operations:
            builder.append_operation(op)
        builder.add_memo(self.memo)
        builder.set_timeout(TX_TIMEOUT)

        self.envelope = builder.build()
        return self.envelope

    def sign(self, keypairs: Sequence[Keypair]) -> Tuple[bool, TransactionEnvelope]:
        """Add one signature per keypair. Returns (signed, envelope)."""
        if self.envelope is None:
            raise TransactionStateError("Transaction must be finalized before signing.")
        for kp in keypairs:
            self.envelope.sign(kp)
        if keypairs:
            self.signed = True
            logger.debug(f"Transaction {self.hash_hex()} signed with {len(keypairs)} key(s)")
        return self.signed, self.envelope

    def blob(self) -> str:
        return self.envelope.to_xdr() if self.envelope is not None else ""

    def hash_hex(self) -> str:
        if self.envelope is None:
            raise TransactionStateError("Transaction is not finalized.")
        return self.envelope.hash_hex()

    def submit(self) -> Record:
        if self.envelope is None:
            raise TransactionStateError("Transaction is not finalized.")
        return self._horizon.submit_transaction(self.envelope)


def _hash32(value: bytes) -> bytes:
    if isinstance(value, str):
        try:
            value = bytes.fromhex(value)
        except ValueError:
            raise InvalidMemoError("Memo hash must be 32 bytes in hex.") from None
    if len(value) != 32:
        raise InvalidMemoError("Memo hash must be 32 bytes.")
    return bytes(value)
