"""
Transaction blob files.

A blob file holds one base64 transaction envelope, preceded by a readable
dump of the transaction as '#' comment lines:

    #Source Account: GABC...
    #Payment       : DST:GXYZ... AMT:XLM:10.0000000
    #Memo          : NONE
    #Base Fee      : 0.0000100
    #Sequence      : 4294967297
    AAAAAgAAAA...

Files are read back by taking the first line that is not blank once the
comments are stripped, so a file can be passed between machines for offline
signing and still be inspected with a text editor.
"""
from decimal import Decimal
from fractions import Fraction
from typing import Any, List, Tuple

from stellar_sdk import (
    ChangeTrust,
    ClaimClaimableBalance,
    CreateAccount,
    HashMemo,
    IdMemo,
    ManageBuyOffer,
    ManageSellOffer,
    NoneMemo,
    Payment,
    ReturnHashMemo,
    SetOptions,
    TextMemo,
    TransactionEnvelope,
)
from stellar_sdk import Asset as SdkAsset
from stellar_sdk.exceptions import SdkError

from .amount import STROOPS_PER_UNIT, format_amount
from .config import NetworkConfig
from .exceptions import ValidationError

MAX_TRUST_LIMIT = Decimal("922337203685.4775807")

Row = Tuple[str, str]


def _address(value: Any) -> str:
    """Account id of a str or a stellar_sdk MuxedAccount."""
    if hasattr(value, "account_id"):
        return value.account_muxed or value.account_id
    return str(value)


def _asset(asset: SdkAsset, native_code: str) -> str:
    if asset.is_native():
        return native_code
    return f"{asset.code}/{asset.issuer}"


def _amount(value: Any) -> str:
    # sdk amounts are decimal strings, possibly in exponent form like 1E-7
    return format_amount(Fraction(Decimal(str(value))) * STROOPS_PER_UNIT)


def _price(price: Any) -> str:
    return f"{price.n}/{price.d}"


def _set_options(op: SetOptions) -> str:
    parts = []
    if op.inflation_dest is not None:
        parts.append("INFLATION_DST:" + op.inflation_dest)
    if op.clear_flags is not None:
        parts.append(f"CLEAR_FLAGS:{int(op.clear_flags):x}")
    if op.set_flags is not None:
        parts.append(f"SET_FLAGS:{int(op.set_flags):x}")
    for label, value in (("MASTER_WEIGHT", op.master_weight),
                         ("LOW_THRESHOLD", op.low_threshold),
                         ("MED_THRESHOLD", op.med_threshold),
                         ("HIGH_THRESHOLD", op.high_threshold),
                         ("HOME_DOMAIN", op.home_domain)):
        if value is not None:
            parts.append(f"{label}:{value}")
    if op.signer is not None:
        key = op.signer.signer_key.encoded_signer_key
        if op.signer.weight == 0:
            parts.append(f"REMOVE_SIGNER:{key}")
        else:
            parts.append(f"ADD_SIGNER:{key}:{op.signer.weight}")
    return " ".join(parts)


def describe_operation(op: Any, native_code: str) -> Row:
    prefix = f"SRC:{_address(op.source)} " if op.source is not None else ""

    if isinstance(op, CreateAccount):
        return "Create Account", prefix + f"DST:{op.destination} AMT:{_amount(op.starting_balance)}"
    if isinstance(op, Payment):
        return "Payment", prefix + (f"DST:{_address(op.destination)} "
                                    f"AMT:{_asset(op.asset, native_code)}:{_amount(op.amount)}")
    if isinstance(op, ManageSellOffer):
        return "Manage Sell Offer", prefix + (
            f"SELL:{_asset(op.selling, native_code)} BUY:{_asset(op.buying, native_code)} "
            f"AMOUNT:{_amount(op.amount)} PRICE:{_price(op.price)} ID:{op.offer_id}")
    if isinstance(op, ManageBuyOffer):
        return "Manage Buy Offer", prefix + (
            f"BUY:{_asset(op.buying, native_code)} SELL:{_asset(op.selling, native_code)} "
            f"AMOUNT:{_amount(op.amount)} PRICE:{_price(op.price)} ID:{op.offer_id}")
    if isinstance(op, SetOptions):
        return "Set Options", prefix + _set_options(op)
    if isinstance(op, ChangeTrust):
        text = "ASSET:" + _asset(op.asset, native_code)
        if Decimal(op.limit) != MAX_TRUST_LIMIT:
            text += " LIMIT:" + _amount(op.limit)
        return "Change Trust", prefix + text
    if isinstance(op, ClaimClaimableBalance):
        return "Claim Balance", prefix + f"ID:{op.balance_id}"
    return type(op).__name__, prefix.strip()


def describe_memo(memo: Any) -> str:
    if isinstance(memo, TextMemo):
        return "TEXT:" + memo.memo_text.decode("utf-8", errors="replace")
    if isinstance(memo, IdMemo):
        return f"ID:{memo.memo_id}"
    if isinstance(memo, HashMemo):
        return "HASH:" + memo.memo_hash.hex()
    if isinstance(memo, ReturnHashMemo):
        return "RETURN_HASH:" + memo.memo_return.hex()
    if memo is None or isinstance(memo, NoneMemo):
        return "NONE"
    return type(memo).__name__


def describe_transaction(envelope: TransactionEnvelope, native_code: str = "XLM") -> List[Row]:
    tx = envelope.transaction
    rows: List[Row] = [("Source Account", _address(tx.source))]
    rows.extend(describe_operation(op, native_code) for op in tx.operations)
    rows.append(("Memo", describe_memo(tx.memo)))
    rows.append(("Base Fee", format_amount(tx.fee)))
    rows.append(("Sequence", str(tx.sequence)))
    rows.extend(("Signature", sig.signature.hex()) for sig in envelope.signatures)
    return rows


def format_table(rows: List[Row], separator: str = ": ", prefix: str = "") -> List[str]:
    width = max((len(label) for label, _ in rows), default=0)
    return [f"{prefix}{label.ljust(width)}{separator}{text}" for label, text in rows]


def default_blob_name(envelope: TransactionEnvelope) -> str:
    return f"tx_{envelope.hash_hex()[:8]}.txt"


def write_transaction_blob(path: str, envelope: TransactionEnvelope, native_code: str = "XLM") -> None:
    lines = format_table(describe_transaction(envelope, native_code), prefix="#")
    lines.append(envelope.to_xdr())
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")


def read_transaction_blob(path: str) -> str:
    """First non-comment, non-blank line of the file, or '' if there is none."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if line:
                return line
    return ""


def load_envelope(blob: str, network: NetworkConfig) -> TransactionEnvelope:
    try:
        return TransactionEnvelope.from_xdr(blob, network.passphrase)
    except (SdkError, ValueError) as e:
        raise ValidationError(f"Failed to decode transaction: {e}") from e
