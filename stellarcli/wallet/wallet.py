"""
Encrypted wallet.

The wallet keeps account keys, assets and trading pairs. Secret material
(account seeds, the mnemonic and the BIP-39 seed) is stored as Fernet tokens
under a key derived from the wallet password. Public fields are kept in clear
and covered by an HMAC checksum, so they can be listed without the password
but not altered without it.

Every mutation needs the wallet unlocked (see PasswordMonitor), re-derives the
keys from the live password, recomputes the checksum and, when the wallet is
attached to a WalletStore, rewrites the wallet file.
"""
import base64
import binascii
import json
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

from stellar_sdk import Keypair, StrKey

from ..asset import check_asset_code, check_issuer
from ..config import KDF_ITERATIONS, MEMO_TEXT_MAX, RECOVERY_GAP
from ..exceptions import (
    InvalidAddressError,
    InvalidMemoError,
    ValidationError,
    WalletError,
    WalletFormatError,
    WalletPasswordError,
)
from ..log import get_logger
from ..secret import ScopedSecret, as_secret
from .crypto import PASSWORD_CHECK, WalletKeys, derive_keys, new_salt
from .lock import PasswordMonitor
from .mnemonic import derive_keypair, generate_mnemonic, mnemonic_to_seed
from .models import AccountType, TradingPair, WalletAccount, WalletAsset

logger = get_logger(__name__)

WALLET_VERSION = 1
MAX_DESCRIPTION = 128
MAX_MEMO_ID = 2 ** 64 - 1

Password = Union[str, ScopedSecret]


class Wallet:
    def __init__(self, salt: bytes, iterations: int, password_check: str,
                 coin_type: int = 148, monitor: Optional[PasswordMonitor] = None):
        self._salt = salt
        self._iterations = iterations
        self._password_check = password_check
        self.coin_type = coin_type
        self._mnemonic: Optional[str] = None
        self._seed: Optional[str] = None
        self._next_index = 0
        self._accounts: List[WalletAccount] = []
        self._assets: List[WalletAsset] = []
        self._trading_pairs: List[TradingPair] = []
        self.checksum = ""
        self.monitor = monitor or PasswordMonitor()
        self.store = None

    # -------- creation --------

    @classmethod
    def create(cls, password: Password, mnemonic_password: str = "", coin_type: int = 148,
               words: Optional[Sequence[str]] = None, iterations: int = KDF_ITERATIONS,
               monitor: Optional[PasswordMonitor] = None) -> "Wallet":
        """New wallet from a fresh (or given) 24 word mnemonic with its first account."""
        words = list(words) if words is not None else generate_mnemonic()
        seed = mnemonic_to_seed(words, mnemonic_password)
        salt = new_salt()

        with as_secret(password) as pw, derive_keys(pw, salt, iterations) as keys:
            wallet = cls(salt, iterations, keys.encrypt(PASSWORD_CHECK), coin_type, monitor)
            wallet._mnemonic = keys.encrypt(" ".join(words).encode("utf-8"))
            wallet._seed = keys.encrypt(seed)
            wallet._derive_account(keys)
            wallet.checksum = keys.checksum(wallet._content(keys))
        return wallet

    @classmethod
    def recover(cls, password: Password, words: Sequence[str], mnemonic_password: str = "",
                coin_type: int = 148, funded: Optional[Callable[[str], bool]] = None,
                gap: int = RECOVERY_GAP, iterations: int = KDF_ITERATIONS,
                monitor: Optional[PasswordMonitor] = None) -> "Wallet":
        """Rebuild a wallet from its mnemonic; with `funded`, also restore used accounts."""
        wallet = cls.create(password, mnemonic_password, coin_type, words, iterations, monitor)
        if funded is not None:
            with wallet.unlocked(password):
                wallet.recover_accounts(funded, gap)
        return wallet

    # -------- lock handling --------

    def check_password(self, password: Password) -> bool:
        with as_secret(password) as pw, derive_keys(pw, self._salt, self._iterations) as keys:
            try:
                return keys.decrypt(self._password_check) == PASSWORD_CHECK
            except WalletPasswordError:
                return False

    def unlock(self, password: Optional[Password] = None) -> None:
        """Open (or hold open) the unlock window; pair every call with release()."""
        if password is None:
            self.monitor.acquire()
            return

        with as_secret(password) as pw:
            if not self.check_password(pw):
                raise WalletPasswordError("Invalid password.")
            self.monitor.acquire(pw)

    def release(self) -> None:
        self.monitor.release()

    @contextmanager
    def unlocked(self, password: Optional[Password] = None) -> Iterator["Wallet"]:
        self.unlock(password)
        try:
            yield self
        finally:
            self.release()

    def lock(self) -> None:
        self.monitor.lock()

    @property
    def is_unlocked(self) -> bool:
        return self.monitor.is_unlocked

    @contextmanager
    def _keys(self) -> Iterator[WalletKeys]:
        with self.monitor.password() as pw, derive_keys(pw, self._salt, self._iterations) as keys:
            if keys.decrypt(self._password_check) != PASSWORD_CHECK:
                raise WalletPasswordError("Invalid password.")
            yield keys

    @contextmanager
    def _mutation(self) -> Iterator[WalletKeys]:
        with self._keys() as keys:
            yield keys
            self.checksum = keys.checksum(self._content(keys))
        self._commit()

    def _commit(self) -> None:
        if self.store is not None:
            self.store.save(self)

    # -------- integrity --------

    def _content(self, keys: WalletKeys) -> Dict[str, object]:
        """Everything the checksum covers, with secrets decrypted."""
        def plain(token: Optional[str]) -> Optional[str]:
            return keys.decrypt(token).hex() if token else None

        accounts = []
        for a in self._accounts:
            entry = a.public_content()
            entry["private_key"] = plain(a.private_key)
            accounts.append(entry)

        return {
            "coin_type": self.coin_type,
            "mnemonic": plain(self._mnemonic),
            "seed": plain(self._seed),
            "next_index": self._next_index,
            "accounts": accounts,
            "assets": [a.to_dict() for a in self._assets],
            "trading_pairs": [tp.to_dict() for tp in self._trading_pairs],
        }

    def check_integrity(self) -> bool:
        """Recompute the checksum with the live password. A mismatch is reported, not raised."""
        with self._keys() as keys:
            ok = keys.verify_checksum(self._content(keys), self.checksum)
        if not ok:
            logger.warning("Wallet integrity check failed")
        return ok

    # -------- accounts --------

    def accounts(self) -> List[WalletAccount]:
        """Own and watched accounts, without the address book."""
        return [a for a in self._accounts if a.type != AccountType.ADDRESS_BOOK]

    def seed_accounts(self) -> List[WalletAccount]:
        return [a for a in self._accounts if a.has_private_key()]

    def address_book(self) -> List[WalletAccount]:
        return [a for a in self._accounts if a.type == AccountType.ADDRESS_BOOK]

    def find_account(self, public_key: str) -> Optional[WalletAccount]:
        for a in self._accounts:
            if a.public_key == public_key:
                return a
        return None

    def _derive_account(self, keys: WalletKeys) -> WalletAccount:
        seed = keys.decrypt(self._seed)
        keypair = derive_keypair(seed, self.coin_type, self._next_index)
        account = WalletAccount(
            type=AccountType.DERIVED,
            public_key=keypair.public_key,
            private_key=keys.encrypt(keypair.secret.encode("ascii")),
            index=self._next_index,
        )
        self._next_index += 1
        self._replace_or_append(account)
        return account

    def _replace_or_append(self, account: WalletAccount) -> None:
        existing = self.find_account(account.public_key)
        if existing is not None:
            self._accounts.remove(existing)
        self._accounts.append(account)

    def generate_account(self) -> WalletAccount:
        """Derive the next SEP-5 account from the wallet seed."""
        if self._seed is None:
            raise WalletError("Wallet has no seed to derive accounts from.")
        with self._mutation() as keys:
            account = self._derive_account(keys)
        logger.info(f"Generated account {account.public_key}")
        return account

    def recover_accounts(self, funded: Callable[[str], bool], gap: int = RECOVERY_GAP) -> int:
        """
        Scan derivation indices after the last one in use and keep accounts
        that exist on the ledger, until `gap` consecutive indices are unused.
        """
        if self._seed is None:
            raise WalletError("Wallet has no seed to derive accounts from.")

        found = 0
        with self._mutation() as keys:
            seed = keys.decrypt(self._seed)
            index = self._next_index
            misses = 0
            while misses < gap:
                keypair = derive_keypair(seed, self.coin_type, index)
                index += 1
                if funded(keypair.public_key):
                    misses = 0
                    while self._next_index < index:
                        self._derive_account(keys)
                        found += 1
                else:
                    misses += 1
        logger.info(f"Recovered {found} additional account(s)")
        return found

    def add_random_account(self, secret: Password) -> WalletAccount:
        with as_secret(secret) as s:
            seed = s.reveal()
            if not StrKey.is_valid_ed25519_secret_seed(seed):
                raise InvalidAddressError("Invalid secret seed.")
            keypair = Keypair.from_secret(seed)
            if self.find_account(keypair.public_key) is not None:
                raise WalletError(f"Account already in wallet: {keypair.public_key}")

            with self._mutation() as keys:
                account = WalletAccount(
                    type=AccountType.RANDOM,
                    public_key=keypair.public_key,
                    private_key=keys.encrypt(seed.encode("ascii")),
                )
                self._accounts.append(account)
        return account

    def add_watching_account(self, public_key: str) -> WalletAccount:
        return self._add_public_account(AccountType.WATCHING, public_key)

    def add_address_book_account(self, public_key: str) -> WalletAccount:
        return self._add_public_account(AccountType.ADDRESS_BOOK, public_key)

    def _add_public_account(self, account_type: AccountType, public_key: str) -> WalletAccount:
        if not StrKey.is_valid_ed25519_public_key(public_key):
            raise InvalidAddressError(f"Invalid public key: {public_key}")
        if self.find_account(public_key) is not None:
            raise WalletError(f"Account already in wallet: {public_key}")

        with self._mutation():
            account = WalletAccount(type=account_type, public_key=public_key)
            self._accounts.append(account)
        return account

    def delete_account(self, account: WalletAccount) -> bool:
        if account not in self._accounts:
            return False
        with self._mutation():
            self._accounts.remove(account)
        return True

    def set_description(self, account: WalletAccount, description: str) -> None:
        _check_description(description)
        with self._mutation():
            account.description = description

    def set_memo_text(self, account: WalletAccount, text: str) -> None:
        if len(text.encode("utf-8")) > MEMO_TEXT_MAX:
            raise InvalidMemoError(f"Memo text too long, max length {MEMO_TEXT_MAX} bytes.")
        with self._mutation():
            account.memo_text = text
            account.memo_id = None

    def set_memo_id(self, account: WalletAccount, memo_id: int) -> None:
        if not 0 <= memo_id <= MAX_MEMO_ID:
            raise InvalidMemoError("Memo ID invalid, must be unsigned 64 bit integer.")
        with self._mutation():
            account.memo_id = memo_id
            account.memo_text = ""

    def clear_memo(self, account: WalletAccount) -> None:
        with self._mutation():
            account.memo_id = None
            account.memo_text = ""

    def secret(self, account: WalletAccount) -> ScopedSecret:
        """Decrypt an account seed. The caller owns (and must wipe) the result."""
        if not account.has_private_key():
            raise WalletError(f"No private key for account {account.public_key}")
        with self._keys() as keys:
            return ScopedSecret(keys.decrypt(account.private_key))

    def mnemonic(self) -> List[str]:
        if self._mnemonic is None:
            raise WalletError("Wallet has no mnemonic.")
        with self._keys() as keys:
            return keys.decrypt(self._mnemonic).decode("utf-8").split()

    # -------- assets --------

    def assets(self) -> List[WalletAsset]:
        return list(self._assets)

    def find_asset(self, issuer: str, code: str) -> Optional[WalletAsset]:
        for a in self._assets:
            if a.issuer == issuer and a.code == code:
                return a
        return None

    def add_asset(self, issuer: str, code: str) -> WalletAsset:
        check_asset_code(code)
        check_issuer(issuer)
        if self.find_asset(issuer, code) is not None:
            raise WalletError("Asset already exists.")

        with self._mutation():
            asset = WalletAsset(issuer=issuer, code=code)
            self._assets.append(asset)
        return asset

    def delete_asset(self, asset: WalletAsset) -> bool:
        if asset not in self._assets:
            return False
        for tp in self._trading_pairs:
            if asset in (tp.asset1, tp.asset2):
                raise WalletError("Asset is used by a trading pair, delete the trading pair first.")
        with self._mutation():
            self._assets.remove(asset)
        return True

    def set_asset_description(self, asset: WalletAsset, description: str) -> None:
        _check_description(description)
        with self._mutation():
            asset.description = description

    # -------- trading pairs --------

    def trading_pairs(self) -> List[TradingPair]:
        return list(self._trading_pairs)

    def find_trading_pair(self, asset1: Optional[WalletAsset],
                          asset2: Optional[WalletAsset]) -> Optional[TradingPair]:
        for tp in self._trading_pairs:
            if tp.matches(asset1, asset2):
                return tp
        return None

    def add_trading_pair(self, asset1: Optional[WalletAsset],
                         asset2: Optional[WalletAsset]) -> TradingPair:
        if (asset1 is None and asset2 is None) or \
                (asset1 is not None and asset2 is not None and asset1.key() == asset2.key()):
            raise ValidationError("Invalid asset pair.")
        for a in (asset1, asset2):
            if a is not None and self.find_asset(a.issuer, a.code) is None:
                raise WalletError(f"Unknown asset: {a.code}/{a.issuer}")
        if self.find_trading_pair(asset1, asset2) is not None:
            raise WalletError("Trading pair already exists.")

        with self._mutation():
            tp = TradingPair(asset1=self._own(asset1), asset2=self._own(asset2))
            self._trading_pairs.append(tp)
        return tp

    def _own(self, asset: Optional[WalletAsset]) -> Optional[WalletAsset]:
        return None if asset is None else self.find_asset(asset.issuer, asset.code)

    def delete_trading_pair(self, tp: TradingPair) -> bool:
        if tp not in self._trading_pairs:
            return False
        with self._mutation():
            self._trading_pairs.remove(tp)
        return True

    def set_trading_pair_description(self, tp: TradingPair, description: str) -> None:
        _check_description(description)
        with self._mutation():
            tp.description = description

    # -------- password --------

    def change_password(self, new_password: Password) -> None:
        """
        Re-encrypt every secret under a new salt and password. The re-encrypted
        wallet is persisted before the new tokens are swapped into the live
        objects, so a failure leaves the old password in effect. Account handles
        held by callers stay attached to the wallet.
        """
        with as_secret(new_password) as new_pw:
            if not new_pw:
                raise ValidationError("Password must not be empty.")

            salt = new_salt()
            with self._keys() as old_keys, derive_keys(new_pw, salt, self._iterations) as new_keys:
                def recrypt(token: Optional[str]) -> Optional[str]:
                    return new_keys.encrypt(old_keys.decrypt(token)) if token else None

                password_check = new_keys.encrypt(PASSWORD_CHECK)
                mnemonic = recrypt(self._mnemonic)
                seed = recrypt(self._seed)
                private_keys = [recrypt(a.private_key) for a in self._accounts]
                # the plaintext content does not change, only the key
                checksum = new_keys.checksum(self._content(old_keys))

            data = self.to_dict()
            data["kdf"]["salt"] = _b64encode(salt)
            data["password_check"] = password_check
            data["mnemonic"] = mnemonic
            data["seed"] = seed
            data["checksum"] = checksum
            for entry, private_key in zip(data["accounts"], private_keys):
                entry["private_key"] = private_key

            if self.store is not None:
                self.store.write(encode_document(data))

            self._salt = salt
            self._password_check = password_check
            self._mnemonic = mnemonic
            self._seed = seed
            self.checksum = checksum
            for account, private_key in zip(self._accounts, private_keys):
                account.private_key = private_key

        self.monitor.lock()
        logger.info("Wallet password changed")

    # -------- serialization --------

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": WALLET_VERSION,
            "coin_type": self.coin_type,
            "kdf": {
                "salt": _b64encode(self._salt),
                "iterations": self._iterations,
            },
            "password_check": self._password_check,
            "mnemonic": self._mnemonic,
            "seed": self._seed,
            "next_index": self._next_index,
            "accounts": [a.to_dict() for a in self._accounts],
            "assets": [a.to_dict() for a in self._assets],
            "trading_pairs": [tp.to_dict() for tp in self._trading_pairs],
            "checksum": self.checksum,
        }

    @staticmethod
    def from_dict(data: Dict[str, object], monitor: Optional[PasswordMonitor] = None) -> "Wallet":
        try:
            wallet = Wallet(b"", 0, "", monitor=monitor)
            wallet._load(data)
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise WalletFormatError(f"Invalid wallet data: {e}") from e
        return wallet

    def _load(self, data: Dict[str, object]) -> None:
        if data.get("version") != WALLET_VERSION:
            raise WalletFormatError(f"Unsupported wallet version: {data.get('version')}")

        self._salt = _b64decode(data["kdf"]["salt"])
        self._iterations = int(data["kdf"]["iterations"])
        self._password_check = data["password_check"]
        self.coin_type = int(data["coin_type"])
        self._mnemonic = data.get("mnemonic")
        self._seed = data.get("seed")
        self._next_index = int(data.get("next_index", 0))
        self._accounts = [WalletAccount.from_dict(a) for a in data.get("accounts", [])]
        self._assets = [WalletAsset.from_dict(a) for a in data.get("assets", [])]

        def ref(key) -> Optional[WalletAsset]:
            if key is None:
                return None
            asset = self.find_asset(key[0], key[1])
            if asset is None:
                raise WalletFormatError(f"Trading pair references unknown asset {key[1]}/{key[0]}")
            return asset

        self._trading_pairs = [
            TradingPair(asset1=ref(tp.get("asset1")), asset2=ref(tp.get("asset2")),
                        description=tp.get("description", ""))
            for tp in data.get("trading_pairs", [])
        ]
        self.checksum = data.get("checksum", "")

    def export_base64(self) -> str:
        return encode_document(self.to_dict())

    @staticmethod
    def import_base64(text: str, monitor: Optional[PasswordMonitor] = None) -> "Wallet":
        return Wallet.from_dict(decode_document(text), monitor=monitor)


def encode_document(data: Dict[str, object]) -> str:
    raw = json.dumps(data, sort_keys=True).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_document(text: str) -> Dict[str, object]:
    try:
        raw = base64.b64decode(text.strip().encode("ascii"), validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (ValueError, binascii.Error, UnicodeError) as e:
        raise WalletFormatError(f"Failed to parse wallet: {e}") from e
    if not isinstance(data, dict):
        raise WalletFormatError("Failed to parse wallet: unexpected content")
    return data


def _check_description(description: str) -> None:
    if len(description) > MAX_DESCRIPTION:
        raise ValidationError(f"Description too long, max length {MAX_DESCRIPTION} characters.")
    if any(ord(c) < 32 for c in description):
        raise ValidationError("Description must not contain control characters.")


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"))
