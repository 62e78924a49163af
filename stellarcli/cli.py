"""
Interactive terminal client.

    stellar-cli [--network NAME | --testnet] [--wallet FILE] [--tx-in FILE]
                [--tx-out FILE] [--signers FILE] [--offline] [--currency CUR]
                [--verbose] [ACCOUNT]

With ACCOUNT, prints the account and exits. Otherwise runs the menus.
"""
import argparse
import getpass
import os
import sys
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from stellar_sdk import Keypair, StrKey

from . import __version__
from .accounts import AccountSnapshot, get_account_trades, get_account_transactions
from .amount import format_amount, format_amount_pretty, format_price, parse_amount, parse_price
from .asset import Asset
from .config import (
    CACHE_TIMEOUT_FORCE,
    CACHE_TIMEOUT_LONG,
    CACHE_TIMEOUT_MEDIUM,
    CACHE_TIMEOUT_SHORT,
    DEFAULT_NETWORK,
    DEFAULT_WALLET_FILE,
    NETWORKS,
    get_network,
)
from .exceptions import (
    HorizonError,
    ValidationError,
    WalletError,
    WalletLockedError,
    WalletPasswordError,
)
from .federation import check_federation_address, lookup as federation_lookup
from .log import get_logger, setup_logging
from .offers import get_offers
from .refprice import REFERENCE_CURRENCIES, ReferencePrice
from .secret import ScopedSecret
from .session import Session
from .signers import SignerSet
from .transaction import Transaction
from .txfile import (
    default_blob_name,
    describe_transaction,
    format_table,
    load_envelope,
    read_transaction_blob,
    write_transaction_blob,
)
from .wallet import Wallet, WalletAccount, WalletStore
from .wallet.mnemonic import is_valid_mnemonic

logger = get_logger(__name__)

PASSWORD_ATTEMPTS = 3


# ------------ PROMPTS ------------

def header(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def print_table(rows: Sequence[Tuple[str, str]]) -> None:
    for line in format_table(list(rows)):
        print(line)


def read_line(prompt: str) -> str:
    return input(f"{prompt}: ").strip()


def get_ok(prompt: str) -> bool:
    while True:
        answer = input(f"{prompt} (y/n)? ").strip().lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


def prompt_until_valid(prompt: str, parse: Callable[[str], object], allow_empty: bool = False):
    """Ask until `parse` accepts the answer; validation errors are shown and the prompt repeats."""
    while True:
        text = read_line(prompt)
        if not text and allow_empty:
            return None
        try:
            return parse(text)
        except ValidationError as e:
            print(f"✗ {e}")


def _address(text: str) -> str:
    if not StrKey.is_valid_ed25519_public_key(text):
        raise ValidationError("Invalid address.")
    return text


def get_address(prompt: str, allow_empty: bool = False) -> Optional[str]:
    return prompt_until_valid(prompt, _address, allow_empty)


def get_amount(prompt: str):
    return prompt_until_valid(prompt, parse_amount)


def get_price(prompt: str):
    return prompt_until_valid(prompt, parse_price)


def get_uint64(prompt: str, allow_empty: bool = False) -> Optional[int]:
    def parse(text: str) -> int:
        if not text.isdigit() or int(text) > 2 ** 64 - 1:
            raise ValidationError("Expected an unsigned 64 bit integer.")
        return int(text)
    return prompt_until_valid(prompt, parse, allow_empty)


def get_seed(prompt: str, allow_empty: bool = False) -> Optional[ScopedSecret]:
    while True:
        seed = getpass.getpass(f"{prompt}: ").strip()
        if not seed and allow_empty:
            return None
        if StrKey.is_valid_ed25519_secret_seed(seed):
            return ScopedSecret(seed)
        print("✗ Invalid secret seed.")


def get_password(prompt: str = "Wallet password") -> ScopedSecret:
    return ScopedSecret(getpass.getpass(f"{prompt}: "))


def get_new_password() -> ScopedSecret:
    while True:
        with get_password("New password") as first, get_password("Repeat password") as second:
            if not first:
                print("✗ Password must not be empty.")
                continue
            if first.bytes() != second.bytes():
                print("✗ Passwords do not match.")
                continue
            return first.copy()


def run_menu(title: str, entries: List[Tuple[str, Callable[[], None]]], loop: bool = True) -> None:
    while True:
        header(title)
        for i, (label, _) in enumerate(entries, 1):
            print(f"{i:>2}  {label}")
        print(" q  Back" if loop else " q  Quit")

        choice = input("\n--> ").strip().lower()
        if choice == "q":
            return
        if not choice.isdigit() or not 1 <= int(choice) <= len(entries):
            print(f"Invalid input: {choice}")
            continue

        label, action = entries[int(choice) - 1]
        try:
            action()
        except (ValidationError, WalletError) as e:
            print(f"✗ {e}")
        except HorizonError as e:
            print(f"✗ {e.action} failed: {e.describe()}")
        if not loop:
            return


# ------------ CONTEXT ------------

class App:
    def __init__(self, args: argparse.Namespace, session: Session):
        self.args = args
        self.session = session

    @property
    def wallet(self) -> Optional[Wallet]:
        return self.session.wallet

    @property
    def native(self) -> str:
        return self.session.network.native_code

    # ------------ WALLET ACCESS ------------

    def unlock(self) -> bool:
        """Hold the wallet unlocked, asking for the password if it is not held. Pair with wallet.release()."""
        try:
            self.wallet.unlock()
            return True
        except WalletLockedError:
            pass

        for _ in range(PASSWORD_ATTEMPTS):
            with get_password() as pw:
                try:
                    self.wallet.unlock(pw)
                    return True
                except WalletPasswordError:
                    print("✗ Invalid password.")
        return False

    def with_wallet(self, action: Callable[[], None]) -> None:
        if self.wallet is None:
            print("No wallet loaded.")
            return
        if not self.unlock():
            return
        try:
            action()
        finally:
            self.wallet.release()

    def select_account(self, prompt: str, accounts: List[WalletAccount],
                       allow_enter: bool = True) -> Optional[WalletAccount]:
        print(f"\n{prompt}:")
        for i, a in enumerate(accounts, 1):
            desc = f" ({a.description})" if a.description else ""
            print(f"{i:>3}  {a.type.letter}  {a.public_key}{desc}")
        if allow_enter:
            print("  e  Enter address")
        while True:
            choice = input("--> ").strip().lower()
            if allow_enter and choice == "e":
                return None
            if choice.isdigit() and 1 <= int(choice) <= len(accounts):
                return accounts[int(choice) - 1]
            print(f"Invalid input: {choice}")

    def get_source(self) -> Tuple[str, Optional[WalletAccount], Optional[ScopedSecret]]:
        """Source account: a wallet account, a secret seed, or just an address for offline signing."""
        if self.wallet is not None and self.wallet.accounts():
            account = self.select_account("Source account", self.wallet.accounts())
            if account is not None:
                return account.public_key, account, None

        text = getpass.getpass("Source (address or secret seed): ").strip()
        while True:
            if StrKey.is_valid_ed25519_secret_seed(text):
                seed = ScopedSecret(text)
                return Keypair.from_secret(text).public_key, None, seed
            if StrKey.is_valid_ed25519_public_key(text):
                return text, None, None
            print("✗ Invalid address or seed.")
            text = getpass.getpass("Source (address or secret seed): ").strip()

    @contextmanager
    def source(self) -> Iterator[Tuple[str, Optional[WalletAccount], Optional[ScopedSecret]]]:
        """get_source() whose secret seed is wiped when the block exits, however it exits."""
        source, account, seed = self.get_source()
        try:
            yield source, account, seed
        finally:
            if seed is not None:
                seed.wipe()


    def get_destination(self, prompt: str) -> Tuple[str, Optional[WalletAccount]]:
        if self.wallet is not None:
            candidates = self.wallet.accounts() + self.wallet.address_book()
            if candidates:
                account = self.select_account(prompt, candidates)
                if account is not None:
                    return account.public_key, account
        return get_address(prompt), None

    def get_asset(self, prompt: str) -> Asset:
        registry = self.session.registry
        if self.wallet is not None and self.wallet.assets():
            print(f"\n{prompt}:")
            print(f"  0  {self.native}")
            assets = self.wallet.assets()
            for i, a in enumerate(assets, 1):
                print(f"{i:>3}  {registry.from_wallet(a).pretty()} {a.description}")
            print("  e  Enter asset")
            while True:
                choice = input("--> ").strip().lower()
                if choice == "e":
                    break
                if choice.isdigit() and 0 <= int(choice) <= len(assets):
                    return registry.from_wallet(assets[int(choice) - 1] if int(choice) else None)
                print(f"Invalid input: {choice}")
        return prompt_until_valid(f"{prompt} (CODE/ISSUER or {self.native})", registry.parse)

    # ------------ TRANSACTION FLOW ------------

    def open_transaction(self, source: str) -> Optional[Transaction]:
        tx = Transaction.open(self.session, source)
        if tx is None:
            print(f"✗ Source account does not exist: {source}")
        return tx

    def finish(self, tx: Transaction, account: Optional[WalletAccount],
               seed: Optional[ScopedSecret]) -> None:
        """Finalize, collect signatures, then submit or write the blob file."""
        envelope = tx.finalize()
        print("\nTransaction details:")
        print_table(describe_transaction(envelope, self.native))

        with SignerSet() as signers:
            if seed is not None:
                signers.add(seed.reveal())
            elif account is not None and account.has_private_key():
                if self.unlock():
                    try:
                        signers.add_wallet_account(self.wallet, account)
                    finally:
                        self.wallet.release()
            if self.args.signers:
                try:
                    count = signers.read_file(self.args.signers)
                    print(f"Read {count} signing key(s) from file \"{self.args.signers}\".")
                except OSError as e:
                    print(f"✗ Failed to read signers file: {e}")
            signers.read_interactive(on_invalid=lambda msg: print(f"✗ {msg}"))

            signed, envelope = tx.sign(signers.keypairs())

        if not signed or self.args.offline or self.args.tx_out:
            self.output_blob(envelope)
            return

        if get_ok("Submit transaction"):
            self.submit(envelope)
        else:
            print("Transaction aborted.")
            self.output_blob(envelope)

    def output_blob(self, envelope) -> None:
        file_name = self.args.tx_out or default_blob_name(envelope)
        print(envelope.to_xdr())
        try:
            write_transaction_blob(file_name, envelope, self.native)
            print(f"Transaction blob written to file: {file_name}")
        except OSError as e:
            print(f"✗ Failed to write transaction blob to file \"{file_name}\": {e}")

    def submit(self, envelope) -> None:
        try:
            response = self.session.horizon.submit_transaction(envelope)
        except HorizonError as e:
            print("Failed to submit transaction. Horizon error details:")
            print(e.describe())
            return
        print("✓ Transaction posted in ledger:", response.get("ledger"))
        print("  Transaction hash           :", response.get("hash"))
        self.session.accounts.clear()

    # ------------ ACTIONS ------------

    def account_info(self, account_id: Optional[str] = None) -> None:
        if account_id is None:
            account_id, _ = self.get_destination("Account")
        info = self.session.accounts.get(account_id, CACHE_TIMEOUT_SHORT)
        reference = self.session.reference_prices.get(CACHE_TIMEOUT_LONG) if info.exists else None
        print_account(info, self.native, reference)

    def federation(self) -> None:
        address = prompt_until_valid("Federation address (name*domain)", check_federation_address)
        result = federation_lookup(address)
        if result is None:
            print("Not found!")
            return
        rows = [("Account ID", result.account_id)]
        if result.memo_type:
            rows.append(("Memo Type", result.memo_type))
            rows.append(("Memo", result.memo))
        print_table(rows)

    def payment(self) -> None:
        with self.source() as (source, account, seed):
            destination, dst_account = self.get_destination("Destination")
            asset = self.get_asset("Asset")

            dst_info = self.session.accounts.get(destination, CACHE_TIMEOUT_SHORT)
            if not dst_info.exists:
                if not asset.is_native():
                    print("✗ Destination account does not exist.")
                    return
                if not get_ok("Destination account does not exist, create it"):
                    return
            elif not dst_info.has_trustline(asset):
                print(f"✗ Destination does not trust {asset.pretty()}.")
                return

            amount = get_amount(f"Amount ({asset.code_string()})")

            tx = self.open_transaction(source)
            if tx is None:
                return
            if not dst_info.exists:
                tx.create_account(destination, amount)
            elif asset.is_native():
                tx.native_payment(destination, amount)
            else:
                tx.asset_payment(destination, asset, amount)

            if dst_account is not None and dst_account.memo_text:
                tx.memo_text(dst_account.memo_text)
            elif dst_account is not None and dst_account.memo_id is not None:
                tx.memo_id(dst_account.memo_id)
            else:
                self.enter_memo(tx)

            self.finish(tx, account, seed)

    def enter_memo(self, tx: Transaction) -> None:
        text = prompt_until_valid("Memo text (optional)", lambda s: _checked(tx.memo_text, s), True)
        if text is None:
            memo_id = get_uint64("Memo ID (optional)", allow_empty=True)
            if memo_id is not None:
                tx.memo_id(memo_id)

    def create_account(self) -> None:
        with self.source() as (source, account, seed):
            destination = get_address("New account")
            amount = get_amount(f"Starting balance ({self.native})")
            tx = self.open_transaction(source)
            if tx is None:
                return
            tx.create_account(destination, amount)
            self.finish(tx, account, seed)

    def trustline(self, remove: bool = False) -> None:
        with self.source() as (source, account, seed):
            asset = self.get_asset("Asset")
            if asset.is_native():
                print("✗ No trustline needed for the native asset.")
                return
            tx = self.open_transaction(source)
            if tx is None:
                return
            if remove:
                tx.remove_trustline(asset)
            else:
                tx.add_trustline(asset)
            self.finish(tx, account, seed)

    def inflation_destination(self) -> None:
        with self.source() as (source, account, seed):
            destination, _ = self.get_destination("Inflation destination")
            tx = self.open_transaction(source)
            if tx is None:
                return
            tx.inflation_destination(destination)
            self.finish(tx, account, seed)

    def claim_balance(self) -> None:
        with self.source() as (source, account, seed):
            balance_id = read_line("Claimable balance ID")
            tx = self.open_transaction(source)
            if tx is None:
                return
            tx.claim_claimable_balance(balance_id)
            self.finish(tx, account, seed)

    def order_book(self) -> None:
        asset1 = self.get_asset("Base asset")
        asset2 = self.get_asset("Counter asset")
        book = self.session.order_books.get(asset1, asset2, CACHE_TIMEOUT_SHORT)
        print(f"\nOrder book {asset1.pretty()} / {asset2.pretty()}")
        if book.bids and book.asks:
            print(f"Spread: {format_price(book.best_bid())} - {format_price(book.best_ask())}")
        print(f"{'Bid amount':>20} {'Bid price':>14} | {'Ask price':<14} {'Ask amount':<20}")
        for i in range(min(20, max(len(book.bids), len(book.asks)))):
            bid = book.bids[i] if i < len(book.bids) else None
            ask = book.asks[i] if i < len(book.asks) else None
            left = f"{format_amount_pretty(bid.amount / bid.price):>20} {format_price(bid.price):>14}" if bid else " " * 35
            right = f"{format_price(ask.price):<14} {format_amount_pretty(ask.amount):<20}" if ask else ""
            print(f"{left} | {right}")

        volume = prompt_until_valid(f"Volume for average price ({asset1.code_string()}, optional)",
                                    parse_amount, allow_empty=True)
        if volume is not None:
            buy, sell = self.session.order_books.average_price(asset1, asset2, volume, CACHE_TIMEOUT_SHORT)
            print(f"Average buy price : {format_price(buy) if buy else 'n/a'}")
            print(f"Average sell price: {format_price(sell) if sell else 'n/a'}")

    def offer(self, buying: bool) -> None:
        with self.source() as (source, account, seed):
            asset1 = self.get_asset("Asset to buy" if buying else "Asset to sell")
            asset2 = self.get_asset("Asset to pay with" if buying else "Asset to receive")
            if asset1 is asset2:
                print("✗ Assets must differ.")
                return

            buy, sell = self.session.order_books.average_price(
                asset1, asset2, parse_amount("1"), CACHE_TIMEOUT_MEDIUM)
            reference = buy if buying else sell
            if reference:
                print(f"Market price: {format_price(reference)} {asset2.code_string()} per {asset1.code_string()}")

            amount = get_amount(f"Amount ({asset1.code_string()})")
            price = get_price(f"Price ({asset2.code_string()} per {asset1.code_string()})")

            tx = self.open_transaction(source)
            if tx is None:
                return
            if buying:
                tx.add_buy_offer(selling=asset2, buying=asset1, price=price, amount=amount)
            else:
                tx.add_sell_offer(selling=asset1, buying=asset2, price=price, amount=amount)
            self.finish(tx, account, seed)

    def cancel_offer(self) -> None:
        with self.source() as (source, account, seed):
            offers = get_offers(self.session, source)
            if not offers:
                print("No open offers.")
                return
            for i, o in enumerate(offers, 1):
                print(f"{i:>3}  {o}")
            choice = prompt_until_valid("Offer to cancel", lambda s: _index(s, len(offers)))
            offer = offers[choice]

            tx = self.open_transaction(source)
            if tx is None:
                return
            if offer.buying:
                tx.cancel_offer(offer.offer_id, selling=offer.asset2, buying=offer.asset1)
            else:
                tx.cancel_offer(offer.offer_id, selling=offer.asset1, buying=offer.asset2)
            self.finish(tx, account, seed)

    def list_offers(self) -> None:
        account_id, _ = self.get_destination("Account")
        offers = get_offers(self.session, account_id)
        if not offers:
            print("No open offers.")
        for o in offers:
            print(o)

    def history(self, trades: bool = False) -> None:
        account_id, _ = self.get_destination("Account")
        fetch = get_account_trades if trades else get_account_transactions
        cursor = ""
        while True:
            records, cursor = fetch(self.session.horizon, account_id, 10, cursor)
            for r in records:
                if trades:
                    print(f"{r.get('ledger_close_time', '')}  {r.get('base_amount', '')} "
                          f"{r.get('base_asset_code', self.native)} <-> {r.get('counter_amount', '')} "
                          f"{r.get('counter_asset_code', self.native)}")
                else:
                    print(f"{r.get('created_at', '')}  {r.get('hash', '')}  ops:{r.get('operation_count', '')}")
            if not cursor or not get_ok("More"):
                return

    def sign_transaction(self) -> None:
        blob = self.read_blob()
        if not blob:
            return
        envelope = load_envelope(blob, self.session.network)
        print("\nTransaction details:")
        print_table(describe_transaction(envelope, self.native))

        with SignerSet() as signers:
            if self.args.signers:
                try:
                    signers.read_file(self.args.signers)
                except OSError as e:
                    print(f"✗ Failed to read signers file: {e}")
            signers.read_interactive("Signing key (hit enter to finish): ",
                                     on_invalid=lambda msg: print(f"✗ {msg}"))
            for kp in signers.keypairs():
                envelope.sign(kp)
        print("\nSigned transaction blob:")
        self.output_blob(envelope)

    def submit_transaction(self) -> None:
        blob = self.read_blob()
        if not blob:
            return
        envelope = load_envelope(blob, self.session.network)
        print("\nTransaction details:")
        print_table(describe_transaction(envelope, self.native))
        if not envelope.signatures:
            print("\nTransaction is not signed - cannot submit.")
            return
        if get_ok("Submit transaction"):
            self.submit(envelope)

    def read_blob(self) -> str:
        if self.args.tx_in:
            print(f"Reading transaction blob from file: {self.args.tx_in}")
            try:
                return read_transaction_blob(self.args.tx_in)
            except OSError as e:
                print(f"✗ Failed to open file \"{self.args.tx_in}\": {e}")
                return ""
        return read_line("Transaction blob")

    def fund(self) -> None:
        account_id, _ = self.get_destination("Account")
        ok, detail = self.session.horizon.fund(account_id)
        print(f"✓ Funded, transaction {detail}" if ok else f"✗ Funding failed: {detail}")
        self.account_info(account_id)

    def new_keypair(self) -> None:
        kp = Keypair.random()
        print("Address:", kp.public_key)
        print("Seed   :", kp.secret)

    # ------------ WALLET MENUS ------------

    def wallet_menu(self) -> None:
        if self.wallet is None:
            print("No wallet loaded.")
            return
        run_menu("Wallet", [
            ("List accounts", self.list_wallet),
            ("Accounts", self.account_menu),
            ("Assets", self.asset_menu),
            ("Trading pairs", self.trading_pair_menu),
            ("Change password", lambda: self.with_wallet(self.change_password)),
            ("Check integrity", lambda: self.with_wallet(self.check_integrity)),
            ("Show mnemonic", lambda: self.with_wallet(self.show_mnemonic)),
            ("Lock wallet", self.wallet.lock),
        ])

    def list_wallet(self) -> None:
        for a in self.wallet.accounts() + self.wallet.address_book():
            memo = ""
            if a.memo_text:
                memo = f" memo:{a.memo_text}"
            elif a.memo_id is not None:
                memo = f" memo-id:{a.memo_id}"
            print(f"{a.type.letter}  {a.public_key}  {a.description}{memo}")

    def account_menu(self) -> None:
        w = self.wallet
        run_menu("Wallet accounts", [
            ("Generate account", lambda: self.with_wallet(
                lambda: print(f"✓ New account: {w.generate_account().public_key}"))),
            ("Add random account (secret seed)", lambda: self.with_wallet(self.add_random)),
            ("Add watching account", lambda: self.with_wallet(
                lambda: w.add_watching_account(get_address("Address")))),
            ("Add address book entry", lambda: self.with_wallet(
                lambda: w.add_address_book_account(get_address("Address")))),
            ("Set description", lambda: self.with_wallet(self.edit_account("description"))),
            ("Set memo text", lambda: self.with_wallet(self.edit_account("memo_text"))),
            ("Set memo ID", lambda: self.with_wallet(self.edit_account("memo_id"))),
            ("Clear memo", lambda: self.with_wallet(self.edit_account("clear_memo"))),
            ("Delete account", lambda: self.with_wallet(self.edit_account("delete"))),
            ("Show secret seed", lambda: self.with_wallet(self.show_seed)),
        ])

    def add_random(self) -> None:
        with get_seed("Secret seed") as seed:
            account = self.wallet.add_random_account(seed)
        print(f"✓ Added {account.public_key}")

    def edit_account(self, what: str) -> Callable[[], None]:
        def action() -> None:
            w = self.wallet
            accounts = w.accounts() + w.address_book()
            if not accounts:
                print("No accounts.")
                return
            a = self.select_account("Account", accounts, allow_enter=False)
            if what == "description":
                w.set_description(a, read_line("Description"))
            elif what == "memo_text":
                w.set_memo_text(a, read_line("Memo text"))
            elif what == "memo_id":
                w.set_memo_id(a, get_uint64("Memo ID"))
            elif what == "clear_memo":
                w.clear_memo(a)
            elif what == "delete" and get_ok(f"Delete {a.public_key}"):
                w.delete_account(a)
            print("✓ Wallet updated.")
        return action

    def show_seed(self) -> None:
        seeds = self.wallet.seed_accounts()
        if not seeds:
            print("No accounts with private keys.")
            return
        a = self.select_account("Account", seeds, allow_enter=False)
        with self.wallet.secret(a) as secret:
            print(f"Seed: {secret.reveal()}")

    def show_mnemonic(self) -> None:
        words = self.wallet.mnemonic()
        for i in range(0, len(words), 6):
            print("  ".join(f"{n + 1:>2}. {w:<10}" for n, w in enumerate(words[i:i + 6], i)))

    def change_password(self) -> None:
        with get_new_password() as pw:
            self.wallet.change_password(pw)
        print("✓ Password changed, wallet locked.")

    def check_integrity(self) -> None:
        if self.wallet.check_integrity():
            print("✓ Wallet integrity check passed.")
        else:
            print("✗ Wallet integrity check FAILED.")

    def asset_menu(self) -> None:
        w = self.wallet

        def add() -> None:
            asset = self.get_asset("Asset")
            if asset.is_native():
                print("✗ The native asset is always available.")
                return
            w.add_asset(asset.issuer, asset.code)

        def pick():
            assets = w.assets()
            for i, a in enumerate(assets, 1):
                print(f"{i:>3}  {a.code}/{a.issuer} {a.description}")
            return assets[prompt_until_valid("Asset", lambda s: _index(s, len(assets)))] if assets else None

        def show() -> None:
            for a in w.assets():
                print(f"{a.code}/{a.issuer} {a.description}")

        def describe() -> None:
            a = pick()
            if a is not None:
                w.set_asset_description(a, read_line("Description"))

        def delete() -> None:
            a = pick()
            if a is not None:
                w.delete_asset(a)

        run_menu("Wallet assets", [
            ("List assets", show),
            ("Add asset", lambda: self.with_wallet(add)),
            ("Set description", lambda: self.with_wallet(describe)),
            ("Delete asset", lambda: self.with_wallet(delete)),
        ])

    def trading_pair_menu(self) -> None:
        w = self.wallet
        registry = self.session.registry

        def to_wallet(asset: Asset):
            if asset.is_native():
                return None
            found = w.find_asset(asset.issuer, asset.code)
            if found is None:
                raise ValidationError(f"Add {asset.pretty()} to the wallet assets first.")
            return found

        def label(tp) -> str:
            return f"{registry.from_wallet(tp.asset1).pretty()} / {registry.from_wallet(tp.asset2).pretty()}"

        def pick():
            pairs = w.trading_pairs()
            for i, tp in enumerate(pairs, 1):
                print(f"{i:>3}  {label(tp)} {tp.description}")
            return pairs[prompt_until_valid("Trading pair", lambda s: _index(s, len(pairs)))] if pairs else None

        def show() -> None:
            for tp in w.trading_pairs():
                print(f"{label(tp)} {tp.description}")

        def add() -> None:
            a1 = to_wallet(self.get_asset("Base asset"))
            a2 = to_wallet(self.get_asset("Counter asset"))
            w.add_trading_pair(a1, a2)

        def describe() -> None:
            tp = pick()
            if tp is not None:
                w.set_trading_pair_description(tp, read_line("Description"))

        def delete() -> None:
            tp = pick()
            if tp is not None:
                w.delete_trading_pair(tp)

        run_menu("Trading pairs", [
            ("List trading pairs", show),
            ("Add trading pair", lambda: self.with_wallet(add)),
            ("Set description", lambda: self.with_wallet(describe)),
            ("Delete trading pair", lambda: self.with_wallet(delete)),
        ])

    def trade_menu(self) -> None:
        run_menu("Trade", [
            ("Order book", self.order_book),
            ("Sell", lambda: self.offer(buying=False)),
            ("Buy", lambda: self.offer(buying=True)),
            ("Cancel offer", self.cancel_offer),
            ("List offers", self.list_offers),
            ("Trade history", lambda: self.history(trades=True)),
        ])

    def main_menu(self) -> None:
        entries = [
            ("Account info", self.account_info),
            ("Federation lookup", self.federation),
            ("Payment", self.payment),
            ("Create account", self.create_account),
            ("Add trustline", self.trustline),
            ("Remove trustline", lambda: self.trustline(remove=True)),
            ("Set inflation destination", self.inflation_destination),
            ("Claim claimable balance", self.claim_balance),
            ("Trade", self.trade_menu),
            ("Transaction history", self.history),
            ("Wallet", self.wallet_menu),
            ("Sign transaction", self.sign_transaction),
            ("Submit signed transaction", self.submit_transaction),
            ("Generate new keypair", self.new_keypair),
        ]
        if self.session.network.friendbot_url:
            entries.append(("Fund account (testnet)", self.fund))
        run_menu("Select action", entries)


def _checked(setter: Callable[[str], None], text: str) -> str:
    setter(text)
    return text


def _index(text: str, count: int) -> int:
    if not text.isdigit() or not 1 <= int(text) <= count:
        raise ValidationError("Invalid choice.")
    return int(text) - 1


def print_account(info: AccountSnapshot, native_code: str,
                  reference: Optional[ReferencePrice] = None) -> None:
    if not info.exists:
        print(f"Account does not exist: {info.account_id}")
        return

    rows = [("Address", info.account_id)]
    for asset, balance in info.balances.items():
        rows.append((f"Balance ({asset.pretty()})", format_amount(balance)))
        if reference is not None and asset.is_native():
            rows.append((f"Value ({reference.currency})", format_amount(balance * reference.price, 2)))
    if info.inflation_destination:
        rows.append(("Inflation Destination", info.inflation_destination))
    home_domain = (info.record or {}).get("home_domain")
    if home_domain:
        rows.append(("Home Domain", home_domain))
    for name in ("low_threshold", "med_threshold", "high_threshold"):
        rows.append((name.replace("_", " ").title(), str(info.thresholds.get(name, 0))))
    for s in info.signers:
        rows.append(("Signer", f"{s.key} Weight:{s.weight} Type:{s.type}"))
    rows.append(("Sequence", str(info.sequence)))
    print_table(rows)


# ------------ WALLET SETUP ------------

def open_or_create_wallet(session: Session, path: str) -> None:
    store = WalletStore(path)
    if store.exists():
        wallet = session.open_wallet(store)
        print(f"✓ Wallet loaded: {path}")
        check_wallet_integrity(wallet)
        return

    header(f"No wallet found at {path}")
    print(" 1  Create new wallet")
    print(" 2  Recover wallet from mnemonic")
    print(" 3  Continue without wallet")
    while True:
        choice = input("\n--> ").strip()
        if choice == "1":
            wallet = create_wallet(session)
            break
        if choice == "2":
            wallet = recover_wallet(session)
            break
        if choice == "3":
            return
        print(f"Invalid input: {choice}")

    session.attach_wallet(wallet, store)
    print(f"✓ Wallet saved to {path}")


def check_wallet_integrity(wallet: Wallet) -> Optional[bool]:
    """Verify the wallet checksum with the password. ENTER skips the check and returns None."""
    for _ in range(PASSWORD_ATTEMPTS):
        with get_password("Wallet password (hit enter to skip integrity check)") as pw:
            if not pw:
                return None
            try:
                with wallet.unlocked(pw):
                    ok = wallet.check_integrity()
            except WalletPasswordError:
                print("✗ Invalid password.")
                continue
        if ok:
            print("✓ Wallet integrity check passed.")
        else:
            print("ATTENTION: Wallet integrity check failed!")
        return ok
    return None


def create_wallet(session: Session) -> Wallet:
    with get_new_password() as pw:
        mnemonic_password = getpass.getpass("Mnemonic password (optional): ")
        wallet = Wallet.create(pw, mnemonic_password, coin_type=session.network.coin_type)
        wallet.unlock(pw)

    try:
        print("\nWrite down these 24 words, they are the only backup of the wallet:\n")
        words = wallet.mnemonic()
        for i in range(0, len(words), 6):
            print("  ".join(f"{n + 1:>2}. {w:<10}" for n, w in enumerate(words[i:i + 6], i)))
        print(f"\nFirst account: {wallet.seed_accounts()[0].public_key}")
    finally:
        wallet.release()
    return wallet


def recover_wallet(session: Session) -> Wallet:
    while True:
        words = read_line("Mnemonic words (24, separated by spaces)").split()
        if is_valid_mnemonic(words):
            break
        print("✗ Invalid mnemonic.")
    mnemonic_password = getpass.getpass("Mnemonic password (optional): ")

    def funded(account_id: str) -> bool:
        return session.accounts.get(account_id, CACHE_TIMEOUT_FORCE).exists

    with get_new_password() as pw:
        wallet = Wallet.recover(pw, words, mnemonic_password, coin_type=session.network.coin_type,
                                funded=funded)
    print(f"✓ Recovered {len(wallet.seed_accounts())} account(s).")
    return wallet


# ------------ ENTRY POINT ------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="stellar-cli", description="Interactive Stellar client")
    parser.add_argument("--network", choices=sorted(NETWORKS), default=DEFAULT_NETWORK,
                        help="network profile")
    parser.add_argument("--testnet", action="store_true", help="shortcut for --network testnet")
    parser.add_argument("--wallet", default=DEFAULT_WALLET_FILE, help="wallet file")
    parser.add_argument("--tx-in", default="", help="file containing a transaction blob")
    parser.add_argument("--tx-out", default="", help="file to write transaction blobs to")
    parser.add_argument("--signers", default="", help="file containing secret keys for signing")
    parser.add_argument("--offline", action="store_true", help="never submit, always write blob files")
    parser.add_argument("--currency", choices=REFERENCE_CURRENCIES, default="none",
                        help="show native balances in this currency")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    parser.add_argument("account", nargs="?", default="", help="print account info and exit")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    network = get_network("testnet" if args.testnet else args.network)
    logger.debug(f"Using network profile {network.name}")
    print(f"stellar-cli version {__version__}\n")
    print("Using Network       :", network.passphrase)
    print("Using Horizon Server:", network.horizon_url)

    with Session(network, reference_currency=args.currency) as session:
        app = App(args, session)
        try:
            if args.account:
                if not StrKey.is_valid_ed25519_public_key(args.account):
                    print(f"ERROR: Invalid address: {args.account}")
                    return 1
                app.account_info(args.account)
                return 0

            open_or_create_wallet(session, os.path.expanduser(args.wallet))
            app.main_menu()
        except HorizonError as e:
            print(f"✗ {e.action} failed: {e.describe()}")
            return 1
        except (KeyboardInterrupt, EOFError):
            print("\nQuit.")
        except (ValidationError, WalletError) as e:
            print(f"✗ {e}")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
