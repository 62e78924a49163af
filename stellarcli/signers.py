"""
Signing keys for one transaction.

Keys are collected from the wallet source account, then a signer file, then
interactive entry, up to MAX_SIGNERS in total. Use SignerSet as a context
manager: every collected seed is wiped when the block exits.

    with SignerSet() as signers:
        signers.add_wallet_account(wallet, account)
        signers.read_file(path)
        signed, envelope = tx.sign(signers.keypairs())
"""
import getpass
from typing import Callable, List, Optional

from stellar_sdk import Keypair, StrKey

from .config import MAX_SIGNERS
from .log import get_logger
from .secret import ScopedSecret

logger = get_logger(__name__)


def _is_seed(text: str) -> bool:
    return StrKey.is_valid_ed25519_secret_seed(text)


class SignerSet:
    def __init__(self, max_signers: int = MAX_SIGNERS):
        self.max_signers = max_signers
        self._secrets: List[ScopedSecret] = []

    def __enter__(self) -> "SignerSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._secrets)

    def is_full(self) -> bool:
        return len(self._secrets) >= self.max_signers

    def add(self, seed: str) -> bool:
        """Add a secret seed. Returns False for invalid seeds or when the set is full."""
        seed = seed.strip()
        if self.is_full() or not _is_seed(seed):
            return False
        self._secrets.append(ScopedSecret(seed))
        return True

    def add_wallet_account(self, wallet, account) -> bool:
        """Add the private key of a wallet account; the wallet must be unlocked."""
        if not account.has_private_key():
            return False
        if self.is_full():
            return False
        self._secrets.append(wallet.secret(account))
        return True

    def read_file(self, path: str) -> int:
        """
        Read seeds from a signer file: one per line, '#' starts a comment.
        Lines without a valid secret seed (public keys included) are skipped.
        Returns the number of keys added.
        """
        count = 0
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.split("#", 1)[0].strip()
                if not line:
                    continue
                if self.is_full():
                    break
                if self.add(line):
                    count += 1
        logger.info(f"Read {count} signing key(s) from {path}")
        return count

    def read_interactive(self, prompt: str = "Additional private signing key (hit enter to skip): ",
                         read: Optional[Callable[[str], str]] = None,
                         on_invalid: Optional[Callable[[str], None]] = None) -> int:
        """Prompt for seeds until an empty answer or the set is full."""
        read = read or getpass.getpass
        count = 0
        while not self.is_full():
            seed = read(prompt).strip()
            if not seed:
                break
            if not self.add(seed):
                if on_invalid is not None:
                    on_invalid("Invalid secret seed.")
                continue
            count += 1
        return count

    def keypairs(self) -> List[Keypair]:
        """Keypairs in collection order."""
        return [Keypair.from_secret(s.reveal()) for s in self._secrets]

    def public_keys(self) -> List[str]:
        return [kp.public_key for kp in self.keypairs()]

    def wipe(self) -> None:
        for s in self._secrets:
            s.wipe()
        self._secrets.clear()
