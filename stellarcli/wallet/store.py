"""Wallet file on disk."""
import os
import tempfile
from enum import Enum
from typing import Optional

from ..exceptions import WalletError, WalletFormatError
from ..log import get_logger
from .lock import PasswordMonitor
from .wallet import Wallet

logger = get_logger(__name__)


class StoreState(Enum):
    ABSENT = "absent"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load-failed"


class WalletStore:
    """
    Loads the wallet file once and rewrites it after every wallet mutation.

    Writes go to a temporary file in the same directory which is fsynced and
    then renamed over the wallet file, so a crash leaves either the old or the
    new wallet, never a mix. The file is only readable by its owner.
    """

    def __init__(self, path: str):
        self.path = path
        self.state = StoreState.ABSENT
        self.wallet: Optional[Wallet] = None

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def load(self, monitor: Optional[PasswordMonitor] = None) -> Wallet:
        self.state = StoreState.LOADING
        try:
            with open(self.path, "r", encoding="ascii") as f:
                wallet = Wallet.import_base64(f.read(), monitor=monitor)
        except (OSError, UnicodeError, WalletFormatError) as e:
            self.state = StoreState.LOAD_FAILED
            logger.error(f"Failed to load wallet {self.path}: {e}")
            if isinstance(e, WalletFormatError):
                raise
            raise WalletError(f"Failed to load wallet {self.path}: {e}") from e

        self.attach(wallet)
        logger.info(f"Loaded wallet {self.path}")
        return wallet

    def attach(self, wallet: Wallet) -> None:
        """Make this store the persistence target of `wallet`."""
        wallet.store = self
        self.wallet = wallet
        self.state = StoreState.LOADED

    def save(self, wallet: Wallet) -> None:
        self.write(wallet.export_base64())

    def write(self, text: str) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".wallet-", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="ascii") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise WalletError(f"Failed to write wallet {self.path}: {e}") from e
        logger.debug(f"Wrote wallet {self.path}")
