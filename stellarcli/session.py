"""Per-run state: network, Horizon client, caches and the wallet."""
import time
from typing import Callable, Optional

from .accounts import AccountInfoCache
from .asset import AssetRegistry
from .config import NetworkConfig
from .horizon import HorizonClient
from .log import get_logger
from .orderbook import OrderBookCache
from .refprice import ReferencePriceCache
from .wallet import Wallet, WalletStore

logger = get_logger(__name__)


class Session:
    """
    Owns everything that used to be process wide: the asset table, the
    account and order book caches and the open wallet. Components get the
    session passed in instead of reaching for globals, so tests (or a second
    network) can run side by side.
    """

    def __init__(self, network: NetworkConfig, horizon: Optional[HorizonClient] = None,
                 clock: Callable[[], float] = time.monotonic, reference_currency: str = "none"):
        self.network = network
        self.horizon = horizon or HorizonClient(network)
        self.registry = AssetRegistry(network.native_code)
        self.accounts = AccountInfoCache(self.horizon, self.registry, clock)
        self.order_books = OrderBookCache(self.horizon, self.registry, clock)
        self.reference_prices = ReferencePriceCache(reference_currency, self.order_books, self.registry, clock)
        self.wallet: Optional[Wallet] = None
        self.store: Optional[WalletStore] = None

    def open_wallet(self, store: WalletStore) -> Wallet:
        self.store = store
        self.wallet = store.load()
        self.wallet.monitor.start()
        return self.wallet

    def attach_wallet(self, wallet: Wallet, store: Optional[WalletStore] = None) -> Wallet:
        """Use a newly created wallet, saving it through `store` if given."""
        if store is not None:
            store.attach(wallet)
            store.save(wallet)
            self.store = store
        self.wallet = wallet
        wallet.monitor.start()
        return wallet

    def account_exists(self, account_id: str, max_age: float) -> bool:
        return self.accounts.get(account_id, max_age).exists

    def close(self) -> None:
        if self.wallet is not None:
            self.wallet.monitor.stop()
            self.wallet.lock()
        self.accounts.clear()
        self.order_books.clear()
        self.reference_prices.clear()
        logger.debug("Session closed")

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
