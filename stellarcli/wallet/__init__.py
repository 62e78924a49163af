from .lock import PasswordMonitor
from .models import AccountType, TradingPair, WalletAccount, WalletAsset
from .store import StoreState, WalletStore
from .wallet import Wallet

__all__ = [
    "AccountType",
    "PasswordMonitor",
    "StoreState",
    "TradingPair",
    "Wallet",
    "WalletAccount",
    "WalletAsset",
    "WalletStore",
]
