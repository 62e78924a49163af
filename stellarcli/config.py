"""
Network profiles and tunables.

The Horizon servers, passphrases and base fees are the same ones used by the
payment and token scripts: Stellar mainnet/testnet plus the Pi Network
mainnet/testnet, which run the same protocol with a different native unit
and SEP-5 coin type.
"""
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class NetworkConfig:
    name: str
    horizon_url: str
    passphrase: str
    base_fee: int             # stroops per operation
    native_code: str
    coin_type: int            # SEP-5 derivation m/44'/<coin_type>'/<index>'
    friendbot_url: Optional[str] = None


NETWORKS: Dict[str, NetworkConfig] = {
    "stellar": NetworkConfig(
        name="stellar",
        horizon_url="https://horizon.stellar.org",
        passphrase="Public Global Stellar Network ; September 2015",
        base_fee=100,
        native_code="XLM",
        coin_type=148,
    ),
    "testnet": NetworkConfig(
        name="testnet",
        horizon_url="https://horizon-testnet.stellar.org",
        passphrase="Test SDF Network ; September 2015",
        base_fee=100,
        native_code="XLM",
        coin_type=148,
        friendbot_url="https://friendbot.stellar.org",
    ),
    "pi": NetworkConfig(
        name="pi",
        horizon_url="https://api.mainnet.minepi.com",
        passphrase="Pi Network",
        base_fee=1_000_000,
        native_code="PI",
        coin_type=314159,
    ),
    "pi-testnet": NetworkConfig(
        name="pi-testnet",
        horizon_url="https://api.testnet.minepi.com",
        passphrase="Pi Testnet",
        base_fee=1_000_000,
        native_code="PI",
        coin_type=314159,
    ),
}

DEFAULT_NETWORK = "stellar"
DEFAULT_WALLET_FILE = "stellar-cli.wallet"

# seconds
PASSWORD_TIMEOUT = 120
TX_TIMEOUT = 300
HTTP_TIMEOUT = 30

CACHE_TIMEOUT_FORCE = 0
CACHE_TIMEOUT_SHORT = 30
CACHE_TIMEOUT_MEDIUM = 120
CACHE_TIMEOUT_LONG = 600

MAX_SIGNERS = 20
MEMO_TEXT_MAX = 28
HORIZON_PAGE_LIMIT = 200
RECOVERY_GAP = 5

KDF_ITERATIONS = 200_000


def get_network(name: str) -> NetworkConfig:
    """Look up a network profile by name."""
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(f"Unknown network '{name}', choose one of: {', '.join(sorted(NETWORKS))}") from None
