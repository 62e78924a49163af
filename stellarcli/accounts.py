"""
Account information with a freshness bound.

Menus ask for account state again and again; the cache answers from memory
while an entry is younger than the requested max age and goes to Horizon
otherwise. Pass CACHE_TIMEOUT_FORCE to always refetch.
"""
import time
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Callable, Dict, List, Optional, Tuple

from .amount import ZERO, parse_amount
from .asset import Asset, AssetRegistry
from .config import HORIZON_PAGE_LIMIT
from .horizon import HorizonClient, Record
from .log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AccountSigner:
    key: str
    weight: int
    type: str


@dataclass
class AccountSnapshot:
    account_id: str
    exists: bool
    timestamp: float
    sequence: int = 0
    balances: Dict[Asset, Fraction] = field(default_factory=dict)
    signers: List[AccountSigner] = field(default_factory=list)
    thresholds: Dict[str, int] = field(default_factory=dict)
    subentry_count: int = 0
    inflation_destination: str = ""
    record: Optional[Record] = None

    def balance(self, asset: Asset) -> Fraction:
        return self.balances.get(asset, ZERO)

    def has_trustline(self, asset: Asset) -> bool:
        return asset.is_native() or asset in self.balances


def snapshot_from_record(registry: AssetRegistry, account_id: str,
                         record: Optional[Record], timestamp: float) -> AccountSnapshot:
    if record is None:
        return AccountSnapshot(account_id=account_id, exists=False, timestamp=timestamp)

    balances: Dict[Asset, Fraction] = {}
    for b in record.get("balances", []):
        # pool shares have no asset code and are not tradable from here
        if b.get("asset_type") == "liquidity_pool_shares":
            continue
        balances[registry.from_horizon(b)] = parse_amount(b["balance"])

    signers = [
        AccountSigner(key=s["key"], weight=int(s["weight"]), type=s.get("type", ""))
        for s in record.get("signers", [])
    ]

    return AccountSnapshot(
        account_id=account_id,
        exists=True,
        timestamp=timestamp,
        sequence=int(record["sequence"]),
        balances=balances,
        signers=signers,
        thresholds=dict(record.get("thresholds", {})),
        subentry_count=int(record.get("subentry_count", 0)),
        inflation_destination=record.get("inflation_destination") or "",
        record=record,
    )


class AccountInfoCache:
    def __init__(self, horizon: HorizonClient, registry: AssetRegistry,
                 clock: Callable[[], float] = time.monotonic):
        self._horizon = horizon
        self._registry = registry
        self._clock = clock
        self._entries: Dict[str, AccountSnapshot] = {}

    def get(self, account_id: str, max_age: float) -> AccountSnapshot:
        now = self._clock()
        entry = self._entries.get(account_id)
        if entry is not None and now - entry.timestamp < max_age:
            return entry

        # a failed fetch leaves no entry
        self._entries.pop(account_id, None)
        record = self._horizon.load_account(account_id)
        snapshot = snapshot_from_record(self._registry, account_id, record, now)
        self._entries[account_id] = snapshot
        logger.debug(f"Account {account_id} refreshed, exists={snapshot.exists}")
        return snapshot

    def clear(self, account_id: str = "") -> None:
        if account_id:
            self._entries.pop(account_id, None)
        else:
            self._entries.clear()

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._entries


def _page(records: List[Record], count: int) -> Tuple[List[Record], str]:
    next_cursor = records[-1].get("paging_token", "") if records and len(records) >= count else ""
    return records, next_cursor


def get_account_transactions(horizon: HorizonClient, account_id: str, count: int,
                             cursor: str = "") -> Tuple[List[Record], str]:
    """
    One page of transactions, newest first. The returned cursor continues
    with older records; it is empty once a short page shows nothing is left.
    """
    count = max(1, min(count, HORIZON_PAGE_LIMIT))
    return _page(horizon.account_transactions(account_id, count, cursor), count)


def get_account_trades(horizon: HorizonClient, account_id: str, count: int,
                       cursor: str = "") -> Tuple[List[Record], str]:
    count = max(1, min(count, HORIZON_PAGE_LIMIT))
    return _page(horizon.account_trades(account_id, count, cursor), count)
