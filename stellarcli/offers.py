"""Open offers of an account, shown in the orientation the user trades them."""
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Optional

from .amount import format_amount, format_price, parse_amount, price_to_fraction
from .asset import Asset


@dataclass
class Offer:
    offer_id: int
    asset1: Asset
    asset2: Asset
    price: Fraction     # asset2 per asset1
    amount1: Fraction   # stroops of asset1
    amount2: Fraction   # stroops of asset2
    buying: bool = False

    @classmethod
    def from_horizon(cls, registry, record: dict) -> "Offer":
        price = price_to_fraction(record["price_r"])
        amount = parse_amount(record["amount"])
        return cls(
            offer_id=int(record["id"]),
            asset1=registry.from_horizon(record["selling"]),
            asset2=registry.from_horizon(record["buying"]),
            price=price,
            amount1=amount,
            amount2=amount * price,
        )

    def reverse(self) -> None:
        """Show a sell offer as the equivalent buy (and back)."""
        self.buying = not self.buying
        self.asset1, self.asset2 = self.asset2, self.asset1
        self.amount1, self.amount2 = self.amount2, self.amount1
        self.price = 1 / self.price

    def __str__(self) -> str:
        action, joiner = ("Buy ", "with") if self.buying else ("Sell", "for")
        return (f"{action}: {format_amount(self.amount1)} {self.asset1.pretty()} {joiner} "
                f"{format_amount(self.amount2)} {self.asset2.pretty()}, "
                f"price {format_price(self.price)}, ID {self.offer_id}")


def _is_reversed_pair(wallet, offer: Offer) -> bool:
    """True if the wallet has a trading pair listing the offer's assets the other way round."""
    wallet_assets = []
    for asset in (offer.asset1, offer.asset2):
        if asset.is_native():
            wallet_assets.append(None)
            continue
        found = wallet.find_asset(asset.issuer, asset.code)
        if found is None:
            return False
        wallet_assets.append(found)
    return wallet.find_trading_pair(wallet_assets[1], wallet_assets[0]) is not None


def get_offers(session, account: str, asset1: Optional[Asset] = None,
               asset2: Optional[Asset] = None) -> List[Offer]:
    """
    Load the open offers of `account`. With an asset pair only the offers on
    that market are returned, all oriented as asset1/asset2. Without a pair
    every offer is returned, reversed where a wallet trading pair says so.
    """
    records = session.horizon.account_offers(account)
    match_all = asset1 is None or asset2 is None

    result = []
    for record in records:
        offer = Offer.from_horizon(session.registry, record)

        if match_all:
            if session.wallet is not None and _is_reversed_pair(session.wallet, offer):
                offer.reverse()
            result.append(offer)
        elif asset1.is_equal(offer.asset1) and asset2.is_equal(offer.asset2):
            result.append(offer)
        elif asset1.is_equal(offer.asset2) and asset2.is_equal(offer.asset1):
            offer.reverse()
            result.append(offer)
    return result
