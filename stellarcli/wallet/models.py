"""Domain models for the wallet."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class AccountType(Enum):
    DERIVED = "derived-seed"
    RANDOM = "imported-random"
    WATCHING = "watching-only"
    ADDRESS_BOOK = "address-book"

    @property
    def letter(self) -> str:
        return {
            AccountType.DERIVED: "G",
            AccountType.RANDOM: "R",
            AccountType.WATCHING: "W",
            AccountType.ADDRESS_BOOK: "A",
        }[self]


@dataclass(eq=False)
class WalletAccount:
    type: AccountType
    public_key: str
    private_key: Optional[str] = None    # encrypted token
    description: str = ""
    memo_text: str = ""
    memo_id: Optional[int] = None
    index: Optional[int] = None          # derivation index for derived accounts

    def has_private_key(self) -> bool:
        return self.private_key is not None

    def public_content(self) -> Dict[str, object]:
        return {
            "type": self.type.value,
            "public_key": self.public_key,
            "description": self.description,
            "memo_text": self.memo_text,
            "memo_id": self.memo_id,
            "index": self.index,
        }

    def to_dict(self) -> Dict[str, object]:
        data = self.public_content()
        data["private_key"] = self.private_key
        return data

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "WalletAccount":
        return WalletAccount(
            type=AccountType(data["type"]),
            public_key=data["public_key"],
            private_key=data.get("private_key"),
            description=data.get("description", ""),
            memo_text=data.get("memo_text", ""),
            memo_id=data.get("memo_id"),
            index=data.get("index"),
        )


@dataclass(eq=False)
class WalletAsset:
    issuer: str
    code: str
    description: str = ""

    def key(self):
        return (self.issuer, self.code)

    def to_dict(self) -> Dict[str, str]:
        return {
            "issuer": self.issuer,
            "code": self.code,
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: Dict[str, str]) -> "WalletAsset":
        return WalletAsset(
            issuer=data["issuer"],
            code=data["code"],
            description=data.get("description", ""),
        )


@dataclass(eq=False)
class TradingPair:
    """Preferred display order for a market; None stands for the native asset."""

    asset1: Optional[WalletAsset]
    asset2: Optional[WalletAsset]
    description: str = ""

    def matches(self, asset1: Optional[WalletAsset], asset2: Optional[WalletAsset]) -> bool:
        return _same(self.asset1, asset1) and _same(self.asset2, asset2)

    def to_dict(self) -> Dict[str, object]:
        return {
            "asset1": list(self.asset1.key()) if self.asset1 else None,
            "asset2": list(self.asset2.key()) if self.asset2 else None,
            "description": self.description,
        }


def _same(a: Optional[WalletAsset], b: Optional[WalletAsset]) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return a.key() == b.key()
