"""
Asset handles.

An AssetRegistry hands out one Asset object per (issuer, code) pair, so the
rest of the code can use assets as dict keys and compare them with `is`.
Conversions from the two outside shapes (Horizon JSON records and stellar_sdk
assets) and from wallet assets happen here and nowhere else.
"""
import re
from typing import Dict, Tuple

from stellar_sdk import Asset as SdkAsset
from stellar_sdk import StrKey

from .exceptions import InvalidAssetError

_ASSET_CODE_RE = re.compile(r"^[A-Za-z0-9]{1,12}$")


def check_asset_code(code: str) -> None:
    """Validate an asset code: 1-12 ASCII letters or digits."""
    if not code or _ASSET_CODE_RE.match(code) is None:
        raise InvalidAssetError(f"invalid asset code '{code}': must be 1-12 alphanumeric characters")


def check_issuer(issuer: str) -> None:
    if not StrKey.is_valid_ed25519_public_key(issuer):
        raise InvalidAssetError(f"invalid asset issuer '{issuer}'")


def abbreviate(key: str) -> str:
    return key[:5] + "..." + key[-5:]


class Asset:
    """Interned asset handle. Create through AssetRegistry only."""

    __slots__ = ("_issuer", "_code", "_native_code")

    def __init__(self, issuer: str, code: str, native_code: str):
        self._issuer = issuer
        self._code = code
        self._native_code = native_code

    @property
    def issuer(self) -> str:
        return self._issuer

    @property
    def code(self) -> str:
        return self._code

    def is_native(self) -> bool:
        return self._issuer == ""

    def is_equal(self, other: "Asset") -> bool:
        if self.is_native() and other.is_native():
            return True
        return self._issuer == other._issuer and self._code == other._code

    def horizon_type(self) -> str:
        if self.is_native():
            return "native"
        return "credit_alphanum4" if len(self._code) <= 4 else "credit_alphanum12"

    def code_string(self) -> str:
        return self._native_code if self.is_native() else self._code

    def pretty(self) -> str:
        if self.is_native():
            return self._native_code
        return f"{self._code}/{abbreviate(self._issuer)}"

    def to_sdk(self) -> SdkAsset:
        if self.is_native():
            return SdkAsset.native()
        return SdkAsset(self._code, self._issuer)

    def __str__(self) -> str:
        if self.is_native():
            return self._native_code
        return f"{self._code}/{self._issuer}"

    def __repr__(self) -> str:
        return f"Asset({self})"


class AssetRegistry:
    def __init__(self, native_code: str = "XLM"):
        self.native_code = native_code
        self._native = Asset("", "", native_code)
        self._assets: Dict[Tuple[str, str], Asset] = {}

    def native(self) -> Asset:
        return self._native

    def intern(self, issuer: str, code: str) -> Asset:
        """Return the canonical handle for (issuer, code), creating it on first use."""
        if not issuer:
            return self._native

        key = (issuer, code)
        asset = self._assets.get(key)
        if asset is None:
            check_asset_code(code)
            check_issuer(issuer)
            asset = Asset(issuer, code, self.native_code)
            self._assets[key] = asset
        return asset

    def __len__(self) -> int:
        return len(self._assets)

    def from_horizon(self, record: dict, prefix: str = "") -> Asset:
        """Convert a Horizon asset shape, e.g. a balance line or the 'selling' part of an offer."""
        if record.get(prefix + "asset_type") == "native":
            return self._native
        return self.intern(record.get(prefix + "asset_issuer", ""), record.get(prefix + "asset_code", ""))

    def from_sdk(self, asset: SdkAsset) -> Asset:
        if asset.is_native():
            return self._native
        return self.intern(asset.issuer, asset.code)

    def from_wallet(self, wallet_asset) -> Asset:
        """Convert a WalletAsset; None stands for the native asset."""
        if wallet_asset is None:
            return self._native
        return self.intern(wallet_asset.issuer, wallet_asset.code)

    def parse(self, text: str) -> Asset:
        """Parse 'CODE/ISSUER' or 'CODE:ISSUER'; the native code alone gives the native asset."""
        s = text.strip()
        if s.upper() in (self.native_code.upper(), "NATIVE"):
            return self._native
        for sep in ("/", ":"):
            if sep in s:
                code, issuer = s.split(sep, 1)
                return self.intern(issuer.strip().upper(), code.strip())
        raise InvalidAssetError(f"invalid asset '{text}': expected CODE/ISSUER")

