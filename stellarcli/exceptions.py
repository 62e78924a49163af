# stellarcli/exceptions.py
from typing import Optional, Sequence


class StellarCliError(Exception):
    """Base exception class for stellar-cli errors"""
    pass


class ValidationError(StellarCliError):
    """Raised when user input fails validation"""
    pass


class InvalidAmount(ValidationError):
    """Raised for malformed or out of range amounts and prices"""
    pass


class InvalidAssetError(ValidationError):
    """Raised for malformed asset codes or issuers"""
    pass


class InvalidAddressError(ValidationError):
    """Raised for malformed public or secret keys"""
    pass


class InvalidMemoError(ValidationError):
    """Raised for memo texts, ids or hashes the ledger cannot carry"""
    pass


class WalletError(StellarCliError):
    """Raised when wallet operations fail"""
    pass


class WalletLockedError(WalletError):
    """Raised when an operation needs the wallet password but none is held"""
    pass


class WalletPasswordError(WalletError):
    """Raised when the wallet password does not match"""
    pass


class WalletFormatError(WalletError):
    """Raised when a wallet file cannot be decoded"""
    pass


class TransactionStateError(StellarCliError):
    """Raised when a transaction is used out of order, e.g. signed before it was finalized"""
    pass


class HorizonError(StellarCliError):
    """Raised when a Horizon request fails for any reason other than a missing resource"""

    def __init__(self, action: str, title: str, result_codes: Optional[dict] = None,
                 status: Optional[int] = None):
        self.action = action
        self.title = title
        self.result_codes = result_codes or {}
        self.status = status
        super().__init__(f"{action} failed: {self.describe()}")

    @property
    def transaction_code(self) -> str:
        return self.result_codes.get("transaction", "")

    @property
    def operation_codes(self) -> Sequence[str]:
        return self.result_codes.get("operations", []) or []

    def describe(self) -> str:
        if self.result_codes:
            codes = " ".join([self.transaction_code] + list(self.operation_codes)).strip()
            return f"{self.title}: {codes}"
        return self.title
