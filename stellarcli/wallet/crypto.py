"""
Password based encryption for wallet secrets.

PBKDF2-SHA256 stretches the wallet password and a random salt into 64 bytes:
the first half is the Fernet key that encrypts secrets, the second half keys
the HMAC checksum over the wallet content.
"""
import base64
import json
import os
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..exceptions import WalletPasswordError
from ..secret import ScopedSecret

SALT_SIZE = 16
PASSWORD_CHECK = b"stellar-cli wallet"


class WalletKeys:
    """Keys derived from one password; wipe() when done."""

    def __init__(self, raw: bytes):
        self._raw = bytearray(raw)
        self._fernet = Fernet(base64.urlsafe_b64encode(bytes(self._raw[:32])))

    def encrypt(self, plaintext: bytes) -> str:
        return self._fernet.encrypt(plaintext).decode("ascii")

    def decrypt(self, token: str) -> bytes:
        try:
            return self._fernet.decrypt(token.encode("ascii"))
        except InvalidToken:
            raise WalletPasswordError("Invalid password or corrupted wallet data.") from None

    def checksum(self, content: Any) -> str:
        h = hmac.HMAC(bytes(self._raw[32:]), hashes.SHA256())
        h.update(canonical_json(content))
        return h.finalize().hex()

    def verify_checksum(self, content: Any, expected: str) -> bool:
        h = hmac.HMAC(bytes(self._raw[32:]), hashes.SHA256())
        h.update(canonical_json(content))
        try:
            h.verify(bytes.fromhex(expected))
        except (InvalidSignature, ValueError):
            return False
        return True

    def wipe(self) -> None:
        for i in range(len(self._raw)):
            self._raw[i] = 0
        self._fernet = None

    def __enter__(self) -> "WalletKeys":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()


def new_salt() -> bytes:
    return os.urandom(SALT_SIZE)


def derive_keys(password: ScopedSecret, salt: bytes, iterations: int) -> WalletKeys:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=64,
        salt=salt,
        iterations=iterations,
    )
    return WalletKeys(kdf.derive(password.bytes()))


def canonical_json(content: Any) -> bytes:
    return json.dumps(content, sort_keys=True, separators=(",", ":")).encode("utf-8")
