'''
BIP-39 mnemonics and SEP-5 key derivation.

A 24 word mnemonic (plus an optional mnemonic password) gives a BIP-39 seed;
account keys are derived from it along m/44'/<coin_type>'/<index>' with
SLIP-10 ed25519. Stellar uses coin type 148, Pi Network 314159.
'''
from typing import List, Sequence

from bip_utils import (
    Bip32Slip10Ed25519,
    Bip39Languages,
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
)
from stellar_sdk import Keypair

from ..exceptions import ValidationError

MNEMONIC_WORDS = 24


def generate_mnemonic() -> List[str]:
    mnemonic = Bip39MnemonicGenerator(Bip39Languages.ENGLISH).FromWordsNumber(Bip39WordsNum.WORDS_NUM_24)
    return mnemonic.ToStr().split()


def normalize_words(words: Sequence[str]) -> str:
    return " ".join(w.strip().lower() for w in words if w.strip())


def is_valid_mnemonic(words: Sequence[str]) -> bool:
    phrase = normalize_words(words)
    if len(phrase.split()) != MNEMONIC_WORDS:
        return False
    return Bip39MnemonicValidator(Bip39Languages.ENGLISH).IsValid(phrase)


def mnemonic_to_seed(words: Sequence[str], passphrase: str = "") -> bytes:
    if not is_valid_mnemonic(words):
        raise ValidationError("Invalid mnemonic.")
    return Bip39SeedGenerator(normalize_words(words), Bip39Languages.ENGLISH).Generate(passphrase)


def derivation_path(coin_type: int, index: int) -> str:
    return f"m/44'/{coin_type}'/{index}'"


def derive_keypair(seed: bytes, coin_type: int, index: int) -> Keypair:
    # Derive path m/44'/<coin>'/<index>' directly (no need for Bip44Coins)
    bip32_ctx = Bip32Slip10Ed25519.FromSeed(seed)
    derived_key = bip32_ctx.DerivePath(derivation_path(coin_type, index))

    # Get raw private key bytes and derive Stellar keypair
    raw_private_key = derived_key.PrivateKey().Raw().ToBytes()
    return Keypair.from_raw_ed25519_seed(raw_private_key)
