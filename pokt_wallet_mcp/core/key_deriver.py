"""Key derivation for Morse (ed25519) and Shannon (secp256k1) accounts."""

import asyncio
import base64
import binascii
import hashlib
import hmac
import json
import os
from dataclasses import dataclass
from typing import Any, Protocol

import ecdsa
import structlog
from bech32 import bech32_encode, convertbits
from Crypto.Hash import RIPEMD160
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from mnemonic import Mnemonic

from ..constants import (
    MORSE_HD_PATH,
    PPK_KEY_LENGTH,
    PPK_NONCE_LENGTH,
    PPK_SCRYPT_N,
    PPK_SCRYPT_P,
    PPK_SCRYPT_R,
    SHANNON_HD_PATH,
)
from .exceptions import DerivationError

logger = structlog.get_logger()

SECP256K1_N = ecdsa.SECP256k1.order
HARDENED_OFFSET = 0x80000000


@dataclass(frozen=True)
class DerivedKey:
    """Address and publishable public key produced by a deriver."""

    address: str
    public_key: str


class KeyDeriver(Protocol):
    """Turns secret material into an account address.

    An empty address prefix selects the Morse scheme, any other prefix
    selects Shannon bech32 addresses with that human readable part.
    """

    async def from_private_key_bytes(self, key: bytes, address_prefix: str) -> DerivedKey: ...

    async def from_mnemonic(self, words: str, address_prefix: str) -> DerivedKey: ...

    async def from_encrypted_container(
        self, container: dict[str, Any] | str, passphrase: str
    ) -> DerivedKey: ...

    async def unlock_container(self, container: dict[str, Any] | str, passphrase: str) -> bytes: ...

    def generate_mnemonic(self, word_count: int = 24) -> str: ...


def _parse_path(path: str) -> list[tuple[int, bool]]:
    segments = []
    for segment in path.split("/")[1:]:
        if not segment:
            continue
        hardened = segment.endswith("'")
        index = int(segment.rstrip("'"))
        segments.append((index, hardened))
    return segments


def _compressed_public_key(private_key: bytes) -> bytes:
    try:
        signing_key = ecdsa.SigningKey.from_string(private_key, curve=ecdsa.SECP256k1)
    except (ValueError, ecdsa.MalformedPointError) as e:
        raise DerivationError(f"Invalid secp256k1 private key: {e}") from e
    return signing_key.get_verifying_key().to_string("compressed")


def _bip32_derive_secp256k1(seed: bytes, path: str) -> bytes:
    """Derive a secp256k1 private key from a BIP39 seed along a BIP32 path."""
    digest = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
    key, chain_code = digest[:32], digest[32:]
    for index, hardened in _parse_path(path):
        if hardened:
            index += HARDENED_OFFSET
            data = b"\x00" + key + index.to_bytes(4, "big")
        else:
            data = _compressed_public_key(key) + index.to_bytes(4, "big")
        digest = hmac.new(chain_code, data, hashlib.sha512).digest()
        child = (int.from_bytes(digest[:32], "big") + int.from_bytes(key, "big")) % SECP256K1_N
        if child == 0:
            raise DerivationError(f"Derived an invalid child key at index {index}")
        key, chain_code = child.to_bytes(32, "big"), digest[32:]
    return key


def _slip10_derive_ed25519(seed: bytes, path: str) -> bytes:
    """Derive an ed25519 seed along a SLIP-0010 path. Every segment is hardened."""
    digest = hmac.new(b"ed25519 seed", seed, hashlib.sha512).digest()
    key, chain_code = digest[:32], digest[32:]
    for index, _hardened in _parse_path(path):
        index |= HARDENED_OFFSET
        data = b"\x00" + key + index.to_bytes(4, "big")
        digest = hmac.new(chain_code, data, hashlib.sha512).digest()
        key, chain_code = digest[:32], digest[32:]
    return key


def morse_address(public_key: bytes) -> str:
    """Morse address: first 20 bytes of SHA-256 over the raw public key, hex."""
    return hashlib.sha256(public_key).digest()[:20].hex()


def shannon_address(compressed_public_key: bytes, prefix: str) -> str:
    """Cosmos style address: bech32(prefix, RIPEMD-160(SHA-256(pubkey)))."""
    sha = hashlib.sha256(compressed_public_key).digest()
    ripemd = RIPEMD160.new(sha).digest()
    words = convertbits(ripemd, 8, 5)
    encoded = bech32_encode(prefix, words) if words is not None else None
    if not encoded:
        raise DerivationError(f"Cannot encode address with prefix '{prefix}'")
    return encoded


class PocketKeyDeriver:
    """Concrete deriver for both Pocket account models."""

    def __init__(self, scrypt_n: int = PPK_SCRYPT_N, language: str = "english"):
        self.scrypt_n = scrypt_n
        self._mnemonic = Mnemonic(language)
        self.logger = logger.bind(component="key_deriver")

    async def from_private_key_bytes(self, key: bytes, address_prefix: str) -> DerivedKey:
        if not address_prefix:
            return self._morse_from_key(key)
        return self._shannon_from_key(key, address_prefix)

    async def from_mnemonic(self, words: str, address_prefix: str) -> DerivedKey:
        phrase = " ".join(words.split())
        if not self._mnemonic.check(phrase):
            raise DerivationError("Invalid mnemonic phrase: checksum or word list mismatch")
        seed = Mnemonic.to_seed(phrase, passphrase="")
        if not address_prefix:
            return self._morse_from_key(_slip10_derive_ed25519(seed, MORSE_HD_PATH))
        return self._shannon_from_key(_bip32_derive_secp256k1(seed, SHANNON_HD_PATH), address_prefix)

    async def from_encrypted_container(
        self, container: dict[str, Any] | str, passphrase: str
    ) -> DerivedKey:
        return self._morse_from_key(await self.unlock_container(container, passphrase))

    async def unlock_container(self, container: dict[str, Any] | str, passphrase: str) -> bytes:
        """Decrypt an armored Morse key and return the raw private key bytes."""
        fields = self._container_fields(container)
        # scrypt with N=32768 takes long enough to block the loop
        return await asyncio.to_thread(self._decrypt, fields, passphrase)

    def generate_mnemonic(self, word_count: int = 24) -> str:
        strengths = {12: 128, 15: 160, 18: 192, 21: 224, 24: 256}
        if word_count not in strengths:
            raise ValueError(f"Unsupported mnemonic length: {word_count}")
        return self._mnemonic.generate(strength=strengths[word_count])

    def encrypt_container(self, private_key: bytes, passphrase: str, hint: str = "") -> dict[str, str]:
        """Produce an armored key for private_key (inverse of unlock_container)."""
        salt = os.urandom(16)
        key = self._scrypt(passphrase, salt)
        ciphertext = AESGCM(key).encrypt(key[:PPK_NONCE_LENGTH], private_key.hex().encode(), None)
        return {
            "kdf": "scrypt",
            "salt": salt.hex().upper(),
            "secparam": str(self.scrypt_n.bit_length() - 4),
            "hint": hint,
            "ciphertext": base64.b64encode(ciphertext).decode(),
        }

    def _container_fields(self, container: dict[str, Any] | str) -> dict[str, Any]:
        if isinstance(container, str):
            try:
                container = json.loads(container)
            except json.JSONDecodeError as e:
                raise DerivationError(f"Encrypted key is not valid JSON: {e}") from e
        if not isinstance(container, dict):
            raise DerivationError("Encrypted key must be a JSON object")
        for field in ("salt", "ciphertext"):
            if not isinstance(container.get(field), str):
                raise DerivationError(f"Encrypted key is missing '{field}'")
        if container.get("kdf", "scrypt") != "scrypt":
            raise DerivationError(f"Unsupported key derivation function '{container['kdf']}'")
        return container

    def _scrypt(self, passphrase: str, salt: bytes) -> bytes:
        kdf = Scrypt(salt=salt, length=PPK_KEY_LENGTH, n=self.scrypt_n, r=PPK_SCRYPT_R, p=PPK_SCRYPT_P)
        return kdf.derive(passphrase.encode("utf-8"))

    def _decrypt(self, fields: dict[str, Any], passphrase: str) -> bytes:
        try:
            salt = bytes.fromhex(fields["salt"])
            ciphertext = base64.b64decode(fields["ciphertext"], validate=True)
        except (ValueError, binascii.Error) as e:
            raise DerivationError(f"Encrypted key has malformed salt or ciphertext: {e}") from e

        key = self._scrypt(passphrase, salt)
        try:
            plaintext = AESGCM(key).decrypt(key[:PPK_NONCE_LENGTH], ciphertext, None)
        except InvalidTag as e:
            raise DerivationError("Wrong passphrase or corrupted encrypted key") from e

        try:
            return bytes.fromhex(plaintext.decode("ascii").strip())
        except (UnicodeDecodeError, ValueError) as e:
            raise DerivationError("Decrypted key is not hex encoded") from e

    def _morse_from_key(self, key: bytes) -> DerivedKey:
        if len(key) not in (32, 64):
            raise DerivationError(f"Morse private key must be 32 or 64 bytes, got {len(key)}")
        private = Ed25519PrivateKey.from_private_bytes(key[:32])
        public = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        if len(key) == 64 and key[32:] != public:
            self.logger.debug("Embedded public key does not match seed, using derived key")
        return DerivedKey(address=morse_address(public), public_key=public.hex())

    def _shannon_from_key(self, key: bytes, prefix: str) -> DerivedKey:
        if len(key) != 32:
            raise DerivationError(f"Shannon private key must be 32 bytes, got {len(key)}")
        public = _compressed_public_key(key)
        return DerivedKey(
            address=shannon_address(public, prefix),
            public_key=base64.b64encode(public).decode(),
        )
