"""Credential format sniffing.

Inputs carry no schema tag, so each known encoding is recognized by an
ordered list of predicates. The first predicate that matches decides the
kind; an encrypted container is checked before a plain JSON wallet
because both parse as JSON objects.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from ..constants import MNEMONIC_WORD_COUNTS, MORSE_HEX_LENGTH, SHANNON_HEX_LENGTH
from ..models.credential import AccountModel

logger = structlog.get_logger()

ADDRESS_PATTERN = re.compile(r"^[0-9a-fA-F]{40}$")
HEX_PATTERN = re.compile(r"^[0-9a-fA-F]+$")


class CredentialKind(str, Enum):
    """Closed set of encodings an input can be classified as."""

    PPK = "ppk"
    JSON_WALLET = "json_wallet"
    HEX_PRIVATE_KEY = "hex_private_key"
    MNEMONIC = "mnemonic"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class Classification:
    """Result of classify().

    payload holds the parsed form the importer needs: the container dict,
    the list of wallet objects, the bare hex string or the word list.
    """

    kind: CredentialKind
    account_model: AccountModel | None = None
    payload: Any = None

    @property
    def recognized(self) -> bool:
        return self.kind is not CredentialKind.UNRECOGNIZED


UNRECOGNIZED = Classification(CredentialKind.UNRECOGNIZED)

Predicate = Callable[[str], Classification | None]


def _parse_json(text: str) -> Any:
    stripped = text.strip()
    if not stripped or stripped[0] not in "{[":
        return None
    try:
        return json.loads(stripped)
    except (json.JSONDecodeError, RecursionError):
        return None


def strip_hex_prefix(text: str) -> str:
    """Remove a leading 0x/0X."""
    return text[2:] if text[:2] in ("0x", "0X") else text


def _match_ppk(text: str) -> Classification | None:
    parsed = _parse_json(text)
    if not isinstance(parsed, dict):
        return None
    for field in ("kdf", "salt", "ciphertext"):
        if not isinstance(parsed.get(field), str):
            return None
    if "hint" not in parsed:
        return None
    if parsed["kdf"] != "scrypt" and not isinstance(parsed.get("secparam"), str):
        return None
    return Classification(CredentialKind.PPK, AccountModel.MORSE, parsed)


def _is_wallet_object(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and isinstance(value.get("addr"), str)
        and ADDRESS_PATTERN.match(value["addr"]) is not None
    )


def _match_json_wallet(text: str) -> Classification | None:
    parsed = _parse_json(text)
    if isinstance(parsed, dict):
        wallets = [parsed]
    elif isinstance(parsed, list) and parsed:
        wallets = parsed
    else:
        return None
    if not all(_is_wallet_object(wallet) for wallet in wallets):
        return None
    return Classification(CredentialKind.JSON_WALLET, AccountModel.MORSE, wallets)


def _match_hex_key(text: str) -> Classification | None:
    candidate = text.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None
    candidate = strip_hex_prefix(candidate)
    if not HEX_PATTERN.match(candidate):
        return None
    if len(candidate) == MORSE_HEX_LENGTH:
        return Classification(CredentialKind.HEX_PRIVATE_KEY, AccountModel.MORSE, candidate)
    if len(candidate) == SHANNON_HEX_LENGTH:
        return Classification(CredentialKind.HEX_PRIVATE_KEY, AccountModel.SHANNON, candidate)
    return None


def _match_mnemonic(text: str) -> Classification | None:
    words = text.split()
    if len(words) in MNEMONIC_WORD_COUNTS:
        return Classification(CredentialKind.MNEMONIC, None, words)
    return None


PREDICATES: tuple[tuple[str, Predicate], ...] = (
    ("ppk", _match_ppk),
    ("json_wallet", _match_json_wallet),
    ("hex_private_key", _match_hex_key),
    ("mnemonic", _match_mnemonic),
)


def classify(text: Any) -> Classification:
    """Assign an input string one of the known credential kinds. Never raises."""
    if not isinstance(text, str) or not text.strip():
        return UNRECOGNIZED
    for name, predicate in PREDICATES:
        try:
            result = predicate(text)
        except Exception as e:
            logger.debug("Credential predicate failed", predicate=name, error=str(e))
            continue
        if result is not None:
            return result
    return UNRECOGNIZED


def looks_like_words(text: str) -> bool:
    """True when text is plain space separated words (a mis-sized mnemonic)."""
    words = text.split()
    return len(words) > 1 and all(word.isalpha() for word in words)
