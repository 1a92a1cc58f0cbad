"""Shared pytest fixtures for Pocket wallet MCP tests."""

import hashlib
import json
from typing import Any

import httpx
import pytest

from pokt_wallet_mcp.core.config_loader import MigrationServiceConfig, PoktWalletConfig
from pokt_wallet_mcp.core.exceptions import DerivationError
from pokt_wallet_mcp.core.importer import CredentialImporter
from pokt_wallet_mcp.core.key_deriver import DerivedKey
from pokt_wallet_mcp.core.migration.client import MigrationServiceClient
from pokt_wallet_mcp.core.migration.history import MigrationHistory
from pokt_wallet_mcp.core.network_config import NetworkConfigResolver
from pokt_wallet_mcp.core.recovery import LegacyMnemonicRecovery
from pokt_wallet_mcp.core.registry import WalletRegistry
from pokt_wallet_mcp.core.store import MemoryStore

MNEMONIC_12 = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
MORSE_ADDRESS = "aa11" + "0" * 36
SHANNON_KEY_HEX = "0" * 64
MORSE_KEY_HEX = "ab" * 64
MIGRATION_URL = "http://migration.test/api/migration"


def fake_address(material: bytes | str, prefix: str) -> str:
    """Deterministic address: Morse gets 40 hex chars, Shannon a pokt1 string."""
    data = material.encode() if isinstance(material, str) else material
    digest = hashlib.sha256(data).hexdigest()
    if not prefix:
        return digest[:40]
    return f"{prefix}1{digest[:38]}"


class FakeKeyDeriver:
    """Key deriver double that records calls and skips real cryptography.

    Containers are plain dicts; the expected passphrase lives under
    ``"passphrase"`` and the address is derived from the salt.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail_with: DerivationError | None = None
        self.mnemonics: list[str] = []

    async def from_private_key_bytes(self, key: bytes, address_prefix: str) -> DerivedKey:
        self.calls.append(("from_private_key_bytes", key, address_prefix))
        if self.fail_with:
            raise self.fail_with
        return DerivedKey(address=fake_address(key, address_prefix), public_key=key.hex()[:16])

    async def from_mnemonic(self, words: str, address_prefix: str) -> DerivedKey:
        self.calls.append(("from_mnemonic", words, address_prefix))
        if self.fail_with:
            raise self.fail_with
        return DerivedKey(address=fake_address(words, address_prefix), public_key="pub")

    async def unlock_container(self, container: dict[str, Any] | str, passphrase: str) -> bytes:
        self.calls.append(("unlock_container", container, passphrase))
        fields = json.loads(container) if isinstance(container, str) else container
        if fields.get("passphrase", "") != passphrase:
            raise DerivationError("Wrong passphrase or corrupted encrypted key")
        return bytes.fromhex(fields["salt"])

    async def from_encrypted_container(
        self, container: dict[str, Any] | str, passphrase: str
    ) -> DerivedKey:
        key = await self.unlock_container(container, passphrase)
        return DerivedKey(address=fake_address(key, ""), public_key=key.hex())

    def generate_mnemonic(self, word_count: int = 24) -> str:
        words = " ".join(["zoo"] * (word_count - 1) + [f"wrong{len(self.mnemonics)}"])
        self.mnemonics.append(words)
        return words


def ppk_text(salt: str = "0A1B2C3D", passphrase: str = "secret", **extra: Any) -> str:
    """Armored key text as FakeKeyDeriver understands it."""
    fields = {
        "kdf": "scrypt",
        "salt": salt,
        "secparam": "12",
        "hint": "",
        "ciphertext": "Y2lwaGVy",
        "passphrase": passphrase,
    }
    fields.update(extra)
    return json.dumps(fields)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def deriver() -> FakeKeyDeriver:
    return FakeKeyDeriver()


@pytest.fixture
def registry(store: MemoryStore) -> WalletRegistry:
    return WalletRegistry(store)


@pytest.fixture
def network(store: MemoryStore, registry: WalletRegistry) -> NetworkConfigResolver:
    return NetworkConfigResolver(store, registry)


@pytest.fixture
def importer(
    deriver: FakeKeyDeriver, registry: WalletRegistry, network: NetworkConfigResolver
) -> CredentialImporter:
    return CredentialImporter(deriver, registry, network)


@pytest.fixture
def history(store: MemoryStore) -> MigrationHistory:
    return MigrationHistory(store)


@pytest.fixture
def recovery(deriver: FakeKeyDeriver) -> LegacyMnemonicRecovery:
    return LegacyMnemonicRecovery(deriver, enabled=True)


class RecordingHandler:
    """httpx.MockTransport handler that answers per path suffix with (status, body)."""

    def __init__(self, routes: dict[str, tuple[int, Any]] | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, (status, body) in self.routes.items():
            if request.url.path.endswith(suffix):
                if isinstance(body, str):
                    return httpx.Response(status, text=body)
                return httpx.Response(status, json=body)
        return httpx.Response(404, json={"error": "not found"})

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


HEALTHY = {"status": "ok", "pocketd": {"available": True}}


@pytest.fixture
def http_handler() -> RecordingHandler:
    return RecordingHandler({"/health": (200, HEALTHY)})


@pytest.fixture
def client(http_handler: RecordingHandler) -> MigrationServiceClient:
    return MigrationServiceClient(
        MigrationServiceConfig(base_url=MIGRATION_URL),
        transport=httpx.MockTransport(http_handler),
    )


@pytest.fixture
def config() -> PoktWalletConfig:
    config = PoktWalletConfig()
    config.storage.backend = "memory"
    config.migration.base_url = MIGRATION_URL
    return config
