"""Credential and network data models."""

import secrets
import time
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..constants import (
    MORSE,
    MORSE_ADDRESS_PREFIX,
    MORSE_SECRET_SIZE,
    MORSE_WALLET,
    MORSE_WALLETS,
    SHANNON,
    SHANNON_ADDRESS_PREFIX,
    SHANNON_SECRET_SIZE,
    SHANNON_WALLET,
    SHANNON_WALLETS,
)


class WalletModel(BaseModel):
    """Base model with common serialization settings."""

    def model_dump(self, **kwargs) -> dict[str, Any]:
        """Convert to dict with exclude_none by default."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)


class AccountModel(str, Enum):
    """The two account systems a credential can belong to."""

    MORSE = MORSE
    SHANNON = SHANNON

    @property
    def address_prefix(self) -> str:
        return MORSE_ADDRESS_PREFIX if self is AccountModel.MORSE else SHANNON_ADDRESS_PREFIX

    @property
    def secret_size(self) -> int:
        return MORSE_SECRET_SIZE if self is AccountModel.MORSE else SHANNON_SECRET_SIZE

    @property
    def list_key(self) -> str:
        return MORSE_WALLETS if self is AccountModel.MORSE else SHANNON_WALLETS

    @property
    def legacy_key(self) -> str:
        return MORSE_WALLET if self is AccountModel.MORSE else SHANNON_WALLET

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class SecretOrigin(str, Enum):
    """How the stored secret came to exist."""

    GENERATED_FROM_MNEMONIC = "generated-from-mnemonic"
    IMPORTED_PRIVATE_KEY = "imported-private-key"
    IMPORTED_CONTAINER = "imported-container"


def generate_record_id(account_model: AccountModel) -> str:
    """Build a unique record id from a millisecond timestamp and a random suffix."""
    return f"{account_model.value}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class CredentialRecord(WalletModel):
    """One stored credential."""

    id: str
    account_model: AccountModel
    address: str
    serialized_secret: str = Field(description="Mnemonic, hex key or container JSON (untagged)")
    secret_origin: SecretOrigin
    network: AccountModel
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    name: str | None = None
    public_key: str | None = None
    private_key: str | None = Field(default=None, description="Plain hex key when known")
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        account_model: AccountModel,
        address: str,
        serialized_secret: str,
        secret_origin: SecretOrigin,
        **extra: Any,
    ) -> "CredentialRecord":
        """Create a fresh record with a generated id and creation time."""
        return cls(
            id=generate_record_id(account_model),
            account_model=account_model,
            address=address,
            serialized_secret=serialized_secret,
            secret_origin=secret_origin,
            network=account_model,
            **extra,
        )

    def summary(self) -> dict[str, Any]:
        """Public view of the record without the secret."""
        return self.model_dump(mode="json", exclude={"serialized_secret", "private_key"})


class NetworkConfig(WalletModel):
    """Resolved account model and sub-network."""

    account_model: AccountModel = AccountModel.SHANNON
    is_mainnet: bool = False
    explicit: bool = Field(
        default=False, description="True when is_mainnet came from a saved user choice"
    )

    @property
    def is_testnet(self) -> bool:
        return not self.is_mainnet

    @property
    def label(self) -> str:
        return "mainnet" if self.is_mainnet else "testnet"
