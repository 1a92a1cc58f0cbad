"""Migration session and remote service data models."""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .credential import WalletModel


class MigrationStage(str, Enum):
    """Stages of one migration wizard session."""

    AWAITING_SOURCE_IMPORT = "AwaitingSourceImport"
    AWAITING_DESTINATION_PROVISION = "AwaitingDestinationProvision"
    AWAITING_CONFIRMATION = "AwaitingConfirmation"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MigrationStage.COMPLETED, MigrationStage.FAILED)


class MigrationSession(WalletModel):
    """In-memory state of one migration attempt. Never persisted."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source_address: str | None = None
    destination_address: str | None = None
    stage: MigrationStage = MigrationStage.AWAITING_SOURCE_IMPORT
    last_error: str | None = None
    last_error_kind: str | None = None
    destination_reused: bool | None = None
    result: dict[str, Any] | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class PocketdStatus(BaseModel):
    """Availability of the CLI used by the migration service."""

    available: bool = True
    error: str | None = None

    model_config = ConfigDict(extra="allow")


class HealthStatus(BaseModel):
    """Body of GET /health."""

    status: str | None = None
    pocketd: PocketdStatus | None = None

    model_config = ConfigDict(extra="allow")


class ShannonAddress(BaseModel):
    """Destination account and the authorization artifact sent with it."""

    address: str
    signature: str


class MigrationPayload(BaseModel):
    """Body of POST /migrate."""

    morse_private_key: str = Field(alias="morsePrivateKey")
    shannon_address: ShannonAddress = Field(alias="shannonAddress")

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class MigrationOutcome(WalletModel):
    """Successful hand-off as reported by the migration service."""

    success: bool = True
    data: dict[str, Any] | None = None
    tx_hash: str | None = None
    mappings: list[dict[str, Any]] = Field(default_factory=list)


class MigrationReceipt(WalletModel):
    """Persisted record of the last migration result."""

    timestamp: int
    result: dict[str, Any]
    source_address: str | None = None
    destination_address: str | None = None
    is_uploaded_file: bool = False
