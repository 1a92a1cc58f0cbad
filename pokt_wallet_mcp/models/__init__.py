"""Data models for the Pocket wallet MCP server."""

from .credential import (  # noqa: F401
    AccountModel,
    CredentialRecord,
    NetworkConfig,
    SecretOrigin,
)
from .enums import MigrationAction, WalletAction  # noqa: F401
from .migration import (  # noqa: F401
    HealthStatus,
    MigrationOutcome,
    MigrationPayload,
    MigrationReceipt,
    MigrationSession,
    MigrationStage,
    ShannonAddress,
)
from .params import PoktMigrationParams, PoktWalletsParams  # noqa: F401

__all__ = [
    # Credential models
    "AccountModel",
    "CredentialRecord",
    "NetworkConfig",
    "SecretOrigin",
    # Migration models
    "HealthStatus",
    "MigrationOutcome",
    "MigrationPayload",
    "MigrationReceipt",
    "MigrationSession",
    "MigrationStage",
    "ShannonAddress",
    # Tool models
    "MigrationAction",
    "WalletAction",
    "PoktMigrationParams",
    "PoktWalletsParams",
]
