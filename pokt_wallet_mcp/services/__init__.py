"""
Pocket Wallet MCP Services

Service layer for business logic organization and separation of concerns.
"""

from .migration import MigrationOrchestrator, MigrationService  # noqa: F401
from .wallet import WalletService  # noqa: F401

__all__ = [
    "WalletService",
    "MigrationService",
    "MigrationOrchestrator",
]
