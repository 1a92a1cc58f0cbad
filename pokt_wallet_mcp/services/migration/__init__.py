"""Migration wizard orchestration and session management."""

from .orchestrator import MigrationOrchestrator  # noqa: F401
from .service import MigrationService  # noqa: F401

__all__ = ["MigrationOrchestrator", "MigrationService"]
