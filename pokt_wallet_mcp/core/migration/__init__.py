"""Remote migration hand-off: payloads, HTTP client, results and manual instructions."""

from .client import MigrationServiceClient, classify_failure  # noqa: F401
from .history import MigrationHistory  # noqa: F401
from .instructions import (  # noqa: F401
    InstructionOptions,
    MigrationInstructions,
    generate_migration_instructions,
)
from .payload import RawSecret, StructuredSecret, build_payload, secret_from_record  # noqa: F401

__all__ = [
    "MigrationServiceClient",
    "classify_failure",
    "MigrationHistory",
    "InstructionOptions",
    "MigrationInstructions",
    "generate_migration_instructions",
    "RawSecret",
    "StructuredSecret",
    "build_payload",
    "secret_from_record",
]
