"""RFC 7807 compliant error response helpers.

Wallet and migration tools never raise to the MCP client. Failures are
returned as Problem Details dictionaries built here.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import (
    ClassificationUnrecognized,
    ConfigurationError,
    CredentialImportError,
    DerivationError,
    MigrationHandoffError,
    MigrationStateError,
    PoktWalletError,
    StoreError,
)


class ErrorDetail(BaseModel):
    """RFC 7807 compliant error detail structure."""

    success: bool = Field(default=False, description="Always False for errors")
    error: str = Field(description="Human-readable error message")
    type: str | None = Field(default=None, description="Problem type URI")
    title: str | None = Field(default=None, description="Problem type summary")
    detail: str | None = Field(default=None, description="Specific problem details")
    instance: str | None = Field(default=None, description="Problem occurrence URI")
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class PoktWalletErrorResponse:
    """Factory for standardized wallet and migration error responses."""

    PROBLEM_TYPES: dict[str, dict[str, str]] = {
        "unrecognized-credential": {
            "type": "/problems/unrecognized-credential",
            "title": "Unrecognized Credential Format",
        },
        "derivation-error": {
            "type": "/problems/derivation-error",
            "title": "Key Derivation Failed",
        },
        "import-error": {
            "type": "/problems/import-error",
            "title": "Credential Import Failed",
        },
        "wallet-not-found": {
            "type": "/problems/wallet-not-found",
            "title": "Wallet Not Found",
        },
        "store-error": {
            "type": "/problems/store-error",
            "title": "Wallet Store Failure",
        },
        "migration-state-error": {
            "type": "/problems/migration-state-error",
            "title": "Migration Step Out Of Order",
        },
        "migration-error": {
            "type": "/problems/migration-error",
            "title": "Migration Failed",
        },
        "session-not-found": {
            "type": "/problems/session-not-found",
            "title": "Migration Session Not Found",
        },
        "validation-error": {
            "type": "/problems/validation-error",
            "title": "Input Validation Failed",
        },
        "configuration-error": {
            "type": "/problems/configuration-error",
            "title": "Configuration Error",
        },
    }

    @classmethod
    def create_error(
        cls,
        error_message: str,
        problem_type: str | None = None,
        detail: str | None = None,
        instance: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a standardized error response.

        Args:
            error_message: Primary error message
            problem_type: Standard problem type key or custom type URI
            detail: Additional problem-specific details
            instance: Identifier for this specific occurrence
            context: Additional context fields (address, session_id, etc.)

        Returns:
            RFC 7807 compliant error response dictionary
        """
        error_detail = ErrorDetail(error=error_message, detail=detail, instance=instance)

        if problem_type and problem_type in cls.PROBLEM_TYPES:
            problem_info = cls.PROBLEM_TYPES[problem_type]
            error_detail.type = problem_info["type"]
            error_detail.title = problem_info["title"]
        elif problem_type:
            error_detail.type = problem_type

        response = error_detail.model_dump(exclude_none=True)

        if context:
            reserved_fields = set(ErrorDetail.model_fields)
            response.update({k: v for k, v in context.items() if k not in reserved_fields})

        return response

    @classmethod
    def from_exception(
        cls, error: Exception, context: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Map a wallet exception onto its problem type."""
        problem_type = None
        context = dict(context or {})
        if isinstance(error, ClassificationUnrecognized):
            problem_type = "unrecognized-credential"
        elif isinstance(error, CredentialImportError):
            problem_type = "import-error"
        elif isinstance(error, DerivationError):
            problem_type = "derivation-error"
        elif isinstance(error, StoreError):
            problem_type = "store-error"
        elif isinstance(error, MigrationStateError):
            problem_type = "migration-state-error"
        elif isinstance(error, MigrationHandoffError):
            problem_type = "migration-error"
            context["error_kind"] = error.kind
            if error.detail:
                context["cause"] = error.detail
        elif isinstance(error, ConfigurationError):
            problem_type = "configuration-error"
        elif not isinstance(error, PoktWalletError):
            context.setdefault("error_type", type(error).__name__)
        return cls.create_error(error_message=str(error), problem_type=problem_type, context=context)

    @classmethod
    def wallet_not_found(cls, account_model: str, address: str) -> dict[str, Any]:
        """Standard wallet not found error."""
        return cls.create_error(
            error_message=f"No {account_model} wallet with address '{address}'",
            problem_type="wallet-not-found",
            instance=f"/wallets/{account_model}/{address}",
            context={"account_model": account_model, "address": address},
        )

    @classmethod
    def session_not_found(cls, session_id: str) -> dict[str, Any]:
        """Standard migration session not found error."""
        return cls.create_error(
            error_message=f"Migration session '{session_id}' not found",
            problem_type="session-not-found",
            detail="Start a new session with action 'start'.",
            instance=f"/migrations/{session_id}",
            context={"session_id": session_id},
        )

    @classmethod
    def validation_error(cls, field: str, value: Any, reason: str) -> dict[str, Any]:
        """Standard validation error."""
        return cls.create_error(
            error_message=f"Validation failed for '{field}': {reason}",
            problem_type="validation-error",
            detail=f"The value '{value}' for field '{field}' is invalid: {reason}",
            instance=f"/validation/{field}",
            context={"field": field, "reason": reason},
        )

    @classmethod
    def migration_error(cls, session_id: str, stage: str, cause: str, kind: str) -> dict[str, Any]:
        """Standard migration error."""
        return cls.create_error(
            error_message=f"Migration failed during {stage}: {cause}",
            problem_type="migration-error",
            instance=f"/migrations/{session_id}",
            context={"session_id": session_id, "stage": stage, "error_kind": kind},
        )

    @classmethod
    def generic_error(
        cls,
        error_message: str,
        context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Generic error response for unexpected errors."""
        return cls.create_error(
            error_message=error_message,
            context=context or {},
        )
