"""Core exceptions for Pocket wallet operations."""


class PoktWalletError(Exception):
    """Base exception for Pocket wallet operations."""


class ConfigurationError(PoktWalletError):
    """Configuration validation or loading failed."""


class StoreError(PoktWalletError):
    """Persistent store read or write failed."""


class ClassificationUnrecognized(PoktWalletError):
    """Input text does not match any known credential encoding."""


class DerivationError(PoktWalletError):
    """Secret material is malformed or the passphrase is wrong."""


class CredentialImportError(PoktWalletError):
    """A credential could not be imported."""


class RegistryInconsistency(PoktWalletError):
    """Stored wallet lists contain duplicate or unreadable entries."""


class MigrationStateError(PoktWalletError):
    """A migration stage was invoked out of order."""


class MigrationHandoffError(PoktWalletError):
    """The remote migration hand-off failed.

    Attributes:
        kind: Failure category used to pick the user-facing message
        detail: Raw error text reported by the remote service
    """

    kind = "rejected"

    def __init__(self, message: str, *, kind: str | None = None, detail: str | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.detail = detail


class NetworkUnavailable(MigrationHandoffError):
    """Migration service or the Shannon node behind it is unreachable."""

    kind = "service_unavailable"


class ServiceMisconfigured(MigrationHandoffError):
    """Migration service is reachable but its CLI tooling is broken."""

    kind = "tool_misconfiguration"


class MigrationRejected(MigrationHandoffError):
    """Migration service processed the request and rejected it."""

    kind = "rejected"
