"""Morse to Shannon migration orchestrator."""

import structlog
from structlog.stdlib import BoundLogger

from ...core.exceptions import (
    CredentialImportError,
    DerivationError,
    MigrationHandoffError,
    MigrationStateError,
)
from ...core.importer import CredentialImporter
from ...core.migration.client import MigrationServiceClient
from ...core.migration.history import MigrationHistory
from ...core.migration.payload import build_payload
from ...core.network_config import NetworkConfigResolver
from ...core.registry import WalletRegistry
from ...models.credential import AccountModel, CredentialRecord, NetworkConfig
from ...models.migration import MigrationSession, MigrationStage


class MigrationOrchestrator:
    """Drives one migration wizard through its four stages.

    AwaitingSourceImport -> AwaitingDestinationProvision -> AwaitingConfirmation
    -> Completed | Failed. Import failures keep the session on its stage with
    last_error set; only a failed hand-off moves it to Failed. Terminal
    sessions are never resumed, only reset.
    """

    def __init__(
        self,
        importer: CredentialImporter,
        registry: WalletRegistry,
        network: NetworkConfigResolver,
        client: MigrationServiceClient,
        history: MigrationHistory,
        session: MigrationSession | None = None,
    ):
        self.importer = importer
        self.registry = registry
        self.network = network
        self.client = client
        self.history = history
        self.session = session or MigrationSession()
        self.network_config: NetworkConfig = network.current()
        self.logger: BoundLogger = structlog.get_logger().bind(
            component="migration_orchestrator", session_id=self.session.session_id
        )

    def _require(self, stage: MigrationStage, operation: str) -> None:
        if self.session.stage is not stage:
            raise MigrationStateError(
                f"Cannot {operation} while the migration is in stage "
                f"{self.session.stage.value}; expected {stage.value}"
            )

    def _record_stage_error(self, error: Exception, kind: str) -> MigrationSession:
        self.session.last_error = str(error)
        self.session.last_error_kind = kind
        self.logger.warning(
            "Migration stage failed",
            stage=self.session.stage.value,
            error=str(error),
            error_kind=kind,
        )
        return self.session

    def _clear_error(self) -> None:
        self.session.last_error = None
        self.session.last_error_kind = None

    async def import_source(self, code: str, passphrase: str = "") -> MigrationSession:
        """Import the Morse credential being migrated."""
        self._require(MigrationStage.AWAITING_SOURCE_IMPORT, "import the source wallet")
        try:
            record = await self.importer.import_credential(code, passphrase, AccountModel.MORSE)
        except (CredentialImportError, DerivationError) as e:
            return self._record_stage_error(e, "import")

        self.session.source_address = record.address
        self.session.stage = MigrationStage.AWAITING_DESTINATION_PROVISION
        self._clear_error()
        self.logger.info("Source wallet ready", source_address=record.address)
        return self.session

    async def provision_destination(
        self, passphrase: str = "", code: str | None = None
    ) -> MigrationSession:
        """Pick the Shannon wallet that receives the migrated account.

        An explicit code is imported; otherwise the current Shannon wallet
        (or the first listed one) is reused, and a new one is created when
        none exists.
        """
        self._require(MigrationStage.AWAITING_DESTINATION_PROVISION, "provision the destination wallet")
        try:
            record, reused = await self._destination_record(passphrase, code)
        except (CredentialImportError, DerivationError) as e:
            return self._record_stage_error(e, "provision")

        self.session.destination_address = record.address
        self.session.destination_reused = reused
        self.session.stage = MigrationStage.AWAITING_CONFIRMATION
        self._clear_error()
        self.logger.info(
            "Destination wallet ready", destination_address=record.address, reused=reused
        )
        return self.session

    async def _destination_record(
        self, passphrase: str, code: str | None
    ) -> tuple[CredentialRecord, bool]:
        if code:
            return await self.importer.import_credential(code, passphrase, AccountModel.SHANNON), False

        existing = await self.registry.get_current(AccountModel.SHANNON)
        if existing is None:
            listed = await self.registry.list(AccountModel.SHANNON)
            existing = listed[0] if listed else None
        if existing is not None:
            return existing, True
        return await self.importer.create(AccountModel.SHANNON, passphrase), False

    async def confirm_migrate(self) -> MigrationSession:
        """Run the hand-off: health probe, then the claim request.

        Any failure is terminal for this session.
        """
        self._require(MigrationStage.AWAITING_CONFIRMATION, "confirm the migration")

        source = await self.registry.find_by_address(AccountModel.MORSE, self.session.source_address or "")
        destination = await self.registry.find_by_address(
            AccountModel.SHANNON, self.session.destination_address or ""
        )
        if source is None or destination is None:
            missing = "source" if source is None else "destination"
            return self._fail(f"The {missing} wallet is no longer stored", "missing_wallet")

        self.logger.info(
            "Starting migration hand-off",
            source_address=source.address,
            destination_address=destination.address,
        )
        try:
            await self.client.check_health()
            outcome = await self.client.migrate(build_payload(source, destination))
        except MigrationHandoffError as e:
            return self._fail(str(e), e.kind)
        except Exception as e:
            # The claim may already be on chain; never leave the session re-confirmable
            self.logger.exception("Unexpected error during migration hand-off", error=str(e))
            return self._fail(f"Migration outcome could not be processed: {e}", "unexpected")

        self.session.stage = MigrationStage.COMPLETED
        self.session.result = outcome.model_dump(mode="json")
        self._clear_error()
        await self.history.record(
            self.session.result,
            source_address=source.address,
            destination_address=destination.address,
        )
        self.logger.info("Migration completed", tx_hash=outcome.tx_hash)
        return self.session

    def _fail(self, message: str, kind: str) -> MigrationSession:
        self.session.stage = MigrationStage.FAILED
        self.session.last_error = message
        self.session.last_error_kind = kind
        self.logger.error("Migration failed", error=message, error_kind=kind)
        return self.session

    def reset(self) -> MigrationSession:
        """Start over with a fresh session under the same id. Stored wallets are kept."""
        self.session = MigrationSession(session_id=self.session.session_id)
        self.network_config = self.network.current()
        self.logger.info("Migration session reset")
        return self.session
