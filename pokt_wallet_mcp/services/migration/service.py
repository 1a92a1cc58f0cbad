"""
Migration Service

Owns the open migration wizards (one orchestrator per session) and the
session-independent migration actions behind the pokt_migration tool.
"""

from dataclasses import asdict
from typing import Any

import structlog

from ...core.error_response import PoktWalletErrorResponse
from ...core.exceptions import PoktWalletError
from ...core.importer import CredentialImporter
from ...core.migration.client import MigrationServiceClient
from ...core.migration.history import MigrationHistory
from ...core.migration.instructions import InstructionOptions, generate_migration_instructions
from ...core.network_config import NetworkConfigResolver
from ...core.registry import WalletRegistry
from ...models.enums import MigrationAction
from ...models.migration import MigrationSession
from .orchestrator import MigrationOrchestrator


def _session_view(session: MigrationSession) -> dict[str, Any]:
    view = session.model_dump(mode="json")
    view["terminal"] = session.stage.is_terminal
    return view


class MigrationService:
    """Service for migration wizard sessions."""

    def __init__(
        self,
        importer: CredentialImporter,
        registry: WalletRegistry,
        network: NetworkConfigResolver,
        client: MigrationServiceClient,
        history: MigrationHistory,
    ):
        self.importer = importer
        self.registry = registry
        self.network = network
        self.client = client
        self.history = history
        self.sessions: dict[str, MigrationOrchestrator] = {}
        self.logger = structlog.get_logger().bind(component="migration_service")

    def start(self) -> MigrationOrchestrator:
        orchestrator = MigrationOrchestrator(
            self.importer, self.registry, self.network, self.client, self.history
        )
        self.sessions[orchestrator.session.session_id] = orchestrator
        self.logger.info("Migration session opened", session_id=orchestrator.session.session_id)
        return orchestrator

    def get(self, session_id: str) -> MigrationOrchestrator | None:
        return self.sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        """Discard a session. Wallets it imported stay stored."""
        closed = self.sessions.pop(session_id, None) is not None
        if closed:
            self.logger.info("Migration session closed", session_id=session_id)
        return closed

    async def handle_action(self, action, **params) -> dict[str, Any]:
        """Unified action handler for all migration operations."""
        if isinstance(action, str):
            try:
                action = MigrationAction(action.lower().strip())
            except ValueError:
                return {
                    "success": False,
                    "error": f"Unknown action: {action}",
                    "valid_actions": [a.value for a in MigrationAction],
                }

        handler = self._get_action_handlers().get(action)
        if handler is None:
            return {
                "success": False,
                "error": f"Unknown action: {action}",
                "valid_actions": [a.value for a in MigrationAction],
            }

        try:
            return await handler(**params)
        except PoktWalletError as e:
            self.logger.warning("migration action failed", action=action.value, error=str(e))
            return PoktWalletErrorResponse.from_exception(
                e, context={"action": action.value, "session_id": params.get("session_id") or None}
            )
        except ValueError as e:
            return PoktWalletErrorResponse.validation_error("params", "", str(e))
        except Exception as e:
            self.logger.error("migration service action error", action=action.value, error=str(e))
            return PoktWalletErrorResponse.generic_error(
                f"Service action failed: {e}", context={"action": action.value}
            )

    def _get_action_handlers(self) -> dict:
        """Get mapping of actions to handler methods."""
        return {
            MigrationAction.START: self._handle_start_action,
            MigrationAction.IMPORT_SOURCE: self._handle_import_source_action,
            MigrationAction.PROVISION_DESTINATION: self._handle_provision_action,
            MigrationAction.CONFIRM: self._handle_confirm_action,
            MigrationAction.STATUS: self._handle_status_action,
            MigrationAction.RESET: self._handle_reset_action,
            MigrationAction.CLOSE: self._handle_close_action,
            MigrationAction.INSTRUCTIONS: self._handle_instructions_action,
            MigrationAction.HISTORY: self._handle_history_action,
            MigrationAction.PROCESS_RESULT: self._handle_process_result_action,
        }

    def _stage_response(self, session: MigrationSession) -> dict[str, Any]:
        """Stage failures are reported inline; the session itself stays usable."""
        response = {"success": session.last_error is None, "session": _session_view(session)}
        if session.last_error:
            response["error"] = session.last_error
            response["error_kind"] = session.last_error_kind
        return response

    def _require_session(self, params: dict[str, Any]) -> tuple[MigrationOrchestrator | None, dict]:
        session_id = params.get("session_id", "")
        orchestrator = self.get(session_id) if session_id else None
        if orchestrator is None:
            return None, PoktWalletErrorResponse.session_not_found(session_id or "<missing>")
        return orchestrator, {}

    async def _handle_start_action(self, **params) -> dict[str, Any]:
        orchestrator = self.start()
        return {
            "success": True,
            "session": _session_view(orchestrator.session),
            "network": orchestrator.network_config.model_dump(mode="json"),
        }

    async def _handle_import_source_action(self, **params) -> dict[str, Any]:
        orchestrator, error = self._require_session(params)
        if orchestrator is None:
            return error
        code = params.get("code", "")
        if not code.strip():
            return PoktWalletErrorResponse.validation_error("code", "", "code is required")
        session = await orchestrator.import_source(code, params.get("passphrase", ""))
        return self._stage_response(session)

    async def _handle_provision_action(self, **params) -> dict[str, Any]:
        orchestrator, error = self._require_session(params)
        if orchestrator is None:
            return error
        session = await orchestrator.provision_destination(
            params.get("passphrase", ""), params.get("destination_code") or None
        )
        return self._stage_response(session)

    async def _handle_confirm_action(self, **params) -> dict[str, Any]:
        orchestrator, error = self._require_session(params)
        if orchestrator is None:
            return error
        session = await orchestrator.confirm_migrate()
        response = self._stage_response(session)
        if session.result is not None:
            response["message"] = "Migration completed"
        return response

    async def _handle_status_action(self, **params) -> dict[str, Any]:
        orchestrator, error = self._require_session(params)
        if orchestrator is None:
            return error
        return {"success": True, "session": _session_view(orchestrator.session)}

    async def _handle_reset_action(self, **params) -> dict[str, Any]:
        orchestrator, error = self._require_session(params)
        if orchestrator is None:
            return error
        return {"success": True, "session": _session_view(orchestrator.reset())}

    async def _handle_close_action(self, **params) -> dict[str, Any]:
        session_id = params.get("session_id", "")
        if not self.close(session_id):
            return PoktWalletErrorResponse.session_not_found(session_id or "<missing>")
        return {"success": True, "message": f"Session {session_id} closed"}

    async def _handle_instructions_action(self, **params) -> dict[str, Any]:
        options = InstructionOptions(
            unsafe=bool(params.get("unsafe", False)),
            unarmored_json=bool(params.get("unarmored_json", False)),
        )
        instructions = generate_migration_instructions(
            list(params.get("morse_private_keys") or []),
            params.get("signing_account", ""),
            options,
        )
        return {"success": True, **asdict(instructions)}

    async def _handle_history_action(self, **params) -> dict[str, Any]:
        morse_address = params.get("morse_address", "")
        receipt = await self.history.last()
        response: dict[str, Any] = {
            "success": True,
            "last_result": receipt.model_dump(mode="json") if receipt else None,
        }
        if morse_address:
            response["morse_address"] = morse_address
            response["migrated"] = await self.history.is_account_migrated(morse_address)
            response["shannon_address"] = await self.history.get_shannon_address_for_morse(
                morse_address
            )
        return response

    async def _handle_process_result_action(self, **params) -> dict[str, Any]:
        content = params.get("result_content", "")
        if not content.strip():
            return PoktWalletErrorResponse.validation_error(
                "result_content", "", "result_content is required"
            )
        result = await self.history.process_result_file(content)
        return {
            "success": True,
            "message": f"Results file processed: {len(result['mappings'])} accounts",
            "tx_hash": result["tx_hash"],
            "mappings": result["mappings"],
        }
