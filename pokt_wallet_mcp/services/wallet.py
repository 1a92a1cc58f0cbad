"""
Wallet Management Service

Business logic behind the pokt_wallets tool: import, creation, lookup,
network selection, removal and secret retrieval.
"""

from typing import Any

import structlog

from ..constants import MORSE_HEX_LENGTH, SHANNON_HEX_LENGTH, WALLET_ADDRESS
from ..core.classifier import CredentialKind, classify, strip_hex_prefix
from ..core.error_response import PoktWalletErrorResponse
from ..core.exceptions import PoktWalletError
from ..core.importer import CredentialImporter
from ..core.network_config import NetworkConfigResolver
from ..core.recovery import LegacyMnemonicRecovery
from ..core.registry import WalletRegistry
from ..models.credential import AccountModel, CredentialRecord
from ..models.enums import WalletAction


def _account_model(value: Any, default: AccountModel | None = None) -> AccountModel | None:
    if value is None or value == "":
        return default
    if isinstance(value, AccountModel):
        return value
    return AccountModel(str(value).strip().lower())


class WalletService:
    """Service for wallet operations."""

    def __init__(
        self,
        importer: CredentialImporter,
        registry: WalletRegistry,
        network: NetworkConfigResolver,
        recovery: LegacyMnemonicRecovery,
    ):
        self.importer = importer
        self.registry = registry
        self.network = network
        self.recovery = recovery
        self.logger = structlog.get_logger().bind(component="wallet_service")

    async def list_wallets(self, account_model: AccountModel | None = None) -> dict[str, Any]:
        models = [account_model] if account_model else list(AccountModel)
        wallets = {
            model.value: [record.summary() for record in await self.registry.list(model)]
            for model in models
        }
        network = await self.network.resolve()
        return {
            "success": True,
            "wallets": wallets,
            "current_address": await self.registry.store.get(WALLET_ADDRESS),
            "network": network.model_dump(mode="json"),
        }

    async def import_wallet(
        self, code: str, passphrase: str = "", account_model: AccountModel | None = None
    ) -> dict[str, Any]:
        record = await self.importer.import_credential(code, passphrase, account_model)
        network = await self.network.resolve(record.address)
        response = {
            "success": True,
            "message": f"{record.account_model.display_name} wallet imported",
            "wallet": record.summary(),
            "network": network.model_dump(mode="json"),
        }
        if record.warnings:
            response["warnings"] = record.warnings
        return response

    async def create_wallet(self, account_model: AccountModel, passphrase: str = "") -> dict[str, Any]:
        record = await self.importer.create(account_model, passphrase)
        return {
            "success": True,
            "message": f"{account_model.display_name} wallet created",
            "wallet": record.summary(),
            # Shown once so the user can write it down
            "mnemonic": record.serialized_secret,
        }

    async def find_wallet(
        self, address: str, account_model: AccountModel | None = None
    ) -> dict[str, Any]:
        if account_model:
            record = await self.registry.find_by_address(account_model, address)
        else:
            record = await self.registry.find_any(address)
        if record is None:
            return PoktWalletErrorResponse.wallet_not_found(
                account_model.value if account_model else "known", address
            )
        return {"success": True, "wallet": record.summary()}

    async def resolve_network(self, address: str = "") -> dict[str, Any]:
        network = await self.network.resolve(address or None)
        return {
            "success": True,
            "address": address or None,
            "network": network.model_dump(mode="json"),
            "label": f"{network.account_model.value} {network.label}",
        }

    async def switch_network(self, account_model: AccountModel, is_mainnet: bool) -> dict[str, Any]:
        network = await self.network.switch_network(account_model, is_mainnet)
        return {
            "success": True,
            "message": f"Switched to {account_model.display_name} {network.label}",
            "network": network.model_dump(mode="json"),
        }

    async def remove_wallet(self, account_model: AccountModel, address: str) -> dict[str, Any]:
        removed = await self.registry.remove(account_model, address)
        if not removed:
            return PoktWalletErrorResponse.wallet_not_found(account_model.value, address)
        return {"success": True, "message": f"Wallet {address} removed", "address": address}

    async def logout(self) -> dict[str, Any]:
        """Forget the active wallets and the saved network choice. Wallet lists stay."""
        await self.registry.clear_current()
        await self.network.clear()
        self.logger.info("Logged out")
        return {"success": True, "message": "Logged out"}

    async def get_private_key(
        self, account_model: AccountModel, address: str = ""
    ) -> dict[str, Any]:
        record = await self._record_or_current(account_model, address)
        if record is None:
            return PoktWalletErrorResponse.wallet_not_found(account_model.value, address or "current")
        return {
            "success": True,
            "address": record.address,
            "private_key": self.private_key_for(record),
        }

    @staticmethod
    def private_key_for(record: CredentialRecord) -> str:
        """Best available secret: plain key, then hex secret, then JSON wallet key, then raw text."""
        if record.private_key:
            return strip_hex_prefix(record.private_key)

        secret = record.serialized_secret.strip()
        expected = MORSE_HEX_LENGTH if record.account_model is AccountModel.MORSE else SHANNON_HEX_LENGTH
        bare = strip_hex_prefix(secret)
        if len(bare) == expected and classify(bare).kind is CredentialKind.HEX_PRIVATE_KEY:
            return bare

        classification = classify(secret)
        if classification.kind is CredentialKind.JSON_WALLET:
            priv = classification.payload[0].get("priv")
            if priv:
                return priv
        return secret

    async def recover_mnemonic(
        self,
        account_model: AccountModel,
        address: str = "",
        candidates: list[str] | None = None,
        confirm: bool = False,
    ) -> dict[str, Any]:
        record = await self._record_or_current(account_model, address)
        if record is None:
            return PoktWalletErrorResponse.wallet_not_found(account_model.value, address or "current")
        result = await self.recovery.recover(record, candidates or [], confirm)
        response: dict[str, Any] = {
            "success": True,
            "recovered": result.recovered,
            "message": result.message,
            "attempts": result.attempts,
        }
        if result.mnemonic:
            response["mnemonic"] = result.mnemonic
        return response

    async def _record_or_current(
        self, account_model: AccountModel, address: str
    ) -> CredentialRecord | None:
        if address:
            return await self.registry.find_by_address(account_model, address)
        return await self.registry.get_current(account_model)

    async def handle_action(self, action, **params) -> dict[str, Any]:
        """Unified action handler for all wallet operations."""
        if isinstance(action, str):
            try:
                action = WalletAction(action.lower().strip())
            except ValueError:
                return {
                    "success": False,
                    "error": f"Unknown action: {action}",
                    "valid_actions": [a.value for a in WalletAction],
                }

        handler = self._get_action_handlers().get(action)
        if handler is None:
            return {
                "success": False,
                "error": f"Unknown action: {action}",
                "valid_actions": [a.value for a in WalletAction],
            }

        try:
            return await handler(**params)
        except PoktWalletError as e:
            self.logger.warning("wallet action failed", action=action.value, error=str(e))
            return PoktWalletErrorResponse.from_exception(e, context={"action": action.value})
        except ValueError as e:
            return PoktWalletErrorResponse.validation_error("params", "", str(e))
        except Exception as e:
            self.logger.error("wallet service action error", action=action.value, error=str(e))
            return PoktWalletErrorResponse.generic_error(
                f"Service action failed: {e}", context={"action": action.value}
            )

    def _get_action_handlers(self) -> dict:
        """Get mapping of actions to handler methods."""
        return {
            WalletAction.LIST: self._handle_list_action,
            WalletAction.IMPORT: self._handle_import_action,
            WalletAction.CREATE: self._handle_create_action,
            WalletAction.FIND: self._handle_find_action,
            WalletAction.RESOLVE_NETWORK: self._handle_resolve_network_action,
            WalletAction.SWITCH_NETWORK: self._handle_switch_network_action,
            WalletAction.REMOVE: self._handle_remove_action,
            WalletAction.LOGOUT: self._handle_logout_action,
            WalletAction.PRIVATE_KEY: self._handle_private_key_action,
            WalletAction.RECOVER_MNEMONIC: self._handle_recover_action,
        }

    async def _handle_list_action(self, **params) -> dict[str, Any]:
        return await self.list_wallets(_account_model(params.get("account_model")))

    async def _handle_import_action(self, **params) -> dict[str, Any]:
        code = params.get("code", "")
        if not code.strip():
            return PoktWalletErrorResponse.validation_error("code", "", "code is required")
        return await self.import_wallet(
            code, params.get("passphrase", ""), _account_model(params.get("account_model"))
        )

    async def _handle_create_action(self, **params) -> dict[str, Any]:
        model = _account_model(params.get("account_model"), AccountModel.SHANNON)
        return await self.create_wallet(model, params.get("passphrase", ""))

    async def _handle_find_action(self, **params) -> dict[str, Any]:
        address = params.get("address", "")
        if not address:
            return PoktWalletErrorResponse.validation_error("address", "", "address is required")
        return await self.find_wallet(address, _account_model(params.get("account_model")))

    async def _handle_resolve_network_action(self, **params) -> dict[str, Any]:
        return await self.resolve_network(params.get("address", ""))

    async def _handle_switch_network_action(self, **params) -> dict[str, Any]:
        is_mainnet = params.get("is_mainnet")
        if is_mainnet is None:
            return PoktWalletErrorResponse.validation_error(
                "is_mainnet", "", "is_mainnet is required to switch networks"
            )
        model = _account_model(params.get("account_model"), AccountModel.SHANNON)
        return await self.switch_network(model, bool(is_mainnet))

    async def _handle_remove_action(self, **params) -> dict[str, Any]:
        address = params.get("address", "")
        model = _account_model(params.get("account_model"))
        if not address or model is None:
            return PoktWalletErrorResponse.validation_error(
                "address", address, "address and account_model are required"
            )
        return await self.remove_wallet(model, address)

    async def _handle_logout_action(self, **params) -> dict[str, Any]:
        return await self.logout()

    async def _handle_private_key_action(self, **params) -> dict[str, Any]:
        model = _account_model(params.get("account_model"), AccountModel.SHANNON)
        return await self.get_private_key(model, params.get("address", ""))

    async def _handle_recover_action(self, **params) -> dict[str, Any]:
        model = _account_model(params.get("account_model"), AccountModel.SHANNON)
        return await self.recover_mnemonic(
            model,
            params.get("address", ""),
            params.get("candidates") or [],
            bool(params.get("confirm", False)),
        )
