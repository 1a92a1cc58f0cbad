"""
FastMCP Pocket Wallet Server

An MCP server that imports and stores Pocket Network credentials for the
Morse and Shannon account models and guides Morse to Shannon migrations
through a remote migration service.
"""

import argparse
import asyncio
import os
import sys
import tempfile
from pathlib import Path
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field, ValidationError

from .core.config_loader import PoktWalletConfig, load_config
from .core.key_deriver import KeyDeriver, PocketKeyDeriver
from .core.importer import CredentialImporter
from .core.logging_config import get_server_logger
from .core.migration.client import MigrationServiceClient
from .core.migration.history import MigrationHistory
from .core.network_config import NetworkConfigResolver
from .core.recovery import LegacyMnemonicRecovery
from .core.registry import WalletRegistry
from .core.store import MemoryStore, SqliteStore, Store
from .models.enums import MigrationAction, WalletAction
from .models.params import PoktMigrationParams, PoktWalletsParams
from .services import MigrationService, WalletService


def _first_writable_dir(candidates: list[Path]) -> Path | None:
    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            test_file = candidate / ".write_test"
            test_file.touch()
            test_file.unlink()
            return candidate
        except (OSError, PermissionError, FileNotFoundError):
            continue
    return None


def get_data_dir() -> Path:
    """Get data directory for the wallet store and logs.

    Priority order:
    1. POKT_WALLET_DATA_DIR (application-specific)
    2. XDG_DATA_HOME (Linux/Unix standard)
    3. User home fallback (~/.pokt-wallet-mcp/data)
    4. System temp fallback
    """
    candidates = [
        Path(p) for p in (os.getenv("POKT_WALLET_DATA_DIR"),) if p
    ]
    if xdg_path := os.getenv("XDG_DATA_HOME"):
        candidates.append(Path(xdg_path) / "pokt-wallet-mcp")
    candidates += [
        Path.home() / ".pokt-wallet-mcp" / "data",
        Path(tempfile.gettempdir())
        / "pokt-wallet-mcp"
        / str(os.getuid() if hasattr(os, "getuid") else "user"),
    ]

    # If all else fails, return the primary fallback and let the store report the error
    return _first_writable_dir(candidates) or Path.home() / ".pokt-wallet-mcp" / "data"


def get_config_dir() -> Path:
    """Get config directory.

    Priority order:
    1. POKT_WALLET_CONFIG_DIR (application-specific)
    2. XDG_CONFIG_HOME (Linux/Unix standard)
    3. Local project config (./config)
    """
    if env_dir := os.getenv("POKT_WALLET_CONFIG_DIR"):
        path = Path(env_dir)
        return path if path.is_absolute() else Path.cwd() / path
    if xdg_home := os.getenv("XDG_CONFIG_HOME"):
        return Path(xdg_home) / "pokt-wallet-mcp"
    return Path.cwd() / "config"


def build_store(config: PoktWalletConfig) -> Store:
    """Create the configured store backend."""
    if config.storage.backend == "memory":
        return MemoryStore()
    return SqliteStore(Path(config.storage.path) if config.storage.path else get_data_dir() / "wallets.db")


class PoktWalletServer:
    """FastMCP server exposing the wallet and migration tools."""

    def __init__(
        self,
        config: PoktWalletConfig,
        store: Store | None = None,
        deriver: KeyDeriver | None = None,
        client: MigrationServiceClient | None = None,
    ):
        self.config = config
        self.logger = get_server_logger()

        self.store = store or build_store(config)
        self.deriver = deriver or PocketKeyDeriver()
        self.registry = WalletRegistry(self.store)
        self.network = NetworkConfigResolver(
            self.store, self.registry, default_is_mainnet=config.default_is_mainnet
        )
        self.importer = CredentialImporter(self.deriver, self.registry, self.network)
        self.history = MigrationHistory(self.store)
        self.client = client or MigrationServiceClient(config.migration)
        self.recovery = LegacyMnemonicRecovery(self.deriver, enabled=config.allow_legacy_recovery)

        self.wallet_service = WalletService(self.importer, self.registry, self.network, self.recovery)
        self.migration_service = MigrationService(
            self.importer, self.registry, self.network, self.client, self.history
        )

        # FastMCP app will be created later to prevent auto-start
        self.app: FastMCP | None = None

        self.logger.info(
            "Pocket Wallet MCP Server initialized",
            store_backend=type(self.store).__name__,
            migration_service=config.migration.base_url,
            default_is_mainnet=config.default_is_mainnet,
            legacy_recovery=config.allow_legacy_recovery,
        )

    async def initialize(self) -> None:
        """Open the persistent store."""
        if isinstance(self.store, SqliteStore):
            await self.store.initialize()

    def _initialize_app(self) -> None:
        """Initialize FastMCP app and register tools."""
        self.app = FastMCP("Pocket Wallet Manager")

        self.app.tool(
            self.pokt_wallets,
            annotations={
                "title": "Pocket Wallet Management",
                "readOnlyHint": False,  # list/find/resolve read, import/create/remove write
                "destructiveHint": True,  # remove and logout delete stored data
                "idempotentHint": False,
                "openWorldHint": False,  # Local store only
            },
        )
        self.app.tool(
            self.pokt_migration,
            annotations={
                "title": "Morse to Shannon Migration",
                "readOnlyHint": False,
                "destructiveHint": False,
                "idempotentHint": False,
                "openWorldHint": True,  # Calls the remote migration service
            },
        )

    async def pokt_wallets(
        self,
        action: Annotated[
            str | WalletAction | None,
            Field(default=None, description="Action to perform (defaults to list if not provided)"),
        ] = None,
        account_model: Annotated[
            str, Field(default="", description="Account model: morse or shannon")
        ] = "",
        code: Annotated[
            str,
            Field(default="", description="Mnemonic, hex private key, JSON wallet or key file"),
        ] = "",
        passphrase: Annotated[str, Field(default="", description="Key file passphrase")] = "",
        address: Annotated[str, Field(default="", description="Wallet address")] = "",
        is_mainnet: Annotated[
            bool | None, Field(default=None, description="Target sub-network")
        ] = None,
        candidates: Annotated[
            list[str] | None,
            Field(default=None, description="Passphrases to try during legacy recovery"),
        ] = None,
        confirm: Annotated[
            bool, Field(default=False, description="Confirm legacy passphrase recovery")
        ] = False,
    ) -> dict[str, Any]:
        """Pocket wallet management tool.

        Actions:
        • list: List stored wallets of both models (or one with account_model)
        • import: Import a credential of any supported format
          - Required: code
          - Optional: passphrase, account_model (inferred from the input when omitted)
        • create: Create a new 24 word wallet
          - Optional: account_model (default: shannon)
        • find: Look up a wallet by address
          - Required: address
        • resolve_network: Resolve account model and mainnet/testnet for an address
        • switch_network: Save an explicit network choice
          - Required: is_mainnet; Optional: account_model (default: shannon)
        • remove: Remove a stored wallet
          - Required: account_model, address
        • logout: Forget the active wallets and network choice
        • private_key: Show the stored key of a wallet (current wallet when no address)
        • recover_mnemonic: Recover a wallet's mnemonic
          - Guessing key file passphrases requires confirm=true and legacy recovery enabled
        """
        try:
            params = PoktWalletsParams(
                action=action if action is not None else WalletAction.LIST,
                account_model=account_model or None,
                code=code,
                passphrase=passphrase,
                address=address,
                is_mainnet=is_mainnet,
                candidates=candidates or [],
                confirm=confirm,
            )
        except ValidationError as e:
            return {
                "success": False,
                "error": f"Parameter validation failed: {str(e)}",
                "action": str(action) if action else "unknown",
            }

        return await self.wallet_service.handle_action(
            params.action, **params.model_dump(exclude={"action"})
        )

    async def pokt_migration(
        self,
        action: Annotated[
            str | MigrationAction | None,
            Field(default=None, description="Action to perform (defaults to status)"),
        ] = None,
        session_id: Annotated[
            str, Field(default="", description="Migration session identifier")
        ] = "",
        code: Annotated[str, Field(default="", description="Morse credential to migrate")] = "",
        passphrase: Annotated[str, Field(default="", description="Credential passphrase")] = "",
        destination_code: Annotated[
            str, Field(default="", description="Existing Shannon credential to receive the account")
        ] = "",
        morse_private_keys: Annotated[
            list[str] | None,
            Field(default=None, description="Morse keys for manual claim instructions"),
        ] = None,
        signing_account: Annotated[
            str, Field(default="", description="Shannon signing account for pocketd")
        ] = "",
        unsafe: Annotated[bool, Field(default=False, description="Add --unsafe")] = False,
        unarmored_json: Annotated[
            bool, Field(default=False, description="Add --unarmored-json")
        ] = False,
        result_content: Annotated[
            str, Field(default="", description="Content of a pocketd output file")
        ] = "",
        morse_address: Annotated[
            str, Field(default="", description="Morse address to check in history")
        ] = "",
    ) -> dict[str, Any]:
        """Morse to Shannon migration tool.

        Wizard actions (in order, each needs session_id except start):
        • start: Open a migration session
        • import_source: Import the Morse credential (code, passphrase)
        • provision_destination: Reuse or create the Shannon wallet
          - Optional: destination_code to import a specific Shannon credential
        • confirm: Check the migration service and submit the claim
        • status / reset / close: Inspect, restart or discard the session

        Other actions:
        • instructions: Manual pocketd claim-accounts instructions
          - Required: morse_private_keys, signing_account
        • history: Last migration result (optionally check morse_address)
        • process_result: Store a pocketd output file (result_content)
        """
        try:
            params = PoktMigrationParams(
                action=action if action is not None else MigrationAction.STATUS,
                session_id=session_id,
                code=code,
                passphrase=passphrase,
                destination_code=destination_code,
                morse_private_keys=morse_private_keys or [],
                signing_account=signing_account,
                unsafe=unsafe,
                unarmored_json=unarmored_json,
                result_content=result_content,
                morse_address=morse_address,
            )
        except ValidationError as e:
            return {
                "success": False,
                "error": f"Parameter validation failed: {str(e)}",
                "action": str(action) if action else "unknown",
            }

        return await self.migration_service.handle_action(
            params.action, **params.model_dump(exclude={"action"})
        )

    def run(self) -> None:
        """Run the FastMCP server."""
        try:
            self._initialize_app()

            self.logger.info(
                "Starting Pocket Wallet MCP Server",
                host=self.config.server.host,
                port=self.config.server.port,
            )

            if self.app is None:
                raise RuntimeError("FastMCP app not initialized")
            self.app.run(
                transport="http",
                host=self.config.server.host,
                port=self.config.server.port,
            )

        except Exception as e:
            self.logger.error("Server startup failed", error=str(e))
            raise


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    from dotenv import load_dotenv

    load_dotenv()

    default_host = os.getenv("FASTMCP_HOST", "127.0.0.1")
    default_port = int(os.getenv("FASTMCP_PORT", "8000"))
    default_log_level = os.getenv("LOG_LEVEL", "INFO")
    default_config = os.getenv("POKT_WALLET_CONFIG", str(get_config_dir() / "pokt-wallet.yml"))

    parser = argparse.ArgumentParser(description="FastMCP Pocket Wallet Manager")
    parser.add_argument("--host", default=default_host, help="Server host")
    parser.add_argument("--port", type=int, default=default_port, help="Server port")
    parser.add_argument("--config", default=default_config, help="Configuration file path")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--validate-config", action="store_true", help="Validate configuration and exit"
    )

    return parser.parse_args(argv)


def main() -> None:
    """Main entry point."""
    args = parse_args()

    log_dir = _setup_log_directory()
    logger = _setup_logging_system(args, log_dir)

    config = _load_and_configure(args, logger)
    if config is None:  # Validation-only mode
        return

    server = PoktWalletServer(config)
    _run_server(server, logger)


def _setup_log_directory() -> str | None:
    """Setup log directory with fallback options."""
    candidates = [Path(p) for p in (os.getenv("LOG_DIR"),) if p]
    candidates += [
        get_data_dir() / "logs",
        Path(tempfile.gettempdir()) / "pokt-wallet-mcp-logs",
    ]
    log_dir = _first_writable_dir(candidates)
    if log_dir is None:
        print("Warning: Unable to create log directory, using console-only logging")
        return None
    return str(log_dir)


def _setup_logging_system(args, log_dir: str | None):
    """Setup logging system."""
    from .core.logging_config import setup_logging

    try:
        max_file_size_mb = int(os.getenv("LOG_FILE_SIZE_MB", "10"))
        if max_file_size_mb < 1 or max_file_size_mb > 100:
            max_file_size_mb = 10  # Reset to default if out of range
    except ValueError:
        max_file_size_mb = 10

    setup_logging(
        log_dir=log_dir or tempfile.gettempdir(),
        log_level=args.log_level,
        max_file_size_mb=max_file_size_mb,
    )
    return get_server_logger()


def _load_and_configure(args, logger) -> PoktWalletConfig | None:
    """Load configuration, returning None for validation-only mode."""
    config = load_config(args.config)

    # Override server config from CLI args
    config.server.host = args.host
    config.server.port = args.port
    config.server.log_level = args.log_level

    if args.validate_config:
        logger.info(
            "Configuration validation successful",
            config_file=config.config_file,
            store_backend=config.storage.backend,
            migration_service=config.migration.base_url,
        )
        return None

    return config


def _run_server(server: PoktWalletServer, logger) -> None:
    """Open the store, then run the server with error handling."""
    try:
        asyncio.run(server.initialize())
        server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
