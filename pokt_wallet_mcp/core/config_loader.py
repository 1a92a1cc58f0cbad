"""Configuration management for the Pocket wallet MCP server."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from ..constants import DEFAULT_MIGRATION_URL, HEALTH_PATH, MIGRATE_PATH, NETWORKS

logger = structlog.get_logger()


class NetworkEndpoint(BaseModel):
    """Connection details for one sub-network of an account model."""

    name: str
    rpc_urls: list[str] = Field(default_factory=list)
    chain_id: str
    symbol: str = "POKT"
    decimals: int = 6
    prefix: str = "pokt"


def _default_networks() -> dict[str, dict[str, NetworkEndpoint]]:
    return {
        model: {label: NetworkEndpoint(**endpoint) for label, endpoint in sub_networks.items()}
        for model, sub_networks in NETWORKS.items()
    }


class MigrationServiceConfig(BaseModel):
    """Remote migration service location."""

    base_url: str = DEFAULT_MIGRATION_URL
    health_path: str = HEALTH_PATH
    migrate_path: str = MIGRATE_PATH


class StorageConfig(BaseModel):
    """Wallet store backend."""

    backend: Literal["sqlite", "memory"] = "sqlite"
    path: str | None = None  # Defaults to <data dir>/wallets.db


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1", alias="FASTMCP_HOST")
    port: int = Field(default=8000, alias="FASTMCP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {"populate_by_name": True}


class PoktWalletConfig(BaseSettings):
    """Main configuration for the Pocket wallet MCP server."""

    migration: MigrationServiceConfig = Field(default_factory=MigrationServiceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    networks: dict[str, dict[str, NetworkEndpoint]] = Field(default_factory=_default_networks)
    default_is_mainnet: bool = False
    allow_legacy_recovery: bool = False
    config_file: str = Field(default="config/pokt-wallet.yml", alias="POKT_WALLET_CONFIG")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def network_endpoint(self, account_model: str, is_mainnet: bool) -> NetworkEndpoint:
        """Look up the endpoint for a model and sub-network."""
        label = "mainnet" if is_mainnet else "testnet"
        try:
            return self.networks[account_model][label]
        except KeyError as e:
            raise ValueError(f"No {label} endpoint configured for '{account_model}'") from e


def load_config(config_path: str | None = None) -> PoktWalletConfig:
    """Load configuration from multiple sources (synchronous interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration

    Note:
        For async code, use load_config_async() instead.
    """
    try:
        asyncio.get_running_loop()
        raise RuntimeError(
            "load_config() cannot be called from within an async context. "
            "Use 'await load_config_async()' instead."
        )
    except RuntimeError as e:
        if "no running event loop" in str(e).lower():
            return asyncio.run(load_config_async(config_path))
        raise


async def load_config_async(config_path: str | None = None) -> PoktWalletConfig:
    """Load configuration from multiple sources (async interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration
    """
    load_dotenv()

    config = PoktWalletConfig()

    user_config_path = Path.home() / ".config" / "pokt-wallet-mcp" / "config.yml"
    await _load_config_file(config, user_config_path)

    from ..server import get_config_dir  # Import at use to avoid circular imports

    default_config_file = os.getenv(
        "POKT_WALLET_CONFIG", str(get_config_dir() / "pokt-wallet.yml")
    )
    project_config_path = Path(config_path or default_config_file)
    await _load_config_file(config, project_config_path)

    config.config_file = str(project_config_path)

    # Environment variables have the highest priority
    _apply_env_overrides(config)

    return config


async def _load_config_file(config: PoktWalletConfig, config_path: Path) -> None:
    """Load and apply configuration from a YAML file."""
    if not config_path.exists():
        return

    yaml_config = await _load_yaml_config(config_path)
    _apply_section(config.migration, yaml_config.get("migration"))
    _apply_section(config.storage, yaml_config.get("storage"))
    _apply_section(config.server, yaml_config.get("server"))
    _apply_networks(config, yaml_config.get("networks"))

    for flag in ("default_is_mainnet", "allow_legacy_recovery"):
        if flag in yaml_config:
            setattr(config, flag, bool(yaml_config[flag]))


def _apply_section(section: BaseModel, values: Any) -> None:
    """Copy known keys from a YAML mapping onto a nested config model."""
    if not isinstance(values, dict):
        return
    for key, value in values.items():
        if hasattr(section, key):
            setattr(section, key, value)
        else:
            logger.warning("Ignoring unknown configuration key", key=key)


def _apply_networks(config: PoktWalletConfig, networks: Any) -> None:
    """Merge network endpoint overrides into the defaults."""
    if not isinstance(networks, dict):
        return
    for model, sub_networks in networks.items():
        if not isinstance(sub_networks, dict):
            continue
        merged = config.networks.setdefault(model, {})
        for label, endpoint in sub_networks.items():
            base = merged[label].model_dump() if label in merged else {}
            base.update(endpoint or {})
            merged[label] = NetworkEndpoint(**base)


def _apply_env_overrides(config: PoktWalletConfig) -> None:
    """Apply environment variable overrides."""
    if url := os.getenv("MIGRATION_SERVICE_URL"):
        config.migration.base_url = url
    if backend := os.getenv("POKT_STORE_BACKEND"):
        if backend not in ("sqlite", "memory"):
            raise ValueError(f"Unsupported POKT_STORE_BACKEND '{backend}'")
        config.storage.backend = backend  # type: ignore[assignment]
    if store_path := os.getenv("POKT_STORE_PATH"):
        config.storage.path = store_path
    if os.getenv("FASTMCP_HOST"):
        config.server.host = os.getenv("FASTMCP_HOST", config.server.host)
    if port_env := os.getenv("FASTMCP_PORT"):
        config.server.port = int(port_env)
    if os.getenv("LOG_LEVEL"):
        config.server.log_level = os.getenv("LOG_LEVEL", config.server.log_level)


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)

        content = _expand_yaml_config(content)

        loaded = yaml.safe_load(content)
        if not isinstance(loaded, dict):
            return {}
        return loaded
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def _expand_yaml_config(content: str) -> str:
    """Expand ${VAR} references, but only for allowlisted variables."""
    allowed_env_vars = {
        "HOME",
        "USER",
        "XDG_CONFIG_HOME",
        "XDG_DATA_HOME",
        "POKT_WALLET_CONFIG",
        "POKT_WALLET_DATA_DIR",
        "POKT_STORE_PATH",
        "MIGRATION_SERVICE_URL",
        "FASTMCP_HOST",
        "FASTMCP_PORT",
        "LOG_LEVEL",
    }

    def replace_var(match: re.Match) -> str:
        var_name = match.group(1)
        if var_name in allowed_env_vars:
            return os.getenv(var_name, match.group(0))
        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
        )
        return match.group(0)

    return re.sub(r"\$\{([^}]+)\}", replace_var, content)
