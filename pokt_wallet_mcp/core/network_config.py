"""Network configuration resolution.

All reads and writes of the persisted account model / sub-network choice
go through NetworkConfigResolver so the precedence rules live in one place.
"""

import structlog

from ..constants import IS_MAINNET, NETWORK_TYPE
from ..models.credential import AccountModel, NetworkConfig
from .registry import WalletRegistry
from .store import Store

logger = structlog.get_logger()


def _coerce_bool(value) -> bool | None:
    """Stored flags may be booleans or the strings written by older clients."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def _coerce_model(value) -> AccountModel | None:
    try:
        return AccountModel(value)
    except ValueError:
        return None


def _network(account_model: AccountModel, is_mainnet: bool, explicit: bool = False) -> NetworkConfig:
    """Morse only exists on testnet; a saved mainnet flag applies to Shannon alone."""
    if account_model is AccountModel.MORSE:
        is_mainnet = False
    return NetworkConfig(account_model=account_model, is_mainnet=is_mainnet, explicit=explicit)


class NetworkConfigResolver:
    """Decides which account model and sub-network an address belongs to.

    Precedence, strictly in order:
      1. A Morse record for the address: always Morse on testnet.
      2. A saved isMainnet value, paired with the saved model (Shannon if unset);
         a saved Morse model is still testnet.
      3. Shannon with the configured default (testnet unless configured otherwise).

    Address prefixes are never consulted once a choice has been saved.
    """

    def __init__(self, store: Store, registry: WalletRegistry, default_is_mainnet: bool = False):
        self.store = store
        self.registry = registry
        self.default_is_mainnet = default_is_mainnet
        self.logger = logger.bind(component="network_config")

    async def resolve(self, address: str | None = None) -> NetworkConfig:
        if address and await self.registry.find_by_address(AccountModel.MORSE, address):
            return NetworkConfig(account_model=AccountModel.MORSE, is_mainnet=False)

        saved = _coerce_bool(await self.store.get(IS_MAINNET))
        if saved is not None:
            model = _coerce_model(await self.store.get(NETWORK_TYPE)) or AccountModel.SHANNON
            return _network(model, saved, explicit=True)

        return NetworkConfig(account_model=AccountModel.SHANNON, is_mainnet=self.default_is_mainnet)

    def current(self) -> NetworkConfig:
        """Synchronous view of the saved choice, used at construction time."""
        saved = _coerce_bool(self.store.get_sync(IS_MAINNET))
        model = _coerce_model(self.store.get_sync(NETWORK_TYPE)) or AccountModel.SHANNON
        if saved is None:
            return _network(model, self.default_is_mainnet)
        return _network(model, saved, explicit=True)

    async def has_explicit_choice(self) -> bool:
        return _coerce_bool(await self.store.get(IS_MAINNET)) is not None

    async def switch_network(self, account_model: AccountModel, is_mainnet: bool) -> NetworkConfig:
        """Persist an explicit user choice. The only writer allowed to overwrite one."""
        await self.store.set(NETWORK_TYPE, account_model.value)
        await self.store.set(IS_MAINNET, is_mainnet)
        self.logger.info(
            "Network switched", account_model=account_model.value, is_mainnet=is_mainnet
        )
        return _network(account_model, is_mainnet, explicit=True)

    async def record_import(self, account_model: AccountModel) -> NetworkConfig:
        """Make the imported model active; isMainnet is written only when none is saved."""
        await self.store.set(NETWORK_TYPE, account_model.value)

        saved = _coerce_bool(await self.store.get(IS_MAINNET))
        if saved is not None:
            self.logger.debug(
                "Keeping saved network choice",
                account_model=account_model.value,
                is_mainnet=saved,
            )
            return _network(account_model, saved, explicit=True)

        is_mainnet = False if account_model is AccountModel.MORSE else self.default_is_mainnet
        await self.store.set(IS_MAINNET, is_mainnet)
        self.logger.info(
            "Network recorded from import",
            account_model=account_model.value,
            is_mainnet=is_mainnet,
        )
        return _network(account_model, is_mainnet, explicit=True)

    async def clear(self) -> None:
        await self.store.remove(NETWORK_TYPE)
        await self.store.remove(IS_MAINNET)
