"""Enum definitions for the Pocket wallet tools."""

from enum import Enum


class WalletAction(Enum):
    """Actions for the pokt_wallets tool."""

    LIST = "list"
    IMPORT = "import"
    CREATE = "create"
    FIND = "find"
    RESOLVE_NETWORK = "resolve_network"
    SWITCH_NETWORK = "switch_network"
    REMOVE = "remove"
    LOGOUT = "logout"
    PRIVATE_KEY = "private_key"
    RECOVER_MNEMONIC = "recover_mnemonic"


class MigrationAction(Enum):
    """Actions for the pokt_migration tool."""

    START = "start"
    IMPORT_SOURCE = "import_source"
    PROVISION_DESTINATION = "provision_destination"
    CONFIRM = "confirm"
    STATUS = "status"
    RESET = "reset"
    CLOSE = "close"
    INSTRUCTIONS = "instructions"
    HISTORY = "history"
    PROCESS_RESULT = "process_result"
