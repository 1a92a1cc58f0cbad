"""Centralized constants for the Pocket wallet MCP server."""

# Store keys (kept identical to the keys written by the original web wallet)
SHANNON_WALLET = "shannon_wallet"
SHANNON_WALLETS = "shannon_wallets"
MORSE_WALLET = "morse_wallet"
MORSE_WALLETS = "morse_wallets"
WALLET_ADDRESS = "walletAddress"
NETWORK_TYPE = "pokt_network_type"
IS_MAINNET = "isMainnet"
LAST_MIGRATION_RESULT = "last_migration_result"

# Account model tags as persisted under NETWORK_TYPE
MORSE = "morse"
SHANNON = "shannon"

# Address prefixes handed to the key deriver.
# Morse addresses are plain hex, so the prefix is empty.
MORSE_ADDRESS_PREFIX = ""
SHANNON_ADDRESS_PREFIX = "pokt"

# Secret sizes in bytes
MORSE_SECRET_SIZE = 64  # ed25519 seed + public key
SHANNON_SECRET_SIZE = 32  # secp256k1 scalar

# Hex lengths used by the classifier
MORSE_HEX_LENGTH = MORSE_SECRET_SIZE * 2
SHANNON_HEX_LENGTH = SHANNON_SECRET_SIZE * 2
MORSE_ADDRESS_HEX_LENGTH = 40

# Mnemonic sizes accepted on import
MNEMONIC_WORD_COUNTS = (12, 24)
DEFAULT_MNEMONIC_WORDS = 24

# HD derivation paths
MORSE_HD_PATH = "m/44'/635'/0'/0'/0'"
SHANNON_HD_PATH = "m/44'/118'/0'/0/0"

# Armored key (PPK) scrypt parameters
PPK_SCRYPT_N = 32768
PPK_SCRYPT_R = 8
PPK_SCRYPT_P = 1
PPK_KEY_LENGTH = 32
PPK_NONCE_LENGTH = 12

# Migration service defaults
DEFAULT_MIGRATION_URL = "http://localhost:3001/api/migration"
HEALTH_PATH = "/health"
MIGRATE_PATH = "/migrate"

# pocketd claim command
POCKETD_CLI = "pocketd"
POCKETD_DEFAULT_HOME = "./localnet/pocketd"
POCKETD_DEFAULT_KEYRING = "test"
MIGRATION_INPUT_FILE = "morse-migration-input.json"
MIGRATION_OUTPUT_FILE = "morse-migration-output.json"

# Network endpoint table
NETWORKS = {
    SHANNON: {
        "mainnet": {
            "name": "Shannon Mainnet",
            "rpc_urls": ["https://shannon-grove-rpc.mainnet.poktroll.com/"],
            "chain_id": "shannon-mainnet",
            "symbol": "POKT",
            "decimals": 6,
            "prefix": "pokt",
        },
        "testnet": {
            "name": "Shannon Testnet",
            "rpc_urls": ["https://shannon-testnet-grove-rpc.beta.poktroll.com"],
            "chain_id": "shannon-testnet",
            "symbol": "POKT",
            "decimals": 6,
            "prefix": "pokt",
        },
    },
    MORSE: {
        "mainnet": {
            "name": "Morse Mainnet",
            "rpc_urls": ["https://pokt-archival.rpc.grove.city/v1/440ae1fc"],
            "chain_id": "mainnet",
            "symbol": "POKT",
            "decimals": 6,
            "prefix": "pokt",
        },
        "testnet": {
            "name": "Morse Testnet",
            "rpc_urls": ["https://pokt-archival.rpc.grove.city/v1/440ae1fc"],
            "chain_id": "mainnet",
            "symbol": "POKT",
            "decimals": 6,
            "prefix": "pokt",
        },
    },
}

# Date/Time Formats
ISO_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
