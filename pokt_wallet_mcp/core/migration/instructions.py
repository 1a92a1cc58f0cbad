"""Manual claim instructions for users running ``pocketd`` themselves."""

import json
import time
from dataclasses import dataclass, field

import structlog

from ...constants import (
    MIGRATION_INPUT_FILE,
    MIGRATION_OUTPUT_FILE,
    POCKETD_CLI,
    POCKETD_DEFAULT_HOME,
    POCKETD_DEFAULT_KEYRING,
)

logger = structlog.get_logger()

POCKETD_INSTALL_COMMAND = (
    "curl -sSL https://raw.githubusercontent.com/pokt-network/poktroll/main/tools/scripts/"
    "pocketd-install.sh | bash -s -- --tag v0.1.12-dev1 --upgrade"
)


@dataclass
class InstructionOptions:
    unsafe: bool = False
    unarmored_json: bool = False
    home: str = POCKETD_DEFAULT_HOME
    keyring_backend: str = POCKETD_DEFAULT_KEYRING


@dataclass
class MigrationInstructions:
    input_data: str
    command: str
    instructions: list[str] = field(default_factory=list)
    download_file_name: str = ""


def build_claim_command(signing_account: str, options: InstructionOptions) -> str:
    parts = [
        POCKETD_CLI,
        "tx",
        "migration",
        "claim-accounts",
        "--input-file",
        MIGRATION_INPUT_FILE,
        "--output-file",
        MIGRATION_OUTPUT_FILE,
        "--from",
        signing_account,
        "--home",
        options.home,
        "--keyring-backend",
        options.keyring_backend,
    ]
    if options.unsafe:
        parts.append("--unsafe")
    if options.unarmored_json:
        parts.append("--unarmored-json")
    return " ".join(parts)


def generate_migration_instructions(
    morse_private_keys: list[str],
    signing_account: str,
    options: InstructionOptions | None = None,
) -> MigrationInstructions:
    """Build the input file, command and step list for a manual claim."""
    if not morse_private_keys:
        raise ValueError("At least one Morse private key is required")
    if not signing_account.strip():
        raise ValueError("A Shannon signing account is required")

    options = options or InstructionOptions()
    command = build_claim_command(signing_account.strip(), options)
    steps = [
        "Manual migration instructions",
        "",
        "1. Install the pocketd CLI:",
        f"   {POCKETD_INSTALL_COMMAND}",
        "",
        "2. Verify the installation:",
        f"   {POCKETD_CLI} version",
        "",
        f"3. Save the input data below as {MIGRATION_INPUT_FILE} in your working directory.",
        "",
        "4. Run the migration:",
        f"   {command}",
        "",
        f"5. Check {MIGRATION_OUTPUT_FILE}; every mapping without an error was claimed.",
        "",
        "6. Optionally upload the output file with the process_result action.",
    ]

    logger.info(
        "Generated manual migration instructions",
        accounts=len(morse_private_keys),
        unsafe=options.unsafe,
        unarmored_json=options.unarmored_json,
    )
    return MigrationInstructions(
        input_data=json.dumps(morse_private_keys, indent=2),
        command=command,
        instructions=steps,
        download_file_name=f"morse-migration-input-{int(time.time() * 1000)}.json",
    )
