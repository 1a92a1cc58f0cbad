"""Legacy mnemonic recovery.

Older wallets kept only an encrypted key file and no record of the
passphrase. Recovery tries a fixed list of common passphrases against the
file. Guessing passphrases weakens the protection the file offers, so it
runs only when enabled in configuration and confirmed by the caller.
"""

from dataclasses import dataclass

import structlog

from ..models.credential import CredentialRecord, SecretOrigin
from .classifier import CredentialKind, classify
from .exceptions import DerivationError
from .key_deriver import KeyDeriver

logger = structlog.get_logger()

COMMON_PASSPHRASES = (
    "",
    "password",
    "Password",
    "password123",
    "123456",
    "12345678",
    "pocket",
    "Pocket",
    "pokt",
    "POKT",
    "pocketnetwork",
    "morse",
    "shannon",
    "wallet",
)


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of a recovery attempt. message is always user readable."""

    recovered: bool
    message: str
    mnemonic: str | None = None
    attempts: int = 0


class LegacyMnemonicRecovery:
    """Best-effort recovery of a wallet's mnemonic. Never raises."""

    def __init__(self, deriver: KeyDeriver, enabled: bool = False):
        self.deriver = deriver
        self.enabled = enabled
        self.logger = logger.bind(component="legacy_recovery")

    async def recover(
        self,
        record: CredentialRecord,
        candidates: list[str] | None = None,
        confirm: bool = False,
    ) -> RecoveryResult:
        classification = classify(record.serialized_secret)

        if classification.kind is CredentialKind.MNEMONIC:
            return RecoveryResult(
                recovered=True,
                message=f"Mnemonic found for {record.address}",
                mnemonic=" ".join(classification.payload),
            )

        if record.secret_origin is SecretOrigin.IMPORTED_PRIVATE_KEY:
            return RecoveryResult(
                recovered=False,
                message=(
                    f"No mnemonic found for {record.address}: the wallet was imported from a "
                    "private key, which cannot be turned back into a recovery phrase."
                ),
            )

        if classification.kind is not CredentialKind.PPK:
            return RecoveryResult(
                recovered=False,
                message=(
                    f"No mnemonic found for {record.address}: the wallet was imported from a "
                    "JSON wallet file that never contained a recovery phrase."
                ),
            )

        if not self.enabled:
            return RecoveryResult(
                recovered=False,
                message="No mnemonic found: legacy recovery is disabled in configuration.",
            )
        if not confirm:
            return RecoveryResult(
                recovered=False,
                message=(
                    "No mnemonic found: legacy recovery guesses common passphrases and "
                    "must be confirmed explicitly."
                ),
            )

        return await self._guess_passphrase(record, classification.payload, candidates or [])

    async def _guess_passphrase(
        self, record: CredentialRecord, container: dict, candidates: list[str]
    ) -> RecoveryResult:
        ordered = list(dict.fromkeys([*candidates, *COMMON_PASSPHRASES]))
        self.logger.warning(
            "Legacy passphrase recovery started", address=record.address, candidates=len(ordered)
        )
        for attempt, passphrase in enumerate(ordered, start=1):
            try:
                await self.deriver.unlock_container(container, passphrase)
            except (DerivationError, ValueError):
                continue
            self.logger.info("Legacy passphrase recovered", address=record.address, attempts=attempt)
            return RecoveryResult(
                recovered=False,
                message=(
                    f"No mnemonic found for {record.address}. The key file opens with passphrase "
                    f"'{passphrase}', but it holds a private key rather than a recovery phrase."
                ),
                attempts=attempt,
            )

        return RecoveryResult(
            recovered=False,
            message=(
                f"No mnemonic found for {record.address}: none of the {len(ordered)} "
                "passphrases tried opens the key file."
            ),
            attempts=len(ordered),
        )
