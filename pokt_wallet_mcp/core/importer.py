"""Credential import and wallet creation.

Every successful import is written to the registry, becomes the current
wallet of its model, and updates the saved network choice only when none
exists yet.
"""

import json
from typing import Any

import structlog

from ..constants import DEFAULT_MNEMONIC_WORDS, MNEMONIC_WORD_COUNTS
from ..models.credential import AccountModel, CredentialRecord, SecretOrigin
from .classifier import Classification, CredentialKind, classify, looks_like_words
from .exceptions import ClassificationUnrecognized, CredentialImportError, DerivationError
from .key_deriver import KeyDeriver
from .network_config import NetworkConfigResolver
from .registry import WalletRegistry

logger = structlog.get_logger()


def word_count_message(count: int) -> str:
    return (
        "Mnemonic phrase must have exactly 12 or 24 words. "
        f"Currently has {count} words."
    )


def fit_hex_key(hex_key: str, size: int) -> tuple[str, str | None]:
    """Force a hex key to exactly size bytes.

    Short keys are padded on the right with zero bytes, long keys keep their
    leading bytes. This is lossy; the returned warning must reach the caller.

    Returns:
        Tuple of (fitted hex, warning or None when no change was needed)
    """
    expected = size * 2
    if len(hex_key) == expected:
        return hex_key, None
    if len(hex_key) < expected:
        fitted = hex_key.ljust(expected, "0")
        action = f"padded with {expected - len(hex_key)} zero hex digits"
    else:
        fitted = hex_key[:expected]
        action = f"truncated to its first {size} bytes"
    warning = (
        f"Private key was {len(hex_key) // 2} bytes, expected {size}; it was {action}. "
        "The resulting address may not match the original account."
    )
    return fitted, warning


class CredentialImporter:
    """Turns classified credential text into stored wallet records."""

    def __init__(
        self,
        deriver: KeyDeriver,
        registry: WalletRegistry,
        network: NetworkConfigResolver,
    ):
        self.deriver = deriver
        self.registry = registry
        self.network = network
        self.logger = logger.bind(component="importer")

    async def import_credential(
        self,
        code: str,
        passphrase: str = "",
        account_model: AccountModel | None = None,
    ) -> CredentialRecord:
        """Classify code, derive its address and store it.

        Args:
            code: Mnemonic, hex private key, JSON wallet or encrypted key file
            passphrase: Passphrase for encrypted key files
            account_model: Target model; inferred from the input when omitted

        Returns:
            The stored record (the existing one when the address was already imported)

        Raises:
            CredentialImportError: If the input is unrecognized or cannot be derived
        """
        classification = classify(code)
        if not classification.recognized:
            message = self._unrecognized_message(code)
            raise CredentialImportError(message) from ClassificationUnrecognized(message)

        target = account_model or classification.account_model or AccountModel.SHANNON
        self.logger.info(
            "Importing credential",
            kind=classification.kind.value,
            account_model=target.value,
        )

        if classification.kind in (CredentialKind.PPK, CredentialKind.JSON_WALLET):
            if target is not AccountModel.MORSE:
                raise CredentialImportError(
                    f"A {classification.kind.value.replace('_', ' ')} holds a Morse account "
                    f"and cannot be imported as a {target.display_name} wallet"
                )

        handlers = {
            CredentialKind.PPK: self._import_ppk,
            CredentialKind.JSON_WALLET: self._import_json_wallets,
            CredentialKind.HEX_PRIVATE_KEY: self._import_hex,
            CredentialKind.MNEMONIC: self._import_mnemonic,
        }
        records = await handlers[classification.kind](classification, code, passphrase, target)

        stored = [await self.registry.upsert(target, record) for record in records]
        result = stored[0]
        # Warnings describe this import even when the address was already registered
        if records[0].warnings and not result.warnings:
            result = result.model_copy(update={"warnings": records[0].warnings})
        await self.registry.set_current(result)
        await self.network.record_import(target)

        self.logger.info(
            "Credential imported",
            account_model=target.value,
            address=result.address,
            imported=len(records),
            reused=result.id != records[0].id,
        )
        return result

    async def create(self, account_model: AccountModel, passphrase: str = "") -> CredentialRecord:
        """Generate a new 24 word wallet for account_model and store it."""
        words = self.deriver.generate_mnemonic(DEFAULT_MNEMONIC_WORDS)
        derived = await self._derive(self.deriver.from_mnemonic(words, account_model.address_prefix))
        record = CredentialRecord.create(
            account_model,
            derived.address,
            words,
            SecretOrigin.GENERATED_FROM_MNEMONIC,
            public_key=derived.public_key,
        )
        stored = await self.registry.upsert(account_model, record)
        await self.registry.set_current(stored)
        await self.network.record_import(account_model)
        self.logger.info("Wallet created", account_model=account_model.value, address=stored.address)
        return stored

    def _unrecognized_message(self, code: Any) -> str:
        text = code if isinstance(code, str) else ""
        if looks_like_words(text):
            message = word_count_message(len(text.split()))
        else:
            message = (
                "Unrecognized credential format. Expected a 12 or 24 word mnemonic, "
                "a 64 or 128 character hex private key, a JSON wallet or an encrypted key file."
            )
        return message

    async def _derive(self, pending):
        try:
            return await pending
        except DerivationError as e:
            raise CredentialImportError(str(e)) from e

    async def _import_ppk(
        self, classification: Classification, code: str, passphrase: str, target: AccountModel
    ) -> list[CredentialRecord]:
        container = classification.payload
        try:
            derived = await self.deriver.from_encrypted_container(container, passphrase)
        except DerivationError as first:
            if passphrase == "":
                raise CredentialImportError(f"Could not decrypt key file: {first}") from first
            # Some key files are stored unencrypted but still ask for a passphrase
            self.logger.debug("Retrying key file with empty passphrase")
            try:
                derived = await self.deriver.from_encrypted_container(container, "")
            except DerivationError as second:
                raise CredentialImportError(
                    f"Could not decrypt key file: {first}; "
                    f"retry with empty passphrase also failed: {second}"
                ) from first

        return [
            CredentialRecord.create(
                target,
                derived.address,
                code.strip(),
                SecretOrigin.IMPORTED_CONTAINER,
                public_key=derived.public_key,
            )
        ]

    async def _import_json_wallets(
        self, classification: Classification, code: str, passphrase: str, target: AccountModel
    ) -> list[CredentialRecord]:
        records = []
        for wallet in classification.payload:
            address = wallet["addr"]
            normalized = {
                "addr": address,
                "name": wallet.get("name") or f"wallet-{address[:8]}",
                "priv": wallet.get("priv") or "",
                "pass": wallet.get("pass") or "",
                "account": wallet.get("account") or 0,
            }
            records.append(
                CredentialRecord.create(
                    target,
                    address,
                    json.dumps(normalized),
                    SecretOrigin.IMPORTED_CONTAINER,
                    name=normalized["name"],
                    private_key=normalized["priv"] or None,
                )
            )
        return records

    async def _import_hex(
        self, classification: Classification, code: str, passphrase: str, target: AccountModel
    ) -> list[CredentialRecord]:
        hex_key, warning = fit_hex_key(classification.payload.lower(), target.secret_size)
        if warning:
            self.logger.warning(
                "Private key length adjusted",
                account_model=target.value,
                original_length=len(classification.payload),
            )
        derived = await self._derive(
            self.deriver.from_private_key_bytes(bytes.fromhex(hex_key), target.address_prefix)
        )
        return [
            CredentialRecord.create(
                target,
                derived.address,
                hex_key,
                SecretOrigin.IMPORTED_PRIVATE_KEY,
                public_key=derived.public_key,
                private_key=hex_key,
                warnings=[warning] if warning else [],
            )
        ]

    async def _import_mnemonic(
        self, classification: Classification, code: str, passphrase: str, target: AccountModel
    ) -> list[CredentialRecord]:
        words = classification.payload
        if len(words) not in MNEMONIC_WORD_COUNTS:
            raise CredentialImportError(word_count_message(len(words)))
        phrase = " ".join(words)
        derived = await self._derive(self.deriver.from_mnemonic(phrase, target.address_prefix))
        return [
            CredentialRecord.create(
                target,
                derived.address,
                phrase,
                SecretOrigin.GENERATED_FROM_MNEMONIC,
                public_key=derived.public_key,
            )
        ]
