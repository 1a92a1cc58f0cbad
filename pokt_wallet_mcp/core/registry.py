"""Persisted wallet registry.

Each account model keeps one list of records under its list key plus a
single legacy slot (the "current" wallet) written by older clients. The
address is the natural key inside a model's list.

Known race: two callers importing the same address at the same time both
read the list before either writes. The later write replaces the earlier
one, so at most one record survives per address, but which caller's
record id and other side effects win is unspecified.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import ValidationError

from ..constants import WALLET_ADDRESS
from ..models.credential import AccountModel, CredentialRecord, SecretOrigin
from .classifier import CredentialKind, classify
from .exceptions import RegistryInconsistency
from .store import Store

logger = structlog.get_logger()


def address_key(address: str) -> str:
    """Addresses compare case-insensitively (Morse hex may arrive in either case)."""
    return address.strip().lower()


def _origin_for_secret(serialized: str, has_private_key: bool) -> SecretOrigin:
    kind = classify(serialized).kind
    if kind is CredentialKind.MNEMONIC:
        return SecretOrigin.GENERATED_FROM_MNEMONIC
    if kind in (CredentialKind.PPK, CredentialKind.JSON_WALLET):
        return SecretOrigin.IMPORTED_CONTAINER
    if kind is CredentialKind.HEX_PRIVATE_KEY or has_private_key:
        return SecretOrigin.IMPORTED_PRIVATE_KEY
    return SecretOrigin.IMPORTED_CONTAINER


def record_from_stored(
    data: Any, account_model: AccountModel, fallback_id: str | None = None
) -> CredentialRecord:
    """Read a stored entry in either the current or the legacy web wallet shape.

    Legacy entries look like
    ``{serialized, privateKey?, network, timestamp, parsed: {address | addr}}``.

    Raises:
        ValueError: If the entry cannot be read as a record
    """
    if not isinstance(data, dict):
        raise ValueError(f"Stored wallet entry is a {type(data).__name__}, not an object")

    if "serialized_secret" in data:
        values = dict(data)
        values.setdefault("account_model", account_model)
        values.setdefault("network", values["account_model"])
        if fallback_id and not values.get("id"):
            values["id"] = fallback_id
        return CredentialRecord.model_validate(values)

    parsed = data.get("parsed") if isinstance(data.get("parsed"), dict) else {}
    address = parsed.get("address") or parsed.get("addr") or data.get("address")
    serialized = data.get("serialized")
    if not isinstance(address, str) or not address:
        raise ValueError("Legacy wallet entry has no address")
    if not isinstance(serialized, str) or not serialized:
        raise ValueError(f"Legacy wallet entry for {address} has no serialized secret")

    private_key = data.get("privateKey") if isinstance(data.get("privateKey"), str) else None
    timestamp = data.get("timestamp")
    created_at = (
        datetime.fromtimestamp(timestamp / 1000, tz=UTC)
        if isinstance(timestamp, int | float)
        else datetime.now(UTC)
    )
    record_id = data.get("id") or fallback_id or f"{account_model.value}_{int(created_at.timestamp() * 1000)}"
    return CredentialRecord(
        id=str(record_id),
        account_model=account_model,
        address=address,
        serialized_secret=serialized,
        secret_origin=_origin_for_secret(serialized, private_key is not None),
        network=account_model,
        created_at=created_at,
        name=parsed.get("name"),
        private_key=private_key,
    )


class WalletRegistry:
    """One deduplicated list of credentials per account model."""

    def __init__(self, store: Store):
        self.store = store
        self.logger = logger.bind(component="registry")

    async def upsert(self, account_model: AccountModel, record: CredentialRecord) -> CredentialRecord:
        """Add record unless its address is already listed.

        The first stored record for an address wins; fields are never merged.

        Returns:
            The record now stored for the address (the existing one on a repeat import)
        """
        raw_entries = await self._raw_list(account_model)
        wanted = address_key(record.address)
        for index, entry in enumerate(raw_entries):
            try:
                existing = record_from_stored(entry, account_model)
            except (ValueError, ValidationError):
                continue
            if address_key(existing.address) == wanted:
                self.logger.info(
                    "Wallet already registered",
                    account_model=account_model.value,
                    address=record.address,
                    position=index,
                )
                return existing

        raw_entries.append(record.model_dump(mode="json"))
        await self.store.set(account_model.list_key, raw_entries)
        self.logger.info(
            "Wallet registered",
            account_model=account_model.value,
            address=record.address,
            origin=record.secret_origin.value,
            total=len(raw_entries),
        )
        return record

    async def list(self, account_model: AccountModel) -> list[CredentialRecord]:
        """Records in insertion order, the legacy slot last when its address is new."""
        records: list[CredentialRecord] = []
        for entry in await self._raw_list(account_model):
            try:
                records.append(record_from_stored(entry, account_model))
            except (ValueError, ValidationError) as e:
                self.logger.warning(
                    "Skipping unreadable wallet entry",
                    account_model=account_model.value,
                    error=str(e),
                )

        records = self._dedupe(account_model, records)
        legacy = await self.get_current(account_model)
        if legacy is not None and all(
            address_key(record.address) != address_key(legacy.address) for record in records
        ):
            records.append(legacy)
        return records

    async def find_by_address(
        self, account_model: AccountModel, address: str
    ) -> CredentialRecord | None:
        wanted = address_key(address)
        for record in await self.list(account_model):
            if address_key(record.address) == wanted:
                return record
        return None

    async def find_any(self, address: str) -> CredentialRecord | None:
        """Look an address up in every model's list, Morse first."""
        for account_model in (AccountModel.MORSE, AccountModel.SHANNON):
            record = await self.find_by_address(account_model, address)
            if record is not None:
                return record
        return None

    async def set_current(self, record: CredentialRecord) -> None:
        """Write the legacy slot for the record's model and the active address."""
        await self.store.set(record.account_model.legacy_key, record.model_dump(mode="json"))
        await self.store.set(WALLET_ADDRESS, record.address)

    async def get_current(self, account_model: AccountModel) -> CredentialRecord | None:
        raw = await self.store.get(account_model.legacy_key)
        if raw is None:
            return None
        try:
            return record_from_stored(raw, account_model, fallback_id=f"{account_model.value}_legacy")
        except (ValueError, ValidationError) as e:
            self.logger.warning(
                "Legacy wallet slot is unreadable",
                account_model=account_model.value,
                error=str(e),
            )
            return None

    async def remove(self, account_model: AccountModel, address: str) -> bool:
        """Drop every entry for address from the list and the legacy slot."""
        wanted = address_key(address)
        raw_entries = await self._raw_list(account_model)
        kept = []
        for entry in raw_entries:
            try:
                matches = address_key(record_from_stored(entry, account_model).address) == wanted
            except (ValueError, ValidationError):
                matches = False
            if not matches:
                kept.append(entry)

        removed = len(kept) != len(raw_entries)
        if removed:
            if kept:
                await self.store.set(account_model.list_key, kept)
            else:
                await self.store.remove(account_model.list_key)

        current = await self.get_current(account_model)
        if current is not None and address_key(current.address) == wanted:
            await self.store.remove(account_model.legacy_key)
            removed = True

        active = await self.store.get(WALLET_ADDRESS)
        if isinstance(active, str) and address_key(active) == wanted:
            await self.store.remove(WALLET_ADDRESS)

        self.logger.info(
            "Wallet removal", account_model=account_model.value, address=address, removed=removed
        )
        return removed

    async def clear_current(self) -> None:
        """Forget the active wallet of both models. Lists are kept."""
        for account_model in AccountModel:
            await self.store.remove(account_model.legacy_key)
        await self.store.remove(WALLET_ADDRESS)

    async def _raw_list(self, account_model: AccountModel) -> list[Any]:
        raw = await self.store.get(account_model.list_key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            error = RegistryInconsistency(
                f"Wallet list '{account_model.list_key}' holds a {type(raw).__name__}"
            )
            self.logger.warning("Ignoring malformed wallet list", error=str(error))
            return []
        return list(raw)

    def _dedupe(
        self, account_model: AccountModel, records: list[CredentialRecord]
    ) -> list[CredentialRecord]:
        seen: set[str] = set()
        unique: list[CredentialRecord] = []
        for record in records:
            key = address_key(record.address)
            if key in seen:
                error = RegistryInconsistency(
                    f"Duplicate {account_model.value} address {record.address} in store"
                )
                self.logger.warning("Dropping duplicate wallet entry", error=str(error))
                continue
            seen.add(key)
            unique.append(record)
        return unique
