"""Tests for the persisted wallet registry."""

import json
import typing
from typing import Any

import pytest

from pokt_wallet_mcp.constants import (
    MORSE_WALLET,
    MORSE_WALLETS,
    SHANNON_WALLET,
    SHANNON_WALLETS,
    WALLET_ADDRESS,
)
from pokt_wallet_mcp.core.registry import WalletRegistry, address_key, record_from_stored
from pokt_wallet_mcp.core.store import MemoryStore
from pokt_wallet_mcp.models.credential import AccountModel, CredentialRecord, SecretOrigin
from tests.conftest import MNEMONIC_12, MORSE_ADDRESS


def make_record(address: str, model: AccountModel = AccountModel.SHANNON, **extra) -> CredentialRecord:
    return CredentialRecord.create(
        model, address, extra.pop("secret", MNEMONIC_12), SecretOrigin.GENERATED_FROM_MNEMONIC, **extra
    )


def legacy_entry(address: str, serialized: str, **extra) -> dict:
    entry = {
        "serialized": serialized,
        "network": "morse",
        "timestamp": 1_700_000_000_000,
        "parsed": {"address": address},
    }
    entry.update(extra)
    return entry


class TestUpsert:
    @pytest.mark.asyncio
    async def test_first_record_wins(self, registry):
        first = await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))
        again = await registry.upsert(AccountModel.SHANNON, make_record("POKT1ABC", name="other"))

        assert again.id == first.id
        assert again.name is None
        assert len(await registry.list(AccountModel.SHANNON)) == 1

    @pytest.mark.asyncio
    async def test_models_keep_separate_lists(self, registry, store):
        await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))
        await registry.upsert(AccountModel.MORSE, make_record(MORSE_ADDRESS, AccountModel.MORSE))

        assert len(await store.get(SHANNON_WALLETS)) == 1
        assert len(await store.get(MORSE_WALLETS)) == 1
        assert await registry.find_by_address(AccountModel.SHANNON, MORSE_ADDRESS) is None


class TestList:
    def test_list_annotations_resolve_to_builtin(self):
        # The method named list must not shadow the builtin in sibling signatures
        raw_hints = typing.get_type_hints(WalletRegistry._raw_list)
        dedupe_hints = typing.get_type_hints(WalletRegistry._dedupe)

        assert raw_hints["return"] == list[Any]
        assert dedupe_hints["records"] == list[CredentialRecord]

    @pytest.mark.asyncio
    async def test_reads_legacy_list_shape(self):
        store = MemoryStore(
            {
                MORSE_WALLETS: [
                    legacy_entry(MORSE_ADDRESS, "ab" * 64, privateKey="ab" * 64, id="morse_1"),
                ]
            }
        )
        registry = WalletRegistry(store)

        records = await registry.list(AccountModel.MORSE)

        assert len(records) == 1
        assert records[0].id == "morse_1"
        assert records[0].address == MORSE_ADDRESS
        assert records[0].secret_origin is SecretOrigin.IMPORTED_PRIVATE_KEY
        assert records[0].created_at.year == 2023

    @pytest.mark.asyncio
    async def test_duplicate_entries_collapse(self, store, registry):
        entry = make_record("pokt1dup").model_dump(mode="json")
        await store.set(SHANNON_WALLETS, [entry, dict(entry, id="shannon_2")])

        records = await registry.list(AccountModel.SHANNON)

        assert [r.id for r in records] == [entry["id"]]

    @pytest.mark.asyncio
    async def test_unreadable_entries_skipped(self, store, registry):
        good = make_record("pokt1good").model_dump(mode="json")
        await store.set(SHANNON_WALLETS, ["garbage", {"parsed": {}}, good])

        records = await registry.list(AccountModel.SHANNON)

        assert [r.address for r in records] == ["pokt1good"]

    @pytest.mark.asyncio
    async def test_malformed_list_treated_as_empty(self, store, registry):
        await store.set(SHANNON_WALLETS, {"not": "a list"})

        assert await registry.list(AccountModel.SHANNON) == []

    @pytest.mark.asyncio
    async def test_legacy_slot_appended_when_new(self, store, registry):
        await registry.upsert(AccountModel.MORSE, make_record(MORSE_ADDRESS, AccountModel.MORSE))
        other = "cc33" + "2" * 36
        await store.set(MORSE_WALLET, legacy_entry(other, json.dumps({"addr": other})))

        records = await registry.list(AccountModel.MORSE)

        assert [r.address for r in records] == [MORSE_ADDRESS, other]
        assert records[1].id == "morse_legacy"
        assert records[1].secret_origin is SecretOrigin.IMPORTED_CONTAINER

    @pytest.mark.asyncio
    async def test_legacy_slot_not_duplicated(self, registry):
        record = await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))
        await registry.set_current(record)

        assert len(await registry.list(AccountModel.SHANNON)) == 1


class TestLookups:
    @pytest.mark.asyncio
    async def test_find_by_address_ignores_case(self, registry):
        await registry.upsert(AccountModel.MORSE, make_record(MORSE_ADDRESS, AccountModel.MORSE))

        found = await registry.find_by_address(AccountModel.MORSE, MORSE_ADDRESS.upper())

        assert found is not None

    @pytest.mark.asyncio
    async def test_find_any_searches_both_models(self, registry):
        await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))

        found = await registry.find_any("pokt1abc")

        assert found.account_model is AccountModel.SHANNON
        assert await registry.find_any("pokt1missing") is None

    @pytest.mark.asyncio
    async def test_set_and_get_current(self, registry, store):
        record = make_record("pokt1abc")

        await registry.set_current(record)

        assert (await registry.get_current(AccountModel.SHANNON)).id == record.id
        assert await store.get(WALLET_ADDRESS) == "pokt1abc"
        assert await registry.get_current(AccountModel.MORSE) is None

    @pytest.mark.asyncio
    async def test_unreadable_current_is_none(self, store, registry):
        await store.set(SHANNON_WALLET, {"parsed": {}})

        assert await registry.get_current(AccountModel.SHANNON) is None


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_clears_list_slot_and_address(self, registry, store):
        record = await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))
        await registry.set_current(record)

        assert await registry.remove(AccountModel.SHANNON, "pokt1abc") is True

        assert await store.get(SHANNON_WALLETS) is None
        assert await store.get(SHANNON_WALLET) is None
        assert await store.get(WALLET_ADDRESS) is None

    @pytest.mark.asyncio
    async def test_remove_keeps_other_wallets(self, registry):
        await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))
        await registry.upsert(AccountModel.SHANNON, make_record("pokt1def"))

        await registry.remove(AccountModel.SHANNON, "pokt1abc")

        assert [r.address for r in await registry.list(AccountModel.SHANNON)] == ["pokt1def"]

    @pytest.mark.asyncio
    async def test_remove_unknown_returns_false(self, registry):
        assert await registry.remove(AccountModel.MORSE, MORSE_ADDRESS) is False

    @pytest.mark.asyncio
    async def test_clear_current_keeps_lists(self, registry, store):
        record = await registry.upsert(AccountModel.SHANNON, make_record("pokt1abc"))
        await registry.set_current(record)

        await registry.clear_current()

        assert await registry.get_current(AccountModel.SHANNON) is None
        assert len(await registry.list(AccountModel.SHANNON)) == 1


class TestRecordFromStored:
    def test_rejects_non_objects(self):
        with pytest.raises(ValueError, match="not an object"):
            record_from_stored(["x"], AccountModel.MORSE)

    def test_legacy_without_secret_rejected(self):
        with pytest.raises(ValueError, match="no serialized secret"):
            record_from_stored({"parsed": {"addr": MORSE_ADDRESS}}, AccountModel.MORSE)

    def test_legacy_addr_key_and_mnemonic_origin(self):
        record = record_from_stored(
            {"serialized": MNEMONIC_12, "parsed": {"addr": MORSE_ADDRESS, "name": "old"}},
            AccountModel.MORSE,
            fallback_id="morse_legacy",
        )

        assert record.id == "morse_legacy"
        assert record.name == "old"
        assert record.secret_origin is SecretOrigin.GENERATED_FROM_MNEMONIC

    def test_address_key(self):
        assert address_key("  AbC ") == "abc"
