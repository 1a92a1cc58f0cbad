"""Tests for the key/value wallet stores."""

import asyncio

import pytest

from pokt_wallet_mcp.core.exceptions import StoreError
from pokt_wallet_mcp.core.store import MemoryStore, SqliteStore, StoreChange, is_storable


@pytest.fixture
async def sqlite_store(tmp_path):
    store = SqliteStore(tmp_path / "data" / "wallets.db")
    await store.initialize()
    return store


@pytest.fixture(params=["memory", "sqlite"])
async def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    store = SqliteStore(tmp_path / "wallets.db")
    await store.initialize()
    return store


class TestStoreContract:
    @pytest.mark.asyncio
    async def test_set_and_get(self, any_store):
        assert await any_store.set("shannon_wallets", [{"address": "pokt1abc"}]) is True

        assert await any_store.get("shannon_wallets") == [{"address": "pokt1abc"}]
        assert any_store.get_sync("shannon_wallets") == [{"address": "pokt1abc"}]

    @pytest.mark.asyncio
    async def test_missing_key_returns_default(self, any_store):
        assert await any_store.get("nothing") is None
        assert await any_store.get("nothing", "fallback") == "fallback"

    @pytest.mark.parametrize("value", [None, ""])
    @pytest.mark.asyncio
    async def test_empty_values_refused(self, any_store, value):
        assert await any_store.set("walletAddress", value) is False

        assert await any_store.get("walletAddress") is None

    @pytest.mark.asyncio
    async def test_false_is_storable(self, any_store):
        await any_store.set("isMainnet", False)

        assert await any_store.get("isMainnet") is False

    @pytest.mark.asyncio
    async def test_reads_are_copies(self, any_store):
        await any_store.set("morse_wallets", [{"addr": "a"}])

        value = await any_store.get("morse_wallets")
        value.append({"addr": "b"})

        assert await any_store.get("morse_wallets") == [{"addr": "a"}]

    @pytest.mark.asyncio
    async def test_remove(self, any_store):
        await any_store.set("walletAddress", "pokt1abc")

        await any_store.remove("walletAddress")
        await any_store.remove("walletAddress")

        assert await any_store.get("walletAddress") is None


class TestNotifications:
    @pytest.mark.asyncio
    async def test_listener_receives_changes(self, any_store):
        changes: list[StoreChange] = []
        any_store.subscribe(changes.append)

        await any_store.set("walletAddress", "pokt1abc")
        await any_store.remove("walletAddress")
        await any_store.remove("walletAddress")

        assert changes == [
            StoreChange("walletAddress", "pokt1abc"),
            StoreChange("walletAddress", None),
        ]

    @pytest.mark.asyncio
    async def test_refused_write_not_notified(self, any_store):
        changes: list[StoreChange] = []
        any_store.subscribe(changes.append)

        await any_store.set("walletAddress", "")

        assert changes == []

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        store = MemoryStore()
        changes: list[StoreChange] = []
        unsubscribe = store.subscribe(changes.append)

        unsubscribe()
        unsubscribe()
        await store.set("walletAddress", "pokt1abc")

        assert changes == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self):
        store = MemoryStore()
        changes: list[StoreChange] = []

        def broken(change):
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.subscribe(changes.append)

        assert await store.set("walletAddress", "pokt1abc") is True
        assert len(changes) == 1

    @pytest.mark.asyncio
    async def test_async_listener_runs_without_blocking_writer(self):
        store = MemoryStore()
        seen = asyncio.Event()

        async def listener(change):
            seen.set()

        store.subscribe(listener)
        await store.set("walletAddress", "pokt1abc")

        await asyncio.wait_for(seen.wait(), timeout=1)


class TestSqliteStore:
    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "wallets.db"
        first = SqliteStore(path)
        await first.initialize()
        await first.set("shannon_wallets", [{"address": "pokt1abc"}])

        second = SqliteStore(path)
        await second.initialize()

        assert second.get_sync("shannon_wallets") == [{"address": "pokt1abc"}]

    def test_sync_read_before_initialize_fails(self, tmp_path):
        store = SqliteStore(tmp_path / "wallets.db")

        with pytest.raises(StoreError, match="initialize"):
            store.get_sync("walletAddress")

    @pytest.mark.asyncio
    async def test_async_read_initializes_lazily(self, tmp_path):
        store = SqliteStore(tmp_path / "nested" / "wallets.db")

        assert await store.get("walletAddress") is None
        assert store.get_sync("walletAddress") is None

    @pytest.mark.asyncio
    async def test_unserializable_value_rejected(self, sqlite_store):
        with pytest.raises(StoreError, match="not JSON serializable"):
            await sqlite_store.set("bad", {"value": object()})


def test_is_storable():
    assert is_storable(0)
    assert is_storable(False)
    assert not is_storable("")
    assert not is_storable(None)
