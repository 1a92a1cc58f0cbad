"""Tests for credential import and wallet creation."""

import json

import pytest

from pokt_wallet_mcp.constants import IS_MAINNET, NETWORK_TYPE, WALLET_ADDRESS
from pokt_wallet_mcp.core.exceptions import (
    ClassificationUnrecognized,
    CredentialImportError,
    DerivationError,
)
from pokt_wallet_mcp.core.importer import fit_hex_key, word_count_message
from pokt_wallet_mcp.models.credential import AccountModel, SecretOrigin
from tests.conftest import (
    MNEMONIC_12,
    MORSE_ADDRESS,
    MORSE_KEY_HEX,
    SHANNON_KEY_HEX,
    fake_address,
    ppk_text,
)


class TestJsonWalletImport:
    @pytest.mark.asyncio
    async def test_single_wallet(self, importer, registry):
        code = json.dumps({"addr": MORSE_ADDRESS, "name": "w1", "priv": ""})

        record = await importer.import_credential(code)

        assert record.address == MORSE_ADDRESS
        assert record.account_model is AccountModel.MORSE
        assert record.secret_origin is SecretOrigin.IMPORTED_CONTAINER
        assert record.name == "w1"
        assert len(await registry.list(AccountModel.MORSE)) == 1

    @pytest.mark.asyncio
    async def test_repeat_import_is_idempotent(self, importer, registry):
        code = json.dumps({"addr": MORSE_ADDRESS, "name": "w1", "priv": ""})

        first = await importer.import_credential(code)
        second = await importer.import_credential(code)

        assert second.id == first.id
        listed = await registry.list(AccountModel.MORSE)
        assert [r.address for r in listed] == [MORSE_ADDRESS]

    @pytest.mark.asyncio
    async def test_wallet_list_stores_each_entry(self, importer, registry):
        other = "bb22" + "1" * 36
        code = json.dumps([{"addr": MORSE_ADDRESS, "priv": "ff"}, {"addr": other}])

        record = await importer.import_credential(code)

        assert record.address == MORSE_ADDRESS
        listed = await registry.list(AccountModel.MORSE)
        assert {r.address for r in listed} == {MORSE_ADDRESS, other}
        stored = json.loads(listed[1].serialized_secret)
        assert stored == {
            "addr": other,
            "name": f"wallet-{other[:8]}",
            "priv": "",
            "pass": "",
            "account": 0,
        }

    @pytest.mark.asyncio
    async def test_json_wallet_cannot_target_shannon(self, importer):
        code = json.dumps({"addr": MORSE_ADDRESS})

        with pytest.raises(CredentialImportError, match="cannot be imported as a Shannon"):
            await importer.import_credential(code, account_model=AccountModel.SHANNON)


class TestHexImport:
    @pytest.mark.asyncio
    async def test_zero_key_for_shannon(self, importer, deriver):
        record = await importer.import_credential(SHANNON_KEY_HEX, passphrase="pw")

        assert deriver.calls == [("from_private_key_bytes", bytes(32), "pokt")]
        assert record.account_model is AccountModel.SHANNON
        assert record.address == fake_address(bytes(32), "pokt")
        assert record.private_key == SHANNON_KEY_HEX
        assert record.secret_origin is SecretOrigin.IMPORTED_PRIVATE_KEY
        assert record.warnings == []

    @pytest.mark.asyncio
    async def test_zero_key_address_is_deterministic(self, importer, registry, store):
        first = await importer.import_credential(SHANNON_KEY_HEX)
        await registry.remove(AccountModel.SHANNON, first.address)

        second = await importer.import_credential(SHANNON_KEY_HEX)

        assert second.address == first.address

    @pytest.mark.asyncio
    async def test_morse_key(self, importer, deriver):
        record = await importer.import_credential("0x" + MORSE_KEY_HEX.upper())

        assert deriver.calls[0] == ("from_private_key_bytes", bytes.fromhex(MORSE_KEY_HEX), "")
        assert record.account_model is AccountModel.MORSE
        assert record.serialized_secret == MORSE_KEY_HEX

    @pytest.mark.asyncio
    async def test_short_key_padded_with_warning(self, importer, deriver):
        record = await importer.import_credential(SHANNON_KEY_HEX, account_model=AccountModel.MORSE)

        assert len(deriver.calls[0][1]) == 64
        assert record.serialized_secret == "0" * 128
        assert len(record.warnings) == 1
        assert "padded" in record.warnings[0]

    @pytest.mark.asyncio
    async def test_long_key_truncated_with_warning(self, importer, deriver):
        record = await importer.import_credential(MORSE_KEY_HEX, account_model=AccountModel.SHANNON)

        assert deriver.calls[0][1] == bytes.fromhex(MORSE_KEY_HEX[:64])
        assert "truncated" in record.warnings[0]

    @pytest.mark.asyncio
    async def test_derivation_failure_wrapped(self, importer, deriver, registry):
        deriver.fail_with = DerivationError("Invalid secp256k1 private key")

        with pytest.raises(CredentialImportError, match="Invalid secp256k1") as exc_info:
            await importer.import_credential(SHANNON_KEY_HEX)

        assert isinstance(exc_info.value.__cause__, DerivationError)
        assert await registry.list(AccountModel.SHANNON) == []


class TestMnemonicImport:
    @pytest.mark.asyncio
    async def test_defaults_to_shannon(self, importer, deriver):
        record = await importer.import_credential(MNEMONIC_12)

        assert deriver.calls == [("from_mnemonic", MNEMONIC_12, "pokt")]
        assert record.account_model is AccountModel.SHANNON
        assert record.serialized_secret == MNEMONIC_12
        assert record.secret_origin is SecretOrigin.GENERATED_FROM_MNEMONIC

    @pytest.mark.asyncio
    async def test_morse_target_uses_empty_prefix(self, importer, deriver):
        record = await importer.import_credential(MNEMONIC_12, account_model=AccountModel.MORSE)

        assert deriver.calls[0][2] == ""
        assert record.address == fake_address(MNEMONIC_12, "")

    @pytest.mark.asyncio
    async def test_eleven_words_reports_count(self, importer):
        code = " ".join(MNEMONIC_12.split()[:11])

        with pytest.raises(CredentialImportError, match="11") as exc_info:
            await importer.import_credential(code)

        assert isinstance(exc_info.value.__cause__, ClassificationUnrecognized)
        assert str(exc_info.value) == word_count_message(11)

    @pytest.mark.asyncio
    async def test_thirteen_words_rejected(self, importer):
        with pytest.raises(CredentialImportError, match="13"):
            await importer.import_credential(MNEMONIC_12 + " extra")

    @pytest.mark.asyncio
    async def test_garbage_rejected(self, importer):
        with pytest.raises(CredentialImportError, match="Unrecognized credential format"):
            await importer.import_credential("{definitely not a wallet")


class TestPpkImport:
    @pytest.mark.asyncio
    async def test_correct_passphrase(self, importer, deriver):
        code = ppk_text(passphrase="secret")

        record = await importer.import_credential(code, passphrase="secret")

        assert record.account_model is AccountModel.MORSE
        assert record.address == fake_address(bytes.fromhex("0A1B2C3D"), "")
        assert record.serialized_secret == code
        assert record.secret_origin is SecretOrigin.IMPORTED_CONTAINER

    @pytest.mark.asyncio
    async def test_retries_with_empty_passphrase(self, importer, deriver):
        record = await importer.import_credential(ppk_text(passphrase=""), passphrase="typo")

        passphrases = [call[2] for call in deriver.calls if call[0] == "unlock_container"]
        assert passphrases == ["typo", ""]
        assert record.account_model is AccountModel.MORSE

    @pytest.mark.asyncio
    async def test_both_attempts_failing_reports_both(self, importer):
        with pytest.raises(CredentialImportError, match="retry with empty passphrase also failed"):
            await importer.import_credential(ppk_text(passphrase="secret"), passphrase="typo")

    @pytest.mark.asyncio
    async def test_empty_passphrase_failure_not_retried(self, importer, deriver):
        with pytest.raises(CredentialImportError, match="Could not decrypt key file"):
            await importer.import_credential(ppk_text(passphrase="secret"))

        assert len(deriver.calls) == 1


class TestImportSideEffects:
    @pytest.mark.asyncio
    async def test_sets_current_wallet(self, importer, registry, store):
        record = await importer.import_credential(MNEMONIC_12)

        current = await registry.get_current(AccountModel.SHANNON)
        assert current.address == record.address
        assert await store.get(WALLET_ADDRESS) == record.address

    @pytest.mark.asyncio
    async def test_first_import_records_network(self, importer, store):
        await importer.import_credential(MNEMONIC_12)

        assert await store.get(NETWORK_TYPE) == "shannon"
        assert await store.get(IS_MAINNET) is False

    @pytest.mark.asyncio
    async def test_saved_mainnet_choice_survives_import(self, importer, network, store):
        await network.switch_network(AccountModel.SHANNON, True)

        await importer.import_credential(MNEMONIC_12)
        await importer.import_credential(SHANNON_KEY_HEX)

        assert await store.get(IS_MAINNET) is True
        resolved = await network.resolve()
        assert resolved.is_mainnet is True
        assert resolved.explicit is True

    @pytest.mark.asyncio
    async def test_create_generates_twenty_four_words(self, importer, deriver, registry):
        record = await importer.create(AccountModel.SHANNON)

        assert len(record.serialized_secret.split()) == 24
        assert record.serialized_secret == deriver.mnemonics[0]
        assert (await registry.get_current(AccountModel.SHANNON)).address == record.address


class TestFitHexKey:
    def test_exact_length_untouched(self):
        assert fit_hex_key("ab" * 32, 32) == ("ab" * 32, None)

    def test_pads_right(self):
        fitted, warning = fit_hex_key("ab" * 30, 32)

        assert fitted == "ab" * 30 + "0000"
        assert "30 bytes, expected 32" in warning

    def test_truncates_keeping_leading_bytes(self):
        fitted, warning = fit_hex_key("11" * 32 + "22" * 32, 32)

        assert fitted == "11" * 32
        assert "truncated" in warning
