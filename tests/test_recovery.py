"""Tests for legacy mnemonic recovery."""

import json

import pytest

from pokt_wallet_mcp.core.recovery import COMMON_PASSPHRASES, LegacyMnemonicRecovery
from pokt_wallet_mcp.models.credential import AccountModel, CredentialRecord, SecretOrigin
from tests.conftest import MNEMONIC_12, MORSE_ADDRESS, ppk_text


def record(secret: str, origin: SecretOrigin) -> CredentialRecord:
    return CredentialRecord.create(AccountModel.MORSE, MORSE_ADDRESS, secret, origin)


@pytest.mark.asyncio
async def test_stored_mnemonic_returned(recovery):
    result = await recovery.recover(record(MNEMONIC_12, SecretOrigin.GENERATED_FROM_MNEMONIC))

    assert result.recovered is True
    assert result.mnemonic == MNEMONIC_12


@pytest.mark.asyncio
async def test_private_key_has_no_mnemonic(recovery):
    result = await recovery.recover(record("ab" * 64, SecretOrigin.IMPORTED_PRIVATE_KEY))

    assert result.recovered is False
    assert "private key" in result.message


@pytest.mark.asyncio
async def test_json_wallet_has_no_mnemonic(recovery, deriver):
    secret = json.dumps({"addr": MORSE_ADDRESS})

    result = await recovery.recover(record(secret, SecretOrigin.IMPORTED_CONTAINER), confirm=True)

    assert "JSON wallet" in result.message
    assert deriver.calls == []


@pytest.mark.asyncio
async def test_disabled_recovery_never_guesses(deriver):
    recovery = LegacyMnemonicRecovery(deriver, enabled=False)

    result = await recovery.recover(record(ppk_text(), SecretOrigin.IMPORTED_CONTAINER), confirm=True)

    assert "disabled" in result.message
    assert deriver.calls == []


@pytest.mark.asyncio
async def test_unconfirmed_recovery_never_guesses(recovery, deriver):
    result = await recovery.recover(record(ppk_text(), SecretOrigin.IMPORTED_CONTAINER))

    assert "confirmed" in result.message
    assert deriver.calls == []


@pytest.mark.asyncio
async def test_candidates_tried_before_common_list(recovery, deriver):
    secret = ppk_text(passphrase="my-own-pass")

    result = await recovery.recover(
        record(secret, SecretOrigin.IMPORTED_CONTAINER), ["nope", "my-own-pass"], confirm=True
    )

    assert result.recovered is False
    assert result.attempts == 2
    assert "'my-own-pass'" in result.message
    assert [call[2] for call in deriver.calls] == ["nope", "my-own-pass"]


@pytest.mark.asyncio
async def test_common_passphrase_found(recovery):
    result = await recovery.recover(
        record(ppk_text(passphrase="pocket"), SecretOrigin.IMPORTED_CONTAINER), confirm=True
    )

    assert result.attempts == COMMON_PASSPHRASES.index("pocket") + 1
    assert "'pocket'" in result.message


@pytest.mark.asyncio
async def test_nothing_matches(recovery):
    result = await recovery.recover(
        record(ppk_text(passphrase="unguessable"), SecretOrigin.IMPORTED_CONTAINER),
        ["a", "a"],
        confirm=True,
    )

    assert result.recovered is False
    assert result.attempts == len(COMMON_PASSPHRASES) + 1
    assert "none of the" in result.message
