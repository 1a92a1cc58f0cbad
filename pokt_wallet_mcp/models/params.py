"""Parameter models for FastMCP tool validation."""

from typing import Any

from pydantic import Field, field_validator

from .credential import AccountModel, WalletModel
from .enums import MigrationAction, WalletAction


def _validate_enum_action(value: Any, enum_class: type) -> Any:
    """Generic validator for enum action fields."""
    if isinstance(value, str):
        # Handle "EnumClass.VALUE" format
        enum_value = value.split(".")[-1].lower() if "." in value else value.lower()

        for action in enum_class:
            if action.value == enum_value or action.name.lower() == enum_value:
                return action
    elif isinstance(value, enum_class):
        return value

    # Let Pydantic handle the error if no match
    return value


class PoktWalletsParams(WalletModel):
    """Parameters for the pokt_wallets consolidated tool."""

    action: WalletAction = Field(default=WalletAction.LIST, description="Action to perform")
    account_model: AccountModel | None = Field(
        default=None, description="Account model: morse or shannon"
    )
    code: str = Field(default="", description="Credential text to import")
    passphrase: str = Field(default="", description="Passphrase for encrypted credentials")
    address: str = Field(default="", description="Wallet address")
    is_mainnet: bool | None = Field(default=None, description="Target sub-network")
    candidates: list[str] = Field(
        default_factory=list, description="Passphrases to try during legacy recovery"
    )
    confirm: bool = Field(default=False, description="Explicit confirmation for legacy recovery")

    @field_validator("action", mode="before")
    @classmethod
    def validate_action(cls, v):
        return _validate_enum_action(v, WalletAction)

    @field_validator("account_model", mode="before")
    @classmethod
    def validate_account_model(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v


class PoktMigrationParams(WalletModel):
    """Parameters for the pokt_migration consolidated tool."""

    action: MigrationAction = Field(default=MigrationAction.STATUS, description="Action to perform")
    session_id: str = Field(default="", description="Migration session identifier")
    code: str = Field(default="", description="Morse credential text (import_source)")
    passphrase: str = Field(default="", description="Passphrase for the credential")
    destination_code: str = Field(
        default="", description="Existing Shannon credential to use instead of creating one"
    )
    morse_private_keys: list[str] = Field(
        default_factory=list, description="Morse keys for manual claim instructions"
    )
    signing_account: str = Field(default="", description="Shannon signing account name")
    unsafe: bool = Field(default=False, description="Pass --unsafe to pocketd")
    unarmored_json: bool = Field(default=False, description="Pass --unarmored-json to pocketd")
    result_content: str = Field(default="", description="pocketd output file content")
    morse_address: str = Field(default="", description="Morse address to look up in history")

    @field_validator("action", mode="before")
    @classmethod
    def validate_action(cls, v):
        return _validate_enum_action(v, MigrationAction)
