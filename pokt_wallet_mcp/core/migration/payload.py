"""Migration request payload.

The remote service accepts two historical shapes for ``morsePrivateKey``:
a JSON string describing the whole Morse wallet, or the bare secret. The
choice is made once, here, from the stored source record.
"""

import json
from dataclasses import dataclass

from ...models.credential import CredentialRecord
from ...models.migration import MigrationPayload, ShannonAddress
from ..classifier import CredentialKind, classify, strip_hex_prefix


@dataclass(frozen=True)
class StructuredSecret:
    """Morse wallet fields sent as a nested JSON string."""

    addr: str
    name: str
    priv: str
    passphrase: str = ""
    account: int = 0

    def to_wire(self) -> str:
        return json.dumps(
            {
                "addr": self.addr,
                "name": self.name,
                "priv": self.priv,
                "pass": self.passphrase,
                "account": self.account,
            }
        )


@dataclass(frozen=True)
class RawSecret:
    """Bare secret text (hex key without 0x, mnemonic or key file JSON)."""

    value: str

    def to_wire(self) -> str:
        return self.value


SourceSecret = StructuredSecret | RawSecret


def secret_from_record(record: CredentialRecord) -> SourceSecret:
    """Pick the wire shape for a source record's secret."""
    secret = record.serialized_secret.strip()
    classification = classify(secret)

    if classification.kind is CredentialKind.JSON_WALLET:
        wallet = classification.payload[0]
        return StructuredSecret(
            addr=wallet["addr"],
            name=wallet.get("name") or f"wallet-{record.address[:8]}",
            priv=wallet.get("priv") or record.private_key or "",
            passphrase=wallet.get("pass") or "",
            account=int(wallet.get("account") or 0),
        )

    if classification.kind is CredentialKind.HEX_PRIVATE_KEY:
        return RawSecret(strip_hex_prefix(secret).lower())

    if record.private_key:
        return RawSecret(strip_hex_prefix(record.private_key.strip()).lower())

    return RawSecret(secret)


def build_payload(source: CredentialRecord, destination: CredentialRecord) -> MigrationPayload:
    """Assemble the POST /migrate body.

    The destination's serialized secret travels as ``signature``; the
    service treats it as an authorization artifact for the claim.
    """
    return MigrationPayload(
        morse_private_key=secret_from_record(source).to_wire(),
        shannon_address=ShannonAddress(
            address=destination.address,
            signature=destination.serialized_secret,
        ),
    )
