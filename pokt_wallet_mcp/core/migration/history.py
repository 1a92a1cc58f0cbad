"""Persisted migration results.

The last result is stored under one key, whether it came from a completed
hand-off or from a ``pocketd`` output file uploaded by the user.
"""

import json
import time
from typing import Any

import structlog
from pydantic import ValidationError

from ...constants import LAST_MIGRATION_RESULT
from ...models.migration import MigrationReceipt
from ..exceptions import MigrationRejected
from ..store import Store

logger = structlog.get_logger()


class MigrationHistory:
    """Reads and writes the last migration receipt."""

    def __init__(self, store: Store):
        self.store = store
        self.logger = logger.bind(component="migration_history")

    async def record(
        self,
        result: dict[str, Any],
        source_address: str | None = None,
        destination_address: str | None = None,
        is_uploaded_file: bool = False,
    ) -> MigrationReceipt:
        receipt = MigrationReceipt(
            timestamp=int(time.time() * 1000),
            result=result,
            source_address=source_address,
            destination_address=destination_address,
            is_uploaded_file=is_uploaded_file,
        )
        await self.store.set(LAST_MIGRATION_RESULT, receipt.model_dump(mode="json"))
        self.logger.info(
            "Migration result stored",
            source_address=source_address,
            destination_address=destination_address,
            uploaded=is_uploaded_file,
        )
        return receipt

    async def last(self) -> MigrationReceipt | None:
        raw = await self.store.get(LAST_MIGRATION_RESULT)
        if raw is None:
            return None
        try:
            return MigrationReceipt.model_validate(raw)
        except ValidationError as e:
            self.logger.warning("Stored migration result is unreadable", error=str(e))
            return None

    async def process_result_file(self, content: str) -> dict[str, Any]:
        """Validate a ``pocketd`` output file and store it as the last result.

        Raises:
            MigrationRejected: If the content is not a valid result file
        """
        try:
            result = json.loads(content)
        except json.JSONDecodeError as e:
            raise MigrationRejected(f"Invalid results file: {e}") from e

        if not isinstance(result, dict) or not isinstance(result.get("mappings"), list):
            raise MigrationRejected("Invalid results file: missing mappings array")
        if not isinstance(result.get("tx_hash"), str):
            raise MigrationRejected("Invalid results file: missing tx_hash")

        await self.record(result, is_uploaded_file=True)
        self.logger.info("Results file processed", accounts=len(result["mappings"]))
        return result

    async def _successful_mapping(self, morse_address: str) -> dict[str, Any] | None:
        receipt = await self.last()
        if receipt is None:
            return None
        wanted = morse_address.lower()
        for mapping in receipt.result.get("mappings") or []:
            if not isinstance(mapping, dict) or mapping.get("error"):
                continue
            morse = mapping.get("morse")
            if isinstance(morse, dict) and str(morse.get("address", "")).lower() == wanted:
                return mapping
        return None

    async def is_account_migrated(self, morse_address: str) -> bool:
        return await self._successful_mapping(morse_address) is not None

    async def get_shannon_address_for_morse(self, morse_address: str) -> str | None:
        mapping = await self._successful_mapping(morse_address)
        if mapping is None:
            return None
        shannon = mapping.get("shannon")
        return shannon.get("address") if isinstance(shannon, dict) else None
