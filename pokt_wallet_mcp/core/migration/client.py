"""HTTP client for the remote migration service."""

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from ...models.migration import HealthStatus, MigrationOutcome, MigrationPayload
from ..config_loader import MigrationServiceConfig
from ..exceptions import (
    MigrationHandoffError,
    MigrationRejected,
    NetworkUnavailable,
    ServiceMisconfigured,
)
from ..settings import CONNECT_TIMEOUT, HEALTH_TIMEOUT, REQUEST_TIMEOUT

logger = structlog.get_logger()

# Substring rules, first match wins: (needles, exception class, kind, user message)
FAILURE_RULES: tuple[tuple[tuple[str, ...], type[MigrationHandoffError], str, str], ...] = (
    (
        ("connection refused", 'Post "http://localhost:26657"'),
        NetworkUnavailable,
        "connection_refused",
        "Cannot connect to Shannon network node. Please try again later.",
    ),
    (
        ("Bad Gateway", "502"),
        NetworkUnavailable,
        "gateway_unavailable",
        "Shannon network node is currently unavailable. Please try again later.",
    ),
    (
        ("Usage:", "claim-accounts"),
        ServiceMisconfigured,
        "tool_misconfiguration",
        "Migration command configuration error. Please contact support.",
    ),
)


def classify_failure(message: str, prefix: str = "") -> MigrationHandoffError:
    """Map a remote error message onto the hand-off error taxonomy.

    Args:
        message: Raw error text reported by the service
        prefix: Prepended to unclassified messages

    Returns:
        The exception to raise; its detail keeps the raw message
    """
    for needles, error_class, kind, user_message in FAILURE_RULES:
        if any(needle in message for needle in needles):
            return error_class(user_message, kind=kind, detail=message)
    return MigrationRejected(f"{prefix}{message}", kind="rejected", detail=message)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class MigrationServiceClient:
    """Talks to the migration service: a health probe and the claim request.

    Calls run strictly one after the other; the probe always resolves
    before the claim is sent.
    """

    def __init__(
        self,
        config: MigrationServiceConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or MigrationServiceConfig()
        self.transport = transport
        self.logger = logger.bind(component="migration_client", base_url=self.config.base_url)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=CONNECT_TIMEOUT),
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    async def check_health(self) -> HealthStatus:
        """GET the health endpoint.

        Raises:
            NetworkUnavailable: Service unreachable, unhealthy or answering garbage
            ServiceMisconfigured: Service reports its CLI tool unavailable
        """
        try:
            async with self._client(HEALTH_TIMEOUT) as client:
                response = await client.get(self.config.health_path)
        except httpx.TimeoutException as e:
            raise NetworkUnavailable(
                "Migration service health check timed out", detail=str(e)
            ) from e
        except httpx.RequestError as e:
            raise NetworkUnavailable(
                f"Migration service is unreachable: {e}", detail=str(e)
            ) from e

        if not response.is_success:
            raise NetworkUnavailable(
                f"Migration service health check failed: {response.status_code} "
                f"{response.reason_phrase}",
                detail=response.text,
            )

        try:
            health = HealthStatus.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise NetworkUnavailable(
                "Migration service returned an invalid health response", detail=response.text
            ) from e

        if health.status != "ok":
            raise NetworkUnavailable(
                f"Migration service is not healthy (status: {health.status})",
                detail=response.text,
            )

        if health.pocketd is not None and not health.pocketd.available:
            error = health.pocketd.error or "unknown error"
            raise ServiceMisconfigured(f"Migration CLI tool is not available: {error}", detail=error)

        self.logger.debug("Migration service healthy")
        return health

    async def migrate(self, payload: MigrationPayload) -> MigrationOutcome:
        """POST the claim request and interpret the answer.

        A 2xx answer only counts as success when ``success`` is true and the
        nested ``data.result.success`` is not false.

        Raises:
            MigrationHandoffError: Classified failure (see classify_failure)
        """
        try:
            async with self._client(REQUEST_TIMEOUT) as client:
                response = await client.post(self.config.migrate_path, json=payload.to_wire())
        except httpx.TimeoutException as e:
            raise NetworkUnavailable("Migration request timed out", detail=str(e)) from e
        except httpx.RequestError as e:
            raise classify_failure(str(e), prefix="Migration request failed: ") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = (
                _dig(body, "details")
                or _dig(body, "error")
                or f"Error {response.status_code}: {response.reason_phrase}"
            )
            self.logger.warning(
                "Migration service rejected request",
                status_code=response.status_code,
                error=str(message),
            )
            raise classify_failure(str(message))

        if not isinstance(body, dict):
            raise MigrationRejected(
                "Migration failed: the service returned an unreadable response",
                detail=response.text,
            )

        succeeded = body.get("success") is True and _dig(body, "data", "result", "success") is not False
        if not succeeded:
            message = (
                _dig(body, "data", "result", "error")
                or _dig(body, "data", "error")
                or body.get("error")
                or "Migration process failed"
            )
            self.logger.warning("Migration reported failure", error=str(message))
            # Processed by the service, so the raw cause is kept verbatim
            raise MigrationRejected(f"Migration failed: {message}", detail=str(message))

        data = body.get("data") if isinstance(body.get("data"), dict) else None
        result = _dig(data, "result")
        mappings = _dig(result, "mappings")
        tx_hash = _dig(result, "tx_hash") or _dig(data, "tx_hash")
        return MigrationOutcome(
            success=True,
            data=data,
            tx_hash=str(tx_hash) if tx_hash is not None else None,
            mappings=[m for m in mappings if isinstance(m, dict)] if isinstance(mappings, list) else [],
        )
