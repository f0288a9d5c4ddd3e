"""Authentication gate in front of every store request.

The mediator never mutates state: it checks the target service exists and
that the body carries a valid signature, then hands back the integration's
handler for the HTTP layer to invoke.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from paygate.common.errors import NotFoundError
from paygate.common.logging import logger
from paygate.common.metrics import mediator_requests_total
from paygate.common.signature import SIGNATURE_HEADER, require_secret, verify
from paygate.gateway.registry import Handler, ServiceRegistry


@dataclass(frozen=True)
class Rejection:
    """Structured refusal returned instead of a handler."""

    status: int
    message: str

    def body(self) -> dict:
        return {"success": False, "status": self.status, "message": self.message}


NOT_FOUND = Rejection(404, "Service not found.")
UNAUTHORIZED = Rejection(403, "Invalid signature.")


def header_value(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup over any mapping."""

    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


class GatewayMediator:
    """Verifies store requests against the shared secret and the registry."""

    def __init__(self, registry: ServiceRegistry, secret: str | bytes) -> None:
        self.registry = registry
        self._secret = require_secret(secret)

    def authenticate_and_dispatch(
        self, service_name: str, raw_body: bytes, headers: Mapping[str, str]
    ) -> Handler | Rejection:
        try:
            integration = self.registry.resolve(service_name)
        except NotFoundError:
            logger.warning("request for unknown service %s", service_name)
            mediator_requests_total.labels(service="unknown", outcome="not_found").inc()
            return NOT_FOUND

        logger.info("received request for service %s", service_name)
        candidate = header_value(headers, SIGNATURE_HEADER)
        if not verify(raw_body, self._secret, candidate):
            logger.error(
                "invalid signature for service %s (header %s)",
                service_name,
                "missing" if not candidate else f"{candidate[:8]}...",
            )
            mediator_requests_total.labels(service=service_name, outcome="unauthorized").inc()
            return UNAUTHORIZED

        logger.debug("request for service %s is valid", service_name)
        mediator_requests_total.labels(service=service_name, outcome="accepted").inc()
        return integration.handle
