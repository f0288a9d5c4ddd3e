"""Error taxonomy shared by the mediator, integrations and HTTP layer.

Every error carries the HTTP status the gateway answers with and whether the
failure is worth retrying by the caller.
"""


class GatewayError(Exception):
    """Base class for errors surfaced to the store as `{success: false}`."""

    status_code = 500
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    """Required startup configuration is missing or invalid."""


class AuthenticationError(GatewayError):
    status_code = 403


class NotFoundError(GatewayError):
    status_code = 404


class InvalidRequestError(GatewayError):
    """Store payload is not JSON or does not match the expected schema."""

    status_code = 400


class ProviderError(GatewayError):
    status_code = 502


class ProviderAuthError(ProviderError):
    """Provider token could not be obtained."""


class ProviderResponseError(ProviderError):
    """Provider answered with an error status or an incomplete body."""

    def __init__(self, message: str, body: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.body = body
        self.status = status


class StoreCallbackError(GatewayError):
    """The store rejected a settlement callback."""

    status_code = 502


class UpstreamTimeoutError(GatewayError):
    """A provider or store call exceeded its bounded timeout."""

    status_code = 504
    retryable = True
