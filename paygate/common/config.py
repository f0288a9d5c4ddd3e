"""Central environment-driven settings for the gateway process.

The process loads these once at startup. Provider-specific settings live in
their own prefixed class so an integration only requires what it uses (see
`.env.example`).
"""

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from paygate.common.errors import ConfigurationError


class GatewaySettings(BaseSettings):
    """Typed view of gateway-wide configuration from environment variables."""

    service_name: str = "paygate"
    log_level: str = "INFO"
    gateway_secret_key: str
    enabled_services: str = "gopay"
    host_url: str
    store_callback_url: str = "https://api.craftingstore.net/callback/custom"
    http_timeout_seconds: float = 5.0
    provider_max_concurrency: int = 50
    data_source: str = "json"
    json_store_path: str = "db.json"
    database_dsn: str | None = None
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("gateway_secret_key")
    @classmethod
    def _secret_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("gateway secret must not be empty")
        return value

    @field_validator("host_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def service_names(self) -> list[str]:
        """Enabled services in declaration order."""

        return [name.strip() for name in self.enabled_services.split(",") if name.strip()]


class GoPaySettings(BaseSettings):
    """GoPay credentials and endpoint, read from `GOPAY_*` variables."""

    url: str
    client_id: str
    client_secret: str
    goid: str
    allowed_swifts: str = ""
    scope: str = "payment-all"
    token_skew_seconds: float = 10.0
    model_config = SettingsConfigDict(env_prefix="GOPAY_", env_file=".env", extra="ignore")

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def swifts(self) -> list[str]:
        return [swift.strip() for swift in self.allowed_swifts.split(",") if swift.strip()]


def _describe(exc: ValidationError) -> str:
    fields = [".".join(str(part) for part in err["loc"]) or "<root>" for err in exc.errors()]
    return ", ".join(fields)


def load_settings(**overrides) -> GatewaySettings:
    """Build gateway settings, raising `ConfigurationError` on missing keys."""

    try:
        return GatewaySettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid gateway configuration: {_describe(exc)}") from exc


def load_gopay_settings(**overrides) -> GoPaySettings:
    """Build GoPay settings, raising `ConfigurationError` on missing keys."""

    try:
        return GoPaySettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid GoPay configuration: {_describe(exc)}") from exc
