"""Gateway process entrypoint (`uvicorn paygate.gateway.main:app`)."""

from paygate.common.config import load_settings
from paygate.common.logging import configure_logging
from paygate.common.startup import log_startup_config
from paygate.common.tracing import instrument_app, setup_tracing
from paygate.gateway.app import create_app

settings = load_settings()
configure_logging(settings.service_name, settings.log_level)
setup_tracing(settings.service_name, settings.otel_exporter_otlp_endpoint)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "ENABLED_SERVICES",
        "HOST_URL",
        "GATEWAY_SECRET_KEY",
        "STORE_CALLBACK_URL",
        "DATA_SOURCE",
        "GOPAY_URL",
        "GOPAY_CLIENT_ID",
        "GOPAY_CLIENT_SECRET",
        "GOPAY_GOID",
    ],
)
app = create_app(settings)
instrument_app(app)
