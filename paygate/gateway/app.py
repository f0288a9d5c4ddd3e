"""FastAPI application factory for the gateway.

Store requests arrive at `POST /service/{service}/init`, pass through the
mediator and are answered as `{success, data}` or `{success, status, message}`.
Each integration mounts its own routes (provider notifications) under the same
`/service/{service}` prefix.
"""

import json
from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from paygate.common.callback import StoreCallbackClient
from paygate.common.config import GatewaySettings
from paygate.common.errors import GatewayError, InvalidRequestError
from paygate.common.logging import logger, trace_id_ctx
from paygate.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from paygate.gateway.mediator import GatewayMediator, Rejection
from paygate.gateway.registry import IntegrationContext, ServiceIntegration, ServiceRegistry, load_integration
from paygate.store.payment_store import PaymentStore, get_payment_store


def error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "status": status, "message": message})


def create_app(
    settings: GatewaySettings,
    http_client: httpx.AsyncClient | None = None,
    store: PaymentStore | None = None,
    integrations: dict[str, ServiceIntegration] | None = None,
) -> FastAPI:
    """Wire registry, mediator and integrations into one FastAPI app.

    `integrations` replaces loading `settings.service_names` from
    `paygate.services`; tests use it to register fakes.
    """

    owns_http = http_client is None
    http = http_client if http_client is not None else httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Close the shared HTTP client if this factory created it."""

        yield
        if owns_http:
            await http.aclose()

    app = FastAPI(title="PayGate", lifespan=lifespan)

    def mount(name: str, router: APIRouter) -> None:
        app.include_router(router, prefix=f"/service/{name}")

    registry = ServiceRegistry(mount)
    mediator = GatewayMediator(registry, settings.gateway_secret_key)
    app.state.registry = registry
    app.state.mediator = mediator
    app.state.http = http

    if integrations is None:
        payment_store = store if store is not None else get_payment_store(settings)
        callback = StoreCallbackClient(
            settings.store_callback_url,
            settings.gateway_secret_key,
            http,
            timeout=settings.http_timeout_seconds,
        )
        integrations = {}
        for name in settings.service_names:
            context = IntegrationContext(
                name=name, settings=settings, http=http, store=payment_store, callback=callback
            )
            integrations[name] = load_integration(context)
    for name, integration in integrations.items():
        registry.register(name, integration)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        trace_id_ctx.set(request.headers.get("x-trace-id") or str(uuid4()))
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(route=route, method=method).observe(elapsed)
            http_requests_total.labels(route=route, method=method, status_code=str(status_code)).inc()

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(_: Request, exc: GatewayError):
        if exc.status_code >= 500:
            logger.error("request failed: %s", exc.message)
        else:
            logger.warning("request rejected: %s", exc.message)
        return error_response(exc.status_code, exc.message)

    @app.post("/service/{service_name}/init")
    async def init_payment(service_name: str, request: Request):
        """Authenticate a store request and hand it to the named integration."""

        raw_body = await request.body()
        handler = mediator.authenticate_and_dispatch(service_name, raw_body, request.headers)
        if isinstance(handler, Rejection):
            return JSONResponse(status_code=handler.status, content=handler.body())
        try:
            payload = json.loads(raw_body)
        except ValueError as exc:
            raise InvalidRequestError("request body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise InvalidRequestError("request body must be a JSON object")
        try:
            data = await handler(payload)
        except GatewayError:
            raise
        except Exception:
            logger.exception("service %s failed to handle request", service_name)
            return error_response(500, "Internal server error.")
        return {"success": True, "data": data}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True, "services": registry.names()}

    return app
