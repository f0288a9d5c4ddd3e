"""Name-keyed registry of provider integrations and their routers."""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

import httpx
from fastapi import APIRouter

from paygate.common.callback import StoreCallbackClient
from paygate.common.config import GatewaySettings
from paygate.common.errors import ConfigurationError, NotFoundError
from paygate.common.logging import logger
from paygate.store.payment_store import PaymentStore


Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class ServiceIntegration(Protocol):
    """Capabilities every provider integration exposes to the gateway."""

    name: str

    def init(self, router: APIRouter, logger: logging.Logger) -> None: ...

    async def handle(self, payload: dict[str, Any]) -> dict[str, Any]: ...


@dataclass
class IntegrationContext:
    """Shared collaborators handed to an integration factory."""

    name: str
    settings: GatewaySettings
    http: httpx.AsyncClient
    store: PaymentStore
    callback: StoreCallbackClient


def load_integration(context: IntegrationContext) -> ServiceIntegration:
    """Import `paygate.services.<name>.service` and build its integration."""

    module_name = f"paygate.services.{context.name}.service"
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as exc:
        if exc.name is not None and module_name.startswith(exc.name):
            raise ConfigurationError(f"unknown service: {context.name}") from exc
        raise
    factory = getattr(module, "create_integration", None)
    if factory is None:
        raise ConfigurationError(f"service {context.name} has no create_integration factory")
    return factory(context)


class ServiceRegistry:
    """Owns registered integrations for the process lifetime.

    `mount` receives each integration's router once `init` has populated it,
    and is responsible for exposing it under `/service/{name}`.
    """

    def __init__(self, mount: Callable[[str, APIRouter], None], log: logging.Logger | None = None) -> None:
        self._services: dict[str, ServiceIntegration] = {}
        self._mount = mount
        self._logger = log or logger

    def register(self, name: str, integration: ServiceIntegration) -> None:
        self._logger.info("registering service %s", name)
        if name in self._services:
            self._logger.warning("service %s already registered; replacing it", name)
        self._services[name] = integration
        router = APIRouter()
        integration.init(router, self._logger.getChild(name))
        self._mount(name, router)
        self._logger.info("%s registered", name)

    def resolve(self, name: str) -> ServiceIntegration:
        integration = self.get(name)
        if integration is None:
            raise NotFoundError("Service not found.")
        return integration

    def get(self, name: str) -> ServiceIntegration | None:
        return self._services.get(name)

    def names(self) -> list[str]:
        return list(self._services)

    def __contains__(self, name: str) -> bool:
        return name in self._services
