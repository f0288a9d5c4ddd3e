"""Shared fixtures: settings, a fake GoPay + store transport, a wired integration."""

import json

import httpx
import pytest

from paygate.common.callback import StoreCallbackClient
from paygate.common.config import GatewaySettings, GoPaySettings
from paygate.common.signature import sign
from paygate.services.gopay.client import GoPayClient
from paygate.services.gopay.service import GoPayIntegration
from paygate.store.payment_store import MemoryPaymentStore


SECRET = "test-gateway-secret"
GOPAY_URL = "https://gw.sandbox.gopay.com"
STORE_CALLBACK_URL = "https://store.example/callback/custom"
HOST_URL = "https://gateway.example"
CHECKOUT_URL = "https://gw.sandbox.gopay.com/gw/v3/checkout-1"


class FakeGoPay:
    """In-process stand-in for the GoPay API and the store callback endpoint."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.token_calls = 0
        self.states: dict[str, str] = {}
        self.created: list[dict] = []
        self.callbacks: list[httpx.Request] = []
        self.next_payment_id = 3000006529
        self.payment_response: dict | None = None
        self.token_response: dict | None = None
        self.callback_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        if str(request.url) == STORE_CALLBACK_URL:
            self.callbacks.append(request)
            return httpx.Response(self.callback_status, json={"success": self.callback_status < 400})
        if path == "/api/oauth2/token":
            self.token_calls += 1
            body = self.token_response or {
                "token_type": "bearer",
                "access_token": f"token-{self.token_calls}",
                "expires_in": 1800,
            }
            return httpx.Response(200, json=body)
        if path.startswith("/api/eshops/eshop/"):
            return httpx.Response(
                200,
                json={
                    "groups": {},
                    "enabledPaymentInstruments": [
                        {"paymentInstrument": "PAYMENT_CARD"},
                        {"paymentInstrument": "BANK_ACCOUNT"},
                    ],
                },
            )
        if path == "/api/payments/payment" and request.method == "POST":
            self.created.append(json.loads(request.content))
            if self.payment_response is not None:
                return httpx.Response(200, json=self.payment_response)
            payment_id = self.next_payment_id
            self.next_payment_id += 1
            self.states[str(payment_id)] = "CREATED"
            return httpx.Response(200, json={"id": payment_id, "gw_url": CHECKOUT_URL, "state": "CREATED"})
        if path.startswith("/api/payments/payment/"):
            payment_id = path.rsplit("/", 1)[-1]
            if payment_id not in self.states:
                return httpx.Response(404, json={"errors": [{"error_name": "PAYMENT_NOT_FOUND"}]})
            return httpx.Response(200, json={"id": int(payment_id), "state": self.states[payment_id]})
        return httpx.Response(404, json={"error": "unexpected path"})

    def status_calls(self) -> int:
        return sum(1 for method, path in self.calls if method == "GET" and path.startswith("/api/payments/payment/"))


def signed_headers(raw_body: bytes | str, secret: str = SECRET) -> dict[str, str]:
    return {"X-Signature": sign(raw_body, secret), "Content-Type": "application/json"}


def store_payload(transaction_id: str = "T1") -> dict:
    return {
        "transactionId": transaction_id,
        "currency": "usd",
        "package": {"name": "VIP", "price": 10},
        "user": {"email": "a@b.com"},
        "webhook": {"successUrl": "https://s/ok"},
    }


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(
        gateway_secret_key=SECRET,
        host_url=HOST_URL,
        store_callback_url=STORE_CALLBACK_URL,
        enabled_services="gopay",
        data_source="memory",
        _env_file=None,
    )


@pytest.fixture
def gopay_settings() -> GoPaySettings:
    return GoPaySettings(
        url=GOPAY_URL,
        client_id="client-id",
        client_secret="client-secret",
        goid="8123456789",
        allowed_swifts="FIOBCZPP,GIBACZPX",
        _env_file=None,
    )


@pytest.fixture
def fake_gopay() -> FakeGoPay:
    return FakeGoPay()


@pytest.fixture
def http(fake_gopay) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_gopay.handler))


@pytest.fixture
def store() -> MemoryPaymentStore:
    return MemoryPaymentStore()


@pytest.fixture
def integration(gopay_settings, http, store) -> GoPayIntegration:
    return GoPayIntegration(
        name="gopay",
        settings=gopay_settings,
        client=GoPayClient(gopay_settings, http),
        callback=StoreCallbackClient(STORE_CALLBACK_URL, SECRET, http),
        host_url=HOST_URL,
        store=store,
    )
