"""End-to-end HTTP flow: signed store request, provider notification, store callback."""

import json

import pytest
from fastapi.testclient import TestClient

from paygate.common.signature import verify
from paygate.gateway.app import create_app
from paygate.store.payment_store import MemoryPaymentStore

from conftest import CHECKOUT_URL, SECRET, signed_headers, store_payload


class FailingIntegration:
    name = "broken"

    def init(self, router, logger) -> None:
        pass

    async def handle(self, payload):
        raise RuntimeError("integration bug")


@pytest.fixture
def client(settings, http, integration):
    app = create_app(settings, http_client=http, integrations={"gopay": integration})
    with TestClient(app) as test_client:
        yield test_client


def post_init(client, payload, headers=None, service="gopay"):
    raw = json.dumps(payload).encode()
    return client.post(f"/service/{service}/init", content=raw, headers=headers if headers is not None else signed_headers(raw))


def test_signed_request_returns_checkout_url(client, integration):
    """A correctly signed init request yields the provider checkout URL."""

    resp = post_init(client, store_payload())

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": {"url": CHECKOUT_URL}}
    assert integration.sessions.get("3000006529").store_transaction_id == "T1"


def test_missing_signature_is_rejected_before_provider(client, fake_gopay):
    """Unsigned requests must never reach the provider."""

    resp = post_init(client, store_payload(), headers={"Content-Type": "application/json"})

    assert resp.status_code == 403
    assert resp.json() == {"success": False, "status": 403, "message": "Invalid signature."}
    assert fake_gopay.calls == []


def test_tampered_body_is_rejected(client, fake_gopay):
    """A signature over a different body does not authorize this one."""

    raw = json.dumps(store_payload()).encode()
    tampered = raw.replace(b'"price": 10', b'"price": 1')
    resp = client.post("/service/gopay/init", content=tampered, headers=signed_headers(raw))
    assert resp.status_code == 403
    assert fake_gopay.calls == []


def test_unknown_service_is_404_without_enumeration(client, fake_gopay):
    """Unknown services answer 404 without listing the registered ones."""

    resp = post_init(client, store_payload(), service="stripe")

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "status": 404, "message": "Service not found."}
    assert "gopay" not in resp.json()["message"]
    assert fake_gopay.calls == []


def test_signed_non_json_body_is_400(client):
    """A signed body that is not JSON is a client error."""

    raw = b"not json"
    resp = client.post("/service/gopay/init", content=raw, headers=signed_headers(raw))
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_signed_invalid_payload_is_400(client, fake_gopay):
    """Schema violations are rejected before any provider call."""

    resp = post_init(client, {"transactionId": "T1"})
    assert resp.status_code == 400
    assert fake_gopay.calls == []


def test_provider_failure_surfaces_as_5xx(client, fake_gopay):
    """An incomplete provider response maps to 502."""

    fake_gopay.payment_response = {"gw_url": CHECKOUT_URL}
    resp = post_init(client, store_payload())
    assert resp.status_code == 502
    assert resp.json()["success"] is False


def test_reused_provider_id_is_json_502(client, fake_gopay, integration):
    """A provider id that is already tracked fails with the JSON error shape."""

    fake_gopay.payment_response = {"id": 1, "gw_url": CHECKOUT_URL}
    first = post_init(client, store_payload("T1"))
    second = post_init(client, store_payload("T2"))

    assert first.status_code == 200
    assert second.status_code == 502
    assert second.headers["content-type"].startswith("application/json")
    assert second.json()["success"] is False
    assert second.json()["status"] == 502
    assert integration.sessions.get("1").store_transaction_id == "T1"


def test_unexpected_integration_error_is_json_500(settings, http):
    """Unexpected integration exceptions still answer `{success, status, message}`."""

    app = create_app(settings, http_client=http, integrations={"broken": FailingIntegration()})
    raw = json.dumps(store_payload()).encode()
    with TestClient(app) as test_client:
        resp = test_client.post("/service/broken/init", content=raw, headers=signed_headers(raw))

    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/json")
    assert resp.json() == {"success": False, "status": 500, "message": "Internal server error."}
    assert "integration bug" not in resp.text


def test_paid_notification_calls_store_once(client, fake_gopay, integration):
    """Repeated PAID notifications produce exactly one signed store callback."""

    post_init(client, store_payload())
    fake_gopay.states["3000006529"] = "PAID"

    first = client.get("/service/gopay/notification", params={"id": "3000006529"})
    second = client.get("/service/gopay/notification", params={"id": "3000006529"})

    assert first.status_code == 200
    assert second.status_code == 200
    assert len(fake_gopay.callbacks) == 1
    callback = fake_gopay.callbacks[0]
    assert callback.content == b'{"type":"paid","transactionId":"T1"}'
    assert verify(callback.content, SECRET, callback.headers["x-signature"])
    assert "3000006529" not in integration.sessions


def test_pending_notification_does_not_call_store(client, fake_gopay, integration):
    """Intermediate provider states update the session without a callback."""

    post_init(client, store_payload())
    fake_gopay.states["3000006529"] = "PAYMENT_METHOD_CHOSEN"

    resp = client.get("/service/gopay/notification", params={"id": "3000006529"})

    assert resp.status_code == 200
    assert fake_gopay.callbacks == []
    assert integration.sessions.get("3000006529").status == "PAYMENT_METHOD_CHOSEN"


def test_notification_failures_are_swallowed(client, fake_gopay):
    """Provider lookup errors are logged and the webhook is still acknowledged."""

    resp = client.get("/service/gopay/notification", params={"id": "unknown-to-provider"})
    assert resp.status_code == 200
    assert fake_gopay.callbacks == []


def test_notification_without_id_is_400(client):
    """The provider webhook must carry a payment id."""

    resp = client.get("/service/gopay/notification")
    assert resp.status_code == 400


def test_health_and_metrics(client):
    """Health lists registered services and metrics are scrapeable."""

    assert client.get("/health").json() == {"ok": True, "services": ["gopay"]}
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "mediator_requests_total" in metrics.text


def test_injected_http_client_stays_open(settings, http, integration):
    """The app must not close an HTTP client it was handed."""

    app = create_app(settings, http_client=http, integrations={"gopay": integration})
    with TestClient(app):
        pass
    assert http.is_closed is False


def test_owned_http_client_is_closed_on_shutdown(settings):
    """The HTTP client created by the factory is closed with the app."""

    app = create_app(settings, integrations={})
    with TestClient(app):
        assert app.state.http.is_closed is False
    assert app.state.http.is_closed is True


def test_app_loads_enabled_services_from_environment(monkeypatch, settings, http):
    """Enabled services are imported by name and their routes mounted."""

    monkeypatch.setenv("GOPAY_URL", "https://gw.sandbox.gopay.com")
    monkeypatch.setenv("GOPAY_CLIENT_ID", "cid")
    monkeypatch.setenv("GOPAY_CLIENT_SECRET", "csecret")
    monkeypatch.setenv("GOPAY_GOID", "8123456789")

    app = create_app(settings, http_client=http, store=MemoryPaymentStore())

    assert app.state.registry.names() == ["gopay"]
    with TestClient(app) as test_client:
        notification = test_client.get("/service/gopay/notification")
        init = test_client.post("/service/gopay/init", content=b"{}")
    assert notification.status_code == 400
    assert notification.json()["message"] == "Missing id."
    assert init.status_code == 403
