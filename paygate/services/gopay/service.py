"""GoPay integration: payment-session creation and webhook reconciliation.

A store request becomes a GoPay payment; GoPay later calls the notification
route with the payment id, the integration re-reads the payment state and,
once it is `PAID`, forwards a signed callback to the store exactly once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from paygate.common.callback import StoreCallbackClient
from paygate.common.config import GoPaySettings, load_gopay_settings
from paygate.common.errors import GatewayError, InvalidRequestError, ProviderResponseError
from paygate.common.logging import integration_ctx, logger, transaction_id_ctx
from paygate.common.metrics import notifications_total, payment_sessions_active
from paygate.common.sessions import CREATED, PaymentSession, SessionTable, triggers_callback
from paygate.services.gopay.client import GoPayClient
from paygate.services.gopay.schemas import StoreInitRequest, StoreUser
from paygate.store.models import PaymentModel
from paygate.store.payment_store import PaymentStore


NOTIFICATION_PATH = "/notification"


@dataclass(frozen=True)
class PaymentCheckout:
    checkout_url: str
    provider_transaction_id: str


def to_minor_units(price: Decimal) -> int:
    """GoPay amounts are integers in hundredths of the currency unit."""

    return int((price * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def build_contact(user: StoreUser) -> dict[str, str]:
    """Payer contact with every missing field as an empty string."""

    street = " ".join(part for part in (user.billing_address_line_one, user.billing_address_line_two) if part)
    return {
        "first_name": user.first_name or "",
        "last_name": user.last_name or "",
        "email": user.email or "",
        "phone_number": "",
        "city": user.billing_city or "",
        "street": street,
        "postal_code": user.billing_zip_code or "",
        "country_code": user.billing_country.code if user.billing_country else "",
    }


class GoPayIntegration:
    """Holds GoPay credentials, the token cache and live payment sessions."""

    def __init__(
        self,
        name: str,
        settings: GoPaySettings,
        client: GoPayClient,
        callback: StoreCallbackClient,
        host_url: str,
        store: PaymentStore | None = None,
    ) -> None:
        self.name = name
        self.settings = settings
        self.client = client
        self.callback = callback
        self.host_url = host_url.rstrip("/")
        self.store = store
        self.sessions = SessionTable()
        self.log = logger.getChild(name)
        self._initialized = False

    @property
    def notification_url(self) -> str:
        return f"{self.host_url}/service/{self.name}{NOTIFICATION_PATH}"

    def init(self, router: APIRouter, log: logging.Logger) -> None:
        """Mount the provider notification route; later calls are no-ops."""

        if self._initialized:
            log.debug("service %s already initialized", self.name)
            return
        self.log = log
        router.add_api_route(NOTIFICATION_PATH, self.notification_route, methods=["GET"])
        self._initialized = True

    async def handle(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Validate a store init request and return the checkout URL."""

        try:
            request = StoreInitRequest.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRequestError(f"invalid payment request: {exc.error_count()} error(s)") from exc
        checkout = await self.create_payment(request)
        return {"url": checkout.checkout_url}

    def _payment_body(self, request: StoreInitRequest, instruments: list[str]) -> dict[str, Any]:
        amount = to_minor_units(request.package.price)
        payer: dict[str, Any] = {
            "allowed_payment_instruments": instruments,
            "default_payment_instrument": instruments[0],
            "contact": build_contact(request.user),
        }
        swifts = self.settings.swifts
        if swifts:
            payer["allowed_swifts"] = swifts
            payer["default_swift"] = swifts[0]
        goid = self.settings.goid
        return {
            "payer": payer,
            "target": {"type": "ACCOUNT", "goid": int(goid) if goid.isdigit() else goid},
            "items": [{"type": "ITEM", "name": request.package.name, "amount": amount}],
            "amount": amount,
            "currency": request.currency.upper(),
            "order_number": request.transaction_id,
            "order_description": "",
            "callback": {
                "return_url": request.webhook.success_url,
                "notification_url": self.notification_url,
            },
            "additional_params": [],
        }

    async def create_payment(self, request: StoreInitRequest) -> PaymentCheckout:
        """Create a GoPay payment and start tracking its session."""

        integration_ctx.set(self.name)
        transaction_id_ctx.set(request.transaction_id)
        currency = request.currency.upper()
        instruments = await self.client.fetch_payment_instruments(currency)
        if not instruments:
            raise ProviderResponseError(f"GoPay has no enabled payment instruments for {currency}")

        body = self._payment_body(request, instruments)
        response = await self.client.create_payment(body)
        provider_id = response.get("id")
        checkout_url = response.get("gw_url")
        if provider_id in (None, "") or not checkout_url:
            self.log.error("GoPay payment response is incomplete body=%s", response)
            raise ProviderResponseError("GoPay payment response is missing id or gw_url", body=str(response))

        session = PaymentSession(
            provider_transaction_id=str(provider_id),
            store_transaction_id=request.transaction_id,
            status=CREATED,
        )
        try:
            await self.sessions.add(session)
        except ValueError as exc:
            self.log.error("GoPay reused payment id %s already tracked", session.provider_transaction_id)
            raise ProviderResponseError(
                f"GoPay returned payment id {session.provider_transaction_id} that is already tracked",
                body=str(response),
            ) from exc
        payment_sessions_active.labels(service=self.name).set(len(self.sessions))
        self.log.info("payment created provider_id=%s", session.provider_transaction_id)
        self._save_model(
            PaymentModel(
                id=session.provider_transaction_id,
                service=self.name,
                store_transaction_id=session.store_transaction_id,
                status=session.status,
                amount=body["amount"],
                currency=currency,
            )
        )
        return PaymentCheckout(checkout_url=str(checkout_url), provider_transaction_id=session.provider_transaction_id)

    async def on_provider_notification(self, provider_transaction_id: str) -> PaymentSession | None:
        """Reconcile one payment with GoPay; return the session if it was known."""

        integration_ctx.set(self.name)
        state = await self.client.fetch_payment_state(provider_transaction_id)
        session = await self.sessions.apply_state(provider_transaction_id, state)
        payment_sessions_active.labels(service=self.name).set(len(self.sessions))
        if session is None:
            self.log.info("notification for unknown payment %s state=%s ignored", provider_transaction_id, state)
            notifications_total.labels(service=self.name, outcome="unknown").inc()
            return None

        transaction_id_ctx.set(session.store_transaction_id)
        self.log.info("payment %s is now %s", provider_transaction_id, state)
        self._update_model(provider_transaction_id, state)
        if triggers_callback(state):
            try:
                await self.callback.send_paid(session.store_transaction_id)
            except GatewayError as exc:
                notifications_total.labels(service=self.name, outcome="callback_lost").inc()
                self.log.error(
                    "callback_lost transaction_id=%s provider_id=%s: %s; the session is closed, replay by hand",
                    session.store_transaction_id,
                    provider_transaction_id,
                    exc.message,
                )
                raise
            notifications_total.labels(service=self.name, outcome="paid").inc()
        else:
            notifications_total.labels(service=self.name, outcome="updated").inc()
        return session

    async def notification_route(self, payment_id: str | None = Query(default=None, alias="id")) -> JSONResponse:
        if not payment_id:
            return JSONResponse(status_code=400, content={"success": False, "status": 400, "message": "Missing id."})
        try:
            await self.on_provider_notification(payment_id)
        except GatewayError as exc:
            notifications_total.labels(service=self.name, outcome="failed").inc()
            self.log.error("notification for payment %s failed: %s", payment_id, exc.message)
        except Exception:
            notifications_total.labels(service=self.name, outcome="failed").inc()
            self.log.exception("notification for payment %s failed", payment_id)
        return JSONResponse(status_code=200, content={"success": True})

    def _save_model(self, model: PaymentModel) -> None:
        if self.store is None:
            return
        try:
            self.store.save_payment_model(model)
        except Exception as exc:
            self.log.warning("payment_model_write_failed id=%s: %s", model.id, exc)

    def _update_model(self, provider_transaction_id: str, state: str) -> None:
        if self.store is None:
            return
        try:
            model = self.store.get_payment_model(provider_transaction_id)
        except Exception as exc:
            self.log.warning("payment_model_read_failed id=%s: %s", provider_transaction_id, exc)
            return
        if model is not None:
            updated_at = datetime.now(timezone.utc).isoformat()
            self._save_model(model.model_copy(update={"status": state, "updated_at": updated_at}))


def create_integration(context) -> GoPayIntegration:
    """Factory used by the registry loader."""

    settings = load_gopay_settings()
    client = GoPayClient(
        settings,
        context.http,
        timeout=context.settings.http_timeout_seconds,
        max_concurrency=context.settings.provider_max_concurrency,
        service=context.name,
    )
    return GoPayIntegration(
        name=context.name,
        settings=settings,
        client=client,
        callback=context.callback,
        host_url=context.settings.host_url,
        store=context.store,
    )
