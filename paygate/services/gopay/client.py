"""GoPay REST client.

All calls share one `httpx.AsyncClient`, carry an explicit timeout and run
under a concurrency bound. Non-token calls are authenticated with the cached
bearer token.
"""

import asyncio
import json
import time
from typing import Any

import httpx

from paygate.common.config import GoPaySettings
from paygate.common.errors import ProviderAuthError, ProviderResponseError, UpstreamTimeoutError
from paygate.common.logging import logger
from paygate.common.metrics import provider_latency_seconds, provider_requests_total
from paygate.services.gopay.token_cache import ProviderToken, ProviderTokenCache


class GoPayClient:
    """Thin typed wrapper over the GoPay payments API."""

    def __init__(
        self,
        settings: GoPaySettings,
        http: httpx.AsyncClient,
        timeout: float = 5.0,
        max_concurrency: int = 50,
        clock=time.time,
        service: str = "gopay",
    ) -> None:
        self.settings = settings
        self.http = http
        self.timeout = timeout
        self.service = service
        self._clock = clock
        self._slots = asyncio.Semaphore(max_concurrency)
        self.tokens = ProviderTokenCache(
            self.fetch_token,
            skew_seconds=settings.token_skew_seconds,
            clock=clock,
            service=service,
        )

    def _url(self, path: str) -> str:
        return f"{self.settings.url}{path}"

    async def _send(self, endpoint: str, method: str, path: str, **kwargs) -> httpx.Response:
        """Issue one request with timeout, concurrency bound and metrics."""

        start = time.perf_counter()
        try:
            async with self._slots:
                resp = await self.http.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as exc:
            provider_requests_total.labels(service=self.service, endpoint=endpoint, outcome="timeout").inc()
            raise UpstreamTimeoutError(f"GoPay {endpoint} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            provider_requests_total.labels(service=self.service, endpoint=endpoint, outcome="error").inc()
            raise ProviderResponseError(f"GoPay {endpoint} request failed: {exc}") from exc
        finally:
            provider_latency_seconds.labels(service=self.service, endpoint=endpoint).observe(
                max(0.0, time.perf_counter() - start)
            )
        outcome = "ok" if resp.status_code < 400 else str(resp.status_code)
        provider_requests_total.labels(service=self.service, endpoint=endpoint, outcome=outcome).inc()
        return resp

    @staticmethod
    def _json(endpoint: str, resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("GoPay %s returned non-JSON body status=%s body=%s", endpoint, resp.status_code, resp.text)
            raise ProviderResponseError(
                f"GoPay {endpoint} returned a non-JSON body", body=resp.text, status=resp.status_code
            ) from exc
        if not isinstance(data, dict):
            raise ProviderResponseError(
                f"GoPay {endpoint} returned unexpected JSON", body=resp.text, status=resp.status_code
            )
        return data

    async def fetch_token(self) -> ProviderToken:
        """Client-credentials grant against the OAuth2 token endpoint."""

        try:
            resp = await self._send(
                "token",
                "POST",
                "/api/oauth2/token",
                data={"grant_type": "client_credentials", "scope": self.settings.scope},
                auth=(self.settings.client_id, self.settings.client_secret),
                headers={"Accept": "application/json"},
            )
        except ProviderResponseError as exc:
            raise ProviderAuthError(f"GoPay token request failed: {exc.message}") from exc
        if resp.status_code >= 400:
            logger.error("GoPay token request rejected status=%s body=%s", resp.status_code, resp.text)
            raise ProviderAuthError(f"GoPay token request rejected with status {resp.status_code}")
        try:
            data = self._json("token", resp)
        except ProviderResponseError as exc:
            raise ProviderAuthError("GoPay token response is not JSON") from exc

        access_token = data.get("access_token")
        expires_in = data.get("expires_in")
        if not isinstance(access_token, str) or not access_token:
            raise ProviderAuthError("GoPay token response is missing access_token")
        if not isinstance(expires_in, (int, float)) or isinstance(expires_in, bool) or expires_in <= 0:
            raise ProviderAuthError("GoPay token response is missing expires_in")
        return ProviderToken(value=access_token, expires_at=self._clock() + float(expires_in))

    async def _authorized(self, endpoint: str, method: str, path: str, **kwargs) -> dict[str, Any]:
        token = await self.tokens.get_valid_token()
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        headers.update(kwargs.pop("headers", {}))
        resp = await self._send(endpoint, method, path, headers=headers, **kwargs)
        if resp.status_code == 401:
            self.tokens.invalidate()
            raise ProviderAuthError(f"GoPay rejected bearer token on {endpoint}")
        if resp.status_code >= 400:
            logger.error("GoPay %s failed status=%s body=%s", endpoint, resp.status_code, resp.text)
            raise ProviderResponseError(
                f"GoPay {endpoint} failed with status {resp.status_code}", body=resp.text, status=resp.status_code
            )
        return self._json(endpoint, resp)

    async def fetch_payment_instruments(self, currency: str) -> list[str]:
        """Enabled payment instrument codes for `currency` on this e-shop."""

        data = await self._authorized(
            "payment_instruments",
            "GET",
            f"/api/eshops/eshop/{self.settings.goid}/payment-instruments/{currency.upper()}",
        )
        instruments = data.get("enabledPaymentInstruments")
        if not isinstance(instruments, list):
            logger.error("GoPay payment instruments response is incomplete body=%s", data)
            raise ProviderResponseError(
                "GoPay payment instruments response is missing enabledPaymentInstruments", body=json.dumps(data)
            )
        return [
            item["paymentInstrument"]
            for item in instruments
            if isinstance(item, dict) and item.get("paymentInstrument")
        ]

    async def create_payment(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._authorized(
            "create_payment",
            "POST",
            "/api/payments/payment",
            json=body,
            headers={"Content-Type": "application/json"},
        )

    async def fetch_payment_state(self, provider_transaction_id: str) -> str:
        data = await self._authorized("payment_status", "GET", f"/api/payments/payment/{provider_transaction_id}")
        state = data.get("state")
        if not isinstance(state, str) or not state:
            logger.error("GoPay payment status response is incomplete body=%s", data)
            raise ProviderResponseError("GoPay payment status response is missing state", body=json.dumps(data))
        return state
