"""Signed settlement callbacks from the gateway to the store."""

import json

import httpx

from paygate.common.errors import StoreCallbackError, UpstreamTimeoutError
from paygate.common.logging import logger
from paygate.common.metrics import store_callbacks_total
from paygate.common.signature import SIGNATURE_HEADER, require_secret, sign


def paid_body(store_transaction_id: str) -> str:
    """Compact JSON body the store expects for a paid transaction."""

    return json.dumps({"type": "paid", "transactionId": store_transaction_id}, separators=(",", ":"))


class StoreCallbackClient:
    """POSTs signed callbacks to a fixed store endpoint."""

    def __init__(self, url: str, secret: str, http: httpx.AsyncClient, timeout: float = 5.0) -> None:
        self.url = url
        self._secret = require_secret(secret)
        self.http = http
        self.timeout = timeout

    async def send_paid(self, store_transaction_id: str) -> None:
        raw_body = paid_body(store_transaction_id)
        headers = {
            SIGNATURE_HEADER: sign(raw_body, self._secret),
            "Content-Type": "application/json",
        }
        try:
            resp = await self.http.post(self.url, content=raw_body.encode("utf-8"), headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            store_callbacks_total.labels(outcome="timeout").inc()
            raise UpstreamTimeoutError(f"store callback timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            store_callbacks_total.labels(outcome="error").inc()
            raise StoreCallbackError(f"store callback failed: {exc}") from exc
        if resp.status_code >= 400:
            store_callbacks_total.labels(outcome="rejected").inc()
            raise StoreCallbackError(f"store rejected callback status={resp.status_code} body={resp.text}")
        store_callbacks_total.labels(outcome="sent").inc()
        logger.info("store callback sent transaction_id=%s", store_transaction_id)
