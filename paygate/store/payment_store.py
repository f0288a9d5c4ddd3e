"""Pluggable payment-record persistence.

Data sources register under a name and are picked by the `DATA_SOURCE`
setting. Nothing in the payment flow depends on a store being durable:
callers treat every store error as loggable, not fatal.
"""

import json
import threading
from pathlib import Path
from typing import Callable, Protocol

from sqlalchemy import select

from paygate.common.config import GatewaySettings
from paygate.common.db import make_session_factory
from paygate.common.errors import ConfigurationError
from paygate.common.logging import logger
from paygate.store.models import PaymentModel, PaymentRecord


class PaymentStore(Protocol):
    def save_payment_model(self, model: PaymentModel) -> None: ...

    def get_payment_model(self, provider_transaction_id: str) -> PaymentModel | None: ...


class MemoryPaymentStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self.payment_models: dict[str, PaymentModel] = {}

    def save_payment_model(self, model: PaymentModel) -> None:
        self.payment_models[model.id] = model

    def get_payment_model(self, provider_transaction_id: str) -> PaymentModel | None:
        return self.payment_models.get(provider_transaction_id)


class JsonPaymentStore:
    """Whole-document JSON file, rewritten on every save."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.payment_models: dict[str, PaymentModel] = {}
        self._lock = threading.Lock()
        if self.path.exists():
            document = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            for key, raw in document.get("paymentModels", {}).items():
                self.payment_models[key] = PaymentModel(**raw)

    def save_payment_model(self, model: PaymentModel) -> None:
        with self._lock:
            self.payment_models[model.id] = model
            document = {"paymentModels": {key: m.model_dump() for key, m in self.payment_models.items()}}
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(document), encoding="utf-8")
            tmp.replace(self.path)

    def get_payment_model(self, provider_transaction_id: str) -> PaymentModel | None:
        return self.payment_models.get(provider_transaction_id)


class SqlPaymentStore:
    """`payment_models` table behind a SQLAlchemy session factory."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def save_payment_model(self, model: PaymentModel) -> None:
        with self.session_factory() as db:
            row = db.get(PaymentRecord, model.id)
            if row is None:
                row = PaymentRecord(id=model.id)
                db.add(row)
            row.service = model.service
            row.store_transaction_id = model.store_transaction_id
            row.status = model.status
            row.amount = model.amount
            row.currency = model.currency
            db.commit()

    def get_payment_model(self, provider_transaction_id: str) -> PaymentModel | None:
        with self.session_factory() as db:
            row = db.execute(
                select(PaymentRecord).where(PaymentRecord.id == provider_transaction_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return PaymentModel(
                id=row.id,
                service=row.service,
                store_transaction_id=row.store_transaction_id,
                status=row.status,
                amount=row.amount,
                currency=row.currency,
                updated_at=row.updated_at.isoformat() if row.updated_at else "",
            )


def _sql_store(settings: GatewaySettings) -> SqlPaymentStore:
    if not settings.database_dsn:
        raise ConfigurationError("DATABASE_DSN is required for the sql data source")
    return SqlPaymentStore(make_session_factory(settings.database_dsn))


DATA_SOURCES: dict[str, Callable[[GatewaySettings], PaymentStore]] = {}


def register_data_source(name: str, factory: Callable[[GatewaySettings], PaymentStore]) -> None:
    DATA_SOURCES[name] = factory


def get_payment_store(settings: GatewaySettings) -> PaymentStore:
    """Build the configured data source."""

    factory = DATA_SOURCES.get(settings.data_source)
    if factory is None:
        raise ConfigurationError(f"unknown data source type: {settings.data_source}")
    store = factory(settings)
    logger.info("initialized %s as data source", settings.data_source)
    return store


register_data_source("memory", lambda _settings: MemoryPaymentStore())
register_data_source("json", lambda settings: JsonPaymentStore(settings.json_store_path))
register_data_source("sql", _sql_store)
