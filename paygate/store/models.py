"""Payment record shapes.

`PaymentModel` is the portable record every data source stores;
`PaymentRecord` is its SQL table mapping.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field
from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from paygate.common.db import Base


class PaymentModel(BaseModel):
    """Best-effort record of one provider payment."""

    id: str
    service: str
    store_transaction_id: str
    status: str
    amount: int
    currency: str
    updated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class PaymentRecord(Base):
    """Row form of `PaymentModel` keyed by provider transaction id."""

    __tablename__ = "payment_models"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    service: Mapped[str] = mapped_column(String, index=True)
    store_transaction_id: Mapped[str] = mapped_column(String, index=True)
    status: Mapped[str] = mapped_column(String)
    amount: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(3))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
