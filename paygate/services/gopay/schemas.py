"""Store request payloads accepted by the GoPay integration."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class StoreModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BillingCountry(StoreModel):
    code: str = ""


class StoreUser(StoreModel):
    """Customer fields; everything is optional on the store side."""

    email: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    billing_city: str | None = Field(default=None, alias="billingCity")
    billing_address_line_one: str | None = Field(default=None, alias="billingAddressLineOne")
    billing_address_line_two: str | None = Field(default=None, alias="billingAddressLineTwo")
    billing_zip_code: str | None = Field(default=None, alias="billingZipCode")
    billing_country: BillingCountry | None = Field(default=None, alias="billingCountry")


class StorePackage(StoreModel):
    name: str = Field(min_length=1)
    price: Decimal = Field(gt=0)


class StoreWebhook(StoreModel):
    success_url: str = Field(alias="successUrl")


class StoreInitRequest(StoreModel):
    """Payment initiation sent by the store to `/service/{name}/init`."""

    transaction_id: str = Field(alias="transactionId", min_length=1)
    currency: str = Field(min_length=3, max_length=3)
    package: StorePackage
    user: StoreUser = Field(default_factory=StoreUser)
    webhook: StoreWebhook
