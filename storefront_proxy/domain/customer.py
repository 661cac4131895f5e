from datetime import datetime

from pydantic import Field

from .cart import CamelModel, Money


class Customer(CamelModel):
    """Customer profile as returned by the Storefront API."""

    id: str  # e.g. "gid://shopify/Customer/123"
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


class CustomerAccessToken(CamelModel):
    """Upstream credential returned by ``customerAccessTokenCreate``."""

    access_token: str
    expires_at: datetime


class SessionClaims(CamelModel):
    """Identity carried inside this service's own signed session token."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    customer_access_token: str | None = None
    purpose: str = "session"


class IssuedSession(CamelModel):
    token: str
    expires_in: int  # seconds


class LoginResult(CamelModel):
    customer: Customer
    session: IssuedSession
    customer_access_token: CustomerAccessToken


class RegistrationResult(CamelModel):
    customer: Customer
    session: IssuedSession


class OrderLineItem(CamelModel):
    title: str
    quantity: int


class Order(CamelModel):
    """A customer's order as listed by the Storefront API."""

    id: str
    order_number: int
    processed_at: datetime
    total_price: Money | None = None
    fulfillment_status: str | None = None  # e.g. "UNFULFILLED"
    financial_status: str | None = None  # e.g. "PAID"
    line_items: list[OrderLineItem] = Field(default_factory=list)
