"""Shared fixtures: an in-memory Shopify (Storefront + Admin) behind httpx.MockTransport."""

import hashlib
import json
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from storefront_proxy.entrypoints.app import create_app
from storefront_proxy.entrypoints.http import HandlerAdapter
from storefront_proxy.entrypoints.settings import Config

STORE_DOMAIN = "test-shop.myshopify.com"
ALLOWED_ORIGIN = "https://shop.example.com"
REVIEWS_PRODUCT = "gid://shopify/Product/42"

_OPERATION = re.compile(r"^\s*(?:query|mutation)\s+(\w+)")


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


class FakeShopify:
    """Just enough of Shopify's GraphQL APIs to drive the proxy end to end.

    Cart and line ids are handed out with a ``?key=`` suffix, like the real
    API, so id normalization is exercised.
    """

    def __init__(self) -> None:
        self.carts: dict[str, dict] = {}
        self.customers: dict[str, dict] = {}
        self.tokens: dict[str, str] = {}  # access token -> customer id
        self.metafields: dict[str, str] = {}  # product id -> JSON value
        self.products = {REVIEWS_PRODUCT}
        self.calls: list[dict] = []
        self.emails: list[dict] = []
        self.queued: list[httpx.Response] = []
        self._seq = 0

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def add_customer(
        self,
        email: str = "jane@example.com",
        password: str = "hunter22",
        first_name: str = "Jane",
        last_name: str = "Doe",
        tags: list[str] | None = None,
        orders: list[dict] | None = None,
    ) -> dict:
        customer_id = f"gid://shopify/Customer/{self._next()}"
        customer = {
            "id": customer_id,
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
            "password": password,
            "tags": list(tags or []),
            "orders": list(orders or []),
        }
        self.customers[customer_id] = customer
        return customer

    def queue(self, response: httpx.Response) -> None:
        """Answer the next request with ``response`` instead of the fake."""
        self.queued.append(response)

    def operations(self) -> list[str]:
        return [call["operation"] for call in self.calls]

    # ------------------------------------------------------------------
    # Wire
    # ------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        if request.url.host == "api.resend.com":
            self.emails.append(body)
            return httpx.Response(200, json={"id": f"email-{self._next()}"})

        operation = _OPERATION.match(body.get("query", "")).group(1)
        api = "admin" if "/admin/" in request.url.path else "storefront"
        self.calls.append(
            {"api": api, "operation": operation, "variables": body.get("variables", {}), "headers": request.headers}
        )
        if self.queued:
            return self.queued.pop(0)

        handler: Callable[[dict], dict] = getattr(self, f"_op_{operation}")
        return httpx.Response(200, json={"data": handler(body.get("variables", {}))})

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    # ------------------------------------------------------------------
    # Cart (Storefront API)
    # ------------------------------------------------------------------

    def _cart_node(self, cart: dict) -> dict:
        total = sum(line["quantity"] * 10 for line in cart["lines"])
        money = {"amount": f"{total}.0", "currencyCode": "EUR"}
        return {
            "id": f"{cart['id']}?key=secret",
            "checkoutUrl": f"https://{STORE_DOMAIN}/cart/c/{cart['id'].rsplit('/', 1)[-1]}",
            "cost": {"subtotalAmount": money, "totalAmount": money},
            "lines": {
                "edges": [
                    {
                        "node": {
                            "id": f"{line['id']}?cart=1",
                            "quantity": line["quantity"],
                            "merchandise": {"id": line["merchandiseId"], "title": "Velvet Chair"},
                        }
                    }
                    for line in cart["lines"]
                ]
            },
        }

    def _new_line(self, merchandise_id: str, quantity: int) -> dict:
        return {"id": f"gid://shopify/CartLine/{self._next()}", "merchandiseId": merchandise_id, "quantity": quantity}

    def _cart_result(self, cart: dict | None, error: str | None = None) -> dict:
        if error:
            return {"cart": None, "userErrors": [{"field": ["lines"], "message": error, "code": "INVALID"}]}
        return {"cart": self._cart_node(cart), "userErrors": []}

    def _op_cartCreate(self, variables: dict) -> dict:
        lines = variables["input"]["lines"]
        if any(not line["merchandiseId"].startswith("gid://shopify/ProductVariant/") for line in lines):
            return {"cartCreate": self._cart_result(None, "The merchandise with id does not exist.")}
        cart_id = f"gid://shopify/Cart/c{self._next()}"
        self.carts[cart_id] = {
            "id": cart_id,
            "lines": [self._new_line(line["merchandiseId"], line["quantity"]) for line in lines],
        }
        return {"cartCreate": self._cart_result(self.carts[cart_id])}

    def _op_cartLinesAdd(self, variables: dict) -> dict:
        cart = self.carts.get(variables["cartId"])
        if cart is None:
            return {"cartLinesAdd": self._cart_result(None, "The specified cart does not exist.")}
        for line in variables["lines"]:
            cart["lines"].append(self._new_line(line["merchandiseId"], line["quantity"]))
        return {"cartLinesAdd": self._cart_result(cart)}

    def _op_cartLinesUpdate(self, variables: dict) -> dict:
        cart = self.carts.get(variables["cartId"])
        if cart is None:
            return {"cartLinesUpdate": self._cart_result(None, "The specified cart does not exist.")}
        for update in variables["lines"]:
            for line in cart["lines"]:
                if line["id"] == update["id"]:
                    line["quantity"] = update["quantity"]
        return {"cartLinesUpdate": self._cart_result(cart)}

    def _op_cartLinesRemove(self, variables: dict) -> dict:
        cart = self.carts.get(variables["cartId"])
        if cart is None:
            return {"cartLinesRemove": self._cart_result(None, "The specified cart does not exist.")}
        cart["lines"] = [line for line in cart["lines"] if line["id"] not in variables["lineIds"]]
        return {"cartLinesRemove": self._cart_result(cart)}

    def _op_getCart(self, variables: dict) -> dict:
        cart = self.carts.get(variables["id"])
        return {"cart": self._cart_node(cart) if cart else None}

    # ------------------------------------------------------------------
    # Customers (Storefront API + Admin tags)
    # ------------------------------------------------------------------

    def _profile(self, customer: dict) -> dict:
        return {k: customer[k] for k in ("id", "firstName", "lastName", "email")}

    def _by_token(self, token: str) -> dict | None:
        customer_id = self.tokens.get(token)
        return self.customers.get(customer_id) if customer_id else None

    def _op_customerAccessTokenCreate(self, variables: dict) -> dict:
        credentials = variables["input"]
        for customer in self.customers.values():
            if customer["email"] == credentials["email"] and customer["password"] == credentials["password"]:
                token = f"cat-{self._next()}"
                self.tokens[token] = customer["id"]
                expires = (datetime.now(UTC) + timedelta(days=30)).isoformat()
                return {
                    "customerAccessTokenCreate": {
                        "customerAccessToken": {"accessToken": token, "expiresAt": expires},
                        "customerUserErrors": [],
                    }
                }
        return {
            "customerAccessTokenCreate": {
                "customerAccessToken": None,
                "customerUserErrors": [
                    {"field": ["input"], "message": "Unidentified customer", "code": "UNIDENTIFIED_CUSTOMER"}
                ],
            }
        }

    def _op_customerByToken(self, variables: dict) -> dict:
        customer = self._by_token(variables["customerAccessToken"])
        return {"customer": self._profile(customer) if customer else None}

    def _op_customerCreate(self, variables: dict) -> dict:
        data = variables["input"]
        if any(c["email"] == data["email"] for c in self.customers.values()):
            return {
                "customerCreate": {
                    "customer": None,
                    "customerUserErrors": [
                        {"field": ["input", "email"], "message": "Email has already been taken", "code": "TAKEN"}
                    ],
                }
            }
        customer = self.add_customer(data["email"], data["password"], data["firstName"], data["lastName"])
        return {"customerCreate": {"customer": self._profile(customer), "customerUserErrors": []}}

    def _op_customerOrders(self, variables: dict) -> dict:
        customer = self._by_token(variables["customerAccessToken"])
        if customer is None:
            return {"customer": None}
        orders = customer["orders"][: variables["first"]]
        return {"customer": {"orders": {"edges": [{"node": order} for order in orders]}}}

    def _op_getCustomerTags(self, variables: dict) -> dict:
        customer = self.customers.get(variables["id"])
        return {"customer": {"id": customer["id"], "tags": customer["tags"]} if customer else None}

    def _op_updateCustomerTags(self, variables: dict) -> dict:
        customer = self.customers[variables["id"]]
        customer["tags"] = list(variables["tags"])
        return {"customerUpdate": {"customer": {"id": customer["id"], "tags": customer["tags"]}, "userErrors": []}}

    # ------------------------------------------------------------------
    # Reviews metafield (Admin API)
    # ------------------------------------------------------------------

    def _op_productReviews(self, variables: dict) -> dict:
        product_id = variables["id"]
        if product_id not in self.products:
            return {"product": None}
        value = self.metafields.get(product_id)
        metafield = (
            {"id": f"gid://shopify/Metafield/{product_id.rsplit('/', 1)[-1]}", "value": value, "compareDigest": _digest(value)}
            if value is not None
            else None
        )
        return {"product": {"id": product_id, "metafield": metafield}}

    def _op_metafieldsSet(self, variables: dict) -> dict:
        entry = variables["metafields"][0]
        current = self.metafields.get(entry["ownerId"])
        expected = entry.get("compareDigest")
        if expected is not None and (current is None or _digest(current) != expected):
            return {
                "metafieldsSet": {
                    "metafields": [],
                    "userErrors": [
                        {
                            "field": ["metafields", "0"],
                            "message": "The resource has been updated since it was loaded.",
                            "code": "STALE_OBJECT",
                        }
                    ],
                }
            }
        self.metafields[entry["ownerId"]] = entry["value"]
        return {
            "metafieldsSet": {
                "metafields": [{"id": "gid://shopify/Metafield/1", "compareDigest": _digest(entry["value"])}],
                "userErrors": [],
            }
        }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_config(**overrides: Any) -> Config:
    settings: dict[str, Any] = {
        "SHOPIFY_STORE_DOMAIN": STORE_DOMAIN,
        "SHOPIFY_STOREFRONT_TOKEN": "storefront-token",
        "SHOPIFY_ADMIN_API_TOKEN": "admin-token",
        "JWT_SECRET": "test-secret-with-enough-entropy-123",
        "ALLOWED_ORIGINS": ALLOWED_ORIGIN,
        "REVIEWS_PRODUCT_ID": REVIEWS_PRODUCT,
        "READ_RETRY_WAIT": 0,
    }
    settings.update(overrides)
    return Config(_env_file=None, **settings)


def make_event(
    route: str,
    body: dict | str | None = None,
    method: str = "POST",
    headers: dict[str, str] | None = None,
    query: dict[str, str] | None = None,
) -> dict:
    """Build a Netlify/Lambda proxy event for ``/.netlify/functions/<route>``."""
    return {
        "httpMethod": method,
        "path": f"/.netlify/functions/{route}",
        "headers": {"origin": ALLOWED_ORIGIN, **(headers or {})},
        "queryStringParameters": query,
        "body": body if isinstance(body, str) or body is None else json.dumps(body),
        "isBase64Encoded": False,
    }


@pytest.fixture
def fake_shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def http_client(fake_shopify: FakeShopify) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(fake_shopify.handle))


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def app(config: Config, http_client: httpx.Client) -> HandlerAdapter:
    return create_app(config, http_client)
