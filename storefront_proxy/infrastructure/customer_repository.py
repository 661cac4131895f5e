from storefront_proxy.domain.cart import Money
from storefront_proxy.domain.customer import (
    Customer,
    CustomerAccessToken,
    Order,
    OrderLineItem,
)
from storefront_proxy.domain.errors import MissingDataError

from .envelope import raise_for_user_errors
from .shopify_client import ShopifyGraphQLClient

ACCESS_TOKEN_CREATE = """
  mutation customerAccessTokenCreate($input: CustomerAccessTokenCreateInput!) {
    customerAccessTokenCreate(input: $input) {
      customerAccessToken {
        accessToken
        expiresAt
      }
      customerUserErrors { field message code }
    }
  }
"""

CUSTOMER_BY_TOKEN = """
  query customerByToken($customerAccessToken: String!) {
    customer(customerAccessToken: $customerAccessToken) {
      id
      firstName
      lastName
      email
    }
  }
"""

CUSTOMER_CREATE = """
  mutation customerCreate($input: CustomerCreateInput!) {
    customerCreate(input: $input) {
      customer {
        id
        firstName
        lastName
        email
      }
      customerUserErrors { field message code }
    }
  }
"""

CUSTOMER_ORDERS = """
  query customerOrders($customerAccessToken: String!, $first: Int!) {
    customer(customerAccessToken: $customerAccessToken) {
      orders(first: $first, reverse: true) {
        edges {
          node {
            id
            orderNumber
            processedAt
            totalPrice { amount currencyCode }
            fulfillmentStatus
            financialStatus
            lineItems(first: 5) {
              edges {
                node {
                  title
                  quantity
                }
              }
            }
          }
        }
      }
    }
  }
"""

CUSTOMER_TAGS = """
  query getCustomerTags($id: ID!) {
    customer(id: $id) {
      id
      tags
    }
  }
"""

CUSTOMER_UPDATE_TAGS = """
  mutation updateCustomerTags($id: ID!, $tags: [String!]!) {
    customerUpdate(input: {id: $id, tags: $tags}) {
      customer {
        id
        tags
      }
      userErrors { field message }
    }
  }
"""


class CustomerRepository:
    """Customer operations.

    Authentication, registration and order history go through the Storefront
    API; tag management needs the Admin API.
    """

    # Orders per page shown in the account view
    ORDERS_PAGE_SIZE = 10

    def __init__(self, storefront: ShopifyGraphQLClient, admin: ShopifyGraphQLClient) -> None:
        self._storefront = storefront
        self._admin = admin

    def create_access_token(self, email: str, password: str) -> CustomerAccessToken | None:
        """Exchange credentials for an upstream customer access token.

        Returns ``None`` when Shopify answers without a token and without errors.

        Raises:
            UserInputError: Shopify reported ``customerUserErrors``.
        """
        data = self._storefront.execute(
            ACCESS_TOKEN_CREATE,
            {"input": {"email": email, "password": password}},
            operation="customerAccessTokenCreate",
        )
        payload = self._payload(data, "customerAccessTokenCreate")
        raise_for_user_errors(payload, "customerUserErrors")
        if not (raw := payload.get("customerAccessToken")):
            return None
        return CustomerAccessToken(access_token=raw["accessToken"], expires_at=raw["expiresAt"])

    def get_customer(self, customer_access_token: str) -> Customer | None:
        data = self._storefront.execute(
            CUSTOMER_BY_TOKEN,
            {"customerAccessToken": customer_access_token},
            operation="customer",
            idempotent=True,
        )
        node = data.get("customer")
        return self._map_customer(node) if node else None

    def create_customer(self, first_name: str, last_name: str, email: str, password: str) -> Customer:
        variables = {
            "input": {
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "password": password,
            }
        }
        data = self._storefront.execute(CUSTOMER_CREATE, variables, operation="customerCreate")
        payload = self._payload(data, "customerCreate")
        raise_for_user_errors(payload, "customerUserErrors")
        if not payload.get("customer"):
            raise MissingDataError("customerCreate returned no customer", upstream="customerCreate")
        return self._map_customer(payload["customer"])

    def list_orders(self, customer_access_token: str) -> list[Order] | None:
        """Return the customer's orders, newest first, or ``None`` for an unknown token."""
        data = self._storefront.execute(
            CUSTOMER_ORDERS,
            {"customerAccessToken": customer_access_token, "first": self.ORDERS_PAGE_SIZE},
            operation="customerOrders",
            idempotent=True,
        )
        customer = data.get("customer")
        if customer is None:
            return None
        return [self._map_order(edge["node"]) for edge in customer["orders"]["edges"]]

    def get_customer_tags(self, customer_id: str) -> list[str] | None:
        data = self._admin.execute(
            CUSTOMER_TAGS, {"id": customer_id}, operation="getCustomerTags", idempotent=True
        )
        node = data.get("customer")
        return list(node.get("tags") or []) if node else None

    def set_customer_tags(self, customer_id: str, tags: list[str]) -> list[str]:
        data = self._admin.execute(
            CUSTOMER_UPDATE_TAGS, {"id": customer_id, "tags": tags}, operation="customerUpdate"
        )
        payload = self._payload(data, "customerUpdate")
        raise_for_user_errors(payload)
        return list((payload.get("customer") or {}).get("tags") or tags)

    @staticmethod
    def _payload(data: dict, field: str) -> dict:
        payload = data.get(field)
        if payload is None:
            raise MissingDataError(f"Missing {field} in Shopify response", upstream=field)
        return payload

    @staticmethod
    def _map_customer(node: dict) -> Customer:
        return Customer(
            id=node["id"],
            first_name=node.get("firstName"),
            last_name=node.get("lastName"),
            email=node.get("email"),
        )

    @staticmethod
    def _map_order(node: dict) -> Order:
        """Map a raw GraphQL order node to an ``Order`` domain object."""
        total: Money | None = None
        if raw := node.get("totalPrice"):
            total = Money(amount=raw["amount"], currency_code=raw["currencyCode"])

        return Order(
            id=node["id"],
            order_number=node["orderNumber"],
            processed_at=node["processedAt"],
            total_price=total,
            fulfillment_status=node.get("fulfillmentStatus"),
            financial_status=node.get("financialStatus"),
            line_items=[
                OrderLineItem(title=item["node"]["title"], quantity=item["node"]["quantity"])
                for item in (node.get("lineItems") or {}).get("edges", [])
            ],
        )
