from storefront_proxy.domain.cart import (
    Cart,
    CartCost,
    CartLine,
    Merchandise,
    Money,
    normalize_id,
)
from storefront_proxy.domain.errors import MissingDataError

from .envelope import raise_for_user_errors
from .shopify_client import ShopifyGraphQLClient

CART_FIELDS = """
  fragment CartFields on Cart {
    id
    checkoutUrl
    cost {
      subtotalAmount { amount currencyCode }
      totalAmount { amount currencyCode }
    }
    lines(first: 50) {
      edges {
        node {
          id
          quantity
          merchandise {
            ... on ProductVariant {
              id
              title
            }
          }
        }
      }
    }
  }
"""

CART_CREATE = """
  mutation cartCreate($input: CartInput!) {
    cartCreate(input: $input) {
      cart { ...CartFields }
      userErrors { field message code }
    }
  }
""" + CART_FIELDS

CART_LINES_ADD = """
  mutation cartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {
    cartLinesAdd(cartId: $cartId, lines: $lines) {
      cart { ...CartFields }
      userErrors { field message code }
    }
  }
""" + CART_FIELDS

CART_LINES_UPDATE = """
  mutation cartLinesUpdate($cartId: ID!, $lines: [CartLineUpdateInput!]!) {
    cartLinesUpdate(cartId: $cartId, lines: $lines) {
      cart { ...CartFields }
      userErrors { field message code }
    }
  }
""" + CART_FIELDS

CART_LINES_REMOVE = """
  mutation cartLinesRemove($cartId: ID!, $lineIds: [ID!]!) {
    cartLinesRemove(cartId: $cartId, lineIds: $lineIds) {
      cart { ...CartFields }
      userErrors { field message code }
    }
  }
""" + CART_FIELDS

GET_CART = """
  query getCart($id: ID!) {
    cart(id: $id) { ...CartFields }
  }
""" + CART_FIELDS


class CartRepository:
    """Cart operations against the Shopify Storefront GraphQL API."""

    def __init__(self, client: ShopifyGraphQLClient) -> None:
        self._client = client

    def create_cart_with_item(self, merchandise_id: str, quantity: int) -> Cart:
        variables = {"input": {"lines": [{"merchandiseId": merchandise_id, "quantity": quantity}]}}
        data = self._client.execute(CART_CREATE, variables, operation="cartCreate")
        return self._mutation_cart(data, "cartCreate")

    def add_cart_line(self, cart_id: str, merchandise_id: str, quantity: int) -> Cart:
        variables = {
            "cartId": cart_id,
            "lines": [{"merchandiseId": merchandise_id, "quantity": quantity}],
        }
        data = self._client.execute(CART_LINES_ADD, variables, operation="cartLinesAdd")
        return self._mutation_cart(data, "cartLinesAdd")

    def update_cart_line(self, cart_id: str, line_id: str, quantity: int) -> Cart:
        variables = {"cartId": cart_id, "lines": [{"id": line_id, "quantity": quantity}]}
        data = self._client.execute(CART_LINES_UPDATE, variables, operation="cartLinesUpdate")
        return self._mutation_cart(data, "cartLinesUpdate")

    def remove_cart_line(self, cart_id: str, line_id: str) -> Cart:
        variables = {"cartId": cart_id, "lineIds": [line_id]}
        data = self._client.execute(CART_LINES_REMOVE, variables, operation="cartLinesRemove")
        return self._mutation_cart(data, "cartLinesRemove")

    def get_cart(self, cart_id: str) -> Cart | None:
        data = self._client.execute(GET_CART, {"id": cart_id}, operation="getCart", idempotent=True)
        node = data.get("cart")
        return self._map(node) if node else None

    def _mutation_cart(self, data: dict, field: str) -> Cart:
        payload = data.get(field)
        if payload is None:
            raise MissingDataError(f"Missing {field} in Shopify response", upstream=field)
        raise_for_user_errors(payload)
        if not payload.get("cart"):
            raise MissingDataError(f"{field} returned no cart", upstream=field)
        return self._map(payload["cart"])

    @staticmethod
    def _map(node: dict) -> Cart:
        """Map a raw ``Cart`` node to the domain model, normalizing every id."""
        cost: CartCost | None = None
        if raw_cost := node.get("cost"):
            cost = CartCost(
                subtotal_amount=Money(
                    amount=raw_cost["subtotalAmount"]["amount"],
                    currency_code=raw_cost["subtotalAmount"]["currencyCode"],
                )
                if raw_cost.get("subtotalAmount")
                else None,
                total_amount=Money(
                    amount=raw_cost["totalAmount"]["amount"],
                    currency_code=raw_cost["totalAmount"]["currencyCode"],
                )
                if raw_cost.get("totalAmount")
                else None,
            )

        lines = [
            CartLine(
                id=normalize_id(edge["node"]["id"]),
                quantity=edge["node"]["quantity"],
                merchandise=Merchandise(
                    id=normalize_id(edge["node"]["merchandise"]["id"]),
                    title=edge["node"]["merchandise"].get("title"),
                ),
            )
            for edge in (node.get("lines") or {}).get("edges", [])
        ]

        return Cart(
            id=normalize_id(node["id"]),
            checkout_url=node.get("checkoutUrl"),
            cost=cost,
            lines=lines,
        )
