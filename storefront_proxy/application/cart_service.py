from loguru import logger

from storefront_proxy.domain.cart import Cart
from storefront_proxy.infrastructure.cart_repository import CartRepository
from storefront_proxy.shared.decorators import error_context, log_errors

from .validation import require_id, require_quantity


class CartService:
    """Cart use cases.

    Inputs are validated and cart/line ids normalized before anything is sent
    upstream; invalid requests never reach Shopify.
    """

    def __init__(self, repository: CartRepository) -> None:
        self._repository = repository

    @log_errors
    def create_cart_with_item(self, merchandise_id: str, quantity: int) -> Cart:
        merchandise_id = require_id("merchandiseId", merchandise_id)
        quantity = require_quantity(quantity)

        with error_context("createCartWithItem", merchandise_id=merchandise_id):
            cart = self._repository.create_cart_with_item(merchandise_id, quantity)
        logger.info(f"[Cart] created {cart.id} with {merchandise_id} x{quantity}")
        return cart

    @log_errors
    def add_cart_line(self, cart_id: str, merchandise_id: str, quantity: int) -> Cart:
        cart_id = require_id("cartId", cart_id)
        merchandise_id = require_id("merchandiseId", merchandise_id)
        quantity = require_quantity(quantity)

        with error_context("addCartLine", cart_id=cart_id, merchandise_id=merchandise_id):
            cart = self._repository.add_cart_line(cart_id, merchandise_id, quantity)
        logger.info(f"[Cart] added {merchandise_id} x{quantity} to {cart.id}")
        return cart

    @log_errors
    def update_cart_line(self, cart_id: str, line_id: str, quantity: int) -> Cart:
        cart_id = require_id("cartId", cart_id)
        line_id = require_id("lineId", line_id)
        quantity = require_quantity(quantity)

        with error_context("updateCartLine", cart_id=cart_id, line_id=line_id):
            cart = self._repository.update_cart_line(cart_id, line_id, quantity)
        logger.info(f"[Cart] set line {line_id} of {cart.id} to x{quantity}")
        return cart

    @log_errors
    def remove_cart_line(self, cart_id: str, line_id: str) -> Cart:
        cart_id = require_id("cartId", cart_id)
        line_id = require_id("lineId", line_id)

        with error_context("removeCartLine", cart_id=cart_id, line_id=line_id):
            cart = self._repository.remove_cart_line(cart_id, line_id)
        logger.info(f"[Cart] removed line {line_id} from {cart.id}")
        return cart

    @log_errors
    def get_cart(self, cart_id: str) -> Cart | None:
        cart_id = require_id("cartId", cart_id)

        with error_context("getCart", cart_id=cart_id):
            return self._repository.get_cart(cart_id)
