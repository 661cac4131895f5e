from storefront_proxy.domain.cart import Cart
from storefront_proxy.domain.errors import AuthError, NotFoundError
from storefront_proxy.domain.interfaces import ICartService, ICustomerService, IReviewService

from .http import HttpRequest, HttpResponse, Route
from .settings import Config


def _cart_json(cart: Cart) -> dict:
    return cart.model_dump(mode="json", by_alias=True)


class StorefrontRoutes:
    """Maps each endpoint onto a service call and shapes the JSON it returns."""

    def __init__(
        self,
        config: Config,
        carts: ICartService,
        customers: ICustomerService,
        reviews: IReviewService,
    ) -> None:
        self._config = config
        self._carts = carts
        self._customers = customers
        self._reviews = reviews

    def table(self) -> list[Route]:
        post, get = ("POST",), ("GET",)
        return [
            # --- cart ---
            Route("add-to-cart", post, self.add_to_cart, ("merchandiseId", "quantity"), public=True),
            Route("update-cart", post, self.update_cart, ("cartId", "lineId", "quantity"), public=True),
            Route("remove-from-cart", post, self.remove_from_cart, ("cartId", "lineId"), public=True),
            Route("get-cart", post, self.get_cart, ("cartId",), public=True),
            # --- customer ---
            Route("login", post, self.login, ("email", "password")),
            Route("register", post, self.register, ("firstName", "lastName", "email", "password")),
            Route("get-orders", post, self.get_orders, session_optional=True),
            Route("send-email-verify", post, self.send_email_verify, ("email", "customerId")),
            Route("resend-verification", post, self.resend_verification, ("email", "customerId")),
            Route("verify-email", get, self.verify_email, ("token",)),
            # --- reviews ---
            Route("get-reviews", get, self.get_reviews, public=True),
            Route("seed-reviews", post, self.seed_reviews),
        ]

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def add_to_cart(self, request: HttpRequest) -> HttpResponse:
        """Create a cart holding the item, or add a line when ``cartId`` is given."""
        data = request.data
        if data.get("cartId"):
            cart = self._carts.add_cart_line(data["cartId"], data["merchandiseId"], data["quantity"])
        else:
            cart = self._carts.create_cart_with_item(data["merchandiseId"], data["quantity"])
        return HttpResponse.json({"cart": _cart_json(cart)})

    def update_cart(self, request: HttpRequest) -> HttpResponse:
        data = request.data
        cart = self._carts.update_cart_line(data["cartId"], data["lineId"], data["quantity"])
        return HttpResponse.json({"cart": _cart_json(cart)})

    def remove_from_cart(self, request: HttpRequest) -> HttpResponse:
        data = request.data
        cart = self._carts.remove_cart_line(data["cartId"], data["lineId"])
        return HttpResponse.json({"cart": _cart_json(cart)})

    def get_cart(self, request: HttpRequest) -> HttpResponse:
        cart = self._carts.get_cart(request.data["cartId"])
        if cart is None:
            raise NotFoundError("Cart not found", operation="getCart")
        return HttpResponse.json(_cart_json(cart))

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------

    def login(self, request: HttpRequest) -> HttpResponse:
        result = self._customers.login(request.data["email"], request.data["password"])
        return HttpResponse.json(
            {
                "message": "Login successful",
                "token": result.session.token,
                "expiresIn": result.session.expires_in,
                "customer": result.customer.model_dump(mode="json", by_alias=True),
            }
        )

    def register(self, request: HttpRequest) -> HttpResponse:
        data = request.data
        result = self._customers.create_customer(
            data["firstName"], data["lastName"], data["email"], data["password"]
        )
        return HttpResponse.json(
            {
                "message": "Customer created",
                "customer": result.customer.model_dump(mode="json", by_alias=True),
                "token": result.session.token,
            }
        )

    def get_orders(self, request: HttpRequest) -> HttpResponse:
        """List orders for the session's customer.

        The upstream access token comes from the bearer session when it has
        one, otherwise from a ``customerAccessToken`` body field.
        """
        access_token = (request.claims and request.claims.customer_access_token) or request.data.get(
            "customerAccessToken"
        )
        if not access_token:
            raise AuthError("Missing customer access token", operation="getOrders")

        orders = self._customers.list_customer_orders(access_token)
        return HttpResponse.json({"orders": [o.model_dump(mode="json", by_alias=True) for o in orders]})

    def send_email_verify(self, request: HttpRequest) -> HttpResponse:
        data = request.data
        self._customers.send_verification_email(data["email"], data["customerId"], data.get("firstName"))
        return HttpResponse.json({"message": "Verification email sent"})

    def resend_verification(self, request: HttpRequest) -> HttpResponse:
        data = request.data
        self._customers.send_verification_email(
            data["email"], data["customerId"], data.get("firstName"), resend=True
        )
        return HttpResponse.json({"message": "Verification email resent"})

    def verify_email(self, request: HttpRequest) -> HttpResponse:
        self._customers.verify_email(request.query["token"])
        return HttpResponse.redirect(self._config.VERIFY_REDIRECT_URL)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def get_reviews(self, request: HttpRequest) -> HttpResponse:
        product_id = request.query.get("productId") or self._config.REVIEWS_PRODUCT_ID
        listing = self._reviews.read_reviews(product_id)
        reviews = [
            {**review.model_dump(exclude_none=True), "date": review.display_date()}
            for review in listing.reviews
        ]
        return HttpResponse.json({"reviews": reviews})

    def seed_reviews(self, request: HttpRequest) -> HttpResponse:
        if not self._config.ENABLE_REVIEW_SEEDING:
            raise AuthError("Review seeding is disabled", forbidden=True, operation="seedReviews")
        product_id = request.data.get("productId") or self._config.REVIEWS_PRODUCT_ID
        added = self._reviews.seed_reviews(product_id)
        return HttpResponse.json({"success": True, "added": added})
