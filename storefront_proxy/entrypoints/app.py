import httpx

from storefront_proxy.application.cart_service import CartService
from storefront_proxy.application.customer_service import CustomerService
from storefront_proxy.application.review_service import ReviewService
from storefront_proxy.application.session_tokens import SessionTokenIssuer
from storefront_proxy.domain.interfaces import IEmailSender
from storefront_proxy.infrastructure.cart_repository import CartRepository
from storefront_proxy.infrastructure.customer_repository import CustomerRepository
from storefront_proxy.infrastructure.email_sender import LoggingEmailSender, ResendEmailSender
from storefront_proxy.infrastructure.review_repository import ReviewRepository
from storefront_proxy.infrastructure.shopify_client import ShopifyGraphQLClient
from storefront_proxy.infrastructure.transport import HttpTransport

from .http import HandlerAdapter
from .routes import StorefrontRoutes
from .settings import Config

HTTP_TIMEOUT = 10.0


def create_app(config: Config, http_client: httpx.Client | None = None) -> HandlerAdapter:
    """Wire clients, repositories and services into a ready Handler Adapter.

    Pass ``http_client`` to swap the wire, e.g. an ``httpx.Client`` built on
    ``httpx.MockTransport`` in tests.
    """
    client = http_client or httpx.Client(timeout=HTTP_TIMEOUT)

    # --- Shopify layer ---
    transport = HttpTransport(client)
    retry = {"retry_attempts": config.READ_RETRY_ATTEMPTS, "retry_wait": config.READ_RETRY_WAIT}
    storefront = ShopifyGraphQLClient.storefront(
        transport, config.SHOPIFY_STORE_DOMAIN, config.SHOPIFY_API_VERSION, config.SHOPIFY_STOREFRONT_TOKEN, **retry
    )
    admin = ShopifyGraphQLClient.admin(
        transport, config.SHOPIFY_STORE_DOMAIN, config.SHOPIFY_API_VERSION, config.SHOPIFY_ADMIN_API_TOKEN, **retry
    )

    # --- E-mail ---
    email_sender: IEmailSender
    if config.RESEND_API_KEY:
        email_sender = ResendEmailSender(client, config.RESEND_API_KEY, config.FROM_EMAIL)
    else:
        email_sender = LoggingEmailSender()

    # --- Services ---
    tokens = SessionTokenIssuer(config.JWT_SECRET, config.SESSION_TOKEN_TTL_DAYS)
    routes = StorefrontRoutes(
        config,
        carts=CartService(CartRepository(storefront)),
        customers=CustomerService(
            CustomerRepository(storefront, admin),
            tokens,
            email_sender,
            config.VERIFY_EMAIL_URL,
        ),
        reviews=ReviewService(
            ReviewRepository(admin, config.REVIEWS_METAFIELD_NAMESPACE, config.REVIEWS_METAFIELD_KEY)
        ),
    )
    return HandlerAdapter(config, routes.table(), tokens)
