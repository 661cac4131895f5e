import html
from urllib.parse import quote

from loguru import logger

from storefront_proxy.domain.customer import (
    CustomerAccessToken,
    LoginResult,
    Order,
    RegistrationResult,
    SessionClaims,
)
from storefront_proxy.domain.errors import AuthError, MissingDataError, NotFoundError
from storefront_proxy.domain.interfaces import IEmailSender
from storefront_proxy.infrastructure.customer_repository import CustomerRepository
from storefront_proxy.shared.decorators import error_context, log_errors

from .session_tokens import EMAIL_VERIFICATION, SessionTokenIssuer
from .validation import require_fields

VERIFIED_TAG = "verified"

_VERIFY_SUBJECT = "Please verify your email address"
_RESEND_SUBJECT = "Resent: please verify your email address"

_VERIFY_BODY = """
  <p>Hi {name},</p>
  <p>{intro}</p>
  <p><a href="{url}">Verify email</a></p>
  <p>This link is valid for {days} days.</p>
"""


class CustomerService:
    """Customer authentication, registration, order history and e-mail verification."""

    def __init__(
        self,
        repository: CustomerRepository,
        tokens: SessionTokenIssuer,
        email_sender: IEmailSender,
        verify_email_url: str,
    ) -> None:
        self._repository = repository
        self._tokens = tokens
        self._email_sender = email_sender
        self._verify_email_url = verify_email_url

    @log_errors
    def authenticate_customer(self, email: str, password: str) -> CustomerAccessToken:
        """Exchange credentials for an upstream customer access token.

        Raises:
            ValidationError: email or password missing.
            UserInputError: Shopify rejected the credentials with ``customerUserErrors``.
            AuthError: Shopify returned neither a token nor an error.
        """
        return self._authenticate(email, password)

    @log_errors
    def login(self, email: str, password: str) -> LoginResult:
        """Authenticate, fetch the profile, and issue a session token.

        The profile lookup depends on the access token from the first call,
        so the two upstream calls always run in order.
        """
        access = self._authenticate(email, password)

        with error_context("login", email=email):
            customer = self._repository.get_customer(access.access_token)
            if customer is None:
                raise MissingDataError("Failed to fetch customer data")

        session = self._tokens.issue(
            SessionClaims(
                id=customer.id,
                email=customer.email,
                first_name=customer.first_name,
                last_name=customer.last_name,
                customer_access_token=access.access_token,
            )
        )
        logger.info(f"[Customer] {customer.id} logged in")
        return LoginResult(customer=customer, session=session, customer_access_token=access)

    @log_errors
    def create_customer(self, first_name: str, last_name: str, email: str, password: str) -> RegistrationResult:
        require_fields(firstName=first_name, lastName=last_name, email=email, password=password)

        with error_context("createCustomer", email=email):
            customer = self._repository.create_customer(first_name, last_name, email, password)

        session = self._tokens.issue(
            SessionClaims(
                id=customer.id,
                email=customer.email,
                first_name=customer.first_name,
                last_name=customer.last_name,
            )
        )
        logger.info(f"[Customer] registered {customer.id}")
        return RegistrationResult(customer=customer, session=session)

    def _authenticate(self, email: str, password: str) -> CustomerAccessToken:
        require_fields(email=email, password=password)
        with error_context("authenticateCustomer", email=email):
            token = self._repository.create_access_token(email, password)
            if token is None:
                raise AuthError("Authentication failed")
        return token

    @log_errors
    def list_customer_orders(self, customer_access_token: str) -> list[Order]:
        require_fields(customerAccessToken=customer_access_token)

        with error_context("listCustomerOrders"):
            orders = self._repository.list_orders(customer_access_token)
            if orders is None:
                raise NotFoundError("Customer not found or invalid token")
        return orders

    @log_errors
    def send_verification_email(
        self,
        email: str,
        customer_id: str,
        first_name: str | None = None,
        *,
        resend: bool = False,
    ) -> None:
        """E-mail a link carrying a signed verification token."""
        require_fields(email=email, customerId=customer_id)

        issued = self._tokens.issue(SessionClaims(id=customer_id, email=email, purpose=EMAIL_VERIFICATION))
        separator = "&" if "?" in self._verify_email_url else "?"
        url = f"{self._verify_email_url}{separator}token={quote(issued.token)}"
        intro = (
            "You asked us to resend the verification email. Please click the link below to verify your address:"
            if resend
            else "Please click the link below to verify your email address:"
        )
        body = _VERIFY_BODY.format(
            name=html.escape(first_name or ""),
            intro=intro,
            url=html.escape(url, quote=True),
            days=self._tokens.ttl_seconds // 86400,
        )

        with error_context("sendVerificationEmail", customer_id=customer_id):
            self._email_sender.send(to=email, subject=_RESEND_SUBJECT if resend else _VERIFY_SUBJECT, html=body)
        logger.info(f"[Customer] verification email {'re' if resend else ''}sent for {customer_id}")

    @log_errors
    def verify_email(self, token: str) -> str:
        """Tag the customer named in a verification token as ``verified``.

        Returns the customer id. Re-verifying is a no-op.

        Raises:
            AuthError: token invalid, expired, or not a verification token.
            NotFoundError: the customer no longer exists.
        """
        require_fields(token=token)
        claims = self._tokens.verify(token, purpose=EMAIL_VERIFICATION)

        with error_context("verifyEmail", customer_id=claims.id):
            tags = self._repository.get_customer_tags(claims.id)
            if tags is None:
                raise NotFoundError("Customer not found")
            if VERIFIED_TAG not in tags:
                self._repository.set_customer_tags(claims.id, [*tags, VERIFIED_TAG])
                logger.info(f"[Customer] {claims.id} verified")
        return claims.id
