from typing import Protocol

from .cart import Cart
from .customer import LoginResult, Order, RegistrationResult, SessionClaims
from .review import Review, ReviewList, ReviewsWritten


class IEmailSender(Protocol):
    def send(self, *, to: str, subject: str, html: str) -> None: ...


class ICartService(Protocol):
    def create_cart_with_item(self, merchandise_id: str, quantity: int) -> Cart: ...

    def add_cart_line(self, cart_id: str, merchandise_id: str, quantity: int) -> Cart: ...

    def update_cart_line(self, cart_id: str, line_id: str, quantity: int) -> Cart: ...

    def remove_cart_line(self, cart_id: str, line_id: str) -> Cart: ...

    def get_cart(self, cart_id: str) -> Cart | None: ...


class ICustomerService(Protocol):
    def login(self, email: str, password: str) -> LoginResult: ...

    def create_customer(
        self, first_name: str, last_name: str, email: str, password: str
    ) -> RegistrationResult: ...

    def list_customer_orders(self, customer_access_token: str) -> list[Order]: ...

    def send_verification_email(
        self, email: str, customer_id: str, first_name: str | None = None, *, resend: bool = False
    ) -> None: ...

    def verify_email(self, token: str) -> str: ...


class IReviewService(Protocol):
    def read_reviews(self, product_id: str) -> ReviewList: ...

    def write_reviews(
        self, product_id: str, reviews: list[Review], compare_digest: str | None = None
    ) -> ReviewsWritten: ...

    def seed_reviews(self, product_id: str) -> int: ...


class ISessionTokens(Protocol):
    def verify(self, token: str, purpose: str = "session") -> SessionClaims: ...
