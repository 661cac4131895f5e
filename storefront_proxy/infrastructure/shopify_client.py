from loguru import logger

from storefront_proxy.domain.errors import StorefrontError
from storefront_proxy.shared.retry import read_retry

from .envelope import decode_envelope
from .transport import HttpTransport

STOREFRONT_TOKEN_HEADER = "X-Shopify-Storefront-Access-Token"
ADMIN_TOKEN_HEADER = "X-Shopify-Access-Token"


class ShopifyGraphQLClient:
    """Thin wrapper for the Shopify Storefront and Admin GraphQL APIs.

    The two APIs differ only in endpoint path and credential header, so one
    class serves both; use :meth:`storefront` or :meth:`admin` to build one.
    """

    def __init__(
        self,
        transport: HttpTransport,
        endpoint: str,
        token_header: str,
        access_token: str,
        retry_attempts: int = 3,
        retry_wait: float = 0.3,
    ) -> None:
        self._transport = transport
        self._endpoint = endpoint
        self._headers = {
            token_header: access_token,
            "Content-Type": "application/json",
        }
        self._read_retry = read_retry(retry_attempts, retry_wait)

    @classmethod
    def storefront(
        cls, transport: HttpTransport, store_domain: str, api_version: str, token: str, **kwargs
    ) -> "ShopifyGraphQLClient":
        endpoint = f"https://{store_domain}/api/{api_version}/graphql.json"
        return cls(transport, endpoint, STOREFRONT_TOKEN_HEADER, token, **kwargs)

    @classmethod
    def admin(
        cls, transport: HttpTransport, store_domain: str, api_version: str, token: str, **kwargs
    ) -> "ShopifyGraphQLClient":
        endpoint = f"https://{store_domain}/admin/api/{api_version}/graphql.json"
        return cls(transport, endpoint, ADMIN_TOKEN_HEADER, token, **kwargs)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def execute(
        self,
        query: str,
        variables: dict | None = None,
        *,
        operation: str,
        idempotent: bool = False,
    ) -> dict:
        """POST a GraphQL document and return the ``data`` payload.

        ``idempotent`` reads are retried on network failures and 5xx answers;
        mutations are sent exactly once.

        Raises:
            TransportError: network failure or non-2xx HTTP response.
            MalformedResponseError: body is not a JSON object.
            UpstreamGraphQLError: the response carries a top-level ``errors`` list.
            MissingDataError: the response has no ``data``.
        """
        payload: dict = {"query": query}
        if variables:
            payload["variables"] = variables

        send = self._read_retry(self._send) if idempotent else self._send
        try:
            return send(payload, operation)
        except StorefrontError as exc:
            exc.with_context(upstream=operation)
            raise

    def _send(self, payload: dict, operation: str) -> dict:
        logger.debug(f"[Shopify] {operation} -> {self._endpoint}")
        return decode_envelope(self._transport.post(self._endpoint, self._headers, payload))
