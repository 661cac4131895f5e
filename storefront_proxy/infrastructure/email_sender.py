import httpx
from loguru import logger

from storefront_proxy.domain.errors import TransportError


class ResendEmailSender:
    """Sends transactional e-mail through the Resend HTTP API."""

    SEND_PATH = "/emails"

    def __init__(
        self,
        client: httpx.Client,
        api_key: str,
        from_email: str,
        base_url: str = "https://api.resend.com",
    ) -> None:
        self._client = client
        self._endpoint = base_url.rstrip("/") + self.SEND_PATH
        self._from = from_email
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def send(self, *, to: str, subject: str, html: str) -> None:
        """POST one message to Resend.

        Raises:
            TransportError: on network failures and non-2xx HTTP responses.
        """
        payload = {"from": self._from, "to": [to], "subject": subject, "html": html}
        try:
            response = self._client.post(self._endpoint, headers=self._headers, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(None, message=f"Could not reach Resend: {exc}", operation="sendEmail") from exc

        if not response.is_success:
            raise TransportError(
                response.status_code,
                response.text,
                message=f"Resend API error {response.status_code}",
                operation="sendEmail",
            )

        logger.info(f"[Email] '{subject}' sent to {to} ({response.status_code})")


class LoggingEmailSender:
    """Development sender: logs the message instead of delivering it."""

    def send(self, *, to: str, subject: str, html: str) -> None:
        logger.info(f"[Email] MOCK send to {to} | {subject}\n{html}")
