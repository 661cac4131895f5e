from dataclasses import dataclass

import httpx

from storefront_proxy.domain.errors import TransportError


@dataclass(frozen=True)
class RawResponse:
    status: int
    body: str

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class HttpTransport:
    """Issues a single JSON POST and hands back the status and raw text.

    Non-2xx answers are returned, not raised; interpreting them is the
    envelope decoder's job. Only a failure to get any answer at all is
    raised, as ``TransportError`` without a status.
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def post(self, url: str, headers: dict[str, str], payload: dict) -> RawResponse:
        try:
            response = self._client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise TransportError(None, message=f"Could not reach {url}: {exc}") from exc
        return RawResponse(status=response.status_code, body=response.text)
