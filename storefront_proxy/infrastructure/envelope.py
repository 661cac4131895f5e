"""Classifies a raw Shopify GraphQL answer.

Checks run in a fixed order so every caller sees the same outcome:

1. non-2xx status      -> ``TransportError`` (body kept verbatim, not parsed)
2. body is not a JSON object -> ``MalformedResponseError``
3. non-empty ``errors``      -> ``UpstreamGraphQLError`` (even if ``data`` is set)
4. ``data`` absent or null   -> ``MissingDataError``
5. otherwise the ``data`` object is returned
"""

import json

from storefront_proxy.domain.errors import (
    MalformedResponseError,
    MissingDataError,
    TransportError,
    UpstreamGraphQLError,
    UserInputError,
    UserError,
)

from .transport import RawResponse


def _to_user_error(entry: object) -> UserError:
    if not isinstance(entry, dict):
        return UserError(message=str(entry))
    path = entry.get("field") or entry.get("path")
    extensions = entry.get("extensions")
    return UserError(
        field=[str(p) for p in path] if isinstance(path, list) else None,
        message=str(entry.get("message") or "Unknown GraphQL error"),
        code=entry.get("code") or (extensions.get("code") if isinstance(extensions, dict) else None),
    )


def decode_envelope(raw: RawResponse) -> dict:
    """Return the ``data`` object of a successful GraphQL response.

    Raises:
        TransportError: status outside 2xx.
        MalformedResponseError: body is not a JSON object.
        UpstreamGraphQLError: top-level ``errors`` is non-empty.
        MissingDataError: no ``data`` in an otherwise valid envelope.
    """
    if not raw.is_success:
        raise TransportError(raw.status, raw.body)

    try:
        body = json.loads(raw.body)
    except ValueError as exc:
        raise MalformedResponseError(f"Response is not JSON: {exc}", body=raw.body) from exc

    if not isinstance(body, dict):
        raise MalformedResponseError("Response is not a JSON object", body=raw.body)

    if errors := body.get("errors"):
        entries = errors if isinstance(errors, list) else [errors]
        raise UpstreamGraphQLError([_to_user_error(e) for e in entries])

    data = body.get("data")
    if data is None:
        raise MissingDataError("Missing data in Shopify response", body=raw.body)

    return data


def raise_for_user_errors(payload: dict, key: str = "userErrors") -> None:
    """Turn a mutation's ``userErrors``/``customerUserErrors`` list into ``UserInputError``."""
    if entries := payload.get(key):
        raise UserInputError([_to_user_error(e) for e in entries])
