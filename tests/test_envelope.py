"""Tests for decode_envelope: the four-way classification of a Shopify answer."""

import json

import pytest

from storefront_proxy.domain.errors import (
    MalformedResponseError,
    MissingDataError,
    TransportError,
    UpstreamGraphQLError,
    UserInputError,
)
from storefront_proxy.infrastructure.envelope import decode_envelope, raise_for_user_errors
from storefront_proxy.infrastructure.transport import RawResponse


def _make_raw(body: object, status: int = 200) -> RawResponse:
    """Helper: wrap a JSON-able body (or a raw string) in a RawResponse."""
    return RawResponse(status=status, body=body if isinstance(body, str) else json.dumps(body))


# ---------------------------------------------------------------------------
# Success
# ---------------------------------------------------------------------------


def test_returns_data_object() -> None:
    data = decode_envelope(_make_raw({"data": {"cart": {"id": "gid://shopify/Cart/1"}}}))

    assert data == {"cart": {"id": "gid://shopify/Cart/1"}}


def test_empty_errors_list_is_not_an_error() -> None:
    assert decode_envelope(_make_raw({"data": {"cart": None}, "errors": []})) == {"cart": None}


# ---------------------------------------------------------------------------
# Classification order
# ---------------------------------------------------------------------------


def test_non_2xx_is_transport_error_without_parsing_body() -> None:
    with pytest.raises(TransportError) as exc_info:
        decode_envelope(_make_raw("<html>Bad Gateway</html>", status=502))

    assert exc_info.value.status == 502
    assert exc_info.value.body == "<html>Bad Gateway</html>"
    assert exc_info.value.status_code == 502


def test_non_2xx_with_graphql_errors_is_still_transport_error() -> None:
    with pytest.raises(TransportError):
        decode_envelope(_make_raw({"errors": [{"message": "Throttled"}]}, status=429))


def test_unparsable_body_is_malformed() -> None:
    with pytest.raises(MalformedResponseError) as exc_info:
        decode_envelope(_make_raw("not json"))

    assert exc_info.value.body == "not json"
    assert exc_info.value.status_code == 500


def test_json_array_body_is_malformed() -> None:
    with pytest.raises(MalformedResponseError):
        decode_envelope(_make_raw([1, 2, 3]))


def test_errors_take_precedence_over_data() -> None:
    body = {
        "data": {"cart": {"id": "gid://shopify/Cart/1"}},
        "errors": [{"message": "Field 'foo' doesn't exist", "path": ["cart", "foo"], "extensions": {"code": "undefinedField"}}],
    }

    with pytest.raises(UpstreamGraphQLError) as exc_info:
        decode_envelope(_make_raw(body))

    error = exc_info.value.errors[0]
    assert error.message == "Field 'foo' doesn't exist"
    assert error.field == ["cart", "foo"]
    assert error.code == "undefinedField"


def test_missing_data_is_missing_data_error() -> None:
    with pytest.raises(MissingDataError):
        decode_envelope(_make_raw({"data": None}))

    with pytest.raises(MissingDataError):
        decode_envelope(_make_raw({}))


# ---------------------------------------------------------------------------
# userErrors
# ---------------------------------------------------------------------------


def test_user_errors_are_passed_through() -> None:
    payload = {
        "cart": None,
        "userErrors": [{"field": ["lines", "0", "quantity"], "message": "Quantity is invalid", "code": "INVALID"}],
    }

    with pytest.raises(UserInputError) as exc_info:
        raise_for_user_errors(payload)

    assert exc_info.value.payload() == {
        "error": "Request rejected by Shopify",
        "details": [{"field": ["lines", "0", "quantity"], "message": "Quantity is invalid", "code": "INVALID"}],
    }


def test_customer_user_errors_key() -> None:
    payload = {"customerUserErrors": [{"field": None, "message": "Unidentified customer"}]}

    raise_for_user_errors(payload)  # default key is userErrors
    with pytest.raises(UserInputError):
        raise_for_user_errors(payload, "customerUserErrors")
