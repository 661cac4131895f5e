"""Handler Adapter: serverless event in, serverless response out.

Each request goes Preflight -> Processing -> Responded. Processing checks the
method, parses the body, checks required fields, resolves the bearer session
and finally runs the route operation. Every failure is turned into a status
code and JSON body here and nowhere else.
"""

import base64
import binascii
import json
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from storefront_proxy.domain.customer import SessionClaims
from storefront_proxy.domain.errors import (
    AuthError,
    InvalidJSONError,
    MethodNotAllowedError,
    NotFoundError,
    StorefrontError,
    ValidationError,
)
from storefront_proxy.domain.interfaces import ISessionTokens

from .settings import Config

REQUEST_ID_HEADERS = ("x-request-id", "x-nf-request-id")
ALLOW_HEADERS = "Content-Type, Authorization"


@dataclass
class HttpRequest:
    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: str = ""
    is_base64: bool = False
    data: dict[str, Any] = field(default_factory=dict)
    claims: SessionClaims | None = None

    @classmethod
    def from_event(cls, event: dict) -> "HttpRequest":
        return cls(
            method=(event.get("httpMethod") or "GET").upper(),
            path=event.get("path") or "/",
            headers={k.lower(): v for k, v in (event.get("headers") or {}).items()},
            query=dict(event.get("queryStringParameters") or {}),
            body=event.get("body") or "",
            is_base64=bool(event.get("isBase64Encoded")),
        )

    @property
    def route_name(self) -> str:
        """Last path segment: ``/.netlify/functions/get-cart`` -> ``get-cart``."""
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    @property
    def origin(self) -> str | None:
        return self.headers.get("origin")

    @property
    def bearer_token(self) -> str | None:
        scheme, _, token = self.headers.get("authorization", "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    @property
    def request_id(self) -> str:
        for name in REQUEST_ID_HEADERS:
            if self.headers.get(name):
                return self.headers[name]
        return uuid.uuid4().hex

    def params(self) -> dict[str, Any]:
        """Where a route's inputs live: query string for GET, JSON body otherwise."""
        return self.query if self.method == "GET" else self.data


@dataclass
class HttpResponse:
    status_code: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(cls, payload: Any, status_code: int = 200) -> "HttpResponse":
        return cls(status_code, json.dumps(payload), {"Content-Type": "application/json"})

    @classmethod
    def redirect(cls, location: str) -> "HttpResponse":
        return cls(302, "", {"Location": location})

    def to_event(self) -> dict:
        return {"statusCode": self.status_code, "headers": self.headers, "body": self.body}


@dataclass(frozen=True)
class Route:
    """One endpoint.

    ``authenticated`` routes require a valid bearer session token;
    ``session_optional`` routes verify one only when it is sent.
    ``public`` routes may be served to any origin when ``*`` is allowed.
    """

    name: str
    methods: tuple[str, ...]
    operation: Callable[[HttpRequest], HttpResponse]
    required_fields: tuple[str, ...] = ()
    authenticated: bool = False
    session_optional: bool = False
    public: bool = False


class CorsPolicy:
    """One configuration-driven allow-list for every route."""

    def __init__(self, allowed_origins: list[str]) -> None:
        self._origins = {o for o in allowed_origins if o != "*"}
        self._wildcard = "*" in allowed_origins

    def headers(self, origin: str | None, route: Route | None) -> dict[str, str]:
        methods = ", ".join([*(route.methods if route else ()), "OPTIONS"])
        headers = {
            "Access-Control-Allow-Methods": methods,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Vary": "Origin",
        }
        if origin and self._allows(origin, route):
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def _allows(self, origin: str, route: Route | None) -> bool:
        if origin in self._origins:
            return True
        # never for credentialed routes
        return self._wildcard and route is not None and route.public and not route.authenticated


class HandlerAdapter:
    def __init__(self, config: Config, routes: list[Route], tokens: ISessionTokens) -> None:
        self._config = config
        self._routes = {route.name: route for route in routes}
        self._tokens = tokens
        self._cors = CorsPolicy(config.allowed_origins)

    def handle(self, event: dict) -> dict:
        request = HttpRequest.from_event(event)
        route = self._routes.get(request.route_name)

        with logger.contextualize(request_id=request.request_id):
            response = self._respond(request, route)
            response.headers.update(self._cors.headers(request.origin, route))
            logger.info(f"[Http] {request.method} {request.route_name} -> {response.status_code}")
            return response.to_event()

    def _respond(self, request: HttpRequest, route: Route | None) -> HttpResponse:
        if request.method == "OPTIONS":
            return HttpResponse(204)
        try:
            if route is None:
                raise NotFoundError(f"Unknown route: {request.route_name}")
            return self._process(request, route)
        except StorefrontError as exc:
            return self._error_response(exc)
        except Exception as exc:
            logger.exception(f"[Http] unhandled error in {request.route_name}: {exc}")
            payload: dict[str, Any] = {"error": "Internal Server Error"}
            if self._config.DEBUG:
                payload["debug"] = {"type": type(exc).__name__, "message": str(exc)}
            return HttpResponse.json(payload, 500)

    def _process(self, request: HttpRequest, route: Route) -> HttpResponse:
        if request.method not in route.methods:
            raise MethodNotAllowedError(request.method, list(route.methods), operation=route.name)

        if request.method != "GET":
            request.data = _parse_body(request.body, request.is_base64)

        params = request.params()
        missing = [name for name in route.required_fields if params.get(name) in (None, "")]
        if missing:
            raise ValidationError(missing=missing, operation=route.name)

        if route.authenticated or route.session_optional:
            self._resolve_session(request, route)

        return route.operation(request)

    def _resolve_session(self, request: HttpRequest, route: Route) -> None:
        token = request.bearer_token
        if token is None:
            if route.authenticated:
                raise AuthError("Missing bearer token", operation=route.name)
            return
        request.claims = self._tokens.verify(token)

    def _error_response(self, exc: StorefrontError) -> HttpResponse:
        payload = exc.payload()
        if self._config.DEBUG:
            payload["debug"] = exc.debug_info()
        response = HttpResponse.json(payload, exc.status_code)
        if isinstance(exc, MethodNotAllowedError):
            response.headers["Allow"] = ", ".join([*exc.allowed, "OPTIONS"])
        return response


def _parse_body(body: str, is_base64: bool = False) -> dict[str, Any]:
    if body and is_base64:
        try:
            body = base64.b64decode(body, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise InvalidJSONError("Request body is not valid base64-encoded UTF-8") from exc
    if not body.strip():
        return {}
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as exc:
        raise InvalidJSONError("Request body is not valid JSON") from exc
    if not isinstance(parsed, dict):
        raise InvalidJSONError("Request body must be a JSON object")
    return parsed
