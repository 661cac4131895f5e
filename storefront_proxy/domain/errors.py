"""Error taxonomy shared by every layer.

Each error knows the HTTP status it maps to and a public message that is safe
to return to a browser. Upstream bodies and other diagnostics live on the
instance and are only exposed by the handler adapter in debug mode.
"""

from typing import Any

from pydantic import BaseModel


class UserError(BaseModel):
    """A field-level error reported by Shopify (``userErrors``/``customerUserErrors``)."""

    field: list[str] | None = None
    message: str
    code: str | None = None


class StorefrontError(Exception):
    """Base class for every classified failure."""

    status_code: int = 500
    public_message: str = "Internal Server Error"

    def __init__(
        self,
        message: str | None = None,
        *,
        operation: str | None = None,
        **context: Any,
    ) -> None:
        self.message = message or self.public_message
        self.operation = operation
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(self.message)

    def with_context(self, operation: str | None = None, **context: Any) -> "StorefrontError":
        """Attach the operation name and identifiers, keeping anything already set."""
        if operation and not self.operation:
            self.operation = operation
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def payload(self) -> dict[str, Any]:
        """JSON body for the client."""
        return {"error": self.public_message}

    def debug_info(self) -> dict[str, Any]:
        info: dict[str, Any] = {"type": type(self).__name__, "message": self.message}
        if self.operation:
            info["operation"] = self.operation
        if self.context:
            info["context"] = self.context
        return info


class ValidationError(StorefrontError):
    """The client sent missing or malformed input; nothing was forwarded upstream."""

    status_code = 400
    public_message = "Invalid request"

    def __init__(self, message: str | None = None, *, missing: list[str] | None = None, **kwargs: Any) -> None:
        self.missing = missing or []
        if message is None and self.missing:
            message = f"Missing required fields: {', '.join(self.missing)}"
        super().__init__(message, **kwargs)

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.missing:
            body["missing"] = self.missing
        return body


class InvalidJSONError(ValidationError):
    public_message = "InvalidJSON"

    def payload(self) -> dict[str, Any]:
        return {"error": self.public_message}


class UserInputError(StorefrontError):
    """Shopify rejected the request semantically; its errors are passed through."""

    status_code = 400
    public_message = "Request rejected by Shopify"

    def __init__(self, user_errors: list[UserError], message: str | None = None, **kwargs: Any) -> None:
        self.user_errors = user_errors
        super().__init__(message or "; ".join(e.message for e in user_errors) or None, **kwargs)

    def payload(self) -> dict[str, Any]:
        return {
            "error": self.public_message,
            "details": [e.model_dump(exclude_none=True) for e in self.user_errors],
        }


class AuthError(StorefrontError):
    status_code = 401
    public_message = "Unauthorized"

    def __init__(self, message: str | None = None, *, forbidden: bool = False, **kwargs: Any) -> None:
        if forbidden:
            self.status_code = 403
            self.public_message = "Forbidden"
        super().__init__(message, **kwargs)

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class NotFoundError(StorefrontError):
    status_code = 404
    public_message = "Not Found"

    def payload(self) -> dict[str, Any]:
        return {"error": self.message}


class MethodNotAllowedError(StorefrontError):
    status_code = 405
    public_message = "Method Not Allowed"

    def __init__(self, method: str, allowed: list[str], **kwargs: Any) -> None:
        self.allowed = allowed
        super().__init__(f"{method} not allowed, use {', '.join(allowed)}", **kwargs)


class ReviewConflictError(StorefrontError):
    """The reviews metafield changed between read and write."""

    status_code = 409
    public_message = "Reviews were modified concurrently, retry the request"


class TransportError(StorefrontError):
    """Shopify could not be reached or answered with a non-2xx status."""

    status_code = 502
    public_message = "Upstream service unavailable"

    def __init__(self, status: int | None, body: str = "", message: str | None = None, **kwargs: Any) -> None:
        self.status = status
        self.body = body
        super().__init__(message or f"Shopify HTTP error {status}", **kwargs)

    def debug_info(self) -> dict[str, Any]:
        info = super().debug_info()
        info["status"] = self.status
        info["body"] = self.body
        return info


class UpstreamGraphQLError(StorefrontError):
    """A 2xx answer whose envelope carried a non-empty ``errors`` list."""

    status_code = 502
    public_message = "Upstream service error"

    def __init__(self, errors: list[UserError], **kwargs: Any) -> None:
        self.errors = errors
        super().__init__("; ".join(e.message for e in errors) or "GraphQL errors from Shopify", **kwargs)

    def debug_info(self) -> dict[str, Any]:
        info = super().debug_info()
        info["errors"] = [e.model_dump(exclude_none=True) for e in self.errors]
        return info


class MalformedResponseError(StorefrontError):
    public_message = "Unexpected response from upstream service"

    def __init__(self, message: str | None = None, *, body: str = "", **kwargs: Any) -> None:
        self.body = body
        super().__init__(message, **kwargs)

    def debug_info(self) -> dict[str, Any]:
        info = super().debug_info()
        info["body"] = self.body
        return info


class MissingDataError(MalformedResponseError):
    public_message = "Upstream service returned no data"


class ConfigurationError(StorefrontError):
    public_message = "Server configuration error"
