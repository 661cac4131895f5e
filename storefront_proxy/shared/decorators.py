from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from loguru import logger

from storefront_proxy.domain.errors import StorefrontError

P = ParamSpec("P")
R = TypeVar("R")


def log_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Catch, log, and re-raise any exception raised by the decorated method.

    The log line includes the fully-qualified function name, exception type
    and message, plus the operation and identifiers attached to storefront
    errors, so the failing request is identifiable without a traceback.

    Usage::

        @log_errors
        def get_cart(self, cart_id: str) -> Cart | None: ...
    """

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            logger.error(f"[{func.__qualname__}] {type(exc).__name__}: {exc}{_describe(exc)}")
            raise

    return wrapper


@contextmanager
def error_context(operation: str, **identifiers: Any) -> Iterator[None]:
    """Attach ``operation`` and ``identifiers`` to storefront errors leaving the block."""
    try:
        yield
    except StorefrontError as exc:
        exc.with_context(operation, **identifiers)
        raise


def _describe(exc: Exception) -> str:
    if not isinstance(exc, StorefrontError):
        return ""
    parts = [f"operation={exc.operation}"] if exc.operation else []
    parts += [f"{key}={value}" for key, value in exc.context.items()]
    return f" ({', '.join(parts)})" if parts else ""
