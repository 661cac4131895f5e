"""Serverless entry point.

Deploy every function with ``storefront_proxy.entrypoints.main.handler``;
requests are dispatched on the last path segment, so one handler serves all
routes.
"""

import json

from loguru import logger

from storefront_proxy.domain.errors import ConfigurationError
from storefront_proxy.shared.logging_setup import configure_logging

from .app import create_app
from .http import HandlerAdapter
from .settings import load_config


def _bootstrap() -> HandlerAdapter | None:
    try:
        config = load_config()
    except ConfigurationError as exc:
        configure_logging()
        logger.error(f"[Startup] {exc}")
        return None

    configure_logging(config.LOG_LEVEL)
    return create_app(config)


# Built once per cold start and reused by warm invocations.
_app = _bootstrap()


def handler(event: dict, context: object = None) -> dict:
    if _app is None:
        return {
            "statusCode": ConfigurationError.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({"error": ConfigurationError.public_message}),
        }
    return _app.handle(event)
