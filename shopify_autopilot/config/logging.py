"""
Logging Configuration for the Shopify Autopilot Backend

Structured logging through structlog on top of the stdlib root logger.
Autopilot runs bind their shop, trigger and run id into the context so every
line a run emits (engine, Shopify client, repository) can be grouped, and
shop access tokens are masked before anything is rendered.
"""

import logging
import sys
import uuid
from typing import Any, Dict, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from shopify_autopilot.config.settings import get_settings

SECRET_FIELDS = frozenset({"access_token", "token", "x-shopify-access-token", "authorization"})


def redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask token-like fields, keeping the last four characters."""
    for key, value in event_dict.items():
        if key.lower() in SECRET_FIELDS and value:
            text = str(value)
            event_dict[key] = "****" + text[-4:] if len(text) > 8 else "****"
    return event_dict


def run_context(shop: str, trigger: str = "api"):
    """
    Bind an autopilot run's identity into the structlog context.

    Example:
        with run_context("demo.myshopify.com", trigger="schedule"):
            await engine.run("demo.myshopify.com")
    """
    return structlog.contextvars.bound_contextvars(
        shop=shop,
        trigger=trigger,
        run_id=uuid.uuid4().hex[:12],
    )


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
    """
    settings = get_settings()
    level = log_level or settings.monitoring.log_level
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        redact_secrets,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if settings.monitoring.log_format == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    formatter = ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # uvicorn and httpx log through the same handler
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access", "httpx"]:
        logger = logging.getLogger(logger_name)
        logger.handlers = []
        logger.addHandler(console_handler)
        logger.setLevel(numeric_level)
        logger.propagate = False

    log = structlog.get_logger(__name__)
    log.info(
        "Logging configured",
        level=level,
        format=settings.monitoring.log_format,
        environment=settings.app_env,
        shopify_api_version=settings.shopify.api_version,
    )
