"""Structured logging configuration using structlog.

JSON lines outside development, colored console output in development. Every
event emitted while serving a request carries the request_id bound by
RequestIDMiddleware, so one orchestration run can be followed across the
registry, settlement and invocation steps.

Wallet private keys and x402 API keys must never reach a log sink. The
redact_secrets processor masks any event field whose name marks it as a
secret, whatever module logged it.

Usage:
    from agent_marketplace.logging_config import setup_logging, get_logger
    setup_logging(log_level="DEBUG", json_logs=False, settlement_mode="SIMULATED")
    logger = get_logger(__name__)
    logger.info("settlement.order_created", order_id="o1", amount=100000)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

REDACTED = "***"
SECRET_FIELD_MARKERS = ("private_key", "api_key", "authorization", "agent_token", "secret")

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "web3", "LiteLLM", "mcp")


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Mask the value of every field whose name looks like a secret."""
    for key in event_dict:
        lowered = key.lower()
        if any(marker in lowered for marker in SECRET_FIELD_MARKERS):
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(
    log_level: str = "DEBUG",
    json_logs: bool = False,
    settlement_mode: str | None = None,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON (for production). If False, colored console.
        settlement_mode: Bound to every event so demo runs are never mistaken
            for real payments.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settlement_mode:
        shared_processors.insert(0, _bind_static(settlement_mode=settlement_mode))

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def _bind_static(**fields: Any) -> structlog.types.Processor:
    def processor(
        logger: Any, method_name: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.
    """
    return structlog.get_logger(name)
