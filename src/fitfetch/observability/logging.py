"""
Configures structured logging for the application using structlog.

Records carry the ``extraction_id`` bound by the orchestrator through
structlog's contextvars. String fields are clipped so that data URIs and
long relay URLs cannot flood the log.
"""
from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, Dict, List

import structlog

if TYPE_CHECKING:
    from fitfetch.config.config import MonitoringConfig


class TruncateLongValues:
    """Processor that clips string values longer than ``max_length``."""

    def __init__(self, max_length: int) -> None:
        self.max_length = max_length

    def __call__(self, logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in event_dict.items():
            if key != "event" and isinstance(value, str) and len(value) > self.max_length:
                event_dict[key] = f"{value[: self.max_length]}...(+{len(value) - self.max_length} chars)"
        return event_dict


def configure_logging(config: MonitoringConfig) -> None:
    """
    Routes structlog and stdlib records through one handler: JSON lines when
    ``log_file`` is set, otherwise a console renderer on stderr.
    """
    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        TruncateLongValues(config.max_field_length),
    ]

    log_renderer: Any
    if config.log_file:
        log_renderer = structlog.processors.JSONRenderer()
        handler: logging.Handler = logging.FileHandler(config.log_file, encoding="utf-8")
    else:
        # stdout is reserved for command output
        log_renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=log_renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.log_level.upper())
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger("fitfetch.logging").debug(
        "Logging configured", level=config.log_level, output=config.log_file or "console"
    )
