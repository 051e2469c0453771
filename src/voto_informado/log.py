from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING") -> structlog.stdlib.BoundLogger:
    """Route structlog through a stderr handler so stdout stays free for reports."""
    level = (level or "WARNING").upper()
    handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(level=level, handlers=[handler], format="%(message)s", force=True)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger("voto_informado")
