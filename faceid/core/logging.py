"""Structured logging for the face identity service.

Every module logs through ``get_logger(__name__)`` with key-value fields::

    logger.info("New identity created", label="bob", distance=0.83)

Records from third-party libraries that use plain ``logging`` go through the
same renderer, so a single handler on the root logger covers everything.
"""
import logging
import sys
from typing import List, Optional

import structlog
from structlog.stdlib import ProcessorFormatter

from faceid.core.config import settings

# Libraries that are chatty at INFO level
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "onnxruntime", "insightface")


def _renderer(environment: str) -> structlog.types.Processor:
    if environment == "development":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def _processors(environment: str) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if environment != "development":
        # JSON output needs tracebacks as strings
        processors.append(structlog.processors.format_exc_info)
    processors.append(ProcessorFormatter.wrap_for_formatter)
    return processors


def setup_logging(level: Optional[str] = None, environment: Optional[str] = None) -> None:
    """Route structlog and stdlib logging to stdout.

    Args:
        level: Log level name; defaults to ``settings.LOG_LEVEL``
        environment: Selects the console renderer in development and JSON
            elsewhere; defaults to ``settings.ENVIRONMENT``
    """
    level = (level or settings.LOG_LEVEL).upper()
    environment = environment or settings.ENVIRONMENT

    structlog.configure(
        processors=_processors(environment),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processor=_renderer(environment)))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    # Requests are logged by the endpoints
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("uvicorn.error").propagate = False
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).debug("Logging configured", level=level, environment=environment)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to ``name``, normally the calling module's ``__name__``."""
    return structlog.get_logger(name)
