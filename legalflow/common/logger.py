"""Logging infrastructure for LegalFlow.

Handlers hang off the ``legalflow`` logger and are derived from ``Settings``.
Every line carries the id of the HTTP request it was written for (``-``
outside a request), so engine and service lines can be matched with the
request log line from ``RequestLogMiddleware``.
"""

import contextvars
import logging
import logging.handlers
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] [%(request_id)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"  # ISO 8601
LOG_FILE = "legalflow.log"
MAX_BYTES = 10485760  # 10MB
BACKUP_COUNT = 5

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def parse_level(level: str) -> int:
    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return getattr(logging, level_upper)


def configure_logging(settings, name: str = "legalflow") -> logging.Logger:
    """Configure the ``legalflow`` logger tree from application settings.

    Module loggers (``legalflow.core.approval.service`` etc.) propagate to
    the returned logger. Console output is always on; the rotating file in
    ``settings.log_dir`` only when ``settings.file_logging`` is set. SQL echo
    is only enabled in debug mode.

    Calling it again updates levels without adding handlers.
    """
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(settings.log_level))
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )

    if logger.handlers:
        return logger

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file_logging:
        os.makedirs(settings.log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_dir, LOG_FILE), maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT
        ))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(RequestContextFilter())
        logger.addHandler(handler)
    return logger
