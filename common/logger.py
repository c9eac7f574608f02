import json
import logging
import os
import sys

from .config import settings


def setup_logger(name: str | None = None, level: str | None = None) -> logging.Logger:
    """Configure the service-wide logger and return it.

    Args:
        name: logger name (defaults to SERVICE_NAME)
        level: log level (defaults to LOG_LEVEL)

    Returns:
        the configured logging.Logger
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", settings.LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    service_name = name or settings.SERVICE_NAME
    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)

    # avoid duplicate output when called twice (tests, reloads)
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(handler)
        root_logger.setLevel(log_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Carries datetime, level, logger and message, plus whichever request or
    ledger fields were passed through ``extra``.
    """

    EXTRA_KEYS = (
        "request_id",
        "span_id",
        "method",
        "path",
        "query_params",
        "status",
        "duration",
        "phone",
        "amount",
        "entry_id",
        "order_id",
        "withdrawal_id",
        "transaction_id",
        "code",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record: dict[str, object] = {
            "datetime": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in self.EXTRA_KEYS:
            if hasattr(record, key):
                log_record[key] = getattr(record, key)

        service_name = getattr(record, "service_name", None) or settings.SERVICE_NAME
        if service_name:
            log_record["service_name"] = service_name

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)
