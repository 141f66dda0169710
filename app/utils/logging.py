"""JSON-логирование с request id и редактированием секретов."""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter

PAYMENT_LOGGER = "app.payment"
WEBHOOK_LOGGER = "app.webhook"
HTTP_LOGGER = "app.http"

SENSITIVE_KEYS = ("token", "password", "secret", "key", "auth", "authorization")
REDACTED = "[REDACTED]"

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        return True


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def sanitize(data: Any) -> Any:
    """
    Рекурсивно заменяет значения «секретных» ключей на [REDACTED].
    Не-словари и не-списки возвращаются как есть.
    """
    if isinstance(data, dict):
        clean = {}
        for k, v in data.items():
            if any(s in str(k).lower() for s in SENSITIVE_KEYS):
                clean[k] = REDACTED
            else:
                clean[k] = sanitize(v)
        return clean
    if isinstance(data, list):
        return [sanitize(v) for v in data]
    return data


class Timer:
    def __init__(self):
        self._start = time.perf_counter()

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)


def _rotating(path: Path, level: int, formatter: logging.Formatter, id_filter: logging.Filter) -> logging.Handler:
    # суточная ротация, 14 дней
    handler = TimedRotatingFileHandler(path, when="midnight", backupCount=14, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(id_filter)
    return handler


def configure_logging(settings) -> None:
    """Настраивает root-логгер; повторный вызов заменяет обработчики."""
    formatter = JsonFormatter("%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s")
    id_filter = RequestIdFilter()

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    stream.addFilter(id_filter)

    root = logging.getLogger()
    root.handlers = [stream]
    root.setLevel(settings.LOG_LEVEL.upper())

    for name in (PAYMENT_LOGGER, WEBHOOK_LOGGER):
        logging.getLogger(name).handlers = []

    if not settings.LOG_DIR:
        return

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    root.addHandler(_rotating(log_dir / "combined.log", logging.INFO, formatter, id_filter))
    root.addHandler(_rotating(log_dir / "error.log", logging.ERROR, formatter, id_filter))
    logging.getLogger(PAYMENT_LOGGER).addHandler(
        _rotating(log_dir / "payment.log", logging.INFO, formatter, id_filter)
    )
    logging.getLogger(WEBHOOK_LOGGER).addHandler(
        _rotating(log_dir / "webhook.log", logging.INFO, formatter, id_filter)
    )
