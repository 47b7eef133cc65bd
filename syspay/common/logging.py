"""JSON logging carrying request, principal and charge identifiers."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from syspay.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
user_id_ctx: ContextVar[str] = ContextVar("user_id", default="")
charge_id_ctx: ContextVar[str] = ContextVar("charge_id", default="")

_QUIET_LOGGERS = ("sqlalchemy.engine", "passlib", "uvicorn.access")


def bind_request_context(trace_id: str) -> None:
    """Start a request: new trace id, no principal or charge yet."""

    trace_id_ctx.set(trace_id)
    user_id_ctx.set("")
    charge_id_ctx.set("")


class ContextFilter(logging.Filter):
    """Stamp the service name and the bound identifiers on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.trace_id = trace_id_ctx.get()
        record.user_id = user_id_ctx.get()
        record.charge_id = charge_id_ctx.get()
        return True


def configure_logging(level: str | None = None) -> None:
    """Route every logger through one stdout JSON handler."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(service_name)s %(trace_id)s %(user_id)s %(charge_id)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.log_level).upper())
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


logger = logging.getLogger("syspay")
