"""Startup-time summary of the effective configuration."""

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from syspay.common.config import CommonSettings
from syspay.common.logging import logger

_SECRET_MARKERS = ("PASSWORD", "SECRET", "TOKEN", "KEY")


def _display(name: str, value) -> str:
    if value is None or value == "":
        return "<unset>"
    if name == "DATABASE_URL":
        # Keep driver/host/database, drop credentials.
        try:
            return make_url(str(value)).render_as_string(hide_password=True)
        except ArgumentError:
            return "<redacted>"
    if any(marker in name for marker in _SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(config: CommonSettings, keys: list[str]) -> None:
    """Log the effective value (env or default) of each listed variable."""

    summary = {"service": config.service_name}
    for key in keys:
        summary[key] = _display(key, getattr(config, key.lower(), None))
    logger.info("startup_config=%s", summary)
