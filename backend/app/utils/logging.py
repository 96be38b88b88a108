"""
Color Palette API Structured Logging
loguru sink setup plus a small wrapper that carries request context.
"""
import sys
from typing import Any, Dict, Optional

from loguru import logger

from app.config import config

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message} | {extra}"

_configured = False


def configure_logging():
    """Replace loguru's default handler with the service sink (idempotent)."""
    global _configured
    if _configured:
        return
    logger.remove()
    logger.add(
        sys.stdout,
        format=LOG_FORMAT,
        level=config.LOG_LEVEL,
        serialize=config.LOG_JSON
    )
    _configured = True


class StructuredLogger:
    """Logger that attaches a fixed context plus per-call ``extra`` fields."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        configure_logging()
        self._context = dict(context or {})

    def bind(self, **fields) -> "StructuredLogger":
        """Return a logger whose context also carries ``fields``."""
        return StructuredLogger({**self._context, **fields})

    def _emit(self, level: str, message: str, extra: Optional[Dict[str, Any]]):
        fields = {**self._context, **(extra or {})}
        # depth=2 reports the caller of info()/error(), not this wrapper
        logger.bind(**fields).opt(depth=2).log(level, message)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._emit("INFO", message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._emit("WARNING", message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._emit("ERROR", message, extra)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self._emit("DEBUG", message, extra)

    def exception(self, message: str, extra: Optional[Dict[str, Any]] = None):
        """Log at ERROR with the active traceback attached."""
        fields = {**self._context, **(extra or {})}
        logger.bind(**fields).opt(depth=1, exception=True).error(message)


_root: Optional[StructuredLogger] = None


def get_logger(request_id: Optional[str] = None) -> StructuredLogger:
    """Get the service logger, bound to ``request_id`` when one is given."""
    global _root
    if _root is None:
        _root = StructuredLogger()
    if request_id:
        return _root.bind(request_id=request_id)
    return _root
