from __future__ import annotations

import logging
import sys
from datetime import date
from typing import Any, Dict, Mapping, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Third-party loggers that drown out the per-order trail at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _format_value(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return ",".join(sorted(str(item) for item in value))
    return str(value)


class ServiceLogger:
    """Logger under ``shipsync.<component>`` that appends ``key=value`` context.

    Context given to :meth:`bind` is repeated on every line, so one cycle's
    lines can be grepped by ``run_id``.
    """

    def __init__(self, component: str, context: Optional[Mapping[str, Any]] = None) -> None:
        self._component = component
        self._logger = logging.getLogger(f"shipsync.{component}")
        self._context: Dict[str, Any] = dict(context or {})

    def bind(self, **context: Any) -> "ServiceLogger":
        return ServiceLogger(self._component, {**self._context, **context})

    def debug(self, message: str, **context: Any) -> None:
        self._emit(logging.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._emit(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._emit(logging.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._emit(logging.ERROR, message, context)

    def critical(self, message: str, **context: Any) -> None:
        self._emit(logging.CRITICAL, message, context)

    def exception(self, message: str, **context: Any) -> None:
        self._emit(logging.ERROR, message, context, exc_info=True)

    def _emit(self, level: int, message: str, context: Mapping[str, Any], exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._context, **context}
        if merged:
            pairs = " ".join(f"{key}={_format_value(value)}" for key, value in merged.items())
            message = f"{message} | {pairs}"
        self._logger.log(level, message, exc_info=exc_info)
