"""structlog + stdlib logging wiring.

All output goes to stderr; stdout carries CLI results only.  Records are
handed to a QueueListener thread so a slow terminal never stalls the
event loop in the middle of a search.
"""

from __future__ import annotations

import atexit
import copy
import logging
import logging.config
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Optional

import structlog

from cinesift.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# Chatty libraries that only matter at DEBUG.
_NOISY_LOGGERS = ("httpx", "httpcore")

BASE_LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "cinesift": {"level": "INFO"},
    },
}

_listener: Optional[QueueListener] = None


def _stamp_foreign_record(
    _: Any, __: Any, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Timestamp stdlib records with their creation time.

    The listener thread formats records later than they were emitted;
    without this, httpx lines would carry the formatting time.
    """
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        event_dict["timestamp"] = created.isoformat().replace("+00:00", "Z")
    return event_dict


def _foreign_pre_chain() -> list[structlog.typing.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _stamp_foreign_record,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]


def _render_chain(config: AppConfig) -> list[structlog.typing.Processor]:
    renderer: structlog.typing.Processor
    if config.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer]


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """dictConfig for *config*: one stderr handler rendered through structlog.

    Loggers named in BASE_LOGGING_CONFIG follow ``config.log_level``;
    httpx/httpcore stay at WARNING unless the level is DEBUG.
    """
    cfg = copy.deepcopy(BASE_LOGGING_CONFIG)
    level = config.log_level

    cfg["formatters"] = {
        "structlog": {
            "()": structlog.stdlib.ProcessorFormatter,
            "foreign_pre_chain": _foreign_pre_chain(),
            "processors": _render_chain(config),
        }
    }
    cfg["handlers"]["default"]["formatter"] = "structlog"

    for logger_cfg in cfg["loggers"].values():
        logger_cfg["level"] = level
    noisy_level = "DEBUG" if level == "DEBUG" else "WARNING"
    for name in _NOISY_LOGGERS:
        cfg["loggers"].setdefault(name, {"level": noisy_level})

    cfg["root"] = {"handlers": ["default"], "level": level}
    return cfg


class _BelowErrorFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.ERROR


class _EventDictQueueHandler(QueueHandler):
    """QueueHandler that leaves structlog's event dict in ``record.msg``.

    The stock ``prepare()`` stringifies the message, which would hand the
    formatter a pre-rendered string instead of the dict it expects.
    """

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        return copy.copy(record)


def _stop_listener() -> None:
    global _listener
    listener, _listener = _listener, None
    if listener is not None:
        listener.stop()


def _route_through_queue(config: AppConfig) -> None:
    """Swap every handler for a single queue handler drained by a thread.

    Errors get their own stderr handler so they are never filtered out by
    the regular handler.
    """
    global _listener
    _stop_listener()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_foreign_pre_chain(),
        processors=_render_chain(config),
    )
    regular = logging.StreamHandler(stream=sys.stderr)
    regular.setFormatter(formatter)
    regular.addFilter(_BelowErrorFilter())
    errors = logging.StreamHandler(stream=sys.stderr)
    errors.setFormatter(formatter)
    errors.setLevel(logging.ERROR)

    records: queue.Queue[logging.LogRecord] = queue.Queue()
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_EventDictQueueHandler(records))
    root.setLevel(config.log_level)

    quiet = config.log_level != "DEBUG"
    for name in list(logging.root.manager.loggerDict):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        if quiet and name in _NOISY_LOGGERS:
            logger.setLevel(logging.WARNING)
        else:
            logger.setLevel(config.log_level)

    _listener = QueueListener(records, regular, errors, respect_handler_level=True)
    _listener.start()
    atexit.register(_stop_listener)


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """Configure structlog and stdlib logging for the process.

    Returns the dictConfig that was applied, for inspection.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)
    _route_through_queue(config)

    log.info(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return cfg
