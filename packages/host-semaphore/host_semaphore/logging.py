"""host-semaphore — Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names.
All log entries include:
    - timestamp (ISO-8601)
    - level
    - module (Python logger name)
    - holder_id / host (bound via context variables inside ``synchronize``)
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Hashable, Iterator

import structlog
from structlog.types import EventDict, WrappedLogger

if TYPE_CHECKING:
    from host_semaphore.config import Settings

# Context variables, automatically injected into log records when set.
_ctx_holder_id: ContextVar[Hashable | None] = ContextVar("holder_id", default=None)
_ctx_host: ContextVar[str | None] = ContextVar("host", default=None)


@contextmanager
def bind_holder_context(holder_id: Hashable, host: str) -> Iterator[None]:
    """Bind the current holder and host to the running thread for the block.

    Nested bindings restore the outer values on exit.
    """
    holder_token = _ctx_holder_id.set(holder_id)
    host_token = _ctx_host.set(host)
    try:
        yield
    finally:
        _ctx_host.reset(host_token)
        _ctx_holder_id.reset(holder_token)


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _inject_context_vars(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    """Add ContextVar values to every log record."""
    if (holder_id := _ctx_holder_id.get()) is not None:
        event_dict.setdefault("holder_id", holder_id)
    if (host := _ctx_host.get()) is not None:
        event_dict.setdefault("host", host)
    return event_dict


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Call once at application startup, before any log statements.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stdout.
    """
    shared_processors: list[Any] = [
        _inject_context_vars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())


def configure_logging_from_settings(settings: Settings) -> None:
    """Apply the ``logging`` block of loaded settings."""
    cfg = settings.logging
    configure_logging(
        level=cfg.level,
        format=cfg.format,
        log_file=str(cfg.file.expanduser()) if cfg.file else None,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("lock_acquired", host="debian", slot=0)
    """
    return structlog.get_logger(name)
