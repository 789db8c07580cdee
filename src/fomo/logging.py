"""Structured logging for the chart service using structlog.

Context is propagated through structlog.contextvars so that every log line
emitted while a chart session is running carries its symbol and interval.
"""

import logging

import structlog

#: Third-party loggers that flood DEBUG output with per-request detail.
_QUIET_LOGGERS = ("ccxt", "websockets", "asyncio")

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "console": structlog.dev.ConsoleRenderer,
}


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        log_level: Root level name, e.g. "DEBUG".
        log_format: "json" for machine-readable lines, anything else renders
            for the console.
    """
    renderer_cls = _RENDERERS.get(log_format.lower(), structlog.dev.ConsoleRenderer)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer_cls(),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_session_context(symbol: str, interval: str) -> None:
    """Attach the active chart's symbol and interval to all subsequent log lines."""
    structlog.contextvars.bind_contextvars(symbol=symbol, interval=interval)


def clear_session_context() -> None:
    """Drop chart session context bound by bind_session_context()."""
    structlog.contextvars.unbind_contextvars("symbol", "interval")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
