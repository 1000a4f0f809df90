"""Structured logging helpers and the logger bootstrap.

Purpose
    Give every part of the scaffold the same way to emit log lines: a shared
    package logger, a trace identifier bound per invocation, and structured
    fields attached via ``extra={"context": ...}``.

Contents
    - ``TRACE_ID``: context variable storing the active invocation identifier.
    - ``get_logger``: returns the package logger or one of its children.
    - ``bind_trace_id`` / ``new_trace_id``: manage the active identifier.
    - ``log_debug`` / ``log_info`` / ``log_error``: structured emitters.
    - ``bootstrap_logging``: attaches the console handler configured from
      settings (``logging.level`` / ``logging.format``).

System Integration
    Stays silent (``NullHandler``) until the CLI host calls
    :func:`bootstrap_logging`, so importing the package in tests or other
    programs never prints anything.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("console_scaffold_trace_id", default=None)
"""Identifier of the invocation currently being dispatched."""

DEFAULT_LEVEL: Final[str] = "INFO"
DEFAULT_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LOGGER: Final[logging.Logger] = logging.getLogger("console_scaffold")
_LOGGER.addHandler(logging.NullHandler())


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or the child named *name*.

    >>> get_logger().name
    'console_scaffold'
    >>> get_logger("filters").name
    'console_scaffold.filters'
    """

    return _LOGGER.getChild(name) if name else _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def new_trace_id() -> str:
    """Generate, bind, and return a fresh identifier for one invocation."""

    trace_id = uuid.uuid4().hex[:12]
    bind_trace_id(trace_id)
    return trace_id


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug entry that includes the trace context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info entry that includes the trace context."""

    _emit(logging.INFO, message, fields)


def log_error(message: str, *, exc_info: bool = False, **fields: Any) -> None:
    """Emit a structured error entry; pass ``exc_info=True`` inside ``except`` blocks."""

    _emit(logging.ERROR, message, fields, exc_info=exc_info)


def _emit(level: int, message: str, fields: Mapping[str, Any], *, exc_info: bool = False) -> None:
    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    _LOGGER.log(level, message, extra={"context": context}, exc_info=exc_info)


class _StderrHandler(logging.StreamHandler):
    """Stream handler that always writes to the *current* ``sys.stderr``.

    Test runners swap ``sys.stderr`` per invocation; resolving it lazily keeps
    the handler from writing to a closed stream afterwards.
    """

    def __init__(self, level: int = logging.NOTSET) -> None:
        logging.Handler.__init__(self, level)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, value) -> None:  # pragma: no cover - the stream is always sys.stderr
        pass


class ContextFormatter(logging.Formatter):
    """Append the structured ``context`` fields of a record to the rendered line.

    >>> formatter = ContextFormatter("%(message)s")
    >>> record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    >>> record.context = {"trace_id": "t1", "command": "hello"}
    >>> formatter.format(record)
    'hello trace_id=t1 command=hello'
    """

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            trace_id = TRACE_ID.get()
            return f"{rendered} trace_id={trace_id}" if trace_id else rendered
        fields = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
        return f"{rendered} {fields}" if fields else rendered


def bootstrap_logging(settings: Mapping[str, Any] | None = None) -> logging.Logger:
    """Attach the console handler described by *settings* to the package logger.

    Why
        The host needs logging before commands run so configuration problems
        and filter output are visible.
    What
        Reads ``level`` and ``format`` from the ``logging`` section. Replaces a
        handler installed by an earlier call, so calling it twice never
        duplicates lines.
    Returns
        The configured package logger.
    """

    section = _logging_section(settings)
    level_name = str(section.get("level", DEFAULT_LEVEL)).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown logging level: {level_name}")
    fmt = str(section.get("format", DEFAULT_FORMAT))

    for handler in list(_LOGGER.handlers):
        if isinstance(handler, _StderrHandler):
            _LOGGER.removeHandler(handler)
    handler = _StderrHandler()
    handler.setFormatter(ContextFormatter(fmt))
    _LOGGER.addHandler(handler)
    _LOGGER.setLevel(level)
    log_debug("logging_bootstrapped", level=level_name)
    return _LOGGER


def reset_logging() -> None:
    """Remove handlers installed by :func:`bootstrap_logging` and clear the level."""

    for handler in list(_LOGGER.handlers):
        if isinstance(handler, _StderrHandler):
            _LOGGER.removeHandler(handler)
    _LOGGER.setLevel(logging.NOTSET)


def _logging_section(settings: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not settings:
        return {}
    section = settings.get("logging")
    return section if isinstance(section, Mapping) else {}
