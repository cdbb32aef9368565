"""Process-wide capture of recent errors.

Keeps a bounded, oldest-first-evicted buffer of errors so a bug report can
ship the last few failures the user ran into.  Two sources feed it:

* log records at ERROR and above, via ``CaptureHandler`` attached to a
  logger (the root logger by default).  The handler only adds a sink, so
  every existing handler still receives the record unchanged.
* uncaught exceptions, via a chained ``sys.excepthook``.  The previous hook
  is always called afterwards.

``install()`` wires both in once per process; ``uninstall()`` restores the
previous hook and detaches the handler.  Capturing never raises into the
caller.
"""

import json
import logging
import sys
import traceback
from collections import deque
from collections.abc import Iterable
from datetime import datetime, timezone
from types import TracebackType
from typing import Any, Callable

from bugreport.models.captured_error import CapturedError

logger = logging.getLogger(__name__)

MAX_ERRORS = 50

_ExceptHook = Callable[[type[BaseException], BaseException, TracebackType | None], Any]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def stringify_arg(value: Any) -> str:
    """Render a logged argument the way it should appear in a report."""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class ErrorLogBuffer:
    """Bounded FIFO of CapturedError entries."""

    def __init__(self, capacity: int = MAX_ERRORS) -> None:
        self._entries: deque[CapturedError] = deque(maxlen=capacity)
        self._recording = False

    def record(self, entry: CapturedError) -> None:
        """Append an entry, evicting the oldest once over capacity.

        A record issued while another is in progress is dropped.
        """
        if self._recording:
            return
        self._recording = True
        try:
            self._entries.append(entry)
        except Exception:
            # Capture must never break the caller
            pass
        finally:
            self._recording = False

    def snapshot(self, n: int) -> list[CapturedError]:
        """Return the ``n`` most recent entries, oldest first."""
        if n <= 0:
            return []
        return list(self._entries)[-n:]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class CaptureHandler(logging.Handler):
    """Logging handler that mirrors ERROR records into an ErrorLogBuffer."""

    def __init__(self, buffer: ErrorLogBuffer, level: int = logging.ERROR) -> None:
        super().__init__(level)
        self._buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = CapturedError(
                time=_now(),
                type="console.error",
                message=record.getMessage(),
                filename=record.pathname,
                lineno=record.lineno,
                stack=_record_stack(record),
                args=_record_args(record),
                request_id=getattr(record, "request_id", None) or None,
            )
        except Exception:
            return
        self._buffer.record(entry)


def _record_args(record: logging.LogRecord) -> tuple[str, ...]:
    if not record.args:
        return ()
    if isinstance(record.args, dict):
        return (stringify_arg(record.args),)
    return tuple(stringify_arg(a) for a in record.args)


def _record_stack(record: logging.LogRecord) -> str | None:
    if record.exc_info and record.exc_info[1] is not None:
        return "".join(traceback.format_exception(*record.exc_info))
    return record.stack_info


def format_snippet(entries: list[CapturedError]) -> str:
    """Render entries as ``{time} {type} {message} {args}`` lines."""
    return "\n".join(
        f"{e.time} {e.type} {e.message or ''} {' '.join(e.args)}" for e in entries
    )


# Process-wide state
_buffer: ErrorLogBuffer | None = None
_handler: CaptureHandler | None = None
_target_logger: logging.Logger | None = None
_previous_excepthook: _ExceptHook | None = None


def get_buffer() -> ErrorLogBuffer:
    """Return the process buffer, creating it on first call."""
    global _buffer
    if _buffer is None:
        _buffer = ErrorLogBuffer()
    return _buffer


def is_installed() -> bool:
    return _handler is not None


def capture_exception(exc: BaseException) -> None:
    """Record an exception that escaped to the host's outermost boundary."""
    try:
        tb = exc.__traceback__
        frames = traceback.extract_tb(tb)
        last = frames[-1] if frames else None
        entry = CapturedError(
            time=_now(),
            type="uncaught",
            message=str(exc) or type(exc).__name__,
            filename=last.filename if last else None,
            lineno=last.lineno if last else None,
            colno=getattr(last, "colno", None),
            stack="".join(traceback.format_exception(type(exc), exc, tb)),
        )
    except Exception:
        return
    get_buffer().record(entry)


def _capturing_excepthook(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if exc.__traceback__ is None and tb is not None:
        exc = exc.with_traceback(tb)
    capture_exception(exc)
    previous = _previous_excepthook or sys.__excepthook__
    previous(exc_type, exc, tb)


def install(
    target: logging.Logger | None = None,
    filters: Iterable[logging.Filter] = (),
) -> ErrorLogBuffer:
    """Start capturing errors. Repeated calls are no-ops.

    Args:
        target: Logger to attach the capture handler to (root if omitted).
        filters: Extra filters for the capture handler, e.g. one that stamps
            request IDs onto records.
    """
    global _handler, _target_logger, _previous_excepthook
    buffer = get_buffer()
    if _handler is not None:
        return buffer

    _target_logger = target or logging.getLogger()
    _handler = CaptureHandler(buffer)
    for log_filter in filters:
        _handler.addFilter(log_filter)
    _target_logger.addHandler(_handler)

    _previous_excepthook = sys.excepthook
    sys.excepthook = _capturing_excepthook

    logger.debug("Error capture installed on logger %r", _target_logger.name)
    return buffer


def uninstall() -> None:
    """Detach the capture handler and restore the previous excepthook."""
    global _handler, _target_logger, _previous_excepthook
    if _handler is None:
        return

    if _target_logger is not None:
        _target_logger.removeHandler(_handler)
    if sys.excepthook is _capturing_excepthook:
        sys.excepthook = _previous_excepthook or sys.__excepthook__

    _handler = None
    _target_logger = None
    _previous_excepthook = None
    logger.debug("Error capture uninstalled")
