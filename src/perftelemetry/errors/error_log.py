"""Capture of uncaught exceptions and unhandled task failures."""

import asyncio
import logging
import sys
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

RECENT_ERROR_WINDOW_MS = 5 * 60 * 1000


@dataclass(frozen=True)
class ErrorRecord:
    """One captured error; ``timestamp`` is epoch milliseconds."""

    message: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def describe_exception(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class ErrorLog:
    """Records host application errors as data.

    Installed handlers chain to whatever was there before, so errors still
    surface normally; the log only observes them. Growth is unbounded until
    ``clear_errors()``.
    """

    def __init__(self, wall_clock: Callable[[], float]):
        self.wall_clock = wall_clock
        self._errors: List[ErrorRecord] = []

        self._previous_excepthook: Optional[Callable] = None
        self._previous_threading_excepthook: Optional[Callable] = None
        self._loops: Dict[asyncio.AbstractEventLoop, Optional[Callable]] = {}

    def record(self, message: str) -> ErrorRecord:
        record = ErrorRecord(message=message, timestamp=self.wall_clock())
        self._errors.append(record)
        return record

    def record_exception(self, exc: BaseException) -> ErrorRecord:
        return self.record(describe_exception(exc))

    def get_errors(self) -> List[ErrorRecord]:
        return list(self._errors)

    def recent(self, window_ms: float = RECENT_ERROR_WINDOW_MS) -> List[ErrorRecord]:
        """Errors recorded less than ``window_ms`` ago."""
        now = self.wall_clock()
        return [e for e in self._errors if now - e.timestamp < window_ms]

    def clear_errors(self) -> None:
        self._errors = []

    def __len__(self) -> int:
        return len(self._errors)

    # Process-boundary hooks

    @property
    def installed(self) -> bool:
        return self._previous_excepthook is not None

    def install(self) -> None:
        """Chain into ``sys.excepthook`` and ``threading.excepthook``."""
        if self.installed:
            return
        self._previous_excepthook = sys.excepthook
        self._previous_threading_excepthook = threading.excepthook
        sys.excepthook = self._excepthook
        threading.excepthook = self._threading_excepthook
        logger.debug("Error hooks installed")

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Capture unhandled exceptions of tasks running on ``loop``."""
        if loop in self._loops:
            return
        self._loops[loop] = loop.get_exception_handler()
        loop.set_exception_handler(self._loop_exception_handler)

    def uninstall(self) -> None:
        """Restore every handler replaced by ``install``/``attach_loop``."""
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
            threading.excepthook = self._previous_threading_excepthook
            self._previous_excepthook = None
            self._previous_threading_excepthook = None
        for loop, previous in self._loops.items():
            if not loop.is_closed():
                loop.set_exception_handler(previous)
        self._loops = {}
        logger.debug("Error hooks removed")

    def _excepthook(self, exc_type, exc_value, exc_traceback) -> None:
        self.record(describe_exception(exc_value) if exc_value is not None else exc_type.__name__)
        self._previous_excepthook(exc_type, exc_value, exc_traceback)

    def _threading_excepthook(self, args) -> None:
        if args.exc_value is not None:
            self.record(describe_exception(args.exc_value))
        else:
            self.record(args.exc_type.__name__)
        self._previous_threading_excepthook(args)

    def _loop_exception_handler(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exc = context.get("exception")
        reason = describe_exception(exc) if exc is not None else context.get("message", "unknown")
        self.record(f"Unhandled task exception: {reason}")

        previous = self._loops.get(loop)
        if previous is not None:
            previous(loop, context)
        else:
            loop.default_exception_handler(context)
