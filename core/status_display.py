#!/usr/bin/env python3

"""Status line for session events: logged, optionally echoed to the console."""

import logging
import sys
import threading
from collections import deque
from typing import Optional, TextIO

from core.protocols import DisplayState

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100

_LOG_LEVELS = {
    DisplayState.CONTINUE: logging.INFO,
    DisplayState.ERROR: logging.ERROR,
    DisplayState.ABORT: logging.ERROR,
}


class LoggingStatusDisplay:
    """
    Records the latest status and whether the current operation was aborted.

    An abort stays in effect until force_continue() is called, which the
    coordinator does before every login submission.
    """

    def __init__(
        self, echo: bool = False, stream: Optional[TextIO] = None, history_limit: int = HISTORY_LIMIT
    ) -> None:
        self.echo = echo
        self._stream = stream
        self._lock = threading.Lock()
        self.state = DisplayState.CONTINUE
        self.last_message: Optional[str] = None
        self.abort_message: Optional[str] = None
        self.history: deque[tuple[DisplayState, str]] = deque(maxlen=history_limit)

    @property
    def aborted(self) -> bool:
        return self.state is DisplayState.ABORT

    def update(self, message: str, state: DisplayState = DisplayState.CONTINUE) -> None:
        with self._lock:
            self.last_message = message
            self.history.append((state, message))
            if state is DisplayState.ABORT:
                self.state = DisplayState.ABORT
                self.abort_message = message
            elif self.state is not DisplayState.ABORT:
                self.state = state

        logger.log(_LOG_LEVELS[state], f"[status] {message}")
        if self.echo:
            stream = self._stream or sys.stdout
            print(message, file=stream, flush=True)

    def force_continue(self) -> None:
        with self._lock:
            self.state = DisplayState.CONTINUE
            self.abort_message = None


__all__ = ["HISTORY_LIMIT", "LoggingStatusDisplay"]
