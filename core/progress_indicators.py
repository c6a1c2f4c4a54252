#!/usr/bin/env python3

"""
Core Progress Indicators Module

Countdown shown while a login waits out a server-imposed delay before it is
resubmitted. The wait blocks the caller; the bar only reports progress.
"""

# === CORE INFRASTRUCTURE ===
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from tqdm.auto import tqdm

logger = logging.getLogger(__name__)


@dataclass
class CountdownStats:
    """Statistics for countdowns run by one indicator"""
    countdowns: int = 0
    seconds_waited: int = 0
    last_message: Optional[str] = None
    last_started: Optional[datetime] = field(default=None)


class TqdmCountdown:
    """
    Blocking countdown drawn as a tqdm bar, one tick per second.

    Usage:
        TqdmCountdown().countdown("Login reattempt in ", 75)
    """

    def __init__(
        self,
        show_bar: bool = True,
        leave: bool = False,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self.show_bar = show_bar
        self.leave = leave
        self._sleep = sleep
        self.stats = CountdownStats()

    def countdown(self, message: str, seconds: int) -> None:
        """Wait `seconds` seconds, showing `message` and the time remaining."""
        seconds = max(int(seconds), 0)
        self.stats.countdowns += 1
        self.stats.last_message = message
        self.stats.last_started = datetime.now()
        logger.info(f"{message}{seconds} seconds")

        progress_bar: Optional[tqdm] = None
        if self.show_bar and seconds > 0:
            progress_bar = tqdm(
                desc=message.strip(),
                total=seconds,
                unit="s",
                dynamic_ncols=True,
                leave=self.leave,
                bar_format="{desc} {remaining}|{bar}| {n_fmt}/{total_fmt}s",
            )

        try:
            for _ in range(seconds):
                self._sleep(1)
                self.stats.seconds_waited += 1
                if progress_bar is not None:
                    progress_bar.update(1)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        logger.debug(f"Countdown finished after {seconds}s")


__all__ = ["CountdownStats", "TqdmCountdown"]
