#!/usr/bin/env python3

"""
Connectivity probe run right after a login succeeds.

Times a few small requests against the game server. If the server cannot be
reached, or the connection is slower than the configured limit, the session
is logged out again so the client does not carry on with an unusable link.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from config.config_schema import PingConfig
from core.exceptions import TransportError

if TYPE_CHECKING:
    from core.session_manager import SessionCoordinator
    from core.transport import HttpLoginTransport

logger = logging.getLogger(__name__)


@dataclass
class PingResult:
    """Summary of one probe run."""

    samples: int
    failures: int
    average_ms: Optional[float]

    @property
    def ok(self) -> bool:
        return self.failures == 0 and self.samples > 0


class PingProbe:
    """
    ConnectivityProbeProtocol implementation.

    The coordinator increments its ping_depth before calling ping(); a depth
    above one means this ping belongs to a login started from inside another
    ping, which has already been measured.
    """

    def __init__(
        self,
        transport: HttpLoginTransport,
        coordinator: SessionCoordinator,
        config: PingConfig,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.transport = transport
        self.coordinator = coordinator
        self.config = config
        self._timer = timer
        self.last_result: Optional[PingResult] = None

    def ping(self) -> bool:
        if not self.config.enabled:
            return True

        if self.coordinator.ping_depth > 1:
            logger.debug("Nested ping skipped; outer ping already running")
            return True

        result = self._measure()
        self.last_result = result

        if not result.ok:
            logger.warning(f"Connectivity check failed ({result.failures}/{result.samples} requests); logging out")
            self.coordinator.mark_logged_out()
            return False

        if result.average_ms is not None and result.average_ms > self.config.max_latency_ms:
            logger.warning(
                f"Connection too slow: average {result.average_ms:.0f}ms exceeds "
                f"{self.config.max_latency_ms}ms; logging out"
            )
            self.coordinator.mark_logged_out()
            return False

        logger.info(f"Connectivity check passed: average {result.average_ms:.0f}ms over {result.samples} requests")
        return True

    def _measure(self) -> PingResult:
        timings: list[float] = []
        failures = 0

        for _ in range(self.config.count):
            started = self._timer()
            try:
                response = self.transport.get(self.config.path)
            except TransportError as e:
                logger.debug(f"Ping request failed: {e.message}")
                failures += 1
                continue
            if not response.ok:
                logger.debug(f"Ping request returned HTTP {response.status_code}")
                failures += 1
                continue
            timings.append((self._timer() - started) * 1000)

        average = sum(timings) / len(timings) if timings else None
        return PingResult(samples=self.config.count, failures=failures, average_ms=average)


__all__ = ["PingProbe", "PingResult"]
