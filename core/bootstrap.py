#!/usr/bin/env python3

"""Post-login bootstrap: the work done once a login or time-in has completed."""

import logging
from typing import Optional

from core.protocols import PreferencesProtocol, StatusDisplayProtocol

logger = logging.getLogger(__name__)


class LoggingBootstrap:
    """
    Minimal SessionBootstrapProtocol implementation.

    Loading character state is left to the wider client; this records who is
    logged in and tells the user.
    """

    def __init__(self, preferences: PreferencesProtocol, display: Optional[StatusDisplayProtocol] = None) -> None:
        self.preferences = preferences
        self.display = display
        self.login_completions = 0
        self.timein_completions = 0
        self.current_identity: Optional[str] = None

    def on_login_complete(self, identity: str) -> None:
        self.login_completions += 1
        self._record(identity)
        self._announce(f"Welcome back, {self._display_name(identity)}.")

    def on_timein_complete(self, identity: str) -> None:
        self.timein_completions += 1
        self._record(identity)
        self._announce(f"Session restored for {self._display_name(identity)}.")

    def _record(self, identity: str) -> None:
        self.current_identity = identity
        if not self.preferences.get_string(identity, "display_name"):
            self.preferences.set_string(identity, "display_name", identity)

    def _display_name(self, identity: str) -> str:
        return self.preferences.get_string(identity, "display_name") or identity

    def _announce(self, message: str) -> None:
        logger.info(message)
        if self.display is not None:
            self.display.update(message)


__all__ = ["LoggingBootstrap"]
