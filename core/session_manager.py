#!/usr/bin/env python3

"""
Session Coordinator - owns the single logical game session.

Ties a LoginRequest to the collaborators it needs (transport, cookie store,
status display, preferences, connectivity probe, bootstrap and listener
registry) and decides when a session must be re-established:

- explicit logins started by the user
- automatic time-ins triggered when a page request is redirected to the
  login page
- re-logins and re-time-ins requested by other components

Only one attempt is ever remembered. Time-in triggers that arrive within the
suppression window of the last submission are ignored, so a flurry of
redirects produces a single attempt.
"""

# === CORE INFRASTRUCTURE ===
import logging

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

# === LOCAL IMPORTS ===
from core.exceptions import ConcurrentSessionError
from core.login_request import (
    STEALTH_MARKER,
    Credentials,
    LoginMode,
    LoginRequest,
    LoginResult,
)
from core.protocols import (
    ConnectivityProbeProtocol,
    CookieStoreProtocol,
    CountdownProtocol,
    ListenerRegistryProtocol,
    LoginExchange,
    LoginTransportProtocol,
    PreferencesProtocol,
    SaveStateProtocol,
    SessionBootstrapProtocol,
    StatusDisplayProtocol,
)

SESSION_TOPIC = "session"
DEFAULT_TIMEIN_SUPPRESSION_SECONDS = 30.0
PREF_SAVE_STATE_ACTIVE = "save_state_active"


class SessionCoordinator:
    """
    Coordinates login, time-in and logout for one game session.

    The connectivity probe and bootstrap usually need a reference back to the
    coordinator, so both may be attached after construction.

    The lock guards session state only. Attempts, including their countdowns
    and the connectivity probe, run outside it, so a time-in triggered from
    another thread while a login is running sees login_in_progress and fails.
    """

    def __init__(
        self,
        transport: LoginTransportProtocol,
        preferences: PreferencesProtocol,
        cookie_store: CookieStoreProtocol,
        countdown: CountdownProtocol,
        display: StatusDisplayProtocol,
        listeners: ListenerRegistryProtocol,
        probe: Optional[ConnectivityProbeProtocol] = None,
        bootstrap: Optional[SessionBootstrapProtocol] = None,
        save_state: Optional[SaveStateProtocol] = None,
        timein_suppression_seconds: float = DEFAULT_TIMEIN_SUPPRESSION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.preferences = preferences
        self.cookie_store = cookie_store
        self.countdown = countdown
        self.display = display
        self.listeners = listeners
        self.probe = probe
        self.bootstrap = bootstrap
        self.save_state = save_state
        self.timein_suppression_seconds = timein_suppression_seconds
        self._clock = clock

        self._lock = threading.RLock()
        self._established = False
        self._last_attempt: Optional[LoginRequest] = None
        self._last_attempt_timestamp: Optional[float] = None
        self._login_in_progress = False
        self._timein_in_progress = False

        self.ping_depth = 0
        self.last_result: Optional[LoginResult] = None

        logger.debug(f"SessionCoordinator created: ID={id(self)}")

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    def is_established(self) -> bool:
        return self._established

    @property
    def last_attempt(self) -> Optional[LoginRequest]:
        return self._last_attempt

    @property
    def last_attempt_timestamp(self) -> Optional[float]:
        return self._last_attempt_timestamp

    @property
    def is_login_in_progress(self) -> bool:
        return self._login_in_progress

    @property
    def is_timein_in_progress(self) -> bool:
        return self._timein_in_progress

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start_explicit_login(self, credentials: Credentials) -> None:
        """
        Create a new attempt for the given credentials and run it in LOGIN mode.

        The attempt becomes the remembered one, replacing any earlier attempt.
        The outcome is left in last_result.
        """
        attempt = LoginRequest(credentials, self)
        with self._lock:
            self._last_attempt = attempt

        logger.info(f"Starting explicit login for {credentials.identity}")
        with self.logging_in():
            self._execute(attempt, LoginMode.LOGIN)

    def trigger_timein_from_redirect(self, request_location: str, redirect_location: str) -> bool:
        """
        Re-establish the session after a page request was redirected to login.

        Args:
            request_location: URL of the request that was redirected
            redirect_location: where the server sent it

        Returns:
            bool: whether the session is established afterwards

        Raises:
            ConcurrentSessionError: a login is already in progress outside the
                suppression window
        """
        with self._lock:
            attempt = self._last_attempt
            if attempt is None or self._timein_in_progress:
                logger.debug("Time-in trigger ignored: no remembered attempt or time-in already running")
                return self._established

            if self._within_suppression_window():
                logger.debug(f"Time-in trigger for {request_location} suppressed; an attempt was submitted recently")
                return self._established

            if self._login_in_progress:
                logger.critical(
                    f"Time-in requested while a login is in progress: {request_location} => {redirect_location}",
                    stack_info=True,
                )
                raise ConcurrentSessionError(
                    f"Time-in requested while logging in: {request_location} => {redirect_location}",
                    request_location=request_location,
                    redirect_location=redirect_location,
                    recovery_hint="Terminate the client; login and time-in overlapped",
                )

            self._timein_in_progress = True

        logger.info(f"Session expired ({request_location} => {redirect_location}); timing in")
        return self._run_timein(attempt, claimed=True)

    def retimein(self) -> bool:
        """Re-execute the remembered attempt in TIMEIN mode."""
        with self._lock:
            attempt = self._last_attempt
        if attempt is None:
            logger.debug("retimein skipped: no remembered attempt")
            return self._established
        return self._run_timein(attempt)

    def relogin(self) -> bool:
        """Re-execute the remembered attempt in LOGIN mode."""
        with self._lock:
            attempt = self._last_attempt
        if attempt is None:
            logger.debug("relogin skipped: no remembered attempt")
            return self._established
        self._execute(attempt, LoginMode.LOGIN)
        return self._established

    def mark_logged_out(self) -> None:
        """Record that the session is gone and allow an immediate time-in."""
        logger.info("Session marked as logged out")
        self._set_established(False)
        with self._lock:
            self._last_attempt_timestamp = None

    @contextmanager
    def logging_in(self) -> Iterator[None]:
        """Mark the block as an explicit login; overlapping time-ins are fatal."""
        with self._lock:
            previous = self._login_in_progress
            self._login_in_progress = True
        try:
            yield
        finally:
            with self._lock:
                self._login_in_progress = previous

    def set_logging_in(self, flag: bool) -> None:
        with self._lock:
            self._login_in_progress = flag

    # ------------------------------------------------------------------
    # Hooks used by LoginRequest
    # ------------------------------------------------------------------

    def begin_submission(self, attempt: LoginRequest) -> None:
        """Prepare transport and bookkeeping for one form submission."""
        with self._lock:
            self.transport.reset()
            self.display.force_continue()

            if self.save_state is not None and self.preferences.get_boolean(PREF_SAVE_STATE_ACTIVE):
                self.save_state.add_save_state(attempt.identity, attempt.credentials.secret)

            self._last_attempt = attempt
            self._last_attempt_timestamp = self._clock()
            attempt.issued_at = datetime.now(timezone.utc)

            self.transport.apply_settings()

    def clear_attempt_timestamp(self) -> None:
        with self._lock:
            self._last_attempt_timestamp = None

    def process_login_exchange(self, exchange: LoginExchange, mode: LoginMode) -> None:
        """
        Complete a successful login exchange.

        Applies cookies, marks the session established, runs the connectivity
        probe and, for the outermost login only, hands over to the bootstrap.
        """
        if not exchange.redirect_location:
            return

        with self._lock:
            self.cookie_store.apply_exchange(exchange)
        self._set_established(True)

        login_name = exchange.form.get_field("loginname")
        if login_name is None:
            logger.warning("Login exchange has no loginname field; skipping post-login work")
            return
        if ".." in login_name:
            logger.warning(f"Refusing post-login work for suspicious login name {login_name!r}")
            return
        if login_name.endswith(STEALTH_MARKER):
            login_name = login_name[: -len(STEALTH_MARKER)].strip()

        if not self._run_probe():
            self.clear_attempt_timestamp()
            return

        if self.ping_depth > 0:
            logger.debug(f"Nested login for {login_name} complete; outer login continues")
            return

        if self.bootstrap is None:
            logger.debug("No session bootstrap attached; login complete")
            return

        if mode is LoginMode.TIMEIN:
            self.bootstrap.on_timein_complete(login_name)
        else:
            self.bootstrap.on_login_complete(login_name)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(self, attempt: LoginRequest, mode: LoginMode) -> LoginResult:
        self._set_established(False, always_notify=False)
        result = attempt.execute(mode)
        with self._lock:
            self.last_result = result
        logger.debug(f"Attempt {attempt!r} finished in {mode.value} mode: {result.outcome.value}")
        return result

    def _run_timein(self, attempt: LoginRequest, claimed: bool = False) -> bool:
        """Run a time-in; `claimed` means the caller already set timein_in_progress."""
        if not claimed:
            with self._lock:
                self._timein_in_progress = True
        try:
            self._execute(attempt, LoginMode.TIMEIN)
        finally:
            with self._lock:
                self._timein_in_progress = False
        return self._established

    def _run_probe(self) -> bool:
        if self.probe is None:
            return True

        with self._lock:
            self.ping_depth += 1
        try:
            ok = self.probe.ping()
        finally:
            with self._lock:
                self.ping_depth -= 1

        if not ok and self._established:
            logger.warning("Connectivity probe failed without logging out; logging out now")
            self._set_established(False)
        return ok and self._established

    def _within_suppression_window(self) -> bool:
        stamp = self._last_attempt_timestamp
        return stamp is not None and self._clock() - stamp < self.timein_suppression_seconds

    def _set_established(self, value: bool, always_notify: bool = True) -> None:
        with self._lock:
            changed = value != self._established
            self._established = value
        if changed or always_notify:
            self.listeners.fire_change(SESSION_TOPIC)


__all__ = [
    "DEFAULT_TIMEIN_SUPPRESSION_SECONDS",
    "SESSION_TOPIC",
    "SessionCoordinator",
]
