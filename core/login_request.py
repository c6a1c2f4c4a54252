#!/usr/bin/env python3

"""
Login request: one constructible, re-executable session attempt.

A LoginRequest is built once per explicit login action and then reused for
every later time-in or re-login, so state it picks up while running (the
stealth override) carries over to re-executions. Each execution builds the
login form, submits it, classifies the answer and follows the retry policy
until it reaches a terminal outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from core.exceptions import TransportError
from core.login_classifier import LoginOutcome, classify_login_response
from core.protocols import DisplayState, LoginExchange, LoginForm
from core.retry import LoginAction, resolve_login_action

if TYPE_CHECKING:
    from core.session_manager import SessionCoordinator

logger = logging.getLogger(__name__)

LOGIN_PATH = "login.php"
STEALTH_MARKER = "/q"

# Preference names read or written while logging in
PREF_STEALTH_LOGIN = "stealth_login"
PREF_PING_STEALTHY_TIMEIN = "ping_stealthy_timein"
PREF_USE_ALTERNATE_SERVER = "use_alternate_server"
PREF_DISPLAY_NAME = "display_name"


class LoginMode(Enum):
    """Which completion path a successful execution takes."""

    LOGIN = "login"
    TIMEIN = "timein"


@dataclass(frozen=True)
class Credentials:
    """Identity and secret for a login; immutable once an attempt exists."""

    identity: str
    secret: str = field(repr=False)
    stealthy: bool = False

    @classmethod
    def from_login_name(cls, login_name: Optional[str], secret: str) -> Credentials:
        """
        Build credentials from a user-supplied login name.

        The stealth marker may appear anywhere in the name; every occurrence
        is removed and remembered as stealthy=True.
        """
        name = login_name or ""
        stealthy = False
        if STEALTH_MARKER in name:
            name = name.replace(STEALTH_MARKER, "")
            stealthy = True
        return cls(identity=name, secret=secret, stealthy=stealthy)


@dataclass
class LoginResult:
    """Terminal result of one execution of a LoginRequest."""

    outcome: LoginOutcome
    mode: LoginMode
    submissions: int
    message: Optional[str] = None
    exchange: Optional[LoginExchange] = None
    issued_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is LoginOutcome.SUCCESS


class LoginRequest:
    """
    A single session attempt bound to one SessionCoordinator.

    Usage:
        request = LoginRequest(Credentials.from_login_name("wizard/q", "pw"), coordinator)
        result = request.execute(LoginMode.LOGIN)
    """

    def __init__(self, credentials: Credentials, session_manager: SessionCoordinator) -> None:
        self.credentials = credentials
        self.stealthy = credentials.stealthy
        self.issued_at: Optional[datetime] = None
        self.form = LoginForm(LOGIN_PATH)
        self._session_manager = session_manager

        session_manager.preferences.set_string(self.identity, PREF_DISPLAY_NAME, self.identity)

    @property
    def identity(self) -> str:
        return self.credentials.identity

    def __repr__(self) -> str:
        return f"LoginRequest(identity={self.identity!r}, stealthy={self.stealthy})"

    def build_form(self) -> LoginForm:
        """Rebuild the login form from scratch for the next submission."""
        preferences = self._session_manager.preferences

        self.form.clear()
        self.form.add_field("password", self.credentials.secret)
        self.form.add_field("secure", "0")

        stealthy = self.stealthy or preferences.get_boolean(PREF_STEALTH_LOGIN)
        login_name = self.identity + STEALTH_MARKER if stealthy else self.identity
        self.form.add_field("loginname", login_name)
        self.form.add_field("loggingin", "Yup.")

        # Applies from the next submission on, including later time-ins
        if preferences.get_boolean(PREF_PING_STEALTHY_TIMEIN):
            self.stealthy = True

        return self.form

    def execute(self, mode: LoginMode) -> LoginResult:
        """
        Run the attempt until it reaches a terminal outcome.

        Every pass is a full resubmission, never a resume. There is no cap on
        the number of passes; see core.retry for why the loop ends anyway.

        Args:
            mode: LOGIN or TIMEIN, chosen by the coordinator for this execution

        Returns:
            LoginResult: outcome, number of submissions and the final exchange
        """
        manager = self._session_manager
        submissions = 0

        while True:
            manager.begin_submission(self)
            form = self.build_form()

            manager.display.update("Sending login request...")
            submissions += 1
            try:
                exchange = manager.transport.submit(form)
            except TransportError as e:
                logger.error(f"Login exchange for {self.identity} failed after {e.attempts} attempt(s): {e.message}")
                manager.display.update(f"Login request failed: {e.message}", DisplayState.ERROR)
                return LoginResult(
                    LoginOutcome.TRANSPORT_FAILURE, mode, submissions, message=e.message, issued_at=self.issued_at
                )

            if exchange.status_code == 200:
                manager.clear_attempt_timestamp()

            classification = classify_login_response(
                exchange.status_code, exchange.body_text, exchange.redirect_location
            )
            decision = resolve_login_action(classification)
            logger.debug(
                f"Login submission {submissions} ({mode.value}) classified as "
                f"{classification.outcome.value} -> {decision.action.value}"
            )

            if decision.action is LoginAction.SUCCEED:
                logger.info(f"Login accepted for {self.identity}; redirected to {classification.redirect_location}")
                manager.process_login_exchange(exchange, mode)
                return LoginResult(classification.outcome, mode, submissions, exchange=exchange, issued_at=self.issued_at)

            if decision.action is LoginAction.FAIL:
                logger.error(f"Login for {self.identity} failed: {decision.message}")
                manager.display.update(decision.message or "", DisplayState.ABORT)
                return LoginResult(classification.outcome, mode, submissions, decision.message, exchange, self.issued_at)

            if decision.retries:
                if decision.disable_alternate_server:
                    logger.warning("Alternate server refused this account; falling back to the default server")
                    manager.preferences.set_boolean(PREF_USE_ALTERNATE_SERVER, False)
                if decision.wait_seconds > 0:
                    logger.warning(
                        f"Login for {self.identity} deferred by server ({classification.outcome.value}); "
                        f"resubmitting in {decision.wait_seconds}s"
                    )
                    manager.countdown.countdown(decision.message or "", decision.wait_seconds)
                continue

            logger.warning(
                f"Login exchange returned HTTP {exchange.status_code} without a redirect; "
                "leaving the retry to the caller"
            )
            return LoginResult(classification.outcome, mode, submissions, exchange=exchange, issued_at=self.issued_at)


__all__ = [
    "LOGIN_PATH",
    "STEALTH_MARKER",
    "Credentials",
    "LoginMode",
    "LoginRequest",
    "LoginResult",
]
