#!/usr/bin/env python3

"""
Retry policy for login attempts.

Turns a login classification into the action the attempt loop must take:
succeed, fail, wait and resubmit, reconfigure and resubmit, or hand control
back to the caller.

The loop driven by these decisions has no maximum attempt count. Only
WAIT_AND_RETRY and RECONFIGURE_AND_RETRY continue it, and the server's own
wait periods bound how often those can repeat, so the loop limits itself in
practice while remaining unbounded in its types.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.login_classifier import LoginClassification, LoginOutcome

COUNTDOWN_MESSAGE = "Login reattempt in "


class LoginAction(Enum):
    """Actions the attempt loop can take after a classification."""

    SUCCEED = "succeed"
    FAIL = "fail"
    WAIT_AND_RETRY = "wait_and_retry"
    RECONFIGURE_AND_RETRY = "reconfigure_and_retry"
    DELEGATE = "delegate"


@dataclass(frozen=True)
class RetryDecision:
    """Resolved action plus the parameters needed to carry it out."""

    action: LoginAction
    wait_seconds: int = 0
    message: Optional[str] = None
    disable_alternate_server: bool = False

    @property
    def retries(self) -> bool:
        return self.action in {LoginAction.WAIT_AND_RETRY, LoginAction.RECONFIGURE_AND_RETRY}


_FATAL_OUTCOMES = {
    LoginOutcome.BAD_CREDENTIALS,
    LoginOutcome.TOO_MANY_ATTEMPTS,
    LoginOutcome.UNKNOWN_FAILURE,
}

_WAIT_OUTCOMES = {
    LoginOutcome.RATE_LIMITED,
    LoginOutcome.SESSION_CONFLICT,
}


def resolve_login_action(classification: LoginClassification) -> RetryDecision:
    """
    Map a classification to a retry decision.

    Args:
        classification: Output of classify_login_response

    Returns:
        RetryDecision describing what the attempt loop does next
    """
    outcome = classification.outcome

    if outcome is LoginOutcome.SUCCESS:
        return RetryDecision(LoginAction.SUCCEED)

    if outcome in _FATAL_OUTCOMES:
        return RetryDecision(LoginAction.FAIL, message=classification.message or "Encountered error in login.")

    if outcome in _WAIT_OUTCOMES:
        return RetryDecision(
            LoginAction.WAIT_AND_RETRY,
            wait_seconds=classification.wait_seconds or 0,
            message=COUNTDOWN_MESSAGE,
        )

    if outcome is LoginOutcome.PRIVILEGE_DENIED:
        return RetryDecision(LoginAction.RECONFIGURE_AND_RETRY, disable_alternate_server=True)

    # TRANSPORT_FAILURE: the transport already retried what it could
    return RetryDecision(LoginAction.DELEGATE)


__all__ = [
    "COUNTDOWN_MESSAGE",
    "LoginAction",
    "RetryDecision",
    "resolve_login_action",
]
