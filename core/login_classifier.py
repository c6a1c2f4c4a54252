#!/usr/bin/env python3

"""
Login Response Classification

Maps a completed login exchange onto exactly one outcome from a closed set.
The server answers login attempts with unversioned plain text embedded in
markup, so classification is a prioritised list of substring checks rather
than structured parsing.

Priority Order (first match wins):
    1. Transport failure  - status other than 200 and no redirect target
    2. Bad credentials    - "Bad password"
    3. Rate limited       - "wait fifteen minutes" (900s lockout)
    4. Session conflict   - "wait a minute" / "wait a couple of minutes" (75s)
    5. Too many attempts  - "Too many", message runs up to the next '<'
    6. Privilege denied   - "do not have the privileges" (alternate server)
    7. Success            - a redirect target is present
    8. Unknown failure    - catch-all

Usage:
    from core.login_classifier import classify_login_response, LoginOutcome

    classification = classify_login_response(200, body, None)
    if classification.outcome is LoginOutcome.BAD_CREDENTIALS:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

RATE_LIMIT_WAIT_SECONDS = 15 * 60
SESSION_CONFLICT_WAIT_SECONDS = 75

BAD_PASSWORD_MARKER = "Bad password"
RATE_LIMIT_MARKER = "wait fifteen minutes"
SESSION_CONFLICT_MARKERS = ("wait a minute", "wait a couple of minutes")
TOO_MANY_MARKER = "Too many"
PRIVILEGE_MARKER = "do not have the privileges"


class LoginOutcome(Enum):
    """Closed set of interpretations of a login exchange."""

    SUCCESS = "success"
    BAD_CREDENTIALS = "bad_credentials"
    RATE_LIMITED = "rate_limited"
    SESSION_CONFLICT = "session_conflict"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    PRIVILEGE_DENIED = "privilege_denied"
    UNKNOWN_FAILURE = "unknown_failure"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class LoginClassification:
    """Result of classifying one login exchange."""

    outcome: LoginOutcome
    redirect_location: Optional[str] = None
    wait_seconds: Optional[int] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.outcome is LoginOutcome.SUCCESS


def _extract_too_many_message(body_text: str) -> str:
    """Return the text from the 'Too many' marker up to the next markup delimiter."""
    start = body_text.find(TOO_MANY_MARKER)
    end = body_text.find("<", start + 1)
    if end == -1:
        end = len(body_text)
    return body_text[start:end]


def classify_login_response(
    status_code: int,
    body_text: Optional[str],
    redirect_location: Optional[str] = None,
) -> LoginClassification:
    """
    Classify a completed login exchange.

    Args:
        status_code: HTTP status of the exchange
        body_text: Response body (may be empty for redirects)
        redirect_location: Location the server redirected to, if any

    Returns:
        LoginClassification: exactly one outcome; never raises
    """
    if status_code != 200 and not redirect_location:
        return LoginClassification(LoginOutcome.TRANSPORT_FAILURE)

    body = body_text or ""

    if BAD_PASSWORD_MARKER in body:
        return LoginClassification(LoginOutcome.BAD_CREDENTIALS, message="Bad password.")

    if RATE_LIMIT_MARKER in body:
        return LoginClassification(LoginOutcome.RATE_LIMITED, wait_seconds=RATE_LIMIT_WAIT_SECONDS)

    if any(marker in body for marker in SESSION_CONFLICT_MARKERS):
        return LoginClassification(LoginOutcome.SESSION_CONFLICT, wait_seconds=SESSION_CONFLICT_WAIT_SECONDS)

    if TOO_MANY_MARKER in body:
        return LoginClassification(LoginOutcome.TOO_MANY_ATTEMPTS, message=_extract_too_many_message(body))

    if PRIVILEGE_MARKER in body:
        return LoginClassification(LoginOutcome.PRIVILEGE_DENIED)

    if redirect_location:
        return LoginClassification(LoginOutcome.SUCCESS, redirect_location=redirect_location)

    return LoginClassification(LoginOutcome.UNKNOWN_FAILURE, message="Encountered error in login.")


__all__ = [
    "RATE_LIMIT_WAIT_SECONDS",
    "SESSION_CONFLICT_WAIT_SECONDS",
    "LoginClassification",
    "LoginOutcome",
    "classify_login_response",
]
