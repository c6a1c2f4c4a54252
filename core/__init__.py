"""
Core Package - Game Session Management.

Components:
- login_classifier: maps a login exchange to one outcome
- retry: maps an outcome to the next action of the attempt loop
- login_request: the re-executable login attempt
- session_manager: SessionCoordinator, owner of the single session
- transport, cookie_utils, connectivity, bootstrap, status_display,
  progress_indicators, registry_utils: default collaborators
- lifecycle: wiring at startup and cleanup at shutdown
"""

__version__ = "1.0.0"

from core.exceptions import ConcurrentSessionError, GameSessionError, TransportError
from core.login_classifier import LoginClassification, LoginOutcome, classify_login_response
from core.login_request import Credentials, LoginMode, LoginRequest, LoginResult
from core.retry import LoginAction, RetryDecision, resolve_login_action
from core.session_manager import SessionCoordinator

__all__ = [
    "ConcurrentSessionError",
    "Credentials",
    "GameSessionError",
    "LoginAction",
    "LoginClassification",
    "LoginMode",
    "LoginOutcome",
    "LoginRequest",
    "LoginResult",
    "RetryDecision",
    "SessionCoordinator",
    "TransportError",
    "classify_login_response",
    "resolve_login_action",
]
