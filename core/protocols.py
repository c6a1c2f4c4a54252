"""
Type protocols and exchange structures for the game session client.

This module provides:
1. Protocol classes for the collaborators the session layer talks to
2. Dataclasses describing a login form and a completed login exchange

Usage:
    from core.protocols import (
        LoginExchange,
        LoginForm,
        LoginTransportProtocol,
        PreferencesProtocol,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

# =============================================================================
# Exchange Structures
# =============================================================================


@dataclass
class LoginForm:
    """Form submission for the login endpoint.

    Fields keep their insertion order so the encoded body matches the order
    they were added in.
    """

    path: str
    fields: dict[str, str] = field(default_factory=dict)

    def add_field(self, name: str, value: str) -> None:
        self.fields[name] = value

    def get_field(self, name: str) -> Optional[str]:
        return self.fields.get(name)

    def clear(self) -> None:
        self.fields.clear()


@dataclass
class LoginExchange:
    """A completed login exchange: the submitted form and what came back."""

    form: LoginForm
    status_code: int
    body_text: str = ""
    redirect_location: Optional[str] = None
    url: Optional[str] = None
    cookies: dict[str, str] = field(default_factory=dict)


class DisplayState(Enum):
    """Severity of a user-visible status update."""

    CONTINUE = "continue"
    ERROR = "error"
    ABORT = "abort"


# =============================================================================
# Protocol Classes (Duck Typing with Type Safety)
# =============================================================================


@runtime_checkable
class LoginTransportProtocol(Protocol):
    """HTTP transport for login exchanges.

    submit() retries internally on timeout; callers never see a timeout
    unless every attempt failed.
    """

    def apply_settings(self) -> None:
        """Select the server to talk to from current preferences."""
        ...

    def reset(self) -> None:
        """Drop connection and cookie state before a fresh login."""
        ...

    def submit(self, form: LoginForm) -> LoginExchange:
        """Submit the form and return the completed exchange."""
        ...


@runtime_checkable
class CookieStoreProtocol(Protocol):
    """Cookie jar that persists cookies from completed exchanges."""

    def apply_exchange(self, exchange: LoginExchange) -> None:
        ...


@runtime_checkable
class CountdownProtocol(Protocol):
    """Displays a wait message and blocks until the period has elapsed."""

    def countdown(self, message: str, seconds: int) -> None:
        ...


@runtime_checkable
class StatusDisplayProtocol(Protocol):
    """User-visible status line."""

    def update(self, message: str, state: DisplayState = DisplayState.CONTINUE) -> None:
        ...

    def force_continue(self) -> None:
        """Clear any abort state left over from a previous operation."""
        ...


@runtime_checkable
class PreferencesProtocol(Protocol):
    """Persistent global flags and per-identity string preferences."""

    def get_boolean(self, name: str) -> bool:
        ...

    def set_boolean(self, name: str, value: bool) -> None:
        ...

    def get_string(self, identity: str, name: str) -> str:
        ...

    def set_string(self, identity: str, name: str, value: str) -> None:
        ...


@runtime_checkable
class SaveStateProtocol(Protocol):
    """Remembers identity/secret pairs for later automatic logins."""

    def add_save_state(self, identity: str, secret: str) -> bool:
        ...


@runtime_checkable
class ConnectivityProbeProtocol(Protocol):
    """Connection check run after a successful login.

    Returns False when the connection is unacceptable, in which case the
    probe has already logged the session out.
    """

    def ping(self) -> bool:
        ...


@runtime_checkable
class SessionBootstrapProtocol(Protocol):
    """Post-login work run once a login or time-in completes."""

    def on_login_complete(self, identity: str) -> None:
        ...

    def on_timein_complete(self, identity: str) -> None:
        ...


@runtime_checkable
class ListenerRegistryProtocol(Protocol):
    """Observer registry notified when session state changes."""

    def fire_change(self, topic: str) -> None:
        ...
