#!/usr/bin/env python3

"""
Exception hierarchy for the game session client.

This module defines the base exception classes used by the login, time-in
and transport layers. Retryable errors describe conditions that a caller may
recover from by trying again; fatal errors must not be retried.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


# === APPLICATION EXCEPTION HIERARCHY ===


class GameSessionError(Exception):
    """Base exception class for all session client errors."""

    pass


class RetryableError(GameSessionError):
    """Exception that indicates the operation can be retried."""

    def __init__(self, message: str = "Operation can be retried", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.retry_after = kwargs.get('retry_after')
        self.context = kwargs.get('context', {})
        self.recovery_hint = kwargs.get('recovery_hint')


class FatalError(GameSessionError):
    """Exception that indicates the operation should not be retried."""

    def __init__(self, message: str = "Fatal error occurred", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = kwargs.get('context', {})
        self.recovery_hint = kwargs.get('recovery_hint')


class TransportError(RetryableError):
    """The login exchange could not be completed by the HTTP transport."""

    def __init__(self, message: str = "Login exchange failed", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.url = kwargs.get('url')
        self.attempts = kwargs.get('attempts', 0)


class LoginTimeoutError(TransportError):
    """Every transport attempt for the login exchange timed out."""

    def __init__(self, message: str = "Login exchange timed out", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.timeout_duration = kwargs.get('timeout_duration')


class ConfigurationError(FatalError):
    """Exception for configuration errors."""

    def __init__(self, message: str = "Configuration error occurred", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.config_section = kwargs.get('config_section')


class MissingConfigError(ConfigurationError):
    """Exception for missing configuration errors."""

    def __init__(self, message: str = "Required configuration is missing", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.missing_keys = kwargs.get('missing_keys', [])


class CredentialStoreError(FatalError):
    """Saved login credentials could not be read or written."""

    pass


class ConcurrentSessionError(FatalError):
    """
    A time-in was triggered while another path was already logging in.

    Request serialisation guarantees this cannot happen in correct operation,
    so it is never recovered from; the client is expected to terminate.
    """

    def __init__(self, message: str = "Concurrent session re-establishment detected", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.request_location = kwargs.get('request_location')
        self.redirect_location = kwargs.get('redirect_location')


__all__ = [
    "ConcurrentSessionError",
    "ConfigurationError",
    "CredentialStoreError",
    "FatalError",
    "GameSessionError",
    "LoginTimeoutError",
    "MissingConfigError",
    "RetryableError",
    "TransportError",
]
