#!/usr/bin/env python3

"""
core/lifecycle.py - Application Lifecycle Management

Builds the session coordinator and its default collaborators from the
configuration at startup, and persists/close them at shutdown.
"""

import logging
from typing import Optional

import requests

from config.config_schema import ConfigSchema
from config.credential_store import SaveStateStore
from config.preferences import Preferences
from core.bootstrap import LoggingBootstrap
from core.connectivity import PingProbe
from core.cookie_utils import CookieStore
from core.progress_indicators import TqdmCountdown
from core.registry_utils import ListenerRegistry
from core.session_manager import SESSION_TOPIC, SessionCoordinator
from core.status_display import LoggingStatusDisplay
from core.transport import HttpLoginTransport
from logging_config import setup_logging

logger = logging.getLogger(__name__)


def initialize_application(
    config: ConfigSchema,
    configure_logging: bool = True,
    echo_status: bool = True,
    show_countdown: bool = True,
    http_session: Optional[requests.Session] = None,
) -> SessionCoordinator:
    """
    Wire a SessionCoordinator with the default collaborators.

    Args:
        config: Validated configuration
        configure_logging: Whether to call setup_logging from config.logging
        echo_status: Echo status updates to stdout as well as the log
        show_countdown: Draw a progress bar during server-imposed waits
        http_session: Optional requests.Session to use instead of a new one

    Returns:
        The ready coordinator, with probe and bootstrap attached
    """
    if configure_logging:
        setup_logging(
            log_file=config.logging.log_file,
            log_level=config.logging.log_level,
            log_dir=config.logging.log_dir,
            max_log_size_mb=config.logging.max_log_size_mb,
            backup_count=config.logging.backup_count,
        )

    storage = config.storage
    preferences = Preferences(storage.preferences_path, defaults=config.preference_defaults)
    transport = HttpLoginTransport(config.session, preferences, session=http_session)

    cookie_store = CookieStore(transport.session.cookies, storage.cookie_path)
    display = LoggingStatusDisplay(echo=echo_status)
    listeners = ListenerRegistry()

    coordinator = SessionCoordinator(
        transport=transport,
        preferences=preferences,
        cookie_store=cookie_store,
        countdown=TqdmCountdown(show_bar=show_countdown),
        display=display,
        listeners=listeners,
        save_state=SaveStateStore(storage.credential_path, service_name=storage.keyring_service),
        timein_suppression_seconds=config.session.timein_suppression_seconds,
    )
    coordinator.probe = PingProbe(transport, coordinator, config.ping)
    coordinator.bootstrap = LoggingBootstrap(preferences, display)

    listeners.register(SESSION_TOPIC, lambda: _log_session_state(coordinator))

    logger.debug(
        f"Session coordinator ready for {config.session.base_url} "
        f"(ping {'on' if config.ping.enabled else 'off'}, environment {config.environment})"
    )
    return coordinator


def _log_session_state(coordinator: SessionCoordinator) -> None:
    state = "established" if coordinator.is_established() else "not established"
    logger.debug(f"Session state changed: {state}")


def cleanup_session_coordinator(coordinator: Optional[SessionCoordinator]) -> None:
    """Persist cookies and preferences, then close the transport."""
    if coordinator is None:
        return

    cookie_store = coordinator.cookie_store
    if isinstance(cookie_store, CookieStore) and coordinator.is_established():
        cookie_store.save_cookies()

    preferences = coordinator.preferences
    if isinstance(preferences, Preferences):
        preferences.save()

    transport = coordinator.transport
    if isinstance(transport, HttpLoginTransport):
        transport.close()

    logger.debug("Session coordinator closed cleanly")


__all__ = ["cleanup_session_coordinator", "initialize_application"]
