#!/usr/bin/env python3

"""
main.py - Game Session Client Entry Point

Command line front end for establishing a game session:

    game-session login [username] [--stealth]
    game-session forget [username]

The password comes from GAME_PASSWORD, the saved-login store, or a prompt.
Exit status is 0 when the session is established, 1 when it is not, and 2
when overlapping session re-establishment was detected.
"""

# === CORE INFRASTRUCTURE ===
import logging
import sys

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
import argparse
import getpass
import os
from typing import Optional

# === LOCAL IMPORTS ===
from config.config_manager import get_config_manager
from config.config_schema import ConfigSchema
from config.credential_store import SaveStateStore
from core.exceptions import ConcurrentSessionError, ConfigurationError, CredentialStoreError
from core.lifecycle import cleanup_session_coordinator, initialize_application
from core.login_request import STEALTH_MARKER, Credentials

EXIT_ESTABLISHED = 0
EXIT_NOT_ESTABLISHED = 1
EXIT_CONCURRENT_SESSION = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="game-session", description="Game session client")
    parser.add_argument("--config", help="Optional JSON configuration file")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Log in and establish a session")
    login_parser.add_argument("username", nargs="?", help="Login name (defaults to GAME_USERNAME)")
    login_parser.add_argument(
        "--stealth",
        action="store_true",
        help=f"Log in without appearing online (same as appending {STEALTH_MARKER} to the name)",
    )
    login_parser.add_argument("--no-progress", action="store_true", help="Do not draw countdown bars")

    forget_parser = subparsers.add_parser("forget", help="Remove saved logins")
    forget_parser.add_argument("username", nargs="?", help="Login to forget; all logins when omitted")

    return parser


def resolve_password(identity: str, store: Optional[SaveStateStore]) -> str:
    """GAME_PASSWORD, then the saved-login store, then an interactive prompt."""
    password = os.getenv("GAME_PASSWORD")
    if password:
        return password

    if store is not None:
        try:
            saved = store.get_secret(identity)
        except CredentialStoreError as e:
            logger.warning(f"Saved logins unavailable: {e.message}")
            saved = None
        if saved:
            logger.debug(f"Using saved login for {identity}")
            return saved

    return getpass.getpass(f"Password for {identity}: ")


def _load_config(config_file: Optional[str]) -> ConfigSchema:
    """An explicit --config always gets a fresh manager so the file is honoured."""
    return get_config_manager(config_file=config_file, force_new=config_file is not None).get_config()


def _run_login(args: argparse.Namespace, config_file: Optional[str], log_level: Optional[str]) -> int:
    config = _load_config(config_file)
    if log_level:
        config.logging.log_level = log_level.upper()

    login_name = args.username or config.session.default_username
    if not login_name:
        print("No username given and GAME_USERNAME is not set.", file=sys.stderr)
        return EXIT_NOT_ESTABLISHED
    if args.stealth and STEALTH_MARKER not in login_name:
        login_name += STEALTH_MARKER

    coordinator = initialize_application(config, show_countdown=not args.no_progress)
    try:
        store = coordinator.save_state if isinstance(coordinator.save_state, SaveStateStore) else None
        identity = login_name.replace(STEALTH_MARKER, "")
        credentials = Credentials.from_login_name(login_name, resolve_password(identity, store))

        coordinator.start_explicit_login(credentials)
    except ConcurrentSessionError as e:
        logger.critical(f"Aborting: {e.message}")
        return EXIT_CONCURRENT_SESSION
    finally:
        cleanup_session_coordinator(coordinator)

    result = coordinator.last_result
    if coordinator.is_established():
        print(f"Session established for {credentials.identity}.")
        return EXIT_ESTABLISHED

    reason = result.message if result is not None and result.message else "login did not complete"
    print(f"Login failed: {reason}", file=sys.stderr)
    return EXIT_NOT_ESTABLISHED


def _run_forget(args: argparse.Namespace, config_file: Optional[str]) -> int:
    storage = _load_config(config_file).storage
    store = SaveStateStore(storage.credential_path, service_name=storage.keyring_service)
    try:
        if args.username:
            removed = store.remove(args.username)
            print(f"Forgot {args.username}." if removed else f"No saved login for {args.username}.")
            return 0
        store.delete()
    except CredentialStoreError as e:
        print(f"Saved logins unavailable: {e.message}", file=sys.stderr)
        return 1
    print("All saved logins removed.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "login":
            return _run_login(args, args.config, args.log_level)
        return _run_forget(args, args.config)
    except ConfigurationError as e:
        print(f"❌ CONFIGURATION ERROR: {e.message}", file=sys.stderr)
        return EXIT_NOT_ESTABLISHED
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_NOT_ESTABLISHED


if __name__ == "__main__":
    sys.exit(main())
