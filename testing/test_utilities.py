#!/usr/bin/env python3

"""
Test helper utilities shared by the module suites.

- create_standard_test_runner: the run_comprehensive_tests factory
- temp_directory / temp_file: scratch locations cleaned up after a test
- env_override: temporarily set or remove environment variables
- create_test_config: a ConfigSchema suitable for offline tests
"""

# === CORE INFRASTRUCTURE ===
import contextlib
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

__all__ = [
    "create_standard_test_runner",
    "create_test_config",
    "env_override",
    "temp_directory",
    "temp_file",
]


def create_standard_test_runner(module_test_function: Callable[[], bool]) -> Callable[[], bool]:
    """
    Create a standardized test runner function.

    Example:
        run_comprehensive_tests = create_standard_test_runner(my_module_tests)
    """

    def run_comprehensive_tests() -> bool:
        """Run comprehensive tests using standardized test runner pattern."""
        try:
            return module_test_function()
        except Exception as e:
            print(f"❌ Test execution failed: {e}")
            logger.debug("Suite raised outside run_test", exc_info=True)
            return False

    return run_comprehensive_tests


@contextlib.contextmanager
def temp_directory(prefix: str = "test-") -> Iterator[Path]:
    """Context manager for a temporary directory removed on exit."""
    with tempfile.TemporaryDirectory(prefix=prefix) as temp_dir:
        yield Path(temp_dir)


@contextlib.contextmanager
def temp_file(suffix: str = "", prefix: str = "test-") -> Iterator[Path]:
    """Context manager for a temporary file path removed on exit."""
    with tempfile.NamedTemporaryFile(suffix=suffix, prefix=prefix, delete=False) as handle:
        temp_path = Path(handle.name)
    try:
        yield temp_path
    finally:
        temp_path.unlink(missing_ok=True)


@contextlib.contextmanager
def env_override(**values: Optional[str]) -> Iterator[None]:
    """
    Set environment variables for the duration of the block.

    A value of None removes the variable. Previous values are restored.
    """
    saved = {name: os.environ.get(name) for name in values}
    try:
        for name, value in values.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value
        yield
    finally:
        for name, value in saved.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value


def create_test_config(data_dir: Optional[Path] = None, overrides: Optional[dict[str, Any]] = None) -> Any:
    """
    Build a ConfigSchema for offline tests.

    Storage and logs point at data_dir when given, pinging is off and the
    transport fails fast.
    """
    from config.config_schema import ConfigSchema

    data: dict[str, Any] = {
        "environment": "testing",
        "session": {
            "base_url": "https://game.test",
            "alternate_base_url": "https://alt.game.test",
            "request_timeout": 1.0,
            "login_timeout_retries": 2,
        },
        "ping": {"enabled": False},
    }
    if data_dir is not None:
        data["storage"] = {"data_dir": Path(data_dir)}
        data["logging"] = {"log_dir": Path(data_dir) / "Logs"}
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(data.get(key), dict):
            data[key] = {**data[key], **value}
        else:
            data[key] = value
    return ConfigSchema.from_dict(data)
