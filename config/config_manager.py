#!/usr/bin/env python3

"""
Configuration Manager.

Builds the validated ConfigSchema for the session client from, in order of
increasing priority:
1. Built-in defaults
2. An optional JSON configuration file
3. Environment variables (GAME_*, PING_*, LOG_*), with a .env file loaded
   through python-dotenv unless CONFIG_SKIP_DOTENV is set
"""

# === CORE INFRASTRUCTURE ===
import logging
import os

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
import copy
import json
from pathlib import Path
from typing import Any, Optional, Union

# === THIRD-PARTY IMPORTS ===
from dotenv import load_dotenv

# === LOCAL IMPORTS ===
from config.config_schema import (
    ConfigSchema,
    LoggingConfig,
    PingConfig,
    SessionConfig,
    StorageConfig,
)
from core.exceptions import ConfigurationError, MissingConfigError

_TRUE_VALUES = {"true", "1", "yes", "on"}

# Environment variable -> preference flag seeded into preference_defaults
_PREFERENCE_ENV_VARS = {
    "GAME_STEALTH_LOGIN": "stealth_login",
    "GAME_PING_STEALTHY_TIMEIN": "ping_stealthy_timein",
    "GAME_USE_ALTERNATE_SERVER": "use_alternate_server",
    "GAME_SAVE_STATE_ACTIVE": "save_state_active",
}


class ValidationError(ConfigurationError):
    """Configuration validation error."""

    pass


class _ConfigManagerSingleton:
    """Container class for singleton instance to avoid global statement."""

    instance: Optional["ConfigManager"] = None


def get_config_manager(
    config_file: Optional[Union[str, Path]] = None,
    environment: Optional[str] = None,
    force_new: bool = False,
) -> "ConfigManager":
    """
    Get the singleton ConfigManager instance.

    Args:
        config_file: Optional configuration file path (only used on first call)
        environment: Environment name (only used on first call)
        force_new: If True, create a new instance (for testing only)

    Returns:
        The shared ConfigManager instance
    """
    if force_new or _ConfigManagerSingleton.instance is None:
        _ConfigManagerSingleton.instance = ConfigManager(
            config_file=config_file,
            environment=environment,
            auto_load=True,
        )

    return _ConfigManagerSingleton.instance


class ConfigManager:
    """
    Configuration manager with type-safe schemas and validation.

    Usage:
        from config.config_manager import get_config_manager
        config = get_config_manager().get_config()
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        environment: Optional[str] = None,
        auto_load: bool = True,
    ):
        """
        Initialize the configuration manager.

        Args:
            config_file: Optional JSON configuration file path
            environment: Environment name (development, testing, production)
            auto_load: Whether to automatically load configuration
        """
        skip_dotenv = os.getenv("CONFIG_SKIP_DOTENV", "").strip().lower()
        if skip_dotenv not in _TRUE_VALUES:
            load_dotenv()

        self.config_file = Path(config_file) if config_file else None
        self.environment = environment or os.getenv("ENVIRONMENT", "development")
        self._config_cache: Optional[ConfigSchema] = None
        self._file_modification_time: Optional[float] = None

        if auto_load:
            self.load_config()

    def load_config(self) -> ConfigSchema:
        """
        Load and validate configuration from every source.

        Returns:
            Validated configuration schema

        Raises:
            MissingConfigError: If an explicitly requested config file does not exist
            ValidationError: If configuration validation fails
        """
        logger.debug(f"Loading configuration for environment: {self.environment}")

        if self.config_file and not self.config_file.exists():
            raise MissingConfigError(
                f"Configuration file not found: {self.config_file}",
                missing_keys=[str(self.config_file)],
                recovery_hint="Check the --config path or omit it to use defaults and environment",
            )

        config_data = self._get_default_config()

        if self.config_file and self.config_file.exists():
            config_data = self._merge_configs(config_data, self._load_config_file())

        config_data = self._merge_configs(config_data, self._load_environment_variables())

        try:
            config = ConfigSchema.from_dict(config_data)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ValidationError(f"Configuration loading failed: {e}") from e

        validation_errors = config.validate()
        if validation_errors:
            logger.error(f"Configuration validation failed: {validation_errors}")
            raise ValidationError(
                f"Configuration validation failed: {validation_errors}",
                context={"errors": validation_errors},
            )

        self._config_cache = config
        if self.config_file and self.config_file.exists():
            self._file_modification_time = self.config_file.stat().st_mtime

        logger.debug(f"Configuration loaded successfully for environment: {self.environment}")
        return config

    def get_config(self, reload_if_changed: bool = True) -> ConfigSchema:
        """
        Get the current configuration.

        Args:
            reload_if_changed: Whether to reload if config file has changed

        Returns:
            Current configuration schema
        """
        if reload_if_changed and self._should_reload():
            logger.info("Configuration file changed, reloading...")
            return self.load_config()

        if self._config_cache is None:
            return self.load_config()

        return self._config_cache

    def reload_config(self) -> ConfigSchema:
        """Force reload configuration from all sources."""
        self._config_cache = None
        self._file_modification_time = None
        return self.load_config()

    def validate_config(self, config_data: Optional[dict[str, Any]] = None) -> list[str]:
        """
        Validate configuration data.

        Args:
            config_data: Optional configuration data to validate; the cached
                configuration is validated when omitted

        Returns:
            List of validation error messages
        """
        if config_data is None:
            return self.get_config(reload_if_changed=False).validate()

        try:
            return ConfigSchema.from_dict(config_data).validate()
        except (TypeError, ValueError) as e:
            return [f"Configuration validation error: {e}"]

    def export_config(self, output_file: Union[str, Path]) -> bool:
        """Write the current configuration to a JSON file."""
        try:
            data = self.get_config(reload_if_changed=False).to_dict()
            Path(output_file).write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
            logger.info(f"Configuration exported to {output_file}")
            return True
        except OSError as e:
            logger.error(f"Failed to export configuration: {e}")
            return False

    def get_session_config(self) -> SessionConfig:
        return self.get_config().session

    def get_ping_config(self) -> PingConfig:
        return self.get_config().ping

    def get_storage_config(self) -> StorageConfig:
        return self.get_config().storage

    def get_logging_config(self) -> LoggingConfig:
        return self.get_config().logging

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _get_default_config(self) -> dict[str, Any]:
        """Defaults come from the schema itself."""
        defaults = ConfigSchema().to_dict()
        defaults["environment"] = self.environment
        return defaults

    def _load_config_file(self) -> dict[str, Any]:
        """Load configuration from a JSON file."""
        if not self.config_file or not self.config_file.exists():
            return {}

        suffix = self.config_file.suffix.lower()
        if suffix != ".json":
            logger.warning(f"Unsupported config file format: {suffix}")
            return {}

        try:
            with self.config_file.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config file {self.config_file}: {e}")
            return {}

    def _load_environment_variables(self) -> dict[str, Any]:
        """Load configuration from environment variables."""
        config: dict[str, Any] = {}

        self._load_main_config_from_env(config)
        self._load_session_config_from_env(config)
        self._load_ping_config_from_env(config)
        self._load_storage_config_from_env(config)
        self._load_logging_config_from_env(config)
        self._load_preference_defaults_from_env(config)

        return config

    @staticmethod
    def _load_main_config_from_env(config: dict[str, Any]) -> None:
        env_value = os.getenv("ENVIRONMENT")
        if env_value:
            config["environment"] = env_value
        debug_value = os.getenv("DEBUG_MODE")
        if debug_value is not None:
            config["debug_mode"] = debug_value.strip().lower() in _TRUE_VALUES

    def _load_session_config_from_env(self, config: dict[str, Any]) -> None:
        self._set_string_config(config, "session", "base_url", "GAME_BASE_URL")
        self._set_string_config(config, "session", "alternate_base_url", "GAME_ALTERNATE_BASE_URL")
        self._set_string_config(config, "session", "user_agent", "GAME_USER_AGENT")
        self._set_string_config(config, "session", "default_username", "GAME_USERNAME")
        self._set_float_config(config, "session", "request_timeout", "GAME_REQUEST_TIMEOUT")
        self._set_int_config(config, "session", "login_timeout_retries", "GAME_LOGIN_TIMEOUT_RETRIES")
        self._set_float_config(
            config, "session", "timein_suppression_seconds", "GAME_TIMEIN_SUPPRESSION_SECONDS"
        )

    def _load_ping_config_from_env(self, config: dict[str, Any]) -> None:
        self._set_bool_config(config, "ping", "enabled", "PING_ENABLED")
        self._set_string_config(config, "ping", "path", "PING_PATH")
        self._set_int_config(config, "ping", "count", "PING_COUNT")
        self._set_int_config(config, "ping", "max_latency_ms", "PING_MAX_LATENCY_MS")

    def _load_storage_config_from_env(self, config: dict[str, Any]) -> None:
        self._set_string_config(config, "storage", "data_dir", "GAME_DATA_DIR")
        self._set_string_config(config, "storage", "keyring_service", "GAME_KEYRING_SERVICE")

    def _load_logging_config_from_env(self, config: dict[str, Any]) -> None:
        self._set_string_config(config, "logging", "log_level", "LOG_LEVEL")
        self._set_string_config(config, "logging", "log_dir", "LOG_DIR")
        self._set_string_config(config, "logging", "log_file", "LOG_FILE")
        self._set_int_config(config, "logging", "max_log_size_mb", "LOG_MAX_SIZE_MB")

    @staticmethod
    def _load_preference_defaults_from_env(config: dict[str, Any]) -> None:
        for env_var, flag in _PREFERENCE_ENV_VARS.items():
            value = os.getenv(env_var)
            if value is not None:
                config.setdefault("preference_defaults", {})[flag] = value.strip().lower() in _TRUE_VALUES

    @staticmethod
    def _set_string_config(config: dict[str, Any], section: str, key: str, env_var: str) -> None:
        """Set a string configuration value from environment variable."""
        value = os.getenv(env_var)
        if value:
            config.setdefault(section, {})[key] = value

    @staticmethod
    def _set_int_config(config: dict[str, Any], section: str, key: str, env_var: str) -> None:
        """Set an integer configuration value from environment variable."""
        value = os.getenv(env_var)
        if value:
            try:
                config.setdefault(section, {})[key] = int(value)
            except ValueError:
                logger.warning(f"Invalid {env_var} value: {value}")

    @staticmethod
    def _set_float_config(config: dict[str, Any], section: str, key: str, env_var: str) -> None:
        """Set a float configuration value from environment variable."""
        value = os.getenv(env_var)
        if value:
            try:
                config.setdefault(section, {})[key] = float(value)
            except ValueError:
                logger.warning(f"Invalid {env_var} value: {value}")

    @staticmethod
    def _set_bool_config(config: dict[str, Any], section: str, key: str, env_var: str) -> None:
        """Set a boolean configuration value from environment variable."""
        value = os.getenv(env_var)
        if value is not None:
            config.setdefault(section, {})[key] = value.strip().lower() in _TRUE_VALUES

    def _merge_configs(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into a copy of base."""
        result = copy.deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _should_reload(self) -> bool:
        """Check if configuration should be reloaded."""
        if not self.config_file or not self.config_file.exists():
            return False

        if self._file_modification_time is None:
            return True

        return self.config_file.stat().st_mtime > self._file_modification_time


__all__ = ["ConfigManager", "ValidationError", "get_config_manager"]
