#!/usr/bin/env python3

"""
Configuration Schema Definitions.

This module defines type-safe configuration schemas for the game session
client using dataclasses, with rule-based validation and dictionary
round-tripping so that defaults, configuration files and environment
variables can be merged before the schema is built.
"""

# === CORE INFRASTRUCTURE ===
import logging

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


class EnvironmentType(Enum):
    """Supported environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


@dataclass
class ValidationRule:
    """Configuration validation rule."""

    field_name: str
    validator: Callable[[Any], bool]
    error_message: str
    required: bool = True


class ConfigValidator:
    """Configuration validator with custom rules."""

    def __init__(self) -> None:
        self.rules: list[ValidationRule] = []
        self.environment_rules: dict[EnvironmentType, list[ValidationRule]] = {}

    def add_rule(self, rule: ValidationRule) -> None:
        """Add a validation rule."""
        self.rules.append(rule)

    def add_environment_rule(self, env: EnvironmentType, rule: ValidationRule) -> None:
        """Add an environment-specific validation rule."""
        self.environment_rules.setdefault(env, []).append(rule)

    @staticmethod
    def _validate_single_rule(config: Any, rule: ValidationRule, suffix: str = "") -> Optional[str]:
        """Validate a single rule against config. Returns error message or None."""
        if not hasattr(config, rule.field_name):
            return f"Required field {rule.field_name} is missing{suffix}" if rule.required else None
        value = getattr(config, rule.field_name)
        if value is None:
            return f"Required field {rule.field_name} is missing{suffix}" if rule.required else None
        if not rule.validator(value):
            return f"{rule.error_message}{suffix}"
        return None

    def validate(self, config: Any, environment: EnvironmentType = EnvironmentType.DEVELOPMENT) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        for rule in self.rules:
            error = self._validate_single_rule(config, rule)
            if error:
                errors.append(error)
        for rule in self.environment_rules.get(environment, []):
            error = self._validate_single_rule(config, rule, f" (environment: {environment.value})")
            if error:
                errors.append(error)
        return errors


def _is_http_url(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(("http://", "https://"))


@dataclass
class SessionConfig:
    """Login endpoint and session timing settings."""

    base_url: str = "https://www.kingdomofloathing.com"
    alternate_base_url: str = "https://dev.kingdomofloathing.com"
    user_agent: str = "game-session/1.0"
    default_username: Optional[str] = None

    # Transport
    request_timeout: float = 30.0
    login_timeout_retries: int = 3

    # A time-in trigger within this many seconds of the last submission is ignored
    timein_suppression_seconds: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors = self._get_validator().validate(self)
        if errors:
            raise ValueError("; ".join(errors))

    @staticmethod
    def _get_validator() -> ConfigValidator:
        validator = ConfigValidator()
        validator.add_rule(ValidationRule("base_url", _is_http_url, "base_url must be an http(s) URL"))
        validator.add_rule(
            ValidationRule("alternate_base_url", _is_http_url, "alternate_base_url must be an http(s) URL")
        )
        validator.add_rule(ValidationRule("request_timeout", lambda v: v > 0, "request_timeout must be positive"))
        validator.add_rule(
            ValidationRule(
                "login_timeout_retries", lambda v: v >= 1, "login_timeout_retries must be at least 1"
            )
        )
        validator.add_rule(
            ValidationRule(
                "timein_suppression_seconds",
                lambda v: v >= 0,
                "timein_suppression_seconds must be non-negative",
            )
        )
        return validator


@dataclass
class PingConfig:
    """Connectivity probe run after each successful login."""

    enabled: bool = False
    path: str = "api.php?what=status&for=game-session"
    count: int = 3
    max_latency_ms: int = 1500

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.count <= 0:
            raise ValueError("ping count must be positive")
        if self.max_latency_ms <= 0:
            raise ValueError("ping max_latency_ms must be positive")


@dataclass
class StorageConfig:
    """Where preferences, cookies and saved logins are kept."""

    data_dir: Path = Path("Data")
    preferences_file: str = "preferences.json"
    cookie_file: str = "cookies.json"
    credential_file: str = "saved_logins.enc"
    keyring_service: str = "game-session"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.data_dir = Path(self.data_dir)
        for name in ("preferences_file", "cookie_file", "credential_file", "keyring_service"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / self.preferences_file

    @property
    def cookie_path(self) -> Path:
        return self.data_dir / self.cookie_file

    @property
    def credential_path(self) -> Path:
        return self.data_dir / self.credential_file


@dataclass
class LoggingConfig:
    """Logging configuration schema."""

    log_level: str = "INFO"
    log_dir: Path = Path("Logs")
    log_file: str = "game_session.log"
    max_log_size_mb: int = 10
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.log_dir = Path(self.log_dir)
        self.log_level = str(self.log_level).upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        if self.max_log_size_mb <= 0:
            raise ValueError("max_log_size_mb must be positive")
        if self.backup_count < 0:
            raise ValueError("backup_count must be non-negative")


def _default_preferences() -> dict[str, bool]:
    return {
        "stealth_login": False,
        "ping_stealthy_timein": False,
        "use_alternate_server": False,
        "save_state_active": False,
    }


@dataclass
class ConfigSchema:
    """Main configuration schema that combines all sub-schemas."""

    environment: str = "development"
    debug_mode: bool = False
    app_name: str = "Game Session Client"

    # Initial values for flags not yet present in the preferences file
    preference_defaults: dict[str, bool] = field(default_factory=_default_preferences)

    # Sub-configurations (must come last due to default_factory)
    session: SessionConfig = field(default_factory=SessionConfig)
    ping: PingConfig = field(default_factory=PingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    _SECTIONS = ("session", "ping", "storage", "logging")

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        valid_environments = [env.value for env in EnvironmentType]
        if self.environment not in valid_environments:
            raise ValueError(f"environment must be one of: {valid_environments}")

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        result: dict[str, Any] = {}
        for field_name in self.__dataclass_fields__:
            value = getattr(self, field_name)
            if hasattr(value, "__dataclass_fields__"):
                result[field_name] = {
                    sub_field: getattr(value, sub_field) for sub_field in value.__dataclass_fields__
                }
            elif isinstance(value, dict):
                result[field_name] = dict(value)
            else:
                result[field_name] = value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConfigSchema":
        """Create configuration from dictionary."""
        session_config = SessionConfig(**data.get("session", {}))
        ping_config = PingConfig(**data.get("ping", {}))
        storage_config = StorageConfig(**data.get("storage", {}))
        logging_config = LoggingConfig(**data.get("logging", {}))

        main_data = {k: v for k, v in data.items() if k not in cls._SECTIONS}
        preference_defaults = {**_default_preferences(), **main_data.pop("preference_defaults", {})}

        return cls(
            session=session_config,
            ping=ping_config,
            storage=storage_config,
            logging=logging_config,
            preference_defaults=preference_defaults,
            **main_data,
        )

    def validate(self) -> list[str]:
        """
        Validate the entire configuration.

        Returns:
            List of validation error messages
        """
        errors = []

        try:
            SessionConfig(**self.session.__dict__)
            PingConfig(**self.ping.__dict__)
            StorageConfig(**self.storage.__dict__)
            LoggingConfig(**self.logging.__dict__)
            self.__post_init__()
        except ValueError as e:
            errors.append(str(e))
        except TypeError as e:
            errors.append(f"Unexpected validation error: {e}")

        validator = ConfigValidator()
        validator.add_environment_rule(
            EnvironmentType.PRODUCTION,
            ValidationRule(
                "debug_mode", lambda v: v is False, "debug_mode must be off in production"
            ),
        )
        try:
            environment = EnvironmentType(self.environment)
        except ValueError:
            environment = EnvironmentType.DEVELOPMENT
        errors.extend(validator.validate(self, environment))

        unknown = sorted(set(self.preference_defaults) - set(_default_preferences()))
        if unknown:
            errors.append(f"Unknown preference flags: {unknown}")

        return errors


__all__ = [
    "ConfigSchema",
    "ConfigValidationError",
    "ConfigValidator",
    "EnvironmentType",
    "LoggingConfig",
    "PingConfig",
    "SessionConfig",
    "StorageConfig",
    "ValidationRule",
]
