"""
Configuration Package

Schema-based configuration for the game session client plus the two pieces
of persistent user state that sit next to it.

Main components:
- ConfigManager: loads defaults, JSON file and environment into a ConfigSchema
- ConfigSchema: type-safe configuration schemas with validation
- Preferences: persistent global flags and per-identity strings
- SaveStateStore: encrypted saved logins
"""

from config.config_manager import ConfigManager, get_config_manager
from config.config_schema import ConfigSchema
from config.credential_store import SaveStateStore
from config.preferences import Preferences

__all__ = [
    "ConfigManager",
    "ConfigSchema",
    "Preferences",
    "SaveStateStore",
    "get_config_manager",
]
