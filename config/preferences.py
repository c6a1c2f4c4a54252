#!/usr/bin/env python3

"""
Persistent user preferences.

Global boolean flags (stealth login, alternate server, ...) and per-identity
string values, kept in a small JSON file. Flags that have never been written
fall back to the defaults supplied by the configuration.
"""

# === CORE INFRASTRUCTURE ===
import logging

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

KNOWN_FLAGS = (
    "stealth_login",
    "ping_stealthy_timein",
    "use_alternate_server",
    "save_state_active",
)


class Preferences:
    """
    Thread-safe preference store.

    Usage:
        prefs = Preferences(Path("Data/preferences.json"), defaults=config.preference_defaults)
        if prefs.get_boolean("stealth_login"):
            ...
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        defaults: Optional[dict[str, bool]] = None,
        autosave: bool = True,
    ) -> None:
        self._path = Path(path) if path else None
        self._defaults: dict[str, bool] = {flag: False for flag in KNOWN_FLAGS}
        self._defaults.update(defaults or {})
        self._flags: dict[str, bool] = {}
        self._strings: dict[str, dict[str, str]] = {}
        self._autosave = autosave
        self._lock = threading.RLock()

        if self._path is not None:
            self.load()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def get_boolean(self, name: str) -> bool:
        with self._lock:
            if name in self._flags:
                return self._flags[name]
            return self._defaults.get(name, False)

    def set_boolean(self, name: str, value: bool) -> None:
        with self._lock:
            previous = self.get_boolean(name)
            self._flags[name] = bool(value)
            if previous != bool(value):
                logger.info("Preference '%s' changed to %s", name, bool(value))
            self._maybe_save()

    def get_string(self, identity: str, name: str) -> str:
        with self._lock:
            return self._strings.get(identity.lower(), {}).get(name, "")

    def set_string(self, identity: str, name: str, value: str) -> None:
        with self._lock:
            self._strings.setdefault(identity.lower(), {})[name] = value
            logger.debug("Preference '%s' for %s set", name, identity)
            self._maybe_save()

    def identities(self) -> list[str]:
        with self._lock:
            return sorted(self._strings)

    def get_all_flags(self) -> dict[str, bool]:
        """Snapshot of every flag, defaults included."""
        with self._lock:
            return {**self._defaults, **self._flags}

    def load(self) -> int:
        """
        Load preferences from the JSON file.

        Returns:
            Number of flags loaded (0 when the file does not exist yet)
        """
        if self._path is None or not self._path.exists():
            return 0

        try:
            with self._path.open(encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load preferences from %s: %s", self._path, e)
            return 0

        with self._lock:
            self._flags = {str(k): bool(v) for k, v in data.get("flags", {}).items()}
            self._strings = {
                str(identity).lower(): {str(k): str(v) for k, v in values.items()}
                for identity, values in data.get("identities", {}).items()
            }
        logger.debug("Loaded %d preference flags from %s", len(self._flags), self._path)
        return len(self._flags)

    def save(self, path: Optional[Path] = None) -> bool:
        """Write preferences to disk; returns False when there is nowhere to write or it failed."""
        save_path = Path(path) if path else self._path
        if save_path is None:
            logger.debug("No preferences path configured; not saving")
            return False

        with self._lock:
            data = {
                "flags": dict(self._flags),
                "identities": {identity: dict(values) for identity, values in self._strings.items()},
                "updated_at": datetime.now().isoformat(),
            }

        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            with save_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            return True
        except OSError as e:
            logger.error("Failed to save preferences to %s: %s", save_path, e)
            return False

    def reset(self) -> None:
        """Forget every stored value (defaults stay)."""
        with self._lock:
            self._flags.clear()
            self._strings.clear()

    def _maybe_save(self) -> None:
        if self._autosave and self._path is not None:
            self.save()


__all__ = ["KNOWN_FLAGS", "Preferences"]
