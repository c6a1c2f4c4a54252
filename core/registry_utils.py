#!/usr/bin/env python3

"""
Listener Registration Utilities

Topic-based observer registry. Components register callbacks for a topic
("session", ...) and are called whenever another component fires a change
for it. A failing listener is logged and does not stop the others.
"""

# === CORE INFRASTRUCTURE ===
import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], Any]


class ListenerRegistry:
    """Registry of change listeners keyed by topic."""

    def __init__(self) -> None:
        self.registry: dict[str, list[Listener]] = {}
        self._lock = threading.Lock()
        self.registration_stats = {
            "total_registered": 0,
            "duplicate_attempts": 0,
            "changes_fired": 0,
            "listener_errors": 0,
        }

    def register(self, topic: str, listener: Listener) -> bool:
        """Register a listener for a topic; returns False if it was already registered."""
        with self._lock:
            listeners = self.registry.setdefault(topic, [])
            if listener in listeners:
                self.registration_stats["duplicate_attempts"] += 1
                return False
            listeners.append(listener)
            self.registration_stats["total_registered"] += 1
        logger.debug(f"Registered listener {getattr(listener, '__name__', listener)!r} for '{topic}'")
        return True

    def unregister(self, topic: str, listener: Listener) -> bool:
        with self._lock:
            listeners = self.registry.get(topic, [])
            if listener not in listeners:
                return False
            listeners.remove(listener)
            return True

    def fire_change(self, topic: str) -> None:
        """Call every listener registered for the topic, in registration order."""
        with self._lock:
            listeners = list(self.registry.get(topic, []))
            self.registration_stats["changes_fired"] += 1

        for listener in listeners:
            try:
                listener()
            except Exception as e:
                self.registration_stats["listener_errors"] += 1
                logger.error(f"Listener for '{topic}' failed: {e}", exc_info=True)

    def is_available(self, topic: str) -> bool:
        return bool(self.registry.get(topic))

    def get_stats(self) -> dict[str, Any]:
        """Get registration statistics."""
        with self._lock:
            return {
                **self.registration_stats,
                "topics": {topic: len(listeners) for topic, listeners in self.registry.items()},
            }


__all__ = ["Listener", "ListenerRegistry"]
