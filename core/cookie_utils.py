#!/usr/bin/env python3

"""Cookie management utilities: session cookie jar and JSON persistence."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from requests.cookies import RequestsCookieJar

from core.protocols import LoginExchange

# === MODULE SETUP ===
logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------------
# Cookie Store
# ------------------------------------------------------------------------------------


class CookieStore:
    """
    Session cookie jar fed by completed login exchanges.

    Normally shares its jar with the transport's requests.Session so that
    cookies applied here are sent on every later request.
    """

    def __init__(self, jar: Optional[RequestsCookieJar] = None, path: Optional[Path] = None) -> None:
        self.jar = jar if jar is not None else RequestsCookieJar()
        self.path = Path(path) if path else None
        self.applied_count = 0

    def apply_exchange(self, exchange: LoginExchange) -> None:
        """Copy the cookies set by a login exchange into the jar."""
        for name, value in exchange.cookies.items():
            self.jar.set(name, value)
        self.applied_count += 1
        logger.debug(f"Applied {len(exchange.cookies)} cookie(s) from login exchange")

    def as_dict(self) -> dict[str, str]:
        return self.jar.get_dict()

    def clear(self) -> None:
        self.jar.clear()

    def save_cookies(self, path: Optional[Path] = None) -> bool:
        """Save the jar to a JSON file for session persistence."""
        target = Path(path) if path else self.path
        if target is None:
            logger.debug("Cannot save cookies: no cookie file configured")
            return False

        cookies = [
            {"name": c.name, "value": c.value, "domain": c.domain, "path": c.path} for c in self.jar
        ]
        if not cookies:
            logger.debug("No cookies to save")
            return False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("w", encoding="utf-8") as f:
                json.dump(cookies, f, indent=2)
        except OSError as e:
            logger.warning("Failed to save cookies: %s", e)
            return False

        logger.info("Saved %d cookies to %s", len(cookies), target)
        return True

    def load_cookies(self, path: Optional[Path] = None) -> bool:
        """Load saved cookies into the jar."""
        source = Path(path) if path else self.path
        if source is None or not source.exists():
            logger.debug(f"No saved cookies file found at: {source}")
            return False

        try:
            with source.open(encoding="utf-8") as f:
                cookies: list[dict[str, Any]] = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load cookies: %s", e)
            return False

        loaded = 0
        for cookie in cookies:
            name = cookie.get("name")
            if not name:
                continue
            self.jar.set(name, cookie.get("value", ""), domain=cookie.get("domain", ""), path=cookie.get("path", "/"))
            loaded += 1

        logger.info("Loaded %d cookies from %s", loaded, source)
        return loaded > 0


__all__ = ["CookieStore"]
