#!/usr/bin/env python3

"""
HTTP transport for login exchanges.

Posts the login form on a pooled requests.Session without following
redirects, so the Location the server answers with can be classified.
Timeouts are retried here; every other failure surfaces as TransportError.
"""

# === CORE INFRASTRUCTURE ===
import logging

logger = logging.getLogger(__name__)

# === STANDARD LIBRARY IMPORTS ===
from typing import Optional
from urllib.parse import urljoin

# === THIRD-PARTY IMPORTS ===
import requests
from requests.adapters import HTTPAdapter

# === LOCAL IMPORTS ===
from config.config_schema import SessionConfig
from core.exceptions import LoginTimeoutError, TransportError
from core.protocols import LoginExchange, LoginForm, PreferencesProtocol

PREF_USE_ALTERNATE_SERVER = "use_alternate_server"


class HttpLoginTransport:
    """
    requests-based implementation of LoginTransportProtocol.

    Usage:
        transport = HttpLoginTransport(config.session, preferences)
        transport.apply_settings()
        exchange = transport.submit(form)
    """

    def __init__(
        self,
        session_config: SessionConfig,
        preferences: PreferencesProtocol,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = session_config
        self.preferences = preferences
        self.session = session if session is not None else self._create_session()
        self.base_url = session_config.base_url
        self.submissions = 0

    def _create_session(self) -> requests.Session:
        logger.debug("Initializing requests session for login transport...")
        session = requests.Session()
        # Retries are handled in submit() so only timeouts are retried
        adapter = HTTPAdapter(pool_connections=10, pool_maxsize=10, max_retries=0)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"User-Agent": self.config.user_agent})
        return session

    def apply_settings(self) -> None:
        """Pick the server for the next exchange from current preferences."""
        if self.preferences.get_boolean(PREF_USE_ALTERNATE_SERVER):
            self.base_url = self.config.alternate_base_url
        else:
            self.base_url = self.config.base_url
        logger.debug(f"Login transport targeting {self.base_url}")

    def reset(self) -> None:
        """Forget cookies and pooled connections before a fresh login."""
        self.session.cookies.clear()
        self.session.close()

    def url_for(self, path: str) -> str:
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def submit(self, form: LoginForm) -> LoginExchange:
        """
        POST the login form and capture the raw answer.

        Raises:
            LoginTimeoutError: every attempt timed out
            TransportError: the request failed for any other reason
        """
        url = self.url_for(form.path)
        snapshot = LoginForm(form.path, dict(form.fields))
        attempts = self.config.login_timeout_retries
        self.submissions += 1

        for attempt in range(1, attempts + 1):
            try:
                response = self.session.post(
                    url,
                    data=snapshot.fields,
                    allow_redirects=False,
                    timeout=self.config.request_timeout,
                )
            except requests.Timeout as e:
                logger.warning(f"Login exchange timed out (attempt {attempt}/{attempts}): {e}")
                continue
            except requests.RequestException as e:
                raise TransportError(
                    f"Login exchange failed: {e}",
                    url=url,
                    attempts=attempt,
                    recovery_hint="Check network connectivity and the configured server",
                ) from e

            return self._to_exchange(snapshot, response)

        raise LoginTimeoutError(
            f"Login exchange timed out after {attempts} attempt(s)",
            url=url,
            attempts=attempts,
            timeout_duration=self.config.request_timeout,
        )

    def get(self, path: str) -> requests.Response:
        """Plain GET against the current server, used by the connectivity probe."""
        url = self.url_for(path)
        try:
            return self.session.get(url, timeout=self.config.request_timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request failed: {e}", url=url, attempts=1) from e

    def close(self) -> None:
        self.session.close()

    @staticmethod
    def _to_exchange(form: LoginForm, response: requests.Response) -> LoginExchange:
        redirect_location = response.headers.get("Location") if response.is_redirect else None
        return LoginExchange(
            form=form,
            status_code=response.status_code,
            body_text=response.text,
            redirect_location=redirect_location,
            url=response.url,
            cookies=response.cookies.get_dict(),
        )


__all__ = ["HttpLoginTransport"]
